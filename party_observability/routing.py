"""
HTTP routes exposing the monitoring service to the presentation layer.

Usage:
    app = FastAPI()
    app.state.monitoring = MonitoringService.from_mongo(client, "party_app")
    app.include_router(create_monitoring_router())
"""

import time
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from .dependencies import get_monitoring_service
from .service import MonitoringService


def create_monitoring_router(prefix: str = "/monitoring") -> APIRouter:
    """
    Create the monitoring router.

    Args:
        prefix: Path prefix for every route

    Returns:
        APIRouter with health, log, metric, summary, export and purge routes
    """
    router = APIRouter(prefix=prefix, tags=["monitoring"])

    @router.get("/health")
    async def run_health_check(
        subject_id: str | None = None,
        service: MonitoringService = Depends(get_monitoring_service),
    ) -> dict[str, Any]:
        report = await service.run_full_health_check(subject_id)
        return report.to_dict()

    @router.get("/health/latest")
    async def latest_health_report(
        service: MonitoringService = Depends(get_monitoring_service),
    ) -> dict[str, Any]:
        report = service.latest_report
        if report is None:
            raise HTTPException(404, "No health check has run yet")
        return report.to_dict()

    @router.get("/logs")
    async def get_logs(
        category: str | None = None,
        subject_id: str | None = None,
        module_id: str | None = None,
        service: MonitoringService = Depends(get_monitoring_service),
    ) -> list[dict[str, Any]]:
        events = service.get_logs(category=category, subject_id=subject_id, module_id=module_id)
        return [e.to_dict() for e in events]

    @router.delete("/logs")
    async def clear_logs(
        max_age_ms: float | None = Query(None, ge=0),
        service: MonitoringService = Depends(get_monitoring_service),
    ) -> dict[str, Any]:
        service.clear_logs(max_age_ms)
        return service.get_system_summary().to_dict()

    @router.get("/metrics")
    async def get_metrics(
        name: str | None = None,
        service: MonitoringService = Depends(get_monitoring_service),
    ) -> list[dict[str, Any]]:
        return [m.to_dict() for m in service.get_metrics(name)]

    @router.get("/metrics/{name}/stats")
    async def get_metric_stats(
        name: str,
        service: MonitoringService = Depends(get_monitoring_service),
    ) -> dict[str, Any]:
        stats = service.get_performance_stats(name)
        if stats is None:
            raise HTTPException(404, f"No metrics recorded for '{name}'")
        return stats.to_dict()

    @router.get("/summary")
    async def get_summary(
        service: MonitoringService = Depends(get_monitoring_service),
    ) -> dict[str, Any]:
        return service.get_system_summary().to_dict()

    @router.get("/export")
    async def export_logs(
        service: MonitoringService = Depends(get_monitoring_service),
    ) -> Response:
        filename = f"party-logs-{int(time.time() * 1000)}.json"
        return Response(
            content=service.export_logs(),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    return router
