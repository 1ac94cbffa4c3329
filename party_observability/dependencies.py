"""
FastAPI dependencies for PARTY_OBSERVABILITY.

The owning application stores its MonitoringService on ``app.state.monitoring``.

Usage:
    from fastapi import Depends
    from party_observability.dependencies import get_monitoring_service

    @app.post("/games/{game_id}/start")
    async def start(game_id: str, service=Depends(get_monitoring_service)):
        service.start_module_session(game_id)
"""

from fastapi import HTTPException, Request

from .service import MonitoringService


async def get_monitoring_service(request: Request) -> MonitoringService:
    """Get the MonitoringService instance from app state."""
    service = getattr(request.app.state, "monitoring", None)
    if service is None:
        raise HTTPException(503, "Monitoring service not initialized")
    return service
