"""
Persistence collaborators and the persistence health probe.

The health checker only depends on the small protocols defined here.
``MongoPersistenceStore`` implements them on top of motor.
"""

import asyncio
import logging
import time
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from motor.motor_asyncio import AsyncIOMotorClient

from ..constants import (
    DEFAULT_PROBE_TIMEOUT_SECONDS,
    DEFAULT_RESOURCE_QUERY_LIMIT,
    MODULE_FIELD,
    OWNER_FIELD,
    OWNER_SCOPED_COLLECTIONS,
    SCOPED_RESOURCE_COLLECTION,
)
from ..exceptions import ConfigurationError
from .types import PersistenceHealth

if TYPE_CHECKING:
    from ..events import EventLog

logger = logging.getLogger(__name__)


@runtime_checkable
class PersistencePinger(Protocol):
    """Lightweight round trip against the backing store."""

    async def ping(self) -> Mapping[str, Any]:
        """Return a mapping whose ``ok`` field is truthy when the store answered."""
        ...


@runtime_checkable
class ScopedResourceQuery(Protocol):
    """Lookup of resources owned by a subject and tagged with a module."""

    async def query_by_owner_and_module(self, owner_id: str, module_id: str) -> Sequence[Any]:
        """Return the matching records; raise on query failure."""
        ...


@runtime_checkable
class OwnerResourceQuery(Protocol):
    """Lookup of a subject's records in a named owner-scoped collection."""

    async def query_by_owner(self, resource: str, owner_id: str) -> Sequence[Any]:
        """Return the matching records; raise on query failure."""
        ...


class MongoPersistenceStore:
    """
    MongoDB implementation of the persistence collaborators.

    Only ``_id`` is projected from matching documents; the records are
    counted, never inspected.
    """

    def __init__(
        self,
        client: AsyncIOMotorClient,
        db_name: str,
        resource_collection: str = SCOPED_RESOURCE_COLLECTION,
        owner_field: str = OWNER_FIELD,
        module_field: str = MODULE_FIELD,
        owner_collections: Sequence[str] = OWNER_SCOPED_COLLECTIONS,
        query_limit: int = DEFAULT_RESOURCE_QUERY_LIMIT,
    ):
        """
        Initialize the store.

        Args:
            client: Motor client
            db_name: Database holding the application collections
            resource_collection: Collection of module-tagged, subject-owned resources
            owner_field: Field holding the owner id
            module_field: Field holding the module tag
            owner_collections: Collections allowed in query_by_owner()
            query_limit: Maximum documents fetched per query
        """
        if not db_name:
            raise ConfigurationError("db_name is required", config_key="db_name")
        self._client = client
        self._db = client[db_name]
        self._resource_collection = resource_collection
        self._owner_field = owner_field
        self._module_field = module_field
        self._owner_collections = tuple(owner_collections)
        self._query_limit = query_limit

    async def ping(self) -> Mapping[str, Any]:
        return await self._client.admin.command("ping")

    async def query_by_owner_and_module(self, owner_id: str, module_id: str) -> Sequence[Any]:
        cursor = self._db[self._resource_collection].find(
            {self._owner_field: owner_id, self._module_field: module_id}, {"_id": 1}
        )
        return await cursor.to_list(length=self._query_limit)

    async def query_by_owner(self, resource: str, owner_id: str) -> Sequence[Any]:
        if resource not in self._owner_collections:
            raise ConfigurationError(
                f"Collection '{resource}' is not owner-scoped",
                config_key="resource",
                config_value=resource,
            )
        cursor = self._db[resource].find({self._owner_field: owner_id}, {"_id": 1})
        return await cursor.to_list(length=self._query_limit)


class PersistenceProbe:
    """
    Timed round trip against the persistence collaborator.

    Any failure, timeout, or non-ok answer yields ``connected=False``; the
    response time is measured in every case.
    """

    def __init__(
        self,
        pinger: PersistencePinger,
        timeout_seconds: float = DEFAULT_PROBE_TIMEOUT_SECONDS,
        events: "EventLog | None" = None,
    ):
        self._pinger = pinger
        self._timeout_seconds = timeout_seconds
        self._events = events

    async def check(self) -> PersistenceHealth:
        """Run the probe."""
        start_time = time.perf_counter()
        try:
            result = await asyncio.wait_for(self._pinger.ping(), timeout=self._timeout_seconds)
        except asyncio.TimeoutError:
            response_time_ms = _elapsed_ms(start_time)
            message = f"Persistence ping timed out after {self._timeout_seconds}s"
            logger.warning(message)
            self._record_error(message, response_time_ms)
            return PersistenceHealth(False, response_time_ms, message)
        except Exception as e:  # noqa: BLE001 - probe boundary
            response_time_ms = _elapsed_ms(start_time)
            message = f"Persistence health check failed: {e}"
            logger.error(message, exc_info=True)
            self._record_error(message, response_time_ms)
            return PersistenceHealth(False, response_time_ms, message)

        response_time_ms = _elapsed_ms(start_time)
        if not _is_ok(result):
            message = f"Persistence ping returned a non-ok response: {result!r}"
            self._record_error(message, response_time_ms)
            return PersistenceHealth(False, response_time_ms, message)

        if self._events is not None:
            self._events.success(
                "Persistence backend healthy", {"response_time_ms": round(response_time_ms, 2)}
            )
        return PersistenceHealth(True, response_time_ms)

    def _record_error(self, message: str, response_time_ms: float) -> None:
        if self._events is not None:
            self._events.error(message, {"response_time_ms": round(response_time_ms, 2)})


def _elapsed_ms(start_time: float) -> float:
    return (time.perf_counter() - start_time) * 1000


def _is_ok(result: Any) -> bool:
    if isinstance(result, Mapping):
        return bool(result.get("ok"))
    return bool(getattr(result, "ok", False))
