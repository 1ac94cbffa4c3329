"""
Module registry and per-module health probing.

A module (one party game) is checked by an ordered set of independent
checks. Every check runs behind its own boundary: exceptions and timeouts
become failed ModuleCheckResults, so probing a module never raises.
"""

import asyncio
import dataclasses
import inspect
import time
from collections.abc import Awaitable, Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Union

from ..constants import (
    CHECK_CONFIGURATION,
    CHECK_REACHABILITY,
    CHECK_SCOPED_RESOURCES,
    DEFAULT_PROBE_TIMEOUT_SECONDS,
    DEFAULT_SLOW_QUERY_THRESHOLD_MS,
    PARTY_GAME_MODULES,
)
from ..exceptions import ConfigurationError
from ..logging import get_logger, module_context
from .persistence import OwnerResourceQuery, ScopedResourceQuery
from .types import ModuleCheckResult, ModuleHealthStatus, ResourceCount

logger = get_logger(__name__)

CheckOutcome = Union[bool, ModuleCheckResult]
CheckHook = Callable[[], Union[CheckOutcome, Awaitable[CheckOutcome]]]


@dataclass(frozen=True)
class ModuleDefinition:
    """
    A statically registered module.

    Attributes:
        module_id: Unique module identifier (e.g. "roleta-bebada")
        module_name: Display name
        config_check: Optional hook validating module configuration
        reachability_check: Optional hook confirming the module answers
    """

    module_id: str
    module_name: str
    config_check: CheckHook | None = None
    reachability_check: CheckHook | None = None


class ModuleRegistry:
    """Ordered registry of modules; iteration follows registration order."""

    def __init__(self, modules: Iterable[ModuleDefinition] = ()):
        self._modules: dict[str, ModuleDefinition] = {}
        for module in modules:
            self.add(module)

    @classmethod
    def with_party_games(cls) -> "ModuleRegistry":
        """Registry pre-populated with the built-in party games."""
        return cls(ModuleDefinition(module_id, name) for module_id, name in PARTY_GAME_MODULES)

    def add(self, module: ModuleDefinition) -> ModuleDefinition:
        """
        Register a module definition.

        Raises:
            ConfigurationError: If the id is empty or already registered
        """
        if not module.module_id:
            raise ConfigurationError("module_id must not be empty", config_key="module_id")
        if module.module_id in self._modules:
            raise ConfigurationError(
                f"Module '{module.module_id}' is already registered",
                config_key="module_id",
                config_value=module.module_id,
            )
        self._modules[module.module_id] = module
        return module

    def register(
        self,
        module_id: str,
        module_name: str,
        config_check: CheckHook | None = None,
        reachability_check: CheckHook | None = None,
    ) -> ModuleDefinition:
        """Register a module by its fields."""
        return self.add(ModuleDefinition(module_id, module_name, config_check, reachability_check))

    def get(self, module_id: str) -> ModuleDefinition | None:
        return self._modules.get(module_id)

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._modules

    def __iter__(self) -> Iterator[ModuleDefinition]:
        return iter(list(self._modules.values()))

    def __len__(self) -> int:
        return len(self._modules)


class ModuleHealthProber:
    """
    Runs the ordered checks of one module.

    Checks, in order:
        1. reachability - module is registered and its reachability hook agrees
        2. scoped_resources - only with a subject id; one scoped query
        3. configuration - module's config hook (passes when absent)
    """

    def __init__(
        self,
        registry: ModuleRegistry,
        resources: ScopedResourceQuery | None = None,
        owner_resources: OwnerResourceQuery | None = None,
        timeout_seconds: float = DEFAULT_PROBE_TIMEOUT_SECONDS,
        slow_query_threshold_ms: float = DEFAULT_SLOW_QUERY_THRESHOLD_MS,
    ):
        """
        Initialize the prober.

        Args:
            registry: Registry of known modules
            resources: Collaborator for the scoped resource check
            owner_resources: Collaborator for check_subject_resources()
            timeout_seconds: Deadline for each individual check
            slow_query_threshold_ms: Scoped queries slower than this are degraded
        """
        self._registry = registry
        self._resources = resources
        self._owner_resources = owner_resources
        self._timeout_seconds = timeout_seconds
        self._slow_query_threshold_ms = slow_query_threshold_ms

    @property
    def registry(self) -> ModuleRegistry:
        return self._registry

    async def check_module(
        self, module_id: str, module_name: str, subject_id: str | None = None
    ) -> ModuleHealthStatus:
        """
        Check one module.

        Args:
            module_id: Module identifier
            module_name: Module display name
            subject_id: Optional subject whose scoped resources are queried

        Returns:
            ModuleHealthStatus with checks in execution order
        """
        with module_context(module_id, subject_id):
            return await self._probe_module(module_id, module_name, subject_id)

    async def _probe_module(
        self, module_id: str, module_name: str, subject_id: str | None
    ) -> ModuleHealthStatus:
        checks = [
            await self._run_check(CHECK_REACHABILITY, lambda: self._check_reachability(module_id))
        ]

        if subject_id:
            if self._resources is None:
                logger.debug(
                    f"No scoped resource query configured; skipping resource check for {module_id}"
                )
            else:
                checks.append(
                    await self._run_check(
                        CHECK_SCOPED_RESOURCES,
                        lambda: self._check_scoped_resources(module_id, subject_id),
                    )
                )

        checks.append(
            await self._run_check(CHECK_CONFIGURATION, lambda: self._check_configuration(module_id))
        )

        return ModuleHealthStatus(
            module_id=module_id, module_name=module_name, checks=tuple(checks)
        )

    async def check_subject_resources(self, subject_id: str, resource: str) -> ResourceCount:
        """
        Count a subject's records in an owner-scoped collection.

        Args:
            subject_id: Owning subject
            resource: Collection name (e.g. "drink_inventory", "friend_lists")

        Returns:
            ResourceCount; failures are reported with success=False
        """
        if self._owner_resources is None:
            return ResourceCount(False, 0, "No owner resource query configured")
        try:
            records = await asyncio.wait_for(
                self._owner_resources.query_by_owner(resource, subject_id),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError:
            return ResourceCount(
                False, 0, f"Query on {resource} timed out after {self._timeout_seconds}s"
            )
        except Exception as e:  # noqa: BLE001 - probe boundary
            logger.warning(f"Owner resource query on {resource} failed: {e}", exc_info=True)
            return ResourceCount(False, 0, f"Error while querying {resource}: {e}")

        count = len(records)
        return ResourceCount(True, count, f"{count} records found in {resource}")

    async def _run_check(
        self, check_name: str, check: Callable[[], Awaitable[ModuleCheckResult]]
    ) -> ModuleCheckResult:
        """Run one check behind its own failure and timeout boundary."""
        try:
            outcome = await asyncio.wait_for(check(), timeout=self._timeout_seconds)
        except asyncio.TimeoutError:
            return ModuleCheckResult(
                check_name, False, f"Check timed out after {self._timeout_seconds}s"
            )
        except Exception as e:  # noqa: BLE001 - probe boundary
            logger.warning(f"Health check '{check_name}' raised: {e}", exc_info=True)
            return ModuleCheckResult(check_name, False, f"Error while running check: {e}")

        if outcome.check_name != check_name:
            outcome = dataclasses.replace(outcome, check_name=check_name)
        return outcome

    async def _check_reachability(self, module_id: str) -> ModuleCheckResult:
        module = self._registry.get(module_id)
        if module is None:
            return ModuleCheckResult(CHECK_REACHABILITY, False, "Module is not registered")
        if module.reachability_check is not None:
            reachable = module.reachability_check()
            if inspect.isawaitable(reachable):
                reachable = await reachable
            if isinstance(reachable, ModuleCheckResult):
                return reachable
            if not reachable:
                return ModuleCheckResult(CHECK_REACHABILITY, False, "Module is not reachable")
        return ModuleCheckResult(CHECK_REACHABILITY, True, "Module is registered and reachable")

    async def _check_scoped_resources(self, module_id: str, subject_id: str) -> ModuleCheckResult:
        start_time = time.perf_counter()
        records = await self._resources.query_by_owner_and_module(subject_id, module_id)
        elapsed_ms = (time.perf_counter() - start_time) * 1000

        count = len(records)
        message = f"{count} custom resources found"
        if elapsed_ms > self._slow_query_threshold_ms:
            return ModuleCheckResult(
                CHECK_SCOPED_RESOURCES,
                True,
                f"{message}, but the query took {elapsed_ms:.0f}ms",
                degraded=True,
            )
        return ModuleCheckResult(CHECK_SCOPED_RESOURCES, True, message)

    async def _check_configuration(self, module_id: str) -> ModuleCheckResult:
        module = self._registry.get(module_id)
        if module is None or module.config_check is None:
            return ModuleCheckResult(CHECK_CONFIGURATION, True, "Configuration is valid")
        valid = module.config_check()
        if inspect.isawaitable(valid):
            valid = await valid
        if isinstance(valid, ModuleCheckResult):
            return valid
        if valid:
            return ModuleCheckResult(CHECK_CONFIGURATION, True, "Configuration is valid")
        return ModuleCheckResult(CHECK_CONFIGURATION, False, "Configuration is invalid")
