"""
Service Container
=================

Purpose
-------
Builds and holds one instance of each progression service, wired with the
shared ConfigManager, EventBus and a per-service logger.

Responsibilities
----------------
- Construct services in dependency order (progress first)
- Expose them through properties that fail loudly before initialize()
- Record construction timings for a minimal health snapshot

Non-Responsibilities
--------------------
- Database and logging startup (see `campusconnect.core.database.bootstrap`
  and `campusconnect.core.logging`)
- Business logic

All services take (config_manager, event_bus, logger); services that build
on the XP engine also receive the shared ProgressService so they share its
per-user locks.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Dict, Optional

from campusconnect.core.logging.logger import get_logger
from campusconnect.modules.activity import ActivityService
from campusconnect.modules.leaderboard import LeaderboardService
from campusconnect.modules.missions import MissionService
from campusconnect.modules.progress import ProgressService

if TYPE_CHECKING:
    from logging import Logger

    from campusconnect.core.config.manager import ConfigManager
    from campusconnect.core.event.bus import EventBus

_SERVICE_COUNT = 4


class ServiceContainer:
    """
    Dependency injection container for the progression services.

    Usage:
        container = ServiceContainer(ConfigManager, event_bus, logger)
        await container.initialize()

        result = await container.progress.apply_xp_delta(user_id, 15)
    """

    def __init__(
        self,
        config_manager: type[ConfigManager] | ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        self._config_manager = config_manager
        self._event_bus = event_bus
        self._logger = logger

        self._progress: Optional[ProgressService] = None
        self._missions: Optional[MissionService] = None
        self._activity: Optional[ActivityService] = None
        self._leaderboard: Optional[LeaderboardService] = None

        self._initialized = False

        self._service_init_times: Dict[str, float] = {}
        self._init_start: Optional[float] = None
        self._init_end: Optional[float] = None

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def initialize(self) -> None:
        """Construct all services. Safe to call twice."""
        if self._initialized:
            self._logger.warning("ServiceContainer already initialized")
            return

        self._init_start = time.perf_counter()
        self._logger.info("Service container initialization starting...")

        try:
            self._progress = self._create_service("progress", ProgressService)

            self._missions = self._create_service(
                "missions",
                MissionService,
                progress_service=self._progress,
            )

            self._activity = self._create_service(
                "activity",
                ActivityService,
                progress_service=self._progress,
            )

            self._leaderboard = self._create_service("leaderboard", LeaderboardService)

            self._init_end = time.perf_counter()
            self._initialized = True

            extra_data: Dict[str, Any] = {
                "total_time_seconds": round(self._init_end - self._init_start, 3),
                "service_count": len(self._service_init_times),
            }
            self._logger.info("Service container initialized successfully", extra=extra_data)

        except Exception as e:
            self._logger.critical(
                "Service container initialization failed",
                exc_info=True,
                extra={"error": str(e)},
            )
            raise

    def _create_service(self, name: str, cls: type, **dependencies: Any) -> Any:
        """Instantiate a service with the shared dependencies and time it."""
        start = time.perf_counter()

        try:
            instance = cls(
                config_manager=self._config_manager,
                event_bus=self._event_bus,
                logger=get_logger(f"{cls.__module__}.{cls.__name__}"),
                **dependencies,
            )
        except Exception:
            self._logger.error(f"Failed to initialize {name}", exc_info=True)
            raise

        duration = time.perf_counter() - start
        self._service_init_times[name] = duration
        self._logger.debug(f"Initialized {name} in {duration:.3f}s")
        return instance

    async def shutdown(self) -> None:
        if not self._initialized:
            return

        self._logger.info("Shutting down service container...")
        await self._event_bus.drain()
        self._progress = None
        self._missions = None
        self._activity = None
        self._leaderboard = None
        self._initialized = False
        self._logger.info("Service container shut down")

    async def health_check(self) -> Dict[str, bool | float | int | None]:
        return {
            "initialized": self._initialized,
            "service_count": len(self._service_init_times),
            "total_init_time_seconds": (
                round(self._init_end - self._init_start, 3)
                if self._init_start and self._init_end
                else None
            ),
            "all_services_available": self._initialized
            and len(self._service_init_times) == _SERVICE_COUNT,
        }

    # ========================================================================
    # Services
    # ========================================================================

    @property
    def progress(self) -> ProgressService:
        if not self._initialized or self._progress is None:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return self._progress

    @property
    def missions(self) -> MissionService:
        if not self._initialized or self._missions is None:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return self._missions

    @property
    def activity(self) -> ActivityService:
        if not self._initialized or self._activity is None:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return self._activity

    @property
    def leaderboard(self) -> LeaderboardService:
        if not self._initialized or self._leaderboard is None:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return self._leaderboard
