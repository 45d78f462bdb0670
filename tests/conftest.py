"""
Pytest Configuration and Fixtures for the CampusConnect progression tests
=========================================================================

Architecture Notes
------------------
- Unit tests use plain objects and pytest-mock (fast, isolated)
- Integration tests run the real services against a file-backed SQLite
  database created per test under ``tmp_path`` (aiosqlite driver)
- ConfigManager is reset and reloaded from the project ``config/`` directory
  for every test so overrides never leak between tests
- Logging is left unconfigured so ``caplog`` sees every record
"""

from __future__ import annotations

import os

os.environ["ENVIRONMENT"] = "testing"

from pathlib import Path
from typing import AsyncGenerator, Generator, List, Tuple

import pytest
import pytest_asyncio

from campusconnect.core.config.config import Config
from campusconnect.core.config.manager import ConfigManager
from campusconnect.core.database.bootstrap import create_schema
from campusconnect.core.database.service import DatabaseService
from campusconnect.core.event.bus import EventBus
from campusconnect.core.logging.logger import clear_log_context, get_logger
from campusconnect.modules.activity import ActivityService
from campusconnect.modules.leaderboard import LeaderboardService
from campusconnect.modules.missions import MissionService
from campusconnect.modules.progress import ProgressService

PROJECT_CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


# ============================================================================
# CONFIG FIXTURES
# ============================================================================


@pytest.fixture(autouse=True)
def config_manager() -> Generator[type[ConfigManager], None, None]:
    """Fresh ConfigManager loaded from the shipped YAML for every test."""
    ConfigManager.reset()
    ConfigManager.initialize(PROJECT_CONFIG_DIR)
    yield ConfigManager
    ConfigManager.reset()


@pytest.fixture(autouse=True)
def _clean_log_context() -> Generator[None, None, None]:
    clear_log_context()
    yield
    clear_log_context()


# ============================================================================
# DATABASE FIXTURES (Integration Tests)
# ============================================================================


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'progression.db'}"


@pytest_asyncio.fixture
async def database(database_url: str) -> AsyncGenerator[type[DatabaseService], None]:
    """
    Initialized DatabaseService with the full schema.

    Scope: function (new database file per test, clean slate)
    """
    assert Config.is_testing()
    await DatabaseService.shutdown()
    await DatabaseService.initialize(database_url=database_url)
    await create_schema()

    yield DatabaseService

    await DatabaseService.shutdown()


# ============================================================================
# EVENT FIXTURES
# ============================================================================


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus(listener_timeout_seconds=1.0)


@pytest.fixture
def recorded_events(event_bus: EventBus) -> List[Tuple[str, dict]]:
    """Every event published on ``event_bus``, in publish order."""
    events: List[Tuple[str, dict]] = []

    def make_recorder(name: str):
        async def record(data: dict) -> None:
            events.append((name, data))

        return record

    for name in (
        "progress.user_registered",
        "progress.xp_changed",
        "progress.leveled_up",
        "mission.status_changed",
        "activity.college_viewed",
        "activity.session_booked",
        "activity.session_cancelled",
    ):
        event_bus.subscribe(name, make_recorder(name), identifier=f"recorder.{name}")

    return events


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def progress_service(database, event_bus, config_manager) -> ProgressService:
    return ProgressService(
        config_manager=config_manager,
        event_bus=event_bus,
        logger=get_logger("tests.ProgressService"),
    )


@pytest.fixture
def mission_service(progress_service, event_bus, config_manager) -> MissionService:
    return MissionService(
        config_manager=config_manager,
        event_bus=event_bus,
        logger=get_logger("tests.MissionService"),
        progress_service=progress_service,
    )


@pytest.fixture
def activity_service(progress_service, event_bus, config_manager) -> ActivityService:
    return ActivityService(
        config_manager=config_manager,
        event_bus=event_bus,
        logger=get_logger("tests.ActivityService"),
        progress_service=progress_service,
    )


@pytest.fixture
def leaderboard_service(database, event_bus, config_manager) -> LeaderboardService:
    return LeaderboardService(
        config_manager=config_manager,
        event_bus=event_bus,
        logger=get_logger("tests.LeaderboardService"),
    )


@pytest_asyncio.fixture
async def registered_user(progress_service: ProgressService) -> str:
    """A registered user at xp=0, level=1."""
    await progress_service.register_user("student-1", full_name="Ada Student")
    return "student-1"


@pytest_asyncio.fixture
async def set_xp(progress_service: ProgressService):
    """Move a registered user to an exact XP total."""

    async def _set(user_id: str, xp: int) -> None:
        current = await progress_service.get_progress(user_id)
        if xp != current.xp:
            await progress_service.apply_xp_delta(user_id, xp - current.xp)

    return _set
