"""
Integration tests for ServiceContainer wiring.
"""

import logging

import pytest

from campusconnect.core.services import ServiceContainer
from campusconnect.modules.activity import ActivityService
from campusconnect.modules.leaderboard import LeaderboardService
from campusconnect.modules.missions import MissionService
from campusconnect.modules.progress import ProgressService

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


@pytest.fixture
def container(config_manager, event_bus):
    return ServiceContainer(config_manager, event_bus, logging.getLogger("tests.container"))


class TestServiceContainer:
    """Test service construction and wiring."""

    async def test_access_before_initialize(self, container):
        """Services are unavailable before initialize."""
        with pytest.raises(RuntimeError):
            container.progress

    async def test_initialize_wires_services(self, container):
        """Initialize builds every service with shared dependencies."""
        await container.initialize()

        assert isinstance(container.progress, ProgressService)
        assert isinstance(container.missions, MissionService)
        assert isinstance(container.activity, ActivityService)
        assert isinstance(container.leaderboard, LeaderboardService)
        assert container.missions._progress is container.progress
        assert container.activity._progress is container.progress

        health = await container.health_check()
        assert health["initialized"] is True
        assert health["all_services_available"] is True

    async def test_end_to_end_flow(self, container, database):
        """A full register, view, book and toggle flow works through the container."""
        await container.initialize()
        await container.progress.register_user("student-1")

        missions = await container.missions.get_user_missions("student-1")
        await container.missions.toggle_mission_status(missions[0]["id"], "student-1", True)
        await container.activity.view_college("student-1", "mit")
        await container.activity.book_session("student-1", "mentor-1", "2030-01-01T09:00:00")

        board = await container.leaderboard.get_leaderboard()
        assert board[0]["xp"] == 15 + 5 + 15

    async def test_shutdown(self, container):
        """Services are unavailable after shutdown."""
        await container.initialize()
        await container.shutdown()

        with pytest.raises(RuntimeError):
            container.leaderboard
