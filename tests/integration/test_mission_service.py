"""
Integration tests for MissionService.

Mission state and XP must always move together.
"""

import logging

import pytest
from sqlalchemy import func, select

from campusconnect.core.database.service import DatabaseService
from campusconnect.core.exceptions import (
    ConcurrentModificationError,
    ConfigurationError,
    PersistenceError,
)
from campusconnect.database.models import Mission, MissionTemplate
from campusconnect.modules.shared.exceptions import NotFoundError, ValidationError

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


async def _mission_by_type(mission_service, user_id, mission_type):
    missions = await mission_service.get_user_missions(user_id)
    return next(m for m in missions if m["mission_type"] == mission_type)


async def _count(model) -> int:
    async with DatabaseService.get_session() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


class TestDefaultMissions:
    """Test default mission seeding."""

    async def test_first_listing_assigns_defaults(self, mission_service, registered_user):
        """The first listing creates the default missions."""
        missions = await mission_service.get_user_missions(registered_user)

        assert [m["mission_text"] for m in missions] == [
            "Explore 3 colleges",
            "Book a mentor session",
            "Watch 2 career videos",
            "Ask the Career Coach 3 questions",
        ]
        assert {m["status"] for m in missions} == {"pending"}
        assert all(m["completed_on"] is None for m in missions)

    async def test_seeding_happens_once(self, mission_service, progress_service, registered_user):
        """Listing again does not duplicate missions."""
        first = await mission_service.get_user_missions(registered_user)
        second = await mission_service.get_user_missions(registered_user)

        await progress_service.register_user("student-2")
        await mission_service.get_user_missions("student-2")

        assert [m["id"] for m in first] == [m["id"] for m in second]
        assert await _count(Mission) == 8
        assert await _count(MissionTemplate) == 4

    async def test_ensure_default_templates_is_idempotent(self, mission_service):
        """Templates are only inserted once."""
        assert await mission_service.ensure_default_templates() == 4
        assert await mission_service.ensure_default_templates() == 0

    async def test_unregistered_user(self, mission_service):
        """Unknown users get NotFoundError."""
        with pytest.raises(NotFoundError):
            await mission_service.get_user_missions("ghost")

        assert await _count(Mission) == 0

    async def test_malformed_default_config(self, mission_service, registered_user, config_manager):
        """Bad default mission config is a configuration error."""
        config_manager.set_override(
            "progression.missions.defaults",
            [{"mission_text": "Broken", "mission_type": "explore", "xp": 0}],
        )

        with pytest.raises(ConfigurationError):
            await mission_service.get_user_missions(registered_user)


class TestToggle:
    """Test mission completion toggles."""

    async def test_complete_then_uncomplete_is_symmetric(
        self, mission_service, progress_service, registered_user, set_xp
    ):
        """Completing then un-completing restores the original XP."""
        await set_xp(registered_user, 50)
        mission = await _mission_by_type(mission_service, registered_user, "explore")

        done = await mission_service.toggle_mission_status(mission["id"], registered_user, True)
        assert done.xp_change == 15
        assert done.xp_result.new_xp == 65

        undone = await mission_service.toggle_mission_status(mission["id"], registered_user, False)
        assert undone.xp_change == -15
        assert undone.xp_result.new_xp == 50
        assert (await progress_service.get_progress(registered_user)).xp == 50

    async def test_status_and_completed_on_move_together(self, mission_service, registered_user):
        """Status and completion time change together."""
        mission = await _mission_by_type(mission_service, registered_user, "mentor")

        await mission_service.toggle_mission_status(mission["id"], registered_user, True)
        completed = await _mission_by_type(mission_service, registered_user, "mentor")
        assert completed["status"] == "completed"
        assert completed["completed_on"] is not None

        await mission_service.toggle_mission_status(mission["id"], registered_user, False)
        pending = await _mission_by_type(mission_service, registered_user, "mentor")
        assert pending["status"] == "pending"
        assert pending["completed_on"] is None

    async def test_completion_can_level_up(self, mission_service, registered_user, set_xp):
        """Completing a mission can cross a level boundary."""
        await set_xp(registered_user, 90)
        mission = await _mission_by_type(mission_service, registered_user, "mentor")

        result = await mission_service.toggle_mission_status(mission["id"], registered_user, True)

        assert result.xp_result.new_level == 2
        assert result.xp_result.leveled_up is True

    async def test_retoggle_reapplies_reward_with_warning(self, mission_service, registered_user, caplog):
        """Re-completing awards again and logs a warning."""
        mission = await _mission_by_type(mission_service, registered_user, "videos")
        await mission_service.toggle_mission_status(mission["id"], registered_user, True)

        with caplog.at_level(logging.WARNING):
            again = await mission_service.toggle_mission_status(mission["id"], registered_user, True)

        assert again.xp_result.new_xp == 20
        assert any("current state" in r.getMessage() for r in caplog.records)

    async def test_uncomplete_pending_mission_clamps_xp(self, mission_service, registered_user):
        """Un-completing a pending mission clamps XP at zero."""
        mission = await _mission_by_type(mission_service, registered_user, "coach")

        result = await mission_service.toggle_mission_status(mission["id"], registered_user, False)

        assert result.xp_change == -15
        assert result.xp_result.new_xp == 0
        assert result.xp_result.applied_delta == 0

    async def test_foreign_mission_is_not_found(self, mission_service, progress_service, registered_user):
        """Another user's mission is reported as not found."""
        mission = await _mission_by_type(mission_service, registered_user, "explore")
        await progress_service.register_user("student-2")

        with pytest.raises(NotFoundError):
            await mission_service.toggle_mission_status(mission["id"], "student-2", True)

        assert (await progress_service.get_progress(registered_user)).xp == 0
        assert (await progress_service.get_progress("student-2")).xp == 0

    async def test_missing_mission(self, mission_service, registered_user):
        """An unknown mission id is not found."""
        with pytest.raises(NotFoundError) as exc_info:
            await mission_service.toggle_mission_status(9999, registered_user, True)

        assert exc_info.value.error_code == "MISSION_NOT_FOUND"

    async def test_completed_flag_must_be_bool(self, mission_service, registered_user):
        """The completed flag must be a real boolean."""
        with pytest.raises(ValidationError):
            await mission_service.toggle_mission_status(1, registered_user, "yes")

    async def test_failed_xp_write_rolls_back_mission(
        self, mission_service, progress_service, registered_user, mocker
    ):
        """A failed XP write leaves the mission unchanged."""
        mission = await _mission_by_type(mission_service, registered_user, "explore")
        mocker.patch.object(
            progress_service,
            "_write_progress",
            side_effect=ConcurrentModificationError("UserProgress", registered_user, 1),
        )

        with pytest.raises(PersistenceError):
            await mission_service.toggle_mission_status(mission["id"], registered_user, True)

        unchanged = await _mission_by_type(mission_service, registered_user, "explore")
        assert unchanged["status"] == "pending"
        assert unchanged["completed_on"] is None
        assert (await progress_service.get_progress(registered_user)).xp == 0

    async def test_toggle_publishes_events(self, mission_service, registered_user, recorded_events):
        """A toggle publishes the mission event before the XP events."""
        mission = await _mission_by_type(mission_service, registered_user, "explore")

        await mission_service.toggle_mission_status(mission["id"], registered_user, True)

        names = [name for name, _ in recorded_events if name != "progress.user_registered"]
        assert names == ["mission.status_changed", "progress.xp_changed"]
        status_event = recorded_events[-2][1]
        assert status_event["old_status"] == "pending"
        assert status_event["new_status"] == "completed"
        assert recorded_events[-1][1]["reason"] == "mission_completed"
        assert recorded_events[-1][1]["reference_id"] == str(mission["id"])
