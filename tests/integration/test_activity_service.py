"""
Integration tests for ActivityService (college views, mentor sessions).
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from campusconnect.core.database.service import DatabaseService
from campusconnect.database.models import CollegeView
from campusconnect.modules.shared.exceptions import (
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]

TOMORROW = datetime.now(timezone.utc) + timedelta(days=1)


class TestCollegeViews:
    """Test college view rewards and history."""

    async def test_view_awards_five_xp(self, activity_service, registered_user):
        """Viewing a college awards 5 XP."""
        result = await activity_service.view_college(registered_user, "mit")

        assert result.applied_delta == 5
        assert result.new_xp == 5

    async def test_recently_viewed_is_newest_first_and_limited(self, activity_service, registered_user):
        """Recent views are newest first and capped."""
        for college in ("c1", "c2", "c3", "c4", "c5", "c6", "c7"):
            await activity_service.view_college(registered_user, college)

        recent = await activity_service.get_recently_viewed(registered_user)

        assert [v["college_id"] for v in recent] == ["c7", "c6", "c5", "c4", "c3"]
        assert len(await activity_service.get_recently_viewed(registered_user, limit=2)) == 2

    async def test_unregistered_user_records_nothing(self, activity_service, database):
        """Unknown users get NotFoundError and no view row."""
        with pytest.raises(NotFoundError):
            await activity_service.view_college("ghost", "mit")

        async with DatabaseService.get_session() as session:
            count = (await session.execute(select(func.count()).select_from(CollegeView))).scalar_one()
        assert count == 0

    async def test_view_publishes_events(self, activity_service, registered_user, recorded_events):
        """A view publishes the activity event before the XP event."""
        await activity_service.view_college(registered_user, "harvard")

        names = [name for name, _ in recorded_events if name != "progress.user_registered"]
        assert names == ["activity.college_viewed", "progress.xp_changed"]


class TestMentorSessions:
    """Test mentor session booking and cancellation."""

    async def test_booking_awards_fifteen_xp(self, activity_service, registered_user):
        """Booking a session awards 15 XP."""
        booking = await activity_service.book_session(registered_user, "mentor-7", TOMORROW)

        assert booking["status"] == "confirmed"
        assert booking["mentor_id"] == "mentor-7"
        assert booking["xp_result"]["applied_delta"] == 15

    async def test_cancel_keeps_booking_xp(self, activity_service, progress_service, registered_user, set_xp):
        """Cancelling does not revoke the booking reward."""
        await set_xp(registered_user, 40)
        booking = await activity_service.book_session(registered_user, "mentor-7", TOMORROW)

        cancelled = await activity_service.cancel_session(booking["id"], registered_user)

        assert cancelled["status"] == "cancelled"
        assert (await progress_service.get_progress(registered_user)).xp == 55

    async def test_cancel_twice(self, activity_service, registered_user):
        """A cancelled session cannot be cancelled again."""
        booking = await activity_service.book_session(registered_user, "mentor-7", TOMORROW)
        await activity_service.cancel_session(booking["id"], registered_user)

        with pytest.raises(InvalidOperationError):
            await activity_service.cancel_session(booking["id"], registered_user)

    async def test_cancel_foreign_session(self, activity_service, progress_service, registered_user):
        """Another user's session is reported as not found."""
        booking = await activity_service.book_session(registered_user, "mentor-7", TOMORROW)
        await progress_service.register_user("student-2")

        with pytest.raises(NotFoundError):
            await activity_service.cancel_session(booking["id"], "student-2")

    async def test_sessions_ordered_by_date(self, activity_service, registered_user):
        """Sessions are listed by scheduled date."""
        later = await activity_service.book_session(registered_user, "m-a", TOMORROW + timedelta(days=3))
        sooner = await activity_service.book_session(registered_user, "m-b", TOMORROW)

        sessions = await activity_service.get_user_sessions(registered_user)

        assert [s["id"] for s in sessions] == [sooner["id"], later["id"]]

    async def test_iso_string_date_accepted(self, activity_service, registered_user):
        """ISO-8601 strings are accepted as dates."""
        booking = await activity_service.book_session(registered_user, "m-a", "2030-01-15T16:00:00Z")

        assert booking["scheduled_date"].year == 2030

    async def test_offset_dates_keep_their_instant(self, activity_service, registered_user):
        """Offset dates are stored, ordered and returned as UTC instants."""
        await activity_service.book_session(registered_user, "m-a", "2030-01-15T16:00:00+05:30")
        await activity_service.book_session(registered_user, "m-b", "2030-01-15T12:00:00Z")

        sessions = await activity_service.get_user_sessions(registered_user)

        assert [s["mentor_id"] for s in sessions] == ["m-a", "m-b"]
        assert sessions[0]["scheduled_date"] == datetime(2030, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert sessions[1]["scheduled_date"] == datetime(2030, 1, 15, 12, 0, tzinfo=timezone.utc)

    async def test_bad_date_rejected(self, activity_service, progress_service, registered_user):
        """A malformed date awards nothing."""
        with pytest.raises(ValidationError):
            await activity_service.book_session(registered_user, "m-a", "soon")

        assert (await progress_service.get_progress(registered_user)).xp == 0

    async def test_book_and_cancel_events(self, activity_service, registered_user, recorded_events):
        """Booking and cancelling publish their events in order."""
        booking = await activity_service.book_session(registered_user, "mentor-7", TOMORROW)
        await activity_service.cancel_session(booking["id"], registered_user)

        names = [name for name, _ in recorded_events if name != "progress.user_registered"]
        assert names == [
            "activity.session_booked",
            "progress.xp_changed",
            "activity.session_cancelled",
        ]
