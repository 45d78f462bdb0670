"""
Activity Service
================

Portal actions that earn flat-rate XP:

- viewing a college page (+5 XP, `progression.rewards.college_viewed`)
- booking a mentor session (+15 XP, `progression.rewards.session_booked`)

The activity row and the XP award are written in one transaction. Cancelling
a session only changes its status; the booking reward is kept.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from campusconnect.core.database.base import as_utc
from campusconnect.core.database.service import DatabaseService
from campusconnect.core.logging.logger import LogContext, get_logger
from campusconnect.core.validation.input_validator import InputValidator
from campusconnect.database.models.activity import CollegeView, MentorSession
from campusconnect.database.models.enums import SessionStatus, XpReason
from campusconnect.modules.shared.base_repository import BaseRepository
from campusconnect.modules.shared.base_service import BaseService
from campusconnect.modules.shared.constants import DEFAULT_RECENTLY_VIEWED_LIMIT
from campusconnect.modules.shared.exceptions import InvalidOperationError, NotFoundError

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from campusconnect.core.config.manager import ConfigManager
    from campusconnect.core.event.bus import EventBus
    from campusconnect.modules.progress.service import ProgressService, XpResult


class CollegeViewRepository(BaseRepository[CollegeView]):
    async def recent_for_user(
        self, session: AsyncSession, user_id: str, limit: int
    ) -> List[CollegeView]:
        return await self.find_many_where(
            session,
            CollegeView.user_id == user_id,
            order_by=[CollegeView.viewed_at.desc(), CollegeView.id.desc()],
            limit=limit,
        )


class MentorSessionRepository(BaseRepository[MentorSession]):
    async def find_for_user(self, session: AsyncSession, user_id: str) -> List[MentorSession]:
        return await self.find_many_where(
            session,
            MentorSession.user_id == user_id,
            order_by=[MentorSession.scheduled_date, MentorSession.id],
        )


class ActivityService(BaseService):
    """
    College views and mentor session bookings.

    Dependencies
    ------------
    - ProgressService: flat-rate rewards, per-user lock

    Public Methods
    --------------
    - view_college() -> Record a view, award XP
    - get_recently_viewed() -> Newest-first views
    - book_session() -> Book a confirmed session, award XP
    - cancel_session() -> Cancel without revoking XP
    - get_user_sessions() -> Sessions by scheduled date
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        progress_service: ProgressService,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._progress = progress_service

        self._view_repo = CollegeViewRepository(
            model_class=CollegeView,
            logger=get_logger(f"{__name__}.CollegeViewRepository"),
        )
        self._session_repo = MentorSessionRepository(
            model_class=MentorSession,
            logger=get_logger(f"{__name__}.MentorSessionRepository"),
        )

    # ========================================================================
    # College views
    # ========================================================================

    async def view_college(self, user_id: str, college_id: str) -> XpResult:
        """
        Record a college page view and award the view reward.

        Raises:
            NotFoundError: If the user is not registered
        """
        user_id = InputValidator.validate_user_id(user_id)
        college_id = InputValidator.validate_identifier(college_id, "college_id")
        reward = self._progress.get_fixed_reward(XpReason.COLLEGE_VIEWED)

        async with LogContext(user_id=user_id, operation="view_college"):
            async with self._progress.user_lock(user_id):
                async with DatabaseService.get_transaction() as session:
                    await self._require_user(session, user_id)

                    self._view_repo.add(
                        session,
                        CollegeView(user_id=user_id, college_id=college_id),
                    )
                    xp_result = await self._progress.apply_in_session(
                        session,
                        user_id,
                        reward,
                        XpReason.COLLEGE_VIEWED,
                        reference_id=college_id,
                    )

            self.log_operation("view_college", user_id=user_id, college_id=college_id)
            await self.emit_event(
                "activity.college_viewed",
                {"user_id": user_id, "college_id": college_id, "xp_awarded": xp_result.applied_delta},
            )
            await self._progress.publish_xp_events(xp_result, XpReason.COLLEGE_VIEWED, college_id)

        return xp_result

    async def get_recently_viewed(
        self, user_id: str, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        user_id = InputValidator.validate_user_id(user_id)
        default_limit = self.get_int_config(
            "progression.recently_viewed_limit", DEFAULT_RECENTLY_VIEWED_LIMIT, minimum=1
        )
        limit = InputValidator.validate_limit(limit, default=default_limit, max_value=50)

        async with DatabaseService.get_session() as session:
            await self._require_user(session, user_id)
            views = await self._view_repo.recent_for_user(session, user_id, limit)
            return [
                {"id": v.id, "college_id": v.college_id, "viewed_at": as_utc(v.viewed_at)}
                for v in views
            ]

    # ========================================================================
    # Mentor sessions
    # ========================================================================

    async def book_session(
        self,
        user_id: str,
        mentor_id: str,
        scheduled_date: datetime | str,
    ) -> Dict[str, Any]:
        """
        Book a mentor session and award the booking reward.

        Returns:
            Booking dict with the nested `xp_result`

        Raises:
            NotFoundError: If the user is not registered
            ValidationError: If mentor_id or scheduled_date is malformed
        """
        user_id = InputValidator.validate_user_id(user_id)
        mentor_id = InputValidator.validate_identifier(mentor_id, "mentor_id")
        scheduled_date = InputValidator.validate_datetime(scheduled_date, "scheduled_date")
        reward = self._progress.get_fixed_reward(XpReason.SESSION_BOOKED)

        async with LogContext(user_id=user_id, operation="book_session"):
            async with self._progress.user_lock(user_id):
                async with DatabaseService.get_transaction() as session:
                    await self._require_user(session, user_id)

                    booking = self._session_repo.add(
                        session,
                        MentorSession(
                            user_id=user_id,
                            mentor_id=mentor_id,
                            scheduled_date=scheduled_date,
                            status=SessionStatus.CONFIRMED.value,
                        ),
                    )
                    await self._session_repo.flush(session)
                    booking_id = booking.id

                    xp_result = await self._progress.apply_in_session(
                        session,
                        user_id,
                        reward,
                        XpReason.SESSION_BOOKED,
                        reference_id=str(booking_id),
                    )
                    result = self._session_to_dict(booking)

            self.log_operation(
                "book_session", user_id=user_id, session_id=booking_id, mentor_id=mentor_id
            )
            await self.emit_event(
                "activity.session_booked",
                {
                    "user_id": user_id,
                    "session_id": booking_id,
                    "mentor_id": mentor_id,
                    "scheduled_date": scheduled_date.isoformat(),
                },
            )
            await self._progress.publish_xp_events(xp_result, XpReason.SESSION_BOOKED, str(booking_id))

        result["xp_result"] = xp_result.to_dict()
        return result

    async def cancel_session(self, session_id: int, user_id: str) -> Dict[str, Any]:
        """
        Cancel a booked session. XP awarded at booking is not revoked.

        Raises:
            NotFoundError: If the session does not exist or belongs to
                another user
            InvalidOperationError: If the session is already cancelled
        """
        session_id = InputValidator.validate_record_id(session_id, "session_id")
        user_id = InputValidator.validate_user_id(user_id)

        async with DatabaseService.get_transaction() as session:
            booking = await self._session_repo.find_one_where(
                session,
                MentorSession.id == session_id,
                for_update=True,
            )
            if booking is None or booking.user_id != user_id:
                raise NotFoundError("MentorSession", session_id)

            if booking.status == SessionStatus.CANCELLED.value:
                raise InvalidOperationError("cancel_session", "Session is already cancelled")

            booking.status = SessionStatus.CANCELLED.value
            result = self._session_to_dict(booking)

        self.log_operation("cancel_session", user_id=user_id, session_id=session_id)
        await self.emit_event(
            "activity.session_cancelled",
            {"user_id": user_id, "session_id": session_id},
        )
        return result

    async def get_user_sessions(self, user_id: str) -> List[Dict[str, Any]]:
        user_id = InputValidator.validate_user_id(user_id)

        async with DatabaseService.get_session() as session:
            await self._require_user(session, user_id)
            bookings = await self._session_repo.find_for_user(session, user_id)
            return [self._session_to_dict(b) for b in bookings]

    # ========================================================================
    # Helpers
    # ========================================================================

    async def _require_user(self, session: AsyncSession, user_id: str) -> None:
        if not await self._progress.user_exists(session, user_id):
            raise NotFoundError("UserProgress", user_id)

    @staticmethod
    def _session_to_dict(booking: MentorSession) -> Dict[str, Any]:
        return {
            "id": booking.id,
            "user_id": booking.user_id,
            "mentor_id": booking.mentor_id,
            "scheduled_date": as_utc(booking.scheduled_date),
            "status": booking.status,
            "created_at": as_utc(booking.created_at),
        }
