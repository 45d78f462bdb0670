"""
Progress Service - XP/Leveling Engine
=====================================

Purpose
-------
Single authority for changing a user's XP. Every XP-affecting action in the
portal (mission toggles, college views, session bookings, manual
adjustments) ends in `apply_xp_delta` here, which keeps the stored level
consistent with XP and reports level-ups.

Rules
-----
- new_xp = max(0, xp + delta)
- new_level = new_xp // 100 + 1
- leveled_up only when the level strictly increases; a level drop is stored
  but never flagged
- xp and level are written together in one statement

Concurrency
-----------
Per-user read-modify-write is serialized three ways:
1. an in-process `asyncio.Lock` per user (`user_lock`)
2. `SELECT ... FOR UPDATE` on the progress row
3. a version-guarded `UPDATE ... WHERE version = :read_version`; zero rows
   matched raises `ConcurrentModificationError` and the transaction rolls back

Composition
-----------
Other services that must change XP atomically with their own rows hold
`user_lock(user_id)`, open a transaction, call `apply_in_session()` and
publish with `publish_xp_events()` after the transaction commits.
"""

from __future__ import annotations

import asyncio
import weakref
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, AsyncIterator, Dict, List, Optional

from sqlalchemy import update

from campusconnect.core.database.base import as_utc, utc_now
from campusconnect.core.database.service import DatabaseService
from campusconnect.core.exceptions import ConcurrentModificationError
from campusconnect.core.logging.logger import LogContext, get_logger
from campusconnect.core.validation.input_validator import InputValidator
from campusconnect.database.models.enums import XpReason
from campusconnect.database.models.progress import UserProgress, XpEvent
from campusconnect.modules.shared.base_repository import BaseRepository
from campusconnect.modules.shared.base_service import BaseService
from campusconnect.modules.shared.constants import (
    DEFAULT_COLLEGE_VIEW_XP,
    DEFAULT_SESSION_BOOKING_XP,
    DEFAULT_XP_HISTORY_LIMIT,
    MAX_REFERENCE_ID_LENGTH,
)
from campusconnect.modules.shared.exceptions import NotFoundError, ValidationError
from campusconnect.modules.shared.formulas import (
    calculate_level_from_xp,
    calculate_level_progress,
    clamp_xp,
    is_level_up,
)

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from campusconnect.core.config.manager import ConfigManager
    from campusconnect.core.event.bus import EventBus


# Flat-rate rewards: reason -> (config key, fallback)
_FIXED_REWARDS = {
    XpReason.COLLEGE_VIEWED: ("progression.rewards.college_viewed", DEFAULT_COLLEGE_VIEW_XP),
    XpReason.SESSION_BOOKED: ("progression.rewards.session_booked", DEFAULT_SESSION_BOOKING_XP),
}


# ============================================================================
# Result types
# ============================================================================


@dataclass(frozen=True)
class XpResult:
    """Outcome of one applied XP delta."""

    user_id: str
    old_xp: int
    new_xp: int
    old_level: int
    new_level: int
    leveled_up: bool
    applied_delta: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ProgressSnapshot:
    user_id: str
    full_name: Optional[str]
    xp: int
    level: int
    xp_into_level: int
    xp_to_next_level: int
    level_progress_percent: float
    last_level_up: Optional[datetime]

    @classmethod
    def from_model(cls, progress: UserProgress) -> "ProgressSnapshot":
        bar = calculate_level_progress(progress.xp)
        return cls(
            user_id=progress.user_id,
            full_name=progress.full_name,
            xp=progress.xp,
            level=progress.level,
            xp_into_level=bar.xp_into_level,
            xp_to_next_level=bar.xp_to_next_level,
            level_progress_percent=bar.percent,
            last_level_up=as_utc(progress.last_level_up),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ============================================================================
# Repositories
# ============================================================================


class UserProgressRepository(BaseRepository[UserProgress]):
    """Repository for UserProgress."""

    async def get_for_update(self, session: AsyncSession, user_id: str) -> Optional[UserProgress]:
        return await self.get(session, user_id, for_update=True)


class XpEventRepository(BaseRepository[XpEvent]):
    async def history_for_user(
        self, session: AsyncSession, user_id: str, limit: int
    ) -> List[XpEvent]:
        return await self.find_many_where(
            session,
            XpEvent.user_id == user_id,
            order_by=[XpEvent.created_at.desc(), XpEvent.id.desc()],
            limit=limit,
        )


# ============================================================================
# ProgressService
# ============================================================================


class ProgressService(BaseService):
    """
    XP/Leveling engine.

    Public Methods
    --------------
    - register_user() -> Create a progress row at xp=0, level=1 (idempotent)
    - get_progress() -> Current XP, level and in-level progress
    - apply_xp_delta() -> Apply a signed delta and report level-up
    - award_fixed_xp() -> Apply a configured flat-rate reward
    - get_xp_history() -> Newest-first XP audit rows
    - user_lock() -> Per-user serialization guard for composing services
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)

        self._progress_repo = UserProgressRepository(
            model_class=UserProgress,
            logger=get_logger(f"{__name__}.UserProgressRepository"),
        )
        self._xp_event_repo = XpEventRepository(
            model_class=XpEvent,
            logger=get_logger(f"{__name__}.XpEventRepository"),
        )
        self._user_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    # ========================================================================
    # Serialization guard
    # ========================================================================

    @asynccontextmanager
    async def user_lock(self, user_id: str) -> AsyncIterator[None]:
        """
        Hold the in-process lock for one user's progression state.

        Not re-entrant: code already holding it must call `apply_in_session`
        rather than `apply_xp_delta`.
        """
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._user_locks[user_id] = lock

        async with lock:
            yield

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def user_exists(self, session: AsyncSession, user_id: str) -> bool:
        """Whether a progress row exists, inside the caller's session."""
        return await self._progress_repo.exists(session, UserProgress.user_id == user_id)

    async def get_progress(self, user_id: str) -> ProgressSnapshot:
        """
        Read a user's XP and level.

        Raises:
            NotFoundError: If the user has no progress row
        """
        user_id = InputValidator.validate_user_id(user_id)

        async with DatabaseService.get_session() as session:
            progress = await self._progress_repo.get(session, user_id)
            if progress is None:
                raise NotFoundError("UserProgress", user_id)
            return ProgressSnapshot.from_model(progress)

    async def get_xp_history(
        self, user_id: str, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Newest-first XP audit rows for a user (default `progression.xp_history_limit`)."""
        user_id = InputValidator.validate_user_id(user_id)
        default_limit = self.get_int_config(
            "progression.xp_history_limit", DEFAULT_XP_HISTORY_LIMIT, minimum=1
        )
        limit = InputValidator.validate_limit(limit, default=default_limit, max_value=500)

        async with DatabaseService.get_session() as session:
            if not await self.user_exists(session, user_id):
                raise NotFoundError("UserProgress", user_id)

            events = await self._xp_event_repo.history_for_user(session, user_id, limit)
            return [
                {
                    "id": e.id,
                    "delta": e.delta,
                    "applied_delta": e.applied_delta,
                    "reason": e.reason,
                    "reference_id": e.reference_id,
                    "old_xp": e.old_xp,
                    "new_xp": e.new_xp,
                    "old_level": e.old_level,
                    "new_level": e.new_level,
                    "created_at": as_utc(e.created_at),
                }
                for e in events
            ]

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def register_user(
        self, user_id: str, full_name: Optional[str] = None
    ) -> ProgressSnapshot:
        """
        Create the progress row for a newly registered user.

        Idempotent: an existing row is returned unchanged.
        """
        user_id = InputValidator.validate_user_id(user_id)
        full_name = InputValidator.validate_full_name(full_name)

        async with self.user_lock(user_id):
            async with DatabaseService.get_transaction() as session:
                existing = await self._progress_repo.get(session, user_id)
                if existing is not None:
                    self.log.debug(
                        "User already registered",
                        extra={"user_id": user_id},
                    )
                    return ProgressSnapshot.from_model(existing)

                progress = self._progress_repo.add(
                    session,
                    UserProgress(
                        user_id=user_id,
                        full_name=full_name,
                        xp=0,
                        level=1,
                        version=1,
                        last_level_up=None,
                    ),
                )
                await self._progress_repo.flush(session)
                snapshot = ProgressSnapshot.from_model(progress)

        self.log_operation("register_user", user_id=user_id)
        await self.emit_event("progress.user_registered", {"user_id": user_id})
        return snapshot

    async def apply_xp_delta(
        self,
        user_id: str,
        delta: int,
        reason: XpReason = XpReason.MANUAL_ADJUSTMENT,
        reference_id: Optional[str] = None,
    ) -> XpResult:
        """
        Apply a signed XP change and recompute the level.

        Args:
            user_id: Auth-provider user id
            delta: Positive to award, negative to revoke
            reason: Why the change happened (recorded in the XP log)
            reference_id: Mission/college/session id behind the change

        Returns:
            XpResult with old/new xp and level and the leveled_up flag

        Raises:
            ValidationError: If delta is not an integer
            NotFoundError: If the user has no progress row
            PersistenceError: If storage fails or a concurrent write wins;
                nothing is changed in that case

        Example:
            >>> result = await progress_service.apply_xp_delta("u-1", 15)
            >>> result.new_xp, result.new_level, result.leveled_up
            (105, 2, True)
        """
        user_id = InputValidator.validate_user_id(user_id)
        delta = InputValidator.validate_xp_delta(delta)
        reason = self._validate_reason(reason)
        reference_id = self._validate_reference_id(reference_id)

        async with LogContext(user_id=user_id, operation="apply_xp_delta"):
            async with self.user_lock(user_id):
                async with DatabaseService.get_transaction() as session:
                    result = await self.apply_in_session(
                        session, user_id, delta, reason, reference_id
                    )

            await self.publish_xp_events(result, reason, reference_id)
        return result

    async def award_fixed_xp(
        self,
        user_id: str,
        reason: XpReason,
        reference_id: Optional[str] = None,
    ) -> XpResult:
        """
        Apply a configured flat-rate reward (college view, session booking).

        Raises:
            ValidationError: If the reason has no flat rate
        """
        amount = self.get_fixed_reward(reason)
        return await self.apply_xp_delta(user_id, amount, reason, reference_id)

    def get_fixed_reward(self, reason: XpReason) -> int:
        """Configured XP for a flat-rate reason."""
        reason = self._validate_reason(reason)
        if reason not in _FIXED_REWARDS:
            raise ValidationError(
                "reason", f"'{reason.value}' has no fixed XP reward"
            )
        key, fallback = _FIXED_REWARDS[reason]
        return self.get_int_config(key, fallback, minimum=0)

    # ========================================================================
    # Composition API (caller holds user_lock and the transaction)
    # ========================================================================

    async def apply_in_session(
        self,
        session: AsyncSession,
        user_id: str,
        delta: int,
        reason: XpReason = XpReason.MANUAL_ADJUSTMENT,
        reference_id: Optional[str] = None,
    ) -> XpResult:
        """
        Apply an XP delta inside the caller's transaction.

        The caller must hold `user_lock(user_id)`, and should publish the
        result with `publish_xp_events()` once its transaction commits.
        """
        progress = await self._progress_repo.get_for_update(session, user_id)
        if progress is None:
            raise NotFoundError("UserProgress", user_id)

        old_xp = progress.xp
        old_level = progress.level
        read_version = progress.version

        new_xp = clamp_xp(old_xp + delta)
        new_level = calculate_level_from_xp(new_xp)
        leveled_up = is_level_up(old_level, new_level)

        await self._write_progress(
            session,
            user_id=user_id,
            read_version=read_version,
            new_xp=new_xp,
            new_level=new_level,
            leveled_up=leveled_up,
        )
        # The identity-map copy is stale after the Core UPDATE
        session.expire(progress)

        result = XpResult(
            user_id=user_id,
            old_xp=old_xp,
            new_xp=new_xp,
            old_level=old_level,
            new_level=new_level,
            leveled_up=leveled_up,
            applied_delta=new_xp - old_xp,
        )

        self._xp_event_repo.add(
            session,
            XpEvent(
                user_id=user_id,
                delta=delta,
                applied_delta=result.applied_delta,
                reason=reason.value,
                reference_id=reference_id,
                old_xp=old_xp,
                new_xp=new_xp,
                old_level=old_level,
                new_level=new_level,
            ),
        )

        if delta < 0 and result.applied_delta != delta:
            self.log.info(
                "XP revocation clamped at zero",
                extra={"user_id": user_id, "delta": delta, "applied_delta": result.applied_delta},
            )

        return result

    async def _write_progress(
        self,
        session: AsyncSession,
        *,
        user_id: str,
        read_version: int,
        new_xp: int,
        new_level: int,
        leveled_up: bool,
    ) -> None:
        """Version-guarded write of xp and level together."""
        now = utc_now()
        values: Dict[str, Any] = {
            "xp": new_xp,
            "level": new_level,
            "version": read_version + 1,
            "updated_at": now,
        }
        if leveled_up:
            values["last_level_up"] = now

        stmt = (
            update(UserProgress)
            .where(
                UserProgress.user_id == user_id,
                UserProgress.version == read_version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)

        if result.rowcount != 1:
            self.log.warning(
                "Progress write lost a concurrent update",
                extra={"user_id": user_id, "expected_version": read_version},
            )
            raise ConcurrentModificationError("UserProgress", user_id, read_version)

    async def publish_xp_events(
        self,
        result: XpResult,
        reason: XpReason,
        reference_id: Optional[str] = None,
    ) -> None:
        """Publish progress.xp_changed (and progress.leveled_up) after commit."""
        self.log_operation(
            "apply_xp_delta",
            user_id=result.user_id,
            reason=reason.value,
            applied_delta=result.applied_delta,
            old_xp=result.old_xp,
            new_xp=result.new_xp,
            new_level=result.new_level,
            leveled_up=result.leveled_up,
        )

        await self.emit_event(
            "progress.xp_changed",
            {**result.to_dict(), "reason": reason.value, "reference_id": reference_id},
        )

        if result.leveled_up:
            self.log.info(
                "User leveled up",
                extra={
                    "user_id": result.user_id,
                    "old_level": result.old_level,
                    "new_level": result.new_level,
                },
            )
            await self.emit_event(
                "progress.leveled_up",
                {
                    "user_id": result.user_id,
                    "old_level": result.old_level,
                    "new_level": result.new_level,
                    "new_xp": result.new_xp,
                },
            )

    # ========================================================================
    # Helpers
    # ========================================================================

    @staticmethod
    def _validate_reason(reason: Any) -> XpReason:
        try:
            return XpReason(reason)
        except ValueError:
            raise ValidationError(
                "reason",
                f"Must be one of: {', '.join(r.value for r in XpReason)}",
            ) from None

    @staticmethod
    def _validate_reference_id(reference_id: Any) -> Optional[str]:
        if reference_id is None:
            return None
        return InputValidator.validate_identifier(
            reference_id, "reference_id", MAX_REFERENCE_ID_LENGTH
        )
