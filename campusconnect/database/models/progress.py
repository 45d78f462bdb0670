"""
User Progress Models
====================

Schema for XP/level state and its audit trail.

- UserProgress: one row per user; `level` is always derived from `xp`
  (`xp // 100 + 1`) by the progress service, never written independently.
- XpEvent: append-only log of every applied XP delta.

All behavior and progression rules live in the service layer.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from campusconnect.core.database.base import Base, IdMixin, TimestampMixin, utc_now


class UserProgress(Base, TimestampMixin):
    """
    XP and level for a single portal user.

    Keyed by the auth provider's user id. Created at registration with
    xp=0, level=1 and never deleted.
    """

    __tablename__ = "user_progress"
    __table_args__ = (
        CheckConstraint("xp >= 0", name="xp_non_negative"),
        CheckConstraint("level >= 1", name="level_positive"),
        Index("ix_user_progress_xp_user", "xp", "user_id"),
    )

    user_id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        doc="Opaque auth-provider user id",
    )

    full_name: Mapped[Optional[str]] = mapped_column(
        String(120),
        nullable=True,
        doc="Display name shown on the leaderboard",
    )

    xp: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        doc="Cumulative experience points (never negative)",
    )

    level: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        doc="Derived level: xp // 100 + 1",
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        doc="Optimistic locking version, bumped on every XP write",
    )

    last_level_up: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Timestamp of most recent level increase",
    )


class XpEvent(Base, IdMixin):
    """
    One applied XP delta.

    `delta` is what the caller asked for; `applied_delta` is what actually
    changed after clamping at zero.
    """

    __tablename__ = "xp_events"
    __table_args__ = (
        Index("ix_xp_events_user_created", "user_id", "created_at"),
    )

    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("user_progress.user_id", ondelete="CASCADE"),
        nullable=False,
    )

    delta: Mapped[int] = mapped_column(BigInteger, nullable=False, doc="Requested delta")
    applied_delta: Mapped[int] = mapped_column(BigInteger, nullable=False, doc="Delta after clamping")

    reason: Mapped[str] = mapped_column(String(32), nullable=False, doc="XpReason value")
    reference_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        doc="Mission, college or session id that triggered the change",
    )

    old_xp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    new_xp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    old_level: Mapped[int] = mapped_column(Integer, nullable=False)
    new_level: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
