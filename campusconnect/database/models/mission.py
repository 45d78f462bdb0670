"""
Mission Models
==============

- MissionTemplate (`missions`): the catalogue of mission definitions; rows
  flagged `is_default` form the set copied to every new user.
- Mission (`user_missions`): a user's own copy with its status.

Schema only. Invariant maintained by MissionService:
status == "completed" <=> completed_on is not null.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from campusconnect.core.database.base import Base, IdMixin, utc_now
from campusconnect.database.models.enums import MissionStatus


class MissionTemplate(Base, IdMixin):
    """Catalogue entry for a weekly mission."""

    __tablename__ = "missions"

    mission_text: Mapped[str] = mapped_column(String(200), nullable=False)
    mission_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        doc="Category tag: explore, mentor, videos, coach, ...",
    )
    xp: Mapped[int] = mapped_column(Integer, nullable=False, doc="Reward for completion")
    is_default: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="Copied to users who have no missions yet",
    )


class Mission(Base, IdMixin):
    """
    A mission assigned to one user.

    The reward is copied from the template at assignment time and never
    changes afterwards.
    """

    __tablename__ = "user_missions"
    __table_args__ = (
        CheckConstraint("xp > 0", name="xp_positive"),
        Index("ix_user_missions_user_status", "user_id", "status"),
    )

    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("user_progress.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    mission_text: Mapped[str] = mapped_column(String(200), nullable=False)
    mission_type: Mapped[str] = mapped_column(String(32), nullable=False)
    xp: Mapped[int] = mapped_column(Integer, nullable=False, doc="Fixed XP reward")

    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=MissionStatus.PENDING.value,
    )

    completed_on: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
