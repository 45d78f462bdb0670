"""
Activity Models
===============

Portal actions that earn flat-rate XP.

- CollegeView (`recently_viewed_colleges`): one row per college page view.
- MentorSession (`sessions`): a booked mentor session.

College and mentor catalogues live outside this service; only their ids
are stored here.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from campusconnect.core.database.base import Base, IdMixin, utc_now
from campusconnect.database.models.enums import SessionStatus


class CollegeView(Base, IdMixin):
    __tablename__ = "recently_viewed_colleges"
    __table_args__ = (
        Index("ix_recently_viewed_user_viewed_at", "user_id", "viewed_at"),
    )

    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("user_progress.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    college_id: Mapped[str] = mapped_column(String(64), nullable=False)
    viewed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )


class MentorSession(Base, IdMixin):
    """
    Booked mentor session.

    Bookings start as "confirmed"; cancelling flips the status and keeps
    the row.
    """

    __tablename__ = "sessions"
    __table_args__ = (
        Index("ix_sessions_user_scheduled", "user_id", "scheduled_date"),
    )

    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("user_progress.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    mentor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    scheduled_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=SessionStatus.CONFIRMED.value,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
