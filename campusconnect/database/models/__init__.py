"""
Database Models Package
========================

SQLAlchemy ORM models for the CampusConnect progression core.

- Schema only, no business logic
- Mapped[] syntax with mapped_column()
- Optimistic locking via `version` on UserProgress

Tables:
- user_progress, xp_events          (progress)
- missions, user_missions           (mission)
- recently_viewed_colleges, sessions (activity)
"""

from campusconnect.core.database.base import Base

from .activity import CollegeView, MentorSession
from .enums import MissionStatus, SessionStatus, XpReason
from .mission import Mission, MissionTemplate
from .progress import UserProgress, XpEvent

__all__ = [
    "Base",
    "UserProgress",
    "XpEvent",
    "MissionTemplate",
    "Mission",
    "CollegeView",
    "MentorSession",
    "MissionStatus",
    "SessionStatus",
    "XpReason",
]
