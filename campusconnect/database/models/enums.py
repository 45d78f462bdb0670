"""
Database Model Enums
====================

Categorical values stored as plain strings in the progression tables.
Services compare and assign through these enums; columns hold `.value`.
"""

from __future__ import annotations

import enum


class MissionStatus(str, enum.Enum):
    """Weekly mission state. COMPLETED rows always carry `completed_on`."""

    PENDING = "pending"
    COMPLETED = "completed"


class SessionStatus(str, enum.Enum):
    """Mentor session booking state."""

    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class XpReason(str, enum.Enum):
    """Why an XP delta was applied; recorded on every XpEvent row."""

    MISSION_COMPLETED = "mission_completed"
    MISSION_UNCOMPLETED = "mission_uncompleted"
    COLLEGE_VIEWED = "college_viewed"
    SESSION_BOOKED = "session_booked"
    MANUAL_ADJUSTMENT = "manual_adjustment"
