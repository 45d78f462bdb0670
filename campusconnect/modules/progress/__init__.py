"""XP/Leveling engine."""

from .service import ProgressService, ProgressSnapshot, XpResult

__all__ = ["ProgressService", "ProgressSnapshot", "XpResult"]
