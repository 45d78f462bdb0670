"""
Shared building blocks for the domain modules.
"""

from campusconnect.modules.shared.base_repository import BaseRepository
from campusconnect.modules.shared.base_service import BaseService
from campusconnect.modules.shared.exceptions import (
    CampusDomainException,
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from campusconnect.modules.shared.formulas import (
    LevelProgress,
    calculate_level_from_xp,
    calculate_level_progress,
    calculate_xp_for_level,
    clamp_xp,
    is_level_up,
)

__all__ = [
    "BaseRepository",
    "BaseService",
    "CampusDomainException",
    "InvalidOperationError",
    "NotFoundError",
    "ValidationError",
    "LevelProgress",
    "calculate_level_from_xp",
    "calculate_level_progress",
    "calculate_xp_for_level",
    "clamp_xp",
    "is_level_up",
]
