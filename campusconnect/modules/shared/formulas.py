"""
Progression Formulas

Purpose
-------
Pure calculation functions for the leveling rules: XP clamping, level
derivation, level-up detection and in-level progress for progress bars.

Design Notes
------------
All formulas:
- Accept parameters explicitly (bucket size defaults to XP_PER_LEVEL)
- Have no side effects and no database or config access
- Are deterministic

Usage
-----
    from campusconnect.modules.shared.formulas import calculate_level_from_xp

    level = calculate_level_from_xp(250)  # 3
"""

from __future__ import annotations

from dataclasses import dataclass

from .constants import MIN_LEVEL, MIN_XP, XP_PER_LEVEL


def clamp_xp(xp: int) -> int:
    """
    XP never goes below zero.

    Example:
        >>> clamp_xp(-30)
        0
        >>> clamp_xp(42)
        42
    """
    return max(MIN_XP, xp)


def calculate_level_from_xp(xp: int, xp_per_level: int = XP_PER_LEVEL) -> int:
    """
    Level for a cumulative XP total: ``floor(xp / xp_per_level) + 1``.

    Negative input is clamped first, so the result is always >= 1.

    Example:
        >>> calculate_level_from_xp(0)
        1
        >>> calculate_level_from_xp(99)
        1
        >>> calculate_level_from_xp(100)
        2
        >>> calculate_level_from_xp(250)
        3
    """
    if xp_per_level <= 0:
        raise ValueError("xp_per_level must be positive")
    return clamp_xp(xp) // xp_per_level + MIN_LEVEL


def calculate_xp_for_level(level: int, xp_per_level: int = XP_PER_LEVEL) -> int:
    """
    Minimum cumulative XP at which ``level`` is reached.

    Example:
        >>> calculate_xp_for_level(1)
        0
        >>> calculate_xp_for_level(3)
        200
    """
    return max(0, level - MIN_LEVEL) * xp_per_level


def is_level_up(old_level: int, new_level: int) -> bool:
    """Only strict increases count; a level decrease is never flagged."""
    return new_level > old_level


@dataclass(frozen=True)
class LevelProgress:
    xp_into_level: int
    xp_to_next_level: int
    percent: float


def calculate_level_progress(xp: int, xp_per_level: int = XP_PER_LEVEL) -> LevelProgress:
    """
    Position inside the current level bucket.

    Example:
        >>> calculate_level_progress(250)
        LevelProgress(xp_into_level=50, xp_to_next_level=50, percent=50.0)
    """
    xp = clamp_xp(xp)
    into = xp % xp_per_level
    return LevelProgress(
        xp_into_level=into,
        xp_to_next_level=xp_per_level - into,
        percent=round(into / xp_per_level * 100, 2),
    )
