"""
Unit tests for the progression formulas.

Level buckets are 100 XP wide: level = xp // 100 + 1.
"""

import pytest

from campusconnect.modules.shared.formulas import (
    LevelProgress,
    calculate_level_from_xp,
    calculate_level_progress,
    calculate_xp_for_level,
    clamp_xp,
    is_level_up,
)

pytestmark = pytest.mark.unit


class TestLevelFromXp:
    """Test the level formula."""

    @pytest.mark.parametrize(
        "xp, level",
        [(0, 1), (1, 1), (99, 1), (100, 2), (199, 2), (200, 3), (250, 3), (1000, 11)],
    )
    def test_bucket_boundaries(self, xp, level):
        """Each 100 XP bucket maps to one level."""
        assert calculate_level_from_xp(xp) == level

    def test_negative_xp_is_level_one(self):
        """Negative input is clamped before the level is derived."""
        assert calculate_level_from_xp(-500) == 1

    def test_custom_bucket_size(self):
        """The bucket size can be overridden."""
        assert calculate_level_from_xp(50, xp_per_level=25) == 3

    def test_rejects_non_positive_bucket(self):
        """A zero or negative bucket size is rejected."""
        with pytest.raises(ValueError):
            calculate_level_from_xp(10, xp_per_level=0)

    def test_level_formula_holds_across_range(self):
        """Level equals xp // 100 + 1 over a wide range."""
        for xp in range(0, 1001, 7):
            level = calculate_level_from_xp(xp)
            assert calculate_xp_for_level(level) <= xp < calculate_xp_for_level(level + 1)


class TestClampAndLevelUp:
    """Test clamping and level-up detection."""

    def test_clamp_xp(self):
        """XP never drops below zero."""
        assert clamp_xp(-30) == 0
        assert clamp_xp(0) == 0
        assert clamp_xp(42) == 42

    def test_level_up_only_on_strict_increase(self):
        """Only a strict level increase counts as a level-up."""
        assert is_level_up(1, 2) is True
        assert is_level_up(2, 2) is False
        assert is_level_up(3, 2) is False

    def test_xp_for_level(self):
        """Level thresholds are multiples of 100."""
        assert calculate_xp_for_level(1) == 0
        assert calculate_xp_for_level(3) == 200
        assert calculate_xp_for_level(0) == 0


class TestLevelProgress:
    """Test in-level progress figures."""

    def test_mid_level(self):
        """Progress inside a level is reported against the bucket."""
        assert calculate_level_progress(250) == LevelProgress(
            xp_into_level=50, xp_to_next_level=50, percent=50.0
        )

    def test_exact_boundary_starts_new_bucket(self):
        """Landing on a boundary starts the next level at zero."""
        progress = calculate_level_progress(100)

        assert progress.xp_into_level == 0
        assert progress.xp_to_next_level == 100
        assert progress.percent == 0.0

    def test_percent_is_rounded(self):
        """Progress percent is rounded."""
        assert calculate_level_progress(33, xp_per_level=30).percent == 10.0
        assert calculate_level_progress(1, xp_per_level=3).percent == 33.33
