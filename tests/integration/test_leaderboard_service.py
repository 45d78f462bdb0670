"""
Integration tests for LeaderboardService.
"""

import pytest

from campusconnect.modules.shared.exceptions import ValidationError

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


@pytest.fixture
async def ranked_users(progress_service):
    for user_id, xp in (("amy", 120), ("bob", 300), ("cat", 120), ("dan", 40), ("eve", 0)):
        await progress_service.register_user(user_id, full_name=user_id.title())
        if xp:
            await progress_service.apply_xp_delta(user_id, xp)


class TestLeaderboard:
    """Test XP ranking and badges."""

    async def test_ordering_and_badges(self, leaderboard_service, ranked_users):
        """Users rank by XP with badges for the top three."""
        board = await leaderboard_service.get_leaderboard()

        assert [e["user_id"] for e in board] == ["bob", "amy", "cat", "dan", "eve"]
        assert [e["position"] for e in board] == [1, 2, 3, 4, 5]
        assert [e["badges"] for e in board] == [3, 2, 1, 0, 0]
        assert board[0]["level"] == 4
        assert board[0]["full_name"] == "Bob"

    async def test_limit(self, leaderboard_service, ranked_users):
        """An explicit limit caps the entries."""
        board = await leaderboard_service.get_leaderboard(limit=2)

        assert [e["user_id"] for e in board] == ["bob", "amy"]

    async def test_default_limit_from_config(self, leaderboard_service, ranked_users, config_manager):
        """The default limit comes from config."""
        config_manager.set_override("progression.leaderboard.default_limit", 3)

        assert len(await leaderboard_service.get_leaderboard()) == 3

    @pytest.mark.parametrize("limit", [0, -1, 101, "ten"])
    async def test_limit_out_of_range(self, leaderboard_service, limit):
        """Limits outside the allowed range are rejected."""
        with pytest.raises(ValidationError):
            await leaderboard_service.get_leaderboard(limit=limit)

    async def test_empty(self, leaderboard_service):
        """No users means an empty leaderboard."""
        assert await leaderboard_service.get_leaderboard() == []
