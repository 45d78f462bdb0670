"""
Leaderboard Service
===================

Read-only ranking of users by cumulative XP.

Ordering is XP descending with ties broken by user id, so positions are
stable between calls. The top three entries carry badges (3, 2, 1); everyone
else has none.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from campusconnect.core.database.service import DatabaseService
from campusconnect.core.logging.logger import get_logger
from campusconnect.core.validation.input_validator import InputValidator
from campusconnect.database.models.progress import UserProgress
from campusconnect.modules.shared.base_repository import BaseRepository
from campusconnect.modules.shared.base_service import BaseService
from campusconnect.modules.shared.constants import (
    DEFAULT_LEADERBOARD_LIMIT,
    LEADERBOARD_TOP_BADGES,
    MAX_LEADERBOARD_LIMIT,
)

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from campusconnect.core.config.manager import ConfigManager
    from campusconnect.core.event.bus import EventBus


class LeaderboardRepository(BaseRepository[UserProgress]):
    async def top_by_xp(self, session: AsyncSession, limit: int) -> List[UserProgress]:
        return await self.find_many_where(
            session,
            order_by=[UserProgress.xp.desc(), UserProgress.user_id.asc()],
            limit=limit,
        )


class LeaderboardService(BaseService):
    """
    XP leaderboard.

    Public Methods
    --------------
    - get_leaderboard() -> Ranked entries with position and badges
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._repo = LeaderboardRepository(
            model_class=UserProgress,
            logger=get_logger(f"{__name__}.LeaderboardRepository"),
        )

    async def get_leaderboard(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Top users by XP.

        Args:
            limit: Number of entries, 1..max (default from
                `progression.leaderboard.default_limit`)

        Raises:
            ValidationError: If limit is out of range
        """
        max_limit = self.get_int_config(
            "progression.leaderboard.max_limit", MAX_LEADERBOARD_LIMIT, minimum=1
        )
        default_limit = self.get_int_config(
            "progression.leaderboard.default_limit", DEFAULT_LEADERBOARD_LIMIT, minimum=1
        )
        top_badges = self.get_int_config(
            "progression.leaderboard.top_badges", LEADERBOARD_TOP_BADGES, minimum=0
        )
        limit = InputValidator.validate_limit(
            limit, default=min(default_limit, max_limit), max_value=max_limit
        )

        async with DatabaseService.get_session() as session:
            rows = await self._repo.top_by_xp(session, limit)

        return [
            {
                "position": index + 1,
                "user_id": row.user_id,
                "full_name": row.full_name,
                "xp": row.xp,
                "level": row.level,
                "badges": max(0, top_badges - index),
            }
            for index, row in enumerate(rows)
        ]
