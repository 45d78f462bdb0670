"""
Mission Service
===============

Weekly missions and their XP rewards.

Every user gets a copy of the default mission set the first time their
missions are listed. Toggling a mission flips its status and moves the
user's XP by the mission's fixed reward in the same transaction, so the
mission row and the progress row always commit or roll back together.

State machine:
    pending --toggle(completed=True)--> completed
    completed --toggle(completed=False)--> pending

The XP change is derived from the requested state only. Toggling a mission
into the state it is already in re-applies the reward; this is logged as a
warning.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List

from campusconnect.core.database.base import as_utc, utc_now
from campusconnect.core.database.service import DatabaseService
from campusconnect.core.exceptions import ConfigurationError
from campusconnect.core.logging.logger import LogContext, get_logger
from campusconnect.core.validation.input_validator import InputValidator
from campusconnect.database.models.enums import MissionStatus, XpReason
from campusconnect.database.models.mission import Mission, MissionTemplate
from campusconnect.modules.shared.base_repository import BaseRepository
from campusconnect.modules.shared.base_service import BaseService
from campusconnect.modules.shared.constants import MAX_MISSION_TEXT_LENGTH
from campusconnect.modules.shared.exceptions import NotFoundError

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from campusconnect.core.config.manager import ConfigManager
    from campusconnect.core.event.bus import EventBus
    from campusconnect.modules.progress.service import ProgressService, XpResult


DEFAULT_MISSIONS_KEY = "progression.missions.defaults"


@dataclass(frozen=True)
class MissionToggleResult:
    mission_id: int
    xp_change: int
    xp_result: XpResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mission_id": self.mission_id,
            "xp_change": self.xp_change,
            "xp_result": self.xp_result.to_dict(),
        }


# ============================================================================
# Repositories
# ============================================================================


class MissionTemplateRepository(BaseRepository[MissionTemplate]):
    async def get_defaults(self, session: AsyncSession) -> List[MissionTemplate]:
        return await self.find_many_where(
            session,
            MissionTemplate.is_default.is_(True),
            order_by=[MissionTemplate.id],
        )


class MissionRepository(BaseRepository[Mission]):
    """User mission rows."""

    async def find_for_user(self, session: AsyncSession, user_id: str) -> List[Mission]:
        return await self.find_many_where(
            session,
            Mission.user_id == user_id,
            order_by=[Mission.id],
        )


# ============================================================================
# MissionService
# ============================================================================


class MissionService(BaseService):
    """
    Weekly mission assignment and completion.

    Dependencies
    ------------
    - ProgressService: applies the mission reward inside the mission
      transaction and owns the per-user lock

    Public Methods
    --------------
    - ensure_default_templates() -> Seed the template catalogue from config
    - get_user_missions() -> List missions, assigning defaults on first use
    - toggle_mission_status() -> Complete/uncomplete and move XP atomically
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        progress_service: ProgressService,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._progress = progress_service

        self._template_repo = MissionTemplateRepository(
            model_class=MissionTemplate,
            logger=get_logger(f"{__name__}.MissionTemplateRepository"),
        )
        self._mission_repo = MissionRepository(
            model_class=Mission,
            logger=get_logger(f"{__name__}.MissionRepository"),
        )
        self._template_lock = asyncio.Lock()

    # ========================================================================
    # Templates
    # ========================================================================

    async def ensure_default_templates(self) -> int:
        """
        Seed the default templates from config if none exist.

        Returns:
            Number of templates created (0 when already seeded)
        """
        async with self._template_lock:
            async with DatabaseService.get_transaction() as session:
                created = await self._seed_templates(session)

        if created:
            self.log_operation("ensure_default_templates", created=created)
        return created

    async def _seed_templates(self, session: AsyncSession) -> int:
        if await self._template_repo.exists(session, MissionTemplate.is_default.is_(True)):
            return 0

        templates = [
            MissionTemplate(
                mission_text=entry["mission_text"],
                mission_type=entry["mission_type"],
                xp=entry["xp"],
                is_default=True,
            )
            for entry in self._load_default_definitions()
        ]
        self._template_repo.add_many(session, templates)
        await self._template_repo.flush(session)
        return len(templates)

    def _load_default_definitions(self) -> List[Dict[str, Any]]:
        entries = self.get_config(DEFAULT_MISSIONS_KEY, required=True)
        if not isinstance(entries, list) or not entries:
            raise ConfigurationError(DEFAULT_MISSIONS_KEY, "expected a non-empty list of missions")

        definitions = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                raise ConfigurationError(DEFAULT_MISSIONS_KEY, f"entry {index} is not a mapping")

            text = entry.get("mission_text")
            mission_type = entry.get("mission_type")
            xp = entry.get("xp")

            if not isinstance(text, str) or not text.strip() or len(text) > MAX_MISSION_TEXT_LENGTH:
                raise ConfigurationError(DEFAULT_MISSIONS_KEY, f"entry {index} has invalid mission_text")
            if not isinstance(mission_type, str) or not mission_type.strip():
                raise ConfigurationError(DEFAULT_MISSIONS_KEY, f"entry {index} has invalid mission_type")
            if isinstance(xp, bool) or not isinstance(xp, int) or xp <= 0:
                raise ConfigurationError(DEFAULT_MISSIONS_KEY, f"entry {index} xp must be a positive integer")

            definitions.append(
                {"mission_text": text.strip(), "mission_type": mission_type.strip(), "xp": xp}
            )
        return definitions

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    async def get_user_missions(self, user_id: str) -> List[Dict[str, Any]]:
        """
        List a user's missions, copying the default set on first use.

        Raises:
            NotFoundError: If the user is not registered
        """
        user_id = InputValidator.validate_user_id(user_id)
        assigned = 0

        async with self._progress.user_lock(user_id):
            async with self._template_lock:
                async with DatabaseService.get_transaction() as session:
                    if not await self._progress.user_exists(session, user_id):
                        raise NotFoundError("UserProgress", user_id)

                    missions = await self._mission_repo.find_for_user(session, user_id)
                    if not missions:
                        await self._seed_templates(session)
                        templates = await self._template_repo.get_defaults(session)
                        self._mission_repo.add_many(
                            session,
                            [
                                Mission(
                                    user_id=user_id,
                                    mission_text=t.mission_text,
                                    mission_type=t.mission_type,
                                    xp=t.xp,
                                    status=MissionStatus.PENDING.value,
                                    completed_on=None,
                                )
                                for t in templates
                            ],
                        )
                        await self._mission_repo.flush(session)
                        missions = await self._mission_repo.find_for_user(session, user_id)
                        assigned = len(missions)

                    result = [self._mission_to_dict(m) for m in missions]

        if assigned:
            self.log_operation("assign_default_missions", user_id=user_id, assigned=assigned)
        return result

    async def toggle_mission_status(
        self,
        mission_id: int,
        user_id: str,
        completed: bool,
    ) -> MissionToggleResult:
        """
        Mark a mission completed or pending and move XP by its reward.

        Args:
            mission_id: Mission row id
            user_id: Owner of the mission
            completed: Target state

        Returns:
            MissionToggleResult(mission_id, xp_change, xp_result)

        Raises:
            NotFoundError: If the mission does not exist or belongs to
                another user
            PersistenceError: If storage fails; mission and XP are both
                left unchanged
        """
        mission_id = InputValidator.validate_record_id(mission_id, "mission_id")
        user_id = InputValidator.validate_user_id(user_id)
        completed = InputValidator.validate_boolean(completed, "completed")

        target = MissionStatus.COMPLETED if completed else MissionStatus.PENDING
        reason = XpReason.MISSION_COMPLETED if completed else XpReason.MISSION_UNCOMPLETED

        async with LogContext(user_id=user_id, operation="toggle_mission_status"):
            async with self._progress.user_lock(user_id):
                async with DatabaseService.get_transaction() as session:
                    mission = await self._mission_repo.find_one_where(
                        session,
                        Mission.id == mission_id,
                        for_update=True,
                    )
                    if mission is None or mission.user_id != user_id:
                        raise NotFoundError("Mission", mission_id)

                    previous = mission.status
                    if previous == target.value:
                        self.log.warning(
                            "Mission toggled into its current state; reward applied again",
                            extra={"mission_id": mission_id, "status": previous},
                        )

                    mission.status = target.value
                    mission.completed_on = utc_now() if completed else None
                    xp_change = mission.xp if completed else -mission.xp

                    xp_result = await self._progress.apply_in_session(
                        session,
                        user_id,
                        xp_change,
                        reason,
                        reference_id=str(mission_id),
                    )

            self.log_operation(
                "toggle_mission_status",
                user_id=user_id,
                mission_id=mission_id,
                old_status=previous,
                new_status=target.value,
                xp_change=xp_change,
            )

            await self.emit_event(
                "mission.status_changed",
                {
                    "user_id": user_id,
                    "mission_id": mission_id,
                    "old_status": previous,
                    "new_status": target.value,
                    "xp_change": xp_change,
                },
            )
            await self._progress.publish_xp_events(xp_result, reason, str(mission_id))

        return MissionToggleResult(
            mission_id=mission_id,
            xp_change=xp_change,
            xp_result=xp_result,
        )

    # ========================================================================
    # Helpers
    # ========================================================================

    @staticmethod
    def _mission_to_dict(mission: Mission) -> Dict[str, Any]:
        return {
            "id": mission.id,
            "user_id": mission.user_id,
            "mission_text": mission.mission_text,
            "mission_type": mission.mission_type,
            "xp": mission.xp,
            "status": mission.status,
            "completed_on": as_utc(mission.completed_on),
            "created_at": as_utc(mission.created_at),
        }
