from .service import MissionService, MissionToggleResult

__all__ = ["MissionService", "MissionToggleResult"]
