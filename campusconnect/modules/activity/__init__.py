from .service import ActivityService

__all__ = ["ActivityService"]
