"""
Core infrastructure layer for the CampusConnect progression core.

Re-exports the infra primitives services use most: configuration, the
database service, logging and infrastructure exceptions. Feature modules
import their own domain types from `campusconnect.modules`.
"""

from __future__ import annotations

from campusconnect.core.config import Config, ConfigManager
from campusconnect.core.database import DatabaseService
from campusconnect.core.database.bootstrap import (
    initialize_database_subsystem,
    shutdown_database_subsystem,
)
from campusconnect.core.exceptions import (
    CampusInfrastructureException,
    ConcurrentModificationError,
    ConfigurationError,
    ErrorSeverity,
    PersistenceError,
)
from campusconnect.core.logging import LogContext, get_logger, setup_logging

__all__ = [
    "Config",
    "ConfigManager",
    "DatabaseService",
    "initialize_database_subsystem",
    "shutdown_database_subsystem",
    "CampusInfrastructureException",
    "ConcurrentModificationError",
    "ConfigurationError",
    "ErrorSeverity",
    "PersistenceError",
    "LogContext",
    "get_logger",
    "setup_logging",
]
