"""
Database Subsystem Bootstrap

Purpose
-------
Single entry point for bringing the database subsystem up and down:
engine initialization, optional health verification with a timeout, and
schema creation for the progression tables.

Responsibilities
----------------
- Initialize DatabaseService (engine, session factory, pool)
- Optionally verify readiness via a health check bounded by
  `Config.DATABASE_BOOTSTRAP_HEALTH_TIMEOUT_SECONDS`
- Create missing tables from the ORM metadata (`create_schema`)
- Graceful shutdown with resource cleanup

Non-Responsibilities
--------------------
- Migrations of existing tables
- Seeding domain data (see MissionService.ensure_default_templates)

Usage Example
-------------
>>> await initialize_database_subsystem(verify_health=True, create_tables=True)
>>> ...
>>> await shutdown_database_subsystem()
"""

from __future__ import annotations

import asyncio
from typing import Optional

from campusconnect.core.config.config import Config
from campusconnect.core.database.base import Base
from campusconnect.core.database.service import (
    DatabaseInitializationError,
    DatabaseService,
)
from campusconnect.core.logging.logger import get_logger

logger = get_logger(__name__)


async def create_schema() -> None:
    """Create all progression tables that do not exist yet."""
    # Registers every model on Base.metadata
    import campusconnect.database.models  # noqa: F401

    engine = DatabaseService.get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info(
        "Database schema ensured",
        extra={"tables": sorted(Base.metadata.tables.keys())},
    )


async def drop_schema() -> None:
    """Drop all progression tables. Test and local tooling only."""
    import campusconnect.database.models  # noqa: F401

    engine = DatabaseService.get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    logger.warning("Database schema dropped")


async def initialize_database_subsystem(
    *,
    verify_health: bool = True,
    create_tables: bool = False,
    database_url: Optional[str] = None,
) -> None:
    """
    Initialize the database subsystem.

    Raises
    ------
    DatabaseInitializationError
        If initialization fails or the health check fails or times out.
    """
    logger.info("Initializing database subsystem")

    await DatabaseService.initialize(database_url=database_url)

    if verify_health:
        health_timeout = float(Config.DATABASE_BOOTSTRAP_HEALTH_TIMEOUT_SECONDS)
        try:
            healthy = await asyncio.wait_for(
                DatabaseService.health_check(),
                timeout=health_timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error(
                "Database health check timed out during bootstrap",
                extra={"timeout_seconds": health_timeout},
            )
            raise DatabaseInitializationError(
                f"Database health check timed out after {health_timeout}s"
            ) from exc

        if not healthy:
            logger.error("Database health check failed during bootstrap")
            raise DatabaseInitializationError(
                "Database is unreachable or unhealthy after initialization"
            )
    else:
        logger.info("Database health check skipped")

    if create_tables:
        await create_schema()

    logger.info("Database subsystem initialized")


async def shutdown_database_subsystem() -> None:
    """Dispose the engine; errors are logged, not raised."""
    logger.info("Shutting down database subsystem")

    try:
        await DatabaseService.shutdown()
    except Exception as exc:
        logger.error(
            "Error during database subsystem shutdown",
            extra={"error": str(exc), "error_type": type(exc).__name__},
            exc_info=True,
        )
        return

    logger.info("Database subsystem shutdown complete")
