#!/usr/bin/env python3
"""Initialize database tables."""

import asyncio
import sys

from loguru import logger

from netflow.config.database import create_engine, init_models
from netflow.config.settings import load_settings
from netflow.utils.exceptions import ConfigurationError

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def init_database() -> None:
    """Create all database tables."""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(1)

    logger.info("Connecting to database...")
    engine = create_engine(settings.database_url)

    await init_models(engine)

    await engine.dispose()
    logger.success("Database tables created successfully!")


if __name__ == "__main__":
    asyncio.run(init_database())
