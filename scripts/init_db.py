#!/usr/bin/env python3
"""
Database Initialization Script
Create the access-control tables and the partial unique index
"""

import asyncio
import sys

from gad_procurement.db import session as db_session
from gad_procurement.db.base import Base
from gad_procurement.db.session import close_db, init_db
from gad_procurement.core.logging import setup_logging, get_logger

setup_logging()
logger = get_logger(__name__)


async def main():
    """Main initialization function"""
    logger.info("Initializing database...")

    try:
        await init_db()
        # init_db only creates tables in development
        async with db_session.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database initialized successfully!")
        return 0
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        return 1
    finally:
        await close_db()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
