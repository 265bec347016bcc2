#!/usr/bin/env python3
"""
Access Expiry Sweep
Mark every ACTIVE grant whose validity window has ended as EXPIRED

Intended for a periodic job (cron). The acting user recorded in the
history entries is passed with --actor.
"""

import argparse
import asyncio
import sys
import uuid

from gad_procurement.core.logging import setup_logging, get_logger
from gad_procurement.db import session as db_session
from gad_procurement.db.session import close_db, init_db
from gad_procurement.services.permissions import build_permission_service
from gad_procurement.services.permissions.models import ActorContext

setup_logging()
logger = get_logger(__name__)


async def expire_accesses(actor_id: uuid.UUID) -> int:
    await init_db()
    try:
        async with db_session.async_session_maker() as session:
            service = build_permission_service(session)
            expired = await service.expire_stale_accesses(
                ActorContext(user_id=actor_id, user_agent="expire_access.py")
            )
        for record in expired:
            logger.info(
                f"Expired access {record.id} (user {record.user_id}, "
                f"department {record.department_id})"
            )
        return len(expired)
    finally:
        await close_db()


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--actor", required=True, type=uuid.UUID, help="User ID recorded as changed_by")
    args = parser.parse_args()

    try:
        count = asyncio.run(expire_accesses(args.actor))
    except Exception as e:
        logger.error(f"Expiry sweep failed: {e}")
        return 1

    logger.info(f"Expiry sweep complete: {count} grants expired")
    return 0


if __name__ == "__main__":
    sys.exit(main())
