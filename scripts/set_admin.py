"""Grant or revoke admin for a user, identified by their Discord id.

Admin is never granted through sign-in; this script is the only way to set it.

    python -m scripts.set_admin 123456789012345678
    python -m scripts.set_admin 123456789012345678 --revoke
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

logger = logging.getLogger(__name__)


async def set_admin(external_id: str, is_admin: bool) -> bool:
    from guildhub.db.database import close_db, get_db, init_db
    from guildhub.db.queries import users as user_queries

    await init_db()
    try:
        db = await get_db()
        user = await user_queries.set_admin(db, external_id, is_admin)
        if user is None:
            logger.error("No user with external id %s", external_id)
            return False
        logger.info("%s is_admin=%s", user.label, user.is_admin)
        return True
    finally:
        await close_db()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("external_id", help="Discord user id")
    parser.add_argument("--revoke", action="store_true", help="remove admin instead of granting it")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    ok = asyncio.run(set_admin(args.external_id, not args.revoke))
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
