"""Create or reset the configured database schema without Alembic.

Handy for local SQLite development; production deployments should run
``aura_talk.scripts.migrate`` instead.
"""
from __future__ import annotations

import argparse
import logging

from aura_talk.core.settings import settings
from aura_talk.db.session import create_tables, drop_tables

logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description="Create the Aura Talk tables")
    parser.add_argument(
        "--drop-tables",
        action="store_true",
        help="Drop every table before recreating it.",
    )
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level.upper())
    if args.drop_tables:
        drop_tables()
        logger.info("Dropped all tables")
    create_tables()
    logger.info("Tables ready at %s", settings.effective_database_url)


if __name__ == "__main__":
    main()
