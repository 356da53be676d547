"""Create (or recreate) the document store tables without Alembic.

Handy for local SQLite databases; production schemas go through
`scripts/migrate.py`.
"""
from __future__ import annotations

import argparse
import logging

from message_retraction.core.settings import settings
from message_retraction.db.session import create_tables, drop_tables, init_engine

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--database-url",
        default=None,
        help="Override DATABASE_URL for this run",
    )
    parser.add_argument(
        "--drop",
        action="store_true",
        help="Drop existing tables before creating them",
    )
    args = parser.parse_args(argv)

    engine = init_engine(args.database_url)
    if args.drop:
        logger.warning("Dropping document store tables on %s", engine.url)
        drop_tables(engine)
    create_tables(engine)
    print(f"Document store ready on {args.database_url or settings.effective_database_url}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
