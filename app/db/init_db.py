# app/db/init_db.py
from __future__ import annotations

import argparse
import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from app.db.base import Base
from app.db.session import engine as default_engine

# Import all models so metadata is complete
from app.models import billing  # noqa: F401

logger = logging.getLogger(__name__)


def init_db(eng: Engine | None = None) -> None:
    eng = eng or default_engine
    Base.metadata.create_all(bind=eng)
    logger.info("Ledger tables ready: %s", sorted(inspect(eng).get_table_names()))


def main() -> None:
    parser = argparse.ArgumentParser(description="Create billing ledger tables")
    parser.add_argument("--drop", action="store_true", help="drop all tables first")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    if args.drop:
        Base.metadata.drop_all(bind=default_engine)
        logger.warning("Dropped all ledger tables")
    init_db()


if __name__ == "__main__":
    main()
