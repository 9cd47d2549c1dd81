#!/usr/bin/env python3
"""Finish Active rental contracts whose end date has passed."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import date

from equipment_rental.db.engine import build_engine, build_session_factory
from equipment_rental.services.rental_contract_service import finish_expired_contracts


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Finish expired rental contracts")
    parser.add_argument("--db-url", default=os.environ.get("EQUIPMENT_RENTAL_DB_URL", ""))
    parser.add_argument("--today", type=date.fromisoformat, default=None, help="Reference date (YYYY-MM-DD).")
    args = parser.parse_args(argv)

    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())

    db_url = (args.db_url or "").strip()
    if not db_url:
        print("EQUIPMENT_RENTAL_DB_URL is not set. Provide --db-url or export env first.")
        return 2

    session_factory = build_session_factory(build_engine(db_url))
    db = session_factory()
    try:
        finished = finish_expired_contracts(db, today=args.today)
    finally:
        db.close()
    print(f"Finished {finished} expired rental contracts.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
