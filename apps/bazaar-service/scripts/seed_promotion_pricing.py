"""Seed the default-tier promotion fee table into an existing database."""

from __future__ import annotations

import argparse
import logging
import sys

from bazaar.db import database
from bazaar.db.repositories import promotions as repo_promotions
from bazaar.services.promotion_service import (
    ACCOUNT_TYPES,
    DEFAULT_PRICE_TABLE,
    DEFAULT_TIER,
    seed_default_promotion_pricing,
)


logger = logging.getLogger("bazaar.scripts.seed_promotion_pricing")


# Access SessionLocal dynamically so test fixtures that rebind the
# sessionmaker are respected.
SessionLocal = lambda: database.SessionLocal()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Insert missing default promotion pricing rows")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show how many rows are missing without inserting them",
    )
    return parser.parse_args(argv)


def count_missing(session) -> int:
    missing = 0
    for promotion_type, durations in DEFAULT_PRICE_TABLE.items():
        for duration_days in durations:
            for account_type in ACCOUNT_TYPES:
                row = repo_promotions.find_pricing(
                    session,
                    promotion_type=promotion_type,
                    duration_days=duration_days,
                    account_type=account_type,
                    pricing_tier=DEFAULT_TIER,
                    active_only=False,
                )
                if row is None:
                    missing += 1
    return missing


def seed(dry_run: bool) -> int:
    session = SessionLocal()
    try:
        pending = count_missing(session)
        logger.info("promotion_pricing_seed start pending=%s dry_run=%s", pending, dry_run)
        if dry_run:
            print(f"{pending} default pricing rows are missing; no changes made.")
            return 0
        if pending == 0:
            print("Default promotion pricing is already complete.")
            return 0
        created = seed_default_promotion_pricing(session)
        print(f"Inserted {created} default pricing rows.")
        return 0
    finally:
        session.close()


def main(argv: list[str] | None = None) -> int:
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = parse_args(argv)
    return seed(dry_run=args.dry_run)


if __name__ == "__main__":  # pragma: no cover - manual execution path
    sys.exit(main())
