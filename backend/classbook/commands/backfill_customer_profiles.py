#!/usr/bin/env python
# backend/classbook/commands/backfill_customer_profiles.py
"""
Create customer profiles for users who hold reservations but have none.

Profiles are normally upserted whenever a signed-in user touches their
reservations. Users who booked before that existed, or who never came
back, are filled in here with empty contact details.

Usage:
    python -m classbook.commands.backfill_customer_profiles            # Create missing profiles
    python -m classbook.commands.backfill_customer_profiles --dry-run  # Only report them
"""

import argparse
from contextlib import AbstractContextManager
import logging
import sys
from typing import Any, Callable, Dict, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ServiceException
from ..database import get_db_session
from ..services.customer_profile_service import CustomerProfileService

logger = logging.getLogger(__name__)


class BackfillCustomerProfilesCommand:
    """Backfill command handler."""

    def __init__(
        self,
        session_factory: Optional[Callable[[], AbstractContextManager[Session]]] = None,
    ) -> None:
        self.session_factory = session_factory or get_db_session

    def run(self, dry_run: bool = False) -> Dict[str, Any]:
        """
        Find and (unless dry_run) create the missing profiles.

        Returns:
            dict: missing user ids and how many profiles were created
        """
        with self.session_factory() as db:
            service = CustomerProfileService(db)
            missing = service.find_users_missing_profiles()
            logger.info(f"Found {len(missing)} reservation holders without a customer profile")

            if dry_run or not missing:
                return {"missing": missing, "created": 0, "dry_run": dry_run}

            created = service.backfill_missing_profiles()
            logger.info(f"Created {created} customer profiles")
            return {"missing": missing, "created": created, "dry_run": dry_run}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the backfill command."""
    logging.basicConfig(
        level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    parser = argparse.ArgumentParser(
        description="Backfill customer profiles for reservation holders",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List users missing a profile without creating anything",
    )
    args = parser.parse_args(argv)

    try:
        result = BackfillCustomerProfilesCommand().run(dry_run=args.dry_run)
    except ServiceException as e:
        logger.error(f"Backfill failed: {e.message}")
        return 1

    if args.dry_run:
        print(f"{len(result['missing'])} users are missing a customer profile")
        for user_id in result["missing"]:
            print(f"  {user_id}")
    else:
        print(f"Created {result['created']} customer profiles")
    return 0


if __name__ == "__main__":
    sys.exit(main())
