"""
Database setup script for ServiceHub.

Creates (or recreates) the schema and can print a development access
token for exercising the API by hand.

Usage (from project root directory):
  python -m servicehub.db.setup_db
  python -m servicehub.db.setup_db --reset
  python -m servicehub.db.setup_db --token-for USER_ID
"""

import argparse
import logging
import sys

from servicehub.core.config import settings
from servicehub.core.security import create_access_token
from servicehub.db.session import init_db

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Set up the ServiceHub database")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop all tables before creating them",
    )
    parser.add_argument(
        "--token-for",
        metavar="USER_ID",
        help="Print an access token for USER_ID after setup",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Create the database schema."""
    args = parse_args(argv)

    if args.reset and settings.PRODUCTION:
        logger.error("Refusing to reset the database in production")
        return 1

    logger.info(f"Setting up database at {settings.DATABASE_URL}")
    init_db(reset=args.reset)

    if args.token_for:
        print(create_access_token(args.token_for))
    return 0


if __name__ == "__main__":
    sys.exit(main())
