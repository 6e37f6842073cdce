#!/usr/bin/env python3
"""
Initialize the Library Lending database.

This script:
1. Creates all database tables
2. Optionally loads sample members, books and reservations
3. Verifies the inventory is consistent

Usage:
    python scripts/init_database.py [--drop-existing] [--sample-data] [--database-url URL]
"""

import argparse
import logging
import sys

from sqlalchemy import inspect

from library_lending.catalog import CatalogService
from library_lending.database import (
    BookCreateSchema,
    DatabaseManager,
    MemberCreateSchema,
    MemberRepository,
    get_db_manager,
)
from library_lending.identity import MemberDirectory
from library_lending.models import Role
from library_lending.policy import LendingPolicy
from library_lending.reservations import ReservationService

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

EXPECTED_TABLES = {"books", "members", "reservations"}


def main():
    parser = argparse.ArgumentParser(description="Initialize the Library Lending database")
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before creating new ones",
    )
    parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Load sample data after creating tables",
    )
    parser.add_argument(
        "--database-url",
        help="Override default database URL",
    )
    args = parser.parse_args()

    db_manager = get_db_manager(args.database_url)

    if not db_manager.verify_connection():
        logger.error("Failed to connect to database")
        sys.exit(1)

    try:
        db_manager.init_database(drop_existing=args.drop_existing)

        tables = set(inspect(db_manager.engine).get_table_names())
        logger.info("Tables: %s", ", ".join(sorted(tables)))
        missing_tables = EXPECTED_TABLES - tables
        if missing_tables:
            logger.error("Missing expected tables: %s", missing_tables)
            sys.exit(1)

        if args.sample_data:
            load_sample_data(db_manager)

        problems = CatalogService(db_manager).verify_inventory()
        if problems:
            logger.error("Inventory has %d discrepancies", len(problems))
            sys.exit(1)

        logger.info("Database initialization complete")
    except Exception:
        logger.exception("Database initialization failed")
        sys.exit(1)
    finally:
        db_manager.close()


def load_sample_data(db_manager: DatabaseManager) -> None:
    """
    Load sample data for trying the MCP server.

    Reservations are made through the service so copy counts match.
    """
    with db_manager.session_scope() as session:
        members = MemberRepository(session)
        alice = members.create(MemberCreateSchema(email="alice@example.org", name="Alice Reader"))
        bob = members.create(MemberCreateSchema(email="bob@example.org", name="Bob Borrower"))
        members.create(
            MemberCreateSchema(email="mallory@example.org", name="Mallory", is_blacklisted=True)
        )
        members.create(
            MemberCreateSchema(
                email="librarian@example.org", name="Head Librarian", role=Role.LIBRARIAN
            )
        )

    catalog = CatalogService(db_manager)
    gatsby = catalog.add_book(
        BookCreateSchema(title="The Great Gatsby", author="F. Scott Fitzgerald", total_copies=3)
    )
    mockingbird = catalog.add_book(
        BookCreateSchema(title="To Kill a Mockingbird", author="Harper Lee", total_copies=2)
    )
    catalog.add_book(BookCreateSchema(title="1984", author="George Orwell", total_copies=1))

    service = ReservationService(
        db_manager, MemberDirectory(db_manager), LendingPolicy.from_config()
    )
    service.reserve(alice.id, gatsby.id, 14)
    service.reserve(alice.id, mockingbird.id, 7)
    service.reserve(bob.id, gatsby.id, 21)

    logger.info("Loaded 4 members, 3 books and 3 reservations")


if __name__ == "__main__":
    main()
