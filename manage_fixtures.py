#!/usr/bin/env python3
"""
Catalog data management utility.

This script provides utilities to manage the catalog database:
- Load demo authors and books
- Purge every author and book
- Show catalog statistics
"""

import asyncio
import sys

from api.config import config
from api.database import MongoBackend, UnitOfWork
from api.fixtures import load_fixtures, purge
from utilities.logger import setup_logging


async def load(books: int):
    """Load demo data into the database."""
    print("\n📥 LOADING FIXTURES")
    print("=" * 80)

    backend = await MongoBackend.connect(config.mongodb_url, config.mongodb_database)
    try:
        counts = await load_fixtures(UnitOfWork(backend), books=books)
        print(f"✅ Created {counts['authors']} authors and {counts['books']} books")
    finally:
        await backend.close()


async def purge_all():
    """Delete every author and book."""
    print("\n🧹 PURGING CATALOG")
    print("=" * 80)

    backend = await MongoBackend.connect(config.mongodb_url, config.mongodb_database)
    try:
        counts = await purge(UnitOfWork(backend))
        print(f"🗑️  Removed {counts['authors']} authors and {counts['books']} books")
    finally:
        await backend.close()


async def show_statistics():
    """Show catalog statistics."""
    print("\n📊 CATALOG STATISTICS")
    print("=" * 80)

    backend = await MongoBackend.connect(config.mongodb_url, config.mongodb_database)
    try:
        uow = UnitOfWork(backend)
        book_count = await uow.books.count()
        author_count = await uow.authors.count()
        print(f"📚 Total Books: {book_count}")
        print(f"✍️  Total Authors: {author_count}")
    finally:
        await backend.close()


async def main():
    """Main function."""
    if len(sys.argv) < 2:
        print("Usage: python manage_fixtures.py [load|purge|stats] [count]")
        print()
        print("Commands:")
        print("  load     - Load demo authors and books (default 20 books)")
        print("  purge    - Delete every author and book")
        print("  stats    - Show catalog statistics")
        sys.exit(1)

    command = sys.argv[1].lower()

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug
    )

    if command == "load":
        books = 20
        if len(sys.argv) > 2:
            if not sys.argv[2].isdigit():
                print("❌ Error: count must be a positive number")
                sys.exit(1)
            books = int(sys.argv[2])
        await load(books)
    elif command == "purge":
        await purge_all()
    elif command == "stats":
        await show_statistics()
    else:
        print(f"❌ Unknown command: {command}")
        print("Available commands: load, purge, stats")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
