#!/usr/bin/env python
"""
Close Expired Projects

One-off run of the deadline sweep, for cron or when the API's background
sweeper is disabled. Closes every open project whose lastDate is before
today (or before the given date).

Usage:
    python scripts/close_expired_projects.py
    python scripts/close_expired_projects.py 2025-03-01
"""
import asyncio
import sys
from datetime import date
from pathlib import Path

# Add backend/src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend" / "src"))

from application.services.deadline_sweeper import DeadlineSweeper
from infrastructure.persistence.document_store import SQLAlchemyDocumentStore
from infrastructure.persistence.repositories import DocumentProjectRepository


async def close_expired_projects(today: date = None):
    """Run one sweep against the configured database"""
    store = SQLAlchemyDocumentStore.from_url()
    try:
        await store.initialize()
        sweeper = DeadlineSweeper(DocumentProjectRepository(store))

        print(f"🔄 Sweeping projects (today={today or date.today()})...")
        result = await sweeper.auto_close_expired_projects(today=today)
        print(f"   Scanned: {result.scanned_count}")
        print(f"   ✅ Closed: {result.updated_count}")
    finally:
        await store.close()


if __name__ == "__main__":
    as_of = None
    if len(sys.argv) > 1:
        try:
            as_of = date.fromisoformat(sys.argv[1])
        except ValueError:
            print(f"❌ Invalid date (expected YYYY-MM-DD): {sys.argv[1]}")
            sys.exit(1)

    asyncio.run(close_expired_projects(as_of))
