#!/usr/bin/env python
"""
Find and Report Inconsistent Denormalized Data

Checks:
1. application roots without a matching mirror under users/{id}/applications
2. mirrors whose root is gone or disagrees on status/project
3. more than one application for the same (project, applicant)
4. wishlist ids pointing at deleted projects

Usage:
    python scripts/find_inconsistencies.py            # report only
    python scripts/find_inconsistencies.py --repair   # rewrite mirrors, drop dangling ids
"""
import asyncio
import sys
from pathlib import Path

# Add backend/src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend" / "src"))

from application.services.reconciliation import ReconciliationService
from infrastructure.persistence.document_store import SQLAlchemyDocumentStore
from infrastructure.persistence.repositories import (
    DocumentApplicationRepository,
    DocumentProjectRepository,
    DocumentUserProfileRepository,
)


async def find_inconsistencies(repair: bool = False):
    """Scan the configured database and print a report"""
    store = SQLAlchemyDocumentStore.from_url()
    try:
        await store.initialize()
        service = ReconciliationService(
            store,
            DocumentProjectRepository(store),
            DocumentApplicationRepository(store),
            DocumentUserProfileRepository(store),
        )

        print("\n" + "=" * 70)
        print("DENORMALIZED DATA CONSISTENCY REPORT")
        print("=" * 70)

        report = await service.scan(repair=repair)

        if report.is_consistent:
            print("✅ No inconsistencies found!")
            return

        for kind, count in sorted(report.by_kind().items()):
            print(f"\n📊 {kind}: {count}")
            print("-" * 70)
            for issue in [i for i in report.issues if i.kind == kind][:10]:
                print(f"   {issue.identifier} {issue.details}")

        if repair:
            print(f"\n🧹 Repaired {report.repaired_count} issue(s); duplicate applications need manual review")
        else:
            print("\nℹ️  Run with --repair to rewrite mirrors and drop dangling wishlist entries")
    finally:
        await store.close()


if __name__ == "__main__":
    asyncio.run(find_inconsistencies(repair="--repair" in sys.argv[1:]))
