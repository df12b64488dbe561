"""
Order Status Migration

Rewrites legacy status spellings ("Pending", "Out for Delivery",
"out-for-delivery", "Canceled", ...) to the canonical lowercase values.
Run from project root: python scripts/migrate_order_statuses.py [--dry-run]
"""

import argparse
import asyncio
import os
import sys
from collections import Counter

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from sqlalchemy import select

from storefront.core.config import setup_logging
from storefront.database import async_session_maker
from storefront.models import Order, OrderStatus


async def migrate(dry_run: bool) -> Counter:
    changes: Counter = Counter()
    unknown: list[tuple[int, str]] = []

    async with async_session_maker() as db:
        rows = (await db.execute(select(Order))).scalars().all()
        for order in rows:
            try:
                canonical = OrderStatus.parse(order.status).value
            except ValueError:
                unknown.append((order.id, order.status))
                continue
            if canonical != order.status:
                changes[(order.status, canonical)] += 1
                order.status = canonical

        if dry_run:
            await db.rollback()
        else:
            await db.commit()

    print("=" * 60)
    print(f"🔧 ORDER STATUS MIGRATION{' (dry run)' if dry_run else ''}")
    print("=" * 60)
    print(f"   Orders scanned: {len(rows)}")
    for (old, new), count in sorted(changes.items()):
        print(f"   {old!r} → {new!r}: {count}")
    if not changes:
        print("   ✅ All statuses already canonical")
    for order_id, status in unknown:
        print(f"   ⚠️ Order #{order_id} has unrecognized status {status!r}")
    print("=" * 60)
    return changes


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Normalize legacy order statuses")
    parser.add_argument("--dry-run", action="store_true", help="Report without writing")
    args = parser.parse_args()

    setup_logging()
    asyncio.run(migrate(args.dry_run))
