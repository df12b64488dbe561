"""
Ledger Verification Script

Checks the Excel order ledger against the orders table: every order should
appear exactly once with the same total.
Run from project root: python scripts/verify.py
"""

import asyncio
import os
import sys
from datetime import datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

import pandas as pd
from sqlalchemy import select

from storefront.database import async_session_maker
from storefront.models import Order
from storefront.services.ledger import OrderLedger


async def load_order_totals() -> dict[int, float]:
    async with async_session_maker() as db:
        rows = (await db.execute(select(Order.id, Order.total_amount))).all()
    return {order_id: total for order_id, total in rows}


def verify_ledger() -> bool:
    ledger = OrderLedger()

    print("=" * 60)
    print("🔍 LEDGER VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {ledger.path}")
    print("=" * 60)

    if not ledger.path.exists():
        print("\n❌ Ledger file not found!")
        print("   Enable LEDGER_EXPORT_ENABLED, start a worker and place some orders.")
        return False

    df = pd.read_excel(ledger.path, engine="openpyxl")
    print(f"\n📊 Rows: {len(df)}")

    missing = [col for col in OrderLedger.COLUMNS if col not in df.columns]
    if missing:
        print(f"⚠️ Missing Columns: {missing}")
        return False
    print("✅ All ledger columns present")

    ok = True
    duplicates = int(df["order_id"].duplicated().sum())
    if duplicates:
        print(f"⚠️ {duplicates} duplicate order IDs")
        ok = False
    else:
        print("✅ No duplicate order IDs")

    totals = asyncio.run(load_order_totals())
    ledger_totals = dict(zip(df["order_id"].astype(int), df["total_amount"].astype(float)))

    not_exported = sorted(set(totals) - set(ledger_totals))
    if not_exported:
        print(f"⚠️ {len(not_exported)} order(s) not in the ledger: {not_exported[:10]}")
    mismatched = [oid for oid, total in ledger_totals.items() if oid in totals and abs(totals[oid] - total) > 0.005]
    if mismatched:
        print(f"❌ Totals differ for orders: {mismatched[:10]}")
        ok = False
    else:
        print("✅ Ledger totals match the orders table")

    print(f"\n💰 Ledger total: PHP {df['total_amount'].sum():,.2f}")
    print("\n📋 RECENT ROWS:")
    print("-" * 60)
    print(df[["order_id", "customer_name", "total_amount", "order_status"]].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "❌ VERIFICATION FOUND PROBLEMS")
    print("=" * 60)
    return ok


if __name__ == "__main__":
    sys.exit(0 if verify_ledger() else 1)
