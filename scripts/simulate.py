"""
Rush Hour Simulation Script

Runs many storefront customers at once: each one browses the menu, builds a
cart with random customizations and checks out. Every customer has its own
session cookie, so carts never mix.
Run from project root: python scripts/simulate.py --customers 30
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import datetime
from typing import Any, Optional

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

API_BASE_URL = "http://localhost:8001"
TOTAL_CUSTOMERS = 30

FIRST_NAMES = ["Juan", "Maria", "Jose", "Ana", "Mark", "Grace", "Paolo", "Joy", "Carlo", "Bea"]
LAST_NAMES = ["Santos", "Reyes", "Cruz", "Bautista", "Garcia", "Mendoza", "Torres", "Flores"]
STREETS = ["Rizal St", "Mabini St", "Bonifacio Ave", "Luna St", "Del Pilar St"]
LANDMARKS = [None, "Near the chapel", "Blue gate", "Across the school", "Beside the sari-sari store"]


def _name(entry: Any) -> str:
    return entry if isinstance(entry, str) else entry.get("name") or entry.get("label")


def random_selection(item: dict[str, Any]) -> dict[str, Any]:
    """Pick a complete random selection for a menu item."""
    selection: dict[str, Any] = {"quantity": random.randint(1, 3), "groups": {}, "addons": []}
    variations = item.get("variations") or []

    if variations and ("groupName" in variations[0] or "options" in variations[0]):
        for group in variations:
            if group.get("required") or random.random() < 0.5:
                option = random.choice(group["options"])
                selection["groups"][group["groupName"]] = option["name"]
    elif variations:
        selection["variation"] = _name(random.choice(variations))

    if item.get("flavors"):
        selection["flavor"] = _name(random.choice(item["flavors"]))
    if item.get("dining_options"):
        selection["dining_option"] = _name(random.choice(item["dining_options"]))
    for addon in item.get("addons") or []:
        if random.random() < 0.3:
            selection["addons"].append(addon["name"])
    return selection


def random_checkout(order_types: list[dict], payment_methods: list[dict]) -> dict[str, Any]:
    order_type = random.choice(order_types)["id"]
    form = {
        "order_type": order_type,
        "payment_method": random.choice(payment_methods)["id"],
        "full_name": f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}",
        "phone": f"09{random.randint(100000000, 999999999)}",
    }
    if order_type == "dine-in":
        form["table_number"] = str(random.randint(1, 12))
    else:
        form["address"] = f"{random.randint(1, 300)} {random.choice(STREETS)}"
        form["landmark"] = random.choice(LANDMARKS)
    return form


async def run_customer(customer_num: int, menu: list[dict], order_types: list[dict],
                       payment_methods: list[dict]) -> dict[str, Any]:
    """One customer session from first cart line to submitted order."""
    start_time = time.time()
    result: dict[str, Any] = {"customer": customer_num, "success": False}

    async with httpx.AsyncClient(base_url=API_BASE_URL, timeout=30.0) as client:
        try:
            in_stock = [item for item in menu if not item["out_of_stock"]]
            expected = 0.0
            for item in random.sample(in_stock, k=min(len(in_stock), random.randint(1, 3))):
                payload = {"item_id": item["id"], **random_selection(item)}
                response = await client.post("/api/cart/lines", json=payload)
                if response.status_code != 201:
                    result["error"] = f"add {item['name']}: {response.text[:100]}"
                    return result
                expected = response.json()["total"]

            response = await client.post("/api/checkout", json=random_checkout(order_types, payment_methods))
            result["time"] = round(time.time() - start_time, 3)
            if response.status_code != 201:
                result["error"] = response.text[:100]
                return result

            data = response.json()
            result.update(
                success=True,
                order_id=data["order_id"],
                total=data["total_amount"],
                total_matches_cart=data["total_amount"] == expected,
            )
        except httpx.HTTPError as e:
            result["error"] = str(e)[:100]
            result["time"] = round(time.time() - start_time, 3)
    return result


async def run_simulation(num_customers: int = TOTAL_CUSTOMERS) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 RUSH HOUR SIMULATION")
    print("=" * 70)
    print(f"👥 Customers: {num_customers}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient(base_url=API_BASE_URL, timeout=30.0) as client:
        menu = (await client.get("/api/menu")).json()
        order_types = (await client.get("/api/order-types")).json()
        payment_methods = (await client.get("/api/payment-methods")).json()

    if not (menu and order_types and payment_methods):
        print("❌ Menu, order types or payment methods are empty. Run scripts/seed.py first.")
        return {"total": num_customers, "successful": 0, "failed": num_customers}

    start_time = time.time()
    results = await asyncio.gather(*[
        run_customer(i + 1, menu, order_types, payment_methods) for i in range(num_customers)
    ])
    total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    mismatched = [r for r in successful if not r["total_matches_cart"]]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful Orders: {len(successful)}/{num_customers}")
    print(f"❌ Failed Orders: {len(failed)}/{num_customers}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        times = [r["time"] for r in successful]
        print("\n📈 Performance Metrics:")
        print(f"   Average Checkout Flow: {round(sum(times) / len(times), 3)}s")
        print(f"   Fastest: {min(times)}s")
        print(f"   Slowest: {max(times)}s")
        print(f"   💰 Total Sales: PHP {sum(r['total'] for r in successful):,.0f}")

    if mismatched:
        print(f"\n⚠️  {len(mismatched)} order total(s) differ from the cart total!")

    if failed:
        print("\n⚠️  Failed Customer Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Customer #{f['customer']}: {f.get('error', 'Unknown error')}")

    print("=" * 70)
    return {
        "total": num_customers,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


async def check_health() -> Optional[dict]:
    async with httpx.AsyncClient(base_url=API_BASE_URL, timeout=10.0) as client:
        try:
            response = await client.get("/health")
        except httpx.HTTPError as e:
            print(f"❌ API not reachable: {e}")
            return None
    data = response.json()
    print(f"🩺 Health: {data.get('status')} (database: {data.get('database')})")
    return data


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rush Hour Simulation Script")
    parser.add_argument("--customers", type=int, default=TOTAL_CUSTOMERS, help="Number of customers")
    parser.add_argument("--base-url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()
    API_BASE_URL = args.base_url

    if asyncio.run(check_health()) is None:
        sys.exit(1)
    asyncio.run(run_simulation(args.customers))
