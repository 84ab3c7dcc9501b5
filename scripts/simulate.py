"""
Order Rush Simulation Script

Fires concurrent order traffic at a running API to exercise the read cache,
the single-batch writes and the analytics recompute after every mutation.
Run from project root: python scripts/simulate.py

Version: 1.0.0
"""

import argparse
import asyncio
import os
import random
import sys
import time
from datetime import datetime
from typing import Any

import httpx

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 50

CUSTOMERS = [
    ("Asha Rao", "+91 98765 43210"),
    ("Vikram Shah", "9123456780"),
    ("Meera Nair", "+91-99887-66554"),
    ("Walk-in Customer", None),
    ("Rohan Gupta", "9000012345"),
]
STAFF = ["Ravi", "Priya", "Sunil", None]
MENU_ITEMS = [
    {"id": "1", "name": "Paneer Butter Masala", "price": 240},
    {"id": "2", "name": "Chicken Biryani", "price": 280},
    {"id": "3", "name": "Masala Dosa", "price": 120},
    {"id": "4", "name": "Gulab Jamun", "price": 80},
    {"id": "5", "name": "Sweet Lassi", "price": 70},
    {"id": "6", "name": "Garlic Naan", "price": 50},
]
NEXT_STATUS = {"pending": "preparing", "preparing": "ready", "ready": "delivered"}


def generate_order_payload() -> dict[str, Any]:
    name, phone = random.choice(CUSTOMERS)
    items = []
    for menu_item in random.sample(MENU_ITEMS, random.randint(1, 4)):
        items.append({**menu_item, "quantity": random.randint(1, 3)})

    payload = {
        "items": items,
        "orderType": random.choice(["dine-in", "delivery", "takeaway"]),
        "customerName": name,
    }
    if phone:
        payload["customerPhone"] = phone
    if payload["orderType"] == "dine-in":
        payload["tableNumber"] = str(random.randint(1, 12))
    staff = random.choice(STAFF)
    if staff:
        payload["staffMember"] = staff
    return payload


async def send_order(client: httpx.AsyncClient, order_num: int) -> dict[str, Any]:
    """Create one order and walk it a random number of steps down the flow."""
    start_time = time.time()
    try:
        response = await client.post(f"{API_BASE_URL}/api/orders", json=generate_order_payload())
        if response.status_code != 200:
            return {"order_num": order_num, "success": False, "error": response.text[:100],
                    "time": round(time.time() - start_time, 3)}

        data = response.json()
        order = data["order"]
        warnings = 1 if data.get("analyticsWarning") else 0

        status = order["status"]
        for _ in range(random.randint(0, 3)):
            status = NEXT_STATUS[status]
            update = await client.put(
                f"{API_BASE_URL}/api/orders/{order['id']}/status", json={"status": status}
            )
            if update.status_code != 200:
                break
            if update.json().get("analyticsWarning"):
                warnings += 1

        # Menu reads should be served from the cache after the first one
        await client.get(f"{API_BASE_URL}/api/menu")

        return {
            "order_num": order_num,
            "success": True,
            "order_id": order["id"],
            "total": order["total"],
            "status": status,
            "warnings": warnings,
            "time": round(time.time() - start_time, 3),
        }
    except httpx.HTTPError as e:
        return {"order_num": order_num, "success": False, "error": str(e)[:100],
                "time": round(time.time() - start_time, 3)}


async def run_simulation(num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 ORDER RUSH SIMULATION")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()
    async with httpx.AsyncClient(timeout=30.0) as client:
        results = await asyncio.gather(*[send_order(client, i + 1) for i in range(num_orders)])
        analytics = (await client.get(f"{API_BASE_URL}/api/analytics")).json()
        cache = (await client.get(f"{API_BASE_URL}/api/cache")).json()
    total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        revenue = sum(r["total"] for r in successful)
        print(f"\n📈 Performance Metrics:")
        print(f"   Average Flow Time: {avg_time}s")
        print(f"   💰 Revenue Placed: ₹{revenue:.2f}")
        print(f"   ⚠️ Analytics Warnings: {sum(r['warnings'] for r in successful)}")

    print(f"\n📊 Analytics Snapshot:")
    print(f"   Orders: {analytics['fullRecord']['totalOrders']}")
    print(f"   Revenue: ₹{analytics['revenueAnalytics']['totalRevenue']}")
    print(f"   Cache entries: {len(cache.get('entries', {}))}")

    if failed:
        print(f"\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print("🔍 NEXT: python scripts/verify.py")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
    }


async def preflight() -> bool:
    async with httpx.AsyncClient(timeout=10.0) as client:
        try:
            response = await client.get(f"{API_BASE_URL}/health")
        except httpx.HTTPError as e:
            print(f"❌ API not reachable: {e}")
            return False
        data = response.json()
        print(f"✅ Status: {data.get('status')}")
        print(f"   Local store: {data.get('local_store')}")
        print(f"   Remote store: {data.get('remote_store')}")
        return response.status_code == 200


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Order Rush Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--skip-checks", action="store_true", help="Skip the health pre-flight")
    args = parser.parse_args()

    if not args.skip_checks and not asyncio.run(preflight()):
        print("\n❌ Pre-flight failed. Start the API first: uvicorn restohub.main:app --port 8001")
        sys.exit(1)

    asyncio.run(run_simulation(args.orders))
