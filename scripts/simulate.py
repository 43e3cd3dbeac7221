"""
Rush-Hour Simulation Script

Fires concurrent order placements at a running server to exercise
tracking-id allocation under load, then checks every tracking id is
unique and resolvable.
Run from project root: python scripts/simulate.py --orders 100
"""

import argparse
import asyncio
import os
import random
import sys
import time
from collections import Counter
from datetime import datetime
from typing import Any

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import httpx

from orderdesk.client import ApiError, OrderDeskClient

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

API_BASE_URL = "http://localhost:5000"
TOTAL_ORDERS = 50

FIRST_NAMES = ["Aarav", "Diya", "Kabir", "Meera", "Rohan", "Anaya", "Ishaan", "Sara", "Vivaan", "Zoya"]
STREETS = ["MG Road", "Park Street", "Linking Road", "Brigade Road", "Church Street"]
MENU_ITEMS = [
    {"name": "Coffee", "price": 100},
    {"name": "Masala Dosa", "price": 120},
    {"name": "Paneer Tikka", "price": 240},
    {"name": "Veg Biryani", "price": 220},
    {"name": "Gulab Jamun", "price": 80},
    {"name": "Lime Soda", "price": 60},
]


def generate_items() -> list[dict[str, Any]]:
    """Pick 1-4 random menu lines."""
    items = []
    for item in random.sample(MENU_ITEMS, random.randint(1, 4)):
        items.append({**item, "qty": random.randint(1, 3)})
    return items


def generate_payload() -> dict[str, Any]:
    """Random dine-in or home-delivery order with a matching total."""
    items = generate_items()
    payload: dict[str, Any] = {
        "whatsappNumber": f"9{random.randint(100000000, 999999999)}",
        "items": items,
        "total": sum(i["price"] * i["qty"] for i in items),
    }
    if random.random() < 0.5:
        payload["orderType"] = "dine-in"
        payload["tableNumber"] = f"T{random.randint(1, 30)}"
    else:
        payload["orderType"] = "home-delivery"
        payload["customerName"] = random.choice(FIRST_NAMES)
        payload["customerPhone"] = payload["whatsappNumber"]
        payload["deliveryAddress"] = f"{random.randint(1, 300)} {random.choice(STREETS)}"
    return payload


async def place_one(client: OrderDeskClient, order_num: int) -> dict[str, Any]:
    start_time = time.time()
    try:
        order = await client.place_order(generate_payload())
        return {
            "order_num": order_num,
            "success": True,
            "tracking_id": order["trackingId"],
            "total": order["total"],
            "time": round(time.time() - start_time, 3),
        }
    except (ApiError, httpx.HTTPError) as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


async def run_simulation(num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 RUSH-HOUR SIMULATION")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()
    async with OrderDeskClient(API_BASE_URL, timeout=30.0) as client:
        results = await asyncio.gather(*(place_one(client, i + 1) for i in range(num_orders)))

        successful = [r for r in results if r["success"]]
        failed = [r for r in results if not r["success"]]
        total_time = round(time.time() - start_time, 2)

        print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
        print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
        print(f"⏱️  Total Time: {total_time}s")

        counts = Counter(r["tracking_id"] for r in successful)
        duplicates = [tid for tid, n in counts.items() if n > 1]
        if duplicates:
            print(f"\n⚠️ Duplicate tracking ids: {duplicates}")
        else:
            print("✅ All tracking ids unique")

        bad_format = [r["tracking_id"] for r in successful
                      if not (len(r["tracking_id"]) == 4 and r["tracking_id"].isdigit())]
        if bad_format:
            print(f"⚠️ Malformed tracking ids: {bad_format}")

        # Every tracking id must resolve back to its order
        unresolved = 0
        for r in successful:
            try:
                await client.track(r["tracking_id"])
            except ApiError:
                unresolved += 1
        print(f"🔍 Unresolvable tracking ids: {unresolved}")

        if successful:
            avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
            print(f"\n📈 Average Response: {avg_time}s")
            print(f"💰 Total Revenue: ₹{sum(r['total'] for r in successful):.2f}")

        if failed:
            print("\n⚠️  Failed Order Details (showing first 5):")
            for f in failed[:5]:
                print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print("Next: python scripts/verify.py to check the Excel ledger")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "duplicates": duplicates,
        "total_time": total_time,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rush-hour order simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    API_BASE_URL = args.url
    summary = asyncio.run(run_simulation(args.orders))
    sys.exit(1 if summary["duplicates"] or summary["failed"] else 0)
