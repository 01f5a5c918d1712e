"""
Order Burst Simulation Script

Fires many concurrent order placements at a running API and checks that
every accepted order received a distinct display order number.
Run from project root: python scripts/simulate.py --customer <user-id> --restaurant <id> --item <menu-item-id>

Version: 1.0.0
"""

import asyncio
import sys
import random
import time
import argparse
from collections import Counter
from datetime import datetime
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 50

STREETS = ["Avenue Kasa-Vubu", "Boulevard du 30 Juin", "Avenue de la Justice", "Avenue Colonel Mondjiba"]
NOTES = [None, "Ring twice", "Leave at the gate", "Call on arrival", "Extra pili-pili"]


def generate_order_payload(restaurant_id: str, item_ids: list[str], unit_price: float) -> dict[str, Any]:
    """Random cart over the given menu items at a fixed unit price."""
    items = []
    for item_id in random.sample(item_ids, k=random.randint(1, len(item_ids))):
        items.append({"id": item_id, "quantity": random.randint(1, 3), "price": f"{unit_price:.2f}"})
    total = sum(item["quantity"] * unit_price for item in items)

    return {
        "restaurant_id": restaurant_id,
        "delivery": {
            "delivery_address": f"{random.randint(1, 300)} {random.choice(STREETS)}",
            "notes": random.choice(NOTES),
        },
        "items": items,
        "total": f"{total:.2f}",
    }


async def send_order(
    client: httpx.AsyncClient,
    order_num: int,
    customer_id: str,
    payload: dict[str, Any],
) -> dict[str, Any]:
    """Place one order."""
    start_time = time.time()

    try:
        response = await client.post(
            f"{API_BASE_URL}/api/orders",
            json=payload,
            headers={"X-User-Id": customer_id},
            timeout=30.0
        )
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": "TRANSPORT",
            "detail": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }

    elapsed = round(time.time() - start_time, 3)
    data = response.json()

    if response.status_code == 201:
        return {
            "order_num": order_num,
            "success": True,
            "display_order_number": data.get("display_order_number"),
            "total": float(payload["total"]),
            "time": elapsed,
        }
    return {
        "order_num": order_num,
        "success": False,
        "error": data.get("error", str(response.status_code)),
        "detail": str(data.get("detail"))[:100],
        "time": elapsed,
    }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(
    customer_id: str,
    restaurant_id: str,
    item_ids: list[str],
    unit_price: float,
    num_orders: int = TOTAL_ORDERS,
) -> dict[str, Any]:
    """
    Place ``num_orders`` orders at once and report on them.

    Returns:
        Summary with counts and whether all display numbers were unique
    """
    print("=" * 70)
    print("ORDER BURST SIMULATION")
    print("=" * 70)
    print(f"Total Orders: {num_orders}")
    print(f"Target: {API_BASE_URL}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        tasks = [
            send_order(client, i + 1, customer_id, generate_order_payload(restaurant_id, item_ids, unit_price))
            for i in range(num_orders)
        ]
        results = await asyncio.gather(*tasks)

    total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    numbers = Counter(r["display_order_number"] for r in successful)
    duplicates = {number: count for number, count in numbers.items() if count > 1}

    print("\n" + "=" * 70)
    print("SIMULATION RESULTS")
    print("=" * 70)

    print(f"\nSuccessful Orders: {len(successful)}/{num_orders}")
    print(f"Failed Orders: {len(failed)}/{num_orders}")
    print(f"Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        print("\nPerformance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   Order Value: {sum(r['total'] for r in successful):.2f}")

    print(f"\nDistinct display numbers: {len(numbers)}")
    if duplicates:
        print(f"DUPLICATE display numbers: {duplicates}")
    else:
        print("No duplicate display numbers")

    if failed:
        print("\nFailures by code:")
        for code, count in Counter(r["error"] for r in failed).most_common():
            print(f"   {code}: {count}")
        print("\nFailed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order {f['order_num']}: {f['error']} {f.get('detail', '')}")

    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "duplicates": duplicates,
        "total_time": total_time,
        "results": results,
    }


async def check_health() -> bool:
    async with httpx.AsyncClient() as client:
        try:
            response = await client.get(f"{API_BASE_URL}/health", timeout=10.0)
        except httpx.HTTPError as e:
            print(f"Health check failed: {e}")
            return False

    data = response.json()
    print(f"Status: {data.get('status')}")
    print(f"Database: {data.get('database')}")
    print(f"Notifications: {data.get('notification_service')}")
    return response.status_code == 200


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Order Burst Simulation Script")
    parser.add_argument("--customer", required=True, help="User id of a CUSTOMER account")
    parser.add_argument("--restaurant", required=True, help="Restaurant id")
    parser.add_argument("--item", action="append", required=True, help="Menu item id (repeatable)")
    parser.add_argument("--price", type=float, default=5.0, help="Unit price sent for every line")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--base-url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    API_BASE_URL = args.base_url

    if not asyncio.run(check_health()):
        print("\nPre-flight health check failed. Is the API running?")
        sys.exit(1)

    summary = asyncio.run(run_simulation(
        customer_id=args.customer,
        restaurant_id=args.restaurant,
        item_ids=args.item,
        unit_price=args.price,
        num_orders=args.orders,
    ))
    sys.exit(1 if summary["duplicates"] else 0)
