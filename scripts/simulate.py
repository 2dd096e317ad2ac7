"""
Rush Hour Simulation Script

Fires concurrent orders at a running server, then walks them through the
kitchen lifecycle with the cook and driver accounts. Expects the demo
accounts and catalog from scripts/seed.py.

Run from project root: python scripts/simulate.py

Version: 1.0.0
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

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 50
DEMO_PASSWORD = "123456"

# Sample data for random orders
FIRST_NAMES = ["João", "Maria", "Pedro", "Ana", "Lucas", "Julia", "Rafael", "Carla", "Bruno", "Fernanda"]
LAST_NAMES = ["Silva", "Santos", "Oliveira", "Souza", "Lima", "Costa", "Pereira", "Almeida", "Rocha", "Dias"]
STREETS = ["Rua das Flores", "Av. Paulista", "Rua Augusta", "Rua Oscar Freire", "Av. Brasil"]
CHANNELS = ["counter", "phone", "marketplace", "web", "messaging"]
ORDER_TYPES = ["delivery", "pickup", "dine_in"]
PAYMENT_METHODS = ["cash", "debit_card", "credit_card", "pix"]

KITCHEN_STEPS = [("cook", "in_preparation"), ("cook", "ready")]
DELIVERY_STEPS = [("driver", "dispatched"), ("driver", "delivered")]


def generate_random_customer() -> dict[str, Any]:
    """Generate random customer info."""
    return {
        "name": f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}",
        "phone": f"(11) 9{random.randint(1000, 9999)}-{random.randint(1000, 9999)}",
        "address": {
            "street": random.choice(STREETS),
            "number": str(random.randint(1, 999)),
            "city": "São Paulo",
        },
    }


def generate_random_items(products: list[dict]) -> list[dict]:
    """Pick 1-3 random catalog entries with an available size."""
    items = []
    for product in random.sample(products, k=min(len(products), random.randint(1, 3))):
        sizes = [s for s in product["sizes"] if s["available"]]
        if not sizes:
            continue
        item = {
            "product_id": product["id"],
            "quantity": random.randint(1, 2),
            "size": random.choice(sizes)["name"],
        }
        if product["crusts"] and random.random() < 0.3:
            item["crust"] = {"name": random.choice(product["crusts"])["name"]}
        if product["addons"] and random.random() < 0.3:
            item["addons"] = [{"name": random.choice(product["addons"])["name"]}]
        items.append(item)
    return items


def generate_order_payload(products: list[dict]) -> dict[str, Any]:
    return {
        "customer": generate_random_customer(),
        "order_type": random.choice(ORDER_TYPES),
        "channel": random.choice(CHANNELS),
        "items": generate_random_items(products),
        "payment": {"method": random.choice(PAYMENT_METHODS)},
        "notes": random.choice([None, "No onions", "Ring the doorbell", "Extra napkins"]),
    }


# =============================================================================
# API HELPERS
# =============================================================================

async def login(client: httpx.AsyncClient, role: str) -> str:
    response = await client.post(
        f"{API_BASE_URL}/auth/login",
        json={"email": f"{role}@pizzeria.com", "password": DEMO_PASSWORD},
    )
    response.raise_for_status()
    return response.json()["token"]


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def send_order(
    client: httpx.AsyncClient,
    token: str,
    products: list[dict],
    order_num: int,
) -> dict[str, Any]:
    """Create one order and report timing."""
    start_time = time.time()
    try:
        response = await client.post(
            f"{API_BASE_URL}/orders",
            json=generate_order_payload(products),
            headers=auth_header(token),
            timeout=30.0,
        )
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 201:
            order = response.json()["order"]
            return {
                "order_num": order_num,
                "success": True,
                "order_id": order["id"],
                "number": order["number"],
                "total": order["payment"]["total"],
                "time": elapsed,
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": response.json().get("message", response.text)[:100],
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


async def advance_order(
    client: httpx.AsyncClient,
    tokens: dict[str, str],
    order_id: int,
    steps: list[tuple[str, str]],
) -> Optional[str]:
    """Apply each status step in turn; returns an error message or None."""
    for role, status in steps:
        await asyncio.sleep(random.uniform(0.05, 0.3))
        response = await client.put(
            f"{API_BASE_URL}/orders/{order_id}/status",
            json={"status": status},
            headers=auth_header(tokens[role]),
        )
        if response.status_code != 200:
            return f"{status}: {response.json().get('message')}"
    return None


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS, deliver_ratio: float = 0.8) -> dict[str, Any]:
    """
    Run the rush hour simulation.

    Args:
        num_orders: Number of orders to create concurrently
        deliver_ratio: Share of orders taken all the way to delivered
    """
    print("=" * 70)
    print("🔥 RUSH HOUR SIMULATION - CONCURRENT ORDERS")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient(timeout=30.0) as client:
        tokens = {role: await login(client, role) for role in ("counter", "cook", "driver", "admin")}

        response = await client.get(f"{API_BASE_URL}/products", headers=auth_header(tokens["counter"]))
        response.raise_for_status()
        products = response.json()["products"]
        if not products:
            print("❌ Catalog is empty. Run scripts/seed.py first.")
            return {"total": num_orders, "successful": 0, "failed": num_orders}

        print("\n🚀 Firing orders...\n")
        start_time = time.time()
        results = await asyncio.gather(*[
            send_order(client, tokens["counter"], products, i + 1) for i in range(num_orders)
        ])
        creation_time = round(time.time() - start_time, 2)

        successful = [r for r in results if r["success"]]
        failed = [r for r in results if not r["success"]]

        print("👨‍🍳 Moving orders through the kitchen...\n")
        lifecycle_tasks = []
        for result in successful:
            steps = list(KITCHEN_STEPS)
            if random.random() < deliver_ratio:
                steps += DELIVERY_STEPS
            lifecycle_tasks.append(advance_order(client, tokens, result["order_id"], steps))
        lifecycle_errors = [e for e in await asyncio.gather(*lifecycle_tasks) if e]

        report = await client.get(f"{API_BASE_URL}/reports/times", headers=auth_header(tokens["admin"]))
        times = report.json().get("data", {}) if report.status_code == 200 else {}

    numbers = [r["number"] for r in successful]

    # Print results
    print("=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"⏱️  Creation Time: {creation_time}s")
    print(f"🔢 Duplicate order numbers: {len(numbers) - len(set(numbers))}")
    print(f"🍕 Lifecycle errors: {len(lifecycle_errors)}")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        total_revenue = sum(r["total"] for r in successful)
        print("\n📈 Performance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   💰 Total Ordered: R$ {total_revenue:.2f}")

    if times:
        print("\n⏲️  Times report (minutes):")
        for name in ("preparation", "delivery", "total"):
            stats = times.get(name, {})
            print(f"   {name:<12} n={stats.get('orders_analyzed')} mean={stats.get('mean')}")

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("=" * 70)
    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "lifecycle_errors": lifecycle_errors,
    }


async def test_single_flows() -> bool:
    """Check the server is reachable and seeded before the rush."""
    print("\n" + "=" * 70)
    print("🧪 PRE-FLIGHT CHECKS")
    print("=" * 70)

    async with httpx.AsyncClient(timeout=10.0) as client:
        print("\n1️⃣ Health Check...")
        try:
            response = await client.get(f"{API_BASE_URL}/health")
        except httpx.HTTPError as e:
            print(f"   ❌ Server unreachable: {e}")
            return False
        data = response.json()
        print(f"   ✅ Status: {data.get('status')}")
        print(f"   Database: {data.get('database')}")
        print(f"   Broadcaster: {data.get('broadcaster')}")

        print("\n2️⃣ Demo login...")
        try:
            await login(client, "counter")
        except httpx.HTTPStatusError:
            print("   ❌ Demo accounts missing. Run scripts/seed.py first.")
            return False
        print("   ✅ counter@pizzeria.com")

    print("\n" + "=" * 70)
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rush Hour Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--deliver-ratio", type=float, default=0.8, help="Share of orders delivered")
    parser.add_argument("--url", default=API_BASE_URL, help="Server base URL")
    parser.add_argument("--skip-tests", action="store_true", help="Skip pre-flight checks")
    args = parser.parse_args()
    API_BASE_URL = args.url.rstrip("/")

    if not args.skip_tests:
        if not asyncio.run(test_single_flows()):
            print("\n❌ Pre-flight checks failed. Fix issues before running simulation.")
            sys.exit(1)
        print("\n✅ Pre-flight checks passed!")

    asyncio.run(run_simulation(args.orders, args.deliver_ratio))
