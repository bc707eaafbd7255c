"""
API smoke test against a running server

Usage:
    python scripts/smoke_test_api.py [base_url]

Uses the seeded demo account (scripts/seed_test_data.py). Exit code 1 when any
check fails.
"""

import asyncio
import sys
import os
from datetime import date, timedelta

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import httpx

from tradewiser.services.retry import RetryService

BASE_URL = os.getenv("SMOKE_BASE_URL", "http://127.0.0.1:5000")
USERNAME = os.getenv("SMOKE_USERNAME", "testuser")
PASSWORD = os.getenv("SMOKE_PASSWORD", "password123")


class SmokeTest:
    def __init__(self, client: httpx.AsyncClient, retry: RetryService):
        self.client = client
        self.retry = retry
        self.failures = []

    async def check(self, name: str, method: str, path: str, expected: int = 200, **kwargs) -> httpx.Response:
        async def call() -> httpx.Response:
            response = await self.client.request(method, path, **kwargs)
            if response.status_code >= 500:
                response.raise_for_status()
            return response

        outcome = await self.retry.execute_with_retry(call, self.retry.health_check_config())
        if not outcome.success:
            print(f"   ❌ {name}: {outcome.error}")
            self.failures.append(name)
            return None

        response = outcome.result
        if response.status_code != expected:
            print(f"   ❌ {name}: expected {expected}, got {response.status_code} {response.text[:200]}")
            self.failures.append(name)
        else:
            print(f"   ✓ {name} ({response.status_code}, {outcome.attempts} attempt(s))")
        return response


async def run(base_url: str) -> int:
    print(f"🔎 Smoke testing {base_url}")
    async with httpx.AsyncClient(base_url=base_url, timeout=10.0) as client:
        smoke = SmokeTest(client, RetryService())

        await smoke.check("health", "GET", "/health")
        await smoke.check("api test", "GET", "/api/test")
        await smoke.check("login", "POST", "/api/auth/login", json={"username": USERNAME, "password": PASSWORD})
        warehouses = await smoke.check("warehouses", "GET", "/api/warehouses")

        if warehouses is not None and warehouses.status_code == 200 and warehouses.json():
            warehouse_id = warehouses.json()[0]["id"]
            await smoke.check("deposit", "POST", "/api/deposits", expected=201, json={
                "commodity_name": "Smoke Test Wheat",
                "commodity_type": "cereals",
                "quantity": 1,
                "warehouse_id": warehouse_id,
                "delivery_method": "self_delivery",
                "scheduled_date": (date.today() + timedelta(days=1)).isoformat()
            })
        else:
            print("   ⚠ no warehouses, deposit check skipped")

    if smoke.failures:
        print(f"\n💥 {len(smoke.failures)} check(s) failed: {', '.join(smoke.failures)}")
        return 1
    print("\n✅ All checks passed")
    return 0


if __name__ == "__main__":
    url = sys.argv[1] if len(sys.argv) > 1 else BASE_URL
    sys.exit(asyncio.run(run(url)))
