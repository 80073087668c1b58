"""Seed demo data by calling the storefront HTTP API.

Creates a demo customer through the user-created hook and a demo product with
two variants, then prints a checkout payload for manual testing.

Usage:
    python scripts/seed_demo.py [BASE_URL]

BASE_URL defaults to http://localhost:8000.
"""
import sys
import uuid

import httpx

BASE_URL = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"

DEMO_USER = {"uid": "demo-user", "email": "demo+user@example.com"}
DEMO_PRODUCT = {
    "id": "demo-hoodie",
    "name": "Demo Hoodie",
    "description": "Warm and soft.",
    "price": "7.80",
    "category": "apparel",
    "variants": [
        {"id": "demo-hoodie-m", "color": "black", "size": "M", "inventory": 12},
        {"id": "demo-hoodie-l", "color": "black", "size": "L", "inventory": 40},
    ],
}


def post(path: str, payload: dict):
    try:
        r = httpx.post(f"{BASE_URL}{path}", json=payload, timeout=5.0)
    except httpx.RequestError as e:
        print(f"{path}: service unavailable: {e}")
        return None
    print(f"{path} -> {r.status_code}: {r.text}")
    return r


def main():
    print("Seeding demo data (best-effort).")
    post("/api/events/user-created", DEMO_USER)
    post("/api/products", DEMO_PRODUCT)

    print("\nReady. Example checkout payload (POST /api/orders):")
    print("{")
    print(f'  "order_id": "demo-{uuid.uuid4().hex[:8]}",')
    print(f'  "user_id": "{DEMO_USER["uid"]}",')
    print('  "items": [{"product_id": "demo-hoodie", "variant_id": "demo-hoodie-m", "quantity": 3}]')
    print("}")


if __name__ == "__main__":
    main()
