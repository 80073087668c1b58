#!/usr/bin/env python3
"""Отправляет одно и то же событие OrderCreated несколько раз и печатает ответы.

Баланс должен измениться только после первой доставки.
"""
import sys
import uuid

import httpx

BASE_URL = "http://localhost:8000"
USER_ID = sys.argv[1] if len(sys.argv) > 1 else "demo-user"

event = {
    "orderId": f"replay-{uuid.uuid4()}",
    "userId": USER_ID,
    "items": [{"productId": "demo-hoodie", "variantId": "demo-hoodie-m", "quantity": 3, "priceAtPurchase": 7.80}],
}


def run(times: int = 3):
    for attempt in range(1, times + 1):
        r = httpx.post(f"{BASE_URL}/api/events/order-created", json=event, timeout=15.0)
        print(f"delivery {attempt} -> {r.status_code} {r.text}")
    print("balance ->", httpx.get(f"{BASE_URL}/api/users/{USER_ID}/loyalty").text)


if __name__ == '__main__':
    run()
