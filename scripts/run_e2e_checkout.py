#!/usr/bin/env python3
"""Простой e2e-скрипт: оформляет заказ в storefront и печатает ответ с начислением баллов."""
import uuid
import json
import urllib.error
import urllib.request

URL = "http://localhost:8000/api/orders"

payload = {
    "order_id": f"e2e-{uuid.uuid4()}",
    "user_id": "demo-user",
    "items": [{"product_id": "demo-hoodie", "variant_id": "demo-hoodie-m", "quantity": 1}],
    "currency": "USD",
}

data = json.dumps(payload).encode('utf-8')
req = urllib.request.Request(URL, data=data, headers={"Content-Type": "application/json"})
try:
    with urllib.request.urlopen(req, timeout=15) as resp:
        body = resp.read().decode('utf-8')
        print('Status:', resp.status)
        print(body)
except urllib.error.URLError as e:
    print('Request failed:', e)
