# storefront/points.py
from decimal import Decimal
from typing import Iterable

POINTS_PER_AMOUNT = 10  # 1 балл за каждые $10


def _money(value) -> Decimal:
    # float -> str first so 9.99 stays 9.99 and not 9.9900000000000002131...
    return value if isinstance(value, Decimal) else Decimal(str(value))


def total_spent(items: Iterable) -> Decimal:
    """Σ(price_at_purchase × quantity) over order line items."""
    total = Decimal("0.00")
    for item in items:
        total += _money(item.price_at_purchase) * int(item.quantity)
    return total


def calculate_award(items: Iterable, per_amount: int = POINTS_PER_AMOUNT) -> int:
    """Whole points earned by an order; 0 is a valid outcome."""
    if per_amount <= 0:
        raise ValueError("per_amount must be positive")
    spent = total_spent(items)
    if spent <= 0:
        return 0
    return int(spent // per_amount)
