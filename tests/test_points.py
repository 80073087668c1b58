from decimal import Decimal
from types import SimpleNamespace

import pytest

from storefront.points import calculate_award, total_spent
from storefront.schemas import LineItem


def item(price, quantity=1):
    return LineItem(productId="p1", variantId="v1", quantity=quantity, priceAtPurchase=price)


@pytest.mark.parametrize("price,expected", [
    ("9.99", 0),
    ("10.00", 1),
    ("19.99", 1),
    ("20.00", 2),
    ("23.40", 2),
])
def test_award_boundaries(price, expected):
    assert calculate_award([item(price)]) == expected


def test_empty_order_awards_nothing():
    assert calculate_award([]) == 0


def test_total_multiplies_quantity():
    items = [item("4.50", quantity=3), item("1.25", quantity=2)]
    assert total_spent(items) == Decimal("16.00")
    assert calculate_award(items) == 1


def test_float_prices_are_summed_exactly():
    # a hundred 0.1 floats add up to 9.99999999999998
    items = [SimpleNamespace(price_at_purchase=0.1, quantity=1) for _ in range(100)]
    assert total_spent(items) == Decimal("10.0")
    assert calculate_award(items) == 1


def test_custom_rate():
    assert calculate_award([item("23.40")], per_amount=5) == 4


def test_rate_must_be_positive():
    with pytest.raises(ValueError):
        calculate_award([item("10")], per_amount=0)
