from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from storefront import settlement as settlement_module
from storefront.errors import NotificationFailure
from storefront.models import Order, OrderItem, SettlementAudit, Subscriber
from storefront.schemas import OrderCreatedEvent, UserCreatedEvent, VariantSnapshot
from storefront.settlement import SettlementResult, SettlementStatus
from storefront.triggers import (
    complete_pending_orders, handle_order_created, handle_user_created,
    low_stock_alerts, monitor_stock_levels,
)

from conftest import RecordingSink, add_user, get_user, run


def order_event(order_id="o1", user_id="u1", price="23.40"):
    return OrderCreatedEvent.model_validate({
        "orderId": order_id,
        "userId": user_id,
        "createdAt": "2026-10-19T12:00:00Z",
        "items": [{"productId": "p1", "variantId": "v1", "quantity": 1, "priceAtPurchase": price}],
    })


async def audit_rows(session_maker):
    async with session_maker() as session:
        return (await session.execute(select(SettlementAudit))).scalars().all()


def test_order_created_scenario(session_maker, settings):
    async def scenario():
        await add_user(session_maker, "u1", points=50)
        first = await handle_order_created(session_maker, settings, order_event())
        again = await handle_order_created(session_maker, settings, order_event())
        return first, again, await get_user(session_maker, "u1")

    first, again, user = run(scenario())
    assert first.status is SettlementStatus.SETTLED and first.award == 2
    assert again.status is SettlementStatus.ALREADY_SETTLED
    assert user.loyalty_points == 52


def test_small_order_is_settled_with_zero(session_maker, settings):
    async def scenario():
        await add_user(session_maker, "u1", points=50)
        return await handle_order_created(session_maker, settings, order_event(price="9.99"))

    result = run(scenario())
    assert result.status is SettlementStatus.SETTLED
    assert result.award == 0
    assert result.balance == 50


def test_unknown_user_is_audited(session_maker, settings):
    async def scenario():
        result = await handle_order_created(session_maker, settings, order_event(user_id="ghost"))
        return result, await audit_rows(session_maker)

    result, rows = run(scenario())
    assert result.status is SettlementStatus.USER_NOT_FOUND
    assert [(r.order_id, r.user_id, r.error) for r in rows] == [("o1", "ghost", "user_not_found")]


def test_event_without_items_is_rejected():
    with pytest.raises(ValueError):
        OrderCreatedEvent.model_validate({"orderId": "o1", "userId": "u1", "items": []})


def test_user_created_subscribes(session_maker):
    async def scenario():
        outcome = await handle_user_created(session_maker, UserCreatedEvent(uid="u9", email="new@shop.io"))
        redelivered = await handle_user_created(session_maker, UserCreatedEvent(uid="u9", email="new@shop.io"))
        async with session_maker() as session:
            sub = await session.get(Subscriber, "u9")
        return outcome, redelivered, sub, await get_user(session_maker, "u9")

    outcome, redelivered, sub, user = run(scenario())
    assert outcome.subscribed and outcome.email == "new@shop.io"
    assert redelivered.subscribed
    assert sub.email == "new@shop.io"
    assert user.loyalty_points == 0


def test_user_without_email_is_not_subscribed(session_maker):
    async def scenario():
        outcome = await handle_user_created(session_maker, UserCreatedEvent(uid="anon"))
        async with session_maker() as session:
            sub = await session.get(Subscriber, "anon")
        return outcome, sub, await get_user(session_maker, "anon")

    outcome, sub, user = run(scenario())
    assert outcome.email is None and not outcome.subscribed
    assert sub is None
    assert user is not None


def test_complete_pending_orders(session_maker):
    async def scenario():
        await add_user(session_maker, "u1")
        async with session_maker() as session:
            for order_id, status in (("a", "pending"), ("b", "pending"), ("c", "shipped")):
                session.add(Order(
                    id=order_id, user_id="u1", status=status,
                    created_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
                    items=[OrderItem(product_id="p1", variant_id="v1", quantity=1, price_at_purchase=5)],
                ))
            await session.commit()
        updated = await complete_pending_orders(session_maker)
        nothing_left = await complete_pending_orders(session_maker)
        async with session_maker() as session:
            statuses = dict((await session.execute(select(Order.id, Order.status))).all())
        return updated, nothing_left, statuses

    updated, nothing_left, statuses = run(scenario())
    assert updated == 2
    assert nothing_left == 0
    assert statuses == {"a": "processing", "b": "processing", "c": "shipped"}


def snap(vid, inventory, color="red", size="M"):
    return VariantSnapshot(id=vid, color=color, size=size, inventory=inventory)


def test_low_stock_alert_only_on_crossing():
    before = [snap("v1", 12), snap("v2", 8), snap("v3", 30)]
    after = [snap("v1", 9), snap("v2", 5), snap("v3", 10)]
    alerts = low_stock_alerts("Hoodie", before, after, threshold=10)
    assert alerts == ['LOW STOCK ALERT: Product "Hoodie" (Variant: red M) has only 9 units left.']


def test_low_stock_ignores_new_variants():
    assert low_stock_alerts("Hoodie", [], [snap("v1", 1)], threshold=10) == []


def test_monitor_without_webhook_skips(caplog):
    alerts, delivered = run(monitor_stock_levels(
        None, product_id="p1", product_name="Hoodie",
        before=[snap("v1", 10)], after=[snap("v1", 3)], threshold=10,
    ))
    assert len(alerts) == 1
    assert delivered is False
    assert "Slack webhook URL not configured" in caplog.text


def test_monitor_sends_each_alert():
    sink = RecordingSink()
    alerts, delivered = run(monitor_stock_levels(
        sink, product_id="p1", product_name="Hoodie",
        before=[snap("v1", 10), snap("v2", 11, size="L")],
        after=[snap("v1", 3), snap("v2", 2, size="L")], threshold=10,
    ))
    assert delivered
    assert [m["text"] for _, m in sink.sent] == alerts
    assert len(alerts) == 2


def test_monitor_raises_when_webhook_fails():
    with pytest.raises(NotificationFailure):
        run(monitor_stock_levels(
            RecordingSink(failures=1), product_id="p1", product_name="Hoodie",
            before=[snap("v1", 10)], after=[snap("v1", 3)], threshold=10,
        ))


def test_order_of_another_user_is_audited(session_maker, settings):
    async def scenario():
        await add_user(session_maker, "alice", points=0)
        await add_user(session_maker, "bob", points=0)
        await handle_order_created(session_maker, settings, order_event(user_id="alice"))
        result = await handle_order_created(session_maker, settings, order_event(user_id="bob"))
        return result, await audit_rows(session_maker), await get_user(session_maker, "bob")

    result, rows, bob = run(scenario())
    assert result.status is SettlementStatus.OWNER_MISMATCH
    assert [(r.order_id, r.user_id, r.error) for r in rows] == [("o1", "bob", "order_owner_mismatch")]
    assert bob.loyalty_points == 0


def test_exhausted_conflict_is_audited(session_maker, settings, monkeypatch):
    async def always_conflict(session, **kwargs):
        return SettlementResult(kwargs["order_id"], kwargs["user_id"], SettlementStatus.CONFLICT, detail="stale")

    monkeypatch.setattr(settlement_module, "settle_once", always_conflict)

    async def scenario():
        result = await handle_order_created(session_maker, settings, order_event(order_id="o9"))
        return result, await audit_rows(session_maker)

    result, rows = run(scenario())
    assert result.status is SettlementStatus.CONFLICT
    assert result.attempts == settings.settlement_max_attempts
    assert [(r.order_id, r.error, r.detail) for r in rows] == [("o9", "transaction_conflict", "stale")]


def test_user_created_redelivery_updates_email(session_maker):
    async def scenario():
        await handle_user_created(session_maker, UserCreatedEvent(uid="u9", email="old@shop.io"))
        await handle_user_created(session_maker, UserCreatedEvent(uid="u9", email="new@shop.io"))
        async with session_maker() as session:
            sub = await session.get(Subscriber, "u9")
        return sub, await get_user(session_maker, "u9")

    sub, user = run(scenario())
    assert sub.email == "new@shop.io"
    assert user.email == "new@shop.io"
