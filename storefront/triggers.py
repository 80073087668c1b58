# storefront/triggers.py
import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .config import Settings
from .errors import NotificationFailure
from .models import Order, SettlementAudit, Subscriber, User
from .points import calculate_award
from .schemas import OrderCreatedEvent, UserCreatedEvent, VariantSnapshot
from .settlement import SettlementResult, settle_order

log = logging.getLogger("storefront.triggers")


async def record_audit(
    session_maker: sessionmaker,
    *,
    error: str,
    order_id: Optional[str] = None,
    user_id: Optional[str] = None,
    detail: str = "",
) -> None:
    # отдельная транзакция: запись в журнал не зависит от отката начисления
    async with session_maker() as session:
        session.add(SettlementAudit(order_id=order_id, user_id=user_id, error=error, detail=detail))
        await session.commit()


# ✅ OrderCreated -> начисление баллов
async def handle_order_created(
    session_maker: sessionmaker, settings: Settings, event: OrderCreatedEvent
) -> SettlementResult:
    award = calculate_award(event.items, settings.points_per_amount)
    result = await settle_order(
        session_maker,
        user_id=event.user_id,
        order_id=event.order_id,
        award=award,
        max_attempts=settings.settlement_max_attempts,
        backoff=settings.settlement_retry_backoff,
    )
    if not result.ok:
        log.error("order %s not settled: %s (%s)", event.order_id, result.status.value, result.detail)
        await record_audit(
            session_maker,
            error=result.status.value,
            order_id=event.order_id,
            user_id=event.user_id,
            detail=result.detail,
        )
    return result


@dataclass(frozen=True)
class UserCreatedOutcome:
    user_id: str
    email: Optional[str]
    subscribed: bool


# 👤 Auth hook: баланс, подписка, приветственное письмо (письмо шлёт вызывающий)
async def handle_user_created(session_maker: sessionmaker, event: UserCreatedEvent) -> UserCreatedOutcome:
    email = str(event.email) if event.email else None

    async with session_maker() as session:
        user = await session.get(User, event.uid)
        if user is None:
            session.add(User(id=event.uid, email=email, loyalty_points=0))
            try:
                await session.commit()
            except IntegrityError:
                # повторная доставка того же события успела раньше
                await session.rollback()
        elif email and user.email != email:
            user.email = email
            await session.commit()

    if not email:
        log.error("User %s has no email address.", event.uid)
        return UserCreatedOutcome(event.uid, None, subscribed=False)

    subscribed = False
    try:
        async with session_maker() as session:
            sub = await session.get(Subscriber, event.uid)
            if sub is None:
                session.add(Subscriber(user_id=event.uid, email=email))
            else:
                sub.email = email
            await session.commit()
        subscribed = True
        log.info("Added %s to subscribers list.", email)
    except SQLAlchemyError:
        # письмо всё равно отправляем
        log.exception("Failed to add user %s to subscribers list", event.uid)

    return UserCreatedOutcome(event.uid, email, subscribed)


# ⏰ Плановая задача: pending -> processing
async def complete_pending_orders(session_maker: sessionmaker) -> int:
    async with session_maker() as session:
        res = await session.execute(
            update(Order)
            .where(Order.status == "pending")
            .values(status="processing")
            .execution_options(synchronize_session=False)
        )
        await session.commit()
    count = res.rowcount or 0
    if count:
        log.info("Moved %d pending orders to processing.", count)
    else:
        log.info("No pending orders to process.")
    return count


def low_stock_alerts(
    product_name: str,
    before: Iterable[VariantSnapshot],
    after: Iterable[VariantSnapshot],
    threshold: int,
) -> List[str]:
    # только варианты, остаток которых только что опустился ниже порога
    previous = {v.id: v for v in before}
    alerts = []
    for variant in after:
        old = previous.get(variant.id)
        if old is None:
            continue
        if variant.inventory < threshold <= old.inventory:
            label = f"{variant.color or ''} {variant.size or ''}"
            alerts.append(
                f'LOW STOCK ALERT: Product "{product_name}" (Variant: {label}) '
                f"has only {variant.inventory} units left."
            )
    return alerts


# 📉 Оповещения в Slack; (alerts, delivered), NotificationFailure если вебхук отказал
async def monitor_stock_levels(
    sink,
    *,
    product_id: str,
    product_name: str,
    before: Iterable[VariantSnapshot],
    after: Iterable[VariantSnapshot],
    threshold: int,
) -> tuple:
    alerts = low_stock_alerts(product_name, before, after, threshold)
    if not alerts:
        return alerts, False
    for message in alerts:
        log.warning(message)
    if sink is None:
        log.error("Slack webhook URL not configured. Skipping alert for product %s.", product_id)
        return alerts, False

    results = await asyncio.gather(
        *(sink.send("slack", {"text": message}) for message in alerts),
        return_exceptions=True,
    )
    failures = [r for r in results if isinstance(r, Exception)]
    if failures:
        log.error("Failed to send %d of %d stock alerts for product %s", len(failures), len(alerts), product_id)
        first = failures[0]
        if isinstance(first, NotificationFailure):
            raise first
        raise NotificationFailure("slack", str(first)) from first
    log.info("Sent %d low stock alerts for product %s.", len(alerts), product_id)
    return alerts, True
