# storefront/orders.py
import logging
import uuid
from collections import defaultdict
from typing import Dict, List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload, sessionmaker

from .config import Settings
from .database import get_session, get_session_maker
from .deps import get_alert_sink, get_dispatcher, get_settings
from .errors import NotificationFailure
from .events import settlement_response
from .models import Order, OrderItem, Product, ProductVariant, User
from .notifications import NotificationDispatcher, order_settled_message
from .schemas import (
    CheckoutPayload, LineItem, LoyaltyOut, OrderCreatedEvent, OrderItemOut,
    OrderOut, OrderSummary, SettlementOut, VariantSnapshot,
)
from .triggers import handle_order_created, monitor_stock_levels

log = logging.getLogger("storefront.orders")

router = APIRouter(prefix="/api/orders", tags=["orders"])
users_router = APIRouter(prefix="/api/users", tags=["loyalty"])


def _snapshot(product: Product) -> List[VariantSnapshot]:
    return [
        VariantSnapshot(id=v.id, color=v.color, size=v.size, inventory=v.inventory)
        for v in product.variants
    ]


async def _load_order(session: AsyncSession, order_id: str) -> Order:
    res = await session.execute(
        select(Order)
        .options(selectinload(Order.items), selectinload(Order.settlement))
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    order = res.scalar_one_or_none()
    if not order:
        raise HTTPException(status_code=404, detail="Заказ не найден")
    return order


def _order_out(order: Order) -> OrderOut:
    settlement = None
    if order.settlement is not None:
        settlement = SettlementOut(
            order_id=order.id,
            user_id=order.settlement.user_id,
            status="settled",
            award=order.settlement.award,
        )
    return OrderOut(
        id=order.id,
        user_id=order.user_id,
        status=order.status,
        created_at=order.created_at,
        risk_assessment=order.risk_assessment,
        items=[OrderItemOut.model_validate(it) for it in order.items],
        settlement=settlement,
    )


# ✅ Оформление заказа: проверка остатков, фиксация цены, списание со склада,
# затем те же реакции, что и у платформенных триггеров
@router.post("", response_model=OrderOut, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: CheckoutPayload,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    session_maker: sessionmaker = Depends(get_session_maker),
    settings: Settings = Depends(get_settings),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    alert_sink=Depends(get_alert_sink),
):
    user = await session.get(User, payload.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="Пользователь не найден")

    order_id = payload.order_id or uuid.uuid4().hex
    if await session.get(Order, order_id) is not None:
        raise HTTPException(status_code=409, detail=f"Заказ {order_id} уже существует")

    # 1) Варианты товаров (под блокировкой, где её поддерживает БД)
    res = await session.execute(
        select(ProductVariant)
        .options(selectinload(ProductVariant.product).selectinload(Product.variants))
        .where(ProductVariant.id.in_(sorted({it.variant_id for it in payload.items})))
        .with_for_update()
    )
    variants: Dict[str, ProductVariant] = {v.id: v for v in res.scalars().all()}

    # 2) Проверяем наличие
    requested: Dict[str, int] = defaultdict(int)
    for it in payload.items:
        v = variants.get(it.variant_id)
        if v is None or v.product_id != it.product_id:
            raise HTTPException(status_code=400, detail=f"Вариант {it.variant_id} товара {it.product_id} не найден")
        requested[v.id] += it.quantity
    for vid, qty in requested.items():
        if variants[vid].inventory < qty:
            raise HTTPException(status_code=400, detail=f"Недостаточно на складе: {variants[vid].product.name}")

    products = {v.product_id: v.product for v in variants.values()}
    before = {pid: _snapshot(p) for pid, p in products.items()}

    # 3) Создаём заказ, фиксируем цены и списываем остатки
    order = Order(id=order_id, user_id=user.id, status="pending")
    line_items = []
    for pos, it in enumerate(payload.items):
        v = variants[it.variant_id]
        order.items.append(OrderItem(
            position=pos,
            product_id=it.product_id,
            variant_id=it.variant_id,
            quantity=it.quantity,
            price_at_purchase=v.product.price,
            currency=payload.currency,
        ))
        line_items.append(LineItem(
            product_id=it.product_id,
            variant_id=it.variant_id,
            quantity=it.quantity,
            price_at_purchase=v.product.price,
            currency=payload.currency,
        ))
        v.inventory = v.inventory - it.quantity
    session.add(order)
    try:
        await session.commit()
    except IntegrityError:
        # параллельный запрос с тем же order_id успел раньше
        await session.rollback()
        raise HTTPException(status_code=409, detail=f"Заказ {order_id} уже существует")

    # 4) Оповещения о низком остатке (best-effort для оформления заказа)
    for pid, product in products.items():
        try:
            await monitor_stock_levels(
                alert_sink,
                product_id=pid,
                product_name=product.name,
                before=before[pid],
                after=_snapshot(product),
                threshold=settings.low_stock_threshold,
            )
        except NotificationFailure as e:
            log.warning("low stock alert for %s failed: %s", pid, e)

    # 5) Начисление баллов
    event = OrderCreatedEvent(order_id=order_id, user_id=user.id, items=line_items)
    result = await handle_order_created(session_maker, settings, event)
    if result.should_notify:
        background_tasks.add_task(dispatcher.deliver, result.user_id, order_settled_message(result))
    if not result.ok:
        # заказ создан; баллы можно довыдать повторной доставкой события
        log.error("order %s created but settlement failed: %s", order_id, result.status.value)

    order = await _load_order(session, order_id)
    out = _order_out(order)
    if result.ok:
        out.settlement = settlement_response(result)
    return out


# 📦 Детали одного заказа
@router.get("/{order_id}", response_model=OrderOut)
async def order_detail(order_id: str, session: AsyncSession = Depends(get_session)):
    return _order_out(await _load_order(session, order_id))


# 🧾 История заказов пользователя
@router.get("/user/{user_id}", response_model=List[OrderSummary])
async def list_user_orders(user_id: str, session: AsyncSession = Depends(get_session)):
    res = await session.execute(
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.user_id == user_id)
        .order_by(Order.created_at.desc())
        .limit(50)
    )
    return [
        OrderSummary(id=o.id, status=o.status, created_at=o.created_at, items_count=len(o.items))
        for o in res.scalars().all()
    ]


@users_router.get("/{user_id}/loyalty", response_model=LoyaltyOut)
async def loyalty_balance(user_id: str, session: AsyncSession = Depends(get_session)):
    user = await session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="Пользователь не найден")
    return LoyaltyOut(user_id=user.id, loyalty_points=user.loyalty_points)
