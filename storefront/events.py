# storefront/events.py
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import sessionmaker

from .config import Settings
from .database import get_session_maker
from .deps import get_alert_sink, get_dispatcher, get_settings
from .errors import NotificationFailure
from .notifications import NotificationDispatcher, order_settled_message, welcome_message
from .schemas import (
    JobOut, OrderCreatedEvent, ProductUpdatedEvent, SettlementOut,
    StockAlertsOut, UserCreatedEvent, UserCreatedOut,
)
from .settlement import SettlementResult, SettlementStatus
from .triggers import complete_pending_orders, handle_order_created, handle_user_created, monitor_stock_levels

router = APIRouter(prefix="/api", tags=["events"])


def settlement_response(result: SettlementResult) -> SettlementOut:
    # 404 / 409 останавливают повторную доставку, 503 просит повторить
    if result.status is SettlementStatus.USER_NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Пользователь {result.user_id} не найден")
    if result.status is SettlementStatus.OWNER_MISMATCH:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT,
                            detail=f"Заказ {result.order_id} уже учтён для другого пользователя")
    if result.status is SettlementStatus.CONFLICT:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                            detail="Не удалось начислить баллы, повторите событие позже")
    return SettlementOut(
        order_id=result.order_id,
        user_id=result.user_id,
        status=result.status.value,
        award=result.award,
        balance=result.balance,
    )


# 🧾 Новый заказ -> начисление баллов (доставка at-least-once)
@router.post("/events/order-created", response_model=SettlementOut)
async def order_created(
    event: OrderCreatedEvent,
    background_tasks: BackgroundTasks,
    session_maker: sessionmaker = Depends(get_session_maker),
    settings: Settings = Depends(get_settings),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    result = await handle_order_created(session_maker, settings, event)
    if result.should_notify:
        # после коммита; ошибка доставки не откатывает начисление
        background_tasks.add_task(dispatcher.deliver, result.user_id, order_settled_message(result))
    return settlement_response(result)


# 👤 Новый пользователь
@router.post("/events/user-created", response_model=UserCreatedOut)
async def user_created(
    event: UserCreatedEvent,
    background_tasks: BackgroundTasks,
    session_maker: sessionmaker = Depends(get_session_maker),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    outcome = await handle_user_created(session_maker, event)
    if outcome.email:
        background_tasks.add_task(dispatcher.deliver, outcome.email, welcome_message(outcome.user_id, outcome.email))
    return UserCreatedOut(
        user_id=outcome.user_id,
        subscribed=outcome.subscribed,
        welcome_email_queued=outcome.email is not None,
    )


# 📦 Изменились остатки товара
@router.post("/events/product-updated", response_model=StockAlertsOut)
async def product_updated(
    event: ProductUpdatedEvent,
    settings: Settings = Depends(get_settings),
    sink=Depends(get_alert_sink),
):
    try:
        alerts, delivered = await monitor_stock_levels(
            sink,
            product_id=event.product_id,
            product_name=event.name,
            before=event.before,
            after=event.after,
            threshold=settings.low_stock_threshold,
        )
    except NotificationFailure as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Не удалось отправить оповещение: {e}")
    return StockAlertsOut(product_id=event.product_id, alerts=alerts, delivered=delivered)


# ⏰ Ручной запуск плановой задачи
@router.post("/jobs/complete-pending-orders", response_model=JobOut)
async def run_complete_pending_orders(session_maker: sessionmaker = Depends(get_session_maker)):
    updated = await complete_pending_orders(session_maker)
    return JobOut(job="complete_pending_orders", updated=updated)
