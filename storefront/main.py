# storefront/main.py
import logging
from typing import Optional

import uvicorn
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import sessionmaker

from . import assistant, events, orders, shop
from .ai import OpenAITextGenerator, TextGenerator
from .config import Settings
from .database import create_engine, create_session_maker, create_tables
from .notifications import HttpNotificationSink, NotificationDispatcher, SlackWebhookSink
from .scheduler import schedule_jobs
from .triggers import record_audit

log = logging.getLogger("storefront.main")


def create_app(
    settings: Optional[Settings] = None,
    *,
    session_maker: Optional[sessionmaker] = None,
    notification_sink=None,
    alert_sink=None,
    text_generator: Optional[TextGenerator] = None,
) -> FastAPI:
    """Builds the application and everything it owns.

    Collaborators can be passed in (tests do); otherwise they are created
    from ``settings``. An injected ``session_maker`` is not disposed or
    migrated by the app.
    """
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Storefront backend",
        description="Loyalty settlement, platform triggers and AI helpers for the storefront",
        version="1.0.0",
    )

    # ✅ CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    engine = None
    if session_maker is None:
        engine = create_engine(settings.database_url, echo=settings.db_echo)
        session_maker = create_session_maker(engine)

    async def audit_notification_failure(recipient, message, detail):
        ctx = message.get("ctx") or {}
        await record_audit(
            session_maker,
            error="notification_failure",
            order_id=ctx.get("order_id"),
            # получатель может быть email: в user_id кладём только id из ctx
            user_id=ctx.get("user_id"),
            detail=f"{message.get('template')} to {recipient}: {detail}",
        )

    if notification_sink is None:
        notification_sink = HttpNotificationSink(settings.notifications_url, timeout=settings.notify_timeout)
    if alert_sink is None and settings.slack_webhook_url:
        alert_sink = SlackWebhookSink(settings.slack_webhook_url, timeout=settings.notify_timeout)
    if text_generator is None and settings.openai_api_key:
        text_generator = OpenAITextGenerator(settings.openai_api_key, settings.openai_model)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_maker = session_maker
    app.state.dispatcher = NotificationDispatcher(
        notification_sink,
        max_attempts=settings.notify_max_attempts,
        base_delay=settings.notify_base_delay,
        timeout=settings.notify_timeout,
        on_failure=audit_notification_failure,
    )
    app.state.alert_sink = alert_sink
    app.state.text_generator = text_generator
    app.state.scheduler = None

    # ✅ Роутеры
    app.include_router(events.router)
    app.include_router(orders.router)
    app.include_router(orders.users_router)
    app.include_router(shop.router)
    app.include_router(assistant.router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.on_event("startup")
    async def on_startup():
        if engine is not None and settings.create_tables:
            # Создаём таблицы (в development). В production используйте миграции (alembic).
            await create_tables(engine)
        if settings.scheduler_enabled:
            scheduler = schedule_jobs(AsyncIOScheduler(), session_maker, settings)
            scheduler.start()
            app.state.scheduler = scheduler
        log.info("storefront started (scheduler=%s)", settings.scheduler_enabled)

    @app.on_event("shutdown")
    async def on_shutdown():
        if app.state.scheduler is not None:
            app.state.scheduler.shutdown(wait=False)
        if engine is not None:
            await engine.dispose()

    return app


if __name__ == "__main__":
    uvicorn.run("storefront.main:create_app", factory=True, host="0.0.0.0", port=8000, reload=True)
