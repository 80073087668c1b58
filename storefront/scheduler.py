# storefront/scheduler.py
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.orm import sessionmaker

from .config import Settings
from .triggers import complete_pending_orders

log = logging.getLogger("storefront.scheduler")

PENDING_ORDERS_JOB_ID = "complete_pending_orders"


def schedule_jobs(scheduler: AsyncIOScheduler, session_maker: sessionmaker, settings: Settings) -> AsyncIOScheduler:
    """Registers the periodic pending-order sweep (every 24 hours by default)."""
    scheduler.add_job(
        complete_pending_orders,
        "interval",
        hours=settings.pending_orders_interval_hours,
        args=[session_maker],
        id=PENDING_ORDERS_JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    log.info("scheduled %s every %dh", PENDING_ORDERS_JOB_ID, settings.pending_orders_interval_hours)
    return scheduler
