from dataclasses import replace
from datetime import timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from fastapi.testclient import TestClient

from storefront.main import create_app
from storefront.scheduler import PENDING_ORDERS_JOB_ID, schedule_jobs
from storefront.triggers import complete_pending_orders

from conftest import RecordingSink


def test_pending_orders_job_runs_daily(settings):
    session_maker = object()
    scheduler = schedule_jobs(AsyncIOScheduler(), session_maker, settings)

    job = scheduler.get_job(PENDING_ORDERS_JOB_ID)
    assert job is not None
    assert job.func is complete_pending_orders
    assert job.args == (session_maker,)
    assert isinstance(job.trigger, IntervalTrigger)
    assert job.trigger.interval == timedelta(hours=24)


def test_interval_comes_from_settings(settings):
    scheduler = schedule_jobs(AsyncIOScheduler(), object(), replace(settings, pending_orders_interval_hours=6))
    assert scheduler.get_job(PENDING_ORDERS_JOB_ID).trigger.interval == timedelta(hours=6)


def test_app_starts_and_stops_scheduler(session_maker, settings):
    app = create_app(replace(settings, scheduler_enabled=True), session_maker=session_maker, notification_sink=RecordingSink())
    with TestClient(app):
        scheduler = app.state.scheduler
        assert scheduler.running
        assert scheduler.get_job(PENDING_ORDERS_JOB_ID) is not None
    assert not scheduler.running
