import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import NullPool

from storefront.config import Settings
from storefront.database import create_engine, create_session_maker, create_tables
from storefront.errors import NotificationFailure
from storefront.main import create_app
from storefront.models import Product, ProductVariant, User


def run(coro):
    return asyncio.run(coro)


class RecordingSink:
    """In-memory notification sink."""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.sent = []
        self.calls = 0

    async def send(self, recipient, message):
        self.calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise NotificationFailure(recipient, "simulated outage")
        self.sent.append((recipient, message))


class FakeGenerator:
    def __init__(self, reply="Generated text", error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    async def __call__(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def session_maker(tmp_path):
    # NullPool: every asyncio.run() gets its own connections
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}", poolclass=NullPool)
    run(create_tables(engine))
    yield create_session_maker(engine)
    run(engine.dispose())


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite+aiosqlite://",
        settlement_retry_backoff=0,
        notify_base_delay=0,
        notify_timeout=1.0,
        scheduler_enabled=False,
    )


async def add_user(session_maker, user_id, points=0, email=None):
    async with session_maker() as session:
        session.add(User(id=user_id, email=email, loyalty_points=points))
        await session.commit()


async def get_user(session_maker, user_id):
    async with session_maker() as session:
        return await session.get(User, user_id)


async def add_product(session_maker, product_id, name, price, variants):
    async with session_maker() as session:
        session.add(Product(
            id=product_id,
            name=name,
            price=price,
            variants=[ProductVariant(**v) for v in variants],
        ))
        await session.commit()


@pytest.fixture
def notification_sink():
    return RecordingSink()


@pytest.fixture
def alert_sink():
    return RecordingSink()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def client(session_maker, settings, notification_sink, alert_sink, generator):
    app = create_app(
        settings,
        session_maker=session_maker,
        notification_sink=notification_sink,
        alert_sink=alert_sink,
        text_generator=generator,
    )
    with TestClient(app) as c:
        yield c
