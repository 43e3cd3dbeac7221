"""
Shared fixtures.

Environment is pinned before anything from ``orderdesk`` is imported:
mock notifier with no failures or latency, Celery in eager mode, ledger
export off, data files in a throwaway directory.
"""

import os
import tempfile

_DATA_DIR = tempfile.mkdtemp(prefix="orderdesk-test-")

os.environ.update({
    "ENV_MODE": "development",
    "DATABASE_URL": f"sqlite+aiosqlite:///{_DATA_DIR}/bootstrap.db",
    "REDIS_URL": "redis://localhost:6399/0",
    "CELERY_TASK_ALWAYS_EAGER": "true",
    "LEDGER_EXPORT_ENABLED": "false",
    "NOTIFICATIONS_ENABLED": "true",
    "MOCK_FAILURE_RATE": "0",
    "MOCK_MIN_LATENCY": "0",
    "MOCK_MAX_LATENCY": "0",
    "DATA_DIRECTORY": _DATA_DIR,
})

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from orderdesk.api.deps import get_dispatcher
from orderdesk.core.config import BroadcastScope
from orderdesk.database import get_db, init_db
from orderdesk.models import UserRole
from orderdesk.schemas import LoginRequest, OrderCreate
from orderdesk.services.auth import AuthService
from orderdesk.services.broadcast import OrderBroadcaster
from orderdesk.services.orders import OrderLifecycleService


class RecordingListener:
    """Stands in for a WebSocket: remembers every message."""

    def __init__(self):
        self.messages = []

    async def send_json(self, data):
        self.messages.append(data)

    @property
    def events(self):
        return [m["event"] for m in self.messages]


class BrokenListener:
    async def send_json(self, data):
        raise RuntimeError("socket closed")


def dine_in_payload(**overrides):
    payload = {
        "orderType": "dine-in",
        "tableNumber": "T5",
        "whatsappNumber": "9998887776",
        "items": [{"name": "Coffee", "price": 100, "qty": 2}],
        "total": 200,
    }
    payload.update(overrides)
    return payload


def delivery_payload(**overrides):
    payload = {
        "orderType": "home-delivery",
        "whatsappNumber": "9876543210",
        "customerName": "Meera",
        "customerPhone": "9876543210",
        "deliveryAddress": "12 MG Road",
        "items": [
            {"menuItem": 3, "name": "Veg Biryani", "price": 220, "qty": 1},
            {"name": "Lime Soda", "price": 60, "qty": 2},
        ],
        "total": 340,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_order():
    """Build an OrderCreate from the camelCase payload helpers."""
    def _make(kind="dine-in", **overrides):
        builder = dine_in_payload if kind == "dine-in" else delivery_payload
        return OrderCreate.model_validate(builder(**overrides))
    return _make


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def broadcaster():
    return OrderBroadcaster(BroadcastScope.ALL)


@pytest.fixture
def dispatched():
    """(event, payload) pairs handed to the side-effect dispatcher."""
    return []


@pytest.fixture
def lifecycle(db, broadcaster, dispatched):
    return OrderLifecycleService(
        db,
        broadcaster,
        dispatcher=lambda event, payload: dispatched.append((event, payload)),
    )


@pytest.fixture
def app(session_maker, broadcaster, dispatched):
    from orderdesk.main import app

    async def override_get_db():
        async with session_maker() as session:
            yield session

    def recorder(event, payload):
        dispatched.append((event, payload))

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: recorder
    previous = app.state.broadcaster
    app.state.broadcaster = broadcaster
    yield app
    app.dependency_overrides.clear()
    app.state.broadcaster = previous


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def admin_token(session_maker):
    async with session_maker() as session:
        service = AuthService(session)
        await service.create_user("admin@example.com", "admin-pass", UserRole.ADMIN, "Admin")
        token, _ = await service.login(
            LoginRequest(email="admin@example.com", password="admin-pass")
        )
    return token


@pytest.fixture
def admin_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}
