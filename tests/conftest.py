import asyncio
import os
import tempfile

import pytest

_DB_DIR = tempfile.mkdtemp(prefix="hoteldine-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["REDIS_ENABLED"] = "false"
os.environ["FRONTEND_URL"] = "https://dine.example.com/"

import fakeredis  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

# main imports db.session before any model module
from hoteldine.main import app  # noqa: E402
from hoteldine.db.session import Base, get_db  # noqa: E402
from hoteldine.core.security import Role, create_access_token  # noqa: E402

# Connections are opened per use so sessions work from any event loop
test_engine = create_async_engine(os.environ["DATABASE_URL"], poolclass=NullPool)
TestSession = async_sessionmaker(
    bind=test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


async def _override_get_db():
    async with TestSession() as session:
        yield session


app.dependency_overrides[get_db] = _override_get_db


async def _reset_schema():
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture(autouse=True)
def reset_db():
    asyncio.run(_reset_schema())
    yield


@pytest.fixture()
def run():
    """Run a coroutine function against a fresh session: run(lambda db: ...)."""
    def _run(fn):
        async def _inner():
            async with TestSession() as session:
                return await fn(session)
        return asyncio.run(_inner())
    return _run


@pytest.fixture()
def fake_server():
    return fakeredis.FakeServer()


@pytest.fixture()
def fake_redis(fake_server):
    return fakeredis.FakeAsyncRedis(server=fake_server, decode_responses=True)


@pytest.fixture()
def redis_inspector(fake_server):
    """Synchronous view of the same fake server, usable outside the app loop."""
    return fakeredis.FakeRedis(server=fake_server, decode_responses=True)


@pytest.fixture()
def client(fake_redis):
    with TestClient(app) as c:
        app.state.redis_client = fake_redis
        yield c


@pytest.fixture()
def client_without_redis():
    with TestClient(app) as c:
        app.state.redis_client = None
        yield c


def auth(role: Role, subject: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(subject, role)}"}


@pytest.fixture()
def admin_headers():
    return auth(Role.ADMIN, "admin-1")


@pytest.fixture()
def user_headers():
    return auth(Role.USER, "user-1")


@pytest.fixture()
def restaurant_headers():
    return auth(Role.RESTAURANT, "rest-1")


@pytest.fixture()
def delivery_headers():
    return auth(Role.DELIVERY, "rider-1")


@pytest.fixture()
def make_hotel(client, admin_headers):
    def _make(phone="9000000001", commission=10, admin_commission=20, is_active=True):
        resp = client.post(
            "/admin/hotels",
            json={
                "hotelName": "Sea View",
                "phone": phone,
                "email": "Desk@SeaView.example",
                "address": "1 Beach Road",
                "commission": commission,
                "adminCommission": admin_commission,
                "isActive": is_active,
            },
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _make


@pytest.fixture()
def place_order(client, user_headers):
    def _place(hotel_ref=None, payment_method="online", price=100, quantity=1, restaurant_id="rest-1"):
        body = {
            "restaurantId": restaurant_id,
            "restaurantName": "Annapoorna",
            "items": [{"itemId": "dosa", "name": "Masala Dosa", "price": price, "quantity": quantity}],
            "paymentMethod": payment_method,
        }
        if hotel_ref:
            body["hotelReference"] = hotel_ref
            body["roomNumber"] = "204"
        resp = client.post("/orders", json=body, headers=user_headers)
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _place


@pytest.fixture()
def hotel_headers():
    def _headers(hotel_id: str) -> dict:
        return auth(Role.HOTEL, hotel_id)
    return _headers
