from typing import AsyncGenerator
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from hoteldine.core.config import settings

class Base(DeclarativeBase):
    pass

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

from hoteldine.db.models.hotel import Hotel # noqa
from hoteldine.db.models.order import Order # noqa
from hoteldine.db.models.commission_settings import CommissionSettings # noqa
from hoteldine.db.models.hotel_wallet import HotelWallet, WalletTransaction # noqa
from hoteldine.db.models.settlement_payment import SettlementPayment # noqa

from sqlalchemy.engine.url import URL, make_url

_SSL_MODES = {"disable": False, "require": "require"}

def _get_db_config() -> tuple[URL, dict]:
    if not settings.DATABASE_URL:
        raise RuntimeError("DATABASE_URL is not set.")

    url_obj = make_url(settings.DATABASE_URL)
    if not url_obj.drivername.startswith("postgres"):
        return url_obj, {}

    url_obj = url_obj.set(drivername="postgresql+asyncpg")

    # asyncpg takes `ssl` as a connect argument, not `sslmode` in the URL
    query = dict(url_obj.query)
    ssl_mode = query.pop("sslmode", None)
    if ssl_mode is None:
        return url_obj, {}
    return url_obj.set(query=query), {"ssl": _SSL_MODES.get(ssl_mode, ssl_mode)}

_db_url, _db_connect_args = _get_db_config()

engine = create_async_engine(
    _db_url,
    echo=settings.DEBUG_MODE,
    future=True,
    connect_args=_db_connect_args
)

SessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session
