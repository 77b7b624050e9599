import logging
import math
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
import redis.asyncio as redis

from hoteldine.db.session import engine, Base
from hoteldine.routers import admin, delivery, hotel, order, public, restaurant
from hoteldine.core.config import settings

# Configure Logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG_MODE else logging.INFO,
    format="%(asctime)s - [%(levelname)s] - %(name)s - %(message)s",
    handlers=[
        logging.FileHandler("app.log"),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)


# Lifespan events
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.APP_NAME} application starting up...")

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured.")

    # Redis is optional: cache and rate limiting fail open without it
    app.state.redis_client = None
    if settings.REDIS_ENABLED:
        try:
            app.state.redis_client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=True
            )
            await app.state.redis_client.ping()
            logger.info("Successfully connected to Redis.")
        except Exception as e:
            logger.error(f"Error connecting to Redis: {e}")
            app.state.redis_client = None
    else:
        logger.info("Redis disabled by configuration.")

    logger.info("FastAPI startup complete.")
    yield

    if app.state.redis_client:
        await app.state.redis_client.aclose()
        logger.info("Redis connection closed.")
    await engine.dispose()
    logger.info("Resources cleaned up. Application shutting down.")


# FastAPI App
app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _json_safe(value):
    # JSON has no Infinity/NaN; echo such inputs back as text
    if isinstance(value, float) and not math.isfinite(value):
        return str(value)
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation failed for {request.method} {request.url.path}")
    return JSONResponse(
        status_code=422,
        content={"detail": _json_safe(jsonable_encoder(exc.errors()))},
    )


@app.get("/")
def read_root():
    logger.info("Root endpoint accessed.")
    return {"message": f"Welcome to {settings.APP_NAME}!"}


# Routers
app.include_router(order.router, prefix="/orders", tags=["orders"])
app.include_router(restaurant.router, prefix="/restaurant", tags=["restaurant"])
app.include_router(delivery.router, prefix="/delivery", tags=["delivery"])
app.include_router(public.router, prefix="/hotel/public", tags=["hotel-public"])
app.include_router(hotel.router, prefix="/hotel", tags=["hotel"])
app.include_router(admin.router)
