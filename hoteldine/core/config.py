from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env.local",
        extra="ignore"
    )

#  Database / cache
    DATABASE_URL: str | None = None
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_ENABLED: bool = True


#  Auth
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24


#  QR landing
    FRONTEND_URL: str = "http://localhost:5173"


#  Fees (INR)
    DELIVERY_FEE: float = 25.0
    FREE_DELIVERY_THRESHOLD: float = 149.0
    PLATFORM_FEE: float = 5.0
    GST_RATE: float = 5.0


#  Commission defaults, used until an admin saves settings
    QR_HOTEL_COMMISSION: float = 10.0
    QR_ADMIN_COMMISSION: float = 20.0
    DIRECT_ADMIN_COMMISSION: float = 30.0
    DIRECT_RESTAURANT_COMMISSION: float = 70.0


#  Rate limits (seconds / requests per window)
#  X-Forwarded-For is only read when the peer is one of these proxies
    TRUSTED_PROXIES: list[str] = []
    RATE_LIMIT_WINDOW: int = 15 * 60
    RATE_LIMIT_USER_MAX: int = 200
    RATE_LIMIT_IP_MAX: int = 100
    RATE_LIMIT_STRICT_WINDOW: int = 60 * 60
    RATE_LIMIT_STRICT_MAX: int = 10


#  Cache TTLs (seconds)
    CACHE_TTL_HOTEL_DETAILS: int = 600
    CACHE_TTL_HOTEL_LIST: int = 300
    CACHE_TTL_DELIVERY_LOCATION: int = 1800


    APP_NAME: str = "HotelDine"
    DEBUG_MODE: bool = False

settings = Settings()
