from pydantic_settings import BaseSettings
from functools import lru_cache
from pathlib import Path
from typing import Optional


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Access Code Gate"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    PORT: int = 3000
    CORS_ORIGINS: list = ["*"]

    # Database
    DATABASE_URL: Optional[str] = None
    DEV_MODE: bool = False
    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_USER: str = "codegate"
    DB_PASS: str = ""
    DB_NAME: str = "codegate"
    DB_POOL_SIZE: int = 10

    # Redis
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""

    # Rate Limiting (per client IP on /check)
    RATE_LIMIT_WINDOW_MS: int = 60000
    RATE_LIMIT_MAX: int = 10

    # Geolocation
    GEO_LOOKUP_ENABLED: bool = True
    GEO_LOOKUP_URL: str = "http://ip-api.com/json/{ip}?fields=status,country,regionName,city"
    GEO_LOOKUP_TIMEOUT: float = 2.0

    # Security
    ADMIN_TOKEN: str = ""
    CODE_HASH_ITERATIONS: int = 260000

    # Admin
    ADMIN_LOG_LIMIT: int = 200
    ADMIN_LOG_MAX_LIMIT: int = 1000

    class Config:
        # Resolve backend/.env relative to this file so settings load correctly
        env_file = str(Path(__file__).resolve().parents[1] / ".env")
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
