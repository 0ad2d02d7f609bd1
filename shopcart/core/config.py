from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./shopcart.db"
    DATABASE_ECHO: bool = False

    # Session (anonymous cart token + authenticated user id live here)
    SESSION_SECRET_KEY: str
    SESSION_MAX_AGE: int = 3600 * 24 * 7  # 7 days

    # Shop Configuration
    SHOP_NAME: str = "My Shop"

    # Product catalog (local products table when unset)
    CATALOG_API_BASE_URL: Optional[str] = None
    CATALOG_TIMEOUT_SECONDS: float = 30.0

    # Cart writes
    CART_CONFLICT_RETRIES: int = Field(3, ge=0)

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
