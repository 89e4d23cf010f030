from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./carts.db"
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8083
    FRONTEND_ORIGINS: List[str] = ["http://localhost:3000"]
    LOG_LEVEL: str = "INFO"

    PRODUCT_SERVICE_URL: str = "http://product-service:8082"
    PRODUCT_SERVICE_TIMEOUT_SECONDS: float = 10.0

    CART_TTL_SECONDS: int = 72 * 3600
    CART_TAX_RATE: Decimal = Decimal("0.18")
    CART_SHIPPING_COST: Decimal = Decimal("0.00")
    CART_COUPON_PERCENT_OFF: Decimal = Decimal("10")
    CART_MAX_WRITE_RETRIES: int = 3

    CART_ABANDON_AFTER_SECONDS: int = 24 * 3600
    CART_SWEEP_INTERVAL_SECONDS: int = 3600
    CART_PURGE_INTERVAL_SECONDS: int = 60
    SCHEDULER_ENABLED: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()


@dataclass(frozen=True)
class CartPolicy:
    """Tunables handed to the cart service and the sweeper at construction."""

    ttl: timedelta = timedelta(hours=72)
    tax_rate: Decimal = Decimal("0.18")
    shipping_cost: Decimal = Decimal("0.00")
    abandon_after: timedelta = timedelta(hours=24)
    max_write_retries: int = 3

    @classmethod
    def from_settings(cls, s: Settings) -> "CartPolicy":
        return cls(
            ttl=timedelta(seconds=s.CART_TTL_SECONDS),
            tax_rate=s.CART_TAX_RATE,
            shipping_cost=s.CART_SHIPPING_COST,
            abandon_after=timedelta(seconds=s.CART_ABANDON_AFTER_SECONDS),
            max_write_retries=s.CART_MAX_WRITE_RETRIES,
        )
