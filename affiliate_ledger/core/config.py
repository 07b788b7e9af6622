from pydantic import BaseModel
import os
from decimal import Decimal
from typing import List


class Settings(BaseModel):
    # Environment: local, dev, staging, prod
    ENV: str = os.getenv("ENV", "dev")

    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./affiliate_ledger.db")
    RUN_MIGRATIONS_ON_STARTUP: bool = os.getenv("RUN_MIGRATIONS_ON_STARTUP", "false").lower() == "true"

    # Shared store for the request-rate tracker (in-memory when unset)
    REDIS_URL: str = os.getenv("REDIS_URL", "")

    SENTRY_DSN: str = os.getenv("SENTRY_DSN", "")

    # Comma-separated list, "*" allows any origin (storefront referral links are embedded on external sites)
    CORS_ALLOWED_ORIGINS: str = os.getenv("CORS_ALLOWED_ORIGINS", "*")

    # Commission
    DEFAULT_COMMISSION_RATE: Decimal = Decimal(os.getenv("DEFAULT_COMMISSION_RATE", "15"))
    DEFAULT_CHECKOUT_DISCOUNT: Decimal = Decimal(os.getenv("DEFAULT_CHECKOUT_DISCOUNT", "10"))
    CLICK_RECONCILIATION_LOOKBACK_DAYS: int = int(os.getenv("CLICK_RECONCILIATION_LOOKBACK_DAYS", "30"))

    # Abuse throttling (per client IP, fixed window)
    ORDER_RATE_LIMIT_MAX: int = int(os.getenv("ORDER_RATE_LIMIT_MAX", "30"))
    ORDER_RATE_LIMIT_WINDOW_SECONDS: int = int(os.getenv("ORDER_RATE_LIMIT_WINDOW_SECONDS", "300"))
    CLICK_RATE_LIMIT_MAX: int = int(os.getenv("CLICK_RATE_LIMIT_MAX", "60"))
    CLICK_RATE_LIMIT_WINDOW_SECONDS: int = int(os.getenv("CLICK_RATE_LIMIT_WINDOW_SECONDS", "60"))

    # Conversion notifications
    ADMIN_EMAILS: str = os.getenv("ADMIN_EMAILS", "")
    NOTIFY_ON_CONVERSION: bool = os.getenv("NOTIFY_ON_CONVERSION", "true").lower() == "true"

    @property
    def database_url(self) -> str:
        return self.DATABASE_URL

    @property
    def redis_url(self) -> str:
        return self.REDIS_URL

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def admin_emails(self) -> List[str]:
        return [e.strip() for e in self.ADMIN_EMAILS.split(",") if e.strip()]


settings = Settings()
