"""Configuration for the doctors portal backend.

All deployment settings come from environment variables (a local .env file is
loaded first). Business defaults live here so they can be changed without
touching code.
"""
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from doctors_portal.logging_config import get_logger

logger = get_logger(__name__)

DEV_TOKEN_SECRET = "dev-only-access-token-secret"

# Default catalog used by scripts/manage_catalog.py seed
DEFAULT_APPOINTMENT_OPTIONS = [
    {
        "name": "Teeth Orthodontics",
        "price": 99,
        "slots": ["08.00 AM - 08.30 AM", "08.30 AM - 09.00 AM", "09.00 AM - 09.30 AM",
                  "09.30 AM - 10.00 AM", "10.00 AM - 10.30 AM", "10.30 AM - 11.00 AM"],
    },
    {
        "name": "Cosmetic Dentistry",
        "price": 99,
        "slots": ["08.00 AM - 08.30 AM", "08.30 AM - 09.00 AM", "09.00 AM - 09.30 AM",
                  "10.00 AM - 10.30 AM", "10.30 AM - 11.00 AM"],
    },
    {
        "name": "Teeth Cleaning",
        "price": 99,
        "slots": ["08.00 AM - 08.30 AM", "09.00 AM - 09.30 AM", "10.00 AM - 10.30 AM",
                  "11.00 AM - 11.30 AM"],
    },
]


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, built once at startup and passed explicitly."""
    database_url: str = "sqlite:///doctors_portal.db"
    access_token_secret: str = DEV_TOKEN_SECRET
    token_ttl_seconds: int = 3600
    stripe_secret_key: Optional[str] = None
    stripe_api_base: str = "https://api.stripe.com"
    payment_currency: str = "usd"
    payment_timeout_seconds: float = 15.0
    payment_max_retries: int = 0
    store_timeout_seconds: float = 10.0
    verify_payment_amount: bool = True
    # "token" binds owner lookups to the verified claim, "query" keeps the
    # looser legacy comparison.
    owner_check: str = "token"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 5000

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from the environment (and .env if present)."""
        load_dotenv()

        secret = os.getenv("ACCESS_TOKEN_SECRET") or os.getenv("ACCESS_TOKEN")
        if not secret:
            logger.warning("access_token_secret_missing", using="development default")
            secret = DEV_TOKEN_SECRET

        owner_check = os.getenv("OWNER_CHECK", "token").strip().lower()
        if owner_check not in ("token", "query"):
            raise ValueError(f"OWNER_CHECK must be 'token' or 'query', got {owner_check!r}")

        origins = os.getenv("CORS_ORIGINS", "*")

        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite:///doctors_portal.db"),
            access_token_secret=secret,
            token_ttl_seconds=int(os.getenv("TOKEN_TTL_SECONDS", "3600")),
            stripe_secret_key=os.getenv("STRIPE_SECRET_KEY"),
            stripe_api_base=os.getenv("STRIPE_API_BASE", "https://api.stripe.com"),
            payment_currency=os.getenv("PAYMENT_CURRENCY", "usd"),
            payment_timeout_seconds=float(os.getenv("PAYMENT_TIMEOUT_SECONDS", "15")),
            payment_max_retries=int(os.getenv("PAYMENT_MAX_RETRIES", "0")),
            store_timeout_seconds=float(os.getenv("STORE_TIMEOUT_SECONDS", "10")),
            verify_payment_amount=_env_bool("VERIFY_PAYMENT_AMOUNT", True),
            owner_check=owner_check,
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "5000")),
        )
