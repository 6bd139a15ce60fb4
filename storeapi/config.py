import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

# Force-load .env (Windows-safe, reload-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")

DEFAULT_PAYMENT_TTL_SECONDS = 600


class Settings:
    """Process-wide configuration, read once from the environment at startup."""

    def __init__(self, environ=None):
        env = os.environ if environ is None else environ

        self.merchant_secret = env.get("MERCHANT_SECRET")
        if not self.merchant_secret:
            raise RuntimeError("MERCHANT_SECRET is not set. Check your .env file.")

        self.database_url = env.get("DATABASE_URL")
        if not self.database_url:
            raise RuntimeError("DATABASE_URL is not set. Check your .env file.")

        self.merchant_upi = env.get("MERCHANT_UPI") or None
        self.jwt_secret = env.get("JWT_SECRET")
        self.log_level = env.get("LOG_LEVEL", "INFO").upper()
        self.payment_ttl_seconds = int(
            env.get("PAYMENT_TTL_SECONDS", DEFAULT_PAYMENT_TTL_SECONDS)
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
