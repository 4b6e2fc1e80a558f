"""
Runtime configuration for the Doc House API.

Values come from the environment (optionally a `.env` file in the working
directory) and are collected once into an immutable Settings object that is
handed to create_app().
"""
import logging
import os
import warnings
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_NAME = "docHouseDB"
DEFAULT_PAYMENT_API_URL = "https://api.stripe.com/v1"
INSECURE_DEV_SECRET = "INSECURE-DEV-SECRET-CHANGE-IN-PRODUCTION"  # noqa: S105 - dev fallback only


@dataclass(frozen=True)
class Settings:
    database_url: str = "mongodb://localhost:27017"
    database_name: str = DEFAULT_DATABASE_NAME
    jwt_secret: str = INSECURE_DEV_SECRET
    token_ttl: timedelta = timedelta(hours=2)
    payment_secret_key: Optional[str] = None
    payment_api_url: str = DEFAULT_PAYMENT_API_URL
    currency: str = "usd"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    port: int = 5000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()

        database_url = os.getenv("DATABASE_URL")
        if not database_url:
            user = os.getenv("DB_USER")
            password = os.getenv("DB_PASS")
            host = os.getenv("DB_HOST")
            if user and password and host:
                database_url = f"mongodb+srv://{user}:{password}@{host}/?retryWrites=true&w=majority"
            else:
                database_url = "mongodb://localhost:27017"
                logger.warning("DATABASE_URL not set; using local MongoDB at %s", database_url)

        jwt_secret = os.getenv("ACCESS_TOKEN_SECRET")
        if not jwt_secret:
            warnings.warn(
                "ACCESS_TOKEN_SECRET not set! Using insecure default - DO NOT USE IN PRODUCTION",
                RuntimeWarning,
                stacklevel=2,
            )
            jwt_secret = INSECURE_DEV_SECRET

        payment_secret_key = os.getenv("PAYMENT_SECRET_KEY")
        if not payment_secret_key:
            logger.warning("PAYMENT_SECRET_KEY not set; payment intents will fail until configured")

        origins = os.getenv("CORS_ORIGINS", "*")

        return cls(
            database_url=database_url,
            database_name=os.getenv("DB_NAME", DEFAULT_DATABASE_NAME),
            jwt_secret=jwt_secret,
            payment_secret_key=payment_secret_key,
            payment_api_url=os.getenv("PAYMENT_API_URL", DEFAULT_PAYMENT_API_URL),
            currency=os.getenv("PAYMENT_CURRENCY", "usd").lower(),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            port=int(os.getenv("PORT", 5000)),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )
