"""Environment configuration for the feed alert pipeline."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from models.types import EmailMode, SendFailurePolicy

load_dotenv()

DEFAULT_FEED_URL = "https://rappel.conso.gouv.fr/rss?categorie=01"


class Settings(BaseModel):
    """Runtime settings read from the environment."""

    feed_url: str = DEFAULT_FEED_URL
    email_mode: EmailMode = "auto"
    enrich_concurrency: int = Field(4, ge=1)
    latest_items_limit: int = Field(10, ge=1)
    send_failure_policy: SendFailurePolicy = "abort"
    http_timeout: float = Field(30.0, gt=0)
    http_max_retries: int = Field(3, ge=1)
    notification_from_email: str = "rappel-conso-alerts@example.com"


def normalize_email_mode(mode: str | None) -> EmailMode:
    """Map a raw CRON_EMAIL_MODE value to a known mode (unknown -> 'auto')."""
    normalized = (mode or "").strip().lower()
    if normalized == "diff":
        return "diff"
    if normalized == "latest10":
        return "latest10"
    return "auto"


def normalize_send_failure_policy(policy: str | None) -> SendFailurePolicy:
    """Map a raw SEND_FAILURE_POLICY value to a known policy (unknown -> 'abort')."""
    if (policy or "").strip().lower() == "continue":
        return "continue"
    return "abort"


def load_settings() -> Settings:
    """Build Settings from environment variables."""
    return Settings(
        feed_url=os.getenv("FEED_URL") or DEFAULT_FEED_URL,
        email_mode=normalize_email_mode(os.getenv("CRON_EMAIL_MODE")),
        enrich_concurrency=int(os.getenv("ENRICH_CONCURRENCY", "4")),
        latest_items_limit=int(os.getenv("LATEST_ITEMS_LIMIT", "10")),
        send_failure_policy=normalize_send_failure_policy(
            os.getenv("SEND_FAILURE_POLICY")
        ),
        http_timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
        http_max_retries=int(os.getenv("HTTP_MAX_RETRIES", "3")),
        notification_from_email=os.getenv(
            "NOTIFICATION_FROM_EMAIL", "rappel-conso-alerts@example.com"
        ),
    )
