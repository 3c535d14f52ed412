"""Pydantic models for data validation and type checking."""

from models.feed import DistributorInfo, FeedItem, Snapshot
from models.notification import (
    ContentSpec,
    DeliveryResult,
    EmailContent,
    EmailMessage,
    RecipientConfig,
    RecipientRoute,
)
from models.run import RunCounts, RunResult

__all__ = [
    "FeedItem",
    "DistributorInfo",
    "Snapshot",
    "RecipientConfig",
    "ContentSpec",
    "RecipientRoute",
    "EmailContent",
    "EmailMessage",
    "DeliveryResult",
    "RunCounts",
    "RunResult",
]
