"""Collaborator ports used by the run orchestrator."""

from typing import Protocol

from models.feed import FeedItem, Snapshot
from models.notification import EmailMessage, RecipientConfig


class FeedSource(Protocol):
    """Port for fetching the normalized feed."""

    def fetch_feed_items(self) -> list[FeedItem]:
        """Return current items, most recent first. Raises FetchError."""
        ...


class AlertStore(Protocol):
    """Port for snapshot and recipient config storage."""

    def get_latest_snapshot(self) -> Snapshot | None:
        """Return the most recent snapshot, None before the first run."""
        ...

    def insert_snapshot(self, snapshot: Snapshot) -> None:
        """Append a snapshot. Raises PersistError."""
        ...

    def get_recipient_configs(self) -> list[RecipientConfig]:
        """Return recipient configs, read fresh on every call."""
        ...


class MailTransport(Protocol):
    """Port for outbound email."""

    def send_message(self, message: EmailMessage) -> str:
        """Send a message and return its id. Raises SendError."""
        ...
