import json
import os
from typing import Any, cast

from dotenv import load_dotenv
from supabase import Client, create_client

from models.feed import FeedItem, Snapshot
from models.notification import RecipientConfig
from notifications.recipient_config import normalize_recipient_configs
from shared.errors import PersistError

load_dotenv()

SNAPSHOTS_TABLE = "rss_snapshots"
EMAIL_CONFIG_TABLE = "email_config"
EMAIL_CONFIG_ID = "default"


def get_supabase_client() -> Client:
    """Get initialized Supabase client."""
    url: str | None = os.getenv("SUPABASE_URL")
    key: str | None = os.getenv("SUPABASE_SERVICE_KEY")

    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")

    return create_client(url, key)


def _normalize_snapshot_items(raw_items: Any) -> list[dict[str, Any]]:
    """Snapshot items may come back as a list or as a JSON-encoded string."""
    if isinstance(raw_items, list):
        return raw_items
    if isinstance(raw_items, str):
        try:
            parsed = json.loads(raw_items)
        except ValueError:
            return []
        return parsed if isinstance(parsed, list) else []
    return []


class SupabaseStore:
    """Snapshot and recipient config storage backed by Supabase tables."""

    def __init__(self, client: Client | None = None):
        self.client = client or get_supabase_client()

    def get_latest_snapshot(self) -> Snapshot | None:
        """Most recent snapshot by created_at, None if no snapshot exists yet."""
        response = (
            self.client.table(SNAPSHOTS_TABLE)
            .select("id, created_at, items")
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )

        if not response.data:
            return None

        row = cast(dict[str, Any], response.data[0])
        items = [
            FeedItem.model_validate(item)
            for item in _normalize_snapshot_items(row.get("items"))
            if isinstance(item, dict) and item.get("id")
        ]
        return Snapshot(id=row["id"], created_at=row.get("created_at"), items=items)

    def insert_snapshot(self, snapshot: Snapshot) -> None:
        """Append a snapshot. Raises PersistError on any storage failure."""
        try:
            self.client.table(SNAPSHOTS_TABLE).insert(
                {
                    "id": snapshot.id,
                    "items": [item.to_snapshot_dict() for item in snapshot.items],
                },
                returning="minimal",
            ).execute()
        except Exception as e:
            raise PersistError(
                f"Could not insert snapshot: {e}",
                context={"snapshot_id": snapshot.id, "item_count": len(snapshot.items)},
            ) from e

    def get_recipient_configs(self) -> list[RecipientConfig]:
        """Recipient configs from the single email_config row (empty if unset)."""
        response = (
            self.client.table(EMAIL_CONFIG_TABLE)
            .select("recipients, alert_email_to, updated_at")
            .eq("id", EMAIL_CONFIG_ID)
            .execute()
        )

        if not response.data:
            return []

        row = cast(dict[str, Any], response.data[0])
        raw = row.get("recipients")
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except ValueError:
                raw = None
        if raw is None:
            # Legacy rows only hold a comma separated address list
            raw = row.get("alert_email_to")
        return normalize_recipient_configs(raw)

    def upsert_recipient_configs(
        self, recipients: list[RecipientConfig]
    ) -> list[RecipientConfig]:
        """Replace the stored recipient list and return it as saved."""
        payload = [r.model_dump(by_alias=True) for r in recipients]
        try:
            self.client.table(EMAIL_CONFIG_TABLE).upsert(
                {
                    "id": EMAIL_CONFIG_ID,
                    "recipients": payload,
                    "alert_email_to": ", ".join(r.email for r in recipients),
                    "updated_at": "now()",
                }
            ).execute()
        except Exception as e:
            raise PersistError(f"Could not save recipient config: {e}") from e
        return self.get_recipient_configs()
