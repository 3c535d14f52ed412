"""
Change detection between two observations of the recall feed.

Items are compared by id; content changes are detected through a SHA-256
fingerprint over a fixed, ordered subset of feed fields. Enrichment fields
(distributors, motif) are never part of the fingerprint.
"""

import hashlib
import json
from typing import Iterable

from pydantic import BaseModel, Field

from models.feed import FeedItem
from models.types import Fingerprint, ItemID

# Order matters: it is part of the digest
FINGERPRINT_FIELDS = (
    ("id", "id"),
    ("title", "title"),
    ("link", "link"),
    ("pubDate", "pub_date"),
    ("descriptionHtml", "description_html"),
    ("enclosureUrl", "enclosure_url"),
)


class ChangeSet(BaseModel):
    """Classification of current vs. previous items (unchanged items are only counted)."""

    new_items: list[FeedItem] = Field(default_factory=list)
    changed_items: list[FeedItem] = Field(default_factory=list)
    removed_items: list[FeedItem] = Field(default_factory=list)
    unchanged_count: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(self.new_items or self.changed_items or self.removed_items)


def fingerprint(item: FeedItem) -> Fingerprint:
    """Deterministic digest of an item's feed content. Missing fields hash as ''."""
    payload = {
        key: "" if getattr(item, attr) is None else str(getattr(item, attr))
        for key, attr in FINGERPRINT_FIELDS
    }
    encoded = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def build_fingerprint_map(items: Iterable[FeedItem]) -> dict[ItemID, Fingerprint]:
    """Map id -> fingerprint. Duplicate ids: last one wins."""
    return {item.id: fingerprint(item) for item in items}


def unique_by_id(items: Iterable[FeedItem]) -> list[FeedItem]:
    """Keep the first occurrence of each id, preserving order."""
    seen: set[str] = set()
    unique = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)
    return unique


def latest_by_id(items: Iterable[FeedItem]) -> list[FeedItem]:
    """
    One item per id, placed where the id first appears.

    The item kept is the last occurrence, the one build_fingerprint_map
    fingerprints, so a duplicated id is reported with the content it was
    classified on.
    """
    last: dict[str, FeedItem] = {}
    for item in items:
        last[item.id] = item
    return list(last.values())


def detect_changes(
    previous_items: list[FeedItem], current_items: list[FeedItem]
) -> ChangeSet:
    """
    Diff the current feed against the previous snapshot.

    Args:
        previous_items: Items from the latest persisted snapshot (may be empty)
        current_items: Items from this fetch, most recent first

    Returns:
        ChangeSet with new/changed/removed lists in input order. A duplicated
        id appears once, carrying its last occurrence.
    """
    previous_map = build_fingerprint_map(previous_items)
    current_map = build_fingerprint_map(current_items)
    current_unique = latest_by_id(current_items)

    new_items = [item for item in current_unique if item.id not in previous_map]
    changed_items = [
        item
        for item in current_unique
        if item.id in previous_map and previous_map[item.id] != current_map[item.id]
    ]
    removed_items = [
        item for item in latest_by_id(previous_items) if item.id not in current_map
    ]
    unchanged_count = sum(
        1
        for item_id, digest in current_map.items()
        if previous_map.get(item_id) == digest
    )

    return ChangeSet(
        new_items=new_items,
        changed_items=changed_items,
        removed_items=removed_items,
        unchanged_count=unchanged_count,
    )
