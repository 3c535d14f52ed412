"""
Recipient routing for recall alerts.

Decides, per recipient and independently of every other recipient, which
items it receives and in what shape:

- onlyNewItems recipients get the new items passing their filter (NewOnly)
- everyone else gets new items first, then the remaining latest items
  (LatestPlusNew)

Outside the latest10/bootstrap override, a recipient without onlyNewItems is
only notified when something passing its filter was added, changed or removed.
"""

from typing import Iterable

from models.feed import FeedItem
from models.notification import ContentSpec, RecipientConfig, RecipientRoute
from models.types import EmailMode
from shared.errors import NoRecipientsError

LATEST_ITEMS_LIMIT = 10


def item_matches_distributeurs(item: FeedItem, distributeurs: list[str]) -> bool:
    """
    Check if an item passes a recipient's distributeur filter.

    A filter name matches when it equals (case-insensitively) an entry of the
    parsed distributor list, or appears as a substring of the raw distributor
    text. An empty filter matches everything.
    """
    wanted = [name.strip().lower() for name in distributeurs if name and name.strip()]
    if not wanted:
        return True

    item_list = {entry.strip().lower() for entry in item.distributeurs_list or []}
    raw = (item.distributeurs_raw or "").lower()

    return any(name in item_list or (raw and name in raw) for name in wanted)


def filter_items_by_distributeurs(
    items: Iterable[FeedItem], distributeurs: list[str]
) -> list[FeedItem]:
    """Items passing the filter, in input order."""
    return [item for item in items if item_matches_distributeurs(item, distributeurs)]


def list_distributeurs(items: Iterable[FeedItem]) -> list[str]:
    """Sorted distributor names seen in enriched items, unique case-insensitively."""
    names: dict[str, str] = {}
    for item in items:
        for name in item.distributeurs_list or []:
            cleaned = name.strip()
            if cleaned and cleaned.lower() not in names:
                names[cleaned.lower()] = cleaned
    return sorted(names.values(), key=str.lower)


def merge_new_and_latest(
    new_items: list[FeedItem], latest_items: list[FeedItem]
) -> tuple[list[FeedItem], list[FeedItem]]:
    """
    De-duplicate new + latest by id, first occurrence wins.

    Returns:
        (new items, latest items not already listed)
    """
    seen: set[str] = set()
    unique_new = []
    for item in new_items:
        if item.id not in seen:
            seen.add(item.id)
            unique_new.append(item)

    remaining_latest = []
    for item in latest_items:
        if item.id not in seen:
            seen.add(item.id)
            remaining_latest.append(item)

    return unique_new, remaining_latest


def is_latest_override(email_mode: EmailMode, is_first_run: bool) -> bool:
    """latest10 mode and bootstrap runs send the latest view without a diff."""
    return email_mode == "latest10" or is_first_run


def route_recipient(
    recipient: RecipientConfig,
    new_items: list[FeedItem],
    latest_items: list[FeedItem],
    changed_items: list[FeedItem],
    removed_items: list[FeedItem],
    latest_override: bool,
) -> ContentSpec | None:
    """Content for a single recipient, None when it should get no email."""
    filters = recipient.distributeurs
    filtered_new = filter_items_by_distributeurs(new_items, filters)

    if recipient.only_new_items:
        if not filtered_new:
            return None
        unique_new, _ = merge_new_and_latest(filtered_new, [])
        return ContentSpec(kind="new_only", new_items=unique_new)

    filtered_changed = filter_items_by_distributeurs(changed_items, filters)
    filtered_removed = filter_items_by_distributeurs(removed_items, filters)

    if not latest_override and not (filtered_new or filtered_changed or filtered_removed):
        return None

    unique_new, remaining_latest = merge_new_and_latest(
        filtered_new, filter_items_by_distributeurs(latest_items, filters)
    )
    if not unique_new and not remaining_latest:
        return None

    return ContentSpec(
        kind="latest_plus_new",
        new_items=unique_new,
        latest_items=remaining_latest,
        changed_items=filtered_changed,
        removed_items=filtered_removed,
    )


def route_recipients(
    new_items: list[FeedItem],
    latest_items: list[FeedItem],
    recipients: list[RecipientConfig],
    email_mode: EmailMode = "auto",
    is_first_run: bool = False,
    changed_items: list[FeedItem] | None = None,
    removed_items: list[FeedItem] | None = None,
    latest_limit: int = LATEST_ITEMS_LIMIT,
) -> list[RecipientRoute]:
    """
    Compute the routing decision for every configured recipient.

    Args:
        new_items: Items classified New by change detection (enriched)
        latest_items: Most recent items of the current feed (enriched)
        recipients: Recipient configs, read fresh for this run
        email_mode: 'auto', 'diff' or 'latest10'
        is_first_run: True when no previous snapshot existed
        changed_items: Items classified Changed (enriched)
        removed_items: Items classified Removed (enriched)
        latest_limit: How many latest items make up the latest view

    Returns:
        One RecipientRoute per recipient, in config order

    Raises:
        NoRecipientsError: If no recipient is configured
    """
    if not recipients:
        raise NoRecipientsError("No alert email recipients configured.")

    latest_override = is_latest_override(email_mode, is_first_run)
    latest_view = latest_items[:latest_limit]

    return [
        RecipientRoute(
            recipient=recipient,
            content_spec=route_recipient(
                recipient,
                new_items,
                latest_view,
                changed_items or [],
                removed_items or [],
                latest_override,
            ),
        )
        for recipient in recipients
    ]
