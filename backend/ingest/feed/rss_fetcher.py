"""
RSS feed fetcher for RappelConso recall notices.

Fetches the feed and normalizes entries into FeedItem, most recent first.
"""

from typing import Any

import feedparser
import requests

from models.feed import FeedItem
from models.types import ItemID
from shared.config import DEFAULT_FEED_URL
from shared.errors import FetchError
from shared.utils import to_iso_date, to_timestamp_ms


def _text(value: Any) -> str:
    return str(value or "").strip()


def _enclosure_url(entry: Any) -> str:
    """Image URL from <enclosure>, falling back to <media:content>."""
    for enclosure in entry.get("enclosures") or []:
        href = enclosure.get("href") or enclosure.get("url")
        if href:
            return str(href)
    for media in entry.get("media_content") or []:
        if media.get("url"):
            return str(media["url"])
    return ""


def normalize_entry(entry: Any, index: int) -> FeedItem:
    """Build a FeedItem; id falls back to link, then to the position in the feed."""
    title = _text(entry.get("title"))
    link = _text(entry.get("link"))
    guid = _text(entry.get("id")) or link or str(index)
    pub_date = _text(entry.get("published"))
    description = entry.get("description")
    if description is None:
        description = entry.get("summary", "")

    return FeedItem(
        id=ItemID(guid),
        title=title,
        link=link,
        pub_date=pub_date,
        pub_date_iso=to_iso_date(pub_date),
        pub_date_ts=to_timestamp_ms(pub_date),
        description_html=str(description or ""),
        enclosure_url=_enclosure_url(entry),
    )


def parse_feed(content: bytes | str) -> list[FeedItem]:
    """Parse RSS/Atom content. Raises FetchError when nothing parseable was found."""
    feed = feedparser.parse(content)
    if feed.get("bozo") and not feed.entries and not feed.get("feed"):
        raise FetchError(f"RSS parse error: {feed.get('bozo_exception')}")

    items = [normalize_entry(entry, index) for index, entry in enumerate(feed.entries)]
    # Stable sort keeps feed order for equal timestamps
    items.sort(key=lambda item: item.pub_date_ts or 0, reverse=True)
    return items


class RssFeedClient:
    """Fetches the recall feed over HTTP"""

    def __init__(self, feed_url: str = DEFAULT_FEED_URL, timeout: float = 30):
        self.feed_url = feed_url
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update(
            {"Accept": "application/rss+xml, application/xml, text/xml, */*"}
        )

    def fetch_feed_items(self) -> list[FeedItem]:
        """Fetch and normalize the feed. Raises FetchError on HTTP or parse failure."""
        try:
            response = self.session.get(self.feed_url, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(
                f"Could not fetch feed: {e}", context={"feed_url": self.feed_url}
            ) from e

        if not response.ok:
            raise FetchError(
                f"HTTP {response.status_code} ({response.reason})",
                context={"feed_url": self.feed_url},
            )

        return parse_feed(response.content)
