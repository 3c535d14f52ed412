"""
Distributor enrichment for feed items.

Each item with a link gets the distributor list and recall motif scraped from
its detail page. Fetches run on a fixed-size pool of worker threads pulling
from a shared work queue. A failed fetch degrades the item (returned as-is)
and is counted; it never fails the batch.
"""

import queue
import threading
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field

from models.feed import DistributorInfo, FeedItem

DEFAULT_CONCURRENCY = 4

DetailFetcher = Callable[[str], DistributorInfo]


class DistributorInfoCache:
    """Process-local link -> DistributorInfo store. No expiry, best-effort."""

    def __init__(self) -> None:
        self._entries: dict[str, DistributorInfo] = {}
        self._lock = threading.Lock()

    def get(self, link: str) -> DistributorInfo | None:
        with self._lock:
            return self._entries.get(link)

    def set(self, link: str, info: DistributorInfo) -> None:
        with self._lock:
            self._entries[link] = info

    def __contains__(self, link: object) -> bool:
        with self._lock:
            return link in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class EnrichmentResult(BaseModel):
    """Enriched items (same length and order as the input) plus batch stats."""

    model_config = ConfigDict(frozen=True)

    items: list[FeedItem] = Field(default_factory=list)
    fetched: int = 0
    cache_hits: int = 0
    errors: int = 0
    cancelled: bool = False


class Enricher:
    """Enriches feed items with DistributorInfo using a bounded worker pool."""

    def __init__(
        self,
        fetch_detail: DetailFetcher,
        cache: DistributorInfoCache | None = None,
        concurrency_limit: int = DEFAULT_CONCURRENCY,
        poll_interval: float = 0.05,
    ):
        self.fetch_detail = fetch_detail
        self.cache = cache if cache is not None else DistributorInfoCache()
        self.concurrency_limit = max(1, concurrency_limit)
        self.poll_interval = poll_interval

    def enrich(
        self,
        items: list[FeedItem],
        concurrency_limit: int | None = None,
        cancel: threading.Event | None = None,
    ) -> EnrichmentResult:
        """
        Enrich items with distributor info.

        Args:
            items: Items to enrich; items without a link are passed through
            concurrency_limit: Worker count override (defaults to the constructor value)
            cancel: Setting this event stops the batch. Fetches already in
                    flight are abandoned, and the items enriched so far are returned.

        Returns:
            EnrichmentResult whose items list has exactly one entry per input item
        """
        results = list(items)
        if not results:
            return EnrichmentResult(items=[])

        cancel = cancel or threading.Event()
        limit = max(1, concurrency_limit or self.concurrency_limit)
        total = len(results)

        work: queue.Queue[tuple[int, FeedItem]] = queue.Queue()
        for index, item in enumerate(results):
            work.put((index, item))

        lock = threading.Lock()
        finished = threading.Event()
        stats = {"done": 0, "fetched": 0, "cache_hits": 0, "errors": 0}

        def count(key: str) -> None:
            with lock:
                stats[key] += 1

        def worker() -> None:
            while not cancel.is_set():
                try:
                    index, item = work.get_nowait()
                except queue.Empty:
                    return

                enriched = item
                try:
                    enriched = self._enrich_one(item, count)
                finally:
                    with lock:
                        if not cancel.is_set():
                            results[index] = enriched
                        stats["done"] += 1
                        if stats["done"] == total:
                            finished.set()

        threads = [
            threading.Thread(target=worker, name=f"enricher-{n}", daemon=True)
            for n in range(min(limit, total))
        ]
        for thread in threads:
            thread.start()

        # Wait for the whole batch, or return early on cancellation without
        # joining workers stuck in network calls
        while not finished.wait(self.poll_interval):
            if cancel.is_set():
                break

        with lock:
            cancelled = not finished.is_set()
            return EnrichmentResult(
                items=list(results),
                fetched=stats["fetched"],
                cache_hits=stats["cache_hits"],
                errors=stats["errors"],
                cancelled=cancelled,
            )

    def _enrich_one(self, item: FeedItem, count: Callable[[str], None]) -> FeedItem:
        """Enrich a single item. Returns the original item on any failure."""
        if not item.link:
            return item

        try:
            info = self.cache.get(item.link)
            if info is not None:
                count("cache_hits")
                return item.with_distributor_info(info)

            info = self.fetch_detail(item.link)
            enriched = item.with_distributor_info(info)
            self.cache.set(item.link, info)
        except Exception as e:
            count("errors")
            print(f"  ⚠ Could not enrich {item.link}: {e}")
            return item

        count("fetched")
        return enriched
