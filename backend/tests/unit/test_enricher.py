"""
Unit tests for processing/enricher.py

Tests bounded-concurrency enrichment, caching, graceful degradation and
cancellation.
"""

import threading
import time
import unittest
from unittest.mock import patch

from models.feed import DistributorInfo
from processing.enricher import DistributorInfoCache, Enricher
from tests.fixtures.feed_factory import create_test_item
from tests.fixtures.mock_helpers import FakeDetailFetcher

CARREFOUR = DistributorInfo(
    distributeurs_raw="Carrefour, Leclerc",
    distributeurs_list=["Carrefour", "Leclerc"],
    motif_raw="Listeria",
)


class TestDistributorInfoCache(unittest.TestCase):
    """Tests for DistributorInfoCache."""

    def test_get_missing_returns_none(self):
        cache = DistributorInfoCache()

        self.assertIsNone(cache.get("https://rappel.conso.gouv.fr/a"))

    def test_set_then_get(self):
        cache = DistributorInfoCache()
        cache.set("link", CARREFOUR)

        self.assertEqual(cache.get("link"), CARREFOUR)
        self.assertIn("link", cache)
        self.assertEqual(len(cache), 1)


@patch("builtins.print")
class TestEnricher(unittest.TestCase):
    """Tests for Enricher.enrich()."""

    def test_enriches_items_with_link(self, mock_print):
        """Successful fetch populates distributor fields."""
        fetcher = FakeDetailFetcher(default=CARREFOUR)
        enricher = Enricher(fetcher)
        items = [create_test_item("1"), create_test_item("2")]

        result = enricher.enrich(items)

        self.assertEqual(len(result.items), 2)
        for item in result.items:
            self.assertEqual(item.distributeurs_list, ["Carrefour", "Leclerc"])
            self.assertEqual(item.motif_raw, "Listeria")
        self.assertEqual(result.fetched, 2)
        self.assertEqual(result.errors, 0)
        self.assertFalse(result.cancelled)

    def test_empty_input(self, mock_print):
        """Empty list returns empty result without starting workers."""
        fetcher = FakeDetailFetcher(default=CARREFOUR)

        result = Enricher(fetcher).enrich([])

        self.assertEqual(result.items, [])
        self.assertEqual(fetcher.calls, [])

    def test_item_without_link_passed_through(self, mock_print):
        """Items with empty link are returned unmodified and not fetched."""
        fetcher = FakeDetailFetcher(default=CARREFOUR)
        item = create_test_item("1", link="")

        result = Enricher(fetcher).enrich([item])

        self.assertEqual(result.items, [item])
        self.assertEqual(fetcher.calls, [])

    def test_failed_fetch_degrades_item(self, mock_print):
        """Failed fetch returns the original item and counts an error."""
        failing = create_test_item("2")
        fetcher = FakeDetailFetcher(default=CARREFOUR, fail_for={failing.link})
        items = [create_test_item("1"), failing, create_test_item("3")]

        result = Enricher(fetcher).enrich(items)

        self.assertEqual(len(result.items), 3)
        self.assertEqual(result.items[1], failing)
        self.assertIsNone(result.items[1].distributeurs_list)
        self.assertEqual(result.items[0].distributeurs_list, ["Carrefour", "Leclerc"])
        self.assertEqual(result.items[2].distributeurs_list, ["Carrefour", "Leclerc"])
        self.assertEqual(result.errors, 1)

    def test_malformed_detail_degrades_every_item(self, mock_print):
        """A fetcher returning the wrong type degrades items instead of hanging."""
        items = [create_test_item(str(n)) for n in range(6)]
        outcome = {}

        def run():
            outcome["result"] = Enricher(
                lambda link: {"distributeursRaw": "X"}, concurrency_limit=2
            ).enrich(items)

        thread = threading.Thread(target=run, daemon=True)
        thread.start()
        thread.join(3)

        self.assertFalse(thread.is_alive())
        result = outcome["result"]
        self.assertEqual(result.errors, len(items))
        self.assertEqual(result.items, items)
        self.assertFalse(result.cancelled)

    def test_malformed_detail_not_cached(self, mock_print):
        cache = DistributorInfoCache()
        item = create_test_item("1")

        Enricher(lambda link: {"distributeursRaw": "X"}, cache=cache).enrich([item])

        self.assertNotIn(item.link, cache)

    def test_cache_write_failure_degrades_item(self, mock_print):
        """A cache that cannot store entries leaves items as-is and counts errors."""

        class BrokenCache(DistributorInfoCache):
            def set(self, link, info):
                raise RuntimeError("cache full")

        items = [create_test_item(str(n)) for n in range(4)]
        fetcher = FakeDetailFetcher(default=CARREFOUR)

        result = Enricher(fetcher, cache=BrokenCache(), concurrency_limit=2).enrich(items)

        self.assertEqual(result.items, items)
        self.assertEqual(result.errors, len(items))
        self.assertEqual(result.fetched, 0)

    def test_output_preserves_order_and_length(self, mock_print):
        """Output has one entry per input item, in input order."""
        fetcher = FakeDetailFetcher(default=CARREFOUR)
        items = [create_test_item(str(n)) for n in range(25)]

        result = Enricher(fetcher, concurrency_limit=4).enrich(items)

        self.assertEqual([i.id for i in result.items], [i.id for i in items])

    def test_cache_avoids_second_fetch(self, mock_print):
        """A cached link is not fetched again, even across batches."""
        fetcher = FakeDetailFetcher(default=CARREFOUR)
        cache = DistributorInfoCache()
        enricher = Enricher(fetcher, cache=cache)
        item = create_test_item("1")

        enricher.enrich([item])
        second = enricher.enrich([item])

        self.assertEqual(len(fetcher.calls), 1)
        self.assertEqual(second.cache_hits, 1)
        self.assertEqual(second.items[0].distributeurs_list, ["Carrefour", "Leclerc"])

    def test_failed_fetch_not_cached(self, mock_print):
        """Errors are not cached, so the next batch retries."""
        item = create_test_item("1")
        fetcher = FakeDetailFetcher(default=CARREFOUR, fail_for={item.link})
        cache = DistributorInfoCache()
        enricher = Enricher(fetcher, cache=cache)

        enricher.enrich([item])
        enricher.enrich([item])

        self.assertEqual(len(fetcher.calls), 2)
        self.assertNotIn(item.link, cache)

    def test_concurrency_is_bounded(self, mock_print):
        """No more than concurrency_limit fetches run at the same time."""
        lock = threading.Lock()
        state = {"active": 0, "peak": 0}

        def slow_fetch(link):
            with lock:
                state["active"] += 1
                state["peak"] = max(state["peak"], state["active"])
            time.sleep(0.02)
            with lock:
                state["active"] -= 1
            return CARREFOUR

        items = [create_test_item(str(n)) for n in range(12)]

        result = Enricher(slow_fetch, concurrency_limit=3).enrich(items)

        self.assertEqual(result.fetched, 12)
        self.assertLessEqual(state["peak"], 3)

    def test_does_not_mutate_input(self, mock_print):
        """Input items keep their original fields."""
        fetcher = FakeDetailFetcher(default=CARREFOUR)
        item = create_test_item("1")

        Enricher(fetcher).enrich([item])

        self.assertIsNone(item.distributeurs_list)

    def test_cancellation_returns_partial_results(self, mock_print):
        """Cancelling abandons in-flight fetches and returns what is done."""
        release = threading.Event()
        cancel = threading.Event()
        first = create_test_item("0")

        def fetch(link):
            if link == first.link:
                return CARREFOUR
            cancel.set()
            release.wait(2)
            return CARREFOUR

        items = [first] + [create_test_item(str(n)) for n in range(1, 6)]

        started = time.monotonic()
        result = Enricher(fetch, concurrency_limit=1).enrich(items, cancel=cancel)
        elapsed = time.monotonic() - started
        release.set()

        self.assertTrue(result.cancelled)
        self.assertLess(elapsed, 1.5)
        self.assertEqual(len(result.items), len(items))
        self.assertEqual(result.items[0].distributeurs_list, ["Carrefour", "Leclerc"])
        for original, returned in zip(items[1:], result.items[1:]):
            self.assertEqual(returned, original)

    def test_already_cancelled_returns_inputs(self, mock_print):
        """A pre-set token returns the inputs untouched."""
        fetcher = FakeDetailFetcher(default=CARREFOUR)
        cancel = threading.Event()
        cancel.set()
        items = [create_test_item("1"), create_test_item("2")]

        result = Enricher(fetcher).enrich(items, cancel=cancel)

        self.assertTrue(result.cancelled)
        self.assertEqual(result.items, items)
        self.assertEqual(fetcher.calls, [])


if __name__ == "__main__":
    unittest.main()
