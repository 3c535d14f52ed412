"""
Unit tests for notifications/recipient_router.py

Tests distributeur filtering and per-recipient routing decisions.
"""

import unittest

from notifications.recipient_router import (
    filter_items_by_distributeurs,
    is_latest_override,
    item_matches_distributeurs,
    list_distributeurs,
    merge_new_and_latest,
    route_recipients,
)
from shared.errors import NoRecipientsError
from tests.fixtures.feed_factory import (
    create_enriched_item,
    create_test_item,
    create_test_recipient,
)


class TestItemMatchesDistributeurs(unittest.TestCase):
    """Tests for item_matches_distributeurs() function."""

    def test_empty_filter_matches_everything(self):
        item = create_test_item("1")

        self.assertTrue(item_matches_distributeurs(item, []))
        self.assertTrue(item_matches_distributeurs(item, ["", "  "]))

    def test_exact_match_case_insensitive(self):
        item = create_enriched_item("1", distributeurs=["Carrefour", "Leclerc"])

        self.assertTrue(item_matches_distributeurs(item, ["carrefour"]))
        self.assertTrue(item_matches_distributeurs(item, ["LECLERC"]))

    def test_substring_of_raw_text(self):
        """Filter matches inside the raw distributor text."""
        item = create_enriched_item("1", distributeurs=["Carrefour Market Paris"])

        self.assertTrue(item_matches_distributeurs(item, ["market"]))

    def test_no_match(self):
        item = create_enriched_item("1", distributeurs=["Carrefour"])

        self.assertFalse(item_matches_distributeurs(item, ["Lidl"]))

    def test_unenriched_item_fails_nonempty_filter(self):
        """Items without distributor info never match a non-empty filter."""
        item = create_test_item("1")

        self.assertFalse(item_matches_distributeurs(item, ["Carrefour"]))

    def test_filter_preserves_order(self):
        items = [
            create_enriched_item("1", distributeurs=["Lidl"]),
            create_enriched_item("2", distributeurs=["Auchan"]),
            create_enriched_item("3", distributeurs=["Lidl", "Auchan"]),
        ]

        result = filter_items_by_distributeurs(items, ["lidl"])

        self.assertEqual([i.id for i in result], ["1", "3"])


class TestListDistributeurs(unittest.TestCase):
    """Tests for list_distributeurs() function."""

    def test_sorted_and_unique(self):
        items = [
            create_enriched_item("1", distributeurs=["Lidl", "auchan"]),
            create_enriched_item("2", distributeurs=["Auchan", " Carrefour "]),
            create_test_item("3"),
        ]

        self.assertEqual(list_distributeurs(items), ["auchan", "Carrefour", "Lidl"])

    def test_empty(self):
        self.assertEqual(list_distributeurs([]), [])


class TestMergeNewAndLatest(unittest.TestCase):
    """Tests for merge_new_and_latest() function."""

    def test_latest_excludes_new_ids(self):
        new = [create_test_item("3")]
        latest = [create_test_item("3"), create_test_item("2"), create_test_item("1")]

        unique_new, remaining = merge_new_and_latest(new, latest)

        self.assertEqual([i.id for i in unique_new], ["3"])
        self.assertEqual([i.id for i in remaining], ["2", "1"])

    def test_duplicates_within_new_dropped(self):
        new = [create_test_item("1"), create_test_item("1", title="dup")]

        unique_new, remaining = merge_new_and_latest(new, [])

        self.assertEqual(len(unique_new), 1)
        self.assertEqual(unique_new[0].title, "Recall 1")
        self.assertEqual(remaining, [])


class TestIsLatestOverride(unittest.TestCase):
    """Tests for is_latest_override() function."""

    def test_override_cases(self):
        self.assertTrue(is_latest_override("latest10", False))
        self.assertTrue(is_latest_override("auto", True))
        self.assertTrue(is_latest_override("diff", True))
        self.assertFalse(is_latest_override("auto", False))
        self.assertFalse(is_latest_override("diff", False))


class TestRouteRecipients(unittest.TestCase):
    """Tests for route_recipients() function."""

    def setUp(self):
        self.new = [create_enriched_item("11", distributeurs=["Carrefour"])]
        self.latest = [
            create_enriched_item("11", distributeurs=["Carrefour"]),
            create_enriched_item("10", distributeurs=["Lidl"]),
            create_enriched_item("9", distributeurs=["Carrefour"]),
        ]

    def test_no_recipients_raises(self):
        with self.assertRaises(NoRecipientsError):
            route_recipients(self.new, self.latest, [])

    def test_only_new_items_gets_filtered_new(self):
        recipient = create_test_recipient("a@example.com", ["Carrefour"], True)

        routes = route_recipients(self.new, self.latest, [recipient])

        spec = routes[0].content_spec
        self.assertEqual(spec.kind, "new_only")
        self.assertEqual([i.id for i in spec.new_items], ["11"])
        self.assertEqual(spec.latest_items, [])

    def test_only_new_items_without_matches_gets_nothing(self):
        recipient = create_test_recipient("a@example.com", ["Lidl"], True)

        routes = route_recipients(self.new, self.latest, [recipient])

        self.assertIsNone(routes[0].content_spec)

    def test_only_new_items_ignores_latest10_override(self):
        """onlyNewItems never receives the latest view, even in latest10 mode."""
        recipient = create_test_recipient("a@example.com", [], True)

        routes = route_recipients([], self.latest, [recipient], email_mode="latest10")

        self.assertIsNone(routes[0].content_spec)

    def test_latest_plus_new_deduplicates(self):
        """New items come first and are not repeated in the latest section."""
        recipient = create_test_recipient("b@example.com")

        routes = route_recipients(self.new, self.latest, [recipient])

        spec = routes[0].content_spec
        self.assertEqual(spec.kind, "latest_plus_new")
        self.assertEqual([i.id for i in spec.new_items], ["11"])
        self.assertEqual([i.id for i in spec.latest_items], ["10", "9"])
        self.assertEqual([i.id for i in spec.items], ["11", "10", "9"])

    def test_latest_plus_new_applies_filter_to_latest(self):
        recipient = create_test_recipient("b@example.com", ["carrefour"])

        routes = route_recipients(self.new, self.latest, [recipient])

        self.assertEqual([i.id for i in routes[0].content_spec.items], ["11", "9"])

    def test_no_diff_no_email_outside_override(self):
        """Without changes, a latest recipient gets nothing in auto mode."""
        recipient = create_test_recipient("b@example.com")

        routes = route_recipients([], self.latest, [recipient], email_mode="auto")

        self.assertIsNone(routes[0].content_spec)

    def test_latest10_sends_latest_view_without_changes(self):
        recipient = create_test_recipient("b@example.com")

        routes = route_recipients([], self.latest, [recipient], email_mode="latest10")

        spec = routes[0].content_spec
        self.assertEqual(spec.new_items, [])
        self.assertEqual([i.id for i in spec.latest_items], ["11", "10", "9"])

    def test_first_run_sends_latest_view(self):
        recipient = create_test_recipient("b@example.com")

        routes = route_recipients(
            self.latest, self.latest, [recipient], email_mode="auto", is_first_run=True
        )

        self.assertEqual(len(routes[0].content_spec.items), 3)

    def test_filtered_out_changes_do_not_notify(self):
        """Changes outside the recipient filter do not trigger an email."""
        recipient = create_test_recipient("b@example.com", ["Auchan"])

        routes = route_recipients(self.new, self.latest, [recipient])

        self.assertIsNone(routes[0].content_spec)

    def test_changed_and_removed_carried(self):
        changed = [create_enriched_item("10", distributeurs=["Lidl"])]
        removed = [create_enriched_item("5", distributeurs=["Lidl"])]
        recipient = create_test_recipient("b@example.com")

        routes = route_recipients(
            [], self.latest, [recipient], changed_items=changed, removed_items=removed
        )

        spec = routes[0].content_spec
        self.assertEqual([i.id for i in spec.changed_items], ["10"])
        self.assertEqual([i.id for i in spec.removed_items], ["5"])

    def test_latest_limit_applied(self):
        latest = [create_test_item(str(n)) for n in range(15)]
        recipient = create_test_recipient("b@example.com")

        routes = route_recipients([], latest, [recipient], email_mode="latest10")

        self.assertEqual(len(routes[0].content_spec.latest_items), 10)

    def test_recipients_routed_independently(self):
        """One route per recipient, in config order."""
        recipients = [
            create_test_recipient("a@example.com", ["Lidl"], True),
            create_test_recipient("b@example.com"),
            create_test_recipient("c@example.com", ["Carrefour"], True),
        ]

        routes = route_recipients(self.new, self.latest, recipients)

        self.assertEqual(
            [r.recipient.email for r in routes],
            ["a@example.com", "b@example.com", "c@example.com"],
        )
        self.assertIsNone(routes[0].content_spec)
        self.assertIsNotNone(routes[1].content_spec)
        self.assertIsNotNone(routes[2].content_spec)


if __name__ == "__main__":
    unittest.main()
