"""
CLI entry point for the RappelConso recall alert pipeline.

Usage:
    # Run once (fetch, diff, store snapshot, notify recipients)
    uv run python main.py

    # Force the latest 10 + new view for every recipient
    uv run python main.py --email-mode latest10

    # Keep sending after a transport failure
    uv run python main.py --send-failure-policy continue

    # Dry run (no snapshot write, no emails)
    uv run python main.py --dry-run

    # Send the latest items to every recipient without touching snapshots
    uv run python main.py --test-email

    # Print distributors seen on the latest feed items
    uv run python main.py --list-distributeurs

    # Replace the stored recipients (JSON list or comma separated emails)
    uv run python main.py --set-recipients '[{"email": "a@example.com", "distributeurs": ["Lidl"]}]'
    uv run python main.py --set-recipients "a@example.com, b@example.com"
"""

import argparse
import json
import sys
from typing import Any

from ingest.feed.rss_fetcher import RssFeedClient
from ingest.scraper.detail_scraper import DetailScraper
from models.notification import RecipientConfig
from notifications.email_sender import ResendTransport
from notifications.recipient_config import normalize_recipient_configs
from notifications.recipient_router import list_distributeurs
from processing.enricher import DistributorInfoCache, Enricher
from processing.run_orchestrator import RunOrchestrator
from shared.config import (
    Settings,
    load_settings,
    normalize_email_mode,
    normalize_send_failure_policy,
)
from shared.db import SupabaseStore
from shared.errors import NoRecipientsError, PipelineError


def build_orchestrator(settings: Settings, dry_run: bool = False) -> RunOrchestrator:
    """Wire the concrete collaborators from settings."""
    scraper = DetailScraper(
        max_retries=settings.http_max_retries, timeout=settings.http_timeout
    )
    enricher = Enricher(
        fetch_detail=scraper.fetch_detail,
        cache=DistributorInfoCache(),
        concurrency_limit=settings.enrich_concurrency,
    )
    return RunOrchestrator(
        feed_source=RssFeedClient(settings.feed_url, timeout=settings.http_timeout),
        store=SupabaseStore(),
        transport=ResendTransport(from_email=settings.notification_from_email),
        enricher=enricher,
        email_mode=settings.email_mode,
        send_failure_policy=settings.send_failure_policy,
        latest_limit=settings.latest_items_limit,
        dry_run=dry_run,
    )


def print_distributeurs(orchestrator: RunOrchestrator, limit: int) -> None:
    items = orchestrator.feed_source.fetch_feed_items()[:limit]
    enrichment = orchestrator.enricher.enrich(items)
    names = list_distributeurs(enrichment.items)
    print(f"Found {len(names)} distributeurs in the latest {len(items)} items:")
    for name in names:
        print(f"  - {name}")


def save_recipients(store: SupabaseStore, raw: str) -> list[RecipientConfig]:
    """
    Normalize and store the recipient list.

    Args:
        store: Recipient config storage
        raw: JSON list of recipient entries, or a comma separated email list

    Raises:
        NoRecipientsError: If no valid email address remains after normalization
        PersistError: If the config row could not be written
    """
    value: Any
    try:
        value = json.loads(raw)
    except ValueError:
        # Legacy comma separated list
        value = raw

    recipients = normalize_recipient_configs(value)
    if not recipients:
        raise NoRecipientsError("Provide at least one email address.")

    saved = store.upsert_recipient_configs(recipients)
    print(f"✓ Saved {len(recipients)} recipients:")
    for recipient in recipients:
        filters = ", ".join(recipient.distributeurs) or "all distributeurs"
        mode = "new items only" if recipient.only_new_items else "latest + new"
        print(f"  - {recipient.email} ({filters}; {mode})")
    return saved


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Check the RappelConso feed and email recall alerts"
    )

    parser.add_argument(
        "--email-mode",
        type=str,
        help="Override CRON_EMAIL_MODE (auto, diff or latest10)",
    )

    parser.add_argument(
        "--send-failure-policy",
        type=str,
        help="Override SEND_FAILURE_POLICY (abort or continue)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Dry run mode (don't store a snapshot or send emails)",
    )

    parser.add_argument(
        "--test-email",
        action="store_true",
        help="Send the latest items to every recipient without touching snapshots",
    )

    parser.add_argument(
        "--list-distributeurs",
        action="store_true",
        help="Print distributors found on the latest feed items",
    )

    parser.add_argument(
        "--set-recipients",
        type=str,
        help="Replace stored recipients (JSON list or comma separated emails)",
    )

    args = parser.parse_args()

    settings = load_settings()
    if args.email_mode:
        settings.email_mode = normalize_email_mode(args.email_mode)
    if args.send_failure_policy:
        settings.send_failure_policy = normalize_send_failure_policy(
            args.send_failure_policy
        )

    orchestrator = build_orchestrator(settings, dry_run=args.dry_run)

    if args.set_recipients is not None or args.list_distributeurs:
        try:
            if args.set_recipients is not None:
                save_recipients(orchestrator.store, args.set_recipients)
            else:
                print_distributeurs(orchestrator, settings.latest_items_limit)
        except PipelineError as e:
            print(f"✗ {e.message}")
            sys.exit(1)
        return

    if args.test_email:
        result = orchestrator.send_test_email()
    else:
        result = orchestrator.run_once()

    if not result.success:
        sys.exit(1)


if __name__ == "__main__":
    main()
