"""
Run orchestration for the recall feed alert pipeline.

One run moves through:

    fetching -> diffing -> persisting -> enriching -> routing -> sending -> done

and lands in ``failed`` from any stage on a fatal error. The snapshot is
written before enrichment and sending, so a later failure never makes the
next run diff against stale state; a no_recipients or send_error failure is
therefore reported after state has already advanced.
"""

import threading
import uuid
from datetime import datetime
from typing import Literal

from models.feed import FeedItem, Snapshot
from models.notification import (
    DeliveryResult,
    EmailMessage,
    RecipientConfig,
    RecipientRoute,
)
from models.run import RunCounts, RunResult
from models.types import EmailMode, RunID, SendFailurePolicy, SentEmailMode, SnapshotID
from notifications.content_builder import build_email_content
from notifications.error_logger import log_notification_error
from notifications.recipient_router import (
    LATEST_ITEMS_LIMIT,
    is_latest_override,
    route_recipients,
)
from processing.change_detector import ChangeSet, detect_changes, unique_by_id
from processing.enricher import Enricher
from processing.ports import AlertStore, FeedSource, MailTransport
from shared.errors import (
    FetchError,
    PersistError,
    PipelineError,
    SendError,
)
from shared.utils import print_summary

RunState = Literal[
    "idle",
    "fetching",
    "diffing",
    "persisting",
    "enriching",
    "routing",
    "sending",
    "done",
    "failed",
]


class RunOrchestrator:
    """Sequences fetch, diff, persist, enrich, route and send for one run."""

    def __init__(
        self,
        feed_source: FeedSource,
        store: AlertStore,
        transport: MailTransport,
        enricher: Enricher,
        email_mode: EmailMode = "auto",
        send_failure_policy: SendFailurePolicy = "abort",
        latest_limit: int = LATEST_ITEMS_LIMIT,
        dry_run: bool = False,
        error_log_dir: str | None = None,
    ):
        self.feed_source = feed_source
        self.store = store
        self.transport = transport
        self.enricher = enricher
        self.email_mode = email_mode
        self.send_failure_policy = send_failure_policy
        self.latest_limit = latest_limit
        self.dry_run = dry_run
        self.error_log_dir = error_log_dir
        self.state: RunState = "idle"

    def run_once(self, cancel: threading.Event | None = None) -> RunResult:
        """
        Execute one full run.

        Args:
            cancel: Optional token forwarded to the enricher

        Returns:
            RunResult. On failure, ``failure`` holds the reason and ``counts``
            is still set if the run got past diffing.
        """
        run_id = RunID(str(uuid.uuid4()))
        result = RunResult(run_id=run_id)
        print(f"[{datetime.now()}] Starting recall feed run {run_id}...")

        try:
            self._run(result, cancel)
            self.state = "done"
        except PipelineError as e:
            self._record_failure(result, e)

        print_summary(result)
        return result

    def _run(self, result: RunResult, cancel: threading.Event | None) -> None:
        # Fetching
        self.state = "fetching"
        current_items = self._fetch_items()
        print(f"✓ Fetched {len(current_items)} feed items")

        # Diffing
        self.state = "diffing"
        latest_snapshot = self._load_latest_snapshot()
        previous_items = latest_snapshot.items if latest_snapshot else []
        changes = detect_changes(previous_items, current_items)
        result.counts = RunCounts(
            previous=len(previous_items),
            current=len(current_items),
            new=len(changes.new_items),
            changed=len(changes.changed_items),
            removed=len(changes.removed_items),
            unchanged=changes.unchanged_count,
        )
        if latest_snapshot is None:
            print("  No previous snapshot found, treating every item as new")

        # Persisting
        self.state = "persisting"
        self._persist_snapshot(current_items)

        # Enriching
        self.state = "enriching"
        changes, latest_items, errors = self._enrich(changes, current_items, cancel)
        result.enrichment_errors = errors

        # Routing
        self.state = "routing"
        first_run = latest_snapshot is None
        routes = route_recipients(
            new_items=changes.new_items,
            latest_items=latest_items,
            recipients=self._load_recipients(),
            email_mode=self.email_mode,
            is_first_run=first_run,
            changed_items=changes.changed_items,
            removed_items=changes.removed_items,
            latest_limit=self.latest_limit,
        )

        # Sending
        self.state = "sending"
        sent_mode: SentEmailMode = (
            "latest10" if is_latest_override(self.email_mode, first_run) else "diff"
        )
        self._send(routes, result, sent_mode)

    def _fetch_items(self) -> list[FeedItem]:
        try:
            return self.feed_source.fetch_feed_items()
        except PipelineError:
            raise
        except Exception as e:
            raise FetchError(f"Feed fetch failed: {e}") from e

    def _load_latest_snapshot(self) -> Snapshot | None:
        try:
            return self.store.get_latest_snapshot()
        except PipelineError:
            raise
        except Exception as e:
            raise PersistError(f"Could not read latest snapshot: {e}") from e

    def _persist_snapshot(self, current_items: list[FeedItem]) -> None:
        if self.dry_run:
            print("  [DRY RUN] Would store snapshot")
            return
        snapshot = Snapshot(id=SnapshotID(str(uuid.uuid4())), items=current_items)
        try:
            self.store.insert_snapshot(snapshot)
        except PipelineError:
            raise
        except Exception as e:
            raise PersistError(f"Could not insert snapshot: {e}") from e
        print(f"✓ Stored snapshot {snapshot.id}")

    def _load_recipients(self) -> list[RecipientConfig]:
        try:
            return self.store.get_recipient_configs()
        except PipelineError:
            raise
        except Exception as e:
            raise PersistError(f"Could not read recipient configs: {e}") from e

    def _enrich(
        self,
        changes: ChangeSet,
        current_items: list[FeedItem],
        cancel: threading.Event | None,
    ) -> tuple[ChangeSet, list[FeedItem], int]:
        """Enrich every item any recipient could receive; never raises."""
        latest_items = current_items[: self.latest_limit]
        candidates = unique_by_id(
            changes.new_items
            + changes.changed_items
            + changes.removed_items
            + latest_items
        )

        enrichment = self.enricher.enrich(candidates, cancel=cancel)
        print(
            f"✓ Enriched {len(candidates)} items "
            f"(fetched: {enrichment.fetched}, cached: {enrichment.cache_hits}, "
            f"errors: {enrichment.errors})"
        )
        if enrichment.cancelled:
            print("  ⚠ Enrichment cancelled, continuing with partial results")

        enriched_by_id = {item.id: item for item in enrichment.items}

        def enriched(items: list[FeedItem]) -> list[FeedItem]:
            return [enriched_by_id.get(item.id, item) for item in items]

        enriched_changes = ChangeSet(
            new_items=enriched(changes.new_items),
            changed_items=enriched(changes.changed_items),
            removed_items=enriched(changes.removed_items),
            unchanged_count=changes.unchanged_count,
        )
        return enriched_changes, enriched(latest_items), enrichment.errors

    def _send(
        self, routes: list[RecipientRoute], result: RunResult, sent_mode: SentEmailMode
    ) -> None:
        """Send one email per routed recipient, honouring the failure policy."""
        failures: list[DeliveryResult] = []
        attempted = 0

        for route in routes:
            email = route.recipient.email
            if route.content_spec is None:
                print(f"  ⊘ Nothing to send to {email}")
                continue

            content = build_email_content(route.content_spec)
            message = EmailMessage(**content.model_dump(), recipients=[email])

            if self.dry_run:
                print(f"  [DRY RUN] Would send '{message.subject}' to {email}")
                continue

            attempted += 1
            try:
                message_id = self.transport.send_message(message)
            except Exception as e:
                error = e if isinstance(e, SendError) else SendError(str(e))
                delivery = DeliveryResult(email=email, error=error.message)
                result.deliveries.append(delivery)
                print(f"  ✗ Failed to send to {email}: {error.message}")
                if self.send_failure_policy == "abort":
                    raise SendError(
                        f"Email send failed for {email}: {error.message}",
                        context={"email": email},
                    ) from e
                failures.append(delivery)
                continue

            result.deliveries.append(DeliveryResult(email=email, message_id=message_id))
            result.email_message_ids.append(message_id)
            result.email_mode = sent_mode
            print(f"  ✓ Sent '{message.subject}' to {email}")

        if failures:
            raise SendError(
                f"{len(failures)} of {attempted} emails failed",
                context={"failed": [f.email for f in failures]},
            )

    def _record_failure(self, result: RunResult, error: PipelineError) -> None:
        failed_state = self.state
        self.state = "failed"
        result.failure = error.reason  # type: ignore[assignment]
        result.error = error.message

        print(f"✗ Run failed while {failed_state}: {error.message}")
        error_file = log_notification_error(
            error_type=error.reason,
            error_message=error.message,
            context={
                "run_id": result.run_id,
                "state": failed_state,
                "counts": result.counts.model_dump() if result.counts else None,
                "email_message_ids": result.email_message_ids,
                **error.context,
            },
            log_dir=self.error_log_dir,
        )
        print(f"  Error details logged to: {error_file}")

    def send_test_email(self) -> RunResult:
        """
        Send the latest view to every recipient without touching snapshots.

        onlyNewItems is ignored so every recipient can check delivery.
        """
        run_id = RunID(str(uuid.uuid4()))
        result = RunResult(run_id=run_id)
        print(f"[{datetime.now()}] Sending test email {run_id}...")

        try:
            self.state = "fetching"
            current_items = self._fetch_items()
            result.counts = RunCounts(current=len(current_items))

            self.state = "enriching"
            latest_items = current_items[: self.latest_limit]
            enrichment = self.enricher.enrich(latest_items)
            result.enrichment_errors = enrichment.errors

            self.state = "routing"
            recipients = [
                r.model_copy(update={"only_new_items": False})
                for r in self._load_recipients()
            ]
            routes = route_recipients(
                new_items=[],
                latest_items=enrichment.items,
                recipients=recipients,
                email_mode="latest10",
                latest_limit=self.latest_limit,
            )

            self.state = "sending"
            self._send(routes, result, "latest10")
            self.state = "done"
        except PipelineError as e:
            self._record_failure(result, e)

        print_summary(result)
        return result
