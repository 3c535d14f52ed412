from datetime import datetime

from dateutil import parser as date_parser

from models.run import RunResult


def parse_date_string(date_str: str) -> datetime | None:
    """Parse various date formats (RFC 822 pubDate, ISO...) into a datetime."""
    if not date_str:
        return None
    try:
        return date_parser.parse(date_str)
    except (ValueError, OverflowError, TypeError):
        return None


def to_iso_date(date_str: str) -> str | None:
    """Calendar date (YYYY-MM-DD) of a feed date string, None if unparsable."""
    dt = parse_date_string(date_str)
    return dt.date().isoformat() if dt else None


def to_timestamp_ms(date_str: str) -> int:
    """Epoch milliseconds of a feed date string, 0 if unparsable."""
    dt = parse_date_string(date_str)
    if dt is None:
        return 0
    try:
        return int(dt.timestamp() * 1000)
    except (OverflowError, OSError, ValueError):
        return 0


def print_summary(result: RunResult) -> None:
    """Print run summary."""
    counts = result.counts
    print(f"\n{'=' * 60}")
    print(f"[{datetime.now()}] Run {result.run_id} Complete!")
    print(f"{'=' * 60}")
    if counts is not None:
        print(f"Previous: {counts.previous}")
        print(f"Current:  {counts.current}")
        print(f"New:      {counts.new}")
        print(f"Changed:  {counts.changed}")
        print(f"Removed:  {counts.removed}")
    print(f"Email mode: {result.email_mode}")
    print(f"✓ Emails sent: {len(result.email_message_ids)}")
    if result.enrichment_errors:
        print(f"⚠ Enrichment errors: {result.enrichment_errors}")
    if result.failure:
        print(f"✗ Failed: {result.failure} ({result.error})")
    print(f"{'=' * 60}\n")
