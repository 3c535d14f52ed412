"""
Recipient configuration normalization.

Stored recipient configs come from an admin form and from legacy rows that
only held a comma separated address list, so everything read from storage
goes through normalize_recipient_configs() before routing.
"""

from typing import Any

from pydantic import ValidationError

from models.notification import RecipientConfig


def _normalize_distributeurs(raw: Any) -> list[str]:
    """Trim names and drop case-insensitive duplicates (first spelling wins)."""
    if not isinstance(raw, list):
        return []

    seen = set()
    distributeurs = []
    for name in raw:
        cleaned = str(name or "").strip()
        if not cleaned or cleaned.lower() in seen:
            continue
        seen.add(cleaned.lower())
        distributeurs.append(cleaned)
    return distributeurs


def normalize_recipient_configs(raw: Any) -> list[RecipientConfig]:
    """
    Normalize raw recipient data into a list of unique RecipientConfig.

    Args:
        raw: Either a list of dicts ({email, distributeurs, onlyNewItems}),
             a list of plain email strings, or a comma separated string.

    Returns:
        Recipient configs unique by lower-cased email (first occurrence wins).
        Entries without a valid email address are dropped.
    """
    if isinstance(raw, str):
        entries: list[Any] = [{"email": part} for part in raw.split(",")]
    elif isinstance(raw, list):
        entries = raw
    else:
        return []

    seen_emails = set()
    recipients = []
    for entry in entries:
        if isinstance(entry, str):
            entry = {"email": entry}
        if not isinstance(entry, dict):
            continue

        email = str(entry.get("email") or "").strip()
        if "@" not in email or email.lower() in seen_emails:
            continue

        only_new = entry.get("onlyNewItems", entry.get("only_new_items", False))
        try:
            recipient = RecipientConfig(
                email=email,
                distributeurs=_normalize_distributeurs(entry.get("distributeurs")),
                only_new_items=bool(only_new),
            )
        except ValidationError:
            print(f"  ⚠ Skipping invalid recipient entry: {email}")
            continue

        seen_emails.add(email.lower())
        recipients.append(recipient)

    return recipients
