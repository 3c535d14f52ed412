"""Shared type definitions for type checking.

Uses NewType for IDs to provide compile-time type safety - prevents mixing
different ID types (e.g., passing a SnapshotID where an ItemID is expected).

Uses TypeAlias and Literal for structural and enumerated types.
"""

from typing import Literal, NewType, TypeAlias

# ID types using NewType for type safety
ItemID = NewType("ItemID", str)
SnapshotID = NewType("SnapshotID", str)
RunID = NewType("RunID", str)

# Structural aliases
EmailAddress: TypeAlias = str
Fingerprint: TypeAlias = str  # SHA-256 hex digest
DistributeurList: TypeAlias = list[str]
DateString: TypeAlias = str  # ISO 8601 format (YYYY-MM-DD for pubDateISO)

# Enumerated values
EmailMode = Literal["auto", "diff", "latest10"]
SentEmailMode = Literal["latest10", "diff", "none"]
SendFailurePolicy = Literal["abort", "continue"]
ContentKind = Literal["new_only", "latest_plus_new"]
FailureReason = Literal["fetch_error", "persist_error", "no_recipients", "send_error"]
