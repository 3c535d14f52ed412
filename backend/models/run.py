"""Pydantic models for run results."""

from pydantic import BaseModel, Field

from models.notification import DeliveryResult
from models.types import FailureReason, RunID, SentEmailMode


class RunCounts(BaseModel):
    """Item counts computed by the change detection stage."""

    previous: int = Field(0, ge=0)
    current: int = Field(0, ge=0)
    new: int = Field(0, ge=0)
    changed: int = Field(0, ge=0)
    removed: int = Field(0, ge=0)
    unchanged: int = Field(0, ge=0)


class RunResult(BaseModel):
    """Summary of one pipeline run.

    ``counts`` is populated as soon as diffing completed, even when a later
    stage failed, so a failed run can be debugged without diffing again.
    """

    run_id: RunID
    counts: RunCounts | None = None
    email_mode: SentEmailMode = "none"
    email_message_ids: list[str] = Field(default_factory=list)
    deliveries: list[DeliveryResult] = Field(default_factory=list)
    enrichment_errors: int = 0
    failure: FailureReason | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.failure is None
