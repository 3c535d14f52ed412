"""Exceptions raised by the feed alert pipeline.

Fatal errors carry a ``reason`` matching the failure reasons reported on
``RunResult``. ``DetailError`` is recoverable and never leaves the enricher.
"""

from typing import Any


class PipelineError(Exception):
    """Base class for pipeline failures."""

    reason: str = "pipeline_error"

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class FetchError(PipelineError):
    """Feed could not be fetched or parsed."""

    reason = "fetch_error"


class PersistError(PipelineError):
    """Snapshot could not be written."""

    reason = "persist_error"


class NoRecipientsError(PipelineError):
    """No recipient is configured."""

    reason = "no_recipients"


class SendError(PipelineError):
    """Mail transport rejected a message."""

    reason = "send_error"


class DetailError(PipelineError):
    """Detail page could not be fetched or parsed."""

    reason = "detail_error"
