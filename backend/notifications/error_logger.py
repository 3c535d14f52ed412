"""
Error logging utility for the alert pipeline.

Writes failed runs to timestamped report files for debugging.
"""

import os
from datetime import datetime
from typing import Any


def log_notification_error(
    error_type: str,
    error_message: str,
    context: dict[str, Any] | None = None,
    log_dir: str | None = None,
) -> str:
    """
    Log a pipeline error to a timestamped file.

    Args:
        error_type: Failure reason (e.g., 'fetch_error', 'send_error')
        error_message: The error message
        context: Optional dictionary with additional context (run_id, counts, etc.)
        log_dir: Directory for report files (defaults to ./logs next to this module)

    Returns:
        Path to the log file created
    """
    log_dir = log_dir or os.path.join(os.path.dirname(__file__), "logs")
    os.makedirs(log_dir, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    filename = os.path.join(log_dir, f"run_error_{timestamp}.txt")

    with open(filename, "w", encoding="utf-8") as f:
        f.write(f"Recall Alert Error Report - {datetime.now()}\n")
        f.write("=" * 60 + "\n\n")
        f.write(f"Error Type: {error_type}\n")
        f.write(f"Error Message: {error_message}\n\n")

        if context:
            f.write("Context:\n")
            f.write("-" * 60 + "\n")
            for key, value in context.items():
                f.write(f"{key}: {value}\n")

    return filename
