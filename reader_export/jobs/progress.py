"""Step-based progress reporting for a running export."""

from __future__ import annotations

import logging

from ..core.types import ExportFormat, FailedItem
from ..utils.logging import log_event
from .store import JobStore

logger = logging.getLogger("reader_export.jobs")


def total_steps(item_count: int, fmt: str) -> int:
    """Workspace, collection, rendering and completion, one step per item,
    plus the title page step for PDF output."""
    return 4 + item_count + (1 if fmt == ExportFormat.PDF else 0)


class ProgressReporter:
    """Advances a job's step counter and publishes messages to the store."""

    def __init__(self, store: JobStore, job_id: str, total: int):
        self.store = store
        self.job_id = job_id
        self.total = max(1, total)
        self.step = 0
        self.store.update(job_id, total=self.total, step=0)

    def report(self, message: str) -> None:
        self.step = min(self.step + 1, self.total)
        self.store.update(self.job_id, step=self.step, message=message)
        log_event(logger, message, level=logging.DEBUG, event="progress", job_id=self.job_id, step=self.step,
                  total=self.total)

    def complete(self, output_path: str, failed_items: list[FailedItem]) -> None:
        self.step = self.total
        self.store.update(
            self.job_id,
            step=self.total,
            message="Export complete",
            done=True,
            output_path=output_path,
            failed_items=list(failed_items),
        )

    def fail(self, error: str, failed_items: list[FailedItem] | None = None) -> None:
        self.store.update(
            self.job_id,
            message=f"Export failed: {error}",
            done=True,
            error=error,
            failed_items=list(failed_items or []),
        )
