"""
Export job state store.

Jobs are kept in memory and shared between the worker thread that runs an
export and the readers that poll or stream its progress. Finished jobs are
evicted once they are older than the configured retention.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import copy
from dataclasses import dataclass
import threading
import time
from typing import Iterator
import uuid

from ..core.types import ExportJob


class JobStore(ABC):
    """Storage interface for ExportJob state."""

    @abstractmethod
    def create(self, total: int = 1, job_id: str | None = None) -> ExportJob:
        raise NotImplementedError

    @abstractmethod
    def get(self, job_id: str) -> ExportJob | None:
        raise NotImplementedError

    @abstractmethod
    def update(self, job_id: str, **fields) -> ExportJob | None:
        raise NotImplementedError

    @abstractmethod
    def subscribe(self, job_id: str, wait_seconds: float = 15.0) -> Iterator[ExportJob]:
        """Yield job snapshots as they change, ending after the terminal one."""
        raise NotImplementedError

    @abstractmethod
    def evict(self, now: float | None = None) -> int:
        raise NotImplementedError


@dataclass
class _Entry:
    job: ExportJob
    version: int = 0


class InMemoryJobStore(JobStore):
    """Thread-safe in-memory job store with condition-variable notifications.

    Readers always receive deep copies, so a snapshot never changes under a
    subscriber while the worker keeps updating the job.
    """

    def __init__(self, retention_seconds: float = 3600.0):
        self.retention_seconds = retention_seconds
        self._jobs: dict[str, _Entry] = {}
        self._cond = threading.Condition()

    def create(self, total: int = 1, job_id: str | None = None) -> ExportJob:
        self.evict()
        job = ExportJob(id=job_id or uuid.uuid4().hex[:12], total=max(1, total))
        with self._cond:
            self._jobs[job.id] = _Entry(job=job)
            self._cond.notify_all()
            return copy.deepcopy(job)

    def get(self, job_id: str) -> ExportJob | None:
        with self._cond:
            entry = self._jobs.get(job_id)
            return copy.deepcopy(entry.job) if entry else None

    def update(self, job_id: str, **fields) -> ExportJob | None:
        with self._cond:
            entry = self._jobs.get(job_id)
            if entry is None:
                return None
            job = entry.job
            for key, value in fields.items():
                if hasattr(job, key):
                    setattr(job, key, value)
            if job.done and job.finished_at is None:
                job.finished_at = time.time()
            entry.version += 1
            self._cond.notify_all()
            return copy.deepcopy(job)

    def subscribe(self, job_id: str, wait_seconds: float = 15.0) -> Iterator[ExportJob]:
        seen = -1
        while True:
            with self._cond:
                entry = self._jobs.get(job_id)
                while entry is not None and entry.version == seen:
                    self._cond.wait(timeout=wait_seconds)
                    entry = self._jobs.get(job_id)
                if entry is None:
                    return
                seen = entry.version
                snapshot = copy.deepcopy(entry.job)
            yield snapshot
            if snapshot.done:
                return

    def evict(self, now: float | None = None) -> int:
        now = time.time() if now is None else now
        with self._cond:
            expired = [
                job_id
                for job_id, entry in self._jobs.items()
                if entry.job.done
                and entry.job.finished_at is not None
                and now - entry.job.finished_at > self.retention_seconds
            ]
            for job_id in expired:
                del self._jobs[job_id]
            if expired:
                self._cond.notify_all()
        return len(expired)

    def __len__(self) -> int:
        with self._cond:
            return len(self._jobs)
