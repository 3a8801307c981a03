"""
Export job tracking.

This package contains the job state store and the progress reporter that
updates it while an export runs.
"""

from .progress import ProgressReporter, total_steps
from .store import InMemoryJobStore, JobStore

__all__ = [
    "InMemoryJobStore",
    "JobStore",
    "ProgressReporter",
    "total_steps",
]
