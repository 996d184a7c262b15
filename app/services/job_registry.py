# services/job_registry.py
"""
Pending-job registry shared by the poller and the foreground consumer.

Jobs are kept in arrival order with a selection cursor. Every operation,
including the compound read-then-remove and the snapshot copy, runs under a
single lock. Callers never hold the lock across a launch or any network call:
take the job out first, then do the I/O.
"""
import threading
from typing import List, NamedTuple, Optional, Tuple

from schemas.job_models import Job


class RegistrySnapshot(NamedTuple):
    jobs: Tuple[Job, ...]
    selected: Optional[int]


class JobRegistry:
    """Ordered pending jobs plus a clamped selection index."""

    def __init__(self):
        self._lock = threading.Lock()
        self._jobs: List[Job] = []
        self._selected: Optional[int] = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def push(self, job: Job) -> None:
        with self._lock:
            self._jobs.append(job)
            if self._selected is None:
                self._selected = 0

    def select_next(self) -> None:
        with self._lock:
            if self._jobs:
                self._selected = min(self._selected + 1, len(self._jobs) - 1)

    def select_previous(self) -> None:
        with self._lock:
            if self._jobs:
                self._selected = max(self._selected - 1, 0)

    def remove_selected(self) -> Optional[Job]:
        with self._lock:
            if not self._jobs:
                return None
            job = self._jobs.pop(self._selected)
            self._clamp()
            return job

    def remove(self, job_id: str) -> Optional[Job]:
        """Remove a specific job wherever it sits; the cursor stays on the same job when possible."""
        with self._lock:
            for index, job in enumerate(self._jobs):
                if job.job_id == job_id:
                    del self._jobs[index]
                    if index < self._selected:
                        self._selected -= 1
                    self._clamp()
                    return job
            return None

    def snapshot(self) -> RegistrySnapshot:
        with self._lock:
            return RegistrySnapshot(tuple(self._jobs), self._selected)

    def _clamp(self) -> None:
        # caller holds the lock
        if not self._jobs:
            self._selected = None
        else:
            self._selected = min(max(self._selected or 0, 0), len(self._jobs) - 1)
