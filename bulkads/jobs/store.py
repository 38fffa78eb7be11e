"""
In-memory job repository.

Stored JobRecords are never mutated in place. A writer copies the current
snapshot, applies its change and swaps the new record in under a short lock, so
concurrent readers only ever see complete snapshots.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional

from bulkads.errors import JobNotFoundError
from bulkads.jobs.models import JobRecord, utc_now

logger = logging.getLogger(__name__)

class JobStore:
    """Keyed store of job records safe for concurrent insert, read and delete."""

    def __init__(self):
        self._jobs: Dict[str, JobRecord] = {}
        self._lock = threading.Lock()

    def add(self, job: JobRecord) -> None:
        """
        Insert a new job.

        Raises:
            ValueError: If a job with the same ID already exists
        """
        with self._lock:
            if job.id in self._jobs:
                raise ValueError(f"Job {job.id} already exists")
            self._jobs[job.id] = job

    def find(self, job_id: str) -> Optional[JobRecord]:
        """Get a job snapshot, or None if it does not exist."""
        with self._lock:
            return self._jobs.get(job_id)

    def get(self, job_id: str) -> JobRecord:
        """
        Get a job snapshot.

        Raises:
            JobNotFoundError: If the job does not exist
        """
        job = self.find(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def list(self) -> List[JobRecord]:
        """List all jobs, newest first."""
        with self._lock:
            jobs = list(self._jobs.values())
        return sorted(jobs, key=lambda j: j.created_at, reverse=True)

    def delete(self, job_id: str) -> JobRecord:
        """
        Remove a job and return its last snapshot.

        Raises:
            JobNotFoundError: If the job does not exist
        """
        with self._lock:
            job = self._jobs.pop(job_id, None)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def update(self, job_id: str, mutate: Callable[[JobRecord], None]) -> Optional[JobRecord]:
        """
        Apply a change to a job and swap in the resulting snapshot.

        The mutation runs on a private copy. Progress never decreases and a
        record in a terminal state is left untouched.

        Args:
            job_id: ID of the job to change
            mutate: Function applying the change to the copy

        Returns:
            The new snapshot, the unchanged snapshot for a terminal job, or
            None if the job no longer exists.
        """
        with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                return None
            if current.status.is_terminal:
                logger.warning(f"Ignoring update to job {job_id} in terminal state {current.status.value}")
                return current

            draft = current.model_copy(deep=True)
            mutate(draft)
            draft.progress = max(draft.progress, current.progress)
            draft.updated_at = utc_now()
            self._jobs[job_id] = draft
            return draft

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)
