"""
Job query and administration service.

This module provides read and delete access to bulk creation jobs for the API
layer.
"""

import logging
from typing import List, Optional

from bulkads.jobs.models import JobRecord
from bulkads.jobs.progress import InMemoryProgressPublisher
from bulkads.jobs.store import JobStore

logger = logging.getLogger(__name__)

class JobService:
    """Service for inspecting and removing bulk creation jobs."""

    def __init__(self, store: JobStore, publisher: Optional[InMemoryProgressPublisher] = None):
        """
        Initialize the service.

        Args:
            store: Job store shared with the orchestrator
            publisher: Optional in-memory publisher whose cached events are
                dropped together with their job
        """
        self.store = store
        self.publisher = publisher

    def get_status(self, job_id: str) -> JobRecord:
        """
        Get the current snapshot of a job.

        Raises:
            JobNotFoundError: If the job does not exist
        """
        return self.store.get(job_id)

    def list_all(self) -> List[JobRecord]:
        """List every job, newest first."""
        return self.store.list()

    def delete(self, job_id: str) -> JobRecord:
        """
        Delete a job.

        A job that is still processing may be deleted; its run stops at the
        next state change.

        Raises:
            JobNotFoundError: If the job does not exist
        """
        job = self.store.delete(job_id)
        if self.publisher is not None:
            self.publisher.forget(job_id)
        logger.info(f"Job {job_id} deleted (status {job.status.value})")
        return job
