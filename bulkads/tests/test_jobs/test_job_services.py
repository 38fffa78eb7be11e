"""
Tests for the job service.
"""
import pytest
from datetime import timedelta

from bulkads.errors import JobNotFoundError
from bulkads.jobs.models import JobRecord, JobStatus, ProgressEvent
from bulkads.jobs.progress import InMemoryProgressPublisher
from bulkads.jobs.services import JobService
from bulkads.jobs.store import JobStore

@pytest.fixture
def publisher():
    return InMemoryProgressPublisher()

@pytest.fixture
def service(publisher):
    store = JobStore()
    store.add(JobRecord(id="job-1", total_items=1))
    return JobService(store, publisher)

class TestJobService:
    """Tests for JobService."""

    def test_get_status(self, service):
        """Test getting a job's snapshot."""
        job = service.get_status("job-1")

        assert job.id == "job-1"
        assert job.status == JobStatus.PENDING

    def test_get_status_missing(self, service):
        """Test getting an unknown job raises."""
        with pytest.raises(JobNotFoundError):
            service.get_status("missing")

    def test_list_all(self, service):
        """Test listing every job."""
        first = service.get_status("job-1")
        service.store.add(JobRecord(id="job-2", total_items=3, created_at=first.created_at + timedelta(seconds=1)))

        assert [job.id for job in service.list_all()] == ["job-2", "job-1"]

    async def test_delete_forgets_progress(self, service, publisher):
        """Test deleting a job drops its cached progress event."""
        job = service.get_status("job-1")
        await publisher.publish("job-1", ProgressEvent.from_job(job, "Processing started"))

        deleted = service.delete("job-1")

        assert deleted.id == "job-1"
        assert publisher.latest("job-1") is None
        with pytest.raises(JobNotFoundError):
            service.get_status("job-1")

    def test_delete_missing(self, service):
        """Test deleting an unknown job raises."""
        with pytest.raises(JobNotFoundError):
            service.delete("missing")

    def test_delete_without_publisher(self):
        """Test deletion works without a progress publisher."""
        store = JobStore()
        store.add(JobRecord(id="job-1", total_items=0))

        JobService(store).delete("job-1")

        assert len(store) == 0
