"""
Tests for job models.
"""
import pytest
from pydantic import ValidationError

from bulkads.jobs.models import BulkRequest, JobErrorRecord, JobRecord, JobResults, JobStatus, Stage

class TestJobErrorRecord:
    """Tests for error rendering."""

    def test_render(self):
        """Test each stage renders its own message."""
        assert JobErrorRecord(stage=Stage.CAMPAIGN, message="x").render() == "Failed to create campaign: x"
        assert JobErrorRecord(stage=Stage.AD_SET, message="x").render() == "Failed to create ad set: x"
        assert JobErrorRecord(
            stage=Stage.ITEM, message="x", item_index=0, media_id="m1"
        ).render() == "Failed to create ad 1 for media m1: x"
        assert JobErrorRecord(stage=Stage.UNEXPECTED, message="x").render() == "Unexpected error: x"

    def test_error_messages(self):
        """Test results render errors in order."""
        results = JobResults(errors=[
            JobErrorRecord(stage=Stage.CAMPAIGN, message="a"),
            JobErrorRecord(stage=Stage.UNEXPECTED, message="b"),
        ])

        assert results.error_messages() == ["Failed to create campaign: a", "Unexpected error: b"]

class TestJobRecord:
    """Tests for JobRecord."""

    def test_defaults(self):
        job = JobRecord(id="job-1", total_items=2)

        assert job.status == JobStatus.PENDING
        assert job.progress == 0
        assert job.attempted_count == 0
        assert not job.status.is_terminal

    def test_progress_bounds(self):
        with pytest.raises(ValidationError):
            JobRecord(id="job-1", total_items=1, progress=101)

class TestBulkRequest:
    """Tests for BulkRequest validation."""

    def test_defaults(self):
        request = BulkRequest(template_id="t1", media=["m1"], campaign_name="C", ad_set_name="A")

        assert request.options.create_campaign
        assert request.options.create_ad_set
        assert request.options.status.value == "PAUSED"

    def test_requires_names(self):
        with pytest.raises(ValidationError):
            BulkRequest(template_id="t1", media=["m1"], campaign_name="", ad_set_name="A")
