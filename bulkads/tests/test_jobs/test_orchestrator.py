"""
Tests for the bulk creation orchestrator.
"""
import asyncio
import pytest
from typing import List
from unittest.mock import AsyncMock, patch

from bulkads.errors import AuthNotInitializedError, TemplateNotFoundError, ValidationError
from bulkads.jobs.models import BulkOptions, BulkRequest, JobStatus, ProgressEvent, Stage
from bulkads.jobs.orchestrator import BulkCreationOrchestrator, progress_for
from bulkads.jobs.progress import ProgressPublisher
from bulkads.platform.errors import PlatformError

class RecordingPublisher(ProgressPublisher):
    """Publisher that keeps every event it receives."""

    def __init__(self):
        self.events: List[ProgressEvent] = []

    async def publish(self, job_id: str, event: ProgressEvent) -> None:
        self.events.append(event)

@pytest.fixture
def recorder():
    return RecordingPublisher()

@pytest.fixture
def recording_orchestrator(mock_client, template_store, media_store, job_store, recorder, job_config):
    return BulkCreationOrchestrator(
        client=mock_client,
        templates=template_store,
        media=media_store,
        jobs=job_store,
        publisher=recorder,
        config=job_config
    )

def make_request(template, media, **options) -> BulkRequest:
    return BulkRequest(
        template_id=template.id,
        media=media,
        campaign_name="Summer Campaign",
        ad_set_name="Summer Ad Set",
        options=BulkOptions(**options)
    )

async def run_job(orchestrator, request):
    result = await orchestrator.submit(request)
    await result.task
    return orchestrator.jobs.get(result.job_id)

class TestSubmit:
    """Tests for job submission and pre-flight checks."""

    async def test_submit_returns_pending_job_and_task(self, orchestrator, template, media_ids, job_store):
        """Test submission creates a PENDING job and returns its task."""
        result = await orchestrator.submit(make_request(template, media_ids))

        assert result.status == JobStatus.PENDING
        assert result.message == "Bulk ad creation job started successfully"
        assert isinstance(result.task, asyncio.Task)
        job = job_store.get(result.job_id)
        assert job.status == JobStatus.PENDING
        assert job.total_items == 3
        assert job.template_id == template.id

        await result.task

    async def test_submit_requires_ready_client(self, orchestrator, mock_client, template, media_ids, job_store):
        """Test submission fails without credentials and creates no job."""
        mock_client.is_ready.return_value = False

        with pytest.raises(AuthNotInitializedError):
            await orchestrator.submit(make_request(template, media_ids))

        assert len(job_store) == 0
        mock_client.create_campaign.assert_not_awaited()

    async def test_submit_unknown_template(self, orchestrator, media_ids, job_store):
        """Test submission fails for an unknown template and creates no job."""
        request = BulkRequest(
            template_id="missing",
            media=media_ids,
            campaign_name="Campaign",
            ad_set_name="Ad Set"
        )

        with pytest.raises(TemplateNotFoundError) as exc_info:
            await orchestrator.submit(request)

        assert exc_info.value.message == "Template not found"
        assert len(job_store) == 0

    async def test_submit_rejects_too_many_media(self, orchestrator, template, job_store):
        """Test submission enforces the per-job media limit."""
        media = [f"m{i}" for i in range(orchestrator.config.max_media_per_job + 1)]

        with pytest.raises(ValidationError):
            await orchestrator.submit(make_request(template, media))

        assert len(job_store) == 0

class TestRun:
    """Tests for job processing."""

    async def test_two_items_one_failure(self, orchestrator, mock_client, template, media_ids):
        """Test one failing item of two still completes the job."""
        first, second = media_ids[:2]
        mock_client.create_ad = AsyncMock(side_effect=["ad1", PlatformError("Invalid image")])

        job = await run_job(orchestrator, make_request(template, [first, second]))

        assert job.status == JobStatus.COMPLETED
        assert job.progress == 100
        assert job.created_count == 1
        assert job.failed_count == 1
        assert job.results.campaign_id == "camp1"
        assert job.results.ad_set_id == "as1"
        assert job.results.ad_ids == ["ad1"]
        assert len(job.results.errors) == 1
        error = job.results.errors[0]
        assert error.stage == Stage.ITEM
        assert error.item_index == 1
        assert error.media_id == second
        assert job.results.error_messages() == [
            f"Failed to create ad 2 for media {second}: Invalid image"
        ]
        assert mock_client.create_ad.await_args_list[1].args[1] == "Summer Sale - Ad 2"

    async def test_media_upload_failure(self, orchestrator, mock_client, template, media_ids):
        """Test a media item the platform rejects is recorded without creating an ad."""
        first, second = media_ids[:2]

        async def resolve(media):
            if media.id == first:
                raise PlatformError("Invalid image")
            return f"hash-{media.id}"

        mock_client.resolve_media_token = AsyncMock(side_effect=resolve)

        job = await run_job(orchestrator, make_request(template, [first, second]))

        assert job.created_count == 1
        assert job.results.errors[0].media_id == first
        assert job.results.errors[0].item_index == 0
        mock_client.create_ad.assert_awaited_once()

    async def test_progress_is_monotonic_and_ends_at_100(self, recording_orchestrator, recorder, template, media_ids):
        """Test every published progress value is non-decreasing."""
        job = await run_job(recording_orchestrator, make_request(template, media_ids))

        progresses = [event.progress for event in recorder.events]
        assert progresses == sorted(progresses)
        assert recorder.events[0].status == JobStatus.PROCESSING
        assert recorder.events[0].progress == 0
        assert recorder.events[-1].progress == 100
        assert recorder.events[-1].status == JobStatus.COMPLETED
        assert job.progress == 100

    async def test_item_progress_values(self, recording_orchestrator, recorder, template, media_ids):
        """Test item progress is the rounded share of attempted items."""
        await run_job(recording_orchestrator, make_request(template, media_ids))

        item_progress = [
            event.progress for event in recorder.events
            if " of 3 " in event.message
        ]
        assert item_progress == [33, 67, 100]

    async def test_counts_add_up(self, orchestrator, mock_client, template, media_ids):
        """Test created and failed counts cover every item."""
        mock_client.create_ad = AsyncMock(side_effect=["ad1", PlatformError("rejected"), "ad3"])

        job = await run_job(orchestrator, make_request(template, media_ids))

        assert job.created_count + job.failed_count == job.total_items == 3
        assert len(job.results.ad_ids) == job.created_count == 2
        assert job.results.ad_ids == ["ad1", "ad3"]
        assert job.status == JobStatus.COMPLETED
        error = job.results.errors[0]
        assert error.item_index == 1
        assert error.media_id == media_ids[1]

    async def test_all_items_fail(self, orchestrator, mock_client, template, media_ids):
        """Test a job where every item fails ends FAILED."""
        mock_client.create_ad = AsyncMock(side_effect=PlatformError("rejected"))

        job = await run_job(orchestrator, make_request(template, media_ids))

        assert job.status == JobStatus.FAILED
        assert job.progress == 100
        assert job.failed_count == 3
        assert job.created_count == 0
        assert [e.item_index for e in job.results.errors] == [0, 1, 2]

    async def test_ads_follow_media_order(self, orchestrator, mock_client, template, media_ids):
        """Test ads are named and created in request order."""
        job = await run_job(orchestrator, make_request(template, media_ids))

        names = [c.args[1] for c in mock_client.create_ad.await_args_list]
        tokens = [c.args[3] for c in mock_client.create_ad.await_args_list]
        assert names == ["Summer Sale - Ad 1", "Summer Sale - Ad 2", "Summer Sale - Ad 3"]
        assert tokens == [f"hash-{media_id}" for media_id in media_ids]
        assert job.results.ad_ids == [f"ad-{name}" for name in names]

    async def test_campaign_failure_continues_with_fallback_ad_set(
        self, orchestrator, mock_client, template, media_ids
    ):
        """Test a campaign failure is recorded and items still run."""
        mock_client.create_campaign = AsyncMock(side_effect=PlatformError("Budget too low"))

        job = await run_job(orchestrator, make_request(template, media_ids))

        campaign_errors = [e for e in job.results.errors if e.stage == Stage.CAMPAIGN]
        assert len(campaign_errors) == 1
        assert campaign_errors[0].render() == "Failed to create campaign: Budget too low"
        assert job.results.campaign_id is None
        mock_client.create_ad_set.assert_not_awaited()
        assert mock_client.create_ad.await_count == 3
        for call in mock_client.create_ad.await_args_list:
            assert call.args[0] == "default-adset-id"
        assert job.status == JobStatus.COMPLETED

    async def test_campaign_failure_uses_supplied_campaign(self, orchestrator, mock_client, template, media_ids):
        """Test a caller supplied campaign is used when creation fails."""
        mock_client.create_campaign = AsyncMock(side_effect=PlatformError("Budget too low"))

        job = await run_job(orchestrator, make_request(template, media_ids, campaign_id="existing"))

        assert mock_client.create_ad_set.await_args.args[0] == "existing"
        assert job.results.ad_set_id == "as1"

    async def test_ad_set_failure_uses_supplied_ad_set(self, orchestrator, mock_client, template, media_ids):
        """Test an ad set failure falls back to the caller supplied ad set."""
        mock_client.create_ad_set = AsyncMock(side_effect=PlatformError("Invalid targeting"))

        job = await run_job(orchestrator, make_request(template, media_ids, ad_set_id="as-existing"))

        assert [e.render() for e in job.results.errors] == ["Failed to create ad set: Invalid targeting"]
        assert all(c.args[0] == "as-existing" for c in mock_client.create_ad.await_args_list)
        assert job.created_count == 3

    async def test_existing_campaign_and_ad_set(self, orchestrator, mock_client, template, media_ids):
        """Test jobs can attach ads to existing resources."""
        request = make_request(
            template,
            media_ids,
            create_campaign=False,
            create_ad_set=False,
            ad_set_id="as-existing"
        )

        job = await run_job(orchestrator, request)

        mock_client.create_campaign.assert_not_awaited()
        mock_client.create_ad_set.assert_not_awaited()
        assert all(c.args[0] == "as-existing" for c in mock_client.create_ad.await_args_list)
        assert job.status == JobStatus.COMPLETED

    async def test_ad_set_budget_from_delivery(self, orchestrator, mock_client, template, media_ids):
        """Test the ad set budget comes from the template delivery hint."""
        await run_job(orchestrator, make_request(template, media_ids))

        budget = mock_client.create_ad_set.await_args.args[3]
        assert float(budget.amount) == 15
        assert budget.currency.value == "EUR"
        assert budget.type.value == "DAILY"

    async def test_ad_set_budget_override(self, orchestrator, mock_client, template, media_ids):
        """Test an explicit ad set budget wins over the template."""
        await run_job(orchestrator, make_request(template, media_ids, ad_set_budget=50))

        budget = mock_client.create_ad_set.await_args.args[3]
        assert float(budget.amount) == 50

    async def test_ad_set_budget_default(self, orchestrator, template):
        """Test the configured default budget applies without delivery hints."""
        plain = template.model_copy(update={"delivery": None})

        budget = orchestrator.ad_set_budget(make_request(plain, []), plain)

        assert float(budget.amount) == 10
        assert budget.currency.value == "USD"

    async def test_campaign_uses_status_and_budget(self, orchestrator, mock_client, template, media_ids):
        """Test campaign creation receives the requested status and budget."""
        await run_job(orchestrator, make_request(template, media_ids, status="ACTIVE", campaign_budget=100))

        mock_client.create_campaign.assert_awaited_once_with("Summer Campaign", "ACTIVE", daily_budget=100)

    async def test_remote_timeout_is_item_failure(self, orchestrator, mock_client, template, media_ids):
        """Test a remote call exceeding its time budget fails only that stage."""
        async def hang(*args, **kwargs):
            await asyncio.sleep(10)

        mock_client.create_campaign = AsyncMock(side_effect=hang)

        job = await run_job(orchestrator, make_request(template, media_ids))

        assert job.results.errors[0].stage == Stage.CAMPAIGN
        assert "timed out" in job.results.errors[0].message
        assert job.created_count == 3

    async def test_unknown_media_is_item_failure(self, orchestrator, mock_client, template, media_ids):
        """Test an unknown media ID fails only its item."""
        job = await run_job(orchestrator, make_request(template, [media_ids[0], "missing"]))

        assert job.created_count == 1
        assert job.failed_count == 1
        assert job.results.errors[0].render() == "Failed to create ad 2 for media missing: Media not found"

    async def test_zero_items_completes(self, orchestrator, template):
        """Test a job without media completes at 100%."""
        job = await run_job(orchestrator, make_request(template, []))

        assert job.status == JobStatus.COMPLETED
        assert job.progress == 100
        assert job.total_items == 0

    async def test_unexpected_error_fails_job(self, orchestrator, template, media_ids):
        """Test an unexpected error never leaves the job processing."""
        with patch.object(orchestrator, "_finalize", side_effect=RuntimeError("boom")):
            job = await run_job(orchestrator, make_request(template, media_ids))

        assert job.status == JobStatus.FAILED
        assert job.progress == 100
        assert job.results.errors[-1].stage == Stage.UNEXPECTED
        assert job.results.errors[-1].render() == "Unexpected error: boom"

    async def test_publisher_failure_does_not_affect_job(self, orchestrator, template, media_ids):
        """Test publishing errors are swallowed."""
        orchestrator.publisher = AsyncMock(spec=ProgressPublisher)
        orchestrator.publisher.publish.side_effect = RuntimeError("publisher down")

        job = await run_job(orchestrator, make_request(template, media_ids))

        assert job.status == JobStatus.COMPLETED
        assert job.created_count == 3

    async def test_deleted_job_stops_processing(self, orchestrator, mock_client, template, media_ids, job_store):
        """Test deleting a job mid-run stops further remote calls."""
        async def create_and_delete(*args, **kwargs):
            job_store.delete(job_store.list()[0].id)
            return "camp1"

        mock_client.create_campaign = AsyncMock(side_effect=create_and_delete)

        result = await orchestrator.submit(make_request(template, media_ids))
        outcome = await result.task

        assert outcome is None
        assert job_store.find(result.job_id) is None
        mock_client.create_ad_set.assert_not_awaited()
        mock_client.create_ad.assert_not_awaited()

class TestLifecycle:
    """Tests for task tracking and shutdown."""

    async def test_wait_for_job(self, orchestrator, template, media_ids):
        """Test waiting returns the terminal snapshot."""
        result = await orchestrator.submit(make_request(template, media_ids))

        job = await orchestrator.wait_for_job(result.job_id)

        assert job.status == JobStatus.COMPLETED
        assert orchestrator.active_jobs() == []

    async def test_shutdown_fails_running_jobs(self, orchestrator, mock_client, template, media_ids, job_store):
        """Test shutdown cancels running jobs and marks them failed."""
        started = asyncio.Event()

        async def block(*args, **kwargs):
            started.set()
            await asyncio.Event().wait()

        mock_client.create_campaign = AsyncMock(side_effect=block)
        orchestrator.config = orchestrator.config.model_copy(update={"call_timeout": 30})

        result = await orchestrator.submit(make_request(template, media_ids))
        await started.wait()
        await orchestrator.shutdown()

        job = job_store.get(result.job_id)
        assert job.status == JobStatus.FAILED
        assert job.progress == 100
        assert job.results.errors[-1].stage == Stage.UNEXPECTED
        assert result.task.cancelled()

class TestProgressFor:
    """Tests for progress rounding."""

    def test_rounds_half_up(self):
        assert progress_for(1, 8) == 13
        assert progress_for(1, 3) == 33
        assert progress_for(2, 3) == 67

    def test_bounds(self):
        assert progress_for(0, 5) == 0
        assert progress_for(5, 5) == 100
        assert progress_for(0, 0) == 100
