"""
Bulk ad creation engine.

This module drives one job from PENDING to a terminal state: an optional
campaign, an optional ad set, then one creative and ad per media item in
request order. Stage and item failures are recorded on the job and never stop
the batch; only pre-flight problems are raised to the submitter.
"""

import asyncio
import logging
import math
from typing import Awaitable, Callable, Dict, List, Optional, TypeVar
from uuid import uuid4

from bulkads.config import JobConfig, job_config
from bulkads.errors import AuthNotInitializedError, ValidationError
from bulkads.jobs.models import (
    BulkRequest, JobErrorRecord, JobRecord, JobStatus, ProgressEvent, Stage, SubmitResult
)
from bulkads.jobs.progress import ProgressPublisher
from bulkads.jobs.store import JobStore
from bulkads.media.store import MediaStore
from bulkads.platform.client import RemotePlatformClient
from bulkads.platform.errors import RequestTimeoutError
from bulkads.templates.models import AdTemplate, Budget
from bulkads.templates.store import TemplateStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

class JobAbandoned(Exception):
    """Raised internally when a job record disappears while its run is in flight."""

def describe_error(error: BaseException) -> str:
    """Short message for an exception, falling back to its type name."""
    return getattr(error, "message", None) or str(error) or type(error).__name__

def progress_for(attempted: int, total: int) -> int:
    """Percentage of items attempted, rounded half up."""
    if total <= 0:
        return 100
    return min(100, int(math.floor(100 * attempted / total + 0.5)))

class BulkCreationOrchestrator:
    """Creates campaigns, ad sets and ads for a template fanned out over media items."""

    def __init__(
        self,
        client: RemotePlatformClient,
        templates: TemplateStore,
        media: MediaStore,
        jobs: JobStore,
        publisher: ProgressPublisher,
        config: Optional[JobConfig] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            client: Remote advertising platform client
            templates: Template provider used to resolve the request's template
            media: Media provider used to resolve media IDs
            jobs: Store holding the job records this orchestrator owns
            publisher: Sink for progress events
            config: Job configuration; module defaults are used when omitted
        """
        self.client = client
        self.templates = templates
        self.media = media
        self.jobs = jobs
        self.publisher = publisher
        self.config = config or job_config
        self._tasks: Dict[str, asyncio.Task] = {}

    async def submit(self, request: BulkRequest) -> SubmitResult:
        """
        Validate pre-conditions, create a PENDING job and start processing it.

        The returned SubmitResult carries the asyncio.Task running the job; the
        caller may await it or ignore it.

        Raises:
            AuthNotInitializedError: If the platform client has no credentials
            ValidationError: If the request has more media than allowed
            TemplateNotFoundError: If the template does not exist
        """
        if not self.client.is_ready():
            logger.error(f"Rejecting bulk request for template {request.template_id}: platform client not ready")
            raise AuthNotInitializedError()

        if len(request.media) > self.config.max_media_per_job:
            raise ValidationError(
                f"Maximum {self.config.max_media_per_job} media files allowed",
                field="media"
            )

        template = self.templates.get(request.template_id)

        job = JobRecord(
            id=str(uuid4()),
            total_items=len(request.media),
            template_id=template.id,
            campaign_name=request.campaign_name
        )
        self.jobs.add(job)

        task = asyncio.create_task(self.run(job.id, request, template), name=f"bulk-job-{job.id}")
        self._tasks[job.id] = task
        task.add_done_callback(lambda t, job_id=job.id: self._on_task_done(job_id, t))

        logger.info(
            f"Bulk ad creation job {job.id} started: template={template.id}, "
            f"items={job.total_items}, campaign={request.campaign_name!r}"
        )
        return SubmitResult(
            job_id=job.id,
            status=JobStatus.PENDING,
            message="Bulk ad creation job started successfully",
            task=task
        )

    def _on_task_done(self, job_id: str, task: asyncio.Task) -> None:
        self._tasks.pop(job_id, None)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Job {job_id} task ended with an error: {task.exception()}")

    async def run(self, job_id: str, request: BulkRequest, template: AdTemplate) -> Optional[JobRecord]:
        """
        Process a job to completion.

        Returns:
            The terminal job snapshot, or None if the job was deleted mid-run
        """
        try:
            await self._update(job_id, self._mark_processing, "Processing started")

            campaign_id = await self._campaign_stage(job_id, request)
            ad_set_id = await self._ad_set_stage(job_id, request, template, campaign_id)
            if ad_set_id is None:
                ad_set_id = request.options.ad_set_id or self.config.fallback_ad_set_id
                logger.warning(f"Job {job_id}: no ad set created, ads will use ad set {ad_set_id}")

            for index, media_id in enumerate(request.media):
                await self._item_stage(job_id, index, media_id, template, ad_set_id, request)

            return await self._finalize(job_id)

        except JobAbandoned:
            logger.warning(f"Job {job_id} was deleted while processing; remaining work skipped")
            return None
        except asyncio.CancelledError:
            await self._fail(job_id, "Job cancelled before completion")
            raise
        except Exception as e:
            logger.exception(f"Bulk ad creation job {job_id} failed unexpectedly")
            return await self._fail(job_id, describe_error(e))

    @staticmethod
    def _mark_processing(job: JobRecord) -> None:
        job.status = JobStatus.PROCESSING
        job.progress = 0

    async def _remote(self, operation: str, call: Awaitable[T]) -> T:
        """Await a remote call within the per-call time budget."""
        timeout = self.config.call_timeout
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError:
            raise RequestTimeoutError(
                f"{operation} timed out after {timeout:g}s",
                operation=operation,
                timeout=timeout
            )

    async def _campaign_stage(self, job_id: str, request: BulkRequest) -> Optional[str]:
        options = request.options
        if not options.create_campaign:
            return options.campaign_id

        try:
            campaign_id = await self._remote(
                "create_campaign",
                self.client.create_campaign(
                    request.campaign_name,
                    options.status.value,
                    daily_budget=options.campaign_budget
                )
            )
        except Exception as e:
            error = JobErrorRecord(stage=Stage.CAMPAIGN, message=describe_error(e))
            logger.error(f"Job {job_id}: campaign creation failed: {error.message}")
            await self._update(job_id, lambda job: job.results.errors.append(error), "Campaign creation failed")
            return options.campaign_id

        def apply(job: JobRecord) -> None:
            job.results.campaign_id = campaign_id

        await self._update(job_id, apply, "Campaign created")
        logger.info(f"Job {job_id}: campaign {campaign_id} created")
        return campaign_id

    def ad_set_budget(self, request: BulkRequest, template: AdTemplate) -> Budget:
        """Budget for the ad set: request override, then template delivery hint, then defaults."""
        delivery = template.delivery
        amount = (
            request.options.ad_set_budget
            or (delivery.cost_per_result if delivery else None)
            or self.config.default_budget_amount
        )
        currency = (
            (delivery.cost_per_result_currency if delivery else None)
            or self.config.default_budget_currency
        )
        return Budget(amount=amount, currency=currency, type=self.config.default_budget_type)

    async def _ad_set_stage(
        self,
        job_id: str,
        request: BulkRequest,
        template: AdTemplate,
        campaign_id: Optional[str]
    ) -> Optional[str]:
        options = request.options
        if not options.create_ad_set:
            return None
        if not campaign_id:
            logger.warning(f"Job {job_id}: skipping ad set creation, no campaign available")
            return None

        try:
            ad_set_id = await self._remote(
                "create_ad_set",
                self.client.create_ad_set(
                    campaign_id,
                    request.ad_set_name,
                    template.targeting,
                    self.ad_set_budget(request, template),
                    options.status.value,
                    placement=template.placement
                )
            )
        except Exception as e:
            error = JobErrorRecord(stage=Stage.AD_SET, message=describe_error(e))
            logger.error(f"Job {job_id}: ad set creation failed: {error.message}")
            await self._update(job_id, lambda job: job.results.errors.append(error), "Ad set creation failed")
            return None

        def apply(job: JobRecord) -> None:
            job.results.ad_set_id = ad_set_id

        await self._update(job_id, apply, "Ad set created")
        logger.info(f"Job {job_id}: ad set {ad_set_id} created")
        return ad_set_id

    async def _item_stage(
        self,
        job_id: str,
        index: int,
        media_id: str,
        template: AdTemplate,
        ad_set_id: str,
        request: BulkRequest
    ) -> None:
        total = len(request.media)
        name = f"{template.name} - Ad {index + 1}"

        try:
            media = self.media.get(media_id)
            media_token = await self._remote("resolve_media_token", self.client.resolve_media_token(media))
            ad_id = await self._remote(
                "create_ad",
                self.client.create_ad(
                    ad_set_id,
                    name,
                    template.ad_copy,
                    media_token,
                    request.options.status.value,
                    media_kind=media.media_kind
                )
            )
        except Exception as e:
            error = JobErrorRecord(
                stage=Stage.ITEM,
                item_index=index,
                media_id=media_id,
                message=describe_error(e)
            )
            logger.error(f"Job {job_id}: ad {index + 1}/{total} for media {media_id} failed: {error.message}")

            def apply(job: JobRecord) -> None:
                job.results.errors.append(error)
                job.failed_count += 1
                job.progress = progress_for(job.attempted_count, job.total_items)

            await self._update(job_id, apply, f"Ad {index + 1} of {total} failed")
            return

        def apply(job: JobRecord) -> None:
            job.results.ad_ids.append(ad_id)
            job.created_count += 1
            job.progress = progress_for(job.attempted_count, job.total_items)

        await self._update(job_id, apply, f"Ad {index + 1} of {total} created")
        logger.info(f"Job {job_id}: ad {ad_id} created for media {media_id}")

    async def _finalize(self, job_id: str) -> JobRecord:
        def apply(job: JobRecord) -> None:
            all_failed = job.total_items > 0 and job.failed_count == job.total_items
            job.status = JobStatus.FAILED if all_failed else JobStatus.COMPLETED
            job.progress = 100

        job = self.jobs.update(job_id, apply)
        if job is None:
            raise JobAbandoned(job_id)
        summary = f"{job.created_count} created, {job.failed_count} failed"
        await self._publish(job, f"Job {job.status.value.lower()}: {summary}")
        logger.info(f"Bulk ad creation job {job_id} {job.status.value}: {summary}")
        return job

    async def _fail(self, job_id: str, message: str) -> Optional[JobRecord]:
        """Force a job into FAILED with a single catch-all error entry."""
        def apply(job: JobRecord) -> None:
            job.status = JobStatus.FAILED
            job.progress = 100
            job.results.errors.append(JobErrorRecord(stage=Stage.UNEXPECTED, message=message))

        job = self.jobs.update(job_id, apply)
        if job is not None:
            await self._publish(job, f"Job failed: {message}")
        return job

    async def _update(self, job_id: str, mutate: Callable[[JobRecord], None], message: str) -> JobRecord:
        job = self.jobs.update(job_id, mutate)
        if job is None:
            raise JobAbandoned(job_id)
        await self._publish(job, message)
        return job

    async def _publish(self, job: JobRecord, message: str) -> None:
        try:
            await self.publisher.publish(job.id, ProgressEvent.from_job(job, message))
        except Exception as e:
            logger.warning(f"Failed to publish progress for job {job.id}: {e}")

    def active_jobs(self) -> List[str]:
        """IDs of jobs whose processing task is still running."""
        return list(self._tasks)

    async def wait_for_job(self, job_id: str) -> Optional[JobRecord]:
        """Wait for a job's task to finish and return the job's final snapshot."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        return self.jobs.find(job_id)

    async def shutdown(self) -> None:
        """Cancel in-flight jobs; each is left FAILED rather than PROCESSING."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
