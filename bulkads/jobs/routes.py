"""
Bulk ad creation routes.

This module provides FastAPI routes for submitting bulk creation jobs, following
their progress, and previewing the ads they create.
"""

import asyncio
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from bulkads.dependencies import (
    get_job_service, get_orchestrator, get_platform_client, get_progress
)
from bulkads.errors import AuthNotInitializedError
from bulkads.jobs.models import BulkRequest, JobRecord, ProgressEvent
from bulkads.jobs.orchestrator import BulkCreationOrchestrator
from bulkads.jobs.progress import InMemoryProgressPublisher
from bulkads.jobs.services import JobService
from bulkads.platform.client import RemotePlatformClient
from bulkads.utils.responses import success_response

logger = logging.getLogger(__name__)

# Seconds between keep-alive comments on an idle event stream
STREAM_KEEPALIVE = 15.0

ads_router = APIRouter(prefix="/api/ads", tags=["ads"])

def job_view(job: JobRecord) -> Dict[str, Any]:
    """Serialize a job for API responses, rendering its errors as strings."""
    data = job.model_dump(mode="json")
    data["results"]["errors"] = job.results.error_messages()
    return data

@ads_router.post("/bulk", status_code=202)
async def create_bulk_ads(
    request: BulkRequest,
    orchestrator: BulkCreationOrchestrator = Depends(get_orchestrator)
):
    """Start a bulk ad creation job."""
    logger.info(
        f"Starting bulk ad creation: template={request.template_id}, "
        f"media={len(request.media)}, campaign={request.campaign_name!r}"
    )
    result = await orchestrator.submit(request)
    return success_response(
        data={"job_id": result.job_id, "status": result.status, "message": result.message},
        message=result.message,
        status_code=202
    )

@ads_router.get("/jobs")
async def list_jobs(service: JobService = Depends(get_job_service)):
    """List all jobs, newest first."""
    jobs = service.list_all()
    return success_response(
        data=[job_view(job) for job in jobs],
        message=f"Retrieved {len(jobs)} jobs"
    )

@ads_router.get("/jobs/{job_id}")
async def get_job_status(job_id: str, service: JobService = Depends(get_job_service)):
    """Get the current status of a job."""
    job = service.get_status(job_id)
    return success_response(data=job_view(job), message="Job status retrieved successfully")

@ads_router.delete("/jobs/{job_id}")
async def delete_job(job_id: str, service: JobService = Depends(get_job_service)):
    """Delete a job."""
    service.delete(job_id)
    return success_response(message="Job deleted successfully")

@ads_router.get("/jobs/{job_id}/events")
async def stream_job_events(
    job_id: str,
    service: JobService = Depends(get_job_service),
    progress: InMemoryProgressPublisher = Depends(get_progress)
):
    """Stream a job's progress events as server-sent events until it finishes."""
    queue = progress.subscribe(job_id)
    try:
        job = service.get_status(job_id)
    except Exception:
        progress.unsubscribe(job_id, queue)
        raise

    async def event_generator():
        try:
            event = ProgressEvent.from_job(job, "Current status")
            yield f"data: {event.model_dump_json()}\n\n"
            if job.status.is_terminal:
                return

            while True:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=STREAM_KEEPALIVE)
                except asyncio.TimeoutError:
                    if service.store.find(job_id) is None:
                        break
                    yield ": keep-alive\n\n"
                    continue

                yield f"data: {event.model_dump_json()}\n\n"
                if event.status.is_terminal:
                    break
        finally:
            progress.unsubscribe(job_id, queue)

    headers = {
        "Cache-Control": "no-cache",
        "X-Accel-Buffering": "no",
    }
    return StreamingResponse(event_generator(), media_type="text/event-stream", headers=headers)

@ads_router.get("/{ad_id}/preview")
async def get_ad_preview(
    ad_id: str,
    ad_format: str = Query("DESKTOP_FEED_STANDARD"),
    client: RemotePlatformClient = Depends(get_platform_client)
):
    """Get the preview markup of a created ad."""
    if not client.is_ready():
        raise AuthNotInitializedError()
    body = await client.generate_preview(ad_id, ad_format)
    return success_response(
        data={"ad_id": ad_id, "ad_format": ad_format, "body": body},
        message="Ad preview generated successfully"
    )
