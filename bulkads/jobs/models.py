"""
Bulk ad creation job models.

This module defines the request accepted by the bulk creation engine, the job
record it drives from PENDING to a terminal state, and the progress events it
publishes along the way.
"""

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, Field

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

class JobStatus(str, Enum):
    """Lifecycle states of a job."""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

class AdStatus(str, Enum):
    """Delivery status given to created campaigns, ad sets and ads."""
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"

class Stage(str, Enum):
    """Creation phase an error was recorded in."""
    CAMPAIGN = "CAMPAIGN"
    AD_SET = "AD_SET"
    ITEM = "ITEM"
    UNEXPECTED = "UNEXPECTED"

class JobErrorRecord(BaseModel):
    """A single recorded failure."""
    stage: Stage
    message: str
    item_index: Optional[int] = Field(None, description="0-based position of the media item in the request")
    media_id: Optional[str] = None

    def render(self) -> str:
        """Human readable form used in API responses."""
        if self.stage == Stage.CAMPAIGN:
            return f"Failed to create campaign: {self.message}"
        if self.stage == Stage.AD_SET:
            return f"Failed to create ad set: {self.message}"
        if self.stage == Stage.ITEM:
            return f"Failed to create ad {self.item_index + 1} for media {self.media_id}: {self.message}"
        return f"Unexpected error: {self.message}"

class JobResults(BaseModel):
    """Remote ids created by a job and the failures it recorded."""
    campaign_id: Optional[str] = None
    ad_set_id: Optional[str] = None
    ad_ids: List[str] = Field(default_factory=list)
    errors: List[JobErrorRecord] = Field(default_factory=list)

    def error_messages(self) -> List[str]:
        return [error.render() for error in self.errors]

class JobRecord(BaseModel):
    """State of one bulk creation request."""
    id: str
    status: JobStatus = JobStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    total_items: int = Field(..., ge=0)
    created_count: int = 0
    failed_count: int = 0
    results: JobResults = Field(default_factory=JobResults)
    template_id: Optional[str] = None
    campaign_name: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def attempted_count(self) -> int:
        return self.created_count + self.failed_count

class BulkOptions(BaseModel):
    """Options controlling which remote resources a job creates."""
    create_campaign: bool = True
    create_ad_set: bool = True
    status: AdStatus = AdStatus.PAUSED
    campaign_budget: Optional[float] = Field(None, ge=1, description="Daily campaign budget override")
    ad_set_budget: Optional[float] = Field(None, ge=1, description="Ad set budget override")
    campaign_id: Optional[str] = Field(None, description="Existing campaign to use when none is created")
    ad_set_id: Optional[str] = Field(None, description="Existing ad set to use when none is created")

class BulkRequest(BaseModel):
    """A request to fan one template out over many media items."""
    template_id: str = Field(..., min_length=1)
    media: List[str] = Field(default_factory=list, description="Media IDs, in ad order")
    campaign_name: str = Field(..., min_length=1, max_length=100)
    ad_set_name: str = Field(..., min_length=1, max_length=100)
    options: BulkOptions = Field(default_factory=BulkOptions)

class ProgressEvent(BaseModel):
    """Progress notification published after every job state change."""
    job_id: str
    status: JobStatus
    progress: int
    message: str
    created_count: int = 0
    failed_count: int = 0
    total_items: int = 0
    timestamp: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_job(cls, job: JobRecord, message: str) -> "ProgressEvent":
        return cls(
            job_id=job.id,
            status=job.status,
            progress=job.progress,
            message=message,
            created_count=job.created_count,
            failed_count=job.failed_count,
            total_items=job.total_items
        )

@dataclass
class SubmitResult:
    """Acknowledgement returned to the submitter of a job."""
    job_id: str
    status: JobStatus
    message: str
    task: Optional[asyncio.Task] = field(default=None, repr=False)
