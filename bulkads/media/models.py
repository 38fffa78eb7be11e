"""
Media models.

Uploaded files are described by a MediaDescriptor; the orchestrator only needs
the descriptor's id, kind and local path to obtain a platform media token.
"""

from typing import List, Optional
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, Field

class MediaKind(str, Enum):
    """Kind of uploaded media."""
    IMAGE = "image"
    VIDEO = "video"

    @classmethod
    def from_mime_type(cls, mime_type: str) -> "MediaKind":
        return cls.IMAGE if mime_type.startswith("image/") else cls.VIDEO

class Dimensions(BaseModel):
    """Pixel dimensions; zero when unknown."""
    width: int = 0
    height: int = 0

class MediaDescriptor(BaseModel):
    """A stored media file."""
    id: str
    filename: str = Field(..., description="Name of the stored file")
    original_name: str
    url: str = Field(..., description="Public URL path of the file")
    path: str = Field(..., description="Local filesystem path of the file")
    size: int
    mime_type: str
    media_kind: MediaKind
    dimensions: Dimensions = Field(default_factory=Dimensions)
    duration: Optional[float] = None
    uploaded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class UploadResult(BaseModel):
    """Outcome of a multi-file upload."""
    uploaded_media: List[MediaDescriptor] = Field(default_factory=list)
    total_uploaded: int = 0
    failed_uploads: List[str] = Field(default_factory=list)
