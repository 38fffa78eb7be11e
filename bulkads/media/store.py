"""
Media storage.

Keeps uploaded files on the local filesystem and an in-memory index of their
descriptors. Images are resized and re-encoded as JPEG before they are stored.
"""

import io
import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from PIL import Image, UnidentifiedImageError

from bulkads.config import MediaConfig
from bulkads.errors import MediaNotFoundError, MediaValidationError
from bulkads.media.models import Dimensions, MediaDescriptor, MediaKind

logger = logging.getLogger(__name__)

class MediaStore:
    """Filesystem-backed media store."""

    def __init__(self, config: Optional[MediaConfig] = None):
        """
        Initialize the store.

        Args:
            config: Media configuration; defaults are used when omitted
        """
        self.config = config or MediaConfig()
        self.upload_dir = Path(self.config.upload_dir)
        self._media: Dict[str, MediaDescriptor] = {}
        self._lock = threading.Lock()

    def _validate(self, original_name: str, content: bytes, mime_type: str) -> None:
        if mime_type not in self.config.allowed_mime_types:
            raise MediaValidationError(
                f"Invalid file type for {original_name}. "
                f"Allowed types: {', '.join(self.config.allowed_mime_types)}",
                field="mime_type"
            )
        if not content:
            raise MediaValidationError(f"File {original_name} is empty", field="size")
        if len(content) > self.config.max_file_size:
            max_mb = self.config.max_file_size // (1024 * 1024)
            raise MediaValidationError(
                f"File {original_name} is too large. Maximum size is {max_mb}MB.",
                field="size"
            )

    def _process_image(self, original_name: str, content: bytes) -> Tuple[bytes, Dimensions]:
        """
        Shrink an image to fit the configured box, never enlarging it, and
        re-encode it as JPEG.

        Returns:
            Tuple of the encoded bytes and the stored image's dimensions
        """
        max_size = (self.config.image_max_width, self.config.image_max_height)
        try:
            with Image.open(io.BytesIO(content)) as image:
                image.thumbnail(max_size)
                if image.mode != "RGB":
                    image = image.convert("RGB")
                buffer = io.BytesIO()
                image.save(buffer, format="JPEG", quality=self.config.image_quality)
                width, height = image.size
        except (UnidentifiedImageError, OSError) as e:
            raise MediaValidationError(f"File {original_name} is not a readable image: {e}")
        return buffer.getvalue(), Dimensions(width=width, height=height)

    def save(self, original_name: str, content: bytes, mime_type: str) -> MediaDescriptor:
        """
        Validate and store an uploaded file.

        Args:
            original_name: Client supplied file name
            content: Raw file bytes
            mime_type: Declared content type

        Returns:
            MediaDescriptor: Descriptor of the stored file

        Raises:
            MediaValidationError: If the type, size or image content is rejected
        """
        self._validate(original_name, content, mime_type)

        media_kind = MediaKind.from_mime_type(mime_type)
        dimensions = Dimensions()
        suffix = Path(original_name).suffix.lower()
        if media_kind == MediaKind.IMAGE:
            content, dimensions = self._process_image(original_name, content)
            mime_type = "image/jpeg"
            suffix = ".jpg"

        media_id = str(uuid4())
        filename = f"{media_id}{suffix}"
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        path = self.upload_dir / filename
        path.write_bytes(content)

        descriptor = MediaDescriptor(
            id=media_id,
            filename=filename,
            original_name=original_name,
            url=f"/uploads/{filename}",
            path=str(path),
            size=len(content),
            mime_type=mime_type,
            media_kind=media_kind,
            dimensions=dimensions
        )

        with self._lock:
            self._media[media_id] = descriptor

        logger.info(f"Media {media_id} stored ({media_kind.value}, {len(content)} bytes) from {original_name}")
        return descriptor

    def get(self, media_id: str) -> MediaDescriptor:
        """
        Get a media descriptor by ID.

        Raises:
            MediaNotFoundError: If no media has this ID
        """
        with self._lock:
            descriptor = self._media.get(media_id)
        if descriptor is None:
            raise MediaNotFoundError(media_id)
        return descriptor

    def list(self) -> List[MediaDescriptor]:
        """List all media, newest first."""
        with self._lock:
            media = list(self._media.values())
        return sorted(media, key=lambda m: m.uploaded_at, reverse=True)

    def read_bytes(self, media_id: str) -> bytes:
        """Read the stored content of a media file."""
        return Path(self.get(media_id).path).read_bytes()

    def delete(self, media_id: str) -> None:
        """
        Delete a media file and its descriptor.

        Raises:
            MediaNotFoundError: If no media has this ID
        """
        with self._lock:
            descriptor = self._media.pop(media_id, None)
        if descriptor is None:
            raise MediaNotFoundError(media_id)

        Path(descriptor.path).unlink(missing_ok=True)
        logger.info(f"Media {media_id} deleted")
