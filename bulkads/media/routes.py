"""
Media routes.

This module provides FastAPI routes for uploading, listing and deleting the
image and video files that bulk jobs turn into ads.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile

from bulkads.dependencies import get_media_store
from bulkads.errors import MediaValidationError
from bulkads.media.models import UploadResult
from bulkads.media.store import MediaStore
from bulkads.utils.responses import success_response

logger = logging.getLogger(__name__)

media_router = APIRouter(prefix="/api/media", tags=["media"])

@media_router.post("/upload", status_code=201)
async def upload_media(
    media: List[UploadFile] = File(...),
    store: MediaStore = Depends(get_media_store)
):
    """
    Upload one or more media files.

    Files that fail validation are reported in ``failed_uploads``; the request
    fails only when nothing could be stored.
    """
    if len(media) > store.config.max_files:
        raise MediaValidationError(
            f"Too many files. Maximum is {store.config.max_files} files.",
            field="media"
        )

    result = UploadResult()
    for upload in media:
        name = upload.filename or "upload"
        content = await upload.read()
        try:
            descriptor = store.save(name, content, upload.content_type or "")
        except MediaValidationError as e:
            logger.warning(f"Rejected upload {name}: {e.message}")
            result.failed_uploads.append(f"{name}: {e.message}")
            continue
        result.uploaded_media.append(descriptor)

    result.total_uploaded = len(result.uploaded_media)
    if not result.uploaded_media:
        raise MediaValidationError(
            "No files were uploaded successfully",
            field="media"
        )

    logger.info(f"Uploaded {result.total_uploaded} media files ({len(result.failed_uploads)} rejected)")
    return success_response(
        data=result,
        message=f"Successfully uploaded {result.total_uploaded} files",
        status_code=201
    )

@media_router.get("")
async def list_media(store: MediaStore = Depends(get_media_store)):
    """List uploaded media, newest first."""
    media = store.list()
    return success_response(data=media, message=f"Retrieved {len(media)} media files")

@media_router.get("/{media_id}")
async def get_media(media_id: str, store: MediaStore = Depends(get_media_store)):
    """Get a media descriptor."""
    return success_response(data=store.get(media_id), message="Media retrieved successfully")

@media_router.delete("/{media_id}")
async def delete_media(media_id: str, store: MediaStore = Depends(get_media_store)):
    """Delete a media file."""
    store.delete(media_id)
    return success_response(message="Media deleted successfully")
