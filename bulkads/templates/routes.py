"""
Ad template routes.

This module provides FastAPI routes for creating, reading, updating and deleting
ad templates.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from bulkads.dependencies import get_template_store
from bulkads.templates.models import TemplateCreate, TemplateUpdate
from bulkads.templates.store import TemplateStore
from bulkads.utils.responses import success_response

logger = logging.getLogger(__name__)

templates_router = APIRouter(prefix="/api/templates", tags=["templates"])

@templates_router.post("", status_code=201)
async def create_template(data: TemplateCreate, store: TemplateStore = Depends(get_template_store)):
    """Create a template."""
    template = store.create(data)
    return success_response(data=template, message="Template created successfully", status_code=201)

@templates_router.get("")
async def list_templates(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=100),
    store: TemplateStore = Depends(get_template_store)
):
    """List templates with pagination."""
    result = store.list(page=page, limit=limit, search=search)
    return success_response(data=result, message=f"Retrieved {len(result.templates)} templates")

@templates_router.get("/{template_id}")
async def get_template(template_id: str, store: TemplateStore = Depends(get_template_store)):
    """Get a template."""
    return success_response(data=store.get(template_id), message="Template retrieved successfully")

@templates_router.put("/{template_id}")
async def update_template(
    template_id: str,
    data: TemplateUpdate,
    store: TemplateStore = Depends(get_template_store)
):
    """Update a template; omitted fields keep their current values."""
    template = store.update(template_id, data)
    return success_response(data=template, message="Template updated successfully")

@templates_router.delete("/{template_id}")
async def delete_template(template_id: str, store: TemplateStore = Depends(get_template_store)):
    """Delete a template."""
    store.delete(template_id)
    return success_response(message="Template deleted successfully")
