"""
FastAPI dependencies.

Components are built once by ``create_app`` and kept on ``app.state``; these
functions hand them to route handlers.
"""

from fastapi import Request

from bulkads.config import Settings
from bulkads.jobs.orchestrator import BulkCreationOrchestrator
from bulkads.jobs.progress import InMemoryProgressPublisher
from bulkads.jobs.services import JobService
from bulkads.media.store import MediaStore
from bulkads.platform.client import RemotePlatformClient
from bulkads.templates.store import TemplateStore

def get_settings(request: Request) -> Settings:
    return request.app.state.settings

def get_orchestrator(request: Request) -> BulkCreationOrchestrator:
    return request.app.state.orchestrator

def get_job_service(request: Request) -> JobService:
    return request.app.state.job_service

def get_progress(request: Request) -> InMemoryProgressPublisher:
    return request.app.state.progress

def get_template_store(request: Request) -> TemplateStore:
    return request.app.state.templates

def get_media_store(request: Request) -> MediaStore:
    return request.app.state.media

def get_platform_client(request: Request) -> RemotePlatformClient:
    return request.app.state.client
