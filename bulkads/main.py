"""
Main FastAPI application module.

This module wires the stores, the platform client, the progress publishers and
the bulk creation engine together and sets up the FastAPI application with all
routes, middleware and error handlers.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from bulkads.config import Settings, settings as default_settings
from bulkads.errors import AuthNotInitializedError, BulkAdsError, NotFoundError, ValidationError
from bulkads.jobs.orchestrator import BulkCreationOrchestrator
from bulkads.jobs.progress import (
    CompositeProgressPublisher, InMemoryProgressPublisher, RedisProgressPublisher
)
from bulkads.jobs.routes import ads_router
from bulkads.jobs.services import JobService
from bulkads.jobs.store import JobStore
from bulkads.media.routes import media_router
from bulkads.media.store import MediaStore
from bulkads.platform.client import FacebookAdsClient, RemotePlatformClient
from bulkads.platform.errors import BaseError
from bulkads.platform.routes import auth_router
from bulkads.templates.routes import templates_router
from bulkads.templates.store import TemplateStore
from bulkads.utils.logging import setup_logger
from bulkads.utils.responses import error_response, success_response

logger = setup_logger("bulkads")

def register_error_handlers(app: FastAPI) -> None:
    """Map domain and platform errors onto the response envelope."""

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return error_response(404, "NOT_FOUND", exc.message)

    @app.exception_handler(AuthNotInitializedError)
    async def auth_not_initialized_handler(request: Request, exc: AuthNotInitializedError):
        return error_response(400, "FACEBOOK_API_ERROR", exc.message)

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return error_response(400, "VALIDATION_ERROR", exc.message, details=exc.details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return error_response(400, "VALIDATION_ERROR", "Request validation failed", details=exc.errors())

    @app.exception_handler(BulkAdsError)
    async def domain_error_handler(request: Request, exc: BulkAdsError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return error_response(500, "INTERNAL_SERVER_ERROR", exc.message)

    @app.exception_handler(BaseError)
    async def platform_error_handler(request: Request, exc: BaseError):
        logger.error(f"{request.method} {request.url.path} platform call failed: {exc.message}")
        return error_response(500, "FACEBOOK_API_ERROR", exc.message, details=exc.to_dict())

def create_app(
    settings: Optional[Settings] = None,
    client: Optional[RemotePlatformClient] = None,
    templates: Optional[TemplateStore] = None,
    media: Optional[MediaStore] = None,
    jobs: Optional[JobStore] = None
) -> FastAPI:
    """
    Build the application and its components.

    Args:
        settings: Application settings; the environment-loaded settings when omitted
        client: Platform client; a FacebookAdsClient when omitted
        templates: Template store
        media: Media store
        jobs: Job store

    Returns:
        FastAPI: Configured application
    """
    settings = settings or default_settings
    if client is None:
        client = FacebookAdsClient(settings.facebook)
    if templates is None:
        templates = TemplateStore()
    if media is None:
        media = MediaStore(settings.media)
    if jobs is None:
        jobs = JobStore()

    progress = InMemoryProgressPublisher()
    publishers = [progress]
    if settings.redis.enabled:
        publishers.append(RedisProgressPublisher(settings.redis))
        logger.info(f"Publishing job progress to Redis at {settings.redis.url}")

    orchestrator = BulkCreationOrchestrator(
        client=client,
        templates=templates,
        media=media,
        jobs=jobs,
        publisher=CompositeProgressPublisher(publishers),
        config=settings.jobs
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        Path(media.config.upload_dir).mkdir(parents=True, exist_ok=True)
        yield
        active = orchestrator.active_jobs()
        if active:
            logger.warning(f"Shutting down with {len(active)} jobs in progress")
        await orchestrator.shutdown()
        close = getattr(client, "close", None)
        if close is not None:
            close()

    app = FastAPI(
        title="Bulk Ad Creator",
        description="Bulk creation of Facebook ads from templates and uploaded media",
        version="1.0.0",
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.client = client
    app.state.templates = templates
    app.state.media = media
    app.state.jobs = jobs
    app.state.progress = progress
    app.state.orchestrator = orchestrator
    app.state.job_service = JobService(jobs, progress)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"]
    )

    register_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(templates_router)
    app.include_router(media_router)
    app.include_router(ads_router)
    app.mount("/uploads", StaticFiles(directory=media.config.upload_dir, check_dir=False), name="uploads")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return success_response(data={
            "status": "healthy",
            "platform_ready": client.is_ready(),
            "active_jobs": len(orchestrator.active_jobs())
        })

    return app

app = create_app()
