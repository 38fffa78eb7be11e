"""
Platform authentication routes.

This module provides FastAPI routes for validating Facebook credentials and
checking whether the platform client is ready to create ads.
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from bulkads.dependencies import get_platform_client
from bulkads.platform.client import FacebookAdsClient
from bulkads.platform.errors import AuthError, PlatformError
from bulkads.utils.responses import error_response, success_response

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/api/auth", tags=["auth"])

class CredentialsRequest(BaseModel):
    """Credentials submitted for validation."""
    access_token: str = Field(..., min_length=1)
    ad_account_id: str = Field(..., pattern=r"^(act_)?\d+$")

@auth_router.post("/validate")
async def validate_credentials(
    credentials: CredentialsRequest,
    client: FacebookAdsClient = Depends(get_platform_client)
):
    """Validate Facebook credentials and use them for subsequent jobs."""
    logger.info(f"Validating Facebook credentials for ad account {credentials.ad_account_id}")
    try:
        result = await client.validate_credentials(credentials.access_token, credentials.ad_account_id)
    except (AuthError, PlatformError) as e:
        logger.warning(f"Facebook credentials rejected: {e.message}")
        return error_response(
            400,
            "FACEBOOK_API_ERROR",
            "Invalid Facebook credentials. Please check your Access Token and Ad Account ID.",
            details={"reason": e.message}
        )

    return success_response(data=result, message="Facebook credentials validated successfully")

@auth_router.get("/status")
async def get_auth_status(client: FacebookAdsClient = Depends(get_platform_client)):
    """Report whether the platform client holds usable credentials."""
    return success_response(data=client.status())
