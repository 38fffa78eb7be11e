"""
Advertising platform client.

This module defines the narrow RPC facade the bulk creation engine talks to and
its Facebook Marketing (Graph) API implementation. Each remote call either
returns a remote id or raises a subclass of BaseError.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from requests import Response, Session
from requests.adapters import HTTPAdapter, Retry
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import RequestException, Timeout

from bulkads.config import FacebookConfig
from bulkads.media.models import MediaDescriptor, MediaKind
from bulkads.templates.models import AdCopy, Budget, BudgetType, Gender, Placement, Targeting
from .errors import (
    AuthError, NetworkError, PlatformError, RateLimitError,
    RequestTimeoutError, ServiceUnavailableError, retryable
)

logger = logging.getLogger(__name__)

# Graph API error codes signalling throttling
RATE_LIMIT_CODES = {4, 17, 32, 613, 80004}
# Graph API error codes signalling an invalid or expired token
AUTH_ERROR_CODES = {102, 190}

GENDER_CODES = {Gender.MEN: 1, Gender.WOMEN: 2}

class RemotePlatformClient(ABC):
    """Operations the bulk creation engine needs from an advertising platform."""

    @abstractmethod
    def is_ready(self) -> bool:
        """Whether the client holds a usable auth context."""

    @abstractmethod
    async def create_campaign(self, name: str, status: str, daily_budget: Optional[float] = None) -> str:
        """Create a campaign and return its id."""

    @abstractmethod
    async def create_ad_set(
        self,
        campaign_id: str,
        name: str,
        targeting: Targeting,
        budget: Budget,
        status: str,
        placement: Optional[Placement] = None
    ) -> str:
        """Create an ad set under a campaign and return its id."""

    @abstractmethod
    async def create_creative(
        self,
        name: str,
        ad_copy: AdCopy,
        media_token: str,
        media_kind: MediaKind = MediaKind.IMAGE
    ) -> str:
        """Create an ad creative and return its id."""

    @abstractmethod
    async def create_ad(
        self,
        ad_set_id: str,
        name: str,
        ad_copy: AdCopy,
        media_token: str,
        status: str,
        media_kind: MediaKind = MediaKind.IMAGE
    ) -> str:
        """Create a creative and an ad using it; return the ad id."""

    @abstractmethod
    async def resolve_media_token(self, media: MediaDescriptor) -> str:
        """Upload media if needed and return the platform reference for it."""

    @abstractmethod
    async def generate_preview(self, ad_id: str, ad_format: str = "DESKTOP_FEED_STANDARD") -> str:
        """Return preview markup for an ad."""

class FacebookAdsClient(RemotePlatformClient):
    """
    Facebook Marketing API client.

    Blocking HTTP calls run in a worker thread so the event loop is never held
    while waiting on the network.
    """

    def __init__(self, config: Optional[FacebookConfig] = None, session: Optional[Session] = None):
        """
        Initialize the client.

        Args:
            config: Facebook configuration; credentials may be supplied later via configure()
            session: Optional pre-built requests session
        """
        self.config = config or FacebookConfig()
        self._access_token: Optional[str] = self.config.access_token
        self._ad_account_id: Optional[str] = None
        if self.config.ad_account_id:
            self._ad_account_id = self._normalize_account_id(self.config.ad_account_id)
        self._session = session or self._setup_session()

    def _setup_session(self) -> Session:
        """Create a session with transport-level retries and connection pooling."""
        session = Session()
        retry_strategy = Retry(
            total=self.config.max_retries,
            backoff_factor=self.config.backoff_factor,
            status_forcelist=self.config.retry_on_status
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    @staticmethod
    def _normalize_account_id(ad_account_id: str) -> str:
        return ad_account_id if ad_account_id.startswith("act_") else f"act_{ad_account_id}"

    def configure(self, access_token: str, ad_account_id: str) -> None:
        """Set the credentials used for subsequent calls."""
        self._access_token = access_token
        self._ad_account_id = self._normalize_account_id(ad_account_id)
        logger.info(f"Facebook client configured for ad account {self._ad_account_id}")

    def is_ready(self) -> bool:
        return bool(self._access_token and self._ad_account_id)

    def status(self) -> Dict[str, bool]:
        """Report which credentials are present."""
        return {
            "is_initialized": self.is_ready(),
            "has_access_token": bool(self._access_token),
            "has_ad_account_id": bool(self._ad_account_id)
        }

    async def validate_credentials(self, access_token: str, ad_account_id: str) -> Dict[str, Any]:
        """
        Check credentials against the Graph API and adopt them if they work.

        Args:
            access_token: User or system user access token
            ad_account_id: Ad account ID, with or without the act_ prefix

        Returns:
            Dict with the ad account fields and the granted permissions

        Raises:
            AuthError: If the token is invalid or expired
            PlatformError: If the ad account cannot be read
        """
        account_id = self._normalize_account_id(ad_account_id)
        operation = "validate_credentials"

        await self._get("me", operation, params={"fields": "id,name"}, access_token=access_token)
        ad_account = await self._get(
            account_id,
            operation,
            params={"fields": "id,name,currency,timezone_name"},
            access_token=access_token
        )
        permissions = await self._get("me/permissions", operation, access_token=access_token)
        granted = [
            p["permission"] for p in permissions.get("data", [])
            if p.get("status") == "granted"
        ]

        self.configure(access_token, account_id)
        return {"is_valid": True, "ad_account": ad_account, "permissions": granted}

    def _url(self, path: str) -> str:
        return f"{self.config.graph_url}/{self.config.api_version}/{path}"

    def _require_ready(self, operation: str) -> None:
        if not self.is_ready():
            raise AuthError(
                "Facebook API not initialized. Please validate credentials first.",
                operation=operation
            )

    @staticmethod
    def _encode(data: Dict[str, Any]) -> Dict[str, Any]:
        """Graph API form parameters take nested objects as JSON strings."""
        return {
            key: json.dumps(value) if isinstance(value, (dict, list)) else value
            for key, value in data.items()
            if value is not None
        }

    @staticmethod
    def _raise_for_error(response: Response, operation: str) -> Dict[str, Any]:
        """Translate a Graph API response into a payload or a typed error."""
        try:
            payload = response.json()
        except ValueError:
            payload = {}

        error = payload.get("error") if isinstance(payload, dict) else None
        if response.ok and not error:
            return payload

        error = error or {}
        message = error.get("message") or f"HTTP {response.status_code}: {response.reason}"
        code = error.get("code")
        subcode = error.get("error_subcode")

        if response.status_code == 429 or code in RATE_LIMIT_CODES:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                message,
                operation=operation,
                details={"code": code, "subcode": subcode},
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
            )
        if code in AUTH_ERROR_CODES:
            raise AuthError(message, operation=operation, details={"code": code, "subcode": subcode})
        if response.status_code == 503:
            raise ServiceUnavailableError(message, operation=operation)
        raise PlatformError(
            message,
            operation=operation,
            code=code,
            subcode=subcode,
            status_code=response.status_code
        )

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        access_token: Optional[str] = None
    ) -> Dict[str, Any]:
        """Perform one blocking Graph API request."""
        if access_token is None:
            self._require_ready(operation)
        params = {**(params or {}), "access_token": access_token or self._access_token}

        try:
            response = self._session.request(
                method,
                self._url(path),
                params=params,
                data=self._encode(data) if data else None,
                files=files,
                timeout=self.config.timeout
            )
        except Timeout as e:
            raise RequestTimeoutError(
                f"Request timed out after {self.config.timeout}s",
                operation=operation,
                timeout=self.config.timeout,
                details={"error": str(e)}
            )
        except RequestsConnectionError as e:
            raise NetworkError(f"Connection failed: {e}", operation=operation)
        except RequestException as e:
            raise NetworkError(f"Request failed: {e}", operation=operation)

        return self._raise_for_error(response, operation)

    @retryable()
    async def _get(self, path: str, operation: str, **kwargs) -> Dict[str, Any]:
        return await asyncio.to_thread(self._request, "GET", path, operation, **kwargs)

    # POSTs create remote objects and a timeout or 503 may follow a completed
    # write, so only throttled requests are sent again.
    @retryable(retryable_errors=[RateLimitError])
    async def _post(self, path: str, operation: str, **kwargs) -> Dict[str, Any]:
        return await asyncio.to_thread(self._request, "POST", path, operation, **kwargs)

    @staticmethod
    def build_targeting_spec(targeting: Targeting, placement: Optional[Placement] = None) -> Dict[str, Any]:
        """Map template targeting onto a Graph API targeting spec."""
        spec: Dict[str, Any] = {
            "geo_locations": {"countries": targeting.locations or ["US"]}
        }
        if targeting.age_min is not None:
            spec["age_min"] = targeting.age_min
        if targeting.age_max is not None:
            spec["age_max"] = targeting.age_max

        genders = sorted({GENDER_CODES[g] for g in targeting.genders if g in GENDER_CODES})
        if genders and Gender.ALL not in targeting.genders:
            spec["genders"] = genders
        if targeting.interests:
            spec["flexible_spec"] = [{"interests": [{"id": i} for i in targeting.interests]}]
        if targeting.custom_audiences:
            spec["custom_audiences"] = [{"id": a} for a in targeting.custom_audiences]

        if placement is not None:
            platforms = [
                name for name, enabled in (
                    ("facebook", placement.facebook),
                    ("instagram", placement.instagram),
                    ("audience_network", placement.audience_network),
                ) if enabled
            ]
            if platforms:
                spec["publisher_platforms"] = platforms
        return spec

    async def create_campaign(self, name: str, status: str = "PAUSED", daily_budget: Optional[float] = None) -> str:
        data = {
            "name": name,
            "objective": "OUTCOME_TRAFFIC",
            "status": status,
            "special_ad_categories": [],
            "daily_budget": int(round(daily_budget * 100)) if daily_budget else None
        }
        result = await self._post(f"{self._ad_account_id}/campaigns", "create_campaign", data=data)
        logger.info(f"Campaign {result['id']} created: {name}")
        return result["id"]

    async def create_ad_set(
        self,
        campaign_id: str,
        name: str,
        targeting: Targeting,
        budget: Budget,
        status: str = "PAUSED",
        placement: Optional[Placement] = None
    ) -> str:
        amount_cents = int(round(float(budget.amount) * 100))
        data = {
            "name": name,
            "campaign_id": campaign_id,
            "targeting": self.build_targeting_spec(targeting, placement),
            "billing_event": "IMPRESSIONS",
            "optimization_goal": "REACH",
            "bid_amount": 2000,
            "daily_budget": amount_cents if budget.type == BudgetType.DAILY else None,
            "lifetime_budget": amount_cents if budget.type == BudgetType.LIFETIME else None,
            "status": status
        }
        result = await self._post(f"{self._ad_account_id}/adsets", "create_ad_set", data=data)
        logger.info(f"Ad set {result['id']} created under campaign {campaign_id}: {name}")
        return result["id"]

    def _object_story_spec(self, ad_copy: AdCopy, media_token: str, media_kind: MediaKind) -> Dict[str, Any]:
        call_to_action = None
        if ad_copy.call_to_action:
            call_to_action = {
                "type": ad_copy.call_to_action.value,
                "value": {"link": self.config.website_url}
            }

        if media_kind == MediaKind.VIDEO:
            story = {
                "video_id": media_token,
                "message": ad_copy.primary_text,
                "title": ad_copy.headline,
                "link_description": ad_copy.description,
                "call_to_action": call_to_action
            }
            key = "video_data"
        else:
            story = {
                "image_hash": media_token,
                "link": self.config.website_url,
                "message": ad_copy.primary_text,
                "name": ad_copy.headline,
                "description": ad_copy.description,
                "call_to_action": call_to_action
            }
            key = "link_data"

        return {
            "page_id": self.config.page_id,
            key: {k: v for k, v in story.items() if v is not None}
        }

    async def create_creative(
        self,
        name: str,
        ad_copy: AdCopy,
        media_token: str,
        media_kind: MediaKind = MediaKind.IMAGE
    ) -> str:
        data = {
            "name": name,
            "object_story_spec": self._object_story_spec(ad_copy, media_token, media_kind)
        }
        result = await self._post(f"{self._ad_account_id}/adcreatives", "create_creative", data=data)
        return result["id"]

    async def create_ad(
        self,
        ad_set_id: str,
        name: str,
        ad_copy: AdCopy,
        media_token: str,
        status: str = "PAUSED",
        media_kind: MediaKind = MediaKind.IMAGE
    ) -> str:
        creative_id = await self.create_creative(f"{name} - Creative", ad_copy, media_token, media_kind)
        data = {
            "name": name,
            "adset_id": ad_set_id,
            "creative": {"creative_id": creative_id},
            "status": status
        }
        result = await self._post(f"{self._ad_account_id}/ads", "create_ad", data=data)
        logger.info(f"Ad {result['id']} created in ad set {ad_set_id}: {name}")
        return result["id"]

    async def resolve_media_token(self, media: MediaDescriptor) -> str:
        content = await asyncio.to_thread(Path(media.path).read_bytes)

        if media.media_kind == MediaKind.VIDEO:
            result = await self._post(
                f"{self._ad_account_id}/advideos",
                "upload_video",
                data={"name": media.original_name},
                files={"source": (media.filename, content, media.mime_type)}
            )
            return result["id"]

        result = await self._post(
            f"{self._ad_account_id}/adimages",
            "upload_image",
            files={"filename": (media.filename, content, media.mime_type)}
        )
        images = result.get("images") or {}
        if not images:
            raise PlatformError("Image upload returned no image hash", operation="upload_image")
        return next(iter(images.values()))["hash"]

    async def generate_preview(self, ad_id: str, ad_format: str = "DESKTOP_FEED_STANDARD") -> str:
        result = await self._get(f"{ad_id}/previews", "generate_preview", params={"ad_format": ad_format})
        previews = result.get("data") or []
        if not previews:
            raise PlatformError(f"No preview available for ad {ad_id}", operation="generate_preview")
        return previews[0]["body"]

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()
