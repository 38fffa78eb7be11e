"""
API response envelope.

Every endpoint answers with ``{success, data?, message?, error?, timestamp}``.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()

def success_response(data: Any = None, message: Optional[str] = None, status_code: int = 200) -> JSONResponse:
    """
    Build a successful envelope.

    Args:
        data: Payload; pydantic models are encoded to JSON-compatible values
        message: Optional human readable message
        status_code: HTTP status code

    Returns:
        JSONResponse: The envelope
    """
    content = {"success": True}
    if data is not None:
        content["data"] = jsonable_encoder(data)
    if message:
        content["message"] = message
    content["timestamp"] = _timestamp()
    return JSONResponse(status_code=status_code, content=content)

def error_response(status_code: int, error: str, message: str, details: Any = None) -> JSONResponse:
    """Build a failed envelope with a machine readable error code."""
    content = {
        "success": False,
        "error": error,
        "message": message,
        "timestamp": _timestamp()
    }
    if details:
        content["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status_code, content=content)
