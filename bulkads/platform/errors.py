"""
Error handling module for the advertising platform integration.

This module provides:
- Custom exception hierarchy for remote platform calls
- Error classification by category and severity
- An async retry decorator for transient failures
"""
from typing import Optional, Dict, Any, List, Type, Callable
from enum import Enum
import asyncio
import logging
from datetime import datetime, timezone
from functools import wraps

logger = logging.getLogger(__name__)

class ErrorSeverity(str, Enum):
    """Severity levels for errors."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

class ErrorCategory(str, Enum):
    """Categories of errors that can occur."""
    AUTHENTICATION = "authentication"
    NETWORK = "network"
    API = "api"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    SERVICE = "service"

class BaseError(Exception):
    """Base error class with common attributes."""
    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        category: ErrorCategory = ErrorCategory.API,
        severity: ErrorSeverity = ErrorSeverity.ERROR
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.details = details or {}
        self.category = category
        self.severity = severity
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary format."""
        return {
            "status": "error",
            "message": self.message,
            "operation": self.operation,
            "details": self.details,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": self.timestamp.isoformat()
        }

class AuthError(BaseError):
    """Authentication-related errors."""
    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            operation=operation,
            details=details,
            category=ErrorCategory.AUTHENTICATION
        )

class NetworkError(BaseError):
    """Transport-level errors (connection refused, DNS, TLS)."""
    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            operation=operation,
            details=details,
            category=ErrorCategory.NETWORK
        )

class PlatformError(BaseError):
    """Structured error returned by the advertising platform API."""
    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        code: Optional[int] = None,
        subcode: Optional[int] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(
            message=message,
            operation=operation,
            details={
                **(details or {}),
                "code": code,
                "subcode": subcode,
                "status_code": status_code
            },
            category=ErrorCategory.API
        )
        self.code = code
        self.subcode = subcode
        self.status_code = status_code

class RetryableError(BaseError):
    """Base class for errors that can be retried."""
    pass

class RateLimitError(RetryableError):
    """Rate limit exceeded errors."""
    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        retry_after: Optional[int] = None
    ):
        super().__init__(
            message=message,
            operation=operation,
            details={
                **(details or {}),
                "retry_after": retry_after
            },
            category=ErrorCategory.RATE_LIMIT,
            severity=ErrorSeverity.WARNING
        )
        self.retry_after = retry_after

class ServiceUnavailableError(RetryableError):
    """Service unavailable errors."""
    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            operation=operation,
            details=details,
            category=ErrorCategory.SERVICE,
            severity=ErrorSeverity.WARNING
        )

class RequestTimeoutError(RetryableError):
    """Remote call exceeded its time budget."""
    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None
    ):
        super().__init__(
            message=message,
            operation=operation,
            details={
                **(details or {}),
                "timeout": timeout
            },
            category=ErrorCategory.TIMEOUT,
            severity=ErrorSeverity.WARNING
        )
        self.timeout = timeout

def retryable(
    retry_config: Optional[Dict[str, Any]] = None,
    retryable_errors: Optional[List[Type[Exception]]] = None
):
    """
    Decorator for retryable async functions.

    Args:
        retry_config: Optional retry configuration
        retryable_errors: Optional list of error types to retry

    Returns:
        Decorated function with retry capability
    """
    if retry_config is None:
        retry_config = {
            "max_retries": 3,
            "base_delay": 0.5,
            "max_delay": 4.0,
            "backoff_factor": 2.0
        }

    if retryable_errors is None:
        retryable_errors = (RetryableError,)
    else:
        retryable_errors = tuple(retryable_errors)

    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            attempts = 0
            max_retries = retry_config.get("max_retries", 3)
            base_delay = retry_config.get("base_delay", 0.5)
            backoff_factor = retry_config.get("backoff_factor", 2.0)
            max_delay = retry_config.get("max_delay", 4.0)

            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    attempts += 1
                    if not isinstance(e, retryable_errors) or attempts >= max_retries:
                        raise

                    delay = min(base_delay * (backoff_factor ** (attempts - 1)), max_delay)
                    retry_after = getattr(e, "retry_after", None)
                    if retry_after:
                        delay = max(delay, min(float(retry_after), max_delay))
                    logger.warning(
                        f"{func.__name__} failed ({e}), retrying in {delay:.2f}s "
                        f"(attempt {attempts}/{max_retries})"
                    )
                    await asyncio.sleep(delay)

        return wrapper
    return decorator
