"""
Error types for the course marketplace core.

Every error carries the HTTP status code the API layer answers with, so routes
can translate them in one place. Webhook handlers translate them in-place,
since their contract is the HTTP result itself.
"""
from typing import Any, Dict, Optional


class CourseMarketError(Exception):
    """
    Base class for all errors raised by the core.

    Attributes:
        message (str): Human-readable error message
        status_code (int): HTTP status code for the API response
        details (Dict[str, Any]): Extra fields for the JSON error body
    """

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class Unauthorized(CourseMarketError):
    """No caller identity, or an invalid one."""
    status_code = 401

    def __init__(self, message: str = "Authentication required", **kwargs) -> None:
        super().__init__(message, **kwargs)


class Forbidden(Unauthorized):
    """A valid identity acting on somebody else's records."""
    status_code = 403


class NotFound(CourseMarketError):
    status_code = 404


class UserNotFound(NotFound):
    def __init__(self, message: str = "User not found", **kwargs) -> None:
        super().__init__(message, **kwargs)


class CourseNotFound(NotFound):
    def __init__(self, message: str = "Course not found", **kwargs) -> None:
        super().__init__(message, **kwargs)


class SubscriptionNotFound(NotFound):
    def __init__(self, message: str = "Subscription not found", **kwargs) -> None:
        super().__init__(message, **kwargs)


class RateLimitExceeded(CourseMarketError):
    """
    Raised when a caller exceeds a rate limit.

    Attributes:
        retry_after (int): Seconds to wait before retrying, always positive
    """
    status_code = 429

    def __init__(self, retry_after: int, message: Optional[str] = None) -> None:
        self.retry_after = max(1, int(retry_after))
        super().__init__(
            message or f"Rate limit exceeded, try again in {self.retry_after} seconds",
            details={"retry_after": self.retry_after},
        )


class SignatureVerificationFailed(CourseMarketError):
    status_code = 400


class IntegrityFault(CourseMarketError):
    """A verified event whose payload cannot be reconciled with the store."""
    status_code = 500


class UpstreamFailure(CourseMarketError):
    """The payment provider call itself failed."""
    status_code = 502


class AlreadyPurchased(CourseMarketError):
    status_code = 409

    def __init__(self, message: str = "You already have access to this course", **kwargs) -> None:
        super().__init__(message, **kwargs)
