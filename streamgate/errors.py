"""Gateway error taxonomy — typed failures mapped to HTTP status codes by the gateway route."""
from __future__ import annotations

from typing import Optional


class GatewayError(Exception):
    """Base class for failures the gateway reports to the caller."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class ValidationError(GatewayError):
    status_code = 400
    code = "invalid_request"


class UnknownContentType(GatewayError):
    status_code = 404
    code = "invalid_endpoint"

    def __init__(self, content_type: str, valid: list[str]):
        super().__init__(f"Invalid endpoint: {content_type}")
        self.content_type = content_type
        self.valid = valid

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["validEndpoints"] = self.valid
        return data


class DeviceLimitReached(GatewayError):
    status_code = 429
    code = "DeviceLimitReached"

    def __init__(self, limit: int):
        super().__init__(f"Maximum of {limit} devices reached")
        self.limit = limit

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["limit"] = self.limit
        return data


class ResolutionFailure(GatewayError):
    """The upstream did not answer the probe with a usable redirect."""

    status_code = 502
    code = "upstream_unavailable"

    def __init__(self, target: str, reason: str, status: Optional[int] = None):
        super().__init__("Unable to retrieve streaming URL")
        self.target = target
        self.reason = reason
        self.status = status

    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.reason} (status {self.status}) for {self.target}"
        return f"{self.reason} for {self.target}"


class InternalFault(GatewayError):
    status_code = 500
    code = "internal_error"


class CacheStorageError(Exception):
    """Raised by a cache backend when its storage cannot be read or written."""
