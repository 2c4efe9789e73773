"""
Shared error handling for the Console BFF Access Layer.

The hierarchy keeps the upstream failure taxonomy intact across the HTTP
boundary: a directory outage, an unknown service name, an upstream rejection
and a missing conditional-write revision each surface with their own code.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class AccessLayerException(Exception):
    """Base exception for Access Layer services."""

    status_code: int = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class AuthenticationError(AccessLayerException):
    """Authentication-related errors."""

    status_code = 401

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class ValidationError(AccessLayerException):
    """Validation-related errors."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class DomainResolutionError(AccessLayerException):
    """The upstream directory call itself failed."""

    status_code = 502

    def __init__(self, tenant_id: str, message: str = "Domain resolution failed", details: Optional[Dict[str, Any]] = None):
        details = {"tenant_id": tenant_id, **(details or {})}
        super().__init__("DOMAIN_RESOLUTION_ERROR", message, details)
        self.tenant_id = tenant_id


class DomainNotFoundError(AccessLayerException):
    """The directory resolved but has no entry for the requested service."""

    status_code = 502

    def __init__(self, tenant_id: str, service_name: str):
        super().__init__(
            "DOMAIN_NOT_FOUND",
            f"Domain not found for service {service_name} in account {tenant_id}",
            {"tenant_id": tenant_id, "service_name": service_name}
        )
        self.tenant_id = tenant_id
        self.service_name = service_name


class UpstreamRequestError(AccessLayerException):
    """A dispatched call to a resolved upstream endpoint failed."""

    def __init__(
        self,
        tenant_id: str,
        path: str,
        message: str = "Upstream request failed",
        *,
        method: Optional[str] = None,
        service_name: Optional[str] = None,
        upstream_status: Optional[int] = None,
        upstream_body: Any = None,
    ):
        details: Dict[str, Any] = {"tenant_id": tenant_id, "path": path}
        if method:
            details["method"] = method
        if service_name:
            details["service_name"] = service_name
        if upstream_status is not None:
            details["upstream_status"] = upstream_status
        if upstream_body is not None:
            details["upstream_body"] = upstream_body
        super().__init__("UPSTREAM_REQUEST_ERROR", message, details)
        self.tenant_id = tenant_id
        self.path = path
        self.upstream_status = upstream_status

    @property
    def status_code(self) -> int:  # type: ignore[override]
        # Upstream client errors (validation, conflict, not found) pass through.
        if self.upstream_status is not None and 400 <= self.upstream_status < 500:
            return self.upstream_status
        return 502


class PreconditionRequiredError(AccessLayerException):
    """A conditional write was attempted without a revision."""

    status_code = 428

    def __init__(self, method: str, path: str):
        super().__init__(
            "PRECONDITION_REQUIRED",
            f"{method} {path} requires a revision (If-Match)",
            {"method": method, "path": path}
        )
