"""
Per-call request and response values for the request gateway.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class UpstreamService:
    """What a resource service declares: which service to resolve and its API version."""
    service_name: str
    api_version: str


@dataclass(frozen=True)
class RequestOptions:
    """Everything that becomes a query parameter, plus the conditional-write token.

    ``extra_params`` is the escape hatch for per-resource parameters; a ``v``
    key there replaces the default version parameter.
    """
    api_version: Optional[str] = None
    revision: Optional[str] = None
    select_fields: Optional[str] = None
    include_deleted: bool = False
    source_tag: Optional[str] = None
    extra_params: Dict[str, str] = field(default_factory=dict)


@dataclass
class ResponseEnvelope(Generic[T]):
    """Upstream body plus the revision discovered on the response, if any.

    A missing ``revision`` means the resource does not offer optimistic
    concurrency on this call.
    """
    body: T
    revision: Optional[str] = None
    raw_headers: Dict[str, str] = field(default_factory=dict)
    status_code: int = 200

    def as_dict(self) -> Dict[str, Any]:
        return {"data": self.body, "revision": self.revision}


@dataclass(frozen=True)
class AccessToken:
    """Console session token as handed over by the auth layer."""
    access_token: str
    extend_token: Optional[str] = None


TokenInfo = Union[str, AccessToken]
