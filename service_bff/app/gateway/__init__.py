"""
Request gateway package for the BFF.

Every resource service talks to the upstream platform through the verbs
defined here; headers, query strings and revisions are handled in one place.
"""

from .options import AccessToken, RequestOptions, ResponseEnvelope, TokenInfo, UpstreamService
from .policy import bearer_header, build_query
from .request_gateway import RequestGateway, ServiceGateway
from .revision import extract_revision

__all__ = [
    "AccessToken",
    "RequestGateway",
    "RequestOptions",
    "ResponseEnvelope",
    "ServiceGateway",
    "TokenInfo",
    "UpstreamService",
    "bearer_header",
    "build_query",
    "extract_revision",
]
