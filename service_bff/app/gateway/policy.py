"""
Query-string and authorization policy shared by every upstream call.
"""

import re
from typing import List, Optional, Tuple
from urllib.parse import quote, urlencode

from shared.errors import AuthenticationError

from .options import AccessToken, RequestOptions, TokenInfo

VERSION_PARAM = "v"

_BEARER_PREFIX = re.compile(r"^\s*bearer\s+", re.IGNORECASE)


def query_params(options: Optional[RequestOptions], default_version: Optional[str]) -> List[Tuple[str, str]]:
    """Ordered query parameters: version, select, include_deleted, source, extras."""
    options = options or RequestOptions()
    params: List[Tuple[str, str]] = []

    if VERSION_PARAM not in options.extra_params:
        version = options.api_version or default_version
        if version:
            params.append((VERSION_PARAM, version))

    if options.select_fields:
        params.append(("select", options.select_fields))

    if options.include_deleted:
        params.append(("include_deleted", "true"))

    if options.source_tag:
        params.append(("source", options.source_tag))

    for key, value in options.extra_params.items():
        params.append((key, str(value)))

    return params


def build_query(options: Optional[RequestOptions], default_version: Optional[str]) -> str:
    """Percent-encoded query string (without ``?``); stable for equal options."""
    return urlencode(query_params(options, default_version), quote_via=quote)


def bearer_header(token: TokenInfo) -> str:
    """``Bearer <token>``, stripping any ``Bearer`` prefix the caller already added."""
    raw = token.access_token if isinstance(token, AccessToken) else token
    clean = _BEARER_PREFIX.sub("", raw or "").strip()
    if not clean:
        raise AuthenticationError("Missing upstream access token")
    return f"Bearer {clean}"
