"""
Revision discovery on upstream responses.
"""

from typing import Mapping, Optional

IF_MATCH_HEADER = "If-Match"
REVISION_HEADER = "ac-revision"
ETAG_HEADER = "ETag"


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is None:
        lowered = name.lower()
        for key, candidate in headers.items():
            if key.lower() == lowered:
                value = candidate
                break
    return value or None


def extract_revision(headers: Mapping[str, str]) -> Optional[str]:
    """Return the response revision: ``ac-revision`` first, then ``ETag``.

    Header names match case-insensitively and empty values count as absent.
    The value is returned verbatim.
    """
    return _header(headers, REVISION_HEADER) or _header(headers, ETAG_HEADER)
