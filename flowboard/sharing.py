"""
Shareable report links.

Filter criteria are packed into a URL-safe base64 token and carried in a
single ``filters`` query parameter, so a view over tracked data can be
reopened by whoever receives the link.
"""
import base64
import binascii
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

logger = logging.getLogger(__name__)

FILTERS_PARAM = "filters"
METADATA_VERSION = "1.0"
# Longer tokens are rejected before decoding
MAX_TOKEN_LENGTH = 16384

# search, projectId, priority, status, dateRange {from, to},
# reportType, reportParams. All optional.
ShareableFilters = Dict[str, Any]


class ShareLinkError(ValueError):
    """Raised when a share link cannot be built from the given base URL."""
    pass


def encode_filters(filters: ShareableFilters) -> str:
    """Encode filters as a URL-safe base64 token without padding."""
    raw = json.dumps(filters, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    b64 = base64.b64encode(raw.encode("utf-8")).decode("ascii")
    return b64.replace("+", "-").replace("/", "_").rstrip("=")


def decode_filters(token: str) -> Optional[ShareableFilters]:
    """
    Decode a token produced by encode_filters().

    Returns None for anything that does not decode to a JSON object. Never
    raises; a corrupt token and a missing one look the same to the caller.
    """
    if not isinstance(token, str):
        return None
    if len(token) > MAX_TOKEN_LENGTH:
        logger.debug(f"Filter token too long: {len(token)} chars")
        return None
    try:
        b64 = token.replace("-", "+").replace("_", "/")
        b64 += "=" * (-len(b64) % 4)
        raw = base64.b64decode(b64, validate=True)
        filters = json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError, RecursionError) as e:
        logger.debug(f"Failed to decode filters: {e}")
        return None

    if not isinstance(filters, dict):
        logger.debug(f"Decoded filters are not an object: {type(filters).__name__}")
        return None
    return filters


def build_shareable_url(base_url: str, path: str, filters: ShareableFilters) -> str:
    """Resolve ``path`` against ``base_url`` and attach the encoded filters."""
    base = urlsplit(base_url)
    if not base.scheme or not base.netloc:
        raise ShareLinkError(f"Base URL must be absolute: {base_url!r}")

    parts = urlsplit(urljoin(base_url, path))
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True)
             if k != FILTERS_PARAM]
    query.append((FILTERS_PARAM, encode_filters(filters)))

    return urlunsplit((
        parts.scheme,
        parts.netloc,
        parts.path or "/",
        urlencode(query),
        parts.fragment,
    ))


def extract_filters_from_url(url: str) -> Optional[ShareableFilters]:
    """Return the filters carried by ``url``, or None if there are none."""
    try:
        parts = urlsplit(url)
    except (AttributeError, TypeError, ValueError) as e:
        logger.debug(f"Failed to parse URL: {e}")
        return None
    if not parts.scheme:
        return None

    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        if key == FILTERS_PARAM:
            return decode_filters(value) if value else None
    return None


def generate_report_metadata(report_type: str, filters: ShareableFilters) -> Dict[str, Any]:
    """Envelope stored alongside a shared report."""
    return {
        "reportType": report_type,
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "filters": filters,
        "version": METADATA_VERSION,
    }
