"""Translation of remote host error responses into the local error taxonomy.

The remote host does not promise a stable error vocabulary across API
versions. Matching on message text is an interim mapping, so every caller
goes through ``translate_upstream_error`` and nothing else inspects upstream
error bodies.
"""

import logging
from typing import Any, Optional

import httpx

from mediarelay.core.exceptions import (
    ERROR_CATEGORIES,
    AuthError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    QuotaError,
    RateLimited,
    UploadError,
    UpstreamUnavailable,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Structured reason codes reported in error.errors[].reason
QUOTA_REASONS = frozenset(
    ["quotaExceeded", "dailyLimitExceeded", "uploadLimitExceeded", "youtubeSignupRequired"]
)
RATE_LIMIT_REASONS = frozenset(["rateLimitExceeded", "userRateLimitExceeded"])

# Fallback substrings when no structured reason is present
QUOTA_KEYWORDS = ("quota", "daily", "limit")


def read_error_body(response: httpx.Response) -> Any:
    """Best-effort decode of an error response body."""
    try:
        return response.json()
    except ValueError:
        return response.text or None


def _error_message(body: Any) -> Optional[str]:
    if isinstance(body, str):
        return body.strip() or None
    if not isinstance(body, dict):
        return None

    error = body.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str):
        return error

    errors = body.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        if errors[0].get("message"):
            return str(errors[0]["message"])

    detail = body.get("detail")
    if isinstance(detail, str):
        return detail
    return None


def _error_reasons(body: Any) -> set[str]:
    if not isinstance(body, dict):
        return set()
    error = body.get("error")
    if not isinstance(error, dict):
        return set()
    reasons = set()
    for item in error.get("errors") or []:
        if isinstance(item, dict) and item.get("reason"):
            reasons.add(str(item["reason"]))
    return reasons


def translate_upstream_error(status_code: int, body: Any = None) -> UploadError:
    """Map a non-success remote response onto the local error taxonomy.

    Args:
        status_code: HTTP status reported by the remote host (or the relay)
        body: Decoded error body, a dict, a string or None

    Returns:
        The UploadError subclass instance describing the failure
    """
    message = _error_message(body)
    reasons = _error_reasons(body)

    # Bodies produced by this service's relay already carry a category
    if isinstance(body, dict) and body.get("category") in ERROR_CATEGORIES:
        error_cls = ERROR_CATEGORIES[body["category"]]
        return error_cls(message, upstream_status=status_code)

    if status_code == 400:
        return ValidationError(message, upstream_status=status_code)

    if status_code == 401:
        return AuthError(upstream_status=status_code)

    if status_code == 403:
        if reasons & RATE_LIMIT_REASONS:
            return RateLimited(upstream_status=status_code)
        if reasons & QUOTA_REASONS:
            return QuotaError(upstream_status=status_code)
        if message and any(keyword in message.lower() for keyword in QUOTA_KEYWORDS):
            return QuotaError(upstream_status=status_code)
        return ForbiddenError(upstream_status=status_code)

    if status_code in (404, 410):
        return NotFoundError(upstream_status=status_code)

    if status_code == 429:
        return RateLimited(upstream_status=status_code)

    if status_code >= 500:
        return UpstreamUnavailable(upstream_status=status_code)

    logger.warning(
        "Unmapped upstream error status",
        extra={"upstream_status": status_code, "upstream_message": message},
    )
    return InternalError(
        message or f"Upload failed (status {status_code})", upstream_status=status_code
    )
