"""Upload scope verification for upstream OAuth credentials."""

import logging

import httpx

from mediarelay.core.config import settings

logger = logging.getLogger(__name__)


async def has_upload_scope(client: httpx.AsyncClient, upstream_token: str) -> bool:
    """Check whether ``upstream_token`` grants the remote upload scope.

    Uses the identity provider's tokeninfo endpoint. An invalid or expired
    token, or any failure reaching the endpoint, counts as no scope.
    """
    try:
        response = await client.get(
            settings.REMOTE_TOKENINFO_URL,
            params={"access_token": upstream_token},
            timeout=settings.INIT_TIMEOUT_SECONDS,
        )
    except httpx.HTTPError as e:
        logger.warning("Tokeninfo request failed", extra={"error": str(e)})
        return False

    if not response.is_success:
        logger.info("Tokeninfo rejected token", extra={"upstream_status": response.status_code})
        return False

    try:
        scopes = response.json().get("scope", "")
    except (ValueError, AttributeError):
        return False

    return isinstance(scopes, str) and settings.REMOTE_UPLOAD_SCOPE in scopes.split()
