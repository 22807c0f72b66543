"""Authentication dependencies for relay routes."""

import logging
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from mediarelay.core.config import settings
from mediarelay.core.exceptions import AuthError
from mediarelay.storage.session_store import AuthContext, session_store

logger = logging.getLogger(__name__)

security = HTTPBearer(description="Local session token", auto_error=False)


async def require_session(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> AuthContext:
    """Resolve the caller's local session from a bearer token or cookie.

    Raises:
        AuthError: If no session token is presented or it is unknown/expired
    """
    token = credentials.credentials if credentials else None
    if not token:
        token = request.cookies.get(settings.SESSION_COOKIE_NAME)

    if not token:
        raise AuthError("Unauthorized")

    context = session_store.get(token)
    if context is None:
        logger.info("Rejected unknown or expired local session")
        raise AuthError("Unauthorized")

    return context


def upstream_token_of(context: AuthContext, missing_error: type[Exception]) -> str:
    """Return the upstream bearer credential, raising ``missing_error`` if absent.

    Read per request from the caller's context and never cached.
    """
    if not context.upstream_token:
        raise missing_error(
            "Upstream OAuth token not found. Please sign in again and grant upload permissions."
        )
    return context.upstream_token


SessionDep = Annotated[AuthContext, Depends(require_session)]
