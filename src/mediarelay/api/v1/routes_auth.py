"""Upstream credential routes."""

from fastapi import APIRouter, Request

from mediarelay.core.auth import SessionDep
from mediarelay.models.upload import UploadScopeResponse
from mediarelay.services.scope_check import has_upload_scope

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.get("/upload-scope", response_model=UploadScopeResponse)
async def upload_scope(request: Request, auth: SessionDep) -> UploadScopeResponse:
    """Report whether the caller's upstream credential carries the upload scope."""
    if not auth.upstream_token:
        return UploadScopeResponse(has_scope=False)
    has_scope = await has_upload_scope(request.app.state.http_client, auth.upstream_token)
    return UploadScopeResponse(has_scope=has_scope)
