"""Upload API routes: session initiation and chunk relay."""

import logging

import httpx
from fastapi import APIRouter, Body, Header, Request

from mediarelay.core.auth import SessionDep, upstream_token_of
from mediarelay.core.config import settings
from mediarelay.core.exceptions import AuthError, ForbiddenError, ValidationError
from mediarelay.core.rate_limit import SlidingWindowRateLimiter
from mediarelay.models.upload import (
    ChunkRelayResponse,
    CreateSessionRequest,
    CreateSessionResponse,
    ErrorResponse,
)
from mediarelay.services.relay import ChunkRelay
from mediarelay.services.session_initiator import SessionInitiator, UploadMetadata

router = APIRouter(prefix="/api/v1", tags=["upload"])
logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 429, 500, 503)
}


def _http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def _init_rate_limiter(request: Request) -> SlidingWindowRateLimiter:
    return request.app.state.init_rate_limiter


async def _read_chunk_body(request: Request, limit: int) -> bytes:
    """Read the request body, refusing anything larger than ``limit`` bytes."""
    declared = request.headers.get("content-length")
    if declared is not None:
        if not declared.isdigit():
            raise ValidationError("Invalid Content-Length")
        if int(declared) > limit:
            raise ValidationError(f"Chunk exceeds the relay limit of {limit} bytes")

    body = bytearray()
    async for piece in request.stream():
        body.extend(piece)
        if len(body) > limit:
            raise ValidationError(f"Chunk exceeds the relay limit of {limit} bytes")
    return bytes(body)


@router.post(
    "/upload/sessions",
    response_model=CreateSessionResponse,
    response_model_by_alias=True,
    responses=ERROR_RESPONSES,
)
async def create_upload_session(
    request: Request,
    auth: SessionDep,
    body: CreateSessionRequest = Body(...),
) -> CreateSessionResponse:
    """Create a direct or resumable upload session on the remote host."""
    upstream_token = upstream_token_of(auth, ForbiddenError)

    metadata = UploadMetadata(
        file_name=(body.file_name or "").strip(),
        file_size=body.file_size or 0,
        file_type=(body.file_type or "").strip(),
    )

    initiator = SessionInitiator(_http_client(request), _init_rate_limiter(request))
    session = await initiator.initiate(metadata, upstream_token)

    logger.info(
        "Upload session created",
        extra={
            "user_id": auth.user_id,
            "file_size": metadata.file_size,
            "transfer_mode": session.transfer_mode.value,
        },
    )

    return CreateSessionResponse(
        target_endpoint=session.target_endpoint,
        transfer_mode=session.transfer_mode.value,
        size_ceiling=session.size_ceiling,
        resource_id=session.resource_id,
    )


@router.put(
    "/upload/chunks",
    response_model=ChunkRelayResponse,
    response_model_by_alias=True,
    responses=ERROR_RESPONSES,
)
async def relay_chunk(
    request: Request,
    auth: SessionDep,
    x_upload_target: str = Header(""),
    content_range: str = Header(""),
    content_type: str = Header("application/octet-stream"),
) -> ChunkRelayResponse:
    """Forward one chunk to the remote session and relay its reply."""
    upstream_token = upstream_token_of(auth, AuthError)
    payload = await _read_chunk_body(request, settings.RELAY_MAX_CHUNK_BYTES)

    relay = ChunkRelay(
        _http_client(request),
        timeout=settings.RELAY_TIMEOUT_SECONDS,
        allowed_hosts=settings.upload_target_hosts,
    )
    result = await relay.forward(
        payload=payload,
        target_endpoint=x_upload_target,
        content_range=content_range,
        content_type=content_type,
        upstream_token=upstream_token,
    )

    return ChunkRelayResponse(
        status=result.status,
        range_header=result.range_header,
        completion_body=result.completion_body,
    )
