"""Resumable and direct upload session initiation against the remote host."""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urljoin

import httpx

from mediarelay.core.config import Settings, settings as default_settings
from mediarelay.core.exceptions import (
    InternalError,
    UpstreamUnavailable,
    ValidationError,
)
from mediarelay.core.logging import redact_url
from mediarelay.core.rate_limit import SlidingWindowRateLimiter
from mediarelay.services.upstream_errors import read_error_body, translate_upstream_error
from mediarelay.transfer.models import TransferMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadMetadata:
    """Client-declared file metadata."""

    file_name: str
    file_size: int
    file_type: str


@dataclass(frozen=True)
class InitiatedSession:
    """Where the client should send the file."""

    target_endpoint: str
    transfer_mode: TransferMode
    size_ceiling: int
    resource_id: Optional[str] = None


class SessionInitiator:
    """Create upload sessions on the remote host.

    Payloads at or below the direct threshold get a one-time direct upload
    URL created with the server-side credential. Larger payloads get a
    resumable session created with the caller's upstream bearer credential.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        config: Optional[Settings] = None,
    ):
        self._client = client
        self._rate_limiter = rate_limiter
        self._settings = config or default_settings

    def validate(self, metadata: UploadMetadata) -> None:
        """Check metadata against the configured constraints.

        Raises:
            ValidationError: Missing fields, oversize file or wrong media type
        """
        if not metadata.file_name or not metadata.file_type or not metadata.file_size:
            raise ValidationError("File metadata (fileName, fileSize, fileType) is required")

        if metadata.file_size < 0:
            raise ValidationError("fileSize must be positive")

        if metadata.file_size > self._settings.max_upload_bytes:
            raise ValidationError(
                f"File size exceeds maximum allowed size of {self._settings.MAX_UPLOAD_MB}MB"
            )

        if not metadata.file_type.startswith(self._settings.ALLOWED_MEDIA_PREFIX):
            raise ValidationError(
                f"Invalid file type {metadata.file_type}. "
                f"Expected a {self._settings.ALLOWED_MEDIA_PREFIX.rstrip('/')} file."
            )

    def select_mode(self, metadata: UploadMetadata) -> TransferMode:
        if metadata.file_size <= self._settings.direct_upload_threshold_bytes:
            return TransferMode.DIRECT
        return TransferMode.CHUNKED

    async def initiate(self, metadata: UploadMetadata, upstream_token: str) -> InitiatedSession:
        """Validate metadata and create the matching remote session.

        Raises:
            ValidationError: Invalid metadata
            InternalError: Server-side configuration is missing, or the remote
                reply lacks a target URL
            AuthError, ForbiddenError, QuotaError, RateLimited,
            UpstreamUnavailable: The remote host refused the session
        """
        self.validate(metadata)
        mode = self.select_mode(metadata)

        if self._rate_limiter is not None:
            await self._rate_limiter.acquire()

        if mode == TransferMode.DIRECT:
            return await self._create_direct(metadata)
        return await self._create_resumable(metadata, upstream_token)

    async def _post(self, url: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.post(
                url, timeout=self._settings.INIT_TIMEOUT_SECONDS, **kwargs
            )
        except httpx.TransportError as e:
            logger.error(
                "Remote session initiation unreachable",
                extra={"url": redact_url(url), "error": str(e)},
            )
            raise UpstreamUnavailable() from e

    def _raise_for_status(self, response: httpx.Response, mode: TransferMode) -> None:
        if response.is_success:
            return
        body = read_error_body(response)
        error = translate_upstream_error(response.status_code, body)
        logger.error(
            "Remote session initiation rejected",
            extra={
                "upstream_status": response.status_code,
                "transfer_mode": mode.value,
                "category": error.category,
            },
        )
        raise error

    async def _create_resumable(
        self, metadata: UploadMetadata, upstream_token: str
    ) -> InitiatedSession:
        if not self._settings.REMOTE_SESSION_URL:
            logger.error("Resumable upload configuration missing", extra={"missing": ["REMOTE_SESSION_URL"]})
            raise InternalError("Upload configuration missing: REMOTE_SESSION_URL")

        title = os.path.splitext(metadata.file_name)[0] or "Untitled Upload"
        video_metadata = {
            "snippet": {
                "title": title,
                "description": f"Uploaded on {datetime.now(timezone.utc).date().isoformat()}",
            },
            "status": {"privacyStatus": self._settings.REMOTE_PRIVACY_STATUS},
        }

        logger.info(
            "Initializing resumable upload",
            extra={
                "file_name": metadata.file_name,
                "file_size": metadata.file_size,
                "file_type": metadata.file_type,
            },
        )

        response = await self._post(
            self._settings.REMOTE_SESSION_URL,
            json=video_metadata,
            headers={
                "Authorization": f"Bearer {upstream_token}",
                "X-Upload-Content-Type": metadata.file_type,
                "X-Upload-Content-Length": str(metadata.file_size),
            },
        )
        self._raise_for_status(response, TransferMode.CHUNKED)

        location = response.headers.get("Location")
        if not location:
            raise InternalError("Failed to get upload URL from remote host")

        target = urljoin(self._settings.REMOTE_SESSION_URL, location)
        logger.info("Resumable upload URL obtained", extra={"target": redact_url(target)})

        return InitiatedSession(
            target_endpoint=target,
            transfer_mode=TransferMode.CHUNKED,
            size_ceiling=self._settings.max_upload_bytes,
        )

    async def _create_direct(self, metadata: UploadMetadata) -> InitiatedSession:
        missing = [
            name
            for name in ("DIRECT_UPLOAD_URL", "DIRECT_UPLOAD_API_TOKEN")
            if not getattr(self._settings, name)
        ]
        if missing:
            # Names only; credential values never leave the process
            logger.error("Direct upload configuration missing", extra={"missing": missing})
            raise InternalError(f"Upload configuration missing: {', '.join(missing)}")

        response = await self._post(
            self._settings.DIRECT_UPLOAD_URL,
            json={"maxDurationSeconds": self._settings.DIRECT_UPLOAD_MAX_DURATION_SECONDS},
            headers={"Authorization": f"Bearer {self._settings.DIRECT_UPLOAD_API_TOKEN}"},
        )
        self._raise_for_status(response, TransferMode.DIRECT)

        try:
            result = response.json().get("result") or {}
        except (ValueError, AttributeError):
            result = {}

        upload_url = result.get("uploadURL")
        if not upload_url:
            raise InternalError("Failed to get direct upload URL from remote host")

        logger.info(
            "Direct upload URL obtained",
            extra={"file_name": metadata.file_name, "file_size": metadata.file_size},
        )

        return InitiatedSession(
            target_endpoint=upload_url,
            transfer_mode=TransferMode.DIRECT,
            size_ceiling=self._settings.direct_upload_threshold_bytes,
            resource_id=result.get("uid"),
        )
