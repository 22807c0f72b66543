"""Authenticated chunk relay to the remote resumable upload endpoint."""

import logging
from dataclasses import dataclass
from typing import AbstractSet, Any, Optional
from urllib.parse import urlsplit

import httpx

from mediarelay.core.exceptions import UpstreamUnavailable, ValidationError
from mediarelay.core.logging import redact_url
from mediarelay.services.upstream_errors import read_error_body, translate_upstream_error
from mediarelay.transfer.content_range import parse_content_range

logger = logging.getLogger(__name__)

RESUME_INCOMPLETE = 308


@dataclass(frozen=True)
class RelayResult:
    """Upstream reply relayed back to the caller."""

    status: int
    range_header: Optional[str] = None
    completion_body: Optional[Any] = None


def validate_chunk_request(
    target_endpoint: str,
    content_range: str,
    payload_size: int,
    allowed_hosts: AbstractSet[str],
) -> None:
    """Reject malformed relay requests before anything is forwarded.

    The upstream credential is only ever sent over https to one of
    ``allowed_hosts``.

    Raises:
        ValidationError: Bad or foreign target URL, bad Content-Range, or a
            payload whose length does not match the declared range
    """
    parts = urlsplit(target_endpoint or "")
    if parts.scheme != "https" or not parts.hostname:
        raise ValidationError("targetEndpoint must be an absolute https URL")
    if parts.hostname.lower() not in allowed_hosts:
        logger.warning("Rejected chunk for foreign upload host", extra={"host": parts.hostname})
        raise ValidationError("targetEndpoint is not an upload session of the remote host")

    try:
        declared = parse_content_range(content_range or "")
    except ValueError as e:
        raise ValidationError(str(e)) from e

    if declared.length != payload_size:
        raise ValidationError(
            f"Chunk size {payload_size} does not match Content-Range length {declared.length}"
        )


class ChunkRelay:
    """Forward one chunk to the remote host on the caller's behalf.

    Stateless: the upstream credential is passed in per call and nothing is
    kept between calls. Repeating an already acknowledged range is safe since
    the remote host's offset tracking is authoritative.
    """

    def __init__(
        self, client: httpx.AsyncClient, timeout: float, allowed_hosts: AbstractSet[str]
    ):
        self._client = client
        self._timeout = timeout
        self._allowed_hosts = allowed_hosts

    async def forward(
        self,
        payload: bytes,
        target_endpoint: str,
        content_range: str,
        content_type: str,
        upstream_token: str,
    ) -> RelayResult:
        """Forward ``payload`` and relay the remote status and Range header.

        Returns:
            RelayResult for 200/201/308 upstream replies

        Raises:
            ValidationError: Malformed request
            UploadError: Any other upstream status, mapped to the taxonomy
        """
        validate_chunk_request(
            target_endpoint, content_range, len(payload), self._allowed_hosts
        )

        try:
            response = await self._client.put(
                target_endpoint,
                content=payload,
                headers={
                    "Authorization": f"Bearer {upstream_token}",
                    "Content-Type": content_type or "application/octet-stream",
                    "Content-Range": content_range,
                },
                timeout=self._timeout,
            )
        except httpx.TransportError as e:
            logger.warning(
                "Upstream unreachable during chunk relay",
                extra={"target": redact_url(target_endpoint), "error": str(e)},
            )
            raise UpstreamUnavailable() from e

        range_header = response.headers.get("Range")

        if response.status_code in (200, 201):
            try:
                completion_body = response.json()
            except ValueError:
                completion_body = None
            logger.info(
                "Upstream reported upload complete",
                extra={"upstream_status": response.status_code, "content_range": content_range},
            )
            return RelayResult(
                status=response.status_code,
                range_header=range_header,
                completion_body=completion_body,
            )

        if response.status_code == RESUME_INCOMPLETE:
            logger.debug(
                "Upstream resume incomplete",
                extra={"content_range": content_range, "range_header": range_header},
            )
            return RelayResult(status=RESUME_INCOMPLETE, range_header=range_header)

        error = translate_upstream_error(response.status_code, read_error_body(response))
        logger.warning(
            "Upstream rejected chunk",
            extra={
                "upstream_status": response.status_code,
                "category": error.category,
                "content_range": content_range,
            },
        )
        raise error
