"""Transports that carry a single chunk PUT to the remote host."""

import logging
from abc import ABC, abstractmethod

import httpx

from mediarelay.core.exceptions import TransientNetworkError
from mediarelay.services.upstream_errors import read_error_body
from mediarelay.transfer.models import ChunkResponse, UploadSession

logger = logging.getLogger(__name__)

RESUME_INCOMPLETE = 308


class ChunkTransport(ABC):
    """Abstract base class for chunk transports."""

    @abstractmethod
    async def send(
        self, session: UploadSession, payload: bytes, content_range: str
    ) -> ChunkResponse:
        """Send one byte range (or a zero-length probe).

        Args:
            session: Target upload session
            payload: Chunk bytes, empty for a probe
            content_range: ``Content-Range`` header value

        Returns:
            The remote status, Range header and decoded body

        Raises:
            TransientNetworkError: If no response was received at all
        """
        pass


class DirectTransport(ChunkTransport):
    """PUT chunks straight to the remote session URL with a bearer credential."""

    def __init__(
        self, client: httpx.AsyncClient, upstream_token: str, timeout: float | None = None
    ):
        self._client = client
        self._upstream_token = upstream_token
        self._timeout = timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT

    async def send(
        self, session: UploadSession, payload: bytes, content_range: str
    ) -> ChunkResponse:
        try:
            response = await self._client.put(
                session.target_endpoint,
                content=payload,
                headers={
                    "Authorization": f"Bearer {self._upstream_token}",
                    "Content-Type": session.content_type,
                    "Content-Range": content_range,
                },
                timeout=self._timeout,
            )
        except httpx.TransportError as e:
            raise TransientNetworkError(f"No response from remote host: {e}") from e

        return to_chunk_response(response)


class RelayTransport(ChunkTransport):
    """PUT chunks to this service's relay, which holds the upstream credential."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        relay_url: str,
        session_token: str,
        timeout: float | None = None,
    ):
        self._client = client
        self._relay_url = relay_url
        self._session_token = session_token
        self._timeout = timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT

    async def send(
        self, session: UploadSession, payload: bytes, content_range: str
    ) -> ChunkResponse:
        try:
            response = await self._client.put(
                self._relay_url,
                content=payload,
                headers={
                    "Authorization": f"Bearer {self._session_token}",
                    "Content-Type": session.content_type,
                    "Content-Range": content_range,
                    "X-Upload-Target": session.target_endpoint,
                },
                timeout=self._timeout,
            )
        except httpx.TransportError as e:
            raise TransientNetworkError(f"No response from relay: {e}") from e

        if response.status_code != 200:
            return ChunkResponse(status=response.status_code, body=read_error_body(response))

        try:
            relayed = response.json()
        except ValueError:
            relayed = None

        # A truncated relay reply is indistinguishable from a dropped connection
        if not isinstance(relayed, dict) or not isinstance(relayed.get("status"), int):
            raise TransientNetworkError("Relay returned an unreadable response")

        return ChunkResponse(
            status=relayed["status"],
            range_header=relayed.get("rangeHeader"),
            body=relayed.get("completionBody"),
        )


def to_chunk_response(response: httpx.Response) -> ChunkResponse:
    """Decode a remote host response into a ChunkResponse."""
    range_header = response.headers.get("Range")

    if response.status_code in (200, 201):
        try:
            body = response.json()
        except ValueError:
            body = None
        return ChunkResponse(status=response.status_code, range_header=range_header, body=body)

    if response.status_code == RESUME_INCOMPLETE:
        return ChunkResponse(status=RESUME_INCOMPLETE, range_header=range_header)

    return ChunkResponse(
        status=response.status_code,
        range_header=range_header,
        body=read_error_body(response),
    )
