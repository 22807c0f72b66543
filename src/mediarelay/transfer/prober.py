"""Position reconciliation for resumable sessions in an ambiguous state."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from mediarelay.core.exceptions import (
    AuthError,
    NotFoundError,
    RateLimited,
    TransientNetworkError,
    UpstreamUnavailable,
)
from mediarelay.transfer.config import TransferConfig
from mediarelay.transfer.content_range import format_probe_range, parse_range_upper_bound
from mediarelay.transfer.models import ChunkResponse, UploadSession
from mediarelay.transfer.retry import backoff_retrying
from mediarelay.transfer.transport import RESUME_INCOMPLETE, ChunkTransport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeResult:
    """Offset the remote host has durably accepted.

    ``completed`` is set when the remote reports the upload as already
    finished, in which case ``offset`` equals the total size and
    ``completion_body`` holds the remote reply.
    """

    offset: int
    completed: bool = False
    completion_body: Optional[Any] = None


class PositionProber:
    """Ask the remote host how many bytes it holds for a session.

    Sends a zero-length PUT with ``Content-Range: bytes */total``. A 308 with
    a Range header yields ``upper + 1``; a 308 without one means nothing has
    been accepted yet and yields 0.
    """

    def __init__(
        self,
        transport: ChunkTransport,
        config: TransferConfig,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._transport = transport
        self._config = config
        self._sleep = sleep

    async def probe(self, session: UploadSession) -> ProbeResult:
        """Return the remote-acknowledged offset for ``session``.

        Raises:
            AuthError: The upstream credential was rejected
            RateLimited: The remote host is rate limiting the caller
            NotFoundError: The remote session expired or never existed
            UpstreamUnavailable: No usable answer within the attempt budget
        """
        remaining = self._config.max_attempts
        content_range = format_probe_range(session.total_size)

        async def send_probe() -> ChunkResponse:
            nonlocal remaining
            try:
                response = await self._transport.send(session, b"", content_range)
            except TransientNetworkError:
                remaining -= 1
                raise
            if response.status >= 500:
                remaining -= 1
                raise TransientNetworkError(f"Probe answered with status {response.status}")
            return response

        try:
            async for attempt in backoff_retrying(
                self._config, lambda: remaining <= 0, self._sleep
            ):
                with attempt:
                    response = await send_probe()
        except TransientNetworkError as e:
            logger.error(
                "Probe exhausted retry budget",
                extra={"session_id": session.session_id, "error": str(e)},
            )
            raise UpstreamUnavailable() from e

        return self._interpret(session, response)

    def _interpret(self, session: UploadSession, response: ChunkResponse) -> ProbeResult:
        if response.status == RESUME_INCOMPLETE:
            upper = parse_range_upper_bound(response.range_header)
            offset = 0 if upper is None else upper + 1
            logger.info(
                "Probe reconciled offset",
                extra={
                    "session_id": session.session_id,
                    "offset": offset,
                    "range_header": response.range_header,
                },
            )
            return ProbeResult(offset=offset)

        if response.status in (200, 201):
            return ProbeResult(
                offset=session.total_size, completed=True, completion_body=response.body
            )

        if response.status == 401:
            raise AuthError(upstream_status=401)
        if response.status == 429:
            raise RateLimited(upstream_status=429)

        logger.warning(
            "Probe found no live session",
            extra={"session_id": session.session_id, "upstream_status": response.status},
        )
        raise NotFoundError(upstream_status=response.status)
