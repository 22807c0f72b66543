"""Chunk transfer orchestration for resumable uploads.

One orchestrator owns one UploadSession and its TransferState. It sends
strictly ordered, contiguous byte ranges, never more than one request in
flight, and turns every remote reply into either progress, a bounded retry,
a position probe, or a terminal outcome.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from mediarelay.core.exceptions import (
    InternalError,
    TransientNetworkError,
    UploadError,
    UpstreamUnavailable,
)
from mediarelay.core.logging import redact_url, upload_target_context
from mediarelay.services.upstream_errors import translate_upstream_error
from mediarelay.transfer.completion import extract_resource_id
from mediarelay.transfer.config import TransferConfig
from mediarelay.transfer.content_range import format_content_range, parse_range_upper_bound
from mediarelay.transfer.models import (
    ChunkAttempt,
    ChunkResponse,
    RemoteResource,
    TransferState,
    TransferStatus,
    UploadSession,
)
from mediarelay.transfer.progress import ProgressReport, report_progress
from mediarelay.transfer.prober import PositionProber
from mediarelay.transfer.retry import backoff_retrying
from mediarelay.transfer.source import ByteSource
from mediarelay.transfer.transport import RESUME_INCOMPLETE, ChunkTransport

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressReport], None]


class ChunkTransferOrchestrator:
    """Drive a TransferState from Initializing to Completed or Failed."""

    def __init__(
        self,
        session: UploadSession,
        source: ByteSource,
        transport: ChunkTransport,
        config: Optional[TransferConfig] = None,
        *,
        on_progress: Optional[ProgressCallback] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.session = session
        self.config = config or TransferConfig()
        self._source = source
        self._transport = transport
        self._on_progress = on_progress
        self._sleep = sleep
        self._prober = PositionProber(transport, self.config, sleep=sleep)
        self._resource: Optional[RemoteResource] = None
        self._needs_probe = False

        self.state = TransferState(
            total_size=session.total_size,
            retries_remaining=self.config.max_attempts,
        )

    @property
    def resource(self) -> Optional[RemoteResource]:
        return self._resource

    def report(self) -> ProgressReport:
        """Current progress snapshot."""
        return report_progress(self.state, self._resource)

    async def run(self) -> RemoteResource:
        """Transfer the whole file, resuming where a previous run stopped.

        Returns:
            The RemoteResource built from the remote completion body

        Raises:
            UploadError: A categorized terminal failure (never TransientNetworkError)
            asyncio.CancelledError: The in-flight request was cancelled; the
                next call to run() re-probes before sending anything
        """
        if self.state.status == TransferStatus.COMPLETED:
            return self._resource
        if self.state.status == TransferStatus.FAILED:
            raise self.state.error

        token = upload_target_context.set(redact_url(self.session.target_endpoint))
        try:
            if self.state.status == TransferStatus.INITIALIZING:
                self.state.transition(TransferStatus.TRANSFERRING)
                logger.info(
                    "Starting chunked transfer",
                    extra={
                        "session_id": self.session.session_id,
                        "total_size": self.session.total_size,
                        "chunk_size": self.config.chunk_size,
                    },
                )
                self._emit()

            if self._needs_probe:
                resource = await self._reconcile()
                if resource is not None:
                    return resource
                self._needs_probe = False

            return await self._transfer_all()

        except asyncio.CancelledError:
            self._needs_probe = True
            logger.info(
                "Transfer cancelled, next run will re-probe",
                extra={
                    "session_id": self.session.session_id,
                    "acknowledged_offset": self.state.acknowledged_offset,
                },
            )
            raise
        except UploadError as e:
            self._fail(e)
            raise
        except Exception as e:
            logger.error(
                "Unexpected error during transfer",
                extra={"session_id": self.session.session_id, "error": str(e)},
                exc_info=True,
            )
            error = InternalError(f"Transfer failed: {e}")
            self._fail(error)
            raise error from e
        finally:
            upload_target_context.reset(token)

    async def _transfer_all(self) -> RemoteResource:
        total = self.session.total_size
        while self.state.acknowledged_offset < total:
            chunk_end = min(self.state.acknowledged_offset + self.config.chunk_size, total)
            resource = await self._transfer_chunk(chunk_end)
            if resource is not None:
                return resource

        # Every byte is acknowledged but no completion body arrived yet
        resource = await self._reconcile()
        if resource is not None:
            return resource
        raise InternalError("Upload incomplete: all bytes acknowledged without completion")

    async def _transfer_chunk(self, chunk_end: int) -> Optional[RemoteResource]:
        """Send [acknowledged_offset, chunk_end) until the remote holds all of it."""
        while self.state.acknowledged_offset < chunk_end:
            start = self.state.acknowledged_offset
            response = await self._send_with_retry(start, chunk_end)

            if response.status in (200, 201):
                return self._complete(response.body)

            if response.status != RESUME_INCOMPLETE:
                raise translate_upstream_error(response.status, response.body)

            upper = parse_range_upper_bound(response.range_header)
            if upper is None:
                resource = await self._reconcile()
                if resource is not None:
                    return resource
                if self.state.acknowledged_offset == start:
                    self._spend_attempt("probe found no progress")
                continue

            self._acknowledge(upper + 1)
            if self.state.acknowledged_offset < chunk_end:
                logger.info(
                    "Partial chunk acceptance, resending remainder",
                    extra={
                        "session_id": self.session.session_id,
                        "acknowledged_offset": self.state.acknowledged_offset,
                        "chunk_end": chunk_end,
                    },
                )

        self.state.retries_remaining = self.config.max_attempts
        return None

    async def _send_with_retry(self, start: int, end: int) -> ChunkResponse:
        """Send one range, retrying transient failures within the attempt budget."""
        content_range = format_content_range(start, end, self.session.total_size)
        payload = await self._source.read(start, end)

        try:
            async for attempt in backoff_retrying(
                self.config, lambda: self.state.retries_remaining <= 0, self._sleep
            ):
                with attempt:
                    return await self._send_once(
                        payload, content_range, start, end, attempt.retry_state.attempt_number
                    )
        except TransientNetworkError as e:
            logger.error(
                "Chunk exhausted retry budget",
                extra={
                    "session_id": self.session.session_id,
                    "start": start,
                    "end": end,
                    "error": str(e),
                },
            )
            raise UpstreamUnavailable() from e

    async def _send_once(
        self, payload: bytes, content_range: str, start: int, end: int, attempt_number: int
    ) -> ChunkResponse:
        try:
            response = await self._transport.send(self.session, payload, content_range)
        except TransientNetworkError:
            self.state.retries_remaining -= 1
            self._log_attempt(ChunkAttempt(start, end, attempt_number, "no_response"))
            raise

        if response.status >= 500:
            self.state.retries_remaining -= 1
            self._log_attempt(ChunkAttempt(start, end, attempt_number, f"status_{response.status}"))
            raise TransientNetworkError(f"Remote answered with status {response.status}")

        upper = parse_range_upper_bound(response.range_header)
        if response.status == RESUME_INCOMPLETE and upper is not None and upper + 1 <= start:
            if upper + 1 < start:
                raise InternalError(
                    f"Remote offset {upper + 1} is behind acknowledged offset {start}"
                )
            self.state.retries_remaining -= 1
            self._log_attempt(ChunkAttempt(start, end, attempt_number, "no_progress"))
            raise TransientNetworkError("Remote acknowledged no new bytes")

        self._log_attempt(ChunkAttempt(start, end, attempt_number, f"status_{response.status}"))
        return response

    async def _reconcile(self) -> Optional[RemoteResource]:
        """Probe the remote offset and adopt it."""
        self.state.transition(TransferStatus.PROBING)
        self._emit()

        result = await self._prober.probe(self.session)
        if result.completed:
            return self._complete(result.completion_body)

        self._acknowledge(result.offset)
        self.state.transition(TransferStatus.TRANSFERRING)
        self._emit()
        return None

    def _acknowledge(self, offset: int) -> None:
        if offset < self.state.acknowledged_offset:
            raise InternalError(
                f"Remote offset {offset} is behind acknowledged offset "
                f"{self.state.acknowledged_offset}"
            )
        if offset > self.session.total_size:
            raise InternalError(
                f"Remote offset {offset} exceeds total size {self.session.total_size}"
            )
        if offset != self.state.acknowledged_offset:
            self.state.acknowledged_offset = offset
            self._emit()

    def _spend_attempt(self, reason: str) -> None:
        self.state.retries_remaining -= 1
        if self.state.retries_remaining <= 0:
            logger.error(
                "Chunk exhausted retry budget",
                extra={"session_id": self.session.session_id, "reason": reason},
            )
            raise UpstreamUnavailable()

    def _complete(self, body: Any) -> RemoteResource:
        resource_id = extract_resource_id(body)
        if not resource_id:
            raise InternalError("Completion response did not include a resource identifier")

        self.state.acknowledged_offset = self.session.total_size
        self.state.transition(TransferStatus.COMPLETED)
        self._resource = RemoteResource(
            resource_id=resource_id,
            resource_url=self.config.resource_url(resource_id),
        )

        logger.info(
            "Transfer completed",
            extra={
                "session_id": self.session.session_id,
                "resource_id": resource_id,
                "total_size": self.session.total_size,
            },
        )
        self._emit()
        return self._resource

    def _fail(self, error: UploadError) -> None:
        if self.state.status.is_terminal:
            return
        self.state.error = error
        self.state.transition(TransferStatus.FAILED)

        logger.warning(
            "Transfer failed",
            extra={
                "session_id": self.session.session_id,
                "category": error.category,
                "acknowledged_offset": self.state.acknowledged_offset,
                "upstream_status": error.upstream_status,
            },
        )
        self._emit()

    def _log_attempt(self, attempt: ChunkAttempt) -> None:
        logger.debug(
            "Chunk attempt",
            extra={
                "session_id": self.session.session_id,
                "start": attempt.start_offset,
                "end": attempt.end_offset,
                "attempt": attempt.attempt_number,
                "outcome": attempt.outcome,
            },
        )

    def _emit(self) -> None:
        if self._on_progress is not None:
            self._on_progress(self.report())
