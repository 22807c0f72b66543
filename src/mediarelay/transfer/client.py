"""Client for uploading a file through the MediaRelay service."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, BinaryIO, Callable, Optional

import httpx

from mediarelay.core.exceptions import InternalError, UpstreamUnavailable
from mediarelay.services.upstream_errors import read_error_body, translate_upstream_error
from mediarelay.transfer.completion import extract_resource_id
from mediarelay.transfer.config import TransferConfig
from mediarelay.transfer.models import RemoteResource, TransferMode, UploadSession
from mediarelay.transfer.orchestrator import ChunkTransferOrchestrator, ProgressCallback
from mediarelay.transfer.source import ByteSource
from mediarelay.transfer.transport import RelayTransport

logger = logging.getLogger(__name__)

SESSIONS_PATH = "/api/v1/upload/sessions"
CHUNKS_PATH = "/api/v1/upload/chunks"


@dataclass(frozen=True)
class InitiatedUpload:
    """Initiation reply: where and how to send the file."""

    target_endpoint: str
    transfer_mode: TransferMode
    size_ceiling: int
    resource_id: Optional[str] = None


class UploadClient:
    """Upload files via the relay service's initiation and chunk endpoints.

    Small files go to a one-time direct upload URL in a single request;
    large files are driven chunk by chunk through the relay by a
    ChunkTransferOrchestrator.
    """

    def __init__(
        self,
        base_url: str,
        session_token: str,
        config: Optional[TransferConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.config = config or TransferConfig()
        self._session_token = session_token
        self._client = http_client or httpx.AsyncClient()
        self._owns_client = http_client is None
        self._sleep = sleep

    async def __aenter__(self) -> "UploadClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @property
    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._session_token}"}

    async def initiate(self, file_name: str, file_size: int, file_type: str) -> InitiatedUpload:
        """Ask the service for an upload target.

        Raises:
            UploadError: Categorized failure reported by the service
        """
        try:
            response = await self._client.post(
                f"{self.base_url}{SESSIONS_PATH}",
                json={"fileName": file_name, "fileSize": file_size, "fileType": file_type},
                headers=self._auth_headers,
                timeout=self.config.init_timeout_seconds,
            )
        except httpx.TransportError as e:
            raise UpstreamUnavailable(f"Upload service unreachable: {e}") from e

        if response.status_code != 200:
            raise translate_upstream_error(response.status_code, read_error_body(response))

        try:
            data = response.json()
            return InitiatedUpload(
                target_endpoint=data["targetEndpoint"],
                transfer_mode=TransferMode(data["transferMode"]),
                size_ceiling=int(data["sizeCeiling"]),
                resource_id=data.get("resourceId"),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error("Malformed initiation response", extra={"error": str(e)})
            raise InternalError("Upload service returned a malformed initiation response") from e

    async def upload(
        self,
        file_data: BinaryIO,
        file_name: str,
        file_type: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> RemoteResource:
        """Initiate and transfer ``file_data``, returning the stored resource."""
        source = ByteSource(file_data)
        file_size = source.size
        initiated = await self.initiate(file_name, file_size, file_type)

        logger.info(
            "Upload initiated",
            extra={
                "file_name": file_name,
                "file_size": file_size,
                "transfer_mode": initiated.transfer_mode.value,
            },
        )

        if initiated.transfer_mode == TransferMode.DIRECT:
            return await self._upload_direct(file_data, file_name, file_type, initiated)

        session = UploadSession(
            target_endpoint=initiated.target_endpoint,
            total_size=file_size,
            content_type=file_type,
        )
        transport = RelayTransport(
            self._client,
            f"{self.base_url}{CHUNKS_PATH}",
            self._session_token,
            timeout=self.config.relay_timeout_seconds,
        )
        orchestrator = ChunkTransferOrchestrator(
            session,
            source,
            transport,
            self.config,
            on_progress=on_progress,
            sleep=self._sleep,
        )
        return await orchestrator.run()

    async def _upload_direct(
        self,
        file_data: BinaryIO,
        file_name: str,
        file_type: str,
        initiated: InitiatedUpload,
    ) -> RemoteResource:
        file_data.seek(0)
        try:
            response = await self._client.post(
                initiated.target_endpoint,
                files={"file": (file_name, file_data, file_type)},
                timeout=self.config.relay_timeout_seconds,
            )
        except httpx.TransportError as e:
            raise UpstreamUnavailable(f"Direct upload failed: {e}") from e

        if response.status_code not in (200, 201):
            raise translate_upstream_error(response.status_code, read_error_body(response))

        try:
            body = response.json()
        except ValueError:
            body = None

        resource_id = extract_resource_id(body) or initiated.resource_id
        if not resource_id:
            raise InternalError("Direct upload did not return a resource identifier")

        return RemoteResource(
            resource_id=resource_id,
            resource_url=self.config.direct_resource_url(resource_id),
        )
