"""
Chunk Transfer Client

Drives resumable uploads chunk by chunk: ordered Content-Range PUTs, 308
partial continuation, offset probes after ambiguous replies, and bounded
backoff for transient failures.
"""

from mediarelay.transfer.client import InitiatedUpload, UploadClient
from mediarelay.transfer.config import TransferConfig
from mediarelay.transfer.models import (
    RemoteResource,
    TransferMode,
    TransferState,
    TransferStatus,
    UploadSession,
)
from mediarelay.transfer.orchestrator import ChunkTransferOrchestrator
from mediarelay.transfer.progress import ProgressReport, report_progress
from mediarelay.transfer.prober import PositionProber, ProbeResult

__all__ = [
    "ChunkTransferOrchestrator",
    "InitiatedUpload",
    "PositionProber",
    "ProbeResult",
    "ProgressReport",
    "RemoteResource",
    "TransferConfig",
    "TransferMode",
    "TransferState",
    "TransferStatus",
    "UploadClient",
    "UploadSession",
    "report_progress",
]
