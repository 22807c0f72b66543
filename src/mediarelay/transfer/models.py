"""Transfer data models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4


class TransferStatus(str, Enum):
    """Transfer status enumeration."""

    INITIALIZING = "initializing"
    TRANSFERRING = "transferring"
    PROBING = "probing"  # Reconciling offset with the remote host
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TransferStatus.COMPLETED, TransferStatus.FAILED)


class TransferMode(str, Enum):
    """How the initiator told the client to send the file."""

    DIRECT = "direct"
    CHUNKED = "chunked"


ALLOWED_TRANSITIONS: dict[TransferStatus, frozenset[TransferStatus]] = {
    TransferStatus.INITIALIZING: frozenset([TransferStatus.TRANSFERRING]),
    TransferStatus.TRANSFERRING: frozenset(
        [TransferStatus.PROBING, TransferStatus.COMPLETED, TransferStatus.FAILED]
    ),
    TransferStatus.PROBING: frozenset(
        [TransferStatus.TRANSFERRING, TransferStatus.COMPLETED, TransferStatus.FAILED]
    ),
    TransferStatus.COMPLETED: frozenset(),
    TransferStatus.FAILED: frozenset(),
}


@dataclass(frozen=True)
class UploadSession:
    """A remote resumable session for one file transfer attempt."""

    target_endpoint: str
    total_size: int
    content_type: str
    session_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if self.total_size <= 0:
            raise ValueError("total_size must be positive")
        if not self.target_endpoint:
            raise ValueError("target_endpoint is required")


@dataclass
class TransferState:
    """Mutable transfer progress, written only by the owning orchestrator."""

    total_size: int
    retries_remaining: int
    acknowledged_offset: int = 0
    status: TransferStatus = TransferStatus.INITIALIZING
    error: Optional[Exception] = None

    def transition(self, new_status: TransferStatus) -> None:
        """Move to ``new_status``, rejecting transitions outside the lifecycle."""
        if new_status == self.status:
            return
        if new_status not in ALLOWED_TRANSITIONS[self.status]:
            raise RuntimeError(
                f"Invalid transfer transition {self.status.value} -> {new_status.value}"
            )
        self.status = new_status


@dataclass(frozen=True)
class ChunkAttempt:
    """One round-trip for a byte range, kept for logging only."""

    start_offset: int
    end_offset: int  # Exclusive
    attempt_number: int
    outcome: str


@dataclass(frozen=True)
class ChunkResponse:
    """Remote reply to a chunk send or probe, as seen by the client."""

    status: int
    range_header: Optional[str] = None
    body: Any = None


@dataclass(frozen=True)
class RemoteResource:
    """The stored resource produced by a completed transfer."""

    resource_id: str
    resource_url: str
