"""Progress and completion view over transfer state."""

from dataclasses import dataclass
from typing import Optional

from mediarelay.core.exceptions import InternalError, UploadError
from mediarelay.transfer.models import RemoteResource, TransferState, TransferStatus


@dataclass(frozen=True)
class ProgressReport:
    """Snapshot of a transfer for display."""

    percent: int
    status: TransferStatus
    acknowledged_offset: int
    total_size: int
    resource: Optional[RemoteResource] = None
    error_category: Optional[str] = None
    message: Optional[str] = None


def compute_percent(acknowledged_offset: int, total_size: int, status: TransferStatus) -> int:
    """Percentage acknowledged, capped at 99 until the transfer completes."""
    if status == TransferStatus.COMPLETED:
        return 100
    if total_size <= 0:
        return 0
    return min(99, acknowledged_offset * 100 // total_size)


def report_progress(
    state: TransferState, resource: Optional[RemoteResource] = None
) -> ProgressReport:
    """Derive a ProgressReport from ``state``.

    A failed transfer keeps the percentage of its last acknowledged offset
    and carries a categorized, human-readable message.
    """
    percent = compute_percent(state.acknowledged_offset, state.total_size, state.status)

    error_category = None
    message = None
    if state.status == TransferStatus.FAILED:
        error = state.error if isinstance(state.error, UploadError) else InternalError()
        error_category = error.category
        message = error.user_message
    elif state.status == TransferStatus.COMPLETED:
        message = "Upload complete."

    return ProgressReport(
        percent=percent,
        status=state.status,
        acknowledged_offset=state.acknowledged_offset,
        total_size=state.total_size,
        resource=resource if state.status == TransferStatus.COMPLETED else None,
        error_category=error_category,
        message=message,
    )
