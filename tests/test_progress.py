"""Tests for the progress and completion reporter."""

from mediarelay.core.exceptions import QuotaError
from mediarelay.transfer.models import RemoteResource, TransferState, TransferStatus
from mediarelay.transfer.progress import compute_percent, report_progress


def test_percent_floors_and_caps_at_99():
    assert compute_percent(0, 1000, TransferStatus.TRANSFERRING) == 0
    assert compute_percent(333, 1000, TransferStatus.TRANSFERRING) == 33
    assert compute_percent(999, 1000, TransferStatus.PROBING) == 99
    assert compute_percent(1000, 1000, TransferStatus.TRANSFERRING) == 99


def test_percent_is_100_only_when_completed():
    assert compute_percent(1000, 1000, TransferStatus.COMPLETED) == 100


def test_failed_report_freezes_percent_and_categorizes():
    state = TransferState(total_size=1000, retries_remaining=0, acknowledged_offset=420)
    state.transition(TransferStatus.TRANSFERRING)
    state.error = QuotaError()
    state.transition(TransferStatus.FAILED)

    report = report_progress(state)

    assert report.percent == 42
    assert report.error_category == "quota"
    assert "quota" in report.message.lower()
    assert report.resource is None


def test_completed_report_carries_resource():
    state = TransferState(total_size=10, retries_remaining=5, acknowledged_offset=10)
    state.transition(TransferStatus.TRANSFERRING)
    state.transition(TransferStatus.COMPLETED)
    resource = RemoteResource(resource_id="x", resource_url="https://videos.example/x")

    report = report_progress(state, resource)

    assert report.percent == 100
    assert report.resource == resource
    assert report.error_category is None


def test_failed_report_never_exposes_raw_exception():
    state = TransferState(total_size=10, retries_remaining=5)
    state.transition(TransferStatus.TRANSFERRING)
    state.error = ConnectionResetError("socket closed")
    state.transition(TransferStatus.FAILED)

    report = report_progress(state)

    assert report.error_category == "internal"
    assert "socket" not in report.message
