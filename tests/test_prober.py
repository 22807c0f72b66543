"""Tests for position reconciliation probes."""

import pytest

from transfer_fakes import MiB, ScriptedTransport, accepted
from mediarelay.core.exceptions import (
    AuthError,
    NotFoundError,
    RateLimited,
    TransientNetworkError,
    UpstreamUnavailable,
)
from mediarelay.transfer.config import TransferConfig
from mediarelay.transfer.models import ChunkResponse
from mediarelay.transfer.prober import PositionProber


def make_prober(script, instant_sleep, max_attempts=3):
    transport = ScriptedTransport(script)
    prober = PositionProber(transport, TransferConfig(max_attempts=max_attempts), sleep=instant_sleep)
    return prober, transport


@pytest.mark.asyncio
async def test_probe_sends_zero_length_request(make_session, instant_sleep):
    prober, transport = make_prober([accepted(MiB - 1)], instant_sleep)

    result = await prober.probe(make_session(4 * MiB))

    assert transport.sent == [(f"bytes */{4 * MiB}", 0)]
    assert result.offset == MiB
    assert not result.completed


@pytest.mark.asyncio
async def test_probe_without_range_means_nothing_accepted(make_session, instant_sleep):
    prober, _ = make_prober([ChunkResponse(status=308)], instant_sleep)

    result = await prober.probe(make_session(MiB))

    assert result.offset == 0


@pytest.mark.asyncio
async def test_probe_with_malformed_range_means_nothing_accepted(make_session, instant_sleep):
    prober, _ = make_prober([ChunkResponse(status=308, range_header="bytes=junk")], instant_sleep)

    result = await prober.probe(make_session(MiB))

    assert result.offset == 0


@pytest.mark.asyncio
async def test_probe_reports_completed_upload(make_session, instant_sleep):
    prober, _ = make_prober([ChunkResponse(status=201, body={"id": "done"})], instant_sleep)

    result = await prober.probe(make_session(MiB))

    assert result.completed
    assert result.offset == MiB
    assert result.completion_body == {"id": "done"}


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [404, 410, 400])
async def test_probe_of_missing_session(make_session, instant_sleep, status):
    prober, _ = make_prober([ChunkResponse(status=status)], instant_sleep)

    with pytest.raises(NotFoundError):
        await prober.probe(make_session(MiB))


@pytest.mark.asyncio
async def test_probe_auth_and_rate_limit(make_session, instant_sleep):
    prober, _ = make_prober([ChunkResponse(status=401)], instant_sleep)
    with pytest.raises(AuthError):
        await prober.probe(make_session(MiB))

    prober, _ = make_prober([ChunkResponse(status=429)], instant_sleep)
    with pytest.raises(RateLimited):
        await prober.probe(make_session(MiB))


@pytest.mark.asyncio
async def test_probe_retries_transient_failures(make_session, instant_sleep):
    prober, transport = make_prober(
        [TransientNetworkError("reset"), ChunkResponse(status=502), accepted(99)],
        instant_sleep,
    )

    result = await prober.probe(make_session(MiB))

    assert result.offset == 100
    assert len(transport.sent) == 3
    assert instant_sleep.await_count == 2


@pytest.mark.asyncio
async def test_probe_gives_up_after_budget(make_session, instant_sleep):
    prober, transport = make_prober([TransientNetworkError("reset")] * 3, instant_sleep)

    with pytest.raises(UpstreamUnavailable):
        await prober.probe(make_session(MiB))

    assert len(transport.sent) == 3
