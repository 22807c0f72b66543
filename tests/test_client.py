"""End-to-end tests for the upload client."""

import io

import httpx
import pytest

from mediarelay.core.config import settings
from mediarelay.core.exceptions import AuthError, InternalError, QuotaError
from mediarelay.core.rate_limit import SlidingWindowRateLimiter
from mediarelay.main import create_app
from mediarelay.transfer.client import UploadClient
from mediarelay.transfer.config import TransferConfig
from mediarelay.transfer.content_range import parse_content_range
from mediarelay.transfer.models import TransferStatus

BASE_URL = "http://relay.test"
LOCATION = "https://upload.example.com/upload/videos?uploadType=resumable&upload_id=e2e"
KiB = 1024


class RemoteHost:
    """Minimal resumable upload endpoint that keeps every byte it accepts."""

    def __init__(self, resource_id="vid-42", accept_limit=None):
        self.resource_id = resource_id
        self.accept_limit = accept_limit  # Max bytes kept per PUT
        self.received = bytearray()
        self.ranges: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(200, headers={"Location": LOCATION})

        content_range = request.headers["Content-Range"]
        self.ranges.append(content_range)
        declared = parse_content_range(content_range)

        if not declared.is_probe:
            assert declared.start == len(self.received)
            body = request.content
            if self.accept_limit is not None:
                body = body[: self.accept_limit]
            self.received.extend(body)

        if len(self.received) == declared.total:
            return httpx.Response(201, json={"id": self.resource_id})
        if not self.received:
            return httpx.Response(308)
        return httpx.Response(308, headers={"Range": f"bytes=0-{len(self.received) - 1}"})


@pytest.fixture
def relay_app(monkeypatch):
    monkeypatch.setattr(settings, "DIRECT_UPLOAD_SIZE_THRESHOLD_MB", 0)
    monkeypatch.setattr(settings, "ALLOWED_UPLOAD_TARGET_HOSTS", "upload.example.com")

    def build(remote):
        app = create_app()
        app.state.http_client = httpx.AsyncClient(transport=httpx.MockTransport(remote))
        app.state.init_rate_limiter = SlidingWindowRateLimiter(1000, 1.0)
        return app

    return build


def upload_client(app, token, instant_sleep):
    http_client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app))
    return UploadClient(
        BASE_URL,
        token,
        config=TransferConfig(chunk_size=256 * KiB),
        http_client=http_client,
        sleep=instant_sleep,
    )


@pytest.mark.asyncio
async def test_chunked_upload_through_relay(relay_app, signed_in, instant_sleep):
    """A file larger than the direct threshold goes chunk by chunk via the relay."""
    remote = RemoteHost()
    data = bytes(range(256)) * 4100  # 1 MiB and change
    reports = []

    async with upload_client(relay_app(remote), signed_in.session_token, instant_sleep) as client:
        resource = await client.upload(
            io.BytesIO(data), "lecture.mp4", "video/mp4", on_progress=reports.append
        )

    assert resource.resource_id == "vid-42"
    assert resource.resource_url == "https://www.youtube.com/watch?v=vid-42"
    assert bytes(remote.received) == data
    assert len(remote.ranges) == 5
    assert remote.ranges[0] == f"bytes 0-{256 * KiB - 1}/{len(data)}"

    percents = [report.percent for report in reports]
    assert percents == sorted(percents)
    assert reports[-1].status == TransferStatus.COMPLETED
    assert reports[-1].percent == 100


@pytest.mark.asyncio
async def test_chunked_upload_with_partial_acceptance(relay_app, signed_in, instant_sleep):
    remote = RemoteHost(accept_limit=100 * KiB)
    data = b"\x00" * (300 * KiB)

    async with upload_client(relay_app(remote), signed_in.session_token, instant_sleep) as client:
        resource = await client.upload(io.BytesIO(data), "clip.mp4", "video/mp4")

    assert resource.resource_id == "vid-42"
    assert len(remote.received) == len(data)
    assert remote.ranges[1].startswith(f"bytes {100 * KiB}-")


@pytest.mark.asyncio
async def test_upload_with_unknown_session_fails_with_auth(relay_app, instant_sleep):
    async with upload_client(relay_app(RemoteHost()), "nobody", instant_sleep) as client:
        with pytest.raises(AuthError):
            await client.upload(io.BytesIO(b"x" * KiB), "clip.mp4", "video/mp4")


@pytest.mark.asyncio
async def test_quota_rejection_surfaces_category(relay_app, signed_in, instant_sleep):
    def over_quota(request):
        if request.method == "POST":
            return httpx.Response(200, headers={"Location": LOCATION})
        return httpx.Response(
            403,
            json={"error": {"message": "Daily limit exceeded", "errors": [{"reason": "dailyLimitExceeded"}]}},
        )

    async with upload_client(relay_app(over_quota), signed_in.session_token, instant_sleep) as client:
        with pytest.raises(QuotaError):
            await client.upload(io.BytesIO(b"x" * KiB), "clip.mp4", "video/mp4")


@pytest.mark.asyncio
async def test_direct_upload(instant_sleep):
    seen = []

    def service(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/api/v1/upload/sessions":
            return httpx.Response(
                200,
                json={
                    "targetEndpoint": "https://upload.example.net/direct/one-time",
                    "transferMode": "direct",
                    "sizeCeiling": 200 * 1024 * KiB,
                    "resourceId": "uid-7",
                },
            )
        return httpx.Response(200, json={"success": True, "result": {}})

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(service))
    async with UploadClient(BASE_URL, "tok", http_client=http_client, sleep=instant_sleep) as client:
        resource = await client.upload(io.BytesIO(b"v" * KiB), "clip.mp4", "video/mp4")

    assert resource.resource_id == "uid-7"
    assert resource.resource_url == "https://iframe.videodelivery.net/uid-7"
    init_request, upload_request = seen
    assert init_request.headers["Authorization"] == "Bearer tok"
    assert str(upload_request.url) == "https://upload.example.net/direct/one-time"
    assert upload_request.headers["Content-Type"].startswith("multipart/form-data")
    assert b'name="file"' in upload_request.content


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reply",
    [
        httpx.Response(200, text="<html>maintenance</html>"),
        httpx.Response(200, json={"transferMode": "chunked"}),
        httpx.Response(200, json={"targetEndpoint": "x", "transferMode": "bulk", "sizeCeiling": 1}),
        httpx.Response(200, json=["not", "an", "object"]),
    ],
)
async def test_malformed_initiation_reply_is_internal_error(instant_sleep, reply):
    def service(request):
        return reply

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(service))
    async with UploadClient(BASE_URL, "tok", http_client=http_client, sleep=instant_sleep) as client:
        with pytest.raises(InternalError):
            await client.initiate("clip.mp4", KiB, "video/mp4")
