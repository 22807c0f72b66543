"""Pytest configuration and shared fixtures."""

from unittest.mock import AsyncMock

import pytest

from mediarelay.storage.session_store import AuthContext, session_store
from mediarelay.transfer.models import UploadSession
from transfer_fakes import TARGET


@pytest.fixture
def instant_sleep():
    """Backoff sleep that returns immediately and records delays."""
    return AsyncMock(return_value=None)


@pytest.fixture
def make_session():
    def _make(total_size: int, content_type: str = "video/mp4") -> UploadSession:
        return UploadSession(
            target_endpoint=TARGET, total_size=total_size, content_type=content_type
        )

    return _make


@pytest.fixture
def signed_in():
    """A local session holding an upstream credential."""
    context = AuthContext(
        session_token="local-session-token",
        user_id="user-1",
        upstream_token="upstream-oauth-token",
    )
    session_store.create(context)
    yield context
    session_store.delete(context.session_token)


@pytest.fixture
def signed_in_without_upstream():
    """A local session that never received an upstream credential."""
    context = AuthContext(session_token="bare-session-token", user_id="user-2")
    session_store.create(context)
    yield context
    session_store.delete(context.session_token)
