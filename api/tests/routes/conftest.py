"""Route test configuration: rate limiter off, signed-in client."""

import json
from base64 import b64encode
from collections.abc import AsyncGenerator
from unittest.mock import patch

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from itsdangerous import TimestampSigner

from core.config import get_settings


@pytest.fixture(autouse=True)
def _disable_rate_limiter():
    """Disable slowapi rate limiting so route handlers can be called directly."""
    with patch("core.ratelimit.limiter.enabled", False):
        yield


def _session_cookie(user_id: str) -> str:
    """Signed the same way SessionMiddleware reads it."""
    data = b64encode(json.dumps({"user_id": user_id}).encode())
    return TimestampSigner(get_settings().session_secret_key).sign(data).decode()


@pytest_asyncio.fixture(scope="function")
async def user_client(app: FastAPI, test_user_id: str) -> AsyncGenerator[AsyncClient]:
    """Client with a signed-in user session."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Cookie": f"session={_session_cookie(test_user_id)}"},
    ) as ac:
        yield ac
