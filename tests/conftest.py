"""Shared pytest fixtures for WA Bridge tests."""
import sys
sys.dont_write_bytecode = True

import asyncio  # noqa: E402
from typing import Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from wabridge.domain import ConnectionState, SessionInfo  # noqa: E402
from wabridge.infrastructure.config import (  # noqa: E402
    ServerSettings,
    Settings,
    WhatsAppSettings,
)
from wabridge.infrastructure.whatsapp import MessagingProvider  # noqa: E402
from wabridge.web.app import create_app  # noqa: E402


class FakeProvider(MessagingProvider):
    """In-memory provider: records calls instead of driving a browser."""

    def __init__(self):
        self.session: Optional[SessionInfo] = None
        self.error: Optional[Exception] = None
        self.delay = 0.0
        self.calls = []
        self.started = False
        self.closed = False

    def start(self) -> None:
        self.started = True

    @property
    def state(self) -> ConnectionState:
        return ConnectionState.READY if self.session else ConnectionState.QR_PENDING

    def current_session(self) -> Optional[SessionInfo]:
        return self.session

    async def send_text(self, address: str, body: str) -> str:
        self.calls.append(("text", address, body))
        return await self._result(address)

    async def send_media(self, address, payload, mime_type, filename, caption=""):
        self.calls.append(("media", address, payload, mime_type, filename, caption))
        return await self._result(address)

    async def _result(self, address: str) -> str:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return f"true_{address}_3EB0C767D26A1D8E5F"

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        server=ServerSettings(allowed_origins=("*",), body_limit_mb=10),
        whatsapp=WhatsAppSettings(data_path=tmp_path / "auth_data"),
    )


@pytest.fixture
def app(provider, settings):
    return create_app(provider=provider, settings=settings)


@pytest.fixture
def client(app):
    return TestClient(app)
