"""
Messaging Provider - Abstraction Layer for WhatsApp Messaging
==============================================================

The gateway talks to exactly one MessagingProvider for the lifetime of the
process. The provider owns the automation client, observes its lifecycle
events and exposes async send operations plus a non-blocking session read.

USAGE:
    provider = SeleniumProvider(get_settings().whatsapp)
    provider.start()                      # returns immediately
    message_id = await provider.send_text("6281234567890@c.us", "Hello!")
    provider.current_session()            # SessionInfo or None
    provider.close()
"""

import asyncio
import base64
import binascii
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..config import WhatsAppSettings
from ...domain.models import ConnectionState, SessionInfo
from .whatsapp_client import WhatsAppClient

logger = logging.getLogger(__name__)


class AdapterError(Exception):
    """The automation engine failed to carry out a send."""
    pass


class MessagingProvider(ABC):
    """
    Abstract base class for WhatsApp messaging providers.
    Implement this interface to add new messaging backends.
    """

    @abstractmethod
    def start(self) -> None:
        """Begin connecting. Must not block; failures are logged, not raised."""
        ...

    @property
    @abstractmethod
    def state(self) -> ConnectionState:
        """Last observed lifecycle state."""
        ...

    @abstractmethod
    def current_session(self) -> Optional[SessionInfo]:
        """Logged-in account, or None while not connected."""
        ...

    @abstractmethod
    async def send_text(self, address: str, body: str) -> str:
        """Send a text message. Returns the message id, raises AdapterError."""
        ...

    @abstractmethod
    async def send_media(
        self,
        address: str,
        payload: str,
        mime_type: str,
        filename: str,
        caption: str = "",
    ) -> str:
        """Send base64 encoded media. Returns the message id, raises AdapterError."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Clean up resources."""
        ...


class SeleniumProvider(MessagingProvider):
    """
    Selenium-based WhatsApp Web automation.
    Wraps WhatsAppClient; blocking browser calls run in worker threads.
    """

    def __init__(
        self,
        settings: WhatsAppSettings,
        client: Optional[WhatsAppClient] = None,
    ):
        self._client = client or WhatsAppClient(settings)
        self._state = ConnectionState.UNINITIALIZED
        self._session: Optional[SessionInfo] = None
        self._init_thread: Optional[threading.Thread] = None

        self._client.on("qr", self._on_qr)
        self._client.on("authenticated", self._on_authenticated)
        self._client.on("ready", self._on_ready)
        self._client.on("auth_failure", self._on_auth_failure)
        self._client.on("disconnected", self._on_disconnected)

    # ── Lifecycle observers ────────────────────────────────────

    def _on_qr(self, qr: str) -> None:
        self._state = ConnectionState.QR_PENDING
        logger.info(f"QR RECEIVED {qr}")

    def _on_authenticated(self) -> None:
        self._state = ConnectionState.AUTHENTICATED
        logger.info("AUTHENTICATED")

    def _on_ready(self, session: Optional[SessionInfo]) -> None:
        self._session = session or SessionInfo(id=None, platform=None, display_name=None)
        self._state = ConnectionState.READY
        logger.info("Client is ready!")

    def _on_auth_failure(self, message: str) -> None:
        self._session = None
        self._state = ConnectionState.DISCONNECTED
        logger.error(f"AUTHENTICATION FAILURE {message}")

    def _on_disconnected(self, reason: str) -> None:
        self._session = None
        self._state = ConnectionState.DISCONNECTED
        logger.info(f"Client was logged out {reason}")

    # ── MessagingProvider ──────────────────────────────────────

    def start(self) -> None:
        """Launch the browser in the background."""
        if self._init_thread is not None:
            return
        self._init_thread = threading.Thread(
            target=self._initialize, name="whatsapp-init", daemon=True
        )
        self._init_thread.start()

    def _initialize(self) -> None:
        try:
            self._client.initialize()
        except Exception:
            # Not retried: the gateway keeps serving and /status reports
            # "Waiting for connection" until the process is restarted.
            self._state = ConnectionState.FAILED
            logger.exception("Failed to initialize client")

    @property
    def state(self) -> ConnectionState:
        return self._state

    def current_session(self) -> Optional[SessionInfo]:
        return self._session

    async def send_text(self, address: str, body: str) -> str:
        return await self._call(self._client.send_text, address, body)

    async def send_media(
        self,
        address: str,
        payload: str,
        mime_type: str,
        filename: str,
        caption: str = "",
    ) -> str:
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            raise AdapterError("Invalid base64 media payload")
        if not data:
            raise AdapterError("Empty media payload")
        return await self._call(
            self._client.send_media, address, data, mime_type, filename, caption
        )

    async def _call(self, func: Callable, *args) -> str:
        try:
            return await asyncio.to_thread(func, *args)
        except Exception as e:
            raise AdapterError(_describe(e)) from e

    def close(self) -> None:
        self._client.close()
        self._session = None
        logger.info("WhatsApp client destroyed")


def _describe(error: Exception) -> str:
    # Selenium puts a stack trace in str(); .msg is the readable part
    message = getattr(error, "msg", None) or str(error)
    return message or type(error).__name__
