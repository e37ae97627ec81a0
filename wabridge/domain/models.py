"""
Domain Models - Requests, Session Snapshot and Connection Status
=================================================================

Request models accept every field as optional: a missing field is a
client error reported by the gateway with a 400, never FastAPI's 422.
"""

import mimetypes
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_MIME_TYPE = "image/jpeg"


class ConnectionState(Enum):
    """
    Lifecycle of the WhatsApp Web session, as observed from the browser.

    UNINITIALIZED -> QR_PENDING -> AUTHENTICATED -> READY
    READY -> DISCONNECTED -> QR_PENDING
    AUTHENTICATED -> DISCONNECTED when the login is rejected
    FAILED is terminal: the browser never started.
    """
    UNINITIALIZED = "uninitialized"
    QR_PENDING = "qr_pending"
    AUTHENTICATED = "authenticated"
    READY = "ready"
    DISCONNECTED = "disconnected"
    FAILED = "failed"


@dataclass(frozen=True)
class SessionInfo:
    """Snapshot of the logged-in account."""
    id: Optional[str]
    platform: Optional[str]
    display_name: Optional[str]

    def to_dict(self) -> dict:
        return {
            "wid": self.id,
            "platform": self.platform,
            "pushname": self.display_name,
        }


def connection_status(session: Optional[SessionInfo]) -> dict:
    """Build the /status payload. No session is a normal state, not an error."""
    connected = session is not None
    return {
        "connected": connected,
        "status": "Connected" if connected else "Waiting for connection",
        "info": session.to_dict() if connected else None,
    }


def _coerce_text(value: Any) -> Any:
    # Phone numbers are often posted as JSON numbers
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("number must be a whole number")
        return str(int(value))
    return value


class SendMessageRequest(BaseModel):
    """POST /send-message body."""

    number: Optional[str] = None
    message: Optional[str] = None

    @field_validator("number", "message", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        return _coerce_text(value)

    def is_complete(self) -> bool:
        return bool(self.number) and bool(self.message)


class SendImageRequest(BaseModel):
    """POST /send-image body."""

    model_config = ConfigDict(populate_by_name=True)

    number: Optional[str] = None
    caption: Optional[str] = None
    image_base64: Optional[str] = Field(default=None, alias="imageBase64")
    mime_type: Optional[str] = Field(default=None, alias="mimeType")

    @field_validator("number", "caption", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        return _coerce_text(value)

    def is_complete(self) -> bool:
        return bool(self.number) and bool(self.image_base64)

    @property
    def effective_mime_type(self) -> str:
        return self.mime_type or DEFAULT_MIME_TYPE

    @property
    def filename(self) -> str:
        """image.<ext> derived from the MIME type."""
        ext = mimetypes.guess_extension(self.effective_mime_type, strict=False)
        return f"image{ext or '.bin'}"
