# Domain Layer
# ============
# Pure logic with no external services:
# - addressing: phone number -> canonical WhatsApp address
# - models: request payloads, session snapshot and connection status

from .addressing import CANONICAL_SUFFIX, normalize_address
from .models import (
    ConnectionState,
    SendImageRequest,
    SendMessageRequest,
    SessionInfo,
    connection_status,
)

__all__ = [
    "CANONICAL_SUFFIX",
    "normalize_address",
    "ConnectionState",
    "SendImageRequest",
    "SendMessageRequest",
    "SessionInfo",
    "connection_status",
]
