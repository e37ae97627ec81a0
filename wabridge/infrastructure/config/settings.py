"""
Settings Module - Centralized Configuration Management
=======================================================

ARCHITECTURAL DECISION:
- All configuration is loaded from environment variables (no hardcoded paths)
- Settings are immutable dataclasses for safety and clarity
- Single source of truth for all configurable values

Every value has a default, so the gateway starts with an empty environment:

    PORT=3000  HOST=0.0.0.0  ALLOWED_ORIGINS=*  WA_DATA_PATH=./auth_data
    WA_HEADLESS=true  WA_BODY_LIMIT_MB=10  WA_SEND_TIMEOUT=30  LOG_LEVEL=INFO
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv

# Load .env file if present (development convenience)
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_origins() -> Tuple[str, ...]:
    raw = os.getenv("ALLOWED_ORIGINS", "*")
    origins = tuple(o.strip() for o in raw.split(",") if o.strip())
    return origins or ("*",)


@dataclass(frozen=True)
class ServerSettings:
    """HTTP server settings."""

    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "3000")))

    # CORS: comma separated list, "*" allows any origin
    allowed_origins: Tuple[str, ...] = field(default_factory=_env_origins)

    # Base64 images travel inside JSON bodies
    body_limit_mb: int = field(
        default_factory=lambda: int(os.getenv("WA_BODY_LIMIT_MB", "10"))
    )

    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper()
    )


@dataclass(frozen=True)
class WhatsAppSettings:
    """WhatsApp Web automation settings."""

    # Chrome profile (session/auth artifacts) lives here
    data_path: Path = field(
        default_factory=lambda: Path(os.getenv("WA_DATA_PATH", "./auth_data"))
    )

    # Browser settings
    headless: bool = field(default_factory=lambda: _env_bool("WA_HEADLESS", True))
    web_url: str = "https://web.whatsapp.com/"

    # Seconds to wait for page elements while sending
    element_timeout: int = field(
        default_factory=lambda: int(os.getenv("WA_SEND_TIMEOUT", "30"))
    )

    # Seconds between lifecycle checks of the open page
    poll_interval: float = 2.0

    @property
    def profile_dir(self) -> Path:
        return self.data_path / "session"

    @property
    def qr_image_path(self) -> Path:
        return self.data_path / "qr.png"


@dataclass(frozen=True)
class Settings:
    """
    Root settings container - Single source of truth for all configuration.

    Usage:
        from wabridge.infrastructure.config import get_settings
        settings = get_settings()
        print(settings.server.port)
    """

    server: ServerSettings = field(default_factory=ServerSettings)
    whatsapp: WhatsAppSettings = field(default_factory=WhatsAppSettings)

    def validate(self) -> list[str]:
        """
        Validate settings and return list of warnings.
        Returns empty list if all settings are valid.
        """
        issues = []

        if "*" in self.server.allowed_origins:
            issues.append(
                "WARNING: ALLOWED_ORIGINS is '*'. "
                "Any website can call the gateway from a browser."
            )

        if not self.whatsapp.headless and not os.getenv("DISPLAY") and os.name != "nt":
            issues.append(
                "WARNING: WA_HEADLESS is false but no DISPLAY is set. "
                "Chrome will fail to open a window."
            )

        if not self.whatsapp.data_path.exists():
            issues.append(
                f"WARNING: Session data path not found: {self.whatsapp.data_path}. "
                "It will be created and a QR code scan will be required."
            )

        return issues


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get singleton Settings instance.
    Cached to ensure consistent settings throughout application lifecycle.
    """
    return Settings()
