"""
WA Bridge - Web Server Entry Point
==================================

Run this to start the gateway:
    python main.py

Then check http://127.0.0.1:3000/status. On first start with an empty session
directory, scan the QR code saved to <WA_DATA_PATH>/qr.png (or shown in the
browser window when WA_HEADLESS=false).
"""

import uvicorn

from wabridge.infrastructure.config import get_settings


def main():
    """Start the web server."""
    settings = get_settings().server

    # No reload: the process owns a single browser session
    uvicorn.run(
        "wabridge.web.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
