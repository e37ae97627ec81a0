"""
WhatsApp Client - Selenium-Based WhatsApp Web Automation
=========================================================

Drives one WhatsApp Web session in Chrome. The Chrome profile is kept under
the session data path, so a scanned QR code survives restarts.

LIFECYCLE EVENTS (emitted from the watcher thread):
- qr(qr_data)            login screen shown, QR image saved to <data>/qr.png
- authenticated()        QR accepted or stored session restored
- ready(SessionInfo)     chat list loaded
- auth_failure(message)  login screen came back before the chats loaded
- disconnected(reason)   logged out from the phone or browser gone

Selenium drivers are not thread-safe: every browser operation runs under
one lock, so concurrent sends are executed one after the other.
"""

import json
import logging
import tempfile
import threading
from collections import defaultdict
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set

from selenium import webdriver
from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.chrome.service import Service as ChromeService
from selenium.webdriver.support.ui import WebDriverWait
from selenium.common.exceptions import (
    StaleElementReferenceException,
    TimeoutException,
    WebDriverException,
)
from webdriver_manager.chrome import ChromeDriverManager

from ..config import WhatsAppSettings
from ...domain.addressing import address_phone
from ...domain.models import SessionInfo

logger = logging.getLogger(__name__)


class WhatsAppClientError(Exception):
    """Base exception for WhatsApp client errors."""
    pass


class WhatsAppClient:
    """
    Selenium-based WhatsApp Web client.
    """

    EVENTS = ("qr", "authenticated", "ready", "auth_failure", "disconnected")

    # CSS Selectors - WhatsApp Web 2024/2025
    SELECTORS = {
        "qr_container": "div[data-ref]",
        "chat_list": "#pane-side",
        "search_box": 'div[contenteditable="true"][data-tab="3"]',
        "loading": "progress",
        "popup": 'div[data-animate-modal-popup="true"]',

        # data-id is the serialized message id: <fromMe>_<chat>_<id>
        "outgoing_message": 'div[data-id^="true_"]',

        "photo_input": 'input[type="file"][accept*="image"]',
        "document_input": 'input[type="file"][accept="*"]',
        "send_button": 'span[data-icon="send"]',
    }

    MESSAGE_INPUT_SELECTORS = [
        'footer div[contenteditable="true"][data-tab="10"]',
        'footer div[contenteditable="true"]',
        'div[title="Type a message"]',
    ]

    CAPTION_INPUT_SELECTORS = [
        'div[aria-label="Add a caption"][contenteditable="true"]',
        'div[aria-placeholder="Add a caption"]',
        'div[contenteditable="true"][data-tab="10"]',
    ]

    ATTACH_BUTTON_SELECTORS = [
        'span[data-icon="plus"]',
        'span[data-icon="attach-menu-plus"]',
        'div[title="Attach"]',
        'button[title="Attach"]',
    ]

    # localStorage values are JSON encoded strings
    SESSION_SCRIPT = """
        var store = window.localStorage;
        return {
            wid: store.getItem('last-wid-md') || store.getItem('last-wid'),
            pushname: store.getItem('me-display-name')
        };
    """

    # A linked browser session cannot read the phone's platform
    PLATFORM = "web"

    CHROME_ARGS = [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-accelerated-2d-canvas",
        "--no-first-run",
        "--no-zygote",
        "--disable-gpu",
    ]

    # WhatsApp Web refuses the default headless user agent
    USER_AGENT = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    def __init__(self, settings: WhatsAppSettings):
        self._settings = settings
        self._handlers: Dict[str, List[Callable]] = defaultdict(list)
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._watcher: Optional[threading.Thread] = None

        # Last screen seen by the watcher: "qr", "loading" or "chats"
        self._screen: Optional[str] = None
        self._authenticated = False
        self._last_qr: Optional[str] = None

        self.driver: Optional[webdriver.Chrome] = None

    # ── Events ─────────────────────────────────────────────────

    def on(self, event: str, handler: Callable) -> None:
        """Register a lifecycle observer."""
        if event not in self.EVENTS:
            raise ValueError(f"Unknown event: {event}")
        self._handlers[event].append(handler)

    def _emit(self, event: str, *args) -> None:
        for handler in list(self._handlers[event]):
            try:
                handler(*args)
            except Exception:
                logger.exception(f"Handler for '{event}' failed")

    # ── Browser lifecycle ──────────────────────────────────────

    def initialize(self) -> None:
        """Launch Chrome, open WhatsApp Web and start watching the page."""
        with self._lock:
            if self.driver is not None:
                raise WhatsAppClientError("Client is already initialized")
            self._settings.data_path.mkdir(parents=True, exist_ok=True)
            self.driver = self._create_driver()
            self.driver.get(self._settings.web_url)
            logger.info("Opened WhatsApp Web - waiting for session")

        self._watcher = threading.Thread(
            target=self._watch, name="whatsapp-watcher", daemon=True
        )
        self._watcher.start()

    def _create_driver(self) -> webdriver.Chrome:
        """Create and configure Chrome WebDriver."""
        options = webdriver.ChromeOptions()

        if self._settings.headless:
            options.add_argument("--headless=new")
            options.add_argument("--window-size=1920,1080")
            options.add_argument(f"user-agent={self.USER_AGENT}")
        else:
            options.add_argument("--start-maximized")

        for arg in self.CHROME_ARGS:
            options.add_argument(arg)

        profile_dir = self._settings.profile_dir.resolve()
        options.add_argument(f"--user-data-dir={profile_dir}")
        logger.info(f"Using Chrome profile at: {profile_dir}")

        service = ChromeService(ChromeDriverManager().install())
        return webdriver.Chrome(service=service, options=options)

    def close(self) -> None:
        """Stop watching and close the browser."""
        self._stop.set()
        watcher = self._watcher
        if watcher is not None and watcher is not threading.current_thread():
            watcher.join(timeout=self._settings.poll_interval + 5)

        with self._lock:
            if self.driver is None:
                return
            try:
                self.driver.quit()
                logger.info("Browser closed")
            except WebDriverException as e:
                logger.debug(f"Error closing browser: {e.msg}")
            finally:
                self.driver = None

    def _require_driver(self) -> webdriver.Chrome:
        if self.driver is None:
            raise WhatsAppClientError("WhatsApp client is not initialized")
        return self.driver

    # ── Watcher ────────────────────────────────────────────────

    def _watch(self) -> None:
        while not self._stop.wait(self._settings.poll_interval):
            try:
                self._poll()
            except WebDriverException as e:
                if self._stop.is_set():
                    break
                logger.error(f"Lost connection to browser: {e.msg}")
                self._authenticated = False
                self._screen = None
                self._emit("disconnected", "NAVIGATION")
                break

    def _poll(self) -> None:
        """Inspect the page once and emit any lifecycle events."""
        qr = None
        session = None
        with self._lock:
            if self.driver is None:
                return
            screen = self._detect_screen()
            if screen == "qr":
                qr = self._read_qr()
            elif screen == "chats" and self._screen != "chats":
                session = self._read_session()

        if screen is not None:
            self._transition(screen, qr, session)

    def _transition(
        self,
        screen: str,
        qr: Optional[str] = None,
        session: Optional[SessionInfo] = None,
    ) -> None:
        previous = self._screen
        self._screen = screen

        if screen == "qr":
            if previous == "chats":
                self._authenticated = False
                self._emit("disconnected", "LOGOUT")
            elif self._authenticated:
                self._authenticated = False
                self._emit("auth_failure", "Login screen returned before chats loaded")
            if qr and qr != self._last_qr:
                self._last_qr = qr
                self._emit("qr", qr)
            return

        if not self._authenticated:
            self._authenticated = True
            self._last_qr = None
            self._emit("authenticated")

        if screen == "chats" and previous != "chats":
            self._emit("ready", session)

    def _detect_screen(self) -> Optional[str]:
        if self._find(self.SELECTORS["chat_list"]) or self._find(self.SELECTORS["search_box"]):
            return "chats"
        if self._find(self.SELECTORS["qr_container"]):
            return "qr"
        if self._find(self.SELECTORS["loading"]):
            return "loading"
        return None

    def _read_qr(self) -> Optional[str]:
        """Read the QR payload and save the QR image for headless scanning."""
        container = self._find(self.SELECTORS["qr_container"])
        if container is None:
            return None
        try:
            qr = container.get_attribute("data-ref")
            if qr and qr != self._last_qr:
                container.screenshot(str(self._settings.qr_image_path))
            return qr
        except StaleElementReferenceException:
            return None

    def _read_session(self) -> SessionInfo:
        raw = self._require_driver().execute_script(self.SESSION_SCRIPT) or {}
        wid = _unquote(raw.get("wid"))
        user = wid.split("@", 1)[0].split(":", 1)[0] if wid else None
        return SessionInfo(
            id=user,
            platform=self.PLATFORM,
            display_name=_unquote(raw.get("pushname")),
        )

    # ── Element helpers ────────────────────────────────────────

    def _find(self, selector: str):
        elements = self._require_driver().find_elements(By.CSS_SELECTOR, selector)
        return elements[0] if elements else None

    def _find_first(self, selectors: List[str]):
        for selector in selectors:
            element = self._find(selector)
            if element is not None:
                return element
        return None

    def _find_message_input(self):
        """Find the message input box with multiple fallback selectors."""
        return self._find_first(self.MESSAGE_INPUT_SELECTORS)

    def _find_invalid_number_popup(self):
        popup = self._find(self.SELECTORS["popup"])
        if popup is None:
            return None
        try:
            return popup if "invalid" in popup.text.lower() else None
        except StaleElementReferenceException:
            return None

    def _wait_for(self, finder: Callable, what: str):
        try:
            return WebDriverWait(
                self._require_driver(), self._settings.element_timeout
            ).until(lambda d: finder())
        except TimeoutException:
            raise WhatsAppClientError(f"Timed out waiting for {what}")

    def _outgoing_ids(self) -> Set[str]:
        ids = set()
        elements = self._require_driver().find_elements(
            By.CSS_SELECTOR, self.SELECTORS["outgoing_message"]
        )
        for el in elements:
            try:
                message_id = el.get_attribute("data-id")
            except StaleElementReferenceException:
                continue
            if message_id:
                ids.add(message_id)
        return ids

    def _wait_for_new_message(self, baseline: Set[str]) -> str:
        """Wait for an outgoing bubble that was not on screen before sending."""
        return self._wait_for(
            lambda: next(iter(sorted(self._outgoing_ids() - baseline)), None),
            "WhatsApp Web to accept the message",
        )

    @staticmethod
    def _type(input_box, text: str) -> None:
        """Type text, keeping line breaks inside one message."""
        for i, line in enumerate(text.split("\n")):
            if i:
                input_box.send_keys(Keys.SHIFT + Keys.ENTER)
            if line:
                input_box.send_keys(line)

    # ── Sending ────────────────────────────────────────────────

    def _open_chat(self, address: str) -> None:
        """Open the chat for a canonical address via the send URL."""
        driver = self._require_driver()
        logger.debug(f"Opening chat with: {address}")
        driver.get(f"{self._settings.web_url}send?phone={address_phone(address)}")

        self._wait_for(
            lambda: self._find_message_input() or self._find_invalid_number_popup(),
            f"chat with {address}",
        )

        popup = self._find_invalid_number_popup()
        if popup is not None:
            raise WhatsAppClientError(popup.text.strip() or f"Invalid number: {address}")

    def send_text(self, address: str, body: str) -> str:
        """Send a text message. Returns the serialized message id."""
        with self._lock:
            self._open_chat(address)
            baseline = self._outgoing_ids()

            input_box = self._find_message_input()
            input_box.click()
            self._type(input_box, body)
            input_box.send_keys(Keys.ENTER)

            message_id = self._wait_for_new_message(baseline)

        logger.info(f"Sent message {message_id}")
        return message_id

    def send_media(
        self,
        address: str,
        data: bytes,
        mime_type: str,
        filename: str,
        caption: str = "",
    ) -> str:
        """
        Send a file as a media message. Images and videos go through the
        photo input so they are delivered inline, not as documents.
        Returns the serialized message id.
        """
        with self._lock, tempfile.TemporaryDirectory(prefix="wabridge-") as tmp:
            path = Path(tmp) / filename
            path.write_bytes(data)

            self._open_chat(address)
            baseline = self._outgoing_ids()

            attach = self._wait_for(
                lambda: self._find_first(self.ATTACH_BUTTON_SELECTORS), "attach button"
            )
            attach.click()

            inline = mime_type.startswith(("image/", "video/"))
            selector = self.SELECTORS["photo_input" if inline else "document_input"]
            file_input = self._wait_for(lambda: self._find(selector), "file input")
            file_input.send_keys(str(path.resolve()))

            if caption:
                caption_box = self._wait_for(
                    lambda: self._find_first(self.CAPTION_INPUT_SELECTORS), "caption box"
                )
                caption_box.click()
                self._type(caption_box, caption)

            send_button = self._wait_for(
                lambda: self._find(self.SELECTORS["send_button"]), "send button"
            )
            send_button.click()

            message_id = self._wait_for_new_message(baseline)

        logger.info(f"Sent {mime_type} {message_id}")
        return message_id


def _unquote(value: Optional[str]) -> Optional[str]:
    if isinstance(value, str) and value.startswith('"'):
        try:
            return json.loads(value)
        except ValueError:
            return value.strip('"')
    return value
