"""WhatsAppClient tests with a mocked Selenium driver."""

from unittest.mock import MagicMock

import pytest
from selenium.webdriver.common.keys import Keys

from wabridge.domain import SessionInfo
from wabridge.infrastructure.config import WhatsAppSettings
from wabridge.infrastructure.whatsapp import WhatsAppClient, WhatsAppClientError
from wabridge.infrastructure.whatsapp.whatsapp_client import _unquote


@pytest.fixture
def settings(tmp_path):
    return WhatsAppSettings(data_path=tmp_path, element_timeout=1, poll_interval=0.01)


@pytest.fixture
def client(settings):
    client = WhatsAppClient(settings)
    client.driver = MagicMock()
    return client


@pytest.fixture
def events(client):
    recorded = []
    for name in WhatsAppClient.EVENTS:
        client.on(name, lambda *args, name=name: recorded.append((name,) + args))
    return recorded


# ── Events ─────────────────────────────────────────────────────

def test_unknown_event_is_rejected(client):
    with pytest.raises(ValueError):
        client.on("message", lambda: None)


def test_failing_handler_does_not_stop_others(client):
    seen = []
    client.on("authenticated", MagicMock(side_effect=RuntimeError("boom")))
    client.on("authenticated", lambda: seen.append(True))

    client._emit("authenticated")

    assert seen == [True]


# ── Lifecycle transitions ──────────────────────────────────────

def test_fresh_login(client, events):
    session = SessionInfo(id="6281234567890", platform="web", display_name="Alice")

    client._transition("qr", qr="2@first")
    client._transition("qr", qr="2@first")
    client._transition("qr", qr="2@second")
    client._transition("loading")
    client._transition("chats", session=session)
    client._transition("chats")

    assert events == [
        ("qr", "2@first"),
        ("qr", "2@second"),
        ("authenticated",),
        ("ready", session),
    ]


def test_restored_session_skips_qr(client, events):
    client._transition("loading")
    client._transition("chats", session=None)

    assert events == [("authenticated",), ("ready", None)]


def test_logout_from_phone(client, events):
    client._transition("chats")
    events.clear()

    client._transition("qr", qr="2@again")

    assert events == [("disconnected", "LOGOUT"), ("qr", "2@again")]


def test_login_screen_returning_while_loading_is_auth_failure(client, events):
    client._transition("qr", qr="2@first")
    client._transition("loading")
    events.clear()

    client._transition("qr", qr="2@second")

    assert [e[0] for e in events] == ["auth_failure", "qr"]


def test_poll_reads_session_when_chats_appear(client, events):
    client._detect_screen = MagicMock(return_value="chats")
    client.driver.execute_script.return_value = {
        "wid": '"6281234567890:12@c.us"',
        "pushname": '"Alice"',
    }

    client._poll()

    assert events == [
        ("authenticated",),
        ("ready", SessionInfo(id="6281234567890", platform="web", display_name="Alice")),
    ]


def test_poll_without_driver_does_nothing(client, events):
    client.driver = None
    client._poll()
    assert events == []


def test_detect_screen(client):
    def find_elements(by, selector):
        return [MagicMock()] if selector == WhatsAppClient.SELECTORS["qr_container"] else []

    client.driver.find_elements.side_effect = find_elements

    assert client._detect_screen() == "qr"


def test_unquote():
    assert _unquote('"628123@c.us"') == "628123@c.us"
    assert _unquote("plain") == "plain"
    assert _unquote(None) is None


# ── Sending ────────────────────────────────────────────────────

def test_send_text_requires_initialized_client(settings):
    with pytest.raises(WhatsAppClientError, match="not initialized"):
        WhatsAppClient(settings).send_text("6281234567890@c.us", "hi")


def test_send_text_returns_new_outgoing_id(client):
    input_box = MagicMock()
    client._open_chat = MagicMock()
    client._find_message_input = MagicMock(return_value=input_box)
    client._outgoing_ids = MagicMock(side_effect=[
        {"true_6281234567890@c.us_OLD"},
        {"true_6281234567890@c.us_OLD", "true_6281234567890@c.us_NEW"},
    ])

    message_id = client.send_text("6281234567890@c.us", "line one\nline two")

    assert message_id == "true_6281234567890@c.us_NEW"
    client._open_chat.assert_called_once_with("6281234567890@c.us")
    typed = [c.args[0] for c in input_box.send_keys.call_args_list]
    assert typed == ["line one", Keys.SHIFT + Keys.ENTER, "line two", Keys.ENTER]


def test_send_text_times_out_without_new_bubble(client):
    client._open_chat = MagicMock()
    client._find_message_input = MagicMock(return_value=MagicMock())
    client._outgoing_ids = MagicMock(return_value={"true_1@c.us_OLD"})

    with pytest.raises(WhatsAppClientError, match="Timed out"):
        client.send_text("1@c.us", "hi")


def test_open_chat_uses_send_url_and_reports_invalid_number(client, settings):
    popup = MagicMock()
    popup.text = "Phone number shared via url is invalid."
    client._find_message_input = MagicMock(return_value=None)
    client._find_invalid_number_popup = MagicMock(return_value=popup)

    with pytest.raises(WhatsAppClientError, match="invalid"):
        client._open_chat("123@c.us")

    client.driver.get.assert_called_once_with(f"{settings.web_url}send?phone=123")


def test_send_media_uses_photo_input_for_images(client):
    attach, file_input, caption_box, send_button = (MagicMock() for _ in range(4))
    client._open_chat = MagicMock()
    client._outgoing_ids = MagicMock(side_effect=[set(), {"true_1@c.us_IMG"}])

    def find_first(selectors):
        if selectors is WhatsAppClient.ATTACH_BUTTON_SELECTORS:
            return attach
        return caption_box

    def find(selector):
        if selector == WhatsAppClient.SELECTORS["photo_input"]:
            return file_input
        if selector == WhatsAppClient.SELECTORS["send_button"]:
            return send_button
        return None

    client._find_first = MagicMock(side_effect=find_first)
    client._find = MagicMock(side_effect=find)

    message_id = client.send_media("1@c.us", b"data", "image/png", "image.png", "look")

    assert message_id == "true_1@c.us_IMG"
    attach.click.assert_called_once_with()
    uploaded = file_input.send_keys.call_args.args[0]
    assert uploaded.endswith("image.png")
    caption_box.send_keys.assert_called_once_with("look")
    send_button.click.assert_called_once_with()


def test_close_quits_driver(client):
    driver = client.driver

    client.close()

    driver.quit.assert_called_once_with()
    assert client.driver is None
