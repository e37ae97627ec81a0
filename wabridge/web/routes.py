"""
Gateway Routes
==============

HTTP request -> validate -> normalize -> provider call -> JSON response.
Handlers keep no state between requests; the provider is the only shared
object and is read from app.state.
"""

import json
import logging
from typing import Type, TypeVar

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError

from .. import __version__
from ..domain import (
    SendImageRequest,
    SendMessageRequest,
    connection_status,
    normalize_address,
)
from ..infrastructure.whatsapp import AdapterError, MessagingProvider
from .errors import SendError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()

RequestModel = TypeVar("RequestModel", bound=BaseModel)

FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def get_provider(request: Request) -> MessagingProvider:
    return request.app.state.provider


async def read_payload(request: Request) -> dict:
    """Body as a dict; accepts JSON and url-encoded forms."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_TYPES):
        form = await request.form()
        return {k: v for k, v in form.items() if isinstance(v, str)}

    body = await request.body()
    if not body.strip():
        return {}
    try:
        payload = json.loads(body)
    except ValueError:
        raise ValidationError("Invalid JSON body")
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def parse_request(model: Type[RequestModel], payload: dict, missing: str) -> RequestModel:
    try:
        parsed = model.model_validate(payload)
    except ModelValidationError as e:
        raise ValidationError(missing, f"Invalid field types: {e.error_count()} error(s)")
    if not parsed.is_complete():
        raise ValidationError(missing)
    return parsed


# ── Health ─────────────────────────────────────────────────────

@router.get("/")
async def health_check():
    return {
        "status": "WhatsApp API is running",
        "version": __version__,
        "documentation": "/status - Check WhatsApp connection status",
    }


@router.get("/status")
async def status(provider: MessagingProvider = Depends(get_provider)):
    return connection_status(provider.current_session())


# ── Sending ────────────────────────────────────────────────────

@router.post("/send-message")
async def send_message(
    request: Request,
    provider: MessagingProvider = Depends(get_provider),
):
    req = parse_request(
        SendMessageRequest,
        await read_payload(request),
        "Number and message are required",
    )
    address = normalize_address(req.number)

    try:
        message_id = await provider.send_text(address, req.message)
    except AdapterError as e:
        raise SendError("Failed to send message", str(e)) from e

    logger.info(f"Message sent to {address}")
    return {
        "success": True,
        "message": "Message sent successfully",
        "data": message_id,
    }


@router.post("/send-image")
async def send_image(
    request: Request,
    provider: MessagingProvider = Depends(get_provider),
):
    req = parse_request(
        SendImageRequest,
        await read_payload(request),
        "Number and imageBase64 are required",
    )
    address = normalize_address(req.number)

    try:
        message_id = await provider.send_media(
            address,
            req.image_base64,
            req.effective_mime_type,
            req.filename,
            caption=req.caption or "",
        )
    except AdapterError as e:
        raise SendError("Failed to send image", str(e)) from e

    logger.info(f"Image sent to {address}")
    return {
        "success": True,
        "message": "Image sent successfully",
        "data": message_id,
    }
