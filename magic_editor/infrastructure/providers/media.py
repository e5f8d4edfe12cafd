"""Helpers shared by the provider adapters for reading model responses."""
from __future__ import annotations

from io import BytesIO
from typing import Any

from PIL import Image, UnidentifiedImageError


def detect_image_mime(raw: bytes) -> str | None:
    """Mime type of an encoded image as identified by Pillow, or None if it is not one."""
    try:
        with Image.open(BytesIO(raw)) as image:
            fmt = image.format
    except (UnidentifiedImageError, OSError, ValueError):
        return None
    return Image.MIME.get(fmt) if fmt else None


def first_message_text(response: Any) -> str | None:
    """Content of the first choice of a chat completion, if any."""
    choices = getattr(response, "choices", None)
    if not choices:
        return None
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if isinstance(content, str):
        return content.strip() or None
    return None


def looks_like_policy_block(exc: Exception) -> bool:
    text = str(exc).lower()
    return any(word in text for word in ("safety", "policy", "moderation", "blocked"))
