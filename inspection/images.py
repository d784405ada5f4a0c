from __future__ import annotations

import base64
import binascii
import io
from typing import Optional

from PIL import Image
from reportlab.lib.utils import ImageReader

from inspection.errors import RenderSkip

DATA_URI_PREFIX = "data:"


def sniff_mime_type(data: bytes) -> str:
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = (img.format or "").lower()
    except Exception as exc:  # noqa: BLE001
        raise ValueError("not a readable image") from exc
    if fmt == "jpeg":
        return "image/jpeg"
    return f"image/{fmt}" if fmt else "application/octet-stream"


def encode_image(data: bytes, mime_type: Optional[str] = None) -> str:
    if not data:
        raise ValueError("empty image")
    mime = mime_type or sniff_mime_type(data)
    payload = base64.b64encode(data).decode("ascii")
    return f"{DATA_URI_PREFIX}{mime};base64,{payload}"


def payload_bytes(payload: str) -> bytes:
    text = (payload or "").strip()
    if text.startswith(DATA_URI_PREFIX):
        header, sep, text = text.partition(",")
        if not sep or ";base64" not in header:
            raise ValueError("unsupported data uri")
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("invalid base64 image payload") from exc


def decode_image(payload: str) -> ImageReader:
    try:
        raw = payload_bytes(payload)
        img = Image.open(io.BytesIO(raw))
        img.load()
        if img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        return ImageReader(img)
    except Exception as exc:  # noqa: BLE001
        raise RenderSkip(f"image decode failed: {exc}") from exc
