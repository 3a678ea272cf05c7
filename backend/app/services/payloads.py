from __future__ import annotations

import base64
import binascii

from app.services.errors import MalformedInputError


def strip_data_uri(value: str) -> str:
    """Remove o prefixo "data:<mime>;base64," quando presente."""
    if "," in value:
        return value.split(",", 1)[1]
    return value


def decode_base64_payload(value: str | None, *, label: str = "payload") -> bytes:
    raw = "".join(strip_data_uri((value or "").strip()).split())
    if not raw:
        raise MalformedInputError(f"{label} is empty")
    try:
        return base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedInputError(f"Invalid base64 {label}: {exc}") from exc
