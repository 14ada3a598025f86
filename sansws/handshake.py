"""Shared helpers for the opening handshake (RFC 6455 Section 4)."""

from __future__ import annotations

import base64
import hashlib

from .errors import ErrorKind, WebSocketError

WEBSOCKET_GUID = "258EAFA5-E914-47DA-95CA-C5AB0DC85B11"


def calculate_accept(nonce: bytes) -> str:
    """Compute Sec-WebSocket-Accept for a 16-byte nonce."""
    nonce = bytes(nonce)
    if len(nonce) != 16:
        raise ValueError(f"nonce must be 16 bytes, got {len(nonce)}")
    key = base64.b64encode(nonce).decode("ascii")
    return calculate_accept_from_key(key)


def calculate_accept_from_key(key: str) -> str:
    """Compute Sec-WebSocket-Accept for a Sec-WebSocket-Key value."""
    digest = hashlib.sha1((key + WEBSOCKET_GUID).encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def validate_key(key: str) -> None:
    """Raise unless ``key`` is base64 of exactly 16 bytes."""
    try:
        decoded = base64.b64decode(key, validate=True)
    except ValueError:
        raise WebSocketError(
            ErrorKind.HANDSHAKE_REJECTED, "invalid Sec-WebSocket-Key"
        ) from None
    if len(decoded) != 16:
        raise WebSocketError(ErrorKind.HANDSHAKE_REJECTED, "invalid Sec-WebSocket-Key")