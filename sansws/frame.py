"""WebSocket frame encoding and incremental decoding (RFC 6455 Section 5.2)."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Optional

from .errors import ErrorKind, WebSocketError
from .opcode import Opcode

_MAX_CONTROL_PAYLOAD = 125
_MAX_CLOSE_REASON = 123


def _apply_mask(data: bytes, key: bytes) -> bytes:
    """XOR ``data`` with the repeating four-byte ``key``."""
    size = len(data)
    if size == 0:
        return b""
    mask = (key * (size // 4 + 1))[:size]
    value = int.from_bytes(data, "big") ^ int.from_bytes(mask, "big")
    return value.to_bytes(size, "big")


def _invalid_input(message: str) -> WebSocketError:
    return WebSocketError(ErrorKind.INVALID_INPUT, message)


def _protocol_violation(message: str) -> WebSocketError:
    return WebSocketError(ErrorKind.PROTOCOL_VIOLATION, message)


@dataclass
class Frame:
    """A single WebSocket frame."""

    opcode: Opcode
    payload: bytes = b""
    fin: bool = True
    rsv1: bool = False
    rsv2: bool = False
    rsv3: bool = False

    def __post_init__(self) -> None:
        self.payload = bytes(self.payload)

    @classmethod
    def text(cls, payload: str) -> "Frame":
        """A final text frame carrying ``payload`` as UTF-8."""
        return cls(Opcode.TEXT, payload.encode("utf-8"))

    @classmethod
    def binary(cls, payload: bytes) -> "Frame":
        """A final binary frame."""
        return cls(Opcode.BINARY, payload)

    @classmethod
    def ping(cls, payload: bytes = b"") -> "Frame":
        """A ping frame; the payload may be at most 125 bytes."""
        if len(payload) > _MAX_CONTROL_PAYLOAD:
            raise _invalid_input(f"ping payload exceeds 125 bytes: {len(payload)} bytes")
        return cls(Opcode.PING, payload)

    @classmethod
    def pong(cls, payload: bytes = b"") -> "Frame":
        """A pong frame; the payload may be at most 125 bytes."""
        if len(payload) > _MAX_CONTROL_PAYLOAD:
            raise _invalid_input(f"pong payload exceeds 125 bytes: {len(payload)} bytes")
        return cls(Opcode.PONG, payload)

    @classmethod
    def close(cls, code: Optional[int] = None, reason: str = "") -> "Frame":
        """A close frame; without a code the payload is empty and the reason ignored."""
        if code is None:
            return cls(Opcode.CLOSE, b"")
        if not 0 <= code <= 0xFFFF:
            raise _invalid_input(f"close code out of range: {code}")
        encoded_reason = reason.encode("utf-8")
        if len(encoded_reason) > _MAX_CLOSE_REASON:
            raise _invalid_input(
                f"close reason exceeds 123 bytes: {len(encoded_reason)} bytes"
            )
        return cls(Opcode.CLOSE, struct.pack("!H", code) + encoded_reason)

    def encode(self, masking_key: bytes) -> bytes:
        """Encode with masking, as a client must."""
        key = bytes(masking_key)
        if len(key) != 4:
            raise ValueError(f"masking key must be 4 bytes, got {len(key)}")
        return self._encode(key)

    def encode_unmasked(self) -> bytes:
        """Encode without masking, as a server does."""
        return self._encode(None)

    def _encode(self, key: Optional[bytes]) -> bytes:
        first = (
            (0x80 if self.fin else 0)
            | (0x40 if self.rsv1 else 0)
            | (0x20 if self.rsv2 else 0)
            | (0x10 if self.rsv3 else 0)
            | int(self.opcode)
        )
        mask_bit = 0x80 if key is not None else 0
        size = len(self.payload)
        if size >= 65536:
            header = struct.pack("!BBQ", first, mask_bit | 127, size)
        elif size >= 126:
            header = struct.pack("!BBH", first, mask_bit | 126, size)
        else:
            header = struct.pack("!BB", first, mask_bit | size)
        if key is None:
            return header + self.payload
        return header + key + _apply_mask(self.payload, key)


@dataclass
class DecodedFrame:
    """A decoded frame together with whether it arrived masked."""

    frame: Frame
    masked: bool


class FrameDecoder:
    """Buffer-driven frame decoder: feed bytes, then pull complete frames."""

    def __init__(self) -> None:
        self._buf = bytearray()

    def feed(self, data: bytes) -> None:
        """Append received bytes to the buffer."""
        self._buf.extend(data)

    def decode(self) -> Optional[Frame]:
        """Return the next complete frame, or ``None`` if more data is needed."""
        decoded = self.decode_with_info()
        return decoded.frame if decoded is not None else None

    def decode_with_info(self) -> Optional[DecodedFrame]:
        """Like :meth:`decode`, also reporting whether the frame was masked."""
        buf = self._buf
        if len(buf) < 2:
            return None

        first, second = buf[0], buf[1]
        opcode_value = first & 0x0F
        opcode = Opcode.from_int(opcode_value)
        if opcode is None:
            raise _protocol_violation(f"unknown opcode: {opcode_value}")

        masked = bool(second & 0x80)
        short_len = second & 0x7F

        if short_len == 127:
            if len(buf) < 10:
                return None
            if buf[2] & 0x80:
                raise _protocol_violation("64-bit payload length MSB must be 0")
            payload_len = int.from_bytes(buf[2:10], "big")
            if payload_len <= 65535:
                raise _protocol_violation(
                    "64-bit payload length must be > 65535 (non-minimal encoding)"
                )
            header_len = 10
        elif short_len == 126:
            if len(buf) < 4:
                return None
            payload_len = int.from_bytes(buf[2:4], "big")
            if payload_len < 126:
                raise _protocol_violation(
                    "16-bit payload length must be >= 126 (non-minimal encoding)"
                )
            header_len = 4
        else:
            payload_len = short_len
            header_len = 2

        key_len = 4 if masked else 0
        payload_start = header_len + key_len
        total_len = payload_start + payload_len
        if len(buf) < total_len:
            return None

        payload = bytes(buf[payload_start:total_len])
        if masked:
            payload = _apply_mask(payload, bytes(buf[header_len:payload_start]))

        fin = bool(first & 0x80)
        if opcode.is_control():
            if not fin:
                raise _protocol_violation("control frame must not be fragmented")
            if payload_len > _MAX_CONTROL_PAYLOAD:
                raise _protocol_violation("control frame payload too large")

        del buf[:total_len]

        frame = Frame(
            opcode=opcode,
            payload=payload,
            fin=fin,
            rsv1=bool(first & 0x40),
            rsv2=bool(first & 0x20),
            rsv3=bool(first & 0x10),
        )
        return DecodedFrame(frame=frame, masked=masked)

    def clear(self) -> None:
        """Discard all buffered bytes."""
        self._buf.clear()

    def __len__(self) -> int:
        return len(self._buf)