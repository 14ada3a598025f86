"""WebSocket frame opcodes (RFC 6455 Section 5.2)."""

from __future__ import annotations

import enum
from typing import Optional


class Opcode(enum.IntEnum):
    """Opcode carried in the low four bits of a frame's first byte."""

    CONTINUATION = 0x0
    TEXT = 0x1
    BINARY = 0x2
    CLOSE = 0x8
    PING = 0x9
    PONG = 0xA

    @classmethod
    def from_int(cls, value: int) -> Optional["Opcode"]:
        """Return the opcode for ``value``, or ``None`` if it is reserved or unknown."""
        try:
            return cls(value)
        except ValueError:
            return None

    def is_control(self) -> bool:
        """Whether this is a control frame opcode (Close, Ping, Pong)."""
        return self in (Opcode.CLOSE, Opcode.PING, Opcode.PONG)

    def is_data(self) -> bool:
        """Whether this is a data frame opcode (Continuation, Text, Binary)."""
        return self in (Opcode.CONTINUATION, Opcode.TEXT, Opcode.BINARY)

    def __str__(self) -> str:
        return self.name.capitalize()