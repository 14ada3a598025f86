"""Errors raised by the WebSocket protocol layer."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


class ErrorKind(enum.Enum):
    """Category of a :class:`WebSocketError`."""

    INVALID_INPUT = "invalid input"
    INVALID_DATA = "invalid data"
    INVALID_STATE = "invalid state"
    PROTOCOL_VIOLATION = "protocol violation"
    HANDSHAKE_REJECTED = "handshake rejected"
    VERSION_NOT_SUPPORTED = "version not supported"
    HTTP_RESPONSE = "http response"


@dataclass
class HttpResponseInfo:
    """A non-101 HTTP response received during the opening handshake."""

    status_code: int
    reason_phrase: str
    headers: List[Tuple[str, str]] = field(default_factory=list)


class WebSocketError(Exception):
    """An error with a kind, a message and, for HTTP responses, the response."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        response: Optional[HttpResponseInfo] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.response = response

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"