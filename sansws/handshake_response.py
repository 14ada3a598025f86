"""Server response description and client-side response validation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .errors import ErrorKind, HttpResponseInfo, WebSocketError
from .handshake import calculate_accept
from .handshake_request import _rejected, _require_single, _require_token, _validated_extensions
from .httphead import HeadParser, HttpParseError, ResponseHead


@dataclass
class ServerHandshakeResponse:
    """What the server chooses to answer an opening handshake with."""

    protocol: Optional[str] = None
    extensions: List[str] = field(default_factory=list)
    additional_headers: List[Tuple[str, str]] = field(default_factory=list)


@dataclass
class HandshakeResponse:
    """The negotiated result of a validated server response."""

    protocol: Optional[str]
    extensions: List[str]


class HandshakeValidator:
    """Client-side parser and validator for the server's handshake response."""

    def __init__(self, nonce: bytes) -> None:
        self._expected_accept = calculate_accept(nonce)
        self._parser = HeadParser()
        self._decode_error: Optional[str] = None

    @property
    def expected_accept(self) -> str:
        """The Sec-WebSocket-Accept value the server must send."""
        return self._expected_accept

    def feed(self, data: bytes) -> None:
        """Add received bytes; a parse error is kept and reported by :meth:`validate`."""
        if self._decode_error is not None:
            return
        try:
            self._parser.feed(data)
        except HttpParseError as exc:
            self._decode_error = str(exc)

    @property
    def remaining(self) -> bytes:
        """Bytes received after the response head (frame data)."""
        return self._parser.remaining

    def validate(self) -> Optional[HandshakeResponse]:
        """Return the negotiated result, ``None`` if incomplete; raise if invalid."""
        if self._decode_error is not None:
            raise WebSocketError(ErrorKind.INVALID_DATA, self._decode_error)
        try:
            head = self._parser.parse_response()
        except HttpParseError as exc:
            raise WebSocketError(ErrorKind.INVALID_DATA, str(exc)) from exc
        if head is None:
            return None
        return self._validate_response(head)

    def _validate_response(self, response: ResponseHead) -> HandshakeResponse:
        if response.status_code != 101:
            raise WebSocketError(
                ErrorKind.HTTP_RESPONSE,
                f"unexpected HTTP response: {response.status_code} "
                f"{response.reason_phrase}",
                HttpResponseInfo(
                    status_code=response.status_code,
                    reason_phrase=response.reason_phrase,
                    headers=list(response.headers),
                ),
            )

        _require_token(response, "Upgrade", "websocket")
        _require_token(response, "Connection", "upgrade")

        _require_single(response, "Sec-WebSocket-Accept")
        accept = response.get_header("Sec-WebSocket-Accept")
        if accept is None:
            raise _rejected("missing Sec-WebSocket-Accept header")
        if accept != self._expected_accept:
            raise _rejected(
                f"invalid Sec-WebSocket-Accept: expected {self._expected_accept}, "
                f"got {accept}"
            )

        _require_single(response, "Sec-WebSocket-Protocol")
        protocol = response.get_header("Sec-WebSocket-Protocol")

        return HandshakeResponse(
            protocol=protocol, extensions=_validated_extensions(response)
        )