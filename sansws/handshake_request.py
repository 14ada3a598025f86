"""Client request building and server-side request validation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

import base64

from .errors import ErrorKind, WebSocketError
from .extension import Extension, ExtensionParseError, is_valid_token
from .handshake import validate_key
from .httphead import HeadParser, HttpParseError, MessageHead, RequestHead, encode_request

_RESERVED_REQUEST_HEADERS = frozenset(
    {
        "host",
        "upgrade",
        "connection",
        "sec-websocket-key",
        "sec-websocket-version",
        "sec-websocket-protocol",
        "sec-websocket-extensions",
    }
)


def _rejected(message: str) -> WebSocketError:
    return WebSocketError(ErrorKind.HANDSHAKE_REJECTED, message)


def _invalid_input(message: str) -> WebSocketError:
    return WebSocketError(ErrorKind.INVALID_INPUT, message)


def _split_list(values: Iterable[str]) -> List[str]:
    """Merge comma-separated header lines into a list of trimmed, non-empty items."""
    return [item.strip() for value in values for item in value.split(",") if item.strip()]


def _is_origin_or_http_uri(uri: str) -> bool:
    lower = uri.lower()
    return uri.startswith("/") or lower.startswith(("http://", "https://"))


def _require_token(head: MessageHead, name: str, token: str) -> None:
    values = head.get_headers(name)
    if not values:
        raise _rejected(f"missing {name} header")
    if not any(
        item.strip().lower() == token for value in values for item in value.split(",")
    ):
        raise _rejected(f"invalid {name} header: {', '.join(values)}")


def _require_single(head: MessageHead, name: str) -> None:
    if len(head.get_headers(name)) > 1:
        raise _rejected(f"duplicate {name} header")


def _validated_extensions(head: MessageHead) -> List[str]:
    values = head.get_headers("Sec-WebSocket-Extensions")
    extensions = _split_list(values)
    if values and not extensions:
        raise _rejected("malformed Sec-WebSocket-Extensions header: no valid extensions")
    for ext in extensions:
        try:
            Extension.parse_strict(ext)
        except ExtensionParseError as exc:
            raise _rejected(f"invalid Sec-WebSocket-Extensions value: {exc}") from exc
    return extensions


@dataclass
class HandshakeRequest:
    """An opening-handshake request as a client sends it."""

    path: str
    host: str
    origin: Optional[str] = None
    protocols: List[str] = field(default_factory=list)
    extensions: List[str] = field(default_factory=list)
    additional_headers: List[Tuple[str, str]] = field(default_factory=list)

    def build(self, nonce: bytes) -> bytes:
        """Encode the request using the 16-byte ``nonce`` as Sec-WebSocket-Key."""
        nonce = bytes(nonce)
        if len(nonce) != 16:
            raise ValueError(f"nonce must be 16 bytes, got {len(nonce)}")

        for protocol in self.protocols:
            if not is_valid_token(protocol):
                raise _invalid_input(f"invalid Sec-WebSocket-Protocol value: {protocol}")
        seen = set()
        for protocol in self.protocols:
            if protocol in seen:
                raise _invalid_input(f"duplicate Sec-WebSocket-Protocol value: {protocol}")
            seen.add(protocol)

        for name, _ in self.additional_headers:
            if name.lower() in _RESERVED_REQUEST_HEADERS:
                raise _invalid_input(
                    f"additional header '{name}' conflicts with a reserved WebSocket header"
                )

        if not _is_origin_or_http_uri(self.path):
            raise _invalid_input(
                "invalid path: must be origin-form or absolute http/https URI: "
                f"{self.path}"
            )

        key = base64.b64encode(nonce).decode("ascii")
        headers = [
            ("Host", self.host),
            ("Upgrade", "websocket"),
            ("Connection", "Upgrade"),
            ("Sec-WebSocket-Key", key),
            ("Sec-WebSocket-Version", "13"),
        ]
        if self.origin is not None:
            headers.append(("Origin", self.origin))
        if self.protocols:
            headers.append(("Sec-WebSocket-Protocol", ", ".join(self.protocols)))
        if self.extensions:
            headers.append(("Sec-WebSocket-Extensions", ", ".join(self.extensions)))
        headers.extend(self.additional_headers)

        try:
            return encode_request("GET", self.path, headers)
        except HttpParseError as exc:
            raise _invalid_input(str(exc)) from exc


@dataclass
class ServerHandshakeRequest:
    """A validated opening-handshake request as the server sees it."""

    path: str
    host: str
    origin: Optional[str]
    protocols: List[str]
    extensions: List[str]
    key: str


class HandshakeRequestValidator:
    """Server-side parser and validator for the opening-handshake request."""

    def __init__(self) -> None:
        self._parser = HeadParser()
        self._decode_error: Optional[str] = None

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
        """Bytes received after the request head (frame data)."""
        return self._parser.remaining

    def reset(self) -> None:
        """Forget all buffered data and errors."""
        self._parser.reset()
        self._decode_error = None

    def validate(self) -> Optional[ServerHandshakeRequest]:
        """Return the validated request, ``None`` if incomplete; raise if invalid."""
        if self._decode_error is not None:
            raise WebSocketError(ErrorKind.INVALID_DATA, self._decode_error)
        try:
            request = self._parser.parse_request()
        except HttpParseError as exc:
            raise WebSocketError(ErrorKind.INVALID_DATA, str(exc)) from exc
        if request is None:
            return None
        return self._validate_request(request)

    @staticmethod
    def _validate_request(request: RequestHead) -> ServerHandshakeRequest:
        if request.method != "GET":
            raise _rejected(f"unexpected method: {request.method}")
        if request.version != "HTTP/1.1":
            raise _rejected(f"unexpected HTTP version: {request.version}")
        if not _is_origin_or_http_uri(request.uri):
            raise _rejected(
                "invalid Request-URI: must be origin-form or absolute http/https URI: "
                f"{request.uri}"
            )

        host = request.get_header("Host")
        if host is None:
            raise _rejected("missing Host header")

        _require_token(request, "Upgrade", "websocket")
        _require_token(request, "Connection", "upgrade")

        _require_single(request, "Sec-WebSocket-Version")
        version = request.get_header("Sec-WebSocket-Version")
        if version is None:
            raise _rejected("missing Sec-WebSocket-Version")
        if version != "13":
            raise WebSocketError(
                ErrorKind.VERSION_NOT_SUPPORTED, f"unsupported WebSocket version: {version}"
            )

        _require_single(request, "Sec-WebSocket-Key")
        key = request.get_header("Sec-WebSocket-Key")
        if key is None:
            raise _rejected("missing Sec-WebSocket-Key")
        validate_key(key)

        protocol_values = request.get_headers("Sec-WebSocket-Protocol")
        protocols = _split_list(protocol_values)
        if protocol_values and not protocols:
            raise _rejected("malformed Sec-WebSocket-Protocol header: no valid protocols")
        for protocol in protocols:
            if not is_valid_token(protocol):
                raise _rejected(f"invalid Sec-WebSocket-Protocol value: {protocol}")
        seen = set()
        for protocol in protocols:
            if protocol in seen:
                raise _rejected(f"duplicate Sec-WebSocket-Protocol value: {protocol}")
            seen.add(protocol)

        extensions = _validated_extensions(request)

        return ServerHandshakeRequest(
            path=request.uri,
            host=host,
            origin=request.get_header("Origin"),
            protocols=protocols,
            extensions=extensions,
            key=key,
        )