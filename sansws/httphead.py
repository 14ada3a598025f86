"""Minimal HTTP/1.1 message-head encoding and incremental parsing."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .extension import is_valid_token

DEFAULT_MAX_HEAD_SIZE = 64 * 1024

_TERMINATOR = b"\r\n\r\n"
_VERSION = re.compile(r"HTTP/[0-9]\.[0-9]")
_ABSOLUTE_URI = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*://\S+")
_STATUS = re.compile(r"[0-9]{3}")

Headers = List[Tuple[str, str]]


class HttpParseError(ValueError):
    """An HTTP message head is malformed or cannot be encoded."""


def is_valid_header_name(name: str) -> bool:
    """Whether ``name`` is a valid header field name (an HTTP token)."""
    return is_valid_token(name)


def _has_forbidden_chars(text: str) -> bool:
    return any(ch in "\r\n\x00" for ch in text)


def _header_block(headers: Iterable[Tuple[str, str]]) -> str:
    lines = []
    for name, value in headers:
        if not is_valid_header_name(name):
            raise HttpParseError(f"invalid header name: {name!r}")
        if _has_forbidden_chars(value):
            raise HttpParseError(f"invalid value for header {name}: {value!r}")
        lines.append(f"{name}: {value}\r\n")
    return "".join(lines)


def _has_bad_uri_chars(uri: str) -> bool:
    return any(ord(ch) < 0x21 or ord(ch) == 0x7F for ch in uri)


def encode_request(method: str, uri: str, headers: Iterable[Tuple[str, str]]) -> bytes:
    """Encode an HTTP/1.1 request head with no body."""
    if not is_valid_token(method):
        raise HttpParseError(f"invalid method: {method!r}")
    if not uri or _has_bad_uri_chars(uri):
        raise HttpParseError(f"invalid request target: {uri!r}")
    text = f"{method} {uri} HTTP/1.1\r\n" + _header_block(headers) + "\r\n"
    return text.encode("utf-8")


def encode_response(status_code: int, reason: str, headers: Iterable[Tuple[str, str]]) -> bytes:
    """Encode an HTTP/1.1 response head with no body."""
    if not 100 <= status_code <= 999:
        raise HttpParseError(f"invalid status code: {status_code}")
    if _has_forbidden_chars(reason):
        raise HttpParseError(f"invalid reason phrase: {reason!r}")
    text = f"HTTP/1.1 {status_code} {reason}\r\n" + _header_block(headers) + "\r\n"
    return text.encode("utf-8")


@dataclass
class MessageHead:
    """Start-line version and header fields common to requests and responses."""

    version: str
    headers: Headers

    def get_header(self, name: str) -> Optional[str]:
        """The first value of header ``name`` (case-insensitive), if present."""
        lower = name.lower()
        return next((value for key, value in self.headers if key.lower() == lower), None)

    def get_headers(self, name: str) -> List[str]:
        """Every value of header ``name`` (case-insensitive), in order."""
        lower = name.lower()
        return [value for key, value in self.headers if key.lower() == lower]


@dataclass
class RequestHead(MessageHead):
    """A parsed request line and headers."""

    method: str
    uri: str


@dataclass
class ResponseHead(MessageHead):
    """A parsed status line and headers."""

    status_code: int
    reason_phrase: str


def _parse_header_lines(lines: List[str]) -> Headers:
    headers: Headers = []
    for line in lines:
        if line[:1] in (" ", "\t"):
            raise HttpParseError("obsolete line folding is not allowed")
        name, sep, value = line.partition(":")
        if not sep or not is_valid_header_name(name):
            raise HttpParseError(f"invalid header line: {line!r}")
        value = value.strip(" \t")
        if "\x00" in value:
            raise HttpParseError(f"invalid value for header {name}")
        headers.append((name, value))
    return headers


class HeadParser:
    """Accumulates bytes until a full message head is available.

    Bytes following the head stay buffered and are exposed by :attr:`remaining`.
    """

    def __init__(self, max_head_size: int = DEFAULT_MAX_HEAD_SIZE) -> None:
        self._buf = bytearray()
        self._max_head_size = max_head_size
        self._complete = False

    def feed(self, data: bytes) -> None:
        """Append received bytes; raises if the head grows beyond the limit."""
        self._buf.extend(data)
        if (
            not self._complete
            and _TERMINATOR not in self._buf
            and len(self._buf) > self._max_head_size
        ):
            raise HttpParseError(
                f"message head exceeds {self._max_head_size} bytes"
            )

    @property
    def remaining(self) -> bytes:
        """Bytes received after the parsed head (empty until a head is parsed)."""
        return bytes(self._buf) if self._complete else b""

    def reset(self) -> None:
        """Discard all state so a new message can be parsed."""
        self._buf.clear()
        self._complete = False

    def _take_head(self) -> Optional[List[str]]:
        if self._complete:
            return None
        end = self._buf.find(_TERMINATOR)
        if end < 0:
            return None
        if end > self._max_head_size:
            raise HttpParseError(f"message head exceeds {self._max_head_size} bytes")
        raw = bytes(self._buf[:end])
        del self._buf[: end + len(_TERMINATOR)]
        self._complete = True
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            raise HttpParseError("message head is not valid UTF-8") from None
        lines = text.split("\r\n")
        if any("\r" in line or "\n" in line for line in lines):
            raise HttpParseError("bare CR or LF in message head")
        if not lines[0]:
            raise HttpParseError("empty start line")
        return lines

    def parse_request(self) -> Optional[RequestHead]:
        """Return the request head once complete, else ``None``."""
        lines = self._take_head()
        if lines is None:
            return None
        parts = lines[0].split(" ")
        if len(parts) != 3:
            raise HttpParseError(f"invalid request line: {lines[0]!r}")
        method, uri, version = parts
        if not is_valid_token(method):
            raise HttpParseError(f"invalid method: {method!r}")
        if not _VERSION.fullmatch(version):
            raise HttpParseError(f"invalid HTTP version: {version!r}")
        if not uri or _has_bad_uri_chars(uri):
            raise HttpParseError(f"invalid request target: {uri!r}")
        if uri.startswith("/") or _ABSOLUTE_URI.fullmatch(uri):
            pass
        elif uri == "*":
            if method != "OPTIONS":
                raise HttpParseError(f"asterisk-form is not allowed for {method}")
        elif method != "CONNECT":
            raise HttpParseError(f"invalid request target for {method}: {uri!r}")
        return RequestHead(
            version=version,
            headers=_parse_header_lines(lines[1:]),
            method=method,
            uri=uri,
        )

    def parse_response(self) -> Optional[ResponseHead]:
        """Return the response head once complete, else ``None``."""
        lines = self._take_head()
        if lines is None:
            return None
        version, _, rest = lines[0].partition(" ")
        status, _, reason = rest.partition(" ")
        if not _VERSION.fullmatch(version):
            raise HttpParseError(f"invalid HTTP version: {version!r}")
        if not _STATUS.fullmatch(status):
            raise HttpParseError(f"invalid status code: {status!r}")
        return ResponseHead(
            version=version,
            headers=_parse_header_lines(lines[1:]),
            status_code=int(status),
            reason_phrase=reason,
        )