"""Sec-WebSocket-Extensions parsing and permessage-deflate negotiation.

Covers the extension header grammar of RFC 6455 Section 9.1 and the
parameter rules of RFC 7692.
"""

from __future__ import annotations

import dataclasses
import enum
import re
import string
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

PERMESSAGE_DEFLATE = "permessage-deflate"

_TCHARS = frozenset("!#$%&'*+-.^_`|~" + string.digits + string.ascii_letters)
_UNSIGNED = re.compile(r"\+?[0-9]+")

_VALID_DEFLATE_PARAMS = (
    "server_no_context_takeover",
    "client_no_context_takeover",
    "server_max_window_bits",
    "client_max_window_bits",
)


def is_valid_token(value: str) -> bool:
    """Whether ``value`` matches the HTTP token grammar (1*tchar)."""
    return bool(value) and all(ch in _TCHARS for ch in value)


@dataclass(frozen=True)
class ExtensionParam:
    """One extension parameter, with or without a value."""

    name: str
    value: Optional[str] = None


class ExtensionParseContext(enum.Enum):
    """Which side is parsing, which changes a few permessage-deflate rules."""

    CLIENT_RESPONSE = "client_response"
    SERVER_REQUEST = "server_request"


class ExtensionParseError(ValueError):
    """An extension header or its parameters do not follow the grammar."""


class NotDeflateError(ExtensionParseError):
    """The extension is not permessage-deflate."""

    def __init__(self) -> None:
        super().__init__("extension is not permessage-deflate")


class _NamedParamError(ExtensionParseError):
    _template = "{}"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(self._template.format(name))


class UnknownParameterError(_NamedParamError):
    """A parameter that the extension does not define."""

    _template = "unknown parameter: {}"


class DuplicateParameterError(_NamedParamError):
    """A parameter given more than once."""

    _template = "duplicate parameter: {}"


class MissingValueError(_NamedParamError):
    """A parameter that needs a value has none."""

    _template = "missing value for parameter: {}"


class UnexpectedValueError(_NamedParamError):
    """A parameter that takes no value was given one."""

    _template = "unexpected value for parameter: {}"


class InvalidValueError(ExtensionParseError):
    """A malformed or out-of-range value; the message is self-contained."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


def _split_respecting_quotes(text: str, delimiter: str) -> List[str]:
    """Split on ``delimiter`` outside quoted strings, honouring backslash escapes."""
    parts: List[str] = []
    start = 0
    in_quotes = False
    i = 0
    length = len(text)
    while i < length:
        ch = text[i]
        if in_quotes:
            if ch == "\\":
                i += 2
                continue
            if ch == '"':
                in_quotes = False
        elif ch == '"':
            in_quotes = True
        elif ch == delimiter:
            parts.append(text[start:i])
            start = i + 1
        i += 1
    parts.append(text[start:])
    return parts


def _find_unescaped_quote(text: str) -> Optional[int]:
    chars = iter(enumerate(text))
    for index, ch in chars:
        if ch == "\\":
            next(chars, None)
        elif ch == '"':
            return index
    return None


def _unescape_quoted(text: str) -> str:
    out: List[str] = []
    chars: Iterator[str] = iter(text)
    for ch in chars:
        if ch == "\\":
            escaped = next(chars, None)
            if escaped is not None:
                out.append(escaped)
        else:
            out.append(ch)
    return "".join(out)


def _parse_param_value(value: str) -> Optional[str]:
    """Decode a token or quoted-string value; ``None`` if it is not a valid token."""
    if value.startswith('"') and len(value) >= 2:
        inner = value[1:]
        end = _find_unescaped_quote(inner)
        if end is not None:
            if end + 1 < len(inner):
                return None
            unescaped = _unescape_quoted(inner[:end])
            return unescaped if is_valid_token(unescaped) else None
    return value if is_valid_token(value) else None


class _Skip(Exception):
    """Raised internally in lenient mode to drop one extension."""


@dataclass(frozen=True)
class Extension:
    """One extension offer or response element."""

    name: str
    params: Tuple[ExtensionParam, ...] = ()

    def with_param(self, name: str, value: Optional[str] = None) -> "Extension":
        """Return a copy with one more parameter appended."""
        return dataclasses.replace(
            self, params=self.params + (ExtensionParam(name, value),)
        )

    def get_param(self, name: str) -> Optional[ExtensionParam]:
        """The first parameter called ``name``, if any."""
        return next((p for p in self.params if p.name == name), None)

    def encode(self) -> str:
        """Render as a Sec-WebSocket-Extensions header element."""
        pieces = [self.name]
        for param in self.params:
            pieces.append(
                param.name if param.value is None else f"{param.name}={param.value}"
            )
        return "; ".join(pieces)

    @classmethod
    def parse(cls, header: str) -> List["Extension"]:
        """Parse leniently: malformed extensions are dropped, never raised."""
        result = []
        for element in _split_respecting_quotes(header, ","):
            try:
                ext = cls._parse_one(element, strict=False)
            except _Skip:
                continue
            if ext is not None:
                result.append(ext)
        return result

    @classmethod
    def parse_strict(cls, header: str) -> List["Extension"]:
        """Parse strictly, raising :class:`ExtensionParseError` on any grammar error."""
        result = []
        for element in _split_respecting_quotes(header, ","):
            ext = cls._parse_one(element, strict=True)
            if ext is not None:
                result.append(ext)
        return result

    @classmethod
    def _parse_one(cls, element: str, strict: bool) -> Optional["Extension"]:
        def fail(detail: str) -> Exception:
            return InvalidValueError(detail) if strict else _Skip()

        ext = element.strip()
        if not ext:
            return None

        first, *rest = _split_respecting_quotes(ext, ";")
        name = first.strip()
        if not name:
            raise fail(f"empty extension name in '{ext}'")
        if not is_valid_token(name):
            raise fail(f"invalid extension name '{name}': not a valid token")

        params: List[ExtensionParam] = []
        for raw in rest:
            part = raw.strip()
            if not part:
                if strict:
                    raise InvalidValueError(
                        f"trailing ';' in extension '{name}': "
                        "extension-param required after ';'"
                    )
                continue
            if "=" in part:
                param_name, value = part.split("=", 1)
                param_name = param_name.strip()
                if not is_valid_token(param_name):
                    raise fail(
                        f"invalid parameter name in extension '{name}': "
                        f"'{param_name}' is not a valid token"
                    )
                value = value.strip()
                parsed = _parse_param_value(value)
                if parsed is None:
                    raise fail(
                        f"invalid parameter value in extension '{name}': '{value}'"
                    )
                params.append(ExtensionParam(param_name, parsed))
            else:
                if not is_valid_token(part):
                    raise fail(
                        f"invalid parameter name in extension '{name}': "
                        f"'{part}' is not a valid token"
                    )
                params.append(ExtensionParam(part, None))

        return cls(name, tuple(params))


def _parse_window_bits(param_name: str, value: str) -> int:
    if value.startswith("0") and len(value) > 1:
        raise InvalidValueError(
            f"{param_name}: leading zeros are not allowed '{value}'"
        )
    if not _UNSIGNED.fullmatch(value) or int(value) > 255:
        raise InvalidValueError(f"{param_name}: invalid value '{value}'")
    bits = int(value)
    if not 8 <= bits <= 15:
        raise InvalidValueError(f"{param_name}: {bits} is out of range (8-15)")
    return bits


@dataclass(frozen=True)
class PerMessageDeflateConfig:
    """permessage-deflate parameters (RFC 7692)."""

    server_max_window_bits: Optional[int] = None
    client_max_window_bits: Optional[int] = None
    server_no_context_takeover: bool = False
    client_no_context_takeover: bool = False

    def with_server_max_window_bits(self, bits: int) -> "PerMessageDeflateConfig":
        """Copy with server_max_window_bits set, clamped to 8..15."""
        return dataclasses.replace(self, server_max_window_bits=min(max(bits, 8), 15))

    def with_client_max_window_bits(self, bits: int) -> "PerMessageDeflateConfig":
        """Copy with client_max_window_bits set, clamped to 8..15."""
        return dataclasses.replace(self, client_max_window_bits=min(max(bits, 8), 15))

    def with_server_no_context_takeover(self) -> "PerMessageDeflateConfig":
        """Copy with server_no_context_takeover enabled."""
        return dataclasses.replace(self, server_no_context_takeover=True)

    def with_client_no_context_takeover(self) -> "PerMessageDeflateConfig":
        """Copy with client_no_context_takeover enabled."""
        return dataclasses.replace(self, client_no_context_takeover=True)

    def to_extension(self) -> Extension:
        """Build the permessage-deflate extension element for these settings."""
        ext = Extension(PERMESSAGE_DEFLATE)
        if self.server_no_context_takeover:
            ext = ext.with_param("server_no_context_takeover")
        if self.client_no_context_takeover:
            ext = ext.with_param("client_no_context_takeover")
        if self.server_max_window_bits is not None:
            ext = ext.with_param("server_max_window_bits", str(self.server_max_window_bits))
        if self.client_max_window_bits is not None:
            ext = ext.with_param("client_max_window_bits", str(self.client_max_window_bits))
        return ext

    @classmethod
    def from_extension(
        cls, ext: Extension, context: ExtensionParseContext
    ) -> "PerMessageDeflateConfig":
        """Validate ``ext`` as permessage-deflate and build a config from it."""
        if ext.name != PERMESSAGE_DEFLATE:
            raise NotDeflateError()

        values = {}
        seen = set()
        for param in ext.params:
            if param.name not in _VALID_DEFLATE_PARAMS:
                raise UnknownParameterError(param.name)
            if param.name in seen:
                raise DuplicateParameterError(param.name)
            seen.add(param.name)

            if param.name in ("server_no_context_takeover", "client_no_context_takeover"):
                if param.value is not None:
                    raise UnexpectedValueError(param.name)
                values[param.name] = True
            elif param.name == "server_max_window_bits":
                if param.value is None:
                    raise MissingValueError(param.name)
                values[param.name] = _parse_window_bits(param.name, param.value)
            else:
                if param.value is not None:
                    values[param.name] = _parse_window_bits(param.name, param.value)
                elif context is ExtensionParseContext.CLIENT_RESPONSE:
                    raise MissingValueError(param.name)
                else:
                    # In an offer, no value lets the server choose.
                    values[param.name] = 15
        return cls(**values)

    @classmethod
    def from_extension_for_client_response(cls, ext: Extension) -> "PerMessageDeflateConfig":
        """Validate a server's response as seen by the client."""
        return cls.from_extension(ext, ExtensionParseContext.CLIENT_RESPONSE)

    @classmethod
    def from_extension_for_server_request(cls, ext: Extension) -> "PerMessageDeflateConfig":
        """Validate a client's offer as seen by the server."""
        return cls.from_extension(ext, ExtensionParseContext.SERVER_REQUEST)

    @classmethod
    def negotiate(
        cls,
        client_request: "PerMessageDeflateConfig",
        server_config: "PerMessageDeflateConfig",
    ) -> "PerMessageDeflateConfig":
        """Merge a client offer with the server's settings."""
        client_bits = client_request.client_max_window_bits
        server_bits = server_config.client_max_window_bits
        if client_bits is None:
            merged_client_bits = None
        elif server_bits is None:
            merged_client_bits = client_bits
        else:
            merged_client_bits = min(client_bits, server_bits)
        return cls(
            server_max_window_bits=client_request.server_max_window_bits,
            client_max_window_bits=merged_client_bits,
            server_no_context_takeover=client_request.server_no_context_takeover
            or server_config.server_no_context_takeover,
            client_no_context_takeover=client_request.client_no_context_takeover
            or server_config.client_no_context_takeover,
        )