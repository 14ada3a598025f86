"""Sans-I/O WebSocket frames, opening handshakes and permessage-deflate negotiation."""

__version__ = "2026.3.0"

__all__ = [
    "errors",
    "extension",
    "frame",
    "handshake",
    "handshake_request",
    "handshake_response",
    "httphead",
    "opcode",
]