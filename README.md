# sansws

Building blocks for the WebSocket protocol (RFC 6455) and for negotiating
the permessage-deflate extension (RFC 7692), in the sans-I/O style: nothing
here opens sockets or reads clocks. You feed bytes in, get parsed values
(or exceptions) back, and move bytes over the network yourself.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `sansws.opcode`: `Opcode`, an `IntEnum` of the six defined opcodes, with
  `Opcode.from_int` (returns `None` for reserved or unknown values),
  `is_control()` and `is_data()`. `str(Opcode.TEXT)` is `"Text"`.
- `sansws.frame`: `Frame` (a dataclass with `opcode`, `payload`, `fin`,
  `rsv1`, `rsv2`, `rsv3`), its constructors `Frame.text`, `Frame.binary`,
  `Frame.ping`, `Frame.pong` and `Frame.close`, the methods `encode(masking_key)`
  and `encode_unmasked()`; `DecodedFrame`; and the incremental
  `FrameDecoder` with `feed`, `decode`, `decode_with_info`, `clear` and
  `len()` for the number of buffered bytes.
- `sansws.handshake`: `calculate_accept(nonce)`,
  `calculate_accept_from_key(key)` and `validate_key(key)` for the
  `Sec-WebSocket-Key` / `Sec-WebSocket-Accept` pair.
- `sansws.extension`: `is_valid_token`, `Extension` and `ExtensionParam`
  for `Sec-WebSocket-Extensions` values (`Extension.parse`,
  `Extension.parse_strict`, `encode`, `get_param`, `with_param`), and
  `PerMessageDeflateConfig` for validating and negotiating
  permessage-deflate parameters.
- `sansws.httphead`: a minimal HTTP/1.1 head parser (`HeadParser`, yielding
  `RequestHead` or `ResponseHead`) and the encoders `encode_request` and
  `encode_response`.
- `sansws.handshake_request`: the client's `HandshakeRequest` builder and
  the server's `HandshakeRequestValidator`, which yields a
  `ServerHandshakeRequest`.
- `sansws.handshake_response`: `ServerHandshakeResponse` (what a server
  chooses to answer with) and the client's `HandshakeValidator`, which
  yields a `HandshakeResponse`.
- `sansws.errors`: `WebSocketError`, `ErrorKind` and `HttpResponseInfo`.

Errors are raised as `WebSocketError`, whose `kind` attribute is an
`ErrorKind` (`INVALID_INPUT`, `INVALID_DATA`, `INVALID_STATE`,
`PROTOCOL_VIOLATION`, `HANDSHAKE_REJECTED`, `VERSION_NOT_SUPPORTED`,
`HTTP_RESPONSE`). Extension problems raise subclasses of
`sansws.extension.ExtensionParseError` (`NotDeflateError`,
`UnknownParameterError`, `DuplicateParameterError`, `MissingValueError`,
`UnexpectedValueError`, `InvalidValueError`), which is a `ValueError`.

## Frames

```python
from sansws.frame import Frame, FrameDecoder
from sansws.opcode import Opcode

wire = Frame.text("hello").encode(b"\x01\x02\x03\x04")  # client frames are masked

decoder = FrameDecoder()
decoder.feed(wire[:3])
assert decoder.decode() is None      # not a whole frame yet
decoder.feed(wire[3:])
frame = decoder.decode()
assert frame.opcode is Opcode.TEXT
assert frame.payload == b"hello"
```

`Frame.ping` and `Frame.pong` raise `WebSocketError` (`INVALID_INPUT`) for a
payload over 125 bytes; `Frame.close` does so for a reason over 123 bytes of
UTF-8. `Frame.close()` with no code gives an empty payload.

The decoder raises `PROTOCOL_VIOLATION` for unknown opcodes, non-minimal
length encodings, a 64-bit length with its top bit set, and fragmented or
oversized control frames. `decode_with_info()` also reports whether the
frame arrived masked; deciding whether masking or RSV bits are acceptable
is left to the caller.

## Opening handshake, client side

```python
import os
from sansws.handshake_request import HandshakeRequest
from sansws.handshake_response import HandshakeValidator

nonce = os.urandom(16)
request = HandshakeRequest("/chat", "example.com", protocols=["chat"])
request_bytes = request.build(nonce)
# ... send request_bytes, then feed what the server sends back:

validator = HandshakeValidator(nonce)
validator.feed(received_bytes)
response = validator.validate()   # None until the whole head has arrived
if response is not None:
    print(response.protocol, response.extensions)
    frame_bytes = validator.remaining   # anything received after the head
```

`build` checks that protocols are unique tokens, that `path` starts with
`/` or is an `http://` / `https://` URI, and that `additional_headers`
does not repeat a header it sets itself. A response other than
`101 Switching Protocols` raises a `WebSocketError` of kind
`HTTP_RESPONSE` carrying the status, reason and headers in its `response`
attribute.

## Opening handshake, server side

```python
from sansws.handshake import calculate_accept_from_key
from sansws.handshake_request import HandshakeRequestValidator

validator = HandshakeRequestValidator()
validator.feed(received_bytes)
request = validator.validate()
if request is not None:
    print(request.path, request.host, request.origin,
          request.protocols, request.extensions)
    accept = calculate_accept_from_key(request.key)
```

A request asking for a version other than 13 raises
`VERSION_NOT_SUPPORTED`; other violations raise `HANDSHAKE_REJECTED`, and
an unparseable head raises `INVALID_DATA`. Building the `101` reply (for
example with `sansws.httphead.encode_response`) is up to the caller.

## permessage-deflate negotiation

```python
from sansws.extension import Extension, PerMessageDeflateConfig

offer = Extension.parse("permessage-deflate; client_max_window_bits")[0]
client = PerMessageDeflateConfig.from_extension_for_server_request(offer)
server = PerMessageDeflateConfig().with_client_max_window_bits(10)
agreed = PerMessageDeflateConfig.negotiate(client, server)
print(agreed.to_extension().encode())
# permessage-deflate; client_max_window_bits=10
```

`Extension.parse` drops malformed elements silently; `Extension.parse_strict`
raises on them.

## What this package does not do

- It does not compress or decompress messages; it only validates and
  negotiates the permessage-deflate parameters.
- It has no connection state machine: no reassembly of fragmented
  messages, no UTF-8 checking of text messages, no close-code rules, no
  automatic ping/pong replies and no timers. It provides frames and
  handshakes for such a layer to be built on.
- It opens no sockets and has no command-line program.