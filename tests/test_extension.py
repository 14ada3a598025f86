import pytest
from hypothesis import given
from hypothesis import strategies as st

from sansws.extension import (
    DuplicateParameterError,
    Extension,
    ExtensionParam,
    ExtensionParseContext,
    ExtensionParseError,
    InvalidValueError,
    MissingValueError,
    NotDeflateError,
    PerMessageDeflateConfig,
    UnexpectedValueError,
    UnknownParameterError,
    is_valid_token,
)


def _deflate(*params):
    ext = Extension("permessage-deflate")
    for name, value in params:
        ext = ext.with_param(name, value)
    return ext


@pytest.mark.parametrize(
    "value,expected",
    [
        ("permessage-deflate", True),
        ("a!#$%&'*+-.^_`|~9", True),
        ("", False),
        ("has space", False),
        ("a,b", False),
        ('"q"', False),
        ("caf\u00e9", False),
    ],
)
def test_is_valid_token(value, expected):
    assert is_valid_token(value) is expected


def test_encode_with_params():
    ext = Extension("permessage-deflate").with_param("client_max_window_bits").with_param(
        "server_max_window_bits", "10"
    )
    assert ext.encode() == (
        "permessage-deflate; client_max_window_bits; server_max_window_bits=10"
    )


def test_with_param_does_not_mutate():
    base = Extension("x")
    extended = base.with_param("y", "1")
    assert base.params == ()
    assert extended.params == (ExtensionParam("y", "1"),)


def test_get_param_returns_first_match():
    ext = Extension("x").with_param("a", "1").with_param("a", "2")
    assert ext.get_param("a") == ExtensionParam("a", "1")
    assert ext.get_param("missing") is None


def test_parse_multiple_extensions():
    result = Extension.parse("permessage-deflate; client_max_window_bits, foo; bar=1")
    assert result == [
        Extension("permessage-deflate", (ExtensionParam("client_max_window_bits"),)),
        Extension("foo", (ExtensionParam("bar", "1"),)),
    ]


def test_parse_skips_empty_elements():
    assert [e.name for e in Extension.parse("a, , b")] == ["a", "b"]
    assert Extension.parse("") == []


def test_parse_quoted_value_is_unescaped():
    result = Extension.parse('permessage-deflate; client_max_window_bits="1\\0"')
    assert result[0].get_param("client_max_window_bits").value == "10"


def test_parse_quoted_comma_is_not_a_separator():
    # The decoded value "a,b" is not a token, so the only extension is dropped.
    assert Extension.parse('foo; bar="a,b"') == []
    with pytest.raises(InvalidValueError):
        Extension.parse_strict('foo; bar="a,b"')


def test_parse_trailing_garbage_after_quote_dropped():
    assert Extension.parse('foo; bar="1"x, ok') == [Extension("ok")]


def test_lenient_trailing_semicolon_keeps_extension():
    assert Extension.parse("permessage-deflate;") == [Extension("permessage-deflate")]


def test_strict_trailing_semicolon_raises():
    with pytest.raises(InvalidValueError, match="trailing ';'"):
        Extension.parse_strict("permessage-deflate;")


def test_invalid_name_dropped_or_raised():
    assert Extension.parse("bad name, good") == [Extension("good")]
    with pytest.raises(InvalidValueError, match="invalid extension name 'bad name'"):
        Extension.parse_strict("bad name, good")


def test_empty_name_strict():
    with pytest.raises(InvalidValueError, match="empty extension name"):
        Extension.parse_strict("; foo")


def test_invalid_param_name_strict():
    with pytest.raises(InvalidValueError, match="invalid parameter name"):
        Extension.parse_strict("foo; b@r")
    assert Extension.parse("foo; b@r") == []


def test_invalid_param_value_strict():
    with pytest.raises(InvalidValueError, match="invalid parameter value"):
        Extension.parse_strict("foo; bar=a b")


def test_parse_strict_valid():
    assert Extension.parse_strict("permessage-deflate; server_no_context_takeover") == [
        Extension("permessage-deflate", (ExtensionParam("server_no_context_takeover"),))
    ]


def test_error_messages():
    assert str(NotDeflateError()) == "extension is not permessage-deflate"
    assert str(UnknownParameterError("foo")) == "unknown parameter: foo"
    assert str(DuplicateParameterError("foo")) == "duplicate parameter: foo"
    assert str(MissingValueError("foo")) == "missing value for parameter: foo"
    assert str(UnexpectedValueError("foo")) == "unexpected value for parameter: foo"
    assert str(InvalidValueError("detail text")) == "detail text"
    assert issubclass(InvalidValueError, ExtensionParseError)


def test_window_bits_clamped():
    config = PerMessageDeflateConfig().with_server_max_window_bits(20).with_client_max_window_bits(3)
    assert config.server_max_window_bits == 15
    assert config.client_max_window_bits == 8


def test_to_extension_order():
    config = (
        PerMessageDeflateConfig()
        .with_client_max_window_bits(10)
        .with_server_max_window_bits(12)
        .with_client_no_context_takeover()
        .with_server_no_context_takeover()
    )
    assert config.to_extension().encode() == (
        "permessage-deflate; server_no_context_takeover; client_no_context_takeover; "
        "server_max_window_bits=12; client_max_window_bits=10"
    )


def test_from_extension_not_deflate():
    with pytest.raises(NotDeflateError):
        PerMessageDeflateConfig.from_extension_for_server_request(Extension("foo"))


def test_from_extension_unknown_and_duplicate():
    with pytest.raises(UnknownParameterError):
        PerMessageDeflateConfig.from_extension_for_server_request(_deflate(("x", None)))
    with pytest.raises(DuplicateParameterError):
        PerMessageDeflateConfig.from_extension_for_server_request(
            _deflate(("server_no_context_takeover", None), ("server_no_context_takeover", None))
        )


def test_from_extension_unexpected_value():
    with pytest.raises(UnexpectedValueError):
        PerMessageDeflateConfig.from_extension_for_server_request(
            _deflate(("client_no_context_takeover", "1"))
        )


def test_server_max_window_bits_requires_value():
    for context in ExtensionParseContext:
        with pytest.raises(MissingValueError):
            PerMessageDeflateConfig.from_extension(
                _deflate(("server_max_window_bits", None)), context
            )


def test_client_max_window_bits_without_value():
    offer = PerMessageDeflateConfig.from_extension_for_server_request(
        _deflate(("client_max_window_bits", None))
    )
    assert offer.client_max_window_bits == 15
    with pytest.raises(MissingValueError):
        PerMessageDeflateConfig.from_extension_for_client_response(
            _deflate(("client_max_window_bits", None))
        )


@pytest.mark.parametrize(
    "value,message",
    [
        ("08", "server_max_window_bits: leading zeros are not allowed '08'"),
        ("16", "server_max_window_bits: 16 is out of range (8-15)"),
        ("7", "server_max_window_bits: 7 is out of range (8-15)"),
        ("abc", "server_max_window_bits: invalid value 'abc'"),
        ("300", "server_max_window_bits: invalid value '300'"),
    ],
)
def test_server_max_window_bits_invalid(value, message):
    with pytest.raises(InvalidValueError) as info:
        PerMessageDeflateConfig.from_extension_for_client_response(
            _deflate(("server_max_window_bits", value))
        )
    assert str(info.value) == message


def test_from_extension_full():
    config = PerMessageDeflateConfig.from_extension_for_client_response(
        _deflate(
            ("server_no_context_takeover", None),
            ("server_max_window_bits", "10"),
            ("client_max_window_bits", "9"),
        )
    )
    assert config == PerMessageDeflateConfig(
        server_max_window_bits=10,
        client_max_window_bits=9,
        server_no_context_takeover=True,
    )


def test_negotiate_window_bits():
    client = PerMessageDeflateConfig(server_max_window_bits=15, client_max_window_bits=15)
    server = PerMessageDeflateConfig().with_client_max_window_bits(10)
    result = PerMessageDeflateConfig.negotiate(client, server)
    assert result.server_max_window_bits == 15
    assert result.client_max_window_bits == 10

    no_offer = PerMessageDeflateConfig.negotiate(PerMessageDeflateConfig(), server)
    assert no_offer.client_max_window_bits is None

    only_client = PerMessageDeflateConfig.negotiate(client, PerMessageDeflateConfig())
    assert only_client.client_max_window_bits == 15


@given(
    server_bits=st.one_of(st.none(), st.integers(8, 15)),
    client_bits=st.one_of(st.none(), st.integers(8, 15)),
    server_no_takeover=st.booleans(),
    client_no_takeover=st.booleans(),
)
def test_config_builder_and_round_trip(
    server_bits, client_bits, server_no_takeover, client_no_takeover
):
    config = PerMessageDeflateConfig()
    if server_bits is not None:
        config = config.with_server_max_window_bits(server_bits)
    if client_bits is not None:
        config = config.with_client_max_window_bits(client_bits)
    if server_no_takeover:
        config = config.with_server_no_context_takeover()
    if client_no_takeover:
        config = config.with_client_no_context_takeover()

    assert config.server_max_window_bits == server_bits
    assert config.client_max_window_bits == client_bits
    assert config.server_no_context_takeover == server_no_takeover
    assert config.client_no_context_takeover == client_no_takeover

    parsed = Extension.parse_strict(config.to_extension().encode())
    assert len(parsed) == 1
    assert PerMessageDeflateConfig.from_extension_for_client_response(parsed[0]) == config


@given(
    client_server_no_takeover=st.booleans(),
    client_client_no_takeover=st.booleans(),
    server_server_no_takeover=st.booleans(),
    server_client_no_takeover=st.booleans(),
)
def test_negotiate_or_logic_for_no_context_takeover(
    client_server_no_takeover,
    client_client_no_takeover,
    server_server_no_takeover,
    server_client_no_takeover,
):
    client_config = PerMessageDeflateConfig()
    server_config = PerMessageDeflateConfig()
    if client_server_no_takeover:
        client_config = client_config.with_server_no_context_takeover()
    if client_client_no_takeover:
        client_config = client_config.with_client_no_context_takeover()
    if server_server_no_takeover:
        server_config = server_config.with_server_no_context_takeover()
    if server_client_no_takeover:
        server_config = server_config.with_client_no_context_takeover()

    negotiated = PerMessageDeflateConfig.negotiate(client_config, server_config)
    assert negotiated.server_no_context_takeover == (
        client_server_no_takeover or server_server_no_takeover
    )
    assert negotiated.client_no_context_takeover == (
        client_client_no_takeover or server_client_no_takeover
    )