import pytest
from hypothesis import given
from hypothesis import strategies as st

from sansws.opcode import Opcode

VALID_OPCODES = [0x0, 0x1, 0x2, 0x8, 0x9, 0xA]
INVALID_OPCODES = [0x3, 0x4, 0x5, 0x6, 0x7, 0xB, 0xC, 0xD, 0xE, 0xF]
CONTROL_OPCODES = [0x8, 0x9, 0xA]
DATA_OPCODES = [0x0, 0x1, 0x2]

EXPECTED = {
    0x0: Opcode.CONTINUATION,
    0x1: Opcode.TEXT,
    0x2: Opcode.BINARY,
    0x8: Opcode.CLOSE,
    0x9: Opcode.PING,
    0xA: Opcode.PONG,
}


@pytest.mark.parametrize("value", VALID_OPCODES)
def test_from_int_valid_opcodes(value):
    assert Opcode.from_int(value) is EXPECTED[value]


@pytest.mark.parametrize("value", INVALID_OPCODES)
def test_from_int_invalid(value):
    assert Opcode.from_int(value) is None


@given(st.integers(min_value=16, max_value=255))
def test_from_int_out_of_range(value):
    assert Opcode.from_int(value) is None


@pytest.mark.parametrize("value", VALID_OPCODES)
def test_roundtrip(value):
    assert int(Opcode.from_int(value)) == value


@pytest.mark.parametrize(
    "op, expected",
    [
        (Opcode.CONTINUATION, 0x0),
        (Opcode.TEXT, 0x1),
        (Opcode.BINARY, 0x2),
        (Opcode.CLOSE, 0x8),
        (Opcode.PING, 0x9),
        (Opcode.PONG, 0xA),
    ],
)
def test_int_values(op, expected):
    assert int(op) == expected


@pytest.mark.parametrize("value", CONTROL_OPCODES)
def test_is_control_true(value):
    op = Opcode.from_int(value)
    assert op.is_control()
    assert not op.is_data()


@pytest.mark.parametrize("value", DATA_OPCODES)
def test_is_data_true(value):
    op = Opcode.from_int(value)
    assert op.is_data()
    assert not op.is_control()


@pytest.mark.parametrize("value", VALID_OPCODES)
def test_control_data_exclusive(value):
    op = Opcode.from_int(value)
    assert op.is_control() != op.is_data()


@pytest.mark.parametrize("value", range(0x3, 0x8))
def test_reserved_data_opcodes(value):
    assert Opcode.from_int(value) is None


@pytest.mark.parametrize("value", range(0xB, 0x10))
def test_reserved_control_opcodes(value):
    assert Opcode.from_int(value) is None


@pytest.mark.parametrize(
    "op, expected",
    [
        (Opcode.CONTINUATION, "Continuation"),
        (Opcode.TEXT, "Text"),
        (Opcode.BINARY, "Binary"),
        (Opcode.CLOSE, "Close"),
        (Opcode.PING, "Ping"),
        (Opcode.PONG, "Pong"),
    ],
)
def test_display(op, expected):
    assert str(op) == expected
    assert f"{op}" == expected


def test_opcodes_usable_as_dict_keys():
    table = {Opcode.from_int(value): value for value in VALID_OPCODES}
    assert len(table) == len(VALID_OPCODES)
    for value in VALID_OPCODES:
        assert table[Opcode.from_int(value)] == value