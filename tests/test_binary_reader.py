from __future__ import annotations

from decimal import Decimal

import pytest

from ioninspect.ion.binary import (
    IVM,
    BinaryReader,
    IonDecodeError,
    SymbolTableAppend,
    SymbolTableReset,
    ValueStart,
    VersionMarker,
)
from ioninspect.ion.types import ByteRange, IonType, TimestampPrecision

# $ion_symbol_table::{symbols:["foo"]}
LST_FOO = bytes.fromhex("e9 81 83 d6 87 b4 83 66 6f 6f")
# $ion_symbol_table::{imports:$ion_symbol_table, symbols:["bar"]}
LST_APPEND_BAR = bytes.fromhex("ec 81 83 d9 86 71 03 87 b4 83 62 61 72")


def reader_after_ivm(body_hex: str) -> BinaryReader:
    reader = BinaryReader(IVM + bytes.fromhex(body_hex))
    assert isinstance(reader.next(), VersionMarker)
    return reader


def test_version_marker_then_int() -> None:
    reader = BinaryReader(IVM + b"\x21\x07")
    event = reader.next()
    assert event == VersionMarker(offset=0, major=1, minor=0)
    assert reader.next() == ValueStart(IonType.INT, False)
    raw = reader.current
    assert raw.header == ByteRange(4, 5)
    assert raw.body == ByteRange(5, 6)
    assert raw.header_length + raw.value_length == 2
    assert reader.read_int() == 7
    assert reader.next() is None


def test_list_step_in_and_out() -> None:
    reader = reader_after_ivm("b4 21 01 21 02 21 03")
    assert reader.next() == ValueStart(IonType.LIST, False)
    assert reader.current.complete_range == ByteRange(4, 9)
    reader.step_in()
    assert reader.depth == 1
    values = []
    while reader.next() is not None:
        values.append(reader.read_int())
    assert values == [1, 2]
    reader.step_out()
    assert reader.depth == 0
    assert reader.next() == ValueStart(IonType.INT, False)
    assert reader.read_int() == 3


def test_step_out_skips_unread_children() -> None:
    reader = reader_after_ivm("b4 21 01 21 02 21 03")
    reader.next()
    reader.step_in()
    reader.next()
    reader.step_out()
    reader.next()
    assert reader.read_int() == 3


def test_struct_field_ranges() -> None:
    reader = reader_after_ivm("d3 84 81 78")
    assert reader.next() == ValueStart(IonType.STRUCT, False)
    reader.step_in()
    assert reader.next() == ValueStart(IonType.STRING, False)
    raw = reader.current
    assert raw.field_id == 4
    assert raw.field_id_range == ByteRange(5, 6)
    assert raw.header == ByteRange(6, 7)
    assert raw.complete_range == ByteRange(5, 8)
    assert reader.field_name() == "name"
    assert reader.read_string() == "x"
    assert reader.raw_field_id_bytes() == b"\x84"


def test_annotation_wrapper_ranges() -> None:
    reader = reader_after_ivm("e4 81 84 21 07")
    reader.next()
    raw = reader.current
    assert raw.annotation_ids == (4,)
    assert raw.annotations_range == ByteRange(4, 7)
    assert raw.header == ByteRange(7, 8)
    assert raw.complete_range == ByteRange(4, 9)
    assert reader.annotations() == ["name"]
    assert reader.raw_annotations_bytes() == bytes.fromhex("e4 81 84")
    assert reader.read_int() == 7


def test_field_id_annotations_and_header_are_contiguous() -> None:
    # {name: name::7}
    reader = reader_after_ivm("d6 84 e4 81 84 21 07")
    reader.next()
    reader.step_in()
    reader.next()
    raw = reader.current
    assert raw.field_id_range.end == raw.annotations_range.start
    assert raw.annotations_range.end == raw.header.start
    assert raw.header.end == raw.body.start


def test_nop_padding_is_skipped() -> None:
    reader = reader_after_ivm("00 01 ff 21 07")
    assert reader.next() == ValueStart(IonType.INT, False)
    assert reader.current.header_offset == 7


def test_nop_padding_with_field_id_in_struct() -> None:
    reader = reader_after_ivm("d5 84 00 85 21 01")
    reader.next()
    reader.step_in()
    assert reader.next() == ValueStart(IonType.INT, False)
    assert reader.field_id == 5


def test_local_symbol_table_reset_and_append() -> None:
    reader = BinaryReader(IVM + LST_FOO + b"\x71\x0a" + LST_APPEND_BAR + b"\x71\x0b")
    assert isinstance(reader.next(), VersionMarker)
    assert reader.next() == SymbolTableReset()
    assert len(reader.symbol_table) == 11
    assert reader.next() == ValueStart(IonType.SYMBOL, False)
    assert reader.symbol_text(reader.read_symbol_id()) == "foo"
    assert reader.next() == SymbolTableAppend(starting_id=11)
    assert reader.next() == ValueStart(IonType.SYMBOL, False)
    assert reader.symbol_text(reader.read_symbol_id()) == "bar"


def test_ivm_resets_symbol_table() -> None:
    reader = BinaryReader(IVM + LST_FOO + IVM)
    reader.next()
    reader.next()
    assert len(reader.symbol_table) == 11
    assert isinstance(reader.next(), VersionMarker)
    assert len(reader.symbol_table) == 10


def test_shared_import_reserves_unknown_slots() -> None:
    # $ion_symbol_table::{imports:[{max_id:2}], symbols:["x"]}
    lst = bytes.fromhex("ed 81 83 da 86 b4 d3 88 21 02 87 b2 81 78")
    reader = BinaryReader(IVM + lst + bytes.fromhex("71 0c"))
    reader.next()
    assert reader.next() == SymbolTableReset()
    assert reader.symbol_table.text_for(10) is None
    assert reader.symbol_table.text_for(11) is None
    reader.next()
    assert reader.symbol_text(reader.read_symbol_id()) == "x"


def test_unresolvable_symbol_id_is_fatal() -> None:
    reader = reader_after_ivm("71 0b")
    reader.next()
    sid = reader.read_symbol_id()
    with pytest.raises(IonDecodeError, match=r"\$11"):
        reader.symbol_text(sid)


@pytest.mark.parametrize(
    "body_hex, expected",
    [
        ("10", False),
        ("11", True),
        ("1f", None),
    ],
)
def test_read_bool(body_hex: str, expected) -> None:
    reader = reader_after_ivm(body_hex)
    reader.next()
    assert reader.read_bool() is expected


@pytest.mark.parametrize(
    "body_hex, expected",
    [
        ("20", 0),
        ("31 05", -5),
        ("22 01 00", 256),
        ("2f", None),
    ],
)
def test_read_int(body_hex: str, expected) -> None:
    reader = reader_after_ivm(body_hex)
    reader.next()
    assert reader.read_int() == expected


def test_read_float() -> None:
    reader = reader_after_ivm("40 44 3f c0 00 00 48 3f f8 00 00 00 00 00 00")
    reader.next()
    assert reader.read_float() == 0.0
    reader.next()
    assert reader.read_float() == 1.5
    reader.next()
    assert reader.read_float() == 1.5


def test_read_decimal() -> None:
    reader = reader_after_ivm("50 52 c1 0f 52 82 01")
    reader.next()
    assert reader.read_decimal() == Decimal(0)
    reader.next()
    assert reader.read_decimal() == Decimal("1.5")
    reader.next()
    assert reader.read_decimal() == Decimal("1E+2")


def test_read_timestamp_with_fraction() -> None:
    reader = reader_after_ivm("6a 80 0f d7 82 97 8c 8e 9e c3 7b")
    reader.next()
    ts = reader.read_timestamp()
    assert ts.precision is TimestampPrecision.SECOND
    assert (ts.year, ts.month, ts.day, ts.hour, ts.minute, ts.second) == (2007, 2, 23, 12, 14, 30)
    assert ts.fraction == Decimal("0.123")
    assert ts.offset_minutes == 0


def test_read_timestamp_unknown_offset() -> None:
    reader = reader_after_ivm("63 c0 0f d7")
    reader.next()
    ts = reader.read_timestamp()
    assert ts.precision is TimestampPrecision.YEAR
    assert ts.offset_minutes is None


@pytest.mark.parametrize(
    "body_hex",
    [
        # 9999-12-31T23:59Z shown at +01:00
        "67 bc 4e 8f 8c 9f 97 bb",
        # 0001-01-01T00:00Z shown at -01:00
        "66 fc 81 81 81 80 80",
    ],
)
def test_timestamp_local_time_out_of_range(body_hex: str) -> None:
    reader = reader_after_ivm(body_hex)
    reader.next()
    with pytest.raises(IonDecodeError, match="outside years 1 to 9999") as info:
        reader.read_timestamp()
    assert info.value.offset == 4


def test_timestamp_offset_inside_range() -> None:
    # 9999-12-31T23:59Z shown at -01:00
    reader = reader_after_ivm("67 fc 4e 8f 8c 9f 97 bb")
    reader.next()
    ts = reader.read_timestamp()
    assert (ts.year, ts.hour, ts.minute, ts.offset_minutes) == (9999, 23, 59, -60)


def test_read_lobs() -> None:
    reader = reader_after_ivm("92 68 69 a3 01 02 03")
    reader.next()
    assert reader.read_clob() == b"hi"
    reader.next()
    assert reader.read_blob() == b"\x01\x02\x03"


def test_null_container() -> None:
    reader = reader_after_ivm("bf")
    assert reader.next() == ValueStart(IonType.LIST, True)
    assert reader.is_null


def test_sorted_struct_uses_length_field() -> None:
    reader = reader_after_ivm("d1 82 84 20")
    reader.next()
    assert reader.current.header == ByteRange(4, 6)
    assert reader.current.body == ByteRange(6, 8)


@pytest.mark.parametrize(
    "body_hex, message",
    [
        ("f0", "Invalid type descriptor"),
        ("22 01", "past the end"),
        ("30", "zero magnitude"),
        ("43 00 00 00", "Invalid float length"),
        ("12", "Invalid bool"),
        ("b2 22 01", "past the end"),
        ("e3 81 84 e0", "Invalid annotation wrapper"),
    ],
)
def test_malformed_values(body_hex: str, message: str) -> None:
    reader = reader_after_ivm(body_hex)
    with pytest.raises(IonDecodeError, match=message):
        reader.next()
        if reader.current is not None and reader.current.ion_type.is_container:
            reader.step_in()
            reader.next()


def test_unsupported_version_marker() -> None:
    reader = BinaryReader(IVM + bytes.fromhex("e0 02 00 ea"))
    reader.next()
    with pytest.raises(IonDecodeError, match="Unsupported Ion version 2.0"):
        reader.next()


def test_decode_error_carries_offset() -> None:
    reader = reader_after_ivm("21 01 f0")
    reader.next()
    with pytest.raises(IonDecodeError) as info:
        reader.next()
    assert info.value.offset == 6


def test_depth_guard() -> None:
    reader = BinaryReader(IVM + bytes.fromhex("b2 b1 b0"), max_depth=2)
    reader.next()
    reader.next()
    reader.step_in()
    reader.next()
    reader.step_in()
    reader.next()
    with pytest.raises(IonDecodeError, match="nested deeper"):
        reader.step_in()


def test_scalar_hex_matches_source_bytes() -> None:
    data = IVM + bytes.fromhex("21 07 85 68 65 6c 6c 6f 48 3f f8 00 00 00 00 00 00 e4 81 84 21 07")
    reader = BinaryReader(data)
    reader.next()
    while reader.next() is not None:
        raw = reader.current
        start = raw.header_offset
        expected = data[start : start + raw.header_length + raw.value_length]
        assert reader.raw_header_bytes() + reader.raw_value_bytes() == expected
