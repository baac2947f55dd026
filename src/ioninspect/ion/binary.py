from __future__ import annotations

import struct
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Union

from ioninspect.ion.symbols import (
    IMPORTS_SID,
    ION_SYMBOL_TABLE_SID,
    MAX_ID_SID,
    SYMBOLS_SID,
    SymbolTable,
)
from ioninspect.ion.types import (
    TYPE_CODES,
    ByteRange,
    IonType,
    Timestamp,
    TimestampPrecision,
)

IVM = b"\xe0\x01\x00\xea"

# Deepest container nesting the reader will step into.
MAX_DEPTH = 200

_ANNOTATION_WRAPPER = 0xE
_RESERVED = 0xF
_NULL_LENGTH = 0xF
_VAR_LENGTH = 0xE


class IonDecodeError(Exception):
    """Raised when the binary stream is malformed or inconsistent."""

    def __init__(self, message: str, offset: int | None = None) -> None:
        if offset is not None:
            message = f"{message} (at byte {offset})"
        super().__init__(message)
        self.offset = offset


@dataclass(frozen=True)
class VersionMarker:
    offset: int
    major: int = 1
    minor: int = 0


@dataclass(frozen=True)
class SymbolTableAppend:
    starting_id: int


@dataclass(frozen=True)
class SymbolTableReset:
    pass


@dataclass(frozen=True)
class ValueStart:
    ion_type: IonType
    is_null: bool


SystemEvent = Union[VersionMarker, SymbolTableAppend, SymbolTableReset]
Item = Union[SystemEvent, ValueStart]


@dataclass(frozen=True)
class RawValue:
    """Byte layout of one encoded value.

    `header` covers the type descriptor and any VarUInt length that follows it;
    `body` covers the representation bytes (the children, for containers).
    """

    ion_type: IonType
    is_null: bool
    type_code: int
    length_code: int
    header: ByteRange
    body: ByteRange
    field_id: int | None = None
    field_id_range: ByteRange | None = None
    annotation_ids: tuple[int, ...] = ()
    annotations_range: ByteRange | None = None

    @property
    def complete_range(self) -> ByteRange:
        """Field id, annotations, header and body together."""
        start = self.header.start
        if self.annotations_range is not None:
            start = self.annotations_range.start
        if self.field_id_range is not None:
            start = self.field_id_range.start
        return ByteRange(start, self.body.end)

    @property
    def field_id_offset(self) -> int | None:
        return self.field_id_range.start if self.field_id_range else None

    @property
    def field_id_length(self) -> int | None:
        return len(self.field_id_range) if self.field_id_range else None

    @property
    def annotations_offset(self) -> int | None:
        return self.annotations_range.start if self.annotations_range else None

    @property
    def annotations_length(self) -> int | None:
        return len(self.annotations_range) if self.annotations_range else None

    @property
    def header_offset(self) -> int:
        return self.header.start

    @property
    def header_length(self) -> int:
        return len(self.header)

    @property
    def value_length(self) -> int:
        return len(self.body)


@dataclass(frozen=True)
class _Frame:
    ion_type: IonType
    end: int


def _read_var_uint(data, pos: int, limit: int) -> tuple[int, int]:
    value = 0
    while True:
        if pos >= limit:
            raise IonDecodeError("Unexpected end of data in VarUInt", pos)
        byte = data[pos]
        pos += 1
        value = (value << 7) | (byte & 0x7F)
        if byte & 0x80:
            return value, pos


def _read_var_int(data, pos: int, limit: int) -> tuple[int, bool, int]:
    """Returns (magnitude, negative, next_pos); keeps the sign of negative zero."""
    if pos >= limit:
        raise IonDecodeError("Unexpected end of data in VarInt", pos)
    byte = data[pos]
    pos += 1
    negative = bool(byte & 0x40)
    magnitude = byte & 0x3F
    while not byte & 0x80:
        if pos >= limit:
            raise IonDecodeError("Unexpected end of data in VarInt", pos)
        byte = data[pos]
        pos += 1
        magnitude = (magnitude << 7) | (byte & 0x7F)
    return magnitude, negative, pos


def _decode_int(raw: bytes) -> tuple[int, bool]:
    """Decode a fixed-width signed-magnitude Int into (magnitude, negative)."""
    if not raw:
        return 0, False
    negative = bool(raw[0] & 0x80)
    magnitude = int.from_bytes(bytes([raw[0] & 0x7F]) + raw[1:], "big")
    return magnitude, negative


def _digits(magnitude: int) -> tuple[int, ...]:
    return tuple(int(d) for d in str(magnitude))


class BinaryReader:
    """Pull cursor over a binary Ion 1.0 buffer.

    `next()` returns the next item at the current depth: a `ValueStart` for a
    user value, or one of the system events (`VersionMarker`,
    `SymbolTableAppend`, `SymbolTableReset`), or None once the current
    container (or the stream) is exhausted. Local symbol tables are consumed
    by the reader and surface only as events.
    """

    def __init__(self, data, *, max_depth: int = MAX_DEPTH) -> None:
        self._data = data
        self._size = len(data)
        self._pos = 0
        self._frames: list[_Frame] = []
        self._current: RawValue | None = None
        self._symbol_table = SymbolTable.system()
        self._max_depth = max_depth

    @property
    def depth(self) -> int:
        return len(self._frames)

    @property
    def symbol_table(self) -> SymbolTable:
        return self._symbol_table

    @property
    def current(self) -> RawValue | None:
        return self._current

    @property
    def ion_type(self) -> IonType | None:
        return self._current.ion_type if self._current else None

    @property
    def is_null(self) -> bool:
        return bool(self._current and self._current.is_null)

    # Cursor movement

    def next(self) -> Item | None:
        self._current = None
        limit = self._frames[-1].end if self._frames else self._size
        in_struct = bool(self._frames) and self._frames[-1].ion_type is IonType.STRUCT
        while self._pos < limit:
            pos = self._pos
            if not self._frames and self._data[pos] == 0xE0:
                return self._read_version_marker(pos)
            raw, self._pos = self._parse_value(pos, limit, in_struct)
            if raw is None:
                continue  # NOP padding
            if not self._frames and self._is_local_symbol_table(raw):
                return self._load_local_symbol_table(raw)
            self._current = raw
            return ValueStart(raw.ion_type, raw.is_null)
        return None

    def step_in(self) -> None:
        raw = self._current
        if raw is None or not raw.ion_type.is_container:
            raise ValueError("step_in() requires the reader to be on a container")
        if len(self._frames) >= self._max_depth:
            raise IonDecodeError(
                f"Containers nested deeper than {self._max_depth} levels", raw.header.start
            )
        self._frames.append(_Frame(raw.ion_type, raw.body.end))
        self._pos = raw.body.start
        self._current = None

    def step_out(self) -> None:
        if not self._frames:
            raise ValueError("step_out() called at the top level")
        frame = self._frames.pop()
        self._pos = frame.end
        self._current = None

    # Current value: structure

    @property
    def field_id(self) -> int | None:
        return self._current.field_id if self._current else None

    def field_name(self) -> str | None:
        """Text of the current field name; None when it has no known text."""
        if self._current is None or self._current.field_id is None:
            return None
        return self.symbol_text(self._current.field_id)

    @property
    def annotation_ids(self) -> tuple[int, ...]:
        return self._current.annotation_ids if self._current else ()

    def annotations(self) -> list[str | None]:
        return [self.symbol_text(sid) for sid in self.annotation_ids]

    def symbol_text(self, sid: int) -> str | None:
        """Resolve `sid` against the current symbol table.

        Returns None for ids that exist but carry no text; raises
        `IonDecodeError` for ids outside the table.
        """
        if not self._symbol_table.has_id(sid):
            offset = self._current.header.start if self._current else None
            raise IonDecodeError(f"Could not resolve text for symbol ID ${sid}", offset)
        return self._symbol_table.text_for(sid)

    def _require_current(self) -> RawValue:
        if self._current is None:
            raise ValueError("The reader is not positioned on a value")
        return self._current

    def _slice(self, byte_range: ByteRange | None) -> bytes:
        if byte_range is None:
            return b""
        return bytes(self._data[byte_range.start : byte_range.end])

    def raw_field_id_bytes(self) -> bytes:
        return self._slice(self._require_current().field_id_range)

    def raw_annotations_bytes(self) -> bytes:
        return self._slice(self._require_current().annotations_range)

    def raw_header_bytes(self) -> bytes:
        return self._slice(self._require_current().header)

    def raw_value_bytes(self) -> bytes:
        return self._slice(self._require_current().body)

    # Current value: scalar readers. Each returns None for a typed null.

    def _scalar(self, *expected: IonType) -> RawValue | None:
        raw = self._require_current()
        if raw.ion_type not in expected:
            raise ValueError(f"Current value is {raw.ion_type.value}, not {expected[0].value}")
        return None if raw.is_null else raw

    def read_bool(self) -> bool | None:
        raw = self._scalar(IonType.BOOL)
        return None if raw is None else raw.length_code == 1

    def read_int(self) -> int | None:
        raw = self._scalar(IonType.INT)
        if raw is None:
            return None
        magnitude = int.from_bytes(self._slice(raw.body), "big")
        if raw.type_code == 0x3:
            if magnitude == 0:
                raise IonDecodeError("Negative int with a zero magnitude", raw.header.start)
            return -magnitude
        return magnitude

    def read_float(self) -> float | None:
        raw = self._scalar(IonType.FLOAT)
        if raw is None:
            return None
        body = self._slice(raw.body)
        if not body:
            return 0.0
        fmt = ">f" if len(body) == 4 else ">d"
        return struct.unpack(fmt, body)[0]

    def read_decimal(self) -> Decimal | None:
        raw = self._scalar(IonType.DECIMAL)
        if raw is None:
            return None
        if not raw.body:
            return Decimal(0)
        exp_magnitude, exp_negative, pos = _read_var_int(self._data, raw.body.start, raw.body.end)
        exponent = -exp_magnitude if exp_negative else exp_magnitude
        magnitude, negative = _decode_int(self._slice(ByteRange(pos, raw.body.end)))
        return Decimal((1 if negative else 0, _digits(magnitude), exponent))

    def read_timestamp(self) -> Timestamp | None:
        raw = self._scalar(IonType.TIMESTAMP)
        if raw is None:
            return None
        return self._parse_timestamp(raw)

    def read_symbol_id(self) -> int | None:
        raw = self._scalar(IonType.SYMBOL)
        if raw is None:
            return None
        return int.from_bytes(self._slice(raw.body), "big")

    def read_string(self) -> str | None:
        raw = self._scalar(IonType.STRING)
        if raw is None:
            return None
        try:
            return self._slice(raw.body).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise IonDecodeError(f"Invalid UTF-8 in string: {exc.reason}", raw.body.start) from exc

    def read_clob(self) -> bytes | None:
        raw = self._scalar(IonType.CLOB)
        return None if raw is None else self._slice(raw.body)

    def read_blob(self) -> bytes | None:
        raw = self._scalar(IonType.BLOB)
        return None if raw is None else self._slice(raw.body)

    # Parsing

    def _read_version_marker(self, pos: int) -> VersionMarker:
        marker = bytes(self._data[pos : pos + 4])
        if marker != IVM:
            if len(marker) == 4 and marker[3] == 0xEA:
                raise IonDecodeError(
                    f"Unsupported Ion version {marker[1]}.{marker[2]}", pos
                )
            raise IonDecodeError("Invalid type descriptor 0xe0", pos)
        self._pos = pos + len(IVM)
        self._symbol_table = SymbolTable.system()
        return VersionMarker(pos, marker[1], marker[2])

    def _read_type_descriptor(self, pos: int, limit: int) -> tuple[int, int, int, int]:
        """Returns (type_code, length_code, header_end, body_length)."""
        td = self._data[pos]
        type_code = td >> 4
        length_code = td & 0x0F
        after = pos + 1
        if type_code == _RESERVED:
            raise IonDecodeError(f"Invalid type descriptor 0x{td:02x}", pos)
        if type_code == _ANNOTATION_WRAPPER and length_code in (0, 1, 2, _NULL_LENGTH):
            raise IonDecodeError(f"Invalid annotation wrapper length in 0x{td:02x}", pos)
        if type_code == 0x1:
            if length_code not in (0, 1, _NULL_LENGTH):
                raise IonDecodeError(f"Invalid bool representation 0x{td:02x}", pos)
            return type_code, length_code, after, 0
        if length_code == _NULL_LENGTH:
            return type_code, length_code, after, 0
        if type_code == 0x3 and length_code == 0:
            raise IonDecodeError("Negative int with a zero magnitude", pos)
        if type_code == 0x4 and length_code not in (0, 4, 8):
            raise IonDecodeError(f"Invalid float length {length_code}", pos)
        if length_code == _VAR_LENGTH or (type_code == 0xD and length_code == 1):
            length, after = _read_var_uint(self._data, after, limit)
            if type_code == 0xD and length_code == 1 and length == 0:
                raise IonDecodeError("Sorted struct with no fields", pos)
            return type_code, length_code, after, length
        return type_code, length_code, after, length_code

    def _parse_value(self, pos: int, limit: int, in_struct: bool) -> tuple[RawValue | None, int]:
        """Parse the value (or NOP pad) at `pos`; returns it and the offset after it."""
        field_id = None
        field_id_range = None
        if in_struct:
            field_id, after = _read_var_uint(self._data, pos, limit)
            field_id_range = ByteRange(pos, after)
            pos = after
            if pos >= limit:
                raise IonDecodeError("Struct field has no value", pos)

        td_offset = pos
        type_code, length_code, header_end, body_length = self._read_type_descriptor(pos, limit)
        annotation_ids: tuple[int, ...] = ()
        annotations_range = None

        if type_code == _ANNOTATION_WRAPPER:
            wrapper_end = header_end + body_length
            if wrapper_end > limit:
                raise IonDecodeError("Annotation wrapper extends past its container", td_offset)
            annot_length, p = _read_var_uint(self._data, header_end, wrapper_end)
            annot_end = p + annot_length
            if annot_length == 0 or annot_end >= wrapper_end:
                raise IonDecodeError("Invalid annotation wrapper", td_offset)
            ids = []
            while p < annot_end:
                sid, p = _read_var_uint(self._data, p, annot_end)
                ids.append(sid)
            annotation_ids = tuple(ids)
            annotations_range = ByteRange(td_offset, annot_end)

            td_offset = annot_end
            type_code, length_code, header_end, body_length = self._read_type_descriptor(
                td_offset, wrapper_end
            )
            if type_code == _ANNOTATION_WRAPPER:
                raise IonDecodeError("Annotation wrapper may not wrap another wrapper", td_offset)
            if type_code == 0x0 and length_code != _NULL_LENGTH:
                raise IonDecodeError("Annotation wrapper may not wrap NOP padding", td_offset)
            if header_end + body_length != wrapper_end:
                raise IonDecodeError(
                    "Annotation wrapper length does not match its value", annotations_range.start
                )

        body_end = header_end + body_length
        if body_end > limit:
            raise IonDecodeError("Value extends past the end of its container", td_offset)
        if type_code == 0x0 and length_code != _NULL_LENGTH:
            return None, body_end

        raw = RawValue(
            ion_type=TYPE_CODES[type_code],
            is_null=length_code == _NULL_LENGTH,
            type_code=type_code,
            length_code=length_code,
            header=ByteRange(td_offset, header_end),
            body=ByteRange(header_end, body_end),
            field_id=field_id,
            field_id_range=field_id_range,
            annotation_ids=annotation_ids,
            annotations_range=annotations_range,
        )
        return raw, body_end

    def _children(self, raw: RawValue) -> Iterator[RawValue]:
        pos = raw.body.start
        in_struct = raw.ion_type is IonType.STRUCT
        while pos < raw.body.end:
            child, pos = self._parse_value(pos, raw.body.end, in_struct)
            if child is not None:
                yield child

    def _parse_timestamp(self, raw: RawValue) -> Timestamp:
        data = self._data
        end = raw.body.end
        off_magnitude, off_negative, pos = _read_var_int(data, raw.body.start, end)
        if off_negative and off_magnitude == 0:
            offset_minutes = None
        else:
            offset_minutes = -off_magnitude if off_negative else off_magnitude
        year, pos = _read_var_uint(data, pos, end)
        fields = {"year": year}
        precision = TimestampPrecision.YEAR
        if pos < end:
            fields["month"], pos = _read_var_uint(data, pos, end)
            precision = TimestampPrecision.MONTH
        if pos < end:
            fields["day"], pos = _read_var_uint(data, pos, end)
            precision = TimestampPrecision.DAY
        if pos < end:
            fields["hour"], pos = _read_var_uint(data, pos, end)
            fields["minute"], pos = _read_var_uint(data, pos, end)
            precision = TimestampPrecision.MINUTE
        if pos < end:
            fields["second"], pos = _read_var_uint(data, pos, end)
            precision = TimestampPrecision.SECOND
        if pos < end:
            exp_magnitude, exp_negative, pos = _read_var_int(data, pos, end)
            exponent = -exp_magnitude if exp_negative else exp_magnitude
            magnitude, negative = _decode_int(self._slice(ByteRange(pos, end)))
            fraction = Decimal((0, _digits(magnitude), exponent))
            if (negative and magnitude) or fraction >= 1:
                raise IonDecodeError("Timestamp fraction out of range", raw.header.start)
            fields["fraction"] = fraction

        ts = Timestamp(precision=precision, offset_minutes=offset_minutes, **fields)
        try:
            utc = datetime(ts.year, ts.month, ts.day, ts.hour, ts.minute, ts.second)
        except ValueError as exc:
            raise IonDecodeError(f"Invalid timestamp: {exc}", raw.header.start) from exc
        # Minute precision and finer are shown in local time
        if "hour" in fields and offset_minutes:
            try:
                utc + timedelta(minutes=offset_minutes)
            except OverflowError as exc:
                raise IonDecodeError(
                    "Timestamp local time is outside years 1 to 9999", raw.header.start
                ) from exc
        return ts

    # Local symbol tables

    def _is_local_symbol_table(self, raw: RawValue) -> bool:
        return (
            raw.ion_type is IonType.STRUCT
            and not raw.is_null
            and bool(raw.annotation_ids)
            and raw.annotation_ids[0] == ION_SYMBOL_TABLE_SID
        )

    def _uint_value(self, raw: RawValue) -> int:
        return int.from_bytes(self._slice(raw.body), "big")

    def _text_or_none(self, raw: RawValue) -> str | None:
        if raw.ion_type is not IonType.STRING or raw.is_null:
            return None
        try:
            return self._slice(raw.body).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise IonDecodeError(f"Invalid UTF-8 in symbol text: {exc.reason}", raw.body.start) from exc

    def _imported_slots(self, imports: RawValue) -> list[str | None]:
        # Shared tables are not available, so every imported symbol has unknown text.
        slots: list[str | None] = []
        for entry in self._children(imports):
            if entry.ion_type is not IonType.STRUCT or entry.is_null:
                continue
            max_id = None
            for field in self._children(entry):
                if field.field_id == MAX_ID_SID and field.ion_type is IonType.INT and not field.is_null:
                    if field.type_code == 0x3:
                        raise IonDecodeError("Negative max_id in import", field.header.start)
                    max_id = self._uint_value(field)
            if max_id is None:
                raise IonDecodeError("Shared symbol table import without max_id", entry.header.start)
            slots.extend([None] * max_id)
        return slots

    def _load_local_symbol_table(self, raw: RawValue) -> SystemEvent:
        append = False
        imported: list[str | None] = []
        symbols: list[str | None] = []
        for field in self._children(raw):
            if field.is_null:
                continue
            if field.field_id == IMPORTS_SID:
                if field.ion_type is IonType.SYMBOL:
                    append = self._uint_value(field) == ION_SYMBOL_TABLE_SID
                elif field.ion_type is IonType.LIST:
                    imported = self._imported_slots(field)
            elif field.field_id == SYMBOLS_SID and field.ion_type is IonType.LIST:
                symbols = [self._text_or_none(child) for child in self._children(field)]

        if append:
            return SymbolTableAppend(self._symbol_table.append(symbols))
        self._symbol_table = SymbolTable([*imported, *symbols])
        return SymbolTableReset()
