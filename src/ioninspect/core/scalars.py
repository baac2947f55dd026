from __future__ import annotations

from collections.abc import Callable

from rich.text import Text

from ioninspect.ion.binary import BinaryReader
from ioninspect.ion.text import (
    blob_text,
    bool_text,
    clob_text,
    decimal_text,
    float_text,
    int_text,
    null_text,
    string_text,
    symbol_token,
    timestamp_text,
)
from ioninspect.ion.types import OPENING_DELIMITERS, IonType
from ioninspect.ui.palette import PALETTE, Palette


def _symbol(reader: BinaryReader) -> tuple[str, str | None]:
    sid = reader.read_symbol_id()
    text = reader.symbol_text(sid)
    return symbol_token(text, sid), f" // ${sid}"


_FORMATTERS: dict[IonType, Callable[[BinaryReader], tuple[str, str | None]]] = {
    IonType.BOOL: lambda r: (bool_text(r.read_bool()), None),
    IonType.INT: lambda r: (int_text(r.read_int()), None),
    IonType.FLOAT: lambda r: (float_text(r.read_float()), None),
    IonType.DECIMAL: lambda r: (decimal_text(r.read_decimal()), None),
    IonType.TIMESTAMP: lambda r: (timestamp_text(r.read_timestamp()), None),
    IonType.SYMBOL: _symbol,
    IonType.STRING: lambda r: (string_text(r.read_string()), None),
    IonType.CLOB: lambda r: (clob_text(r.read_clob()), None),
    IonType.BLOB: lambda r: (blob_text(r.read_blob()), None),
}


def format_scalar(reader: BinaryReader) -> tuple[str, str | None]:
    """Text form of the current scalar (or typed null) and an optional comment."""
    ion_type = reader.ion_type
    if ion_type is None:
        raise ValueError("format_scalar() called when the reader was exhausted")
    if reader.is_null:
        return null_text(ion_type), None
    return _FORMATTERS[ion_type](reader)


def format_value(reader: BinaryReader, *, palette: Palette = PALETTE) -> Text:
    """Text column for the current value.

    Containers get their opening delimiter. Scalars get their text form, a
    trailing comma when nested, and any comment dimmed.
    """
    ion_type = reader.ion_type
    if ion_type is not None and ion_type.is_container and not reader.is_null:
        return Text(OPENING_DELIMITERS[ion_type], style=palette.value_text)
    value_text, comment = format_scalar(reader)
    text = Text(value_text, style=palette.value_text)
    # Ion text accepts a trailing comma, so the last sibling needs no special case
    if reader.depth > 0:
        text.append(",")
    if comment:
        text.append(comment, style=palette.comment)
    return text


def format_field_name(reader: BinaryReader, *, palette: Palette = PALETTE) -> Text:
    field_id = reader.field_id
    if field_id is None:
        raise ValueError("format_field_name() requires a struct field")
    text = Text(symbol_token(reader.field_name(), field_id) + ":", style=palette.value_text)
    text.append(f" // ${field_id}:", style=palette.comment)
    return text


def format_annotations(reader: BinaryReader, *, palette: Palette = PALETTE) -> Text:
    ids = reader.annotation_ids
    tokens = [symbol_token(text, sid) for text, sid in zip(reader.annotations(), ids)]
    text = Text("::".join(tokens) + "::", style=palette.value_text)
    text.append(" // $" + "::$".join(str(sid) for sid in ids) + "::", style=palette.comment)
    return text
