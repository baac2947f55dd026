"""Ion text forms for individual scalar values."""

from __future__ import annotations

import base64
import math
from datetime import datetime, timedelta
from decimal import Decimal

from ioninspect.ion.types import IonType, Timestamp, TimestampPrecision

_COMMON_ESCAPES = {
    "\\": "\\\\",
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
    "\0": "\\0",
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\v": "\\v",
}


def _escape(text: str, quote: str) -> str:
    out = []
    for ch in text:
        if ch == quote:
            out.append("\\" + ch)
        elif ch in _COMMON_ESCAPES:
            out.append(_COMMON_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\x{ord(ch):02x}")
        else:
            out.append(ch)
    return "".join(out)


def null_text(ion_type: IonType) -> str:
    if ion_type is IonType.NULL:
        return "null"
    return f"null.{ion_type.value}"


def bool_text(value: bool) -> str:
    return "true" if value else "false"


def int_text(value: int) -> str:
    return str(value)


def float_text(value: float) -> str:
    if math.isnan(value):
        return "nan"
    if math.isinf(value):
        return "+inf" if value > 0 else "-inf"
    text = repr(value)
    if "e" in text:
        mantissa, exponent = text.split("e")
        return f"{mantissa}e{int(exponent)}"
    return f"{text}e0"


def decimal_text(value: Decimal) -> str:
    text = str(value)
    if "E" in text:
        mantissa, exponent = text.split("E")
        return f"{mantissa}d{int(exponent)}"
    if "." not in text:
        return f"{text}."
    return text


def _offset_text(offset_minutes: int | None) -> str:
    if offset_minutes is None:
        return "-00:00"
    if offset_minutes == 0:
        return "Z"
    sign = "+" if offset_minutes > 0 else "-"
    hours, minutes = divmod(abs(offset_minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def _fraction_text(fraction: Decimal) -> str:
    _, digits, exponent = fraction.as_tuple()
    if not isinstance(exponent, int) or exponent >= 0:
        return ""
    places = -exponent
    return "." + "".join(str(d) for d in digits).rjust(places, "0")


def timestamp_text(ts: Timestamp) -> str:
    """Render a timestamp in its local time, as Ion text does."""
    if ts.precision is TimestampPrecision.YEAR:
        return f"{ts.year:04d}T"
    if ts.precision is TimestampPrecision.MONTH:
        return f"{ts.year:04d}-{ts.month:02d}T"
    if ts.precision is TimestampPrecision.DAY:
        return f"{ts.year:04d}-{ts.month:02d}-{ts.day:02d}"

    local = datetime(ts.year, ts.month, ts.day, ts.hour, ts.minute)
    if ts.offset_minutes:
        local += timedelta(minutes=ts.offset_minutes)
    text = (
        f"{local.year:04d}-{local.month:02d}-{local.day:02d}"
        f"T{local.hour:02d}:{local.minute:02d}"
    )
    if ts.precision is TimestampPrecision.SECOND:
        text += f":{ts.second:02d}"
        if ts.fraction is not None:
            text += _fraction_text(ts.fraction)
    return text + _offset_text(ts.offset_minutes)


def symbol_text(text: str) -> str:
    return f"'{_escape(text, chr(39))}'"


def symbol_token(text: str | None, sid: int) -> str:
    """Quoted symbol text, or `$<sid>` when the symbol has no known text."""
    if text is None:
        return f"${sid}"
    return symbol_text(text)


def string_text(value: str) -> str:
    return f'"{_escape(value, chr(34))}"'


def clob_text(value: bytes) -> str:
    chars = []
    for byte in value:
        ch = chr(byte)
        if ch == '"' or ch in _COMMON_ESCAPES:
            chars.append(_escape(ch, '"'))
        elif 0x20 <= byte < 0x7F:
            chars.append(ch)
        else:
            chars.append(f"\\x{byte:02x}")
    return '{{"' + "".join(chars) + '"}}'


def blob_text(value: bytes) -> str:
    return "{{" + base64.b64encode(value).decode("ascii") + "}}"
