from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class IonType(Enum):
    NULL = "null"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    DECIMAL = "decimal"
    TIMESTAMP = "timestamp"
    SYMBOL = "symbol"
    STRING = "string"
    CLOB = "clob"
    BLOB = "blob"
    LIST = "list"
    SEXP = "sexp"
    STRUCT = "struct"

    @property
    def is_container(self) -> bool:
        return self in (IonType.LIST, IonType.SEXP, IonType.STRUCT)


# Binary type codes (high nibble of the type descriptor) for value types.
TYPE_CODES: dict[int, IonType] = {
    0x0: IonType.NULL,
    0x1: IonType.BOOL,
    0x2: IonType.INT,
    0x3: IonType.INT,
    0x4: IonType.FLOAT,
    0x5: IonType.DECIMAL,
    0x6: IonType.TIMESTAMP,
    0x7: IonType.SYMBOL,
    0x8: IonType.STRING,
    0x9: IonType.CLOB,
    0xA: IonType.BLOB,
    0xB: IonType.LIST,
    0xC: IonType.SEXP,
    0xD: IonType.STRUCT,
}

OPENING_DELIMITERS = {IonType.LIST: "[", IonType.SEXP: "(", IonType.STRUCT: "{"}
CLOSING_DELIMITERS = {IonType.LIST: "]", IonType.SEXP: ")", IonType.STRUCT: "}"}


class TimestampPrecision(Enum):
    YEAR = 1
    MONTH = 2
    DAY = 3
    MINUTE = 4
    SECOND = 5


@dataclass(frozen=True)
class ByteRange:
    """Half-open range of absolute offsets into the input buffer."""

    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class Timestamp:
    """A decoded timestamp.

    Fields hold UTC components as stored in the binary encoding.
    `offset_minutes` is None for the unknown local offset (-00:00).
    `fraction` is the fractional second as a Decimal in [0, 1), or None.
    """

    precision: TimestampPrecision
    year: int
    month: int = 1
    day: int = 1
    hour: int = 0
    minute: int = 0
    second: int = 0
    fraction: Decimal | None = None
    offset_minutes: int | None = None
