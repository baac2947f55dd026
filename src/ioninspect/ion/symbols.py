from __future__ import annotations

from collections.abc import Iterable

# Ion 1.0 system symbols, ids 1..9. Id 0 is reserved and never has text.
SYSTEM_SYMBOLS: tuple[str, ...] = (
    "$ion",
    "$ion_1_0",
    "$ion_symbol_table",
    "name",
    "version",
    "imports",
    "symbols",
    "max_id",
    "$ion_shared_symbol_table",
)

SYSTEM_SYMBOL_TABLE_LENGTH = len(SYSTEM_SYMBOLS) + 1

ION_SYMBOL_TABLE_SID = 3
IMPORTS_SID = 6
SYMBOLS_SID = 7
MAX_ID_SID = 8


class SymbolTable:
    """Symbol id -> text mapping for the segment currently being read.

    Slots with unknown text (id 0, undeclared shared imports, non-string
    `symbols` entries) hold None.
    """

    def __init__(self, local_symbols: Iterable[str | None] = ()) -> None:
        self._symbols: list[str | None] = [None, *SYSTEM_SYMBOLS]
        self._symbols.extend(local_symbols)

    @classmethod
    def system(cls) -> SymbolTable:
        return cls()

    def __len__(self) -> int:
        return len(self._symbols)

    def has_id(self, sid: int) -> bool:
        return 0 <= sid < len(self._symbols)

    def text_for(self, sid: int) -> str | None:
        """Text for `sid`, or None if the id is unknown or has no text."""
        if not self.has_id(sid):
            return None
        return self._symbols[sid]

    def symbols_tail(self, start: int) -> list[str | None]:
        return self._symbols[start:]

    def append(self, symbols: Iterable[str | None]) -> int:
        """Add symbols to the end of the table; returns the first new id."""
        starting_id = len(self._symbols)
        self._symbols.extend(symbols)
        return starting_id

    def copy(self) -> SymbolTable:
        table = SymbolTable()
        table._symbols = list(self._symbols)
        return table
