"""Comment rows for version markers and symbol table changes."""

from __future__ import annotations

from rich.text import Text

from ioninspect.core.table import NO_HEX, TableWriter
from ioninspect.ion.binary import (
    SymbolTableAppend,
    SymbolTableReset,
    SystemEvent,
    VersionMarker,
)
from ioninspect.ion.symbols import SYSTEM_SYMBOL_TABLE_LENGTH, SymbolTable
from ioninspect.ion.text import string_text

IVM_HEX = "e0 01 00 ea"
# System events are always at the top level
SYSTEM_EVENT_INDENTATION = ""


def _symbol_list(symbol_table: SymbolTable, start: int) -> str:
    items = []
    for sid, text in enumerate(symbol_table.symbols_tail(start), start=start):
        items.append(string_text(text) if text is not None else f"${sid}")
    return "[" + ", ".join(items) + "]"


def describe_event(event: SystemEvent, symbol_table: SymbolTable) -> str:
    if isinstance(event, VersionMarker):
        return f"// Ion {event.major}.{event.minor} Version Marker"
    if isinstance(event, SymbolTableAppend):
        return "// Local symbol table append: " + _symbol_list(symbol_table, event.starting_id)
    if isinstance(event, SymbolTableReset):
        if len(symbol_table) > SYSTEM_SYMBOL_TABLE_LENGTH:
            return "// New local symbol table: " + _symbol_list(
                symbol_table, SYSTEM_SYMBOL_TABLE_LENGTH
            )
        return "// Using system symbol table"
    raise TypeError(f"Unknown system event: {event!r}")


def render_system_event(event: SystemEvent, symbol_table: SymbolTable, table: TableWriter) -> None:
    """Write one dimmed comment row for `event`; output errors propagate."""
    hex_column = IVM_HEX if isinstance(event, VersionMarker) else NO_HEX
    text = Text(describe_event(event, symbol_table), style=table.palette.comment)
    table.emit_row(None, None, SYSTEM_EVENT_INDENTATION, hex_column, text)
