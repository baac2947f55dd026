from __future__ import annotations

import sys
from dataclasses import dataclass

from ioninspect.core.io import InputBuffer
from ioninspect.core.scalars import format_annotations, format_field_name, format_value
from ioninspect.core.system_events import render_system_event
from ioninspect.core.table import TableWriter, join_hex, to_hex
from ioninspect.ion.binary import (
    BinaryReader,
    RawValue,
    SymbolTableAppend,
    SymbolTableReset,
    VersionMarker,
)
from ioninspect.ion.types import CLOSING_DELIMITERS

LEVEL_INDENTATION = "  "  # 2 spaces per level
UNBOUNDED = sys.maxsize

LIMIT_STEPPING_OUT = "// --limit-bytes reached, stepping out."
LIMIT_ENDING = "// --limit-bytes reached, ending."


@dataclass(frozen=True)
class InspectionWindow:
    """Byte window of user data to display.

    Values wholly before `bytes_to_skip` are summarized; display stops once
    `limit_bytes` bytes past the skip point have been processed. A
    `limit_bytes` of 0 means no limit.
    """

    bytes_to_skip: int = 0
    limit_bytes: int = 0

    def __post_init__(self) -> None:
        if self.bytes_to_skip < 0:
            raise ValueError("bytes_to_skip must be >= 0")
        if self.limit_bytes < 0:
            raise ValueError("limit_bytes must be >= 0")
        if self.limit_bytes == 0:
            object.__setattr__(self, "limit_bytes", UNBOUNDED)


@dataclass
class _Level:
    depth: int
    indentation: str
    # Bytes of skipped values not yet reported in a comment
    bytes_skipped: int = 0


class IonInspector:
    def __init__(self, reader: BinaryReader, table: TableWriter, window: InspectionWindow) -> None:
        self._reader = reader
        self._table = table
        self._window = window

    def inspect(self) -> None:
        """Display every value in the stream, recursing into containers."""
        self.inspect_level("")

    def inspect_level(self, parent_indentation: str) -> None:
        reader = self._reader
        depth = reader.depth
        # The implicit top level adds no indentation.
        indentation = parent_indentation + LEVEL_INDENTATION if depth > 0 else parent_indentation
        level = _Level(depth, indentation)

        while True:
            item = reader.next()
            if item is None:
                break
            if isinstance(item, (VersionMarker, SymbolTableAppend, SymbolTableReset)):
                render_system_event(item, reader.symbol_table, self._table)
                continue

            raw = reader.current
            complete = raw.complete_range
            if complete.end <= self._window.bytes_to_skip:
                level.bytes_skipped += len(complete)
                continue

            bytes_processed = max(0, complete.start - self._window.bytes_to_skip)
            if bytes_processed >= self._window.limit_bytes:
                message = LIMIT_STEPPING_OUT if level.depth > 0 else LIMIT_ENDING
                self._table.emit_comment(level.indentation, message)
                return

            if level.bytes_skipped > 0:
                self._table.emit_comment(
                    level.indentation,
                    f"// Skipped {level.bytes_skipped} bytes of user-level data",
                )
                level.bytes_skipped = 0

            self._write_field_if_present(level, raw)
            self._write_annotations_if_present(level, raw)
            self._write_value(level, raw)

            if raw.ion_type.is_container and not raw.is_null:
                reader.step_in()
                self.inspect_level(level.indentation)
                reader.step_out()
                closing = CLOSING_DELIMITERS[raw.ion_type]
                self._table.emit_row(None, None, level.indentation, "", closing)

    def _write_field_if_present(self, level: _Level, raw: RawValue) -> None:
        if raw.field_id is None:
            return
        self._table.emit_row(
            raw.field_id_offset,
            raw.field_id_length,
            level.indentation,
            to_hex(self._reader.raw_field_id_bytes()),
            format_field_name(self._reader, palette=self._table.palette),
        )

    def _write_annotations_if_present(self, level: _Level, raw: RawValue) -> None:
        if not raw.annotation_ids:
            return
        self._table.emit_row(
            raw.annotations_offset,
            raw.annotations_length,
            level.indentation,
            to_hex(self._reader.raw_annotations_bytes()),
            format_annotations(self._reader, palette=self._table.palette),
        )

    def _write_value(self, level: _Level, raw: RawValue) -> None:
        text = format_value(self._reader, palette=self._table.palette)
        hex_column = to_hex(self._reader.raw_header_bytes())
        # Container bodies are written by the nested inspect_level() call.
        if not raw.ion_type.is_container:
            hex_column = join_hex(hex_column, to_hex(self._reader.raw_value_bytes()))
        self._table.emit_row(
            raw.header_offset,
            raw.header_length + raw.value_length,
            level.indentation,
            hex_column,
            text,
        )


def inspect(reader: BinaryReader, table: TableWriter, window: InspectionWindow) -> None:
    IonInspector(reader, table, window).inspect()


def inspect_input(source: InputBuffer, table: TableWriter, window: InspectionWindow) -> None:
    """Check the version marker, write the table header, then inspect the stream."""
    source.require_binary_ion()
    table.write_header()
    inspect(BinaryReader(source.data), table, window)
