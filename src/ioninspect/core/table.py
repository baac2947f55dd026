from __future__ import annotations

from rich.console import Console
from rich.text import Text

from ioninspect.ui.palette import PALETTE, Palette

COLUMN_DELIMITER = " | "
OFFSET_COLUMN_WIDTH = 9
LENGTH_COLUMN_WIDTH = 9
CHARS_PER_HEX_BYTE = 3
HEX_BYTES_PER_ROW = 8
HEX_COLUMN_SIZE = HEX_BYTES_PER_ROW * CHARS_PER_HEX_BYTE
TEXT_COLUMN_WIDTH = 24

# Filler shown in the hex column of comment rows
NO_HEX = "..."


class OutputError(Exception):
    """Raised when a row cannot be written to the output sink."""


def to_hex(data: bytes) -> str:
    """Two lowercase hex digits per byte, separated by single spaces."""
    return " ".join(f"{b:02x}" for b in data)


def join_hex(*parts: str) -> str:
    return " ".join(p for p in parts if p)


class TableWriter:
    """Writes inspection rows as fixed-width Offset | Length | Binary | Text columns.

    The text column may be a plain string or a `rich.text.Text` carrying styles
    (dimmed comments); with colour disabled on the console the output is plain
    and byte-for-byte stable.
    """

    def __init__(self, console: Console, *, palette: Palette = PALETTE) -> None:
        self._console = console
        self._palette = palette

    @property
    def console(self) -> Console:
        return self._console

    @property
    def palette(self) -> Palette:
        return self._palette

    def _print(self, line: Text) -> None:
        try:
            self._console.print(line, soft_wrap=True, overflow="ignore", crop=False)
        except OSError as exc:
            raise OutputError(f"Failed to write output: {exc}") from exc

    def _column(self, line: Text, value: int | None, width: int) -> None:
        cell = f"{value:{width}}" if value is not None else " " * width
        line.append(cell)
        line.append(COLUMN_DELIMITER, style=self._palette.column_delimiter)

    def write_header(self) -> None:
        width = OFFSET_COLUMN_WIDTH + LENGTH_COLUMN_WIDTH + HEX_COLUMN_SIZE + TEXT_COLUMN_WIDTH
        rule = Text("-" * (width + len(COLUMN_DELIMITER) * 3), style=self._palette.header_rule)
        title = self._palette.header_title

        header = Text()
        header.append(f"{'Offset':^{OFFSET_COLUMN_WIDTH}}", style=title)
        header.append(COLUMN_DELIMITER)
        header.append(f"{'Length':^{LENGTH_COLUMN_WIDTH}}", style=title)
        header.append(COLUMN_DELIMITER)
        header.append(f"{'Binary Ion':^{HEX_COLUMN_SIZE}}", style=title)
        header.append(COLUMN_DELIMITER)
        header.append(f"{'Text Ion':^{TEXT_COLUMN_WIDTH}}", style=title)

        self._print(rule)
        self._print(header)
        self._print(rule.copy())

    def emit_row(
        self,
        offset: int | None,
        length: int | None,
        indentation: str,
        hex_column: str,
        text_column: str | Text,
    ) -> None:
        """Write one logical row; hex longer than a row wraps onto continuation rows."""
        hex_style = self._palette.hex_bytes
        line = Text()
        self._column(line, offset, OFFSET_COLUMN_WIDTH)
        self._column(line, length, LENGTH_COLUMN_WIDTH)
        line.append(hex_column[:HEX_COLUMN_SIZE].ljust(HEX_COLUMN_SIZE), style=hex_style)
        line.append(COLUMN_DELIMITER, style=self._palette.column_delimiter)
        line.append(" ")
        line.append(indentation)
        if isinstance(text_column, Text):
            line.append_text(text_column)
        else:
            line.append(text_column, style=self._palette.value_text)
        self._print(line)

        # Only the hex column spans multiple rows
        written = HEX_COLUMN_SIZE
        while written < len(hex_column):
            chunk = hex_column[written : written + HEX_COLUMN_SIZE]
            line = Text()
            self._column(line, None, OFFSET_COLUMN_WIDTH)
            self._column(line, None, LENGTH_COLUMN_WIDTH)
            line.append(chunk.ljust(HEX_COLUMN_SIZE), style=hex_style)
            line.append(COLUMN_DELIMITER, style=self._palette.column_delimiter)
            self._print(line)
            written += HEX_COLUMN_SIZE

    def emit_comment(self, indentation: str, comment: str) -> None:
        """A row with no offset, length or bytes: just a dimmed comment."""
        self.emit_row(None, None, indentation, NO_HEX, Text(comment, style=self._palette.comment))
