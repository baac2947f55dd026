from __future__ import annotations

import io
from collections.abc import Callable

import pytest
from rich.console import Console

from ioninspect.core.inspector import InspectionWindow, inspect
from ioninspect.core.table import TableWriter
from ioninspect.ion.binary import BinaryReader


def _plain_table() -> tuple[TableWriter, io.StringIO]:
    sink = io.StringIO()
    console = Console(file=sink, color_system=None, width=200, highlight=False)
    return TableWriter(console), sink


@pytest.fixture
def plain_table() -> Callable[[], tuple[TableWriter, io.StringIO]]:
    """Factory for a TableWriter whose console writes uncoloured text to a StringIO."""
    return _plain_table


@pytest.fixture
def render() -> Callable[..., list[str]]:
    """Inspect `data` with the given window and return the output lines (no header)."""

    def _render(data: bytes, *, skip: int = 0, limit: int = 0) -> list[str]:
        table, sink = _plain_table()
        inspect(BinaryReader(data), table, InspectionWindow(skip, limit))
        return sink.getvalue().splitlines()

    return _render


@pytest.fixture
def row() -> Callable[..., str]:
    """Expected single-line row; `text` already includes any indentation."""

    def _row(offset: int | None, length: int | None, hex_column: str, text: str) -> str:
        off = f"{offset:9}" if offset is not None else " " * 9
        ln = f"{length:9}" if length is not None else " " * 9
        return f"{off} | {ln} | {hex_column:<24} |  {text}"

    return _row
