from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Palette:
    header_title: str
    header_rule: str
    comment: str
    value_text: str
    hex_bytes: str
    column_delimiter: str


DEFAULT = Palette(
    header_title="bold bright_white",
    header_rule="",
    comment="dim",
    value_text="",
    hex_bytes="",
    column_delimiter="",
)


# Selected palette for now
PALETTE = DEFAULT
