from __future__ import annotations

import mmap
import shutil
import sys
import tempfile
from contextlib import suppress
from typing import BinaryIO

from ioninspect.ion.binary import IVM


class InputError(Exception):
    """Raised when an input cannot be opened, mapped or is not binary Ion."""


class InputBuffer:
    """Read-only byte view over one input.

    Prefers `mmap` so large inputs are never copied into memory; falls back to
    reading the file when mapping is unavailable (e.g. empty files).
    """

    def __init__(self, fh: BinaryIO, name: str, *, use_mmap: bool = True) -> None:
        self._fh = fh
        self._name = name
        self._mmap: mmap.mmap | None = None
        self._data: bytes | mmap.mmap = b""

        if use_mmap:
            try:
                self._mmap = mmap.mmap(fh.fileno(), length=0, access=mmap.ACCESS_READ)
            except (OSError, ValueError):
                # Fall back to a plain read if mapping fails.
                self._mmap = None
        if self._mmap is not None:
            self._data = self._mmap
        else:
            try:
                fh.seek(0)
                self._data = fh.read()
            except OSError as exc:
                self.close()
                raise InputError(f"Could not read '{name}': {exc}") from exc

    @classmethod
    def open(cls, path: str, *, use_mmap: bool = True) -> InputBuffer:
        try:
            fh = open(path, "rb")  # noqa: SIM115
        except OSError as exc:
            raise InputError(f"Could not open '{path}': {exc.strerror or exc}") from None
        return cls(fh, path, use_mmap=use_mmap)

    @classmethod
    def from_stdin(cls, stream: BinaryIO | None = None, *, use_mmap: bool = True) -> InputBuffer:
        """Spool standard input to an anonymous temporary file and map that."""
        source = stream if stream is not None else sys.stdin.buffer
        try:
            spool = tempfile.TemporaryFile()  # noqa: SIM115
        except OSError as exc:
            raise InputError(
                "Failed to create a temporary file to store STDIN. "
                "Try passing an --input flag instead."
            ) from exc
        try:
            shutil.copyfileobj(source, spool)
            spool.flush()
        except OSError as exc:
            spool.close()
            raise InputError(f"Failed to copy STDIN to a temp file: {exc}") from exc
        return cls(spool, "STDIN temp file", use_mmap=use_mmap)

    def close(self) -> None:
        if self._mmap is not None:
            with suppress(Exception):
                self._mmap.close()
            self._mmap = None
        self._data = b""
        with suppress(Exception):
            self._fh.close()

    def __enter__(self) -> InputBuffer:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def name(self) -> str:
        return self._name

    @property
    def data(self) -> bytes | mmap.mmap:
        return self._data

    @property
    def size(self) -> int:
        return len(self._data)

    def starts_with_version_marker(self) -> bool:
        return bytes(self._data[: len(IVM)]) == IVM

    def require_binary_ion(self) -> None:
        if not self.starts_with_version_marker():
            raise InputError(f"Input file '{self._name}' does not appear to be binary Ion.")
