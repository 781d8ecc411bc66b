"""Line oriented text exporter with an atomic rename on close."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TextIO

from ...errors import OutputError
from .base import BaseExporter


class LineFileExporter(BaseExporter):
    """Write one line per record to ``path``; overwrites the previous run's file.

    Lines go to ``<path>.part`` first and replace ``path`` only on ``close``,
    so an aborted run never leaves a truncated result at the final location.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self.part_path = path.with_name(path.name + ".part")
        self._file: TextIO | None = None
        self.lines_written = 0

    def open(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = self.part_path.open("w", encoding="utf-8", newline="\n")
        except OSError as exc:
            raise OutputError(f"cannot create output {self.path}: {exc}") from exc

    def export(self, line: str) -> None:
        if self._file is None:
            raise OutputError("exporter is not open")
        try:
            self._file.write(line)
            self._file.write("\n")
        except OSError as exc:
            raise OutputError(f"cannot write {self.part_path}: {exc}") from exc
        self.lines_written += 1

    def flush(self) -> None:
        if self._file is not None:
            self._file.flush()

    def close(self) -> None:
        if self._file is None:
            return
        try:
            self._file.close()
            os.replace(self.part_path, self.path)
        except OSError as exc:
            raise OutputError(f"cannot finalise output {self.path}: {exc}") from exc
        finally:
            self._file = None

    def discard(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
        self.part_path.unlink(missing_ok=True)


__all__ = ["LineFileExporter"]
