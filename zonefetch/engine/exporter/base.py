"""Exporter Service Provider Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable


class BaseExporter(ABC):
    """Uniform sink contract for the output writer."""

    @abstractmethod
    def open(self) -> None:
        """Create the destination; must succeed before any job is dispatched."""

    @abstractmethod
    def export(self, line: str) -> None:
        """Persist a single normalised line (without terminator)."""

    def export_many(self, lines: Iterable[str]) -> None:
        for line in lines:
            self.export(line)

    @abstractmethod
    def flush(self) -> None:
        """Flush buffered data to destination."""

    @abstractmethod
    def close(self) -> None:
        """Commit the output and release underlying resources."""

    @abstractmethod
    def discard(self) -> None:
        """Release resources and drop whatever was written."""


__all__ = ["BaseExporter"]
