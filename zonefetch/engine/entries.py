"""Remote entries and the canonical-set selection applied to a listing."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import Iterable

PSEUDO_ENTRIES = frozenset({".", ".."})


@dataclass(frozen=True, slots=True)
class RemoteEntry:
    """One item of a remote directory listing. Identity is ``name``."""

    name: str
    size: int = 0
    is_directory: bool = False

    def has_suffix(self, suffix: str) -> bool:
        return split_extension(self.name)[1] == suffix

    def path(self, remote_dir: str) -> str:
        return posixpath.join(remote_dir, self.name)


def split_extension(name: str) -> tuple[str, str]:
    """Split the trailing extension: ``com.zone.gz`` -> (``com.zone``, ``.gz``)."""

    return posixpath.splitext(name)


def filter_canonical(entries: Iterable[RemoteEntry], compressed_suffix: str = ".gz") -> list[RemoteEntry]:
    """Keep the compressed variant whenever both ``X`` and ``X<suffix>`` are listed.

    Only an exact ``name + suffix`` shadows a plain entry; ``a.txt`` and
    ``a.csv`` stay independent. Pseudo entries and directories are dropped.
    Listing order is preserved.
    """

    entries = list(entries)
    has_compressed: set[str] = set()
    for entry in entries:
        base, ext = split_extension(entry.name)
        if ext == compressed_suffix:
            has_compressed.add(base)

    canonical: list[RemoteEntry] = []
    for entry in entries:
        if entry.name in PSEUDO_ENTRIES or entry.is_directory:
            continue
        _, ext = split_extension(entry.name)
        if ext == compressed_suffix or entry.name not in has_compressed:
            canonical.append(entry)
    return canonical


def order_by_size(entries: Iterable[RemoteEntry]) -> list[RemoteEntry]:
    """Largest first so long downloads start early; ties keep listing order."""

    return sorted(entries, key=lambda entry: entry.size, reverse=True)


def dedupe_by_name(entries: Iterable[RemoteEntry]) -> list[RemoteEntry]:
    seen: set[str] = set()
    unique: list[RemoteEntry] = []
    for entry in entries:
        if entry.name in seen:
            continue
        seen.add(entry.name)
        unique.append(entry)
    return unique


__all__ = [
    "PSEUDO_ENTRIES",
    "RemoteEntry",
    "dedupe_by_name",
    "filter_canonical",
    "order_by_size",
    "split_extension",
]
