"""Streaming decompression layer placed between the transport and the parser."""

from __future__ import annotations

import gzip
import io
import zlib
from typing import BinaryIO, Protocol

from ..errors import DecompressionInitError
from .entries import RemoteEntry

GZIP_MAGIC = b"\x1f\x8b"
GZIP_DEFLATE = 8
GZIP_HEADER_SIZE = 10

# Errors a decompressing stream can raise after a valid header.
STREAM_ERRORS: tuple[type[BaseException], ...] = (EOFError, OSError, zlib.error)


class Decompressor(Protocol):
    def wrap(self, stream: BinaryIO) -> BinaryIO: ...


class _HeaderReplay(io.RawIOBase):
    """Serve already-consumed header bytes before reading on from ``source``."""

    def __init__(self, header: bytes, source: BinaryIO) -> None:
        super().__init__()
        self._pending = header
        self._source = source

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # type: ignore[override]
        if self._pending:
            size = min(len(buffer), len(self._pending))
            buffer[:size] = self._pending[:size]
            self._pending = self._pending[size:]
            return size
        readinto = getattr(self._source, "readinto", None)
        if readinto is not None:
            return readinto(buffer) or 0
        chunk = self._source.read(len(buffer))
        buffer[: len(chunk)] = chunk
        return len(chunk)


def _read_header(stream: BinaryIO) -> bytes:
    # Transports may hand back short reads; keep going until the header is complete or EOF.
    header = b""
    while len(header) < GZIP_HEADER_SIZE:
        chunk = stream.read(GZIP_HEADER_SIZE - len(header))
        if not chunk:
            break
        header += chunk
    return header


class GzipDecompressor:
    """Validate the gzip header eagerly, then decompress lazily while reading."""

    def wrap(self, stream: BinaryIO) -> BinaryIO:
        try:
            header = _read_header(stream)
        except STREAM_ERRORS as exc:
            raise DecompressionInitError(f"cannot read gzip header: {exc}") from exc
        if header[:2] != GZIP_MAGIC:
            raise DecompressionInitError(f"not a gzip stream (header {header[:2]!r})")
        if len(header) > 2 and header[2] != GZIP_DEFLATE:
            raise DecompressionInitError(f"unsupported gzip compression method {header[2]}")
        replay = io.BufferedReader(_HeaderReplay(header, stream))
        return gzip.GzipFile(fileobj=replay, mode="rb")  # type: ignore[return-value]



def wrap_for_entry(
    entry: RemoteEntry,
    stream: BinaryIO,
    decompressor: Decompressor,
    compressed_suffix: str = ".gz",
) -> BinaryIO:
    """Decompress only entries carrying the compressed suffix; others pass through."""

    if entry.has_suffix(compressed_suffix):
        return decompressor.wrap(stream)
    return stream


__all__ = ["Decompressor", "GzipDecompressor", "GZIP_MAGIC", "STREAM_ERRORS", "wrap_for_entry"]
