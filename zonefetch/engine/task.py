"""Download one remote entry, decompress if needed, parse it and emit record lines."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import structlog

from ..errors import DecompressionInitError, EntryError, SessionError, StreamError
from ..logging_conf import get_logger
from .channel import CancelToken
from .decompress import STREAM_ERRORS, Decompressor, GzipDecompressor, wrap_for_entry
from .entries import RemoteEntry, split_extension
from .parser import RecordParseError, ZoneParser
from .transfer import TransferSession

ZONE_EXTENSIONS = (".zone", ".txt", ".db")


@dataclass(slots=True)
class EntryOutcome:
    """Per-entry report handed back to the orchestrator."""

    name: str
    status: str
    records: int = 0
    record_errors: int = 0
    reason: str | None = None
    session_broken: bool = False

    @property
    def ok(self) -> bool:
        return self.status == "success"


def origin_from_name(name: str, compressed_suffix: str = ".gz") -> str:
    """``com.zone.gz`` -> ``com.``; empty string when nothing usable remains."""

    base = name
    if base.endswith(compressed_suffix):
        base = base[: -len(compressed_suffix)]
    stem, ext = split_extension(base)
    if ext.lower() in ZONE_EXTENSIONS:
        base = stem
    base = base.strip(".")
    return f"{base}." if base else ""


class DownloadAndParseTask:
    """Stateless per-entry unit of work; the caller owns the session."""

    def __init__(
        self,
        remote_path: str,
        emit: Callable[[str], None],
        parser: ZoneParser | None = None,
        decompressor: Decompressor | None = None,
        compressed_suffix: str = ".gz",
        zone_origin: str = "",
        origin_from_filename: bool = False,
        cancel: CancelToken | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.remote_path = remote_path
        self.emit = emit
        self.parser = parser or ZoneParser()
        self.decompressor = decompressor or GzipDecompressor()
        self.compressed_suffix = compressed_suffix
        self.zone_origin = zone_origin
        self.origin_from_filename = origin_from_filename
        self.cancel = cancel
        self.logger = logger or get_logger("task")

    def origin_for(self, entry: RemoteEntry) -> str:
        if self.zone_origin or not self.origin_from_filename:
            return self.zone_origin
        return origin_from_name(entry.name, self.compressed_suffix)

    def process(self, entry: RemoteEntry, session: TransferSession) -> EntryOutcome:
        log = self.logger.bind(entry=entry.name)
        outcome = EntryOutcome(name=entry.name, status="success")
        path = entry.path(self.remote_path)
        log.info("entry_started", path=path, size=entry.size)
        try:
            stream = session.retrieve(path)
        except EntryError as exc:
            return self._fail(log, outcome, exc, session_broken=isinstance(exc, SessionError))

        try:
            source = wrap_for_entry(entry, stream, self.decompressor, self.compressed_suffix)
            for result in self.parser.parse(source, self.origin_for(entry), entry.name):
                if self.cancel is not None and self.cancel.cancelled:
                    outcome.status = "cancelled"
                    outcome.reason = self.cancel.reason
                    break
                if isinstance(result, RecordParseError):
                    outcome.record_errors += 1
                    log.warning("record_parse_error", line=result.line, error=result.message, text=result.text)
                    continue
                self.emit(result.to_text())
                outcome.records += 1
        except DecompressionInitError as exc:
            return self._fail(log, outcome, exc)
        except STREAM_ERRORS as exc:
            broken = bool(getattr(session, "broken", False))
            error = StreamError(f"stream broke after {outcome.records} records: {exc}")
            return self._fail(log, outcome, error, session_broken=broken)
        finally:
            stream.close()

        log.info(
            "entry_finished",
            status=outcome.status,
            records=outcome.records,
            record_errors=outcome.record_errors,
        )
        return outcome

    @staticmethod
    def _fail(
        log: structlog.BoundLogger,
        outcome: EntryOutcome,
        exc: BaseException,
        session_broken: bool = False,
    ) -> EntryOutcome:
        outcome.status = "failed"
        outcome.reason = f"{exc.__class__.__name__}: {exc}"
        outcome.session_broken = session_broken
        log.error(
            "entry_failed",
            error=outcome.reason,
            records_before_failure=outcome.records,
        )
        return outcome


__all__ = ["DownloadAndParseTask", "EntryOutcome", "origin_from_name"]
