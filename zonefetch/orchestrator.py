"""Run orchestrator wiring listing, filtering, the worker pool and the output writer."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from threading import Timer
from typing import Any, Protocol

from .config import HarvestConfig
from .engine import (
    CancelToken,
    Cancelled,
    Channel,
    DownloadAndParseTask,
    EntryOutcome,
    FtpSessionFactory,
    ListingFetcher,
    OutputWriter,
    RemoteEntry,
    SessionFactory,
    WorkerPool,
    ZoneParser,
    filter_canonical,
    order_by_size,
)
from .engine.decompress import Decompressor
from .engine.entries import PSEUDO_ENTRIES
from .engine.exporter import BaseExporter, LineFileExporter
from .errors import ConfigurationError
from .logging_conf import get_logger


class RunProgress(Protocol):
    def start(self, total: int) -> None: ...

    def advance(self, success: bool, records: int = 0, current_entry: str | None = None) -> None: ...

    def close(self) -> None: ...


@dataclass(slots=True)
class RunSummary:
    """What a run did, for the CLI table and for tests."""

    output_path: Path
    listed: int = 0
    entries: int = 0
    success: int = 0
    failed: int = 0
    not_dispatched: int = 0
    records: int = 0
    record_errors: int = 0
    lines_written: int = 0
    cancelled: bool = False
    duration: float = 0.0
    failures: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_outcomes(
        cls,
        output_path: Path,
        listed: int,
        canonical: list[RemoteEntry],
        outcomes: list[EntryOutcome],
    ) -> "RunSummary":
        summary = cls(output_path=output_path, listed=listed, entries=len(canonical))
        for outcome in outcomes:
            summary.records += outcome.records
            summary.record_errors += outcome.record_errors
            if outcome.ok:
                summary.success += 1
            else:
                summary.failed += 1
                summary.failures[outcome.name] = outcome.reason or outcome.status
        summary.not_dispatched = len(canonical) - len(outcomes)
        return summary

    def as_dict(self) -> dict[str, Any]:
        return {
            "output_path": str(self.output_path),
            "listed": self.listed,
            "entries": self.entries,
            "success": self.success,
            "failed": self.failed,
            "not_dispatched": self.not_dispatched,
            "records": self.records,
            "record_errors": self.record_errors,
            "lines_written": self.lines_written,
            "cancelled": self.cancelled,
            "duration": round(self.duration, 3),
            "failures": dict(self.failures),
        }


class Orchestrator:
    """Own every channel, the cancel token and the thread lifecycle of one run."""

    def __init__(
        self,
        config: HarvestConfig,
        output_path: Path | None = None,
        session_factory: SessionFactory | None = None,
        parser: ZoneParser | None = None,
        decompressor: Decompressor | None = None,
        exporter: BaseExporter | None = None,
    ) -> None:
        self.config = config
        self.output_path = output_path or config.pipeline.output_path
        self._uses_ftp = session_factory is None
        self.session_factory: SessionFactory = session_factory or FtpSessionFactory(config.transfer)
        self.parser = parser or ZoneParser()
        self.decompressor = decompressor
        self.exporter = exporter
        self.logger = get_logger("orchestrator")
        self._cancel: CancelToken | None = None

    def cancel(self, reason: str = "cancelled") -> None:
        if self._cancel is not None:
            self._cancel.cancel(reason)

    def canonical_entries(self, entries: list[RemoteEntry]) -> list[RemoteEntry]:
        pipeline = self.config.pipeline
        if pipeline.prefer_compressed:
            selected = filter_canonical(entries, pipeline.compressed_suffix)
        else:
            selected = [e for e in entries if e.name not in PSEUDO_ENTRIES and not e.is_directory]
        if pipeline.largest_first:
            selected = order_by_size(selected)
        return selected

    def list_entries(self) -> list[RemoteEntry]:
        self._require_host()
        fetcher = ListingFetcher(self.session_factory, dedupe=self.config.pipeline.dedupe_listing)
        return fetcher.list_entries(self.config.transfer.remote_path)

    def run(self, progress: RunProgress | None = None) -> RunSummary:
        """Execute one run. Fatal errors propagate; per-entry failures end up in the summary."""

        self._require_host()
        pipeline = self.config.pipeline
        started = time.monotonic()
        cancel = CancelToken()
        self._cancel = cancel

        output: Channel[str] = Channel(maxsize=pipeline.output_buffer)
        exporter = self.exporter or LineFileExporter(Path(self.output_path))
        writer = OutputWriter(output, exporter)
        writer.open()
        writer.start()

        timer: Timer | None = None
        if pipeline.deadline_seconds:
            timer = Timer(pipeline.deadline_seconds, cancel.cancel, args=("deadline exceeded",))
            timer.daemon = True
            timer.start()

        try:
            listed = self.list_entries()
            canonical = self.canonical_entries(listed)
            self.logger.info("entries_filtered", listed=len(listed), canonical=len(canonical))

            jobs: Channel[RemoteEntry] = Channel(maxsize=pipeline.effective_queue_size(), cancel=cancel)
            task = DownloadAndParseTask(
                remote_path=self.config.transfer.remote_path,
                emit=output.put,
                parser=self.parser,
                decompressor=self.decompressor,
                compressed_suffix=pipeline.compressed_suffix,
                zone_origin=pipeline.default_origin,
                origin_from_filename=pipeline.origin_from_filename,
                cancel=cancel,
            )
            on_outcome = None
            if progress is not None:
                progress.start(len(canonical))
                on_outcome = lambda outcome: progress.advance(  # noqa: E731
                    outcome.ok, outcome.records, outcome.name
                )
            pool = WorkerPool(pipeline.workers, self.session_factory, task, on_outcome=on_outcome, cancel=cancel)
            pool.start(jobs)
            try:
                self._dispatch(jobs, canonical)
                outcomes = pool.wait()
            except KeyboardInterrupt:
                cancel.cancel("interrupted")
                jobs.close()
                outcomes = pool.wait()
        except BaseException:
            writer.abort()
            raise
        finally:
            if timer is not None:
                timer.cancel()
            if progress is not None:
                progress.close()

        output.close()
        lines_written = writer.finish()

        summary = RunSummary.from_outcomes(Path(self.output_path), len(listed), canonical, outcomes)
        summary.lines_written = lines_written
        summary.cancelled = cancel.cancelled
        summary.duration = time.monotonic() - started
        if summary.cancelled:
            self.logger.warning("run_cancelled", reason=cancel.reason, **summary.as_dict())
        else:
            self.logger.info("run_finished", **summary.as_dict())
        return summary

    def _dispatch(self, jobs: Channel[RemoteEntry], canonical: list[RemoteEntry]) -> None:
        try:
            for entry in canonical:
                jobs.put(entry)
        except Cancelled as exc:
            self.logger.warning("dispatch_cancelled", reason=str(exc))
        finally:
            jobs.close()

    def _require_host(self) -> None:
        if self._uses_ftp and not self.config.transfer.host:
            raise ConfigurationError("no FTP host configured (set zf_ftp_host or --host)")


__all__ = ["Orchestrator", "RunProgress", "RunSummary"]
