"""Fixed-size worker pool draining the job channel, one FTP session per worker."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait
from threading import Lock
from typing import Callable

import structlog

from ..errors import EntryError
from ..logging_conf import get_logger
from .channel import CancelToken, Channel
from .entries import RemoteEntry
from .task import DownloadAndParseTask, EntryOutcome
from .transfer import SessionFactory, TransferSession

OutcomeCallback = Callable[[EntryOutcome], None]


class WorkerPool:
    """Run ``size`` workers over a shared job channel.

    Each worker owns exactly one session at a time: opened before its first
    entry, reused for every following entry, replaced after a connection-level
    failure and closed once the channel is exhausted. ``wait`` is the
    completion barrier.
    """

    def __init__(
        self,
        size: int,
        session_factory: SessionFactory,
        task: DownloadAndParseTask,
        on_outcome: OutcomeCallback | None = None,
        cancel: CancelToken | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if size < 1:
            raise ValueError("worker pool size must be >= 1")
        self.size = size
        self.session_factory = session_factory
        self.task = task
        self.on_outcome = on_outcome
        self.cancel = cancel
        self.logger = logger or get_logger("worker_pool")
        self._executor: ThreadPoolExecutor | None = None
        self._futures: list[Future[None]] = []
        self._outcomes: list[EntryOutcome] = []
        self._lock = Lock()

    def start(self, jobs: Channel[RemoteEntry]) -> None:
        if self._executor is not None:
            raise RuntimeError("WorkerPool.start called twice")
        self._executor = ThreadPoolExecutor(max_workers=self.size, thread_name_prefix="zonefetch-worker")
        self._futures = [
            self._executor.submit(self._worker, index, jobs) for index in range(self.size)
        ]

    def wait(self) -> list[EntryOutcome]:
        """Block until every worker observed the closed, drained channel."""

        if self._executor is None:
            raise RuntimeError("WorkerPool.start must be called before wait")
        wait(self._futures)
        self._executor.shutdown(wait=True)
        for future in self._futures:
            future.result()
        with self._lock:
            return list(self._outcomes)

    def run(self, jobs: Channel[RemoteEntry]) -> list[EntryOutcome]:
        self.start(jobs)
        return self.wait()

    def _record(self, outcome: EntryOutcome) -> None:
        with self._lock:
            self._outcomes.append(outcome)
        if self.on_outcome is not None:
            self.on_outcome(outcome)

    def _worker(self, index: int, jobs: Channel[RemoteEntry]) -> None:
        log = self.logger.bind(worker=index)
        session: TransferSession | None = None
        handled = 0
        try:
            for entry in jobs:
                handled += 1
                if self.cancel is not None and self.cancel.cancelled:
                    self._record(EntryOutcome(name=entry.name, status="cancelled", reason=self.cancel.reason))
                    continue
                if session is None:
                    try:
                        session = self.session_factory()
                    except EntryError as exc:
                        log.error("session_open_failed", entry=entry.name, error=str(exc))
                        self._record(
                            EntryOutcome(name=entry.name, status="failed", reason=f"session unavailable: {exc}")
                        )
                        continue
                    log.info("session_opened")
                try:
                    outcome = self.task.process(entry, session)
                except Exception as exc:  # noqa: BLE001
                    log.exception("entry_crashed", entry=entry.name)
                    outcome = EntryOutcome(name=entry.name, status="failed", reason=f"{exc.__class__.__name__}: {exc}")
                self._record(outcome)
                if outcome.session_broken or getattr(session, "broken", False):
                    log.warning("session_reconnect", entry=entry.name, reason=outcome.reason)
                    self._close_session(session, log)
                    session = None
        finally:
            if session is not None:
                self._close_session(session, log)
            log.info("worker_finished", entries=handled)

    @staticmethod
    def _close_session(session: TransferSession, log: structlog.BoundLogger) -> None:
        try:
            session.close()
        except (OSError, EOFError, EntryError) as exc:
            log.warning("session_close_failed", error=str(exc))


__all__ = ["OutcomeCallback", "WorkerPool"]
