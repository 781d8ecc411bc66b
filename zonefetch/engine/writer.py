"""Single consumer draining the output channel into the exporter."""

from __future__ import annotations

from threading import Thread

import structlog

from ..errors import OutputError
from ..logging_conf import get_logger
from .channel import Channel
from .exporter import BaseExporter


def normalize_line(line: str) -> str:
    """Trim, lower-case and flatten a record line; empty result means skip."""

    return " ".join(line.splitlines()).strip().lower()


class OutputWriter:
    """Sole owner of the destination. Runs on its own thread until the channel closes."""

    def __init__(
        self,
        channel: Channel[str],
        exporter: BaseExporter,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.channel = channel
        self.exporter = exporter
        self.logger = logger or get_logger("writer")
        self.lines_written = 0
        self.lines_skipped = 0
        self.error: OutputError | None = None
        self._thread: Thread | None = None

    def open(self) -> None:
        self.exporter.open()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("OutputWriter.start called twice")
        self._thread = Thread(target=self.run, name="zonefetch-writer", daemon=True)
        self._thread.start()

    def run(self) -> None:
        """Drain until closed; after a write error keep draining so producers never block."""

        for line in self.channel:
            if self.error is not None:
                continue
            normalized = normalize_line(line)
            if not normalized:
                self.lines_skipped += 1
                continue
            try:
                self.exporter.export(normalized)
            except OutputError as exc:
                self.error = exc
                self.logger.error("writer_failed", error=str(exc))
                continue
            self.lines_written += 1

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def finish(self) -> int:
        """Wait for the drain loop, then commit the output. The channel must be closed."""

        self.join()
        if self.error is not None:
            self.exporter.discard()
            raise self.error
        self.exporter.flush()
        self.exporter.close()
        self.logger.info("writer_closed", lines=self.lines_written, skipped=self.lines_skipped)
        return self.lines_written

    def abort(self) -> None:
        """Stop after a fatal error elsewhere: close the channel and drop the partial file."""

        self.channel.close()
        self.join()
        self.exporter.discard()
        self.logger.warning("writer_aborted", lines=self.lines_written)


__all__ = ["OutputWriter", "normalize_line"]
