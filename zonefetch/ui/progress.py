"""Terminal progress helpers with Rich-based rendering."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock

from rich.console import Console
from rich.errors import LiveError
from rich.progress import (
    BarColumn,
    Progress,
    ProgressColumn,
    SpinnerColumn,
    Task,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.text import Text


@dataclass
class ProgressState:
    total: int
    success: int = 0
    failed: int = 0
    records: int = 0
    current_entry: str | None = None


class RateColumn(ProgressColumn):
    """Finished zone files per second."""

    def render(self, task: Task) -> Text:
        speed = task.finished_speed or task.speed
        if speed is None:
            return Text("", style="progress.percentage")
        return Text(f"{speed:.1f} file/s", style="progress.percentage")


class RecordRateColumn(ProgressColumn):
    """Records emitted per second since the run started."""

    def render(self, task: Task) -> Text:
        elapsed = task.elapsed
        records = task.fields.get("records", 0)
        if not elapsed or not records:
            return Text("", style="progress.data.speed")
        return Text(f"{records / elapsed:,.0f} rr/s", style="progress.data.speed")


class ProgressReporter:
    """Render progress and maintain counters; safe to call from worker threads."""

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self.enabled = enabled
        self._console = console
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None
        self._lock = Lock()
        self.state: ProgressState | None = None

    def start(self, total: int) -> None:
        self.state = ProgressState(total=total)
        if not self.enabled:
            return
        console = self._console or Console()
        if not console.is_terminal:
            # Non-interactive output: stay silent instead of printing every refresh.
            self.enabled = False
            return
        self._progress = Progress(
            SpinnerColumn(style="cyan"),
            TextColumn("[bold blue]zones", justify="left"),
            BarColumn(bar_width=None, complete_style="green", finished_style="green"),
            TaskProgressColumn(show_speed=False),
            TimeElapsedColumn(),
            RateColumn(),
            RecordRateColumn(),
            TextColumn("[green]✓{task.fields[success]:>4}", justify="right"),
            TextColumn("[red]✗{task.fields[failed]:>4}", justify="right"),
            TextColumn("[cyan]{task.fields[records]:>9} rr", justify="right"),
            TextColumn("[dim]{task.fields[current_entry]}", justify="left"),
            refresh_per_second=8,
            expand=True,
            transient=True,
            console=console,
        )
        try:
            self._progress.__enter__()
        except LiveError:
            self.enabled = False
            self._progress = None
            return
        self._task_id = self._progress.add_task(
            "zones", total=total, success=0, failed=0, records=0, current_entry="waiting…"
        )

    def advance(self, success: bool, records: int = 0, current_entry: str | None = None) -> None:
        with self._lock:
            if not self.state:
                raise RuntimeError("ProgressReporter.start must be called before advance")
            if current_entry:
                self.state.current_entry = current_entry
            if success:
                self.state.success += 1
            else:
                self.state.failed += 1
            self.state.records += records
            if self._progress is not None and self._task_id is not None:
                display = self.state.current_entry or ""
                if len(display) > 40:
                    display = display[:37] + "..."
                self._progress.update(
                    self._task_id,
                    advance=1,
                    success=self.state.success,
                    failed=self.state.failed,
                    records=self.state.records,
                    current_entry=display,
                )

    def close(self) -> None:
        with self._lock:
            if self._progress is not None:
                self._progress.stop()
                self._progress.__exit__(None, None, None)
                self._progress = None
            self._task_id = None

    def summary(self) -> dict[str, int]:
        if not self.state:
            return {"success": 0, "failed": 0, "records": 0}
        return {
            "success": self.state.success,
            "failed": self.state.failed,
            "records": self.state.records,
        }


__all__ = ["ProgressReporter", "ProgressState"]
