from __future__ import annotations

import os
from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    TaskID,
    TaskProgressColumn,
    TextColumn,
)
from rich.text import Text

from .config import OutputConfig
from .models import EntryResult, EntryStatus, ManifestReport
from .observability import RunObserver


def build_console(output: OutputConfig) -> Console:
    return Console(no_color=not output.color, highlight=False, soft_wrap=True)


class ConsoleReporter(RunObserver):
    """Terminal rendering of a run: status lines plus a transient progress bar."""

    def __init__(self, console: Console, show_progress: bool = True) -> None:
        self._console = console
        self._show_progress = show_progress and console.is_terminal
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def header(self, title: str) -> None:
        self._console.print()
        self._line(f" {title}")
        self._line(" " + "-" * max(1, self._console.width - 2))

    def success(self, message: str) -> None:
        self._line(f" {message}", style="green")

    def error(self, message: str) -> None:
        self._line(f" Error: {message}", style="red")

    def blank(self) -> None:
        self._console.print()

    def file_started(self, path: str) -> None:
        if not self._show_progress:
            return
        if self._progress is None:
            self._progress = Progress(
                TextColumn(" >>  {task.description}", markup=False),
                BarColumn(),
                TaskProgressColumn(),
                console=self._console,
                transient=True,
            )
            self._progress.start()
        self._finish_task()
        self._task = self._progress.add_task(os.path.basename(path), total=None)

    def file_progress(self, path: str, done: int, total: int) -> None:
        if self._progress is None or self._task is None:
            return
        self._progress.update(self._task, completed=done, total=total or None)

    def file_hashed(self, path: str, digest: str) -> None:
        self._finish_task()

    def entry_checked(self, result: EntryResult) -> None:
        self._finish_task()

    def manifest_checked(self, report: ManifestReport) -> None:
        self._finish_task()
        if report.error is not None:
            self._line(f" ER: {report.manifest_path}", style="red")
            self._line(f"   Error: {report.error}", style="red")
            return
        if report.ok:
            self._line(f" OK: {report.manifest_path}", style="green")
            return
        self._line(f" ER: {report.manifest_path}", style="red")
        for result in report.failures:
            label = "Error" if result.status is EntryStatus.UNREADABLE else "Invalid"
            self._line(f"   {label}: {result.path}", style="red")

    def traversal_error(self, path: str, error: str) -> None:
        self._line(f" Error: {error}", style="red")

    def close(self) -> None:
        self._finish_task()
        if self._progress is not None:
            self._progress.stop()
            self._progress = None

    def _finish_task(self) -> None:
        if self._progress is not None and self._task is not None:
            self._progress.remove_task(self._task)
        self._task = None

    def _line(self, message: str, style: Optional[str] = None) -> None:
        text = Text(message, style=style or "")
        if self._console.is_terminal:
            text.truncate(max(1, self._console.width - 1), overflow="ellipsis")
        self._console.print(text)
