from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)


@dataclass(slots=True)
class TransferTask:
    task_id: TaskID
    action: str
    path: str
    total: int | None
    transferred: int = field(default=0)


class TransferProgressUI:
    """Rich progress display for byte streams moving between local disk and the remote side."""

    def __init__(self, console: Console | None = None) -> None:
        self._lock = threading.Lock()
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.fields[action]}"),
            TextColumn("{task.fields[path]}"),
            BarColumn(),
            DownloadColumn(binary_units=True),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            TextColumn("{task.fields[state]}"),
            console=console,
            transient=False,
            expand=True,
        )

    def __enter__(self) -> "TransferProgressUI":
        self._progress.__enter__()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._progress.__exit__(exc_type, exc, tb)

    @contextmanager
    def track(self, action: str, path: str, total: int | None) -> Iterator[Callable[[int], None]]:
        """Yield a chunk callback for one transfer; the row ends as ``done`` or ``failed``."""
        with self._lock:
            task_id = self._progress.add_task(
                description=path,
                total=total,
                action=action,
                path=path,
                state="streaming",
            )
        task = TransferTask(task_id=task_id, action=action, path=path, total=total)

        def _on_chunk(delta: int) -> None:
            with self._lock:
                task.transferred += delta
                self._progress.update(task.task_id, advance=delta)

        try:
            yield _on_chunk
        except BaseException:
            with self._lock:
                self._progress.update(task.task_id, state="[red]failed")
            raise

        with self._lock:
            self._progress.update(
                task.task_id,
                total=task.transferred,
                completed=task.transferred,
                state="[green]done",
            )
