"""Progress reporting for open-ended chunk streams.

A streamed response has no known length, so ChunkProgress tracks progress
toward a moving target: the maximum starts at 50 and doubles each time the
position reaches it. Visually the bar drops back to the halfway point and
keeps growing at half the previous speed. Finished calls leave the display,
so a long run keeps only the calls still streaming.

Each agent call gets its own ChunkProgress from a ProgressReporter, so
concurrent reviewer calls never share a counter.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from rich.progress import Progress, TaskID

STARTING_MAX = 50


class ChunkProgress:
    """Counter for one streamed call.

    Subclasses render the counter; the base class only keeps the numbers,
    which makes it the no-op progress handle used by library callers.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.position = 0
        self.maximum = STARTING_MAX

    def inc(self) -> None:
        """Advance by one chunk, doubling the maximum when it is reached."""
        self.position += 1
        if self.position >= self.maximum:
            self.maximum *= 2
        self._render()

    def reset_to_zero(self) -> None:
        """Start over, e.g. when the request is reissued."""
        self.position = 0
        self.maximum = STARTING_MAX
        self._render()

    def finish(self) -> None:
        """Mark the call complete."""

    def _render(self) -> None:
        pass


@runtime_checkable
class ProgressReporter(Protocol):
    """Hands out one ChunkProgress per agent call."""

    def start(self, name: str) -> ChunkProgress:
        ...


class NullProgressReporter:
    """Reporter that renders nothing."""

    def start(self, name: str) -> ChunkProgress:
        return ChunkProgress(name)


class _RichChunkProgress(ChunkProgress):
    def __init__(self, name: str, progress: Progress, task_id: TaskID) -> None:
        self._progress = progress
        self._task_id = task_id
        super().__init__(name)

    def _render(self) -> None:
        self._progress.update(
            self._task_id, completed=self.position, total=self.maximum
        )

    def finish(self) -> None:
        self._progress.remove_task(self._task_id)


class RichProgressReporter:
    """Renders every call as a row of a shared ``rich.progress.Progress``.

    Rich's Progress is internally locked, so concurrent reviewer threads
    can update their own rows; adding rows is serialized here.
    """

    def __init__(self, progress: Progress | None = None) -> None:
        if progress is None:
            from rich.progress import (
                BarColumn,
                Progress,
                SpinnerColumn,
                TextColumn,
                TimeElapsedColumn,
            )

            progress = Progress(
                SpinnerColumn(style="green"),
                TextColumn("{task.description}"),
                TimeElapsedColumn(),
                BarColumn(bar_width=None),
                TextColumn("{task.completed} chunks received"),
                transient=True,
            )
        self.progress = progress
        self._lock = threading.Lock()

    def start(self, name: str) -> ChunkProgress:
        with self._lock:
            task_id = self.progress.add_task(name, total=STARTING_MAX)
        return _RichChunkProgress(name, self.progress, task_id)

    def __enter__(self) -> RichProgressReporter:
        self.progress.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.progress.stop()
