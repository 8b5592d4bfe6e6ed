"""Tests for chunk progress counters and reporters."""

from __future__ import annotations

import io

from rich.console import Console
from rich.progress import Progress

from critloop.progress import (
    STARTING_MAX,
    ChunkProgress,
    NullProgressReporter,
    ProgressReporter,
    RichProgressReporter,
)


class TestChunkProgress:
    """Doubling of the moving maximum."""

    def test_starts_at_zero(self):
        p = ChunkProgress("Generator 1")
        assert (p.position, p.maximum) == (0, STARTING_MAX)

    def test_maximum_doubles_when_reached(self):
        p = ChunkProgress("x")
        for _ in range(STARTING_MAX):
            p.inc()
        assert p.position == STARTING_MAX
        assert p.maximum == STARTING_MAX * 2

    def test_keeps_doubling(self):
        p = ChunkProgress("x")
        for _ in range(STARTING_MAX * 2):
            p.inc()
        assert p.maximum == STARTING_MAX * 4

    def test_reset_to_zero(self):
        p = ChunkProgress("x")
        for _ in range(80):
            p.inc()
        p.reset_to_zero()
        assert (p.position, p.maximum) == (0, STARTING_MAX)


class TestReporters:
    """Reporters hand out independent counters."""

    def test_null_reporter(self):
        reporter = NullProgressReporter()
        a, b = reporter.start("a"), reporter.start("b")
        a.inc()
        assert b.position == 0
        assert isinstance(reporter, ProgressReporter)

    def test_rich_reporter_tracks_tasks(self):
        progress = Progress(console=Console(file=io.StringIO(), force_terminal=False))
        with RichProgressReporter(progress) as reporter:
            handle = reporter.start("Syntax Reviewer 1")
            for _ in range(3):
                handle.inc()
            task = progress.tasks[0]
            assert task.description == "Syntax Reviewer 1"
            assert task.completed == 3
            assert task.total == STARTING_MAX
            handle.finish()
            assert progress.tasks == []

    def test_rich_reporter_drops_finished_calls(self):
        progress = Progress(console=Console(file=io.StringIO(), force_terminal=False))
        with RichProgressReporter(progress) as reporter:
            for round_number in range(5):
                handle = reporter.start(f"Syntax Reviewer {round_number}")
                handle.inc()
                handle.finish()
            live = reporter.start("Repairer 1")
            assert [task.description for task in progress.tasks] == ["Repairer 1"]
            live.finish()
