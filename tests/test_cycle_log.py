from __future__ import annotations

from datetime import UTC, datetime

from lunchsync.cycle_log import DETAIL, CycleLog, format_elapsed
from lunchsync.store import RecordStore

NOW = datetime(2024, 5, 12, 9, 0, tzinfo=UTC)


class Clock:
    def __init__(self) -> None:
        self.t = 100.0

    def __call__(self) -> float:
        return self.t


def test_entries_are_prefixed_and_timed(store: RecordStore) -> None:
    clock = Clock()
    log = CycleLog(store, "BGF", monotonic=clock, now=lambda: NOW)

    log.add("Starting transaction fetch")
    clock.t += 0.5
    log.detail("token retrieved")
    clock.t += 75
    log.add("Sync complete")

    entries = list(reversed(store.logs()))
    assert [(e.prefix, e.level) for e in entries] == [("BGF", 1), ("BGF", DETAIL), ("BGF", 1)]
    assert [e.message for e in entries] == [
        "Starting transaction fetch",
        "token retrieved",
        "Sync complete (00:01:15)",
    ]
    assert [e.message for e in store.logs(max_level=1)] == [
        "Sync complete (00:01:15)",
        "Starting transaction fetch",
    ]


def test_log_without_store_only_uses_logger(caplog) -> None:
    log = CycleLog(None, "CLI")
    with caplog.at_level("INFO", logger="lunchsync.cycle_log"):
        log.add("hello")

    assert "[CLI] hello" in caplog.text


def test_format_elapsed() -> None:
    assert format_elapsed(3725.9) == "01:02:05"
