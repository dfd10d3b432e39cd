"""Per-cycle audit trail.

Every trigger surface writes a short, prefixed trail of what a sync cycle did
(``ls_sync_logs``). Entries are mirrored to the Python logger so the same
lines show up on the console when logging is configured.

Level ``1`` entries are user-facing milestones (``INFO``); level ``2`` entries
are detail (``DEBUG``). When more than a second elapsed since the previous
entry, an ``(HH:MM:SS)`` suffix is appended.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError

from .logging_setup import get_logger
from .store import RecordStore

logger = get_logger("lunchsync.cycle_log")

MILESTONE = 1
DETAIL = 2


def format_elapsed(seconds: float) -> str:
    total = int(seconds)
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class CycleLog:
    def __init__(
        self,
        store: RecordStore | None,
        prefix: str,
        *,
        monotonic: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self.store = store
        self.prefix = prefix
        self._monotonic = monotonic
        self._now = now
        self._last = monotonic()

    def add(self, message: str, level: int = MILESTONE) -> None:
        current = self._monotonic()
        elapsed = current - self._last
        self._last = current
        if elapsed > 1:
            message = f"{message} ({format_elapsed(elapsed)})"

        py_level = logging.INFO if level <= MILESTONE else logging.DEBUG
        logger.log(py_level, "[%s] %s", self.prefix, message)

        if self.store is None:
            return
        try:
            self.store.append_log(self.prefix, message, level, at=self._now())
            self.store.save()
        except SQLAlchemyError as exc:
            # The trail is best effort; a failed write must not abort the cycle.
            logger.warning("failed to save cycle log entry: %s", exc)

    def detail(self, message: str) -> None:
        self.add(message, DETAIL)


__all__ = ["DETAIL", "MILESTONE", "CycleLog", "format_elapsed"]
