"""Outbound user signals: cycle notifications and the pending badge."""

from __future__ import annotations

from typing import Protocol

from .logging_setup import get_logger

logger = get_logger("lunchsync.notifications")


class Notifier(Protocol):
    def notify(self, title: str, body: str) -> None: ...


class BadgeSink(Protocol):
    def set_count(self, count: int) -> None: ...


class LogNotifier:
    """Default notifier for headless hosts: notifications become log lines."""

    def notify(self, title: str, body: str) -> None:
        logger.info("%s: %s", title, body)


class NullBadge:
    def set_count(self, count: int) -> None:
        return None


__all__ = ["BadgeSink", "LogNotifier", "Notifier", "NullBadge"]
