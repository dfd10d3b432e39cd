"""Exception types raised by the synchronizer.

Record-level failures (a single reconcile write, a single balance push) are
logged and contained by the caller. The types here cover the failures that
cross module boundaries.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import CycleStage


class LunchSyncError(Exception):
    """Base class for all synchronizer errors."""


class CredentialMissingError(LunchSyncError):
    """No API token is available from the configured credential store."""


class SourceError(LunchSyncError):
    """The wallet source failed to list accounts, balances or transactions."""


class LedgerAPIError(LunchSyncError):
    """The remote ledger rejected a request.

    ``messages`` holds the error strings reported by the server (or a single
    synthesized message for undecodable error bodies). ``status_code`` is the
    HTTP status, or ``None`` when the error was reported in a 2xx body.
    """

    def __init__(self, messages: Sequence[str], status_code: int | None = None) -> None:
        self.messages: tuple[str, ...] = tuple(messages)
        self.status_code = status_code
        super().__init__("API Error: " + ", ".join(self.messages))


class SyncCycleError(LunchSyncError):
    """A sync cycle aborted at ``stage`` because of ``cause``."""

    def __init__(self, stage: CycleStage, cause: BaseException) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(f"sync cycle failed during {stage.value}: {cause}")


__all__ = [
    "CredentialMissingError",
    "LedgerAPIError",
    "LunchSyncError",
    "SourceError",
    "SyncCycleError",
]
