"""Public interface for the ``lunchsync`` package.

Symbol re-exports only; the sync cycle lives in :mod:`lunchsync.orchestrator`
and the console entry point in :mod:`lunchsync.cli`.
"""

from .config import Settings, SyncConfig
from .errors import (
    CredentialMissingError,
    LedgerAPIError,
    LunchSyncError,
    SourceError,
    SyncCycleError,
)
from .models import (
    AccountPatch,
    Balance,
    CandidateAccount,
    CandidateTransaction,
    CycleStage,
    PreloadedData,
    RemoteCategoryId,
    RetryPolicy,
    SyncProgress,
    SyncState,
    TransactionPatch,
    normalize_balance,
)
from .orchestrator import CycleReport, SyncOrchestrator
from .store import RecordStore

__all__ = [
    # Entry points
    "SyncOrchestrator",
    "CycleReport",
    "RecordStore",
    # Configuration
    "Settings",
    "SyncConfig",
    "RetryPolicy",
    # Models
    "AccountPatch",
    "Balance",
    "CandidateAccount",
    "CandidateTransaction",
    "CycleStage",
    "PreloadedData",
    "RemoteCategoryId",
    "SyncProgress",
    "SyncState",
    "TransactionPatch",
    "normalize_balance",
    # Errors
    "CredentialMissingError",
    "LedgerAPIError",
    "LunchSyncError",
    "SourceError",
    "SyncCycleError",
]
