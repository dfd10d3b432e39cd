"""ORM models for the synchronizer's local record store."""

from .ledger import (
    SYNC_STATES,
    Base,
    LsAccount,
    LsCategoryMapping,
    LsSyncLog,
    LsTransaction,
    LsTransactionHistory,
)

__all__ = [
    "SYNC_STATES",
    "Base",
    "LsAccount",
    "LsCategoryMapping",
    "LsSyncLog",
    "LsTransaction",
    "LsTransactionHistory",
]
