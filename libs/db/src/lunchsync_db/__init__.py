"""lunchsync_db: record store library (SQLAlchemy/Alembic).

Public exports
--------------
- ``Base`` and ``metadata`` for Alembic autogenerate/targeting
- ORM models in ``lunchsync_db.models.ledger`` (re-exported for convenience)
- Engine/session helpers in ``lunchsync_db.client``
"""

from __future__ import annotations

from .models.ledger import (
    SYNC_STATES,
    Base,
    LsAccount,
    LsCategoryMapping,
    LsSyncLog,
    LsTransaction,
    LsTransactionHistory,
)

# Re-export SQLAlchemy metadata for Alembic's env.py
metadata = Base.metadata

__all__ = [
    "SYNC_STATES",
    "Base",
    "metadata",
    "LsAccount",
    "LsCategoryMapping",
    "LsSyncLog",
    "LsTransaction",
    "LsTransactionHistory",
]
