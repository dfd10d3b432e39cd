"""Source classification codes and their remote category mappings.

Each distinct classification code seen on an incoming transaction gets one
``LsCategoryMapping`` row. New rows start unmapped (empty remote id) so the
user can map them later; mapping to :attr:`RemoteCategoryId.SKIP` records an
explicit "do not categorize".
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError

from lunchsync_db.models.ledger import LsCategoryMapping

from .cycle_log import CycleLog
from .ledger_models import LedgerCategory
from .logging_setup import get_logger
from .models import CandidateTransaction, RemoteCategoryId, SyncState, is_categorizable
from .store import RecordStore

logger = get_logger("lunchsync.categories")

UNKNOWN_CATEGORY_NAME = "Unknown Category"


def resolve_categories(
    store: RecordStore,
    transactions: Iterable[CandidateTransaction],
    *,
    log: CycleLog | None = None,
) -> dict[str, LsCategoryMapping]:
    """Return a code -> mapping table for every code in ``transactions``.

    Missing mappings are created and committed one code at a time; a code
    whose insert fails is logged and left out of the result.
    """

    first_names: dict[str, str | None] = {}
    for tx in transactions:
        code = (tx.classification_code or "").strip()
        if code and code not in first_names:
            first_names[code] = tx.classification_name

    table: dict[str, LsCategoryMapping] = {}
    for code, name in first_names.items():
        existing = store.get_mapping(code)
        if existing is not None:
            table[code] = existing
            continue
        mapping = LsCategoryMapping(
            code=code,
            local_name=(name or "").strip() or UNKNOWN_CATEGORY_NAME,
            remote_category_id=RemoteCategoryId.UNMAPPED.value,
            remote_category_name="",
        )
        try:
            store.add(mapping)
            store.save()
        except SQLAlchemyError as exc:
            message = f"Failed to save category {code}: {exc}"
            if log is not None:
                log.add(message)
            else:
                logger.warning(message)
            continue
        table[code] = mapping
    return table


def apply_categories(
    transactions: Sequence[CandidateTransaction],
    table: Mapping[str, LsCategoryMapping],
    *,
    enabled: bool,
) -> list[CandidateTransaction]:
    """Copy mapped remote categories onto the candidates.

    Nothing is copied when ``enabled`` is False or the mapping is unmapped or
    skipped.
    """

    if not enabled:
        return list(transactions)
    out: list[CandidateTransaction] = []
    for tx in transactions:
        mapping = table.get(tx.classification_code or "")
        if mapping is not None and is_categorizable(mapping.remote_category_id):
            tx = replace(
                tx,
                remote_category_id=mapping.remote_category_id,
                remote_category_name=mapping.remote_category_name,
            )
        out.append(tx)
    return out


def list_mappings(store: RecordStore, *, unmapped_only: bool = False) -> list[LsCategoryMapping]:
    return store.mappings(unmapped_only=unmapped_only)


def _require_mapping(store: RecordStore, code: str) -> LsCategoryMapping:
    mapping = store.get_mapping(code)
    if mapping is None:
        raise KeyError(f"no category mapping for code {code!r}")
    return mapping


def assign_remote_category(
    store: RecordStore,
    code: str,
    category: LedgerCategory,
    *,
    requeue: bool = True,
    tag: str = "MAP",
) -> int:
    """Map ``code`` to a remote category.

    With ``requeue`` set, stored transactions carrying the code that have no
    remote category yet take the new category and go back to ``pending`` so
    the next push sends it. Their ``remote_id`` is cleared; the push finds the
remote record again by external id. Returns the number of requeued transactions.
    """

    mapping = _require_mapping(store, code)
    mapping.remote_category_id = str(category.id)
    mapping.remote_category_name = category.name
    mapping.remote_description = category.description or ""
    mapping.exclude_from_budget = category.exclude_from_budget
    mapping.exclude_from_totals = category.exclude_from_totals

    requeued = 0
    if requeue:
        now = datetime.now(UTC)
        for row in store.transactions_with_code(code):
            if is_categorizable(row.remote_category_id):
                continue
            row.remote_category_id = mapping.remote_category_id
            row.remote_category_name = mapping.remote_category_name
            row.sync_state = SyncState.PENDING.value
            row.remote_id = ""
            store.append_history(
                row, f"remote category: (none) -> {category.name}", source_tag=tag, at=now
            )
            requeued += 1
    store.save()
    logger.info("mapped %s to %s (%d requeued)", code, category.name, requeued)
    return requeued


def skip_category(store: RecordStore, code: str) -> None:
    mapping = _require_mapping(store, code)
    mapping.remote_category_id = RemoteCategoryId.SKIP.value
    mapping.remote_category_name = ""
    mapping.remote_description = ""
    store.save()


def clear_remote_category(store: RecordStore, code: str) -> None:
    mapping = _require_mapping(store, code)
    mapping.remote_category_id = RemoteCategoryId.UNMAPPED.value
    mapping.remote_category_name = ""
    mapping.remote_description = ""
    mapping.exclude_from_budget = False
    mapping.exclude_from_totals = False
    store.save()


__all__ = [
    "UNKNOWN_CATEGORY_NAME",
    "apply_categories",
    "assign_remote_category",
    "clear_remote_category",
    "list_mappings",
    "resolve_categories",
    "skip_category",
]
