# Overview: Row locking and retry helpers for writes that race on shared rows.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrencyConflictError
from ..extensions import db

logger = logging.getLogger(__name__)

# Failures that mean "someone else wrote the same row first".
RETRYABLE_ERRORS = (OperationalError, StaleDataError, IntegrityError)

# Unique keys two writers can race to insert first (StockLevel rows, document counters).
# Any other IntegrityError is a real bug and propagates unchanged.
RACING_UNIQUE_CONSTRAINTS = ("uq_stock_levels_org_product_warehouse", "uq_doc_sequences_org_type")
RACING_TABLES = ("stock_levels", "document_sequences")

_UNIT_DEPTH_KEY = "unit_of_work_depth"
_DEFERRED_KEY = "deferred_until_unit_ends"


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The version_id column on the locked row catches what the lock misses.
    """
    return query.with_for_update()


def is_unique_race(exc: IntegrityError) -> bool:
    message = str(getattr(exc, "orig", exc))
    if any(name in message for name in RACING_UNIQUE_CONSTRAINTS):
        return True
    # SQLite reports the columns, not the constraint name
    if "UNIQUE constraint failed" not in message:
        return False
    return any(f"{table}." in message for table in RACING_TABLES)


def run_with_retry(func, *, attempts: int = 2, backoff_base: float = 0.05,
                   retry_on: tuple = RETRYABLE_ERRORS):
    """
    Execute a unit of work, retrying once on a concurrency failure.

    func must be self-contained (do its reads, writes and commit) so that
    a rollback followed by a second call starts from a clean session.
    A conflict that survives every attempt surfaces as ConcurrencyConflictError.
    An IntegrityError counts as a conflict only for the racing unique keys above.
    """
    for attempt in range(attempts):
        try:
            return func()
        except retry_on as exc:
            db.session.rollback()
            if isinstance(exc, IntegrityError) and not is_unique_race(exc):
                raise
            if attempt >= attempts - 1:
                logger.warning("Concurrency conflict persisted after %d attempts: %s", attempts, exc)
                raise ConcurrencyConflictError(
                    "The record was modified concurrently, please retry"
                ) from exc
            logger.info("Concurrency conflict, retrying (attempt %d): %s", attempt + 1, exc)
            time.sleep(backoff_base * (2 ** attempt))


def in_unit_of_work() -> bool:
    """True while run_in_transaction is executing on the current session."""
    return db.session.info.get(_UNIT_DEPTH_KEY, 0) > 0


def defer_until_unit_ends(obj) -> None:
    """
    Queue a model instance to be written after the enclosing unit of work
    ends, whether it committed or rolled back.
    """
    db.session.info.setdefault(_DEFERRED_KEY, []).append(obj)


def _write_deferred() -> None:
    deferred = db.session.info.pop(_DEFERRED_KEY, [])
    if deferred:
        db.session.add_all(deferred)
        db.session.commit()


def run_in_transaction(func, *, attempts: int = 2):
    """
    Run func as one unit of work: commit on success, roll back on any
    error so no partial write stays visible in the session, and retry
    once on a concurrency failure.

    Nothing inside func may commit on its own. Side records that must
    survive a rollback go through defer_until_unit_ends.
    """
    def _op():
        try:
            result = func()
            db.session.commit()
            return result
        except Exception:
            db.session.rollback()
            raise

    info = db.session.info
    info[_UNIT_DEPTH_KEY] = info.get(_UNIT_DEPTH_KEY, 0) + 1
    try:
        return run_with_retry(_op, attempts=attempts)
    finally:
        info[_UNIT_DEPTH_KEY] -= 1
        if not info[_UNIT_DEPTH_KEY]:
            _write_deferred()
