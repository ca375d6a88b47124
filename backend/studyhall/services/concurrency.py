# Overview: Locking, retry and transaction helpers shared by the write paths.

from __future__ import annotations

import time

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import ConflictError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, PostgreSQL honors it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). `func` must redo all of its work on
    each attempt since the session is rolled back in between.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def _is_seat_clash(exc: IntegrityError) -> bool:
    text = str(exc.orig)
    return "uq_seat_assignments_seat_shift" in text or "seat_assignments.seat_id" in text


def run_in_transaction(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run `func` and commit, as one unit of work.

    Any exception rolls the session back before propagating. A unique
    violation on seat_assignments means another request took the same
    (seat, shift) between our check and our insert; it surfaces as
    ConflictError like the in-transaction check would have.
    """
    def _op():
        try:
            result = func()
            db.session.commit()
            return result
        except IntegrityError as exc:
            db.session.rollback()
            if _is_seat_clash(exc):
                raise ConflictError("Seat is already assigned for the selected shift") from exc
            raise
        except (OperationalError, StaleDataError):
            raise
        except Exception:
            db.session.rollback()
            raise

    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
