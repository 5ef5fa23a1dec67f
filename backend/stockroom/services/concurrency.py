# Overview: Transaction boundary helpers shared by every stock-mutating service.

from __future__ import annotations

import time

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import PersistenceError
from ..extensions import db
from ..validation import ConflictError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Optimistic locking (version_id_col) still catches conflicts on SQLite.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). The session is rolled back before each
    retry so `func` always starts from a clean unit of work.
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


def run_in_transaction(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run `func()` as one atomic unit of work and commit it.

    - Commits on success and returns func's result.
    - Rolls back on ANY exception, including KeyboardInterrupt and timeouts
      raised into the worker, then re-raises.
    - Retries the whole unit on lock/optimistic-lock conflicts.
    - Domain and validation errors are never retried.
    - Constraint violations surface as ConflictError, residual SQLAlchemy
      failures as PersistenceError.
    """
    def _attempt():
        try:
            result = func()
            db.session.commit()
            return result
        except BaseException:
            db.session.rollback()
            raise

    try:
        return run_with_retry(_attempt, attempts=attempts, backoff_base=backoff_base)
    except (OperationalError, StaleDataError) as exc:
        raise PersistenceError(
            "The change conflicted with a concurrent update; please retry",
            {"reason": type(exc).__name__},
        ) from exc
    except IntegrityError as exc:
        raise ConflictError("Change conflicts with existing data") from exc
    except SQLAlchemyError as exc:
        raise PersistenceError("Database error while saving changes", {"reason": type(exc).__name__}) from exc
