# Overview: Retry and row-locking helpers shared by the write paths.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import PersistenceError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). The session is rolled back before each
    retry so `func` always starts from a clean transaction.
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


def run_guarded(func, *, action: str, attempts: int = 3):
    """
    Run a write operation with retry and map storage failures to PersistenceError.

    Business errors raised by `func` (ValesError subclasses) pass through
    untouched. Any SQLAlchemyError left after retries rolls the session
    back, is logged with `action` as context, and is re-raised as a generic
    PersistenceError so no storage detail reaches the caller.
    """
    try:
        return run_with_retry(func, attempts=attempts)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Database error while %s", action)
        raise PersistenceError() from exc
