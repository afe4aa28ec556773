# Overview: Unit-of-work helpers: row locking, write transactions, retry and rollback.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import LedgerError, StoreFailure


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; writers are serialized there by
    begin_write_transaction() instead.
    """
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    Take the database write lock up front on SQLite.

    pysqlite defers BEGIN until the first write, so two sessions could both
    read the same batch snapshot before either writes. BEGIN IMMEDIATE makes
    the second writer wait for the first to commit before it reads anything.
    """
    if db.engine.dialect.name != "sqlite":
        return
    conn = db.session.connection()
    if not conn.connection.dbapi_connection.in_transaction:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts, lost conditional updates).
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
            current_app.logger.warning(
                "Concurrency conflict (%s), retrying attempt %d/%d",
                exc.__class__.__name__, attempt + 2, attempts,
            )
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_atomic(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Run func as one all-or-nothing unit of work.

    - Opens the write transaction, runs func, commits.
    - Any exception rolls back every mutation func made.
    - Lock conflicts and stale rows are retried (whole unit, fresh reads).
    - Ledger errors propagate unchanged; store errors become StoreFailure.
    """
    if attempts is None:
        attempts = current_app.config.get("STOCKPOS_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("STOCKPOS_RETRY_BACKOFF", 0.1)

    def _op():
        begin_write_transaction()
        result = func()
        db.session.commit()
        return result

    try:
        return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
    except LedgerError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Store failure, unit of work rolled back")
        raise StoreFailure(
            f"Store failure: {exc.__class__.__name__}",
            details={"cause": str(exc.orig) if getattr(exc, "orig", None) else str(exc)},
        ) from exc
    except Exception:
        db.session.rollback()
        raise
