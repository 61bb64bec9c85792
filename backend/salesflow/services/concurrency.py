# Overview: Service-layer operations for concurrency; locks, retries and units of work.

"""
Concurrency discipline for record-store writes.

Every lifecycle operation is a read-modify-write over one or more
collections. Operations run through run_in_unit(), which:

1. takes a named in-process lock for each collection touched, always in
   sorted order so two units never wait on each other in a cycle;
2. runs the operation on the request's SQLAlchemy session;
3. commits on success, rolls back on any exception;
4. retries transient lock/deadlock failures with exponential backoff;
5. converts remaining SQLAlchemy errors into StorageFailure.

Cross-collection side effects (request approval creating an item, payment
recording touching an invoice) share one unit, so they land together or not
at all.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager, ExitStack

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import StorageFailure
from ..extensions import db


_locks: dict[str, threading.RLock] = {}
_locks_guard = threading.Lock()


def _named_lock(name: str) -> threading.RLock:
    with _locks_guard:
        lock = _locks.get(name)
        if lock is None:
            lock = threading.RLock()
            _locks[name] = lock
        return lock


@contextmanager
def collection_lock(*names: str):
    """
    Hold the in-process locks for the given collections.

    Locks are re-entrant, so a unit may call helpers that lock a collection
    it already holds.
    """
    with ExitStack() as stack:
        for name in sorted(set(names)):
            stack.enter_context(_named_lock(name))
        yield


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
    (optimistic locking conflicts).
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


@contextmanager
def unit_of_work(*collections: str):
    """Lock collections, then commit or roll back the session as one unit."""
    with collection_lock(*collections):
        try:
            yield db.session
            db.session.commit()
        except BaseException:
            db.session.rollback()
            raise


def run_in_unit(func, *collections: str, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func() inside a unit of work over the named collections.

    Domain errors raised by func propagate unchanged (after rollback).
    """
    def _op():
        with unit_of_work(*collections):
            return func()

    try:
        return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
    except SQLAlchemyError as exc:
        raise StorageFailure(f"Record store write failed: {exc.__class__.__name__}") from exc


def run_read(func):
    """Run a read-only query, mapping store errors to StorageFailure."""
    try:
        return func()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StorageFailure(f"Record store read failed: {exc.__class__.__name__}") from exc
