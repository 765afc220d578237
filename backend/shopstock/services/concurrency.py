# Overview: Transaction and row-locking helpers shared by the write paths.

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrentModificationError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    populate_existing() makes sure the locked read replaces any stale copy
    already sitting in the identity map.
    """
    return query.with_for_update().populate_existing()


def begin_write_transaction() -> None:
    """
    Take the database write lock up front on SQLite.

    SQLite has no row locks: BEGIN IMMEDIATE serializes writers so the
    read-check-write sequence of a sale cannot interleave with another
    request. Skipped when the driver connection already has a transaction
    open (e.g. autoflush started one), in which case that transaction is
    already holding the lock. Other backends rely on lock_for_update().
    """
    if db.engine.dialect.name != "sqlite":
        return
    driver_conn = db.session.connection().connection.driver_connection
    if not driver_conn.in_transaction:
        db.session.execute(text("BEGIN IMMEDIATE"))


def commit_or_conflict(what: str) -> None:
    """
    Commit the current unit of work.

    Optimistic version conflicts (another request changed the same row
    after we read it) surface as ConcurrentModificationError. Nothing is
    retried; the caller resubmits.
    """
    try:
        db.session.commit()
    except StaleDataError:
        db.session.rollback()
        raise ConcurrentModificationError(
            f"{what} was modified by another request, please retry",
        )


def is_check_violation(exc: IntegrityError, constraint: str) -> bool:
    """True when an IntegrityError came from the named CHECK constraint."""
    return constraint in str(getattr(exc, "orig", exc))
