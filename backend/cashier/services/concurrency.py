# Overview: Transaction scoping, row locking and database error translation.

from __future__ import annotations

from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import CashierError, ConcurrencyError, PersistenceError, ValidationError
from ..extensions import db

_DEPTH_KEY = "cashier.transaction_depth"

# SQLSTATEs for serialization failure, deadlock and lock-not-available
_CONFLICT_SQLSTATES = {"40001", "40P01", "55P03"}
_CONFLICT_MARKERS = (
    "database is locked",
    "database table is locked",
    "deadlock",
    "could not serialize",
    "lock timeout",
)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    SQLite serializes writers at the database level instead.
    """
    return query.with_for_update()


def translate_db_error(exc: SQLAlchemyError) -> CashierError:
    """Map a SQLAlchemy failure onto the cashier error taxonomy."""
    if isinstance(exc, StaleDataError):
        return ConcurrencyError("Row was modified by a concurrent transaction")

    if isinstance(exc, DBAPIError):
        if exc.connection_invalidated:
            return PersistenceError("Database connection lost")

        orig = exc.orig
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        message = str(orig).lower()
        if sqlstate in _CONFLICT_SQLSTATES or any(m in message for m in _CONFLICT_MARKERS):
            return ConcurrencyError("Concurrent update conflict; retry the operation")

        if isinstance(exc, IntegrityError):
            return PersistenceError("Constraint violation")

    return PersistenceError("Database operation failed")


@contextmanager
def transaction():
    """
    Scoped transaction guard around the Flask-SQLAlchemy session.

    The outermost guard owns the transaction: it commits once on normal exit
    and rolls back on every other exit path. Nested guards join the enclosing
    transaction, so composite operations (checkout) commit or roll back as a
    single unit.

    SQLAlchemy errors leave the guard as ConcurrencyError or PersistenceError
    with the original exception chained. The driver message is logged, never
    returned to the caller. Integers too wide for the column type surface as
    ValidationError.
    """
    session = db.session
    depth = session.info.get(_DEPTH_KEY, 0)

    if depth:
        session.info[_DEPTH_KEY] = depth + 1
        try:
            yield session
        finally:
            session.info[_DEPTH_KEY] = depth
        return

    session.info[_DEPTH_KEY] = 1
    committed = False
    try:
        yield session
        session.commit()
        committed = True
    except CashierError:
        raise
    except SQLAlchemyError as exc:
        error = translate_db_error(exc)
        current_app.logger.warning(
            "Transaction rolled back: %s (%s: %s)",
            error.message,
            exc.__class__.__name__,
            getattr(exc, "orig", None) or exc,
        )
        raise error from exc
    except OverflowError as exc:
        current_app.logger.warning("Transaction rolled back: %s", exc)
        raise ValidationError("Numeric value out of range") from exc
    finally:
        session.info[_DEPTH_KEY] = 0
        if not committed:
            session.rollback()
