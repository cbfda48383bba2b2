# Overview: Sequential invoice number allocation backed by the settings table.

from __future__ import annotations

from flask import current_app
from sqlalchemy import Integer, String, cast, update

from ..errors import NotFoundError, PersistenceError
from ..models import Setting
from .concurrency import transaction
from .settings_service import KEY_INVOICE_PREFIX, KEY_LAST_INVOICE_NUMBER

INVOICE_NUMBER_WIDTH = 6


def format_invoice_number(prefix: str, number: int, width: int = INVOICE_NUMBER_WIDTH) -> str:
    """
    Render an invoice number as prefix + zero-padded counter.

    The field widens past `width` digits instead of truncating:
    ("INV", 42) -> "INV000042", ("INV", 1000000) -> "INV1000000".
    """
    if number < 0:
        raise ValueError("invoice counter cannot be negative")
    return f"{prefix}{number:0{width}d}"


def _counter_value(session) -> int:
    raw = session.query(Setting.value).filter_by(key=KEY_LAST_INVOICE_NUMBER).scalar()
    if raw is None:
        raise NotFoundError("Setting not found: last_invoice_number")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise PersistenceError("Stored last_invoice_number is not an integer", details={"value": raw})


def next_invoice_number() -> str:
    """
    Atomically allocate the next invoice number.

    The counter row is bumped with a single relative UPDATE and the issued
    value is read back afterwards, inside the same transaction. The UPDATE
    takes the write lock and holds it until commit, so concurrent callers
    queue on the row instead of computing the same number. Joins an
    enclosing transaction when called from checkout, in which case a later
    rollback also returns the number.

    Raises:
        NotFoundError: if the invoice_prefix or last_invoice_number row is missing
        ConcurrencyError: if the database reports a lock or serialization conflict
    """
    with transaction() as session:
        prefix = session.query(Setting.value).filter_by(key=KEY_INVOICE_PREFIX).scalar()
        if prefix is None:
            raise NotFoundError("Setting not found: invoice_prefix")

        # Validation only; the increment itself is relative
        _counter_value(session)

        stmt = (
            update(Setting)
            .where(Setting.key == KEY_LAST_INVOICE_NUMBER)
            .values(value=cast(cast(Setting.value, Integer) + 1, String))
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        if not result.rowcount:
            raise NotFoundError("Setting not found: last_invoice_number")

        number = _counter_value(session)
        invoice_number = format_invoice_number(prefix, number)

    current_app.logger.info("Allocated invoice number %s", invoice_number)
    return invoice_number


def peek_last_invoice_number() -> int:
    """Last issued counter value, without allocating."""
    with transaction() as session:
        return _counter_value(session)


def reset_invoice_counter() -> None:
    """
    Set the invoice counter back to zero.

    Deliberate operator action. Numbers issued after a reset restart at 1;
    invoice numbers stay unique, so the prefix should be changed alongside.
    """
    with transaction() as session:
        stmt = (
            update(Setting)
            .where(Setting.key == KEY_LAST_INVOICE_NUMBER)
            .values(value="0")
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        if not result.rowcount:
            raise NotFoundError("Setting not found: last_invoice_number")

    current_app.logger.warning("Invoice counter reset to 0")
