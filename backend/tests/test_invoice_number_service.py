import pytest

from cashier.errors import NotFoundError, PersistenceError
from cashier.extensions import db
from cashier.models import Setting
from cashier.services import invoice_number_service
from cashier.services.invoice_number_service import format_invoice_number

from conftest import set_setting


class TestFormatInvoiceNumber:
    def test_zero_pads_to_six_digits(self):
        assert format_invoice_number("INV", 42) == "INV000042"
        assert format_invoice_number("INV", 1) == "INV000001"
        assert format_invoice_number("INV", 999999) == "INV999999"

    def test_widens_instead_of_truncating(self):
        assert format_invoice_number("INV", 1000000) == "INV1000000"
        assert format_invoice_number("INV", 12345678) == "INV12345678"

    def test_empty_prefix(self):
        assert format_invoice_number("", 7) == "000007"

    def test_negative_counter_rejected(self):
        with pytest.raises(ValueError):
            format_invoice_number("INV", -1)


class TestNextInvoiceNumber:
    def test_increments_persisted_counter(self, db_session):
        set_setting("last_invoice_number", "41")

        assert invoice_number_service.next_invoice_number() == "INV000042"
        assert invoice_number_service.next_invoice_number() == "INV000043"
        assert invoice_number_service.peek_last_invoice_number() == 43

    def test_uses_current_prefix(self, db_session):
        set_setting("invoice_prefix", "POS-")

        assert invoice_number_service.next_invoice_number() == "POS-000001"

    def test_counter_past_six_digits(self, db_session):
        set_setting("last_invoice_number", "999999")

        assert invoice_number_service.next_invoice_number() == "INV1000000"

    def test_missing_prefix(self, db_session):
        db_session.query(Setting).filter_by(key="invoice_prefix").delete()
        db_session.commit()

        with pytest.raises(NotFoundError):
            invoice_number_service.next_invoice_number()

    def test_missing_counter(self, db_session):
        db_session.query(Setting).filter_by(key="last_invoice_number").delete()
        db_session.commit()

        with pytest.raises(NotFoundError):
            invoice_number_service.next_invoice_number()
        with pytest.raises(NotFoundError):
            invoice_number_service.peek_last_invoice_number()

    def test_unreadable_counter_is_left_untouched(self, db_session):
        set_setting("last_invoice_number", "forty-one")

        with pytest.raises(PersistenceError):
            invoice_number_service.next_invoice_number()
        with pytest.raises(PersistenceError):
            invoice_number_service.peek_last_invoice_number()

        value = db_session.query(Setting.value).filter_by(key="last_invoice_number").scalar()
        assert value == "forty-one"


class TestResetInvoiceCounter:
    def test_reset_sets_counter_to_zero(self, db_session):
        set_setting("last_invoice_number", "120")

        invoice_number_service.reset_invoice_counter()

        assert invoice_number_service.peek_last_invoice_number() == 0
        assert invoice_number_service.next_invoice_number() == "INV000001"

    def test_reset_without_counter_row(self, db_session):
        db_session.query(Setting).filter_by(key="last_invoice_number").delete()
        db_session.commit()

        with pytest.raises(NotFoundError):
            invoice_number_service.reset_invoice_counter()
        assert db.session.query(Setting).filter_by(key="last_invoice_number").count() == 0
