import pytest

from cashier.errors import (
    InsufficientPaymentError,
    InvoiceAlreadyExistsError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from cashier.models import Invoice
from cashier.services import invoice_number_service, invoice_service, sales_service, settings_service
from cashier.services.invoice_service import compute_tax_cents, compute_totals
from cashier.services.sales_service import CartItem
from cashier.validation import MAX_PAYMENT_CENTS

from conftest import set_setting


@pytest.fixture
def sale_of_100(store_settings, make_product):
    """A recorded sale with a 100.00 subtotal."""
    product = make_product("Headphones", price_cents=5000, stock=10)
    return sales_service.record_sale([CartItem(product.id, 2)])


class TestTaxArithmetic:
    def test_ten_percent_of_one_hundred(self):
        totals = compute_totals(10000, 1000)
        assert totals.tax_amount_cents == 1000
        assert totals.total_amount_cents == 11000

    def test_rounds_half_up_to_the_cent(self):
        # 0.05 * 10% = 0.005 -> 0.01
        assert compute_tax_cents(5, 1000) == 1
        # 0.04 * 10% = 0.004 -> 0.00
        assert compute_tax_cents(4, 1000) == 0
        # 19.99 * 8.25% = 1.649175 -> 1.65
        assert compute_tax_cents(1999, 825) == 165

    def test_zero_rate(self):
        assert compute_totals(12345, 0).total_amount_cents == 12345

    def test_negative_inputs_rejected(self):
        with pytest.raises(ValidationError):
            compute_tax_cents(-1, 1000)


class TestComposeInvoice:
    def test_invoice_arithmetic_and_change(self, sale_of_100):
        invoice = invoice_service.compose_invoice(sale_of_100, 15000, invoice_number="INV000042")

        assert invoice.invoice_number == "INV000042"
        assert invoice.subtotal_cents == 10000
        assert invoice.tax_rate_bps == 1000
        assert invoice.tax_amount_cents == 1000
        assert invoice.total_amount_cents == 11000
        assert invoice.payment_amount_cents == 15000
        assert invoice.change_amount_cents == 4000
        assert invoice.to_dict()["tax_percentage"] == "10.00"

    def test_exact_payment_gives_zero_change(self, sale_of_100):
        invoice = invoice_service.compose_invoice(sale_of_100, 11000, invoice_number="INV000001")
        assert invoice.change_amount_cents == 0

    def test_snapshots_store_identity(self, sale_of_100):
        invoice = invoice_service.compose_invoice(sale_of_100, 11000, invoice_number="INV000001")

        assert (invoice.store_name, invoice.store_address, invoice.store_phone) == (
            "Corner Shop",
            "1 Market Street",
            "555-0100",
        )

    def test_allocates_number_when_omitted(self, sale_of_100):
        set_setting("last_invoice_number", "41")

        invoice = invoice_service.compose_invoice(sale_of_100, 11000)

        assert invoice.invoice_number == "INV000042"
        assert invoice_number_service.peek_last_invoice_number() == 42

    def test_insufficient_payment_writes_nothing(self, sale_of_100, db_session):
        set_setting("last_invoice_number", "41")

        with pytest.raises(InsufficientPaymentError) as exc_info:
            invoice_service.compose_invoice(sale_of_100, 10000)

        assert exc_info.value.details["total_amount_cents"] == 11000
        assert exc_info.value.details["shortfall_cents"] == 1000
        assert db_session.query(Invoice).count() == 0
        assert invoice_number_service.peek_last_invoice_number() == 41

    def test_insufficient_payment_is_a_validation_error(self, sale_of_100):
        with pytest.raises(ValidationError):
            invoice_service.compose_invoice(sale_of_100, 0, invoice_number="INV000001")

    @pytest.mark.parametrize("payment", [-1, 100.5, "15000", None, MAX_PAYMENT_CENTS + 1, 10**20])
    def test_bad_payment(self, sale_of_100, payment):
        with pytest.raises(ValidationError):
            invoice_service.compose_invoice(sale_of_100, payment, invoice_number="INV000001")

    @pytest.mark.parametrize("sale_id", [[1], "1", True, None, 1.0])
    def test_malformed_sale_id(self, store_settings, sale_id):
        with pytest.raises(ValidationError):
            invoice_service.compose_invoice(sale_id, 100, invoice_number="INV000001")

    def test_unknown_sale(self, store_settings):
        with pytest.raises(NotFoundError):
            invoice_service.compose_invoice(999, 100, invoice_number="INV000001")

    def test_second_invoice_for_same_sale_rejected(self, sale_of_100, db_session):
        invoice_service.compose_invoice(sale_of_100, 11000, invoice_number="INV000001")

        with pytest.raises(InvoiceAlreadyExistsError):
            invoice_service.compose_invoice(sale_of_100, 11000, invoice_number="INV000002")
        assert db_session.query(Invoice).count() == 1

    def test_missing_settings(self, sale_of_100, db_session):
        from cashier.models import Setting

        db_session.query(Setting).filter_by(key="tax_percentage").delete()
        db_session.commit()

        with pytest.raises(NotFoundError):
            invoice_service.compose_invoice(sale_of_100, 20000, invoice_number="INV000001")


class TestHistoricalImmutability:
    def test_settings_changes_do_not_touch_issued_invoices(self, sale_of_100, make_product):
        issued = invoice_service.compose_invoice(sale_of_100, 15000, invoice_number="INV000001")
        issued_id = issued.id

        settings_service.update_settings({
            "store_name": "Renamed Shop",
            "store_address": "99 New Road",
            "tax_percentage": "20",
        })

        invoice = invoice_service.get_invoice(issued_id)
        assert invoice.store_name == "Corner Shop"
        assert invoice.store_address == "1 Market Street"
        assert invoice.tax_rate_bps == 1000
        assert invoice.tax_amount_cents == 1000
        assert invoice.total_amount_cents == 11000

        # New invoices pick up the new values
        product = make_product("Cable", price_cents=10000, stock=1)
        sale_id = sales_service.record_sale([CartItem(product.id, 1)])
        fresh = invoice_service.compose_invoice(sale_id, 12000, invoice_number="INV000002")
        assert fresh.store_name == "Renamed Shop"
        assert fresh.tax_amount_cents == 2000


class TestInvoiceLookup:
    def test_lookup_by_number_and_sale(self, sale_of_100):
        invoice = invoice_service.compose_invoice(sale_of_100, 11000, invoice_number="INV000007")

        assert invoice_service.get_invoice_by_number("INV000007").id == invoice.id
        assert invoice_service.get_invoice_for_sale(sale_of_100).id == invoice.id

    def test_lookup_misses(self, db_session):
        with pytest.raises(NotFoundError):
            invoice_service.get_invoice(1)
        with pytest.raises(NotFoundError):
            invoice_service.get_invoice_by_number("NOPE")
        with pytest.raises(NotFoundError):
            invoice_service.get_invoice_for_sale(1)


class TestCounterResetReuse:
    def test_reused_number_is_rejected_and_returns_the_number(self, store_settings, make_product, db_session):
        product = make_product("Gum", price_cents=100, stock=10)
        first_sale = sales_service.record_sale([CartItem(product.id, 1)])
        first = invoice_service.compose_invoice(first_sale, 110)
        assert first.invoice_number == "INV000001"

        invoice_number_service.reset_invoice_counter()
        second_sale = sales_service.record_sale([CartItem(product.id, 1)])

        with pytest.raises(PersistenceError) as exc_info:
            invoice_service.compose_invoice(second_sale, 110)

        assert exc_info.value.message == "Constraint violation"
        assert exc_info.value.details == {}
        assert invoice_number_service.peek_last_invoice_number() == 0
        assert db_session.query(Invoice).count() == 1

    def test_new_prefix_after_reset_keeps_numbers_unique(self, store_settings, make_product):
        product = make_product("Gum", price_cents=100, stock=10)
        invoice_service.compose_invoice(sales_service.record_sale([CartItem(product.id, 1)]), 110)

        invoice_number_service.reset_invoice_counter()
        settings_service.update_settings({"invoice_prefix": "INV2-"})

        invoice = invoice_service.compose_invoice(sales_service.record_sale([CartItem(product.id, 1)]), 110)
        assert invoice.invoice_number == "INV2-000001"
