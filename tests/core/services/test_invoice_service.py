"""Tests for InvoiceService - the result-returning boundary."""

from unittest.mock import Mock, patch
from uuid import uuid4

import pytest

from core.exceptions import RenderError
from core.models import InvoiceStatus
from core.services.invoice_service import InvoiceService
from core.services.settings_resolver import SettingsResolver
from fakes import make_order_row


@pytest.fixture
def generated(invoice_service, paid_order):
    result = invoice_service.generate_invoice(paid_order)
    assert result.success
    return result


# =============================================================================
# GENERATE
# =============================================================================


class TestGenerateInvoice:

    def test_success(self, invoice_service, paid_order):
        result = invoice_service.generate_invoice(paid_order)

        assert result.success is True
        assert result.message == "Invoice generated successfully"
        assert result.invoice_number.startswith("INV-")
        assert result.already_existed is False
        assert result.error_code is None

    def test_existing_invoice_is_success(self, invoice_service, paid_order, generated):
        result = invoice_service.generate_invoice(paid_order)

        assert result.success is True
        assert result.already_existed is True
        assert result.message == "Invoice already exists"
        assert result.invoice_id == generated.invoice_id

    def test_order_not_found(self, invoice_service):
        result = invoice_service.generate_invoice(uuid4())

        assert result.success is False
        assert result.message == "Order not found"
        assert result.error_code == "NOT_FOUND"

    def test_unpaid_order(self, invoice_service, order_store):
        order_id = order_store.add(make_order_row(payment_status="pending"))

        result = invoice_service.generate_invoice(order_id)

        assert result.success is False
        assert result.message == "Invoice can only be generated for completed payments"
        assert result.error_code == "PRECONDITION_FAILED"

    def test_warnings_surface(self, invoice_service, settings_store, paid_order):
        settings_store.unavailable = True

        result = invoice_service.generate_invoice(paid_order)

        assert result.success is True
        assert result.warnings

    def test_render_failure(self, invoice_service, paid_order, renderer):
        with patch.object(renderer, "render", side_effect=RenderError("Could not render invoice")):
            result = invoice_service.generate_invoice(paid_order)

        assert result.success is False
        assert result.error_code == "RENDER_FAILED"

    def test_unexpected_error_becomes_internal_error(self, invoice_service, paid_order, lifecycle, caplog):
        with patch.object(lifecycle, "generate", side_effect=KeyError("billing_city")):
            result = invoice_service.generate_invoice(paid_order)

        assert result.success is False
        assert result.message == "Failed to generate invoice"
        assert result.error_code == "INTERNAL_ERROR"
        assert "billing_city" in caplog.text


class TestBulkGenerateInvoices:

    def test_partial_success(self, invoice_service, order_store, paid_order):
        unpaid = order_store.add(make_order_row(order_number="ORD-2", payment_status="pending"))

        result = invoice_service.bulk_generate_invoices([paid_order, unpaid])

        assert result.success is True
        assert result.count == 1
        assert result.message == "1 of 2 invoices generated successfully"
        assert [r.success for r in result.results] == [True, False]

    def test_all_failed(self, invoice_service):
        result = invoice_service.bulk_generate_invoices([uuid4(), uuid4()])

        assert result.success is False
        assert result.count == 0
        assert result.message == "0 of 2 invoices generated successfully"
        assert all(r.error_code == "NOT_FOUND" for r in result.results)


# =============================================================================
# RAISE
# =============================================================================


class TestRaiseInvoice:

    def test_success(self, invoice_service, generated):
        result = invoice_service.raise_invoice(generated.invoice_id)

        assert result.success is True
        assert result.invoice_id == generated.invoice_id

    def test_already_raised(self, invoice_service, generated):
        invoice_service.raise_invoice(generated.invoice_id)

        result = invoice_service.raise_invoice(generated.invoice_id)

        assert result.success is False
        assert result.error_code == "PRECONDITION_FAILED"
        assert result.message == f"Invoice {generated.invoice_number} is already raised and cannot be raised"

    def test_not_found(self, invoice_service):
        result = invoice_service.raise_invoice(31337)

        assert result.success is False
        assert result.error_code == "NOT_FOUND"


class TestBulkRaiseInvoices:

    def test_counts(self, invoice_service, order_store):
        ids = [
            invoice_service.generate_invoice(order_store.add(make_order_row(order_number=f"ORD-{n}"))).invoice_id
            for n in range(3)
        ]
        invoice_service.raise_invoice(ids[2])

        result = invoice_service.bulk_raise_invoices(ids)

        assert result.success is True
        assert result.count == 2
        assert result.message == "2 invoices raised successfully"

    def test_singular_message(self, invoice_service, generated):
        assert invoice_service.bulk_raise_invoices([generated.invoice_id]).message == "1 invoice raised successfully"

    def test_nothing_to_raise_still_succeeds(self, invoice_service):
        result = invoice_service.bulk_raise_invoices([1, 2])

        assert result.success is True
        assert result.count == 0


# =============================================================================
# DOCUMENTS
# =============================================================================


class TestPreviewInvoice:

    def test_preview_any_status(self, invoice_service, generated):
        result = invoice_service.preview_invoice(generated.invoice_id)

        assert result.success is True
        assert result.message == "Invoice preview generated"
        assert result.pdf.startswith("data:application/pdf;base64,")
        assert result.invoice_number == generated.invoice_number

    def test_missing(self, invoice_service):
        result = invoice_service.preview_invoice(5)

        assert result.success is False
        assert result.error_code == "NOT_FOUND"


class TestDownloadInvoice:

    def test_download_raised(self, invoice_service, generated, invoice_table):
        invoice_service.raise_invoice(generated.invoice_id)

        result = invoice_service.download_invoice(generated.invoice_id)

        assert result.success is True
        assert result.message == "Invoice downloaded successfully"
        assert result.pdf == invoice_table.get(generated.invoice_id)["pdf_data_uri"]
        assert invoice_table.get(generated.invoice_id)["status"] == InvoiceStatus.DOWNLOADED.value

    def test_download_generated_fails(self, invoice_service, generated):
        result = invoice_service.download_invoice(generated.invoice_id)

        assert result.success is False
        assert result.error_code == "PRECONDITION_FAILED"
        assert result.pdf is None

    def test_wrong_order(self, invoice_service, generated):
        invoice_service.raise_invoice(generated.invoice_id)

        result = invoice_service.download_invoice(generated.invoice_id, order_id=uuid4())

        assert result.error_code == "NOT_FOUND"


class TestGetInvoiceByOrderId:

    def test_issued_invoice(self, invoice_service, paid_order, generated):
        invoice_service.raise_invoice(generated.invoice_id)

        result = invoice_service.get_invoice_by_order_id(paid_order)

        assert result.success is True
        assert result.invoice.invoice_number == generated.invoice_number

    def test_generated_invoice_hidden(self, invoice_service, paid_order, generated):
        result = invoice_service.get_invoice_by_order_id(paid_order)

        assert result.success is False
        assert result.message == "No invoice available for this order"
        assert result.error_code == "NOT_FOUND"


class TestDeleteInvoice:

    def test_delete_generated(self, invoice_service, generated):
        result = invoice_service.delete_invoice(generated.invoice_id)

        assert result.success is True
        assert result.message == f"Invoice {generated.invoice_number} deleted"

    def test_delete_raised_fails(self, invoice_service, generated):
        invoice_service.raise_invoice(generated.invoice_id)

        result = invoice_service.delete_invoice(generated.invoice_id)

        assert result.success is False
        assert result.error_code == "PRECONDITION_FAILED"
        assert "cannot be deleted" in result.message


# =============================================================================
# LISTING AND SETTINGS
# =============================================================================


class TestListings:

    def test_eligible_orders(self, invoice_service, paid_order):
        result = invoice_service.list_eligible_orders()

        assert result.success is True
        assert [o.id for o in result.orders] == [paid_order]

    def test_generated_and_issued(self, invoice_service, order_store):
        first = invoice_service.generate_invoice(order_store.add(make_order_row(order_number="ORD-1")))
        second = invoice_service.generate_invoice(order_store.add(make_order_row(order_number="ORD-2")))
        invoice_service.raise_invoice(first.invoice_id)

        generated = invoice_service.list_generated_invoices()
        issued = invoice_service.list_issued_invoices()

        assert [i.id for i in generated.invoices] == [second.invoice_id]
        assert [i.id for i in issued.invoices] == [first.invoice_id]

    def test_store_outage_becomes_failed_result(self, invoice_service, queries):
        from core.exceptions import UpstreamUnavailableError

        with patch.object(queries, "list_generated", side_effect=UpstreamUnavailableError("Invoice store unavailable")):
            result = invoice_service.list_generated_invoices()

        assert result.success is False
        assert result.error_code == "UPSTREAM_UNAVAILABLE"
        assert result.invoices == []


class TestRefreshSettings:

    def test_invalidates_resolver_cache(self, lifecycle, queries):
        settings = Mock(spec=SettingsResolver)
        service = InvoiceService(lifecycle, queries, settings)

        result = service.refresh_settings()

        assert result.success is True
        settings.invalidate.assert_called_once_with()
