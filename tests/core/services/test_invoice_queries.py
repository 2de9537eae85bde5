"""Tests for InvoiceQueryFacade - lookups, listing tabs and preview."""

from datetime import timedelta
from unittest.mock import patch
from uuid import uuid4

import pytest

from core.exceptions import NotFoundError
from core.models import InvoiceStatus, InvoiceSummary
from core.services.invoice_renderer import InvoiceRenderer, decode_data_uri
from utils.timezone import now_utc
from fakes import FakeAssetClient, make_order_row


@pytest.fixture
def make_invoice(lifecycle, order_store):
    """Generate an invoice for a fresh delivered order."""
    counter = iter(range(1, 1000))

    def make(**order_overrides):
        n = next(counter)
        order_id = order_store.add(make_order_row(order_number=f"ORD-{2000 + n}", **order_overrides))
        return lifecycle.generate(order_id).invoice

    return make


class TestGet:

    def test_returns_full_invoice(self, queries, make_invoice):
        invoice = make_invoice()

        found = queries.get(invoice.id)

        assert found.invoice_number == invoice.invoice_number
        assert found.invoice_data == invoice.invoice_data
        assert found.pdf_data_uri == invoice.pdf_data_uri

    def test_missing(self, queries):
        assert queries.get(404) is None

    def test_deleted_is_missing(self, queries, lifecycle, make_invoice):
        invoice = make_invoice()
        lifecycle.delete(invoice.id)

        assert queries.get(invoice.id) is None


class TestFindByOrder:
    """Only customer-visible invoices are found by order."""

    def test_generated_invoice_not_visible(self, queries, make_invoice):
        invoice = make_invoice()
        assert queries.find_by_order(invoice.order_id) is None

    @pytest.mark.parametrize("download", [False, True])
    def test_issued_invoice_visible(self, queries, lifecycle, make_invoice, download):
        invoice = make_invoice()
        lifecycle.raise_invoice(invoice.id)
        if download:
            lifecycle.download(invoice.id)

        summary = queries.find_by_order(invoice.order_id)

        assert isinstance(summary, InvoiceSummary)
        assert summary.id == invoice.id
        assert summary.status == (InvoiceStatus.DOWNLOADED if download else InvoiceStatus.RAISED)

    def test_unknown_order(self, queries):
        assert queries.find_by_order(uuid4()) is None

    def test_summary_has_no_document(self, queries, lifecycle, make_invoice):
        invoice = make_invoice()
        lifecycle.raise_invoice(invoice.id)

        dumped = queries.find_by_order(invoice.order_id).model_dump()

        assert "pdf_data_uri" not in dumped
        assert "invoice_data" not in dumped


class TestListEligibleOrders:
    """Delivered orders without a live invoice."""

    def test_lists_delivered_uninvoiced_orders(self, queries, order_store):
        order_id = order_store.add(make_order_row(total_amount="1180.00"))
        order_store.add(make_order_row(order_number="ORD-SHIP", status="shipped"))

        orders = queries.list_eligible_orders()

        assert [o.id for o in orders] == [order_id]
        assert orders[0].total_amount == 118000
        assert orders[0].customer_name == "Asha Rao"

    def test_invoiced_orders_drop_out(self, queries, make_invoice):
        make_invoice()
        assert queries.list_eligible_orders() == []

    def test_deleted_invoice_makes_order_eligible_again(self, queries, lifecycle, make_invoice):
        invoice = make_invoice()
        lifecycle.delete(invoice.id)

        assert [o.id for o in queries.list_eligible_orders()] == [invoice.order_id]

    def test_unpaid_delivered_orders_are_listed(self, queries, order_store):
        """Eligibility is fulfillment status; payment is checked at generation."""
        order_store.add(make_order_row(payment_status="pending"))

        [order] = queries.list_eligible_orders()

        assert order.payment_status == "pending"

    def test_newest_first_and_limit(self, queries, order_store):
        now = now_utc()
        ids = [
            order_store.add(make_order_row(order_number=f"ORD-{n}", created_at=now - timedelta(days=n)))
            for n in range(5)
        ]

        orders = queries.list_eligible_orders(limit=3)

        assert [o.id for o in orders] == ids[:3]


class TestListInvoices:
    """Generated and issued tabs."""

    def test_generated_tab(self, queries, lifecycle, make_invoice):
        a, b = make_invoice(), make_invoice()
        lifecycle.raise_invoice(a.id)

        assert [i.id for i in queries.list_generated()] == [b.id]

    def test_issued_tab_includes_raised_and_downloaded(self, queries, lifecycle, make_invoice):
        a, b, c = make_invoice(), make_invoice(), make_invoice()
        lifecycle.raise_invoice(a.id)
        lifecycle.raise_invoice(b.id)
        lifecycle.download(b.id)

        issued = queries.list_issued()

        assert {i.id for i in issued} == {a.id, b.id}
        assert c.id not in {i.id for i in issued}

    def test_issued_tab_most_recently_raised_first(self, queries, lifecycle, invoice_table, make_invoice):
        a, b = make_invoice(), make_invoice()
        lifecycle.raise_invoice(b.id)
        lifecycle.raise_invoice(a.id)
        invoice_table.rows[b.id]["raised_at"] = now_utc() - timedelta(hours=1)

        assert [i.id for i in queries.list_issued()] == [a.id, b.id]

    def test_limit(self, queries, make_invoice):
        for _ in range(4):
            make_invoice()
        assert len(queries.list_generated(limit=2)) == 2


class TestPreview:
    """Re-rendering from the stored snapshot."""

    def test_matches_stored_document(self, queries, make_invoice):
        invoice = make_invoice()

        found, pdf = queries.preview(invoice.id)

        assert found.id == invoice.id
        assert decode_data_uri(pdf)[0] == "application/pdf"
        assert pdf == invoice.pdf_data_uri

    def test_does_not_change_status(self, queries, invoice_table, make_invoice):
        invoice = make_invoice()
        before = dict(invoice_table.rows[invoice.id])

        queries.preview(invoice.id)

        assert invoice_table.rows[invoice.id] == before

    def test_uses_embedded_company_not_live_settings(self, queries, settings_store, make_invoice, renderer):
        invoice = make_invoice()
        settings_store.values["shop"]["store_name"] = "Renamed Store"

        with patch.object(renderer, "render", wraps=renderer.render) as render:
            queries.preview(invoice.id)

        assert render.call_args.args[0].company.store_name == "Nirchal Textiles"

    def test_missing(self, queries):
        with pytest.raises(NotFoundError):
            queries.preview(99)


class TestPreviewBranding:
    """Branding images are frozen with the invoice at generation."""

    HEADER_URL = "https://cdn.example/letterhead.png"

    @pytest.fixture
    def assets(self, png_bytes):
        return FakeAssetClient({self.HEADER_URL: png_bytes})

    @pytest.fixture
    def renderer(self, assets):
        return InvoiceRenderer(asset_client=assets)

    @pytest.fixture
    def branded_invoice(self, settings_store, make_invoice):
        settings_store.values["billing"]["invoice_header_image_url"] = self.HEADER_URL
        return make_invoice()

    def test_image_embedded_in_snapshot(self, branded_invoice):
        data = branded_invoice.invoice_data

        assert data.company.header_image_url == self.HEADER_URL
        assert data.header_image.startswith("data:image/png;base64,")
        assert data.footer_image == ""

    def test_preview_does_not_refetch(self, queries, assets, branded_invoice):
        assets.requested.clear()

        _, pdf = queries.preview(branded_invoice.id)

        assert assets.requested == []
        assert pdf == branded_invoice.pdf_data_uri

    def test_preview_unaffected_by_cdn_changes(self, queries, assets, branded_invoice):
        del assets.assets[self.HEADER_URL]

        _, pdf = queries.preview(branded_invoice.id)

        assert pdf == branded_invoice.pdf_data_uri

    def test_image_missing_at_generation_stays_missing(self, queries, assets, settings_store, make_invoice, png_bytes):
        del assets.assets[self.HEADER_URL]
        settings_store.values["billing"]["invoice_header_image_url"] = self.HEADER_URL
        invoice = make_invoice()

        assets.assets[self.HEADER_URL] = png_bytes
        _, pdf = queries.preview(invoice.id)

        assert invoice.invoice_data.header_image == ""
        assert pdf == invoice.pdf_data_uri
