"""
PDF rendering for tax invoices.

Turns InvoiceData into an A4 PDF with reportlab's platypus layer and returns
it as a base64 data URI. Rendering is deterministic: the canvas runs in
invariant mode, so the same InvoiceData (and the same branding images)
always produces the same bytes. That is what lets preview re-render from
stored data instead of keeping a second copy.

Every page carries a translucent diagonal "Delivered" watermark. Invoices
are only issued for fulfilled orders, so it is not configurable.
"""

import base64
import binascii
import logging
from io import BytesIO
from xml.sax.saxutils import escape

from PIL import Image as PILImage
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import (
    Image,
    KeepTogether,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from clients.asset_client import AssetClient
from core.exceptions import RenderError
from core.models import CompanySettings, InvoiceData
from utils.money import format_money, format_rate
from utils.timezone import format_display_date

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
WATERMARK_TEXT = "Delivered"

BRAND_COLOR = colors.HexColor("#4F46E5")
MUTED_TEXT = colors.HexColor("#646464")
TABLE_HEADER_FILL = colors.HexColor("#F0F0F0")

PAGE_MARGIN = 18 * mm
CONTENT_WIDTH = A4[0] - 2 * PAGE_MARGIN
HEADER_IMAGE_MAX_HEIGHT = 40 * mm
FOOTER_IMAGE_MAX_HEIGHT = 30 * mm


def to_data_uri(pdf_bytes: bytes, mime_type: str = PDF_MIME_TYPE) -> str:
    """Wrap bytes as a self-describing base64 data URI."""
    return f"data:{mime_type};base64,{base64.b64encode(pdf_bytes).decode('ascii')}"


def decode_data_uri(data_uri: str) -> tuple[str, bytes]:
    """
    Split a base64 data URI into (mime_type, bytes).

    Raises:
        ValueError: Not a base64 data URI
    """
    if not data_uri.startswith("data:") or "," not in data_uri:
        raise ValueError("Not a data URI")

    header, payload = data_uri[5:].split(",", 1)
    params = header.split(";")
    if "base64" not in params[1:]:
        raise ValueError("Data URI is not base64 encoded")

    try:
        content = base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e

    return params[0] or "text/plain", content


def _draw_watermark(canvas, doc) -> None:
    canvas.saveState()
    canvas.setFont("Helvetica-Bold", 96)
    canvas.setFillColor(colors.green)
    canvas.setFillAlpha(0.12)
    page_width, page_height = doc.pagesize
    canvas.translate(page_width / 2, page_height / 2)
    canvas.rotate(45)
    canvas.drawCentredString(0, 0, WATERMARK_TEXT)
    canvas.restoreState()


def _lines(*lines: str) -> str:
    """Escape and join non-empty lines as paragraph markup."""
    return "<br/>".join(escape(line) for line in lines if line and line.strip())


class InvoiceRenderer:
    """Renders InvoiceData to a PDF data URI."""

    def __init__(self, asset_client: AssetClient | None = None, currency_label: str = "Rs."):
        self.asset_client = asset_client
        self.currency_label = currency_label
        self._styles = self._build_styles()

    @staticmethod
    def _build_styles() -> dict[str, ParagraphStyle]:
        base = getSampleStyleSheet()["Normal"]
        return {
            "body": ParagraphStyle("InvoiceBody", parent=base, fontSize=9, leading=12),
            "company_name": ParagraphStyle(
                "CompanyName", parent=base, fontName="Helvetica-Bold",
                fontSize=18, leading=22, textColor=colors.white,
            ),
            "company_detail": ParagraphStyle(
                "CompanyDetail", parent=base, fontSize=9, leading=12, textColor=colors.white,
            ),
            "title": ParagraphStyle(
                "InvoiceTitle", parent=base, fontName="Helvetica-Bold",
                fontSize=22, leading=28, alignment=TA_CENTER, spaceBefore=6, spaceAfter=8,
            ),
            "party_heading": ParagraphStyle(
                "PartyHeading", parent=base, fontName="Helvetica-Bold", fontSize=10, leading=13,
            ),
            "right": ParagraphStyle("Right", parent=base, fontSize=9, leading=12, alignment=TA_RIGHT),
            "terms_heading": ParagraphStyle(
                "TermsHeading", parent=base, fontName="Helvetica-Bold", fontSize=9, leading=12,
            ),
            "terms": ParagraphStyle("Terms", parent=base, fontSize=8, leading=11, textColor=MUTED_TEXT),
        }

    def _money(self, amount: int) -> str:
        return format_money(amount, self.currency_label)

    # -------------------------------------------------------------------------
    # Images
    # -------------------------------------------------------------------------

    def _image_bytes(self, source: str) -> bytes | None:
        """Raw bytes of an embedded data URI or a fetched URL."""
        if not source:
            return None

        if source.startswith("data:"):
            try:
                return decode_data_uri(source)[1]
            except ValueError as e:
                logger.warning(f"Ignoring malformed embedded image: {e}")
                return None

        if self.asset_client is None:
            return None
        return self.asset_client.fetch(source)

    @staticmethod
    def _inspect_image(raw: bytes, label: str) -> tuple[int, int, str] | None:
        """
        Decode the whole image, not just its header.

        Returns (width, height, mime type), or None when the bytes are not a
        complete image reportlab can place.
        """
        try:
            with PILImage.open(BytesIO(raw)) as img:
                img.load()
                width, height = img.size
                mime_type = PILImage.MIME.get(img.format or "", "")
        except Exception as e:
            # PIL raises a zoo of exception types for corrupt images
            logger.warning(f"Ignoring undecodable image {label}: {e}")
            return None

        if not width or not height or not mime_type:
            return None
        return width, height, mime_type

    def _load_image(self, source: str, max_height: float) -> Image | None:
        """Size a branding image from a URL or data URI; None if unusable."""
        raw = self._image_bytes(source)
        if raw is None:
            return None

        label = "embedded image" if source.startswith("data:") else source
        inspected = self._inspect_image(raw, label)
        if inspected is None:
            return None

        width, height, _ = inspected
        scale = min(CONTENT_WIDTH / width, max_height / height)
        image = Image(BytesIO(raw), width=width * scale, height=height * scale)
        image.hAlign = "CENTER"
        return image

    def _embed_image(self, url: str) -> str:
        raw = self._image_bytes(url)
        if raw is None:
            return ""

        inspected = self._inspect_image(raw, url)
        if inspected is None:
            return ""
        return to_data_uri(raw, inspected[2])

    def capture_branding(self, company: CompanySettings) -> dict[str, str]:
        """
        Fetch the company's header and footer images once, as data URIs.

        The result is stored on InvoiceData (header_image, footer_image) so
        every later render of that invoice uses exactly these bytes. "" means
        no usable image; the invoice then renders its text blocks instead.
        """
        return {
            "header_image": self._embed_image(company.header_image_url),
            "footer_image": self._embed_image(company.footer_image_url),
        }

    # -------------------------------------------------------------------------
    # Sections
    # -------------------------------------------------------------------------

    def _company_block(self, data: InvoiceData) -> Table:
        company = data.company
        contact = " | ".join(
            part for part in (
                f"Phone: {company.store_phone}" if company.store_phone else "",
                f"Email: {company.store_email}" if company.store_email else "",
            ) if part
        )
        rows = [[Paragraph(escape(company.store_name), self._styles["company_name"])]]
        detail = _lines(
            *company.store_address.splitlines(),
            contact,
            f"GSTIN: {company.gst_number}" if company.gst_number else "",
            f"PAN: {company.pan_number}" if company.pan_number else "",
        )
        if detail:
            rows.append([Paragraph(detail, self._styles["company_detail"])])

        block = Table(rows, colWidths=[CONTENT_WIDTH])
        block.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, -1), BRAND_COLOR),
            ("LEFTPADDING", (0, 0), (-1, -1), 10),
            ("RIGHTPADDING", (0, 0), (-1, -1), 10),
            ("TOPPADDING", (0, 0), (-1, 0), 10),
            ("BOTTOMPADDING", (0, -1), (-1, -1), 10),
        ]))
        return block

    def _reference_block(self, data: InvoiceData) -> Table:
        body, right = self._styles["body"], self._styles["right"]
        rows = [
            [
                Paragraph(f"<b>Invoice No:</b> {escape(data.invoice_number)}", body),
                Paragraph(f"<b>Invoice Date:</b> {format_display_date(data.invoice_date)}", right),
            ],
            [
                Paragraph(f"<b>Order No:</b> {escape(data.order_number)}", body),
                Paragraph(f"<b>Order Date:</b> {format_display_date(data.order_date)}", right),
            ],
        ]
        table = Table(rows, colWidths=[CONTENT_WIDTH / 2] * 2)
        table.setStyle(TableStyle([
            ("LEFTPADDING", (0, 0), (-1, -1), 0),
            ("RIGHTPADDING", (0, 0), (-1, -1), 0),
        ]))
        return table

    def _parties_block(self, data: InvoiceData) -> Table:
        body, heading = self._styles["body"], self._styles["party_heading"]
        bill_to = _lines(
            data.customer_name,
            *data.billing_address.splitlines(),
            f"Phone: {data.customer_phone}" if data.customer_phone else "",
            f"Email: {data.customer_email}" if data.customer_email else "",
        )
        ship_to = _lines(
            data.shipping_name,
            *data.shipping_address.splitlines(),
            f"Phone: {data.shipping_phone}" if data.shipping_phone else "",
        )
        rows = [
            [Paragraph("Bill To:", heading), Paragraph("Ship To:", heading)],
            [Paragraph(bill_to or "-", body), Paragraph(ship_to or "-", body)],
        ]
        table = Table(rows, colWidths=[CONTENT_WIDTH / 2] * 2)
        table.setStyle(TableStyle([
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("LEFTPADDING", (0, 0), (-1, -1), 0),
        ]))
        return table

    def _items_table(self, data: InvoiceData) -> Table:
        body = self._styles["body"]
        rows: list[list] = [["Description", "Qty", "Unit Price", "Amount"]]

        for item in data.items:
            description = escape(item.description)
            if item.sku:
                description += f"<br/><font size=7 color='#646464'>SKU: {escape(item.sku)}</font>"
            # Money cells are plain strings: they never wrap
            rows.append([
                Paragraph(description, body),
                str(item.quantity),
                self._money(item.unit_price),
                self._money(item.amount),
            ])

        if not data.items:
            rows.append([Paragraph("No line items", body), "", "", ""])

        table = Table(
            rows,
            colWidths=[CONTENT_WIDTH - 80 * mm, 16 * mm, 32 * mm, 32 * mm],
            repeatRows=1,
        )
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), TABLE_HEADER_FILL),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("ALIGN", (1, 0), (1, -1), "CENTER"),
            ("ALIGN", (2, 0), (-1, -1), "RIGHT"),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("LINEBELOW", (0, -1), (-1, -1), 0.5, colors.grey),
        ]))
        return table

    def _totals_table(self, data: InvoiceData) -> Table:
        rows = [
            ["Subtotal:", self._money(data.subtotal_before_tax)],
            [f"GST ({format_rate(data.tax_rate)}%):", self._money(data.tax_amount)],
        ]
        if data.shipping_amount:
            rows.append(["Shipping:", self._money(data.shipping_amount)])
        if data.discount_amount:
            rows.append(["Discount:", self._money(-data.discount_amount)])
        rows.append(["Total:", self._money(data.grand_total)])

        table = Table(rows, colWidths=[40 * mm, 40 * mm], hAlign="RIGHT")
        table.setStyle(TableStyle([
            ("FONTSIZE", (0, 0), (-1, -2), 9),
            ("ALIGN", (1, 0), (1, -1), "RIGHT"),
            ("LINEABOVE", (0, -1), (-1, -1), 1, colors.black),
            ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
            ("FONTSIZE", (0, -1), (-1, -1), 12),
            ("TOPPADDING", (0, -1), (-1, -1), 6),
        ]))
        return table

    def _terms_block(self, data: InvoiceData) -> KeepTogether:
        contact = (
            f"3. For any queries, please contact us at {data.company.store_email}"
            if data.company.store_email
            else "3. For any queries, please contact our support team."
        )
        return KeepTogether([
            Paragraph("Terms &amp; Conditions:", self._styles["terms_heading"]),
            Paragraph(
                _lines(
                    "1. This is a computer-generated invoice and does not require a signature.",
                    "2. Please check the items at the time of delivery.",
                    contact,
                ),
                self._styles["terms"],
            ),
        ])

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    def render(
        self,
        data: InvoiceData,
        header_image_url: str | None = None,
        footer_image_url: str | None = None,
    ) -> str:
        """
        Render an invoice PDF.

        Args:
            data: Invoice to render
            header_image_url: Letterhead image replacing the company block.
                Defaults to the image captured on data, or failing that the
                URL on data.company; pass "" for none.
            footer_image_url: Image replacing the terms paragraph. Same defaulting.

        Returns:
            "data:application/pdf;base64,..." data URI

        Raises:
            RenderError: If the document could not be built
        """
        if header_image_url is None:
            header_image_url = data.header_image if data.header_image is not None else data.company.header_image_url
        if footer_image_url is None:
            footer_image_url = data.footer_image if data.footer_image is not None else data.company.footer_image_url

        header_image = self._load_image(header_image_url, HEADER_IMAGE_MAX_HEIGHT)
        footer_image = self._load_image(footer_image_url, FOOTER_IMAGE_MAX_HEIGHT)

        buffer = BytesIO()
        try:
            doc = SimpleDocTemplate(
                buffer,
                pagesize=A4,
                leftMargin=PAGE_MARGIN,
                rightMargin=PAGE_MARGIN,
                topMargin=PAGE_MARGIN,
                bottomMargin=PAGE_MARGIN,
                title=f"Tax Invoice {data.invoice_number}",
                author=data.company.store_name,
                subject=f"Order {data.order_number}",
                invariant=1,
            )

            story = [
                header_image if header_image is not None else self._company_block(data),
                Paragraph("TAX INVOICE", self._styles["title"]),
                self._reference_block(data),
                Spacer(1, 6 * mm),
                self._parties_block(data),
                Spacer(1, 6 * mm),
                self._items_table(data),
                Spacer(1, 4 * mm),
                self._totals_table(data),
                Spacer(1, 10 * mm),
                footer_image if footer_image is not None else self._terms_block(data),
            ]

            doc.build(story, onFirstPage=_draw_watermark, onLaterPages=_draw_watermark)
        except Exception as e:
            logger.error(f"Rendering invoice {data.invoice_number} failed: {e}")
            raise RenderError(f"Could not render invoice {data.invoice_number}: {e}") from e

        return to_data_uri(buffer.getvalue())
