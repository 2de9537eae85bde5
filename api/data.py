"""GET /api/data: unified read endpoint."""

from uuid import UUID

from fastapi import APIRouter, Query, Request
from starlette.responses import Response

from api.base import success_response
from api.errors import OperationFailed
from core.services.invoice_renderer import decode_data_uri

VALID_TYPES = {"invoices"}
INVOICE_FILTERS = {"eligible", "generated", "issued"}


def create_data_router(services: dict) -> APIRouter:
    router = APIRouter()

    invoice_svc = services["invoice"]

    # -------------------------------------------------------------------------
    # Convenience routes (must be registered before the generic /data route)
    # -------------------------------------------------------------------------

    @router.get("/data/invoices/by-order/{order_id}")
    def invoice_by_order(request: Request, order_id: UUID):
        result = invoice_svc.get_invoice_by_order_id(order_id)
        if not result.success:
            raise OperationFailed(result)
        return success_response(result.invoice.model_dump(mode="json")).model_dump(mode="json")

    @router.get("/data/invoices/{invoice_id}/pdf")
    def invoice_pdf(request: Request, invoice_id: int, order_id: UUID | None = Query(None)):
        """Stream an issued invoice as a PDF file. Counts as a download."""
        result = invoice_svc.download_invoice(invoice_id, order_id)
        if not result.success:
            raise OperationFailed(result)

        media_type, content = decode_data_uri(result.pdf)
        return Response(
            content=content,
            media_type=media_type,
            headers={"Content-Disposition": f'attachment; filename="{result.invoice_number}.pdf"'},
        )

    # -------------------------------------------------------------------------
    # Generic data endpoint
    # -------------------------------------------------------------------------

    @router.get("/data")
    def get_data(
        request: Request,
        type: str | None = Query(None),
        filter: str | None = Query(None),
        limit: int = Query(50, ge=1, le=500),
    ):
        if type is None:
            raise ValueError("'type' query parameter is required")

        if type not in VALID_TYPES:
            raise ValueError(f"Unknown type '{type}'. Valid types: {', '.join(sorted(VALID_TYPES))}")

        if type == "invoices":
            return _handle_invoices(invoice_svc, filter, limit)

    return router


def _handle_invoices(invoice_svc, filter, limit):
    if filter == "eligible":
        result = invoice_svc.list_eligible_orders(limit)
        items = result.orders
    elif filter == "generated":
        result = invoice_svc.list_generated_invoices(limit)
        items = result.invoices
    elif filter == "issued":
        result = invoice_svc.list_issued_invoices(limit)
        items = result.invoices
    else:
        raise ValueError(
            f"'invoices' type requires 'filter' parameter ({', '.join(sorted(INVOICE_FILTERS))})"
        )

    if not result.success:
        raise OperationFailed(result)

    return success_response(
        [i.model_dump(mode="json") for i in items]
    ).model_dump(mode="json")
