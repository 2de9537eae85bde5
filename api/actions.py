"""POST /api/actions: unified mutation endpoint."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import success_response, ErrorCodes
from api.errors import OperationFailed
from core.models import OperationResult
from core.services.invoice_service import InvoiceService

MAX_BATCH_SIZE = 200


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    handlers = {
        "invoice": InvoiceHandler(services["invoice"]),
    }

    # Sync endpoint: rendering blocks, so FastAPI runs it in the threadpool
    @router.post("/actions")
    def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}")
        result: OperationResult = method(body.data)
        if not result.success:
            raise OperationFailed(result)
        return success_response(result.model_dump(mode="json")).model_dump(mode="json")

    return router


# =============================================================================
# REQUEST DATA HELPERS
# =============================================================================


def _required(data: dict, key: str) -> Any:
    if data.get(key) is None:
        raise ValueError(f"'{key}' is required")
    return data[key]


def _uuid(value: Any, key: str) -> UUID:
    try:
        return UUID(str(value))
    except ValueError:
        raise ValueError(f"'{key}' must be a UUID, got {value!r}")


def _invoice_id(value: Any, key: str) -> int:
    # Whole numbers or digit strings only; int() would truncate 2.9 to 2
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.isascii() and value.isdigit():
        return int(value)
    raise ValueError(f"'{key}' must be an integer id, got {value!r}")


def _id_list(data: dict, key: str) -> list:
    values = _required(data, key)
    if not isinstance(values, list) or not values:
        raise ValueError(f"'{key}' must be a non-empty list")
    if len(values) > MAX_BATCH_SIZE:
        raise ValueError(f"'{key}' accepts at most {MAX_BATCH_SIZE} ids")
    return values


# =============================================================================
# HANDLER CLASSES
# =============================================================================


class InvoiceHandler:
    ALLOWED_ACTIONS = {
        "generate", "bulk_generate",
        "raise", "bulk_raise",
        "preview", "download", "delete",
        "refresh_settings",
    }

    def __init__(self, service: InvoiceService):
        self.service = service

    def _handle_generate(self, data: dict):
        return self.service.generate_invoice(_uuid(_required(data, "order_id"), "order_id"))

    def _handle_bulk_generate(self, data: dict):
        order_ids = [_uuid(v, "order_ids") for v in _id_list(data, "order_ids")]
        result = self.service.bulk_generate_invoices(order_ids)
        if not result.success and result.error_code is None:
            result = result.model_copy(update={"error_code": ErrorCodes.BULK_GENERATE_FAILED})
        return result

    def _handle_raise(self, data: dict):
        return self.service.raise_invoice(_invoice_id(_required(data, "id"), "id"))

    def _handle_bulk_raise(self, data: dict):
        invoice_ids = [_invoice_id(v, "ids") for v in _id_list(data, "ids")]
        return self.service.bulk_raise_invoices(invoice_ids)

    def _handle_preview(self, data: dict):
        return self.service.preview_invoice(_invoice_id(_required(data, "id"), "id"))

    def _handle_download(self, data: dict):
        order_id = data.get("order_id")
        return self.service.download_invoice(
            _invoice_id(_required(data, "id"), "id"),
            _uuid(order_id, "order_id") if order_id is not None else None,
        )

    def _handle_delete(self, data: dict):
        return self.service.delete_invoice(_invoice_id(_required(data, "id"), "id"))

    def _handle_refresh_settings(self, data: dict):
        return self.service.refresh_settings()
