"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from core.models import OperationResult

logger = logging.getLogger(__name__)

STATUS_BY_ERROR_CODE = {
    ErrorCodes.NOT_FOUND: 404,
    ErrorCodes.INVALID_REQUEST: 400,
    ErrorCodes.PRECONDITION_FAILED: 409,
    ErrorCodes.INTEGRITY_MISMATCH: 409,
    ErrorCodes.BULK_GENERATE_FAILED: 422,
    ErrorCodes.RENDER_FAILED: 500,
    ErrorCodes.INTERNAL_ERROR: 500,
    ErrorCodes.UPSTREAM_UNAVAILABLE: 503,
    ErrorCodes.INVOICE_NUMBER_UNAVAILABLE: 503,
    ErrorCodes.TIMEOUT: 504,
}


class OperationFailed(Exception):
    """An invoice operation returned success=False; carries its result to the handler."""

    def __init__(self, result: OperationResult):
        self.result = result
        super().__init__(result.message)


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(OperationFailed)
    async def operation_failed_handler(request: Request, exc: OperationFailed):
        result = exc.result
        code = result.error_code or ErrorCodes.INTERNAL_ERROR
        return JSONResponse(
            status_code=STATUS_BY_ERROR_CODE.get(code, 400),
            content=error_response(
                code,
                result.message,
                data=result.model_dump(mode="json"),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        message = str(exc)
        if "not found" in message.lower():
            return JSONResponse(
                status_code=404,
                content=error_response(ErrorCodes.NOT_FOUND, message).model_dump(mode="json"),
            )
        return JSONResponse(
            status_code=400,
            content=error_response(ErrorCodes.INVALID_REQUEST, message).model_dump(mode="json"),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=error_response(
                ErrorCodes.VALIDATION_ERROR,
                str(exc.errors()),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=500,
            content=error_response(
                ErrorCodes.INTERNAL_ERROR,
                "An internal error occurred",
            ).model_dump(mode="json"),
        )
