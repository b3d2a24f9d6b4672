"""Error handlers mapping application errors onto HTTP responses"""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .base import ApplicationError, ErrorCode, ErrorLevel
from .error_context import ErrorContext, ErrorContextManager
from .errors import InvalidInput
from .logging import get_logger

logger = get_logger(__name__)

STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.INVALID_REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorCode.AUTHORIZATION_FAILED: status.HTTP_403_FORBIDDEN,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.DB_RECORD_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorCode.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
    ErrorCode.MODEL_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.EMBEDDING_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.SERVICE_UNAVAILABLE: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.CONFIG_MISSING: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(error: ApplicationError) -> int:
    """HTTP status for an application error; store and unknown failures are internal."""
    return STATUS_BY_CODE.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)


class GlobalErrorHandler:
    """Global error handler for FastAPI application"""

    def _format_response(self, error_context: ErrorContext, level: ErrorLevel) -> dict[str, Any]:
        response: dict[str, Any] = {
            "error": str(error_context.error),
            "error_code": ErrorCode.PROCESSING_FAILED.value,
            "level": level.value,
            "trace_id": error_context.trace_id,
            "timestamp": error_context.timestamp.isoformat(),
        }

        if isinstance(error_context.error, ApplicationError):
            response["error_code"] = error_context.error.code.value
            response["details"] = error_context.error.details.model_dump(mode="json")

        return response

    async def handle_application_error(self, request: Request, error: ApplicationError) -> JSONResponse:
        status_code = status_for(error)
        async with ErrorContextManager(error, path=request.url.path) as error_context:
            body = self._format_response(error_context, error.level)

        # Internal failures were already logged where they happened
        logger.log(
            error.level.to_logging_level(),
            "Request failed",
            path=request.url.path,
            status_code=status_code,
            error_code=error.code.value,
            trace_id=body["trace_id"],
        )
        return JSONResponse(status_code=status_code, content=body)

    async def handle_validation_error(self, request: Request, error: RequestValidationError) -> JSONResponse:
        first = error.errors()[0] if error.errors() else {}
        invalid = InvalidInput(
            message=f"Invalid request: {first.get('msg', 'validation failed')}",
            details={
                "source": "request",
                "operation": "validate",
                "field": ".".join(str(part) for part in first.get("loc", ())),
                "constraint": first.get("type"),
            },
        )
        return await self.handle_application_error(request, invalid)

    def register(self, app: FastAPI) -> None:
        app.add_exception_handler(ApplicationError, self.handle_application_error)  # type: ignore[arg-type]
        app.add_exception_handler(RequestValidationError, self.handle_validation_error)  # type: ignore[arg-type]
