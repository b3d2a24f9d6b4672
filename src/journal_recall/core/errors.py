"""Specific error types for the journal recall engine."""

from .base import (
    AIServiceErrorDetails,
    ApplicationError,
    DatabaseErrorDetails,
    EntryErrorDetails,
    ErrorCode,
    ErrorDetails,
    ErrorLevel,
    ServiceErrorDetails,
    ValidationErrorDetails,
)


class InvalidInput(ApplicationError):
    """Request shape or content rejected at the boundary."""

    def __init__(self, message: str, details: ValidationErrorDetails | dict | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.INVALID_INPUT,
            level=ErrorLevel.WARNING,
            details=details,
        )


class NotFound(ApplicationError):
    """Entity does not exist."""

    def __init__(self, message: str, details: EntryErrorDetails | dict | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.NOT_FOUND,
            level=ErrorLevel.WARNING,
            details=details,
        )


class Forbidden(ApplicationError):
    """Entity exists but belongs to another owner."""

    def __init__(self, message: str, details: EntryErrorDetails | dict | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.AUTHORIZATION_FAILED,
            level=ErrorLevel.WARNING,
            details=details,
        )


class ServiceError(ApplicationError):
    """Error from external service calls."""

    def __init__(
        self,
        message: str,
        details: ServiceErrorDetails | None = None,
        code: ErrorCode = ErrorCode.SERVICE_UNAVAILABLE,
    ):
        super().__init__(
            message=message,
            code=code,
            level=ErrorLevel.ERROR,
            details=details
            or ServiceErrorDetails(source="service", operation="external_call", service_name="unknown"),
        )


class EmbeddingServiceError(ServiceError):
    """Embedding call failed: network, quota, timeout or malformed response."""

    def __init__(self, message: str, details: AIServiceErrorDetails | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.EMBEDDING_FAILED,
            details=details
            or AIServiceErrorDetails(source="embedding", operation="embed", service_name="embedding"),
        )


class ReplyGenerationError(ServiceError):
    """The reply generator could not produce a reply."""

    def __init__(self, message: str, details: AIServiceErrorDetails | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.MODEL_ERROR,
            details=details
            or AIServiceErrorDetails(source="reply_generator", operation="generate", service_name="reply"),
        )


class StoreError(ApplicationError):
    """Datastore failure. Fatal to the enclosing transaction."""

    def __init__(self, message: str, details: DatabaseErrorDetails | ErrorDetails | dict | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.DB_OPERATION,
            level=ErrorLevel.ERROR,
            details=details,
        )


class ConfigurationError(ApplicationError):
    """Required configuration is missing or inconsistent."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.CONFIG_MISSING,
            level=ErrorLevel.CRITICAL,
            details=details,
        )


class RequestTimeout(ApplicationError):
    """The request exceeded its deadline; in-flight work was cancelled."""

    def __init__(self, message: str, details: ErrorDetails | dict | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.TIMEOUT,
            level=ErrorLevel.WARNING,
            details=details,
        )
