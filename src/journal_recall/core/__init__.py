from .base import (
    ApplicationError,
    ErrorCode,
    ErrorDetails,
    ErrorLevel,
    ServiceErrorDetails,
)
from .errors import (
    ConfigurationError,
    EmbeddingServiceError,
    Forbidden,
    InvalidInput,
    NotFound,
    ReplyGenerationError,
    RequestTimeout,
    ServiceError,
    StoreError,
)

__all__ = [
    "ApplicationError",
    "ConfigurationError",
    "EmbeddingServiceError",
    "ErrorCode",
    "ErrorDetails",
    "ErrorLevel",
    "Forbidden",
    "InvalidInput",
    "NotFound",
    "ReplyGenerationError",
    "RequestTimeout",
    "ServiceError",
    "ServiceErrorDetails",
    "StoreError",
]
