"""
Error vocabulary shared by every layer of journal_recall.

Each failure carries an ``ErrorCode`` (what went wrong), an ``ErrorLevel``
(how loudly to log it) and a pydantic details model describing where it
happened. The API layer maps codes to HTTP statuses; everything below it
only raises.
"""

import logging
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from logfire.integrations.pydantic import PluginSettings
from pydantic import BaseModel, ConfigDict, Field, field_serializer


class ErrorLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    def to_logging_level(self) -> int:
        return logging.getLevelNamesMapping()[self.name]


class ErrorCode(str, Enum):
    # Caller mistakes (1xxx)
    INVALID_REQUEST = "1001"
    INVALID_INPUT = "1002"
    NOT_FOUND = "1003"
    PROCESSING_FAILED = "1004"
    CONFIG_MISSING = "1006"
    TIMEOUT = "1007"

    # Entry access (2xxx)
    AUTHORIZATION_FAILED = "2002"
    RATE_LIMITED = "2003"

    # Chunk index store (3xxx)
    DB_RECORD_NOT_FOUND = "3004"
    DB_OPERATION = "3005"

    # Model calls (4xxx)
    MODEL_ERROR = "4001"
    EMBEDDING_FAILED = "4003"

    # Upstream availability (5xxx)
    SERVICE_UNAVAILABLE = "5002"


class ErrorDetails(BaseModel, plugin_settings=PluginSettings(logfire={"record": "all"})):
    """Where an error happened. Unknown keyword fields are kept as extras."""

    model_config = ConfigDict(extra="allow")

    source: str = Field(description="Component that raised the error")
    operation: str = Field(description="Operation in progress when it was raised")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_serializer("timestamp")
    def _timestamp_iso(self, value: datetime) -> str:
        return value.isoformat()

    def log_fields(self, prefix: str = "details.") -> dict[str, Any]:
        """Flatten the populated fields for a structured log line."""
        return {f"{prefix}{key}": value for key, value in self.model_dump(mode="json", exclude_none=True).items()}


class ValidationErrorDetails(ErrorDetails):
    field: str | None = None
    actual_value: Any = None
    expected_type: str | None = None
    constraint: str | None = Field(None, description="Rule the value broke, e.g. 'min_length=1'")


class EntryErrorDetails(ErrorDetails):
    """A journal entry that could not be read or written by the caller."""

    entry_id: str | None = None
    action: str = Field(description="read, update or delete")
    resource_type: str = "journal_entry"


class ServiceErrorDetails(ErrorDetails):
    """A call to Neo4j, Gemini or Voyage that failed.

    ``status_code`` and ``latency_ms`` are filled in after the call returns.
    """

    service_name: str
    endpoint: str | None = None
    status_code: int | None = None
    request_id: str | None = None
    latency_ms: float | None = None


class DatabaseErrorDetails(ServiceErrorDetails):
    query_type: str | None = Field(None, description="read or write")
    label: str | None = Field(None, description="Node label the query touched")


class AIServiceErrorDetails(ServiceErrorDetails):
    model_name: str | None = None
    text_length: int | None = Field(None, description="Characters sent to the model")


def _coerce_details(details: ErrorDetails | dict[str, Any] | None) -> ErrorDetails:
    if isinstance(details, ErrorDetails):
        return details
    fields = dict(details or {})
    fields.setdefault("source", "unknown")
    fields.setdefault("operation", "unknown")
    return ErrorDetails(**fields)


class ApplicationError(Exception):
    """Root of every error journal_recall raises on purpose."""

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        level: ErrorLevel = ErrorLevel.ERROR,
        details: ErrorDetails | dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.level = level
        self.details = _coerce_details(details)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value}, message={self.message!r})"
