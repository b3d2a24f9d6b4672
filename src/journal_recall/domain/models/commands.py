"""Validated inputs for each core operation.

Each command is built once at the boundary (HTTP layer, scripts, tests) and
passed by value into the services.
"""

from datetime import date
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from journal_recall.core.base import ValidationErrorDetails
from journal_recall.core.errors import InvalidInput


class _Command(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    @classmethod
    def parse(cls, data: dict[str, Any]):
        """Validate raw input, raising InvalidInput instead of pydantic's ValidationError."""
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            raise InvalidInput(
                message=f"Invalid {cls.__name__}: {first['msg']}",
                details=ValidationErrorDetails(
                    source=cls.__name__,
                    operation="parse",
                    field=".".join(str(part) for part in first["loc"]) or None,
                    actual_value=str(first.get("input"))[:200],
                    constraint=first["type"],
                ),
            ) from e


class UpsertEntryCommand(_Command):
    """Create a new entry (no ``entry_id``) or replace an existing one."""

    owner_id: str = Field(min_length=1)
    text: str = Field(min_length=1)
    entry_id: UUID | None = None
    entry_date: date | None = None
    embed_whole_entry: bool = True
    generate_image: bool = True
    classify_emotions: bool = True


class SearchQuery(_Command):
    owner_id: str = Field(min_length=1)
    query: str
    k: int = Field(default=5, ge=1, le=50)


class ChatTurnRequest(_Command):
    owner_id: str = Field(min_length=1)
    conversation_id: str = Field(min_length=1)
    message: str = Field(min_length=1)
    mode: str = Field(default="supportive", min_length=1, max_length=64)

    @field_validator("mode")
    @classmethod
    def _lower_mode(cls, value: str) -> str:
        return value.lower()
