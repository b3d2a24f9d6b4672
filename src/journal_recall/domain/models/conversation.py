"""Chat messages exchanged with the conversational agent."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from .utils import utc_now


class MessageSender(str, Enum):
    """Who wrote a chat message."""

    USER = "user"
    AGENT = "agent"


class ChatMessage(BaseModel):
    """A single chat message. Append-only."""

    id: UUID = Field(default_factory=uuid4)
    owner_id: str
    conversation_id: str
    sender: MessageSender
    text: str
    mode: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

    def to_neo4j_properties(self) -> dict:
        return {
            "id": str(self.id),
            "owner_id": self.owner_id,
            "conversation_id": self.conversation_id,
            "sender": self.sender.value,
            "text": self.text,
            "mode": self.mode,
            "created_at": self.created_at,
        }

    @classmethod
    def from_neo4j_record(cls, record: dict) -> "ChatMessage":
        data = dict(record)
        value = data.get("created_at")
        if value is not None and hasattr(value, "to_native"):
            data["created_at"] = value.to_native()
        return cls(**data)

    def as_history_line(self) -> str:
        return f"{self.sender.value}: {self.text}"
