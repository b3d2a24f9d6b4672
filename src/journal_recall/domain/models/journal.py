"""Journal entries, their sentence chunks, and transient retrieval results."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from .utils import utc_now


class JournalEntry(BaseModel):
    """A single journal entry owned by exactly one user."""

    id: UUID = Field(default_factory=uuid4)
    owner_id: str
    text: str
    created_at: datetime = Field(default_factory=utc_now)
    modified_at: datetime = Field(default_factory=utc_now)
    entry_date: date | None = None

    # Derived by external collaborators, omitted when they fail
    image_path: str | None = None
    emotion_labels: list[str] | None = None
    reflection_prompt: str | None = None

    def to_neo4j_properties(self) -> dict:
        """Convert to Neo4j-compatible property dict."""
        return {
            "id": str(self.id),
            "owner_id": self.owner_id,
            "text": self.text,
            "created_at": self.created_at,
            "modified_at": self.modified_at,
            "entry_date": self.entry_date,
            "image_path": self.image_path,
            "emotion_labels": self.emotion_labels,
            "reflection_prompt": self.reflection_prompt,
        }

    @classmethod
    def from_neo4j_record(cls, record: dict) -> "JournalEntry":
        """Create instance from a Neo4j node property map."""
        data = dict(record)
        # neo4j.time types expose to_native()
        for key in ("created_at", "modified_at", "entry_date"):
            value = data.get(key)
            if value is not None and hasattr(value, "to_native"):
                data[key] = value.to_native()
        return cls(**data)


class ChunkDraft(BaseModel):
    """A sentence produced by the chunker, before it is embedded."""

    index: int = Field(ge=0)
    text: str


class JournalChunk(BaseModel):
    """One sentence of an entry with its embedding."""

    id: UUID = Field(default_factory=uuid4)
    entry_id: UUID
    chunk_index: int = Field(ge=0, description="Position of the sentence within the entry")
    text: str
    embedding: list[float]

    def to_neo4j_properties(self) -> dict:
        return {
            "id": str(self.id),
            "entry_id": str(self.entry_id),
            "chunk_index": self.chunk_index,
            "text": self.text,
            "embedding": self.embedding,
        }


class EntryEmbedding(BaseModel):
    """Whole-entry vector, one per entry, overwritten on every update."""

    entry_id: UUID
    embedding: list[float]


# Distance assigned to literal keyword hits; no semantic distance is lower
KEYWORD_MATCH_DISTANCE = 0.0


class CandidateSource(str, Enum):
    """Which retrieval signal produced a candidate."""

    KEYWORD = "keyword"
    SEMANTIC = "semantic"


class RetrievalCandidate(BaseModel):
    """A search hit. ``score`` is a distance: lower means more similar."""

    entry_id: UUID
    text: str
    score: float
    source: CandidateSource
    created_at: datetime | None = None
    modified_at: datetime | None = None

    @field_validator("created_at", "modified_at", mode="before")
    @classmethod
    def _native_datetime(cls, value):
        if value is not None and hasattr(value, "to_native"):
            return value.to_native()
        return value
