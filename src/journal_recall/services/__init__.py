"""Service layer interfaces."""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable
from uuid import UUID

from journal_recall.domain.models import ChatMessage, JournalChunk, JournalEntry, RetrievalCandidate


@runtime_checkable
class EntryWriter(Protocol):
    """An open write transaction on one entry, as yielded by ``begin_entry_write``."""

    existing: JournalEntry | None

    async def __aenter__(self) -> "EntryWriter": ...

    async def __aexit__(self, exc_type, exc, tb) -> None: ...

    async def save_entry(self, entry: JournalEntry) -> None: ...

    async def replace_chunks(self, entry_id: UUID, chunks: Sequence[JournalChunk]) -> None: ...

    async def upsert_entry_embedding(self, entry_id: UUID, vector: list[float]) -> None: ...

    async def delete_entry_embedding(self, entry_id: UUID) -> None: ...

    async def update_derived_fields(
        self,
        entry_id: UUID,
        image_path: str | None,
        emotion_labels: list[str] | None,
        reflection_prompt: str | None,
    ) -> None: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


@runtime_checkable
class ChunkIndexStore(Protocol):
    """Protocol for the entry, chunk and candidate store."""

    def begin_entry_write(self, owner_id: str, entry_id: UUID | None = None) -> EntryWriter: ...

    async def delete_entry(self, owner_id: str, entry_id: UUID) -> None: ...

    async def get_entry(self, owner_id: str, entry_id: UUID) -> JournalEntry: ...

    async def list_entries(self, owner_id: str, limit: int = 100) -> list[JournalEntry]: ...

    async def get_chunks(self, entry_id: UUID) -> list[JournalChunk]: ...

    async def keyword_candidates(
        self, owner_id: str, keywords: Sequence[str], limit: int
    ) -> list[RetrievalCandidate]: ...

    async def semantic_candidates(
        self, owner_id: str, embedding: list[float], limit: int
    ) -> list[RetrievalCandidate]: ...


@runtime_checkable
class ChatMessageStore(Protocol):
    """Protocol for conversation history."""

    async def recent_messages(self, owner_id: str, conversation_id: str, limit: int) -> list[ChatMessage]: ...

    async def append_exchange(self, user_message: ChatMessage, agent_message: ChatMessage) -> None: ...


__all__ = ["ChatMessageStore", "ChunkIndexStore", "EntryWriter"]
