"""
Shared pytest fixtures for journal_recall tests.

Provides in-memory stand-ins for Neo4j and the Gemini collaborators so the
services can be exercised without network or database access.
"""

import asyncio
import hashlib
import re
from collections.abc import Sequence
from uuid import UUID

import numpy as np
import pytest

from journal_recall.core.errors import (
    EmbeddingServiceError,
    Forbidden,
    NotFound,
    ReplyGenerationError,
    ServiceError,
    StoreError,
)
from journal_recall.domain.models import (
    KEYWORD_MATCH_DISTANCE,
    CandidateSource,
    ChatMessage,
    EmbeddingType,
    JournalChunk,
    JournalEntry,
    RetrievalCandidate,
)
from journal_recall.infrastructure.genai import EmotionAnalysis
from journal_recall.services.chat import ChatService, ContextAssembler
from journal_recall.services.indexing import JournalIndexingService
from journal_recall.services.search import HybridSearchService

TEST_DIMENSIONS = 64


class MockEmbeddingService:
    """
    Deterministic bag-of-words embedding for testing.

    Each lower-cased word is hashed into one of ``dimensions`` buckets, so
    texts sharing words have a high cosine similarity.
    """

    def __init__(self, dimensions: int = TEST_DIMENSIONS):
        self.dimensions = dimensions
        self.calls: list[tuple[str, EmbeddingType]] = []
        self.fail_on: set[str] = set()
        self.fail_all = False
        self.delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0

    async def embed(self, text: str, embedding_type: EmbeddingType = EmbeddingType.DOCUMENT) -> list[float]:
        self.calls.append((text, embedding_type))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.fail_all or text in self.fail_on:
                raise EmbeddingServiceError(message=f"mock failure for {text!r}")
            vector = np.zeros(self.dimensions)
            for word in re.findall(r"\w+", text.lower()):
                bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % self.dimensions
                vector[bucket] += 1.0
            if not vector.any():
                vector[0] = 1.0
            return (vector / np.linalg.norm(vector)).tolist()
        finally:
            self.in_flight -= 1


class InMemoryWriteTransaction:
    """Stages writes and applies them to the store on commit."""

    def __init__(self, store: "InMemoryChunkIndexStore", owner_id: str, entry_id: UUID | None):
        self.store = store
        self.owner_id = owner_id
        self.entry_id = entry_id
        self.existing: JournalEntry | None = None
        self._ops: list = []
        self._finished = False

    async def __aenter__(self):
        if self.entry_id is not None:
            self.existing = self.store._owned(self.owner_id, self.entry_id)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None:
            if not self._finished:
                await self.rollback()
            return
        if not self._finished:
            await self.commit()

    def _check(self, operation: str) -> None:
        if self._finished:
            raise RuntimeError("Entry write transaction is not active")
        if operation in self.store.fail_operations:
            raise StoreError(message=f"mock store failure in {operation}")

    async def save_entry(self, entry: JournalEntry) -> None:
        self._check("save_entry")
        self._ops.append(("entry", entry.model_copy(deep=True)))

    async def replace_chunks(self, entry_id: UUID, chunks: Sequence[JournalChunk]) -> None:
        self._check("replace_chunks")
        self._ops.append(("chunks", entry_id, [chunk.model_copy() for chunk in chunks]))

    async def upsert_entry_embedding(self, entry_id: UUID, vector: list[float]) -> None:
        self._check("upsert_entry_embedding")
        self._ops.append(("embedding", entry_id, list(vector)))

    async def delete_entry_embedding(self, entry_id: UUID) -> None:
        self._check("delete_entry_embedding")
        self._ops.append(("drop_embedding", entry_id))

    async def update_derived_fields(self, entry_id, image_path, emotion_labels, reflection_prompt) -> None:
        self._check("update_derived_fields")
        self._ops.append(("derived", entry_id, image_path, emotion_labels, reflection_prompt))

    async def delete_entry(self, entry_id: UUID) -> None:
        self._check("delete_entry")
        self._ops.append(("delete", entry_id))

    async def commit(self) -> None:
        self._check("commit")
        self._finished = True
        for op in self._ops:
            kind = op[0]
            if kind == "entry":
                self.store.entries[op[1].id] = op[1]
            elif kind == "chunks":
                self.store.chunks[op[1]] = op[2]
            elif kind == "embedding":
                self.store.entry_embeddings[op[1]] = op[2]
            elif kind == "drop_embedding":
                self.store.entry_embeddings.pop(op[1], None)
            elif kind == "derived":
                entry = self.store.entries[op[1]]
                entry.image_path, entry.emotion_labels, entry.reflection_prompt = op[2], op[3], op[4]
            elif kind == "delete":
                self.store.entries.pop(op[1], None)
                self.store.chunks.pop(op[1], None)
                self.store.entry_embeddings.pop(op[1], None)
        self.store.commits += 1

    async def rollback(self) -> None:
        self._finished = True
        self._ops.clear()
        self.store.rollbacks += 1


class InMemoryChunkIndexStore:
    """Mock chunk index store with the same ownership and candidate semantics as Neo4j."""

    def __init__(self):
        self.entries: dict[UUID, JournalEntry] = {}
        self.chunks: dict[UUID, list[JournalChunk]] = {}
        self.entry_embeddings: dict[UUID, list[float]] = {}
        self.fail_operations: set[str] = set()
        self.commits = 0
        self.rollbacks = 0
        self.keyword_calls: list[tuple[str, list[str], int]] = []
        self.semantic_calls: list[tuple[str, int]] = []

    def _owned(self, owner_id: str, entry_id: UUID) -> JournalEntry:
        entry = self.entries.get(entry_id)
        if entry is None:
            raise NotFound(message=f"Journal entry {entry_id} not found")
        if entry.owner_id != owner_id:
            raise Forbidden(message=f"Journal entry {entry_id} belongs to another user")
        return entry.model_copy(deep=True)

    def begin_entry_write(self, owner_id: str, entry_id: UUID | None = None) -> InMemoryWriteTransaction:
        return InMemoryWriteTransaction(self, owner_id, entry_id)

    async def delete_entry(self, owner_id: str, entry_id: UUID) -> None:
        async with self.begin_entry_write(owner_id, entry_id) as tx:
            await tx.delete_entry(entry_id)

    async def get_entry(self, owner_id: str, entry_id: UUID) -> JournalEntry:
        return self._owned(owner_id, entry_id)

    async def list_entries(self, owner_id: str, limit: int = 100) -> list[JournalEntry]:
        owned = [e for e in self.entries.values() if e.owner_id == owner_id]
        return sorted(owned, key=lambda e: e.modified_at, reverse=True)[:limit]

    async def get_chunks(self, entry_id: UUID) -> list[JournalChunk]:
        return sorted(self.chunks.get(entry_id, []), key=lambda c: c.chunk_index)

    async def keyword_candidates(self, owner_id: str, keywords: Sequence[str], limit: int) -> list[RetrievalCandidate]:
        if "keyword_candidates" in self.fail_operations:
            raise StoreError(message="mock store failure in keyword_candidates")
        self.keyword_calls.append((owner_id, list(keywords), limit))
        hits = [
            e
            for e in await self.list_entries(owner_id, limit=10_000)
            if any(keyword in e.text.lower() for keyword in keywords)
        ]
        return [
            RetrievalCandidate(
                entry_id=e.id,
                text=e.text,
                score=KEYWORD_MATCH_DISTANCE,
                source=CandidateSource.KEYWORD,
                created_at=e.created_at,
                modified_at=e.modified_at,
            )
            for e in hits[:limit]
        ]

    async def semantic_candidates(self, owner_id: str, embedding: list[float], limit: int) -> list[RetrievalCandidate]:
        if "semantic_candidates" in self.fail_operations:
            raise StoreError(message="mock store failure in semantic_candidates")
        self.semantic_calls.append((owner_id, limit))
        query = np.asarray(embedding)
        results = []
        for entry in self.entries.values():
            if entry.owner_id != owner_id or not self.chunks.get(entry.id):
                continue
            distance = min(
                1.0 - float(np.dot(query, chunk.embedding) / (np.linalg.norm(query) * np.linalg.norm(chunk.embedding)))
                for chunk in self.chunks[entry.id]
            )
            results.append(
                RetrievalCandidate(
                    entry_id=entry.id,
                    text=entry.text,
                    score=distance,
                    source=CandidateSource.SEMANTIC,
                    created_at=entry.created_at,
                    modified_at=entry.modified_at,
                )
            )
        results.sort(key=lambda c: (c.score, -c.modified_at.timestamp()))
        return results[:limit]


class InMemoryChatMessageStore:
    def __init__(self):
        self.messages: list[ChatMessage] = []
        self.append_calls = 0

    async def recent_messages(self, owner_id: str, conversation_id: str, limit: int) -> list[ChatMessage]:
        matching = [m for m in self.messages if m.owner_id == owner_id and m.conversation_id == conversation_id]
        return sorted(matching, key=lambda m: m.created_at, reverse=True)[:limit]

    async def append_exchange(self, user_message: ChatMessage, agent_message: ChatMessage) -> None:
        self.append_calls += 1
        self.messages.extend([user_message, agent_message])


class MockReplyGenerator:
    """Records every call and returns a canned reply."""

    def __init__(self, reply: str = "That sounds like a meaningful day."):
        self.reply = reply
        self.calls: list[tuple[str, str, str]] = []
        self.fail = False

    async def generate(self, context_text: str, mode: str, history_text: str) -> str:
        self.calls.append((context_text, mode, history_text))
        if self.fail:
            raise ReplyGenerationError(message="mock reply failure")
        return self.reply


class MockEmotionClassifier:
    def __init__(self):
        self.calls: list[str] = []
        self.fail = False

    async def analyze(self, text: str) -> EmotionAnalysis:
        self.calls.append(text)
        if self.fail:
            raise ServiceError(message="mock analysis failure")
        return EmotionAnalysis(emotions=["joy", "gratitude"], prompt="What made today feel good?")

    async def reflection_prompt(self, text: str) -> str:
        self.calls.append(text)
        if self.fail:
            raise ServiceError(message="mock prompt failure")
        return "What would you like to remember about this?"


class MockImageGenerator:
    def __init__(self):
        self.calls: list[tuple[str, UUID]] = []
        self.discarded: list[UUID] = []
        self.delay = 0.0
        self.fail = False

    async def generate(self, text: str, entry_id: UUID) -> str | None:
        self.calls.append((text, entry_id))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ServiceError(message="mock image failure")
        return f"/images/{entry_id}.png"

    def discard(self, entry_id: UUID) -> None:
        self.discarded.append(entry_id)


@pytest.fixture
def embeddings():
    return MockEmbeddingService()


@pytest.fixture
def store():
    return InMemoryChunkIndexStore()


@pytest.fixture
def chat_store():
    return InMemoryChatMessageStore()


@pytest.fixture
def emotion_classifier():
    return MockEmotionClassifier()


@pytest.fixture
def image_generator():
    return MockImageGenerator()


@pytest.fixture
def reply_generator():
    return MockReplyGenerator()


@pytest.fixture
def indexing_service(store, embeddings, emotion_classifier, image_generator):
    return JournalIndexingService(
        store,
        embeddings,
        emotion_classifier=emotion_classifier,
        image_generator=image_generator,
        embedding_concurrency=4,
        request_timeout=5.0,
    )


@pytest.fixture
def search_service(store, embeddings):
    return HybridSearchService(store, embeddings, keyword_limit=5, semantic_limit=5)


@pytest.fixture
def chat_service(search_service, chat_store, reply_generator):
    assembler = ContextAssembler(search_service, chat_store, context_k=3, history_limit=5, excerpt_chars=280)
    return ChatService(assembler, reply_generator, chat_store)
