"""Neo4j-backed chunk index store.

Entries, their sentence chunks and whole-entry embeddings live in one graph;
every mutation of an entry happens inside a single ``EntryWriteTransaction``
so that readers never observe an entry whose chunks are out of date.
"""

from collections.abc import Sequence
from typing import Any
from uuid import UUID

from neo4j import AsyncDriver, AsyncSession, AsyncTransaction
from neo4j.exceptions import DriverError, Neo4jError

from journal_recall.core.base import EntryErrorDetails
from journal_recall.core.decorators import with_session
from journal_recall.core.errors import Forbidden, NotFound
from journal_recall.core.logging import get_logger
from journal_recall.domain.models import (
    KEYWORD_MATCH_DISTANCE,
    CandidateSource,
    JournalChunk,
    JournalEntry,
    RetrievalCandidate,
)

from .errors import store_errors
from .queries import CHUNK_LABEL, EMBEDDING_LABEL, ENTRY_LABEL, JournalQueries

logger = get_logger(__name__)


async def _fetch_owned_entry(
    runner: AsyncSession | AsyncTransaction,
    owner_id: str,
    entry_id: UUID,
    action: str,
) -> JournalEntry:
    """Load an entry, raising NotFound if it is missing and Forbidden if another owner holds it."""
    with store_errors("fetch_entry", label=ENTRY_LABEL):
        result = await runner.run(JournalQueries.ENTRY_BY_ID, {"entry_id": str(entry_id)})
        record = await result.single()

    details = EntryErrorDetails(
        source="Neo4jChunkIndexStore",
        operation="check_ownership",
        entry_id=str(entry_id),
        action=action,
    )
    if record is None:
        raise NotFound(message=f"Journal entry {entry_id} not found", details=details)

    entry = JournalEntry.from_neo4j_record(dict(record["e"]))
    if entry.owner_id != owner_id:
        raise Forbidden(message=f"Journal entry {entry_id} belongs to another user", details=details)
    return entry


class EntryWriteTransaction:
    """One atomic write of an entry and its index rows.

    Usage:
        async with store.begin_entry_write(owner_id, entry_id) as tx:
            await tx.save_entry(entry)
            await tx.replace_chunks(entry.id, chunks)

    Leaving the block normally commits; leaving it with any exception,
    cancellation included, rolls back. The session is closed either way.
    """

    def __init__(self, driver: AsyncDriver, owner_id: str, entry_id: UUID | None = None) -> None:
        self.driver = driver
        self.owner_id = owner_id
        self.entry_id = entry_id
        # Entry as stored before this write, when updating
        self.existing: JournalEntry | None = None
        self._session: AsyncSession | None = None
        self._tx: AsyncTransaction | None = None
        self._finished = False

    async def __aenter__(self) -> "EntryWriteTransaction":
        self._session = self.driver.session()
        try:
            with store_errors("begin_transaction", query_type="write"):
                self._tx = await self._session.begin_transaction()
            if self.entry_id is not None:
                self.existing = await _fetch_owned_entry(self._tx, self.owner_id, self.entry_id, "write")
        except BaseException:
            await self._abort()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            await self._abort()
            return
        try:
            if not self._finished:
                await self.commit()
        finally:
            await self._close_session()

    @property
    def tx(self) -> AsyncTransaction:
        if self._tx is None or self._finished:
            raise RuntimeError("Entry write transaction is not active")
        return self._tx

    async def _run(self, operation: str, query: Any, params: dict[str, Any], label: str = ENTRY_LABEL) -> None:
        with store_errors(operation, query_type="write", label=label):
            result = await self.tx.run(query, params)
            await result.consume()

    async def save_entry(self, entry: JournalEntry) -> None:
        """Create the entry node or overwrite its properties."""
        await self._run(
            "save_entry",
            JournalQueries.SAVE_ENTRY,
            {"id": str(entry.id), "properties": entry.to_neo4j_properties()},
        )

    async def replace_chunks(self, entry_id: UUID, chunks: Sequence[JournalChunk]) -> None:
        """Delete every chunk of the entry, then insert ``chunks``."""
        await self._run("delete_chunks", JournalQueries.DELETE_CHUNKS, {"entry_id": str(entry_id)}, CHUNK_LABEL)
        if chunks:
            await self._run(
                "create_chunks",
                JournalQueries.CREATE_CHUNKS,
                {"entry_id": str(entry_id), "chunks": [chunk.to_neo4j_properties() for chunk in chunks]},
                CHUNK_LABEL,
            )
        logger.debug("Replaced entry chunks", entry_id=str(entry_id), chunks=len(chunks))

    async def upsert_entry_embedding(self, entry_id: UUID, vector: list[float]) -> None:
        await self._run(
            "upsert_entry_embedding",
            JournalQueries.UPSERT_ENTRY_EMBEDDING,
            {"entry_id": str(entry_id), "embedding": vector},
            EMBEDDING_LABEL,
        )

    async def delete_entry_embedding(self, entry_id: UUID) -> None:
        """Drop the entry-level embedding so it never describes replaced text."""
        await self._run(
            "delete_entry_embedding",
            JournalQueries.DELETE_ENTRY_EMBEDDING,
            {"entry_id": str(entry_id)},
            EMBEDDING_LABEL,
        )

    async def update_derived_fields(
        self,
        entry_id: UUID,
        image_path: str | None,
        emotion_labels: list[str] | None,
        reflection_prompt: str | None,
    ) -> None:
        await self._run(
            "update_derived_fields",
            JournalQueries.UPDATE_DERIVED_FIELDS,
            {
                "entry_id": str(entry_id),
                "image_path": image_path,
                "emotion_labels": emotion_labels,
                "reflection_prompt": reflection_prompt,
            },
        )

    async def delete_entry(self, entry_id: UUID) -> None:
        """Remove the entry together with its chunks and entry-level embedding."""
        await self._run("delete_entry", JournalQueries.DELETE_ENTRY, {"entry_id": str(entry_id)})

    async def commit(self) -> None:
        with store_errors("commit", query_type="write"):
            await self.tx.commit()
        self._finished = True

    async def rollback(self) -> None:
        with store_errors("rollback", query_type="write"):
            await self.tx.rollback()
        self._finished = True

    async def _abort(self) -> None:
        """Roll back while another exception is propagating."""
        try:
            if self._tx is not None and not self._finished:
                self._finished = True
                await self._tx.rollback()
        except (Neo4jError, DriverError) as e:
            # The original exception is the one worth surfacing
            logger.warning("Rollback failed", entry_id=str(self.entry_id), error=e)
        finally:
            await self._close_session()

    async def _close_session(self) -> None:
        if self._session is not None:
            session, self._session = self._session, None
            await session.close()


class Neo4jChunkIndexStore:
    """Persistence for entries, chunks and the two candidate queries."""

    def __init__(self, driver: AsyncDriver) -> None:
        self.driver = driver

    def begin_entry_write(self, owner_id: str, entry_id: UUID | None = None) -> EntryWriteTransaction:
        """Open a write transaction; with ``entry_id`` ownership is checked on enter."""
        return EntryWriteTransaction(self.driver, owner_id, entry_id)

    async def delete_entry(self, owner_id: str, entry_id: UUID) -> None:
        async with self.begin_entry_write(owner_id, entry_id) as tx:
            await tx.delete_entry(entry_id)
        logger.info("Deleted journal entry", owner_id=owner_id, entry_id=str(entry_id))

    @with_session()
    async def get_entry(self, session: AsyncSession, owner_id: str, entry_id: UUID) -> JournalEntry:
        return await _fetch_owned_entry(session, owner_id, entry_id, "read")

    @with_session()
    async def list_entries(self, session: AsyncSession, owner_id: str, limit: int = 100) -> list[JournalEntry]:
        query, params = JournalQueries.list_entries(owner_id, limit)
        with store_errors("list_entries", label=ENTRY_LABEL):
            result = await session.run(query, params)
            records = await result.data()
        return [JournalEntry.from_neo4j_record(record["e"]) for record in records]

    @with_session()
    async def get_chunks(self, session: AsyncSession, entry_id: UUID) -> list[JournalChunk]:
        query, params = JournalQueries.entry_chunks(entry_id)
        with store_errors("get_chunks", label=CHUNK_LABEL):
            result = await session.run(query, params)
            records = await result.data()
        return [JournalChunk(**record["c"]) for record in records]

    @with_session()
    async def keyword_candidates(
        self, session: AsyncSession, owner_id: str, keywords: Sequence[str], limit: int
    ) -> list[RetrievalCandidate]:
        """Entries containing any of ``keywords``; every hit scores KEYWORD_MATCH_DISTANCE."""
        query, params = JournalQueries.keyword_candidates(owner_id, keywords, limit)
        with store_errors("keyword_candidates", label=ENTRY_LABEL):
            result = await session.run(query, params)
            records = await result.data()
        return [
            RetrievalCandidate(**record, score=KEYWORD_MATCH_DISTANCE, source=CandidateSource.KEYWORD)
            for record in records
        ]

    @with_session()
    async def semantic_candidates(
        self, session: AsyncSession, owner_id: str, embedding: list[float], limit: int
    ) -> list[RetrievalCandidate]:
        """Entries ranked by their nearest chunk's cosine distance."""
        query, params = JournalQueries.semantic_candidates(owner_id, embedding, limit)
        with store_errors("semantic_candidates", label=CHUNK_LABEL):
            result = await session.run(query, params)
            records = await result.data()
        return [
            RetrievalCandidate(
                entry_id=record["entry_id"],
                text=record["text"],
                created_at=record.get("created_at"),
                modified_at=record.get("modified_at"),
                score=record["distance"],
                source=CandidateSource.SEMANTIC,
            )
            for record in records
        ]
