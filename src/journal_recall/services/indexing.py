"""Journal entry indexing.

Coordinates one entry write: chunk the text, embed every chunk concurrently,
run the optional enrichment collaborators alongside, and persist the entry,
its surviving chunks and derived fields in a single store transaction.
"""

import asyncio
from collections.abc import Awaitable
from enum import Enum
from typing import TypeVar
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from journal_recall.core.base import ErrorLevel, ServiceErrorDetails
from journal_recall.core.concurrency import gather_or_cancel
from journal_recall.core.decorators import with_error_handling
from journal_recall.core.errors import EmbeddingServiceError, RequestTimeout, ServiceError
from journal_recall.core.logging import get_logger, log_context
from journal_recall.domain.chunking import SentenceChunker
from journal_recall.domain.models import (
    ChunkDraft,
    EmbeddingType,
    JournalChunk,
    JournalEntry,
    UpsertEntryCommand,
)
from journal_recall.domain.models.utils import utc_now
from journal_recall.infrastructure.embeddings import EmbeddingService
from journal_recall.infrastructure.genai import EmotionAnalysis, EmotionClassifier, ImageGenerator
from journal_recall.services import ChunkIndexStore

logger = get_logger(__name__)

T = TypeVar("T")

# Fraction of the request deadline an enrichment call may use
ENRICHMENT_BUDGET_SHARE = 0.5


class UpsertState(str, Enum):
    STARTED = "started"
    CHUNKED = "chunked"
    EMBEDDING = "embedding"
    PARTIAL_EMBEDDING_FAILURE = "partial_embedding_failure"
    ALL_EMBEDDED = "all_embedded"
    INDEXED = "indexed"
    COMMITTED = "committed"
    ABORTED = "aborted"


class UpsertResult(BaseModel):
    """Outcome of a committed entry write."""

    entry: JournalEntry
    indexed_chunks: list[int] = Field(description="Indices of chunks stored with an embedding")
    skipped_chunks: list[int] = Field(description="Indices dropped because their embedding failed")
    state: UpsertState
    history: list[UpsertState] = Field(default_factory=list)


class EntryWithChunks(BaseModel):
    entry: JournalEntry
    chunks: list[JournalChunk]


class _Progress:
    """State transitions of a single upsert, logged as they happen."""

    def __init__(self) -> None:
        self.history: list[UpsertState] = []

    @property
    def state(self) -> UpsertState:
        return self.history[-1]

    def advance(self, state: UpsertState, **fields) -> None:
        self.history.append(state)
        logger.debug("Upsert state changed", state=state.value, **fields)


class _Enrichment(BaseModel):
    image_requested: bool = False
    analysis_requested: bool = False
    image_path: str | None = None
    analysis: EmotionAnalysis | None = None


class JournalIndexingService:
    """Creates, updates and deletes journal entries together with their indexes."""

    def __init__(
        self,
        store: ChunkIndexStore,
        embeddings: EmbeddingService,
        chunker: SentenceChunker | None = None,
        emotion_classifier: EmotionClassifier | None = None,
        image_generator: ImageGenerator | None = None,
        embedding_concurrency: int = 8,
        request_timeout: float = 30.0,
        enrichment_timeout: float | None = None,
    ) -> None:
        self.store = store
        self.embeddings = embeddings
        self.chunker = chunker or SentenceChunker()
        self.emotion_classifier = emotion_classifier
        self.image_generator = image_generator
        self.embedding_concurrency = embedding_concurrency
        self.request_timeout = request_timeout
        self.enrichment_timeout = enrichment_timeout

    @property
    def enrichment_deadline(self) -> float:
        """Seconds each enrichment call may run; always inside the request deadline."""
        budget = self.request_timeout * ENRICHMENT_BUDGET_SHARE
        return min(self.enrichment_timeout, budget) if self.enrichment_timeout else budget

    @with_error_handling(error_level=ErrorLevel.ERROR)
    async def upsert_entry(self, command: UpsertEntryCommand) -> UpsertResult:
        """Insert a new entry or replace an existing one and its chunks.

        Chunks whose embedding fails are skipped; the write still commits with
        the remaining chunks, which keep their original indices. Enrichment
        failures and timeouts leave the corresponding derived field empty and
        never fail the write; on update, enrichment that was not requested
        keeps the stored value. An update without a new whole-entry vector
        drops the old one.

        Raises:
            InvalidInput: If the text cannot be chunked
            NotFound: If ``command.entry_id`` does not exist
            Forbidden: If the entry belongs to another owner
            StoreError: If the datastore fails; nothing is persisted
            RequestTimeout: If the whole write exceeds ``request_timeout``
        """
        entry_id = command.entry_id or uuid4()
        progress = _Progress()

        with log_context(owner_id=command.owner_id, entry_id=str(entry_id)):
            progress.advance(UpsertState.STARTED, update=command.entry_id is not None)
            try:
                async with asyncio.timeout(self.request_timeout):
                    result = await self._upsert(command, entry_id, progress)
            except TimeoutError as e:
                progress.advance(UpsertState.ABORTED, reason="timeout")
                raise RequestTimeout(
                    message=f"Journal entry write exceeded {self.request_timeout}s",
                    details={"source": "JournalIndexingService", "operation": "upsert_entry"},
                ) from e
            except BaseException:
                progress.advance(UpsertState.ABORTED)
                raise

            logger.info(
                "Journal entry indexed",
                chunks=len(result.indexed_chunks),
                skipped=len(result.skipped_chunks),
            )
            return result

    async def _upsert(self, command: UpsertEntryCommand, entry_id: UUID, progress: _Progress) -> UpsertResult:
        drafts = self.chunker.chunk(command.text)
        progress.advance(UpsertState.CHUNKED, chunks=len(drafts))

        # Stays True until we know no committed entry refers to the image file
        keep_image_file = True
        try:
            async with self.store.begin_entry_write(command.owner_id, command.entry_id) as tx:
                now = utc_now()
                existing = tx.existing
                keep_image_file = existing is not None and existing.image_path is not None
                entry = JournalEntry(
                    id=entry_id,
                    owner_id=command.owner_id,
                    text=command.text,
                    created_at=existing.created_at if existing else now,
                    modified_at=now,
                    entry_date=command.entry_date or (existing.entry_date if existing else None),
                )
                await tx.save_entry(entry)

                progress.advance(UpsertState.EMBEDDING)
                results, whole_vector, enrichment = await gather_or_cancel(
                    self._embed_chunks(entry_id, drafts),
                    self._embed_whole_entry(command),
                    self._enrich(command, entry_id),
                )
                chunks = [chunk for chunk in results if chunk is not None]
                skipped = [draft.index for draft, chunk in zip(drafts, results, strict=True) if chunk is None]
                progress.advance(
                    UpsertState.PARTIAL_EMBEDDING_FAILURE if skipped else UpsertState.ALL_EMBEDDED,
                    skipped=skipped,
                )

                await tx.replace_chunks(entry_id, chunks)
                if whole_vector is not None:
                    await tx.upsert_entry_embedding(entry_id, whole_vector)
                elif existing is not None:
                    await tx.delete_entry_embedding(entry_id)

                _apply_enrichment(entry, enrichment, existing)
                await tx.update_derived_fields(
                    entry_id, entry.image_path, entry.emotion_labels, entry.reflection_prompt
                )
                progress.advance(UpsertState.INDEXED)

                await tx.commit()
                progress.advance(UpsertState.COMMITTED)
        except BaseException:
            if not keep_image_file and command.generate_image and self.image_generator is not None:
                self.image_generator.discard(entry_id)
            raise

        return UpsertResult(
            entry=entry,
            indexed_chunks=[chunk.chunk_index for chunk in chunks],
            skipped_chunks=skipped,
            state=progress.state,
            history=list(progress.history),
        )

    async def _embed_chunks(self, entry_id: UUID, drafts: list[ChunkDraft]) -> list[JournalChunk | None]:
        """Embed drafts with bounded concurrency; failed ones come back as None."""
        semaphore = asyncio.Semaphore(self.embedding_concurrency)

        async def embed_one(draft: ChunkDraft) -> JournalChunk | None:
            async with semaphore:
                try:
                    vector = await self.embeddings.embed(draft.text, EmbeddingType.DOCUMENT)
                except EmbeddingServiceError as e:
                    logger.warning("Skipping chunk after embedding failure", chunk_index=draft.index, error=e.message)
                    return None
            return JournalChunk(entry_id=entry_id, chunk_index=draft.index, text=draft.text, embedding=vector)

        return await gather_or_cancel(*(embed_one(draft) for draft in drafts))

    async def _embed_whole_entry(self, command: UpsertEntryCommand) -> list[float] | None:
        if not command.embed_whole_entry:
            return None
        try:
            return await self.embeddings.embed(command.text, EmbeddingType.DOCUMENT)
        except EmbeddingServiceError as e:
            logger.warning("Whole-entry embedding failed, entry kept without one", error=e.message)
            return None

    async def _enrich(self, command: UpsertEntryCommand, entry_id: UUID) -> _Enrichment:
        """Run the enrichment collaborators side by side.

        Each call has its own deadline inside the request deadline, and a
        failure or timeout only empties its own field.
        """
        image_requested = command.generate_image and self.image_generator is not None
        analysis_requested = command.classify_emotions and self.emotion_classifier is not None
        deadline = self.enrichment_deadline

        image_path, analysis = await gather_or_cancel(
            _optional("image_generation", self.image_generator.generate(command.text, entry_id), deadline)
            if image_requested
            else _skipped(),
            _optional("emotion_analysis", self.emotion_classifier.analyze(command.text), deadline)
            if analysis_requested
            else _skipped(),
        )
        return _Enrichment(
            image_requested=image_requested,
            analysis_requested=analysis_requested,
            image_path=image_path,
            analysis=analysis,
        )

    @with_error_handling(error_level=ErrorLevel.ERROR)
    async def delete_entry(self, owner_id: str, entry_id: UUID) -> None:
        """Delete an entry with its chunks and embedding. Later searches never return it."""
        with log_context(owner_id=owner_id, entry_id=str(entry_id)):
            await self.store.delete_entry(owner_id, entry_id)

    async def get_entry(self, owner_id: str, entry_id: UUID) -> EntryWithChunks:
        entry = await self.store.get_entry(owner_id, entry_id)
        chunks = await self.store.get_chunks(entry_id)
        return EntryWithChunks(entry=entry, chunks=chunks)

    async def list_entries(self, owner_id: str, limit: int = 100) -> list[JournalEntry]:
        return await self.store.list_entries(owner_id, limit)

    @with_error_handling(error_level=ErrorLevel.WARNING)
    async def reflection_prompt(self, text: str) -> str:
        """Suggest a reflective question for unsaved text."""
        if self.emotion_classifier is None:
            raise ServiceError(
                message="No emotion classifier configured",
                details=ServiceErrorDetails(
                    source="JournalIndexingService", operation="reflection_prompt", service_name="emotion_classifier"
                ),
            )
        return await self.emotion_classifier.reflection_prompt(text)


def _apply_enrichment(entry: JournalEntry, enrichment: _Enrichment, existing: JournalEntry | None) -> None:
    """Set derived fields; collaborators that were not asked keep the stored values."""
    if enrichment.image_requested:
        entry.image_path = enrichment.image_path
    elif existing is not None:
        entry.image_path = existing.image_path

    if enrichment.analysis_requested:
        if enrichment.analysis is not None:
            entry.emotion_labels = enrichment.analysis.emotions
            entry.reflection_prompt = enrichment.analysis.prompt
    elif existing is not None:
        entry.emotion_labels = existing.emotion_labels
        entry.reflection_prompt = existing.reflection_prompt


async def _optional(name: str, awaitable: Awaitable[T], timeout: float) -> T | None:
    """Await an enrichment call, turning any failure or timeout into None."""
    try:
        async with asyncio.timeout(timeout):
            return await awaitable
    except TimeoutError:
        logger.warning("Enrichment timed out, field omitted", enrichment=name, timeout=timeout)
    except ServiceError as e:
        logger.warning("Enrichment failed, field omitted", enrichment=name, error=e.message)
    except Exception as e:
        logger.warning("Enrichment failed, field omitted", enrichment=name, error=e, exc_info=True)
    return None


async def _skipped() -> None:
    return None
