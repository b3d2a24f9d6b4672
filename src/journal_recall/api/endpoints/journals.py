"""Journal API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from journal_recall.api.dependencies import get_indexing_service, get_search_service
from journal_recall.core.config import settings
from journal_recall.core.logging import get_logger
from journal_recall.domain.models import JournalEntry, RetrievalCandidate, SearchQuery, UpsertEntryCommand
from journal_recall.services.indexing import EntryWithChunks, JournalIndexingService, UpsertResult
from journal_recall.services.search import HybridSearchService

logger = get_logger(__name__)
router = APIRouter()


class ReflectionPromptRequest(BaseModel):
    text: str = Field(min_length=1)


class ReflectionPromptResponse(BaseModel):
    prompt: str


class SearchResponse(BaseModel):
    results: list[RetrievalCandidate]
    count: int


@router.post("", response_model=UpsertResult, operation_id="upsert_entry")
async def upsert_entry(
    command: UpsertEntryCommand,
    indexing: JournalIndexingService = Depends(get_indexing_service),
) -> UpsertResult:
    """Create a journal entry, or replace it when ``entry_id`` is given."""
    logger.info("Upserting journal entry", owner_id=command.owner_id, update=command.entry_id is not None)
    return await indexing.upsert_entry(command)


@router.post("/prompt", response_model=ReflectionPromptResponse, operation_id="reflection_prompt")
async def reflection_prompt(
    request: ReflectionPromptRequest,
    indexing: JournalIndexingService = Depends(get_indexing_service),
) -> ReflectionPromptResponse:
    """Suggest a reflective question for text that has not been saved yet."""
    return ReflectionPromptResponse(prompt=await indexing.reflection_prompt(request.text))


@router.get("/{owner_id}", response_model=list[JournalEntry], operation_id="list_entries")
async def list_entries(
    owner_id: str,
    limit: int = Query(100, ge=1, le=500),
    indexing: JournalIndexingService = Depends(get_indexing_service),
) -> list[JournalEntry]:
    return await indexing.list_entries(owner_id, limit)


@router.get("/{owner_id}/search", response_model=SearchResponse, operation_id="search_entries")
async def search_entries(
    owner_id: str,
    query: str = "",
    k: int = settings.search_default_k,
    search: HybridSearchService = Depends(get_search_service),
) -> SearchResponse:
    """Hybrid keyword and semantic search; lower scores are closer matches."""
    results = await search.search(SearchQuery.parse({"owner_id": owner_id, "query": query, "k": k}))
    return SearchResponse(results=results, count=len(results))


@router.get("/{owner_id}/entries/{entry_id}", response_model=EntryWithChunks, operation_id="get_entry")
async def get_entry(
    owner_id: str,
    entry_id: UUID,
    indexing: JournalIndexingService = Depends(get_indexing_service),
) -> EntryWithChunks:
    return await indexing.get_entry(owner_id, entry_id)


@router.delete(
    "/{owner_id}/entries/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    operation_id="delete_entry",
)
async def delete_entry(
    owner_id: str,
    entry_id: UUID,
    indexing: JournalIndexingService = Depends(get_indexing_service),
) -> None:
    await indexing.delete_entry(owner_id, entry_id)
