"""Hybrid keyword and semantic search over journal entries."""

import re
from collections.abc import Iterable
from datetime import datetime

from journal_recall.core.base import ErrorLevel
from journal_recall.core.concurrency import gather_or_cancel
from journal_recall.core.decorators import with_error_handling
from journal_recall.core.errors import EmbeddingServiceError
from journal_recall.core.logging import get_logger, log_context
from journal_recall.domain.models import EmbeddingType, RetrievalCandidate, SearchQuery
from journal_recall.infrastructure.embeddings import EmbeddingService
from journal_recall.services import ChunkIndexStore

logger = get_logger(__name__)

_WORD = re.compile(r"\w+")
MIN_KEYWORD_LENGTH = 3


def tokenize(query: str) -> list[str]:
    """Lower-cased words longer than two characters, first occurrence order."""
    seen: dict[str, None] = {}
    for word in _WORD.findall(query.lower()):
        if len(word) >= MIN_KEYWORD_LENGTH:
            seen.setdefault(word)
    return list(seen)


def _recency(candidate: RetrievalCandidate) -> float:
    moment: datetime | None = candidate.modified_at or candidate.created_at
    return moment.timestamp() if moment else float("-inf")


def merge_candidates(*candidate_sets: Iterable[RetrievalCandidate], k: int) -> list[RetrievalCandidate]:
    """Merge candidate lists by entry id and keep the ``k`` best.

    An entry found by both signals keeps its smaller score and that score's
    source. Ties are broken by recency, newest first, then by entry id.
    """
    best: dict = {}
    for candidates in candidate_sets:
        for candidate in candidates:
            current = best.get(candidate.entry_id)
            if current is None or candidate.score < current.score:
                best[candidate.entry_id] = candidate

    ranked = sorted(best.values(), key=lambda c: (c.score, -_recency(c), str(c.entry_id)))
    return ranked[:k]


class HybridSearchService:
    """Runs the keyword and semantic candidate queries and merges their results."""

    def __init__(
        self,
        store: ChunkIndexStore,
        embeddings: EmbeddingService,
        keyword_limit: int = 5,
        semantic_limit: int = 5,
    ) -> None:
        self.store = store
        self.embeddings = embeddings
        self.keyword_limit = keyword_limit
        self.semantic_limit = semantic_limit

    @with_error_handling(error_level=ErrorLevel.ERROR)
    async def search(self, query: SearchQuery) -> list[RetrievalCandidate]:
        """Return at most ``query.k`` entries ordered by ascending distance.

        If the query cannot be embedded the search falls back to keyword
        matches alone. Store failures propagate.
        """
        keywords = tokenize(query.query)

        with log_context(owner_id=query.owner_id):
            keyword_hits, semantic_hits = await gather_or_cancel(
                self._keyword_branch(query.owner_id, keywords),
                self._semantic_branch(query.owner_id, query.query),
            )
            results = merge_candidates(keyword_hits, semantic_hits, k=query.k)

            logger.debug(
                "Hybrid search finished",
                keywords=keywords,
                keyword_hits=len(keyword_hits),
                semantic_hits=len(semantic_hits),
                returned=len(results),
            )
            return results

    async def _keyword_branch(self, owner_id: str, keywords: list[str]) -> list[RetrievalCandidate]:
        if not keywords:
            return []
        return await self.store.keyword_candidates(owner_id, keywords, self.keyword_limit)

    async def _semantic_branch(self, owner_id: str, text: str) -> list[RetrievalCandidate]:
        # Blank queries are embedded too
        try:
            vector = await self.embeddings.embed(text, EmbeddingType.QUERY)
        except EmbeddingServiceError as e:
            logger.warning("Query embedding failed, using keyword matches only", error=e.message)
            return []
        return await self.store.semantic_candidates(owner_id, vector, self.semantic_limit)
