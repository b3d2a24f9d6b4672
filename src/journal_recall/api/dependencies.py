"""API dependencies.

Services are built once in the application lifespan and kept on
``app.state.services``; endpoints resolve them per request.
"""

from dataclasses import dataclass

import httpx
from fastapi import HTTPException, Request
from neo4j import AsyncDriver

from journal_recall.core.config import Settings
from journal_recall.core.logging import get_logger
from journal_recall.infrastructure.embeddings import create_embedding_service
from journal_recall.infrastructure.genai import (
    GeminiClient,
    GeminiEmotionClassifier,
    GeminiImageGenerator,
    GeminiReplyGenerator,
)
from journal_recall.infrastructure.neo4j import Neo4jChatMessageStore, Neo4jChunkIndexStore
from journal_recall.services.chat import ChatService, ContextAssembler
from journal_recall.services.indexing import JournalIndexingService
from journal_recall.services.search import HybridSearchService

logger = get_logger(__name__)


@dataclass
class AppServices:
    indexing: JournalIndexingService
    search: HybridSearchService
    chat: ChatService
    driver: AsyncDriver | None = None


def build_services(settings: Settings, driver: AsyncDriver, http_client: httpx.AsyncClient) -> AppServices:
    """Wire stores, providers and services from settings."""
    store = Neo4jChunkIndexStore(driver)
    messages = Neo4jChatMessageStore(driver)
    embeddings = create_embedding_service(settings, http_client)

    gemini = GeminiClient(
        http_client,
        api_key=settings.gemini_api_key,
        base_url=settings.gemini_base_url,
        timeout=settings.generation_timeout_seconds,
    )

    search = HybridSearchService(
        store,
        embeddings,
        keyword_limit=settings.keyword_candidate_limit,
        semantic_limit=settings.semantic_candidate_limit,
    )
    indexing = JournalIndexingService(
        store,
        embeddings,
        emotion_classifier=GeminiEmotionClassifier(gemini, model=settings.analysis_model),
        image_generator=GeminiImageGenerator(gemini, images_dir=settings.images_dir, model=settings.image_model),
        embedding_concurrency=settings.embedding_concurrency,
        request_timeout=settings.request_timeout_seconds,
        enrichment_timeout=settings.enrichment_timeout_seconds,
    )
    assembler = ContextAssembler(
        search,
        messages,
        context_k=settings.chat_context_k,
        history_limit=settings.chat_history_limit,
        excerpt_chars=settings.excerpt_chars,
    )
    chat = ChatService(assembler, GeminiReplyGenerator(gemini, model=settings.reply_model), messages)

    logger.info("Services initialized", embedding_provider=settings.embedding_provider)
    return AppServices(indexing=indexing, search=search, chat=chat, driver=driver)


def get_services(request: Request) -> AppServices:
    services: AppServices | None = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Services not initialized")
    return services


def get_indexing_service(request: Request) -> JournalIndexingService:
    return get_services(request).indexing


def get_search_service(request: Request) -> HybridSearchService:
    return get_services(request).search


def get_chat_service(request: Request) -> ChatService:
    return get_services(request).chat
