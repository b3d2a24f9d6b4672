"""Construction of the configured embedding provider."""

import httpx

from journal_recall.core.config import Settings
from journal_recall.core.logging import get_logger

from .base import EmbeddingService
from .gemini import GeminiEmbeddingService
from .voyage import VoyageEmbeddingService

logger = get_logger(__name__)


def create_embedding_service(settings: Settings, http_client: httpx.AsyncClient) -> EmbeddingService:
    """Build the embedding service selected by ``EMBEDDING_PROVIDER``.

    Args:
        settings: Application settings
        http_client: Shared HTTP client, used by the Gemini provider

    Returns:
        An embedding service producing ``settings.embedding_dimensions`` floats
    """
    logger.info(
        "Creating embedding service",
        provider=settings.embedding_provider,
        model=settings.embedding_model,
        dimensions=settings.embedding_dimensions,
    )
    if settings.embedding_provider == "voyage":
        return VoyageEmbeddingService(
            api_key=settings.voyage_api_key,
            model=settings.embedding_model,
            dimensions=settings.embedding_dimensions,
            timeout=settings.embedding_timeout_seconds,
        )
    return GeminiEmbeddingService(
        client=http_client,
        api_key=settings.gemini_api_key,
        model=settings.embedding_model,
        dimensions=settings.embedding_dimensions,
        timeout=settings.embedding_timeout_seconds,
        base_url=settings.gemini_base_url,
    )
