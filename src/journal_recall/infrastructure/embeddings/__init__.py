"""Embedding providers."""

from .base import EmbeddingService, validate_vector
from .factory import create_embedding_service
from .gemini import GeminiEmbeddingService
from .voyage import VoyageEmbeddingService

__all__ = [
    "EmbeddingService",
    "GeminiEmbeddingService",
    "VoyageEmbeddingService",
    "create_embedding_service",
    "validate_vector",
]
