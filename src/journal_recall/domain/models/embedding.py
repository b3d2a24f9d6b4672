"""Embedding models."""

from enum import Enum


class EmbeddingType(str, Enum):
    """What a vector is used for; providers tune the embedding accordingly."""

    DOCUMENT = "document"
    QUERY = "query"
