"""Embedding service interface and response validation shared by providers."""

from typing import Any, Protocol

import numpy as np

from journal_recall.core.base import AIServiceErrorDetails
from journal_recall.core.errors import EmbeddingServiceError
from journal_recall.domain.models import EmbeddingType


class EmbeddingService(Protocol):
    """Protocol for embedding providers.

    Implementations surface the first failure as ``EmbeddingServiceError``
    without retrying, and hold no mutable state besides their HTTP client, so
    a single instance may be awaited from many tasks at once.
    """

    dimensions: int

    async def embed(self, text: str, embedding_type: EmbeddingType = EmbeddingType.DOCUMENT) -> list[float]:
        """Return a vector of exactly ``dimensions`` floats for ``text``."""
        ...


def validate_vector(values: Any, dimensions: int, *, provider: str, model: str, text_length: int) -> list[float]:
    """Check a provider payload is a finite vector of the configured dimension.

    Raises:
        EmbeddingServiceError: If the payload is missing, has the wrong shape,
            or contains NaN or infinite values
    """

    def malformed(reason: str) -> EmbeddingServiceError:
        return EmbeddingServiceError(
            message=f"Malformed embedding response from {provider}: {reason}",
            details=AIServiceErrorDetails(
                source=provider,
                operation="validate_vector",
                service_name=provider,
                model_name=model,
                text_length=text_length,
            ),
        )

    if values is None:
        raise malformed("missing embedding payload")
    try:
        vector = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise malformed(f"non-numeric values ({e})") from e

    if vector.ndim != 1 or vector.shape[0] != dimensions:
        raise malformed(f"expected {dimensions} dimensions, got shape {vector.shape}")
    if not np.isfinite(vector).all():
        raise malformed("vector contains non-finite values")
    return vector.tolist()
