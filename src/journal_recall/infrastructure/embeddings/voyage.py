"""Voyage AI embedding service."""

import asyncio

import voyageai
import voyageai.error
from pydantic import SecretStr

from journal_recall.core.base import AIServiceErrorDetails
from journal_recall.core.errors import ConfigurationError, EmbeddingServiceError
from journal_recall.core.logging import get_logger
from journal_recall.domain.models import EmbeddingType

from .base import validate_vector

logger = get_logger(__name__)


class VoyageEmbeddingService:
    """Voyage AI embedding service implementation.

    Voyage models must be configured to produce the system-wide dimension;
    vectors of any other length are rejected as malformed.
    """

    def __init__(
        self,
        api_key: SecretStr | str,
        model: str = "voyage-3-large",
        dimensions: int = 768,
        timeout: float = 10.0,
        client: voyageai.AsyncClient | None = None,
    ) -> None:
        key = api_key.get_secret_value() if isinstance(api_key, SecretStr) else api_key
        if not key and client is None:
            raise ConfigurationError(
                message="VOYAGE_API_KEY is required for the voyage embedding provider",
                details={"source": "VoyageEmbeddingService", "operation": "initialization"},
            )
        self.model = model
        self.dimensions = dimensions
        self.timeout = timeout
        # Retries are disabled; the first failure is reported to the caller
        self.client = client or voyageai.AsyncClient(api_key=key, max_retries=0, timeout=timeout)

    async def embed(self, text: str, embedding_type: EmbeddingType = EmbeddingType.DOCUMENT) -> list[float]:
        details = AIServiceErrorDetails(
            source="VoyageEmbeddingService",
            operation="embed",
            service_name="voyage",
            model_name=self.model,
            text_length=len(text),
        )
        try:
            async with asyncio.timeout(self.timeout):
                response = await self.client.embed(
                    texts=[text],
                    model=self.model,
                    input_type=embedding_type.value,
                )
        except TimeoutError as e:
            raise EmbeddingServiceError(
                message=f"Embedding request timed out after {self.timeout}s", details=details
            ) from e
        except voyageai.error.VoyageError as e:
            raise EmbeddingServiceError(message=f"Voyage embedding failed: {e}", details=details) from e

        embeddings = getattr(response, "embeddings", None) or [None]
        return validate_vector(
            embeddings[0],
            self.dimensions,
            provider="voyage",
            model=self.model,
            text_length=len(text),
        )
