"""Gemini embedding service over the Generative Language REST API."""

import time

import httpx
from pydantic import SecretStr

from journal_recall.core.base import AIServiceErrorDetails
from journal_recall.core.errors import ConfigurationError, EmbeddingServiceError
from journal_recall.core.logging import get_logger
from journal_recall.domain.models import EmbeddingType

from .base import validate_vector

logger = get_logger(__name__)

_TASK_TYPES = {
    EmbeddingType.DOCUMENT: "RETRIEVAL_DOCUMENT",
    EmbeddingType.QUERY: "RETRIEVAL_QUERY",
}


class GeminiEmbeddingService:
    """Embeds text with ``text-embedding-004`` (768 dimensions).

    The HTTP client is owned by the caller and shared with the other Gemini
    collaborators.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: SecretStr | str,
        model: str = "text-embedding-004",
        dimensions: int = 768,
        timeout: float = 10.0,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
    ) -> None:
        key = api_key.get_secret_value() if isinstance(api_key, SecretStr) else api_key
        if not key:
            raise ConfigurationError(
                message="GEMINI_API_KEY is required for the gemini embedding provider",
                details={"source": "GeminiEmbeddingService", "operation": "initialization"},
            )
        self.client = client
        self.model = model
        self.dimensions = dimensions
        self.timeout = timeout
        self._api_key = key
        self._endpoint = f"{base_url.rstrip('/')}/models/{model}:embedContent"

    def _error(self, message: str, text: str, status_code: int | None = None, latency_ms: float | None = None):
        return EmbeddingServiceError(
            message=message,
            details=AIServiceErrorDetails(
                source="GeminiEmbeddingService",
                operation="embed",
                service_name="gemini",
                endpoint=self._endpoint,
                status_code=status_code,
                latency_ms=latency_ms,
                model_name=self.model,
                text_length=len(text),
            ),
        )

    async def embed(self, text: str, embedding_type: EmbeddingType = EmbeddingType.DOCUMENT) -> list[float]:
        """Generate an embedding vector for the provided text.

        Raises:
            EmbeddingServiceError: On timeout, network failure, quota or auth
                rejection, or a malformed response
        """
        payload = {
            "model": f"models/{self.model}",
            "content": {"parts": [{"text": text}]},
            "taskType": _TASK_TYPES[embedding_type],
        }
        started = time.perf_counter()
        try:
            response = await self.client.post(
                self._endpoint,
                json=payload,
                headers={"x-goog-api-key": self._api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as e:
            raise self._error(f"Embedding request timed out after {self.timeout}s", text) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 429:
                reason = "quota exceeded"
            elif status in (401, 403):
                reason = "authentication rejected"
            else:
                reason = f"HTTP {status}"
            raise self._error(f"Embedding request failed: {reason}", text, status_code=status) from e
        except httpx.HTTPError as e:
            raise self._error(f"Embedding request failed: {e}", text) from e
        except ValueError as e:
            raise self._error("Embedding response is not valid JSON", text) from e

        latency_ms = (time.perf_counter() - started) * 1000
        values = (body.get("embedding") or {}).get("values") if isinstance(body, dict) else None
        vector = validate_vector(
            values,
            self.dimensions,
            provider="gemini",
            model=self.model,
            text_length=len(text),
        )
        logger.debug(
            "Generated embedding",
            model=self.model,
            task_type=payload["taskType"],
            text_length=len(text),
            latency_ms=round(latency_ms, 1),
        )
        return vector
