"""
Tests for the embedding providers and vector validation.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest
import voyageai.error

from journal_recall.core.config import Settings
from journal_recall.core.errors import ConfigurationError, EmbeddingServiceError
from journal_recall.domain.models import EmbeddingType
from journal_recall.infrastructure.embeddings import (
    GeminiEmbeddingService,
    VoyageEmbeddingService,
    create_embedding_service,
    validate_vector,
)

DIMENSIONS = 8


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _gemini(handler, dimensions: int = DIMENSIONS) -> GeminiEmbeddingService:
    return GeminiEmbeddingService(_client(handler), api_key="test-key", dimensions=dimensions, timeout=1.0)


class TestValidateVector:
    def test_valid_vector(self):
        assert validate_vector([1, 2, 3], 3, provider="p", model="m", text_length=1) == [1.0, 2.0, 3.0]

    @pytest.mark.parametrize(
        "values",
        [None, [1.0, 2.0], [[1.0, 2.0, 3.0]], [1.0, float("nan"), 3.0], [1.0, float("inf"), 3.0], ["a", "b", "c"]],
    )
    def test_malformed_vectors(self, values):
        with pytest.raises(EmbeddingServiceError, match="Malformed embedding response"):
            validate_vector(values, 3, provider="p", model="m", text_length=1)


class TestGeminiEmbeddingService:
    async def test_document_embedding(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["key"] = request.headers["x-goog-api-key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"embedding": {"values": [0.5] * DIMENSIONS}})

        vector = await _gemini(handler).embed("A quiet day.")

        assert vector == [0.5] * DIMENSIONS
        assert seen["url"].endswith("/models/text-embedding-004:embedContent")
        assert seen["key"] == "test-key"
        assert seen["body"]["taskType"] == "RETRIEVAL_DOCUMENT"
        assert seen["body"]["content"] == {"parts": [{"text": "A quiet day."}]}

    async def test_query_task_type(self):
        task_types = []

        def handler(request: httpx.Request) -> httpx.Response:
            task_types.append(json.loads(request.content)["taskType"])
            return httpx.Response(200, json={"embedding": {"values": [0.1] * DIMENSIONS}})

        await _gemini(handler).embed("query text", EmbeddingType.QUERY)

        assert task_types == ["RETRIEVAL_QUERY"]

    @pytest.mark.parametrize(("status", "reason"), [(429, "quota exceeded"), (403, "authentication"), (500, "500")])
    async def test_http_errors(self, status, reason):
        service = _gemini(lambda request: httpx.Response(status, json={"error": {"message": "nope"}}))

        with pytest.raises(EmbeddingServiceError, match=reason) as exc_info:
            await service.embed("text")

        assert exc_info.value.details.status_code == status

    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(EmbeddingServiceError, match="timed out"):
            await _gemini(handler).embed("text")

    async def test_network_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(EmbeddingServiceError):
            await _gemini(handler).embed("text")

    async def test_wrong_dimension(self):
        service = _gemini(lambda request: httpx.Response(200, json={"embedding": {"values": [0.1] * 3}}))

        with pytest.raises(EmbeddingServiceError, match="expected 8 dimensions"):
            await service.embed("text")

    async def test_missing_payload(self):
        service = _gemini(lambda request: httpx.Response(200, json={}))

        with pytest.raises(EmbeddingServiceError, match="missing"):
            await service.embed("text")

    async def test_non_json_body(self):
        service = _gemini(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(EmbeddingServiceError, match="not valid JSON"):
            await service.embed("text")

    def test_api_key_required(self):
        with pytest.raises(ConfigurationError):
            GeminiEmbeddingService(_client(lambda request: httpx.Response(200)), api_key="")


class TestVoyageEmbeddingService:
    async def test_embedding(self):
        client = SimpleNamespace(embed=AsyncMock(return_value=SimpleNamespace(embeddings=[[0.2] * DIMENSIONS])))
        service = VoyageEmbeddingService(api_key="key", dimensions=DIMENSIONS, client=client)

        assert await service.embed("text", EmbeddingType.QUERY) == [0.2] * DIMENSIONS
        assert client.embed.call_args.kwargs["input_type"] == "query"

    async def test_provider_error(self):
        client = SimpleNamespace(embed=AsyncMock(side_effect=voyageai.error.RateLimitError("slow down")))
        service = VoyageEmbeddingService(api_key="key", dimensions=DIMENSIONS, client=client)

        with pytest.raises(EmbeddingServiceError, match="Voyage embedding failed"):
            await service.embed("text")

    async def test_dimension_mismatch(self):
        client = SimpleNamespace(embed=AsyncMock(return_value=SimpleNamespace(embeddings=[[0.2] * 1024])))
        service = VoyageEmbeddingService(api_key="key", dimensions=DIMENSIONS, client=client)

        with pytest.raises(EmbeddingServiceError, match="expected 8 dimensions"):
            await service.embed("text")


class TestCreateEmbeddingService:
    async def test_gemini_is_default(self):
        settings = Settings(gemini_api_key="key", embedding_provider="gemini", embedding_dimensions=768)
        async with httpx.AsyncClient() as http_client:
            service = create_embedding_service(settings, http_client)

        assert isinstance(service, GeminiEmbeddingService)
        assert service.dimensions == 768

    async def test_voyage(self):
        settings = Settings(voyage_api_key="key", embedding_provider="voyage", embedding_model="voyage-3-large")
        async with httpx.AsyncClient() as http_client:
            service = create_embedding_service(settings, http_client)

        assert isinstance(service, VoyageEmbeddingService)

    async def test_missing_key(self):
        settings = Settings(gemini_api_key="", embedding_provider="gemini")
        async with httpx.AsyncClient() as http_client:
            with pytest.raises(ConfigurationError):
                create_embedding_service(settings, http_client)
