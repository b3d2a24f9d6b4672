"""Thin async client for Gemini ``generateContent``."""

import json
import time
from typing import Any

import httpx
from pydantic import SecretStr

from journal_recall.core.base import AIServiceErrorDetails
from journal_recall.core.errors import ConfigurationError, ServiceError
from journal_recall.core.logging import get_logger

logger = get_logger(__name__)


def extract_json_object(text: str) -> dict[str, Any]:
    """Parse the JSON object spanning the first ``{`` to the last ``}`` in ``text``.

    Models often wrap JSON in markdown fences or prose; everything outside the
    outermost braces is ignored.

    Raises:
        ValueError: If no object is present or it does not parse
    """
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("No JSON object found in model response")
    data = json.loads(text[start : end + 1])
    if not isinstance(data, dict):
        raise ValueError("Model response JSON is not an object")
    return data


class GeminiClient:
    """Calls ``models/{model}:generateContent`` and returns the candidate parts."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: SecretStr | str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 30.0,
    ) -> None:
        key = api_key.get_secret_value() if isinstance(api_key, SecretStr) else api_key
        if not key:
            raise ConfigurationError(
                message="GEMINI_API_KEY is required for generation",
                details={"source": "GeminiClient", "operation": "initialization"},
            )
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._api_key = key

    async def generate_content(
        self,
        model: str,
        prompt: str,
        response_modalities: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Send a single-turn prompt and return the first candidate's parts.

        Raises:
            ServiceError: On transport failure, non-2xx status, or a response
                without candidate parts
        """
        endpoint = f"{self.base_url}/models/{model}:generateContent"
        body: dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        if response_modalities:
            body["generationConfig"] = {"responseModalities": response_modalities}

        details = AIServiceErrorDetails(
            source="GeminiClient",
            operation="generate_content",
            service_name="gemini",
            endpoint=endpoint,
            model_name=model,
            text_length=len(prompt),
        )
        started = time.perf_counter()
        try:
            response = await self.http_client.post(
                endpoint,
                json=body,
                headers={"x-goog-api-key": self._api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            details.status_code = e.response.status_code
            raise ServiceError(message=f"Gemini returned HTTP {e.response.status_code}", details=details) from e
        except httpx.HTTPError as e:
            raise ServiceError(message=f"Gemini request failed: {e!r}", details=details) from e
        except ValueError as e:
            raise ServiceError(message="Gemini response is not valid JSON", details=details) from e

        details.latency_ms = (time.perf_counter() - started) * 1000
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as e:
            raise ServiceError(message="Gemini response has no candidate content", details=details) from e

        logger.debug("Gemini generation finished", model=model, parts=len(parts), latency_ms=details.latency_ms)
        return parts

    async def generate_text(self, model: str, prompt: str) -> str:
        """Return the concatenated text parts of a generation."""
        parts = await self.generate_content(model, prompt)
        return "".join(part.get("text", "") for part in parts)
