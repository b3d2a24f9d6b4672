"""Interfaces of the generative collaborators."""

from typing import Protocol
from uuid import UUID

from pydantic import BaseModel, Field


class EmotionAnalysis(BaseModel):
    """Emotion labels for an entry plus a follow-up question for the writer."""

    emotions: list[str] = Field(default_factory=list)
    prompt: str | None = None


class ReplyGenerator(Protocol):
    async def generate(self, context_text: str, mode: str, history_text: str) -> str:
        """Produce a conversational reply; raise ReplyGenerationError on failure."""
        ...


class EmotionClassifier(Protocol):
    async def analyze(self, text: str) -> EmotionAnalysis:
        """Classify emotions and suggest a reflective prompt; raise ServiceError on failure."""
        ...

    async def reflection_prompt(self, text: str) -> str:
        """Suggest a reflective question for ``text``; raise ServiceError on failure."""
        ...


class ImageGenerator(Protocol):
    async def generate(self, text: str, entry_id: UUID) -> str | None:
        """Render an illustration and return its public path, or None if no image came back."""
        ...

    def discard(self, entry_id: UUID) -> None:
        """Remove the image written for ``entry_id``, if any."""
        ...
