"""Gemini-backed reply, emotion and image collaborators."""

import asyncio
import base64
import binascii
import re
from pathlib import Path
from uuid import UUID

from journal_recall.core.base import AIServiceErrorDetails
from journal_recall.core.errors import ReplyGenerationError, ServiceError
from journal_recall.core.logging import get_logger

from .base import EmotionAnalysis
from .client import GeminiClient, extract_json_object

logger = get_logger(__name__)

# The 28 GoEmotions labels
VALID_EMOTIONS: tuple[str, ...] = (
    "admiration", "amusement", "anger", "annoyance", "approval", "caring",
    "confusion", "curiosity", "desire", "disappointment", "disapproval", "disgust",
    "embarrassment", "excitement", "fear", "gratitude", "grief", "joy",
    "love", "nervousness", "optimism", "pride", "realization", "relief",
    "remorse", "sadness", "surprise", "neutral",
)  # fmt: skip

EMOTION_ALIASES: dict[str, str] = {
    "uncertainty": "confusion",
}

_BOLD = re.compile(r"\*\*(.*?)\*\*")
_UNDERLINE = re.compile(r"__([^_]+)__")


def normalize_emotion(label: str) -> str:
    """Map a model label onto the GoEmotions set, defaulting to ``neutral``."""
    label = label.strip().lower()
    if label in VALID_EMOTIONS:
        return label
    return EMOTION_ALIASES.get(label, "neutral")


def strip_markdown(text: str) -> str:
    """Remove ``**bold**`` and ``__underline__`` markers, keeping their content."""
    return _UNDERLINE.sub(r"\1", _BOLD.sub(r"\1", text))


REPLY_TEMPLATE = (
    "Respond as a {mode} therapist. Here is the chat history:\n{history}\n"
    'User shares: "{context}". Provide a response that aligns with the {mode} approach '
    "while offering thoughtful and empathetic insights. "
    "Message length should be to the point but should be meaningful."
)

ANALYSIS_TEMPLATE = """\
Given below is a journal entry. Identify and classify the top 5 emotions strictly from this \
predefined list of 28 emotions in the GoEmotions dataset:
{labels}.

IMPORTANT:
  - You MUST return emotions only from this list.
  - If an emotion doesn't match exactly, use the closest valid emotion (e.g., "uncertainty" -> "confusion").
  - If completely uncertain, default to "neutral".

Return the output in the following JSON format without any additional text or explanations:

{{
  "emotions": [[emotion1, percentage1], [emotion2, percentage2], [emotion3, percentage3],
               [emotion4, percentage4], [emotion5, percentage5]],
  "prompt": "A short question to help the user explore their emotions further, tailored to the detected emotions."
}}

Journal Entry:
{entry}
"""

PROMPT_TEMPLATE = """\
Given the following journal entry, generate a short, insightful question that helps the user \
explore their emotions further.
Return the output in the following JSON format without any extra text or explanations:

{{"prompt": "Your question here."}}

Journal Entry:
{entry}
"""

IMAGE_PROMPT_TEMPLATE = """\
Create a vivid and imaginative image prompt based on the following journal entry: "{entry}". \
Focus on the core feelings and imagery described. Be specific with details about the scene, \
objects, and atmosphere you envision. Render this in a fantastical style that remains grounded \
in a sense of reality, where the extraordinary feels subtly integrated into the ordinary world. \
Focus on the emotional impact of this blended reality.
"""


class GeminiReplyGenerator:
    """Therapist-persona chat replies."""

    def __init__(self, client: GeminiClient, model: str = "gemini-2.0-flash") -> None:
        self.client = client
        self.model = model

    async def generate(self, context_text: str, mode: str, history_text: str) -> str:
        prompt = REPLY_TEMPLATE.format(mode=mode, history=history_text, context=context_text)
        try:
            reply = await self.client.generate_text(self.model, prompt)
        except ServiceError as e:
            raise ReplyGenerationError(
                message=f"Reply generation failed: {e.message}",
                details=AIServiceErrorDetails(
                    source="GeminiReplyGenerator",
                    operation="generate",
                    service_name="gemini",
                    model_name=self.model,
                    text_length=len(prompt),
                ),
            ) from e

        reply = strip_markdown(reply).strip()
        if not reply:
            raise ReplyGenerationError(message="Reply generator returned an empty reply")
        return reply


class GeminiEmotionClassifier:
    """Emotion labels and reflective prompts from a single analysis call."""

    def __init__(self, client: GeminiClient, model: str = "gemini-1.5-flash") -> None:
        self.client = client
        self.model = model

    async def _json(self, prompt: str, operation: str) -> dict:
        text = await self.client.generate_text(self.model, prompt)
        try:
            return extract_json_object(text)
        except ValueError as e:
            raise ServiceError(
                message=f"Could not parse {operation} response: {e}",
                details=AIServiceErrorDetails(
                    source="GeminiEmotionClassifier",
                    operation=operation,
                    service_name="gemini",
                    model_name=self.model,
                ),
            ) from e

    async def analyze(self, text: str) -> EmotionAnalysis:
        data = await self._json(ANALYSIS_TEMPLATE.format(labels=", ".join(VALID_EMOTIONS), entry=text), "analyze")

        emotions: list[str] = []
        for item in data.get("emotions") or []:
            # Items are [label, score] pairs; bare labels are tolerated
            label = item[0] if isinstance(item, list | tuple) and item else item
            if not isinstance(label, str):
                continue
            emotion = normalize_emotion(label)
            if emotion not in emotions:
                emotions.append(emotion)

        prompt = data.get("prompt")
        return EmotionAnalysis(emotions=emotions, prompt=prompt if isinstance(prompt, str) and prompt else None)

    async def reflection_prompt(self, text: str) -> str:
        data = await self._json(PROMPT_TEMPLATE.format(entry=text), "reflection_prompt")
        prompt = data.get("prompt")
        if not isinstance(prompt, str) or not prompt.strip():
            raise ServiceError(
                message="Reflection prompt response has no prompt",
                details=AIServiceErrorDetails(
                    source="GeminiEmotionClassifier",
                    operation="reflection_prompt",
                    service_name="gemini",
                    model_name=self.model,
                ),
            )
        return prompt.strip()


class GeminiImageGenerator:
    """Two-step illustration: write an image prompt, then render it to PNG."""

    def __init__(self, client: GeminiClient, images_dir: Path, model: str = "gemini-2.0-flash-exp-image-generation"):
        self.client = client
        self.images_dir = Path(images_dir)
        self.model = model

    async def generate(self, text: str, entry_id: UUID) -> str | None:
        image_prompt = await self.client.generate_text(self.model, IMAGE_PROMPT_TEMPLATE.format(entry=text))
        parts = await self.client.generate_content(
            self.model, image_prompt or text, response_modalities=["TEXT", "IMAGE"]
        )

        for part in parts:
            data = (part.get("inlineData") or {}).get("data")
            if not data:
                continue
            try:
                image = base64.b64decode(data, validate=True)
            except binascii.Error as e:
                raise ServiceError(message="Image payload is not valid base64") from e

            filename = f"{entry_id}.png"
            await asyncio.to_thread(self._write, filename, image)
            logger.info("Saved generated image", entry_id=str(entry_id), size=len(image))
            return f"/images/{filename}"

        logger.warning("No image data in generation response", entry_id=str(entry_id))
        return None

    def _write(self, filename: str, data: bytes) -> None:
        self.images_dir.mkdir(parents=True, exist_ok=True)
        (self.images_dir / filename).write_bytes(data)

    def discard(self, entry_id: UUID) -> None:
        path = self.images_dir / f"{entry_id}.png"
        if path.exists():
            path.unlink()
            logger.info("Removed image of unsaved entry", entry_id=str(entry_id))
