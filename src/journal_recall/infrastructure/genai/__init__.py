"""Generative collaborators: reply generation, emotion analysis, illustrations."""

from .base import EmotionAnalysis, EmotionClassifier, ImageGenerator, ReplyGenerator
from .client import GeminiClient, extract_json_object
from .gemini import (
    GeminiEmotionClassifier,
    GeminiImageGenerator,
    GeminiReplyGenerator,
    normalize_emotion,
    strip_markdown,
)

__all__ = [
    "EmotionAnalysis",
    "EmotionClassifier",
    "GeminiClient",
    "GeminiEmotionClassifier",
    "GeminiImageGenerator",
    "GeminiReplyGenerator",
    "ImageGenerator",
    "ReplyGenerator",
    "extract_json_object",
    "normalize_emotion",
    "strip_markdown",
]
