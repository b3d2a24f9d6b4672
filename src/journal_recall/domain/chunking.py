"""Sentence chunking for journal entries.

Entries are split into sentences with a single regular expression. A break is
placed after ``.``, ``?`` or ``!`` when the next non-space character is an
upper-case letter, unless the terminator belongs to a single-letter initial or
one of a handful of common abbreviations.
"""

import re

from journal_recall.core.base import ValidationErrorDetails
from journal_recall.core.errors import InvalidInput
from journal_recall.domain.models import ChunkDraft

# Lookbehinds must be fixed width, so each abbreviation gets its own group.
# The leading \b keeps "Mrs." from matching inside a longer word.
_ABBREVIATIONS = (
    r"(?<!\bDr\.)(?<!\bMr\.)(?<!\bMrs\.)(?<!\bMs\.)(?<!\bSt\.)(?<!\bJr\.)(?<!\bSr\.)"
    r"(?<!\bProf\.)(?<!\bvs\.)(?<!\betc\.)(?<!\be\.g\.)(?<!\bi\.e\.)"
)
_INITIAL = r"(?<!\b[A-Z]\.)"

SENTENCE_BREAK = re.compile(rf"(?<=[.?!]){_ABBREVIATIONS}{_INITIAL}\s+(?=[A-Z])")


def _ensure_text(text: str | bytes) -> str:
    """Return ``text`` as a well-formed str or raise InvalidInput."""
    if isinstance(text, bytes):
        try:
            return text.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidInput(
                message="Entry text is not valid UTF-8",
                details=ValidationErrorDetails(
                    source="chunking",
                    operation="decode",
                    field="text",
                    constraint="utf-8",
                    actual_value=f"byte {e.start}",
                ),
            ) from e

    try:
        # Lone surrogates cannot be encoded
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidInput(
            message="Entry text contains unpaired surrogate characters",
            details=ValidationErrorDetails(
                source="chunking",
                operation="validate",
                field="text",
                constraint="utf-8",
                actual_value=f"position {e.start}",
            ),
        ) from e
    return text


def split_sentences(text: str | bytes) -> list[str]:
    """Split text into trimmed, non-empty sentences.

    Text without terminal punctuation comes back as a single sentence, and
    blank text as an empty list.
    """
    text = _ensure_text(text).strip()
    if not text:
        return []
    return [part.strip() for part in SENTENCE_BREAK.split(text) if part.strip()]


class SentenceChunker:
    """Turn entry text into indexed chunk drafts ready for embedding."""

    def chunk(self, text: str | bytes) -> list[ChunkDraft]:
        return [ChunkDraft(index=i, text=sentence) for i, sentence in enumerate(split_sentences(text))]
