"""Domain models for journal recall."""

from .commands import ChatTurnRequest, SearchQuery, UpsertEntryCommand
from .conversation import ChatMessage, MessageSender
from .embedding import EmbeddingType
from .journal import (
    KEYWORD_MATCH_DISTANCE,
    CandidateSource,
    ChunkDraft,
    EntryEmbedding,
    JournalChunk,
    JournalEntry,
    RetrievalCandidate,
)

__all__ = [
    "KEYWORD_MATCH_DISTANCE",
    "CandidateSource",
    # Conversation
    "ChatMessage",
    "ChatTurnRequest",
    "ChunkDraft",
    # Embedding
    "EmbeddingType",
    "EntryEmbedding",
    # Journal
    "JournalChunk",
    "JournalEntry",
    "MessageSender",
    "RetrievalCandidate",
    # Commands
    "SearchQuery",
    "UpsertEntryCommand",
]
