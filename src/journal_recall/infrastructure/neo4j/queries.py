"""Centralized Cypher for journal entries, chunks and chat messages.

Candidate and listing queries are composed with ``CypherQueryBuilder``;
write statements that need MERGE, UNWIND or DETACH DELETE are kept as
literal strings.
"""

from collections.abc import Sequence
from typing import Any, LiteralString
from uuid import UUID

from .query_builder import ContainsAny, CypherQueryBuilder, PropertyEquals

ENTRY_LABEL = "JournalEntry"
CHUNK_LABEL = "JournalChunk"
EMBEDDING_LABEL = "EntryEmbedding"
MESSAGE_LABEL = "ChatMessage"

_CANDIDATE_FIELDS = (
    "e.id AS entry_id",
    "e.text AS text",
    "e.created_at AS created_at",
    "e.modified_at AS modified_at",
)

SCHEMA_STATEMENTS: tuple[LiteralString, ...] = (
    "CREATE CONSTRAINT journal_entry_id IF NOT EXISTS FOR (e:JournalEntry) REQUIRE e.id IS UNIQUE",
    "CREATE CONSTRAINT journal_chunk_id IF NOT EXISTS FOR (c:JournalChunk) REQUIRE c.id IS UNIQUE",
    "CREATE CONSTRAINT entry_embedding_entry_id IF NOT EXISTS FOR (v:EntryEmbedding) REQUIRE v.entry_id IS UNIQUE",
    "CREATE CONSTRAINT chat_message_id IF NOT EXISTS FOR (m:ChatMessage) REQUIRE m.id IS UNIQUE",
    "CREATE INDEX journal_entry_owner IF NOT EXISTS FOR (e:JournalEntry) ON (e.owner_id)",
    "CREATE INDEX chat_message_conversation IF NOT EXISTS FOR (m:ChatMessage) ON (m.owner_id, m.conversation_id)",
)


class JournalQueries:
    """All journal-related queries in one place."""

    ENTRY_BY_ID: LiteralString = "MATCH (e:JournalEntry {id: $entry_id}) RETURN e"

    SAVE_ENTRY: LiteralString = "MERGE (e:JournalEntry {id: $id}) SET e += $properties RETURN e"

    DELETE_CHUNKS: LiteralString = (
        "MATCH (:JournalEntry {id: $entry_id})-[:HAS_CHUNK]->(c:JournalChunk) "
        "DETACH DELETE c RETURN count(c) AS deleted"
    )

    CREATE_CHUNKS: LiteralString = (
        "MATCH (e:JournalEntry {id: $entry_id}) "
        "UNWIND $chunks AS chunk "
        "CREATE (e)-[:HAS_CHUNK]->(c:JournalChunk) SET c = chunk "
        "RETURN count(c) AS created"
    )

    UPSERT_ENTRY_EMBEDDING: LiteralString = (
        "MATCH (e:JournalEntry {id: $entry_id}) "
        "MERGE (e)-[:HAS_EMBEDDING]->(v:EntryEmbedding {entry_id: $entry_id}) "
        "SET v.embedding = $embedding"
    )

    DELETE_ENTRY_EMBEDDING: LiteralString = (
        "MATCH (:JournalEntry {id: $entry_id})-[:HAS_EMBEDDING]->(v:EntryEmbedding) "
        "DETACH DELETE v"
    )

    UPDATE_DERIVED_FIELDS: LiteralString = (
        "MATCH (e:JournalEntry {id: $entry_id}) "
        "SET e.image_path = $image_path, e.emotion_labels = $emotion_labels, "
        "e.reflection_prompt = $reflection_prompt"
    )

    DELETE_ENTRY: LiteralString = (
        "MATCH (e:JournalEntry {id: $entry_id}) "
        "OPTIONAL MATCH (e)-[:HAS_CHUNK|HAS_EMBEDDING]->(n) "
        "DETACH DELETE n, e"
    )

    @staticmethod
    def keyword_candidates(owner_id: str, keywords: Sequence[str], limit: int) -> tuple[LiteralString, dict[str, Any]]:
        """Owner's entries whose text contains any keyword, most recently modified first."""
        return (
            CypherQueryBuilder()
            .match(lambda p: p.node(ENTRY_LABEL, "e"))
            .where([PropertyEquals("e", "owner_id", owner_id), ContainsAny("e", "text", list(keywords))])
            .return_clause(*_CANDIDATE_FIELDS)
            .order_by("e.modified_at DESC", "e.id ASC")
            .limit(limit)
            .build(require_limit=True)
        )

    @staticmethod
    def semantic_candidates(owner_id: str, embedding: list[float], limit: int) -> tuple[LiteralString, dict[str, Any]]:
        """Owner's entries ranked by their closest chunk's cosine distance to ``embedding``."""
        return (
            CypherQueryBuilder()
            .match(lambda p: p.node(ENTRY_LABEL, "e").rel_to("HAS_CHUNK").node(CHUNK_LABEL, "c"))
            .where([PropertyEquals("e", "owner_id", owner_id)])
            .with_clause(
                "e",
                "min(1.0 - vector.similarity.cosine(c.embedding, {embedding})) AS distance",
                embedding=embedding,
            )
            .return_clause(*_CANDIDATE_FIELDS, "distance")
            .order_by("distance ASC", "e.modified_at DESC", "e.id ASC")
            .limit(limit)
            .build(require_limit=True)
        )

    @staticmethod
    def list_entries(owner_id: str, limit: int) -> tuple[LiteralString, dict[str, Any]]:
        return (
            CypherQueryBuilder()
            .match(lambda p: p.node(ENTRY_LABEL, "e"))
            .where([PropertyEquals("e", "owner_id", owner_id)])
            .return_clause("e")
            .order_by("e.modified_at DESC", "e.id ASC")
            .limit(limit)
            .build(require_limit=True)
        )

    @staticmethod
    def entry_chunks(entry_id: UUID) -> tuple[LiteralString, dict[str, Any]]:
        """Chunks of one entry in index order."""
        return (
            CypherQueryBuilder()
            .match(lambda p: p.node(ENTRY_LABEL, "e").rel_to("HAS_CHUNK").node(CHUNK_LABEL, "c"))
            .where([PropertyEquals("e", "id", str(entry_id))])
            .return_clause("c")
            .order_by("c.chunk_index ASC")
            .build()
        )


class ChatQueries:
    """Queries for conversation history."""

    APPEND_MESSAGES: LiteralString = "UNWIND $messages AS message CREATE (m:ChatMessage) SET m = message"

    @staticmethod
    def recent_messages(owner_id: str, conversation_id: str, limit: int) -> tuple[LiteralString, dict[str, Any]]:
        """Latest messages of a conversation, most recent first."""
        return (
            CypherQueryBuilder()
            .match(lambda p: p.node(MESSAGE_LABEL, "m"))
            .where(
                [
                    PropertyEquals("m", "owner_id", owner_id),
                    PropertyEquals("m", "conversation_id", conversation_id),
                ]
            )
            .return_clause("m")
            .order_by("m.created_at DESC", "m.sender ASC")
            .limit(limit)
            .build(require_limit=True)
        )
