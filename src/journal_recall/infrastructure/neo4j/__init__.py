"""Neo4j persistence for journal entries, chunk indexes and chat history."""

from .chat import Neo4jChatMessageStore
from .driver import create_neo4j_driver, ensure_schema
from .errors import store_errors
from .queries import ChatQueries, JournalQueries
from .store import EntryWriteTransaction, Neo4jChunkIndexStore

__all__ = [
    "ChatQueries",
    "EntryWriteTransaction",
    "JournalQueries",
    "Neo4jChatMessageStore",
    "Neo4jChunkIndexStore",
    "create_neo4j_driver",
    "ensure_schema",
    "store_errors",
]
