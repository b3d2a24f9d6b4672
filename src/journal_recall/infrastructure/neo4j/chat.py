"""Neo4j-backed chat history."""

from neo4j import AsyncDriver, AsyncSession

from journal_recall.core.decorators import with_session
from journal_recall.core.logging import get_logger
from journal_recall.domain.models import ChatMessage

from .errors import store_errors
from .queries import MESSAGE_LABEL, ChatQueries

logger = get_logger(__name__)


class Neo4jChatMessageStore:
    def __init__(self, driver: AsyncDriver) -> None:
        self.driver = driver

    @with_session()
    async def recent_messages(
        self, session: AsyncSession, owner_id: str, conversation_id: str, limit: int
    ) -> list[ChatMessage]:
        """Return up to ``limit`` messages, most recent first."""
        query, params = ChatQueries.recent_messages(owner_id, conversation_id, limit)
        with store_errors("recent_messages", label=MESSAGE_LABEL):
            result = await session.run(query, params)
            records = await result.data()
        return [ChatMessage.from_neo4j_record(record["m"]) for record in records]

    @with_session()
    async def append_exchange(
        self, session: AsyncSession, user_message: ChatMessage, agent_message: ChatMessage
    ) -> None:
        """Persist a user message and the agent's reply in one transaction."""
        messages = [user_message.to_neo4j_properties(), agent_message.to_neo4j_properties()]

        # Never retried, so no managed transaction
        with store_errors("append_exchange", query_type="write", label=MESSAGE_LABEL):
            async with await session.begin_transaction() as tx:
                result = await tx.run(ChatQueries.APPEND_MESSAGES, {"messages": messages})
                await result.consume()
                await tx.commit()
        logger.debug(
            "Appended chat exchange",
            owner_id=user_message.owner_id,
            conversation_id=user_message.conversation_id,
        )
