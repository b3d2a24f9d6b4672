"""Conversational replies grounded in the user's journal."""

from datetime import timedelta

from pydantic import BaseModel

from journal_recall.core.base import ErrorLevel
from journal_recall.core.decorators import with_error_handling
from journal_recall.core.errors import ReplyGenerationError
from journal_recall.core.logging import get_logger, log_context
from journal_recall.domain.models import (
    ChatMessage,
    ChatTurnRequest,
    MessageSender,
    RetrievalCandidate,
    SearchQuery,
)
from journal_recall.domain.models.utils import utc_now
from journal_recall.infrastructure.genai import ReplyGenerator
from journal_recall.services import ChatMessageStore
from journal_recall.services.search import HybridSearchService

logger = get_logger(__name__)

CONTEXT_TEMPLATE = """\
Relevant journal entries:
{excerpts}

New message:
{message}"""

NO_EXCERPTS = "(no related journal entries)"


class ChatContext(BaseModel):
    """Everything the reply generator sees for one turn."""

    context_text: str
    history_text: str
    matches: list[RetrievalCandidate]
    history: list[ChatMessage]


class ChatReply(BaseModel):
    reply: str
    user_message: ChatMessage
    agent_message: ChatMessage
    context: ChatContext


def format_excerpt(candidate: RetrievalCandidate, max_chars: int) -> str:
    """Render a search hit as ``[YYYY-MM-DD] text``, truncated to ``max_chars``."""
    text = " ".join(candidate.text.split())
    if len(text) > max_chars:
        text = text[: max_chars - 3].rstrip() + "..."
    moment = candidate.created_at or candidate.modified_at
    day = moment.date().isoformat() if moment else "undated"
    return f"[{day}] {text}"


class ContextAssembler:
    """Builds the prompt context from journal matches and recent chat history."""

    def __init__(
        self,
        search: HybridSearchService,
        messages: ChatMessageStore,
        context_k: int = 3,
        history_limit: int = 5,
        excerpt_chars: int = 280,
    ) -> None:
        self.search = search
        self.messages = messages
        self.context_k = context_k
        self.history_limit = history_limit
        self.excerpt_chars = excerpt_chars

    async def assemble(self, owner_id: str, conversation_id: str, message: str) -> ChatContext:
        matches = await self.search.search(SearchQuery(owner_id=owner_id, query=message, k=self.context_k))
        history = await self.messages.recent_messages(owner_id, conversation_id, self.history_limit)

        excerpts = "\n".join(format_excerpt(match, self.excerpt_chars) for match in matches) or NO_EXCERPTS
        return ChatContext(
            context_text=CONTEXT_TEMPLATE.format(excerpts=excerpts, message=message),
            # Most recent first
            history_text="\n".join(entry.as_history_line() for entry in history),
            matches=matches,
            history=history,
        )


class ChatService:
    def __init__(self, assembler: ContextAssembler, generator: ReplyGenerator, messages: ChatMessageStore) -> None:
        self.assembler = assembler
        self.generator = generator
        self.messages = messages

    @with_error_handling(error_level=ErrorLevel.ERROR)
    async def reply(self, request: ChatTurnRequest) -> ChatReply:
        """Answer one chat turn and record it.

        The user message and the reply are stored together, and only once a
        reply exists; a failed generation leaves the history untouched.

        Raises:
            ReplyGenerationError: If the generator fails
        """
        with log_context(owner_id=request.owner_id, conversation_id=request.conversation_id):
            context = await self.assembler.assemble(request.owner_id, request.conversation_id, request.message)
            sent_at = utc_now()

            try:
                reply = await self.generator.generate(context.context_text, request.mode, context.history_text)
            except ReplyGenerationError:
                raise
            except Exception as e:
                raise ReplyGenerationError(message=f"Reply generation failed: {e}") from e

            user_message = ChatMessage(
                owner_id=request.owner_id,
                conversation_id=request.conversation_id,
                sender=MessageSender.USER,
                text=request.message,
                mode=request.mode,
                created_at=sent_at,
            )
            agent_message = ChatMessage(
                owner_id=request.owner_id,
                conversation_id=request.conversation_id,
                sender=MessageSender.AGENT,
                text=reply,
                mode=request.mode,
                # Strictly after the user message so history order is stable
                created_at=max(utc_now(), sent_at + timedelta(microseconds=1)),
            )
            await self.messages.append_exchange(user_message, agent_message)

            logger.info("Chat reply stored", matches=len(context.matches), history=len(context.history))
            return ChatReply(reply=reply, user_message=user_message, agent_message=agent_message, context=context)
