"""Repository for conversations and their messages."""

from typing import List, Tuple

from sqlalchemy import func
from sqlmodel import Session as DBSession
from sqlmodel import col, select

from fotofi.db.models import Agent, Conversation, Message, MessageRole
from fotofi.repositories.exceptions import ConversationNotFoundError


class ConversationRepository:
    """
    Handles all database operations for conversations.

    Every read is scoped to the owning user; another user's conversation
    is reported as not found.
    """

    def __init__(self, db_session: DBSession):
        self._db = db_session

    def create(self, user_id: str, agent: Agent) -> Conversation:
        conversation = Conversation(
            user_id=user_id,
            agent_id=agent.id,
            title=f"Chat with {agent.name}",
        )
        self._db.add(conversation)
        self._db.commit()
        self._db.refresh(conversation)
        return conversation

    def list_for_user(self, user_id: str) -> List[Tuple[Conversation, Agent, int]]:
        """Returns the user's conversations with agent and message count, newest first."""
        message_count = (
            select(Message.conversation_id, func.count(Message.id).label("count"))
            .group_by(Message.conversation_id)
            .subquery()
        )
        statement = (
            select(Conversation, Agent, func.coalesce(message_count.c.count, 0))
            .join(Agent, Conversation.agent_id == Agent.id)
            .outerjoin(message_count, message_count.c.conversation_id == Conversation.id)
            .where(Conversation.user_id == user_id)
            .order_by(col(Conversation.created_at).desc())
        )
        return [(conversation, agent, int(count)) for conversation, agent, count in self._db.exec(statement).all()]

    def get_for_user(self, user_id: str, conversation_id: str) -> Tuple[Conversation, Agent, List[Message]]:
        """
        Retrieves a conversation with its agent and messages in order.

        Raises:
            ConversationNotFoundError: If it does not exist or is not the user's.
        """
        statement = (
            select(Conversation, Agent)
            .join(Agent, Conversation.agent_id == Agent.id)
            .where(Conversation.id == conversation_id, Conversation.user_id == user_id)
        )
        result = self._db.exec(statement).first()
        if not result:
            raise ConversationNotFoundError(conversation_id)

        conversation, agent = result
        return conversation, agent, self.list_messages(conversation.id)

    def list_messages(self, conversation_id: str) -> List[Message]:
        statement = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(col(Message.created_at).asc())
        )
        return list(self._db.exec(statement).all())

    def add_message(self, conversation_id: str, role: MessageRole, content: str) -> Message:
        message = Message(conversation_id=conversation_id, role=role, content=content)
        self._db.add(message)
        self._db.commit()
        self._db.refresh(message)
        return message
