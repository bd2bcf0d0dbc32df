"""Conversation API routes."""

import logging

from fastapi import APIRouter, HTTPException

from fotofi.api.deps import AgentRepositoryDep, ConversationRepositoryDep, CurrentUserDep
from fotofi.models.chat import (
    AgentDetailOut,
    AgentSummaryOut,
    ConversationDetailOut,
    ConversationListResponse,
    ConversationResponse,
    ConversationSummaryOut,
    CreateConversationRequest,
    MessageCountOut,
    MessageOut,
)
from fotofi.repositories.exceptions import (
    AgentAccessDeniedError,
    AgentNotFoundError,
    ConversationNotFoundError,
)

router = APIRouter(prefix="/api/conversations", tags=["conversations"])
logger = logging.getLogger(__name__)


@router.post("", response_model=ConversationResponse, status_code=201)
def create_conversation(
    request: CreateConversationRequest,
    agents: AgentRepositoryDep,
    conversations: ConversationRepositoryDep,
    user: CurrentUserDep,
) -> ConversationResponse:
    """Start a conversation with a public agent or one the caller owns."""
    if not request.agent_id:
        raise HTTPException(status_code=400, detail="Agent ID is required")

    try:
        agent = agents.get_accessible(user.id, request.agent_id)
    except AgentNotFoundError:
        raise HTTPException(status_code=404, detail="Agent not found")
    except AgentAccessDeniedError:
        raise HTTPException(status_code=403, detail="Access denied")

    conversation = conversations.create(user.id, agent)
    logger.info(
        "Conversation created",
        extra={"conversation_id": conversation.id, "agent_id": agent.id, "user_id": user.id},
    )
    return ConversationResponse(
        conversation=ConversationDetailOut(
            id=conversation.id,
            title=conversation.title,
            user_id=conversation.user_id,
            agent_id=conversation.agent_id,
            created_at=conversation.created_at,
            agent=AgentDetailOut.model_validate(agent),
        )
    )


@router.get("", response_model=ConversationListResponse)
def list_conversations(conversations: ConversationRepositoryDep, user: CurrentUserDep) -> ConversationListResponse:
    """List the caller's conversations, newest first."""
    return ConversationListResponse(
        conversations=[
            ConversationSummaryOut(
                id=conversation.id,
                title=conversation.title,
                user_id=conversation.user_id,
                agent_id=conversation.agent_id,
                created_at=conversation.created_at,
                agent=AgentSummaryOut.model_validate(agent),
                count=MessageCountOut(messages=message_count),
            )
            for conversation, agent, message_count in conversations.list_for_user(user.id)
        ]
    )


@router.get("/{conversation_id}", response_model=ConversationResponse)
def get_conversation(
    conversation_id: str,
    conversations: ConversationRepositoryDep,
    user: CurrentUserDep,
) -> ConversationResponse:
    """Return a conversation with its agent and messages in order."""
    try:
        conversation, agent, messages = conversations.get_for_user(user.id, conversation_id)
    except ConversationNotFoundError:
        raise HTTPException(status_code=404, detail="Conversation not found")

    return ConversationResponse(
        conversation=ConversationDetailOut(
            id=conversation.id,
            title=conversation.title,
            user_id=conversation.user_id,
            agent_id=conversation.agent_id,
            created_at=conversation.created_at,
            agent=AgentDetailOut.model_validate(agent),
            messages=[MessageOut.model_validate(message) for message in messages],
        )
    )
