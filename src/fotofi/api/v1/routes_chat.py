"""Agent chat API route.

The reply is streamed to the client as plain text while it is generated.
The user's message is stored before streaming starts; the assistant's full
reply is stored once the stream finishes.
"""

import logging
from typing import AsyncIterator
from uuid import uuid4

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.engine import Engine
from sqlmodel import Session as DBSession

from fotofi.api.deps import (
    ConversationRepositoryDep,
    CurrentUserDep,
    EngineDep,
    LLMClientDep,
)
from fotofi.db.models import MessageRole
from fotofi.models.chat import ChatRequest
from fotofi.repositories.conversations import ConversationRepository
from fotofi.repositories.exceptions import ConversationNotFoundError
from fotofi.services.llm_client import ChatLLMClient, LLMError

router = APIRouter(prefix="/api", tags=["chat"])
logger = logging.getLogger(__name__)


async def _stream_and_store(
    llm: ChatLLMClient,
    engine: Engine,
    conversation_id: str,
    system_prompt: str,
    history: list[dict[str, str]],
    correlation_id: str,
) -> AsyncIterator[str]:
    """Relay reply deltas, then store the assembled reply."""
    chunks: list[str] = []
    try:
        async for delta in llm.stream_reply(system_prompt, history):
            chunks.append(delta)
            yield delta
    except LLMError as e:
        logger.error(
            "Chat stream failed",
            extra={"correlation_id": correlation_id, "conversation_id": conversation_id, "error": str(e)},
        )
        return

    reply = "".join(chunks)
    try:
        # The request's DB session is closed once streaming starts
        with DBSession(engine) as db_session:
            ConversationRepository(db_session).add_message(conversation_id, MessageRole.ASSISTANT, reply)
    except Exception as e:
        logger.error(
            f"Error storing AI response: {e}",
            extra={"correlation_id": correlation_id, "conversation_id": conversation_id},
            exc_info=True,
        )
        return

    logger.info(
        "Chat reply stored",
        extra={"correlation_id": correlation_id, "conversation_id": conversation_id, "chars": len(reply)},
    )


@router.post("/chat")
async def chat(
    request: ChatRequest,
    user: CurrentUserDep,
    conversations: ConversationRepositoryDep,
    llm: LLMClientDep,
    engine: EngineDep,
) -> StreamingResponse:
    """Chat with the agent behind a conversation.

    Raises:
        HTTPException: 400 for invalid requests, 404 for unknown
            conversations, 503 if the LLM is disabled
    """
    correlation_id = str(uuid4())

    if not request.conversation_id:
        raise HTTPException(status_code=400, detail="Conversation ID is required")
    if not request.messages:
        raise HTTPException(status_code=400, detail="No messages provided")

    if not llm.enabled:
        logger.warning("Chat feature disabled", extra={"correlation_id": correlation_id})
        raise HTTPException(status_code=503, detail="Chat is currently disabled")

    try:
        conversation, agent, _ = conversations.get_for_user(user.id, request.conversation_id)
    except ConversationNotFoundError:
        raise HTTPException(status_code=404, detail="Conversation not found")

    latest = request.messages[-1]
    if latest.role == "user":
        conversations.add_message(conversation.id, MessageRole.USER, latest.content)

    logger.info(
        "Chat request received",
        extra={
            "correlation_id": correlation_id,
            "conversation_id": conversation.id,
            "agent_id": agent.id,
            "message_count": len(request.messages),
        },
    )

    # The agent's stored prompt is the only system message sent upstream
    history = [
        {"role": message.role, "content": message.content}
        for message in request.messages
        if message.role != "system"
    ]
    return StreamingResponse(
        _stream_and_store(llm, engine, conversation.id, agent.system_prompt, history, correlation_id),
        media_type="text/plain; charset=utf-8",
    )
