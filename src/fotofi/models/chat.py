"""Account, agent, conversation and chat data models."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from fotofi.db.models import MessageRole
from fotofi.models.base import CamelModel


class RegisterRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UserOut(CamelModel):
    id: str
    name: str
    email: str
    email_verified: bool
    created_at: datetime


class UserResponse(CamelModel):
    user: UserOut


class LoginResponse(CamelModel):
    user: UserOut
    token: str


class CreateAgentRequest(CamelModel):
    name: Optional[str] = None
    system_prompt: Optional[str] = None
    about: Optional[str] = None
    is_public: Optional[bool] = None


class UpdateAgentRequest(CreateAgentRequest):
    id: Optional[str] = None


class AgentOut(CamelModel):
    id: str
    name: str
    system_prompt: str
    about: str
    is_public: bool
    user_id: str
    created_at: datetime


class AgentOwnerOut(CamelModel):
    name: str


class PublicAgentOut(CamelModel):
    """Public listing entry; the system prompt stays private."""

    id: str
    name: str
    about: str
    created_at: datetime
    user: AgentOwnerOut


class AgentResponse(CamelModel):
    agent: AgentOut


class MyAgentsResponse(CamelModel):
    agents: list[AgentOut]


class PublicAgentsResponse(CamelModel):
    agents: list[PublicAgentOut]


class CreateConversationRequest(CamelModel):
    agent_id: Optional[str] = None


class AgentSummaryOut(CamelModel):
    id: str
    name: str


class AgentDetailOut(AgentSummaryOut):
    system_prompt: str
    about: str


class MessageOut(CamelModel):
    id: str
    conversation_id: str
    role: MessageRole
    content: str
    created_at: datetime


class MessageCountOut(BaseModel):
    messages: int


class ConversationOut(CamelModel):
    id: str
    title: str
    user_id: str
    agent_id: str
    created_at: datetime


class ConversationSummaryOut(ConversationOut):
    agent: AgentSummaryOut
    count: MessageCountOut = Field(alias="_count")


class ConversationDetailOut(ConversationOut):
    agent: AgentDetailOut
    messages: list[MessageOut] = []


class ConversationResponse(CamelModel):
    conversation: ConversationDetailOut


class ConversationListResponse(CamelModel):
    conversations: list[ConversationSummaryOut]


class ChatMessage(BaseModel):
    """Single chat message."""

    role: Literal["user", "assistant", "system"] = Field(..., description="Message role")
    content: str = Field(..., description="Message content")


class ChatRequest(CamelModel):
    """Request body for chat endpoint."""

    messages: list[ChatMessage] = []
    conversation_id: Optional[str] = None
