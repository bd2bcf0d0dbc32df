"""Relational models for accounts, agents and conversations."""

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from sqlmodel import Field, SQLModel


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageRole(str, Enum):
    USER = "USER"
    ASSISTANT = "ASSISTANT"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str = Field(max_length=255)
    email: str = Field(max_length=320, unique=True, index=True)
    password_hash: str
    email_verified: bool = False
    created_at: datetime = Field(default_factory=_utcnow)


class AuthSession(SQLModel, table=True):
    __tablename__ = "auth_sessions"

    token: str = Field(primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    expires_at: datetime
    created_at: datetime = Field(default_factory=_utcnow)


class VerificationToken(SQLModel, table=True):
    __tablename__ = "verification_tokens"

    token: str = Field(primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    expires_at: datetime


class Agent(SQLModel, table=True):
    __tablename__ = "agents"

    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str = Field(max_length=255)
    system_prompt: str
    about: str = ""
    is_public: bool = False
    user_id: str = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=_utcnow)


class Conversation(SQLModel, table=True):
    __tablename__ = "conversations"

    id: str = Field(default_factory=_new_id, primary_key=True)
    title: str
    user_id: str = Field(foreign_key="users.id", index=True)
    agent_id: str = Field(foreign_key="agents.id", index=True)
    created_at: datetime = Field(default_factory=_utcnow)


class Message(SQLModel, table=True):
    __tablename__ = "messages"

    id: str = Field(default_factory=_new_id, primary_key=True)
    conversation_id: str = Field(foreign_key="conversations.id", index=True)
    role: MessageRole
    content: str
    created_at: datetime = Field(default_factory=_utcnow)
