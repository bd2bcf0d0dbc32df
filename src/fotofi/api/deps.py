"""FastAPI dependency injection configuration.

Long-lived collaborators are created once in ``create_app`` and kept on
``app.state``; these functions hand them to route handlers so tests can
swap them through ``app.dependency_overrides``.
"""

from typing import Annotated, Generator

from fastapi import Depends, HTTPException, Request
from sqlalchemy.engine import Engine
from sqlmodel import Session as DBSession

from fotofi.core.config import settings
from fotofi.db.models import User
from fotofi.repositories.agents import AgentRepository
from fotofi.repositories.conversations import ConversationRepository
from fotofi.repositories.users import UserRepository
from fotofi.services.llm_client import ChatLLMClient
from fotofi.services.submissions import SubmissionStore
from fotofi.storage.moderation_store import ModerationStore
from fotofi.storage.multipart import MultipartUploadIssuer


def get_engine(request: Request) -> Engine:
    return request.app.state.engine


def get_db_session(engine: Annotated[Engine, Depends(get_engine)]) -> Generator[DBSession, None, None]:
    """Yields a database session, ensuring proper cleanup."""
    with DBSession(engine) as session:
        yield session


def get_moderation_store(request: Request) -> ModerationStore:
    return request.app.state.moderation_store


def get_upload_issuer(request: Request) -> MultipartUploadIssuer:
    return request.app.state.upload_issuer


def get_llm_client(request: Request) -> ChatLLMClient:
    return request.app.state.llm_client


def get_submission_store(request: Request) -> SubmissionStore:
    return request.app.state.submission_store


EngineDep = Annotated[Engine, Depends(get_engine)]
DBSessionDep = Annotated[DBSession, Depends(get_db_session)]
ModerationStoreDep = Annotated[ModerationStore, Depends(get_moderation_store)]
UploadIssuerDep = Annotated[MultipartUploadIssuer, Depends(get_upload_issuer)]
LLMClientDep = Annotated[ChatLLMClient, Depends(get_llm_client)]
SubmissionStoreDep = Annotated[SubmissionStore, Depends(get_submission_store)]


def get_user_repository(db_session: DBSessionDep) -> UserRepository:
    return UserRepository(db_session)


def get_agent_repository(db_session: DBSessionDep) -> AgentRepository:
    return AgentRepository(db_session)


def get_conversation_repository(db_session: DBSessionDep) -> ConversationRepository:
    return ConversationRepository(db_session)


UserRepositoryDep = Annotated[UserRepository, Depends(get_user_repository)]
AgentRepositoryDep = Annotated[AgentRepository, Depends(get_agent_repository)]
ConversationRepositoryDep = Annotated[ConversationRepository, Depends(get_conversation_repository)]


def get_session_token(request: Request) -> str | None:
    """Read the session token from the cookie or a Bearer header."""
    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


def get_optional_user(request: Request, users: UserRepositoryDep) -> User | None:
    token = get_session_token(request)
    if not token:
        return None
    return users.get_user_for_token(token)


def get_current_user(user: Annotated[User | None, Depends(get_optional_user)]) -> User:
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


OptionalUserDep = Annotated[User | None, Depends(get_optional_user)]
CurrentUserDep = Annotated[User, Depends(get_current_user)]
