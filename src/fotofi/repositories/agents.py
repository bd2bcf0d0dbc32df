"""Repository for agent personas."""

from typing import List, Tuple

from sqlmodel import Session as DBSession
from sqlmodel import col, select

from fotofi.db.models import Agent, User
from fotofi.repositories.exceptions import AgentAccessDeniedError, AgentNotFoundError


class AgentRepository:
    """
    Handles all database operations for agents.

    Public agents are visible to everyone; private agents only to their owner.
    """

    def __init__(self, db_session: DBSession):
        self._db = db_session

    def list_public(self) -> List[Tuple[Agent, User]]:
        """Returns public agents with their owners, newest first."""
        statement = (
            select(Agent, User)
            .join(User, Agent.user_id == User.id)
            .where(Agent.is_public == True)  # noqa: E712
            .order_by(col(Agent.created_at).desc())
        )
        return list(self._db.exec(statement).all())

    def list_for_user(self, user_id: str) -> List[Agent]:
        """Returns the user's own agents, newest first."""
        statement = (
            select(Agent)
            .where(Agent.user_id == user_id)
            .order_by(col(Agent.created_at).desc())
        )
        return list(self._db.exec(statement).all())

    def create(
        self,
        user_id: str,
        name: str,
        system_prompt: str,
        about: str = "",
        is_public: bool = False,
    ) -> Agent:
        agent = Agent(
            name=name,
            system_prompt=system_prompt,
            about=about,
            is_public=is_public,
            user_id=user_id,
        )
        self._db.add(agent)
        self._db.commit()
        self._db.refresh(agent)
        return agent

    def update(
        self,
        user_id: str,
        agent_id: str,
        name: str | None = None,
        system_prompt: str | None = None,
        about: str | None = None,
        is_public: bool | None = None,
    ) -> Agent:
        """
        Updates the fields that were provided on an agent the user owns.

        Empty name or system prompt values leave the stored value unchanged.

        Raises:
            AgentNotFoundError: If the agent does not exist or is not the user's.
        """
        agent = self._db.get(Agent, agent_id)
        if agent is None or agent.user_id != user_id:
            raise AgentNotFoundError(agent_id)

        if name:
            agent.name = name
        if system_prompt:
            agent.system_prompt = system_prompt
        if about is not None:
            agent.about = about
        if is_public is not None:
            agent.is_public = is_public

        self._db.add(agent)
        self._db.commit()
        self._db.refresh(agent)
        return agent

    def get_accessible(self, user_id: str, agent_id: str) -> Agent:
        """
        Retrieves an agent the user may chat with.

        Raises:
            AgentNotFoundError: If the agent does not exist.
            AgentAccessDeniedError: If it is private and owned by someone else.
        """
        agent = self._db.get(Agent, agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        if not agent.is_public and agent.user_id != user_id:
            raise AgentAccessDeniedError(agent_id)
        return agent
