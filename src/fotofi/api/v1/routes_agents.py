"""Agent persona API routes."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from fotofi.api.deps import AgentRepositoryDep, CurrentUserDep, OptionalUserDep
from fotofi.models.chat import (
    AgentOut,
    AgentOwnerOut,
    AgentResponse,
    CreateAgentRequest,
    MyAgentsResponse,
    PublicAgentOut,
    PublicAgentsResponse,
    UpdateAgentRequest,
)
from fotofi.repositories.exceptions import AgentNotFoundError

router = APIRouter(prefix="/api/agents", tags=["agents"])
logger = logging.getLogger(__name__)


@router.get("")
def list_agents(
    agents: AgentRepositoryDep,
    user: OptionalUserDep,
    listing: Optional[str] = Query(default=None, alias="type"),
):
    """List public agents, or the caller's own agents with ``?type=my``."""
    if listing == "my":
        if user is None:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return MyAgentsResponse(
            agents=[AgentOut.model_validate(agent) for agent in agents.list_for_user(user.id)]
        )

    return PublicAgentsResponse(
        agents=[
            PublicAgentOut(
                id=agent.id,
                name=agent.name,
                about=agent.about,
                created_at=agent.created_at,
                user=AgentOwnerOut(name=owner.name),
            )
            for agent, owner in agents.list_public()
        ]
    )


@router.post("", response_model=AgentResponse, status_code=201)
def create_agent(request: CreateAgentRequest, agents: AgentRepositoryDep, user: CurrentUserDep) -> AgentResponse:
    """Create an agent owned by the caller."""
    if not request.name or not request.system_prompt:
        raise HTTPException(status_code=400, detail="Name and system prompt are required")

    agent = agents.create(
        user_id=user.id,
        name=request.name,
        system_prompt=request.system_prompt,
        about=request.about or "",
        is_public=bool(request.is_public),
    )
    logger.info("Agent created", extra={"agent_id": agent.id, "user_id": user.id})
    return AgentResponse(agent=AgentOut.model_validate(agent))


@router.put("", response_model=AgentResponse)
def update_agent(request: UpdateAgentRequest, agents: AgentRepositoryDep, user: CurrentUserDep) -> AgentResponse:
    """Update an agent the caller owns."""
    if not request.id:
        raise HTTPException(status_code=400, detail="Agent ID is required")

    try:
        agent = agents.update(
            user_id=user.id,
            agent_id=request.id,
            name=request.name,
            system_prompt=request.system_prompt,
            about=request.about,
            is_public=request.is_public,
        )
    except AgentNotFoundError:
        raise HTTPException(status_code=404, detail="Agent not found or access denied")

    return AgentResponse(agent=AgentOut.model_validate(agent))
