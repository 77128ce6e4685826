"""
Domain agent registry.

Agents are looked up by id, by a human-facing vertical alias, or by the
capabilities they advertise. The registry is an ordinary object: build one
with ``create_default_registry`` at start-up and pass it to whatever needs it.
"""

import logging
from typing import Optional

from .config import PolicyConfig
from .domains import (
    DomainAgent,
    EnergyDomainAgent,
    GovernmentDomainAgent,
    InsuranceDomainAgent,
)
from .exceptions import NotFoundError
from .models import DomainInput, DomainOutput

logger = logging.getLogger("riskvanguard.registry")

VERTICAL_ALIASES = {
    "energy": "energy-domain-agent",
    "oil-gas": "energy-domain-agent",
    "oil-and-gas": "energy-domain-agent",
    "oil & gas": "energy-domain-agent",
    "government": "government-domain-agent",
    "federal": "government-domain-agent",
    "public-sector": "government-domain-agent",
    "govcon": "government-domain-agent",
    "insurance": "insurance-domain-agent",
    "property-casualty": "insurance-domain-agent",
    "p&c": "insurance-domain-agent",
    "underwriting": "insurance-domain-agent",
}


class DomainAgentRegistry:
    """Holds exactly one agent instance per id."""

    def __init__(self, aliases: Optional[dict[str, str]] = None):
        self._agents: dict[str, DomainAgent] = {}
        self._aliases = {k.lower(): v for k, v in (aliases or VERTICAL_ALIASES).items()}

    def register(self, agent: DomainAgent) -> None:
        if agent.id in self._agents:
            logger.warning("Domain agent '%s' already registered; overwriting", agent.id)
        self._agents[agent.id] = agent
        logger.info("Registered domain agent: %s", agent.id)

    def unregister(self, agent_id: str) -> bool:
        return self._agents.pop(agent_id, None) is not None

    def get(self, agent_id: str) -> Optional[DomainAgent]:
        return self._agents.get(agent_id)

    def get_by_vertical(self, vertical: str) -> Optional[DomainAgent]:
        """Resolve a vertical alias (case-insensitive) or a canonical agent id."""
        if not vertical:
            return None
        key = vertical.strip().lower()
        agent_id = self._aliases.get(key, key)
        return self._agents.get(agent_id)

    def find_by_capability(self, capability: str) -> list[DomainAgent]:
        return [a for a in self._agents.values() if capability in a.capabilities]

    def aliases_for(self, agent_id: str) -> list[str]:
        return sorted(alias for alias, target in self._aliases.items() if target == agent_id)

    def term_counts(self) -> dict[str, int]:
        """Size of each agent's field pattern table, keyed by agent id."""
        return {agent_id: len(a.field_patterns) for agent_id, a in self._agents.items()}

    def all(self) -> list[DomainAgent]:
        return list(self._agents.values())

    def __contains__(self, agent_id: str) -> bool:
        return agent_id in self._agents

    def __len__(self) -> int:
        return len(self._agents)


def create_default_registry(policy: Optional[PolicyConfig] = None) -> DomainAgentRegistry:
    """Build a registry holding one instance of each built-in domain agent."""
    policy = policy or PolicyConfig()
    registry = DomainAgentRegistry()
    for agent_class in (EnergyDomainAgent, GovernmentDomainAgent, InsuranceDomainAgent):
        registry.register(agent_class(policy))
    return registry


def get_domain_agent(registry: DomainAgentRegistry, vertical: str) -> DomainAgent:
    """
    Look up the agent for a vertical.

    Raises:
        NotFoundError: No agent is registered for the vertical
    """
    agent = registry.get_by_vertical(vertical)
    if agent is None:
        raise NotFoundError(f"No domain agent registered for vertical '{vertical}'")
    return agent


async def process_with_domain_agent(
    registry: DomainAgentRegistry, vertical: str, document: DomainInput
) -> DomainOutput:
    """Resolve the agent for ``vertical`` and run ``document`` through it."""
    agent = get_domain_agent(registry, vertical)
    return await agent.process(document)
