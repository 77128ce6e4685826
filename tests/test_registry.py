"""Tests for the domain agent registry."""

import pytest

from riskvanguard.domains import EnergyDomainAgent
from riskvanguard.exceptions import NotFoundError
from riskvanguard.models import DomainInput
from riskvanguard.registry import (
    DomainAgentRegistry,
    create_default_registry,
    get_domain_agent,
    process_with_domain_agent,
)


@pytest.fixture
def registry():
    return create_default_registry()


class TestDomainAgentRegistry:
    """Tests for DomainAgentRegistry."""

    def test_default_registry_has_one_agent_per_domain(self, registry):
        assert len(registry) == 3
        assert "energy-domain-agent" in registry
        assert "government-domain-agent" in registry
        assert "insurance-domain-agent" in registry

    def test_same_instance_for_every_alias(self, registry):
        energy = registry.get("energy-domain-agent")
        assert registry.get_by_vertical("energy") is energy
        assert registry.get_by_vertical("oil-gas") is energy
        assert registry.get_by_vertical("Oil & Gas") is energy

    def test_canonical_id_resolves(self, registry):
        agent = registry.get_by_vertical("insurance-domain-agent")
        assert agent.id == "insurance-domain-agent"

    def test_unknown_vertical(self, registry):
        assert registry.get_by_vertical("mining") is None
        assert registry.get_by_vertical("") is None

    def test_find_by_capability(self, registry):
        agents = registry.find_by_capability("risk-assessment")
        assert {a.id for a in agents} == {"government-domain-agent", "insurance-domain-agent"}

    def test_aliases_for(self, registry):
        assert "govcon" in registry.aliases_for("government-domain-agent")

    def test_term_counts(self, registry):
        counts = registry.term_counts()
        assert counts["energy-domain-agent"] == 13
        assert counts["insurance-domain-agent"] == 10

    def test_register_and_unregister(self):
        registry = DomainAgentRegistry()
        registry.register(EnergyDomainAgent())
        assert registry.get_by_vertical("energy") is not None
        assert registry.unregister("energy-domain-agent") is True
        assert registry.unregister("energy-domain-agent") is False
        assert registry.get_by_vertical("energy") is None

    def test_describe(self, registry):
        info = registry.get("energy-domain-agent").describe()
        assert info["name"] == "Energy Domain Agent"
        assert "lease" in info["document_types"]


class TestLookupHelpers:
    """Tests for get_domain_agent and process_with_domain_agent."""

    def test_get_domain_agent_raises_not_found(self, registry):
        with pytest.raises(NotFoundError) as exc_info:
            get_domain_agent(registry, "mining")
        assert exc_info.value.status_code == 404
        assert exc_info.value.code == "not_found"

    @pytest.mark.asyncio
    async def test_process_with_domain_agent(self, registry):
        output = await process_with_domain_agent(
            registry, "federal", DomainInput("contract", "Agency: GSA\nPayment terms: net 30.")
        )
        assert output.agent_id == "government-domain-agent"
        assert output.key_terms["agency"] == "GSA"
