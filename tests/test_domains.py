"""Tests for the energy, government and insurance domain agents."""

import pytest

from riskvanguard.config import PolicyConfig
from riskvanguard.domains import (
    ComplianceChecker,
    ComplianceRule,
    EnergyDomainAgent,
    GovernmentDomainAgent,
    InsuranceDomainAgent,
)
from riskvanguard.models import DomainInput, Severity
from riskvanguard.validation import InputValidationError


def energy_input(content, **kwargs):
    return DomainInput(document_type="lease", content=content, **kwargs)


class TestEnergyDomainAgent:
    """Tests for the energy agent."""

    @pytest.mark.asyncio
    async def test_low_royalty_without_environmental_protection(self, energy_lease):
        output = await EnergyDomainAgent().process(energy_input(energy_lease))

        assert output.compliance["federal"] is False
        issue = "Missing environmental protection clause (federal requirement)"
        assert issue in output.compliance.issues

        financial = output.risks_of_type("financial")
        assert len(financial) == 1
        assert financial[0].severity == Severity.MEDIUM
        assert financial[0].description == "Below-market royalty rate"

        assert (
            "Consider negotiating royalty rate to at least 12.5% (industry minimum)"
            in output.recommendations
        )

    @pytest.mark.asyncio
    async def test_metadata_royalty_takes_precedence(self, energy_lease):
        output = await EnergyDomainAgent().process(
            energy_input(energy_lease, metadata={"royalty_rate": 15})
        )

        assert output.key_terms["royalty_rate"] == 15
        assert output.details["financial_terms"]["royalty_rate"] == 15.0
        assert output.risks_of_type("financial") == []
        assert not any("royalty rate to at least" in r for r in output.recommendations)

    @pytest.mark.asyncio
    async def test_none_metadata_and_context(self, energy_lease):
        output = await EnergyDomainAgent().process(
            energy_input(energy_lease, metadata=None, context=None)
        )
        assert output.key_terms["royalty_rate"] == "10"
        assert output.risks_of_type("financial")[0].description == "Below-market royalty rate"

    @pytest.mark.asyncio
    async def test_missing_royalty_is_a_financial_risk(self, energy_lease):
        content = energy_lease.replace("Royalty: 10%\n", "")
        output = await EnergyDomainAgent().process(energy_input(content))

        financial = output.risks_of_type("financial")
        assert financial[0].description == "Royalty rate not specified"

    @pytest.mark.asyncio
    async def test_texas_state_rules(self, energy_lease):
        output = await EnergyDomainAgent().process(
            energy_input(energy_lease, context={"state": "Texas"})
        )

        assert output.compliance["state"] is False
        assert "Missing Texas Railroad Commission compliance reference" in output.compliance.issues
        assert "Royalty rate below Texas minimum (12.5%)" in output.compliance.issues
        assert output.benchmarks["royalty_rate_average"] == 18.75

    @pytest.mark.asyncio
    async def test_texas_royalty_failure_survives_passing_rule(self, energy_lease):
        content = energy_lease + "\nOperations are subject to the Railroad Commission of Texas.\n"
        output = await EnergyDomainAgent().process(
            energy_input(content, context={"state": "texas"})
        )

        assert output.compliance["state"] is False
        assert output.compliance.issues == [
            "Missing environmental protection clause (federal requirement)",
            "Royalty rate below Texas minimum (12.5%)",
        ]

    @pytest.mark.asyncio
    async def test_minimum_royalty_is_policy(self, energy_lease):
        agent = EnergyDomainAgent(PolicyConfig(minimum_royalty_rate=8))
        output = await agent.process(energy_input(energy_lease))
        assert output.risks_of_type("financial") == []

    @pytest.mark.asyncio
    async def test_details_and_validity(self, energy_lease):
        output = await EnergyDomainAgent().process(energy_input(energy_lease))

        assert output.details["financial_terms"] == {
            "royalty_rate": 10.0,
            "bonus_payment": 250000.0,
        }
        assert output.details["operational_terms"]["primary_term"] == 5
        assert "Document addresses restoration" in output.details["environmental_considerations"]
        assert output.document_validity is True
        assert output.benchmarks["royalty_rate_average"] == 12.5

    @pytest.mark.asyncio
    async def test_recommendation_order(self, energy_lease):
        output = await EnergyDomainAgent().process(energy_input(energy_lease))
        recommendations = list(output.recommendations)

        assert recommendations[0].startswith("Address regulatory compliance issues: ")
        assert recommendations[-2:] == [
            "Conduct thorough title examination before execution",
            "Review with legal counsel specializing in oil & gas",
        ]
        assert "Add force majeure clause for operational flexibility" in recommendations

    @pytest.mark.asyncio
    async def test_blank_content_rejected(self):
        with pytest.raises(InputValidationError):
            await EnergyDomainAgent().process(energy_input("   "))

    @pytest.mark.asyncio
    async def test_missing_input_rejected(self):
        with pytest.raises(InputValidationError):
            await EnergyDomainAgent().process(None)

    @pytest.mark.asyncio
    async def test_unknown_document_type_still_processed(self, energy_lease):
        output = await EnergyDomainAgent().process(
            DomainInput(document_type="memo", content=energy_lease)
        )
        assert output.document_type == "memo"
        # lease/permit-only federal rules do not apply
        assert output.compliance["federal"] is True


class TestComplianceChecker:
    """Tests for the shared compliance machinery."""

    def test_failing_level_stays_failed(self):
        checker = ComplianceChecker(
            ("federal",),
            (
                ComplianceRule("federal", "first fails", passes=lambda ctx: False),
                ComplianceRule("federal", "second passes", passes=lambda ctx: True),
            ),
        )
        result = checker.check(DomainInput("lease", "text"), {})
        assert result["federal"] is False
        assert result.issues == ["first fails"]

    def test_inapplicable_rule_ignored(self):
        checker = ComplianceChecker(
            ("state",),
            (
                ComplianceRule(
                    "state", "never", passes=lambda ctx: False, applies=lambda ctx: False
                ),
            ),
        )
        result = checker.check(DomainInput("lease", "text"), {})
        assert result.passed

    def test_unknown_level_rejected(self):
        with pytest.raises(ValueError):
            ComplianceChecker(
                ("federal",), (ComplianceRule("state", "x", passes=lambda ctx: True),)
            )


class TestGovernmentDomainAgent:
    """Tests for the government agent."""

    @pytest.mark.asyncio
    async def test_defense_contract(self, government_contract):
        output = await GovernmentDomainAgent().process(
            DomainInput(document_type="contract", content=government_contract)
        )

        assert output.key_terms["agency"] == "Department of Defense"
        assert output.compliance["far"] is True
        assert output.compliance["dfars"] is False
        assert output.compliance["state_local"] is False
        assert "Missing Cybersecurity requirements (DFARS 252.204-7012)" in output.compliance.issues

        compliance_risks = output.risks_of_type("compliance")
        assert compliance_risks[0].description == "Non-compliance with regulations: 3 issues found"
        assert output.document_validity is True
        assert output.benchmarks is None

    @pytest.mark.asyncio
    async def test_none_metadata_and_context(self, government_contract):
        output = await GovernmentDomainAgent().process(
            DomainInput(
                document_type="contract",
                content=government_contract,
                metadata=None,
                context=None,
            )
        )
        assert output.compliance["far"] is True
        assert output.details["set_aside_eligibility"]["eligible"] is True

    @pytest.mark.asyncio
    async def test_civilian_agency_skips_dfars(self, government_contract):
        content = government_contract.replace("Department of Defense", "Department of Energy")
        output = await GovernmentDomainAgent().process(
            DomainInput(document_type="contract", content=content)
        )
        assert output.compliance["dfars"] is True

    @pytest.mark.asyncio
    async def test_contract_details(self, government_contract):
        output = await GovernmentDomainAgent().process(
            DomainInput(document_type="contract", content=government_contract)
        )
        terms = output.details["contract_terms"]
        assert terms["key_personnel"] == ["Program Manager", "Lead Engineer", "Security Officer"]
        assert "ISO 9001" in output.details["required_certifications"]
        assert "SAM Registration" in output.details["required_certifications"]
        assert output.details["set_aside_eligibility"]["eligible"] is True
        assert output.details["set_aside_eligibility"]["types"] == ["Small Business"]
        assert "Ensure all Small Business certifications are current" in output.recommendations

    @pytest.mark.asyncio
    async def test_schedule_and_competitive_risks(self):
        output = await GovernmentDomainAgent().process(
            DomainInput(
                document_type="rfp",
                content="Solicitation Number: 70RSAT24R0001. Agency: DHS. Capabilities: cloud.",
                metadata={"performance_period": {"start": "2024-01-01", "end": "2024-02-15"}},
                context={"past_performance": False, "contract_type": "cost-reimbursement"},
            )
        )
        types = {r.type for r in output.risks}
        assert {"schedule", "competitive", "financial"} <= types
        assert "competitive_analysis" in output.details
        assert "Attend any scheduled pre-bid conferences" in output.recommendations

    @pytest.mark.asyncio
    async def test_edwosb_not_counted_as_wosb(self):
        output = await GovernmentDomainAgent().process(
            DomainInput(document_type="rfp", content="This is an EDWOSB set-aside.")
        )
        assert output.details["set_aside_eligibility"]["types"] == ["EDWOSB"]


class TestInsuranceDomainAgent:
    """Tests for the insurance agent."""

    @pytest.mark.asyncio
    async def test_claim_matching_policy_exclusion_is_not_covered(self, insurance_claim):
        output = await InsuranceDomainAgent().process(
            DomainInput(document_type="claim", content=insurance_claim)
        )

        claims = output.details["claims_analysis"]
        assert claims["covered"] is False
        assert "flood" in claims["exclusions_applicable"]

    @pytest.mark.asyncio
    async def test_claim_outside_exclusions_is_covered(self, insurance_claim):
        content = insurance_claim.replace("rising flood waters entered", "a forklift struck")
        output = await InsuranceDomainAgent().process(
            DomainInput(document_type="claim", content=content)
        )

        claims = output.details["claims_analysis"]
        assert claims["covered"] is True
        assert claims["exclusions_applicable"] == []

    @pytest.mark.asyncio
    async def test_exclusion_clause_listing_several_perils(self, insurance_claim):
        content = insurance_claim.replace(
            "Exclusions: flood.", "Exclusions: earthquake, flood; wear and tear or mold."
        )
        output = await InsuranceDomainAgent().process(
            DomainInput(document_type="claim", content=content)
        )

        coverage = output.details["coverage_analysis"]
        assert coverage["exclusions"] == ["earthquake", "flood", "wear and tear", "mold"]
        claims = output.details["claims_analysis"]
        assert claims["covered"] is False
        assert claims["exclusions_applicable"] == ["flood"]

    @pytest.mark.asyncio
    async def test_metadata_exclusions(self, insurance_claim):
        content = insurance_claim.replace("Exclusions: flood.", "").replace(
            "rising flood waters entered", "mold spread through"
        )
        output = await InsuranceDomainAgent().process(
            DomainInput(document_type="claim", content=content, metadata={"exclusions": ["Mold"]})
        )
        assert output.details["claims_analysis"]["exclusions_applicable"] == ["mold"]

    @pytest.mark.asyncio
    async def test_none_metadata_and_context(self, insurance_claim):
        output = await InsuranceDomainAgent().process(
            DomainInput(
                document_type="claim", content=insurance_claim, metadata=None, context=None
            )
        )
        assert output.details["claims_analysis"]["covered"] is False

    @pytest.mark.asyncio
    async def test_estimated_payout(self, insurance_claim):
        output = await InsuranceDomainAgent().process(
            DomainInput(document_type="claim", content=insurance_claim)
        )
        assert output.details["claims_analysis"]["estimated_payout"] == 240000.0

    @pytest.mark.asyncio
    async def test_subrogation_recommendation(self, insurance_claim):
        content = insurance_claim + "\nA third-party contractor left the loading door open.\n"
        output = await InsuranceDomainAgent().process(
            DomainInput(document_type="claim", content=content)
        )
        assert output.details["claims_analysis"]["subrogation_potential"] is True
        assert "Preserve evidence for potential subrogation recovery" in output.recommendations

    @pytest.mark.asyncio
    async def test_policy_compliance_and_pricing(self):
        content = (
            "Policy Number: CYB-1001. Named Insured: Data Co. "
            "Premium: $2,000. Coverage Limit: $1,000,000. "
            "Form CY-100 (01/24). California amendatory endorsement attached."
        )
        output = await InsuranceDomainAgent().process(
            DomainInput(
                document_type="policy",
                content=content,
                context={"state": "California", "line_of_business": "cyber"},
            )
        )

        assert output.compliance["form"] is True
        assert output.compliance["state"] is False
        assert any("california proposition 65" in i for i in output.compliance.issues)
        assert output.compliance.to_dict()["filing_required"] is False

        assessment = output.details["risk_assessment"]
        assert assessment["pricing_adequacy"] == "underpriced"
        assert {r.type for r in output.risks} >= {"financial", "service"}
        assert output.benchmarks["market_position"] == "Below market - competitive advantage"
