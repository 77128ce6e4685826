"""
Energy domain agent: oil & gas leases, permits and related contracts.
"""

from typing import Any, Optional

from ..extraction import FieldPattern, to_number
from ..models import DomainInput, Severity
from .base import (
    ComplianceRule,
    DomainAgent,
    RecommendationGenerator,
    RiskRule,
    RuleContext,
)

FIELD_PATTERNS = (
    FieldPattern("lessor", r"lessor[:\s]+([^\n,]+)"),
    FieldPattern("lessee", r"lessee[:\s]+([^\n,]+)"),
    FieldPattern("effective_date", r"effective\s+date[:\s]+([^\n,]+)"),
    FieldPattern("primary_term", r"primary\s+term[:\s]+(\d+)\s*(?:years?|months?)"),
    FieldPattern("royalty_rate", r"royalty[:\s]+(\d+\.?\d*)\s*(?:%|percent|fraction)"),
    FieldPattern("bonus_payment", r"bonus[:\s]+\$?(\d+[,\d]*\.?\d*)"),
    FieldPattern("acreage", r"(\d+[,\d]*\.?\d*)\s*acres?"),
    FieldPattern("depth", r"depth[:\s]+([^\n,]+)"),
    FieldPattern("minerals", r"minerals?[:\s]+([^\n,]+)"),
    FieldPattern("delay_rentals", r"delay\s+rentals?[:\s]+\$?(\d+[,\d]*\.?\d*)"),
    FieldPattern("shut_in_payments", r"shut-?in[:\s]+\$?(\d+[,\d]*\.?\d*)"),
    FieldPattern("surface_rights", r"surface\s+rights?[:\s]+([^\n,]+)"),
    FieldPattern("pooling_provisions", r"pooling[:\s]+([^\n,]+)"),
)

ENVIRONMENTAL_KEYWORDS = (
    "water protection",
    "air quality",
    "soil contamination",
    "wildlife habitat",
    "wetlands",
    "endangered species",
    "remediation",
    "restoration",
    "spill prevention",
    "waste disposal",
)

BENCHMARKS = {
    "texas": {
        "royalty_rate_average": 18.75,
        "bonus_payment_average": 500,
        "market_conditions": "Stable with increasing activity in Permian Basin",
    },
    "north dakota": {
        "royalty_rate_average": 18.75,
        "bonus_payment_average": 750,
        "market_conditions": "Recovering from recent downturn",
    },
}

DEFAULT_BENCHMARK = {
    "royalty_rate_average": 12.5,
    "bonus_payment_average": 250,
    "market_conditions": "Varies by region",
}

REQUIRED_TERMS = ("lessor", "lessee", "effective_date", "royalty_rate")


def _is_texas(ctx: RuleContext) -> bool:
    return ctx.context_value("state") == "texas"


def _royalty_at_minimum(ctx: RuleContext) -> bool:
    rate = ctx.number("royalty_rate")
    return rate is not None and rate >= ctx.policy.minimum_royalty_rate


COMPLIANCE_RULES = (
    ComplianceRule(
        level="federal",
        message="Missing environmental protection clause (federal requirement)",
        passes=lambda ctx: ctx.mentions(r"environmental\s+protection"),
        applies=lambda ctx: ctx.document_type in ("lease", "permit"),
    ),
    ComplianceRule(
        level="federal",
        message="Missing endangered species protection clause",
        passes=lambda ctx: ctx.mentions(r"endangered\s+species"),
        applies=lambda ctx: ctx.document_type in ("lease", "permit"),
    ),
    ComplianceRule(
        level="state",
        message="Missing Texas Railroad Commission compliance reference",
        passes=lambda ctx: ctx.mentions(r"railroad\s+commission"),
        applies=_is_texas,
    ),
    ComplianceRule(
        level="state",
        message=lambda ctx: (
            f"Royalty rate below Texas minimum ({ctx.policy.minimum_royalty_rate:g}%)"
        ),
        passes=_royalty_at_minimum,
        applies=_is_texas,
    ),
    ComplianceRule(
        level="local",
        message="No reference to county regulations",
        passes=lambda ctx: ctx.mentions(r"county\s+regulations?"),
        applies=lambda ctx: bool(ctx.context_value("county")),
    ),
)


def _royalty_risk_description(ctx: RuleContext) -> str:
    if ctx.number("royalty_rate") is None:
        return "Royalty rate not specified"
    return "Below-market royalty rate"


RISK_RULES = (
    RiskRule(
        type="regulatory",
        severity=Severity.HIGH,
        description="Document has regulatory compliance issues",
        mitigation="Review and update document to meet all regulatory requirements",
        triggered=lambda ctx: not ctx.compliance.passed,
    ),
    RiskRule(
        type="financial",
        severity=Severity.MEDIUM,
        description=_royalty_risk_description,
        mitigation="Consider negotiating higher royalty rate to match market standards",
        triggered=lambda ctx: not _royalty_at_minimum(ctx),
    ),
    RiskRule(
        type="operational",
        severity=Severity.HIGH,
        description="Primary term not clearly defined",
        mitigation="Specify clear primary term duration",
        triggered=lambda ctx: not ctx.fields.get("primary_term"),
    ),
    RiskRule(
        type="environmental",
        severity=Severity.HIGH,
        description="Unclear environmental liability allocation",
        mitigation="Add clear environmental liability and indemnification clauses",
        triggered=lambda ctx: not ctx.mentions(r"environmental\s+liability"),
    ),
    RiskRule(
        type="title",
        severity=Severity.CRITICAL,
        description="No title warranty or examination requirement",
        mitigation="Require title examination and warranty of title",
        triggered=lambda ctx: not ctx.mentions(r"title\s+(?:warranty|examination)"),
    ),
)


class EnergyRecommendations(RecommendationGenerator):
    closing_recommendations = (
        "Conduct thorough title examination before execution",
        "Review with legal counsel specializing in oil & gas",
    )

    def financial_recommendations(self, ctx: RuleContext) -> list[str]:
        recommendations = []
        royalty = ctx.terms.get("royalty_rate")
        minimum = self.policy.minimum_royalty_rate
        if royalty is not None and royalty < minimum:
            recommendations.append(
                f"Consider negotiating royalty rate to at least {minimum:g}% (industry minimum)"
            )
        if not ctx.terms.get("bonus_payment"):
            recommendations.append("Negotiate upfront bonus payment for lease execution")
        return recommendations

    def document_recommendations(self, ctx: RuleContext) -> list[str]:
        if ctx.document_type != "lease":
            return []
        recommendations = []
        if not ctx.mentions(r"force\s+majeure"):
            recommendations.append("Add force majeure clause for operational flexibility")
        if not ctx.mentions(r"audit\s+rights?"):
            recommendations.append("Include audit rights for royalty verification")
        return recommendations


class EnergyDomainAgent(DomainAgent):
    """Analyzes oil & gas leases, permits and related agreements."""

    id = "energy-domain-agent"
    name = "Energy Domain Agent"
    description = "Specialized agent for oil & gas document analysis and validation"
    capabilities = (
        "lease-analysis",
        "contract-validation",
        "regulatory-compliance",
        "financial-terms-extraction",
        "environmental-assessment",
    )
    document_types = ("lease", "contract", "permit", "environmental", "regulatory", "technical")

    field_patterns = FIELD_PATTERNS
    compliance_levels = ("federal", "state", "local")
    compliance_rules = COMPLIANCE_RULES
    risk_rules = RISK_RULES
    recommendation_generator = EnergyRecommendations

    def build_details(self, document: DomainInput, fields: dict[str, Any]) -> dict[str, Any]:
        return {
            "financial_terms": self._financial_terms(fields),
            "operational_terms": self._operational_terms(fields),
            "environmental_considerations": self._environmental_considerations(document),
        }

    def _financial_terms(self, fields: dict[str, Any]) -> dict[str, Any]:
        terms = {}
        for name in ("royalty_rate", "bonus_payment", "delay_rentals", "shut_in_payments"):
            value = to_number(fields.get(name))
            if value is not None:
                terms[name] = value
        return terms

    def _operational_terms(self, fields: dict[str, Any]) -> dict[str, Any]:
        terms: dict[str, Any] = {}
        primary_term = to_number(fields.get("primary_term"))
        if primary_term is not None:
            terms["primary_term"] = int(primary_term)
        for source, target in (
            ("depth", "depth_rights"),
            ("surface_rights", "surface_rights"),
            ("pooling_provisions", "pooling_provisions"),
        ):
            if fields.get(source):
                terms[target] = fields[source]
        return terms

    def _environmental_considerations(self, document: DomainInput) -> list[str]:
        content = document.content.lower()
        considerations = [
            f"Document addresses {keyword}"
            for keyword in ENVIRONMENTAL_KEYWORDS
            if keyword in content
        ]
        if "environmental" not in content:
            considerations.append("Limited environmental protection provisions")
        if "restoration" not in content and "remediation" not in content:
            considerations.append("No site restoration requirements specified")
        return considerations

    def benchmarks(
        self, document: DomainInput, fields: dict[str, Any], details: dict[str, Any]
    ) -> Optional[dict[str, Any]]:
        state = str(document.context.get("state") or "").strip().lower()
        return dict(BENCHMARKS.get(state, DEFAULT_BENCHMARK))

    def validate_document(self, document: DomainInput, fields: dict[str, Any]) -> bool:
        has_required_terms = all(fields.get(term) for term in REQUIRED_TERMS)
        content = document.content.lower()
        has_structure = (
            len(document.content) > 500 and "whereas" in content and "agreement" in content
        )
        return has_required_terms and has_structure
