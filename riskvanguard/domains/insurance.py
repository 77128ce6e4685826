"""
Insurance domain agent: policies, claims, endorsements and underwriting files.
"""

import re
from typing import Any, Optional

from ..extraction import FieldPattern, find_all, to_number
from ..models import DomainInput, Severity
from .base import (
    ComplianceRule,
    DomainAgent,
    RecommendationGenerator,
    RiskRule,
    RuleContext,
)

FIELD_PATTERNS = (
    FieldPattern("policy_number", r"policy\s+(?:number|no\.?|#)[:\s]+([a-z0-9][a-z0-9\-]*)"),
    FieldPattern("claim_number", r"claim\s+(?:number|no\.?|#)[:\s]+([a-z0-9][a-z0-9\-]*)"),
    FieldPattern("insured_name", r"(?:named\s+insured|policyholder)[:\s]+([^\n,]+)"),
    FieldPattern("policy_type", r"policy\s+type[:\s]+([^\n,]+)"),
    FieldPattern("effective_date", r"effective\s+date[:\s]+([^\n,]+)"),
    FieldPattern("expiration_date", r"expiration\s+date[:\s]+([^\n,]+)"),
    FieldPattern("premium", r"premium[:\s]+\$?(\d+[,\d]*\.?\d*)"),
    FieldPattern("deductible", r"deductible[:\s]+\$?(\d+[,\d]*\.?\d*)"),
    FieldPattern("coverage_limit", r"coverage\s+limit[:\s]+\$?(\d+[,\d]*\.?\d*)"),
    FieldPattern("claim_amount", r"claim[\s-]amount[:\s]+\$?(\d+[,\d]*\.?\d*)"),
)

LINE_COVERAGES = {
    "property": (
        "building coverage",
        "personal property",
        "business income",
        "extra expense",
        "ordinance or law",
    ),
    "cyber": (
        "data breach response",
        "network security liability",
        "privacy liability",
        "business interruption",
        "cyber extortion",
    ),
}

COMMON_EXCLUSIONS = (
    "flood",
    "earthquake",
    "war",
    "nuclear",
    "pollution",
    "wear and tear",
    "intentional acts",
)

EXCLUSION_CLAUSE = r"exclusions?[:\s]+([^\.]+)"
EXCLUSION_SEPARATOR = re.compile(r"\s*[,;]\s*(?:(?:and|or)\s+)?|\s+(?:and|or)\s+")
SUBLIMIT_PATTERN = re.compile(
    r"(\w+(?:[ \t]+\w+){0,3})\s+sublimit[:\s]+\$?([\d,]+)", re.IGNORECASE
)
DEDUCTIBLE_PATTERN = re.compile(
    r"(\w+(?:[ \t]+\w+){0,3})\s+deductible[:\s]+\$?([\d,]+)", re.IGNORECASE
)

STATE_NOTICES = {
    "california": "california proposition 65",
    "new york": "new york regulation 64",
    "texas": "texas department of insurance",
    "florida": "florida hurricane deductible",
}

REQUIRED_DISCLOSURES = (
    "cancellation provisions",
    "notice requirements",
    "premium calculation",
)

HIGH_RISK_INDUSTRIES = ("construction", "manufacturing", "transportation")

AVERAGE_RATES = {
    "property": 0.8,
    "casualty": 1.2,
    "professional": 1.5,
    "cyber": 2.0,
    "auto": 3.0,
}

STANDARD_COVERAGES = {
    "property": ("building", "contents", "business income", "extra expense"),
    "cyber": ("data breach", "network security", "privacy liability", "business interruption"),
    "professional": ("professional liability", "defense costs", "disciplinary proceedings"),
}

FILING_PREMIUM_THRESHOLD = 100000


def _state(ctx: RuleContext) -> str:
    return str(ctx.context.get("state") or "").strip()


def _required_notice(ctx: RuleContext) -> Optional[str]:
    return STATE_NOTICES.get(_state(ctx).lower())


def _disclosure_rule(disclosure: str) -> ComplianceRule:
    return ComplianceRule(
        level="state",
        message=f"Missing required disclosure: {disclosure}",
        passes=lambda ctx: disclosure in ctx.content.lower(),
    )


COMPLIANCE_RULES = (
    ComplianceRule(
        level="state",
        message=lambda ctx: f"Missing {_state(ctx)} amendatory endorsement",
        passes=lambda ctx: f"{_state(ctx).lower()} amendatory" in ctx.content.lower(),
        applies=lambda ctx: bool(_state(ctx)),
    ),
    ComplianceRule(
        level="state",
        message=lambda ctx: f"Missing required {_state(ctx)} notice: {_required_notice(ctx)}",
        passes=lambda ctx: _required_notice(ctx) in ctx.content.lower(),
        applies=lambda ctx: _required_notice(ctx) is not None,
    ),
    ComplianceRule(
        level="form",
        message="No approved form number found",
        passes=lambda ctx: ctx.mentions(r"form\s+[a-z0-9\-]+\s+\(\d{2}/\d{2}\)"),
    ),
) + tuple(_disclosure_rule(d) for d in REQUIRED_DISCLOSURES)


def _filing_required(ctx: RuleContext) -> bool:
    premium = ctx.number("premium")
    return (
        ctx.document_type == "policy"
        and premium is not None
        and premium > FILING_PREMIUM_THRESHOLD
    )


def _line(ctx: RuleContext) -> str:
    return ctx.context_value("line_of_business")


RISK_RULES = (
    RiskRule(
        type="coverage",
        severity=Severity.HIGH,
        description="Extensive exclusions may leave significant coverage gaps",
        mitigation="Review exclusions and consider additional coverage endorsements",
        triggered=lambda ctx: len(ctx.details["coverage_analysis"]["exclusions"]) > 10,
    ),
    RiskRule(
        type="financial",
        severity=Severity.HIGH,
        description="Premium appears inadequate for risk exposure",
        mitigation="Re-evaluate pricing model and consider rate adjustment",
        triggered=lambda ctx: (
            ctx.details["risk_assessment"]["pricing_adequacy"] == "underpriced"
        ),
    ),
    RiskRule(
        type="regulatory",
        severity=Severity.MEDIUM,
        description="Professional liability may require surplus lines filing",
        mitigation="Verify admitted vs. non-admitted requirements",
        triggered=lambda ctx: (
            _line(ctx) == "professional" and not ctx.mentions(r"surplus\s+lines")
        ),
    ),
    RiskRule(
        type="catastrophe",
        severity=Severity.HIGH,
        description="No catastrophe modeling mentioned for property coverage",
        mitigation="Implement catastrophe modeling for accumulation control",
        triggered=lambda ctx: (
            _line(ctx) == "property" and not ctx.mentions(r"catastrophe|cat\s+modeling")
        ),
    ),
    RiskRule(
        type="claims",
        severity=Severity.MEDIUM,
        description="High risk score indicates potential for claims disputes",
        mitigation="Ensure thorough documentation and investigation",
        triggered=lambda ctx: (
            ctx.document_type == "claim"
            and ctx.details["risk_assessment"]["risk_score"] > 70
        ),
    ),
    RiskRule(
        type="service",
        severity=Severity.MEDIUM,
        description="No incident response services mentioned",
        mitigation="Add breach coach and incident response coverage",
        triggered=lambda ctx: (
            _line(ctx) == "cyber" and not ctx.mentions(r"incident\s+response|breach\s+coach")
        ),
    ),
)


class InsuranceRecommendations(RecommendationGenerator):
    closing_recommendations = (
        "Review policy annually and update for business changes",
        "Maintain detailed records of all insurance-related documents",
    )

    def financial_recommendations(self, ctx: RuleContext) -> list[str]:
        recommendations = []
        if len(ctx.details["coverage_analysis"]["exclusions"]) > 5:
            recommendations.append("Review exclusions list and identify critical coverage gaps")
            recommendations.append("Consider purchasing endorsements to broaden coverage")
        if ctx.details["risk_assessment"]["risk_score"] > 70:
            recommendations.append("Implement additional risk control measures to reduce exposure")
            recommendations.append("Consider higher deductibles to manage premium costs")
        return recommendations

    def document_recommendations(self, ctx: RuleContext) -> list[str]:
        recommendations = []
        line = _line(ctx)
        if line == "cyber":
            recommendations.extend([
                "Ensure policy includes both first-party and third-party coverage",
                "Verify coverage for regulatory fines and penalties",
                "Implement cybersecurity best practices to qualify for better rates",
            ])
        elif line == "property":
            recommendations.extend([
                "Conduct regular property valuations to avoid underinsurance",
                "Review business interruption limits and waiting periods",
            ])

        if ctx.document_type == "claim":
            recommendations.append("Document all claim-related expenses and communications")
            recommendations.append("Engage coverage counsel if coverage disputes arise")
            claims = ctx.details.get("claims_analysis") or {}
            if claims.get("subrogation_potential"):
                recommendations.append("Preserve evidence for potential subrogation recovery")
        return recommendations


class InsuranceDomainAgent(DomainAgent):
    """Analyzes insurance policies and claims for coverage, compliance and pricing."""

    id = "insurance-domain-agent"
    name = "Insurance Domain Agent"
    description = "Specialized agent for insurance document analysis and risk assessment"
    capabilities = (
        "policy-analysis",
        "claims-evaluation",
        "coverage-mapping",
        "risk-assessment",
        "regulatory-compliance",
        "pricing-analysis",
    )
    document_types = ("policy", "claim", "underwriting", "endorsement", "certificate", "application")

    field_patterns = FIELD_PATTERNS
    compliance_levels = ("state", "form")
    compliance_rules = COMPLIANCE_RULES
    compliance_flags = {"filing_required": _filing_required}
    risk_rules = RISK_RULES
    recommendation_generator = InsuranceRecommendations

    def build_details(self, document: DomainInput, fields: dict[str, Any]) -> dict[str, Any]:
        coverage = self._coverage_analysis(document, fields)
        details = {
            "coverage_analysis": coverage,
            "risk_assessment": self._risk_assessment(document, fields, coverage),
        }
        if document.document_type == "claim":
            details["claims_analysis"] = self._claims_analysis(document, fields, coverage)
        return details

    def _coverage_analysis(self, document: DomainInput, fields: dict[str, Any]) -> dict[str, Any]:
        content = document.content.lower()
        line = str(document.context.get("line_of_business") or "").lower()

        primary = [c for c in LINE_COVERAGES.get(line, ()) if c in content]

        exclusions = []
        for clause in find_all(EXCLUSION_CLAUSE, content):
            for exclusion in _split_exclusions(clause):
                if exclusion not in exclusions:
                    exclusions.append(exclusion)
        for exclusion in document.metadata.get("exclusions") or []:
            exclusion = str(exclusion).strip().lower()
            if exclusion and exclusion not in exclusions:
                exclusions.append(exclusion)
        for exclusion in COMMON_EXCLUSIONS:
            if f"exclude {exclusion}" in content or f"{exclusion} excluded" in content:
                if exclusion not in exclusions:
                    exclusions.append(exclusion)

        sublimits = [
            {"coverage": m.group(1).strip(), "limit": int(m.group(2).replace(",", ""))}
            for m in SUBLIMIT_PATTERN.finditer(document.content)
            if m.group(2).replace(",", "")
        ]
        deductibles = [
            {"type": m.group(1).strip(), "amount": int(m.group(2).replace(",", ""))}
            for m in DEDUCTIBLE_PATTERN.finditer(document.content)
            if m.group(2).replace(",", "")
        ]
        standard = to_number(fields.get("deductible"))
        if not deductibles and standard is not None:
            deductibles.append({"type": "standard", "amount": standard})

        return {
            "primary_coverages": primary,
            "exclusions": exclusions,
            "endorsements": find_all(r"endorsement[:\s]+([^\.\n]+)", document.content),
            "sublimits": sublimits,
            "deductibles": deductibles,
        }

    def _risk_assessment(
        self, document: DomainInput, fields: dict[str, Any], coverage: dict[str, Any]
    ) -> dict[str, Any]:
        context = document.context
        line = str(context.get("line_of_business") or "").lower()
        factors: list[str] = []
        mitigations: list[str] = []
        score = 50

        if line == "cyber":
            score += 20
            factors.append("Cyber liability - emerging risk category")

        prior_claims = int(to_number(context.get("prior_claims")) or 0)
        if prior_claims > 0:
            score += prior_claims * 10
            factors.append(f"{prior_claims} prior claims reported")

        if len(coverage["exclusions"]) > 5:
            score += 10
            factors.append("Numerous exclusions may leave coverage gaps")
            mitigations.append("Consider additional endorsements to fill coverage gaps")

        deductibles = coverage["deductibles"]
        if deductibles:
            average = sum(d["amount"] for d in deductibles) / len(deductibles)
            if average > 10000:
                score -= 10
                mitigations.append("High deductibles help control premium costs")

        industry = str(context.get("industry_code") or "").lower()
        if any(name in industry for name in HIGH_RISK_INDUSTRIES):
            score += 15
            factors.append("High-risk industry classification")

        pricing = "adequate"
        rate = _rate_on_line(fields)
        if rate is not None:
            if rate < 0.5:
                pricing = "underpriced"
                factors.append("Premium may be inadequate for coverage provided")
            elif rate > 2:
                pricing = "overpriced"

        return {
            "risk_score": min(100, max(0, score)),
            "risk_factors": factors,
            "mitigation_measures": mitigations,
            "pricing_adequacy": pricing,
        }

    def _claims_analysis(
        self, document: DomainInput, fields: dict[str, Any], coverage: dict[str, Any]
    ) -> dict[str, Any]:
        narrative = _loss_narrative(document.content.lower())
        applicable = [e for e in coverage["exclusions"] if e.lower() in narrative]

        payout = None
        amount = to_number(fields.get("claim_amount"))
        if amount is not None:
            payout = amount
            if coverage["deductibles"]:
                payout -= coverage["deductibles"][0]["amount"]
            limit = to_number(fields.get("coverage_limit"))
            if limit is not None and payout > limit:
                payout = limit
            payout = max(0.0, payout)

        return {
            "covered": not applicable,
            "exclusions_applicable": applicable,
            "estimated_payout": payout,
            "subrogation_potential": bool(
                re.search(
                    r"third[\s-]party|negligence|fault|liable|responsible[\s-]party",
                    document.content,
                    re.IGNORECASE,
                )
            ),
        }

    def benchmarks(
        self, document: DomainInput, fields: dict[str, Any], details: dict[str, Any]
    ) -> Optional[dict[str, Any]]:
        line = str(document.context.get("line_of_business") or "").lower()
        benchmark: dict[str, Any] = {}

        rate = _rate_on_line(fields)
        if rate is not None:
            average = AVERAGE_RATES.get(line or "casualty", 1.0)
            benchmark["premium_benchmark"] = to_number(fields["coverage_limit"]) * average / 100
            if rate < average * 0.8:
                benchmark["market_position"] = "Below market - competitive advantage"
            elif rate > average * 1.2:
                benchmark["market_position"] = "Above market - may impact retention"
            else:
                benchmark["market_position"] = "Market aligned"

        primary = details["coverage_analysis"]["primary_coverages"]
        missing = [
            coverage
            for coverage in STANDARD_COVERAGES.get(line, ())
            if not any(coverage in p.lower() for p in primary)
        ]
        if missing:
            benchmark["coverage_benchmark"] = missing

        return benchmark

    def validate_document(self, document: DomainInput, fields: dict[str, Any]) -> bool:
        content = document.content
        has_required = (
            len(content) > 500
            and bool(fields.get("policy_number") or fields.get("claim_number"))
            and bool(
                re.search(r"insured|policyholder", content, re.IGNORECASE)
                or fields.get("insured_name")
            )
        )
        if not has_required:
            return False
        if document.document_type == "policy":
            return bool(
                re.search(r"coverage|insuring\s+agreement", content, re.IGNORECASE)
                and re.search(r"premium|consideration", content, re.IGNORECASE)
            )
        if document.document_type == "claim":
            return bool(re.search(r"loss|damage|claim", content, re.IGNORECASE))
        return True


def _rate_on_line(fields: dict[str, Any]) -> Optional[float]:
    """Premium as a percentage of the coverage limit."""
    premium = to_number(fields.get("premium"))
    limit = to_number(fields.get("coverage_limit"))
    if not premium or not limit:
        return None
    return premium / limit * 100


def _loss_narrative(content: str) -> str:
    """The claim text with the exclusion wording itself removed."""
    narrative = re.sub(r"exclusions?[:\s]+[^\.]+", " ", content, flags=re.IGNORECASE)
    for exclusion in COMMON_EXCLUSIONS:
        narrative = narrative.replace(f"exclude {exclusion}", " ")
        narrative = narrative.replace(f"{exclusion} excluded", " ")
    return narrative


def _split_exclusions(clause: str) -> list[str]:
    """Break an exclusion clause such as "flood, earthquake or war" into items."""
    # Multi-word perils like "wear and tear" must survive the and/or split.
    for peril in COMMON_EXCLUSIONS:
        clause = clause.replace(peril, peril.replace(" ", "\0"))
    items = []
    for item in EXCLUSION_SEPARATOR.split(clause):
        item = item.replace("\0", " ").strip()
        if item and item not in items:
            items.append(item)
    return items
