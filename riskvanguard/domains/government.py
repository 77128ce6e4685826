"""
Government domain agent: federal contracts, RFPs, grants and compliance documents.
"""

import re
from datetime import date, datetime
from typing import Any, Optional

from ..extraction import FieldPattern, find_all
from ..models import DomainInput, Severity
from .base import (
    ComplianceRule,
    DomainAgent,
    RecommendationGenerator,
    RiskRule,
    RuleContext,
)

FIELD_PATTERNS = (
    FieldPattern("agency", r"agency[:\s]+([^\n,]+)"),
    FieldPattern("contract_number", r"contract\s+(?:number|no\.?|#)[:\s]+([a-z0-9][a-z0-9\-]*)"),
    FieldPattern("solicitation", r"solicitation\s+(?:number|no\.?|#)[:\s]+([a-z0-9][a-z0-9\-]*)"),
    FieldPattern("naics_code", r"naics(?:\s+code)?[:\s]+(\d{2,6})"),
    FieldPattern("contract_value", r"(?:contract|total)\s+value[:\s]+\$?(\d+[,\d]*\.?\d*)"),
    FieldPattern("payment_terms", r"payment\s+terms?[:\s]+([^\.]+)"),
    FieldPattern("period_of_performance", r"period\s+of\s+performance[:\s]+([^\n\.]+)"),
)

FAR_REQUIREMENTS = (
    (r"termination\s+for\s+convenience", "Missing Termination for Convenience clause (FAR 52.249)"),
    (r"changes\s+clause", "Missing Changes clause (FAR 52.243)"),
    (r"disputes", "Missing Disputes clause (FAR 52.233)"),
    (r"payment", "Missing Payment provisions (FAR 52.232)"),
)

DFARS_REQUIREMENTS = (
    (r"cybersecurity", "Missing Cybersecurity requirements (DFARS 252.204-7012)"),
    (r"controlled\s+unclassified", "Missing CUI handling requirements (DFARS 252.204-7012)"),
)

CERTIFICATION_PATTERNS = (
    ("ISO 9001", r"iso\s*9001"),
    ("CMMI Level 3+", r"cmmi\s*(?:level\s*)?[345]"),
    ("Top Secret Clearance", r"top\s*secret"),
    ("Secret Clearance", r"secret\s*clearance"),
    ("DCAA Compliant Accounting", r"dcaa"),
    ("SAM Registration", r"sam\s*(?:registration|registered)"),
    ("Small Business Certification", r"small\s*business"),
    ("8(a) Certification", r"8\s*\(\s*a\s*\)"),
    ("HUBZone Certification", r"hubzone"),
    ("SDVOSB Certification", r"sdvosb|service.?disabled"),
    ("WOSB Certification", r"wosb|women.?owned"),
)

SET_ASIDE_PATTERNS = (
    ("Small Business", r"small\s*business\s*set.?aside"),
    ("8(a)", r"8\s*\(\s*a\s*\)\s*set.?aside"),
    ("HUBZone", r"hubzone\s*set.?aside"),
    ("SDVOSB", r"sdvosb\s*set.?aside"),
    ("WOSB", r"(?<!ed)wosb\s*set.?aside"),
    ("EDWOSB", r"edwosb\s*set.?aside"),
)

EVALUATION_CRITERIA = (
    {"factor": "Technical Approach", "weight": 40},
    {"factor": "Past Performance", "weight": 30},
    {"factor": "Price", "weight": 30},
)

SHORT_PERFORMANCE_DAYS = 90


def _is_defense_agency(ctx: RuleContext) -> bool:
    agency = str(ctx.fields.get("agency") or "").lower()
    return "defense" in agency or "dod" in agency


def _requirement_rules(level, requirements, applies=lambda ctx: True):
    return tuple(
        ComplianceRule(
            level=level,
            message=message,
            passes=lambda ctx, pattern=pattern: ctx.mentions(pattern),
            applies=applies,
        )
        for pattern, message in requirements
    )


COMPLIANCE_RULES = (
    _requirement_rules("far", FAR_REQUIREMENTS)
    + _requirement_rules("dfars", DFARS_REQUIREMENTS, applies=_is_defense_agency)
    + (
        ComplianceRule(
            level="state_local",
            message="Missing prevailing wage requirements (state/local)",
            passes=lambda ctx: ctx.mentions(r"prevailing\s+wage"),
            applies=lambda ctx: ctx.document_type == "contract",
        ),
    )
)


def _as_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value).date()
        except ValueError:
            return None
    return None


def performance_days(ctx: RuleContext) -> Optional[int]:
    """Length of ``metadata.performance_period`` in days, if both ends parse."""
    period = ctx.metadata.get("performance_period")
    if not isinstance(period, dict):
        return None
    start, end = _as_date(period.get("start")), _as_date(period.get("end"))
    if start is None or end is None:
        return None
    return (end - start).days


def _short_performance_period(ctx: RuleContext) -> bool:
    days = performance_days(ctx)
    return days is not None and days < SHORT_PERFORMANCE_DAYS


def _needs_cleared_staff(ctx: RuleContext) -> bool:
    return ctx.context_value("security_clearance") not in ("", "none", "public-trust")


RISK_RULES = (
    RiskRule(
        type="compliance",
        severity=Severity.HIGH,
        description=lambda ctx: (
            f"Non-compliance with regulations: {len(ctx.compliance.issues)} issues found"
        ),
        mitigation="Address all compliance issues before contract execution",
        triggered=lambda ctx: bool(ctx.compliance.issues),
    ),
    RiskRule(
        type="financial",
        severity=Severity.MEDIUM,
        description="Cost-reimbursement contracts carry higher financial risk",
        mitigation="Ensure robust cost tracking and DCAA-compliant accounting systems",
        triggered=lambda ctx: ctx.context_value("contract_type") == "cost-reimbursement",
    ),
    RiskRule(
        type="schedule",
        severity=Severity.HIGH,
        description="Short performance period may impact delivery quality",
        mitigation="Develop accelerated delivery plan with clear milestones",
        triggered=_short_performance_period,
    ),
    RiskRule(
        type="personnel",
        severity=Severity.MEDIUM,
        description=lambda ctx: f"Requires {ctx.context.get('security_clearance')} cleared personnel",
        mitigation="Ensure adequate cleared staff or budget for clearance processing",
        triggered=_needs_cleared_staff,
    ),
    RiskRule(
        type="competitive",
        severity=Severity.HIGH,
        description="Lack of past performance may impact evaluation scores",
        mitigation="Highlight relevant commercial experience and team qualifications",
        triggered=lambda ctx: ctx.context.get("past_performance") is False,
    ),
)


class GovernmentRecommendations(RecommendationGenerator):
    closing_recommendations = (
        "Maintain detailed documentation for all contract activities",
        "Establish clear communication protocols with the contracting officer",
    )

    def compliance_recommendations(self, ctx: RuleContext) -> list[str]:
        if not ctx.compliance.issues:
            return []
        return [
            "Review and address all compliance issues before proceeding",
            "Consult with legal counsel specializing in government contracts",
        ]

    def financial_recommendations(self, ctx: RuleContext) -> list[str]:
        set_aside = ctx.details.get("set_aside_eligibility", {})
        if set_aside.get("eligible"):
            return [f"Ensure all {', '.join(set_aside['types'])} certifications are current"]
        if ctx.document_type == "rfp":
            return ["Consider teaming with certified small businesses if eligible for set-aside"]
        return []

    def risk_recommendations(self, ctx: RuleContext) -> list[str]:
        recommendations = super().risk_recommendations(ctx)
        if any(r.severity in (Severity.HIGH, Severity.CRITICAL) for r in ctx.risks):
            recommendations.append("Develop risk mitigation plan for identified high-severity risks")
        return recommendations

    def document_recommendations(self, ctx: RuleContext) -> list[str]:
        if ctx.document_type == "rfp":
            return [
                "Submit questions during the Q&A period for any ambiguities",
                "Attend any scheduled pre-bid conferences",
                "Review all amendments and modifications",
            ]
        if ctx.document_type == "contract":
            return [
                "Ensure all referenced clauses and provisions are included",
                "Verify insurance and bonding requirements are met",
            ]
        return []


def _split_items(value: str) -> list[str]:
    return [item.strip() for item in re.split(r"[,;]", value) if item.strip()]


class GovernmentDomainAgent(DomainAgent):
    """Analyzes government contracts and solicitations for FAR/DFARS compliance."""

    id = "government-domain-agent"
    name = "Government Domain Agent"
    description = "Specialized agent for government contract and compliance analysis"
    capabilities = (
        "contract-analysis",
        "rfp-evaluation",
        "compliance-checking",
        "far-dfars-validation",
        "set-aside-eligibility",
        "risk-assessment",
    )
    document_types = ("contract", "rfp", "grant", "compliance", "policy", "report")

    field_patterns = FIELD_PATTERNS
    compliance_levels = ("far", "dfars", "state_local")
    compliance_rules = COMPLIANCE_RULES
    risk_rules = RISK_RULES
    recommendation_generator = GovernmentRecommendations

    def build_details(self, document: DomainInput, fields: dict[str, Any]) -> dict[str, Any]:
        details = {
            "contract_terms": self._contract_terms(document, fields),
            "required_certifications": self._required_certifications(document),
            "set_aside_eligibility": self._set_aside_eligibility(document),
        }
        if document.document_type == "rfp":
            details["competitive_analysis"] = self._competitive_analysis(document)
        return details

    def financial_terms(self, details: dict[str, Any]) -> dict[str, Any]:
        return details.get("contract_terms", {})

    def _contract_terms(self, document: DomainInput, fields: dict[str, Any]) -> dict[str, Any]:
        content = document.content
        terms: dict[str, Any] = {}

        deliverables = find_all(r"deliverables?[:\s]+([^\.]+)", content)
        if deliverables:
            terms["deliverables"] = [{"description": d} for d in deliverables]

        if fields.get("payment_terms"):
            terms["payment_terms"] = fields["payment_terms"]

        personnel = find_all(r"key\s+personnel[:\s]+([^\.]+)", content)
        if personnel:
            terms["key_personnel"] = _split_items(personnel[0])

        metrics = find_all(r"performance\s+metrics?[:\s]+([^\.]+)", content)
        if metrics:
            terms["performance_metrics"] = _split_items(metrics[0])

        return terms

    def _required_certifications(self, document: DomainInput) -> list[str]:
        certifications = [
            name
            for name, pattern in CERTIFICATION_PATTERNS
            if re.search(pattern, document.content, re.IGNORECASE)
        ]
        clearance = document.context.get("security_clearance")
        if clearance and clearance != "none":
            certifications.append(f"{clearance} clearance required")
        return certifications

    def _set_aside_eligibility(self, document: DomainInput) -> dict[str, Any]:
        types = [
            name
            for name, pattern in SET_ASIDE_PATTERNS
            if re.search(pattern, document.content, re.IGNORECASE)
        ]
        declared = document.metadata.get("set_aside_type")
        if declared and declared not in types:
            types.append(declared)

        requirements = [f"Must be certified as {t}" for t in types]
        naics = document.metadata.get("naics_code")
        if naics:
            requirements.append(f"Must qualify under NAICS code {naics}")

        return {"eligible": bool(types), "types": types, "requirements": requirements}

    def _competitive_analysis(self, document: DomainInput) -> dict[str, Any]:
        content = document.content
        analysis: dict[str, Any] = {}

        if re.search(r"incumbent|current\s+contractor", content, re.IGNORECASE):
            analysis["incumbent_advantage"] = True

        capabilities = find_all(r"capabilities?[:\s]+([^\.]+)", content)
        if capabilities:
            analysis["required_capabilities"] = capabilities

        if re.search(r"evaluation\s+criteria[:\s]+[^\.]+", content, re.IGNORECASE):
            analysis["evaluation_criteria"] = [dict(c) for c in EVALUATION_CRITERIA]

        return analysis

    def validate_document(self, document: DomainInput, fields: dict[str, Any]) -> bool:
        return bool(
            len(document.content) > 1000
            and fields.get("agency")
            and (fields.get("contract_number") or fields.get("solicitation"))
        )
