"""
Shared machinery for domain agents.

A domain agent is mostly data: a field pattern table, a tuple of compliance
rules, a tuple of risk rules and a recommendation generator. The classes in
this module apply that data to a document in a fixed order.
"""

import logging
import time
from abc import ABC
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from ..config import PolicyConfig
from ..extraction import FieldPattern, PatternExtractor, mentions, to_number
from ..models import ComplianceResult, DomainInput, DomainOutput, Risk, Severity
from ..validation import validate_domain_input

logger = logging.getLogger("riskvanguard.domains")


@dataclass
class RuleContext:
    """Everything a compliance, risk or recommendation rule may look at."""

    input: DomainInput
    fields: dict[str, Any]
    policy: PolicyConfig
    details: dict[str, Any] = field(default_factory=dict)
    compliance: Optional[ComplianceResult] = None
    risks: tuple[Risk, ...] = ()
    terms: dict[str, Any] = field(default_factory=dict)

    @property
    def content(self) -> str:
        return self.input.content

    @property
    def document_type(self) -> str:
        return self.input.document_type

    @property
    def metadata(self) -> dict[str, Any]:
        return self.input.metadata or {}

    @property
    def context(self) -> dict[str, Any]:
        return self.input.context or {}

    def mentions(self, pattern: str) -> bool:
        return mentions(self.content, pattern)

    def context_value(self, key: str) -> str:
        """Lower-cased, stripped context value, or '' when absent."""
        value = self.context.get(key)
        return str(value).strip().lower() if value is not None else ""

    def number(self, key: str) -> Optional[float]:
        return to_number(self.fields.get(key))


TextOrFactory = Union[str, Callable[[RuleContext], str]]


def _always(ctx: RuleContext) -> bool:
    return True


def _render(value: Optional[TextOrFactory], ctx: RuleContext) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return value(ctx)


@dataclass(frozen=True)
class ComplianceRule:
    """A jurisdiction-scoped requirement. Failing it fails ``level``."""

    level: str
    message: TextOrFactory
    passes: Callable[[RuleContext], bool]
    applies: Callable[[RuleContext], bool] = _always


@dataclass(frozen=True)
class RiskRule:
    """Emits one risk of a fixed type and severity when ``triggered``."""

    type: str
    severity: Severity
    description: TextOrFactory
    triggered: Callable[[RuleContext], bool]
    mitigation: Optional[TextOrFactory] = None


class ComplianceChecker:
    """
    Evaluates every applicable rule against a document.

    Each level starts passing and is switched off by its first failing rule;
    later rules for the same level still run so every issue is reported.
    """

    def __init__(
        self,
        levels: tuple[str, ...],
        rules: tuple[ComplianceRule, ...],
        policy: Optional[PolicyConfig] = None,
        flags: Optional[dict[str, Callable[[RuleContext], Any]]] = None,
    ):
        unknown = {r.level for r in rules} - set(levels)
        if unknown:
            raise ValueError(f"Compliance rules reference unknown levels: {sorted(unknown)}")
        self.levels = levels
        self.rules = rules
        self.policy = policy or PolicyConfig()
        self.flags = flags or {}

    def check(
        self,
        document: DomainInput,
        fields: dict[str, Any],
        details: Optional[dict[str, Any]] = None,
    ) -> ComplianceResult:
        ctx = RuleContext(document, fields, self.policy, details=details or {})
        result = ComplianceResult.for_levels(self.levels)

        for rule in self.rules:
            if not rule.applies(ctx):
                continue
            if not rule.passes(ctx):
                result.fail(rule.level, _render(rule.message, ctx))

        for name, flag in self.flags.items():
            result.extras[name] = flag(ctx)

        return result


class RiskAssessor:
    """Runs each risk rule independently; a rule yields zero or one risk."""

    def __init__(self, rules: tuple[RiskRule, ...], policy: Optional[PolicyConfig] = None):
        self.rules = rules
        self.policy = policy or PolicyConfig()

    def assess(
        self,
        document: DomainInput,
        fields: dict[str, Any],
        compliance: ComplianceResult,
        details: Optional[dict[str, Any]] = None,
    ) -> list[Risk]:
        ctx = RuleContext(
            document, fields, self.policy, details=details or {}, compliance=compliance
        )
        risks = []
        for rule in self.rules:
            if rule.triggered(ctx):
                risks.append(
                    Risk(
                        type=rule.type,
                        severity=rule.severity,
                        description=_render(rule.description, ctx),
                        mitigation=_render(rule.mitigation, ctx),
                    )
                )
        return risks


class RecommendationGenerator:
    """
    Builds the ordered recommendation list.

    Output is the concatenation of five hooks: compliance, financial,
    critical risk, document type, closing. Domains override the hooks they
    need; the defaults cover the compliance and critical-risk summaries.
    """

    closing_recommendations: tuple[str, ...] = ()

    def __init__(self, policy: Optional[PolicyConfig] = None):
        self.policy = policy or PolicyConfig()

    def recommend(
        self,
        document: DomainInput,
        compliance: ComplianceResult,
        risks: list[Risk],
        terms: dict[str, Any],
        details: Optional[dict[str, Any]] = None,
        fields: Optional[dict[str, Any]] = None,
    ) -> list[str]:
        ctx = RuleContext(
            document,
            fields or {},
            self.policy,
            details=details or {},
            compliance=compliance,
            risks=tuple(risks),
            terms=terms,
        )
        recommendations: list[str] = []
        for hook in (
            self.compliance_recommendations,
            self.financial_recommendations,
            self.risk_recommendations,
            self.document_recommendations,
            self.closing,
        ):
            recommendations.extend(hook(ctx))
        return recommendations

    def compliance_recommendations(self, ctx: RuleContext) -> list[str]:
        if ctx.compliance and ctx.compliance.issues:
            return [
                "Address regulatory compliance issues: "
                + ", ".join(ctx.compliance.issues)
            ]
        return []

    def financial_recommendations(self, ctx: RuleContext) -> list[str]:
        return []

    def risk_recommendations(self, ctx: RuleContext) -> list[str]:
        critical = [r for r in ctx.risks if r.severity == Severity.CRITICAL]
        if critical:
            return [
                "Address critical risks before executing agreement: "
                + ", ".join(r.description for r in critical)
            ]
        return []

    def document_recommendations(self, ctx: RuleContext) -> list[str]:
        return []

    def closing(self, ctx: RuleContext) -> list[str]:
        return list(self.closing_recommendations)


class DomainAgent(ABC):
    """
    Base class for the per-vertical document agents.

    Subclasses fill in the class-level tables and override the section,
    benchmark and validity hooks. ``process`` runs the stages strictly in
    order: extraction, domain sections, compliance, risks, recommendations,
    benchmarks, validity.
    """

    id: str = ""
    name: str = ""
    description: str = ""
    version: str = "1.0.0"
    capabilities: tuple[str, ...] = ()
    document_types: tuple[str, ...] = ()

    field_patterns: tuple[FieldPattern, ...] = ()
    compliance_levels: tuple[str, ...] = ()
    compliance_rules: tuple[ComplianceRule, ...] = ()
    compliance_flags: dict[str, Callable[[RuleContext], Any]] = {}
    risk_rules: tuple[RiskRule, ...] = ()
    recommendation_generator: type[RecommendationGenerator] = RecommendationGenerator

    def __init__(self, policy: Optional[PolicyConfig] = None):
        self.policy = policy or PolicyConfig()
        self.extractor = PatternExtractor(self.field_patterns)
        self.compliance_checker = ComplianceChecker(
            self.compliance_levels,
            self.compliance_rules,
            self.policy,
            flags=self.compliance_flags,
        )
        self.risk_assessor = RiskAssessor(self.risk_rules, self.policy)
        self.recommender = self.recommendation_generator(self.policy)

    def extract_key_terms(self, document: DomainInput) -> dict[str, Any]:
        return self.extractor.extract(document.content, document.metadata)

    def build_details(self, document: DomainInput, fields: dict[str, Any]) -> dict[str, Any]:
        """Domain-specific output sections, computed before compliance."""
        return {}

    def financial_terms(self, details: dict[str, Any]) -> dict[str, Any]:
        return details.get("financial_terms", {})

    def benchmarks(
        self, document: DomainInput, fields: dict[str, Any], details: dict[str, Any]
    ) -> Optional[dict[str, Any]]:
        return None

    def validate_document(self, document: DomainInput, fields: dict[str, Any]) -> bool:
        return bool(document.content)

    def describe(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "capabilities": list(self.capabilities),
            "document_types": list(self.document_types),
        }

    async def process(self, document: DomainInput) -> DomainOutput:
        """
        Analyze one document.

        Raises:
            InputValidationError: input is missing or its content is blank
        """
        validate_domain_input(document)

        if document.document_type not in self.document_types:
            logger.warning(
                "%s received unrecognised document type '%s' (expected one of %s)",
                self.id,
                document.document_type,
                ", ".join(self.document_types),
            )

        started = time.perf_counter()
        logger.info(
            "%s analysis started: document_type=%s metadata=%s context=%s",
            self.id,
            document.document_type,
            bool(document.metadata),
            bool(document.context),
        )

        try:
            key_terms = self.extract_key_terms(document)
            details = self.build_details(document, key_terms)
            compliance = self.compliance_checker.check(document, key_terms, details)
            risks = self.risk_assessor.assess(document, key_terms, compliance, details)
            recommendations = self.recommender.recommend(
                document,
                compliance,
                risks,
                self.financial_terms(details),
                details,
                fields=key_terms,
            )
            benchmarks = self.benchmarks(document, key_terms, details)
            validity = self.validate_document(document, key_terms)
        except Exception:
            logger.exception("%s analysis failed", self.id)
            raise

        logger.info(
            "%s analysis completed in %.1fms: %d risks, %d recommendations",
            self.id,
            (time.perf_counter() - started) * 1000,
            len(risks),
            len(recommendations),
        )

        return DomainOutput(
            agent_id=self.id,
            document_type=document.document_type,
            document_validity=validity,
            key_terms=key_terms,
            compliance=compliance,
            risks=tuple(risks),
            recommendations=tuple(recommendations),
            details=details,
            benchmarks=benchmarks,
        )
