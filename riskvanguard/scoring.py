"""
Vanguard verification lanes and the score aggregator.

Three independent lanes score the same ``DomainOutput``:

    Security Sentinel   authenticity, tampering and threat indicators
    Integrity Auditor   regulatory consistency of the compliance result
    Accuracy Engine     coverage and plausibility of the extracted terms

``VanguardScorer.evaluate`` runs the lanes concurrently, waits for all
three, then hands them to the ``Aggregator``.
"""

import asyncio
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from .config import PolicyConfig
from .extraction import to_number
from .models import (
    DomainInput,
    DomainOutput,
    LaneStatus,
    RiskLevel,
    Severity,
    VanguardAssessment,
    VanguardResult,
)

logger = logging.getLogger("riskvanguard.scoring")

SEVERITY_PENALTIES = {
    Severity.CRITICAL: 40,
    Severity.HIGH: 25,
    Severity.MEDIUM: 15,
    Severity.LOW: 5,
}

SUSPICIOUS_PATTERNS = (
    r"\b(?:fake|forged|altered|modified)\b",
    r"\b(?:unauthorized|illegal|fraudulent)\b",
)

TAMPER_MARKERS = ("[REDACTED]", "[MODIFIED]", "[DELETED]")

THREAT_PATTERNS = (
    (
        r"\b(?:password|credential|secret)\s*[:=]\s*[\"']?[\w\-]+[\"']?",
        "Exposed Credentials",
        Severity.CRITICAL,
    ),
    (
        r"\b(?:sql\s+injection|xss|cross-site\s+scripting)\b",
        "Security Vulnerability Reference",
        Severity.HIGH,
    ),
    (
        r"\b(?:hack|exploit|vulnerability|breach)\b",
        "Security Threat Indicator",
        Severity.MEDIUM,
    ),
)

VERTICAL_THREATS = {
    "energy-domain-agent": (
        r"\b(?:pipeline\s+sabotage|infrastructure\s+attack)\b",
        "Energy Infrastructure Threat",
        Severity.CRITICAL,
    ),
    "government-domain-agent": (
        r"\b(?:classified|top\s+secret|confidential)\b",
        "Classified Information Exposure",
        Severity.CRITICAL,
    ),
    "insurance-domain-agent": (
        r"\b(?:fraud|false\s+claim|misrepresentation)\b",
        "Insurance Fraud Indicator",
        Severity.HIGH,
    ),
}

REGULATORY_RISK_TYPES = ("regulatory", "compliance")

RATE_HINTS = ("rate", "royalty")
AMOUNT_HINTS = (
    "payment",
    "premium",
    "deductible",
    "limit",
    "amount",
    "value",
    "bonus",
    "rental",
    "acreage",
)
DATE_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%B %d",
    "%b %d",
)


@dataclass
class LaneScore:
    """Intermediate result of a lane before status is assigned."""

    score: float
    findings: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    critical: bool = False


class VanguardLane:
    """Base class for a scoring lane."""

    agent_name = ""

    def __init__(self, policy: Optional[PolicyConfig] = None):
        self.policy = policy or PolicyConfig()

    async def analyze(
        self, output: DomainOutput, document: Optional[DomainInput] = None
    ) -> VanguardResult:
        lane = self.score(output, document)
        score = float(max(0, min(100, round(lane.score))))
        status = self.status_for(score, lane.critical)
        logger.debug("%s scored %s (%s)", self.agent_name, score, status.value)
        return VanguardResult(
            agent_name=self.agent_name,
            status=status,
            score=score,
            findings=lane.findings,
            recommendations=lane.recommendations,
            metadata=lane.metadata,
        )

    def score(self, output: DomainOutput, document: Optional[DomainInput]) -> LaneScore:
        raise NotImplementedError

    def status_for(self, score: float, critical: bool = False) -> LaneStatus:
        if critical:
            return LaneStatus.FAILED
        if score >= self.policy.lane_pass_score:
            return LaneStatus.PASSED
        if score >= self.policy.lane_warning_score:
            return LaneStatus.WARNING
        return LaneStatus.FAILED


def _source_text(output: DomainOutput, document: Optional[DomainInput]) -> str:
    if document is not None:
        return document.content
    return "\n".join(str(v) for v in output.key_terms.values())


class SecuritySentinel(VanguardLane):
    """Checks document authenticity, tamper markers and threat indicators."""

    agent_name = "Security Sentinel"

    weights = {"authenticity": 0.3, "structure": 0.2, "integrity": 0.3, "threats": 0.2}

    def score(self, output: DomainOutput, document: Optional[DomainInput]) -> LaneScore:
        text = _source_text(output, document)
        metadata = document.metadata if document is not None else {}
        findings: list[str] = []
        recommendations: list[str] = []

        authenticity = 100
        for pattern in SUSPICIOUS_PATTERNS:
            if re.search(pattern, text, re.IGNORECASE):
                findings.append(f"Suspicious wording detected: {pattern}")
                authenticity -= 20
        if not metadata:
            findings.append("No document metadata provided")
            authenticity -= 25
        else:
            if not metadata.get("source"):
                findings.append("Missing document source")
                authenticity -= 10
            if not metadata.get("hash"):
                findings.append("Missing document hash for integrity verification")
                authenticity -= 15

        structure = 100
        if not output.document_validity:
            findings.append("Document failed structural validity checks")
            structure = 50

        integrity = 100
        for number, line in enumerate(text.split("\n"), 1):
            for marker in TAMPER_MARKERS:
                if marker in line.upper():
                    findings.append(f"Line {number}: {marker} marker found")
                    integrity -= 10
        document_hash = metadata.get("hash")
        if document_hash and len(str(document_hash)) != 64:
            findings.append("Invalid document hash format")
            integrity -= 30

        threats = self._threats(output, text)
        threat_score = 100
        for threat_type, severity, description in threats:
            findings.append(f"{threat_type} ({severity.value}): {description}")
            threat_score -= SEVERITY_PENALTIES[severity]
        for risk in output.risks:
            if risk.severity == Severity.CRITICAL:
                findings.append(f"Critical domain risk: {risk.description}")
                threat_score -= SEVERITY_PENALTIES[Severity.MEDIUM]

        critical = any(severity == Severity.CRITICAL for _, severity, _ in threats)

        if authenticity < 70:
            recommendations.append("Verify document provenance and obtain a hashed original")
        if integrity < 100:
            recommendations.append("Request an unredacted copy of the document")
        if threats:
            recommendations.append("Escalate threat indicators to the security team before use")

        components = {
            "authenticity": max(0, authenticity),
            "structure": structure,
            "integrity": max(0, integrity),
            "threats": max(0, threat_score),
        }
        total = sum(components[k] * w for k, w in self.weights.items())
        return LaneScore(
            score=total,
            findings=findings,
            recommendations=recommendations,
            metadata={"components": components, "threats_found": len(threats)},
            critical=critical,
        )

    def _threats(self, output: DomainOutput, text: str) -> list[tuple[str, Severity, str]]:
        threats = []
        for pattern, threat_type, severity in THREAT_PATTERNS:
            matches = re.findall(pattern, text, re.IGNORECASE)
            if matches:
                threats.append(
                    (
                        threat_type,
                        severity,
                        f"Found {len(matches)} instance(s) of {threat_type.lower()}",
                    )
                )
        vertical = VERTICAL_THREATS.get(output.agent_id)
        if vertical is not None:
            pattern, threat_type, severity = vertical
            if re.search(pattern, text, re.IGNORECASE):
                threats.append((threat_type, severity, f"Potential {threat_type.lower()} detected"))
        return threats


class IntegrityAuditor(VanguardLane):
    """Scores how consistent the document is with the applicable regulations."""

    agent_name = "Integrity Auditor"

    weights = {"compliance": 0.4, "issues": 0.3, "risks": 0.3}

    def score(self, output: DomainOutput, document: Optional[DomainInput]) -> LaneScore:
        compliance = output.compliance
        findings: list[str] = []
        recommendations: list[str] = []

        failed = compliance.failed_levels
        for level in failed:
            findings.append(f"Compliance level '{level}' failed")
        compliance_score = max(0, 100 - 25 * len(failed))

        issue_score = max(0, 100 - 10 * len(compliance.issues))
        findings.extend(compliance.issues)

        risk_score = 100
        for risk in output.risks:
            if risk.type in REGULATORY_RISK_TYPES:
                findings.append(f"Regulatory risk ({risk.severity.value}): {risk.description}")
                risk_score -= SEVERITY_PENALTIES[risk.severity]
        risk_score = max(0, risk_score)

        if failed:
            recommendations.append(
                "Resolve compliance failures at: " + ", ".join(failed)
            )
        if compliance.issues:
            recommendations.append("Obtain regulatory review of the flagged clauses")

        components = {
            "compliance": compliance_score,
            "issues": issue_score,
            "risks": risk_score,
        }
        total = sum(components[k] * w for k, w in self.weights.items())
        return LaneScore(
            score=total,
            findings=findings,
            recommendations=recommendations,
            metadata={"components": components, "failed_levels": failed},
        )


class AccuracyEngine(VanguardLane):
    """Scores extraction coverage and the plausibility of extracted values."""

    agent_name = "Accuracy Engine"

    weights = {"coverage": 0.4, "numeric": 0.3, "dates": 0.3}

    def __init__(
        self,
        policy: Optional[PolicyConfig] = None,
        expected_terms: Optional[dict[str, int]] = None,
    ):
        super().__init__(policy)
        self.expected_terms = expected_terms or {}

    def score(self, output: DomainOutput, document: Optional[DomainInput]) -> LaneScore:
        terms = output.key_terms
        findings: list[str] = []
        recommendations: list[str] = []

        expected = self.expected_terms.get(output.agent_id, 0)
        # half of a domain's pattern table counts as full coverage
        target = max(1, math.ceil(expected / 2))
        found = len([v for v in terms.values() if v not in (None, "")])
        coverage = 100.0 if expected == 0 else min(100.0, 100.0 * found / target)
        if coverage < 100:
            findings.append(f"Only {found} key terms extracted (expected at least {target})")

        numeric = 100
        for name, value in terms.items():
            lowered = name.lower()
            number = to_number(value)
            if number is None:
                continue
            if any(h in lowered for h in RATE_HINTS) and not 0 <= number <= 100:
                findings.append(f"Implausible rate for {name}: {value}")
                numeric -= 20
            elif any(h in lowered for h in AMOUNT_HINTS) and number < 0:
                findings.append(f"Negative amount for {name}: {value}")
                numeric -= 20

        dates_score = 100
        parsed: dict[str, datetime] = {}
        for name, value in terms.items():
            if "date" not in name.lower() or value in (None, ""):
                continue
            when = parse_date(value)
            if when is None:
                findings.append(f"Unrecognised date format in {name}: {value}")
                dates_score -= 10
            else:
                parsed[name] = when
        start, end = parsed.get("effective_date"), parsed.get("expiration_date")
        if start and end and end <= start:
            findings.append("Expiration date does not follow effective date")
            dates_score -= 30

        if findings:
            recommendations.append("Confirm extracted terms against the source document")

        components = {
            "coverage": round(coverage, 2),
            "numeric": max(0, numeric),
            "dates": max(0, dates_score),
        }
        total = sum(components[k] * w for k, w in self.weights.items())
        return LaneScore(
            score=total,
            findings=findings,
            recommendations=recommendations,
            metadata={"components": components, "terms_found": found},
        )


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse the handful of date layouts that show up in contracts.

    Offset-aware values are converted to naive UTC so any two results compare.
    """
    if isinstance(value, datetime):
        return _naive_utc(value)
    text = str(value).strip().rstrip(".")
    try:
        return _naive_utc(datetime.fromisoformat(text))
    except ValueError:
        pass
    for layout in DATE_FORMATS:
        try:
            return datetime.strptime(text, layout)
        except ValueError:
            continue
    return None


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class Aggregator:
    """
    Combines the three lane results into an overall score and risk level.

    The score is the plain mean of the lane scores. The level follows the
    policy bands, and is raised to at least HIGH when any lane failed.
    """

    def __init__(self, policy: Optional[PolicyConfig] = None):
        self.policy = policy or PolicyConfig()

    def risk_level_for(self, score: float) -> RiskLevel:
        if score < self.policy.critical_below:
            return RiskLevel.CRITICAL
        if score < self.policy.high_below:
            return RiskLevel.HIGH
        if score < self.policy.medium_below:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def aggregate(
        self,
        security: VanguardResult,
        integrity: VanguardResult,
        accuracy: VanguardResult,
    ) -> VanguardAssessment:
        lanes = (security, integrity, accuracy)
        overall = round(sum(lane.score for lane in lanes) / len(lanes), 2)
        level = self.risk_level_for(overall)
        if any(lane.status == LaneStatus.FAILED for lane in lanes):
            level = level.at_least(RiskLevel.HIGH)
        return VanguardAssessment(
            security_sentinel=security,
            integrity_auditor=integrity,
            accuracy_engine=accuracy,
            overall_score=overall,
            risk_level=level,
        )


class VanguardScorer:
    """Runs the three lanes concurrently and aggregates their results."""

    def __init__(
        self,
        policy: Optional[PolicyConfig] = None,
        security: Optional[VanguardLane] = None,
        integrity: Optional[VanguardLane] = None,
        accuracy: Optional[VanguardLane] = None,
        aggregator: Optional[Aggregator] = None,
        expected_terms: Optional[dict[str, int]] = None,
    ):
        self.policy = policy or PolicyConfig()
        self.security = security or SecuritySentinel(self.policy)
        self.integrity = integrity or IntegrityAuditor(self.policy)
        self.accuracy = accuracy or AccuracyEngine(self.policy, expected_terms)
        self.aggregator = aggregator or Aggregator(self.policy)

    async def evaluate(
        self, output: DomainOutput, document: Optional[DomainInput] = None
    ) -> VanguardAssessment:
        security, integrity, accuracy = await asyncio.gather(
            self.security.analyze(output, document),
            self.integrity.analyze(output, document),
            self.accuracy.analyze(output, document),
        )
        assessment = self.aggregator.aggregate(security, integrity, accuracy)
        logger.info(
            "Vanguard assessment for %s: score=%.2f level=%s",
            output.agent_id,
            assessment.overall_score,
            assessment.risk_level.value,
        )
        return assessment
