"""
RiskVanguard - Data models for documents, analyses and workflows.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from .exceptions import ValidationError


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class Severity(str, Enum):
    """Severity of a single risk finding."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self.value]


class RiskLevel(str, Enum):
    """Overall risk label produced by the aggregator."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self.value]

    def at_least(self, other: "RiskLevel") -> "RiskLevel":
        """Return whichever of the two levels is more severe."""
        return self if self.rank >= other.rank else other


_LEVEL_RANK = {"low": 0, "medium": 1, "high": 2, "critical": 3}


class LaneStatus(str, Enum):
    """Outcome of a single vanguard scoring lane."""

    PASSED = "passed"
    WARNING = "warning"
    FAILED = "failed"


class AnalysisStatus(str, Enum):
    """Lifecycle of an analysis record."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class StepStatus(str, Enum):
    """Status of a workflow step."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.COMPLETED, StepStatus.FAILED, StepStatus.SKIPPED)


class StepType(str, Enum):
    """Kind of work a workflow step performs."""

    PROMPT = "prompt"
    ANALYSIS = "analysis"
    REVIEW = "review"
    APPROVAL = "approval"
    REPORT = "report"


class WorkflowType(str, Enum):
    """How the engine orders eligible steps."""

    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    CONDITIONAL = "conditional"


class WorkflowStatus(str, Enum):
    """Status of a workflow as a whole."""

    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            WorkflowStatus.COMPLETED,
            WorkflowStatus.FAILED,
            WorkflowStatus.CANCELLED,
        )


class FailurePolicy(str, Enum):
    """What happens to the rest of a workflow after a step fails."""

    FAIL_FAST = "fail-fast"
    SKIP_ON_FAILURE = "skip-on-failure"


@dataclass
class DomainInput:
    """A document handed to a domain agent."""

    document_type: str
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)
    context: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}
        if self.context is None:
            self.context = {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "document_type": self.document_type,
            "content": self.content,
            "metadata": self.metadata,
            "context": self.context,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DomainInput":
        return cls(
            document_type=data.get("document_type", ""),
            content=data.get("content", ""),
            metadata=data.get("metadata") or {},
            context=data.get("context") or {},
        )


@dataclass(frozen=True)
class Risk:
    """A typed, severity-tagged risk finding."""

    type: str
    severity: Severity
    description: str
    mitigation: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result = {
            "type": self.type,
            "severity": self.severity.value,
            "description": self.description,
        }
        if self.mitigation:
            result["mitigation"] = self.mitigation
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Risk":
        return cls(
            type=data["type"],
            severity=Severity(data["severity"]),
            description=data.get("description", ""),
            mitigation=data.get("mitigation"),
        )


@dataclass
class ComplianceResult:
    """
    Pass/fail flags per jurisdiction level plus the reasons for failure.

    Levels start out passing and can only ever be switched to failing.
    Informational flags that are not compliance levels go in ``extras``.
    """

    levels: dict[str, bool] = field(default_factory=dict)
    issues: list[str] = field(default_factory=list)
    extras: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_levels(cls, levels: tuple[str, ...]) -> "ComplianceResult":
        return cls(levels={level: True for level in levels})

    def fail(self, level: str, message: str) -> None:
        self.levels[level] = False
        self.issues.append(message)

    def __getitem__(self, level: str) -> bool:
        return self.levels[level]

    @property
    def passed(self) -> bool:
        return all(self.levels.values())

    @property
    def failed_levels(self) -> list[str]:
        return [level for level, ok in self.levels.items() if not ok]

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = dict(self.levels)
        result.update(self.extras)
        result["issues"] = list(self.issues)
        return result


@dataclass(frozen=True)
class DomainOutput:
    """
    Result of one domain agent run.

    Built once per ``process`` call and treated as read-only afterwards; the
    vanguard lanes all read the same instance concurrently.
    """

    agent_id: str
    document_type: str
    document_validity: bool
    key_terms: dict[str, Any]
    compliance: ComplianceResult
    risks: tuple[Risk, ...] = ()
    recommendations: tuple[str, ...] = ()
    details: dict[str, Any] = field(default_factory=dict)
    benchmarks: Optional[dict[str, Any]] = None

    @property
    def has_critical_risk(self) -> bool:
        return any(r.severity == Severity.CRITICAL for r in self.risks)

    def risks_of_type(self, risk_type: str) -> list[Risk]:
        return [r for r in self.risks if r.type == risk_type]

    def to_dict(self) -> dict[str, Any]:
        analysis: dict[str, Any] = {
            "document_validity": self.document_validity,
            "key_terms_extracted": dict(self.key_terms),
            "compliance": self.compliance.to_dict(),
        }
        analysis.update(self.details)
        analysis["risks"] = [r.to_dict() for r in self.risks]

        result: dict[str, Any] = {
            "agent_id": self.agent_id,
            "document_type": self.document_type,
            "analysis": analysis,
            "recommendations": list(self.recommendations),
        }
        if self.benchmarks is not None:
            result["benchmarks"] = self.benchmarks
        return result


@dataclass
class VanguardResult:
    """Outcome of one scoring lane."""

    agent_name: str
    status: LaneStatus
    score: float
    findings: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "agent_name": self.agent_name,
            "status": self.status.value,
            "score": self.score,
            "findings": self.findings,
            "recommendations": self.recommendations,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VanguardResult":
        return cls(
            agent_name=data["agent_name"],
            status=LaneStatus(data["status"]),
            score=data.get("score", 0),
            findings=data.get("findings", []),
            recommendations=data.get("recommendations", []),
            metadata=data.get("metadata", {}),
        )


@dataclass
class VanguardAssessment:
    """The three lane results joined with the aggregate score and label."""

    security_sentinel: VanguardResult
    integrity_auditor: VanguardResult
    accuracy_engine: VanguardResult
    overall_score: float
    risk_level: RiskLevel

    @property
    def lanes(self) -> tuple[VanguardResult, VanguardResult, VanguardResult]:
        return (self.security_sentinel, self.integrity_auditor, self.accuracy_engine)

    def lane_results(self) -> dict[str, Any]:
        return {
            "security_sentinel": self.security_sentinel.to_dict(),
            "integrity_auditor": self.integrity_auditor.to_dict(),
            "accuracy_engine": self.accuracy_engine.to_dict(),
        }

    def to_dict(self) -> dict[str, Any]:
        result = self.lane_results()
        result["overall_score"] = self.overall_score
        result["risk_level"] = self.risk_level.value
        return result


@dataclass
class Prompt:
    """A submitted document together with its routing information."""

    id: str
    content: str
    vertical: str
    document_type: str
    metadata: dict[str, Any] = field(default_factory=dict)
    context: dict[str, Any] = field(default_factory=dict)
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_domain_input(self) -> DomainInput:
        return DomainInput(
            document_type=self.document_type,
            content=self.content,
            metadata=dict(self.metadata),
            context=dict(self.context),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "vertical": self.vertical,
            "document_type": self.document_type,
            "metadata": self.metadata,
            "context": self.context,
            "created_by": self.created_by,
            "created_at": _format_datetime(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Prompt":
        return cls(
            id=data["id"],
            content=data.get("content", ""),
            vertical=data["vertical"],
            document_type=data.get("document_type", ""),
            metadata=data.get("metadata") or {},
            context=data.get("context") or {},
            created_by=data.get("created_by"),
            created_at=_parse_datetime(data.get("created_at")),
        )


@dataclass
class Analysis:
    """
    Persisted outcome of running a prompt through the pipeline.

    Status only moves pending -> processing -> completed/failed, with a
    direct pending -> failed when the input is rejected before processing.
    """

    id: str
    prompt_id: str
    domain: str
    status: AnalysisStatus = AnalysisStatus.PENDING
    domain_agent_result: Optional[dict[str, Any]] = None
    vanguard_results: dict[str, Any] = field(default_factory=dict)
    overall_score: Optional[float] = None
    risk_level: Optional[RiskLevel] = None
    summary: Optional[str] = None
    processing_time_ms: Optional[int] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def _require(self, *allowed: AnalysisStatus) -> None:
        if self.status not in allowed:
            raise ValidationError(
                f"Analysis {self.id} cannot leave status '{self.status.value}'",
                errors=[{"status": self.status.value}],
            )

    def mark_processing(self) -> None:
        self._require(AnalysisStatus.PENDING)
        self.status = AnalysisStatus.PROCESSING
        self.started_at = datetime.now()

    def mark_completed(
        self,
        result: DomainOutput,
        assessment: VanguardAssessment,
        summary: str,
        processing_time_ms: int,
    ) -> None:
        self._require(AnalysisStatus.PROCESSING)
        self.status = AnalysisStatus.COMPLETED
        self.domain_agent_result = result.to_dict()
        self.vanguard_results = assessment.lane_results()
        self.overall_score = assessment.overall_score
        self.risk_level = assessment.risk_level
        self.summary = summary
        self.processing_time_ms = processing_time_ms
        self.completed_at = datetime.now()

    def mark_failed(self, message: str, code: Optional[str] = None) -> None:
        self._require(AnalysisStatus.PENDING, AnalysisStatus.PROCESSING)
        self.status = AnalysisStatus.FAILED
        self.error = message
        self.error_code = code
        self.completed_at = datetime.now()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "prompt_id": self.prompt_id,
            "domain": self.domain,
            "status": self.status.value,
            "domain_agent_result": self.domain_agent_result,
            "vanguard_results": self.vanguard_results,
            "overall_score": self.overall_score,
            "risk_level": self.risk_level.value if self.risk_level else None,
            "summary": self.summary,
            "processing_time_ms": self.processing_time_ms,
            "error": self.error,
            "error_code": self.error_code,
            "created_at": _format_datetime(self.created_at),
            "started_at": _format_datetime(self.started_at),
            "completed_at": _format_datetime(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Analysis":
        return cls(
            id=data["id"],
            prompt_id=data["prompt_id"],
            domain=data.get("domain", ""),
            status=AnalysisStatus(data.get("status", "pending")),
            domain_agent_result=data.get("domain_agent_result"),
            vanguard_results=data.get("vanguard_results") or {},
            overall_score=data.get("overall_score"),
            risk_level=RiskLevel(data["risk_level"]) if data.get("risk_level") else None,
            summary=data.get("summary"),
            processing_time_ms=data.get("processing_time_ms"),
            error=data.get("error"),
            error_code=data.get("error_code"),
            created_at=_parse_datetime(data.get("created_at")),
            started_at=_parse_datetime(data.get("started_at")),
            completed_at=_parse_datetime(data.get("completed_at")),
        )


@dataclass(frozen=True)
class WorkflowStep:
    """
    One node of a workflow's dependency graph.

    Steps are immutable; every status change produces a new step through
    ``dataclasses.replace`` and a new step tuple on the workflow.
    """

    id: str
    name: str
    type: StepType = StepType.ANALYSIS
    dependencies: tuple[str, ...] = ()
    config: dict[str, Any] = field(default_factory=dict)
    condition: Optional[str] = None
    status: StepStatus = StepStatus.PENDING
    result: Optional[Any] = None
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def reset(self) -> "WorkflowStep":
        return replace(
            self,
            status=StepStatus.PENDING,
            result=None,
            error=None,
            started_at=None,
            completed_at=None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "dependencies": list(self.dependencies),
            "config": self.config,
            "condition": self.condition,
            "status": self.status.value,
            "result": self.result,
            "error": self.error,
            "started_at": _format_datetime(self.started_at),
            "completed_at": _format_datetime(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WorkflowStep":
        return cls(
            id=data["id"],
            name=data.get("name") or data["id"],
            type=StepType(data.get("type", "analysis")),
            dependencies=tuple(data.get("dependencies") or data.get("depends_on") or ()),
            config=data.get("config") or {},
            condition=data.get("condition"),
            status=StepStatus(data.get("status", "pending")),
            result=data.get("result"),
            error=data.get("error"),
            started_at=_parse_datetime(data.get("started_at")),
            completed_at=_parse_datetime(data.get("completed_at")),
        )


@dataclass
class Workflow:
    """A named, ordered set of steps with explicit dependencies."""

    id: str
    name: str
    description: str = ""
    type: WorkflowType = WorkflowType.SEQUENTIAL
    steps: tuple[WorkflowStep, ...] = ()
    variables: dict[str, Any] = field(default_factory=dict)
    status: WorkflowStatus = WorkflowStatus.DRAFT
    failure_policy: FailurePolicy = FailurePolicy.SKIP_ON_FAILURE
    current_step: Optional[str] = None
    execution_count: int = 0
    last_executed_at: Optional[datetime] = None
    is_template: bool = False
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def step_ids(self) -> list[str]:
        return [s.id for s in self.steps]

    def get_step(self, step_id: str) -> Optional[WorkflowStep]:
        return next((s for s in self.steps if s.id == step_id), None)

    def step_index(self, step_id: str) -> int:
        for index, step in enumerate(self.steps):
            if step.id == step_id:
                return index
        return -1

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type.value,
            "steps": [s.to_dict() for s in self.steps],
            "variables": self.variables,
            "status": self.status.value,
            "failure_policy": self.failure_policy.value,
            "current_step": self.current_step,
            "execution_count": self.execution_count,
            "last_executed_at": _format_datetime(self.last_executed_at),
            "is_template": self.is_template,
            "created_by": self.created_by,
            "created_at": _format_datetime(self.created_at),
            "updated_at": _format_datetime(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Workflow":
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description") or "",
            type=WorkflowType(data.get("type", "sequential")),
            steps=tuple(WorkflowStep.from_dict(s) for s in data.get("steps") or []),
            variables=data.get("variables") or {},
            status=WorkflowStatus(data.get("status", "draft")),
            failure_policy=FailurePolicy(data.get("failure_policy", "skip-on-failure")),
            current_step=data.get("current_step"),
            execution_count=data.get("execution_count", 0),
            last_executed_at=_parse_datetime(data.get("last_executed_at")),
            is_template=data.get("is_template", False),
            created_by=data.get("created_by"),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )
