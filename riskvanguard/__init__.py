"""
RiskVanguard - document risk analysis for energy, government and insurance.

Domain agents turn free-text documents into structured findings; three
verification lanes score the findings and roll them into a risk level. A
small workflow engine sequences analysis, review and approval steps.
"""

from .config import PolicyConfig, configure_logging
from .domains import (
    DomainAgent,
    EnergyDomainAgent,
    GovernmentDomainAgent,
    InsuranceDomainAgent,
)
from .exceptions import (
    NotFoundError,
    ProcessingError,
    RiskVanguardError,
    ValidationError,
)
from .executors import default_executors
from .models import (
    Analysis,
    AnalysisStatus,
    ComplianceResult,
    DomainInput,
    DomainOutput,
    FailurePolicy,
    LaneStatus,
    Prompt,
    Risk,
    RiskLevel,
    Severity,
    StepStatus,
    StepType,
    VanguardAssessment,
    VanguardResult,
    Workflow,
    WorkflowStatus,
    WorkflowStep,
    WorkflowType,
)
from .pipeline import AnalysisPipeline
from .registry import (
    DomainAgentRegistry,
    create_default_registry,
    get_domain_agent,
    process_with_domain_agent,
)
from .scoring import (
    AccuracyEngine,
    Aggregator,
    IntegrityAuditor,
    SecuritySentinel,
    VanguardScorer,
)
from .store import InMemoryStore, RecordStore
from .workflow import (
    STEP_TEMPLATES,
    DependencyCycleError,
    WorkflowEngine,
    WorkflowError,
    WorkflowNotFoundError,
    WorkflowSpec,
    WorkflowValidationError,
    validate_workflow,
    workflow_from_template,
)

__version__ = "0.3.0"
__all__ = [
    "PolicyConfig",
    "configure_logging",
    "DomainAgent",
    "EnergyDomainAgent",
    "GovernmentDomainAgent",
    "InsuranceDomainAgent",
    "NotFoundError",
    "ProcessingError",
    "RiskVanguardError",
    "ValidationError",
    "default_executors",
    "Analysis",
    "AnalysisStatus",
    "ComplianceResult",
    "DomainInput",
    "DomainOutput",
    "FailurePolicy",
    "LaneStatus",
    "Prompt",
    "Risk",
    "RiskLevel",
    "Severity",
    "StepStatus",
    "StepType",
    "VanguardAssessment",
    "VanguardResult",
    "Workflow",
    "WorkflowStatus",
    "WorkflowStep",
    "WorkflowType",
    "AnalysisPipeline",
    "DomainAgentRegistry",
    "create_default_registry",
    "get_domain_agent",
    "process_with_domain_agent",
    "AccuracyEngine",
    "Aggregator",
    "IntegrityAuditor",
    "SecuritySentinel",
    "VanguardScorer",
    "InMemoryStore",
    "RecordStore",
    "STEP_TEMPLATES",
    "DependencyCycleError",
    "WorkflowEngine",
    "WorkflowError",
    "WorkflowNotFoundError",
    "WorkflowSpec",
    "WorkflowValidationError",
    "validate_workflow",
    "workflow_from_template",
]
