"""
Domain agents, one per business vertical.
"""

from .base import (
    ComplianceChecker,
    ComplianceRule,
    DomainAgent,
    RecommendationGenerator,
    RiskAssessor,
    RiskRule,
    RuleContext,
)
from .energy import EnergyDomainAgent
from .government import GovernmentDomainAgent
from .insurance import InsuranceDomainAgent

__all__ = [
    "ComplianceChecker",
    "ComplianceRule",
    "DomainAgent",
    "RecommendationGenerator",
    "RiskAssessor",
    "RiskRule",
    "RuleContext",
    "EnergyDomainAgent",
    "GovernmentDomainAgent",
    "InsuranceDomainAgent",
]
