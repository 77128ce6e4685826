"""
Analysis pipeline: Prompt -> domain agent -> vanguard lanes -> Analysis record.
"""

import logging
import time
from typing import Optional
from uuid import uuid4

from .config import PolicyConfig
from .exceptions import ProcessingError, RiskVanguardError
from .models import (
    Analysis,
    AnalysisStatus,
    DomainInput,
    DomainOutput,
    Prompt,
    Severity,
    VanguardAssessment,
)
from .registry import DomainAgentRegistry, get_domain_agent
from .scoring import VanguardScorer
from .store import InMemoryStore, RecordStore
from .validation import validate_domain_input, validate_required

logger = logging.getLogger("riskvanguard.pipeline")


def summarize(output: DomainOutput, assessment: VanguardAssessment) -> str:
    """One-line, human-readable summary of a completed analysis."""
    issues = len(output.compliance.issues)
    critical = sum(1 for r in output.risks if r.severity == Severity.CRITICAL)
    parts = [
        f"{assessment.risk_level.value.capitalize()} risk",
        f"overall score {assessment.overall_score:g}/100",
        f"{len(output.risks)} risks ({critical} critical)",
        f"{issues} compliance issue{'s' if issues != 1 else ''}",
    ]
    if not output.document_validity:
        parts.append("document failed validity checks")
    return "; ".join(parts)


class AnalysisPipeline:
    """
    Runs prompts through their domain agent and the vanguard scorer.

    The pipeline is the catch point for failures: whatever goes wrong is
    recorded on the Analysis (message and code) and then re-raised. Nothing
    is retried.
    """

    def __init__(
        self,
        registry: DomainAgentRegistry,
        scorer: Optional[VanguardScorer] = None,
        store: Optional[RecordStore] = None,
        policy: Optional[PolicyConfig] = None,
    ):
        self.registry = registry
        self.policy = policy or PolicyConfig()
        self.scorer = scorer or VanguardScorer(
            self.policy, expected_terms=registry.term_counts()
        )
        self.store = store or InMemoryStore()

    def submit(self, prompt: Prompt) -> Analysis:
        """Persist a prompt together with a pending analysis for it."""
        validate_required(prompt.vertical, "vertical")
        self.store.save_prompt(prompt)
        analysis = Analysis(
            id=str(uuid4()),
            prompt_id=prompt.id,
            domain=prompt.vertical,
            status=AnalysisStatus.PENDING,
        )
        self.store.save_analysis(analysis)
        logger.info("Submitted prompt %s as analysis %s", prompt.id, analysis.id)
        return analysis

    async def run(self, analysis: Analysis, prompt: Prompt) -> Analysis:
        """
        Process a pending analysis to completion.

        Raises:
            ValidationError: The prompt content is missing or blank
            NotFoundError: No agent serves the prompt's vertical
            ProcessingError: Any unexpected failure inside a stage
        """
        document = prompt.to_domain_input()
        try:
            validate_domain_input(document)
        except RiskVanguardError as e:
            self._fail(analysis, e)
            raise

        analysis.mark_processing()
        self.store.save_analysis(analysis)
        started = time.perf_counter()

        try:
            agent = get_domain_agent(self.registry, prompt.vertical)
            output = await agent.process(document)
            assessment = await self.scorer.evaluate(output, document)
        except RiskVanguardError as e:
            self._fail(analysis, e)
            raise
        except Exception as e:
            error = ProcessingError(f"Analysis {analysis.id} failed: {e}", cause=e)
            self._fail(analysis, error)
            raise error from e

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        analysis.mark_completed(output, assessment, summarize(output, assessment), elapsed_ms)
        self.store.save_analysis(analysis)
        logger.info(
            "Analysis %s completed: score=%s level=%s",
            analysis.id,
            analysis.overall_score,
            analysis.risk_level.value,
        )
        return analysis

    async def analyze(
        self,
        vertical: str,
        document: DomainInput,
        created_by: Optional[str] = None,
    ) -> Analysis:
        """Submit and run a document in one call."""
        prompt = Prompt(
            id=str(uuid4()),
            content=document.content if document is not None else "",
            vertical=vertical,
            document_type=document.document_type if document is not None else "",
            metadata=dict(document.metadata) if document is not None else {},
            context=dict(document.context) if document is not None else {},
            created_by=created_by,
        )
        analysis = self.submit(prompt)
        return await self.run(analysis, prompt)

    def _fail(self, analysis: Analysis, error: RiskVanguardError) -> None:
        logger.error("Analysis %s failed [%s]: %s", analysis.id, error.code, error.message)
        analysis.mark_failed(error.message, error.code)
        self.store.save_analysis(analysis)
