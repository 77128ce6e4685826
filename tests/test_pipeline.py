"""Tests for the analysis pipeline."""

import pytest

from riskvanguard.domains import DomainAgent
from riskvanguard.exceptions import NotFoundError, ProcessingError, ValidationError
from riskvanguard.models import AnalysisStatus, DomainInput, Prompt, RiskLevel
from riskvanguard.pipeline import AnalysisPipeline
from riskvanguard.registry import DomainAgentRegistry, create_default_registry
from riskvanguard.store import InMemoryStore


class BrokenAgent(DomainAgent):
    id = "broken-agent"
    document_types = ("lease",)

    def build_details(self, document, fields):
        raise RuntimeError("section builder exploded")


@pytest.fixture
def pipeline():
    return AnalysisPipeline(create_default_registry(), store=InMemoryStore())


def make_prompt(content, vertical="energy", **kwargs):
    return Prompt(
        id="prompt-1",
        content=content,
        vertical=vertical,
        document_type=kwargs.pop("document_type", "lease"),
        **kwargs,
    )


class TestAnalysisPipeline:
    """Tests for AnalysisPipeline."""

    @pytest.mark.asyncio
    async def test_analyze_completes(self, pipeline, energy_lease):
        analysis = await pipeline.analyze("oil-gas", DomainInput("lease", energy_lease))

        assert analysis.status == AnalysisStatus.COMPLETED
        assert analysis.domain_agent_result["agent_id"] == "energy-domain-agent"
        assert set(analysis.vanguard_results) == {
            "security_sentinel",
            "integrity_auditor",
            "accuracy_engine",
        }
        assert isinstance(analysis.risk_level, RiskLevel)
        assert analysis.summary.startswith(analysis.risk_level.value.capitalize())
        assert analysis.processing_time_ms is not None
        assert analysis.started_at <= analysis.completed_at

        stored = pipeline.store.get_analysis(analysis.id)
        assert stored.status == AnalysisStatus.COMPLETED
        assert stored.overall_score == analysis.overall_score

    @pytest.mark.asyncio
    async def test_submit_stores_prompt_and_pending_analysis(self, pipeline, energy_lease):
        prompt = make_prompt(energy_lease)
        analysis = pipeline.submit(prompt)

        assert analysis.status == AnalysisStatus.PENDING
        assert pipeline.store.get_prompt("prompt-1").content == energy_lease
        assert pipeline.store.get_analysis(analysis.id).prompt_id == "prompt-1"

    @pytest.mark.asyncio
    async def test_unknown_vertical_is_recorded(self, pipeline, energy_lease):
        prompt = make_prompt(energy_lease, vertical="mining")
        analysis = pipeline.submit(prompt)

        with pytest.raises(NotFoundError):
            await pipeline.run(analysis, prompt)

        stored = pipeline.store.get_analysis(analysis.id)
        assert stored.status == AnalysisStatus.FAILED
        assert stored.error_code == "not_found"
        assert "mining" in stored.error

    @pytest.mark.asyncio
    async def test_blank_content_fails_before_processing(self, pipeline):
        prompt = make_prompt("   ")
        analysis = pipeline.submit(prompt)

        with pytest.raises(ValidationError):
            await pipeline.run(analysis, prompt)

        stored = pipeline.store.get_analysis(analysis.id)
        assert stored.status == AnalysisStatus.FAILED
        assert stored.error_code == "validation_error"
        assert stored.started_at is None

    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped(self, energy_lease):
        registry = DomainAgentRegistry(aliases={"broken": "broken-agent"})
        registry.register(BrokenAgent())
        pipeline = AnalysisPipeline(registry)

        prompt = make_prompt(energy_lease, vertical="broken")
        analysis = pipeline.submit(prompt)

        with pytest.raises(ProcessingError) as exc_info:
            await pipeline.run(analysis, prompt)
        assert isinstance(exc_info.value.cause, RuntimeError)

        stored = pipeline.store.get_analysis(analysis.id)
        assert stored.status == AnalysisStatus.FAILED
        assert stored.error_code == "processing_error"
        assert "section builder exploded" in stored.error

    @pytest.mark.asyncio
    async def test_completed_analysis_cannot_rerun(self, pipeline, energy_lease):
        prompt = make_prompt(energy_lease)
        analysis = pipeline.submit(prompt)
        await pipeline.run(analysis, prompt)

        with pytest.raises(ValidationError):
            await pipeline.run(analysis, prompt)

    @pytest.mark.asyncio
    async def test_repeat_analysis_is_deterministic(self, pipeline, energy_lease):
        document = DomainInput("lease", energy_lease, context={"state": "Texas"})
        first = await pipeline.analyze("energy", document)
        second = await pipeline.analyze("energy", document)
        assert first.overall_score == second.overall_score
        assert first.risk_level == second.risk_level
