"""Tests for the built-in step executors and template runs."""

import pytest

from riskvanguard.executors import (
    analysis_step,
    default_executors,
    render_template,
    run_decision_step,
    run_prompt_step,
    run_report_step,
)
from riskvanguard.models import (
    StepStatus,
    StepType,
    Workflow,
    WorkflowStatus,
    WorkflowStep,
    WorkflowType,
)
from riskvanguard.pipeline import AnalysisPipeline
from riskvanguard.registry import create_default_registry
from riskvanguard.store import InMemoryStore
from riskvanguard.workflow import StepExecutionError, WorkflowEngine, workflow_from_template


@pytest.fixture
def pipeline():
    return AnalysisPipeline(create_default_registry(), store=InMemoryStore())


def make_workflow(steps=(), variables=None):
    return Workflow(
        id="wf-exec",
        name="Executor workflow",
        type=WorkflowType.PARALLEL,
        steps=tuple(steps),
        variables=variables or {},
    )


class TestRenderTemplate:
    """Tests for render_template."""

    def test_substitutes_known_names(self):
        text = render_template(
            "Review {{ document_name }} for {{client.name}}",
            {"document_name": "Tract 7", "client": {"name": "Basin Ops"}},
        )
        assert text == "Review Tract 7 for Basin Ops"

    def test_unknown_names_left_as_written(self):
        assert render_template("Hello {{who}}", {}) == "Hello {{who}}"


class TestSimpleExecutors:
    """Tests for the prompt, decision and report executors."""

    @pytest.mark.asyncio
    async def test_prompt_step(self):
        step = WorkflowStep(id="intake", name="Intake", type=StepType.PROMPT,
                            config={"template": "Lease for {{client}}"})
        result = await run_prompt_step(make_workflow(variables={"client": "Basin Ops"}), step)
        assert result == {"text": "Lease for Basin Ops"}

    @pytest.mark.asyncio
    async def test_prompt_step_without_template(self):
        step = WorkflowStep(id="intake", name="Intake", type=StepType.PROMPT)
        with pytest.raises(StepExecutionError, match="has no template"):
            await run_prompt_step(make_workflow(), step)

    @pytest.mark.asyncio
    async def test_decision_approved(self):
        step = WorkflowStep(id="approval", name="Approval", type=StepType.APPROVAL)
        workflow = make_workflow(
            variables={"approvals": {"approval": {"decision": "Approved", "by": "land-manager"}}}
        )
        result = await run_decision_step(workflow, step)
        assert result == {"approved": True, "by": "land-manager", "notes": ""}

    @pytest.mark.asyncio
    async def test_decision_rejected(self):
        step = WorkflowStep(id="legal", name="Legal", type=StepType.REVIEW)
        workflow = make_workflow(
            variables={"approvals": {"legal": {"decision": "rejected", "notes": "no audit rights"}}}
        )
        with pytest.raises(StepExecutionError, match="rejected: no audit rights"):
            await run_decision_step(workflow, step)

    @pytest.mark.asyncio
    async def test_decision_missing(self):
        step = WorkflowStep(id="legal", name="Legal", type=StepType.REVIEW)
        with pytest.raises(StepExecutionError, match="No decision recorded"):
            await run_decision_step(make_workflow(), step)

    @pytest.mark.asyncio
    async def test_decision_unrecognised(self):
        step = WorkflowStep(id="legal", name="Legal", type=StepType.REVIEW)
        workflow = make_workflow(variables={"approvals": {"legal": "maybe"}})
        with pytest.raises(StepExecutionError, match="Unrecognised decision 'maybe'"):
            await run_decision_step(workflow, step)

    @pytest.mark.asyncio
    async def test_report_step(self):
        steps = (
            WorkflowStep(id="analyze", name="Analyze", status=StepStatus.COMPLETED, result={"x": 1}),
            WorkflowStep(id="review", name="Review", status=StepStatus.SKIPPED),
            WorkflowStep(id="report", name="Report", type=StepType.REPORT, status=StepStatus.RUNNING),
        )
        result = await run_report_step(make_workflow(steps), steps[2])

        assert result["workflow"] == "Executor workflow"
        assert result["steps"] == {"analyze": "completed", "review": "skipped"}
        assert result["results"] == {"analyze": {"x": 1}}
        assert result["summary"] == "1 of 2 steps completed"


class TestAnalysisStep:
    """Tests for the analysis executor."""

    @pytest.mark.asyncio
    async def test_runs_document_through_pipeline(self, pipeline, energy_lease):
        step = WorkflowStep(
            id="analyze",
            name="Analyze",
            config={"vertical": "energy", "document_type": "lease"},
        )
        workflow = make_workflow(variables={"document": energy_lease, "context": {"state": "Texas"}})

        result = await analysis_step(pipeline)(workflow, step)

        analysis = pipeline.store.get_analysis(result["analysis_id"])
        assert analysis is not None
        assert result["risk_level"] == analysis.risk_level.value
        assert result["variables"]["overall_score"] == analysis.overall_score
        prompt = pipeline.store.get_prompt(analysis.prompt_id)
        assert prompt.context == {"state": "Texas"}

    @pytest.mark.asyncio
    async def test_content_variable(self, pipeline, insurance_claim):
        step = WorkflowStep(
            id="analyze",
            name="Analyze",
            config={"vertical": "insurance", "document_type": "claim", "content_variable": "claim"},
        )
        result = await analysis_step(pipeline)(make_workflow(variables={"claim": insurance_claim}), step)
        assert result["analysis_id"]

    @pytest.mark.asyncio
    async def test_missing_vertical(self, pipeline):
        step = WorkflowStep(id="analyze", name="Analyze", config={"content": "text"})
        with pytest.raises(StepExecutionError, match="no vertical configured"):
            await analysis_step(pipeline)(make_workflow(), step)


class TestTemplateRuns:
    """Run the built-in templates end to end with the default executors."""

    @pytest.mark.asyncio
    async def test_energy_lease_review(self, pipeline, energy_lease):
        engine = WorkflowEngine(store=InMemoryStore(), executors=default_executors(pipeline))
        workflow = workflow_from_template(
            "energy-lease-review",
            variables={
                "document": energy_lease,
                "document_name": "Tract 7",
                "client": "Basin Ops",
                "approvals": {
                    "legal_review": "approved",
                    "approval": {"decision": "approved", "by": "land-manager"},
                },
            },
        )

        await engine.run(workflow)

        assert workflow.status == WorkflowStatus.COMPLETED
        assert workflow.get_step("intake").result == {"text": "Review lease Tract 7 for Basin Ops"}
        assert workflow.variables["risk_level"] == workflow.get_step("analyze").result["risk_level"]
        assert workflow.get_step("report").result["summary"] == "4 of 4 steps completed"

    @pytest.mark.asyncio
    async def test_missing_approval_fails_fast(self, pipeline, energy_lease):
        engine = WorkflowEngine(executors=default_executors(pipeline))
        workflow = workflow_from_template(
            "energy-lease-review",
            variables={"document": energy_lease, "document_name": "Tract 7", "client": "Basin Ops"},
        )

        await engine.run(workflow)

        assert workflow.status == WorkflowStatus.FAILED
        assert "No decision recorded" in workflow.get_step("legal_review").error
        assert workflow.get_step("approval").status == StepStatus.SKIPPED
        assert workflow.get_step("report").status == StepStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_insurance_claim_review_branches_on_risk(self, pipeline, insurance_claim):
        engine = WorkflowEngine(executors=default_executors(pipeline))
        workflow = workflow_from_template(
            "insurance-claim-review",
            variables={
                "document": insurance_claim,
                "approvals": {"adjuster_review": "approved", "siu_referral": "approved"},
            },
        )

        await engine.run(workflow)

        assert workflow.status == WorkflowStatus.COMPLETED
        risk_level = workflow.variables["risk_level"]
        expected = StepStatus.COMPLETED if risk_level == "critical" else StepStatus.SKIPPED
        assert workflow.get_step("siu_referral").status == expected
        assert workflow.get_step("report").status == StepStatus.COMPLETED
