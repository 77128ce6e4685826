"""
Built-in step executors.

An executor is called with the workflow and the step being run and returns
the step result. Raising marks the step failed. A result dict may carry a
``variables`` mapping that the engine merges into the workflow variables, which
is how an analysis step feeds the conditions of later steps.
"""

import logging
import re
from typing import Any

from .models import DomainInput, StepStatus, StepType, Workflow, WorkflowStep
from .pipeline import AnalysisPipeline
from .workflow import StepExecutionError, StepExecutor

logger = logging.getLogger("riskvanguard.executors")

_PLACEHOLDER = re.compile(r"\{\{\s*([\w.]+)\s*\}\}")

APPROVED = {"approved", "approve", "yes", "true"}
REJECTED = {"rejected", "reject", "no", "false"}


def render_template(template: str, variables: dict[str, Any]) -> str:
    """Replace ``{{name}}`` placeholders; unknown names are left as written."""

    def substitute(match: re.Match) -> str:
        value: Any = variables
        for part in match.group(1).split("."):
            if not isinstance(value, dict) or part not in value:
                return match.group(0)
            value = value[part]
        return str(value)

    return _PLACEHOLDER.sub(substitute, template)


async def run_prompt_step(workflow: Workflow, step: WorkflowStep) -> dict[str, Any]:
    template = step.config.get("template")
    if not template:
        raise StepExecutionError(f"Prompt step '{step.id}' has no template")
    return {"text": render_template(template, workflow.variables)}


async def run_decision_step(workflow: Workflow, step: WorkflowStep) -> dict[str, Any]:
    """Resolve a review or approval from ``workflow.variables["approvals"]``."""
    decisions = workflow.variables.get("approvals") or {}
    decision = decisions.get(step.id)
    if decision is None:
        raise StepExecutionError(f"No decision recorded for {step.type.value} step '{step.id}'")

    if isinstance(decision, dict):
        verdict = decision.get("decision")
        reviewer = decision.get("by")
        notes = decision.get("notes", "")
    else:
        verdict, reviewer, notes = decision, None, ""

    verdict = str(verdict).strip().lower()
    if verdict in REJECTED:
        raise StepExecutionError(f"Step '{step.id}' was rejected" + (f": {notes}" if notes else ""))
    if verdict not in APPROVED:
        raise StepExecutionError(f"Unrecognised decision '{verdict}' for step '{step.id}'")
    return {"approved": True, "by": reviewer, "notes": notes}


async def run_report_step(workflow: Workflow, step: WorkflowStep) -> dict[str, Any]:
    """Summarise the steps that have finished so far."""
    statuses = {s.id: s.status.value for s in workflow.steps if s.id != step.id}
    results = {
        s.id: s.result
        for s in workflow.steps
        if s.status == StepStatus.COMPLETED and s.result is not None
    }
    completed = sum(1 for v in statuses.values() if v == StepStatus.COMPLETED.value)
    return {
        "workflow": workflow.name,
        "steps": statuses,
        "results": results,
        "summary": f"{completed} of {len(statuses)} steps completed",
    }


def analysis_step(pipeline: AnalysisPipeline) -> StepExecutor:
    """Build an executor that runs a document through ``pipeline``."""

    async def run_analysis_step(workflow: Workflow, step: WorkflowStep) -> dict[str, Any]:
        config = step.config
        vertical = config.get("vertical") or workflow.variables.get("vertical")
        if not vertical:
            raise StepExecutionError(f"Analysis step '{step.id}' has no vertical configured")

        content = config.get("content")
        if content is None:
            content = workflow.variables.get(config.get("content_variable", "document"))
        document = DomainInput(
            document_type=config.get("document_type") or workflow.variables.get("document_type", ""),
            content=content or "",
            metadata={**workflow.variables.get("metadata", {}), **config.get("metadata", {})},
            context={**workflow.variables.get("context", {}), **config.get("context", {})},
        )

        analysis = await pipeline.analyze(vertical, document, created_by=workflow.created_by)
        logger.info(
            "Workflow %s: step %s produced analysis %s (%s)",
            workflow.id,
            step.id,
            analysis.id,
            analysis.risk_level.value,
        )
        return {
            "analysis_id": analysis.id,
            "overall_score": analysis.overall_score,
            "risk_level": analysis.risk_level.value,
            "summary": analysis.summary,
            "variables": {
                "analysis_id": analysis.id,
                "overall_score": analysis.overall_score,
                "risk_level": analysis.risk_level.value,
            },
        }

    return run_analysis_step


def default_executors(pipeline: AnalysisPipeline) -> dict[StepType, StepExecutor]:
    """Executor table covering every step type."""
    return {
        StepType.PROMPT: run_prompt_step,
        StepType.ANALYSIS: analysis_step(pipeline),
        StepType.REVIEW: run_decision_step,
        StepType.APPROVAL: run_decision_step,
        StepType.REPORT: run_report_step,
    }
