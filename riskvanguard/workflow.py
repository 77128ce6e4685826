"""
RiskVanguard Workflows - step graphs with explicit dependencies.

A workflow is an ordered tuple of steps. Each step names the steps it depends
on; the engine decides which steps may run next, records status callbacks and
derives the workflow status from the step statuses.

Workflows can be declared in YAML:

    riskvanguard: "1.0"
    info:
      name: "Lease review"
    type: sequential
    steps:
      analyze:
        type: analysis
        config: {vertical: energy, document_type: lease}
      report:
        type: report
        depends_on: [analyze]

Example:
    from riskvanguard.workflow import WorkflowEngine, WorkflowSpec

    workflow = WorkflowSpec.from_yaml("lease_review.yaml").to_workflow()
    engine = WorkflowEngine(executors=default_executors(pipeline))
    await engine.run(workflow)
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Union
from uuid import uuid4

import yaml

from .exceptions import RiskVanguardError
from .models import (
    FailurePolicy,
    StepStatus,
    StepType,
    Workflow,
    WorkflowStatus,
    WorkflowStep,
    WorkflowType,
)
from .store import RecordStore
from .validation import InputValidationError, validate_step_definitions

logger = logging.getLogger("riskvanguard.workflow")

SPEC_VERSION = "1.0"

StepExecutor = Callable[[Workflow, WorkflowStep], Union[Any, Awaitable[Any]]]
StepPredicate = Callable[[dict], bool]


class WorkflowError(RiskVanguardError):
    """Base exception for workflow errors."""

    code = "workflow_error"

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("status_code", 409)
        super().__init__(message, **kwargs)


class WorkflowValidationError(WorkflowError):
    """Raised when a workflow definition is invalid."""

    code = "workflow_validation_error"

    def __init__(self, message: str, path: str = "", suggestion: str = ""):
        self.path = path
        self.suggestion = suggestion
        full_message = message
        if path:
            full_message = f"{path}: {message}"
        if suggestion:
            full_message = f"{full_message}\n  Hint: {suggestion}"
        super().__init__(full_message, status_code=400)


class DependencyCycleError(WorkflowValidationError):
    """Raised when the step graph has no topological order."""

    code = "dependency_cycle"

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(
            f"Circular dependency detected: {' -> '.join(cycle)}",
            suggestion="Remove one of the dependencies to break the cycle",
        )


class WorkflowNotFoundError(WorkflowError):
    """Raised when a workflow file, template or step cannot be found."""

    code = "not_found"

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=404)


class StepExecutionError(WorkflowError):
    """Raised by a step executor to fail its step."""

    code = "step_execution_error"


# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------

_COMPARISON = re.compile(
    r"^(?P<var>[A-Za-z_][\w.]*)\s*(?P<op>==|!=|>=|<=|>|<|\bin\b)\s*(?P<literal>.+)$"
)
_VARIABLE = re.compile(r"^(?P<negate>not\s+)?(?P<var>[A-Za-z_][\w.]*)$")

_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    "in": lambda a, b: a in b,
}


def _lookup(variables: dict, name: str) -> Any:
    value: Any = variables
    for part in name.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _parse_literal(text: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError:
        return text.strip("'\"")


def _evaluate_clause(clause: str, variables: dict) -> bool:
    clause = clause.strip()
    match = _COMPARISON.match(clause)
    if match:
        left = _lookup(variables, match.group("var"))
        right = _parse_literal(match.group("literal").strip())
        try:
            return bool(_OPERATORS[match.group("op")](left, right))
        except TypeError:
            return False

    match = _VARIABLE.match(clause)
    if match:
        value = bool(_lookup(variables, match.group("var")))
        return not value if match.group("negate") else value

    raise WorkflowValidationError(
        f"Cannot parse condition '{clause}'",
        suggestion="Use 'var', 'not var' or 'var <op> value' with == != > >= < <= in",
    )


def evaluate_condition(expression: Optional[str], variables: dict) -> bool:
    """
    Evaluate a step condition against workflow variables.

    Clauses may be joined with ``and``/``or`` (``and`` binds tighter).
    An empty condition is always true.
    """
    if not expression or not expression.strip():
        return True
    return any(
        all(_evaluate_clause(clause, variables) for clause in re.split(r"\s+and\s+", branch))
        for branch in re.split(r"\s+or\s+", expression.strip())
    )


# ---------------------------------------------------------------------------
# Graph checks
# ---------------------------------------------------------------------------


def check_dependencies(
    steps: tuple[WorkflowStep, ...] | list[WorkflowStep], sequential: bool = False
) -> None:
    """
    Check that every dependency names a known step and that there are no cycles.

    Raises:
        WorkflowValidationError: Duplicate step id or unknown dependency
        DependencyCycleError: The dependency graph contains a cycle
    """
    step_ids = [s.id for s in steps]
    seen: set[str] = set()
    for step_id in step_ids:
        if step_id in seen:
            raise WorkflowValidationError(
                f"Duplicate step id '{step_id}'",
                path=f"steps.{step_id}",
                suggestion="Give every step a unique id",
            )
        seen.add(step_id)

    positions = {step_id: index for index, step_id in enumerate(step_ids)}
    for step in steps:
        for dep in step.dependencies:
            if dep not in positions:
                raise WorkflowValidationError(
                    f"Step '{step.id}' depends on unknown step '{dep}'",
                    path=f"steps.{step.id}.depends_on",
                    suggestion=f"Available steps: {', '.join(step_ids)}",
                )

    graph = {s.id: list(s.dependencies) for s in steps}
    visited: set[str] = set()
    rec_stack: set[str] = set()

    def dfs(node: str, path: list[str]) -> None:
        visited.add(node)
        rec_stack.add(node)

        for neighbor in graph.get(node, []):
            if neighbor in rec_stack:
                start = (path + [node]).index(neighbor)
                raise DependencyCycleError((path + [node])[start:] + [neighbor])
            if neighbor not in visited:
                dfs(neighbor, path + [node])

        rec_stack.remove(node)

    for step in steps:
        if step.id not in visited:
            dfs(step.id, [])

    if sequential:
        for step in steps:
            for dep in step.dependencies:
                if positions[dep] > positions[step.id]:
                    raise WorkflowValidationError(
                        f"Step '{step.id}' depends on later step '{dep}'",
                        path=f"steps.{step.id}.depends_on",
                        suggestion="Sequential workflows run steps in list order; "
                        "move the dependency earlier or use type: parallel",
                    )


def topological_order(steps: tuple[WorkflowStep, ...] | list[WorkflowStep]) -> list[str]:
    """Kahn's algorithm, breaking ties by list position."""
    check_dependencies(steps)
    remaining = {s.id: set(s.dependencies) for s in steps}
    order: list[str] = []
    while remaining:
        ready = [s.id for s in steps if s.id in remaining and not remaining[s.id]]
        for step_id in ready:
            order.append(step_id)
            del remaining[step_id]
        for deps in remaining.values():
            deps.difference_update(ready)
    return order


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def derive_status(workflow: Workflow) -> WorkflowStatus:
    """
    Workflow status implied by the step statuses.

    Completed when every non-skipped step is completed, failed when a step
    failed and nothing left can still complete, active otherwise.
    """
    statuses = [s.status for s in workflow.steps]
    if all(s in (StepStatus.COMPLETED, StepStatus.SKIPPED) for s in statuses):
        return WorkflowStatus.COMPLETED
    in_flight = any(s in (StepStatus.PENDING, StepStatus.RUNNING) for s in statuses)
    if StepStatus.FAILED in statuses and not in_flight:
        return WorkflowStatus.FAILED
    return WorkflowStatus.ACTIVE


class WorkflowEngine:
    """
    Drives workflows through their step graphs.

    The engine holds no per-workflow state. Every callback takes the workflow,
    swaps in a new step tuple and writes it to the store, so completions
    arriving for different steps never overwrite each other.
    """

    def __init__(
        self,
        store: Optional[RecordStore] = None,
        executors: Optional[dict[StepType, StepExecutor]] = None,
        predicates: Optional[dict[str, StepPredicate]] = None,
    ):
        self.store = store
        self.executors: dict[StepType, StepExecutor] = dict(executors or {})
        self.predicates: dict[str, StepPredicate] = dict(predicates or {})

    # -- definition --------------------------------------------------------

    def validate(self, workflow: Workflow) -> None:
        """
        Reject workflows that can never run to completion.

        Raises:
            WorkflowValidationError: Unknown dependency, duplicate id or bad condition
            DependencyCycleError: The dependency graph contains a cycle
        """
        try:
            validate_step_definitions([s.to_dict() for s in workflow.steps])
        except InputValidationError as e:
            raise WorkflowValidationError(e.message, path="steps") from e
        check_dependencies(workflow.steps, sequential=workflow.type == WorkflowType.SEQUENTIAL)
        for step in workflow.steps:
            if step.condition:
                try:
                    evaluate_condition(step.condition, {})
                except WorkflowValidationError as e:
                    raise WorkflowValidationError(
                        e.message, path=f"steps.{step.id}.condition"
                    ) from e

    def topological_order(self, workflow: Workflow) -> list[str]:
        return topological_order(workflow.steps)

    def clone(self, workflow: Workflow, name: Optional[str] = None) -> Workflow:
        """Copy a workflow (or template) with every step reset to pending."""
        copy = Workflow(
            id=str(uuid4()),
            name=name or f"{workflow.name} (copy)",
            description=workflow.description,
            type=workflow.type,
            steps=tuple(s.reset() for s in workflow.steps),
            variables=dict(workflow.variables),
            failure_policy=workflow.failure_policy,
            created_by=workflow.created_by,
        )
        self._save(copy)
        logger.info("Cloned workflow %s as %s", workflow.id, copy.id)
        return copy

    # -- lifecycle ---------------------------------------------------------

    def start(self, workflow: Workflow) -> Workflow:
        """
        Validate and activate a workflow.

        A workflow that already finished is reset to all-pending first, so
        every call starts a fresh run.
        """
        if workflow.status in (WorkflowStatus.ACTIVE, WorkflowStatus.PAUSED):
            raise WorkflowError(f"Workflow {workflow.id} is already {workflow.status.value}")

        self.validate(workflow)
        if any(s.status != StepStatus.PENDING for s in workflow.steps):
            workflow.steps = tuple(s.reset() for s in workflow.steps)

        workflow.status = WorkflowStatus.ACTIVE
        workflow.current_step = None
        workflow.execution_count += 1
        workflow.last_executed_at = datetime.now()
        logger.info(
            "Started workflow %s (%s, run %d)",
            workflow.id,
            workflow.type.value,
            workflow.execution_count,
        )
        self._settle(workflow)
        self._save(workflow)
        return workflow

    def pause(self, workflow: Workflow) -> Workflow:
        if workflow.is_terminal:
            return workflow
        if workflow.status != WorkflowStatus.ACTIVE:
            raise WorkflowError(f"Cannot pause workflow in status '{workflow.status.value}'")
        workflow.status = WorkflowStatus.PAUSED
        self._save(workflow)
        logger.info("Paused workflow %s", workflow.id)
        return workflow

    def resume(self, workflow: Workflow) -> Workflow:
        if workflow.is_terminal:
            return workflow
        if workflow.status != WorkflowStatus.PAUSED:
            raise WorkflowError(f"Cannot resume workflow in status '{workflow.status.value}'")
        workflow.status = WorkflowStatus.ACTIVE
        self._settle(workflow)
        self._save(workflow)
        logger.info("Resumed workflow %s", workflow.id)
        return workflow

    def cancel(self, workflow: Workflow) -> Workflow:
        if workflow.is_terminal:
            return workflow
        workflow.status = WorkflowStatus.CANCELLED
        self._save(workflow)
        logger.info("Cancelled workflow %s", workflow.id)
        return workflow

    # -- scheduling --------------------------------------------------------

    def eligible_steps(self, workflow: Workflow) -> list[WorkflowStep]:
        """Pending steps whose dependencies are all completed."""
        if workflow.status != WorkflowStatus.ACTIVE:
            return []
        completed = {s.id for s in workflow.steps if s.status == StepStatus.COMPLETED}
        return [
            s
            for s in workflow.steps
            if s.status == StepStatus.PENDING
            and set(s.dependencies) <= completed
            and self._condition_holds(workflow, s)
        ]

    def next_steps(self, workflow: Workflow) -> list[WorkflowStep]:
        """Steps the driver should start now, given the workflow type."""
        if workflow.failure_policy == FailurePolicy.FAIL_FAST and self._has_failure(workflow):
            return []
        eligible = self.eligible_steps(workflow)
        if workflow.type == WorkflowType.SEQUENTIAL:
            if any(s.status == StepStatus.RUNNING for s in workflow.steps):
                return []
            return eligible[:1]
        return eligible

    # -- callbacks ---------------------------------------------------------

    def mark_running(self, workflow: Workflow, step_id: str) -> Workflow:
        """
        Move a pending step to running.

        Raises:
            WorkflowNotFoundError: The step does not exist
            WorkflowError: The workflow is not active or the step is not eligible
        """
        if workflow.is_terminal:
            logger.debug("Ignoring start of %s on finished workflow %s", step_id, workflow.id)
            return workflow
        step = self._require_step(workflow, step_id)
        if step.status == StepStatus.RUNNING:
            return workflow
        self._check_can_start(workflow, step)

        workflow.current_step = step_id
        self._commit(
            workflow,
            replace(step, status=StepStatus.RUNNING, started_at=datetime.now()),
        )
        logger.info("Workflow %s: step %s running", workflow.id, step_id)
        return workflow

    def mark_completed(self, workflow: Workflow, step_id: str, result: Any = None) -> Workflow:
        """
        Record a step's result.

        A pending step is started first, so gating still applies. A result
        dict carrying a ``variables`` mapping is merged into the workflow
        variables for later conditions.
        """
        if workflow.is_terminal:
            logger.debug("Ignoring completion of %s on finished workflow %s", step_id, workflow.id)
            return workflow
        step = self._require_step(workflow, step_id)
        if step.status == StepStatus.COMPLETED:
            return workflow
        if step.status == StepStatus.PENDING:
            self.mark_running(workflow, step_id)
            step = self._require_step(workflow, step_id)
        if step.status != StepStatus.RUNNING:
            raise WorkflowError(f"Step '{step_id}' is {step.status.value} and cannot complete")

        merged = isinstance(result, dict) and isinstance(result.get("variables"), dict)
        if merged:
            workflow.variables = {**workflow.variables, **result["variables"]}

        self._commit(
            workflow,
            replace(step, status=StepStatus.COMPLETED, result=result, completed_at=datetime.now()),
            variables_changed=merged,
        )
        logger.info("Workflow %s: step %s completed", workflow.id, step_id)
        return workflow

    def mark_failed(self, workflow: Workflow, step_id: str, error: str = "") -> Workflow:
        """Record a step failure and skip whatever can no longer run."""
        if workflow.is_terminal:
            logger.debug("Ignoring failure of %s on finished workflow %s", step_id, workflow.id)
            return workflow
        step = self._require_step(workflow, step_id)
        if step.status == StepStatus.FAILED:
            return workflow
        if step.status == StepStatus.PENDING:
            self.mark_running(workflow, step_id)
            step = self._require_step(workflow, step_id)
        if step.status != StepStatus.RUNNING:
            raise WorkflowError(f"Step '{step_id}' is {step.status.value} and cannot fail")

        self._commit(
            workflow,
            replace(
                step,
                status=StepStatus.FAILED,
                error=error or "Step failed",
                completed_at=datetime.now(),
            ),
        )
        logger.warning("Workflow %s: step %s failed: %s", workflow.id, step_id, error)
        return workflow

    def derive_status(self, workflow: Workflow) -> WorkflowStatus:
        return derive_status(workflow)

    # -- driver ------------------------------------------------------------

    async def run(
        self,
        workflow: Workflow,
        executors: Optional[dict[StepType, StepExecutor]] = None,
    ) -> Workflow:
        """
        Run a workflow to a terminal (or paused) status.

        Sequential workflows execute one step at a time in list order;
        parallel and conditional workflows start every eligible step at once.
        A paused workflow is resumed where it stopped; a draft or finished one
        is started afresh.
        """
        executors = {**self.executors, **(executors or {})}
        if workflow.status == WorkflowStatus.PAUSED:
            self.resume(workflow)
        elif workflow.status != WorkflowStatus.ACTIVE:
            self.start(workflow)

        while workflow.status == WorkflowStatus.ACTIVE:
            batch = self.next_steps(workflow)
            if not batch:
                logger.warning("Workflow %s has no runnable steps; stopping", workflow.id)
                break
            for step in batch:
                self.mark_running(workflow, step.id)
            await asyncio.gather(*(self._execute(workflow, s.id, executors) for s in batch))

        logger.info("Workflow %s finished with status %s", workflow.id, workflow.status.value)
        return workflow

    async def _execute(
        self,
        workflow: Workflow,
        step_id: str,
        executors: dict[StepType, StepExecutor],
    ) -> None:
        step = self._require_step(workflow, step_id)
        executor = executors.get(step.type)
        if executor is None:
            self.mark_failed(
                workflow, step_id, f"No executor registered for step type '{step.type.value}'"
            )
            return
        try:
            result = executor(workflow, step)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.exception("Workflow %s: step %s raised", workflow.id, step_id)
            self.mark_failed(workflow, step_id, str(e))
            return
        self.mark_completed(workflow, step_id, result)

    # -- internals ---------------------------------------------------------

    def _require_step(self, workflow: Workflow, step_id: str) -> WorkflowStep:
        step = workflow.get_step(step_id)
        if step is None:
            raise WorkflowNotFoundError(f"Step '{step_id}' not found in workflow {workflow.id}")
        return step

    def _condition_holds(self, workflow: Workflow, step: WorkflowStep) -> bool:
        if workflow.type != WorkflowType.CONDITIONAL:
            return True
        predicate = self.predicates.get(step.id)
        if predicate is not None:
            return bool(predicate(workflow.variables))
        return evaluate_condition(step.condition, workflow.variables)

    @staticmethod
    def _has_failure(workflow: Workflow) -> bool:
        return any(s.status == StepStatus.FAILED for s in workflow.steps)

    def _check_can_start(self, workflow: Workflow, step: WorkflowStep) -> None:
        if workflow.status != WorkflowStatus.ACTIVE:
            raise WorkflowError(
                f"Cannot start step '{step.id}': workflow is {workflow.status.value}"
            )
        if step.status != StepStatus.PENDING:
            raise WorkflowError(f"Step '{step.id}' is {step.status.value} and cannot start")

        statuses = {s.id: s.status for s in workflow.steps}
        unmet = [d for d in step.dependencies if statuses[d] != StepStatus.COMPLETED]
        if unmet:
            raise WorkflowError(
                f"Step '{step.id}' cannot start before its dependencies complete: "
                f"{', '.join(unmet)}"
            )
        if workflow.failure_policy == FailurePolicy.FAIL_FAST and self._has_failure(workflow):
            raise WorkflowError(f"Step '{step.id}' cannot start after a failure (fail-fast)")
        if not self._condition_holds(workflow, step):
            raise WorkflowError(f"Condition for step '{step.id}' does not hold")

        if workflow.type == WorkflowType.SEQUENTIAL:
            running = [s.id for s in workflow.steps if s.status == StepStatus.RUNNING]
            if running:
                raise WorkflowError(
                    f"Step '{step.id}' cannot start while '{running[0]}' is running"
                )
            index = workflow.step_index(step.id)
            earlier = [
                s.id for s in workflow.steps[:index] if s.status == StepStatus.PENDING
            ]
            if earlier:
                raise WorkflowError(
                    f"Step '{step.id}' cannot start before earlier step '{earlier[0]}'"
                )

    def _skip_unreachable(self, workflow: Workflow) -> tuple[WorkflowStep, ...]:
        """Mark pending steps that can no longer run as skipped, until stable."""
        steps = list(workflow.steps)
        fail_fast = workflow.failure_policy == FailurePolicy.FAIL_FAST
        changed = True
        while changed:
            changed = False
            statuses = {s.id: s.status for s in steps}
            failed = [sid for sid, st in statuses.items() if st == StepStatus.FAILED]
            for index, step in enumerate(steps):
                if step.status != StepStatus.PENDING:
                    continue
                reason = None
                blocked = [
                    d for d in step.dependencies
                    if statuses[d] in (StepStatus.FAILED, StepStatus.SKIPPED)
                ]
                if blocked:
                    reason = f"Skipped: dependency '{blocked[0]}' {statuses[blocked[0]].value}"
                elif fail_fast and failed:
                    reason = f"Skipped: step '{failed[0]}' failed"
                elif (
                    workflow.type == WorkflowType.CONDITIONAL
                    and all(statuses[d] == StepStatus.COMPLETED for d in step.dependencies)
                    and not self._condition_holds(workflow, step)
                ):
                    reason = "Skipped: condition not met"
                if reason:
                    steps[index] = replace(
                        step, status=StepStatus.SKIPPED, error=reason, completed_at=datetime.now()
                    )
                    changed = True
        return tuple(steps)

    def _settle(self, workflow: Workflow) -> None:
        if workflow.status not in (WorkflowStatus.ACTIVE, WorkflowStatus.PAUSED):
            return
        workflow.steps = self._skip_unreachable(workflow)
        status = derive_status(workflow)
        if status != WorkflowStatus.ACTIVE and status != workflow.status:
            workflow.status = status
            logger.info("Workflow %s %s", workflow.id, status.value)

    def _commit(
        self, workflow: Workflow, step: WorkflowStep, variables_changed: bool = False
    ) -> None:
        previous_status = workflow.status
        index = workflow.step_index(step.id)
        workflow.steps = workflow.steps[:index] + (step,) + workflow.steps[index + 1:]
        self._settle(workflow)
        workflow.updated_at = datetime.now()
        if self.store is None:
            return
        if (
            variables_changed
            or workflow.status != previous_status
            or step.status == StepStatus.RUNNING
        ):
            self.store.save_workflow(workflow)
        else:
            self.store.replace_steps(workflow.id, workflow.steps)

    def _save(self, workflow: Workflow) -> None:
        if self.store is not None:
            self.store.save_workflow(workflow)


# ---------------------------------------------------------------------------
# YAML specs and templates
# ---------------------------------------------------------------------------


@dataclass
class WorkflowSpec:
    """
    Parsed and validated workflow definition.

    Load from YAML:
        spec = WorkflowSpec.from_yaml("workflow.yaml")

    Build a runnable workflow:
        workflow = spec.to_workflow(created_by="analyst@example.com")
    """

    version: str
    name: str
    description: str = ""
    type: WorkflowType = WorkflowType.SEQUENTIAL
    failure_policy: FailurePolicy = FailurePolicy.SKIP_ON_FAILURE
    variables: dict[str, Any] = field(default_factory=dict)
    steps: list[WorkflowStep] = field(default_factory=list)
    source_path: Optional[Path] = None

    @classmethod
    def from_yaml(cls, path: str | Path) -> "WorkflowSpec":
        """
        Load and validate a workflow from a YAML file.

        Raises:
            WorkflowNotFoundError: File not found
            WorkflowValidationError: Invalid YAML structure
        """
        path = Path(path)
        if not path.exists():
            raise WorkflowNotFoundError(f"Workflow file not found: {path}")

        with open(path, "r") as f:
            return cls.from_string(f.read(), source_name=str(path))

    @classmethod
    def from_string(cls, yaml_content: str, source_name: str = "<string>") -> "WorkflowSpec":
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise WorkflowValidationError(
                f"Invalid YAML syntax: {e}",
                suggestion="Check your YAML indentation and syntax",
            )

        return cls.from_dict(data, Path(source_name))

    @classmethod
    def from_dict(cls, data: Any, source_path: Optional[Path] = None) -> "WorkflowSpec":
        if not isinstance(data, dict):
            raise WorkflowValidationError(
                "Workflow must be a YAML object",
                suggestion=f"Your YAML file should start with 'riskvanguard: \"{SPEC_VERSION}\"'",
            )
        spec = cls._parse(data, source_path)
        spec._validate()
        return spec

    @classmethod
    def _parse(cls, data: dict, source_path: Optional[Path]) -> "WorkflowSpec":
        version = data.get("riskvanguard")
        if not version:
            raise WorkflowValidationError(
                "Missing 'riskvanguard' version field",
                path="riskvanguard",
                suggestion=f"Add 'riskvanguard: \"{SPEC_VERSION}\"' at the top of your file",
            )

        info = data.get("info", {})
        if not isinstance(info, dict):
            raise WorkflowValidationError(
                "'info' must be an object",
                path="info",
                suggestion='info:\n  name: "My Workflow"\n  description: "..."',
            )
        name = info.get("name")
        if not name:
            raise WorkflowValidationError(
                "Missing workflow name",
                path="info.name",
                suggestion="Add 'name: \"My Workflow\"' under 'info:'",
            )

        workflow_type = cls._enum(WorkflowType, data.get("type", "sequential"), "type")
        failure_policy = cls._enum(
            FailurePolicy, data.get("failure_policy", "skip-on-failure"), "failure_policy"
        )

        variables = data.get("variables") or {}
        if not isinstance(variables, dict):
            raise WorkflowValidationError("'variables' must be an object", path="variables")

        raw_steps = data.get("steps")
        if not raw_steps:
            raise WorkflowValidationError(
                "Missing 'steps' section",
                path="steps",
                suggestion="Add at least one step under 'steps:'",
            )

        return cls(
            version=str(version),
            name=name,
            description=info.get("description", ""),
            type=workflow_type,
            failure_policy=failure_policy,
            variables=variables,
            steps=cls._parse_steps(raw_steps),
            source_path=source_path,
        )

    @staticmethod
    def _enum(enum_class: Any, value: Any, path: str) -> Any:
        try:
            return enum_class(value)
        except ValueError:
            options = ", ".join(e.value for e in enum_class)
            raise WorkflowValidationError(
                f"Invalid value '{value}'", path=path, suggestion=f"Use one of: {options}"
            )

    @classmethod
    def _parse_steps(cls, raw_steps: Any) -> list[WorkflowStep]:
        # Steps may be a mapping keyed by id or a list of objects with an id
        if isinstance(raw_steps, dict):
            entries = []
            for step_id, body in raw_steps.items():
                if body is not None and not isinstance(body, dict):
                    raise WorkflowValidationError(
                        "Step must be an object", path=f"steps.{step_id}"
                    )
                entries.append({**(body or {}), "id": step_id})
        elif isinstance(raw_steps, list):
            entries = raw_steps
        else:
            raise WorkflowValidationError("'steps' must be a mapping or a list", path="steps")

        steps = []
        for position, entry in enumerate(entries):
            if not isinstance(entry, dict) or not entry.get("id"):
                raise WorkflowValidationError(
                    "Step is missing an id", path=f"steps[{position}]"
                )
            step_id = str(entry["id"])
            depends_on = entry.get("depends_on", entry.get("dependencies", []))
            if isinstance(depends_on, str):
                depends_on = [depends_on]
            steps.append(
                WorkflowStep(
                    id=step_id,
                    name=entry.get("name") or step_id,
                    type=cls._enum(
                        StepType, entry.get("type", "analysis"), f"steps.{step_id}.type"
                    ),
                    dependencies=tuple(depends_on or ()),
                    config=entry.get("config") or {},
                    condition=entry.get("condition") or entry.get("when"),
                )
            )
        return steps

    def _validate(self) -> None:
        check_dependencies(self.steps, sequential=self.type == WorkflowType.SEQUENTIAL)
        for step in self.steps:
            if step.condition:
                try:
                    evaluate_condition(step.condition, {})
                except WorkflowValidationError as e:
                    raise WorkflowValidationError(
                        e.message, path=f"steps.{step.id}.condition"
                    ) from e

    def to_workflow(
        self,
        workflow_id: Optional[str] = None,
        variables: Optional[dict[str, Any]] = None,
        created_by: Optional[str] = None,
        is_template: bool = False,
    ) -> Workflow:
        return Workflow(
            id=workflow_id or str(uuid4()),
            name=self.name,
            description=self.description,
            type=self.type,
            steps=tuple(s.reset() for s in self.steps),
            variables={**self.variables, **(variables or {})},
            failure_policy=self.failure_policy,
            is_template=is_template,
            created_by=created_by,
        )

    def __repr__(self) -> str:
        return f"WorkflowSpec(name={self.name!r}, steps={len(self.steps)})"


def validate_workflow(path: str | Path) -> list[str]:
    """
    Validate a workflow file and return any warnings.

    Raises:
        WorkflowValidationError: If workflow is invalid
    """
    spec = WorkflowSpec.from_yaml(path)

    warnings = []
    if not spec.description:
        warnings.append("Workflow has no description")

    for step in spec.steps:
        if step.type == StepType.ANALYSIS and not step.config.get("vertical"):
            warnings.append(f"Analysis step '{step.id}' has no vertical configured")
        if step.condition and spec.type != WorkflowType.CONDITIONAL:
            warnings.append(
                f"Step '{step.id}' has a condition but the workflow is {spec.type.value}; "
                "it will be ignored"
            )

    return warnings


STEP_TEMPLATES: dict[str, dict[str, Any]] = {
    "energy-lease-review": {
        "riskvanguard": SPEC_VERSION,
        "info": {
            "name": "Energy lease review",
            "description": "Analyze an oil and gas lease, route it through legal review and sign-off.",
        },
        "type": "sequential",
        "failure_policy": "fail-fast",
        "steps": {
            "intake": {
                "name": "Intake summary",
                "type": "prompt",
                "config": {"template": "Review lease {{document_name}} for {{client}}"},
            },
            "analyze": {
                "name": "Lease analysis",
                "type": "analysis",
                "depends_on": ["intake"],
                "config": {"vertical": "energy", "document_type": "lease"},
            },
            "legal_review": {
                "name": "Legal review",
                "type": "review",
                "depends_on": ["analyze"],
            },
            "approval": {
                "name": "Land manager approval",
                "type": "approval",
                "depends_on": ["legal_review"],
            },
            "report": {
                "name": "Lease report",
                "type": "report",
                "depends_on": ["approval"],
            },
        },
    },
    "government-contract-review": {
        "riskvanguard": SPEC_VERSION,
        "info": {
            "name": "Government contract review",
            "description": "Analyze a federal contract, then run compliance and pricing reviews in parallel.",
        },
        "type": "parallel",
        "failure_policy": "skip-on-failure",
        "steps": {
            "analyze": {
                "name": "Contract analysis",
                "type": "analysis",
                "config": {"vertical": "government", "document_type": "contract"},
            },
            "compliance_review": {
                "name": "FAR/DFARS compliance review",
                "type": "review",
                "depends_on": ["analyze"],
            },
            "pricing_review": {
                "name": "Pricing review",
                "type": "review",
                "depends_on": ["analyze"],
            },
            "approval": {
                "name": "Contracting officer approval",
                "type": "approval",
                "depends_on": ["compliance_review", "pricing_review"],
            },
            "report": {
                "name": "Contract report",
                "type": "report",
                "depends_on": ["approval"],
            },
        },
    },
    "insurance-claim-review": {
        "riskvanguard": SPEC_VERSION,
        "info": {
            "name": "Insurance claim review",
            "description": "Analyze a claim and escalate by risk level.",
        },
        "type": "conditional",
        "failure_policy": "skip-on-failure",
        "steps": {
            "analyze": {
                "name": "Claim analysis",
                "type": "analysis",
                "config": {"vertical": "insurance", "document_type": "claim"},
            },
            "adjuster_review": {
                "name": "Adjuster review",
                "type": "review",
                "depends_on": ["analyze"],
                "condition": "risk_level != low",
            },
            "siu_referral": {
                "name": "Special investigations referral",
                "type": "review",
                "depends_on": ["analyze"],
                "condition": "risk_level == critical",
            },
            "report": {
                "name": "Claim report",
                "type": "report",
                "depends_on": ["analyze"],
            },
        },
    },
}


def list_templates() -> list[dict[str, Any]]:
    """Name, description, type and step count of each built-in template."""
    templates = []
    for name, data in STEP_TEMPLATES.items():
        templates.append(
            {
                "name": name,
                "title": data["info"]["name"],
                "description": data["info"].get("description", ""),
                "type": data.get("type", "sequential"),
                "steps": len(data["steps"]),
            }
        )
    return templates


def workflow_from_template(
    name: str,
    variables: Optional[dict[str, Any]] = None,
    created_by: Optional[str] = None,
) -> Workflow:
    """
    Expand a built-in template into a new draft workflow.

    Raises:
        WorkflowNotFoundError: No template with that name
    """
    template = STEP_TEMPLATES.get(name)
    if template is None:
        raise WorkflowNotFoundError(
            f"Unknown workflow template '{name}'. "
            f"Available: {', '.join(sorted(STEP_TEMPLATES))}"
        )
    spec = WorkflowSpec.from_dict(template, Path(f"<template:{name}>"))
    return spec.to_workflow(variables=variables, created_by=created_by)
