"""
Record store interface and the default in-memory implementation.

The pipeline and workflow engine only ever save whole records and look them
up by id. Filtering, pagination and transactions belong to the store.
"""

from abc import ABC, abstractmethod
from copy import deepcopy
from dataclasses import replace
from datetime import datetime
from typing import Optional

from .models import Analysis, Prompt, Workflow, WorkflowStep


class RecordStore(ABC):
    """Where prompts, analyses and workflows are persisted."""

    @abstractmethod
    def save_prompt(self, prompt: Prompt) -> Prompt:
        ...

    @abstractmethod
    def get_prompt(self, prompt_id: str) -> Optional[Prompt]:
        ...

    @abstractmethod
    def save_analysis(self, analysis: Analysis) -> Analysis:
        ...

    @abstractmethod
    def get_analysis(self, analysis_id: str) -> Optional[Analysis]:
        ...

    @abstractmethod
    def save_workflow(self, workflow: Workflow) -> Workflow:
        ...

    @abstractmethod
    def get_workflow(self, workflow_id: str) -> Optional[Workflow]:
        ...

    @abstractmethod
    def replace_steps(self, workflow_id: str, steps: tuple[WorkflowStep, ...]) -> None:
        """Swap the whole step tuple of a stored workflow in one write."""


class InMemoryStore(RecordStore):
    """Dictionary-backed store. Records are copied on the way in and out."""

    def __init__(self):
        self._prompts: dict[str, Prompt] = {}
        self._analyses: dict[str, Analysis] = {}
        self._workflows: dict[str, Workflow] = {}

    def save_prompt(self, prompt: Prompt) -> Prompt:
        if prompt.created_at is None:
            prompt.created_at = datetime.now()
        self._prompts[prompt.id] = deepcopy(prompt)
        return prompt

    def get_prompt(self, prompt_id: str) -> Optional[Prompt]:
        prompt = self._prompts.get(prompt_id)
        return deepcopy(prompt) if prompt else None

    def save_analysis(self, analysis: Analysis) -> Analysis:
        if analysis.created_at is None:
            analysis.created_at = datetime.now()
        self._analyses[analysis.id] = deepcopy(analysis)
        return analysis

    def get_analysis(self, analysis_id: str) -> Optional[Analysis]:
        analysis = self._analyses.get(analysis_id)
        return deepcopy(analysis) if analysis else None

    def save_workflow(self, workflow: Workflow) -> Workflow:
        now = datetime.now()
        if workflow.created_at is None:
            workflow.created_at = now
        workflow.updated_at = now
        self._workflows[workflow.id] = deepcopy(workflow)
        return workflow

    def get_workflow(self, workflow_id: str) -> Optional[Workflow]:
        workflow = self._workflows.get(workflow_id)
        return deepcopy(workflow) if workflow else None

    def replace_steps(self, workflow_id: str, steps: tuple[WorkflowStep, ...]) -> None:
        stored = self._workflows.get(workflow_id)
        if stored is None:
            return
        self._workflows[workflow_id] = replace(
            stored, steps=tuple(steps), updated_at=datetime.now()
        )
