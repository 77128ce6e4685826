"""
FastAPI application for RiskVanguard server.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..config import configure_logging
from ..exceptions import NotFoundError, RiskVanguardError
from ..executors import default_executors
from ..models import Prompt, StepStatus, Workflow
from ..pipeline import AnalysisPipeline
from ..registry import DomainAgentRegistry, create_default_registry, get_domain_agent
from ..store import RecordStore
from ..workflow import (
    SPEC_VERSION,
    WorkflowEngine,
    WorkflowSpec,
    list_templates,
    workflow_from_template,
)
from .config import ServerConfig
from .database import DatabaseStore, get_database

logger = logging.getLogger("riskvanguard.server")


class PromptCreate(BaseModel):
    content: str
    vertical: str
    document_type: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)
    context: Dict[str, Any] = Field(default_factory=dict)
    created_by: Optional[str] = None


class PromptResponse(BaseModel):
    id: str
    content: str
    vertical: str
    document_type: str
    metadata: Dict[str, Any]
    context: Dict[str, Any]
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class AnalysisResponse(BaseModel):
    id: str
    prompt_id: str
    domain: str
    status: str
    domain_agent_result: Optional[Dict[str, Any]] = None
    vanguard_results: Dict[str, Any] = Field(default_factory=dict)
    overall_score: Optional[float] = None
    risk_level: Optional[str] = None
    summary: Optional[str] = None
    processing_time_ms: Optional[int] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class StepCreate(BaseModel):
    id: str
    name: Optional[str] = None
    type: str = "analysis"
    depends_on: List[str] = Field(default_factory=list, alias="dependencies")
    config: Dict[str, Any] = Field(default_factory=dict)
    condition: Optional[str] = None

    class Config:
        populate_by_name = True


class WorkflowCreate(BaseModel):
    name: Optional[str] = None
    description: str = ""
    type: str = "sequential"
    failure_policy: str = "skip-on-failure"
    variables: Dict[str, Any] = Field(default_factory=dict)
    steps: List[StepCreate] = Field(default_factory=list)
    yaml: Optional[str] = None
    is_template: bool = False
    created_by: Optional[str] = None


class TemplateInstantiate(BaseModel):
    variables: Dict[str, Any] = Field(default_factory=dict)
    created_by: Optional[str] = None


class StepResponse(BaseModel):
    id: str
    name: str
    type: str
    dependencies: List[str]
    config: Dict[str, Any]
    condition: Optional[str] = None
    status: str
    result: Optional[Any] = None
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class WorkflowResponse(BaseModel):
    id: str
    name: str
    description: str
    type: str
    steps: List[StepResponse]
    variables: Dict[str, Any]
    status: str
    failure_policy: str
    current_step: Optional[str] = None
    execution_count: int
    last_executed_at: Optional[datetime] = None
    is_template: bool
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StepStatusUpdate(BaseModel):
    status: str
    result: Optional[Any] = None
    error: Optional[str] = None


class CloneRequest(BaseModel):
    name: Optional[str] = None


def create_app(config: Optional[ServerConfig] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if config is None:
        config = ServerConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = get_database(config.database_url)
        store = DatabaseStore(db)
        registry = create_default_registry(config.policy)
        pipeline = AnalysisPipeline(registry, store=store, policy=config.policy)
        app.state.db = db
        app.state.config = config
        app.state.store = store
        app.state.registry = registry
        app.state.pipeline = pipeline
        app.state.engine = WorkflowEngine(store=store, executors=default_executors(pipeline))
        logger.info("RiskVanguard server ready with %d domain agents", len(registry))
        yield

    app = FastAPI(
        title="RiskVanguard Server",
        description="Document risk analysis and review workflows",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RiskVanguardError)
    async def riskvanguard_error_handler(request: Request, exc: RiskVanguardError):
        body: Dict[str, Any] = {"error": exc.code, "message": exc.message}
        errors = getattr(exc, "errors", None)
        if errors:
            body["errors"] = errors
        if exc.response:
            body.update(exc.response)
        return JSONResponse(status_code=exc.status_code or 500, content=body)

    def get_store() -> RecordStore:
        return app.state.store

    def get_registry() -> DomainAgentRegistry:
        return app.state.registry

    def get_pipeline() -> AnalysisPipeline:
        return app.state.pipeline

    def get_engine() -> WorkflowEngine:
        return app.state.engine

    def validate_api_key(x_api_key: str = Header(None)) -> str:
        if x_api_key is None or x_api_key not in app.state.config.api_keys:
            raise HTTPException(status_code=401, detail="Invalid or missing API key")
        return x_api_key

    def load_workflow(store: RecordStore, workflow_id: str) -> Workflow:
        workflow = store.get_workflow(workflow_id)
        if workflow is None:
            raise NotFoundError(f"Workflow {workflow_id} not found")
        return workflow

    @app.get("/.well-known/riskvanguard.json")
    async def discovery():
        return {
            "service": "RiskVanguard",
            "version": config.api_version,
            "workflowSpecVersion": SPEC_VERSION,
            "verticals": ["energy", "government", "insurance"],
            "capabilities": [
                "domain-analysis",
                "vanguard-scoring",
                "workflows",
                "workflow-templates",
            ],
            "openApiUrl": "/openapi.json",
        }

    # ==================== Agents ====================

    @app.get("/api/v1/agents")
    async def list_agents(
        registry: DomainAgentRegistry = Depends(get_registry),
        api_key: str = Depends(validate_api_key),
    ):
        return [
            {**agent.describe(), "aliases": registry.aliases_for(agent.id)}
            for agent in registry.all()
        ]

    @app.get("/api/v1/agents/{vertical}")
    async def get_agent(
        vertical: str,
        registry: DomainAgentRegistry = Depends(get_registry),
        api_key: str = Depends(validate_api_key),
    ):
        agent = get_domain_agent(registry, vertical)
        return {**agent.describe(), "aliases": registry.aliases_for(agent.id)}

    # ==================== Prompts & Analyses ====================

    @app.post("/api/v1/prompts", response_model=PromptResponse, status_code=201)
    async def create_prompt(
        body: PromptCreate,
        store: RecordStore = Depends(get_store),
        api_key: str = Depends(validate_api_key),
    ):
        prompt = Prompt(
            id=str(uuid4()),
            content=body.content,
            vertical=body.vertical,
            document_type=body.document_type,
            metadata=body.metadata,
            context=body.context,
            created_by=body.created_by or api_key,
        )
        store.save_prompt(prompt)
        return PromptResponse(**prompt.to_dict())

    @app.get("/api/v1/prompts/{prompt_id}", response_model=PromptResponse)
    async def get_prompt(
        prompt_id: str,
        store: RecordStore = Depends(get_store),
        api_key: str = Depends(validate_api_key),
    ):
        prompt = store.get_prompt(prompt_id)
        if prompt is None:
            raise NotFoundError(f"Prompt {prompt_id} not found")
        return PromptResponse(**prompt.to_dict())

    @app.post("/api/v1/prompts/{prompt_id}/analyze", response_model=AnalysisResponse)
    async def analyze_prompt(
        prompt_id: str,
        store: RecordStore = Depends(get_store),
        pipeline: AnalysisPipeline = Depends(get_pipeline),
        api_key: str = Depends(validate_api_key),
    ):
        prompt = store.get_prompt(prompt_id)
        if prompt is None:
            raise NotFoundError(f"Prompt {prompt_id} not found")

        analysis = pipeline.submit(prompt)
        try:
            await pipeline.run(analysis, prompt)
        except RiskVanguardError as e:
            e.response = {**(e.response or {}), "analysis_id": analysis.id}
            raise
        return AnalysisResponse(**analysis.to_dict())

    @app.get("/api/v1/analyses/{analysis_id}", response_model=AnalysisResponse)
    async def get_analysis(
        analysis_id: str,
        store: RecordStore = Depends(get_store),
        api_key: str = Depends(validate_api_key),
    ):
        analysis = store.get_analysis(analysis_id)
        if analysis is None:
            raise NotFoundError(f"Analysis {analysis_id} not found")
        return AnalysisResponse(**analysis.to_dict())

    # ==================== Workflows ====================

    @app.get("/api/v1/workflows/templates")
    async def get_templates(api_key: str = Depends(validate_api_key)):
        return list_templates()

    @app.post(
        "/api/v1/workflows/templates/{name}",
        response_model=WorkflowResponse,
        status_code=201,
    )
    async def instantiate_template(
        name: str,
        body: Optional[TemplateInstantiate] = None,
        store: RecordStore = Depends(get_store),
        api_key: str = Depends(validate_api_key),
    ):
        body = body or TemplateInstantiate()
        workflow = workflow_from_template(
            name, variables=body.variables, created_by=body.created_by or api_key
        )
        store.save_workflow(workflow)
        return WorkflowResponse(**workflow.to_dict())

    @app.post("/api/v1/workflows", response_model=WorkflowResponse, status_code=201)
    async def create_workflow(
        body: WorkflowCreate,
        store: RecordStore = Depends(get_store),
        api_key: str = Depends(validate_api_key),
    ):
        if body.yaml:
            spec = WorkflowSpec.from_string(body.yaml, source_name="<request>")
        else:
            spec = WorkflowSpec.from_dict(
                {
                    "riskvanguard": SPEC_VERSION,
                    "info": {"name": body.name, "description": body.description},
                    "type": body.type,
                    "failure_policy": body.failure_policy,
                    "variables": body.variables,
                    "steps": [s.model_dump() for s in body.steps],
                }
            )
        workflow = spec.to_workflow(
            created_by=body.created_by or api_key, is_template=body.is_template
        )
        store.save_workflow(workflow)
        return WorkflowResponse(**workflow.to_dict())

    @app.get("/api/v1/workflows/{workflow_id}", response_model=WorkflowResponse)
    async def get_workflow(
        workflow_id: str,
        store: RecordStore = Depends(get_store),
        api_key: str = Depends(validate_api_key),
    ):
        return WorkflowResponse(**load_workflow(store, workflow_id).to_dict())

    @app.get("/api/v1/workflows/{workflow_id}/eligible")
    async def get_eligible_steps(
        workflow_id: str,
        store: RecordStore = Depends(get_store),
        engine: WorkflowEngine = Depends(get_engine),
        api_key: str = Depends(validate_api_key),
    ):
        workflow = load_workflow(store, workflow_id)
        return {
            "workflow_id": workflow.id,
            "status": workflow.status.value,
            "eligible": [s.id for s in engine.eligible_steps(workflow)],
            "next": [s.id for s in engine.next_steps(workflow)],
            "order": engine.topological_order(workflow),
        }

    @app.post("/api/v1/workflows/{workflow_id}/start", response_model=WorkflowResponse)
    async def start_workflow(
        workflow_id: str,
        store: RecordStore = Depends(get_store),
        engine: WorkflowEngine = Depends(get_engine),
        api_key: str = Depends(validate_api_key),
    ):
        workflow = engine.start(load_workflow(store, workflow_id))
        return WorkflowResponse(**workflow.to_dict())

    @app.post("/api/v1/workflows/{workflow_id}/run", response_model=WorkflowResponse)
    async def run_workflow(
        workflow_id: str,
        store: RecordStore = Depends(get_store),
        engine: WorkflowEngine = Depends(get_engine),
        api_key: str = Depends(validate_api_key),
    ):
        workflow = await engine.run(load_workflow(store, workflow_id))
        return WorkflowResponse(**workflow.to_dict())

    @app.post("/api/v1/workflows/{workflow_id}/pause", response_model=WorkflowResponse)
    async def pause_workflow(
        workflow_id: str,
        store: RecordStore = Depends(get_store),
        engine: WorkflowEngine = Depends(get_engine),
        api_key: str = Depends(validate_api_key),
    ):
        workflow = engine.pause(load_workflow(store, workflow_id))
        return WorkflowResponse(**workflow.to_dict())

    @app.post("/api/v1/workflows/{workflow_id}/resume", response_model=WorkflowResponse)
    async def resume_workflow(
        workflow_id: str,
        store: RecordStore = Depends(get_store),
        engine: WorkflowEngine = Depends(get_engine),
        api_key: str = Depends(validate_api_key),
    ):
        workflow = engine.resume(load_workflow(store, workflow_id))
        return WorkflowResponse(**workflow.to_dict())

    @app.post("/api/v1/workflows/{workflow_id}/cancel", response_model=WorkflowResponse)
    async def cancel_workflow(
        workflow_id: str,
        store: RecordStore = Depends(get_store),
        engine: WorkflowEngine = Depends(get_engine),
        api_key: str = Depends(validate_api_key),
    ):
        workflow = engine.cancel(load_workflow(store, workflow_id))
        return WorkflowResponse(**workflow.to_dict())

    @app.post(
        "/api/v1/workflows/{workflow_id}/clone",
        response_model=WorkflowResponse,
        status_code=201,
    )
    async def clone_workflow(
        workflow_id: str,
        body: Optional[CloneRequest] = None,
        store: RecordStore = Depends(get_store),
        engine: WorkflowEngine = Depends(get_engine),
        api_key: str = Depends(validate_api_key),
    ):
        name = body.name if body else None
        workflow = engine.clone(load_workflow(store, workflow_id), name=name)
        return WorkflowResponse(**workflow.to_dict())

    @app.post(
        "/api/v1/workflows/{workflow_id}/steps/{step_id}/status",
        response_model=WorkflowResponse,
    )
    async def update_step_status(
        workflow_id: str,
        step_id: str,
        body: StepStatusUpdate,
        store: RecordStore = Depends(get_store),
        engine: WorkflowEngine = Depends(get_engine),
        api_key: str = Depends(validate_api_key),
    ):
        workflow = load_workflow(store, workflow_id)
        if body.status == StepStatus.RUNNING.value:
            engine.mark_running(workflow, step_id)
        elif body.status == StepStatus.COMPLETED.value:
            engine.mark_completed(workflow, step_id, body.result)
        elif body.status == StepStatus.FAILED.value:
            engine.mark_failed(workflow, step_id, body.error or "")
        else:
            raise HTTPException(
                status_code=422,
                detail="status must be one of: running, completed, failed",
            )
        return WorkflowResponse(**workflow.to_dict())

    return app


class RiskVanguardServer:
    """High-level server class for running RiskVanguard."""

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 8000,
        database_url: Optional[str] = None,
        api_keys: Optional[set] = None,
        **kwargs,
    ):
        self.config = ServerConfig(
            host=host,
            port=port,
            database_url=database_url,
            api_keys=api_keys or ServerConfig().api_keys,
            **kwargs,
        )
        configure_logging(self.config.log_level)
        self.app = create_app(self.config)

    def run(self):
        """Run the server (blocking)."""
        import uvicorn

        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level,
        )

    async def run_async(self):
        """Run the server asynchronously."""
        import uvicorn

        config = uvicorn.Config(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level,
        )
        server = uvicorn.Server(config)
        await server.serve()
