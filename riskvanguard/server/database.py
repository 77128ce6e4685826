"""
Database layer for RiskVanguard server using SQLAlchemy.
Supports SQLite (default) and PostgreSQL.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    create_engine,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..models import Analysis, Prompt, Workflow, WorkflowStep
from ..store import RecordStore

Base = declarative_base()


class PromptModel(Base):
    __tablename__ = "prompts"

    id = Column(String(36), primary_key=True)
    content = Column(Text, nullable=False)
    vertical = Column(String(100), nullable=False)
    document_type = Column(String(100), default="")
    metadata_ = Column("metadata", JSON, default=dict)
    context = Column(JSON, default=dict)
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class AnalysisModel(Base):
    __tablename__ = "analyses"

    id = Column(String(36), primary_key=True)
    prompt_id = Column(String(36), ForeignKey("prompts.id"), nullable=False)
    domain = Column(String(100), nullable=False)
    status = Column(String(50), default="pending")
    domain_agent_result = Column(JSON, nullable=True)
    vanguard_results = Column(JSON, default=dict)
    overall_score = Column(Float, nullable=True)
    risk_level = Column(String(50), nullable=True)
    summary = Column(Text, nullable=True)
    processing_time_ms = Column(Integer, nullable=True)
    error = Column(Text, nullable=True)
    error_code = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (Index("idx_analyses_prompt_id", "prompt_id"),)


class WorkflowModel(Base):
    __tablename__ = "workflows"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, default="")
    type = Column(String(50), default="sequential")
    steps = Column(JSON, default=list)
    variables = Column(JSON, default=dict)
    status = Column(String(50), default="draft")
    failure_policy = Column(String(50), default="skip-on-failure")
    current_step = Column(String(255), nullable=True)
    execution_count = Column(Integer, default=0)
    last_executed_at = Column(DateTime, nullable=True)
    is_template = Column(Boolean, default=False)
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (Index("idx_workflows_status", "status"),)


def _columns(model: Any) -> dict[str, Any]:
    return {c.key: getattr(model, c.key) for c in model.__mapper__.column_attrs}


class Database:
    """Database interface for RiskVanguard server."""

    def __init__(self, database_url: str):
        self.database_url = database_url

        connect_args = {}
        if database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False

        self.engine = create_engine(
            database_url,
            connect_args=connect_args,
            poolclass=StaticPool if database_url.startswith("sqlite") else None,
        )
        self.SessionLocal = sessionmaker(bind=self.engine)

    def create_tables(self):
        """Create all tables."""
        Base.metadata.create_all(self.engine)

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()

    def save_prompt(self, session: Session, **kwargs) -> PromptModel:
        if "metadata" in kwargs:
            kwargs["metadata_"] = kwargs.pop("metadata")
        prompt = session.merge(PromptModel(**kwargs))
        session.commit()
        session.refresh(prompt)
        return prompt

    def get_prompt(self, session: Session, prompt_id: str) -> Optional[PromptModel]:
        return session.query(PromptModel).filter(PromptModel.id == prompt_id).first()

    def save_analysis(self, session: Session, **kwargs) -> AnalysisModel:
        analysis = session.merge(AnalysisModel(**kwargs))
        session.commit()
        session.refresh(analysis)
        return analysis

    def get_analysis(self, session: Session, analysis_id: str) -> Optional[AnalysisModel]:
        return session.query(AnalysisModel).filter(AnalysisModel.id == analysis_id).first()

    def save_workflow(self, session: Session, **kwargs) -> WorkflowModel:
        workflow = session.merge(WorkflowModel(**kwargs))
        session.commit()
        session.refresh(workflow)
        return workflow

    def get_workflow(self, session: Session, workflow_id: str) -> Optional[WorkflowModel]:
        return session.query(WorkflowModel).filter(WorkflowModel.id == workflow_id).first()

    def replace_workflow_steps(
        self, session: Session, workflow_id: str, steps: list[dict[str, Any]]
    ) -> Optional[WorkflowModel]:
        """Overwrite the whole steps column in a single UPDATE."""
        workflow = self.get_workflow(session, workflow_id)
        if not workflow:
            return None
        workflow.steps = steps
        workflow.updated_at = datetime.utcnow()
        session.commit()
        session.refresh(workflow)
        return workflow


class DatabaseStore(RecordStore):
    """RecordStore backed by a SQLAlchemy ``Database``; one session per call."""

    def __init__(self, db: Database):
        self.db = db

    def save_prompt(self, prompt: Prompt) -> Prompt:
        if prompt.created_at is None:
            prompt.created_at = datetime.now()
        session = self.db.get_session()
        try:
            fields = prompt.to_dict()
            fields["created_at"] = prompt.created_at
            self.db.save_prompt(session, **fields)
        finally:
            session.close()
        return prompt

    def get_prompt(self, prompt_id: str) -> Optional[Prompt]:
        session = self.db.get_session()
        try:
            model = self.db.get_prompt(session, prompt_id)
            if model is None:
                return None
            data = _columns(model)
            data["metadata"] = data.pop("metadata_")
            return Prompt.from_dict(data)
        finally:
            session.close()

    def save_analysis(self, analysis: Analysis) -> Analysis:
        if analysis.created_at is None:
            analysis.created_at = datetime.now()
        session = self.db.get_session()
        try:
            fields = analysis.to_dict()
            fields.update(
                created_at=analysis.created_at,
                started_at=analysis.started_at,
                completed_at=analysis.completed_at,
            )
            self.db.save_analysis(session, **fields)
        finally:
            session.close()
        return analysis

    def get_analysis(self, analysis_id: str) -> Optional[Analysis]:
        session = self.db.get_session()
        try:
            model = self.db.get_analysis(session, analysis_id)
            return Analysis.from_dict(_columns(model)) if model else None
        finally:
            session.close()

    def save_workflow(self, workflow: Workflow) -> Workflow:
        now = datetime.now()
        if workflow.created_at is None:
            workflow.created_at = now
        workflow.updated_at = now
        session = self.db.get_session()
        try:
            fields = workflow.to_dict()
            fields.update(
                last_executed_at=workflow.last_executed_at,
                created_at=workflow.created_at,
                updated_at=workflow.updated_at,
            )
            self.db.save_workflow(session, **fields)
        finally:
            session.close()
        return workflow

    def get_workflow(self, workflow_id: str) -> Optional[Workflow]:
        session = self.db.get_session()
        try:
            model = self.db.get_workflow(session, workflow_id)
            return Workflow.from_dict(_columns(model)) if model else None
        finally:
            session.close()

    def replace_steps(self, workflow_id: str, steps: tuple[WorkflowStep, ...]) -> None:
        session = self.db.get_session()
        try:
            self.db.replace_workflow_steps(session, workflow_id, [s.to_dict() for s in steps])
        finally:
            session.close()


_database: Optional[Database] = None


def get_database(database_url: str = "sqlite:///./riskvanguard.db") -> Database:
    """Get or create the database instance."""
    global _database
    if _database is None:
        _database = Database(database_url)
        _database.create_tables()
    return _database
