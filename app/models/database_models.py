"""
SQLAlchemy ORM models for the AI readiness database.
Loosely-typed LLM payloads are stored in JSON columns.
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    JSON,
)
from sqlalchemy.orm import relationship
import enum

from app.database import Base
from app.utils.helpers import utcnow


# Enums
class DocumentStatus(str, enum.Enum):
    """Lifecycle of an uploaded document."""

    PROCESSING = "processing"
    UPLOADED = "uploaded"
    FAILED = "failed"


# Models
class User(Base):
    """User account (identified by the X-User-Id header)."""

    __tablename__ = "users"

    id = Column(String(255), primary_key=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    projects = relationship("Project", back_populates="user", cascade="all, delete-orphan")


class Project(Base):
    """Client engagement owning documents, one submission and at most one report."""

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(String(32), nullable=False, unique=True, index=True)  # PRJ-XXXXXXXX
    name = Column(String(255), nullable=False)
    client_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="projects")
    documents = relationship("Document", back_populates="project", cascade="all, delete-orphan")


class Document(Base):
    """Uploaded file with its LLM-extracted context summary."""

    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(
        String(32), ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False, index=True
    )
    original_name = Column(String(255), nullable=False)
    storage_name = Column(String(512), nullable=False)  # key in the file store
    file_type = Column(String(50), nullable=False)  # pdf, docx
    size = Column(Integer, nullable=False, default=0)
    status = Column(String(32), nullable=False, default=DocumentStatus.PROCESSING.value)
    context = Column(Text, nullable=True)  # LLM summary of the extracted text
    uploaded_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    # Relationships
    project = relationship("Project", back_populates="documents")


class QuestionnaireSubmission(Base):
    """The latest set of questionnaire answers for a project (replaced wholesale)."""

    __tablename__ = "questionnaire_submissions"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(String(32), nullable=False, unique=True, index=True)
    submission = Column(JSON, nullable=False, default=list)  # [{questionId, questionLabel, answers}]
    version = Column(Integer, nullable=False, default=1)  # bumped on every submit
    submitted_at = Column(DateTime, default=utcnow, nullable=False)


class AnalysisReport(Base):
    """Merged four-category readiness report for a project."""

    __tablename__ = "analysis_reports"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(String(32), nullable=False, unique=True, index=True)
    report = Column(JSON, nullable=False)
    # Submission version the report was computed from
    submission_version = Column(Integer, nullable=False)
    generated_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)
