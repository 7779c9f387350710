"""Database and schema models for the AI readiness backend."""
from app.models.database_models import (
    User,
    Project,
    Document,
    DocumentStatus,
    QuestionnaireSubmission,
    AnalysisReport,
)
from app.models.schemas import (
    ProjectCreate,
    ProjectUpdate,
    ProjectResponse,
    DocumentResponse,
    DocumentUploadResponse,
    QuestionnaireResponse,
    SubmitQuestionnaireRequest,
    AnalysisReportResponse,
    HealthCheckResponse,
)

__all__ = [
    # Database models
    "User",
    "Project",
    "Document",
    "DocumentStatus",
    "QuestionnaireSubmission",
    "AnalysisReport",
    # Pydantic schemas
    "ProjectCreate",
    "ProjectUpdate",
    "ProjectResponse",
    "DocumentResponse",
    "DocumentUploadResponse",
    "QuestionnaireResponse",
    "SubmitQuestionnaireRequest",
    "AnalysisReportResponse",
    "HealthCheckResponse",
]
