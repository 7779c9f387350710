"""
Pydantic schemas for request/response validation.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any
from datetime import datetime


# Project Schemas
class ProjectCreate(BaseModel):
    """Schema for creating a new project."""

    name: str = Field(..., min_length=1, max_length=255)
    client_name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class ProjectUpdate(BaseModel):
    """Schema for updating a project; omitted fields are left unchanged."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    client_name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None


class ProjectResponse(BaseModel):
    """Schema for project responses."""

    id: int
    project_id: str
    name: str
    client_name: str
    description: Optional[str] = None
    document_count: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Document Schemas
class DocumentResponse(BaseModel):
    """Schema for document details."""

    id: int
    project_id: str
    original_name: str
    storage_name: str
    file_type: str
    size: int
    status: str
    context: Optional[str] = None
    uploaded_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DocumentUploadResponse(BaseModel):
    """Schema for document upload response."""

    status: str = "success"
    message: str
    files: List[DocumentResponse]


class DeleteResponse(BaseModel):
    success: bool = True
    message: str


# Questionnaire Schemas
class QuestionSchema(BaseModel):
    """A generated multiple-choice question."""

    id: str
    label: str
    options: List[str] = []
    allowOther: bool = True


class QuestionnaireResponse(BaseModel):
    """Response for GET /api/questionnaire/generate/{project_id}."""

    project_id: str
    questionnaire: List[QuestionSchema]
    generated_at: datetime


class SubmitQuestionnaireRequest(BaseModel):
    """
    Request body for POST /api/questionnaire/submit.

    ``submission`` is validated by the service layer so malformed answers map
    to a 400 rather than FastAPI's generic 422.
    """

    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(..., min_length=1, alias="projectId")
    submission: Any = None


class SubmitQuestionnaireResponse(BaseModel):
    success: bool = True
    message: str = "Assessment submitted successfully."
    version: int


class SubmissionRecordResponse(BaseModel):
    project_id: str
    submission: List[Dict[str, Any]]
    version: int
    submitted_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SubmissionLookupResponse(BaseModel):
    """``submission`` is null when the project has not been assessed yet."""

    submission: Optional[SubmissionRecordResponse] = None


# Report Schemas
class AnalysisReportResponse(BaseModel):
    """Persisted report record."""

    project_id: str
    report: Dict[str, Any]
    submission_version: int
    generated_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Health Schemas
class HealthCheckResponse(BaseModel):
    """Schema for health check response."""

    status: str
    database: str
    llm: str
    llm_provider: str
    timestamp: datetime
