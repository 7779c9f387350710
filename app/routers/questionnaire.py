"""
Questionnaire endpoints.

GET  /generate/{project_id}    — LLM-generated questions from document context
GET  /submission/{project_id}  — current submission, or ``{"submission": null}``
POST /submit                   — replace the submission and clear the report
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.auth import get_authorized_project, get_current_user_id, load_owned_project
from app.models.database_models import Project
from app.models.schemas import (
    QuestionnaireResponse,
    SubmissionLookupResponse,
    SubmissionRecordResponse,
    SubmitQuestionnaireRequest,
    SubmitQuestionnaireResponse,
)
from app.services.assessment import AssessmentService
from app.services.llm_client import LLMClient, get_llm_client
from app.services.questionnaire import generate_questionnaire
from app.utils.helpers import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/generate/{project_id}", response_model=QuestionnaireResponse)
async def generate(
    project: Project = Depends(get_authorized_project),
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
) -> QuestionnaireResponse:
    """Generate a questionnaire tailored to the project's uploaded documents."""
    questions = await generate_questionnaire(db, llm, project.project_id)
    return QuestionnaireResponse(
        project_id=project.project_id,
        questionnaire=questions,
        generated_at=utcnow(),
    )


@router.get("/submission/{project_id}", response_model=SubmissionLookupResponse)
async def get_submission(
    project: Project = Depends(get_authorized_project),
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
) -> SubmissionLookupResponse:
    """Return the saved submission; null tells the frontend to generate one."""
    record = await AssessmentService(db, llm).get_submission(project.project_id)
    if record is None:
        return SubmissionLookupResponse(submission=None)
    return SubmissionLookupResponse(submission=SubmissionRecordResponse.model_validate(record))


@router.post(
    "/submit",
    response_model=SubmitQuestionnaireResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit(
    body: SubmitQuestionnaireRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
) -> SubmitQuestionnaireResponse:
    """Save the answers (replacing earlier ones) and invalidate the report."""
    project = await load_owned_project(db, body.project_id, user_id)
    record = await AssessmentService(db, llm).submit_submission(project.project_id, body.submission)
    return SubmitQuestionnaireResponse(version=record.version)
