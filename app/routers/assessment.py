"""
Assessment report endpoints.

POST /analyze/{project_id}          — run the four-category analysis and save it
GET  /report/{project_id}           — saved report, 404 if it must be generated
GET  /report/download/{project_id}  — saved report as a DOCX file
"""
import asyncio
import logging
import time
from typing import Any, Dict

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.auth import get_authorized_project
from app.models.database_models import Project
from app.models.schemas import AnalysisReportResponse
from app.services.assessment import AssessmentService
from app.services.llm_client import LLMClient, get_llm_client
from app.services.report_renderer import DOCX_MEDIA_TYPE, render_report_docx, report_filename

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/analyze/{project_id}", response_model=Dict[str, Any])
async def analyze(
    project: Project = Depends(get_authorized_project),
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
) -> Dict[str, Any]:
    """
    Generate the AI readiness report from the saved submission and document
    context.  Replaces any earlier report for the project.
    """
    t0 = time.monotonic()
    report = await AssessmentService(db, llm).run_analysis(project.project_id)
    logger.info(
        "Analysis for %s finished in %.2f s",
        project.project_id,
        time.monotonic() - t0,
    )
    return report


@router.get("/report/{project_id}", response_model=AnalysisReportResponse)
async def get_report(
    project: Project = Depends(get_authorized_project),
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
) -> AnalysisReportResponse:
    """Return the saved report; 404 tells the frontend to run the analysis."""
    record = await AssessmentService(db, llm).get_report(project.project_id)
    return AnalysisReportResponse.model_validate(record)


@router.get("/report/download/{project_id}")
async def download_report(
    project: Project = Depends(get_authorized_project),
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
) -> Response:
    """Download the saved report as a Word document."""
    record = await AssessmentService(db, llm).get_report(project.project_id)
    content = await asyncio.to_thread(render_report_docx, record)
    return Response(
        content=content,
        media_type=DOCX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{report_filename(project.project_id)}"'
        },
    )
