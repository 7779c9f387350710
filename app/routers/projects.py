"""
Project management endpoints.

Route summary
-------------
POST   /api/projects               — create project
GET    /api/projects               — list user's projects, newest first
GET    /api/projects/{project_id}  — project detail
PUT    /api/projects/{project_id}  — update name / client / description
DELETE /api/projects/{project_id}  — delete project with its documents,
                                     submission and report
"""
import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.auth import get_authorized_project, get_current_user_id, get_or_create_user
from app.models.database_models import (
    AnalysisReport,
    Document,
    Project,
    QuestionnaireSubmission,
    User,
)
from app.models.schemas import ProjectCreate, ProjectResponse, ProjectUpdate
from app.services.file_storage import FileStorage, get_file_storage
from app.utils.helpers import generate_project_id

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_response(project: Project, document_count: int = 0) -> ProjectResponse:
    return ProjectResponse(
        id=project.id,
        project_id=project.project_id,
        name=project.name,
        client_name=project.client_name,
        description=project.description,
        document_count=document_count,
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


async def _document_count(db: AsyncSession, project_id: str) -> int:
    result = await db.execute(
        select(func.count(Document.id)).where(Document.project_id == project_id)
    )
    return result.scalar() or 0


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    body: ProjectCreate,
    user: User = Depends(get_or_create_user),
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    """Create a new project for the authenticated user."""
    project = Project(
        project_id=generate_project_id(),
        name=body.name,
        client_name=body.client_name,
        description=body.description,
        user_id=user.id,
    )
    db.add(project)
    await db.flush()

    logger.info("Created project %s name=%r for user=%s", project.project_id, project.name, user.id)
    return _to_response(project)


@router.get("", response_model=List[ProjectResponse])
async def list_projects(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[ProjectResponse]:
    """List all projects belonging to the authenticated user, newest first."""
    result = await db.execute(
        select(Project)
        .where(Project.user_id == user_id)
        .order_by(Project.created_at.desc(), Project.id.desc())
    )
    projects = result.scalars().all()

    # Batch-fetch document counts
    keys = [p.project_id for p in projects]
    doc_counts: Dict[str, int] = {}
    if keys:
        dc_result = await db.execute(
            select(Document.project_id, func.count(Document.id).label("cnt"))
            .where(Document.project_id.in_(keys))
            .group_by(Document.project_id)
        )
        doc_counts = {row.project_id: row.cnt for row in dc_result}

    return [_to_response(p, doc_counts.get(p.project_id, 0)) for p in projects]


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project: Project = Depends(get_authorized_project),
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    """Get project details."""
    return _to_response(project, await _document_count(db, project.project_id))


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    body: ProjectUpdate,
    project: Project = Depends(get_authorized_project),
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    """Update a project; only the fields present in the body change."""
    for field, value in body.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(project, field, value)
    await db.flush()

    logger.info("Updated project %s", project.project_id)
    return _to_response(project, await _document_count(db, project.project_id))


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project: Project = Depends(get_authorized_project),
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
) -> Response:
    """Delete a project, its stored files, its submission and its report."""
    key = project.project_id

    docs = await db.execute(select(Document.storage_name).where(Document.project_id == key))
    for storage_name in docs.scalars().all():
        await storage.delete(storage_name)

    await db.execute(delete(AnalysisReport).where(AnalysisReport.project_id == key))
    await db.execute(delete(QuestionnaireSubmission).where(QuestionnaireSubmission.project_id == key))
    await db.delete(project)  # documents cascade via the relationship
    await db.flush()

    logger.info("Deleted project %s", key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
