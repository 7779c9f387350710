"""
Document upload and management endpoints.

POST   /upload                 — store up to MAX_FILES_PER_UPLOAD PDF/DOCX files,
                                 extract text and summarise each into ``context``
GET    /project/{project_id}   — list a project's documents, newest first
DELETE /{document_id}          — delete the stored file and the record
"""
from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import List

import aiofiles
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.dependencies.auth import get_authorized_project, get_current_user_id, load_owned_project
from app.models.database_models import Project
from app.models.schemas import DeleteResponse, DocumentResponse, DocumentUploadResponse
from app.services.documents import DocumentService
from app.services.file_storage import FileStorage, get_file_storage
from app.services.llm_client import LLMClient, get_llm_client
from app.utils.helpers import safe_remove

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _check_file_type(file: UploadFile) -> str:
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Upload must include a filename.",
        )
    file_ext = Path(file.filename).suffix.lower()
    if file_ext not in settings.SUPPORTED_FILE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Unsupported file type '{file_ext}'. "
                f"Accepted: {', '.join(settings.SUPPORTED_FILE_TYPES)}"
            ),
        )
    return file_ext


async def _stage_upload(file: UploadFile, file_ext: str) -> tuple:
    """
    Stream an upload to a temp file under UPLOAD_DIR, enforcing MAX_FILE_SIZE.

    Returns ``(temp_path, size)``.  The temp file is removed on failure.
    """
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    temp_path = os.path.join(settings.UPLOAD_DIR, f"{uuid.uuid4().hex}{file_ext}")
    file_size = 0

    try:
        async with aiofiles.open(temp_path, "wb") as out:
            while True:
                chunk = await file.read(1024 * 1024)   # 1 MB slices
                if not chunk:
                    break
                file_size += len(chunk)
                if file_size > settings.MAX_FILE_SIZE:
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail=(
                            f"File {file.filename!r} exceeds the "
                            f"{settings.MAX_FILE_SIZE // (1024 * 1024)} MB size limit."
                        ),
                    )
                await out.write(chunk)
    except Exception:
        safe_remove(temp_path)
        raise

    return temp_path, file_size


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------

@router.post(
    "/upload",
    response_model=DocumentUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_documents(
    project_id: str = Form(...),
    files: List[UploadFile] = File(...),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
    storage: FileStorage = Depends(get_file_storage),
) -> DocumentUploadResponse:
    """
    Upload PDF/DOCX files to a project.

    - At most MAX_FILES_PER_UPLOAD files per request, each up to MAX_FILE_SIZE
    - Each file is stored, its text extracted and summarised by the LLM
    - Extraction or summarisation failures keep the document with no context
    """
    project = await load_owned_project(db, project_id, user_id)

    if not files:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No files uploaded")
    if len(files) > settings.MAX_FILES_PER_UPLOAD:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {settings.MAX_FILES_PER_UPLOAD} files per upload.",
        )
    extensions = [_check_file_type(f) for f in files]

    service = DocumentService(db, storage, llm)
    saved = []

    for file, file_ext in zip(files, extensions):
        temp_path, size = await _stage_upload(file, file_ext)
        try:
            document = await service.ingest(
                project.project_id,
                temp_path,
                file.filename,
                file_ext,
                size,
            )
            saved.append(document)
        finally:
            safe_remove(temp_path)

    return DocumentUploadResponse(
        message=f"{len(saved)} file(s) uploaded successfully.",
        files=[DocumentResponse.model_validate(d) for d in saved],
    )


# ---------------------------------------------------------------------------
# List / delete
# ---------------------------------------------------------------------------

@router.get("/project/{project_id}", response_model=List[DocumentResponse])
async def list_project_documents(
    project: Project = Depends(get_authorized_project),
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
) -> List[DocumentResponse]:
    """List a project's documents, most recent first."""
    service = DocumentService(db, storage)
    documents = await service.list_documents(project.project_id)
    return [DocumentResponse.model_validate(d) for d in documents]


@router.delete("/{document_id}", response_model=DeleteResponse)
async def delete_document(
    document_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
) -> DeleteResponse:
    """Delete a document's stored file and its database record."""
    service = DocumentService(db, storage)
    document = await service.get_document(document_id)
    # 404 rather than 403 for someone else's document
    await load_owned_project(db, document.project_id, user_id)

    await service.delete_document(document)
    return DeleteResponse(message="File and DB record deleted")
