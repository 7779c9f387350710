"""
Document ingestion: store the file, extract its text, summarise it.

The summary becomes the document's ``context`` and is what the questionnaire
and analysis prompts see.  Extraction and summarisation are best-effort: a
failure is logged and the document is kept with ``context = None``.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import NotFoundError, UpstreamFailureError
from app.models.database_models import Document, DocumentStatus
from app.services.file_storage import FileStorage
from app.services.llm_client import LLMClient
from app.services.prompt_builder import build_summary_prompt
from app.services.text_extractor import TextExtractor
from app.utils.helpers import make_storage_name

logger = logging.getLogger(__name__)


class DocumentService:
    """Upload, list and delete documents for a project."""

    def __init__(
        self,
        db: AsyncSession,
        storage: FileStorage,
        llm: Optional[LLMClient] = None,
        extractor: Optional[TextExtractor] = None,
    ) -> None:
        self.db = db
        self.llm = llm
        self.storage = storage
        self.extractor = extractor or TextExtractor()

    async def ingest(
        self,
        project_id: str,
        local_path: str,
        original_name: str,
        file_type: str,
        size: int,
    ) -> Document:
        """
        Store a locally staged upload and record it.

        The caller owns *local_path* and removes it afterwards.

        Raises:
            UpstreamFailureError: the file could not be stored.
        """
        storage_name = make_storage_name(original_name)
        await self.storage.put(local_path, storage_name)
        try:
            return await self._record(project_id, local_path, original_name, storage_name, file_type, size)
        except Exception:
            # No row references the object, so remove it before re-raising
            await self.storage.delete(storage_name)
            raise

    async def _record(
        self,
        project_id: str,
        local_path: str,
        original_name: str,
        storage_name: str,
        file_type: str,
        size: int,
    ) -> Document:
        text = ""
        try:
            text = await self.extractor.extract(local_path, file_type)
        except Exception as exc:
            logger.warning("Text extraction failed for %r: %s", original_name, exc)

        context = await self.summarise(text, original_name) if text.strip() else None

        document = Document(
            project_id=project_id,
            original_name=original_name,
            storage_name=storage_name,
            file_type=file_type.lstrip("."),
            size=size,
            status=(DocumentStatus.UPLOADED if text.strip() else DocumentStatus.FAILED).value,
            context=context,
        )
        self.db.add(document)
        await self.db.flush()

        logger.info(
            "Document %r stored as id=%d (%d chars extracted, context=%s)",
            original_name,
            document.id,
            len(text),
            "yes" if context else "no",
        )
        return document

    async def summarise(self, text: str, name: str = "") -> Optional[str]:
        """LLM summary of *text*, or ``None`` if the call fails."""
        if self.llm is None:
            return None
        try:
            response = await self.llm.invoke(
                build_summary_prompt(text[: settings.SUMMARY_INPUT_CHARS])
            )
        except UpstreamFailureError as exc:
            logger.warning("LLM summarisation failed for %r: %s", name, exc)
            return None
        return response.content.strip() or None

    async def list_documents(self, project_id: str) -> List[Document]:
        """Documents of a project, most recent first."""
        result = await self.db.execute(
            select(Document)
            .where(Document.project_id == project_id)
            .order_by(Document.uploaded_at.desc(), Document.id.desc())
        )
        return list(result.scalars().all())

    async def get_document(self, document_id: int) -> Document:
        document = await self.db.get(Document, document_id)
        if document is None:
            raise NotFoundError("Document not found")
        return document

    async def delete_document(self, document: Document) -> None:
        """Delete the stored object, then the database row."""
        await self.storage.delete(document.storage_name)
        await self.db.delete(document)
        await self.db.flush()
        logger.info("Deleted document id=%d (%s)", document.id, document.original_name)


async def project_contexts(db: AsyncSession, project_id: str) -> List[Optional[str]]:
    """Per-document context summaries of a project, most recent first."""
    result = await db.execute(
        select(Document.context)
        .where(Document.project_id == project_id)
        .order_by(Document.uploaded_at.desc(), Document.id.desc())
    )
    return list(result.scalars().all())
