"""Tests for document upload, list, and delete within projects."""
import io
import os

import docx
import pytest
from httpx import AsyncClient

from app.config import settings
from app.services.documents import DocumentService
from app.services.text_extractor import TextExtractor
from app.utils.helpers import make_storage_name
from tests.conftest import (
    AUTH_HEADERS,
    AUTH_HEADERS_USER2,
    SUMMARY_MARKER,
    SUMMARY_REPLY,
    create_project,
)

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _create_docx(*paragraphs: str) -> bytes:
    """Return DOCX bytes holding the given paragraphs."""
    document = docx.Document()
    for text in paragraphs:
        document.add_paragraph(text)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


async def _upload(client: AsyncClient, project_id: str, files, headers=None):
    return await client.post(
        "/api/documents/upload",
        data={"project_id": project_id},
        files=files,
        headers=headers or AUTH_HEADERS,
    )


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_upload_docx_stores_summary(client: AsyncClient, storage, fake_llm):
    project_id = await create_project(client)
    content = _create_docx("Quarterly plan", "We store customer records in a CRM.")

    resp = await _upload(client, project_id, [("files", ("plan.docx", content, DOCX_MIME))])
    assert resp.status_code == 201
    files = resp.json()["files"]
    assert len(files) == 1
    doc = files[0]
    assert doc["original_name"] == "plan.docx"
    assert doc["file_type"] == "docx"
    assert doc["status"] == "uploaded"
    assert doc["context"] == SUMMARY_REPLY
    assert doc["size"] == len(content)
    assert os.path.exists(storage.path_for(doc["storage_name"]))

    # The summary prompt carries the extracted text
    summary_prompts = [p for p in fake_llm.prompts if SUMMARY_MARKER in p]
    assert "customer records in a CRM" in summary_prompts[0]

    resp = await client.get(f"/api/projects/{project_id}", headers=AUTH_HEADERS)
    assert resp.json()["document_count"] == 1


@pytest.mark.asyncio
async def test_upload_keeps_document_when_summary_fails(client: AsyncClient, fake_llm):
    fake_llm.failures.add(SUMMARY_MARKER)
    project_id = await create_project(client)

    resp = await _upload(
        client, project_id, [("files", ("plan.docx", _create_docx("Some text"), DOCX_MIME))]
    )
    assert resp.status_code == 201
    doc = resp.json()["files"][0]
    assert doc["status"] == "uploaded"
    assert doc["context"] is None


@pytest.mark.asyncio
async def test_upload_unsupported_type(client: AsyncClient):
    """Uploading a .txt file should fail with 400."""
    project_id = await create_project(client)
    resp = await _upload(client, project_id, [("files", ("notes.txt", b"hello world", "text/plain"))])
    assert resp.status_code == 400
    assert "Unsupported file type" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_upload_too_many_files(client: AsyncClient):
    project_id = await create_project(client)
    content = _create_docx("text")
    files = [
        ("files", (f"doc{i}.docx", content, DOCX_MIME))
        for i in range(settings.MAX_FILES_PER_UPLOAD + 1)
    ]
    resp = await _upload(client, project_id, files)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_upload_too_large(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "MAX_FILE_SIZE", 16)
    project_id = await create_project(client)
    resp = await _upload(
        client, project_id, [("files", ("big.docx", _create_docx("x" * 100), DOCX_MIME))]
    )
    assert resp.status_code == 413
    # Staged temp file is cleaned up
    assert os.listdir(settings.UPLOAD_DIR) == []


@pytest.mark.asyncio
async def test_upload_to_other_users_project(client: AsyncClient):
    project_id = await create_project(client)
    resp = await _upload(
        client,
        project_id,
        [("files", ("plan.docx", _create_docx("text"), DOCX_MIME))],
        headers=AUTH_HEADERS_USER2,
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_list_documents_empty(client: AsyncClient):
    """A fresh project should have no documents."""
    project_id = await create_project(client)
    resp = await client.get(f"/api/documents/project/{project_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    assert resp.json() == []


@pytest.mark.asyncio
async def test_delete_document(client: AsyncClient, storage):
    project_id = await create_project(client)
    resp = await _upload(
        client, project_id, [("files", ("plan.docx", _create_docx("text"), DOCX_MIME))]
    )
    doc = resp.json()["files"][0]

    resp = await client.delete(f"/api/documents/{doc['id']}", headers=AUTH_HEADERS_USER2)
    assert resp.status_code == 404

    resp = await client.delete(f"/api/documents/{doc['id']}", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert not os.path.exists(storage.path_for(doc["storage_name"]))

    resp = await client.get(f"/api/documents/project/{project_id}", headers=AUTH_HEADERS)
    assert resp.json() == []


@pytest.mark.asyncio
async def test_delete_nonexistent_document(client: AsyncClient):
    """Deleting a document that doesn't exist should return 404."""
    resp = await client.delete("/api/documents/999999", headers=AUTH_HEADERS)
    assert resp.status_code == 404


def test_storage_name_replaces_whitespace():
    assert make_storage_name("Q3 plan  final.docx", timestamp=1700000000000) == (
        "1700000000000_Q3_plan_final.docx"
    )


class _FailingSession:
    """Session whose flush fails, after the file has already been stored."""

    def add(self, obj):
        pass

    async def flush(self):
        raise RuntimeError("database unavailable")


@pytest.mark.asyncio
async def test_ingest_removes_stored_file_when_record_fails(storage, tmp_path):
    source = tmp_path / "plan.docx"
    source.write_bytes(_create_docx("Quarterly plan"))
    service = DocumentService(_FailingSession(), storage, extractor=TextExtractor(ocr_enabled=False))

    with pytest.raises(RuntimeError):
        await service.ingest("PRJ-00000001", str(source), "plan.docx", ".docx", source.stat().st_size)

    assert os.listdir(storage.root) == []
