"""Tests for the analysis, report and DOCX download endpoints."""
import io

import docx
import pytest
from httpx import AsyncClient

from app.services.report_renderer import DOCX_MEDIA_TYPE
from tests.conftest import (
    AUTH_HEADERS,
    AUTH_HEADERS_USER2,
    SAMPLE_SUBMISSION,
    TECH_MARKER,
    create_project,
)


async def _submitted_project(client: AsyncClient) -> str:
    project_id = await create_project(client)
    resp = await client.post(
        "/api/questionnaire/submit",
        json={"projectId": project_id, "submission": SAMPLE_SUBMISSION},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 201
    return project_id


@pytest.mark.asyncio
async def test_analyze_without_submission(client: AsyncClient):
    project_id = await create_project(client)
    resp = await client.post(f"/api/assessment/analyze/{project_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_analyze_returns_four_sections(client: AsyncClient):
    project_id = await _submitted_project(client)

    resp = await client.post(f"/api/assessment/analyze/{project_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    report = resp.json()
    assert set(report) == {
        "businessStrategyAnalysis",
        "teamSkillsAnalysis",
        "techStackAnalysis",
        "dataGovernanceAnalysis",
    }
    assert report["teamSkillsAnalysis"]["gaps"] == ["No ML engineer"]

    resp = await client.get(f"/api/assessment/report/{project_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert data["report"] == report
    assert data["submission_version"] == 1


@pytest.mark.asyncio
async def test_report_missing_before_analysis(client: AsyncClient):
    project_id = await _submitted_project(client)
    resp = await client.get(f"/api/assessment/report/{project_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_resubmit_clears_report(client: AsyncClient):
    project_id = await _submitted_project(client)
    await client.post(f"/api/assessment/analyze/{project_id}", headers=AUTH_HEADERS)

    await client.post(
        "/api/questionnaire/submit",
        json={"projectId": project_id, "submission": SAMPLE_SUBMISSION},
        headers=AUTH_HEADERS,
    )
    resp = await client.get(f"/api/assessment/report/{project_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_malformed_reply_returns_502(client: AsyncClient, fake_llm):
    fake_llm.replies[TECH_MARKER] = "The stack looks fine overall."
    project_id = await _submitted_project(client)

    resp = await client.post(f"/api/assessment/analyze/{project_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 502
    assert resp.json()["error"] == "MalformedModelOutputError"

    resp = await client.get(f"/api/assessment/report/{project_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_download_report(client: AsyncClient):
    project_id = await _submitted_project(client)
    await client.post(f"/api/assessment/analyze/{project_id}", headers=AUTH_HEADERS)

    resp = await client.get(f"/api/assessment/report/download/{project_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    assert resp.headers["content-type"] == DOCX_MEDIA_TYPE
    assert f"AI-Readiness-Report-{project_id}.docx" in resp.headers["content-disposition"]

    document = docx.Document(io.BytesIO(resp.content))
    texts = [p.text for p in document.paragraphs]
    assert "Technology Stack Review" in texts
    assert "Reduce churn" in texts


@pytest.mark.asyncio
async def test_download_without_report(client: AsyncClient):
    project_id = await _submitted_project(client)
    resp = await client.get(f"/api/assessment/report/download/{project_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_report_of_other_users_project(client: AsyncClient):
    project_id = await _submitted_project(client)
    await client.post(f"/api/assessment/analyze/{project_id}", headers=AUTH_HEADERS)
    resp = await client.get(f"/api/assessment/report/{project_id}", headers=AUTH_HEADERS_USER2)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_download_report_with_control_characters(client: AsyncClient, fake_llm):
    fake_llm.replies[TECH_MARKER] = (
        '```json\n{"analysis": "Legacy\\u000b stack\\u0000", "bottlenecks": ["a\\u001fb"], '
        '"recommendations": []}\n```'
    )
    project_id = await _submitted_project(client)
    resp = await client.post(f"/api/assessment/analyze/{project_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 200

    resp = await client.get(f"/api/assessment/report/download/{project_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    texts = [p.text for p in docx.Document(io.BytesIO(resp.content)).paragraphs]
    assert "Legacy stack" in texts
