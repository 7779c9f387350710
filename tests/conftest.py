"""
Shared fixtures for the AI readiness backend tests.

Runs against SQLite (aiosqlite) unless TEST_DATABASE_URL points elsewhere,
e.g. at a disposable PostgreSQL database.  Tables are created before and
dropped after every test so each test starts with a clean slate.

The LLM is replaced by ``FakeLLMClient``, which answers each prompt with a
scripted reply chosen by a marker phrase from the prompt template.
"""
from __future__ import annotations

import os
from typing import AsyncGenerator, Dict, List, Set

import httpx
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

# Override DATABASE_URL *before* any app module is imported, so that
# settings.DATABASE_URL and the global engine point at the test DB.
TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    "sqlite+aiosqlite:///./test_readiness.db",
)
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

from app.config import settings  # noqa: E402
from app.database import (  # noqa: E402
    build_engine,
    build_session_factory,
    create_tables,
    drop_tables,
    get_db,
)
from app.main import app  # noqa: E402
from app.services.file_storage import FileStorage, get_file_storage  # noqa: E402
from app.services.llm_client import LLMClient, get_llm_client  # noqa: E402


# ---------------------------------------------------------------------------
# Scripted LLM
# ---------------------------------------------------------------------------

BUSINESS_MARKER = "AI strategy consultant"
TEAM_MARKER = "AI project team manager"
TECH_MARKER = "solutions architect"
DATA_MARKER = "data governance and privacy expert"
QUESTIONNAIRE_MARKER = "AI Readiness Assessor"
SUMMARY_MARKER = "Summarize and extract"

BUSINESS_REPLY = """Here is the analysis you asked for.
```json
[
  {
    "objective": "Reduce churn",
    "analysis": "Churn data exists but is not yet modelled.",
    "suggestedUseCases": [
      {"useCase": "Churn prediction", "explanation": "Score accounts weekly."}
    ]
  }
]
```"""

TEAM_REPLY = """```json
{"strengths": ["Strong project management"], "gaps": ["No ML engineer"],
 "recommendations": ["Hire an ML engineer"]}
```"""

TECH_REPLY = """Sure!
```json
{"analysis": "Cloud-native stack.", "bottlenecks": ["No feature store"],
 "recommendations": ["Adopt a feature store"]}
```"""

DATA_REPLY = """```json
{"dataSuitability": "Mostly suitable.",
 "identifiedRisks": [{"category": "Privacy", "risks": ["PII in CRM exports"]}],
 "governanceRecommendations": ["Appoint a data steward"]}
```"""

QUESTIONNAIRE_REPLY = """```json
[
  {"id": "businessObjectives", "label": "What are your goals?",
   "options": ["Reduce churn", "Grow revenue"], "allowOther": true},
  {"id": "techStack", "label": "Which platforms do you use?",
   "options": ["AWS", "Snowflake"], "allowOther": false}
]
```"""

SUMMARY_REPLY = "The company wants to reduce churn using its CRM data."


def default_replies() -> Dict[str, str]:
    return {
        BUSINESS_MARKER: BUSINESS_REPLY,
        TEAM_MARKER: TEAM_REPLY,
        TECH_MARKER: TECH_REPLY,
        DATA_MARKER: DATA_REPLY,
        QUESTIONNAIRE_MARKER: QUESTIONNAIRE_REPLY,
        SUMMARY_MARKER: SUMMARY_REPLY,
    }


class FakeLLMClient(LLMClient):
    """
    LLM double driven through the real ``invoke`` path.

    ``replies`` maps a marker phrase to the completion returned for prompts
    containing it; markers in ``failures`` raise a transport error instead.
    """

    provider = "fake"

    def __init__(self) -> None:
        super().__init__(model="fake-model", timeout=5, max_concurrent=4)
        self.replies: Dict[str, str] = default_replies()
        self.failures: Set[str] = set()
        self.prompts: List[str] = []
        self.healthy = True

    async def _generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        for marker, reply in self.replies.items():
            if marker in prompt:
                if marker in self.failures:
                    raise httpx.ConnectError("connection refused")
                return reply
        return ""

    async def check_health(self) -> bool:
        return self.healthy


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a DB session for each test.  Tables are created up front and
    dropped afterwards.
    """
    engine = build_engine(TEST_DATABASE_URL)
    await create_tables(engine)

    session_factory = build_session_factory(engine)

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    await drop_tables(engine)

    await engine.dispose()


@pytest_asyncio.fixture
async def fake_llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest_asyncio.fixture
async def storage(tmp_path) -> FileStorage:
    return FileStorage(str(tmp_path / "storage"))


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    fake_llm: FakeLLMClient,
    storage: FileStorage,
    tmp_path,
    monkeypatch,
) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx AsyncClient wired to the FastAPI app with the DB, LLM and file
    storage dependencies overridden.
    """
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_llm_client] = lambda: fake_llm
    app.dependency_overrides[get_file_storage] = lambda: storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

AUTH_HEADERS = {
    "X-User-Id": "test-user-1",
    "X-User-Email": "test1@example.com",
    "X-User-Name": "Test User 1",
}

AUTH_HEADERS_USER2 = {
    "X-User-Id": "test-user-2",
    "X-User-Email": "test2@example.com",
    "X-User-Name": "Test User 2",
}

SAMPLE_SUBMISSION = [
    {"questionId": "businessObjectives", "questionLabel": "Goals", "answers": ["Reduce churn"]},
    {"questionId": "kpis", "questionLabel": "KPIs", "answers": ["Retention rate"]},
    {"questionId": "stakeholders", "questionLabel": "Team", "answers": ["PM", "Data analyst"]},
    {"questionId": "techStack", "questionLabel": "Stack", "answers": ["AWS", "Snowflake"]},
    {"questionId": "datasets", "questionLabel": "Data", "answers": ["CRM exports"]},
    {"questionId": "governance", "questionLabel": "Policies", "answers": ["GDPR"]},
]


async def create_project(
    client: AsyncClient,
    name: str = "Readiness Project",
    headers=None,
) -> str:
    headers = headers or AUTH_HEADERS
    resp = await client.post(
        "/api/projects",
        json={"name": name, "client_name": "Acme Corp"},
        headers=headers,
    )
    assert resp.status_code == 201
    return resp.json()["project_id"]
