"""
Main FastAPI application for the AI readiness backend.
Handles CORS, request logging middleware, lifespan events, error mapping and
router registration.
"""
import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import close_db, init_db
from app.exceptions import MalformedModelOutputError, ReadinessError
from app.routers import assessment, documents, health, projects, questionnaire
from app.services.llm_client import get_llm_client
from app.utils.helpers import utcnow

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Startup / shutdown helpers
# ---------------------------------------------------------------------------

async def _check_database() -> bool:
    """Initialise DB tables and verify the connection.  Returns True on success."""
    try:
        await init_db()
        logger.info("✓ Database connection OK")
        return True
    except Exception as exc:
        logger.error("✗ Database connection failed: %s", exc)
        raise


async def _check_llm() -> bool:
    """Verify the configured LLM provider is reachable.  Never raises."""
    client = get_llm_client()
    reachable = await client.check_health()
    if reachable:
        logger.info("✓ LLM provider '%s' reachable (model %s)", client.provider, client.model)
    else:
        logger.warning(
            "⚠ LLM provider '%s' unreachable — document summaries, questionnaires "
            "and analyses will fail until it is up",
            client.provider,
        )
    return reachable


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown event handler."""
    logger.info("=" * 60)
    logger.info("  Starting AI readiness backend …")
    logger.info("=" * 60)

    # 1. Database (required; raises on failure)
    await _check_database()

    # 2. LLM provider (optional; logs warnings but continues)
    await _check_llm()

    # 3. Upload staging and storage directories
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    os.makedirs(settings.STORAGE_DIR, exist_ok=True)
    logger.info("✓ Upload directory: %s", os.path.abspath(settings.UPLOAD_DIR))
    logger.info("✓ Storage directory: %s", os.path.abspath(settings.STORAGE_DIR))

    logger.info("=" * 60)
    logger.info("  Backend ready on http://%s:%d", settings.HOST, settings.PORT)
    logger.info("  Swagger UI : http://%s:%d/docs", settings.HOST, settings.PORT)
    logger.info("=" * 60)

    yield  # ← server is running

    logger.info("Shutting down AI readiness backend …")
    await close_db()
    logger.info("✓ Shutdown complete.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="AI Readiness API",
    description=(
        "Collects project documents and questionnaire answers, and turns them "
        "into an LLM-generated AI readiness report.\n\n"
        "Key endpoints:\n"
        "- `POST /api/documents/upload` — upload documents to a project\n"
        "- `GET  /api/questionnaire/generate/{project_id}` — tailored questionnaire\n"
        "- `POST /api/questionnaire/submit` — save answers\n"
        "- `POST /api/assessment/analyze/{project_id}` — generate the report\n"
        "- `GET  /api/assessment/report/download/{project_id}` — DOCX export\n"
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request / response logging middleware
# ---------------------------------------------------------------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every request with method, path, status code, and elapsed time.
    Attaches an ``X-Process-Time`` header (milliseconds) to every response.
    """
    t0 = time.monotonic()
    response = await call_next(request)
    elapsed_ms = round((time.monotonic() - t0) * 1000, 2)

    # Skip noisy health-check polling from the frontend
    if request.url.path not in ("/api/health/", "/"):
        logger.info(
            "%s %s → %d  (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )

    response.headers["X-Process-Time"] = f"{elapsed_ms}ms"
    return response


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

def _error_body(request: Request, detail: str, error: str) -> dict:
    return {
        "detail": detail,
        "error": error,
        "path": str(request.url.path),
        "timestamp": utcnow().isoformat(),
    }


@app.exception_handler(ReadinessError)
async def readiness_exception_handler(request: Request, exc: ReadinessError):
    """Map domain errors to their HTTP status with a structured body."""
    if isinstance(exc, MalformedModelOutputError):
        logger.error(
            "Malformed model output on %s %s: %s",
            request.method,
            request.url.path,
            exc.message,
        )
    elif exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.message, type(exc).__name__),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return a structured JSON error for any unhandled exception."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(request, "Internal server error", str(exc)),
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(health.router,        prefix="/api/health",        tags=["Health"])
app.include_router(projects.router,      prefix="/api/projects",      tags=["Projects"])
app.include_router(documents.router,     prefix="/api/documents",     tags=["Documents"])
app.include_router(questionnaire.router, prefix="/api/questionnaire", tags=["Questionnaire"])
app.include_router(assessment.router,    prefix="/api/assessment",    tags=["Assessment"])


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

@app.get("/", tags=["Root"], include_in_schema=False)
async def root():
    """API root — returns basic service info."""
    return {
        "name": "AI Readiness API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
        "endpoints": {
            "projects": "/api/projects",
            "documents": "/api/documents",
            "questionnaire": "/api/questionnaire",
            "assessment": "/api/assessment",
        },
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level="info",
    )
