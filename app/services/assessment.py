"""
Assessment orchestration: questionnaire submissions and readiness reports.

Flow for ``run_analysis``::

    submission + document contexts
        → four category prompts  (prompt_builder)
        → four concurrent LLM calls (asyncio.gather)
        → four parsed payloads   (response_parser)
        → merged report, upserted by project id

Consistency between a submission and its report is kept by two rules:
resubmitting deletes the report, and every report carries the submission
``version`` it was computed from.  A report is only written if that version is
still current when the LLM calls return, and only served while it matches.

Public API
----------
AssessmentService.run_analysis(project_id)              -> Dict[str, Any]
AssessmentService.submit_submission(project_id, items)  -> QuestionnaireSubmission
AssessmentService.get_submission(project_id)            -> Optional[QuestionnaireSubmission]
AssessmentService.get_report(project_id)                -> AnalysisReport
"""
from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import (
    InvalidPayloadError,
    MalformedModelOutputError,
    NotFoundError,
    SubmissionChangedError,
    UpstreamFailureError,
)
from app.models.database_models import AnalysisReport, QuestionnaireSubmission
from app.services.documents import project_contexts
from app.services.llm_client import LLMClient
from app.services.prompt_builder import (
    AnalysisCategory,
    aggregate_document_context,
    build_category_prompt,
    category_answers,
)
from app.services.response_parser import JsonExtractor, parse_llm_json
from app.utils.helpers import utcnow

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Submission validation
# ---------------------------------------------------------------------------

class SubmissionItem(BaseModel):
    """One answered question, stored exactly as submitted."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    question_id: str = Field(..., min_length=1, alias="questionId")
    question_label: str = Field("", alias="questionLabel")
    answers: List[str] = Field(default_factory=list)


_SUBMISSION_ADAPTER = TypeAdapter(List[SubmissionItem])


def validate_submission(submission: Any) -> List[Dict[str, Any]]:
    """
    Validate a raw submission payload.

    Returns:
        List of ``{questionId, questionLabel, answers}`` dicts in input order.

    Raises:
        InvalidPayloadError: not a list of ``{questionId, answers[]}`` entries.
    """
    if not isinstance(submission, list):
        raise InvalidPayloadError("Submission must be a list of answered questions.")
    try:
        items = _SUBMISSION_ADAPTER.validate_python(submission)
    except ValidationError as exc:
        raise InvalidPayloadError(f"Invalid submission: {exc.errors()[0].get('msg', exc)}") from exc
    return [item.model_dump(by_alias=True) for item in items]


# ---------------------------------------------------------------------------
# Per-category results
# ---------------------------------------------------------------------------

class CategoryState(str, enum.Enum):
    PENDING = "pending"
    PARSED = "parsed"
    FAILED = "failed"


@dataclasses.dataclass
class CategoryResult:
    """Outcome of one category's prompt → reply → parse round."""

    category: AnalysisCategory
    state: CategoryState = CategoryState.PENDING
    payload: Any = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.state == CategoryState.PARSED


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class AssessmentService:
    """
    Submission and report operations for one request.

    Args:
        db: Request-scoped session; the caller commits.
        llm: LLM client used for the four category prompts.
        extractor: JSON span extractor; the configured default when omitted.
        allow_partial: Persist reports with failed categories omitted.
            Defaults to ``ALLOW_PARTIAL_REPORTS`` (off).
    """

    def __init__(
        self,
        db: AsyncSession,
        llm: LLMClient,
        extractor: Optional[JsonExtractor] = None,
        allow_partial: Optional[bool] = None,
    ) -> None:
        self.db = db
        self.llm = llm
        self.extractor = extractor
        self.allow_partial = (
            settings.ALLOW_PARTIAL_REPORTS if allow_partial is None else allow_partial
        )

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    async def get_submission(self, project_id: str) -> Optional[QuestionnaireSubmission]:
        result = await self.db.execute(
            select(QuestionnaireSubmission).where(QuestionnaireSubmission.project_id == project_id)
        )
        return result.scalar_one_or_none()

    async def submit_submission(
        self,
        project_id: str,
        submission: Any,
    ) -> QuestionnaireSubmission:
        """
        Replace the project's submission and drop its report.

        Both writes go through the same session, so they commit (or roll back)
        together with the request.
        """
        items = validate_submission(submission)

        record = await self.get_submission(project_id)
        if record is None:
            record = QuestionnaireSubmission(project_id=project_id, submission=items, version=1)
            self.db.add(record)
        else:
            record.submission = items
            record.version = (record.version or 0) + 1
        record.submitted_at = utcnow()

        await self.db.execute(
            delete(AnalysisReport).where(AnalysisReport.project_id == project_id)
        )
        await self.db.flush()

        logger.info(
            "Submission for project %s saved (version %d, %d items); report cleared",
            project_id,
            record.version,
            len(items),
        )
        return record

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    async def get_report(self, project_id: str) -> AnalysisReport:
        """
        Return the stored report for the current submission.

        Raises:
            NotFoundError: no report, or the report was computed from an
                older submission than the one now stored.
        """
        report = await self._load_report(project_id)
        if report is None:
            raise NotFoundError("No analysis report found for this project.")

        current_version = await self._current_version(project_id)
        if current_version is not None and report.submission_version != current_version:
            logger.info(
                "Report for project %s is stale (report v%s, submission v%s)",
                project_id,
                report.submission_version,
                current_version,
            )
            raise NotFoundError("No analysis report found for this project.")
        return report

    async def run_analysis(self, project_id: str) -> Dict[str, Any]:
        """
        Generate, persist and return the four-category readiness report.

        Raises:
            NotFoundError: the project has no submission.
            UpstreamFailureError: an LLM call failed.
            MalformedModelOutputError: a reply could not be parsed.
            SubmissionChangedError: the submission was replaced mid-analysis.
        """
        submission = await self.get_submission(project_id)
        if submission is None or submission.submission is None:
            raise NotFoundError("No assessment submission found for this project.")
        version = submission.version
        answers = list(submission.submission)

        document_context = aggregate_document_context(await project_contexts(self.db, project_id))

        prompts = {
            category: build_category_prompt(
                category, category_answers(category, answers), document_context
            )
            for category in AnalysisCategory
        }

        logger.info(
            "run_analysis %s: dispatching %d prompts (%d chars of document context)",
            project_id,
            len(prompts),
            len(document_context),
        )
        results: List[CategoryResult] = await asyncio.gather(
            *[self._analyse_category(category, prompt) for category, prompt in prompts.items()]
        )

        report = self._merge(project_id, results)

        if await self._current_version(project_id) != version:
            raise SubmissionChangedError(
                "The questionnaire was resubmitted while the analysis was running."
            )

        await self._upsert_report(project_id, report, version)
        return report

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _analyse_category(self, category: AnalysisCategory, prompt: str) -> CategoryResult:
        result = CategoryResult(category=category)
        try:
            response = await self.llm.invoke(prompt)
            result.payload = parse_llm_json(response.content, self.extractor)
            result.state = CategoryState.PARSED
        except (UpstreamFailureError, MalformedModelOutputError) as exc:
            logger.error("run_analysis: %s failed — %s", category.value, exc)
            result.state = CategoryState.FAILED
            result.error = exc
        return result

    def _merge(self, project_id: str, results: Sequence[CategoryResult]) -> Dict[str, Any]:
        failed = [r for r in results if not r.ok]

        if failed and (not self.allow_partial or len(failed) == len(results)):
            upstream = [r for r in failed if isinstance(r.error, UpstreamFailureError)]
            names = ", ".join(r.category.value for r in failed)
            if upstream:
                raise UpstreamFailureError(
                    f"LLM call failed for: {names}. No report was saved."
                ) from upstream[0].error
            raise MalformedModelOutputError(
                f"Could not parse the AI response for: {names}. No report was saved.",
                raw_text=getattr(failed[0].error, "raw_text", None),
            ) from failed[0].error

        if failed:
            logger.warning(
                "run_analysis %s: saving partial report without %s",
                project_id,
                ", ".join(r.category.value for r in failed),
            )

        return {r.category.report_key: r.payload for r in results if r.ok}

    async def _upsert_report(self, project_id: str, report: Dict[str, Any], version: int) -> AnalysisReport:
        now = utcnow()
        record = await self._load_report(project_id)
        if record is None:
            record = AnalysisReport(
                project_id=project_id,
                report=report,
                submission_version=version,
                generated_at=now,
                updated_at=now,
            )
            self.db.add(record)
        else:
            record.report = report
            record.submission_version = version
            record.updated_at = now
        await self.db.flush()

        logger.info("Report for project %s saved (%d categories)", project_id, len(report))
        return record

    async def _load_report(self, project_id: str) -> Optional[AnalysisReport]:
        result = await self.db.execute(
            select(AnalysisReport).where(AnalysisReport.project_id == project_id)
        )
        return result.scalar_one_or_none()

    async def _current_version(self, project_id: str) -> Optional[int]:
        result = await self.db.execute(
            select(QuestionnaireSubmission.version).where(
                QuestionnaireSubmission.project_id == project_id
            )
        )
        return result.scalar_one_or_none()
