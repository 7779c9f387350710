"""
Questionnaire generation from a project's document context.

The LLM is asked for a JSON array of multiple-choice questions.  An unparseable
reply produces an empty questionnaire rather than an error, so the frontend can
still fall back to its static questions.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import MalformedModelOutputError
from app.services.documents import project_contexts
from app.services.llm_client import LLMClient
from app.services.prompt_builder import (
    QUESTIONNAIRE_CONTEXT_SEPARATOR,
    aggregate_document_context,
    build_questionnaire_prompt,
)
from app.services.response_parser import parse_llm_json

logger = logging.getLogger(__name__)


def _normalise_question(item: Dict[str, Any]) -> Dict[str, Any]:
    options = item.get("options")
    return {
        "id": str(item.get("id") or ""),
        "label": str(item.get("label") or ""),
        "options": [str(o) for o in options] if isinstance(options, list) else [],
        "allowOther": bool(item.get("allowOther", True)),
    }


async def generate_questionnaire(
    db: AsyncSession,
    llm: LLMClient,
    project_id: str,
) -> List[Dict[str, Any]]:
    """
    Generate questions for *project_id* from its document summaries.

    Returns:
        List of ``{id, label, options[], allowOther}``; empty when the model
        reply holds no usable JSON array.

    Raises:
        UpstreamFailureError: the LLM call itself failed.
    """
    context = aggregate_document_context(
        await project_contexts(db, project_id),
        separator=QUESTIONNAIRE_CONTEXT_SEPARATOR,
    )
    response = await llm.invoke(build_questionnaire_prompt(context))

    try:
        parsed = parse_llm_json(response.content)
    except MalformedModelOutputError:
        logger.warning("generate_questionnaire %s: unparseable reply, returning no questions", project_id)
        return []

    if isinstance(parsed, dict):
        # Some models wrap the array: {"questions": [...]}
        parsed = parsed.get("questions") or parsed.get("questionnaire") or []
    if not isinstance(parsed, list):
        return []

    questions = [
        _normalise_question(item)
        for item in parsed
        if isinstance(item, dict) and item.get("id") and item.get("label")
    ]
    logger.info("generate_questionnaire %s: %d questions", project_id, len(questions))
    return questions
