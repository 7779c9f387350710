"""
Prompt templates and builders for the readiness assessment.

All templates are module-level constants so they can be tuned without touching
logic code.  Builders are pure: they never validate answer content and never
touch the database.

Public API
----------
build_category_prompt(category, answers, document_context) -> str
build_questionnaire_prompt(document_context)                -> str
build_summary_prompt(text)                                  -> str
answers_for_question(submission, question_id)               -> List[str]
category_answers(category, submission)                      -> Dict[str, List[str]]
aggregate_document_context(contexts, separator)             -> str
"""
from __future__ import annotations

import enum
import json
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.utils.helpers import join_non_blank


class AnalysisCategory(str, enum.Enum):
    """The four fixed analysis dimensions of a readiness report."""

    BUSINESS_STRATEGY = "business-strategy"
    TEAM_SKILLS = "team-skills"
    TECH_STACK = "tech-stack"
    DATA_GOVERNANCE = "data-governance"

    @property
    def report_key(self) -> str:
        """Key of this category's payload in the merged report."""
        return _REPORT_KEYS[self]


_REPORT_KEYS = {
    AnalysisCategory.BUSINESS_STRATEGY: "businessStrategyAnalysis",
    AnalysisCategory.TEAM_SKILLS: "teamSkillsAnalysis",
    AnalysisCategory.TECH_STACK: "techStackAnalysis",
    AnalysisCategory.DATA_GOVERNANCE: "dataGovernanceAnalysis",
}

# Report sections are always assembled and rendered in this order
REPORT_KEYS: Tuple[str, ...] = tuple(c.report_key for c in AnalysisCategory)

# (question id, label shown to the model) per category
CATEGORY_QUESTIONS: Dict[AnalysisCategory, Tuple[Tuple[str, str], ...]] = {
    AnalysisCategory.BUSINESS_STRATEGY: (
        ("businessObjectives", "Business Objectives"),
        ("kpis", "KPIs"),
    ),
    AnalysisCategory.TEAM_SKILLS: (
        ("stakeholders", "Team Roles & Stakeholders"),
    ),
    AnalysisCategory.TECH_STACK: (
        ("techStack", "Technology Stack"),
    ),
    AnalysisCategory.DATA_GOVERNANCE: (
        ("datasets", "Available Datasets"),
        ("governance", "Governance Practices"),
    ),
}

ANALYSIS_CONTEXT_SEPARATOR = "\n\n---\n\n"
QUESTIONNAIRE_CONTEXT_SEPARATOR = "\n\n"


# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

_BUSINESS_STRATEGY_PROMPT = """\
You are an expert AI strategy consultant. Your task is to analyze the user's \
project based on their questionnaire answers and the context from their uploaded \
documents. Suggest specific, actionable AI use-cases.

Return your analysis as a valid JSON array, enclosed in ```json ... ```. Each \
object in the array must correspond to one of the original objectives and contain \
"objective", "analysis", and "suggestedUseCases" (an array of objects with \
"useCase" and "explanation").

CONTEXT FROM UPLOADED DOCUMENTS:
---
{document_context}
---

USER'S QUESTIONNAIRE ANSWERS:
{answers_block}
"""

_TEAM_SKILLS_PROMPT = """\
You are an AI project team manager. Based on the user's questionnaire answers \
about their team and the context from their uploaded documents, assess the \
team's readiness for a typical AI project.

Return a valid JSON object, enclosed in ```json ... ```, with three keys:
1. "strengths": A list of key strengths (e.g., "Strong project management presence").
2. "gaps": A list of potential skill gaps (e.g., "Missing a dedicated ML Engineer").
3. "recommendations": A list of high-level training or hiring recommendations.

CONTEXT FROM UPLOADED DOCUMENTS:
---
{document_context}
---

USER'S QUESTIONNAIRE ANSWERS:
{answers_block}
"""

_TECH_STACK_PROMPT = """\
You are a solutions architect specializing in AI/ML infrastructure. Analyze the \
following technology stack based on user answers and document context. Assess \
its compatibility for AI development (data processing, model training, deployment).

Return a valid JSON object, enclosed in ```json ... ```, with three keys:
1. "analysis": A summary of the stack's strengths and weaknesses for AI.
2. "bottlenecks": A list of potential bottlenecks or missing components \
(e.g., "No data warehousing solution").
3. "recommendations": A list of actionable recommendations for improvement.

CONTEXT FROM UPLOADED DOCUMENTS:
---
{document_context}
---

USER'S QUESTIONNAIRE ANSWERS:
{answers_block}
"""

_DATA_GOVERNANCE_PROMPT = """\
You are a data governance and privacy expert. Review the following list of \
datasets and governance practices based on user answers and document context. \
Assess the potential for using this data in an AI model.

Return a valid JSON object, enclosed in ```json ... ```, with three keys:
1. "dataSuitability": A summary of how suitable the described data is for AI.
2. "identifiedRisks": A list of objects, each with "category" (e.g., "Privacy", \
"Bias", "Compliance") and "risks" (a list of specific risks in that category).
3. "governanceRecommendations": A list of concrete steps to improve data governance.

CONTEXT FROM UPLOADED DOCUMENTS:
---
{document_context}
---

USER'S QUESTIONNAIRE ANSWERS:
{answers_block}
"""

_QUESTIONNAIRE_PROMPT = """\
You are an expert AI Readiness Assessor. Your job is to generate a targeted, \
multiple-choice questionnaire based on the provided document context. The answers \
to this questionnaire will be used to create a detailed analysis report covering \
four key areas.

For each of the four areas below, generate 1-2 focused questions. For each \
question, extract plausible options directly from the context. If the context is \
missing crucial information for an area, generate questions that will help fill \
that gap.

The four analysis areas are:
1. **Business Strategy & KPIs:** Questions about primary goals, objectives, and \
success metrics. Use the ids "businessObjectives" and "kpis".
2. **Team & Skills:** Questions to identify the roles and stakeholders involved \
in the project. Use the id "stakeholders".
3. **Technology Stack:** Questions to determine the software, platforms, and \
infrastructure being used. Use the id "techStack".
4. **Data & Governance:** Questions about available datasets, data quality, and \
any existing privacy or governance policies. Use the ids "datasets" and "governance".

Return the entire questionnaire as a single, valid JSON array. Each object in the \
array must have this exact format:
{{
  "id": "a_unique_camelCase_id",
  "label": "The question you generated.",
  "options": ["Option 1 from context", "Option 2 from context"],
  "allowOther": true
}}

Here is the document context to analyze:
---
{document_context}
---
"""

_SUMMARY_PROMPT = """\
Summarize and extract the main ideas from this document:
{text}
"""

CATEGORY_PROMPTS: Dict[AnalysisCategory, str] = {
    AnalysisCategory.BUSINESS_STRATEGY: _BUSINESS_STRATEGY_PROMPT,
    AnalysisCategory.TEAM_SKILLS: _TEAM_SKILLS_PROMPT,
    AnalysisCategory.TECH_STACK: _TECH_STACK_PROMPT,
    AnalysisCategory.DATA_GOVERNANCE: _DATA_GOVERNANCE_PROMPT,
}


# ---------------------------------------------------------------------------
# Answer helpers
# ---------------------------------------------------------------------------

def answers_for_question(
    submission: Optional[Sequence[Mapping[str, Any]]],
    question_id: str,
) -> List[Any]:
    """Answers of the first item whose ``questionId`` matches, else ``[]``."""
    for item in submission or []:
        if isinstance(item, Mapping) and item.get("questionId") == question_id:
            return list(item.get("answers") or [])
    return []


def category_answers(
    category: AnalysisCategory,
    submission: Optional[Sequence[Mapping[str, Any]]],
) -> Dict[str, List[Any]]:
    """The answer subset a category prompt needs, keyed by question id."""
    return {
        question_id: answers_for_question(submission, question_id)
        for question_id, _label in CATEGORY_QUESTIONS[category]
    }


def aggregate_document_context(
    contexts: Iterable[Optional[str]],
    separator: str = ANALYSIS_CONTEXT_SEPARATOR,
) -> str:
    """Join per-document summaries in the given order, dropping blanks."""
    return join_non_blank(contexts, separator)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def build_category_prompt(
    category: AnalysisCategory,
    answers: Mapping[str, Sequence[Any]],
    document_context: str,
) -> str:
    """
    Render the analysis prompt for one category.

    Args:
        category: Which of the four analyses to request.
        answers: Answer lists keyed by question id (see ``category_answers``).
            Missing ids are rendered as empty lists.
        document_context: Aggregated document summaries, inserted verbatim.
    """
    lines = [
        f"- {label}: {json.dumps(list(answers.get(question_id) or []))}"
        for question_id, label in CATEGORY_QUESTIONS[category]
    ]
    return CATEGORY_PROMPTS[category].format(
        document_context=document_context,
        answers_block="\n".join(lines),
    )


def build_questionnaire_prompt(document_context: str) -> str:
    """Render the questionnaire-generation prompt."""
    return _QUESTIONNAIRE_PROMPT.format(document_context=document_context)


def build_summary_prompt(text: str) -> str:
    """Render the per-document summarisation prompt."""
    return _SUMMARY_PROMPT.format(text=text)
