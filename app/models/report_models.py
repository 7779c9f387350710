"""
Typed, default-valued views over the loosely-typed category payloads.

Payload shapes come from model output and are never guaranteed complete, so
every field defaults to an empty value and the ``before`` validators coerce
``None``, scalars and wrongly-typed values instead of rejecting them.  Reading
any report dict through ``ReportView.from_report`` therefore never raises.
"""
from __future__ import annotations

import re
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Control characters that cannot be written to DOCX XML
_XML_INVALID_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return ""
    text = value if isinstance(value, str) else str(value)
    return _XML_INVALID_CHARS.sub("", text)


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, (tuple, set)):
        return list(value)
    return [value]


def _as_text_list(value: Any) -> List[str]:
    return [t for t in (_as_text(v) for v in _as_list(value)) if t]


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class UseCase(_Payload):
    use_case: str = Field("", alias="useCase")
    explanation: str = ""

    @field_validator("use_case", "explanation", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return _as_text(v)


class BusinessObjective(_Payload):
    objective: str = ""
    analysis: str = ""
    suggested_use_cases: List[UseCase] = Field(default_factory=list, alias="suggestedUseCases")

    @field_validator("objective", "analysis", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("suggested_use_cases", mode="before")
    @classmethod
    def _use_cases(cls, v: Any) -> List[Any]:
        return [
            item if isinstance(item, dict) else {"useCase": _as_text(item)}
            for item in _as_list(v)
        ]


class TeamSkillsAnalysis(_Payload):
    strengths: List[str] = Field(default_factory=list)
    gaps: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)

    @field_validator("strengths", "gaps", "recommendations", mode="before")
    @classmethod
    def _texts(cls, v: Any) -> List[str]:
        return _as_text_list(v)


class TechStackAnalysis(_Payload):
    analysis: str = ""
    bottlenecks: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)

    @field_validator("analysis", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("bottlenecks", "recommendations", mode="before")
    @classmethod
    def _texts(cls, v: Any) -> List[str]:
        return _as_text_list(v)


class RiskCategory(_Payload):
    category: str = ""
    risks: List[str] = Field(default_factory=list)

    @field_validator("category", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("risks", mode="before")
    @classmethod
    def _texts(cls, v: Any) -> List[str]:
        return _as_text_list(v)


class DataGovernanceAnalysis(_Payload):
    data_suitability: str = Field("", alias="dataSuitability")
    identified_risks: List[RiskCategory] = Field(default_factory=list, alias="identifiedRisks")
    governance_recommendations: List[str] = Field(
        default_factory=list, alias="governanceRecommendations"
    )

    @field_validator("data_suitability", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("identified_risks", mode="before")
    @classmethod
    def _risks(cls, v: Any) -> List[Any]:
        # A bare risk string is treated as an uncategorised risk
        return [
            item if isinstance(item, dict) else {"risks": [item]}
            for item in _as_list(v)
            if item is not None
        ]

    @field_validator("governance_recommendations", mode="before")
    @classmethod
    def _texts(cls, v: Any) -> List[str]:
        return _as_text_list(v)


class ReportView(BaseModel):
    """
    The four category views of a report.

    A category is ``None`` when its payload is absent from the report, so the
    renderer can omit the section rather than print an empty one.
    """

    business_strategy: Optional[List[BusinessObjective]] = None
    team_skills: Optional[TeamSkillsAnalysis] = None
    tech_stack: Optional[TechStackAnalysis] = None
    data_governance: Optional[DataGovernanceAnalysis] = None

    @classmethod
    def from_report(cls, report: Any) -> "ReportView":
        report = report if isinstance(report, dict) else {}

        business = report.get("businessStrategyAnalysis")
        if isinstance(business, dict):
            business = [business]

        return cls(
            business_strategy=(
                [BusinessObjective.model_validate(item) for item in business if isinstance(item, dict)]
                if isinstance(business, list)
                else None
            ),
            team_skills=_view(TeamSkillsAnalysis, report.get("teamSkillsAnalysis")),
            tech_stack=_view(TechStackAnalysis, report.get("techStackAnalysis")),
            data_governance=_view(DataGovernanceAnalysis, report.get("dataGovernanceAnalysis")),
        )


def _view(model: type, payload: Any) -> Optional[_Payload]:
    if not isinstance(payload, dict):
        return None
    return model.model_validate(payload)
