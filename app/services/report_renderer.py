"""
DOCX rendering of a persisted readiness report.

Sections are emitted in a fixed order; a category missing from the report is
left out entirely.  All payload access goes through ``ReportView``, so missing
or oddly-shaped fields render as empty text instead of raising.
"""
from __future__ import annotations

import io
import logging
from datetime import datetime
from typing import Any, List, Optional

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt

from app.models.report_models import (
    BusinessObjective,
    DataGovernanceAnalysis,
    ReportView,
    TeamSkillsAnalysis,
    TechStackAnalysis,
)

logger = logging.getLogger(__name__)

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

REPORT_TITLE = "AI Readiness Report"


def report_filename(project_id: str) -> str:
    return f"AI-Readiness-Report-{project_id}.docx"


class ReportRenderer:
    """Builds one python-docx ``Document`` per call to ``render``."""

    def __init__(self) -> None:
        self.doc = Document()
        style = self.doc.styles["Normal"]
        style.font.name = "Calibri"
        style.font.size = Pt(11)

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def _section_title(self, text: str) -> None:
        self.doc.add_heading(text, level=1)

    def _sub_heading(self, text: str) -> None:
        self.doc.add_heading(text, level=2)

    def _bullet(self, text: str, bold_prefix: Optional[str] = None) -> None:
        p = self.doc.add_paragraph(style="List Bullet")
        if bold_prefix is not None:
            run = p.add_run(f"{bold_prefix}:")
            run.bold = True
            p.add_run(f" {text}")
        else:
            p.add_run(text)

    def _bullets(self, items: List[str]) -> None:
        for item in items:
            self._bullet(item)

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _title(self, project_id: str, report_date: Optional[datetime]) -> None:
        title = self.doc.add_heading(REPORT_TITLE, level=0)
        title.alignment = WD_ALIGN_PARAGRAPH.CENTER

        p = self.doc.add_paragraph()
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER
        label = f"Project {project_id}"
        if report_date is not None:
            label += f" — {report_date.strftime('%Y-%m-%d')}"
        run = p.add_run(label)
        run.italic = True
        run.font.size = Pt(12)

    def _business_strategy(self, objectives: List[BusinessObjective]) -> None:
        self._section_title("Business Strategy & Suggested Use Cases")
        for item in objectives:
            self._sub_heading(item.objective or "No Objective Provided")
            p = self.doc.add_paragraph()
            p.add_run(item.analysis).italic = True
            for uc in item.suggested_use_cases:
                self._bullet(uc.explanation, bold_prefix=uc.use_case)

    def _team_skills(self, team: TeamSkillsAnalysis) -> None:
        self._section_title("Team & Skills Assessment")
        self._sub_heading("Strengths")
        self._bullets(team.strengths)
        self._sub_heading("Identified Gaps")
        self._bullets(team.gaps)
        self._sub_heading("Recommendations")
        self._bullets(team.recommendations)

    def _tech_stack(self, tech: TechStackAnalysis) -> None:
        self._section_title("Technology Stack Review")
        self.doc.add_paragraph(tech.analysis)
        self._sub_heading("Potential Bottlenecks")
        self._bullets(tech.bottlenecks)
        self._sub_heading("Recommendations")
        self._bullets(tech.recommendations)

    def _data_governance(self, data: DataGovernanceAnalysis) -> None:
        self._section_title("Data Readiness & Governance Analysis")
        p = self.doc.add_paragraph()
        p.add_run("Data Suitability: ").bold = True
        p.add_run(data.data_suitability)

        self._sub_heading("Identified Risks")
        for risk_category in data.identified_risks:
            p = self.doc.add_paragraph()
            p.paragraph_format.space_before = Pt(10)
            p.add_run(risk_category.category or "Uncategorized Risk").bold = True
            self._bullets(risk_category.risks)

        self._sub_heading("Governance Recommendations")
        self._bullets(data.governance_recommendations)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def render(self, project_id: str, report: Any, report_date: Optional[datetime] = None) -> bytes:
        view = ReportView.from_report(report)

        self._title(project_id, report_date)
        if view.business_strategy is not None:
            self._business_strategy(view.business_strategy)
        if view.team_skills is not None:
            self._team_skills(view.team_skills)
        if view.tech_stack is not None:
            self._tech_stack(view.tech_stack)
        if view.data_governance is not None:
            self._data_governance(view.data_governance)

        buffer = io.BytesIO()
        self.doc.save(buffer)
        data = buffer.getvalue()
        logger.info("Rendered report for project %s (%d bytes)", project_id, len(data))
        return data


def render_report_docx(record: Any) -> bytes:
    """
    Render a persisted ``AnalysisReport`` (or any object with ``project_id``,
    ``report``, ``updated_at`` and ``generated_at`` attributes) to DOCX bytes.
    """
    report_date = getattr(record, "updated_at", None) or getattr(record, "generated_at", None)
    return ReportRenderer().render(
        str(getattr(record, "project_id", "") or ""),
        getattr(record, "report", None),
        report_date,
    )
