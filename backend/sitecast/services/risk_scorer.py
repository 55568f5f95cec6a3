"""Project risk scoring.

Five 0-100 sub-scores combined into a weighted overall score:
  budget(0.30) + schedule(0.25) + weather(0.15) + resource(0.20) + quality(0.10)

Missing data degrades to a neutral default instead of failing. Every call
appends one row to the risk_assessments log.
"""

import logging
import math
import re
from datetime import date, datetime, timezone

from sqlalchemy.orm import Session, selectinload

from sitecast.config import settings
from sitecast.errors import AnalysisError, ProjectNotFoundError
from sitecast.models.project import (
    ChangeOrder,
    DailyReport,
    Project,
    QualityAnalysis,
    QualityInspection,
    Task,
)
from sitecast.models.risk import RiskAssessmentRecord
from sitecast.schemas.risk import RiskAssessment

logger = logging.getLogger(__name__)

WEIGHTS = {
    "budget": 0.30,
    "schedule": 0.25,
    "weather": 0.15,
    "resource": 0.20,
    "quality": 0.10,
}

NEW_PROJECT_BUDGET_RISK = 20.0
NO_INSPECTION_QUALITY_RISK = 30.0

_ADVERSE_WEATHER_RE = re.compile(
    r"\b(rain|snow|storm|thunder|sleet|hail|ice|icy|freezing|fog|wind|blizzard|extreme (heat|cold))",
    re.IGNORECASE,
)
RESOURCE_CATEGORIES = {"resource", "labor", "material", "equipment"}
RESOURCE_WORDS = ("shortage", "resource", "labor", "material", "equipment")

RECOMMENDATIONS = {
    "budget": [
        "Review budget allocation and identify cost-saving opportunities",
        "Implement stricter expense approval processes",
    ],
    "schedule": [
        "Reassess task dependencies and critical path",
        "Consider adding resources to overdue tasks",
    ],
    "weather": [
        "Build weather contingency days into the schedule",
        "Prioritize indoor work during adverse weather periods",
    ],
    "resource": [
        "Secure backup suppliers and subcontractors",
        "Review crew allocation across active projects",
    ],
    "quality": [
        "Increase inspection frequency on active work areas",
        "Schedule corrective work for open defects",
    ],
}
RECOMMENDATION_THRESHOLDS = {
    "budget": 60,
    "schedule": 60,
    "weather": 50,
    "resource": 50,
    "quality": 50,
}
ESCALATION_RECOMMENDATION = "Escalate project to executive review"


class RiskScorer:
    def __init__(self, db: Session):
        self.db = db

    def assess(self, project_id: int, today: date | None = None) -> RiskAssessment:
        """Score a project and append the result to the assessment log."""
        try:
            project = self._load_project(project_id)
            assessment = score_project(project, today or date.today())

            record = RiskAssessmentRecord(
                project_id=project_id,
                assessed_at=datetime.now(timezone.utc),
                budget_risk=assessment.budget_risk,
                schedule_risk=assessment.schedule_risk,
                weather_risk=assessment.weather_risk,
                resource_risk=assessment.resource_risk,
                quality_risk=assessment.quality_risk,
                overall_score=assessment.overall_score,
                risk_level=assessment.risk_level,
                recommendations=assessment.recommendations,
                confidence=assessment.confidence,
            )
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)

            logger.info(
                "Risk assessment for project %s: overall %.0f (%s)",
                project_id, assessment.overall_score, assessment.risk_level,
            )
            return RiskAssessment.model_validate(record)
        except ProjectNotFoundError:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error("Risk analysis failed for project %s: %s", project_id, e)
            raise AnalysisError(f"Risk analysis failed: {e}") from e

    def history(self, project_id: int, limit: int = 20) -> list[RiskAssessment]:
        """Previous assessments for a project, newest first."""
        if self.db.query(Project.id).filter(Project.id == project_id).first() is None:
            raise ProjectNotFoundError(project_id)
        rows = (
            self.db.query(RiskAssessmentRecord)
            .filter(RiskAssessmentRecord.project_id == project_id)
            .order_by(RiskAssessmentRecord.assessed_at.desc(), RiskAssessmentRecord.id.desc())
            .limit(limit)
            .all()
        )
        return [RiskAssessment.model_validate(r) for r in rows]

    def _load_project(self, project_id: int) -> Project:
        project = (
            self.db.query(Project)
            .options(
                selectinload(Project.tasks),
                selectinload(Project.expenses),
                selectinload(Project.change_orders),
                selectinload(Project.quality_inspections),
                selectinload(Project.quality_analyses),
                selectinload(Project.daily_reports),
            )
            .filter(Project.id == project_id)
            .first()
        )
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project


def score_project(project: Project, today: date) -> RiskAssessment:
    """Compute all sub-scores for a loaded project without touching the DB."""
    spent = sum(e.amount or 0 for e in project.expenses)
    scores = {
        "budget": budget_risk(project.budget or 0, spent, project.completion_percentage or 0),
        "schedule": schedule_risk(project.tasks, today),
        "weather": weather_risk(project.daily_reports),
        "resource": resource_risk(project.change_orders),
        "quality": quality_risk(project.quality_inspections, project.quality_analyses),
    }
    overall = overall_score(scores)

    return RiskAssessment(
        project_id=project.id,
        budget_risk=scores["budget"],
        schedule_risk=scores["schedule"],
        weather_risk=scores["weather"],
        resource_risk=scores["resource"],
        quality_risk=scores["quality"],
        overall_score=overall,
        risk_level=risk_level(overall),
        recommendations=recommendations(scores, overall),
        confidence=settings.risk_confidence,
    )


def budget_risk(budget: float, spent: float, completion_pct: float) -> float:
    """Spend running ahead of progress raises risk, two points per percent.

    A project that has not started (or has no budget) sits at a flat 20.
    """
    if completion_pct <= 0 or budget <= 0:
        return NEW_PROJECT_BUDGET_RISK
    spent_pct = spent / budget * 100
    return clamp((spent_pct - completion_pct) * 2 + 20)


def schedule_risk(tasks: list[Task], today: date) -> float:
    if not tasks:
        return 0.0
    overdue = sum(1 for t in tasks if _is_overdue(t, today))
    return clamp(overdue / len(tasks) * 150)


def weather_risk(reports: list[DailyReport]) -> float:
    """Share of reported days with at least one adverse report, times 200."""
    days = {r.report_date for r in reports}
    if not days:
        return 0.0
    adverse_days = {r.report_date for r in reports if is_adverse_weather(r)}
    return clamp(len(adverse_days) / len(days) * 200)


def resource_risk(change_orders: list[ChangeOrder]) -> float:
    flagged = sum(1 for co in change_orders if is_resource_change_order(co))
    return clamp(flagged * 10)


def quality_risk(
    inspections: list[QualityInspection],
    analyses: list[QualityAnalysis],
) -> float:
    scores = [i.score for i in inspections if i.score is not None]
    if not scores:
        return NO_INSPECTION_QUALITY_RISK
    mean_score = sum(scores) / len(scores)
    defects = sum(a.defects_detected or 0 for a in analyses)
    return clamp((100 - mean_score) + 5 * defects)


def overall_score(scores: dict[str, float]) -> float:
    # half-up, so a weighted 24.5 lands in "medium"
    return clamp(math.floor(sum(scores[k] * w for k, w in WEIGHTS.items()) + 0.5))


def risk_level(score: float) -> str:
    if score < 25:
        return "low"
    if score < 50:
        return "medium"
    if score < 75:
        return "high"
    return "critical"


def recommendations(scores: dict[str, float], overall: float) -> list[str]:
    recs = []
    for key, threshold in RECOMMENDATION_THRESHOLDS.items():
        if scores[key] > threshold:
            recs.extend(RECOMMENDATIONS[key])
    if overall >= 75:
        recs.append(ESCALATION_RECOMMENDATION)
    return recs


def is_adverse_weather(report: DailyReport) -> bool:
    if report.weather_delay:
        return True
    return bool(_ADVERSE_WEATHER_RE.search(report.weather_conditions or ""))


def is_resource_change_order(change_order: ChangeOrder) -> bool:
    if (change_order.category or "").lower() in RESOURCE_CATEGORIES:
        return True
    text = f"{change_order.title or ''} {change_order.reason or ''}".lower()
    return any(word in text for word in RESOURCE_WORDS)


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, float(value)))


def _is_overdue(task: Task, today: date) -> bool:
    if task.status == "completed" or task.end_date is None:
        return False
    return task.end_date < today
