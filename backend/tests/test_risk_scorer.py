from datetime import date, timedelta

import pytest

from sitecast.errors import AnalysisError, ProjectNotFoundError
from sitecast.models.project import (
    ChangeOrder,
    DailyReport,
    Expense,
    Project,
    QualityAnalysis,
    QualityInspection,
    Task,
)
from sitecast.models.risk import RiskAssessmentRecord
from sitecast.services import risk_scorer
from sitecast.services.risk_scorer import RiskScorer, score_project

from tests.conftest import TODAY


def test_budget_risk_example_caps_at_100():
    # 120% spent at 80% complete -> (120 - 80) * 2 + 20 = 100
    assert risk_scorer.budget_risk(100_000, 120_000, 80) == 100


def test_budget_risk_unstarted_project_is_flat_20():
    for spent in (0, 50_000, 1_000_000):
        assert risk_scorer.budget_risk(100_000, spent, 0) == 20


def test_budget_risk_under_spend_clamps_to_zero():
    assert risk_scorer.budget_risk(100_000, 10_000, 90) == 0


def test_budget_risk_on_track():
    assert risk_scorer.budget_risk(100_000, 50_000, 50) == 20


def test_schedule_risk_counts_overdue_open_tasks():
    tasks = [
        Task(name="a", status="pending", end_date=TODAY - timedelta(days=1)),
        Task(name="b", status="completed", end_date=TODAY - timedelta(days=5)),
        Task(name="c", status="in_progress", end_date=TODAY + timedelta(days=3)),
        Task(name="d", status="pending", end_date=None),
    ]
    # 1 of 4 overdue -> 0.25 * 150
    assert risk_scorer.schedule_risk(tasks, TODAY) == 37.5


def test_schedule_risk_no_tasks():
    assert risk_scorer.schedule_risk([], TODAY) == 0


def test_weather_risk_ratio_of_adverse_days():
    reports = [
        DailyReport(report_date=TODAY - timedelta(days=3), weather_conditions="Heavy rain"),
        DailyReport(report_date=TODAY - timedelta(days=2), weather_conditions="Sunny"),
        DailyReport(report_date=TODAY - timedelta(days=1), weather_conditions="Clear", weather_delay=True),
        DailyReport(report_date=TODAY, weather_conditions="Partly cloudy"),
    ]
    # 2 of 4 days -> 0.5 * 200
    assert risk_scorer.weather_risk(reports) == 100
    assert risk_scorer.weather_risk(reports[1:2] + reports[3:]) == 0


def test_weather_risk_counts_each_day_once():
    reports = [
        DailyReport(report_date=TODAY - timedelta(days=1), weather_conditions="Rain"),
        DailyReport(report_date=TODAY - timedelta(days=1), weather_conditions="Thunderstorm"),
        DailyReport(report_date=TODAY - timedelta(days=1), weather_conditions="Snow"),
        DailyReport(report_date=TODAY - timedelta(days=2), weather_conditions="Sunny"),
        DailyReport(report_date=TODAY - timedelta(days=3), weather_conditions="Sunny"),
        DailyReport(report_date=TODAY - timedelta(days=4), weather_conditions="Sunny"),
    ]
    # 1 adverse day of 4 reported days -> 0.25 * 200
    assert risk_scorer.weather_risk(reports) == 50


def test_weather_risk_ignores_harmless_words():
    assert risk_scorer.weather_risk([DailyReport(report_date=TODAY, weather_conditions="Nice and sunny")]) == 0


def test_resource_risk_flags_by_category_and_reason():
    orders = [
        ChangeOrder(category="labor"),
        ChangeOrder(category="scope", reason="Steel shortage from supplier"),
        ChangeOrder(category="design", title="Add skylight"),
    ]
    assert risk_scorer.resource_risk(orders) == 20
    assert risk_scorer.resource_risk([ChangeOrder(category="resource") for _ in range(15)]) == 100


def test_quality_risk_defaults_without_inspections():
    assert risk_scorer.quality_risk([], [QualityAnalysis(defects_detected=4)]) == 30


def test_quality_risk_mean_score_plus_defects():
    inspections = [QualityInspection(score=90), QualityInspection(score=80)]
    analyses = [QualityAnalysis(defects_detected=2), QualityAnalysis(defects_detected=1)]
    assert risk_scorer.quality_risk(inspections, analyses) == 30  # (100 - 85) + 15


def test_overall_score_weighting():
    scores = {"budget": 100, "schedule": 40, "weather": 20, "resource": 50, "quality": 10}
    # 30 + 10 + 3 + 10 + 1
    assert risk_scorer.overall_score(scores) == 54


def test_overall_score_rounds_ties_up():
    # 0.30 * 25 + 0.10 * 30 = 10.5
    scores = {"budget": 25, "schedule": 0, "weather": 0, "resource": 0, "quality": 30}
    assert risk_scorer.overall_score(scores) == 11

    # 15 + 9.5 = 24.5 rounds into the medium band
    scores = {"budget": 50, "schedule": 0, "weather": 0, "resource": 0, "quality": 95}
    assert risk_scorer.overall_score(scores) == 25
    assert risk_scorer.risk_level(risk_scorer.overall_score(scores)) == "medium"


@pytest.mark.parametrize(
    "score,level",
    [(0, "low"), (24.9, "low"), (25, "medium"), (50, "high"), (75, "critical"), (100, "critical")],
)
def test_risk_level(score, level):
    assert risk_scorer.risk_level(score) == level


def test_recommendations_follow_threshold_crossings():
    scores = {"budget": 61, "schedule": 60, "weather": 51, "resource": 0, "quality": 0}
    recs = risk_scorer.recommendations(scores, 40)
    assert recs == risk_scorer.RECOMMENDATIONS["budget"] + risk_scorer.RECOMMENDATIONS["weather"]
    assert risk_scorer.ESCALATION_RECOMMENDATION in risk_scorer.recommendations(scores, 80)


def test_scores_stay_in_range_for_extreme_inputs():
    p = Project(id=1, name="x", budget=1, completion_percentage=1)
    p.expenses = [Expense(amount=10_000_000)]
    p.tasks = [Task(name="late", status="pending", end_date=TODAY - timedelta(days=30))]
    p.daily_reports = [DailyReport(report_date=TODAY, weather_conditions="snow storm")]
    p.change_orders = [ChangeOrder(category="equipment") for _ in range(50)]
    p.quality_inspections = [QualityInspection(score=-50)]
    p.quality_analyses = [QualityAnalysis(defects_detected=100)]

    result = score_project(p, TODAY)
    for value in (
        result.budget_risk, result.schedule_risk, result.weather_risk,
        result.resource_risk, result.quality_risk, result.overall_score,
    ):
        assert 0 <= value <= 100
    assert result.overall_score == 100
    assert result.risk_level == "critical"


def test_assess_persists_history_row(db, project):
    db.add_all([
        Expense(project_id=project.id, amount=60_000, expense_date=TODAY),
        Task(project_id=project.id, name="Framing", status="pending", end_date=TODAY - timedelta(days=2)),
        Task(project_id=project.id, name="Roofing", status="pending", end_date=TODAY + timedelta(days=9)),
        DailyReport(project_id=project.id, report_date=TODAY, weather_conditions="Rain showers"),
        DailyReport(project_id=project.id, report_date=TODAY - timedelta(days=1), weather_conditions="Clear"),
        QualityInspection(project_id=project.id, score=90, inspected_at=TODAY),
    ])
    db.commit()

    result = RiskScorer(db).assess(project.id, today=TODAY)

    assert result.id is not None
    assert result.budget_risk == 40  # (60 - 50) * 2 + 20
    assert result.schedule_risk == 75
    assert result.weather_risk == 100
    assert result.resource_risk == 0
    assert result.quality_risk == 10
    # 12 + 18.75 + 15 + 0 + 1 = 46.75
    assert result.overall_score == 47
    assert result.risk_level == "medium"
    assert result.confidence == 0.85
    assert db.query(RiskAssessmentRecord).count() == 1


def test_assess_is_append_only(db, project):
    scorer = RiskScorer(db)
    scorer.assess(project.id, today=TODAY)
    scorer.assess(project.id, today=TODAY)
    assert db.query(RiskAssessmentRecord).filter_by(project_id=project.id).count() == 2
    assert len(scorer.history(project.id)) == 2


def test_history_unknown_project(db):
    with pytest.raises(ProjectNotFoundError):
        RiskScorer(db).history(999)


def test_assess_unknown_project(db):
    with pytest.raises(ProjectNotFoundError):
        RiskScorer(db).assess(999)


def test_assess_wraps_unexpected_errors(db, project, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("db went away")

    monkeypatch.setattr(risk_scorer, "score_project", boom)
    with pytest.raises(AnalysisError, match="^Risk analysis failed: db went away"):
        RiskScorer(db).assess(project.id)


def test_new_project_budget_risk_ignores_spend(db):
    p = Project(name="Fresh", budget=50_000, completion_percentage=0, start_date=date(2026, 5, 1))
    db.add(p)
    db.commit()
    db.add(Expense(project_id=p.id, amount=45_000))
    db.commit()

    assert RiskScorer(db).assess(p.id, today=TODAY).budget_risk == 20
