"""Final cost prediction.

Blend of three projections:
  linear(0.4)      current spend / completion fraction
  burn rate(0.4)   current spend + 30-day burn rate * days remaining
  historical(0.2)  budget * mean overrun ratio of completed same-type projects

Nothing is persisted; each request recomputes from the cost records.
"""

import logging
import math
from datetime import date, datetime, timedelta, timezone

from sqlalchemy.orm import Session

from sitecast.errors import AnalysisError, ProjectNotFoundError
from sitecast.models.project import ChangeOrder, CostEntry, MaterialUsage, Project, TimeEntry
from sitecast.schemas.cost import CompletionProbabilities, CostPrediction, MonthlyForecast

logger = logging.getLogger(__name__)

BLEND_WEIGHTS = (0.4, 0.4, 0.2)  # linear, burn rate, historical
BURN_WINDOW_DAYS = 30
DEFAULT_OVERRUN_RATIO = 1.1


class CostPredictor:
    def __init__(self, db: Session):
        self.db = db

    def predict(self, project_id: int, today: date | None = None) -> CostPrediction:
        today = today or date.today()
        try:
            project = self.db.query(Project).filter(Project.id == project_id).first()
            if project is None:
                raise ProjectNotFoundError(project_id)

            cost_entries = self.db.query(CostEntry).filter(CostEntry.project_id == project_id).all()
            change_orders = self.db.query(ChangeOrder).filter(ChangeOrder.project_id == project_id).all()
            materials = self.db.query(MaterialUsage).filter(MaterialUsage.project_id == project_id).all()
            time_entries = self.db.query(TimeEntry).filter(TimeEntry.project_id == project_id).all()
            ratios = self._historical_ratios(project)

            prediction = build_prediction(
                project, cost_entries, change_orders, materials, time_entries, ratios, today,
            )
            logger.info(
                "Cost prediction for project %s: %.2f (%+.1f%% vs budget)",
                project_id, prediction.predicted_final_cost, prediction.variance_percentage,
            )
            return prediction
        except ProjectNotFoundError:
            raise
        except Exception as e:
            logger.error("Cost prediction failed for project %s: %s", project_id, e)
            raise AnalysisError(f"Cost prediction failed: {e}") from e

    def _historical_ratios(self, project: Project) -> list[float]:
        """actual_cost / budget for completed projects of the same type."""
        rows = (
            self.db.query(Project.budget, Project.actual_cost)
            .filter(
                Project.status == "completed",
                Project.project_type == project.project_type,
                Project.id != project.id,
                Project.actual_cost.isnot(None),
                Project.budget > 0,
            )
            .all()
        )
        return [actual / budget for budget, actual in rows]


def build_prediction(
    project: Project,
    cost_entries: list[CostEntry],
    change_orders: list[ChangeOrder],
    materials: list[MaterialUsage],
    time_entries: list[TimeEntry],
    historical_ratios: list[float],
    today: date,
) -> CostPrediction:
    budget = project.budget or 0.0
    completion = project.completion_percentage or 0.0

    spend = current_spend(cost_entries, materials, time_entries)
    rate = burn_rate(cost_entries, today)
    remaining_days = days_remaining(project.end_date, today)

    linear = linear_projection(spend, completion, budget)
    burn = spend + rate * remaining_days
    historical = historical_projection(budget, historical_ratios)

    w_linear, w_burn, w_hist = BLEND_WEIGHTS
    predicted = linear * w_linear + burn * w_burn + historical * w_hist

    variance = predicted - budget
    variance_pct = variance / budget * 100 if budget > 0 else 0.0
    exposure = sum(co.amount or 0 for co in change_orders if co.status in ("pending", "approved"))

    return CostPrediction(
        project_id=project.id,
        budget=round(budget, 2),
        current_spend=round(spend, 2),
        burn_rate=round(rate, 2),
        days_remaining=remaining_days,
        linear_projection=round(linear, 2),
        burn_rate_projection=round(burn, 2),
        historical_projection=round(historical, 2),
        predicted_final_cost=round(predicted, 2),
        variance=round(variance, 2),
        variance_percentage=round(variance_pct, 2),
        change_order_exposure=round(exposure, 2),
        completion_probabilities=completion_probabilities(variance_pct),
        monthly_forecast=monthly_forecast(predicted, spend, remaining_days, today),
        risk_factors=_risk_factors(variance_pct, rate, budget, project, exposure, today),
        generated_at=datetime.now(timezone.utc),
    )


def current_spend(
    cost_entries: list[CostEntry],
    materials: list[MaterialUsage],
    time_entries: list[TimeEntry],
) -> float:
    costs = sum(c.amount or 0 for c in cost_entries)
    material = sum(_material_cost(m) for m in materials)
    labor = sum((t.hours_worked or 0) * (t.hourly_rate or 0) for t in time_entries)
    return costs + material + labor


def burn_rate(cost_entries: list[CostEntry], today: date) -> float:
    """Average daily spend over the 30 days ending today (today included)."""
    since = today - timedelta(days=BURN_WINDOW_DAYS)
    recent = sum(
        c.amount or 0 for c in cost_entries
        if c.entry_date is not None and since < c.entry_date <= today
    )
    return recent / BURN_WINDOW_DAYS


def days_remaining(end_date: date | None, today: date) -> int:
    if end_date is None:
        return 0
    return max(0, (end_date - today).days)


def linear_projection(spend: float, completion_pct: float, budget: float) -> float:
    if completion_pct <= 0:
        return max(budget, spend)
    return spend / (completion_pct / 100)


def historical_projection(budget: float, ratios: list[float]) -> float:
    if not ratios:
        return budget * DEFAULT_OVERRUN_RATIO
    return budget * (sum(ratios) / len(ratios))


def completion_probabilities(variance_pct: float) -> CompletionProbabilities:
    v = abs(variance_pct)
    return CompletionProbabilities(
        on_budget=_pct(100 - v * 3),
        within_5_percent=_pct(100 - max(0.0, v - 5) * 4),
        within_10_percent=_pct(100 - max(0.0, v - 10) * 3),
    )


def monthly_forecast(
    predicted: float,
    spend: float,
    remaining_days: int,
    today: date,
) -> list[MonthlyForecast]:
    """Spread the remaining predicted cost evenly over the remaining months."""
    remaining = max(0.0, predicted - spend)
    months = max(1, math.ceil(remaining_days / 30))
    per_month = remaining / months

    forecast = []
    cumulative = spend
    year, month = today.year, today.month
    for i in range(months):
        cumulative += per_month
        forecast.append(MonthlyForecast(
            month=f"{year:04d}-{month:02d}",
            projected_spend=round(per_month, 2),
            cumulative_spend=round(cumulative, 2),
            confidence=round(max(0.3, 0.9 - 0.1 * i), 2),
        ))
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return forecast


def _risk_factors(
    variance_pct: float,
    rate: float,
    budget: float,
    project: Project,
    exposure: float,
    today: date,
) -> list[str]:
    factors = []
    if variance_pct > 10:
        factors.append(f"Projected overrun of {variance_pct:.1f}%")
    if budget > 0 and project.start_date and project.end_date and project.end_date > project.start_date:
        planned_rate = budget / (project.end_date - project.start_date).days
        if rate > planned_rate:
            factors.append("Burn rate above planned daily budget pace")
    if budget > 0 and exposure > budget * 0.1:
        factors.append(f"Open change orders worth ${exposure:,.0f}")
    if project.end_date and project.end_date < today and (project.completion_percentage or 0) < 100:
        factors.append("Project past planned end date")
    return factors


def _material_cost(m: MaterialUsage) -> float:
    if m.total_cost is not None:
        return m.total_cost
    return (m.quantity or 0) * (m.unit_cost or 0)


def _pct(value: float) -> float:
    return round(max(0.0, min(100.0, value)), 1)
