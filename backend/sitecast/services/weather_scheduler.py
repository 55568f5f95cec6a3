"""Weather-based rescheduling of outdoor work.

Each weather-sensitive task is checked against the thresholds of its
construction phase for the forecast day it starts on. A flagged task gets a
suggested date: the first later day (up to 7 out) that satisfies every
threshold, or 7 days out when none does.

Impact score tallies the violated threshold kinds:
  precipitation 4, wind 3, temperature 2, humidity 1 (cap 10)
Scores at or above settings.auto_adjust_threshold (8) move the task and
write an audit row; anything lower is returned as a suggestion only.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, timedelta

from sqlalchemy.orm import Session

from sitecast.config import settings
from sitecast.errors import AnalysisError, ProjectNotFoundError
from sitecast.models.project import Project, Task
from sitecast.models.weather import WeatherScheduleAdjustment, WeatherSensitiveActivity
from sitecast.schemas.weather import (
    DailyWeather,
    RescheduleResult,
    ScheduleAdjustment,
    WeatherImpact,
    WeatherSensitivityUpdate,
)
from sitecast.services.owm_client import OpenWeatherClient

logger = logging.getLogger(__name__)

IMPACT_POINTS = {
    "precipitation": 4,
    "wind": 3,
    "temperature": 2,
    "humidity": 1,
}
MAX_IMPACT_SCORE = 10
SEARCH_DAYS = 7
IMPACT_CONFIDENCE = 0.85

UNSUITABLE_ACTIONS = [
    "Consider rescheduling outdoor work",
    "Focus on indoor activities",
    "Secure materials and equipment",
]
CAUTION_ACTIONS = [
    "Monitor weather conditions closely",
    "Have contingency plans ready",
    "Consider early start or delayed start times",
]

_POINT_RE = re.compile(r"POINT\s*\(\s*([-\d.]+)\s+([-\d.]+)\s*\)", re.IGNORECASE)


@dataclass(frozen=True)
class Violation:
    kind: str  # temperature, wind, precipitation, humidity
    message: str


class WeatherRescheduler:
    def __init__(self, db: Session, weather: OpenWeatherClient):
        self.db = db
        self.weather = weather

    async def analyze_weather_impact(
        self,
        project_id: int,
        start: date,
        end: date,
        today: date | None = None,
    ) -> list[WeatherImpact]:
        """Classify each forecast day in [start, end] for the project's site."""
        today = today or date.today()
        try:
            project = self._get_project(project_id)
            lat, lon = project_coordinates(project)
            days = min(settings.forecast_days, max(1, (end - today).days + 1))
            forecast = await self.weather.get_forecast(lat, lon, days)
            activities = self.list_activities()

            impacts = []
            for day in forecast:
                if day.date < start or day.date > end:
                    continue
                impacts.append(assess_day(day, activities))
            return impacts
        except ProjectNotFoundError:
            raise
        except Exception as e:
            logger.error("Weather impact analysis failed for project %s: %s", project_id, e)
            raise AnalysisError(f"Weather impact analysis failed: {e}") from e

    def suggest_schedule_adjustments(
        self,
        tasks: list[Task],
        forecast: list[DailyWeather],
        activities: dict[str, WeatherSensitiveActivity],
    ) -> list[ScheduleAdjustment]:
        by_date = {w.date: w for w in forecast}
        adjustments = []

        for task in tasks:
            if not task.weather_sensitive or task.start_date is None:
                continue
            weather = by_date.get(task.start_date)
            rules = activities.get(task.construction_phase or "")
            if weather is None or rules is None:
                continue

            violations = find_violations(weather, rules)
            if not violations:
                continue

            score = calculate_impact_score(violations)
            reasons = [v.message for v in violations]
            adjustments.append(ScheduleAdjustment(
                task_id=task.id,
                original_date=task.start_date,
                suggested_date=find_next_suitable_date(task.start_date, forecast, rules),
                reason=", ".join(reasons),
                reasons=reasons,
                impact_score=score,
                auto_adjust=score >= settings.auto_adjust_threshold,
            ))
        return adjustments

    async def auto_reschedule(self, project_id: int, today: date | None = None) -> RescheduleResult:
        """Move high-impact weather conflicts in the coming week; suggest the rest."""
        today = today or date.today()
        try:
            project = self._get_project(project_id)
            window_end = today + timedelta(days=settings.reschedule_window_days)
            tasks = (
                self.db.query(Task)
                .filter(
                    Task.project_id == project_id,
                    Task.weather_sensitive.is_(True),
                    Task.start_date >= today,
                    Task.start_date <= window_end,
                )
                .order_by(Task.start_date)
                .all()
            )
            if not tasks:
                return RescheduleResult()

            lat, lon = project_coordinates(project)
            forecast = await self.weather.get_forecast(lat, lon, settings.forecast_days)
            activities = {a.activity_type: a for a in self.list_activities()}
            adjustments = self.suggest_schedule_adjustments(tasks, forecast, activities)

            result = RescheduleResult()
            tasks_by_id = {t.id: t for t in tasks}
            for adj in adjustments:
                if not adj.auto_adjust:
                    result.suggestions.append(adj)
                    continue

                _shift_task(tasks_by_id[adj.task_id], adj.suggested_date)
                self.db.add(WeatherScheduleAdjustment(
                    project_id=project_id,
                    task_id=adj.task_id,
                    original_date=adj.original_date,
                    adjusted_date=adj.suggested_date,
                    weather_reason=adj.reason,
                    impact_score=adj.impact_score,
                    auto_adjusted=True,
                ))
                result.adjustments_made += 1
                result.tasks_affected.append(adj.task_id)
                result.next_suitable_dates.append(adj.suggested_date)
                result.estimated_delay_days += (adj.suggested_date - adj.original_date).days

            self.db.commit()
            logger.info(
                "Weather reschedule for project %s: %d moved, %d suggested",
                project_id, result.adjustments_made, len(result.suggestions),
            )
            return result
        except ProjectNotFoundError:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error("Weather rescheduling failed for project %s: %s", project_id, e)
            raise AnalysisError(f"Weather rescheduling failed: {e}") from e

    def list_activities(self) -> list[WeatherSensitiveActivity]:
        return list_activities(self.db)

    def _get_project(self, project_id: int) -> Project:
        project = self.db.query(Project).filter(Project.id == project_id).first()
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project


def list_activities(db: Session) -> list[WeatherSensitiveActivity]:
    return (
        db.query(WeatherSensitiveActivity)
        .order_by(WeatherSensitiveActivity.activity_type)
        .all()
    )


def upsert_activity(
    db: Session,
    activity_type: str,
    update: WeatherSensitivityUpdate,
) -> WeatherSensitiveActivity:
    """Create the activity if needed and overwrite the thresholds that were sent."""
    activity = db.query(WeatherSensitiveActivity).filter_by(activity_type=activity_type).first()
    if activity is None:
        activity = WeatherSensitiveActivity(activity_type=activity_type)
        db.add(activity)

    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(activity, field, value)

    try:
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error("Failed to update weather sensitivity for %s: %s", activity_type, e)
        raise
    db.refresh(activity)
    return activity


def find_violations(weather: DailyWeather, rules: WeatherSensitiveActivity) -> list[Violation]:
    """One entry per threshold the day's weather breaks. Unset thresholds are skipped."""
    violations = []
    if rules.min_temperature is not None and weather.temperature_min < rules.min_temperature:
        violations.append(Violation(
            "temperature",
            f"Temperature too low: {weather.temperature_min:g}°F < {rules.min_temperature:g}°F",
        ))
    if rules.max_temperature is not None and weather.temperature_max > rules.max_temperature:
        violations.append(Violation(
            "temperature",
            f"Temperature too high: {weather.temperature_max:g}°F > {rules.max_temperature:g}°F",
        ))
    if rules.max_wind_speed is not None and weather.wind_speed > rules.max_wind_speed:
        violations.append(Violation(
            "wind",
            f"Wind too strong: {weather.wind_speed:g} mph > {rules.max_wind_speed:g} mph",
        ))
    if rules.precipitation_threshold is not None and weather.precipitation > rules.precipitation_threshold:
        violations.append(Violation(
            "precipitation",
            f'Too much precipitation: {weather.precipitation:g}" > {rules.precipitation_threshold:g}"',
        ))
    if rules.humidity_threshold is not None and weather.humidity > rules.humidity_threshold:
        violations.append(Violation(
            "humidity",
            f"Humidity too high: {weather.humidity:g}% > {rules.humidity_threshold:g}%",
        ))
    return violations


def is_suitable(weather: DailyWeather, rules: WeatherSensitiveActivity) -> bool:
    return not find_violations(weather, rules)


def find_next_suitable_date(
    original: date,
    forecast: list[DailyWeather],
    rules: WeatherSensitiveActivity,
) -> date:
    """First day after ``original`` (within 7) that meets every threshold.

    Days missing from the forecast are skipped. Falls back to original + 7.
    """
    by_date = {w.date: w for w in forecast}
    for offset in range(1, SEARCH_DAYS + 1):
        candidate = original + timedelta(days=offset)
        weather = by_date.get(candidate)
        if weather is not None and is_suitable(weather, rules):
            return candidate
    return original + timedelta(days=SEARCH_DAYS)


def calculate_impact_score(violations: list[Violation]) -> int:
    score = sum(IMPACT_POINTS.get(v.kind, 0) for v in violations)
    return min(score, MAX_IMPACT_SCORE)


def classify_day(weather: DailyWeather, affected: bool) -> str:
    """Severe weather is unsuitable for outdoor work whatever the thresholds say."""
    if (
        weather.precipitation > 0.5
        or weather.wind_speed > 25
        or weather.temperature_min < 32
        or weather.temperature_max > 95
    ):
        return "unsuitable"
    if affected:
        return "caution"
    return "suitable"


def assess_day(weather: DailyWeather, activities: list[WeatherSensitiveActivity]) -> WeatherImpact:
    affected = []
    for activity in activities:
        violations = find_violations(weather, activity)
        if violations:
            reasons = ", ".join(v.message for v in violations)
            affected.append(f"{activity.activity_type}: {reasons}")

    conditions = classify_day(weather, bool(affected))
    if conditions == "unsuitable":
        actions = list(UNSUITABLE_ACTIONS)
    elif conditions == "caution":
        actions = list(CAUTION_ACTIONS)
    else:
        actions = []

    return WeatherImpact(
        date=weather.date,
        conditions=conditions,
        affected_activities=affected,
        recommended_actions=actions,
        confidence_level=IMPACT_CONFIDENCE,
    )


def project_coordinates(project: Project) -> tuple[float, float]:
    """Site (lat, lon): explicit columns, then the PostGIS point, then the default."""
    if project.latitude is not None and project.longitude is not None:
        return project.latitude, project.longitude
    if project.gps_coordinates:
        match = _POINT_RE.search(project.gps_coordinates)
        if match:
            lon, lat = float(match.group(1)), float(match.group(2))
            return lat, lon
    return settings.default_latitude, settings.default_longitude


def _shift_task(task: Task, new_start: date):
    """Move a task's start, keeping its duration."""
    if task.end_date is not None:
        task.end_date = new_start + (task.end_date - task.start_date)
    task.start_date = new_start
