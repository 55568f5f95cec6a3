from datetime import date
from typing import Literal

from pydantic import BaseModel


class DailyWeather(BaseModel):
    """One local calendar day of forecast, imperial units."""
    date: date
    temperature_min: float
    temperature_max: float
    humidity: float  # %
    wind_speed: float  # mph
    precipitation: float = 0.0  # inches, rain + snow
    conditions: str = ""
    description: str = ""


class WeatherImpact(BaseModel):
    date: date
    conditions: Literal["suitable", "caution", "unsuitable"] = "suitable"
    affected_activities: list[str] = []
    recommended_actions: list[str] = []
    confidence_level: float = 0.85


class ScheduleAdjustment(BaseModel):
    task_id: int
    original_date: date
    suggested_date: date
    reason: str
    reasons: list[str] = []
    impact_score: int  # 0-10
    auto_adjust: bool = False


class RescheduleResult(BaseModel):
    adjustments_made: int = 0
    tasks_affected: list[int] = []
    next_suitable_dates: list[date] = []
    estimated_delay_days: int = 0
    suggestions: list[ScheduleAdjustment] = []


class WeatherSensitiveActivitySchema(BaseModel):
    id: int | None = None
    activity_type: str
    min_temperature: float | None = None
    max_temperature: float | None = None
    max_wind_speed: float | None = None
    precipitation_threshold: float | None = None
    humidity_threshold: float | None = None

    model_config = {"from_attributes": True}


class WeatherSensitivityUpdate(BaseModel):
    min_temperature: float | None = None
    max_temperature: float | None = None
    max_wind_speed: float | None = None
    precipitation_threshold: float | None = None
    humidity_threshold: float | None = None
