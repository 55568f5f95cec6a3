from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from sitecast.database import Base


class WeatherSensitiveActivity(Base):
    """Admin-edited thresholds gating one construction activity type.

    A null threshold is not checked.
    """
    __tablename__ = "weather_sensitive_activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    activity_type = Column(String(50), nullable=False, unique=True)
    min_temperature = Column(Float)  # F
    max_temperature = Column(Float)  # F
    max_wind_speed = Column(Float)  # mph
    precipitation_threshold = Column(Float)  # inches per day
    humidity_threshold = Column(Float)  # %


class WeatherScheduleAdjustment(Base):
    """Audit row written only when a task is moved automatically."""
    __tablename__ = "weather_schedule_adjustments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), index=True)
    original_date = Column(Date, nullable=False)
    adjusted_date = Column(Date, nullable=False)
    weather_reason = Column(Text)
    impact_score = Column(Integer)
    auto_adjusted = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())
