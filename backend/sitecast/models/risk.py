from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, JSON
from sqlalchemy.sql import func

from sitecast.database import Base


class RiskAssessmentRecord(Base):
    """Append-only history: one row per risk analysis call."""
    __tablename__ = "risk_assessments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    assessed_at = Column(DateTime, nullable=False)

    budget_risk = Column(Float)  # 0-100
    schedule_risk = Column(Float)
    weather_risk = Column(Float)
    resource_risk = Column(Float)
    quality_risk = Column(Float)

    overall_score = Column(Float)
    risk_level = Column(String(20))  # low, medium, high, critical
    recommendations = Column(JSON)  # list[str]
    confidence = Column(Float)

    created_at = Column(DateTime, server_default=func.now())
