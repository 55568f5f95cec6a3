from datetime import datetime

from pydantic import BaseModel


class RiskAssessment(BaseModel):
    id: int | None = None
    project_id: int
    budget_risk: float = 0.0  # 0-100
    schedule_risk: float = 0.0
    weather_risk: float = 0.0
    resource_risk: float = 0.0
    quality_risk: float = 0.0
    overall_score: float = 0.0
    risk_level: str = "low"  # low, medium, high, critical
    recommendations: list[str] = []
    confidence: float = 0.85
    assessed_at: datetime | None = None

    model_config = {"from_attributes": True}
