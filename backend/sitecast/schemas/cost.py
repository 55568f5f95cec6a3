from datetime import datetime

from pydantic import BaseModel


class CompletionProbabilities(BaseModel):
    """Percent chances, each in [0, 100]."""
    on_budget: float = 0.0
    within_5_percent: float = 0.0
    within_10_percent: float = 0.0


class MonthlyForecast(BaseModel):
    month: str  # YYYY-MM
    projected_spend: float
    cumulative_spend: float
    confidence: float  # 0-1


class CostPrediction(BaseModel):
    project_id: int
    budget: float
    current_spend: float
    burn_rate: float  # per day, trailing 30 days
    days_remaining: int = 0
    linear_projection: float
    burn_rate_projection: float
    historical_projection: float
    predicted_final_cost: float
    variance: float
    variance_percentage: float
    change_order_exposure: float = 0.0
    completion_probabilities: CompletionProbabilities
    monthly_forecast: list[MonthlyForecast] = []
    risk_factors: list[str] = []
    generated_at: datetime | None = None
