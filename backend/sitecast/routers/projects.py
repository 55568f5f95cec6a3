from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from sitecast.database import get_db
from sitecast.errors import AnalysisError, ProjectNotFoundError
from sitecast.routers.deps import get_weather_client
from sitecast.schemas.cost import CostPrediction
from sitecast.schemas.risk import RiskAssessment
from sitecast.schemas.weather import RescheduleResult, WeatherImpact
from sitecast.services.cost_predictor import CostPredictor
from sitecast.services.owm_client import OpenWeatherClient
from sitecast.services.risk_scorer import RiskScorer
from sitecast.services.weather_scheduler import WeatherRescheduler

router = APIRouter(prefix="/projects", tags=["projects"])


@router.post("/{project_id}/risk-assessment", response_model=RiskAssessment)
async def create_risk_assessment(project_id: int, db: Session = Depends(get_db)):
    """Score the project and append the result to its risk history."""
    try:
        return RiskScorer(db).assess(project_id)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AnalysisError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{project_id}/risk-assessments", response_model=list[RiskAssessment])
async def list_risk_assessments(
    project_id: int,
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    try:
        return RiskScorer(db).history(project_id, limit=limit)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{project_id}/cost-prediction", response_model=CostPrediction)
async def get_cost_prediction(project_id: int, db: Session = Depends(get_db)):
    try:
        return CostPredictor(db).predict(project_id)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AnalysisError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{project_id}/weather-impact", response_model=list[WeatherImpact])
async def get_weather_impact(
    project_id: int,
    start: date | None = None,
    end: date | None = None,
    db: Session = Depends(get_db),
    weather: OpenWeatherClient = Depends(get_weather_client),
):
    """Per-day suitability of the site forecast for weather-sensitive work."""
    start = start or date.today()
    end = end or start + timedelta(days=6)
    if end < start:
        raise HTTPException(status_code=422, detail="end must not be before start")
    try:
        return await WeatherRescheduler(db, weather).analyze_weather_impact(project_id, start, end)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AnalysisError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.post("/{project_id}/weather-reschedule", response_model=RescheduleResult)
async def reschedule_for_weather(
    project_id: int,
    db: Session = Depends(get_db),
    weather: OpenWeatherClient = Depends(get_weather_client),
):
    """Auto-move high-impact weather conflicts in the next week; suggest the rest."""
    try:
        return await WeatherRescheduler(db, weather).auto_reschedule(project_id)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AnalysisError as e:
        raise HTTPException(status_code=502, detail=str(e))
