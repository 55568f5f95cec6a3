from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sitecast.database import get_db
from sitecast.schemas.weather import WeatherSensitiveActivitySchema, WeatherSensitivityUpdate
from sitecast.services import weather_scheduler

router = APIRouter(prefix="/weather", tags=["weather"])


@router.get("/activities", response_model=list[WeatherSensitiveActivitySchema])
async def list_activities(db: Session = Depends(get_db)):
    """Threshold settings for every weather-sensitive activity type."""
    return weather_scheduler.list_activities(db)


@router.put("/activities/{activity_type}", response_model=WeatherSensitiveActivitySchema)
async def update_activity(
    activity_type: str,
    update: WeatherSensitivityUpdate,
    db: Session = Depends(get_db),
):
    """Create or update the thresholds for one activity type."""
    return weather_scheduler.upsert_activity(db, activity_type, update)
