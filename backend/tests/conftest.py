from datetime import date

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import sitecast.models.project  # noqa: F401
import sitecast.models.risk  # noqa: F401
import sitecast.models.weather  # noqa: F401
from sitecast.database import Base
from sitecast.models.project import Project
from sitecast.services.owm_client import OpenWeatherClient

TODAY = date(2026, 6, 1)


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def project(db) -> Project:
    p = Project(
        name="Maple St Duplex",
        project_type="residential",
        status="active",
        budget=100_000,
        completion_percentage=50,
        start_date=date(2026, 3, 1),
        end_date=date(2026, 8, 29),
        latitude=41.88,
        longitude=-87.63,
    )
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


def forecast_payload(days: list[dict], tz_offset: int = 0, start_ts: int | None = None) -> dict:
    """OWM /forecast body with eight 3-hour points per day.

    Each day dict may set temp_min, temp_max, humidity, wind and rain_mm
    (spread evenly over the day's points).
    """
    if start_ts is None:
        # 2026-06-01T00:00:00Z
        start_ts = 1780272000
    points = []
    for i, d in enumerate(days):
        lo, hi = d.get("temp_min", 60), d.get("temp_max", 75)
        for j in range(8):
            temp = lo if j == 0 else hi if j == 4 else (lo + hi) / 2
            point = {
                "dt": start_ts + (i * 8 + j) * 3 * 3600,
                "main": {"temp": temp, "humidity": d.get("humidity", 50)},
                "wind": {"speed": d.get("wind", 5)},
                "weather": [{"main": d.get("main", "Clear"), "description": d.get("description", "clear sky")}],
            }
            if d.get("rain_mm"):
                point["rain"] = {"3h": d["rain_mm"] / 8}
            points.append(point)
    return {"cod": "200", "list": points, "city": {"timezone": tz_offset}}


@pytest.fixture
def weather_client_factory():
    """Build an OpenWeatherClient whose HTTP calls hit a canned handler."""
    def make(handler, api_key="test-key"):
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return OpenWeatherClient(http, api_key=api_key, base_url="https://owm.test/data/2.5")

    return make
