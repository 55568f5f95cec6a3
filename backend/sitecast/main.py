import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sitecast.config import settings
from sitecast.database import init_db

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if not settings.owm_api_key:
        logging.getLogger(__name__).warning("OWM_API_KEY not set; weather endpoints will fail")
    yield


app = FastAPI(
    title="SiteCast",
    description="Risk scoring, cost prediction and weather rescheduling for construction projects",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from sitecast.routers import projects, weather  # noqa: E402

app.include_router(projects.router, prefix="/api/v1")
app.include_router(weather.router, prefix="/api/v1")


@app.get("/health")
async def health():
    return {"status": "ok"}
