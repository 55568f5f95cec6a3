from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Database
    database_url: str = Field(default="sqlite:///./sitecast.db")

    # OpenWeatherMap 5 day / 3 hour forecast
    owm_api_key: str = Field(default="")
    owm_base_url: str = Field(default="https://api.openweathermap.org/data/2.5")
    weather_request_timeout: float = Field(default=15.0)

    # Fallback site location when a project has no coordinates (NYC)
    default_latitude: float = Field(default=40.7128)
    default_longitude: float = Field(default=-74.006)

    # Rescheduling
    forecast_days: int = Field(default=7)
    reschedule_window_days: int = Field(default=7)
    auto_adjust_threshold: int = Field(default=8)

    # Stamped on every risk assessment; the scorer is rule based
    risk_confidence: float = Field(default=0.85)

    # CORS
    cors_origins: str = Field(default="http://localhost:5173,http://localhost:3000")

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


settings = Settings()
