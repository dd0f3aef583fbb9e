# backend/app/config.py
from __future__ import annotations

import json
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    database_url: str = "sqlite:///./facility_analytics.db"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Reproducibility ----
    engine_version: str = "2026-10-17.v1"

    # ---- FCI thresholds (decimal ratio, inclusive upper bounds) ----
    fci_good_max: float = 0.05
    fci_fair_max: float = 0.10
    fci_poor_max: float = 0.30

    # ---- Prioritization ----
    criteria_score_max: float = 10.0

    # ---- Capital forecast ----
    forecast_start_year: Optional[int] = None  # None = current calendar year
    forecast_horizon: int = 5
    # JSON list of [immediate, short_term, medium_term, long_term] fractions per year
    forecast_schedule: Optional[str] = None

    # ---- Celery ----
    celery_broker_url: str | None = None
    celery_result_backend: str | None = None

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        if is_prod:
            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")

        if not (0.0 <= self.fci_good_max <= self.fci_fair_max <= self.fci_poor_max):
            raise ValueError("FCI thresholds must be ordered good <= fair <= poor")

        if self.criteria_score_max <= 0:
            raise ValueError("criteria_score_max must be positive")

        if self.forecast_schedule:
            rows = json.loads(self.forecast_schedule)
            if not isinstance(rows, list) or not all(isinstance(r, list) and len(r) == 4 for r in rows):
                raise ValueError("forecast_schedule must be a JSON list of 4-element lists")


settings = Settings()
