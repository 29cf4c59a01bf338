"""Centralized settings loaded from environment variables (+ optional .env).

Every tunable constant of the engine lives here so the service layer and the
scripts read one object instead of scattered module constants.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

ENV_PREFIX = "TASKINTEL"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str) -> str:
    v = os.getenv(name)
    return default if v is None or v.strip() == "" else v.strip()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # ---- Time / calendar ----
    timezone: str = "UTC"
    work_start_hour: int = 9
    work_end_hour: int = 18
    lookahead_days: int = 14
    max_range_days: int = 366

    # ---- Capacity / estimates ----
    capacity_minutes_per_day: int = 8 * 60
    fallback_estimate_minutes: int = 30
    default_job_minutes: int = 60
    revenue_per_job: float = 80.0

    # ---- Routing ----
    route_speed_kmh: float = 30.0

    # ---- Ranking / suggestions ----
    max_workforce_suggestions: int = 20
    next_action_limit: int = 5
    vip_spend_threshold: float = 5000.0
    vip_score_threshold: float = 80.0

    # ---- Logging ----
    log_level: str = "INFO"

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def load_settings() -> Settings:
    """Build Settings from the environment, loading a local .env first."""
    load_dotenv(override=False)
    defaults = Settings()
    return Settings(
        timezone=_env(_k("TIMEZONE"), defaults.timezone),
        work_start_hour=_env_int(_k("WORK_START_HOUR"), defaults.work_start_hour),
        work_end_hour=_env_int(_k("WORK_END_HOUR"), defaults.work_end_hour),
        lookahead_days=_env_int(_k("LOOKAHEAD_DAYS"), defaults.lookahead_days),
        max_range_days=_env_int(_k("MAX_RANGE_DAYS"), defaults.max_range_days),
        capacity_minutes_per_day=_env_int(_k("CAPACITY_MINUTES"), defaults.capacity_minutes_per_day),
        fallback_estimate_minutes=_env_int(_k("FALLBACK_ESTIMATE_MINUTES"), defaults.fallback_estimate_minutes),
        default_job_minutes=_env_int(_k("DEFAULT_JOB_MINUTES"), defaults.default_job_minutes),
        revenue_per_job=_env_float(_k("REVENUE_PER_JOB"), defaults.revenue_per_job),
        route_speed_kmh=_env_float(_k("ROUTE_SPEED_KMH"), defaults.route_speed_kmh),
        max_workforce_suggestions=_env_int(_k("MAX_SUGGESTIONS"), defaults.max_workforce_suggestions),
        next_action_limit=_env_int(_k("NEXT_ACTION_LIMIT"), defaults.next_action_limit),
        vip_spend_threshold=_env_float(_k("VIP_SPEND_THRESHOLD"), defaults.vip_spend_threshold),
        vip_score_threshold=_env_float(_k("VIP_SCORE_THRESHOLD"), defaults.vip_score_threshold),
        log_level=_env(_k("LOG_LEVEL"), defaults.log_level).upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
