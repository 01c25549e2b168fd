# src/localmatch/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/localmatch/config/defaults.yaml`, then optionally overridden by:
- an external YAML file via `LOCALMATCH_CONFIG_PATH`
- environment variables (`LOCALMATCH_LOG_LEVEL`, `LOCALMATCH_CACHE_DIR`, `LOCALMATCH_TIMEZONE`)

Design rule:
- Tuning knobs live in YAML, not hard-coded in business logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from localmatch.core.env import load_dotenv_if_present
from localmatch.domain.models import DiscoveryOptions


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `localmatch.config`."""
    text = resources.files("localmatch.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "LocalMatch"
    timezone: str = "UTC"
    http_timeout_seconds: float = 15
    log_level: str = "INFO"


class GeolocationSettings(BaseModel):
    enable_high_accuracy: bool = True
    timeout_ms: int = Field(10_000, gt=0)
    maximum_age_ms: int = Field(300_000, ge=0)
    fallback_to_ip: bool = True
    cache_expiry_ms: int = Field(600_000, ge=0)
    ip_accuracy_m: float = Field(10_000, ge=0)
    persist_cache: bool = False
    cache_dir: str = ".cache/localmatch"


class ServicesSettings(BaseModel):
    reverse_geocode_url: str = "https://api.bigdatacloud.net/data/reverse-geocode-client"
    ip_geolocation_url: str = "https://ipapi.co/json/"
    locality_language: str = "en"


class ScoringSettings(BaseModel):
    composite_weights: dict[
        Literal["proximity", "urgency", "availability", "quality", "locality"], float
    ] = Field(
        default_factory=lambda: {
            "proximity": 0.30,
            "urgency": 0.20,
            "availability": 0.20,
            "quality": 0.15,
            "locality": 0.15,
        }
    )
    neutral_urgency: float = Field(50, ge=0, le=100)
    urgency_levels: dict[Literal["low", "medium", "high", "emergency"], float] = Field(
        default_factory=lambda: {"emergency": 100, "high": 85, "medium": 65, "low": 40}
    )
    emergency_tag_multiplier: float = Field(1.2, ge=0)
    available_now_urgency_multiplier: float = Field(1.1, ge=0)


class ArrivalSettings(BaseModel):
    average_speed_kmh: float = Field(30, gt=0)
    out_of_area_penalty: float = Field(1.2, ge=1)
    default_response_minutes: int = Field(30, ge=0)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    geolocation: GeolocationSettings = Field(default_factory=GeolocationSettings)
    services: ServicesSettings = Field(default_factory=ServicesSettings)
    discovery: DiscoveryOptions = Field(default_factory=DiscoveryOptions)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    arrival: ArrivalSettings = Field(default_factory=ArrivalSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    data = dict(data)
    cache_dir = os.getenv("LOCALMATCH_CACHE_DIR")
    if cache_dir:
        data.setdefault("geolocation", {})["cache_dir"] = cache_dir

    log_level = os.getenv("LOCALMATCH_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    timezone = os.getenv("LOCALMATCH_TIMEZONE")
    if timezone:
        data.setdefault("app", {})["timezone"] = timezone

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("LOCALMATCH_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
