# src/servicedir/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/servicedir/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `SERVICEDIR_LOG_LEVEL`, `SERVICEDIR_DATA_PATH`)
- an external YAML file via `SERVICEDIR_CONFIG_PATH`

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

from servicedir.core.env import load_dotenv_if_present
from servicedir.domain.models import CATEGORY_ORDER, TextMatch


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `servicedir.config`."""
    text = resources.files("servicedir.config").joinpath(filename).read_text(encoding="utf-8")
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
    name: str = "Local Services Directory"
    town: str = "Jeffreys Bay"
    http_timeout_seconds: float = 10
    log_level: str = "INFO"


class StoreSettings(BaseModel):
    path: str = "data/services.json"
    views_path: str = "data/views.json"


class LocationSettings(BaseModel):
    provider: Literal["static", "ip", "none"] = "static"
    enable_high_accuracy: bool = False
    timeout_seconds: float = Field(15, gt=0)
    maximum_age_seconds: float = Field(300, ge=0)
    static_lat: float = -34.0489
    static_lng: float = 24.9087
    ip_lookup_url: str = "http://ip-api.com/json/"


class QuerySettings(BaseModel):
    default_text_match: TextMatch = "title_description"
    category_order: list[str] = Field(default_factory=lambda: list(CATEGORY_ORDER))


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    location: LocationSettings = Field(default_factory=LocationSettings)
    query: QuerySettings = Field(default_factory=QuerySettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("SERVICEDIR_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    data_path = os.getenv("SERVICEDIR_DATA_PATH")
    if data_path:
        data.setdefault("store", {})["path"] = data_path

    views_path = os.getenv("SERVICEDIR_VIEWS_PATH")
    if views_path:
        data.setdefault("store", {})["views_path"] = views_path

    provider = os.getenv("SERVICEDIR_LOCATION_PROVIDER")
    if provider:
        data.setdefault("location", {})["provider"] = provider.strip().lower()

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("SERVICEDIR_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
