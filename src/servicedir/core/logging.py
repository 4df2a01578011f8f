"""Logging setup: packaged `logging.yaml`, root level from `app.log_level` unless overridden."""

from __future__ import annotations

import copy
import logging.config

from servicedir.config.settings import get_logging_config, get_settings


def configure_logging(level: str | None = None) -> str:
    """Apply the logging config and return the effective root level name."""
    # get_logging_config() is cached; never mutate the shared dict.
    config = copy.deepcopy(get_logging_config())
    level = (level or get_settings().app.log_level).upper()

    config.setdefault("root", {})["level"] = level
    for handler in config.get("handlers", {}).values():
        if "level" in handler:
            handler["level"] = level

    logging.config.dictConfig(config)
    return level
