import json
import os
from typing import Any, Dict, List, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

CONFIG_ENV_VAR = "FORECASTER_CONFIG"


class ConfigurationError(Exception):
    """Raised when the configuration file cannot be loaded or parsed."""


class AppConfig(BaseModel):
    """Settings for the forecaster API."""

    model_config = ConfigDict(extra="forbid")

    cache_path: Optional[str] = Field(
        None,
        description="sqlite file holding cached inputs. None keeps everything in memory.",
    )
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
    )
    share_base_url: str = Field(
        "http://localhost:5173/",
        description="Page URL share links point at; the token is added as ?data=...",
    )
    max_series_years: Optional[int] = Field(
        200,
        ge=1,
        description="Longest age span the API will simulate. None lifts the limit.",
    )
    log_level: str = Field("INFO")
    host: str = Field("127.0.0.1")
    port: int = Field(5000, ge=1, le=65535)


def load_config_from_json(filename: str) -> Dict[str, Any]:
    """Loads configuration parameters from a JSON file."""
    if not os.path.exists(filename):
        raise ConfigurationError(f"Configuration file '{filename}' not found.")
    try:
        with open(filename, "r") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Could not decode JSON from '{filename}': {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Could not read '{filename}': {e}") from e


def load_config(filename: Optional[str] = None) -> AppConfig:
    """Build an AppConfig from ``filename``, ``$FORECASTER_CONFIG`` or the defaults."""
    filename = filename or os.environ.get(CONFIG_ENV_VAR)
    if not filename:
        logger.debug("No configuration file given, using defaults")
        return AppConfig()
    logger.info(f"Loading configuration from: {filename}")
    return AppConfig(**load_config_from_json(filename))
