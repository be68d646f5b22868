"""AnalysisSettings — run settings merged from file, .env and environment.

Resolution order (later wins)::

    defaults -> <root>/.mepnet/config.json -> <root>/.env -> MEPNET_* env vars
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from mepnet.config import (
    DEFAULT_OUTPUT_DIR,
    ENV_PREFIX,
    MAX_NEIGHBORS,
    MAX_SPACING_FT,
    MIN_SPACING_FT,
    SEARCH_RADIUS_FACTOR,
    SETTINGS_FILE,
    VERTICAL_TOLERANCE_FT,
)

logger = logging.getLogger(__name__)


class AnalysisSettings(BaseModel):
    """Settings for one analysis run."""

    min_spacing_ft: float = Field(default=MIN_SPACING_FT, gt=0)
    max_spacing_ft: float = Field(default=MAX_SPACING_FT, gt=0)
    vertical_tolerance_ft: float = Field(default=VERTICAL_TOLERANCE_FT, ge=0)
    max_neighbors: int = Field(default=MAX_NEIGHBORS, ge=1)
    search_radius_factor: float = Field(default=SEARCH_RADIUS_FACTOR, ge=1)

    fire_protection_only: bool = False
    """Only analyse networks classified as fire protection."""

    network_domains: list[str] | None = None
    """Restrict analysis to these domains ('piping', 'duct', 'electrical')."""

    include_ineligible_networks: bool = False
    """Record ineligible networks with counts only instead of skipping them."""

    log_level: str = "INFO"
    output_dir: Path = DEFAULT_OUTPUT_DIR

    @field_validator("network_domains", mode="before")
    @classmethod
    def _split_domains(cls, value: Any) -> Any:
        if isinstance(value, str):
            parts = [p.strip().lower() for p in value.split(",")]
            return [p for p in parts if p] or None
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def _check_range(self) -> AnalysisSettings:
        if self.min_spacing_ft > self.max_spacing_ft:
            raise ValueError(
                f"min_spacing_ft ({self.min_spacing_ft}) must not exceed "
                f"max_spacing_ft ({self.max_spacing_ft})"
            )
        return self


def _env_key(field_name: str) -> str:
    return f"{ENV_PREFIX}{field_name.upper()}"


def _read_dotenv(path: Path) -> dict[str, str]:
    values: dict[str, str] = {}
    try:
        for line in path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            k, v = line.split("=", 1)
            values[k.strip()] = v.strip().strip('"').strip("'")
    except OSError:
        logger.debug("Could not read %s", path, exc_info=True)
    return values


def load_settings(
    project_root: str | Path | None = None,
    **overrides: Any,
) -> AnalysisSettings:
    """Load merged settings for *project_root* (defaults to the cwd).

    Keyword *overrides* are applied last, ignoring None values.

    Raises
    ------
    pydantic.ValidationError
        When a merged value is invalid.
    """
    root = Path(project_root) if project_root is not None else Path.cwd()
    fields = AnalysisSettings.model_fields
    data: dict[str, Any] = {}

    # 1. .mepnet/config.json
    config_json = root / SETTINGS_FILE
    if config_json.is_file():
        try:
            raw = json.loads(config_json.read_text(encoding="utf-8"))
            data.update({k: v for k, v in raw.items() if k in fields})
        except (json.JSONDecodeError, OSError, AttributeError):
            logger.warning("Ignoring unreadable settings file %s", config_json)

    # 2. .env file, then 3. environment variables override all
    env_file = root / ".env"
    dotenv = _read_dotenv(env_file) if env_file.is_file() else {}
    for name in fields:
        key = _env_key(name)
        if key in dotenv:
            data[name] = dotenv[key]
        env_val = os.environ.get(key)
        if env_val is not None:
            data[name] = env_val

    data.update({k: v for k, v in overrides.items() if v is not None})
    return AnalysisSettings(**data)
