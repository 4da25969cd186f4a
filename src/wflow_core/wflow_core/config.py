# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.
"""Central wflow configuration.

All values have sensible defaults and can be overridden via environment variables
using the ``WFLOW_`` prefix:

  WFLOW_LOG_LEVEL            Log level (default: INFO)
  WFLOW_LOG_FILE             Write logs to this file as well (optional)
  WFLOW_MAX_LOG_FILE_BYTES   Max bytes per log file before rotation (optional)
  WFLOW_LOG_BACKUP_COUNT     Rotated log files to keep (optional)
  WFLOW_MAX_UNDO_STEPS       Undo history depth (default: 50)
  WFLOW_DEFAULT_RUNNER       Runner given to newly added jobs
                             (default: ubuntu-latest)
  WFLOW_DEFAULT_FILENAME     Save-file name for unnamed workflows
                             (default: workflow.yml)
"""

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from wflow_common.constants import (
    DEFAULT_FILENAME,
    DEFAULT_RUNNER,
    MAX_UNDO_STEPS,
    WORKFLOW_SUFFIXES,
)

_VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "WARN", "ERROR", "CRITICAL"})


class WflowConfig(BaseSettings):
    """Central wflow configuration.

    Instantiate with ``WflowConfig()`` to read defaults and any ``WFLOW_*``
    environment variable overrides automatically.
    """

    model_config = SettingsConfigDict(env_prefix="WFLOW_")

    # ── Logging configuration ──────────────────────────────────────────────
    log_level: str = "INFO"
    log_file: Optional[str] = None
    max_log_file_bytes: Optional[int] = None
    log_backup_count: Optional[int] = None

    # ── Editor configuration ───────────────────────────────────────────────
    max_undo_steps: int = MAX_UNDO_STEPS
    default_runner: str = DEFAULT_RUNNER
    default_filename: str = DEFAULT_FILENAME

    # ── Validators ─────────────────────────────────────────────────────────

    @field_validator("log_level")
    @classmethod
    def _valid_log_level(cls, v: str) -> str:
        if v.upper() not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"log_level={v!r} is not a valid log level. "
                f"Valid values: {', '.join(sorted(_VALID_LOG_LEVELS))}"
            )
        return v.upper()

    @field_validator("max_log_file_bytes", "log_backup_count")
    @classmethod
    def _non_negative(cls, v: Optional[int], info) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError(f"{info.field_name}={v} must be >= 0")
        return v

    @field_validator("max_undo_steps")
    @classmethod
    def _valid_undo_steps(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_undo_steps={v} must be >= 1")
        return v

    @field_validator("default_runner")
    @classmethod
    def _valid_runner(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Default runner must not be empty")
        return v.strip()

    @field_validator("default_filename")
    @classmethod
    def _valid_filename(cls, v: str) -> str:
        v = v.strip()
        if not v or "/" in v or "\\" in v:
            raise ValueError(f"default_filename={v!r} must be a bare file name")
        if not any(v.lower().endswith(suffix) for suffix in WORKFLOW_SUFFIXES):
            raise ValueError(f"default_filename={v!r} must end in .yml or .yaml")
        return v


# ── Module-level singleton ─────────────────────────────────────────────────────

_config: Optional[WflowConfig] = None


def get_config() -> WflowConfig:
    """Return the process-wide config singleton.

    Creates a fresh ``WflowConfig`` on first call (reading env vars).
    Subsequent calls return the cached instance.
    """
    global _config
    if _config is None:
        _config = WflowConfig()
    return _config


def load_and_validate_config() -> WflowConfig:
    """Build, validate, cache and return the config.

    Raises ``pydantic.ValidationError`` if any value is invalid. Call this once
    at CLI startup to surface config errors before any file is touched.
    """
    global _config
    cfg = WflowConfig()
    _config = cfg
    return cfg


def reset_config():
    """Drop the cached singleton so the next ``get_config()`` re-reads the environment."""
    global _config
    _config = None
