"""
Configuration Module - Runtime settings for the pager

Handles:
- Validated settings model (pydantic)
- Environment variable overrides (LESSER_*)
- Command line overrides layered on top of the environment
"""
import codecs
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from .store.timestamps import DEFAULT_TIMESTAMP_FORMATS

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Environment variable -> config field
ENV_FIELDS = {
    "LESSER_POLL_INTERVAL": "poll_interval",
    "LESSER_MATCH_CONTEXT": "match_context",
    "LESSER_ENCODING": "encoding",
    "LESSER_LOG_FILE": "log_file",
    "LESSER_LOG_LEVEL": "log_level",
}

# Fields an empty value switches off instead of leaving at the default
BLANK_MEANS_OFF = {"log_file"}


def default_log_file() -> Path:
    """Log file under the user's cache directory"""
    cache_home = os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(cache_home) / "lesser" / "lesser.log"


class PagerConfig(BaseModel):
    """Pager settings"""

    watch: bool = False
    merge: bool = False
    # Fallback re-poll period for watched files, in seconds
    poll_interval: float = Field(0.5, gt=0)
    # Lines of context kept above a revealed match or goto target
    match_context: int = Field(10, ge=0)
    # Initial page height until the terminal reports its size
    page_height: int = Field(24, ge=1)
    encoding: str = "utf-8"
    log_file: Optional[Path] = Field(default_factory=default_log_file)
    log_level: str = "WARNING"
    timestamp_formats: List[str] = Field(
        default_factory=lambda: list(DEFAULT_TIMESTAMP_FORMATS)
    )

    @field_validator("log_file", mode="before")
    @classmethod
    def _blank_log_file_disables(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}")
        return level

    @field_validator("encoding")
    @classmethod
    def _check_encoding(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError:
            raise ValueError(f"unknown encoding {value!r}")
        return value

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any
    ) -> "PagerConfig":
        """
        Build a config from LESSER_* environment variables

        Args:
            environ: Mapping to read instead of os.environ
            **overrides: Values that win over the environment; None is ignored

        Returns:
            Validated PagerConfig
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for env_name, field_name in ENV_FIELDS.items():
            raw = environ.get(env_name)
            if raw is None or (raw == "" and field_name not in BLANK_MEANS_OFF):
                continue
            values[field_name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
