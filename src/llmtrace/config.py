# src/llmtrace/config.py
"""
Configuration schema and loading for llmtrace.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction. The only runtime
reconfiguration is the token-count fallback callback, which lives in
TokenCountCallbackHolder rather than here.
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from llmtrace.errors import ConfigurationError

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class LoggingSettings(BaseModel):
    """Logging output configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    json_output: bool = Field(default=False, description="Render log lines as JSON")
    level: str = Field(default="INFO", description="Root log level")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        normalized = v.upper()
        if normalized not in _LOG_LEVELS:
            raise ValueError(f"level must be one of {sorted(_LOG_LEVELS)}, got {v!r}")
        return normalized


class ExporterSettings(BaseModel):
    """One configured event exporter.

    Example YAML:
        exporters:
          - name: console
            options:
              format: pretty
    """

    model_config = {"frozen": True, "extra": "forbid"}

    name: str = Field(min_length=1, description="Exporter name as registered via llmtrace_get_exporters")
    options: dict[str, Any] = Field(default_factory=dict, description="Exporter-specific options")


class LlmTraceSettings(BaseModel):
    """Top-level llmtrace settings.

    Example YAML:
        enabled: true
        record_content: false
        max_samples_stored: 5000
        logging:
          level: DEBUG
        exporters:
          - name: console
    """

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = Field(default=True, description="Instrument provider calls at all")
    record_content: bool = Field(
        default=True,
        description="Include message content and embedding input on events",
    )
    max_samples_stored: int | None = Field(
        default=10_000,
        ge=1,
        description="Aggregator capacity between harvests (None = unbounded)",
    )
    ingest_source: str = Field(default="Python", min_length=1, description="Agent language reported on events")
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    exporters: list[ExporterSettings] = Field(default_factory=list)

    @field_validator("exporters")
    @classmethod
    def validate_unique_exporters(cls, v: list[ExporterSettings]) -> list[ExporterSettings]:
        names = [exporter.name for exporter in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate exporter names: {duplicates}")
        return v


def load_settings(config_path: Path) -> LlmTraceSettings:
    """Load settings from a YAML file with environment variable overrides.

    Precedence (highest first):
    1. Environment variables (LLMTRACE_*), e.g. LLMTRACE_LOGGING__LEVEL
    2. Config file
    3. Defaults from the Pydantic schema

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated LlmTraceSettings instance

    Raises:
        ConfigurationError: If the file is missing or fails validation
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="LLMTRACE",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; Pydantic fields are lowercase
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): _lower_keys(v) for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    try:
        return LlmTraceSettings(**raw_config)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid llmtrace settings in {config_path}: {e}") from e


def _lower_keys(value: Any) -> Any:
    """Lowercase nested mapping keys produced by Dynaconf environment overrides."""
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_lower_keys(item) for item in value]
    return value
