# src/chaospage/config.py
"""Configuration schema and loading for chaospage scenarios.

Uses Pydantic for validation with frozen (immutable) models.
Configuration precedence: CLI > YAML file > preset > defaults.
"""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from chaospage.errors import RETRIABLE_ERROR_MESSAGE


class ScenarioConfig(BaseModel):
    """Shape of the simulated table and its failure schedule.

    The defaults reproduce the "bug cache sum" scenario: four pages of
    2500 records, where page 3 fails five times before succeeding.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    name: str = Field(
        default="bug_cache_sum",
        min_length=1,
        description="Scenario name, used in log context",
    )
    max_pages: int = Field(
        default=4,
        ge=0,
        description="Number of valid pages; requesting this index fails with InvalidPageError",
    )
    page_size: int = Field(
        default=2500,
        ge=0,
        description="Records per page",
    )
    error_after_page: int = Field(
        default=3,
        ge=0,
        description="Index of the page that fails transiently",
    )
    failure_count: int = Field(
        default=5,
        ge=0,
        description="How many times the failing page fails before it succeeds",
    )

    @property
    def total_records(self) -> int:
        """Records a complete listing emits."""
        return self.max_pages * self.page_size


class RetrySettings(BaseModel):
    """Retry policy settings for the paginating lister.

    max_attempts counts the first try, so max_attempts=6 allows 5 retries.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    max_attempts: int = Field(
        default=6,
        ge=1,
        description="Total fetch attempts per page, including the first",
    )
    initial_delay_seconds: float = Field(
        default=0.0,
        ge=0.0,
        description="Back-off before the first retry",
    )
    max_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Upper bound on a single back-off wait",
    )
    jitter_seconds: float = Field(
        default=0.0,
        ge=0.0,
        description="Random jitter added to each back-off wait",
    )
    exponential_base: float = Field(
        default=2.0,
        ge=1.0,
        description="Back-off multiplier between attempts",
    )
    retry_messages: tuple[str, ...] = Field(
        default=(RETRIABLE_ERROR_MESSAGE,),
        description="Error messages classified as retriable (exact match)",
    )

    @field_validator("retry_messages", mode="before")
    @classmethod
    def coerce_messages(cls, v: Any) -> tuple[str, ...]:
        """Accept a single string or a YAML list."""
        if isinstance(v, str):
            return (v,)
        if isinstance(v, (list, tuple)):
            return tuple(str(m) for m in v)
        raise ValueError(f"Expected a message or list of messages, got {v!r}")


class LoggingSettings(BaseModel):
    """Log output settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level",
    )
    json_output: bool = Field(
        default=False,
        description="Emit JSON lines instead of console-formatted logs",
    )

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class ChaosPageConfig(BaseModel):
    """Top-level chaospage configuration.

    Configuration precedence (highest to lowest):
    1. CLI flags
    2. YAML config file
    3. Preset defaults
    4. Built-in defaults
    """

    model_config = {"frozen": True, "extra": "forbid"}

    scenario: ScenarioConfig = Field(
        default_factory=ScenarioConfig,
        description="Page source shape and failure schedule",
    )
    retry: RetrySettings = Field(
        default_factory=RetrySettings,
        description="Retry policy used by the lister",
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration",
    )
    preset_name: str | None = Field(
        default=None,
        description="Preset name used to build this config (if any)",
    )


# === Preset Loading ===

# Top-level YAML sections; each maps onto one ChaosPageConfig field.
CONFIG_SECTIONS: tuple[str, ...] = ("scenario", "retry", "logging")


def _get_presets_dir() -> Path:
    return Path(__file__).parent / "presets"


def _read_yaml(path: Path, source: str) -> dict[str, Any]:
    with path.open() as f:
        loaded = yaml.safe_load(f)
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"{source} must be a YAML mapping, got {type(loaded).__name__}")
    return loaded


def _merge_sections(base: dict[str, dict[str, Any]], layer: dict[str, Any], source: str) -> dict[str, dict[str, Any]]:
    """Merge one config layer over ``base``, key by key within each section.

    A layer that sets only ``scenario.failure_count`` keeps every other
    scenario value from the layers beneath it.

    Raises:
        ValueError: If the layer names an unknown section or a section is
            not a mapping.
    """
    unknown = sorted(set(layer) - set(CONFIG_SECTIONS))
    if unknown:
        raise ValueError(f"{source}: unknown section(s) {unknown}. Valid sections: {list(CONFIG_SECTIONS)}")

    merged = {section: dict(values) for section, values in base.items()}
    for section, values in layer.items():
        if not isinstance(values, dict):
            raise ValueError(f"{source}: section '{section}' must be a mapping, got {type(values).__name__}")
        merged[section] = {**merged.get(section, {}), **values}
    return merged


def list_presets() -> list[str]:
    """List available preset names."""
    presets_dir = _get_presets_dir()
    if not presets_dir.exists():
        return []
    return sorted(p.stem for p in presets_dir.glob("*.yaml"))


def load_preset(preset_name: str) -> dict[str, Any]:
    """Load the raw mapping of a preset by name.

    Raises:
        FileNotFoundError: If the preset does not exist.
        yaml.YAMLError: If the preset is malformed.
        ValueError: If the preset is not a mapping.
    """
    preset_path = _get_presets_dir() / f"{preset_name}.yaml"
    if not preset_path.exists():
        raise FileNotFoundError(f"Preset '{preset_name}' not found. Available presets: {list_presets()}")
    return _read_yaml(preset_path, f"Preset '{preset_name}'")


def load_config(
    preset: str | None = None,
    config_file: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> ChaosPageConfig:
    """Load a ChaosPageConfig with precedence handling.

    Precedence (highest to lowest):
    1. cli_overrides - Direct overrides from CLI flags
    2. config_file - User's YAML configuration file
    3. preset - Named preset configuration
    4. defaults - Built-in Pydantic defaults

    Raises:
        FileNotFoundError: If preset or config_file not found.
        yaml.YAMLError: If YAML is malformed.
        ValueError: If a layer has unknown or non-mapping sections.
        pydantic.ValidationError: If final config fails validation.
    """
    sections: dict[str, dict[str, Any]] = {}

    if preset is not None:
        sections = _merge_sections(sections, load_preset(preset), f"Preset '{preset}'")

    if config_file is not None:
        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_file}")
        sections = _merge_sections(sections, _read_yaml(config_file, f"Config file {config_file}"), f"Config file {config_file}")

    if cli_overrides is not None:
        sections = _merge_sections(sections, cli_overrides, "CLI overrides")

    return ChaosPageConfig(**sections, preset_name=preset)
