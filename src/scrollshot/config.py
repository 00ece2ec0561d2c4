"""
Configuration schema using Pydantic.

Configuration is loaded from a YAML file and can be overridden with
environment variables (``SCROLLSHOT_CAPTURE__MAX_STEPS=20``).
"""

from pathlib import Path
from typing import Optional, List, Tuple

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing required values."""

    def __init__(self, message: str, field: Optional[str] = None, suggestions: Optional[List[str]] = None):
        self.message = message
        self.field = field
        self.suggestions = suggestions or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        lines = [self.message]
        if self.field:
            lines.append(f"  Field: {self.field}")
        if self.suggestions:
            lines.append("  Suggestions:")
            for s in self.suggestions:
                lines.append(f"    - {s}")
        return "\n".join(lines)


class CaptureConfig(BaseModel):
    """Scrolling capture loop configuration."""

    max_steps: int = Field(default=50, ge=1, le=500, description="Hard cap on scroll iterations")
    settle_delay: float = Field(default=0.5, ge=0.05, le=10.0, description="Seconds between ticks")
    scroll_fraction: float = Field(
        default=2.0 / 3.0, ge=0.1, le=0.9,
        description="Fraction of the selection height scrolled per step",
    )
    display: int = Field(default=1, ge=1, description="mss monitor index of the captured display")
    pixels_per_click: int = Field(
        default=40, ge=1, le=500,
        description="Wheel click size used when pixel scrolling is unavailable",
    )


class OutputConfig(BaseModel):
    """Where stitched images are written."""

    directory: str = Field(default="~/Pictures/scrollshot")
    filename_prefix: str = Field(default="scrollshot")

    @property
    def path(self) -> Path:
        """Get resolved output directory."""
        return Path(self.directory).expanduser()


class SafetyConfig(BaseModel):
    """Stop hotkey and dry-run switches."""

    stop_hotkey: str = Field(default="ctrl+cmd+s")
    dry_run: bool = Field(default=False)

    @field_validator("stop_hotkey")
    @classmethod
    def validate_hotkey(cls, v: str) -> str:
        parts = [p for p in v.lower().split("+") if p]
        if not parts:
            raise ValueError("stop_hotkey must name at least one key")
        return "+".join(parts)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO")
    file: Optional[str] = Field(default=None, description="Optional JSON log file")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if v.upper() not in valid:
            raise ValueError(f"level must be one of {sorted(valid)}")
        return v.upper()


class ScrollshotConfig(BaseSettings):
    """Root configuration for scrollshot."""

    model_config = SettingsConfigDict(
        env_prefix="SCROLLSHOT_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    safety: SafetyConfig = Field(default_factory=SafetyConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # Environment wins over values read from the YAML file
        return (env_settings, init_settings)


def get_default_config_path() -> Path:
    """Get default config file path."""
    return Path.home() / ".scrollshot" / "config.yaml"


def load_config(config_path: Optional[str] = None) -> ScrollshotConfig:
    """
    Load configuration from YAML file.

    Falls back to defaults if the default file doesn't exist.
    Environment variables override config file values.

    Args:
        config_path: Path to config file (optional)

    Returns:
        Loaded configuration

    Raises:
        ConfigurationError: If config file is missing or invalid
    """
    if config_path:
        path = Path(config_path).expanduser()
        if not path.exists():
            raise ConfigurationError(
                f"Config file not found: {path}",
                suggestions=[
                    f"Create the config file at {path}",
                    "Use 'scrollshot config --init' to create a default config",
                    "Or run without --config to use defaults",
                ]
            )
    else:
        path = get_default_config_path()

    data = {}

    if path.exists():
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            mark = getattr(e, "problem_mark", None)
            raise ConfigurationError(
                f"Invalid YAML in config file: {path}",
                suggestions=[
                    f"Check syntax at line {mark.line + 1 if mark else 'unknown'}",
                    "Use a YAML validator to check your config",
                ]
            )

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file must contain a mapping: {path}",
        )

    try:
        config = ScrollshotConfig(**data)
    except Exception as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}",
            suggestions=[
                "Check field names and values in your config",
                "Run 'scrollshot config' to see the effective values",
            ]
        )

    return config


def save_config(config: ScrollshotConfig, config_path: Optional[str] = None) -> Path:
    """Save configuration to YAML file."""
    if config_path:
        path = Path(config_path).expanduser()
    else:
        path = get_default_config_path()

    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        yaml.safe_dump(config.model_dump(), f, default_flow_style=False)

    return path
