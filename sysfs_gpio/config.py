"""sysfs-gpio — Library configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. System config: /etc/sysfs-gpio/config.yaml
    3. User config:   ~/.config/sysfs-gpio/config.yaml
    4. An explicit config file passed to ``Settings.load()``
    5. Environment variables prefixed with SYSFS_GPIO_

Example: ``SYSFS_GPIO_SYSFS__ROOT=/tmp/fake-gpio`` points the library at a
fake control tree.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class SysfsConfig(BaseModel):
    root: Path = Field(
        default=Path("/sys/class/gpio"),
        description="Directory holding the export/unexport files and gpio<N> directories.",
    )

    @field_validator("root", mode="before")
    @classmethod
    def expand_root(cls, v: object) -> object:
        if isinstance(v, str):
            return Path(v).expanduser()
        return v


class ExportPollConfig(BaseModel):
    """Bounded wait for the kernel (and udev) to settle a fresh export."""

    max_attempts: Annotated[int, Field(ge=1, le=1000)] = 25
    delay_seconds: Annotated[float, Field(ge=0.0, le=5.0)] = 0.005
    backoff_factor: Annotated[float, Field(ge=1.0, le=10.0)] = 1.5
    max_delay_seconds: Annotated[float, Field(ge=0.0, le=10.0)] = 0.1

    def delay_for_attempt(self, attempt: int) -> float:
        """Return the delay in seconds after the *attempt*-th check (1-indexed)."""
        delay = self.delay_seconds * (self.backoff_factor ** (attempt - 1))
        return min(delay, self.max_delay_seconds)


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    format: Literal["json", "console"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SYSFS_GPIO_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    sysfs: SysfsConfig = Field(default_factory=SysfsConfig)
    export_poll: ExportPollConfig = Field(default_factory=ExportPollConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Settings":
        """Load settings from file + environment variables.

        Keyword arguments outrank the environment in pydantic-settings, so the
        YAML data is merged *under* the values the environment actually set
        before the model is built.
        """
        data: dict[str, Any] = {}

        candidates = [
            Path("/etc/sysfs-gpio/config.yaml"),
            Path.home() / ".config" / "sysfs-gpio" / "config.yaml",
        ]
        if config_file:
            candidates.append(config_file)

        for path in candidates:
            if path.exists():
                import yaml

                with path.open() as f:
                    loaded = yaml.safe_load(f) or {}
                    data = _deep_merge(data, loaded)

        env_data = cls().model_dump(exclude_unset=True)
        return cls(**_deep_merge(data, env_data))


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# Module-level singleton — replaced by ``override_settings()`` in tests.
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def override_settings(settings: Settings | None) -> None:
    """Replace the module-level singleton. Used in tests."""
    global _settings
    _settings = settings
