"""Configuration system for gridgroup using pydantic-settings.

Supports layered configuration:
1. Built-in defaults (lowest priority)
2. pyproject.toml [tool.gridgroup] section (project-level)
3. ./gridgroup.toml (project-level, explicit)
4. ~/.config/gridgroup/config.toml (user-level, overrides project)
5. Environment variables (highest priority)

Environment variables use GRIDGROUP_ prefix with nested delimiter __.
Example: GRIDGROUP_GROUPING__DEFAULT_EXPANDED=false, GRIDGROUP_LOG__LEVEL=DEBUG
"""

from __future__ import annotations

import os
import sys
import tomllib

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


#: Column areas in the order they are scanned for the grouping indicator.
COLUMN_AREAS: tuple[str, ...] = ("pinned_start", "data", "pinned_end")


def _find_config_files() -> list[Path]:
    """Existing config files, lowest precedence first."""
    if sys.platform == "win32":
        user_dir = Path(os.environ.get("APPDATA", "~")) / "gridgroup"
    else:
        user_dir = Path("~/.config/gridgroup")

    candidates = [
        Path("pyproject.toml"),
        Path("gridgroup.toml"),
        (user_dir / "config.toml").expanduser(),
    ]
    if os.environ.get("GRIDGROUP_CONFIG_FILE"):
        candidates.append(Path(os.environ["GRIDGROUP_CONFIG_FILE"]))
    return [path for path in candidates if path.exists()]


def _load_toml_config() -> dict[str, Any]:
    """Load and merge all TOML configuration files."""
    merged: dict[str, Any] = {}

    for config_file in _find_config_files():
        try:
            data = tomllib.loads(config_file.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as exc:
            # Logged through the logging module directly: log.py reads settings itself.
            import logging  # pylint: disable=import-outside-toplevel

            logging.getLogger("gridgroup").warning(f"Ignoring config file {config_file}: {exc}")
            continue

        if config_file.name == "pyproject.toml":
            data = data.get("tool", {}).get("gridgroup", {})

        merged = _deep_merge(merged, data)

    return merged


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class GroupingSettings(BaseSettings):
    """Grouping engine defaults.

    Environment prefix: GRIDGROUP_GROUPING__
    Example: GRIDGROUP_GROUPING__DEFAULT_EXPANDED=false
    """

    model_config = SettingsConfigDict(
        env_prefix="GRIDGROUP_GROUPING__",
        extra="ignore",
    )

    default_expanded: bool = True
    namespace: str = Field(default="grouping", min_length=1)
    indicator_areas: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(COLUMN_AREAS)
    )

    @field_validator("indicator_areas", mode="before")
    @classmethod
    def _parse_indicator_areas(cls, v: Any) -> list[str]:
        """Accept a comma-separated string (from env var) or a list."""
        if isinstance(v, str):
            v = [a.strip() for a in v.split(",") if a.strip()]
        unknown = set(v) - set(COLUMN_AREAS)
        if unknown:
            msg = (
                f"Unknown column area(s): {', '.join(sorted(unknown))}. "
                f"Available: {', '.join(COLUMN_AREAS)}"
            )
            raise ValueError(msg)
        return list(v)


class LogSettings(BaseSettings):
    """Logging settings.

    Environment prefix: GRIDGROUP_LOG__
    Example: GRIDGROUP_LOG__LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="GRIDGROUP_LOG__",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    format: str = "%(name)s - %(levelname)s - %(message)s"


class GridGroupSettings(BaseSettings):
    """Main settings aggregating all configuration sections.

    Configuration sources (in order of precedence):
    1. Built-in defaults
    2. pyproject.toml [tool.gridgroup] section
    3. ./gridgroup.toml (project-level)
    4. ~/.config/gridgroup/config.toml (user-level, overrides project)
    5. Environment variables (highest priority)
    """

    model_config = SettingsConfigDict(
        env_prefix="GRIDGROUP__",
        env_nested_delimiter="__",
        extra="ignore",
    )

    grouping: GroupingSettings = Field(default_factory=GroupingSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    def __init__(self, **data: Any) -> None:
        toml_config = _load_toml_config()
        merged = _deep_merge(toml_config, data)
        # Section env vars win over file values: drop the file value and let
        # the section read its own environment.
        for section, section_cls in (("grouping", GroupingSettings), ("log", LogSettings)):
            if isinstance(merged.get(section), dict):
                prefix = section_cls.model_config.get("env_prefix", "")
                from_env = {
                    name for name in section_cls.model_fields if f"{prefix}{name.upper()}" in os.environ
                }
                merged[section] = section_cls(
                    **{k: v for k, v in merged[section].items() if k not in from_env}
                )
        super().__init__(**merged)

    def _sections(self) -> list[tuple[str, BaseSettings]]:
        return [("grouping", self.grouping), ("log", self.log)]

    def to_toml(self) -> str:
        """Export settings as TOML string."""
        lines = ["# gridgroup Configuration", "# Generated by: gridgroup config --toml", ""]

        for section_name, section in self._sections():
            lines.append(f"[{section_name}]")
            for field_name, field_value in section.model_dump().items():
                if isinstance(field_value, list):
                    value_str = "[" + ", ".join(f'"{v}"' for v in field_value) + "]"
                elif isinstance(field_value, bool):
                    value_str = "true" if field_value else "false"
                elif isinstance(field_value, str):
                    value_str = f'"{field_value}"'
                else:
                    value_str = str(field_value)
                lines.append(f"{field_name} = {value_str}")
            lines.append("")

        return "\n".join(lines)

    def to_env(self) -> str:
        """Export settings as shell environment variables."""
        lines = [
            "# gridgroup Environment Variables",
            "# Generated by: gridgroup config --env",
            "",
        ]

        for section_name, section in self._sections():
            for field_name, field_value in section.model_dump().items():
                env_name = f"GRIDGROUP_{section_name.upper()}__{field_name.upper()}"
                if isinstance(field_value, list):
                    value_str = ",".join(str(v) for v in field_value)
                elif isinstance(field_value, bool):
                    value_str = "true" if field_value else "false"
                else:
                    value_str = str(field_value)
                lines.append(f'export {env_name}="{value_str}"')

        return "\n".join(lines)

    def show(self) -> str:
        """Format settings as a readable table."""
        lines = ["gridgroup Configuration", "=" * 60, ""]

        for section_name, section in self._sections():
            lines.append(f"\n{section_name}")
            lines.append("-" * 40)
            for field_name, field_value in section.model_dump().items():
                value_str = str(field_value)
                if len(value_str) > 50:
                    value_str = value_str[:47] + "..."
                lines.append(f"  {field_name:20} = {value_str}")

        return "\n".join(lines)


@lru_cache(maxsize=1)
def get_settings() -> GridGroupSettings:
    """Get the global settings instance (cached).

    Call clear_settings() to reload configuration.
    """
    return GridGroupSettings()


def clear_settings() -> None:
    """Clear the cached settings to force reload."""
    get_settings.cache_clear()


def reload_settings() -> GridGroupSettings:
    """Reload settings from all sources."""
    clear_settings()
    return get_settings()
