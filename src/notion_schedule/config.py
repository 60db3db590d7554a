"""Schedule configuration loading and validation.

Reads schedule.toml from a config directory, resolves ``${VAR}`` references
from the environment, and returns a validated ScheduleConfig dataclass.
"""

from __future__ import annotations

import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_FILENAME = "schedule.toml"
DEFAULT_NOTION_API_BASE_URL = "https://api.notion.com/v1"
DEFAULT_NOTION_VERSION = "2022-06-28"
DEFAULT_TIMEOUT_S = 30.0

# Notion caps a single query page at 100 results.
MAX_PAGE_SIZE = 100
DEFAULT_FUTURE_PAGE_SIZE = MAX_PAGE_SIZE

DEFAULT_PUBLISHED_VALUE = "公開"

# Pattern matching ${VAR_NAME} — supports alphanumeric + underscore variable names.
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


class ConfigError(Exception):
    """Raised when schedule configuration is missing, malformed, or invalid."""


@dataclass
class LoggingConfig:
    """Logging configuration from the [logging] section."""

    level: str = "INFO"
    format: str = "text"  # "text" or "json"


@dataclass
class NotionConfig:
    """Connection settings for the Notion API from the [notion] section."""

    token: str
    database_id: str
    api_base_url: str = DEFAULT_NOTION_API_BASE_URL
    notion_version: str = DEFAULT_NOTION_VERSION
    timeout_s: float = DEFAULT_TIMEOUT_S


@dataclass
class PropertyNames:
    """Names of the schedule database properties.

    The defaults match the production schedule database, whose columns are
    named in Japanese.
    """

    title: str = "名前"
    date: str = "日付"
    category: str = "種類"
    visibility: str = "Web公開"


@dataclass
class ScheduleConfig:
    """Fully parsed schedule configuration."""

    notion: NotionConfig
    properties: PropertyNames = field(default_factory=PropertyNames)
    published_value: str = DEFAULT_PUBLISHED_VALUE
    future_page_size: int = DEFAULT_FUTURE_PAGE_SIZE
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ``${VAR_NAME}`` references in config values.

    Walks dicts, lists, and strings.  Non-string leaf values (int, bool,
    float, None) are returned unchanged.

    Raises
    ------
    ConfigError
        If a referenced environment variable is not set.
    """
    if isinstance(value, dict):
        return {k: resolve_env_vars(v) for k, v in value.items()}

    if isinstance(value, list):
        return [resolve_env_vars(item) for item in value]

    if isinstance(value, str):
        return _resolve_string(value)

    return value


def _resolve_string(s: str) -> str:
    """Replace all ``${VAR_NAME}`` occurrences in *s* with env var values.

    Collects all missing variable names and reports them in a single error.
    """
    missing: list[str] = []

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            missing.append(var_name)
            return match.group(0)
        return env_value

    result = _ENV_VAR_PATTERN.sub(_replace, s)

    if missing:
        vars_str = ", ".join(missing)
        raise ConfigError(f"Unresolved environment variable(s) in config value: {vars_str}")

    return result


def _require_text(section: dict[str, Any], key: str, *, prefix: str) -> str:
    value = section.get(key)
    if value is None:
        raise ConfigError(f"Missing required field: {prefix}.{key}")
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{prefix}.{key} must be a non-empty string")
    return value.strip()


def _optional_text(section: dict[str, Any], key: str, default: str, *, prefix: str) -> str:
    if key not in section:
        return default
    return _require_text(section, key, prefix=prefix)


def _parse_notion(data: dict[str, Any]) -> NotionConfig:
    section = data.get("notion")
    if not isinstance(section, dict):
        raise ConfigError("Missing [notion] section in config")

    timeout_raw = section.get("timeout_s", DEFAULT_TIMEOUT_S)
    if isinstance(timeout_raw, bool) or not isinstance(timeout_raw, int | float):
        raise ConfigError("notion.timeout_s must be a number")
    if timeout_raw <= 0:
        raise ConfigError("notion.timeout_s must be positive")

    return NotionConfig(
        token=_require_text(section, "token", prefix="notion"),
        database_id=_require_text(section, "database_id", prefix="notion"),
        api_base_url=_optional_text(
            section, "api_base_url", DEFAULT_NOTION_API_BASE_URL, prefix="notion"
        ).rstrip("/"),
        notion_version=_optional_text(
            section, "notion_version", DEFAULT_NOTION_VERSION, prefix="notion"
        ),
        timeout_s=float(timeout_raw),
    )


def _parse_properties(schedule_section: dict[str, Any]) -> PropertyNames:
    section = schedule_section.get("properties", {})
    if not isinstance(section, dict):
        raise ConfigError("schedule.properties must be a table")

    defaults = PropertyNames()
    prefix = "schedule.properties"
    return PropertyNames(
        title=_optional_text(section, "title", defaults.title, prefix=prefix),
        date=_optional_text(section, "date", defaults.date, prefix=prefix),
        category=_optional_text(section, "category", defaults.category, prefix=prefix),
        visibility=_optional_text(section, "visibility", defaults.visibility, prefix=prefix),
    )


def _parse_logging(data: dict[str, Any]) -> LoggingConfig:
    section = data.get("logging", {})
    if not isinstance(section, dict):
        raise ConfigError("[logging] must be a table")

    level = str(section.get("level", "INFO")).upper()
    fmt = str(section.get("format", "text")).lower()
    if fmt not in ("text", "json"):
        raise ConfigError(f"Invalid logging.format: {fmt!r}. Must be 'text' or 'json'.")
    return LoggingConfig(level=level, format=fmt)


def parse_config(data: dict[str, Any]) -> ScheduleConfig:
    """Validate an already-decoded config mapping.

    ``${VAR}`` references are resolved before any field is inspected.
    """
    data = resolve_env_vars(data)

    schedule_section = data.get("schedule", {})
    if not isinstance(schedule_section, dict):
        raise ConfigError("[schedule] must be a table")

    page_size = schedule_section.get("future_page_size", DEFAULT_FUTURE_PAGE_SIZE)
    if isinstance(page_size, bool) or not isinstance(page_size, int):
        raise ConfigError("schedule.future_page_size must be an integer")
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ConfigError(f"schedule.future_page_size must be between 1 and {MAX_PAGE_SIZE}")

    return ScheduleConfig(
        notion=_parse_notion(data),
        properties=_parse_properties(schedule_section),
        published_value=_optional_text(
            schedule_section, "published_value", DEFAULT_PUBLISHED_VALUE, prefix="schedule"
        ),
        future_page_size=page_size,
        logging=_parse_logging(data),
    )


def load_config(config_dir: Path) -> ScheduleConfig:
    """Load and validate a schedule.toml from *config_dir*.

    Raises
    ------
    ConfigError
        If the file is missing, contains invalid TOML, or lacks required fields.
    """
    toml_path = config_dir / DEFAULT_CONFIG_FILENAME

    if not toml_path.exists():
        raise ConfigError(f"Config file not found: {toml_path}")

    raw_bytes = toml_path.read_bytes()
    try:
        data = tomllib.loads(raw_bytes.decode())
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {toml_path}: {exc}") from exc

    return parse_config(data)
