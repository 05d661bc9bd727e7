"""
Configuration management and loading.

Handles the database location, reporting defaults and log level.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import yaml

from yorc_stats.core.aggregation import DEFAULT_CATEGORY, resolve_category
from yorc_stats.core.errors import ConfigError
from yorc_stats.storage.db import DEFAULT_DB_PATH

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


@dataclass(frozen=True)
class DatabaseConfig:
    """Location of the SQLite database."""
    path: str = DEFAULT_DB_PATH

    def __post_init__(self):
        """Validate the path is not blank."""
        if not self.path or not self.path.strip():
            raise ConfigError("database.path cannot be empty")


@dataclass(frozen=True)
class ReportingConfig:
    """Defaults for the distribution reports."""
    window_days: int = 365
    category: str = DEFAULT_CATEGORY

    def __post_init__(self):
        """Validate window is positive and category is known."""
        if self.window_days <= 0:
            raise ConfigError("reporting.window_days must be > 0")
        try:
            resolve_category(self.category)
        except ValueError as e:
            raise ConfigError(f"reporting.category: {e}") from e


@dataclass(frozen=True)
class StatsConfig:
    """Complete application configuration."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    reporting: ReportingConfig = field(default_factory=ReportingConfig)
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate the log level name."""
        if self.log_level not in _LOG_LEVELS:
            raise ConfigError(f"logging.level must be one of: {sorted(_LOG_LEVELS)}")

    @classmethod
    def default(cls) -> "StatsConfig":
        return cls()


def load_config(path: Optional[str] = None) -> StatsConfig:
    """Load and validate configuration from a YAML file.

    Every section is optional; unknown keys are rejected so a typo never
    silently falls back to a default.

    Args:
        path: Path to YAML configuration file, or None for defaults

    Returns:
        Validated StatsConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigError: If the YAML is invalid or the configuration is invalid
    """
    if path is None:
        return StatsConfig.default()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e

    if raw_config is None:
        return StatsConfig.default()
    if not isinstance(raw_config, dict):
        raise ConfigError("Configuration root must be a dictionary")

    allowed_top_keys = {'database', 'reporting', 'logging'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ConfigError(f"Unknown configuration keys: {unknown_keys}")

    database_data = _section(raw_config, 'database', {'path'})
    reporting_data = _section(raw_config, 'reporting', {'window_days', 'category'})
    logging_data = _section(raw_config, 'logging', {'level'})

    database = DatabaseConfig(path=str(database_data.get('path', DEFAULT_DB_PATH)))

    window_days = reporting_data.get('window_days', ReportingConfig.window_days)
    if isinstance(window_days, bool) or not isinstance(window_days, int):
        raise ConfigError("'reporting.window_days' must be an integer")

    category = reporting_data.get('category', DEFAULT_CATEGORY)
    if not isinstance(category, str):
        raise ConfigError("'reporting.category' must be a string")

    level = logging_data.get('level', "INFO")
    if not isinstance(level, str):
        raise ConfigError("'logging.level' must be a string")

    return StatsConfig(
        database=database,
        reporting=ReportingConfig(window_days=window_days, category=category),
        log_level=level.upper()
    )


def _section(raw_config: Dict, name: str, allowed_keys: set) -> Dict:
    """Extract an optional section and reject unknown keys in it.

    Args:
        raw_config: Parsed YAML document
        name: Section name
        allowed_keys: Keys permitted inside the section

    Returns:
        The section dictionary, empty when absent

    Raises:
        ConfigError: If the section is not a dictionary or has unknown keys
    """
    data = raw_config.get(name)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"'{name}' must be a dictionary")

    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ConfigError(f"Unknown {name} keys: {unknown_keys}")
    return data
