# src/freshpost/io/config.py
"""
Human-editable config (config.yaml in the data dir).

    search:
      keywords: rust developer
      location: San Francisco Bay Area
      remote: false          # adds the remote-only filter
      salary_min: 120000     # USD, 40000..200000; 0 / missing / out of range = off
    schedule:
      interval_hours: 4
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from freshpost.errors import ConfigError, PersistenceError
from freshpost.io.storage import atomic_write_text
from freshpost.models import SearchQuery, normalize_salary_min

logger = logging.getLogger(__name__)

DEFAULT_KEYWORDS = "rust developer"
DEFAULT_LOCATION = "San Francisco Bay Area"
DEFAULT_INTERVAL_HOURS = 4


@dataclass
class SearchConfig:
    keywords: str = DEFAULT_KEYWORDS
    location: str = DEFAULT_LOCATION
    remote: bool = False
    salary_min: Optional[int] = None

    def __post_init__(self) -> None:
        self.salary_min = normalize_salary_min(self.salary_min)

    def to_query(self) -> SearchQuery:
        return SearchQuery(
            keywords=self.keywords,
            location=self.location,
            remote_only=self.remote,
            salary_min=self.salary_min,
        )


@dataclass
class ScheduleConfig:
    interval_hours: int = DEFAULT_INTERVAL_HOURS


@dataclass
class AppConfig:
    search: SearchConfig = field(default_factory=SearchConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)

    @classmethod
    def default(cls) -> "AppConfig":
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "search": {
                "keywords": self.search.keywords,
                "location": self.search.location,
                "remote": self.search.remote,
                "salary_min": self.search.salary_min,
            },
            "schedule": {"interval_hours": self.schedule.interval_hours},
        }

    @classmethod
    def from_dict(cls, data: Any) -> "AppConfig":
        if not isinstance(data, dict):
            raise ConfigError("config must be a mapping with a 'search' section")
        search = data.get("search")
        if not isinstance(search, dict):
            raise ConfigError("config is missing the 'search' section")

        keywords = search.get("keywords")
        location = search.get("location")
        if not isinstance(keywords, str) or not isinstance(location, str):
            raise ConfigError("search.keywords and search.location must be strings")

        remote = search.get("remote", False)
        if not isinstance(remote, bool):
            raise ConfigError("search.remote must be true or false")

        salary_min = search.get("salary_min")
        if salary_min is not None and (isinstance(salary_min, bool) or not isinstance(salary_min, int)):
            raise ConfigError("search.salary_min must be an integer")

        schedule = data.get("schedule") or {}
        if not isinstance(schedule, dict):
            raise ConfigError("schedule must be a mapping")
        interval = schedule.get("interval_hours", DEFAULT_INTERVAL_HOURS)
        if isinstance(interval, bool) or not isinstance(interval, int) or interval < 1:
            raise ConfigError("schedule.interval_hours must be a positive integer")

        return cls(
            search=SearchConfig(
                keywords=keywords,
                location=location,
                remote=remote,
                salary_min=salary_min,
            ),
            schedule=ScheduleConfig(interval_hours=interval),
        )


def load_config(path: Path) -> AppConfig:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise PersistenceError(f"Failed to read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}") from e
    return AppConfig.from_dict(data)


def load_config_or_default(path: Path) -> AppConfig:
    """Missing file = built-in default. A broken file is still an error."""
    if not path.exists():
        logger.info("No config at %s; using defaults", path)
        return AppConfig.default()
    return load_config(path)


def save_config(path: Path, config: AppConfig) -> None:
    atomic_write_text(path, yaml.safe_dump(config.to_dict(), sort_keys=False))
