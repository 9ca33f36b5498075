# src/freshpost/errors.py
"""
Error kinds raised by the scrape pipeline.

Everything derives from FreshPostError so the CLI, the scheduler and the API
can catch one type and report its message.
"""

from __future__ import annotations

from enum import Enum


class FreshPostError(Exception):
    """Base class for every error the pipeline raises on purpose."""


class ConfigError(FreshPostError):
    """Persisted config is malformed or fails validation."""


class TransportError(FreshPostError):
    """Network/connection failure (DNS, refused, timeout, too many redirects)."""


class FetchError(FreshPostError):
    """The search page answered with a non-2xx status."""

    def __init__(self, status_code: int, url: str = ""):
        self.status_code = status_code
        self.url = url
        super().__init__(f"HTTP request failed with status: {status_code}")


class ExtractionError(FreshPostError):
    """Selector/pattern setup is broken. A programming fault, not bad input."""


class PersistenceError(FreshPostError):
    """Reading or writing config/state/snapshot files failed."""


class Stage(str, Enum):
    """Pipeline states, in the order one run walks through them."""

    CONFIG_LOADED = "config_loaded"
    QUERY_BUILT = "query_built"
    FETCHED = "fetched"
    EXTRACTED = "extracted"
    FILTERED = "filtered"
    DEDUP_RESOLVED = "dedup_resolved"
    PERSISTED = "persisted"
    SUMMARIZED = "summarized"


class PipelineError(FreshPostError):
    """A run aborted; `stage` is the state that could not be reached."""

    def __init__(self, stage: Stage, error: BaseException):
        self.stage = stage
        self.error = error
        super().__init__(f"{stage.value} failed: {error}")
