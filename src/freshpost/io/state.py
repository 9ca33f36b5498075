# src/freshpost/io/state.py
"""
Seen-job store: which job ids earlier runs already reported.

The store itself never touches the disk. `load_state` / `save_state` are the
only I/O and the orchestrator calls each exactly once per run.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Set

from freshpost.errors import PersistenceError
from freshpost.io.storage import atomic_write_text
from freshpost.models import JobRecord
from freshpost.pipeline.filter import filter_new

logger = logging.getLogger(__name__)


class SeenState:
    """Set of job ids. Only grows."""

    def __init__(self, seen_job_ids: Optional[Iterable[str]] = None):
        self._seen: Set[str] = set(seen_job_ids or ())

    def is_new(self, job: JobRecord) -> bool:
        return job.id not in self._seen

    def contains(self, job_id: str) -> bool:
        return job_id in self._seen

    def filter_new(self, jobs: Iterable[JobRecord]) -> List[JobRecord]:
        return filter_new(jobs, self._seen)

    def mark_seen(self, jobs: Iterable[JobRecord]) -> None:
        for job in jobs:
            self._seen.add(job.id)

    def seen_count(self) -> int:
        return len(self._seen)

    def ids(self) -> Set[str]:
        return set(self._seen)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SeenState):
            return NotImplemented
        return self._seen == other._seen

    def to_json(self) -> str:
        return json.dumps({"seen_job_ids": sorted(self._seen)}, indent=2)

    @classmethod
    def from_json(cls, text: str) -> "SeenState":
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("state file must hold a JSON object")
        ids = data.get("seen_job_ids") or []
        if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
            raise ValueError("seen_job_ids must be a list of strings")
        return cls(ids)


def load_state(path: Path) -> SeenState:
    """Missing file = first run = empty store."""
    if not path.exists():
        logger.info("No state file at %s; starting with an empty seen set", path)
        return SeenState()
    try:
        state = SeenState.from_json(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise PersistenceError(f"Failed to read state file {path}: {e}") from e
    except ValueError as e:
        raise PersistenceError(f"Failed to parse state file {path}: {e}") from e
    logger.debug("Loaded %d seen job ids from %s", state.seen_count(), path)
    return state


def save_state(path: Path, state: SeenState) -> None:
    atomic_write_text(path, state.to_json())
