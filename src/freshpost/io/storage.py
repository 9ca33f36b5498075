# src/freshpost/io/storage.py
from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from freshpost.errors import PersistenceError
from freshpost.models import JobsSnapshot

if TYPE_CHECKING:
    from freshpost.io.state import SeenState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Paths:
    """Where every file lives. All under one data dir (DATA_DIR, default ".")."""

    base_dir: Path
    config: Path
    cookies: Path
    state: Path
    latest_jobs: Path
    debug_html: Path

    @classmethod
    def under(cls, base_dir: Path | str) -> "Paths":
        base = Path(base_dir)
        try:
            base.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Failed to create data dir {base}: {e}") from e
        return cls(
            base_dir=base,
            config=base / "config.yaml",
            cookies=base / "linkedin_cookies.txt",
            state=base / ".notifier_state.json",
            latest_jobs=base / "latest_jobs.json",
            debug_html=base / "debug_linkedin.html",
        )

    @classmethod
    def from_env(cls) -> "Paths":
        return cls.under(os.getenv("DATA_DIR", "."))


# ---- atomic writes ---------------------------------------------------------------

def _write_temp(path: Path, content: str) -> Path:
    """Write content to a temp file next to `path` and return the temp path."""
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError:
        Path(tmp).unlink(missing_ok=True)
        raise
    return Path(tmp)


def atomic_write_text(path: Path, content: str) -> None:
    """Replace `path` with `content`; readers see the old file or the new one, never half."""
    try:
        tmp = _write_temp(path, content)
        os.replace(tmp, path)
    except OSError as e:
        raise PersistenceError(f"Failed to write {path}: {e}") from e


def commit_run(paths: Paths, snapshot: JobsSnapshot, state: "SeenState") -> None:
    """
    Persist the snapshot and the seen set as one step.

    Both files are fully written to temp files before either is renamed into
    place, so a failed write leaves both previous files untouched.

    The seen set is renamed first. If the snapshot rename then fails, the jobs
    are already marked seen and are not reported as new a second time; the old
    snapshot stays until the next successful run.
    """
    staged: List[Path] = []
    try:
        staged.append(_write_temp(paths.state, state.to_json()))
        staged.append(_write_temp(paths.latest_jobs, json.dumps(snapshot.to_dict(), indent=2)))
        os.replace(staged[0], paths.state)
        os.replace(staged[1], paths.latest_jobs)
    except OSError as e:
        for tmp in staged:
            tmp.unlink(missing_ok=True)
        raise PersistenceError(f"Failed to save run results: {e}") from e


# ---- snapshot ---------------------------------------------------------------------

def load_latest_jobs(paths: Paths) -> JobsSnapshot:
    if not paths.latest_jobs.exists():
        return JobsSnapshot.empty()
    try:
        data = json.loads(paths.latest_jobs.read_text(encoding="utf-8"))
        return JobsSnapshot.from_dict(data)
    except OSError as e:
        raise PersistenceError(f"Failed to read latest jobs {paths.latest_jobs}: {e}") from e
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise PersistenceError(f"Failed to parse latest jobs JSON: {e}") from e


def save_latest_jobs(paths: Paths, snapshot: JobsSnapshot) -> None:
    atomic_write_text(paths.latest_jobs, json.dumps(snapshot.to_dict(), indent=2))


# ---- cookies ----------------------------------------------------------------------

def parse_cookie_lines(text: str) -> Optional[str]:
    """
    "name=value" per line, blanks and "# comments" skipped, joined with "; ".
    Returns None when nothing is left.
    """
    pairs = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        pairs.append(line)
    return "; ".join(pairs) if pairs else None


def load_cookie_header(paths: Paths) -> Optional[str]:
    """Cookie header from the cookies file, or None (= fetch as a guest)."""
    if not paths.cookies.exists():
        return None
    try:
        return parse_cookie_lines(paths.cookies.read_text(encoding="utf-8"))
    except OSError as e:
        raise PersistenceError(f"Failed to read cookies file {paths.cookies}: {e}") from e


# ---- debug artifact ---------------------------------------------------------------

def write_debug_html(paths: Paths, body: str) -> None:
    """Keep the last fetched page around for selector debugging. Never fails the run."""
    try:
        paths.debug_html.write_text(body, encoding="utf-8")
    except OSError as e:
        logger.warning("Could not save debug HTML to %s: %s", paths.debug_html, e)
