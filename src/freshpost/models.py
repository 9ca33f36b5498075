# src/freshpost/models.py
"""
Plain dataclasses for everything the pipeline passes around.

- JobRecord: one extracted job posting. Identity is `id`, derived from the URL.
- SearchQuery: what we ask the job site for (one per scrape cycle, frozen).
- JobsSnapshot: what the last successful run saw (persisted as JSON).
- ScrapeSummary: counters for one run (logged / returned, never stored alone).
"""

from __future__ import annotations

import datetime as dt
import hashlib
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

SALARY_MIN_FLOOR = 40_000
SALARY_MIN_CEILING = 200_000

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def generate_job_id(url: str) -> str:
    """Stable id for a job: same URL in, same id out (sha256, 16 hex chars)."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]


def normalize_salary_min(value: Optional[int]) -> Optional[int]:
    """
    Salary floors outside 40k..200k (or 0) mean "no salary filter".
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        value = int(value)
    except (TypeError, ValueError):
        return None
    if value == 0 or not SALARY_MIN_FLOOR <= value <= SALARY_MIN_CEILING:
        return None
    return value


def date_to_str(value: Optional[dt.date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def date_from_str(raw: Optional[str]) -> Optional[dt.date]:
    """Parse "YYYY-MM-DD" or None. Anything else is rejected with ValueError."""
    if raw is None:
        return None
    if not isinstance(raw, str) or not _ISO_DATE.match(raw):
        raise ValueError(f"posted_date must be YYYY-MM-DD or null, got {raw!r}")
    return dt.date.fromisoformat(raw)


@dataclass(eq=False)
class JobRecord:
    """
    One job posting as extracted from a search-results page.

    Notes:
    - Build it with `JobRecord.create(...)`; `id` is always computed from `url`.
    - Equality and hashing look at `id` only, so a re-scrape of the same posting
      with a tweaked title still counts as the same job.
    - `description` is always None at extraction time (would need a second request).
    """

    id: str
    title: str
    company: str
    location: str
    url: str
    posted_date: Optional[dt.date] = None
    description: Optional[str] = None

    @classmethod
    def create(
        cls,
        *,
        title: str,
        company: str,
        location: str,
        url: str,
        posted_date: Optional[dt.date] = None,
        description: Optional[str] = None,
    ) -> "JobRecord":
        return cls(
            id=generate_job_id(url),
            title=title,
            company=company,
            location=location,
            url=url,
            posted_date=posted_date,
            description=description,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, JobRecord):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "url": self.url,
            "posted_date": date_to_str(self.posted_date),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobRecord":
        # id is re-derived from the URL; a stored "id" key is ignored
        return cls.create(
            title=str(data.get("title", "")),
            company=str(data.get("company", "")),
            location=str(data.get("location", "")),
            url=str(data["url"]),
            posted_date=date_from_str(data.get("posted_date")),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class SearchQuery:
    keywords: str
    location: str
    remote_only: bool = False
    salary_min: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "salary_min", normalize_salary_min(self.salary_min))


@dataclass
class JobsSnapshot:
    updated_at: Optional[dt.datetime] = None
    jobs: List[JobRecord] = field(default_factory=list)
    new_jobs: List[JobRecord] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "JobsSnapshot":
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "jobs": [j.to_dict() for j in self.jobs],
            "new_jobs": [j.to_dict() for j in self.new_jobs],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobsSnapshot":
        raw_ts = data.get("updated_at")
        return cls(
            updated_at=dt.datetime.fromisoformat(raw_ts) if raw_ts else None,
            jobs=[JobRecord.from_dict(j) for j in data.get("jobs") or []],
            new_jobs=[JobRecord.from_dict(j) for j in data.get("new_jobs") or []],
        )


@dataclass
class ScrapeSummary:
    total_jobs: int
    today_jobs: int
    new_jobs: int
    search_url: str
    updated_at: dt.datetime
    strategy: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_jobs": self.total_jobs,
            "today_jobs": self.today_jobs,
            "new_jobs": self.new_jobs,
            "search_url": self.search_url,
            "updated_at": self.updated_at.isoformat(),
            "strategy": self.strategy,
        }
