# src/freshpost/pipeline/filter.py
import datetime as dt
from typing import AbstractSet, Iterable, List, Optional

from freshpost.models import JobRecord
from freshpost.pipeline.normalize import today_local


def filter_today_only(jobs: Iterable[JobRecord], today: Optional[dt.date] = None) -> List[JobRecord]:
    """
    Keep only jobs whose posted_date is today. Jobs with no date are dropped.
    `today` is resolved once for the whole pass.
    """
    today = today or today_local()
    return [j for j in jobs if j.posted_date is not None and j.posted_date == today]


def filter_new(jobs: Iterable[JobRecord], seen_ids: AbstractSet[str]) -> List[JobRecord]:
    """
    Keep only jobs whose id is NOT in seen_ids, in their original order.
    """
    out: List[JobRecord] = []
    for j in jobs:
        if not j.id:
            continue  # if no id, skip
        if j.id not in seen_ids:
            out.append(j)
    return out
