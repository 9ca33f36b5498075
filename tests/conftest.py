import datetime as dt
from pathlib import Path

import pytest

from freshpost.io.storage import Paths
from freshpost.models import JobRecord

FIXTURES = Path(__file__).parent / "fixtures"

TODAY = dt.date(2024, 1, 15)


@pytest.fixture
def paths(tmp_path):
    return Paths.under(tmp_path / "data")


@pytest.fixture
def guest_html():
    return (FIXTURES / "guest_search.html").read_text(encoding="utf-8")


@pytest.fixture
def logged_in_html():
    return (FIXTURES / "logged_in_search.html").read_text(encoding="utf-8")


def make_job(n, posted_date=None, title=None):
    return JobRecord.create(
        title=title or f"Job {n}",
        company="Company",
        location="Location",
        url=f"https://example.com/{n}",
        posted_date=posted_date,
    )
