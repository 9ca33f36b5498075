import datetime as dt

import pytest

from freshpost.pipeline.normalize import (
    absolute_url,
    canonical_url,
    clean_fragment,
    parse_posted_date,
    parse_relative_date,
)

TODAY = dt.date(2024, 1, 15)


@pytest.mark.parametrize(
    "text",
    ["2 hours ago", "1 hour ago", "30 minutes ago", "Just now", "Reposted 3 hours ago", "0 days ago", "1 day ago"],
)
def test_relative_phrases_that_mean_today(text):
    assert parse_relative_date(text, today=TODAY) == TODAY


@pytest.mark.parametrize("text", ["5 days ago", "2 days ago", "a day ago", "1 week ago", "Dec 15", "", None])
def test_relative_phrases_that_stay_unresolved(text):
    assert parse_relative_date(text, today=TODAY) is None


def test_relative_date_defaults_to_local_today():
    assert parse_relative_date("2 hours ago") == dt.datetime.now().astimezone().date()
    assert parse_relative_date("5 days ago") is None


def test_posted_date_prefers_absolute():
    assert parse_posted_date("2023-12-01", today=TODAY) == dt.date(2023, 12, 1)
    assert parse_posted_date(" 2023-12-01 ", today=TODAY) == dt.date(2023, 12, 1)
    assert parse_posted_date("1 day ago", today=TODAY) == TODAY
    assert parse_posted_date("2023-13-45", today=TODAY) is None
    assert parse_posted_date("Dec 15", today=TODAY) is None


def test_clean_fragment_undoes_escaping():
    assert clean_fragment(r"Backend Engineer \u0026 SRE") == "Backend Engineer & SRE"
    assert clean_fragment(r"Acme \u0026amp; Co") == "Acme & Co"
    assert clean_fragment(r"Say \"hi\"") == 'Say "hi"'
    assert clean_fragment("  Berlin,\n   Germany ") == "Berlin, Germany"
    assert clean_fragment("") == ""
    assert clean_fragment(None) == ""


def test_absolute_url():
    assert absolute_url("/jobs/view/1/") == "https://www.linkedin.com/jobs/view/1/"
    assert absolute_url("https://de.linkedin.com/jobs/view/2") == "https://de.linkedin.com/jobs/view/2"
    assert absolute_url("") == ""
    assert absolute_url(None) == ""


def test_canonical_url_drops_tracking():
    assert (
        canonical_url("https://www.linkedin.com/jobs/view/3801?refId=abc&trackingId=xyz#top")
        == "https://www.linkedin.com/jobs/view/3801"
    )
    assert canonical_url("not a url") == ""


def test_canonical_url_keeps_identifying_params():
    assert (
        canonical_url("https://www.linkedin.com/jobs/search/?trk=public&currentJobId=42&geoId=7&refId=x")
        == "https://www.linkedin.com/jobs/search/?currentJobId=42&geoId=7"
    )
    assert canonical_url("https://www.linkedin.com/jobs/search/?currentJobId=1") != canonical_url(
        "https://www.linkedin.com/jobs/search/?currentJobId=2"
    )
