import datetime as dt
import json

import pytest

from freshpost import service
from freshpost.errors import ConfigError, ExtractionError, FetchError, PersistenceError, PipelineError, Stage
from freshpost.io import storage
from freshpost.io.state import load_state
from freshpost.pipeline.extract import EmbeddedPayloadExtractor

NOW = dt.datetime(2024, 1, 15, 9, 30, tzinfo=dt.timezone.utc)


def clock():
    return NOW


def serve(body):
    calls = []

    def fetch(url, cookie_header):
        calls.append((url, cookie_header))
        return body

    fetch.calls = calls
    return fetch


class TestRunScrapeOnce:
    def test_first_run(self, paths, guest_html):
        summary = service.run_scrape_once(paths, fetch=serve(guest_html), clock=clock)

        assert summary.total_jobs == 3
        assert summary.today_jobs == 2
        assert summary.new_jobs == 2
        assert summary.strategy == "markup"
        assert summary.updated_at == NOW
        assert "f_TPR=r86400" in summary.search_url

        snapshot = storage.load_latest_jobs(paths)
        assert [j.title for j in snapshot.jobs] == ["Rust Engineer", "Compiler Engineer"]
        assert snapshot.new_jobs == snapshot.jobs
        assert snapshot.updated_at == NOW

        state = load_state(paths.state)
        assert all(state.contains(j.id) for j in snapshot.jobs)
        assert paths.debug_html.read_text(encoding="utf-8") == guest_html

    def test_second_run_finds_nothing_new(self, paths, guest_html):
        service.run_scrape_once(paths, fetch=serve(guest_html), clock=clock)
        summary = service.run_scrape_once(paths, fetch=serve(guest_html), clock=clock)

        assert summary.today_jobs == 2
        assert summary.new_jobs == 0
        snapshot = storage.load_latest_jobs(paths)
        assert len(snapshot.jobs) == 2
        assert snapshot.new_jobs == []
        assert load_state(paths.state).seen_count() == 2

    def test_uses_config_and_cookies(self, paths, guest_html):
        paths.config.write_text(
            "search:\n  keywords: python\n  location: Remote\n  remote: true\n", encoding="utf-8"
        )
        paths.cookies.write_text("li_at=abc\n", encoding="utf-8")
        fetch = serve(guest_html)

        service.run_scrape_once(paths, fetch=fetch, clock=clock)

        [(url, cookie)] = fetch.calls
        assert "keywords=python" in url
        assert "f_WT=2" in url
        assert cookie == "li_at=abc"

    def test_embedded_payload_strategy(self, paths, logged_in_html):
        summary = service.run_scrape_once(paths, fetch=serve(logged_in_html), clock=clock)

        assert summary.strategy == "embedded_payload"
        assert summary.total_jobs == 3
        assert summary.today_jobs == 3

    def test_records_last_run(self, paths, guest_html):
        last_run = service.LastRun()
        service.run_scrape_once(paths, fetch=serve(guest_html), clock=clock, last_run=last_run)
        assert last_run.get() == NOW


class TestFailures:
    def test_fetch_failure_persists_nothing(self, paths):
        def fetch(url, cookie_header):
            raise FetchError(503, url)

        last_run = service.LastRun()
        with pytest.raises(PipelineError) as exc_info:
            service.run_scrape_once(paths, fetch=fetch, clock=clock, last_run=last_run)

        assert exc_info.value.stage == Stage.FETCHED
        assert isinstance(exc_info.value.error, FetchError)
        assert exc_info.value.error.status_code == 503
        assert not paths.latest_jobs.exists()
        assert not paths.state.exists()
        assert last_run.get() is None

    def test_bad_config(self, paths, guest_html):
        paths.config.write_text("search: [oops\n", encoding="utf-8")

        with pytest.raises(PipelineError) as exc_info:
            service.run_scrape_once(paths, fetch=serve(guest_html), clock=clock)

        assert exc_info.value.stage == Stage.CONFIG_LOADED
        assert isinstance(exc_info.value.error, ConfigError)

    def test_no_extractor(self, paths, guest_html):
        with pytest.raises(PipelineError) as exc_info:
            service.run_scrape_once(
                paths, fetch=serve(guest_html), clock=clock, extractors=[EmbeddedPayloadExtractor()]
            )

        assert exc_info.value.stage == Stage.EXTRACTED
        assert isinstance(exc_info.value.error, ExtractionError)

    def test_persist_failure_keeps_previous_files(self, paths, guest_html, monkeypatch):
        service.run_scrape_once(paths, fetch=serve(guest_html), clock=clock)
        before_jobs = paths.latest_jobs.read_text(encoding="utf-8")
        before_state = paths.state.read_text(encoding="utf-8")

        def broken_commit(*args, **kwargs):
            raise PersistenceError("disk full")

        monkeypatch.setattr(storage, "commit_run", broken_commit)

        with pytest.raises(PipelineError) as exc_info:
            service.run_scrape_once(paths, fetch=serve(guest_html), clock=clock)

        assert exc_info.value.stage == Stage.PERSISTED
        assert paths.latest_jobs.read_text(encoding="utf-8") == before_jobs
        assert json.loads(paths.state.read_text(encoding="utf-8")) == json.loads(before_state)


class TestLastRun:
    def test_only_moves_forward(self):
        last_run = service.LastRun()
        later = NOW + dt.timedelta(hours=1)

        last_run.record(later)
        last_run.record(NOW)

        assert last_run.get() == later

    def test_starts_empty(self):
        assert service.LastRun().get() is None
