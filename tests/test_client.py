from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from freshpost.clients.linkedin import (
    USER_AGENT,
    build_search_url,
    fetch_jobs_page,
    salary_bucket,
    session_cookies,
)
from freshpost.errors import FetchError, TransportError
from freshpost.models import SearchQuery

URL = "https://www.linkedin.com/jobs/search?keywords=rust"


def _params(url):
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query).items()}


def _cookies(request):
    header = request.headers.get("Cookie", "")
    return dict(pair.strip().split("=", 1) for pair in header.split(";") if pair.strip())


def test_session_cookies_scoped_to_site():
    jar = session_cookies("li_at=abc; JSESSIONID=\"ajax:42\"; junk; =novalue")

    assert jar.get("li_at", domain=".linkedin.com") == "abc"
    assert jar.get("JSESSIONID", domain=".linkedin.com") == '"ajax:42"'
    assert len(jar) == 2
    assert len(session_cookies(None)) == 0


class TestBuildSearchUrl:
    def test_base_params(self):
        url = build_search_url(SearchQuery("rust developer", "San Francisco Bay Area"))

        assert url.startswith("https://www.linkedin.com/jobs/search?")
        assert _params(url) == {
            "keywords": "rust developer",
            "location": "San Francisco Bay Area",
            "f_TPR": "r86400",
        }

    def test_same_query_same_url(self):
        q = SearchQuery("rust", "Berlin", remote_only=True, salary_min=100_000)
        assert build_search_url(q) == build_search_url(SearchQuery("rust", "Berlin", True, 100_000))

    def test_remote(self):
        assert _params(build_search_url(SearchQuery("rust", "Berlin", remote_only=True)))["f_WT"] == "2"
        assert "f_WT" not in _params(build_search_url(SearchQuery("rust", "Berlin")))

    @pytest.mark.parametrize(
        "salary, bucket",
        [(40_000, "1"), (59_999, "1"), (60_000, "2"), (120_000, "5"), (200_000, "9")],
    )
    def test_salary_bucket(self, salary, bucket):
        params = _params(build_search_url(SearchQuery("rust", "Berlin", salary_min=salary)))
        assert params["f_SB2"] == bucket
        assert str(salary_bucket(salary)) == bucket

    @pytest.mark.parametrize("salary", [None, 0, 39_999, 200_001])
    def test_no_salary_param(self, salary):
        assert "f_SB2" not in _params(build_search_url(SearchQuery("rust", "Berlin", salary_min=salary)))

    def test_special_characters_are_encoded(self):
        url = build_search_url(SearchQuery("C++ & Rust", "Zürich"))
        assert " " not in url
        assert _params(url)["keywords"] == "C++ & Rust"
        assert _params(url)["location"] == "Zürich"


class TestFetchJobsPage:
    def test_returns_body(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, text="<html>jobs</html>")

        body = fetch_jobs_page(URL, transport=httpx.MockTransport(handler))

        assert body == "<html>jobs</html>"
        assert seen[0].headers["User-Agent"] == USER_AGENT
        assert "Cookie" not in seen[0].headers

    def test_sends_cookie_header(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, text="ok")

        fetch_jobs_page(URL, "li_at=abc; JSESSIONID=xyz", transport=httpx.MockTransport(handler))
        assert _cookies(seen[0]) == {"li_at": "abc", "JSESSIONID": "xyz"}

    def test_cookie_survives_redirect(self):
        seen = []

        def handler(request):
            seen.append(request)
            if request.url.path == "/jobs/search":
                return httpx.Response(302, headers={"Location": "https://www.linkedin.com/jobs/search/?keywords=rust"})
            return httpx.Response(200, text="logged in")

        body = fetch_jobs_page(URL, "li_at=abc", transport=httpx.MockTransport(handler))

        assert body == "logged in"
        assert len(seen) == 2
        assert _cookies(seen[1]) == {"li_at": "abc"}

    def test_cookie_not_sent_to_other_sites(self):
        seen = []

        def handler(request):
            seen.append(request)
            if request.url.host == "www.linkedin.com":
                return httpx.Response(302, headers={"Location": "https://example.com/elsewhere"})
            return httpx.Response(200, text="elsewhere")

        fetch_jobs_page(URL, "li_at=abc", transport=httpx.MockTransport(handler))

        assert _cookies(seen[0]) == {"li_at": "abc"}
        assert "Cookie" not in seen[1].headers

    def test_follows_redirects(self):
        def handler(request):
            if request.url.path == "/jobs/search":
                return httpx.Response(302, headers={"Location": "https://www.linkedin.com/jobs/search/final"})
            return httpx.Response(200, text="landed")

        assert fetch_jobs_page(URL, transport=httpx.MockTransport(handler)) == "landed"

    @pytest.mark.parametrize("status", [403, 404, 429, 500])
    def test_non_success_status(self, status):
        transport = httpx.MockTransport(lambda request: httpx.Response(status, text="nope"))

        with pytest.raises(FetchError) as exc_info:
            fetch_jobs_page(URL, transport=transport)

        assert exc_info.value.status_code == status
        assert str(status) in str(exc_info.value)

    def test_connection_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportError):
            fetch_jobs_page(URL, transport=httpx.MockTransport(handler))
