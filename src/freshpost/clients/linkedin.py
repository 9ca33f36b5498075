# src/freshpost/clients/linkedin.py

"""
Plain-function client for the LinkedIn job search page (no classes, no decorators).

Design goals:
- Keep *all* HTTP details here so the rest of the code never worries about URLs,
  headers or cookies.
- One call = one GET. No retries here; the scheduler decides whether to try again.
- Return the raw page text; extraction happens elsewhere.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

import httpx

from freshpost.errors import FetchError, TransportError
from freshpost.models import SearchQuery

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.linkedin.com/jobs/search"
COOKIE_DOMAIN = ".linkedin.com"

# Query parameter values the site understands.
PAST_24_HOURS = "r86400"  # f_TPR
REMOTE = "2"  # f_WT
SALARY_STEP = 20_000  # f_SB2 buckets: 1 = $40k+, 2 = $60k+, ... 9 = $200k+
SALARY_BASE = 40_000

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


# ---- Internal helpers ---------------------------------------------------------

def _default_headers() -> Dict[str, str]:
    """
    A realistic desktop browser. The site serves an empty shell to obvious bots.
    """
    return {
        "User-Agent": USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }


def session_cookies(cookie_header: Optional[str]) -> httpx.Cookies:
    """
    "a=1; b=2" -> a jar scoped to .linkedin.com.

    A plain Cookie header is dropped by httpx on redirects; jar cookies are not.
    """
    jar = httpx.Cookies()
    for pair in (cookie_header or "").split(";"):
        name, sep, value = pair.strip().partition("=")
        if not sep or not name.strip():
            continue
        jar.set(name.strip(), value.strip(), domain=COOKIE_DOMAIN)
    return jar


def salary_bucket(salary_min: int) -> int:
    """Map a USD salary floor (already validated to 40k..200k) to the site's f_SB2 bucket."""
    return (salary_min - SALARY_BASE) // SALARY_STEP + 1


def search_params(query: SearchQuery) -> Dict[str, str]:
    params: Dict[str, str] = {
        "keywords": query.keywords,
        "location": query.location,
        "f_TPR": PAST_24_HOURS,
    }
    if query.remote_only:
        params["f_WT"] = REMOTE
    if query.salary_min is not None:
        params["f_SB2"] = str(salary_bucket(query.salary_min))
    return params


# ---- Public API ---------------------------------------------------------------

def build_search_url(query: SearchQuery) -> str:
    """
    Build the search URL for a query. Same query in, same URL out.

    Always: keywords, location, "past 24 hours".
    Only when asked: remote-only (f_WT) and salary floor (f_SB2).
    """
    return str(httpx.URL(SEARCH_URL, params=search_params(query)))


def fetch_jobs_page(
    url: str,
    cookie_header: Optional[str] = None,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> str:
    """
    GET the search page and return its body text.

    - cookie_header: "li_at=...; JSESSIONID=..." loaded into the client's cookie jar
      for .linkedin.com, so it is sent on every hop of a redirect chain along with
      any cookies the site sets on the way.
    - Raises FetchError (with .status_code) for any non-2xx answer and
      TransportError when the request never got an answer.
    """
    try:
        with httpx.Client(
            headers=_default_headers(),
            cookies=session_cookies(cookie_header),
            follow_redirects=True,
            transport=transport,
        ) as client:
            resp = client.get(url)
            if not resp.is_success:
                raise FetchError(resp.status_code, url)
            logger.info("Fetched %s (%d bytes, authenticated=%s)", resp.url, len(resp.content), bool(cookie_header))
            return resp.text
    except httpx.RequestError as e:
        raise TransportError(f"Failed to fetch {url}: {e}") from e
