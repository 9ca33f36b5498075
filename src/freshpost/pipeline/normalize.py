# src/freshpost/pipeline/normalize.py
"""
Small text helpers shared by the extractors.

This module handles the messy details: relative dates like "2 hours ago",
escaped payload fragments like "Acme \\u0026 Co", and job links full of
tracking parameters.
"""
from __future__ import annotations

import datetime as dt
import html
import json
import re
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

SITE_ORIGIN = "https://www.linkedin.com"

# click-tracking query keys; they never identify a posting
TRACKING_PARAMS = frozenset({"refId", "trackingId", "position", "pageNum", "eBP", "trk"})

_WS = re.compile(r"\s+")


def today_local() -> dt.date:
    return dt.datetime.now().astimezone().date()


def parse_relative_date(raw: str | None, today: Optional[dt.date] = None) -> Optional[dt.date]:
    """
    Map "2 hours ago" / "just now" / "1 day ago" to today; everything else to None.

    "5 days ago" or "Dec 15" come back as None, and the
    recency filter treats None as "not today".
    """
    if not raw:
        return None
    today = today or today_local()
    lower = raw.strip().lower()

    if "hour" in lower or "minute" in lower or "just now" in lower:
        return today

    if "day" in lower:
        words = lower.split()
        if not words:
            return None
        try:
            days = int(words[0])
        except ValueError:
            return None
        if days in (0, 1):
            return today

    return None


def parse_posted_date(raw: str | None, today: Optional[dt.date] = None) -> Optional[dt.date]:
    # "2025-09-26" first, then relative phrases
    if not raw:
        return None
    text = raw.strip()
    try:
        if len(text) == 10:
            return dt.datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError:
        pass
    return parse_relative_date(text, today=today)


def clean_fragment(raw: str | None) -> str:
    """
    Undo the escaping layers a payload fragment picks up on its way into the page:
    JSON string escapes (\\u0026, \\", \\/) and HTML entities (&amp;, &#39;).
    """
    if not raw:
        return ""
    text = raw
    try:
        text = json.loads(f'"{text}"')
    except ValueError:
        text = text.replace('\\"', '"').replace("\\/", "/")
    text = html.unescape(text)
    return _WS.sub(" ", text).strip()


def absolute_url(href: str | None) -> str:
    """Resolve a possibly-relative job link against the site origin."""
    if not href:
        return ""
    href = href.strip()
    if not href:
        return ""
    if href.startswith("http"):
        return href
    return urljoin(SITE_ORIGIN, href)


def canonical_url(url: str) -> str:
    """
    Drop tracking parameters ("?refId=...&trackingId=...") and the fragment so
    the same posting always hashes to the same id. Other query parameters
    (e.g. currentJobId) identify the posting and are kept, sorted.
    """
    if not url:
        return ""
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return ""
    kept = sorted(
        (k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in TRACKING_PARAMS
    )
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(kept), ""))
