# src/freshpost/pipeline/extract.py
"""
Turn a fetched LinkedIn search page into JobRecords.

Two strategies, tried in a fixed order and chosen by sniffing the content:

1. EmbeddedPayloadExtractor: logged-in pages ship the results as an escaped
   JSON blob inside <code> tags. We pattern-match the repeating fragments
   (titles, companies, locations, job ids) and zip them back together by position.
2. MarkupExtractor: guest pages are server-rendered job cards. We walk the cards
   with CSS selectors (several historical class names per field, first match wins).

Both are best-effort: a card with missing fields gets sentinel values, only a
card without a usable URL is dropped (no URL, no identity).
"""
from __future__ import annotations

import datetime as dt
import html
import logging
import re
from abc import ABC, abstractmethod
from typing import List, Optional, Pattern, Sequence
from urllib.parse import urlencode

from bs4 import BeautifulSoup, Tag

from freshpost.errors import ExtractionError
from freshpost.models import JobRecord
from freshpost.pipeline.normalize import (
    SITE_ORIGIN,
    absolute_url,
    canonical_url,
    clean_fragment,
    parse_posted_date,
    today_local,
)

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
UNKNOWN_COMPANY = "Unknown Company"
LOCATION_TBD = "Location TBD"


class Extractor(ABC):
    """One way of reading job records out of a search page."""

    name: str = "base"

    @abstractmethod
    def matches(self, content: str) -> bool:
        """True if this strategy should handle `content`."""

    @abstractmethod
    def extract(self, content: str, *, keywords: str = "", today: Optional[dt.date] = None) -> List[JobRecord]:
        """Return records in page order. Never raises for a single bad record."""


# ---- Embedded payload (logged-in pages) ---------------------------------------

_JSON_STRING = r'"((?:[^"\\]|\\.)*)"'

# Values that are type names / urns rather than text a human wrote.
_INTERNAL_VALUE = re.compile(
    r"^(?:com\.linkedin\.|urn:li:|\$)"
    r"|^[a-z][A-Za-z0-9_]*(?:\.[A-Za-z0-9_$]+){2,}$"
)


def _looks_internal(value: str) -> bool:
    return not value or "$type" in value or bool(_INTERNAL_VALUE.search(value))


def synthetic_job_url(keywords: str, title: str) -> str:
    """Deterministic stand-in URL for a payload record with no job id."""
    return f"{SITE_ORIGIN}/jobs/search/?" + urlencode({"keywords": keywords, "title": title})


class EmbeddedPayloadExtractor(Extractor):
    name = "embedded_payload"

    MARKERS: Sequence[str] = ("jobPostingTitle", "primaryDescription")

    TITLE_PATTERN = r'"jobPostingTitle"\s*:\s*' + _JSON_STRING
    COMPANY_PATTERN = r'"primaryDescription"\s*:\s*\{[^{}]*?"text"\s*:\s*' + _JSON_STRING
    LOCATION_PATTERN = r'"secondaryDescription"\s*:\s*\{[^{}]*?"text"\s*:\s*' + _JSON_STRING
    JOB_ID_PATTERN = r"urn:li:fsd_jobPosting:(\d+)"

    def __init__(self) -> None:
        self._title = self._compile(self.TITLE_PATTERN)
        self._company = self._compile(self.COMPANY_PATTERN)
        self._location = self._compile(self.LOCATION_PATTERN)
        self._job_id = self._compile(self.JOB_ID_PATTERN)

    @staticmethod
    def _compile(pattern: str) -> Pattern[str]:
        try:
            return re.compile(pattern)
        except re.error as e:
            raise ExtractionError(f"bad payload pattern {pattern!r}: {e}") from e

    def matches(self, content: str) -> bool:
        return all(marker in content for marker in self.MARKERS)

    def extract(self, content: str, *, keywords: str = "", today: Optional[dt.date] = None) -> List[JobRecord]:
        # Every payload record is dated "today": the payload's own timestamps are not read.
        today = today or today_local()
        text = html.unescape(content)

        titles = self._title.findall(text)
        companies = self._company.findall(text)
        locations = self._location.findall(text)
        job_ids = list(dict.fromkeys(self._job_id.findall(text)))  # dedupe, keep order

        logger.info(
            "Embedded payload: %d titles, %d companies, %d locations, %d job ids",
            len(titles), len(companies), len(locations), len(job_ids),
        )

        jobs: List[JobRecord] = []
        for i, raw_title in enumerate(titles):
            title = clean_fragment(raw_title) or UNKNOWN
            company = _pick(companies, i, UNKNOWN_COMPANY)
            location = _pick(locations, i, LOCATION_TBD)

            if i < len(job_ids):
                job_id: Optional[str] = job_ids[i]
            else:
                job_id = job_ids[0] if job_ids else None

            if job_id:
                url = f"{SITE_ORIGIN}/jobs/view/{job_id}/"
            else:
                url = synthetic_job_url(keywords, title)

            job = JobRecord.create(
                title=title,
                company=company,
                location=location,
                url=url,
                posted_date=today,
            )
            logger.debug("Extracted %r at %r in %r (%s)", job.title, job.company, job.location, job.url)
            jobs.append(job)
        return jobs


def _pick(values: Sequence[str], i: int, sentinel: str) -> str:
    if i >= len(values):
        return sentinel
    value = clean_fragment(values[i])
    return sentinel if _looks_internal(value) else value


# ---- Server-rendered markup (guest pages) -------------------------------------

class MarkupExtractor(Extractor):
    name = "markup"

    CARD_SELECTORS: Sequence[str] = (".base-card", ".job-card-container", "[data-job-id]")
    TITLE_SELECTORS: Sequence[str] = (
        "h3.base-search-card__title",
        ".job-card-list__title",
        "a.job-card-list__title",
    )
    COMPANY_SELECTORS: Sequence[str] = (
        "h4.base-search-card__subtitle",
        ".job-card-container__company-name",
        "a.job-card-container__company-name",
    )
    LOCATION_SELECTORS: Sequence[str] = (
        ".job-search-card__location",
        ".job-card-container__metadata-item",
    )
    LINK_SELECTORS: Sequence[str] = ("a.base-card__full-link", "a.job-card-list__title")
    DATE_SELECTORS: Sequence[str] = (
        "time[class*='job-search-card__listdate']",
        "time.job-search-card__listdate",
        ".job-search-card__listdate",
        ".job-search-card__listdate--new",
    )

    def matches(self, content: str) -> bool:
        return True

    def extract(self, content: str, *, keywords: str = "", today: Optional[dt.date] = None) -> List[JobRecord]:
        today = today or today_local()
        soup = BeautifulSoup(content, "html.parser")
        cards = self._find_cards(soup)
        logger.info("Found %d job card elements in HTML", len(cards))

        jobs: List[JobRecord] = []
        for card in cards:
            job = self._card_to_job(card, today)
            if job is None:
                continue
            logger.debug(
                "Extracted %r at %r in %r (date: %s)",
                job.title, job.company, job.location, job.posted_date,
            )
            jobs.append(job)

        logger.info("Successfully parsed %d jobs", len(jobs))
        return jobs

    def _find_cards(self, soup: BeautifulSoup) -> List[Tag]:
        for selector in self.CARD_SELECTORS:
            cards = _select(soup, selector)
            if cards:
                logger.debug("Card selector %r matched %d elements", selector, len(cards))
                return cards
        return []

    def _card_to_job(self, card: Tag, today: dt.date) -> Optional[JobRecord]:
        link = _first_match(card, self.LINK_SELECTORS)
        url = canonical_url(absolute_url(link.get("href") if link is not None else None))
        if not url:
            return None  # no URL, no identity

        title_el = _first_match(card, self.TITLE_SELECTORS)
        company_el = _first_match(card, self.COMPANY_SELECTORS)
        location_el = _first_match(card, self.LOCATION_SELECTORS)
        date_el = _first_match(card, self.DATE_SELECTORS)

        title = _first_text(title_el) or UNKNOWN
        # company names are often wrapped in a nested <a>; take all of the text
        company = company_el.get_text(" ", strip=True) if company_el is not None else ""
        location = _first_text(location_el) or UNKNOWN

        posted_date = None
        if date_el is not None:
            raw_date = date_el.get("datetime") or _first_text(date_el)
            posted_date = parse_posted_date(raw_date, today=today)

        return JobRecord.create(
            title=title,
            company=company or UNKNOWN,
            location=location,
            url=url,
            posted_date=posted_date,
        )


def _select(node: Tag, selector: str) -> List[Tag]:
    try:
        return node.select(selector)
    except Exception as e:  # soupsieve raises its own SelectorSyntaxError
        raise ExtractionError(f"bad selector {selector!r}: {e}") from e


def _first_match(card: Tag, selectors: Sequence[str]) -> Optional[Tag]:
    for selector in selectors:
        found = _select(card, selector)
        if found:
            return found[0]
    return None


def _first_text(el: Optional[Tag]) -> str:
    if el is None:
        return ""
    for s in el.stripped_strings:
        return s
    return ""


# ---- Strategy selection --------------------------------------------------------

def default_extractors() -> List[Extractor]:
    return [EmbeddedPayloadExtractor(), MarkupExtractor()]


def select_extractor(content: str, extractors: Optional[Sequence[Extractor]] = None) -> Extractor:
    """First extractor (in order) whose `matches` accepts the content."""
    for extractor in extractors or default_extractors():
        if extractor.matches(content):
            return extractor
    raise ExtractionError("no extractor accepts this content")


def extract_jobs(
    content: str,
    *,
    keywords: str = "",
    today: Optional[dt.date] = None,
    extractors: Optional[Sequence[Extractor]] = None,
) -> List[JobRecord]:
    extractor = select_extractor(content, extractors)
    logger.info("Using %s extractor", extractor.name)
    return extractor.extract(content, keywords=keywords, today=today)
