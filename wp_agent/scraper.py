"""
Review scraper: walks a plugin's review listing page by page.

The listing is newest-first, so as soon as a page contains a review older
than the cutoff we know every later page is out of range and stop asking.
The page itself is kept in full; trimming to the exact cutoff happens once at
the end with filter_by_window().

Each page ends in exactly one PageOutcome:

    CONTINUE        fetch the next page after a short delay
    STOP_EMPTY      the page had no reviews (nothing appended)
    STOP_CUTOFF     the page reached back past the cutoff date
    STOP_MAXPAGES   we hit the page limit
    STOP_ERROR      fetching or parsing failed; earlier pages are kept
    STOP_CANCELLED  the caller set the cancel event between pages
"""

import enum
import logging
import threading
import time
from datetime import datetime
from typing import Callable, Optional

from dateutil.relativedelta import relativedelta

from wp_agent import config
from wp_agent.errors import ConfigError, FetchError, ParseError
from wp_agent.events import ProgressListener
from wp_agent.extractor import extract_reviews
from wp_agent.fetcher import PageFetcher
from wp_agent.models import FetchSession, ReviewDataset, ReviewRecord
from wp_agent.processor import filter_by_window

logger = logging.getLogger(__name__)


class PageOutcome(str, enum.Enum):
    CONTINUE = "continue"
    STOP_EMPTY = "stop_empty"
    STOP_CUTOFF = "stop_cutoff"
    STOP_MAXPAGES = "stop_maxpages"
    STOP_ERROR = "stop_error"
    STOP_CANCELLED = "stop_cancelled"


def get_cutoff_date(now: datetime, months_back: int) -> datetime:
    """Same day-of-month, `months_back` months earlier (clamped for short months)."""
    return now - relativedelta(months=months_back)


def oldest_date(records: list[ReviewRecord]) -> Optional[datetime]:
    """Earliest parsed date on a page, ignoring records whose date could not be read."""
    dates = [r.parsed_date for r in records if r.parsed_date is not None]
    return min(dates) if dates else None


def decide_page_outcome(records: list[ReviewRecord], page_index: int,
                        max_pages: int, cutoff: datetime) -> PageOutcome:
    """What to do after parsing page `page_index`. Pure function, no I/O."""
    if not records:
        return PageOutcome.STOP_EMPTY

    oldest = oldest_date(records)
    if oldest is not None and oldest < cutoff:
        return PageOutcome.STOP_CUTOFF

    if page_index >= max_pages:
        return PageOutcome.STOP_MAXPAGES

    return PageOutcome.CONTINUE


def _validate(months_back: int, max_pages: int, delay: float) -> None:
    if not isinstance(months_back, int) or months_back < 1:
        raise ConfigError(f"months_back must be a positive integer, got {months_back!r}")
    if not isinstance(max_pages, int) or max_pages < 1:
        raise ConfigError(f"max_pages must be a positive integer, got {max_pages!r}")
    if delay is None or delay < 0:
        raise ConfigError(f"delay must be zero or more seconds, got {delay!r}")


def scrape_reviews(plugin_slug: str,
                   months_back: int = None,
                   max_pages: int = None,
                   delay: float = None,
                   fetcher: PageFetcher = None,
                   now: Callable[[], datetime] = None,
                   sleep: Callable[[float], None] = None,
                   listener: ProgressListener = None,
                   cancel: threading.Event = None) -> ReviewDataset:
    """
    Fetch a plugin's reviews from wordpress.org.

    Args:
        plugin_slug: The plugin's slug (e.g., "woocommerce").
        months_back: Only keep reviews from the last N months. Also stops
                     paginating once a page reaches past that point.
        max_pages:   Hard limit on the number of listing pages requested.
        delay:       Seconds to wait between page requests.
        fetcher:     PageFetcher to use (a fresh one by default).
        now:         Clock, injectable for tests.
        sleep:       Delay function, injectable for tests. By default the
                     delay waits on `cancel` so cancelling interrupts it.
        listener:    Receives progress events.
        cancel:      Set this event from another thread to stop between pages.

    Returns:
        A ReviewDataset whose records all fall inside [cutoff, fetch time].
        If a page fails to load, the dataset still holds every earlier page.
    """
    months_back = config.DEFAULT_MONTHS_BACK if months_back is None else months_back
    max_pages = config.DEFAULT_MAX_PAGES if max_pages is None else max_pages
    delay = config.REQUEST_DELAY if delay is None else delay
    _validate(months_back, max_pages, delay)

    fetcher = fetcher or PageFetcher()
    now = now or datetime.now
    listener = listener or ProgressListener()
    if sleep is None:
        sleep = cancel.wait if cancel is not None else time.sleep

    fetched_at = now()
    session = FetchSession(
        plugin_slug=plugin_slug,
        months_back=months_back,
        max_pages=max_pages,
        cutoff=get_cutoff_date(fetched_at, months_back),
    )
    logger.info("Fetching reviews for %s since %s (max %d pages)",
                plugin_slug, session.cutoff.date(), max_pages)

    def on_skip(index, reason):
        listener.on_record_skipped(plugin_slug, index, reason)

    page_index = 1
    error = None
    while True:
        if cancel is not None and cancel.is_set():
            outcome = PageOutcome.STOP_CANCELLED
            break

        try:
            html = fetcher.fetch_page(plugin_slug, page_index)
            records = extract_reviews(html, now=fetched_at, on_skip=on_skip)
        except (FetchError, ParseError) as e:
            logger.warning("%s: page %d failed, keeping %d earlier reviews: %s",
                           plugin_slug, page_index, len(session.records), e)
            error = str(e)
            outcome = PageOutcome.STOP_ERROR
            break

        session.pages_fetched = page_index
        outcome = decide_page_outcome(records, page_index, max_pages, session.cutoff)
        if outcome is PageOutcome.STOP_EMPTY:
            break

        session.records.extend(records)
        listener.on_page_fetched(plugin_slug, page_index, len(records))

        if outcome is not PageOutcome.CONTINUE:
            break

        sleep(delay)
        page_index += 1

    listener.on_stop(plugin_slug, outcome.value)

    in_range = filter_by_window(session.records, session.cutoff, until=fetched_at)
    logger.info("%s: %d reviews collected, %d within range (%s)",
                plugin_slug, len(session.records), len(in_range), outcome.value)

    return ReviewDataset(
        plugin_slug=plugin_slug,
        fetched_at=fetched_at,
        cutoff=session.cutoff,
        months_back=months_back,
        total_fetched=len(session.records),
        in_range_count=len(in_range),
        pages_fetched=session.pages_fetched,
        stop_reason=outcome.value,
        records=in_range,
        error=error,
    )
