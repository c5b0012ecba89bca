"""
Field extractor: turns wordpress.org markup into ReviewRecord and PluginInfo.

wordpress.org changes its markup every so often, and the review listing has
existed in two generations (the old `.review` cards and the bbPress forum
list). So every field is extracted with a *fallback chain*: an ordered tuple
of small pure functions, each taking a BeautifulSoup node and returning a
value or None. The first non-empty value wins. If every link in the chain
comes up empty, the field gets a sentinel ('' / 0 / None / []) instead of
raising.

Key concept, CSS selectors:
    `node.select_one(".review-title a")` finds the first <a> inside an element
    with class "review-title". BeautifulSoup delegates these to soupsieve,
    which also understands `:-soup-contains("text")` for matching on text.
"""

import logging
import re
from datetime import datetime
from typing import Callable, Optional

from bs4 import BeautifulSoup
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from wp_agent.errors import ParseError
from wp_agent.models import PluginInfo, ReviewRecord

logger = logging.getLogger(__name__)

PLUGIN_URL = "https://wordpress.org/plugins/{slug}/"

Extractor = Callable[[object], Optional[object]]


# ============================================================
# PART 1: Building blocks for fallback chains
# ============================================================

def clean_text(text: Optional[str]) -> str:
    """Collapse whitespace and strip."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def text_of(selector: str) -> Extractor:
    def extract(node):
        found = node.select_one(selector)
        return clean_text(found.get_text(" ")) if found else None
    return extract


def attr_of(selector: str, attr: str) -> Extractor:
    def extract(node):
        found = node.select_one(selector)
        if found is None:
            return None
        value = found.get(attr)
        return clean_text(value) if isinstance(value, str) else None
    return extract


def all_of(selector: str) -> Extractor:
    def extract(node):
        return node.select(selector)
    return extract


def matching(extractor: Extractor, pattern: str, group: int = 1) -> Extractor:
    """Run another extractor, then keep only the part matching a regex."""
    regex = re.compile(pattern, re.IGNORECASE)

    def extract(node):
        value = extractor(node)
        if not value:
            return None
        match = regex.search(value)
        return match.group(group).strip() if match else None
    return extract


def first_of(node, chain, default=""):
    """Return the first non-empty value produced by the chain, else the default."""
    for extract in chain:
        value = extract(node)
        if value not in (None, "", []):
            return value
    return default


def _unique(values: list[str]) -> list[str]:
    seen = set()
    out = []
    for v in values:
        if v and v not in seen:
            seen.add(v)
            out.append(v)
    return out


def _html_to_text(text: Optional[str]) -> str:
    """Decode HTML entities and drop tags (the API returns names like 'Foo &#8211; Bar')."""
    if not text:
        return ""
    return clean_text(BeautifulSoup(text, "html.parser").get_text(" "))


# ============================================================
# PART 2: Numbers and dates
# ============================================================

def parse_install_count(text: Optional[str]) -> int:
    """
    Convert a human install count into an integer.

        "1+ million" -> 1000000
        "500,000+"   -> 500000
        "" / "N/A"   -> 0
    """
    if not text:
        return 0
    s = str(text).lower().strip()

    if "million" in s:
        match = re.search(r"(\d+(?:\.\d+)?)", s)
        return int(float(match.group(1)) * 1_000_000) if match else 0

    match = re.search(r"(\d[\d,]*)", s)
    if match:
        return int(match.group(1).replace(",", ""))
    return 0


_RELATIVE_DATE = re.compile(
    r"(\d+|an?|one)\s+(minute|hour|day|week|month|year)s?\s+ago", re.IGNORECASE
)


def parse_review_date(text: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Parse a review date string into a naive datetime.

    Handles absolute dates ("January 15, 2025", "2025-01-15T10:00:00+00:00")
    and relative ones ("3 weeks ago", resolved against `now`).
    Returns None when the text does not contain a usable date.
    """
    text = clean_text(text)
    if not text:
        return None

    relative = _RELATIVE_DATE.search(text)
    if relative:
        amount = relative.group(1).lower()
        amount = 1 if amount in ("a", "an", "one") else int(amount)
        unit = relative.group(2).lower() + "s"
        return (now or datetime.now()) - relativedelta(**{unit: amount})

    try:
        parsed = date_parser.parse(text)
    except (ValueError, OverflowError):
        # Last try: dates buried in other words, but only if there is a year in there
        if not re.search(r"\b\d{4}\b", text):
            return None
        try:
            parsed = date_parser.parse(text, fuzzy=True)
        except (ValueError, OverflowError):
            return None

    # Strip timezone info so every date we compare is naive
    if parsed.tzinfo is not None:
        parsed = parsed.replace(tzinfo=None)
    return parsed


# ============================================================
# PART 3: Review listings
# ============================================================

REVIEW_CONTAINERS = (
    all_of(".review"),              # legacy plugin-page review cards
    all_of("ul.topic"),             # bbPress forum listing
    all_of("article.review"),
)

REVIEW_TITLE = (
    text_of(".review-title a"),
    text_of(".review-title"),
    text_of("a.bbp-topic-permalink"),
    text_of("h3 a"),
)

REVIEW_URL = (
    attr_of(".review-title a", "href"),
    attr_of("a.bbp-topic-permalink", "href"),
    attr_of("h3 a", "href"),
)

REVIEW_AUTHOR = (
    text_of(".review-author a"),
    text_of(".review-author"),
    text_of(".bbp-topic-started-by .bbp-author-name"),
    text_of(".bbp-author-name"),
    text_of(".bbp-topic-started-by a"),
)

REVIEW_DATE = (
    text_of(".review-date"),
    attr_of("time[datetime]", "datetime"),
    attr_of(".bbp-topic-freshness a", "title"),
    text_of(".bbp-topic-freshness a"),
    text_of("time"),
)

REVIEW_CONTENT = (
    text_of(".review-content"),
    text_of(".review-body"),
    text_of(".bbp-topic-content"),
)

_STARS_IN_WORDS = r"([\d.]+)\s*out of 5"


def _filled_star_count(node):
    filled = node.select(".dashicons-star-filled")
    if not filled:
        return None
    half = node.select(".dashicons-star-half")
    return str(len(filled) + 0.5 * len(half))


EXPLICIT_REVIEW_RATING = (
    attr_of(".wporg-ratings", "data-rating"),
    attr_of("[data-rating]", "data-rating"),
    matching(attr_of(".wporg-ratings", "title"), _STARS_IN_WORDS),
    matching(attr_of(".star-rating", "title"), _STARS_IN_WORDS),
    matching(attr_of("[aria-label*='out of 5']", "aria-label"), _STARS_IN_WORDS),
    _filled_star_count,
)

# Last resort: the star bar's CSS width, divided by 20 and rounded half up
# (50% -> 3, 70% -> 4, 90% -> 5). Records rated this way are flagged rating_estimated.
STAR_WIDTH = (
    matching(attr_of(".star-rating .stars", "style"), r"width:\s*([\d.]+)%"),
    matching(attr_of(".stars[style]", "style"), r"width:\s*([\d.]+)%"),
    matching(attr_of(".star-rating[style]", "style"), r"width:\s*([\d.]+)%"),
)


def _as_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def extract_review_rating(node) -> tuple[int, bool]:
    """Return (stars 0..5, estimated). 0 means no valid rating was found."""
    value = _as_float(first_of(node, EXPLICIT_REVIEW_RATING, None))
    estimated = False
    if value is None:
        percentage = _as_float(first_of(node, STAR_WIDTH, None))
        if percentage is None:
            return 0, False
        value = percentage / 20
        estimated = True

    rating = int(value + 0.5)    # round half up
    if not 0 <= rating <= 5:
        return 0, False
    return rating, estimated


def parse_review_element(node, now: Optional[datetime] = None) -> ReviewRecord:
    """Build one ReviewRecord from a listing entry. Raises ParseError if it is unusable."""
    title = first_of(node, REVIEW_TITLE)
    author = first_of(node, REVIEW_AUTHOR)
    raw_date = first_of(node, REVIEW_DATE)

    if not (title or author or raw_date):
        raise ParseError("entry has no title, author or date")

    rating, estimated = extract_review_rating(node)
    return ReviewRecord(
        rating=rating,
        title=title,
        author=author,
        raw_date=raw_date,
        parsed_date=parse_review_date(raw_date, now),
        content=first_of(node, REVIEW_CONTENT),
        source_url=first_of(node, REVIEW_URL),
        rating_estimated=estimated,
    )


def extract_reviews(html: str, now: Optional[datetime] = None,
                    on_skip: Callable[[int, str], None] = None) -> list[ReviewRecord]:
    """
    Extract every review on one listing page.

    Malformed entries are skipped (logged, and reported through on_skip),
    the rest of the page is still returned.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    elements = first_of(soup, REVIEW_CONTAINERS, [])

    records = []
    for index, element in enumerate(elements):
        try:
            records.append(parse_review_element(element, now))
        except ParseError as e:
            logger.warning("Skipping review entry %d: %s", index, e)
            if on_skip:
                on_skip(index, str(e))
    return records


# ============================================================
# PART 4: Plugin pages and API responses
# ============================================================

PLUGIN_NAME = (
    text_of(".plugin-title"),
    text_of("h1.plugin-title"),
    text_of("h2.plugin-title"),
    attr_of("meta[property='og:title']", "content"),
)

PLUGIN_DESCRIPTION = (
    text_of(".plugin-subtitle"),
    attr_of("meta[name='description']", "content"),
    text_of("p.plugin-description"),
)


def _li_matching(label_pattern: str, value_pattern: str) -> Extractor:
    """Scan every <li> whose text mentions a label and pull a value out of it."""
    label = re.compile(label_pattern, re.IGNORECASE)
    value = re.compile(value_pattern, re.IGNORECASE)

    def extract(node):
        for li in node.find_all("li"):
            text = clean_text(li.get_text(" "))
            if label.search(text):
                match = value.search(text)
                if match:
                    return match.group(1).strip()
        return None
    return extract


ACTIVE_INSTALLS = (
    text_of(".active-installs .value-data"),
    text_of(".active-installs strong"),
    text_of(".plugin-stats .active-installs strong"),
    text_of("li:-soup-contains('Active installations') strong"),
    text_of("li:-soup-contains('Active installs') strong"),
    text_of(".entry-meta .active-installs"),
    _li_matching(r"active install", r"(\d[\d,]*\+?\s*(?:million)?)"),
)

EXPLICIT_PLUGIN_RATING = (
    matching(attr_of(".wporg-ratings .star-rating", "title"), _STARS_IN_WORDS),
    matching(attr_of(".star-rating", "title"), _STARS_IN_WORDS),
    matching(attr_of("[class*='rating'][title]", "title"), _STARS_IN_WORDS),
    matching(attr_of(".star-rating", "aria-label"), _STARS_IN_WORDS),
    matching(attr_of(".wporg-ratings", "aria-label"), _STARS_IN_WORDS),
    matching(text_of(".wporg-ratings"), r"([\d.]+)\s*(?:out of 5|/5)"),
    matching(text_of(".plugin-rating"), r"([\d.]+)\s*(?:out of 5|/5)"),
    attr_of(".plugin-rating .wporg-ratings", "data-rating"),
)

RATING_COUNT = (
    matching(text_of(".wporg-ratings .rating-count a"), r"(\d[\d,]*)"),
    matching(text_of(".rating-count a"), r"(\d[\d,]*)"),
    matching(text_of("a[href*='reviews']"), r"(\d[\d,]*)"),
    matching(text_of(".reviews-count"), r"(\d[\d,]*)"),
)

LAST_UPDATED = (
    text_of("li:-soup-contains('Last updated') strong"),
    text_of("li:-soup-contains('Last updated') time"),
    text_of(".plugin-meta time"),
    text_of("time[datetime]"),
    _li_matching(r"updated", r"(\d{1,2}\s+\w+\s+\d{4})"),
    _li_matching(r"updated", r"(\d+\s+(?:day|week|month|year)s?\s+ago)"),
)


def _texts(selector: str) -> Extractor:
    def extract(node):
        return _unique([clean_text(el.get_text(" ")) for el in node.select(selector)])
    return extract


PLUGIN_TAGS = (
    _texts("a[href*='/plugins/tags/']"),
    _texts(".widget-tags a, .tags a, a.tag"),
)

BREADCRUMB_SKIP = {"plugin directory", "wordpress.org", "plugins", "home"}


def _breadcrumb_category(node):
    category = None
    for a in node.select("nav.breadcrumbs a, .breadcrumb a, .breadcrumbs a"):
        text = clean_text(a.get_text(" "))
        if text and text.lower() not in BREADCRUMB_SKIP:
            category = text
    return category


def _largest_rating_count(soup) -> int:
    """Fallback: the biggest "(2,140 ratings)" style number anywhere on the page."""
    counts = [int(m.replace(",", "")) for m in
              re.findall(r"\(?(\d[\d,]*)\s*ratings?\)?", soup.get_text(" "), re.IGNORECASE)]
    return max(counts, default=0)


def extract_plugin_info(html: str, slug: str) -> Optional[PluginInfo]:
    """Scrape a plugin's directory page. Returns None when no name can be found."""
    soup = BeautifulSoup(html or "", "html.parser")

    name = first_of(soup, PLUGIN_NAME)
    if not name:
        return None

    rating = _as_float(first_of(soup, EXPLICIT_PLUGIN_RATING, None))
    estimated = False
    if rating is None:
        percentage = _as_float(first_of(soup, STAR_WIDTH, None))
        if percentage is not None:
            rating = round(percentage / 20, 1)
            estimated = True

    rating_count = first_of(soup, RATING_COUNT, None)
    rating_count = int(rating_count.replace(",", "")) if rating_count else _largest_rating_count(soup)

    tags = first_of(soup, PLUGIN_TAGS, [])
    category = _breadcrumb_category(soup) or (tags[0] if tags else "")

    return PluginInfo(
        slug=slug,
        name=name,
        url=PLUGIN_URL.format(slug=slug),
        description=first_of(soup, PLUGIN_DESCRIPTION),
        category=category,
        tags=tags,
        active_installs_raw=first_of(soup, ACTIVE_INSTALLS),
        rating=rating if rating else None,
        rating_count=rating_count,
        last_updated_raw=first_of(soup, LAST_UPDATED),
        rating_estimated=estimated,
        source="html",
    )


def plugin_info_from_api(data, slug: str = "") -> Optional[PluginInfo]:
    """
    Convert a plugin_information API response into PluginInfo.
    Returns None when the response has no usable name (e.g. {"error": "Plugin not found."}).
    """
    if not isinstance(data, dict) or not data.get("name"):
        return None

    slug = data.get("slug") or slug
    sections = data.get("sections") or {}
    if not isinstance(sections, dict):
        sections = {}
    long_description = sections.get("description") or ""

    # Try the short description first, then the long one
    if data.get("short_description"):
        description = _html_to_text(data["short_description"])
    elif data.get("description"):
        description = _html_to_text(data["description"])
    elif long_description:
        first_paragraph = BeautifulSoup(long_description, "html.parser").find("p")
        description = clean_text(first_paragraph.get_text(" ")) if first_paragraph else ""
    else:
        description = ""

    category_match = re.search(r"<strong>Category:</strong>\s*([^<]+)", long_description)

    tags = data.get("tags") or {}
    if isinstance(tags, dict):
        tags = list(tags.keys())

    # Usually an int, but anything unreadable falls back to the 0 / None sentinels
    installs = parse_install_count(str(data.get("active_installs") or ""))
    raw_rating = _as_float(data.get("rating"))     # the API reports ratings as 0-100

    return PluginInfo(
        slug=slug,
        name=_html_to_text(data["name"]),
        url=PLUGIN_URL.format(slug=slug),
        description=description,
        category=category_match.group(1).strip() if category_match else "",
        tags=_unique([str(t) for t in tags]),
        active_installs_raw=f"{installs:,}+" if installs else "0",
        rating=round(raw_rating / 20, 1) if raw_rating else None,
        rating_count=parse_install_count(str(data.get("num_ratings") or "")),
        last_updated_raw=str(data.get("last_updated") or ""),
        source="api",
    )


# ============================================================
# PART 5: Search and tag pages
# ============================================================

PLUGIN_LINKS = (
    ".plugin-card h3 a",
    ".plugin-card-top a.plugin-icon",
    "article.plugin h2 a",
    "article.plugin-card h3 a",
    ".entry-title a",
)

_PLUGIN_HREF = re.compile(r"/plugins/([^/?#]+)/?")
_NOT_PLUGINS = {"tags", "search", "browse", "developers", "filter", "categories"}


def extract_plugin_slugs(html: str) -> list[str]:
    """Pull plugin slugs out of a search or tag results page, in page order."""
    soup = BeautifulSoup(html or "", "html.parser")
    slugs = []
    for a in soup.select(", ".join(PLUGIN_LINKS)):
        href = a.get("href") or ""
        match = _PLUGIN_HREF.search(href)
        if match and match.group(1) not in _NOT_PLUGINS:
            slugs.append(match.group(1))
    return _unique(slugs)
