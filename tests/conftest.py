"""Shared fixtures: markup builders, fake fetchers and a fixed clock."""

from datetime import datetime

import pytest

from wp_agent.errors import FetchError, NotFoundError
from wp_agent.models import PluginInfo, ReviewRecord

NOW = datetime(2026, 10, 19, 12, 0)


# ---------------------------------------------------------------------------
# Markup builders
# ---------------------------------------------------------------------------


def review_card(title, author, date, rating=5, content="", url=None):
    """A review in the legacy `.review` card layout."""
    url = url or f"https://wordpress.org/support/topic/{title.lower().replace(' ', '-')}/"
    return f"""
    <div class="review">
      <div class="wporg-ratings" data-rating="{rating}"></div>
      <h3 class="review-title"><a href="{url}">{title}</a></h3>
      <span class="review-author"><a href="https://profiles.wordpress.org/{author}/">{author}</a></span>
      <span class="review-date">{date}</span>
      <div class="review-content"><p>{content}</p></div>
    </div>"""


def bbpress_topic(title, author, date_title, rating=4):
    """A review in the bbPress forum listing layout."""
    slug = title.lower().replace(" ", "-")
    return f"""
    <ul id="bbp-topic-{slug}" class="topic type-topic">
      <li class="bbp-topic-title">
        <a class="bbp-topic-permalink" href="https://wordpress.org/support/topic/{slug}/">{title}</a>
        <div class="wporg-ratings" data-rating="{rating}" title="{rating} out of 5 stars"></div>
        <p class="bbp-topic-meta"><span class="bbp-topic-started-by">Started by:
          <a href="https://profiles.wordpress.org/{author}/"><span class="bbp-author-name">{author}</span></a>
        </span></p>
      </li>
      <li class="bbp-topic-freshness"><a href="#" title="{date_title}">2 weeks ago</a></li>
    </ul>"""


def listing(*entries):
    return "<html><body><div class='reviews'>" + "".join(entries) + "</div></body></html>"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeFetcher:
    """Serves canned review pages; an Exception value is raised instead of returned."""

    def __init__(self, pages):
        self.pages = pages
        self.requested = []

    def fetch_page(self, plugin_slug, page_index):
        self.requested.append(page_index)
        value = self.pages.get(page_index, listing())
        if isinstance(value, Exception):
            raise value
        return value


class FakeDirectory:
    """In-memory plugin directory for the competitor finder."""

    def __init__(self, plugins, tag_results=None, category_results=None, failing=()):
        self.plugins = plugins
        self.tag_results = tag_results or {}
        self.category_results = category_results or {}
        self.failing = set(failing)
        self.lookups = []
        self.searches = []

    def get_plugin_info(self, slug):
        self.lookups.append(slug)
        if slug in self.failing:
            raise FetchError("connection reset", url=slug)
        if slug not in self.plugins:
            raise NotFoundError(f"Could not fetch information for plugin: {slug}")
        return self.plugins[slug]

    def search_by_tag(self, tag, limit=20):
        self.searches.append(("tag", tag))
        return self.tag_results.get(tag, [])[:limit]

    def search_by_category(self, category, limit=20):
        self.searches.append(("category", category))
        return self.category_results.get(category, [])[:limit]


def make_plugin(slug, name=None, tags=(), category="", installs="10,000+", rating=4.5,
                description=""):
    return PluginInfo(
        slug=slug,
        name=name if name is not None else slug.replace("-", " ").title(),
        url=f"https://wordpress.org/plugins/{slug}/",
        description=description,
        category=category,
        tags=list(tags),
        active_installs_raw=installs,
        rating=rating,
        rating_count=10,
    )


def make_review(title="Nice", author="ann", day=None, rating=5, content="", url=""):
    day = day or datetime(2026, 10, 1)
    return ReviewRecord(
        rating=rating,
        title=title,
        author=author,
        raw_date=day.strftime("%B %d, %Y"),
        parsed_date=day,
        content=content,
        source_url=url,
    )


@pytest.fixture
def now():
    return lambda: NOW


@pytest.fixture
def sleeps():
    """A list that doubles as a sleep function recording every delay."""
    calls = []

    class Recorder(list):
        def __call__(self, seconds):
            self.append(seconds)

    return Recorder(calls)
