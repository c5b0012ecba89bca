"""
Data models: the structure of our data.
Every review and every plugin, no matter which page layout it was scraped from,
gets converted into these shapes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass(frozen=True)
class ReviewRecord:
    """A single user review from a plugin's review listing."""
    rating: int                         # 1 to 5 stars, 0 if unknown
    title: str
    author: str
    raw_date: str                       # exactly as shown on the page
    parsed_date: Optional[datetime]     # None if the date text was unparsable
    content: str = ""                   # empty on listing-only pages
    source_url: str = ""                # link to the full review topic
    rating_estimated: bool = False      # True when derived from the star bar width

    @property
    def identity_key(self):
        """Deduplication key: the topic URL, or (title, author, date) without one."""
        if self.source_url:
            return self.source_url
        return (self.title, self.author, self.raw_date)

    def to_dict(self) -> dict:
        return {
            "rating": self.rating,
            "title": self.title,
            "author": self.author,
            "date": self.raw_date,
            "parsed_date": _iso(self.parsed_date),
            "content": self.content,
            "source_url": self.source_url,
            "rating_estimated": self.rating_estimated,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ReviewRecord":
        return cls(
            rating=int(data.get("rating", 0)),
            title=data.get("title", ""),
            author=data.get("author", ""),
            raw_date=data.get("date", ""),
            parsed_date=_from_iso(data.get("parsed_date")),
            content=data.get("content", ""),
            source_url=data.get("source_url", ""),
            rating_estimated=bool(data.get("rating_estimated", False)),
        )


@dataclass
class FetchSession:
    """Mutable state of one pagination run. Only the scraper touches this."""
    plugin_slug: str
    months_back: int
    max_pages: int
    cutoff: datetime
    pages_fetched: int = 0
    records: list[ReviewRecord] = field(default_factory=list)


@dataclass
class ReviewDataset:
    """The finished result of a review fetch, ready to be saved or analyzed."""
    plugin_slug: str
    fetched_at: datetime
    cutoff: datetime
    months_back: int
    total_fetched: int              # records seen before the date window filter
    in_range_count: int
    pages_fetched: int
    stop_reason: str                # see scraper.PageOutcome
    records: list[ReviewRecord]
    error: Optional[str] = None     # set when pagination ended on a fetch error

    def to_dict(self) -> dict:
        return {
            "plugin_slug": self.plugin_slug,
            "fetched_at": _iso(self.fetched_at),
            "cutoff": _iso(self.cutoff),
            "months_back": self.months_back,
            "total_fetched": self.total_fetched,
            "in_range_count": self.in_range_count,
            "pages_fetched": self.pages_fetched,
            "stop_reason": self.stop_reason,
            "error": self.error,
            "reviews": [r.to_dict() for r in self.records],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ReviewDataset":
        records = [ReviewRecord.from_dict(r) for r in data.get("reviews", [])]
        return cls(
            plugin_slug=data["plugin_slug"],
            fetched_at=_from_iso(data["fetched_at"]),
            cutoff=_from_iso(data["cutoff"]),
            months_back=int(data.get("months_back", 0)),
            total_fetched=int(data.get("total_fetched", len(records))),
            in_range_count=int(data.get("in_range_count", len(records))),
            pages_fetched=int(data.get("pages_fetched", 0)),
            stop_reason=data.get("stop_reason", ""),
            records=records,
            error=data.get("error"),
        )


@dataclass
class PluginInfo:
    """Basic info about a plugin in the WordPress.org directory."""
    slug: str
    name: str
    url: str
    description: str = ""
    category: str = ""                  # empty when neither source knows it
    tags: list[str] = field(default_factory=list)
    active_installs_raw: str = ""       # e.g. "500,000+" or "1+ million"
    rating: Optional[float] = None      # 0.0 to 5.0, None means unrated
    rating_count: int = 0
    last_updated_raw: str = ""
    rating_estimated: bool = False
    source: str = "api"                 # "api" or "html"

    @property
    def install_count(self) -> int:
        # Local import: extractor imports this module
        from wp_agent.extractor import parse_install_count
        return parse_install_count(self.active_installs_raw)

    def to_dict(self) -> dict:
        return {
            "slug": self.slug,
            "name": self.name,
            "url": self.url,
            "description": self.description,
            "category": self.category,
            "tags": list(self.tags),
            "active_installs": self.active_installs_raw,
            "rating": self.rating,
            "rating_count": self.rating_count,
            "last_updated": self.last_updated_raw,
            "rating_estimated": self.rating_estimated,
            "source": self.source,
        }


@dataclass
class CompetitorResult:
    """Output of one competitor discovery run."""
    target_plugin: PluginInfo
    competitors: list[PluginInfo]       # sorted by install count, largest first
    total_found: int
    candidates_considered: int = 0
    scores: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "target_plugin": self.target_plugin.to_dict(),
            "competitors": [c.to_dict() for c in self.competitors],
            "total_found": self.total_found,
            "candidates_considered": self.candidates_considered,
            "scores": dict(self.scores),
        }


@dataclass
class RatingStats:
    """Star distribution of a set of reviews."""
    total: int
    counts_by_rating: dict[int, int]    # keys 1..5
    average_rating: float


@dataclass
class SentimentSummary:
    positive_pct: float     # 4 and 5 stars
    mixed_pct: float        # 3 stars
    negative_pct: float     # 1 and 2 stars
    overall_label: str
    average_rating: float
