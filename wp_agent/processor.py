"""
Review processor: deduplication, date filtering and statistics.

Everything in here is pure: lists of ReviewRecord in, plain values out.
No network, no files. The scraper produces the records; the reports module
turns these numbers into Markdown.

Key design decisions:
    1. Ratings outside 1..5 are kept as records but ignored by the statistics.
    2. Percentages are relative to the total number of records, so reviews with
       an unreadable rating pull every bucket down a little.
"""

import re
from collections import Counter
from datetime import datetime
from typing import Iterable, Optional

from wp_agent.models import RatingStats, ReviewRecord, SentimentSummary

# ============================================================
# PART 1: Deduplication and the date window
# ============================================================

def deduplicate(records: Iterable[ReviewRecord]) -> list[ReviewRecord]:
    """
    Drop repeated reviews, keeping the first occurrence.

    Two records are the same review when they share a topic URL, or when
    neither has one and title, author and date text all match.
    Running this twice gives the same result as running it once.
    """
    seen = set()
    unique = []
    for record in records:
        key = record.identity_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(record)
    return unique


def filter_by_window(records: Iterable[ReviewRecord], cutoff: datetime,
                     until: Optional[datetime] = None) -> list[ReviewRecord]:
    """Keep records dated on or after cutoff (and on or before until, if given)."""
    kept = []
    for record in records:
        if record.parsed_date is None:
            continue
        if record.parsed_date < cutoff:
            continue
        if until is not None and record.parsed_date > until:
            continue
        kept.append(record)
    return kept


# ============================================================
# PART 2: Pure statistics
# ============================================================

def compute_rating_stats(records: list[ReviewRecord]) -> RatingStats:
    """
    Calculate rating distribution from a list of reviews.
    Counting problem, not an intelligence problem.
    """
    valid = [r.rating for r in records if 1 <= r.rating <= 5]
    rating_counts = Counter(valid)

    return RatingStats(
        total=len(records),
        counts_by_rating={star: rating_counts.get(star, 0) for star in range(1, 6)},
        average_rating=round(sum(valid) / len(valid), 2) if valid else 0,
    )


def _pct(count: int, total: int) -> float:
    return round(count / total * 100, 1) if total else 0.0


def overall_label(average_rating: float) -> str:
    if average_rating < 2.0:
        return "extremely negative"
    if average_rating < 3.0:
        return "negative"
    if average_rating < 4.0:
        return "mixed"
    return "positive"


def analyze_sentiment(stats: RatingStats) -> SentimentSummary:
    counts = stats.counts_by_rating
    return SentimentSummary(
        positive_pct=_pct(counts[4] + counts[5], stats.total),
        mixed_pct=_pct(counts[3], stats.total),
        negative_pct=_pct(counts[1] + counts[2], stats.total),
        overall_label=overall_label(stats.average_rating),
        average_rating=stats.average_rating,
    )


def group_by_rating(records: list[ReviewRecord]) -> dict[int, list[ReviewRecord]]:
    """Bucket reviews by star rating, 5 first. Invalid ratings are left out."""
    groups = {star: [] for star in range(5, 0, -1)}
    for record in records:
        if record.rating in groups:
            groups[record.rating].append(record)
    return groups


# ============================================================
# PART 3: Keywords and pain points
# ============================================================

NEGATIVE_KEYWORDS = [
    "crash", "crashed", "broken", "broke", "bug", "bugs", "error", "errors",
    "problem", "problems", "issue", "issues", "terrible", "worst", "avoid",
    "mess", "connection", "disconnect", "pixel", "disappear",
    "unstable", "unreliable", "not working", "doesn't work", "didn't work",
    "failed", "fail", "fails",
]


def _review_text(record: ReviewRecord) -> str:
    return f"{record.title} {record.content}".lower()


def keyword_frequency(records: list[ReviewRecord], keywords: list[str]) -> dict[str, int]:
    """
    Count case-insensitive occurrences of each keyword across title + content.
    Keywords that never occur are left out; the rest come back most frequent first.
    """
    texts = [_review_text(r) for r in records]
    counts = {}
    for keyword in keywords:
        pattern = re.compile(re.escape(keyword.lower()))
        count = sum(len(pattern.findall(text)) for text in texts)
        if count > 0:
            counts[keyword] = count

    # sorted() is stable, so ties keep the keyword list order
    return dict(sorted(counts.items(), key=lambda kv: kv[1], reverse=True))


PAIN_POINT_THEMES = [
    (["crash", "broke", "broken", "unstable"], "Site crashes and instability (CRITICAL)"),
    (["connection", "disconnect", "connect", "recognize"], "Connection failures and authentication problems"),
    (["pixel", "tracking", "disappear"], "Tracking and pixel issues"),
    (["error", "errors"], "Frequent errors with unclear messages"),
    (["update", "upgrade"], "Problems with plugin updates"),
]


def identify_pain_points(negative_records: list[ReviewRecord]) -> list[str]:
    """Name the themes that show up in at least one negative review."""
    texts = [_review_text(r) for r in negative_records]
    pain_points = [
        label for keywords, label in PAIN_POINT_THEMES
        if any(kw in text for text in texts for kw in keywords)
    ]
    return pain_points or ["General dissatisfaction with plugin functionality"]


def opportunity_level(sentiment: SentimentSummary) -> str:
    """How much room a competitor has: 'critical', 'significant' or 'limited'."""
    if sentiment.negative_pct > 50:
        return "critical"
    if sentiment.negative_pct > 30:
        return "significant"
    return "limited"
