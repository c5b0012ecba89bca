"""
Report generators: turn datasets and competitor results into Markdown and
console text. Pure string building, no I/O.
"""

from collections import Counter

from wp_agent.extractor import parse_install_count
from wp_agent.models import CompetitorResult, PluginInfo, ReviewDataset, ReviewRecord
from wp_agent.processor import (
    NEGATIVE_KEYWORDS,
    analyze_sentiment,
    compute_rating_stats,
    group_by_rating,
    identify_pain_points,
    keyword_frequency,
    opportunity_level,
)

RULE = "=" * 60

OPPORTUNITY_TEXT = {
    "critical": "**CRITICAL OPPORTUNITY** - User satisfaction crisis detected with {pct}% negative reviews.",
    "significant": "**SIGNIFICANT OPPORTUNITY** - Notable user dissatisfaction with {pct}% negative reviews.",
    "limited": "**Limited Opportunity** - Plugin generally satisfies users.",
}


# ============================================================
# Small formatting helpers
# ============================================================

def format_install_count(count: int) -> str:
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M+"
    if count >= 1000:
        return f"{count / 1000:.0f}K+"
    return str(count)


def format_last_updated(text: str) -> str:
    """Keep "3 weeks ago" as is, reduce full timestamps to YYYY-MM-DD."""
    if not text:
        return "N/A"
    if "ago" in text:
        return text
    # The API answers like "2025-01-15 3:04pm GMT"
    head = text[:10]
    if len(head) == 10 and head[4] == "-" and head[7] == "-":
        return head
    return text


def extract_key_focus(description: str) -> str:
    """First sentence of a description, cut to 80 characters."""
    if not description:
        return "N/A"
    focus = description.split(".")[0].strip()
    if len(focus) > 80:
        focus = focus[:77] + "..."
    return focus or "N/A"


def format_rating(info: PluginInfo) -> str:
    if info.rating is None:
        return "N/A"
    prefix = "~" if info.rating_estimated else ""
    return f"{prefix}{info.rating:.1f}"


def _excerpt(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def _pct_of(count: int, total: int) -> str:
    return f"{count / total * 100:.1f}" if total else "0.0"


def _date(value) -> str:
    return value.strftime("%B %d, %Y") if value else "N/A"


# ============================================================
# Review reports
# ============================================================

def render_summary(dataset: ReviewDataset) -> str:
    """Short plain-text summary for the terminal."""
    records = dataset.records
    stats = compute_rating_stats(records)
    sentiment = analyze_sentiment(stats)

    lines = [
        RULE,
        "REVIEW ANALYSIS SUMMARY",
        RULE,
        f"Plugin: {dataset.plugin_slug}",
        f"Analysis Period: {_date(dataset.cutoff)} - {_date(dataset.fetched_at)}",
        f"Total Unique Reviews: {stats.total}",
        "",
        "Rating Distribution:",
    ]
    for star in range(5, 0, -1):
        count = stats.counts_by_rating[star]
        lines.append(f"  {star}★: {count} ({_pct_of(count, stats.total)}%)")

    lines += [
        "",
        f"Average Rating: {stats.average_rating} stars",
        f"Overall Sentiment: {sentiment.overall_label.upper()}",
        f"  Positive (4-5★): {sentiment.positive_pct}%",
        f"  Mixed (3★): {sentiment.mixed_pct}%",
        f"  Negative (1-2★): {sentiment.negative_pct}%",
    ]

    groups = group_by_rating(records)
    negative = groups[1] + groups[2]
    if negative:
        lines += ["", f"Top Negative Keywords ({len(negative)} negative reviews):"]
        for keyword, count in list(keyword_frequency(negative, NEGATIVE_KEYWORDS).items())[:15]:
            lines.append(f"  - '{keyword}': {count} mention{'s' if count > 1 else ''}")

    if dataset.error:
        lines += ["", f"Note: pagination stopped early ({dataset.error}); results are partial."]
    return "\n".join(lines)


def _review_block(index: int, review: ReviewRecord, limit: int, quote: bool = True) -> str:
    block = f"**{index}. {review.title}** ({review.rating}★)\n"
    block += f"*By {review.author} on {review.raw_date}*\n\n"
    if review.content:
        prefix = "> " if quote else ""
        block += f"{prefix}{_excerpt(review.content, limit)}\n\n"
    return block


def render_review_report(dataset: ReviewDataset) -> str:
    """Full Markdown competitive-analysis report for one plugin's reviews."""
    records = dataset.records
    stats = compute_rating_stats(records)
    sentiment = analyze_sentiment(stats)
    groups = group_by_rating(records)
    negative = groups[1] + groups[2]
    positive = groups[5] + groups[4]
    level = opportunity_level(sentiment)

    report = f"""# {dataset.plugin_slug} - Competitive Analysis Report

**Generated:** {_date(dataset.fetched_at)}
**Analysis Period:** {_date(dataset.cutoff)} - {_date(dataset.fetched_at)}
**Data Source:** WordPress.org Plugin Reviews

---

## Executive Summary

### Key Metrics

| Metric | Value |
|--------|-------|
| **Total Reviews** | {stats.total} |
| **Average Rating** | {stats.average_rating}★ / 5.0 |
| **Overall Sentiment** | **{sentiment.overall_label.upper()}** |
| **Positive Reviews** | {sentiment.positive_pct}% |
| **Negative Reviews** | {sentiment.negative_pct}% |

### Rating Distribution

| Rating | Count | Percentage |
|--------|-------|------------|
"""
    for star in range(5, 0, -1):
        count = stats.counts_by_rating[star]
        report += f"| {star}★ | {count} | {_pct_of(count, stats.total)}% |\n"

    report += "\n### Critical Findings\n\n"
    report += OPPORTUNITY_TEXT[level].format(pct=sentiment.negative_pct) + "\n\n"
    if stats.total < 10:
        report += (f"**Low Review Volume** ({stats.total} reviews) may indicate "
                   "low user engagement or abandonment.\n\n")

    report += "**Key Pain Points:**\n"
    for i, point in enumerate(identify_pain_points(negative), 1):
        report += f"{i}. {point}\n"

    report += f"\n---\n\n## Detailed Analysis\n\n### Positive Feedback ({len(positive)} reviews)\n\n"
    if positive:
        report += "**What Users Love:**\n\n"
        for i, review in enumerate(positive[:5], 1):
            report += _review_block(i, review, 200)
    else:
        report += "No positive reviews found in this period.\n\n"

    report += f"### Negative Feedback ({len(negative)} reviews)\n\n"
    top_keywords = list(keyword_frequency(negative, NEGATIVE_KEYWORDS).items())[:10]
    if top_keywords:
        report += "**Top Negative Keywords:**\n\n| Keyword | Mentions |\n|---------|----------|\n"
        for keyword, count in top_keywords:
            report += f"| {keyword} | {count} |\n"
        report += "\n"
    if negative:
        report += "**Sample Negative Reviews:**\n\n"
        for i, review in enumerate(negative[:5], 1):
            report += _review_block(i, review, 300)

    report += "---\n\n## Review Samples by Rating\n\n"
    for star, reviews in groups.items():
        if not reviews:
            continue
        report += f"### {star}-Star Reviews ({len(reviews)} total)\n\n"
        for i, review in enumerate(reviews[:3], 1):
            report += _review_block(i, review, 250, quote=False)
            if review.source_url:
                report += f"[View Full Review]({review.source_url})\n\n"
            report += "---\n\n"

    report += f"""## Data Summary

- **Plugin:** {dataset.plugin_slug}
- **Reviews Analyzed:** {stats.total}
- **Time Range:** {dataset.months_back} months
- **Pages Fetched:** {dataset.pages_fetched}
- **Stopped Because:** {dataset.stop_reason}
"""
    if dataset.error:
        report += f"- **Partial Results:** {dataset.error}\n"
    return report


# ============================================================
# Competitor reports
# ============================================================

INSTALL_TIERS = [
    ("Million+", 1_000_000),
    ("100K-1M", 100_000),
    ("10K-100K", 10_000),
    ("1K-10K", 1000),
    ("Under 1K", 0),
]


def install_tier(count: int) -> str:
    for label, floor in INSTALL_TIERS:
        if count >= floor:
            return label
    return INSTALL_TIERS[-1][0]


def _comparison_row(info: PluginInfo, label: str) -> str:
    installs = format_install_count(parse_install_count(info.active_installs_raw))
    return (f"| {label} | {installs} | {format_rating(info)}/5 | "
            f"{format_last_updated(info.last_updated_raw)} | {extract_key_focus(info.description)} |\n")


def render_competitor_report(result: CompetitorResult) -> str:
    target = result.target_plugin
    competitors = result.competitors

    report = f"# Competitors Analysis for {target.name}\n\n"
    report += f"**Target Plugin:** [{target.name}]({target.url})\n"
    report += f"**Competitors Found:** {len(competitors)}\n"
    report += f"**Candidates Considered:** {result.candidates_considered}\n\n---\n\n"

    report += "## Target Plugin Overview\n\n"
    report += f"**Category:** {target.category or 'N/A'}\n"
    report += f"**Tags:** {', '.join(target.tags) or 'N/A'}\n"
    report += f"**Description:** {target.description}\n"
    report += f"**Active Installations:** {target.active_installs_raw or 'N/A'}\n"
    report += f"**Rating:** {format_rating(target)}/5 ({target.rating_count} ratings)\n\n---\n\n"

    report += "## Quick Comparison\n\n"
    report += "| Plugin | Active Installs | Rating | Last Updated | Key Focus |\n"
    report += "|--------|----------------|--------|--------------|-----------|\n"
    report += _comparison_row(target, f"**{target.name}** (target)")
    for comp in competitors:
        report += _comparison_row(comp, comp.name)
    report += "\n---\n\n## Competitor Plugins\n\n"

    target_tags = set(target.tags)
    for i, comp in enumerate(competitors, 1):
        report += f"### {i}. {comp.name}\n\n"
        report += f"**Slug:** `{comp.slug}`\n"
        report += f"**URL:** [WordPress.org]({comp.url})\n"
        if comp.slug in result.scores:
            report += f"**Relevance Score:** {result.scores[comp.slug]}\n"
        report += "\n**Metrics:**\n"
        report += f"- Active Installations: {comp.active_installs_raw or 'N/A'}\n"
        report += f"- Rating: {format_rating(comp)}/5 ({comp.rating_count} ratings)\n"
        report += f"- Last Updated: {comp.last_updated_raw or 'N/A'}\n\n"
        report += f"**Description:**\n{comp.description}\n\n"
        report += "**Tags:**\n"
        report += ("\n".join(f"- {tag}" for tag in comp.tags) if comp.tags else "- N/A") + "\n\n"
        common = [tag for tag in comp.tags if tag in target_tags]
        if common:
            report += f"**Common Tags with Target:** {', '.join(common)}\n\n"
        report += "---\n\n"

    report += "## Competitive Landscape Summary\n\n### Market Position by Install Count\n\n"
    tiers = Counter(install_tier(c.install_count) for c in competitors)
    for label, _ in INSTALL_TIERS:
        if tiers[label]:
            report += f"- **{label}:** {tiers[label]} plugin{'s' if tiers[label] != 1 else ''}\n"
    report += "\n"

    ratings = [c.rating for c in competitors if c.rating]
    if ratings:
        report += "### Average Competitor Rating\n\n"
        report += f"**{sum(ratings) / len(ratings):.2f}/5** (across {len(ratings)} competitors with ratings)\n\n"

    tag_counts = Counter(tag for c in competitors for tag in c.tags)
    if tag_counts:
        report += "### Most Common Tags Across Competitors\n\n"
        for tag, count in tag_counts.most_common(10):
            report += f"- **{tag}:** {count} plugin{'s' if count != 1 else ''}\n"
        report += "\n"

    if len(competitors) >= 8:
        landscape = "Highly competitive"
    elif len(competitors) >= 4:
        landscape = "Moderately competitive"
    else:
        landscape = "Limited competition"
    maturity = ("Mature market with established leaders" if tiers["Million+"]
                else "Emerging market with growth opportunities")

    report += "### Key Insights\n\n"
    report += f"- Total competitors analyzed: {len(competitors)}\n"
    report += f"- Competitive landscape: {landscape}\n"
    report += f"- Market maturity: {maturity}\n"
    return report
