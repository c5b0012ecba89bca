"""
Competitor finder: which other plugins solve the same problem as this one?

Steps:
    1. Resolve the target plugin (fatal if that fails).
    2. Rank the target's tags so specific ones ("woo-product-reviews") are
       searched before generic ones ("widget").
    3. Search by the best tags, and by category, collecting candidate slugs.
    4. Look up each candidate and keep it only if it is a valid plugin AND
       scores at least MIN_RELEVANCE against the target.
    5. Sort the survivors by active installs.

A candidate that cannot be looked up is logged and skipped. It never stops
the run.
"""

import logging
import re
import threading
import time
from typing import Callable, Optional

from wp_agent import config
from wp_agent.directory import PluginDirectory
from wp_agent.errors import ConfigError, FetchError, NotFoundError
from wp_agent.events import ProgressListener
from wp_agent.models import CompetitorResult, PluginInfo

logger = logging.getLogger(__name__)

# ============================================================
# PART 1: Tag prioritization
# ============================================================

# Tags that say nothing about what a plugin does
GENERIC_TAGS = {
    "wordpress", "plugin", "plugins", "free", "premium", "widget", "widgets",
    "admin", "shortcode", "page", "pages", "post", "posts", "simple", "easy",
    "responsive", "custom", "tool", "tools",
}

# Features many unrelated plugins mention in passing
SECONDARY_TAGS = {
    "seo", "email", "coupon", "social", "analytics", "marketing", "security",
    "performance", "cache", "integration", "api", "mobile",
}

MAX_SEARCH_TAGS = 5


def score_tag(tag: str) -> int:
    """Higher means more specific. Multi-word (hyphenated) and long tags win."""
    tag = tag.lower().strip()
    score = 10
    if tag in GENERIC_TAGS:
        score -= 20
    if tag in SECONDARY_TAGS:
        score -= 5

    hyphens = tag.count("-")
    if hyphens >= 2:
        score += 15
    elif hyphens == 1:
        score += 8

    if len(tag) > 15:
        score += 5
    return score


def prioritize_tags(tags: list[str], limit: int = MAX_SEARCH_TAGS) -> list[str]:
    """Best tags first, anything scoring zero or less dropped, at most `limit` kept."""
    scored = [(score_tag(tag), tag) for tag in tags]
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [tag for score, tag in scored if score > 0][:limit]


# ============================================================
# PART 2: Validity and relevance
# ============================================================

MIN_INSTALLS = 100
MIN_RATING = 3.0
MIN_RELEVANCE = 30

# Frameworks and utilities that share tags with half the directory
FRAMEWORK_PLUGINS = {
    "woocommerce", "elementor", "jetpack", "akismet", "classic-editor",
    "advanced-custom-fields", "redux-framework", "kirki", "cmb2", "meta-box",
    "gutenberg", "wp-mail-smtp", "wordpress-importer", "query-monitor",
}
FRAMEWORK_PENALTY = -100

STOP_WORDS = {
    "with", "your", "that", "this", "from", "have", "will", "more", "into",
    "than", "them", "they", "their", "what", "when", "which", "also", "only",
    "just", "very", "most", "best", "easy", "easily", "simple", "plugin",
    "plugins", "wordpress", "site", "sites", "website", "websites", "free",
    "using", "allows", "help", "helps", "make", "makes", "like", "other",
}

TAG_MATCH_POINTS = 15
SUBTOKEN_POINTS = 8
MIN_SUBTOKEN_LENGTH = 5
CATEGORY_POINTS = 20
WORD_POINTS = 5
WORD_POINTS_CAP = 30


def is_valid_competitor(info: PluginInfo) -> tuple[bool, str]:
    """Basic quality bar. Returns (ok, reason for rejection)."""
    if not info.name:
        return False, "no name"

    installs = info.install_count
    if installs < MIN_INSTALLS:
        return False, f"low installs ({installs})"

    if info.rating and info.rating < MIN_RATING:
        return False, f"low rating ({info.rating})"

    return True, ""


def _sub_tokens(tag: str) -> set[str]:
    return {part for part in tag.split("-") if len(part) >= MIN_SUBTOKEN_LENGTH}


def _meaningful_words(text: str) -> set[str]:
    words = re.findall(r"[a-z0-9]+", text.lower())
    return {w for w in words if len(w) >= 4 and w not in STOP_WORDS}


def relevance_score(candidate: PluginInfo, target: PluginInfo) -> int:
    """
    How similar is the candidate to the target?

        +15  per candidate tag that exactly matches a target tag
        +8   per shared hyphenated sub-token (5+ chars) between a non-matching
             candidate tag and a target tag ("woo-product-reviews" vs "product-reviews")
        +20  same category
        +5   per shared meaningful word in name + description (max +30)

    Framework/utility plugins always score FRAMEWORK_PENALTY.
    """
    if candidate.slug.lower() in FRAMEWORK_PLUGINS:
        return FRAMEWORK_PENALTY

    target_tags = {t.lower() for t in target.tags}
    candidate_tags = {t.lower() for t in candidate.tags}

    score = 0
    for tag in candidate_tags:
        if tag in target_tags:
            score += TAG_MATCH_POINTS
            continue
        tokens = _sub_tokens(tag)
        for target_tag in target_tags:
            score += SUBTOKEN_POINTS * len(tokens & _sub_tokens(target_tag))

    if candidate.category and target.category and candidate.category.lower() == target.category.lower():
        score += CATEGORY_POINTS

    shared_words = (_meaningful_words(f"{target.name} {target.description}")
                    & _meaningful_words(f"{candidate.name} {candidate.description}"))
    score += min(WORD_POINTS * len(shared_words), WORD_POINTS_CAP)

    return score


def rank_competitors(competitors: list[PluginInfo], limit: int) -> list[PluginInfo]:
    return sorted(competitors, key=lambda p: p.install_count, reverse=True)[:limit]


# ============================================================
# PART 3: Orchestration
# ============================================================

def _cancelled(cancel: Optional[threading.Event]) -> bool:
    return cancel is not None and cancel.is_set()


def gather_candidates(target: PluginInfo, directory: PluginDirectory,
                      search_limit: int, pause: Callable[[], None],
                      listener: ProgressListener,
                      cancel: threading.Event = None) -> list[str]:
    """Run every search strategy and merge the slugs, first-seen order, target excluded."""
    searches = [("tag", tag, directory.search_by_tag) for tag in prioritize_tags(target.tags)]
    if target.category:
        searches.append(("category", target.category, directory.search_by_category))

    candidates = {}     # dict as an ordered set
    for i, (strategy, term, search) in enumerate(searches):
        if _cancelled(cancel):
            break
        if i > 0:
            pause()

        slugs = search(term, search_limit)
        listener.on_search(strategy, term, len(slugs))
        for slug in slugs:
            if slug.lower() != target.slug.lower():
                candidates.setdefault(slug, None)

    return list(candidates)


def find_competitors(plugin_slug: str,
                     max_competitors: int = None,
                     directory: PluginDirectory = None,
                     delay: float = None,
                     search_limit: int = None,
                     sleep: Callable[[float], None] = None,
                     listener: ProgressListener = None,
                     cancel: threading.Event = None) -> CompetitorResult:
    """
    Find competitor plugins for `plugin_slug`.

    Args:
        max_competitors: Stop once this many competitors have been accepted.
        delay:           Seconds between requests; every 5th lookup waits twice as long.
        search_limit:    How many slugs to take from each search.

    Raises:
        NotFoundError: the target plugin could not be resolved.
        ConfigError:   invalid options.
    """
    max_competitors = config.DEFAULT_MAX_COMPETITORS if max_competitors is None else max_competitors
    delay = config.REQUEST_DELAY if delay is None else delay
    search_limit = config.SEARCH_LIMIT if search_limit is None else search_limit
    if not isinstance(max_competitors, int) or max_competitors < 1:
        raise ConfigError(f"max_competitors must be a positive integer, got {max_competitors!r}")
    if delay < 0:
        raise ConfigError(f"delay must be zero or more seconds, got {delay!r}")

    directory = directory or PluginDirectory()
    listener = listener or ProgressListener()
    if sleep is None:
        sleep = cancel.wait if cancel is not None else time.sleep

    # Step 1: the target itself
    target = directory.get_plugin_info(plugin_slug)
    listener.on_target_resolved(plugin_slug, target.name, target.tags)
    logger.info("Target %s: category=%r tags=%s", plugin_slug, target.category, target.tags)

    # Steps 2-3: candidate slugs
    candidates = gather_candidates(target, directory, search_limit,
                                   lambda: sleep(delay), listener, cancel)
    logger.info("Found %d potential competitors for %s", len(candidates), plugin_slug)

    # Step 4: look each one up
    accepted = []
    scores = {}
    considered = 0
    for slug in candidates:
        if len(accepted) >= max_competitors or _cancelled(cancel):
            break
        # Every lookup follows a request (the last search or the previous lookup)
        sleep(delay * 2 if considered > 0 and considered % 5 == 0 else delay)
        considered += 1

        try:
            info = directory.get_plugin_info(slug)
        except (NotFoundError, FetchError) as e:
            logger.warning("Skipped %s: %s", slug, e)
            listener.on_candidate_rejected(slug, f"lookup failed: {e}")
            continue

        ok, reason = is_valid_competitor(info)
        if not ok:
            listener.on_candidate_rejected(slug, reason)
            continue

        score = relevance_score(info, target)
        if score < MIN_RELEVANCE:
            listener.on_candidate_rejected(slug, f"low relevance ({score})")
            continue

        accepted.append(info)
        scores[info.slug] = score
        listener.on_candidate_accepted(slug, score)

    # Step 5: rank
    return CompetitorResult(
        target_plugin=target,
        competitors=rank_competitors(accepted, max_competitors),
        total_found=len(accepted),
        candidates_considered=considered,
        scores=scores,
    )
