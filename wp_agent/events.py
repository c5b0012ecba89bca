"""
Progress events.

The scraper and the competitor finder never print. They report what they are
doing to a ProgressListener, and whoever started them (the CLI, a test, a
notebook) decides what to show. Every method is a no-op here, so a subclass
only overrides what it cares about.
"""


class ProgressListener:
    """Receives progress events from long-running fetch operations."""

    # ---- Review pagination ----
    def on_page_fetched(self, plugin_slug: str, page_index: int, record_count: int) -> None:
        pass

    def on_record_skipped(self, plugin_slug: str, index: int, reason: str) -> None:
        pass

    def on_stop(self, plugin_slug: str, reason: str) -> None:
        pass

    # ---- Competitor discovery ----
    def on_target_resolved(self, plugin_slug: str, name: str, tags: list[str]) -> None:
        pass

    def on_search(self, strategy: str, term: str, result_count: int) -> None:
        pass

    def on_candidate_accepted(self, plugin_slug: str, score: int) -> None:
        pass

    def on_candidate_rejected(self, plugin_slug: str, reason: str) -> None:
        pass


class RecordingListener(ProgressListener):
    """Keeps every event as a (name, args) tuple. Handy for tests and debugging."""

    def __init__(self):
        self.events: list[tuple] = []

    def on_page_fetched(self, plugin_slug, page_index, record_count):
        self.events.append(("page_fetched", plugin_slug, page_index, record_count))

    def on_record_skipped(self, plugin_slug, index, reason):
        self.events.append(("record_skipped", plugin_slug, index, reason))

    def on_stop(self, plugin_slug, reason):
        self.events.append(("stop", plugin_slug, reason))

    def on_target_resolved(self, plugin_slug, name, tags):
        self.events.append(("target_resolved", plugin_slug, name, list(tags)))

    def on_search(self, strategy, term, result_count):
        self.events.append(("search", strategy, term, result_count))

    def on_candidate_accepted(self, plugin_slug, score):
        self.events.append(("accepted", plugin_slug, score))

    def on_candidate_rejected(self, plugin_slug, reason):
        self.events.append(("rejected", plugin_slug, reason))

    def named(self, name: str) -> list[tuple]:
        """All recorded events with the given name."""
        return [e for e in self.events if e[0] == name]
