"""
Plugin directory lookups: metadata for one plugin, and search by tag/category.

The WordPress.org plugin API (api.wordpress.org/plugins/info/1.2/) is tried
first because it returns clean JSON. When it fails, or answers without a
plugin name, we fall back to scraping the public HTML pages.
"""

import logging
from urllib.parse import quote

from wp_agent.errors import FetchError, NotFoundError
from wp_agent.extractor import extract_plugin_info, extract_plugin_slugs, plugin_info_from_api
from wp_agent.fetcher import API_URL, PLUGIN_URL, PageFetcher
from wp_agent.models import PluginInfo

logger = logging.getLogger(__name__)

TAG_PAGE_URL = "https://wordpress.org/plugins/tags/{tag}/"
SEARCH_PAGE_URL = "https://wordpress.org/plugins/search/{term}/"


class PluginDirectory:
    """Read-only access to the WordPress.org plugin directory."""

    def __init__(self, fetcher: PageFetcher = None):
        self.fetcher = fetcher or PageFetcher()

    # ---- Metadata ----

    def get_plugin_info_from_api(self, slug: str):
        params = {"action": "plugin_information", "request[slug]": slug}
        try:
            data = self.fetcher.fetch_json(API_URL, params=params)
        except FetchError as e:
            logger.info("API lookup for %s failed (%s), falling back to HTML", slug, e)
            return None
        return plugin_info_from_api(data, slug)

    def get_plugin_info(self, slug: str) -> PluginInfo:
        """
        Resolve a plugin's metadata.

        Raises:
            NotFoundError: neither the API nor the plugin page produced a name.
        """
        info = self.get_plugin_info_from_api(slug)
        if info is not None:
            return info

        try:
            html = self.fetcher.fetch_html(PLUGIN_URL.format(slug=slug))
        except FetchError as e:
            raise NotFoundError(f"Could not fetch information for plugin: {slug} ({e})") from e

        info = extract_plugin_info(html, slug)
        if info is None:
            raise NotFoundError(f"Could not fetch information for plugin: {slug} (no name on page)")
        return info

    # ---- Search ----

    def _query_plugins(self, request: dict, limit: int) -> list[str]:
        params = {"action": "query_plugins", "request[per_page]": limit, "request[fields][]": "slug"}
        params.update({f"request[{k}]": v for k, v in request.items()})
        data = self.fetcher.fetch_json(API_URL, params=params)
        plugins = data.get("plugins") if isinstance(data, dict) else None
        if isinstance(plugins, dict):
            plugins = list(plugins.values())
        slugs = [p.get("slug") for p in plugins or [] if isinstance(p, dict) and p.get("slug")]
        return slugs[:limit]

    def _search_with_fallback(self, strategy: str, term: str, request: dict,
                              page_url: str, limit: int) -> list[str]:
        try:
            slugs = self._query_plugins(request, limit)
            if slugs:
                return slugs
        except FetchError as e:
            logger.info("API %s search for %r failed (%s), trying the HTML page", strategy, term, e)

        try:
            return extract_plugin_slugs(self.fetcher.fetch_html(page_url))[:limit]
        except FetchError as e:
            logger.warning("Failed to search by %s %r: %s", strategy, term, e)
            return []

    def search_by_tag(self, tag: str, limit: int = 20) -> list[str]:
        """Slugs of plugins carrying this tag, most popular first. Empty on failure."""
        url = TAG_PAGE_URL.format(tag=quote(tag.lower().replace(" ", "-")))
        return self._search_with_fallback("tag", tag, {"tag": tag}, url, limit)

    def search_by_category(self, category: str, limit: int = 20) -> list[str]:
        """Slugs of plugins matching a category name. Empty on failure."""
        url = SEARCH_PAGE_URL.format(term=quote(category))
        return self._search_with_fallback("category", category, {"search": category}, url, limit)
