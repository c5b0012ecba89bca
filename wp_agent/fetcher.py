"""
Page fetcher: the only module that talks to the network.

One GET per call, no retries. Anything other than a 2xx response, and any
transport failure (DNS, timeout, connection reset), comes back as a FetchError
so callers only have to handle one exception type.
"""

import logging
from typing import Optional

import requests

from wp_agent import config
from wp_agent.errors import FetchError

logger = logging.getLogger(__name__)

REVIEWS_URL = "https://wordpress.org/support/plugin/{slug}/reviews/"
PLUGIN_URL = "https://wordpress.org/plugins/{slug}/"
API_URL = "https://api.wordpress.org/plugins/info/1.2/"

HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def review_page_url(plugin_slug: str, page_index: int) -> str:
    """Page 1 is the bare listing URL, later pages append page/N/."""
    base = REVIEWS_URL.format(slug=plugin_slug)
    if page_index <= 1:
        return base
    return f"{base}page/{page_index}/"


class PageFetcher:
    """Thin wrapper around a requests.Session with our headers and timeout."""

    def __init__(self, session: Optional[requests.Session] = None,
                 timeout: float = None, user_agent: str = None):
        self.session = session or requests.Session()
        self.timeout = timeout if timeout is not None else config.REQUEST_TIMEOUT
        self.session.headers.update({
            "User-Agent": user_agent or config.USER_AGENT,
            "Accept": HTML_ACCEPT,
        })

    def _get(self, url: str, params: dict = None, headers: dict = None) -> requests.Response:
        try:
            response = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(f"Request to {url} failed: {e}", url=url) from e

        if not response.ok:
            raise FetchError(response.reason or "request failed", status=response.status_code, url=url)
        return response

    def fetch_html(self, url: str) -> str:
        logger.debug("GET %s", url)
        return self._get(url).text

    def fetch_page(self, plugin_slug: str, page_index: int) -> str:
        """Fetch one page of a plugin's review listing."""
        return self.fetch_html(review_page_url(plugin_slug, page_index))

    def fetch_json(self, url: str, params: dict = None):
        """GET a JSON endpoint. Invalid JSON is treated like a failed request."""
        logger.debug("GET %s %s", url, params or "")
        response = self._get(url, params=params, headers={"Accept": "application/json"})
        try:
            return response.json()
        except ValueError as e:
            raise FetchError(f"Invalid JSON from {url}", status=response.status_code, url=url) from e
