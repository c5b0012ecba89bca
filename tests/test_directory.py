"""Tests for plugin metadata lookups and directory searches."""

import pytest
import responses
from responses import matchers

from wp_agent.directory import SEARCH_PAGE_URL, TAG_PAGE_URL, PluginDirectory
from wp_agent.errors import NotFoundError
from wp_agent.fetcher import API_URL, PLUGIN_URL

API_PLUGIN = {
    "name": "Contact Form 7",
    "slug": "contact-form-7",
    "short_description": "Just another contact form plugin.",
    "tags": {"contact-form": "contact form", "email": "email"},
    "active_installs": 5000000,
    "rating": 80,
    "num_ratings": 2000,
}

PLUGIN_HTML = """
<h1 class="plugin-title">Contact Form 7</h1>
<ul><li>Active installations: <strong>5+ million</strong></li></ul>
<a href="https://wordpress.org/plugins/tags/contact-form/">contact-form</a>
"""

SEARCH_HTML = """
<article class="plugin-card"><h3><a href="https://wordpress.org/plugins/wpforms-lite/">WPForms</a></h3></article>
<article class="plugin-card"><h3><a href="https://wordpress.org/plugins/ninja-forms/">Ninja Forms</a></h3></article>
"""


@responses.activate
def test_get_plugin_info_uses_api():
    responses.add(
        responses.GET, API_URL, json=API_PLUGIN,
        match=[matchers.query_param_matcher(
            {"action": "plugin_information", "request[slug]": "contact-form-7"})],
    )
    info = PluginDirectory().get_plugin_info("contact-form-7")

    assert info.name == "Contact Form 7"
    assert info.source == "api"
    assert info.rating == 4.0
    assert info.install_count == 5_000_000
    assert len(responses.calls) == 1


@responses.activate
def test_get_plugin_info_falls_back_to_html():
    responses.add(responses.GET, API_URL, status=503)
    responses.add(responses.GET, PLUGIN_URL.format(slug="contact-form-7"), body=PLUGIN_HTML)

    info = PluginDirectory().get_plugin_info("contact-form-7")

    assert info.name == "Contact Form 7"
    assert info.source == "html"
    assert info.tags == ["contact-form"]


@responses.activate
def test_api_error_payload_falls_back_to_html():
    responses.add(responses.GET, API_URL, json={"error": "Plugin not found."})
    responses.add(responses.GET, PLUGIN_URL.format(slug="contact-form-7"), body=PLUGIN_HTML)

    assert PluginDirectory().get_plugin_info("contact-form-7").source == "html"


@responses.activate
def test_get_plugin_info_not_found():
    responses.add(responses.GET, API_URL, json={"error": "Plugin not found."})
    responses.add(responses.GET, PLUGIN_URL.format(slug="nope"), status=404)

    with pytest.raises(NotFoundError, match="nope"):
        PluginDirectory().get_plugin_info("nope")


@responses.activate
def test_get_plugin_info_page_without_name():
    responses.add(responses.GET, API_URL, status=500)
    responses.add(responses.GET, PLUGIN_URL.format(slug="empty"), body="<html><body></body></html>")

    with pytest.raises(NotFoundError):
        PluginDirectory().get_plugin_info("empty")


@responses.activate
def test_search_by_tag_uses_query_plugins():
    responses.add(
        responses.GET, API_URL,
        json={"info": {"results": 3}, "plugins": [{"slug": "a"}, {"slug": "b"}, {"slug": "c"}]},
        match=[matchers.query_param_matcher({
            "action": "query_plugins",
            "request[per_page]": "2",
            "request[fields][]": "slug",
            "request[tag]": "contact-form",
        })],
    )
    assert PluginDirectory().search_by_tag("contact-form", limit=2) == ["a", "b"]


@responses.activate
def test_search_by_tag_falls_back_to_tag_page():
    responses.add(responses.GET, API_URL, json={"plugins": []})
    responses.add(responses.GET, TAG_PAGE_URL.format(tag="contact-form"), body=SEARCH_HTML)

    assert PluginDirectory().search_by_tag("Contact Form") == ["wpforms-lite", "ninja-forms"]


@responses.activate
def test_search_by_category_falls_back_to_search_page():
    responses.add(responses.GET, API_URL, status=502)
    responses.add(responses.GET, SEARCH_PAGE_URL.format(term="Forms"), body=SEARCH_HTML)

    assert PluginDirectory().search_by_category("Forms", limit=1) == ["wpforms-lite"]


@responses.activate
def test_search_failure_returns_empty_list():
    responses.add(responses.GET, API_URL, status=500)
    responses.add(responses.GET, SEARCH_PAGE_URL.format(term="Forms"), status=500)

    assert PluginDirectory().search_by_category("Forms") == []
