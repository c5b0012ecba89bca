"""Tests for the HTTP page fetcher, with requests mocked by `responses`."""

import pytest
import requests
import responses

from wp_agent.errors import FetchError
from wp_agent.fetcher import API_URL, PageFetcher, review_page_url


def test_review_page_url():
    assert review_page_url("akismet", 1) == "https://wordpress.org/support/plugin/akismet/reviews/"
    assert review_page_url("akismet", 3) == "https://wordpress.org/support/plugin/akismet/reviews/page/3/"


@responses.activate
def test_fetch_page_sends_browser_headers():
    url = review_page_url("akismet", 2)
    responses.add(responses.GET, url, body="<html>page two</html>", status=200)

    html = PageFetcher(user_agent="TestAgent/1.0").fetch_page("akismet", 2)

    assert html == "<html>page two</html>"
    sent = responses.calls[0].request
    assert sent.url == url
    assert sent.headers["User-Agent"] == "TestAgent/1.0"
    assert "text/html" in sent.headers["Accept"]


@responses.activate
def test_non_2xx_status_raises_fetch_error():
    url = review_page_url("gone", 1)
    responses.add(responses.GET, url, status=404)

    with pytest.raises(FetchError) as exc_info:
        PageFetcher().fetch_page("gone", 1)

    assert exc_info.value.status == 404
    assert exc_info.value.url == url
    assert str(exc_info.value).startswith("HTTP 404")


@responses.activate
def test_transport_failure_raises_fetch_error():
    url = review_page_url("slow", 1)
    responses.add(responses.GET, url, body=requests.ConnectionError("connection reset"))

    with pytest.raises(FetchError) as exc_info:
        PageFetcher().fetch_page("slow", 1)

    assert exc_info.value.status is None
    assert "connection reset" in str(exc_info.value)


@responses.activate
def test_fetch_json():
    responses.add(responses.GET, API_URL, json={"name": "Akismet"})
    data = PageFetcher().fetch_json(API_URL, params={"action": "plugin_information"})

    assert data == {"name": "Akismet"}
    assert responses.calls[0].request.headers["Accept"] == "application/json"


@responses.activate
def test_fetch_json_rejects_invalid_body():
    responses.add(responses.GET, API_URL, body="<html>maintenance</html>")
    with pytest.raises(FetchError, match="Invalid JSON"):
        PageFetcher().fetch_json(API_URL)
