"""Tests for the X API client."""

import time
from unittest.mock import patch

import httpx
import pytest
import respx

from x_bookmarks_sync.client import XClient, bookmarks_url
from x_bookmarks_sync.errors import RateLimited, RemoteError
from x_bookmarks_sync.rate_limiter import RateLimiter

BOOKMARKS_URL = bookmarks_url("42")


@pytest.fixture
def empty_response() -> dict:
    return {"meta": {"result_count": 0}}


class TestXClient:
    @respx.mock
    def test_fetch_single_page(self, bookmarks_response):
        route = respx.get(BOOKMARKS_URL).mock(
            return_value=httpx.Response(200, json=bookmarks_response)
        )

        with XClient() as client:
            page = client.fetch_bookmarks_page("42", "token")

        assert len(page.items) == 3
        assert page.next_token == "next_page_token_xyz"
        assert "111" in page.includes.users

        request = route.calls.last.request
        assert request.headers["authorization"] == "Bearer token"
        assert request.url.params["max_results"] == "100"
        assert "pagination_token" not in request.url.params
        assert "note_tweet" in request.url.params["tweet.fields"]
        assert "referenced_tweets.id" in request.url.params["expansions"]

    @respx.mock
    def test_pagination_token_and_page_size(self, empty_response):
        route = respx.get(BOOKMARKS_URL).mock(
            return_value=httpx.Response(200, json=empty_response)
        )

        with XClient() as client:
            page = client.fetch_bookmarks_page("42", "token", "abc", max_results=500)

        assert page.items == []
        assert page.next_token is None
        params = route.calls.last.request.url.params
        assert params["pagination_token"] == "abc"
        assert params["max_results"] == "100"

    @respx.mock
    @patch("x_bookmarks_sync.client.time.sleep")
    def test_rate_limit_waits_and_retries(self, mock_sleep, bookmarks_response):
        reset = str(int(time.time()) + 5)
        route = respx.get(BOOKMARKS_URL)
        route.side_effect = [
            httpx.Response(429, headers={"x-rate-limit-reset": reset}),
            httpx.Response(200, json=bookmarks_response),
        ]

        with XClient() as client:
            page = client.fetch_bookmarks_page("42", "token", "cursor-1")

        assert len(page.items) == 3
        assert route.call_count == 2
        # Same page requested again
        assert route.calls[1].request.url.params["pagination_token"] == "cursor-1"
        mock_sleep.assert_called_once()
        waited = mock_sleep.call_args[0][0]
        assert 5 <= waited <= 7

    @respx.mock
    def test_rate_limit_without_reset_raises(self):
        route = respx.get(BOOKMARKS_URL).mock(
            return_value=httpx.Response(429, json={"title": "Too Many Requests"})
        )

        with XClient() as client:
            with pytest.raises(RateLimited):
                client.fetch_bookmarks_page("42", "token")

        assert route.call_count == 1

    @respx.mock
    def test_rate_limit_with_past_reset_raises(self):
        past = str(int(time.time()) - 60)
        respx.get(BOOKMARKS_URL).mock(
            return_value=httpx.Response(429, headers={"x-rate-limit-reset": past})
        )

        with XClient() as client:
            with pytest.raises(RateLimited):
                client.fetch_bookmarks_page("42", "token")

    @respx.mock
    @patch("x_bookmarks_sync.client.time.sleep")
    def test_rate_limit_retries_are_bounded(self, mock_sleep):
        reset = str(int(time.time()) + 5)
        route = respx.get(BOOKMARKS_URL).mock(
            return_value=httpx.Response(429, headers={"x-rate-limit-reset": reset})
        )

        with XClient(max_retries=2) as client:
            with pytest.raises(RateLimited, match="after 2 retries"):
                client.fetch_bookmarks_page("42", "token")

        assert route.call_count == 3
        assert mock_sleep.call_count == 2

    @respx.mock
    def test_server_error_raises_remote_error(self):
        respx.get(BOOKMARKS_URL).mock(
            return_value=httpx.Response(503, text="Service Unavailable")
        )

        with XClient() as client:
            with pytest.raises(RemoteError) as exc_info:
                client.fetch_bookmarks_page("42", "token")

        assert exc_info.value.status == 503
        assert "Service Unavailable" in exc_info.value.body

    @respx.mock
    def test_auth_failure_raises_remote_error(self):
        respx.get(BOOKMARKS_URL).mock(
            return_value=httpx.Response(401, json={"title": "Unauthorized"})
        )

        with XClient() as client:
            with pytest.raises(RemoteError, match="401"):
                client.fetch_bookmarks_page("42", "token")

    @respx.mock
    def test_failed_call_still_counts_against_quota(self):
        respx.get(BOOKMARKS_URL).mock(return_value=httpx.Response(500))
        limiter = RateLimiter()

        with XClient(rate_limiter=limiter) as client:
            with pytest.raises(RemoteError):
                client.fetch_bookmarks_page("42", "token")

        assert limiter.calls_in_window == 1

    @respx.mock
    def test_transport_error_raises_remote_error(self):
        respx.get(BOOKMARKS_URL).mock(side_effect=httpx.ConnectError("boom"))
        limiter = RateLimiter()

        with XClient(rate_limiter=limiter) as client:
            with pytest.raises(RemoteError) as exc_info:
                client.fetch_bookmarks_page("42", "token")

        assert exc_info.value.status is None
        assert limiter.calls_in_window == 1

    @respx.mock
    @patch("x_bookmarks_sync.rate_limiter.time.sleep")
    def test_local_rate_limiter_is_consulted(self, mock_sleep, empty_response):
        respx.get(BOOKMARKS_URL).mock(
            return_value=httpx.Response(200, json=empty_response)
        )
        limiter = RateLimiter(max_requests=1, window_ms=60_000)

        with XClient(rate_limiter=limiter) as client:
            client.fetch_bookmarks_page("42", "token")
            mock_sleep.assert_not_called()
            client.fetch_bookmarks_page("42", "token")

        mock_sleep.assert_called_once()
        assert 59 < mock_sleep.call_args[0][0] <= 60.1

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="<html>gateway</html>"),
            httpx.Response(200, json=[{"id": "1"}]),
            httpx.Response(200, json={"data": [], "meta": {"result_count": "many"}}),
        ],
    )
    @respx.mock
    def test_unparseable_body_raises_remote_error(self, response):
        respx.get(BOOKMARKS_URL).mock(return_value=response)

        with XClient() as client:
            with pytest.raises(RemoteError, match="invalid response body") as exc_info:
                client.fetch_bookmarks_page("42", "token")

        assert exc_info.value.status == 200
