"""X API v2 client for the bookmarks endpoint.

    GET https://api.x.com/2/users/{id}/bookmarks

Authentication is a user-context OAuth 2.0 bearer token (see auth.py).
Every call passes through a local RateLimiter first. When X answers 429 the
client sleeps until the time in the x-rate-limit-reset header and retries the
same page, a bounded number of times.
"""

import logging
import time

import httpx

from .errors import RateLimited, RemoteError
from .logging_config import truncate_for_log
from .models import BookmarksPage
from .parser import parse_bookmarks_response
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.x.com/2"
MAX_PAGE_SIZE = 100
DEFAULT_MAX_RETRIES = 3
RESET_MARGIN_SECONDS = 1

BOOKMARKS_TWEET_FIELDS = ",".join(
    [
        "created_at",
        "public_metrics",
        "author_id",
        "entities",
        "attachments",
        "text",
        "note_tweet",
        "referenced_tweets",
        "conversation_id",
    ]
)
BOOKMARKS_EXPANSIONS = ",".join(
    ["author_id", "attachments.media_keys", "referenced_tweets.id"]
)
BOOKMARKS_USER_FIELDS = "name,username"
BOOKMARKS_MEDIA_FIELDS = "url,type,alt_text,preview_image_url"


def bookmarks_url(user_id: str) -> str:
    return f"{API_BASE_URL}/users/{user_id}/bookmarks"


class XClient:
    """Paginated access to a user's bookmarks."""

    def __init__(
        self,
        rate_limiter: RateLimiter | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        timeout: float = 30.0,
    ):
        self.rate_limiter = rate_limiter or RateLimiter()
        self.max_retries = max_retries
        self._client = httpx.Client(timeout=timeout, follow_redirects=True)

    def fetch_bookmarks_page(
        self,
        user_id: str,
        access_token: str,
        pagination_token: str | None = None,
        max_results: int = MAX_PAGE_SIZE,
    ) -> BookmarksPage:
        """Fetch a single page of bookmarks."""
        params = {
            "max_results": str(max(1, min(max_results, MAX_PAGE_SIZE))),
            "tweet.fields": BOOKMARKS_TWEET_FIELDS,
            "expansions": BOOKMARKS_EXPANSIONS,
            "user.fields": BOOKMARKS_USER_FIELDS,
            "media.fields": BOOKMARKS_MEDIA_FIELDS,
        }
        if pagination_token:
            params["pagination_token"] = pagination_token

        headers = {"Authorization": f"Bearer {access_token}"}
        url = bookmarks_url(user_id)

        for attempt in range(self.max_retries + 1):
            self.rate_limiter.wait_if_needed()
            try:
                response = self._client.get(url, params=params, headers=headers)
            except httpx.HTTPError as e:
                raise RemoteError(None, str(e)) from e
            finally:
                # A failed call still used up a quota slot
                self.rate_limiter.record_call()

            if response.status_code == 429:
                wait_seconds = self._reset_wait_seconds(response)
                if wait_seconds is None:
                    raise RateLimited(
                        "Rate limited by X API. Please try again later."
                    )
                if attempt == self.max_retries:
                    break
                logger.warning(
                    "Rate limited by X API. Waiting %ds before retrying (attempt %d/%d)...",
                    wait_seconds,
                    attempt + 1,
                    self.max_retries,
                )
                time.sleep(wait_seconds)
                continue

            if response.status_code != 200:
                raise RemoteError(response.status_code, truncate_for_log(response.text))

            try:
                return parse_bookmarks_response(response.json())
            except (ValueError, TypeError, AttributeError, KeyError) as e:
                logger.debug("Unparseable bookmarks response: %s", truncate_for_log(response.text))
                raise RemoteError(response.status_code, "invalid response body") from e

        raise RateLimited(
            f"Still rate limited by X API after {self.max_retries} retries. "
            "Please try again later."
        )

    @staticmethod
    def _reset_wait_seconds(response: httpx.Response) -> int | None:
        """Seconds until the rate limit window resets, or None if unknown/past."""
        reset_header = response.headers.get("x-rate-limit-reset")
        if not reset_header:
            return None
        try:
            reset_at = int(reset_header)
        except ValueError:
            return None
        wait_seconds = reset_at - int(time.time()) + RESET_MARGIN_SECONDS
        if wait_seconds <= 0:
            return None
        return wait_seconds

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
