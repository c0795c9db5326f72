"""Shared test fixtures."""

import json
import time
from pathlib import Path

import pytest

from x_bookmarks_sync.config import AppConfig, AuthConfig
from x_bookmarks_sync.models import Credential, Entities, Tweet, UrlEntity
from x_bookmarks_sync.parser import parse_bookmarks_response
from x_bookmarks_sync.state import StateManager
from x_bookmarks_sync.storage import VaultStorage

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def bookmarks_response() -> dict:
    """Load the sample X API v2 bookmarks response."""
    with open(FIXTURES_DIR / "bookmarks_response.json") as f:
        return json.load(f)


@pytest.fixture
def bookmarks_page(bookmarks_response):
    return parse_bookmarks_response(bookmarks_response)


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    return AppConfig(
        auth=AuthConfig(client_id="client123", client_secret="secret456"),
        vault_path=tmp_path / "vault",
        state_dir=tmp_path / ".state",
    )


@pytest.fixture
def state(app_config) -> StateManager:
    return StateManager(app_config.state_dir)


@pytest.fixture
def connected_state(state) -> StateManager:
    """State holding a token that is valid for another hour."""
    state.credential = Credential(
        access_token="access-abc",
        refresh_token="refresh-xyz",
        expires_at=time.time() + 3600,
        client_id="client123",
        client_secret="secret456",
    )
    state.user_id = "42"
    state.username = "me"
    state.save()
    return state


@pytest.fixture
def storage(app_config) -> VaultStorage:
    return VaultStorage(app_config.vault_path)


@pytest.fixture
def make_tweet():
    """Build a Tweet with sensible defaults."""

    def _make(
        tweet_id: str = "1234567890123",
        text: str = "A plain bookmarked post about nothing much",
        author_id: str = "111",
        urls: list[UrlEntity] | None = None,
        **kwargs,
    ) -> Tweet:
        return Tweet(
            id=tweet_id,
            text=text,
            author_id=author_id,
            created_at=kwargs.pop("created_at", "2025-02-10T18:30:00.000Z"),
            entities=kwargs.pop("entities", Entities(urls=urls or [])),
            **kwargs,
        )

    return _make
