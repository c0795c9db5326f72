"""Tests for the state manager."""

import json
import stat

import pytest

from x_bookmarks_sync.models import Credential
from x_bookmarks_sync.state import STATE_FILENAME, StateManager


@pytest.fixture
def state_dir(tmp_path):
    return tmp_path / ".state"


@pytest.fixture
def state(state_dir):
    return StateManager(state_dir)


def _credential() -> Credential:
    return Credential(
        access_token="access",
        refresh_token="refresh",
        expires_at=1739212200.0,
        client_id="client123",
        client_secret="secret456",
    )


class TestStateManager:
    def test_starts_empty(self, state):
        assert state.count == 0
        assert not state.is_connected
        assert state.last_sync is None

    def test_save_and_reload(self, state, state_dir):
        state.credential = _credential()
        state.user_id = "42"
        state.username = "me"
        state.synced_ids = {"101": "One.md", "102": "Two.md"}
        state.last_sync = "2025-02-11T10:00:00+00:00"
        state.save()

        reloaded = StateManager(state_dir)
        assert reloaded.is_connected
        assert reloaded.credential == _credential()
        assert reloaded.user_id == "42"
        assert reloaded.username == "me"
        assert reloaded.count == 2
        assert reloaded.synced_ids["102"] == "Two.md"
        assert reloaded.last_sync == "2025-02-11T10:00:00+00:00"

    def test_file_format(self, state, state_dir):
        state.synced_ids = {"101": "One.md"}
        state.save()

        data = json.loads((state_dir / STATE_FILENAME).read_text())
        assert data["synced_ids"] == {"101": "One.md"}
        assert data["credential"] is None

    def test_file_is_private(self, state, state_dir):
        state.credential = _credential()
        state.save()

        mode = (state_dir / STATE_FILENAME).stat().st_mode
        assert stat.S_IMODE(mode) == 0o600
        assert not list(state_dir.glob("*.tmp"))

    def test_clear_credentials_keeps_index(self, state, state_dir):
        state.credential = _credential()
        state.user_id = "42"
        state.synced_ids = {"101": "One.md"}
        state.clear_credentials()
        state.save()

        reloaded = StateManager(state_dir)
        assert not reloaded.is_connected
        assert reloaded.user_id == ""
        assert reloaded.count == 1
