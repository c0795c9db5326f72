"""Persist OAuth credentials and the sync index between runs.

State is stored in .state/sync_state.json as a JSON object:
    {
        "credential": {
            "access_token": "...",
            "refresh_token": "...",
            "expires_at": 1739212200.0,
            "client_id": "...",
            "client_secret": "..."
        },
        "user_id": "123",
        "username": "someone",
        "synced_ids": {"1890000000000000001": "Some title.md", ...},
        "last_sync": "2025-01-15T14:30:00+00:00"
    }

Every save rewrites the whole file through a temporary file, so a crash
never leaves a half-written index behind.
"""

import json
import logging
import os
from dataclasses import asdict
from pathlib import Path

from .models import Credential

logger = logging.getLogger(__name__)

STATE_FILENAME = "sync_state.json"


class StateManager:
    def __init__(self, state_dir: Path = Path(".state")):
        self.state_dir = state_dir
        self.state_file = state_dir / STATE_FILENAME
        self.credential: Credential | None = None
        self.user_id: str = ""
        self.username: str = ""
        self.synced_ids: dict[str, str] = {}
        self.last_sync: str | None = None
        self._load()

    def _load(self) -> None:
        """Load state from disk."""
        if not self.state_file.exists():
            logger.info("No existing state found. Starting fresh.")
            return

        data = json.loads(self.state_file.read_text(encoding="utf-8"))
        cred = data.get("credential")
        if cred:
            self.credential = Credential(
                access_token=cred.get("access_token", ""),
                refresh_token=cred.get("refresh_token", ""),
                expires_at=float(cred.get("expires_at", 0)),
                client_id=cred.get("client_id", ""),
                client_secret=cred.get("client_secret", ""),
            )
        self.user_id = data.get("user_id", "")
        self.username = data.get("username", "")
        self.synced_ids = dict(data.get("synced_ids", {}))
        self.last_sync = data.get("last_sync")
        logger.info(
            "Loaded %d synced bookmark IDs from state", len(self.synced_ids)
        )

    def save(self) -> None:
        """Persist state to disk."""
        self.state_dir.mkdir(parents=True, exist_ok=True)
        data = {
            "credential": asdict(self.credential) if self.credential else None,
            "user_id": self.user_id,
            "username": self.username,
            "synced_ids": self.synced_ids,
            "last_sync": self.last_sync,
        }
        tmp_file = self.state_file.with_suffix(".json.tmp")
        tmp_file.write_text(json.dumps(data, indent=2), encoding="utf-8")
        # Restrict permissions before the file becomes visible, it holds tokens
        os.chmod(tmp_file, 0o600)
        os.replace(tmp_file, self.state_file)

    @property
    def is_connected(self) -> bool:
        return bool(self.credential and self.credential.access_token)

    @property
    def count(self) -> int:
        return len(self.synced_ids)

    def clear_credentials(self) -> None:
        """Forget the connected account (tokens and user)."""
        self.credential = None
        self.user_id = ""
        self.username = ""
