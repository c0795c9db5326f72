"""Configuration loading and saving.

Config file location: ~/.config/x-bookmarks-sync/config.toml

Schema:
    [auth]
    client_id = "..."
    client_secret = "..."
    redirect_uri = "http://127.0.0.1:8765/callback"

    [vault]
    path = "."                     # root of the notes vault
    bookmarks_folder = "Bookmarks" # folder inside the vault for new notes

    [state]
    state_dir = ".state"

    [sync]
    max_per_sync = 0   # 0 = unlimited
    full_sync = false  # walk every page instead of stopping at known bookmarks
    flush_every = 1    # persist the sync index after this many new notes

    [content]
    default_tags = ["clippings"]
    detect_url_types = true
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import tomli_w

from .auth import DEFAULT_REDIRECT_URI

CONFIG_DIR = Path.home() / ".config" / "x-bookmarks-sync"
CONFIG_FILE = CONFIG_DIR / "config.toml"


@dataclass
class AuthConfig:
    client_id: str
    client_secret: str
    redirect_uri: str = DEFAULT_REDIRECT_URI


@dataclass
class AppConfig:
    auth: AuthConfig
    vault_path: Path = Path(".")
    bookmarks_folder: str = "Bookmarks"
    state_dir: Path = Path(".state")
    max_per_sync: int = 0
    full_sync: bool = False
    flush_every: int = 1
    default_tags: list[str] = field(default_factory=lambda: ["clippings"])
    detect_url_types: bool = True


def parse_tags(value) -> list[str]:
    """Accept a TOML list or a comma-separated string."""
    if isinstance(value, str):
        value = value.split(",")
    tags = [str(t).strip() for t in value or []]
    return [t for t in tags if t]


def load_config(config_path: Path = CONFIG_FILE) -> AppConfig:
    """Load and validate config from TOML file."""
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    auth_data = data.get("auth", {})
    client_id = auth_data.get("client_id", "")
    client_secret = auth_data.get("client_secret", "")

    if not client_id or not client_secret:
        raise ValueError("Config missing required auth.client_id and auth.client_secret")

    vault_data = data.get("vault", {})
    state_data = data.get("state", {})
    sync_data = data.get("sync", {})
    content_data = data.get("content", {})

    max_per_sync = int(sync_data.get("max_per_sync", 0))
    flush_every = int(sync_data.get("flush_every", 1))
    if max_per_sync < 0:
        raise ValueError("sync.max_per_sync must be 0 (unlimited) or positive")
    if flush_every < 1:
        raise ValueError("sync.flush_every must be at least 1")

    return AppConfig(
        auth=AuthConfig(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=auth_data.get("redirect_uri", DEFAULT_REDIRECT_URI),
        ),
        vault_path=Path(vault_data.get("path", ".")),
        bookmarks_folder=vault_data.get("bookmarks_folder", "Bookmarks").strip("/"),
        state_dir=Path(state_data.get("state_dir", ".state")),
        max_per_sync=max_per_sync,
        full_sync=bool(sync_data.get("full_sync", False)),
        flush_every=flush_every,
        default_tags=parse_tags(content_data.get("default_tags", ["clippings"])),
        detect_url_types=bool(content_data.get("detect_url_types", True)),
    )


def save_config(config: AppConfig, config_path: Path = CONFIG_FILE) -> None:
    """Write config to TOML file with restricted permissions."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "auth": {
            "client_id": config.auth.client_id,
            "client_secret": config.auth.client_secret,
            "redirect_uri": config.auth.redirect_uri,
        },
        "vault": {
            "path": str(config.vault_path),
            "bookmarks_folder": config.bookmarks_folder,
        },
        "state": {
            "state_dir": str(config.state_dir),
        },
        "sync": {
            "max_per_sync": config.max_per_sync,
            "full_sync": config.full_sync,
            "flush_every": config.flush_every,
        },
        "content": {
            "default_tags": list(config.default_tags),
            "detect_url_types": config.detect_url_types,
        },
    }

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)

    # Restrict permissions, the file contains the client secret
    os.chmod(config_path, 0o600)


def config_exists(config_path: Path = CONFIG_FILE) -> bool:
    """Check if config file exists."""
    return config_path.exists()
