"""CLI interface for x-bookmarks-sync.

Commands:
    setup          - Configure the X app credentials and the notes vault
    connect        - Authorize access to your X account (OAuth 2.0 PKCE)
    disconnect     - Forget the stored X tokens
    sync           - Mirror new bookmarks into notes
    rebuild-index  - Rebuild the sync index from existing notes
    status         - Show current sync status
"""

import signal
import sys
import threading
import time
from pathlib import Path

import click

from .config import (
    CONFIG_FILE,
    AppConfig,
    AuthConfig,
    config_exists,
    load_config,
    parse_tags,
    save_config,
)
from .logging_config import setup_logging


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--config", type=click.Path(), default=None, help="Config file path")
@click.pass_context
def main(ctx, verbose, config):
    """X Bookmarks Sync: mirror your X bookmarks into markdown notes."""
    setup_logging(debug=verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else CONFIG_FILE


def _require_config(config_path: Path) -> AppConfig:
    if not config_exists(config_path):
        click.echo(
            "Error: No config found. Run 'x-bookmarks-sync setup' first.",
            err=True,
        )
        sys.exit(1)
    try:
        return load_config(config_path)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.pass_context
def setup(ctx):
    """Configure X app credentials and where notes are written."""
    config_path = ctx.obj["config_path"]

    click.echo("X Bookmarks Sync: Setup")
    click.echo("=" * 40)
    click.echo()
    click.echo("You need an X developer app with OAuth 2.0 enabled.")
    click.echo("  1. Open https://developer.x.com/en/portal/dashboard")
    click.echo("  2. Create an app and enable OAuth 2.0 (type: Native App)")
    click.echo("  3. Add the redirect URI shown below to the app")
    click.echo("  4. Copy the Client ID and Client Secret")
    click.echo()

    existing = None
    if config_exists(config_path):
        try:
            existing = load_config(config_path)
        except ValueError:
            existing = None

    client_id = click.prompt("client_id")
    client_secret = click.prompt("client_secret", hide_input=True)

    defaults = existing or AppConfig(auth=AuthConfig(client_id="", client_secret=""))
    redirect_uri = click.prompt("redirect_uri", default=defaults.auth.redirect_uri)
    vault_path = click.prompt("Vault path", default=str(defaults.vault_path))
    folder = click.prompt("Bookmarks folder", default=defaults.bookmarks_folder)
    tags = click.prompt("Default tags (comma-separated)", default=",".join(defaults.default_tags))

    defaults.auth = AuthConfig(
        client_id=client_id, client_secret=client_secret, redirect_uri=redirect_uri
    )
    defaults.vault_path = Path(vault_path)
    defaults.bookmarks_folder = folder.strip("/")
    defaults.default_tags = parse_tags(tags)

    save_config(defaults, config_path)
    click.echo(f"\nConfig saved to {config_path}")
    click.echo("Run 'x-bookmarks-sync connect' to authorize your X account.")


@main.command()
@click.option("--no-browser", is_flag=True, help="Only print the authorization URL")
@click.pass_context
def connect(ctx, no_browser):
    """Authorize access to your X bookmarks."""
    from .auth import (
        OAuthClient,
        build_authorization_url,
        credential_from_token,
        generate_pkce,
        parse_callback_url,
    )
    from .errors import AuthError
    from .state import StateManager

    config = _require_config(ctx.obj["config_path"])
    pkce = generate_pkce()
    auth_url = build_authorization_url(
        config.auth.client_id,
        pkce.code_challenge,
        pkce.state,
        config.auth.redirect_uri,
    )

    click.echo("Open this URL in your browser and approve access:")
    click.echo()
    click.echo(auth_url)
    click.echo()
    if not no_browser:
        click.launch(auth_url)

    callback_url = click.prompt("Paste the full URL you were redirected to")

    try:
        code, state_param = parse_callback_url(callback_url)
        if state_param != pkce.state:
            raise AuthError("OAuth state mismatch. Please try connecting again.")

        with OAuthClient(
            config.auth.client_id,
            config.auth.client_secret,
            config.auth.redirect_uri,
        ) as oauth:
            token = oauth.exchange_code(code, pkce.code_verifier)
            user = oauth.fetch_current_user(token.access_token)
    except AuthError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    state = StateManager(config.state_dir)
    state.credential = credential_from_token(
        token, config.auth.client_id, config.auth.client_secret, time.time()
    )
    state.user_id = user.id
    state.username = user.username
    state.save()
    click.echo(f"Connected to X as @{user.username}.")


@main.command()
@click.pass_context
def disconnect(ctx):
    """Remove the stored X tokens."""
    from .state import StateManager

    config = _require_config(ctx.obj["config_path"])
    state = StateManager(config.state_dir)
    state.clear_credentials()
    state.save()
    click.echo("Disconnected from X.")


@main.command()
@click.option(
    "--full/--incremental",
    default=None,
    help="Walk every page instead of stopping at already-synced bookmarks",
)
@click.option(
    "-n", "--max", "max_count", type=int, default=None,
    help="Maximum bookmarks to fetch this run (0 = unlimited)",
)
@click.pass_context
def sync(ctx, full, max_count):
    """Mirror new bookmarks into notes."""
    # Lazy imports so --help stays fast
    from .auth import OAuthClient, TokenManager
    from .client import XClient
    from .state import StateManager
    from .storage import VaultStorage
    from .sync_engine import SyncEngine

    config = _require_config(ctx.obj["config_path"])
    if max_count is not None:
        if max_count < 0:
            click.echo("Error: --max must be 0 or positive.", err=True)
            sys.exit(1)
        config.max_per_sync = max_count

    state = StateManager(config.state_dir)
    if not state.is_connected:
        click.echo(
            "Error: Not connected to X. Run 'x-bookmarks-sync connect' first.",
            err=True,
        )
        sys.exit(1)

    cancel = threading.Event()

    def _request_cancel(signum, frame):
        if cancel.is_set():
            raise KeyboardInterrupt
        click.echo(
            "\nCancelling after the current bookmark... (Ctrl-C again to abort)",
            err=True,
        )
        cancel.set()

    previous_handler = signal.signal(signal.SIGINT, _request_cancel)
    try:
        with XClient() as client, OAuthClient(
            config.auth.client_id,
            config.auth.client_secret,
            config.auth.redirect_uri,
        ) as oauth:
            engine = SyncEngine(
                config,
                state,
                VaultStorage(config.vault_path),
                client,
                TokenManager(state, oauth),
                on_status=click.echo,
            )
            result = engine.sync(full_sync=full, cancel=cancel)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    click.echo()
    click.echo(f"Fetched {result.fetched} bookmark(s).")
    click.echo(
        f"Created {result.created} note(s), skipped {result.skipped} duplicate(s)."
    )
    for error in result.errors:
        if error != result.fatal_error:
            click.echo(f"  Failed: {error}", err=True)

    if result.fatal_error:
        click.echo(f"Error: {result.fatal_error}", err=True)
        sys.exit(1)
    if result.cancelled:
        click.echo("Sync cancelled.")


@main.command("rebuild-index")
@click.pass_context
def rebuild_index(ctx):
    """Rebuild the sync index from notes already in the vault."""
    from .auth import TokenManager
    from .client import XClient
    from .state import StateManager
    from .storage import VaultStorage
    from .sync_engine import SyncEngine

    config = _require_config(ctx.obj["config_path"])
    state = StateManager(config.state_dir)
    with XClient() as client:
        engine = SyncEngine(
            config, state, VaultStorage(config.vault_path), client, TokenManager(state)
        )
        count = engine.rebuild_index()
    click.echo(f"Sync index rebuilt: {count} existing bookmark(s) found.")


@main.command()
@click.pass_context
def status(ctx):
    """Show current sync status."""
    config_path = ctx.obj["config_path"]
    has_config = config_exists(config_path)

    click.echo("X Bookmarks Sync: Status")
    click.echo("=" * 40)
    click.echo(f"Config: {'Found' if has_config else 'Not configured'} ({config_path})")

    if not has_config:
        click.echo("\nRun 'x-bookmarks-sync setup' to get started.")
        return

    config = load_config(config_path)

    from .state import StateManager

    state = StateManager(config.state_dir)
    if state.is_connected:
        click.echo(f"Account: Connected as @{state.username or 'unknown'}")
    else:
        click.echo("Account: Not connected")
    click.echo(f"Last sync: {state.last_sync or 'Never'}")
    click.echo(f"Synced bookmarks: {state.count}")

    folder = config.vault_path / config.bookmarks_folder
    click.echo(f"Bookmarks folder: {folder}")
    if folder.is_dir():
        notes = sum(1 for _ in folder.rglob("*.md"))
        click.echo(f"Notes in folder: {notes}")
    else:
        click.echo("Notes in folder: 0 (folder not created yet)")
