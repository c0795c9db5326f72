"""Drive a sync run: authenticate, page through bookmarks, write new notes.

One run moves through these phases and always ends in DONE:

    IDLE -> AUTHENTICATING -> INDEX_CHECK -> FETCHING -> ITEM_LOOP -> ... -> DONE

Each new note is recorded in the sync index and the state is flushed right
away (every `flush_every` notes), so a crash loses at most the item in
flight. In incremental mode the run stops once it sees 3 already-synced
bookmarks in a row; a full sync walks every page but still never writes a
second note for a known bookmark.
"""

import logging
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from .auth import TokenManager
from .client import MAX_PAGE_SIZE, XClient
from .config import AppConfig
from .errors import ItemProcessingError, NotAuthenticated, SyncError, SyncInProgress
from .index import SyncIndex
from .markdown import note_to_markdown
from .models import Includes, SyncResult, Tweet
from .state import StateManager
from .storage import VaultStorage
from .transform import transform_tweet

logger = logging.getLogger(__name__)

CONSECUTIVE_SEEN_LIMIT = 3


class SyncPhase(Enum):
    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    INDEX_CHECK = "index_check"
    FETCHING = "fetching"
    ITEM_LOOP = "item_loop"
    DONE = "done"


class SyncEngine:
    def __init__(
        self,
        config: AppConfig,
        state: StateManager,
        storage: VaultStorage,
        client: XClient,
        token_manager: TokenManager,
        on_status: Callable[[str], None] | None = None,
        on_progress: Callable[[SyncResult], None] | None = None,
    ):
        self.config = config
        self.state = state
        self.storage = storage
        self.client = client
        self.token_manager = token_manager
        self.index = SyncIndex(state, storage)
        self.phase = SyncPhase.IDLE
        self._on_status = on_status
        self._on_progress = on_progress
        self._run_lock = threading.Lock()
        self._unsaved = 0

    def sync(
        self,
        full_sync: bool | None = None,
        cancel: threading.Event | None = None,
    ) -> SyncResult:
        """Run one sync. Raises SyncInProgress if another run is active."""
        if not self._run_lock.acquire(blocking=False):
            raise SyncInProgress()

        full = self.config.full_sync if full_sync is None else full_sync
        cancel = cancel or threading.Event()
        result = SyncResult()
        try:
            self._run(result, full, cancel)
        except (SyncError, OSError) as e:
            logger.error("Sync failed: %s", e)
            result.errors.append(str(e))
            result.fatal_error = str(e)
        finally:
            try:
                if self._unsaved:
                    self._flush(force=True)
            finally:
                self.phase = SyncPhase.DONE
                self._run_lock.release()

        logger.info(
            "Sync finished: fetched %d, created %d, skipped %d, %d error(s)%s",
            result.fetched,
            result.created,
            result.skipped,
            len(result.errors),
            " (cancelled)" if result.cancelled else "",
        )
        return result

    def rebuild_index(self) -> int:
        """Rebuild the index from the notes folder and persist it.

        Shares the run lock with sync(), so it raises SyncInProgress mid-run.
        """
        if not self._run_lock.acquire(blocking=False):
            raise SyncInProgress()
        try:
            count = self.index.rebuild(self.config.bookmarks_folder)
            self.state.save()
        finally:
            self._run_lock.release()
        return count

    # ── Run phases ──────────────────────────────────────────────

    def _run(self, result: SyncResult, full: bool, cancel: threading.Event) -> None:
        self._set_phase(SyncPhase.AUTHENTICATING, "Checking authentication...")
        access_token = self.token_manager.ensure_valid_token()
        if not self.state.user_id:
            raise NotAuthenticated("No X user id stored. Run 'x-bookmarks-sync connect' again.")

        folder = self.config.bookmarks_folder
        self.storage.ensure_folder(folder)

        self._set_phase(SyncPhase.INDEX_CHECK)
        if not self.state.synced_ids:
            self._status("Building initial sync index...")
            self.index.rebuild(folder)
            self.state.save()

        existing_files = self.index.list_filenames(folder)

        self._fetch_pages(result, access_token, existing_files, full, cancel)

        self.state.last_sync = datetime.now(timezone.utc).isoformat()
        self._flush(force=True)

    def _fetch_pages(
        self,
        result: SyncResult,
        access_token: str,
        existing_files: set[str],
        full: bool,
        cancel: threading.Event,
    ) -> None:
        pagination_token: str | None = None
        consecutive_seen = 0
        page_num = 0
        limit = self.config.max_per_sync

        while True:
            if cancel.is_set():
                self._cancelled(result)
                return

            page_size = min(MAX_PAGE_SIZE, limit - result.fetched) if limit > 0 else MAX_PAGE_SIZE
            if page_size <= 0:
                return

            page_num += 1
            self._set_phase(SyncPhase.FETCHING, f"Fetching bookmarks page {page_num}...")
            page = self.client.fetch_bookmarks_page(
                self.state.user_id, access_token, pagination_token, page_size
            )

            items = page.items[:page_size]
            if not items:
                logger.info("No more bookmarks. Pagination complete.")
                return

            result.fetched += len(items)
            self._progress(result)

            self.phase = SyncPhase.ITEM_LOOP
            for tweet in items:
                if cancel.is_set():
                    self._cancelled(result)
                    return

                if self.index.is_synced(tweet.id):
                    result.skipped += 1
                    consecutive_seen += 1
                    self._progress(result)
                    if not full and consecutive_seen >= CONSECUTIVE_SEEN_LIMIT:
                        self._status("Reached previously synced bookmarks.")
                        return
                    continue

                consecutive_seen = 0
                try:
                    self._process_tweet(tweet, page.includes, existing_files)
                    result.created += 1
                except ItemProcessingError as e:
                    logger.warning("Tweet %s: %s", e.tweet_id, e)
                    result.errors.append(f"Tweet {e.tweet_id}: {e}")
                self._progress(result)

            if limit > 0 and result.fetched >= limit:
                logger.info("Reached max bookmarks per sync (%d). Stopping.", limit)
                return

            pagination_token = page.next_token
            if not pagination_token:
                return

    def _process_tweet(
        self, tweet: Tweet, includes: Includes, existing_files: set[str]
    ) -> None:
        folder = self.config.bookmarks_folder
        try:
            note = transform_tweet(tweet, includes, self.config, existing_files)
            filename = f"{note.filename}.md"
            self.storage.create_note(f"{folder}/{filename}", note_to_markdown(note))
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise ItemProcessingError(tweet.id, str(e) or type(e).__name__) from e

        self.index.record(tweet.id, filename)
        existing_files.add(filename)
        self._unsaved += 1
        self._flush()

    # ── Helpers ─────────────────────────────────────────────────

    def _flush(self, force: bool = False) -> None:
        """Persist state once flush_every new notes are pending (or when forced)."""
        if force or (self._unsaved and self._unsaved >= self.config.flush_every):
            self.state.save()
            self._unsaved = 0

    def _cancelled(self, result: SyncResult) -> None:
        result.cancelled = True
        self._status("Sync cancelled.")

    def _set_phase(self, phase: SyncPhase, status: str | None = None) -> None:
        self.phase = phase
        if status:
            self._status(status)

    def _status(self, message: str) -> None:
        logger.info(message)
        if self._on_status:
            self._on_status(message)

    def _progress(self, result: SyncResult) -> None:
        if self._on_progress:
            self._on_progress(result)
