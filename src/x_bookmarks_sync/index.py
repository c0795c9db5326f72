"""Sync index: which bookmarked posts already have a note.

The index maps tweet id -> note filename and lives in the persisted state.
When it is missing or distrusted it is rebuilt by scanning the notes folder
and pulling the post id out of each note's link (or source) field.
"""

import logging

from .errors import IndexScanError
from .markdown import extract_tweet_id_from_url
from .state import StateManager
from .storage import VaultStorage

logger = logging.getLogger(__name__)

# Frontmatter fields that may hold the post permalink, in lookup order
ID_FIELDS = ("link", "source")


class SyncIndex:
    def __init__(self, state: StateManager, storage: VaultStorage):
        self.state = state
        self.storage = storage

    def is_synced(self, tweet_id: str) -> bool:
        return tweet_id in self.state.synced_ids

    def record(self, tweet_id: str, filename: str) -> None:
        self.state.synced_ids[tweet_id] = filename

    def __len__(self) -> int:
        return len(self.state.synced_ids)

    def rebuild(self, folder: str) -> int:
        """Replace the index with what the notes under folder say. Returns its size."""
        new_index: dict[str, str] = {}

        for path in self.storage.list_notes(folder):
            try:
                tweet_id = self._tweet_id_for(path)
            except IndexScanError as e:
                logger.debug("Skipping unreadable note %s", e)
                continue
            if tweet_id:
                new_index[tweet_id] = path.name

        self.state.synced_ids = new_index
        logger.info("Rebuilt sync index: %d bookmark notes in %s", len(new_index), folder)
        return len(new_index)

    def _tweet_id_for(self, path) -> str | None:
        frontmatter = self.storage.read_frontmatter(path)
        for field in ID_FIELDS:
            value = frontmatter.get(field)
            if isinstance(value, str):
                tweet_id = extract_tweet_id_from_url(value)
                if tweet_id:
                    return tweet_id
        return None

    def list_filenames(self, folder: str) -> set[str]:
        return {path.name for path in self.storage.list_notes(folder)}
