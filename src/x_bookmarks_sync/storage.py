"""Filesystem access to the notes vault.

Paths passed in are relative to the vault root, using "/" separators the
way note apps display them (e.g. "Bookmarks/Some title.md").
"""

import logging
from pathlib import Path

import yaml

from .errors import IndexScanError
from .markdown import parse_frontmatter

logger = logging.getLogger(__name__)


class VaultStorage:
    def __init__(self, root: Path):
        self.root = Path(root)

    def path_for(self, rel_path: str) -> Path:
        return self.root / rel_path

    def ensure_folder(self, rel_path: str) -> Path:
        """Create the folder if it does not exist yet."""
        folder = self.path_for(rel_path)
        if not folder.is_dir():
            logger.info("Creating folder %s", folder)
            folder.mkdir(parents=True, exist_ok=True)
        return folder

    def create_note(self, rel_path: str, content: str) -> Path:
        """Write a new note. Raises FileExistsError if the path is taken.

        Content is encoded before the file is created, and a failed write
        removes the file again, so no empty or partial note is left behind.
        """
        data = content.encode("utf-8")
        path = self.path_for(rel_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        f = open(path, "xb")
        try:
            # Closing flushes, so a late disk-full error is caught here too
            with f:
                f.write(data)
        except BaseException:
            path.unlink(missing_ok=True)
            raise
        logger.debug("Created note %s", path)
        return path

    def list_notes(self, rel_path: str) -> list[Path]:
        """All markdown notes under the folder, including subfolders."""
        folder = self.path_for(rel_path)
        if not folder.is_dir():
            return []
        return sorted(p for p in folder.rglob("*.md") if p.is_file())

    def read_frontmatter(self, path: Path) -> dict:
        """Parse a note's frontmatter ({} when it has none)."""
        try:
            content = path.read_text(encoding="utf-8")
            return parse_frontmatter(content)
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            raise IndexScanError(path, str(e)) from e
