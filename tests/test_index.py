"""Tests for vault storage and the sync index."""

import pytest

from x_bookmarks_sync import storage as storage_module
from x_bookmarks_sync.errors import IndexScanError
from x_bookmarks_sync.index import SyncIndex

FOLDER = "Bookmarks"


def _note(link: str, source: str = "") -> str:
    lines = ["---", "type:", "  - tweet", f"link: {link}"]
    if source:
        lines.append(f"source: {source}")
    lines += ["---", "", "body", ""]
    return "\n".join(lines)


@pytest.fixture
def index(state, storage) -> SyncIndex:
    return SyncIndex(state, storage)


class TestVaultStorage:
    def test_create_note(self, storage):
        path = storage.create_note(f"{FOLDER}/A note.md", "hello")
        assert path.read_text(encoding="utf-8") == "hello"

    def test_create_note_never_overwrites(self, storage):
        storage.create_note(f"{FOLDER}/A note.md", "first")
        with pytest.raises(FileExistsError):
            storage.create_note(f"{FOLDER}/A note.md", "second")
        assert storage.path_for(f"{FOLDER}/A note.md").read_text() == "first"

    def test_list_notes_recurses(self, storage):
        storage.create_note(f"{FOLDER}/a.md", "")
        storage.create_note(f"{FOLDER}/sub/b.md", "")
        storage.create_note(f"{FOLDER}/c.txt", "")
        names = [p.name for p in storage.list_notes(FOLDER)]
        assert names == ["a.md", "b.md"]

    def test_list_notes_missing_folder(self, storage):
        assert storage.list_notes("Nowhere") == []

    def test_unencodable_content_leaves_no_file(self, storage):
        with pytest.raises(UnicodeEncodeError):
            storage.create_note(f"{FOLDER}/Broken.md", "Then \ud83d broken")
        assert not storage.path_for(f"{FOLDER}/Broken.md").exists()
        # The name is still free afterwards
        storage.create_note(f"{FOLDER}/Broken.md", "fixed")

    def test_failed_write_removes_file(self, storage, monkeypatch):
        real_open = open

        class FullDisk:
            def __init__(self, f):
                self._f = f

            def __enter__(self):
                return self

            def __exit__(self, *exc):
                self._f.close()

            def write(self, data):
                raise OSError(28, "No space left on device")

        monkeypatch.setattr(
            storage_module, "open", lambda path, mode: FullDisk(real_open(path, mode)), raising=False
        )
        with pytest.raises(OSError, match="No space"):
            storage.create_note(f"{FOLDER}/Full.md", "content")

        assert not storage.path_for(f"{FOLDER}/Full.md").exists()

    def test_read_frontmatter(self, storage):
        path = storage.create_note(f"{FOLDER}/a.md", _note("https://x.com/a/status/1"))
        frontmatter = storage.read_frontmatter(path)
        assert frontmatter["link"] == "https://x.com/a/status/1"
        assert frontmatter["type"] == ["tweet"]
        assert "source" not in frontmatter

    def test_read_frontmatter_invalid_yaml(self, storage):
        path = storage.create_note(f"{FOLDER}/bad.md", "---\nlink: [oops\n---\n")
        with pytest.raises(IndexScanError):
            storage.read_frontmatter(path)


class TestSyncIndex:
    def test_record_and_lookup(self, index):
        assert not index.is_synced("1")
        index.record("1", "One.md")
        assert index.is_synced("1")
        assert len(index) == 1

    def test_rebuild_counts_valid_notes(self, index, storage):
        storage.create_note(f"{FOLDER}/a.md", _note("https://x.com/a/status/101"))
        storage.create_note(f"{FOLDER}/b.md", _note("https://twitter.com/b/status/102"))
        storage.create_note(f"{FOLDER}/nested/c.md", _note("https://x.com/c/status/103"))
        # Not bookmark notes
        storage.create_note(f"{FOLDER}/plain.md", "# no frontmatter\n")
        storage.create_note(f"{FOLDER}/other.md", _note("https://example.com/post"))
        storage.create_note(f"{FOLDER}/broken.md", "---\nlink: [oops\n---\n")
        storage.create_note(f"{FOLDER}/binary.md", "")
        storage.path_for(f"{FOLDER}/binary.md").write_bytes(b"---\n\xff\xfe\n---\n")

        assert index.rebuild(FOLDER) == 3
        assert index.is_synced("101")
        assert index.is_synced("102")
        assert index.is_synced("103")
        assert index.state.synced_ids["103"] == "c.md"

    def test_rebuild_falls_back_to_source(self, index, storage):
        storage.create_note(
            f"{FOLDER}/article.md",
            _note("https://example.com/blog/post", "https://x.com/a/status/555"),
        )
        assert index.rebuild(FOLDER) == 1
        assert index.is_synced("555")

    def test_rebuild_reads_each_note_once(self, index, storage, monkeypatch):
        storage.create_note(
            f"{FOLDER}/article.md",
            _note("https://example.com/blog/post", "https://x.com/a/status/555"),
        )
        reads = []
        original = storage.read_frontmatter

        def counting(path):
            reads.append(path.name)
            return original(path)

        monkeypatch.setattr(storage, "read_frontmatter", counting)

        assert index.rebuild(FOLDER) == 1
        assert reads == ["article.md"]

    def test_rebuild_replaces_stale_entries(self, index, storage):
        index.record("999", "Gone.md")
        storage.create_note(f"{FOLDER}/a.md", _note("https://x.com/a/status/101"))
        index.rebuild(FOLDER)
        assert not index.is_synced("999")
        assert index.is_synced("101")

    def test_rebuild_missing_folder(self, index):
        assert index.rebuild(FOLDER) == 0
        assert len(index) == 0

    def test_list_filenames(self, index, storage):
        storage.create_note(f"{FOLDER}/a.md", "")
        storage.create_note(f"{FOLDER}/b.md", "")
        assert index.list_filenames(FOLDER) == {"a.md", "b.md"}
