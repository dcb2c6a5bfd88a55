"""Tests for the published feed store."""

from pathlib import Path

import pytest

from cinefeed.errors import FeedStoreError
from cinefeed.feeds.store import FeedStore


class TestFeedStore:
    def test_check_creates_directory(self, tmp_path: Path) -> None:
        store = FeedStore(tmp_path / "docs" / "feeds")
        store.check()
        assert (tmp_path / "docs" / "feeds").is_dir()

    def test_check_fails_when_path_is_a_file(self, tmp_path: Path) -> None:
        blocker = tmp_path / "feeds"
        blocker.write_text("not a directory")
        with pytest.raises(FeedStoreError):
            FeedStore(blocker).check()

    def test_path_for(self, tmp_path: Path) -> None:
        assert FeedStore(tmp_path).path_for("padova") == tmp_path / "padova.xml"

    def test_read_missing(self, tmp_path: Path) -> None:
        assert FeedStore(tmp_path).read("padova") is None

    def test_write_then_read(self, tmp_path: Path) -> None:
        store = FeedStore(tmp_path)
        store.write("padova", "<rss>àèì</rss>\n")
        assert store.read("padova") == "<rss>àèì</rss>\n"

    def test_write_replaces_and_leaves_no_temp_files(self, tmp_path: Path) -> None:
        store = FeedStore(tmp_path)
        store.write("padova", "first")
        store.write("padova", "second")
        assert store.read("padova") == "second"
        assert [p.name for p in tmp_path.iterdir()] == ["padova.xml"]

    def test_undecodable_file_is_treated_as_absent(self, tmp_path: Path) -> None:
        (tmp_path / "padova.xml").write_bytes(b"\xff\xfe\xfa broken")
        assert FeedStore(tmp_path).read("padova") is None

    def test_write_into_missing_directory_fails(self, tmp_path: Path) -> None:
        store = FeedStore(tmp_path / "missing")
        with pytest.raises(FeedStoreError):
            store.write("padova", "<rss/>")
