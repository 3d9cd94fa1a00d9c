"""Tests for JSON persistence utilities."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from aniranker.common.models import Item, RankingProgress
from aniranker.common.persistence import delete_file, read_json, write_json


def _progress() -> RankingProgress:
    return RankingProgress(items=[Item(id=1, title="Monster", wins=2, comparisons=2)])


class TestWriteJson:
    """Tests for write_json function."""

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "dir" / "progress.json"

        write_json(path, _progress())

        assert path.exists()

    def test_overwrites_existing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "progress.json"
        write_json(path, _progress())

        write_json(path, RankingProgress(items=[Item(id=9, title="Pluto")]))

        assert read_json(path, RankingProgress).items[0].title == "Pluto"

    def test_leaves_no_temp_files(self, tmp_path: Path) -> None:
        path = tmp_path / "progress.json"

        write_json(path, _progress())

        assert not list(tmp_path.glob("*.tmp"))

    def test_pretty_printed(self, tmp_path: Path) -> None:
        path = tmp_path / "progress.json"

        write_json(path, _progress())

        assert path.read_text().startswith("{\n  ")


class TestReadJson:
    """Tests for read_json function."""

    def test_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "progress.json"
        original = _progress()
        write_json(path, original)

        loaded = read_json(path, RankingProgress)

        assert loaded.items == original.items
        assert loaded.timestamp == original.timestamp

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            read_json(tmp_path / "missing.json", RankingProgress)

    def test_invalid_document_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "progress.json"
        path.write_text('{"items": [{"id": "x"}]}')

        with pytest.raises(ValidationError):
            read_json(path, RankingProgress)


class TestDeleteFile:
    def test_removes_existing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "progress.json"
        write_json(path, _progress())

        assert delete_file(path) is True
        assert not path.exists()

    def test_missing_file(self, tmp_path: Path) -> None:
        assert delete_file(tmp_path / "missing.json") is False

    def test_missing_directory(self, tmp_path: Path) -> None:
        assert delete_file(tmp_path / "nowhere" / "progress.json") is False
