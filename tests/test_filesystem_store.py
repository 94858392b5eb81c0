"""Tests for the YAML file substrate."""

from pathlib import Path

import pytest
import yaml

from boardstore.errors import StorageError
from boardstore.services import CURRENT_VERSION, BoardStore
from boardstore.storage import YamlFileStore


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Data directory that does not exist yet."""
    return tmp_path / ".boardstore"


@pytest.fixture
def file_store(data_dir: Path) -> YamlFileStore:
    return YamlFileStore(data_dir)


class TestYamlFileStore:
    """Tests for slot reads and writes."""

    @pytest.mark.asyncio
    async def test_missing_slot_returns_default(self, file_store: YamlFileStore):
        assert await file_store.get("boards") is None
        assert await file_store.get("boards", []) == []
        assert await file_store.keys() == []

    @pytest.mark.asyncio
    async def test_set_many_round_trip(self, file_store: YamlFileStore):
        await file_store.set_many({"boards": [{"id": "b1", "title": "Work"}], "version": "1.1.0"})

        assert await file_store.get("boards") == [{"id": "b1", "title": "Work"}]
        assert await file_store.get("version") == "1.1.0"
        assert await file_store.keys() == ["boards", "version"]

    @pytest.mark.asyncio
    async def test_files_written(self, file_store: YamlFileStore, data_dir: Path):
        await file_store.set_many({"cards": [{"id": "k1", "title": "Café"}]})

        content = (data_dir / "cards.yaml").read_text(encoding="utf-8")

        assert content.startswith(YamlFileStore.HEADER)
        assert "Café" in content
        assert yaml.safe_load(content) == [{"id": "k1", "title": "Café"}]
        assert list(data_dir.glob("*.tmp")) == []

    @pytest.mark.asyncio
    async def test_unreadable_yaml_raises(self, file_store: YamlFileStore, data_dir: Path):
        data_dir.mkdir()
        (data_dir / "boards.yaml").write_text("boards: [unclosed\n")

        with pytest.raises(StorageError):
            await file_store.get("boards")

    def test_invalid_slot_name(self, file_store: YamlFileStore):
        with pytest.raises(ValueError):
            file_store.path_for("../escape")


class TestBoardStoreOnFiles:
    """BoardStore persisting through YAML files."""

    @pytest.mark.asyncio
    async def test_data_survives_new_store(self, data_dir: Path):
        store = BoardStore(YamlFileStore(data_dir))
        board = await store.create_board("Work")
        column = await store.add_column(board.id, "To Do")
        await store.add_card(column.id, "Write docs", labels=["docs"])

        reopened = BoardStore(YamlFileStore(data_dir))
        loaded = await reopened.get_board(board.id)

        assert loaded.columns[0].cards[0].title == "Write docs"
        assert loaded.columns[0].cards[0].labels == ["docs"]
        assert await reopened.get_version() == CURRENT_VERSION

    @pytest.mark.asyncio
    async def test_legacy_file_migrated(self, data_dir: Path):
        data_dir.mkdir()
        (data_dir / "boards.yaml").write_text(
            "b1:\n"
            "  title: Work\n"
            "  columns:\n"
            "    - title: Todo\n"
            "      cards:\n"
            "        - title: Write docs\n"
        )
        store = BoardStore(YamlFileStore(data_dir))

        board = await store.get_board("b1")

        assert board.columns[0].cards[0].id == "b1-col-0-card-0"
        assert yaml.safe_load((data_dir / "version.yaml").read_text()) == CURRENT_VERSION
        assert isinstance(yaml.safe_load((data_dir / "boards.yaml").read_text()), list)
