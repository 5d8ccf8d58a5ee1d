"""
Storage adapter tests — in-memory and JSON file stores.
"""

import json
from pathlib import Path

import pytest

from movsim.config import DEFAULT_SLOT
from movsim.cpu.regs import A, B, PC
from movsim.errors import StorageError
from movsim.mem.memory import DEMO_SEED, SAMPLE_PROGRAM, initial_memory
from movsim.storage import InMemoryStorage, JsonFileStorage, check_name


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryStorage()
    return JsonFileStorage(tmp_path / "programs")


class TestNames:
    def test_none_is_default_slot(self):
        assert check_name(None) == DEFAULT_SLOT

    @pytest.mark.parametrize("name", ["swap", "loop-2", "v1.0", "a_b"])
    def test_valid(self, name):
        assert check_name(name) == name

    @pytest.mark.parametrize("name", ["", "../evil", "a/b", ".hidden", "sp ace"])
    def test_invalid(self, name):
        with pytest.raises(StorageError):
            check_name(name)


class TestStoragePort:
    """Behavior shared by every adapter."""

    def test_save_then_load(self, store):
        image = initial_memory(seed=DEMO_SEED).to_list()
        store.save("swap", image)
        assert store.load("swap") == image

    def test_missing_is_none(self, store):
        assert store.load("nothing") is None
        assert store.load() is None

    def test_default_slot(self, store):
        image = initial_memory().to_list()
        store.save(None, image)
        assert store.load() == image
        assert store.list_names() == [DEFAULT_SLOT]

    def test_list_sorted(self, store):
        image = initial_memory().to_list()
        for name in ("zeta", "alpha", "mid"):
            store.save(name, image)
        assert store.list_names() == ["alpha", "mid", "zeta"]

    def test_delete(self, store):
        store.save("gone", initial_memory().to_list())
        store.delete("gone")
        assert store.load("gone") is None
        store.delete("gone")                  # unknown names are ignored

    def test_bad_image_rejected(self, store):
        with pytest.raises(StorageError):
            store.save("short", [0] * 10)
        with pytest.raises(StorageError):
            store.save("big", [10000] * 100)

    def test_pc_and_halt_rules_enforced(self, store):
        """PC must point at an address and the HALT cell must hold 0."""
        bad_pc = initial_memory().to_list()
        bad_pc[PC] = 150
        bad_halt = initial_memory().to_list()
        bad_halt[0] = 7
        with pytest.raises(StorageError):
            store.save("pc", bad_pc)
        with pytest.raises(StorageError):
            store.save("halt", bad_halt)

    def test_overwrite(self, store):
        store.save("p", initial_memory().to_list())
        image = initial_memory(seed={A: 5}).to_list()
        store.save("p", image)
        assert store.load("p")[A] == 5


class TestJsonFileStorage:
    def test_document_format(self, tmp_path):
        store = JsonFileStorage(tmp_path)
        store.save("swap", initial_memory().to_list())
        doc = json.loads((tmp_path / "swap.json").read_text(encoding="utf-8"))
        assert doc["format"] == 1
        assert len(doc["cells"]) == 100
        assert "saved_at" in doc
        assert not list(tmp_path.glob("*.tmp"))

    def test_creates_directory(self, tmp_path):
        store = JsonFileStorage(tmp_path / "a" / "b")
        store.save("x", initial_memory().to_list())
        assert (tmp_path / "a" / "b" / "x.json").exists()

    def test_list_missing_directory(self, tmp_path):
        assert JsonFileStorage(tmp_path / "nope").list_names() == []

    def test_corrupt_json(self, tmp_path):
        (tmp_path / "bad.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError):
            JsonFileStorage(tmp_path).load("bad")

    def test_wrong_shape(self, tmp_path):
        (tmp_path / "list.json").write_text("[1, 2, 3]", encoding="utf-8")
        (tmp_path / "empty.json").write_text("{}", encoding="utf-8")
        store = JsonFileStorage(tmp_path)
        with pytest.raises(StorageError):
            store.load("list")
        with pytest.raises(StorageError):
            store.load("empty")

    def test_out_of_range_cells(self, tmp_path):
        cells = [0] * 100
        cells[30] = 12345
        (tmp_path / "big.json").write_text(json.dumps({"cells": cells}), encoding="utf-8")
        with pytest.raises(StorageError):
            JsonFileStorage(tmp_path).load("big")

    def test_rom_only_document(self, tmp_path):
        """Older documents hold just the 50 ROM cells; registers get the demo seed."""
        rom = list(SAMPLE_PROGRAM) + [0] * (50 - len(SAMPLE_PROGRAM))
        (tmp_path / "old.json").write_text(json.dumps({"rom": rom}), encoding="utf-8")
        image = JsonFileStorage(tmp_path).load("old")
        assert image[50:56] == list(SAMPLE_PROGRAM)
        assert image[A] == 42
        assert image[B] == 10
        assert image[PC] == 50

    def test_rom_only_wrong_length(self, tmp_path):
        (tmp_path / "old.json").write_text(json.dumps({"rom": [0] * 20}), encoding="utf-8")
        with pytest.raises(StorageError):
            JsonFileStorage(tmp_path).load("old")

    def test_document_with_bad_pc(self, tmp_path):
        cells = initial_memory().to_list()
        cells[PC] = 150
        (tmp_path / "jump.json").write_text(json.dumps({"cells": cells}), encoding="utf-8")
        with pytest.raises(StorageError):
            JsonFileStorage(tmp_path).load("jump")

    def test_cells_not_a_list(self, tmp_path):
        (tmp_path / "num.json").write_text(json.dumps({"cells": 5}), encoding="utf-8")
        with pytest.raises(StorageError):
            JsonFileStorage(tmp_path).load("num")

    def test_delete_failure_is_storage_error(self, tmp_path, monkeypatch):
        store = JsonFileStorage(tmp_path)
        store.save("locked", initial_memory().to_list())

        def deny(self, *args, **kwargs):
            raise PermissionError("read-only")
        monkeypatch.setattr(Path, "unlink", deny)
        with pytest.raises(StorageError):
            store.delete("locked")
