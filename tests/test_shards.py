"""Tests for the shard manager and ordinal-range sharding."""

from __future__ import annotations

import json

import pytest

from rowshard import RowshardConfig
from rowshard.errors import RowNotFoundError, ShardIOError
from rowshard.shards import KEYS_FILE, LAYOUT_FILE, Shard, ShardKey, ShardLayout, ShardManager


@pytest.fixture
def manager(tmp_path):
    return ShardManager(tmp_path, RowshardConfig(max_rows_per_shard=100, bound_width=4))


class TestShardKey:
    def test_filename_is_zero_padded(self):
        assert ShardKey(0, 99).filename(4) == "0000-0099.json"

    def test_parse(self):
        assert ShardKey.parse("0100-0199.json") == ShardKey(100, 199)
        assert ShardKey.parse(KEYS_FILE) is None
        assert ShardKey.parse("notes.txt") is None

    def test_contains(self):
        key = ShardKey(100, 199)
        assert key.contains(100) and key.contains(199)
        assert not key.contains(200)

    def test_ordering(self):
        assert sorted([ShardKey(200, 299), ShardKey(0, 99)]) == [ShardKey(0, 99), ShardKey(200, 299)]


class TestShardManager:
    def test_key_for_ordinal(self, manager):
        assert manager.key_for_ordinal("t", 0) == ShardKey(0, 99)
        assert manager.key_for_ordinal("t", 99) == ShardKey(0, 99)
        assert manager.key_for_ordinal("t", 100) == ShardKey(100, 199)

    def test_key_for_negative_ordinal(self, manager):
        with pytest.raises(ValueError):
            manager.key_for_ordinal("t", -1)

    def test_load_missing_is_empty(self, manager):
        shard = manager.load("t", ShardKey(0, 99))
        assert len(shard) == 0

    def test_save_and_load(self, manager, tmp_path):
        shard = Shard("t", ShardKey(0, 99), {"a": {"id": "a"}})
        manager.save("t", shard)
        path = tmp_path / "t" / "0000-0099.json"
        assert json.loads(path.read_text()) == {
            "table": "t",
            "lo": 0,
            "hi": 99,
            "rows": {"a": {"id": "a"}},
        }
        assert manager.load("t", ShardKey(0, 99)).rows == {"a": {"id": "a"}}

    def test_all_shards_in_bound_order(self, manager):
        for lo in (200, 0, 100):
            manager.save("t", Shard("t", ShardKey(lo, lo + 99)))
        manager.save_keys("t", {})
        assert manager.all_shards("t") == [ShardKey(0, 99), ShardKey(100, 199), ShardKey(200, 299)]

    def test_all_shards_missing_table(self, manager):
        assert manager.all_shards("nope") == []

    def test_bounds_mismatch(self, manager, tmp_path):
        (tmp_path / "t").mkdir()
        (tmp_path / "t" / "0000-0099.json").write_text('{"table": "t", "lo": 5, "hi": 9, "rows": {}}')
        with pytest.raises(ShardIOError, match="do not match"):
            manager.load("t", ShardKey(0, 99))

    def test_missing_rows_mapping(self, manager, tmp_path):
        (tmp_path / "t").mkdir()
        (tmp_path / "t" / "0000-0099.json").write_text('{"table": "t", "lo": 0, "hi": 99}')
        with pytest.raises(ShardIOError):
            manager.load("t", ShardKey(0, 99))

    def test_shard_for_uses_index(self, manager):
        manager.save_keys("t", {"a": 150})
        assert manager.shard_for("t", "a") == ShardKey(100, 199)

    def test_shard_for_unknown(self, manager):
        with pytest.raises(RowNotFoundError):
            manager.shard_for("t", "ghost")

    def test_rebuild_keys(self, manager):
        manager.save("t", Shard("t", ShardKey(0, 99), {"a": {}, "b": {}}))
        manager.save("t", Shard("t", ShardKey(100, 199), {"c": {}}))
        keys = manager.rebuild_keys("t")
        assert keys == {"a": 0, "b": 0, "c": 100}
        assert manager.load_keys("t") == keys
        assert manager.shard_for("t", "c") == ShardKey(100, 199)

    def test_drop_table(self, manager, tmp_path):
        manager.save("t", Shard("t", ShardKey(0, 99)))
        manager.drop_table("t")
        assert not (tmp_path / "t").exists()


class TestShardLayout:
    def test_ensure_table_stores_layout(self, manager, tmp_path):
        manager.ensure_table("t")
        doc = json.loads((tmp_path / "t" / LAYOUT_FILE).read_text())
        assert doc == {"max_rows_per_shard": 100, "bound_width": 4}

    def test_ensure_table_keeps_existing_layout(self, manager, tmp_path):
        manager.ensure_table("t")
        ShardManager(tmp_path, RowshardConfig(max_rows_per_shard=7)).ensure_table("t")
        assert ShardManager(tmp_path, RowshardConfig()).layout("t").max_rows_per_shard == 100

    def test_stored_layout_overrides_config(self, manager, tmp_path):
        manager.ensure_table("t")
        other = ShardManager(tmp_path, RowshardConfig(max_rows_per_shard=3, bound_width=12))
        assert other.key_for_ordinal("t", 150) == ShardKey(100, 199)
        assert other.shard_path("t", ShardKey(100, 199)).name == "0100-0199.json"

    def test_missing_layout_falls_back_to_config(self, manager):
        assert manager.layout("t") == ShardLayout(max_rows_per_shard=100, bound_width=4)

    def test_malformed_layout(self, manager, tmp_path):
        (tmp_path / "t").mkdir()
        (tmp_path / "t" / LAYOUT_FILE).write_text('{"max_rows_per_shard": 0, "bound_width": 4}')
        with pytest.raises(ShardIOError, match="malformed layout"):
            manager.layout("t")

    def test_layout_file_is_not_a_shard(self, manager):
        manager.ensure_table("t")
        assert manager.all_shards("t") == []

    def test_drop_table_forgets_layout(self, manager, tmp_path):
        manager.ensure_table("t")
        manager.drop_table("t")
        manager.config = RowshardConfig(max_rows_per_shard=5, bound_width=4)
        manager.ensure_table("t")
        assert manager.key_for_ordinal("t", 7) == ShardKey(5, 9)
