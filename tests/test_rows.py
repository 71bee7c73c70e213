"""Tests for the row engine: inserts, reads, updates, and deletes."""

from __future__ import annotations

import json

import pytest

import rowshard
from rowshard import FieldType, Json, Operator, RowshardConfig
from rowshard.errors import (
    DuplicateKeyError,
    InvalidQueryError,
    MissingPrimaryKeyError,
    PatternMismatchError,
    RowNotFoundError,
    SchemaNotFoundError,
    TypeMismatchError,
    UnknownFieldError,
)
from tests.conftest import USERS


class TestInsert:
    def test_returns_row_id(self, db):
        db.create_table({"id": "STRING"}, "id", "t")
        assert db.insert("t", {"id": "a"}) == "a"

    def test_round_trip(self, users_db):
        row = {
            "id": "u9",
            "name": "Zed",
            "age": 41.5,
            "email": None,
            "tags": ["x", 1, None, [False]],
            "active": True,
            "profile": Json('{"theme":"dark"}'),
        }
        users_db.insert("users", row)
        assert users_db.get_by_id("users", "u9") == row

    def test_duplicate_key(self, users_db):
        with pytest.raises(DuplicateKeyError) as exc:
            users_db.insert("users", {"id": "u1", "name": "Again"})
        assert exc.value.row_id == "u1"

    def test_duplicate_numeric_key_canonical(self, db):
        db.create_table({"n": "NUMBER"}, "n", "nums")
        db.insert("nums", {"n": 3})
        with pytest.raises(DuplicateKeyError):
            db.insert("nums", {"n": 3.0})

    def test_missing_primary_key(self, users_db):
        with pytest.raises(MissingPrimaryKeyError):
            users_db.insert("users", {"name": "Nobody"})

    def test_invalid_row_is_not_stored(self, users_db):
        with pytest.raises(TypeMismatchError):
            users_db.insert("users", {"id": "u9", "name": 5})
        with pytest.raises(RowNotFoundError):
            users_db.get_by_id("users", "u9")

    def test_pattern_override(self, users_db):
        with pytest.raises(PatternMismatchError):
            users_db.insert("users", {"id": "u9", "name": "Z", "email": "not-an-email"})
        users_db.insert(
            "users", {"id": "u9", "name": "Z", "email": "not-an-email"}, patterns={"email": ".*"}
        )
        # Overrides are not persisted
        assert users_db.load_schema("users").fields["email"].pattern == r"[^@\s]+@[^@\s]+"

    def test_auto_id(self, users_db):
        row_id = users_db.insert("users", {"name": "Anon"}, auto_id=True)
        assert len(row_id) == 32
        assert users_db.get_by_id("users", row_id)["id"] == row_id

    def test_unknown_table(self, db):
        with pytest.raises(SchemaNotFoundError):
            db.insert("nope", {"id": "a"})

    def test_counter_advances(self, users_db):
        assert users_db.load_schema("users").next_ordinal == len(USERS)

    def test_shard_file_contents(self, users_db):
        path = users_db.root / "users" / "000000000000-000000000999.json"
        doc = json.loads(path.read_text())
        assert doc["lo"] == 0 and doc["hi"] == 999
        assert list(doc["rows"]) == ["u1", "u2", "u3", "u4"]


class TestInsertMany:
    def test_inserts_in_order(self, db):
        db.create_table({"id": "STRING"}, "id", "t")
        assert db.insert_many("t", [{"id": "a"}, {"id": "b"}]) == ["a", "b"]
        assert [r["id"] for r in db.get_all("t")] == ["a", "b"]

    def test_duplicate_within_batch(self, db):
        db.create_table({"id": "STRING"}, "id", "t")
        with pytest.raises(DuplicateKeyError):
            db.insert_many("t", [{"id": "a"}, {"id": "a"}])

    def test_partial_failure_keeps_flushed_shards(self, tmp_path):
        d = rowshard.init(tmp_path / "db", RowshardConfig(max_rows_per_shard=2))
        d.create_table({"n": "NUMBER"}, "n", "t")
        with pytest.raises(TypeMismatchError):
            d.insert_many("t", [{"n": 0}, {"n": 1}, {"n": 2}, {"n": "bad"}])
        # The first shard was flushed when the batch rolled into the second
        assert [r["n"] for r in d.get_all("t")] == [0, 1]
        d.insert("t", {"n": 7})
        assert d.get_by_id("t", 7) == {"n": 7}


class TestReads:
    def test_get_by_id(self, users_db):
        assert users_db.get_by_id("users", "u2")["name"] == "Bob"

    def test_get_by_numeric_id(self, sharded_db):
        assert sharded_db.get_by_id("items", 7)["label"] == "item-7"
        assert sharded_db.get_by_id("items", 7.0)["label"] == "item-7"
        assert sharded_db.get_by_id("items", "7")["label"] == "item-7"

    def test_get_missing(self, users_db):
        with pytest.raises(RowNotFoundError):
            users_db.get_by_id("users", "ghost")

    def test_get_all(self, users_db):
        assert [r["id"] for r in users_db.get_all("users")] == ["u1", "u2", "u3", "u4"]

    def test_omitted_field_differs_from_null(self, users_db):
        assert "email" not in users_db.get_by_id("users", "u3")
        assert users_db.get_by_id("users", "u2")["email"] is None


class TestUpdateFieldWhere:
    def test_updates_matching_rows(self, users_db):
        n = users_db.update_field_where("users", "age", 30, "active", True, comparator="gte")
        assert n == 2
        assert users_db.get_by_id("users", "u1")["active"] is True
        assert users_db.get_by_id("users", "u3")["active"] is True
        assert "active" not in users_db.get_by_id("users", "u2")

    def test_null_as_match(self, users_db):
        n = users_db.update_field_where(
            "users", "email", "x@y.z", "active", False, match_null_as_match=True
        )
        # u2 (explicit null), u3 and u4 (missing) match; u1 does not
        assert n == 3
        assert "active" not in users_db.get_by_id("users", "u1")

    def test_null_as_match_only_for_eq(self, users_db):
        n = users_db.update_field_where(
            "users", "age", 100, "active", False, match_null_as_match=True, comparator="lt"
        )
        # Only rows with a numeric age below 100; u4 (age null) is skipped
        assert n == 3
        assert users_db.get_by_id("users", "u1")["active"] is False
        assert users_db.get_by_id("users", "u4")["active"] is False

    def test_null_without_flag_matches_only_null(self, users_db):
        n = users_db.update_field_where("users", "age", None, "name", "Unknown")
        assert n == 1
        assert users_db.get_by_id("users", "u4")["name"] == "Unknown"

    def test_new_value_is_validated(self, users_db):
        with pytest.raises(TypeMismatchError):
            users_db.update_field_where("users", "id", "u1", "age", "old")

    def test_unknown_fields(self, users_db):
        with pytest.raises(UnknownFieldError):
            users_db.update_field_where("users", "nope", 1, "age", 1)
        with pytest.raises(UnknownFieldError):
            users_db.update_field_where("users", "id", "u1", "nope", 1)

    def test_rekey_primary_key(self, users_db):
        assert users_db.update_field_where("users", "id", "u1", "id", "admin") == 1
        assert users_db.get_by_id("users", "admin")["name"] == "Alice"
        with pytest.raises(RowNotFoundError):
            users_db.get_by_id("users", "u1")

    def test_rekey_collision(self, users_db):
        with pytest.raises(DuplicateKeyError):
            users_db.update_field_where("users", "id", "u1", "id", "u2")

    def test_only_changed_shards_rewritten(self, sharded_db):
        untouched = sharded_db.root / "items" / "000000000000-000000000002.json"
        before = untouched.stat().st_mtime_ns
        assert sharded_db.update_field_where("items", "n", 8, "label", "eight") == 1
        assert untouched.stat().st_mtime_ns == before
        assert sharded_db.get_by_id("items", 8)["label"] == "eight"

    def test_unknown_comparator(self, users_db):
        with pytest.raises(InvalidQueryError, match="Unknown operator"):
            users_db.update_field_where("users", "age", 1, "name", "x", comparator="bogus")

    def test_contains_needs_string_or_array(self, users_db):
        with pytest.raises(InvalidQueryError, match="CONTAINS"):
            users_db.update_field_where("users", "age", 1, "name", "x", comparator="contains")

    def test_contains_on_array(self, users_db):
        n = users_db.update_field_where(
            "users", "tags", "dev", "active", True, comparator="contains"
        )
        assert n == 1
        assert users_db.get_by_id("users", "u2")["active"] is True

    def test_single_match(self, sharded_db):
        n = sharded_db.update_field_where(
            "items", "n", 2, "label", "big", comparator="gt", multi=False
        )
        assert n == 1
        assert [r["n"] for r in sharded_db.get_all("items") if r["label"] == "big"] == [3]

    def test_single_match_no_hits(self, users_db):
        assert users_db.update_field_where("users", "age", 99, "name", "x", multi=False) == 0


class TestUpdateRowWhere:
    def test_merges_partial_row(self, users_db):
        changes = {"active": True, "tags": ["x"]}
        n = users_db.update_row_where("users", "age", 30, changes, comparator=">=")
        assert n == 2
        u1 = users_db.get_by_id("users", "u1")
        assert u1["active"] is True and u1["tags"] == ["x"] and u1["name"] == "Alice"
        assert users_db.get_by_id("users", "u3")["tags"] == ["x"]

    def test_validates_changes(self, users_db):
        with pytest.raises(TypeMismatchError):
            users_db.update_row_where("users", "id", "u1", {"age": "old"})
        with pytest.raises(UnknownFieldError):
            users_db.update_row_where("users", "id", "u1", {"nope": 1})
        assert users_db.get_by_id("users", "u1")["age"] == 30

    def test_null_as_match(self, users_db):
        n = users_db.update_row_where(
            "users", "active", True, {"name": "Flagged"}, match_null_as_match=True
        )
        # u3 (true), u1 and u2 (missing); u4 is false
        assert n == 3
        assert users_db.get_by_id("users", "u4")["name"] == "Dave"

    def test_single_match(self, users_db):
        n = users_db.update_row_where(
            "users", "age", 0, {"name": "Old"}, comparator="gt", multi=False
        )
        assert n == 1
        assert [r["id"] for r in users_db.get_all("users") if r["name"] == "Old"] == ["u1"]

    def test_rekey(self, users_db):
        assert users_db.update_row_where("users", "id", "u2", {"id": "b", "age": 26}) == 1
        assert users_db.get_by_id("users", "b")["age"] == 26
        with pytest.raises(RowNotFoundError):
            users_db.get_by_id("users", "u2")

    def test_each_shard_rewritten_once(self, sharded_db, monkeypatch):
        saved = []
        original = sharded_db.shards.save

        def spy(table, shard):
            saved.append(shard.key)
            original(table, shard)

        monkeypatch.setattr(sharded_db.shards, "save", spy)
        assert sharded_db.update_row_where("items", "n", 4, {"label": None}, comparator="lte") == 5
        assert [k.lo for k in saved] == [0, 3]


class TestUpdateById:
    def test_merges_changes(self, users_db):
        row = users_db.update_by_id("users", "u1", {"age": 31})
        assert row["age"] == 31 and row["name"] == "Alice"
        assert users_db.get_by_id("users", "u1")["age"] == 31

    def test_validates(self, users_db):
        with pytest.raises(TypeMismatchError):
            users_db.update_by_id("users", "u1", {"age": "x"})

    def test_missing(self, users_db):
        with pytest.raises(RowNotFoundError):
            users_db.update_by_id("users", "ghost", {"age": 1})


class TestDelete:
    def test_delete_row_by_id(self, users_db):
        removed = users_db.delete_row_by_id("users", "u2")
        assert removed["name"] == "Bob"
        with pytest.raises(RowNotFoundError):
            users_db.get_by_id("users", "u2")
        assert len(users_db.get_all("users")) == 3

    def test_delete_missing(self, users_db):
        with pytest.raises(RowNotFoundError):
            users_db.delete_row_by_id("users", "ghost")

    def test_deleted_id_can_be_reinserted(self, users_db):
        users_db.delete_row_by_id("users", "u2")
        users_db.insert("users", {"id": "u2", "name": "Bobby"})
        assert users_db.get_by_id("users", "u2")["name"] == "Bobby"

    def test_ordinals_are_not_reused(self, users_db):
        users_db.delete_row_by_id("users", "u4")
        users_db.insert("users", {"id": "u5", "name": "Eve"})
        assert users_db.load_schema("users").next_ordinal == len(USERS) + 1

    def test_delete_by_condition(self, users_db):
        assert users_db.delete_by_condition("users", "age", "gt", 28) == 2
        assert sorted(r["id"] for r in users_db.get_all("users")) == ["u2", "u4"]

    def test_delete_by_condition_across_shards(self, sharded_db):
        assert sharded_db.delete_by_condition("items", "n", Operator.LT, 5) == 5
        assert [r["n"] for r in sharded_db.get_all("items")] == [5, 6, 7, 8, 9]
        # The emptied shard file is rewritten, not removed
        assert (sharded_db.root / "items" / "000000000000-000000000002.json").exists()

    def test_delete_by_condition_unknown_field(self, users_db):
        with pytest.raises(UnknownFieldError):
            users_db.delete_by_condition("users", "nope", "eq", 1)

    def test_delete_by_condition_unknown_operator(self, users_db):
        with pytest.raises(InvalidQueryError):
            users_db.delete_by_condition("users", "age", "~", 1)
        assert len(users_db.get_all("users")) == 4

    def test_delete_by_condition_contains_on_number(self, users_db):
        with pytest.raises(InvalidQueryError):
            users_db.delete_by_condition("users", "age", "contains", 3)

    def test_delete_by_condition_single(self, sharded_db):
        assert sharded_db.delete_by_condition("items", "n", "gte", 4, multi=False) == 1
        assert [r["n"] for r in sharded_db.get_all("items")] == [0, 1, 2, 3, 5, 6, 7, 8, 9]


def test_field_type_enum_in_schema(users_db):
    assert users_db.load_schema("users").fields["tags"].type is FieldType.ARRAY_NULL
