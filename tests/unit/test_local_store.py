# =============================================================================
# tests/unit/test_local_store.py
# Unit Tests for the SQLite key-value store
# =============================================================================

import sqlite3

from shopfloor_core.offline import LocalKeys, LocalStore, NO_CHANGE


class TestLocalStoreReadWrite:

    def test_missing_key_returns_copy_of_default(self, local_store):
        default = []
        value = local_store.read(LocalKeys.JOBS, default)
        value.append("x")

        assert default == []

    def test_write_then_read(self, local_store):
        local_store.write(LocalKeys.JOBS, [{"id": "a"}])
        assert local_store.read(LocalKeys.JOBS) == [{"id": "a"}]

    def test_values_survive_reopen(self, tmp_path):
        path = tmp_path / "persist.db"
        first = LocalStore(path)
        first.write(LocalKeys.SETTINGS, {"lunchStart": "11:30"})
        first.close()

        second = LocalStore(path)
        assert second.read(LocalKeys.SETTINGS) == {"lunchStart": "11:30"}
        second.close()

    def test_corrupt_value_reads_as_default(self, local_store):
        conn = sqlite3.connect(str(local_store.db_path))
        conn.execute(
            "INSERT OR REPLACE INTO kv_store (namespace, key, value) VALUES (?, ?, ?)",
            (local_store.namespace, LocalKeys.USERS, "{not json"),
        )
        conn.commit()
        conn.close()

        assert local_store.read(LocalKeys.USERS, []) == []

    def test_namespaces_are_isolated(self, tmp_path):
        path = tmp_path / "shared.db"
        a = LocalStore(path, namespace="a")
        b = LocalStore(path, namespace="b")
        a.write("k", 1)

        assert b.read("k") is None
        a.close()
        b.close()


class TestLocalStoreMutate:

    def test_mutate_applies_function(self, local_store):
        local_store.write(LocalKeys.JOBS, [{"id": "a"}])
        result = local_store.mutate(LocalKeys.JOBS, lambda docs: docs + [{"id": "b"}], [])

        assert [d["id"] for d in result] == ["a", "b"]
        assert local_store.read(LocalKeys.JOBS) == result

    def test_no_change_skips_write_and_notification(self, local_store):
        seen = []
        local_store.watch(LocalKeys.JOBS, seen.append)

        local_store.mutate(LocalKeys.JOBS, lambda docs: NO_CHANGE, [])

        assert seen == []
        assert local_store.read(LocalKeys.JOBS) is None

    def test_exception_leaves_value_untouched(self, local_store):
        local_store.write(LocalKeys.JOBS, [{"id": "a"}])

        def boom(docs):
            raise RuntimeError("nope")

        try:
            local_store.mutate(LocalKeys.JOBS, boom, [])
        except RuntimeError:
            pass
        assert local_store.read(LocalKeys.JOBS) == [{"id": "a"}]


class TestLocalStoreWatch:

    def test_watchers_receive_full_value(self, local_store):
        seen = []
        local_store.watch(LocalKeys.LOGS, seen.append)

        local_store.write(LocalKeys.LOGS, [{"id": "1"}])
        local_store.write(LocalKeys.LOGS, [{"id": "1"}, {"id": "2"}])

        assert seen == [[{"id": "1"}], [{"id": "1"}, {"id": "2"}]]

    def test_unwatch_stops_delivery(self, local_store):
        seen = []
        unwatch = local_store.watch(LocalKeys.LOGS, seen.append)
        unwatch()

        local_store.write(LocalKeys.LOGS, [])
        assert seen == []
        assert local_store.watcher_count(LocalKeys.LOGS) == 0

    def test_failing_watcher_does_not_block_others(self, local_store):
        seen = []

        def broken(value):
            raise ValueError("bad subscriber")

        local_store.watch(LocalKeys.JOBS, broken)
        local_store.watch(LocalKeys.JOBS, seen.append)
        local_store.write(LocalKeys.JOBS, [])

        assert seen == [[]]

    def test_delete_notifies_none(self, local_store):
        seen = []
        local_store.write(LocalKeys.REMOTE_CONFIG, {"url": "x"})
        local_store.watch(LocalKeys.REMOTE_CONFIG, seen.append)
        local_store.delete(LocalKeys.REMOTE_CONFIG)

        assert seen == [None]
        assert local_store.read(LocalKeys.REMOTE_CONFIG) is None


def test_to_dataframe(local_store):
    local_store.write(LocalKeys.JOBS, [{"id": "a", "quantity": 3}, {"id": "b", "quantity": 4}])
    df = local_store.to_dataframe(LocalKeys.JOBS)

    assert list(df["id"]) == ["a", "b"]
    assert df["quantity"].sum() == 7
