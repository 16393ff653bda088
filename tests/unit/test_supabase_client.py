# =============================================================================
# tests/unit/test_supabase_client.py
# Unit Tests for the Supabase-backed document store
# =============================================================================

from unittest.mock import MagicMock

import pytest

from shopfloor_core.config import RemoteConfig
from shopfloor_core.data import RemoteStore, create_remote_store
from shopfloor_core.errors import RecordNotFoundError


def _rows(*documents):
    return [{"id": d["id"], "data": d} for d in documents]


class TestRemoteStoreReads:

    def test_fetch_all_unwraps_documents(self, mock_supabase):
        chain = mock_supabase.table.return_value.select.return_value.order.return_value.range.return_value
        chain.execute.return_value.data = _rows({"id": "a", "poNumber": "PO-1"})

        documents = RemoteStore(mock_supabase).fetch_all("jobs")

        assert documents == [{"id": "a", "poNumber": "PO-1"}]
        mock_supabase.table.assert_called_with("jobs")

    def test_fetch_all_pages(self, mock_supabase):
        store = RemoteStore(mock_supabase)
        store.BATCH_SIZE = 2
        chain = mock_supabase.table.return_value.select.return_value.order.return_value.range.return_value
        chain.execute.side_effect = [
            MagicMock(data=_rows({"id": "a"}, {"id": "b"})),
            MagicMock(data=_rows({"id": "c"})),
        ]

        assert [d["id"] for d in store.fetch_all("logs")] == ["a", "b", "c"]

    def test_get_missing(self, mock_supabase):
        chain = mock_supabase.table.return_value.select.return_value.eq.return_value.limit.return_value
        chain.execute.return_value.data = []

        assert RemoteStore(mock_supabase).get("jobs", "nope") is None

    def test_row_id_fills_document_id(self):
        assert RemoteStore._document({"id": "x", "data": {"poNumber": "P"}}) == {"id": "x", "poNumber": "P"}


class TestRemoteStoreWrites:

    def test_set_without_merge_upserts_document(self, mock_supabase):
        RemoteStore(mock_supabase).set("__debug", "test", {"status": "ok"}, merge=False)

        payload = mock_supabase.table.return_value.upsert.call_args[0][0]
        assert payload["id"] == "test"
        assert payload["data"] == {"status": "ok", "id": "test"}
        assert "updated_at" in payload

    def test_set_merges_existing(self, mock_supabase):
        chain = mock_supabase.table.return_value.select.return_value.eq.return_value.limit.return_value
        chain.execute.return_value.data = _rows({"id": "j", "poNumber": "PO-1", "quantity": 1})

        document = RemoteStore(mock_supabase).set("jobs", "j", {"quantity": 5})

        assert document == {"id": "j", "poNumber": "PO-1", "quantity": 5}

    def test_update_missing_raises(self, mock_supabase):
        chain = mock_supabase.table.return_value.select.return_value.eq.return_value.limit.return_value
        chain.execute.return_value.data = []

        with pytest.raises(RecordNotFoundError):
            RemoteStore(mock_supabase).update("jobs", "nope", {"status": "completed"})

    def test_delete_where_filters_on_json_field(self, mock_supabase):
        RemoteStore(mock_supabase).delete_where("logs", "jobId", "job-1")

        mock_supabase.table.return_value.delete.return_value.eq.assert_called_with("data->>jobId", "job-1")

    def test_library_errors_propagate(self, mock_supabase):
        mock_supabase.table.return_value.delete.return_value.eq.return_value.execute.side_effect = RuntimeError("503")

        with pytest.raises(RuntimeError):
            RemoteStore(mock_supabase).delete("jobs", "x")


def test_create_remote_store_without_credentials():
    assert create_remote_store(RemoteConfig()) is None
