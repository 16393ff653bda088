# =============================================================================
# shopfloor_core/data/supabase_client.py
# Supabase-backed document store for jobs, logs, users and settings
# =============================================================================
"""
The remote store keeps one document per row::

    create table jobs (
        id text primary key,
        data jsonb not null,
        updated_at timestamptz default now()
    );

and the same for ``logs``, ``users``, ``settings`` and ``__debug``.
``scripts/create_remote_tables.py`` prints the full DDL.

Errors from the client library (``postgrest.exceptions.APIError``,
``httpx`` transport errors) are not caught here; the data service
classifies them so connectivity status is tracked in one place.
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from shopfloor_core.config import RemoteConfig
from shopfloor_core.errors import ConfigurationError, RecordNotFoundError
from shopfloor_core.logging import get_logger

logger = get_logger(__name__)

COLLECTIONS = ("jobs", "logs", "users", "settings", "__debug")


def create_remote_store(config: RemoteConfig) -> Optional[RemoteStore]:
    """
    Build a RemoteStore from credentials.

    Returns:
        RemoteStore, or None when no credentials are configured

    Raises:
        ConfigurationError: credentials are present but rejected by the client
    """
    if not config.is_configured:
        return None

    from supabase import create_client

    try:
        client = create_client(config.url, config.key)
    except Exception as e:
        raise ConfigurationError(
            f"Invalid remote configuration: {e}", config_key="supabase"
        ) from e

    logger.info(f"Supabase client created for {config.url[:40]}")
    return RemoteStore(client)


class RemoteStore:
    """
    Document-style CRUD over Supabase tables.

    Usage:
        store = RemoteStore(create_client(url, key))
        store.set("jobs", job.id, job.to_dict())
        docs = store.fetch_all("jobs")
    """

    BATCH_SIZE = 1000  # Supabase caps a single select at 1000 rows

    def __init__(self, client):
        self.client = client

    def _table(self, collection: str):
        return self.client.table(collection)

    def fetch_all(self, collection: str) -> List[Dict[str, Any]]:
        """
        Fetch every document in a collection (pages past the 1000 row limit).
        """
        documents: List[Dict[str, Any]] = []
        offset = 0

        while True:
            response = (
                self._table(collection)
                .select("id, data")
                .order("id")
                .range(offset, offset + self.BATCH_SIZE - 1)
                .execute()
            )
            rows = response.data or []
            documents.extend(self._document(row) for row in rows)
            if len(rows) < self.BATCH_SIZE:
                break
            offset += self.BATCH_SIZE

        return documents

    def fetch_first(self, collection: str) -> List[Dict[str, Any]]:
        """Bounded read of at most one document; used to verify read access."""
        response = self._table(collection).select("id, data").limit(1).execute()
        return [self._document(row) for row in response.data or []]

    def find(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]:
        """Documents whose top-level ``field`` equals ``value``."""
        response = (
            self._table(collection)
            .select("id, data")
            .eq(f"data->>{field}", str(value))
            .execute()
        )
        return [self._document(row) for row in response.data or []]

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Fetch one document by id, or None."""
        response = (
            self._table(collection)
            .select("id, data")
            .eq("id", doc_id)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        return self._document(rows[0]) if rows else None

    def set(
        self,
        collection: str,
        doc_id: str,
        data: Dict[str, Any],
        merge: bool = True,
    ) -> Dict[str, Any]:
        """
        Write a document. With ``merge`` the fields are layered over any
        existing document instead of replacing it.
        """
        document = dict(data)
        if merge:
            existing = self.get(collection, doc_id)
            if existing:
                document = {**existing, **data}
        document["id"] = doc_id

        self._table(collection).upsert({
            "id": doc_id,
            "data": document,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }).execute()
        return document

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply ``fields`` to an existing document.

        Raises:
            RecordNotFoundError: no document with this id
        """
        existing = self.get(collection, doc_id)
        if existing is None:
            raise RecordNotFoundError(
                f"No {collection} document with id {doc_id}",
                collection=collection,
                record_id=doc_id,
            )
        return self.set(collection, doc_id, {**existing, **fields}, merge=False)

    def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document by id (no error if absent)."""
        self._table(collection).delete().eq("id", doc_id).execute()

    def delete_where(self, collection: str, field: str, value: Any) -> None:
        """Delete every document whose ``field`` equals ``value``."""
        self._table(collection).delete().eq(f"data->>{field}", str(value)).execute()

    def cleanup(self) -> None:
        """Close the underlying HTTP session."""
        try:
            postgrest = getattr(self.client, "postgrest", None)
            session = getattr(postgrest, "session", None)
            if session is not None and hasattr(session, "close"):
                session.close()
        except Exception as e:
            logger.debug(f"Ignoring error while closing Supabase session: {e}")

    @staticmethod
    def _document(row: Dict[str, Any]) -> Dict[str, Any]:
        document = dict(row.get("data") or {})
        document.setdefault("id", row.get("id"))
        return document
