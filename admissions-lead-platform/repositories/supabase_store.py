"""
Supabase-backed document collection.

Implements the store interface from repositories.store on top of a Supabase table:
- Writes are PostgREST upserts (merge-duplicates), so only the columns present in a
  patch are changed on an existing row.
- Listeners receive a fresh full snapshot after local writes and whenever refresh()
  is called (the realtime bridge in repositories.realtime calls it on remote changes).
- A failed refresh keeps subscribers on their last snapshot and notifies their
  error callbacks.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import httpx
from postgrest.exceptions import APIError

from repositories.store import (
    Document,
    ErrorListener,
    SnapshotListener,
    StoreError,
    Unsubscribe,
)

logger = logging.getLogger(__name__)


def _execute(query: Any, action: str) -> List[Document]:
    """Run a PostgREST query and return its rows, raising StoreError on failure."""

    try:
        response = query.execute()
    except APIError as exc:
        raise StoreError(f"Failed to {action}: {exc.message or exc}") from exc
    except httpx.HTTPError as exc:
        raise StoreError(f"Failed to {action}: {type(exc).__name__}: {exc}") from exc
    error = getattr(response, "error", None)
    if error:
        raise StoreError(f"Failed to {action}: {error}")
    return list(getattr(response, "data", None) or [])


class SupabaseCollection:
    def __init__(
        self,
        client: Any,
        table: str,
        id_field: str,
        order_by: Optional[str] = None,
    ) -> None:
        self.client = client
        self.name = table
        self.id_field = id_field
        self._order_by = order_by
        self._listeners: List[Tuple[SnapshotListener, Optional[ErrorListener]]] = []

    def get_all(self) -> List[Document]:
        query = self.client.table(self.name).select("*")
        if self._order_by:
            query = query.order(self._order_by)
        return _execute(query, f"list {self.name}")

    def get(self, doc_id: str) -> Optional[Document]:
        query = (
            self.client.table(self.name)
            .select("*")
            .eq(self.id_field, doc_id)
            .limit(1)
        )
        rows = _execute(query, f"fetch {self.name} record")
        return rows[0] if rows else None

    def upsert(self, doc_id: str, fields: Mapping[str, Any]) -> None:
        payload = {**fields, self.id_field: doc_id}
        _execute(
            self.client.table(self.name).upsert(payload, on_conflict=self.id_field),
            f"upsert {self.name} record",
        )
        self._notify()

    def delete(self, doc_id: str) -> None:
        _execute(
            self.client.table(self.name).delete().eq(self.id_field, doc_id),
            f"delete {self.name} record",
        )
        self._notify()

    def batch_upsert(self, items: Sequence[Tuple[str, Mapping[str, Any]]]) -> int:
        """
        Upsert many patches, one request per distinct column set.

        PostgREST fills columns missing from a bulk payload with defaults, so patches
        with different keys must not share a request.
        """

        if not items:
            return 0

        groups: Dict[frozenset, List[Document]] = {}
        for doc_id, fields in items:
            payload = {**fields, self.id_field: doc_id}
            groups.setdefault(frozenset(payload), []).append(payload)

        mutated = 0
        try:
            for payloads in groups.values():
                rows = _execute(
                    self.client.table(self.name).upsert(payloads, on_conflict=self.id_field),
                    f"bulk upsert {len(payloads)} {self.name} records",
                )
                mutated += len(rows)
        except StoreError as exc:
            raise StoreError(str(exc), mutated=mutated) from exc
        finally:
            if mutated:
                self._notify()
        return mutated

    def subscribe(
        self, listener: SnapshotListener, on_error: Optional[ErrorListener] = None
    ) -> Unsubscribe:
        entry = (listener, on_error)
        self._listeners.append(entry)
        self._deliver([entry])

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe

    def refresh(self) -> None:
        """Push the current table contents to every subscriber."""

        self._deliver(list(self._listeners))

    def _notify(self) -> None:
        if self._listeners:
            self.refresh()

    def _deliver(self, entries: List[Tuple[SnapshotListener, Optional[ErrorListener]]]) -> None:
        try:
            snapshot = self.get_all()
        except StoreError as exc:
            logger.warning(
                "Snapshot refresh failed; subscribers keep their last snapshot",
                extra={"table": self.name, "error": str(exc)},
            )
            for _, on_error in entries:
                if on_error is not None:
                    on_error(exc)
            return

        for listener, _ in entries:
            try:
                listener(list(snapshot))
            except Exception:
                logger.exception("Snapshot listener failed for table %s", self.name)


__all__ = ["SupabaseCollection"]
