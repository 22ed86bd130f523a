"""
Document store interface.

Every collection (leads, staff, system logs) is consumed through this narrow shape:
- get_all / get read the current documents.
- upsert(id, fields) is a merge-patch: only the given fields change, other fields
  written concurrently by another session are preserved. A missing id is created.
- batch_upsert applies many merge-patches and returns the number of records the
  store reports as mutated.
- subscribe registers a listener that receives the full current snapshot on every
  change. The core never diffs; each snapshot replaces the previous one.

InMemoryCollection implements the interface for local runs and tests.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, TypeVar

logger = logging.getLogger(__name__)

Document = Dict[str, Any]
SnapshotListener = Callable[[List[Document]], None]
T_co = TypeVar("T_co", covariant=True)
ErrorListener = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class SnapshotSource(Protocol[T_co]):
    """A subscribed in-memory copy of a collection that list reads can be served from."""

    @property
    def is_live(self) -> bool:
        ...

    @property
    def items(self) -> List[T_co]:
        ...


class StoreError(RuntimeError):
    """
    Raised when the backing store rejects a read or write.

    mutated carries the number of records written before the failure, so batch
    callers can report the actual count instead of assuming all-or-nothing.
    """

    def __init__(self, message: str, mutated: int = 0):
        self.mutated = mutated
        super().__init__(message)


class DocumentCollection(Protocol):
    name: str
    id_field: str

    def get_all(self) -> List[Document]:
        ...

    def get(self, doc_id: str) -> Optional[Document]:
        ...

    def upsert(self, doc_id: str, fields: Mapping[str, Any]) -> None:
        ...

    def delete(self, doc_id: str) -> None:
        ...

    def batch_upsert(self, items: Sequence[Tuple[str, Mapping[str, Any]]]) -> int:
        ...

    def subscribe(
        self, listener: SnapshotListener, on_error: Optional[ErrorListener] = None
    ) -> Unsubscribe:
        ...


class InMemoryCollection:
    """
    Process-local collection with merge-patch writes and push snapshots.

    Documents are kept in insertion order; snapshots are deep copies so listeners
    can never alter stored state.
    """

    def __init__(self, name: str, id_field: str = "id") -> None:
        self.name = name
        self.id_field = id_field
        self._docs: Dict[str, Document] = {}
        self._listeners: List[Tuple[SnapshotListener, Optional[ErrorListener]]] = []

    def get_all(self) -> List[Document]:
        return [copy.deepcopy(doc) for doc in self._docs.values()]

    def get(self, doc_id: str) -> Optional[Document]:
        doc = self._docs.get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def upsert(self, doc_id: str, fields: Mapping[str, Any]) -> None:
        self._merge(doc_id, fields)
        self._publish()

    def delete(self, doc_id: str) -> None:
        if self._docs.pop(doc_id, None) is not None:
            self._publish()

    def batch_upsert(self, items: Sequence[Tuple[str, Mapping[str, Any]]]) -> int:
        if not items:
            return 0
        touched = set()
        for doc_id, fields in items:
            self._merge(doc_id, fields)
            touched.add(doc_id)
        self._publish()
        return len(touched)

    def subscribe(
        self, listener: SnapshotListener, on_error: Optional[ErrorListener] = None
    ) -> Unsubscribe:
        entry = (listener, on_error)
        self._listeners.append(entry)
        listener(self.get_all())

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe

    def _merge(self, doc_id: str, fields: Mapping[str, Any]) -> None:
        doc = self._docs.setdefault(doc_id, {self.id_field: doc_id})
        doc.update(copy.deepcopy(dict(fields)))
        doc[self.id_field] = doc_id

    def _publish(self) -> None:
        for listener, _ in list(self._listeners):
            try:
                listener(self.get_all())
            except Exception:
                logger.exception("Snapshot listener failed for collection %s", self.name)


__all__ = [
    "Document",
    "DocumentCollection",
    "ErrorListener",
    "InMemoryCollection",
    "SnapshotListener",
    "SnapshotSource",
    "StoreError",
    "Unsubscribe",
]
