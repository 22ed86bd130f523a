"""
Live in-memory views over store snapshots.

A view subscribes once and replaces its working set with every snapshot the store
pushes. When a refresh fails the previous snapshot stays in place (stale but
available) and the error is kept for display. Once started, the container's views
serve the repositories' list reads, so a failed store read does not reach users
while a snapshot is held.
"""

from __future__ import annotations

import logging
from typing import Callable, Generic, List, Optional, TypeVar

from repositories.store import ErrorListener, Unsubscribe

logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscribe = Callable[[Callable[[List[T]], None], Optional[ErrorListener]], Unsubscribe]


class LiveCollectionView(Generic[T]):
    def __init__(self, name: str, subscribe: Subscribe) -> None:
        self.name = name
        self._subscribe = subscribe
        self._items: List[T] = []
        self._unsubscribe: Optional[Unsubscribe] = None
        self._listeners: List[Callable[[List[T]], None]] = []
        self.last_error: Optional[Exception] = None
        self.snapshot_count = 0

    @property
    def items(self) -> List[T]:
        return list(self._items)

    @property
    def is_stale(self) -> bool:
        return self.last_error is not None

    @property
    def is_live(self) -> bool:
        return self._unsubscribe is not None and self.snapshot_count > 0

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._subscribe(self._on_snapshot, self._on_error)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def add_listener(self, listener: Callable[[List[T]], None]) -> None:
        self._listeners.append(listener)

    def _on_snapshot(self, items: List[T]) -> None:
        self._items = list(items)
        self.last_error = None
        self.snapshot_count += 1
        for listener in list(self._listeners):
            try:
                listener(self.items)
            except Exception:
                logger.exception("View listener failed for %s", self.name)

    def _on_error(self, exc: Exception) -> None:
        self.last_error = exc
        logger.warning(
            "Live view kept its last snapshot after a store error",
            extra={"view": self.name, "error": str(exc), "items": len(self._items)},
        )


__all__ = ["LiveCollectionView"]
