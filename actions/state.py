from __future__ import annotations

import copy
import threading
import time
from typing import Any, Callable, Iterable, Optional


class DataState:
    """
    In-memory copy of the loaded collections, one tuple per entity type.

    Reads hand out deep copies so callers can't mutate cached entities. The
    mutation methods below are the only way to change a collection; the lock
    guards the in-memory swap only and is never held across a store call.
    """

    def __init__(self, entity_types: Iterable[str]):
        self._lock = threading.RLock()
        self._collections: dict[str, tuple[dict[str, Any], ...]] = {t: () for t in entity_types}
        self.loaded_at: Optional[float] = None

    @property
    def loaded(self) -> bool:
        return self.loaded_at is not None

    def age_seconds(self) -> float:
        if self.loaded_at is None:
            return float("inf")
        return time.monotonic() - self.loaded_at

    def all(self, entity_type: str) -> list[dict[str, Any]]:
        return copy.deepcopy(list(self._collections[entity_type]))

    def filter(self, entity_type: str, predicate: Callable[[dict[str, Any]], bool]) -> list[dict[str, Any]]:
        return copy.deepcopy([x for x in self._collections[entity_type] if predicate(x)])

    def find(self, entity_type: str, entity_id: Any) -> Optional[dict[str, Any]]:
        for item in self._collections[entity_type]:
            if item.get("id") == entity_id:
                return copy.deepcopy(item)
        return None

    def load(self, collections: dict[str, list[dict[str, Any]]]) -> None:
        with self._lock:
            for entity_type, items in collections.items():
                self._collections[entity_type] = tuple(items)
            self.loaded_at = time.monotonic()

    def prepend(self, entity_type: str, item: dict[str, Any]) -> None:
        item = copy.deepcopy(item)
        with self._lock:
            rest = tuple(x for x in self._collections[entity_type] if x.get("id") != item.get("id"))
            self._collections[entity_type] = (item,) + rest

    def put(self, entity_type: str, item: dict[str, Any]) -> None:
        item = copy.deepcopy(item)
        with self._lock:
            items = self._collections[entity_type]
            if any(x.get("id") == item.get("id") for x in items):
                self._collections[entity_type] = tuple(item if x.get("id") == item.get("id") else x for x in items)
            else:
                self._collections[entity_type] = (item,) + items

    def remove(self, entity_type: str, entity_id: Any) -> None:
        with self._lock:
            self._collections[entity_type] = tuple(
                x for x in self._collections[entity_type] if x.get("id") != entity_id
            )
