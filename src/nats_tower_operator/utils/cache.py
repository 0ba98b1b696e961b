"""Thread-safe local object cache populated by informers."""

from __future__ import annotations

import threading
from typing import Any, Iterable, Optional


def make_cache_key(namespace: str | None, name: str) -> str:
    """Create a cache key for a Kubernetes object.

    Args:
        namespace: Object namespace (empty or None for cluster-scoped objects)
        name: Object name

    Returns:
        ``namespace/name``, or just ``name`` when there is no namespace
    """
    if namespace:
        return f"{namespace}/{name}"
    return name


def object_key(obj: dict[str, Any]) -> str:
    """Compute the cache key of an object in its JSON dict form.

    Raises:
        ValueError: If the object has no metadata.name
    """
    metadata = obj.get("metadata") or {}
    name = metadata.get("name")
    if not name:
        raise ValueError("object has no metadata.name")
    return make_cache_key(metadata.get("namespace"), name)


class ObjectStore:
    """Keyed store of the last observed state of every watched object.

    Handlers only read from it; writes come exclusively from the informer.
    """

    def __init__(self) -> None:
        self._items: dict[str, dict[str, Any]] = {}
        self._lock = threading.RLock()

    def update(self, obj: dict[str, Any]) -> Optional[dict[str, Any]]:
        """Store the new state and return the previous one, if any."""
        key = object_key(obj)
        with self._lock:
            old = self._items.get(key)
            self._items[key] = obj
        return old

    def delete(self, obj: dict[str, Any]) -> Optional[dict[str, Any]]:
        key = object_key(obj)
        with self._lock:
            return self._items.pop(key, None)

    def get_by_key(self, key: str) -> Optional[dict[str, Any]]:
        with self._lock:
            return self._items.get(key)

    def list(self) -> list[dict[str, Any]]:
        with self._lock:
            return list(self._items.values())

    def list_keys(self) -> list[str]:
        with self._lock:
            return list(self._items.keys())

    def replace(self, objs: Iterable[dict[str, Any]]) -> dict[str, dict[str, Any]]:
        """Replace the whole content and return the previous content by key."""
        items = {object_key(obj): obj for obj in objs}
        with self._lock:
            old = self._items
            self._items = items
        return old

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._items
