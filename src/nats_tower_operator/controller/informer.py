"""List-then-watch adapter maintaining the local object cache of one resource kind."""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional

from kubernetes import client, watch
from kubernetes.client.exceptions import ApiException

from .. import metrics
from ..utils.cache import ObjectStore, object_key

logger = logging.getLogger(__name__)

DEFAULT_WATCH_TIMEOUT_SECONDS = 300
MAX_BACKOFF_SECONDS = 30.0


@dataclass(frozen=True)
class EventHandlers:
    """Callbacks notified by an informer; objects are passed as JSON dicts."""

    on_add: Callable[[dict[str, Any]], None]
    on_update: Callable[[dict[str, Any], dict[str, Any]], None]
    on_delete: Callable[[dict[str, Any]], None]


class ListWatch:
    """Lists and watches one resource kind through a ``kubernetes`` list function.

    Works with typed core list functions (``CoreV1Api.list_pod_for_all_namespaces``)
    as well as custom object list functions, always producing JSON dicts.
    """

    def __init__(
        self,
        api_client: client.ApiClient,
        list_func: Callable[..., Any],
        api_version: str,
        kind: str,
        **list_kwargs: Any,
    ) -> None:
        self.api_client = api_client
        self.list_func = list_func
        self.api_version = api_version
        self.kind = kind
        self.list_kwargs = list_kwargs
        self._watcher: Optional[watch.Watch] = None
        self._lock = threading.Lock()

    def _to_dict(self, obj: Any) -> dict[str, Any]:
        data = obj if isinstance(obj, dict) else self.api_client.sanitize_for_serialization(obj)
        # List items of core kinds come without apiVersion/kind
        if not data.get("apiVersion"):
            data["apiVersion"] = self.api_version
        if not data.get("kind"):
            data["kind"] = self.kind
        return data

    def list(self) -> tuple[list[dict[str, Any]], str]:
        """List all objects.

        Returns:
            The objects and the list's resourceVersion
        """
        result = self.list_func(**self.list_kwargs)
        if isinstance(result, dict):
            items = result.get("items") or []
            resource_version = (result.get("metadata") or {}).get("resourceVersion", "")
        else:
            items = result.items or []
            resource_version = result.metadata.resource_version if result.metadata else ""
        return [self._to_dict(item) for item in items], resource_version or ""

    def watch(self, resource_version: str, timeout_seconds: int) -> Iterator[tuple[str, dict[str, Any]]]:
        """Stream ``(event_type, object)`` pairs starting after ``resource_version``.

        Raises:
            ApiException: On API errors, including 410 when the version expired
        """
        watcher = watch.Watch()
        with self._lock:
            self._watcher = watcher
        try:
            for event in watcher.stream(
                self.list_func,
                resource_version=resource_version,
                timeout_seconds=timeout_seconds,
                **self.list_kwargs,
            ):
                event_type = str(event.get("type", ""))
                raw = event.get("raw_object")
                if raw is None:
                    raw = event.get("object")
                if event_type == "ERROR":
                    status = raw if isinstance(raw, dict) else {}
                    raise ApiException(status=status.get("code", 500), reason=status.get("reason", "watch error"))
                if raw is None:
                    continue
                yield event_type, self._to_dict(raw)
        finally:
            watcher.stop()
            with self._lock:
                if self._watcher is watcher:
                    self._watcher = None

    def stop(self) -> None:
        """Interrupt an open watch stream."""
        with self._lock:
            watcher = self._watcher
        if watcher is not None:
            watcher.stop()


class Informer:
    """Keeps ``store`` in sync with the cluster and notifies event handlers.

    The initial list populates the cache and marks it synced; afterwards the
    informer watches from the list's resourceVersion, re-listing on ``410 Gone``.
    Deleted objects are removed from the cache before handlers are notified.
    """

    def __init__(
        self,
        name: str,
        list_watch: Any,
        resync_period: float = 0.0,
        watch_timeout: int = DEFAULT_WATCH_TIMEOUT_SECONDS,
    ) -> None:
        self.name = name
        self.list_watch = list_watch
        self.resync_period = resync_period
        self.watch_timeout = watch_timeout
        self.store = ObjectStore()
        self._handlers: list[EventHandlers] = []
        self._synced = threading.Event()
        self._terminated = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def add_event_handler(self, handlers: EventHandlers) -> None:
        self._handlers.append(handlers)

    def has_synced(self) -> bool:
        return self._synced.is_set()

    def wait_for_cache_sync(self, stop_event: threading.Event, poll_interval: float = 0.1) -> bool:
        """Block until the initial list has populated the cache.

        Returns:
            False if the stop event fired or the informer gave up first
        """
        while not self._synced.wait(poll_interval):
            if stop_event.is_set() or self._terminated.is_set():
                return False
        return True

    def start(self, stop_event: threading.Event) -> threading.Thread:
        self._thread = threading.Thread(
            target=self.run,
            args=(stop_event,),
            name=f"informer-{self.name}",
            daemon=True,
        )
        self._thread.start()
        return self._thread

    def stop(self) -> None:
        self.list_watch.stop()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _notify(self, action: str, *objs: dict[str, Any]) -> None:
        for handlers in self._handlers:
            callback = getattr(handlers, f"on_{action}")
            try:
                callback(*objs)
            except Exception:
                logger.exception("Event handler for %s of resource '%s' failed", action, self.name)

    def _sync_from_list(self, items: list[dict[str, Any]]) -> None:
        old = self.store.replace(items)
        for obj in items:
            previous = old.pop(object_key(obj), None)
            if previous is None:
                self._notify("add", obj)
            else:
                self._notify("update", previous, obj)
        for obj in old.values():
            self._notify("delete", obj)

    def _handle_event(self, event_type: str, obj: dict[str, Any]) -> None:
        if event_type == "ADDED":
            previous = self.store.update(obj)
            if previous is None:
                self._notify("add", obj)
            else:
                self._notify("update", previous, obj)
        elif event_type == "MODIFIED":
            previous = self.store.update(obj)
            self._notify("update", previous if previous is not None else obj, obj)
        elif event_type == "DELETED":
            previous = self.store.delete(obj)
            self._notify("delete", previous if previous is not None else obj)
        elif event_type == "BOOKMARK":
            pass
        else:
            logger.debug("Ignoring watch event type %s for resource '%s'", event_type, self.name)

    def _resync_loop(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.resync_period):
            for obj in self.store.list():
                self._notify("update", obj, obj)

    def _backoff(self, stop_event: threading.Event, seconds: float) -> float:
        stop_event.wait(seconds * (0.5 + random.random()))  # noqa: S311
        return min(seconds * 2, MAX_BACKOFF_SECONDS)

    def _list(self, stop_event: threading.Event) -> Optional[str]:
        """List with backoff until it succeeds; None means stop."""
        backoff = 1.0
        while not stop_event.is_set():
            try:
                items, resource_version = self.list_watch.list()
                self._sync_from_list(items)
                return resource_version
            except ApiException as exc:
                metrics.watch_errors_total.labels(kind=self.name).inc()
                if exc.status in {401, 403}:
                    logger.error(
                        "Kubernetes API access denied listing resource '%s' (status=%s). "
                        "Check operator RBAC and service account permissions.",
                        self.name,
                        exc.status,
                    )
                    return None
                logger.exception("Listing resource '%s' failed", self.name)
            except Exception:
                metrics.watch_errors_total.labels(kind=self.name).inc()
                logger.exception("Unexpected error listing resource '%s'", self.name)
            backoff = self._backoff(stop_event, backoff)
        return None

    def run(self, stop_event: threading.Event) -> None:
        """List then watch until the stop event is set."""
        try:
            resource_version = self._list(stop_event)
            if resource_version is None:
                return

            self._synced.set()
            metrics.cache_synced.labels(kind=self.name).set(1)
            logger.info("Cache synced for resource '%s' with %d objects", self.name, len(self.store))

            if self.resync_period > 0:
                threading.Thread(
                    target=self._resync_loop,
                    args=(stop_event,),
                    name=f"resync-{self.name}",
                    daemon=True,
                ).start()

            backoff = 1.0
            streams = 0
            while not stop_event.is_set():
                if streams > 0:
                    metrics.watch_reconnects_total.labels(kind=self.name).inc()
                streams += 1
                try:
                    for event_type, obj in self.list_watch.watch(resource_version, self.watch_timeout):
                        if stop_event.is_set():
                            break
                        version = (obj.get("metadata") or {}).get("resourceVersion")
                        if version:
                            resource_version = version
                        self._handle_event(event_type, obj)
                    backoff = 1.0
                except ApiException as exc:
                    if exc.status == 410:
                        logger.warning("Watch of resource '%s' expired, re-listing", self.name)
                        relisted = self._list(stop_event)
                        if relisted is None:
                            return
                        resource_version = relisted
                        continue
                    metrics.watch_errors_total.labels(kind=self.name).inc()
                    if exc.status in {401, 403}:
                        logger.error(
                            "Kubernetes API watch of resource '%s' denied (status=%s). "
                            "Check operator RBAC and service account permissions.",
                            self.name,
                            exc.status,
                        )
                        return
                    logger.exception("Watch of resource '%s' failed", self.name)
                    backoff = self._backoff(stop_event, backoff)
                except Exception:
                    metrics.watch_errors_total.labels(kind=self.name).inc()
                    logger.exception("Unexpected watch error for resource '%s'", self.name)
                    backoff = self._backoff(stop_event, backoff)
        finally:
            self._terminated.set()
            metrics.cache_synced.labels(kind=self.name).set(0)
