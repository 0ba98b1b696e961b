"""Generic reconciliation controller for one watched resource kind."""

from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from .. import metrics
from ..config import Resource
from ..constants import MAX_NUM_REQUEUES
from ..exceptions import CacheSyncError
from ..models import WatchedObject
from ..selector import SelectorQuery
from ..tracing import trace_span
from ..utils.cache import object_key
from ..utils.errors import sanitize_exception
from ..utils.rate_limit import RateLimiter
from .informer import EventHandlers, Informer
from .workqueue import RateLimitingQueue

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=WatchedObject)


class ActionType(str, enum.Enum):
    """What happened to the watched object."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class EventItem:
    """Unit of work: the object's cache key and the action that triggered it."""

    key: str
    action_type: ActionType


@dataclass(frozen=True)
class ResourceKind(Generic[T]):
    """Decodes cached JSON objects of one kind into their typed view."""

    name: str
    decode: Callable[[dict[str, Any]], T]


Handler = Callable[[Informer, EventItem, T], None]
ErrorHandler = Callable[[EventItem, BaseException], None]


class Controller(Generic[T]):
    """Turns informer notifications into serialized, retried handler calls.

    Create and update notifications are queued by key and handled by worker
    threads, which resolve the current object from the informer cache. Delete
    notifications are handled synchronously on the informer thread with the
    last known object, because the object is gone from the cache afterwards;
    a failing delete is logged and not retried.

    A failed item is requeued with per-item exponential backoff until it has
    been requeued ``max_requeues`` times, after which it is dropped and
    reported to ``on_error``.
    """

    def __init__(
        self,
        resource: Resource,
        kind: ResourceKind[T],
        handler: Handler[T],
        informer: Informer,
        rate_limiter: RateLimiter | None = None,
        max_requeues: int = MAX_NUM_REQUEUES,
        on_error: ErrorHandler | None = None,
    ) -> None:
        self.resource = resource
        self.kind = kind
        self.handler = handler
        self.informer = informer
        self.max_requeues = max_requeues
        self.on_error = on_error or self._log_error
        self.selector = SelectorQuery(resource.selector.query)
        self.queue = RateLimitingQueue(rate_limiter, name=resource.kind)
        self._workers: list[threading.Thread] = []

        informer.add_event_handler(
            EventHandlers(
                on_add=self._on_add,
                on_update=self._on_update,
                on_delete=self._on_delete,
            )
        )

    def _log_error(self, item: EventItem, error: BaseException) -> None:
        logger.error(
            "Error syncing '%s' of resource '%s': %s",
            item.key,
            self.resource.kind,
            sanitize_exception(error),
        )

    def enqueue(self, obj: dict[str, Any], action_type: ActionType) -> None:
        try:
            key = object_key(obj)
        except ValueError:
            logger.warning("Ignoring %s event without a name for resource '%s'", action_type.value, self.resource.kind)
            return
        metrics.workqueue_adds_total.labels(kind=self.resource.kind, action=action_type.value).inc()
        self.queue.add(EventItem(key=key, action_type=action_type))

    def _on_add(self, obj: dict[str, Any]) -> None:
        self.enqueue(obj, ActionType.CREATE)

    def _on_update(self, old: dict[str, Any], new: dict[str, Any]) -> None:
        self.enqueue(new, ActionType.UPDATE)

    def _on_delete(self, obj: dict[str, Any]) -> None:
        try:
            item = EventItem(key=object_key(obj), action_type=ActionType.DELETE)
        except ValueError:
            return
        try:
            self._object_handler(obj, item)
        except Exception as exc:
            logger.error(
                "Error deleting item '%s' of resource '%s': %s",
                item.key,
                self.resource.kind,
                sanitize_exception(exc),
            )

    def wait_for_cache_sync(self, stop_event: threading.Event) -> None:
        """Block until the informer cache holds the initial list.

        Raises:
            CacheSyncError: If stopped before the cache synced
        """
        logger.info("Waiting for informer cache to sync for resource '%s'", self.resource.kind)
        if not self.informer.wait_for_cache_sync(stop_event):
            raise CacheSyncError(f"failed to wait for caches to sync for resource '{self.resource.kind}'")

    def run(self, workers: int, stop_event: threading.Event | None = None) -> None:
        """Start worker threads; call only after the cache has synced.

        When a stop event is given the queue is shut down once it fires.
        """
        logger.info("Starting %d workers for resource '%s'", workers, self.resource.kind)
        for i in range(workers):
            thread = threading.Thread(
                target=self._run_worker,
                name=f"worker-{self.resource.kind}-{i}",
                daemon=True,
            )
            thread.start()
            self._workers.append(thread)
        if stop_event is not None:
            threading.Thread(
                target=self._shut_down_on,
                args=(stop_event,),
                name=f"stop-{self.resource.kind}",
                daemon=True,
            ).start()
        logger.info("Started workers for resource '%s'", self.resource.kind)

    def _shut_down_on(self, stop_event: threading.Event) -> None:
        stop_event.wait()
        self.queue.shut_down()

    def shutdown(self, timeout: float | None = None) -> None:
        """Stop handing out items and wait for in-flight handler calls."""
        logger.info("Shutting down controller for resource '%s'", self.resource.kind)
        self.queue.shut_down()
        for thread in self._workers:
            thread.join(timeout)
        logger.info("Closed controller for resource '%s'", self.resource.kind)

    def _run_worker(self) -> None:
        while self._process_next_work_item():
            pass

    def _process_next_work_item(self) -> bool:
        item, shutdown = self.queue.get()
        if shutdown:
            return False

        try:
            if not isinstance(item, EventItem):
                self.queue.forget(item)
                logger.error("Expected event item of resource '%s' in workqueue but got %r", self.resource.kind, item)
                return True

            try:
                self._sync_handler(item)
            except Exception as exc:
                if self.queue.num_requeues(item) >= self.max_requeues:
                    self.queue.forget(item)
                    metrics.workqueue_dropped_total.labels(kind=self.resource.kind).inc()
                    logger.error(
                        "Giving up on '%s' of resource '%s' after %d requeues",
                        item.key,
                        self.resource.kind,
                        self.max_requeues,
                    )
                    self.on_error(item, exc)
                    return True

                self.queue.add_rate_limited(item)
                metrics.workqueue_retries_total.labels(kind=self.resource.kind).inc()
                logger.warning(
                    "Error syncing '%s' of resource '%s': %s, requeuing",
                    item.key,
                    self.resource.kind,
                    sanitize_exception(exc),
                )
                return True

            self.queue.forget(item)
            return True
        finally:
            self.queue.done(item)

    def _sync_handler(self, item: EventItem) -> None:
        obj = self.informer.store.get_by_key(item.key)
        if obj is None:
            logger.info("'%s' of resource '%s' in work queue no longer exists", item.key, self.resource.kind)
            return
        self._object_handler(obj, item)

    def _object_handler(self, obj: dict[str, Any], item: EventItem) -> None:
        structured = self.kind.decode(obj)

        if self.selector and not self.selector.matches(obj):
            logger.debug("Selector skipped '%s' of resource '%s'", item.key, self.resource.kind)
            return

        start_time = time.time()
        try:
            with trace_span(
                "handle_event",
                kind=self.resource.kind,
                attributes={"event.key": item.key, "event.action": item.action_type.value},
            ):
                self.handler(self.informer, item, structured)
            metrics.reconcile_total.labels(kind=self.resource.kind, result="success").inc()
        except Exception as exc:
            metrics.reconcile_total.labels(kind=self.resource.kind, result="error").inc()
            metrics.error_total.labels(kind=self.resource.kind, error_type=type(exc).__name__).inc()
            raise
        finally:
            metrics.reconcile_duration_seconds.labels(kind=self.resource.kind).observe(time.time() - start_time)


__all__ = [
    "ActionType",
    "Controller",
    "ErrorHandler",
    "EventItem",
    "Handler",
    "ResourceKind",
]
