"""Tests for the reconciliation controller."""

from __future__ import annotations

import threading
import time
from unittest.mock import MagicMock

import pytest

from nats_tower_operator.config import Resource, Selector
from nats_tower_operator.controller import ActionType, Controller, EventItem, Informer, ResourceKind
from nats_tower_operator.exceptions import CacheSyncError, SelectorError
from nats_tower_operator.models import Pod
from nats_tower_operator.utils.rate_limit import ItemExponentialFailureRateLimiter


@pytest.fixture
def controllers():
    """Shut down every controller created by a test."""
    created = []
    yield created
    for controller in created:
        controller.shutdown(timeout=2)


@pytest.fixture
def build(controllers, stop_event):
    """Build a started informer and its controller for a fake list-watch."""

    def factory(list_watch, handler, query="", on_error=None, start_informer=True):
        informer = Informer("v1/pods", list_watch)
        controller = Controller(
            Resource(kind="v1/pods", selector=Selector(query=query)),
            ResourceKind("v1/pods", Pod.from_dict),
            handler,
            informer,
            rate_limiter=ItemExponentialFailureRateLimiter(base_delay=0.001, max_delay=0.01),
            on_error=on_error,
        )
        controllers.append(controller)
        if start_informer:
            informer.start(stop_event)
        return controller

    return factory


class Calls:
    """Thread-safe record of handler invocations."""

    def __init__(self, error: Exception | None = None, fail_times: int = 0):
        self.items: list[tuple[EventItem, Pod, str]] = []
        self.error = error
        self.fail_times = fail_times
        self.lock = threading.Lock()

    def __call__(self, informer, item, obj):
        with self.lock:
            self.items.append((item, obj, threading.current_thread().name))
            count = len(self.items)
        if self.error is not None and (self.fail_times == 0 or count <= self.fail_times):
            raise self.error

    def __len__(self):
        with self.lock:
            return len(self.items)


class TestCacheSyncOrdering:
    """Test cases for starting workers only after the cache synced."""

    def test_no_handler_calls_before_sync(self, build, list_watch_factory, object_factory, stop_event, wait_until):
        """Test handlers only run once the initial list completed."""
        gate = threading.Event()
        calls = Calls()
        controller = build(list_watch_factory([object_factory(name="a")], gate=gate), calls)

        def start():
            controller.wait_for_cache_sync(stop_event)
            controller.run(1)

        threading.Thread(target=start, daemon=True).start()
        time.sleep(0.1)
        assert len(calls) == 0

        gate.set()
        assert wait_until(lambda: len(calls) >= 1)
        item, obj, _ = calls.items[0]
        assert item == EventItem(key="default/a", action_type=ActionType.CREATE)
        assert isinstance(obj, Pod)
        assert obj.name == "a"

    def test_wait_for_cache_sync_raises_when_stopped(self, build, list_watch_factory, stop_event):
        """Test a stop before sync raises CacheSyncError."""
        gate = threading.Event()
        controller = build(list_watch_factory([], gate=gate), Calls(), start_informer=False)
        stop_event.set()

        with pytest.raises(CacheSyncError):
            controller.wait_for_cache_sync(stop_event)
        gate.set()


class TestRetries:
    """Test cases for the retry ceiling."""

    def test_always_failing_handler_runs_five_times(
        self, build, list_watch_factory, object_factory, stop_event, wait_until
    ):
        """Test an item is dropped after four requeues."""
        calls = Calls(error=RuntimeError("remote unavailable"))
        on_error = MagicMock()
        controller = build(list_watch_factory([object_factory(name="a")]), calls, on_error=on_error)
        controller.wait_for_cache_sync(stop_event)
        controller.run(1)

        assert wait_until(lambda: on_error.called)
        time.sleep(0.1)

        assert len(calls) == 5
        dropped_item, error = on_error.call_args[0]
        assert dropped_item.key == "default/a"
        assert isinstance(error, RuntimeError)
        assert controller.queue.num_requeues(dropped_item) == 0

    def test_success_after_failure_forgets_item(
        self, build, list_watch_factory, object_factory, stop_event, wait_until
    ):
        """Test a successful retry clears the item's failure count."""
        calls = Calls(error=RuntimeError("flaky"), fail_times=2)
        on_error = MagicMock()
        controller = build(list_watch_factory([object_factory(name="a")]), calls, on_error=on_error)
        controller.wait_for_cache_sync(stop_event)
        controller.run(1)

        assert wait_until(lambda: len(calls) == 3)
        time.sleep(0.05)

        assert len(calls) == 3
        assert controller.queue.num_requeues(calls.items[0][0]) == 0
        on_error.assert_not_called()


class TestSelectorGate:
    """Test cases for selector filtering."""

    def test_selector_false_skips_handler(
        self, build, list_watch_factory, object_factory, stop_event, wait_until
    ):
        """Test only objects matching the selector reach the handler, once each."""
        calls = Calls()
        objects = [
            object_factory(name="yes", labels={"team": "nats"}),
            object_factory(name="no", labels={"team": "other"}),
        ]
        controller = build(list_watch_factory(objects), calls, query='.metadata.labels.team == "nats"')
        controller.wait_for_cache_sync(stop_event)
        controller.run(1)

        assert wait_until(lambda: len(calls) == 1)
        time.sleep(0.05)

        assert len(calls) == 1
        assert calls.items[0][1].name == "yes"

    def test_non_boolean_selector_is_a_processing_failure(self, build, list_watch_factory, object_factory):
        """Test a selector that does not yield a boolean fails the item."""
        calls = Calls()
        controller = build(list_watch_factory([]), calls, query=".metadata.name", start_informer=False)

        with pytest.raises(SelectorError):
            controller._object_handler(object_factory(name="a"), EventItem("default/a", ActionType.CREATE))
        assert len(calls) == 0

    def test_invalid_selector_fails_construction(self, build, list_watch_factory):
        """Test a selector that does not compile is rejected up front."""
        with pytest.raises(SelectorError):
            build(list_watch_factory([]), Calls(), query="][", start_informer=False)


class TestObjectResolution:
    """Test cases for resolving queued keys and handling deletes."""

    def test_missing_object_is_noop(self, build, list_watch_factory):
        """Test a key whose object vanished from the cache is skipped."""
        calls = Calls()
        controller = build(list_watch_factory([]), calls, start_informer=False)

        controller._sync_handler(EventItem("default/gone", ActionType.UPDATE))

        assert len(calls) == 0

    def test_delete_runs_synchronously_on_informer_thread(
        self, build, list_watch_factory, object_factory, stop_event, wait_until
    ):
        """Test deletes bypass the queue and see the last known object."""
        calls = Calls()
        list_watch = list_watch_factory([object_factory(name="a", labels={"x": "1"})])
        controller = build(list_watch, calls)
        controller.wait_for_cache_sync(stop_event)

        list_watch.emit("DELETED", object_factory(name="a", labels={"x": "1"}))

        assert wait_until(lambda: len(calls) == 1)
        item, obj, thread_name = calls.items[0]
        assert item == EventItem(key="default/a", action_type=ActionType.DELETE)
        assert obj.labels["x"] == "1"
        assert thread_name.startswith("informer-")

    def test_failed_delete_is_not_retried(self, build, list_watch_factory, object_factory, stop_event, wait_until):
        """Test a failing delete handler is logged and not requeued."""
        calls = Calls(error=RuntimeError("boom"))
        list_watch = list_watch_factory([object_factory(name="a")])
        controller = build(list_watch, calls)
        controller.wait_for_cache_sync(stop_event)

        list_watch.emit("DELETED", object_factory(name="a"))

        assert wait_until(lambda: len(calls) == 1)
        time.sleep(0.05)
        assert len(calls) == 1
        assert len(controller.queue) == 1  # only the initial create is queued

    def test_update_enqueues_key(self, build, list_watch_factory, object_factory):
        """Test update notifications enqueue an update item."""
        controller = build(list_watch_factory([]), Calls(), start_informer=False)

        controller._on_update(object_factory(name="a"), object_factory(name="a", version="2"))

        item, _ = controller.queue.get(timeout=1)
        assert item == EventItem(key="default/a", action_type=ActionType.UPDATE)

    def test_decode_failure_is_processing_failure(self, build, list_watch_factory):
        """Test objects that cannot be decoded fail the item."""
        controller = build(list_watch_factory([]), Calls(), start_informer=False)

        with pytest.raises(ValueError):
            controller._object_handler({"metadata": {}}, EventItem("default/a", ActionType.CREATE))


class TestShutdown:
    """Test cases for stopping workers."""

    def test_shutdown_stops_workers(self, build, list_watch_factory, stop_event):
        """Test shutdown lets worker threads exit."""
        controller = build(list_watch_factory([]), Calls())
        controller.wait_for_cache_sync(stop_event)
        controller.run(2)

        controller.shutdown(timeout=2)

        assert controller.queue.shutting_down()
        assert not any(thread.is_alive() for thread in controller._workers)

    def test_stop_event_shuts_queue_down(self, build, list_watch_factory, stop_event, wait_until):
        """Test run with a stop event shuts the queue down once it fires."""
        controller = build(list_watch_factory([]), Calls())
        controller.wait_for_cache_sync(stop_event)
        controller.run(1, stop_event)

        stop_event.set()

        assert wait_until(controller.queue.shutting_down)
