"""Shared fixtures for unit tests."""

from __future__ import annotations

import copy
import queue
import threading
import time
from typing import Any
from unittest.mock import MagicMock

import pytest



class FakeListWatch:
    """In-memory stand-in for ListWatch driven by the test.

    ``list`` returns ``items``, optionally blocking on ``gate``; ``watch``
    yields whatever the test pushes with ``emit`` and raises pushed exceptions.
    """

    def __init__(self, items: list[dict[str, Any]] | None = None, gate: threading.Event | None = None):
        self.items = list(items or [])
        self.gate = gate
        self.list_calls = 0
        self.list_errors: list[Exception] = []
        self._events: queue.Queue = queue.Queue()
        self._stopped = threading.Event()

    def list(self):
        self.list_calls += 1
        if self.gate is not None:
            self.gate.wait(5)
        if self.list_errors:
            raise self.list_errors.pop(0)
        return [copy.deepcopy(item) for item in self.items], str(self.list_calls)

    def watch(self, resource_version, timeout_seconds):
        while not self._stopped.is_set():
            try:
                event = self._events.get(timeout=0.02)
            except queue.Empty:
                continue
            if isinstance(event, Exception):
                raise event
            yield event

    def emit(self, event_type: str, obj: dict[str, Any]) -> None:
        self._events.put((event_type, copy.deepcopy(obj)))

    def fail(self, error: Exception) -> None:
        self._events.put(error)

    def stop(self):
        self._stopped.set()


def make_object(
    kind: str = "Pod",
    name: str = "app",
    namespace: str = "default",
    labels: dict[str, str] | None = None,
    annotations: dict[str, str] | None = None,
    version: str = "1",
    **extra: Any,
) -> dict[str, Any]:
    """JSON dict of a namespaced core object."""
    obj: dict[str, Any] = {
        "apiVersion": "v1",
        "kind": kind,
        "metadata": {
            "name": name,
            "namespace": namespace,
            "uid": f"uid-{name}",
            "resourceVersion": version,
            "labels": labels or {},
            "annotations": annotations or {},
        },
    }
    obj.update(extra)
    return obj


def wait_for(predicate, timeout: float = 3.0, interval: float = 0.01) -> bool:
    """Poll until predicate() is true or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def stop_event():
    """Stop event that is always set at teardown."""
    event = threading.Event()
    yield event
    event.set()


@pytest.fixture
def list_watch_factory():
    """Create FakeListWatch instances that are stopped at teardown."""
    created: list[FakeListWatch] = []

    def factory(items=None, gate=None) -> FakeListWatch:
        list_watch = FakeListWatch(items, gate)
        created.append(list_watch)
        return list_watch

    yield factory
    for list_watch in created:
        list_watch.stop()


@pytest.fixture
def object_factory():
    """Build JSON dicts of watched objects."""
    return make_object


@pytest.fixture
def wait_until():
    """Poll a predicate until it holds."""
    return wait_for


@pytest.fixture
def operator_config():
    """Operator configuration with two valid installations and no default."""
    from nats_tower_operator.config import OperatorConfig

    return OperatorConfig(
        cluster_id="cluster-1",
        tower_api_token="token",
        tower_url="https://tower.example.com",
        valid_installations=frozenset({"inst-A", "inst-B"}),
    )


@pytest.fixture
def core_api():
    """CoreV1Api mock where every secret read is a 404."""
    from kubernetes import client
    from kubernetes.client.exceptions import ApiException

    api = MagicMock(spec=client.CoreV1Api)
    api.read_namespaced_secret.side_effect = ApiException(status=404, reason="Not Found")
    return api


@pytest.fixture
def recorder():
    """EventRecorder mock."""
    from nats_tower_operator.utils.events import EventRecorder

    return MagicMock(spec=EventRecorder)


@pytest.fixture
def tower_client():
    """NATS Tower client mock issuing fixed credentials."""
    from nats_tower_operator.services.natstower import ConnectionInfo, NATSTowerClient

    tower = MagicMock(spec=NATSTowerClient)
    tower.create_or_get_user_auth.return_value = ConnectionInfo(
        creds="-----BEGIN NATS USER JWT-----",
        urls="nats://nats.example.com:4222",
        account_name="orders",
    )
    return tower


@pytest.fixture
def emitted_reasons():
    """Event reasons emitted through a mocked EventRecorder, in order."""

    def reasons(recorder) -> list[str]:
        return [c.args[2] for c in recorder.event.call_args_list]

    return reasons
