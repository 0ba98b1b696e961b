"""Reconciliation controller: informer, work queue and worker loop."""

from .controller import ActionType, Controller, EventItem, ResourceKind
from .informer import EventHandlers, Informer, ListWatch
from .workqueue import RateLimitingQueue

__all__ = [
    "ActionType",
    "Controller",
    "EventHandlers",
    "EventItem",
    "Informer",
    "ListWatch",
    "RateLimitingQueue",
    "ResourceKind",
]
