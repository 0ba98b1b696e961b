"""Base handler class with common functionality for all watched-kind handlers."""

from __future__ import annotations

import logging
from typing import Any

from kubernetes import client

from ..config import LabelKeys, OperatorConfig
from ..logging import log_resource_event
from ..models import KubeObject
from ..utils.errors import sanitize_exception
from ..utils.events import EventRecorder


class BaseHandler:
    """Base class for all handlers with common functionality."""

    def __init__(
        self,
        kind: str,
        config: OperatorConfig,
        core_api: client.CoreV1Api,
        recorder: EventRecorder,
    ):
        """Initialize base handler.

        Args:
            kind: The watched resource kind (e.g., "v1/pods")
            config: Operator configuration
            core_api: Kubernetes CoreV1Api instance
            recorder: Event recorder for the source objects
        """
        self.kind = kind
        self.config = config
        self.core_api = core_api
        self.recorder = recorder
        self.logger = logging.getLogger(self.__class__.__module__)

    @property
    def labels(self) -> LabelKeys:
        return self.config.labels

    def _log(
        self,
        level: int,
        obj: KubeObject,
        message: str,
        event: str,
        reason: str,
        **kwargs: Any,
    ) -> None:
        log_resource_event(
            self.logger,
            resource_kind=self.kind,
            resource_name=obj.name,
            namespace=obj.namespace,
            uid=obj.metadata.uid,
            event=event,
            reason=reason,
            message=message,
            level=level,
            **kwargs,
        )

    def log_info(
        self,
        obj: KubeObject,
        message: str,
        event: str = "info",
        reason: str = "Info",
        **kwargs: Any,
    ) -> None:
        """Log an info-level structured log message.

        Args:
            obj: Object the message is about
            message: Log message
            event: Event type (default: "info")
            reason: Reason for the event (default: "Info")
            **kwargs: Additional fields to include in the log
        """
        self._log(logging.INFO, obj, message, event, reason, **kwargs)

    def log_warning(
        self,
        obj: KubeObject,
        message: str,
        event: str = "warning",
        reason: str = "Warning",
        **kwargs: Any,
    ) -> None:
        """Log a warning-level structured log message."""
        self._log(logging.WARNING, obj, message, event, reason, **kwargs)

    def log_error(
        self,
        obj: KubeObject,
        message: str,
        error: Exception | None = None,
        event: str = "error",
        reason: str = "Error",
        **kwargs: Any,
    ) -> None:
        """Log an error-level structured log message.

        Args:
            obj: Object the message is about
            message: Log message
            error: Optional exception to include sanitized error details
            event: Event type (default: "error")
            reason: Reason for the event (default: "Error")
            **kwargs: Additional fields to include in the log
        """
        log_data = kwargs.copy()

        if error is not None:
            log_data["error"] = sanitize_exception(error)
            log_data["error_type"] = type(error).__name__

        self._log(logging.ERROR, obj, message, event, reason, **log_data)
