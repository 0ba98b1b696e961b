"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable

from kubernetes import client
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import HTTPError

from .. import metrics
from ..constants import (
    COMPONENT,
    EVENT_REASON_ACCESS_NOT_ALLOWED,
    EVENT_REASON_CREATING_USER_AUTH_FAILED,
    EVENT_REASON_DEFAULT_INSTALLATION,
    EVENT_REASON_INVALID_CREDENTIAL_TYPE,
    EVENT_REASON_INVALID_INSTALLATION,
    EVENT_REASON_MISSING_ACCOUNT,
    EVENT_REASON_MISSING_INSTALLATION,
    EVENT_REASON_SECRET_CREATED,
    EVENT_REASON_SECRET_UPDATED,
    EVENT_REASON_UPSERT_FAILED,
    EVENT_TYPE_NORMAL,
    EVENT_TYPE_WARNING,
)
from ..models import KubeObject
from .errors import sanitize_error_message

logger = logging.getLogger(__name__)


class EventRecorder:
    """Posts Kubernetes events about watched objects.

    Posting is best effort: failures are logged and never raised.
    """

    def __init__(self, api: client.CoreV1Api, component: str = COMPONENT) -> None:
        self.api = api
        self.component = component

    def event(self, obj: KubeObject, type_: str, reason: str, message: str) -> None:
        """Emit a Kubernetes event.

        Args:
            obj: Object the event is about
            type_: Event type (Normal or Warning)
            reason: Event reason
            message: Event message
        """
        message = sanitize_error_message(message)
        namespace = obj.namespace or "default"
        now = datetime.now(timezone.utc)
        body = client.CoreV1Event(
            metadata=client.V1ObjectMeta(generate_name=f"{obj.name}.", namespace=namespace),
            involved_object=client.V1ObjectReference(
                api_version=obj.api_version,
                kind=obj.kind,
                name=obj.name,
                namespace=obj.namespace or None,
                uid=obj.metadata.uid or None,
                resource_version=obj.metadata.resource_version or None,
            ),
            reason=reason,
            message=message,
            type=type_,
            source=client.V1EventSource(component=self.component),
            first_timestamp=now,
            last_timestamp=now,
            count=1,
            reporting_component=self.component,
        )

        level = logging.WARNING if type_ == EVENT_TYPE_WARNING else logging.INFO
        logger.log(level, "%s %s/%s %s: %s", obj.kind, namespace, obj.name, reason, message)
        metrics.events_emitted_total.labels(type=type_, reason=reason).inc()

        try:
            self.api.create_namespaced_event(namespace=namespace, body=body)
        except ApiException as e:
            logger.warning("Failed to post event %s for %s/%s: %s", reason, namespace, obj.name, e.reason)
        except (HTTPError, OSError) as e:
            logger.warning("Failed to post event %s for %s/%s: %s", reason, namespace, obj.name, e)


def emit_missing_installation(recorder: EventRecorder, obj: KubeObject, label: str) -> None:
    """Emit missing installation label event."""
    recorder.event(
        obj,
        EVENT_TYPE_WARNING,
        EVENT_REASON_MISSING_INSTALLATION,
        f"Require label {label} to generate secret",
    )


def emit_default_installation(recorder: EventRecorder, obj: KubeObject, installation: str) -> None:
    """Emit default installation used event."""
    recorder.event(
        obj,
        EVENT_TYPE_NORMAL,
        EVENT_REASON_DEFAULT_INSTALLATION,
        f"Will use default installation {installation} to generate secret",
    )


def emit_invalid_installation(
    recorder: EventRecorder,
    obj: KubeObject,
    label: str,
    valid_installations: Iterable[str],
) -> None:
    """Emit invalid installation label event."""
    recorder.event(
        obj,
        EVENT_TYPE_WARNING,
        EVENT_REASON_INVALID_INSTALLATION,
        f"Require label {label} to be one of {sorted(valid_installations)} to generate secret",
    )


def emit_invalid_credential_type(recorder: EventRecorder, obj: KubeObject, label: str, cred_type: str) -> None:
    """Emit unsupported credential type event."""
    recorder.event(
        obj,
        EVENT_TYPE_WARNING,
        EVENT_REASON_INVALID_CREDENTIAL_TYPE,
        f"Invalid credential type '{cred_type}' in label {label}: must be 'user'",
    )


def emit_missing_account(recorder: EventRecorder, obj: KubeObject, label: str) -> None:
    """Emit missing account label event."""
    recorder.event(
        obj,
        EVENT_TYPE_WARNING,
        EVENT_REASON_MISSING_ACCOUNT,
        f"Require label {label} to generate secret",
    )


def emit_access_not_allowed(
    recorder: EventRecorder,
    obj: KubeObject,
    namespace: str,
    cluster_id: str,
    account: str,
) -> None:
    """Emit k8s access not allowed event."""
    recorder.event(
        obj,
        EVENT_TYPE_WARNING,
        EVENT_REASON_ACCESS_NOT_ALLOWED,
        f"Please add the namespace '{namespace}' & cluster '{cluster_id}' for account '{account}' "
        "to the k8s access list on NATS Tower",
    )


def emit_creating_user_auth_failed(recorder: EventRecorder, obj: KubeObject, operation: str, error: Exception) -> None:
    """Emit user auth creation failed event."""
    recorder.event(
        obj,
        EVENT_TYPE_WARNING,
        EVENT_REASON_CREATING_USER_AUTH_FAILED,
        f"Could not get user auth to {operation} secret: {error}",
    )


def emit_secret_created(recorder: EventRecorder, obj: KubeObject, namespace: str, name: str) -> None:
    """Emit secret created event."""
    recorder.event(obj, EVENT_TYPE_NORMAL, EVENT_REASON_SECRET_CREATED, f"Created secret {namespace}/{name}")


def emit_secret_updated(recorder: EventRecorder, obj: KubeObject, namespace: str, name: str) -> None:
    """Emit secret updated event."""
    recorder.event(obj, EVENT_TYPE_NORMAL, EVENT_REASON_SECRET_UPDATED, f"Updated secret {namespace}/{name}")


def emit_upsert_failed(
    recorder: EventRecorder,
    obj: KubeObject,
    operation: str,
    namespace: str,
    name: str,
    error: Exception,
) -> None:
    """Emit secret upsert failed event."""
    recorder.event(
        obj,
        EVENT_TYPE_WARNING,
        EVENT_REASON_UPSERT_FAILED,
        f"Could not {operation} secret {namespace}/{name}: {error}",
    )
