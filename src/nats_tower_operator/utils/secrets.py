"""Utilities for managing credential secrets."""

from __future__ import annotations

import base64
from typing import Optional

from kubernetes import client
from kubernetes.client.exceptions import ApiException

from ..config import LabelKeys
from ..constants import (
    FIELD_MANAGER,
    SECRET_ACCOUNT_NAME_KEY,
    SECRET_CREDENTIALS_KEY,
    SECRET_URLS_KEY,
)
from ..services.natstower.models import ConnectionInfo


def _b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("utf-8")


def credentials_data(creds: ConnectionInfo) -> dict[str, str]:
    """Secret data (base64 encoded) carrying the connection details."""
    return {
        SECRET_CREDENTIALS_KEY: _b64(creds.creds),
        SECRET_URLS_KEY: _b64(creds.urls),
        SECRET_ACCOUNT_NAME_KEY: _b64(creds.account_name),
    }


def credentials_labels(labels: LabelKeys, cred_type: str) -> dict[str, str]:
    return {labels.secret: "true", labels.credential_type: cred_type}


def has_credentials(secret: client.V1Secret) -> bool:
    """Whether the secret already holds a non-empty credentials value."""
    return bool((secret.data or {}).get(SECRET_CREDENTIALS_KEY))


def read_secret(
    api: client.CoreV1Api,
    namespace: str,
    secret_name: str,
) -> Optional[client.V1Secret]:
    """Read a secret.

    Returns:
        The secret, or None if it does not exist

    Raises:
        ApiException: On any error other than not found
    """
    try:
        return api.read_namespaced_secret(name=secret_name, namespace=namespace)
    except ApiException as e:
        if e.status == 404:
            return None
        raise


def create_credentials_secret(
    api: client.CoreV1Api,
    namespace: str,
    secret_name: str,
    creds: ConnectionInfo,
    cred_type: str,
    labels: LabelKeys,
) -> client.V1Secret:
    """Create an Opaque secret holding the connection details.

    Args:
        api: Kubernetes API client
        namespace: Namespace for the secret
        secret_name: Name of the secret
        creds: Connection details to store
        cred_type: Credential type recorded in the labels
        labels: Label keys in use
    """
    secret = client.V1Secret(
        metadata=client.V1ObjectMeta(
            name=secret_name,
            namespace=namespace,
            labels=credentials_labels(labels, cred_type),
        ),
        type="Opaque",
        data=credentials_data(creds),
    )

    return api.create_namespaced_secret(
        namespace=namespace,
        body=secret,
        field_manager=FIELD_MANAGER,
    )


def update_credentials_secret(
    api: client.CoreV1Api,
    last_revision: client.V1Secret,
    creds: ConnectionInfo,
    cred_type: str,
    labels: LabelKeys,
) -> client.V1Secret:
    """Write the connection details into an existing secret.

    Other data keys and labels of ``last_revision`` are preserved; its
    resourceVersion makes the replace fail if the secret changed meanwhile.
    """
    last_revision.data = {**(last_revision.data or {}), **credentials_data(creds)}
    last_revision.metadata.labels = {
        **(last_revision.metadata.labels or {}),
        **credentials_labels(labels, cred_type),
    }

    return api.replace_namespaced_secret(
        name=last_revision.metadata.name,
        namespace=last_revision.metadata.namespace,
        body=last_revision,
        field_manager=FIELD_MANAGER,
    )
