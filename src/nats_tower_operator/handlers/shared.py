"""Shared credential provisioning flow for handlers."""

from __future__ import annotations

import time
from typing import Optional

from kubernetes import client

from .. import metrics
from ..config import LabelKeys, OperatorConfig
from ..constants import CREDENTIAL_TYPE_USER, SUPPORTED_CREDENTIAL_TYPES
from ..exceptions import K8sAccessNotAllowedError
from ..models import KubeObject
from ..services.natstower import ConnectionInfo, NATSTowerClient
from ..tracing import trace_span
from ..utils.events import (
    EventRecorder,
    emit_access_not_allowed,
    emit_creating_user_auth_failed,
    emit_default_installation,
    emit_invalid_credential_type,
    emit_invalid_installation,
    emit_missing_installation,
    emit_secret_created,
    emit_secret_updated,
    emit_upsert_failed,
)
from ..utils.secrets import (
    create_credentials_secret,
    has_credentials,
    read_secret,
    update_credentials_secret,
)
from .base import BaseHandler


def upsert_secret(
    recorder: EventRecorder,
    api: client.CoreV1Api,
    labels: LabelKeys,
    source: KubeObject,
    namespace: str,
    name: str,
    cred_type: str,
    creds: ConnectionInfo,
    last_revision: Optional[client.V1Secret] = None,
) -> None:
    """Create the credentials secret, or update ``last_revision`` when given.

    Args:
        recorder: Event recorder for the source object
        api: Kubernetes CoreV1Api instance
        labels: Label keys in use
        source: Object that requested the credentials
        namespace: Namespace of the secret
        name: Name of the secret
        cred_type: Credential type recorded in the labels
        creds: Connection details to store
        last_revision: Existing secret to update in place

    Raises:
        client.exceptions.ApiException: If the create or update failed
    """
    operation = "create" if last_revision is None else "update"
    start_time = time.time()
    try:
        if last_revision is None:
            create_credentials_secret(api, namespace, name, creds, cred_type, labels)
        else:
            update_credentials_secret(api, last_revision, creds, cred_type, labels)
        metrics.api_call_total.labels(api_type="k8s", operation=f"{operation}_secret", result="success").inc()
    except Exception as e:
        metrics.api_call_total.labels(api_type="k8s", operation=f"{operation}_secret", result="error").inc()
        metrics.secret_upserts_total.labels(operation=operation, result="error").inc()
        emit_upsert_failed(recorder, source, operation, namespace, name, e)
        raise
    finally:
        duration = time.time() - start_time
        metrics.api_call_duration_seconds.labels(api_type="k8s", operation=f"{operation}_secret").observe(duration)

    metrics.secret_upserts_total.labels(operation=operation, result="success").inc()
    if last_revision is None:
        emit_secret_created(recorder, source, namespace, name)
    else:
        emit_secret_updated(recorder, source, namespace, name)


class ProvisioningHandler(BaseHandler):
    """Handler that provisions a credentials secret for labelled objects."""

    def __init__(
        self,
        kind: str,
        config: OperatorConfig,
        core_api: client.CoreV1Api,
        recorder: EventRecorder,
        tower_client: NATSTowerClient,
    ):
        super().__init__(kind, config, core_api, recorder)
        self.tower_client = tower_client

    def resolve_installation(self, obj: KubeObject) -> Optional[str]:
        """Installation from the object's label, else the configured default.

        Returns None after emitting a warning when no usable installation exists.
        """
        installation = obj.metadata.lookup(self.labels.installation)

        if not installation:
            if not self.config.default_installation:
                emit_missing_installation(self.recorder, obj, self.labels.installation)
                return None
            emit_default_installation(self.recorder, obj, self.config.default_installation)
            return self.config.default_installation

        if not self.config.is_valid_installation(installation):
            emit_invalid_installation(self.recorder, obj, self.labels.installation, self.config.valid_installations)
            return None

        return installation

    def resolve_credential_type(self, obj: KubeObject) -> Optional[str]:
        """Credential type from the object's label, defaulting to ``user``.

        Returns None after emitting a warning for unsupported types.
        """
        cred_type = obj.metadata.lookup(self.labels.credential_type) or CREDENTIAL_TYPE_USER
        if cred_type not in SUPPORTED_CREDENTIAL_TYPES:
            emit_invalid_credential_type(self.recorder, obj, self.labels.credential_type, cred_type)
            return None
        return cred_type

    def _get_user_auth(
        self,
        obj: KubeObject,
        operation: str,
        installation: str,
        account_name: str,
        secret_name: str,
        description: str,
    ) -> ConnectionInfo:
        try:
            return self.tower_client.create_or_get_user_auth(
                obj.namespace,
                installation,
                account_name,
                secret_name,
                description,
            )
        except K8sAccessNotAllowedError:
            emit_access_not_allowed(self.recorder, obj, obj.namespace, self.config.cluster_id, account_name)
            raise
        except Exception as e:
            emit_creating_user_auth_failed(self.recorder, obj, operation, e)
            raise

    def provision(
        self,
        obj: KubeObject,
        secret_name: str,
        cred_type: str,
        installation: str,
        account_name: str,
        description: str,
    ) -> None:
        """Make sure the secret exists and holds credentials.

        A secret that already holds credentials is left untouched and no remote
        call is made.

        Raises:
            K8sAccessNotAllowedError: Cluster/namespace not granted access
            NATSTowerError: If issuing the credentials failed
            client.exceptions.ApiException: If reading or writing the secret failed
        """
        namespace = obj.namespace

        with trace_span(
            "provision_credentials",
            kind=self.kind,
            attributes={"secret.name": secret_name, "secret.namespace": namespace, "account.name": account_name},
        ):
            try:
                secret = read_secret(self.core_api, namespace, secret_name)
            except client.exceptions.ApiException as e:
                self.log_error(obj, f"Failed to read secret {namespace}/{secret_name}", error=e, reason="SecretReadFailed")
                raise

            if secret is None:
                self.log_info(
                    obj,
                    f"Secret {secret_name} not found in namespace {namespace}",
                    reason="SecretNotFound",
                    secret_name=secret_name,
                )
                creds = self._get_user_auth(obj, "create", installation, account_name, secret_name, description)
                upsert_secret(self.recorder, self.core_api, self.labels, obj, namespace, secret_name, cred_type, creds)
                return

            if has_credentials(secret):
                self.logger.debug("Secret %s/%s already holds credentials", namespace, secret_name)
                return

            creds = self._get_user_auth(obj, "update", installation, account_name, secret_name, description)
            upsert_secret(
                self.recorder,
                self.core_api,
                self.labels,
                obj,
                namespace,
                secret_name,
                cred_type,
                creds,
                last_revision=secret,
            )
