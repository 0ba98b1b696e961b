"""Handler for managed credential Secrets."""

from __future__ import annotations

import logging
from typing import Protocol

from kubernetes import client

from ..config import OperatorConfig
from ..constants import RESOURCE_SECRET, SECRET_ACCOUNT_NAME_KEY
from ..controller import ActionType, EventItem, Informer
from ..models import Secret
from ..utils.events import EventRecorder
from .base import BaseHandler

logger = logging.getLogger(__name__)


class CredentialRevoker(Protocol):
    """Revokes the remote credential behind a deleted managed secret."""

    def revoke_credential(self, namespace: str, account_ref: str, name: str) -> None:
        ...


class UnimplementedCredentialRevoker:
    """Default revoker: remote revocation is not implemented yet."""

    def revoke_credential(self, namespace: str, account_ref: str, name: str) -> None:
        logger.info(
            "Revoking credentials of secret %s/%s (account '%s') is not implemented, nothing removed",
            namespace,
            name,
            account_ref,
        )


class SecretHandler(BaseHandler):
    """Hands deletions of managed secrets to the credential revoker."""

    def __init__(
        self,
        config: OperatorConfig,
        core_api: client.CoreV1Api,
        recorder: EventRecorder,
        revoker: CredentialRevoker | None = None,
    ):
        super().__init__(RESOURCE_SECRET, config, core_api, recorder)
        self.revoker = revoker or UnimplementedCredentialRevoker()

    def __call__(self, informer: Informer, item: EventItem, obj: Secret) -> None:
        self.logger.info("secret[%s]: %s - %s", item.action_type.value, obj.name, item.key)

        if not obj.metadata.lookup(self.labels.secret):
            return

        if item.action_type != ActionType.DELETE:
            return

        account_ref = obj.decoded(SECRET_ACCOUNT_NAME_KEY)
        if not account_ref:
            self.log_warning(
                obj,
                f"Managed secret has no {SECRET_ACCOUNT_NAME_KEY} value",
                event="delete",
                reason="MissingAccountName",
            )
        self.log_info(obj, "Managed secret deleted", event="delete", reason="SecretDeleted", account=account_ref)
        self.revoker.revoke_credential(obj.namespace, account_ref, obj.name)
