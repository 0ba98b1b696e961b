"""Handler for NACK Account resources."""

from __future__ import annotations

from ..constants import RESOURCE_NACK_ACCOUNT
from ..controller import ActionType, EventItem, Informer
from ..models import Account
from .shared import ProvisioningHandler


def account_user_description(cluster_id: str, account: Account) -> str:
    return f"Generated User for NACK account in namespace '{account.namespace}' on cluster '{cluster_id}'"


class AccountHandler(ProvisioningHandler):
    """Provisions a user for a NACK Account labelled with a secret name.

    The NATS Tower account has the same name as the NACK Account and the
    user is named after the secret.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(RESOURCE_NACK_ACCOUNT, *args, **kwargs)

    def __call__(self, informer: Informer, item: EventItem, obj: Account) -> None:
        self.logger.info("NACK Account[%s]: %s - %s", item.action_type.value, obj.name, item.key)

        secret_name = obj.metadata.lookup(self.labels.secret)
        if not secret_name:
            return

        installation = self.resolve_installation(obj)
        if installation is None:
            return

        # Deleting an account leaves its credentials in place
        if item.action_type == ActionType.DELETE:
            return

        cred_type = self.resolve_credential_type(obj)
        if cred_type is None:
            return

        self.provision(
            obj,
            secret_name=secret_name,
            cred_type=cred_type,
            installation=installation,
            account_name=obj.name,
            description=account_user_description(self.config.cluster_id, obj),
        )
