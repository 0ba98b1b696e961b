"""Handler for Pod resources."""

from __future__ import annotations

from ..constants import RESOURCE_POD
from ..controller import ActionType, EventItem, Informer
from ..models import Pod
from ..utils.events import emit_missing_account
from .shared import ProvisioningHandler


def pod_user_description(cluster_id: str, pod: Pod, app_name_label: str) -> str:
    name = pod.name
    app_name = pod.labels.get(app_name_label)
    if app_name:
        name += f" ({app_name})"
    return f"Generated User for pod '{name}' in namespace '{pod.namespace}' on cluster '{cluster_id}'"


class PodHandler(ProvisioningHandler):
    """Provisions a user in the account named by the pod's account label."""

    def __init__(self, *args, **kwargs):
        super().__init__(RESOURCE_POD, *args, **kwargs)

    def __call__(self, informer: Informer, item: EventItem, obj: Pod) -> None:
        self.logger.info("Pod[%s]: %s - %s", item.action_type.value, obj.name, item.key)

        secret_name = obj.metadata.lookup(self.labels.secret)
        if not secret_name:
            return

        installation = self.resolve_installation(obj)
        if installation is None:
            return

        if item.action_type == ActionType.DELETE:
            return

        account_name = obj.metadata.lookup(self.labels.account)
        if not account_name:
            emit_missing_account(self.recorder, obj, self.labels.account)
            return

        cred_type = self.resolve_credential_type(obj)
        if cred_type is None:
            return

        self.provision(
            obj,
            secret_name=secret_name,
            cred_type=cred_type,
            installation=installation,
            account_name=account_name,
            description=pod_user_description(self.config.cluster_id, obj, self.labels.app_name),
        )
