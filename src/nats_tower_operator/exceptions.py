"""Exception hierarchy for the NATS Tower Operator.

Handlers signal "retry me" by raising; configuration problems that only a human
can fix are reported as Kubernetes events instead and never reach the work
queue as errors.
"""

from __future__ import annotations


class NATSTowerOperatorError(Exception):
    """Base exception for all operator errors."""


class ConfigError(NATSTowerOperatorError):
    """Raised when the process configuration is missing or invalid."""


class SelectorError(NATSTowerOperatorError):
    """Raised when a selector query cannot be compiled or evaluated.

    Evaluation failures propagate out of the controller's object handler and
    are retried like any other processing failure.
    """


class CacheSyncError(NATSTowerOperatorError):
    """Raised when an informer cache did not sync before the stop signal."""


class NATSTowerError(NATSTowerOperatorError):
    """Base exception for NATS Tower client errors."""


class OperatorNotFoundError(NATSTowerError):
    """No NATS operator matches the installation public key."""

    def __init__(self, installation: str) -> None:
        super().__init__(f"operator not found for installation '{installation}'")
        self.installation = installation


class AccountNotFoundError(NATSTowerError):
    """No account with the given name exists under the operator."""

    def __init__(self, operator_id: str, account_name: str) -> None:
        super().__init__(f"account '{account_name}' not found for operator '{operator_id}'")
        self.operator_id = operator_id
        self.account_name = account_name


class UserNotFoundError(NATSTowerError):
    """No user with the given name exists in the account."""

    def __init__(self, account_id: str, name: str) -> None:
        super().__init__(f"user '{name}' not found in account '{account_id}'")
        self.account_id = account_id
        self.name = name


class K8sAccessNotAllowedError(NATSTowerError):
    """The cluster/namespace has no access grant for the account."""

    def __init__(self, cluster_id: str, namespace: str, account: str) -> None:
        super().__init__(
            f"k8s access not allowed for cluster '{cluster_id}', "
            f"namespace '{namespace}', account '{account}'"
        )
        self.cluster_id = cluster_id
        self.namespace = namespace
        self.account = account


class NATSTowerTransportError(NATSTowerError):
    """Network failure or timeout while talking to NATS Tower."""


class NATSTowerAPIError(NATSTowerTransportError):
    """NATS Tower answered with an unexpected (non-2xx) status code."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"unexpected status code: {status_code}")
        self.status_code = status_code
        self.body = body
