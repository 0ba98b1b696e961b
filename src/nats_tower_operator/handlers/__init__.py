"""Handlers reacting to events of the watched kinds."""

from .account import AccountHandler
from .pod import PodHandler
from .secret import CredentialRevoker, SecretHandler, UnimplementedCredentialRevoker
from .shared import ProvisioningHandler, upsert_secret

__all__ = [
    "AccountHandler",
    "CredentialRevoker",
    "PodHandler",
    "ProvisioningHandler",
    "SecretHandler",
    "UnimplementedCredentialRevoker",
    "upsert_secret",
]
