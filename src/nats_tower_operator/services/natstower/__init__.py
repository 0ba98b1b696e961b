"""NATS Tower credential service client."""

from .client import NATSTowerClient
from .models import Account, ConnectionInfo, Operator, User

__all__ = ["NATSTowerClient", "ConnectionInfo", "Operator", "Account", "User"]
