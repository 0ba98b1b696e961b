"""NATS Tower Operator: provisions NATS credentials into Kubernetes secrets."""

__version__ = "0.1.0"
