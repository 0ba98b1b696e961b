"""Main entry point for the NATS Tower Operator."""

from __future__ import annotations

import logging
import signal
import sys
import threading
from typing import Any

from kubernetes import client
from kubernetes import config as kube_config

from . import health
from . import logging as structured_logging
from .config import OperatorConfig, load_config
from .exceptions import NATSTowerOperatorError
from .services.natstower import NATSTowerClient
from .tower_operator import NATSTowerOperator
from .tracing import initialize_tracing
from .utils.errors import sanitize_exception

logger = logging.getLogger(__name__)


def load_kubernetes_config() -> client.ApiClient:
    """Load in-cluster config, falling back to the local kubeconfig."""
    try:
        kube_config.load_incluster_config()
        logger.info("Using in-cluster Kubernetes configuration")
    except kube_config.ConfigException:
        kube_config.load_kube_config()
        logger.info("Using kubeconfig Kubernetes configuration")
    return client.ApiClient()


def install_signal_handlers(stop_event: threading.Event) -> None:
    """First SIGTERM/SIGINT stops gracefully, a second one exits at once."""

    def handle(signum: int, _frame: Any) -> None:
        if stop_event.is_set():
            logger.warning("Received second signal %s, exiting", signal.Signals(signum).name)
            sys.exit(1)
        logger.info("Received signal %s, shutting down", signal.Signals(signum).name)
        stop_event.set()

    signal.signal(signal.SIGTERM, handle)
    signal.signal(signal.SIGINT, handle)


def run(config: OperatorConfig, stop_event: threading.Event) -> None:
    api_client = load_kubernetes_config()
    with NATSTowerClient(
        config.tower_url,
        config.tower_api_token,
        config.cluster_id,
        timeout=config.request_timeout,
    ) as tower_client:
        operator = NATSTowerOperator(config, api_client, tower_client)
        server = health.start_health_server(config.metrics_port, ready_check=operator.ready)
        try:
            operator.run(stop_event)
        finally:
            server.shutdown()


def main() -> None:
    structured_logging.setup_structured_logging()

    try:
        config = load_config()
    except NATSTowerOperatorError as e:
        logger.error("Error loading config: %s", sanitize_exception(e))
        sys.exit(1)

    logger.info(
        "Starting NATS Tower Operator for cluster '%s' against %s (%d valid installations)",
        config.cluster_id,
        config.tower_url,
        len(config.valid_installations),
    )

    initialize_tracing()

    stop_event = threading.Event()
    install_signal_handlers(stop_event)

    try:
        run(config, stop_event)
    except Exception as e:
        logger.error("Operator failed: %s", sanitize_exception(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
