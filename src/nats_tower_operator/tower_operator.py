"""Wires the pod, secret and NACK account controllers to their handlers."""

from __future__ import annotations

import dataclasses
import logging
import threading

from kubernetes import client

from .config import OperatorConfig
from .constants import (
    NACK_ACCOUNT_KIND,
    NACK_ACCOUNT_PLURAL,
    NACK_GROUP,
    NACK_VERSION,
    RESOURCE_NACK_ACCOUNT,
    RESOURCE_POD,
    RESOURCE_SECRET,
)
from .controller import Controller, EventItem, Informer, ListWatch, ResourceKind
from .handlers import AccountHandler, CredentialRevoker, PodHandler, SecretHandler
from .models import Account, Pod, Secret
from .services.natstower import NATSTowerClient
from .utils.errors import sanitize_exception
from .utils.events import EventRecorder

logger = logging.getLogger(__name__)

INFORMER_JOIN_TIMEOUT_SECONDS = 5.0


class NATSTowerOperator:
    """Runs one controller per watched kind until the stop event fires."""

    def __init__(
        self,
        config: OperatorConfig,
        api_client: client.ApiClient,
        tower_client: NATSTowerClient,
        recorder: EventRecorder | None = None,
        revoker: CredentialRevoker | None = None,
    ) -> None:
        self.config = config
        core_api = client.CoreV1Api(api_client)
        custom_api = client.CustomObjectsApi(api_client)
        self.recorder = recorder or EventRecorder(core_api)
        resync = config.resync_period_seconds

        # --------------- HANDLING PODS -------------------
        pod_informer = Informer(
            RESOURCE_POD,
            ListWatch(api_client, core_api.list_pod_for_all_namespaces, "v1", "Pod"),
            resync_period=resync,
        )
        self.pod_controller: Controller[Pod] = Controller(
            dataclasses.replace(config.pod_config, kind=RESOURCE_POD),
            ResourceKind(RESOURCE_POD, Pod.from_dict),
            PodHandler(config, core_api, self.recorder, tower_client),
            pod_informer,
            on_error=self._handle_error,
        )

        # --------------- HANDLING SECRETS -------------------
        secret_informer = Informer(
            RESOURCE_SECRET,
            ListWatch(api_client, core_api.list_secret_for_all_namespaces, "v1", "Secret"),
            resync_period=resync,
        )
        self.secret_controller: Controller[Secret] = Controller(
            dataclasses.replace(config.secret_config, kind=RESOURCE_SECRET),
            ResourceKind(RESOURCE_SECRET, Secret.from_dict),
            SecretHandler(config, core_api, self.recorder, revoker),
            secret_informer,
            on_error=self._handle_error,
        )

        # --------------- HANDLING NACK ACCOUNTS -------------------
        account_informer = Informer(
            RESOURCE_NACK_ACCOUNT,
            ListWatch(
                api_client,
                custom_api.list_cluster_custom_object,
                f"{NACK_GROUP}/{NACK_VERSION}",
                NACK_ACCOUNT_KIND,
                group=NACK_GROUP,
                version=NACK_VERSION,
                plural=NACK_ACCOUNT_PLURAL,
            ),
            resync_period=resync,
        )
        self.nack_account_controller: Controller[Account] = Controller(
            dataclasses.replace(config.nack_account_config, kind=RESOURCE_NACK_ACCOUNT),
            ResourceKind(RESOURCE_NACK_ACCOUNT, Account.from_dict),
            AccountHandler(config, core_api, self.recorder, tower_client),
            account_informer,
            on_error=self._handle_error,
        )

    @property
    def controllers(self) -> list[Controller]:
        return [self.pod_controller, self.secret_controller, self.nack_account_controller]

    def _handle_error(self, item: EventItem, error: BaseException) -> None:
        logger.error(
            "Dropping '%s' (%s) out of the queue: %s",
            item.key,
            item.action_type.value,
            sanitize_exception(error),
        )

    def ready(self) -> bool:
        """Whether every informer cache has synced."""
        return all(controller.informer.has_synced() for controller in self.controllers)

    def _stop_informers(self) -> None:
        for controller in self.controllers:
            controller.informer.stop()
        for controller in self.controllers:
            controller.informer.join(INFORMER_JOIN_TIMEOUT_SECONDS)

    def run(self, stop_event: threading.Event) -> None:
        """Start informers, wait for their caches, then run workers until stopped.

        Raises:
            CacheSyncError: If a cache did not sync before the stop event fired
        """
        logger.info("Starting informers")
        for controller in self.controllers:
            controller.informer.start(stop_event)

        try:
            for controller in self.controllers:
                controller.wait_for_cache_sync(stop_event)
        except Exception:
            self._stop_informers()
            raise

        logger.info("Starting controllers")
        for controller in self.controllers:
            controller.run(self.config.workers)

        stop_event.wait()
        logger.info("Shutting down controllers")

        for controller in self.controllers:
            controller.shutdown()
        self._stop_informers()

        logger.info("Operator exiting")
