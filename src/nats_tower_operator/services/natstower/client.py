"""NATS Tower API client."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from ... import metrics
from ...constants import API_TOKEN_HEADER, DEFAULT_REQUEST_TIMEOUT_SECONDS
from ...exceptions import (
    AccountNotFoundError,
    K8sAccessNotAllowedError,
    NATSTowerAPIError,
    NATSTowerTransportError,
    OperatorNotFoundError,
    UserNotFoundError,
)
from .models import Account, ConnectionInfo, Operator, User

logger = logging.getLogger(__name__)

OPERATORS_PATH = "/api/collections/nats_auth_operators/records"
ACCOUNTS_PATH = "/api/collections/nats_auth_accounts/records"
USERS_PATH = "/api/collections/nats_auth_users/records"
K8S_ACCESS_PATH = "/api/collections/nats_auth_k8s_access/records"

API_TYPE = "natstower"


def _quote(value: str) -> str:
    """Quote a value for use inside a filter expression."""
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


class NATSTowerClient:
    """Issues and revokes NATS user credentials through the NATS Tower API.

    The API is a PocketBase instance; every lookup is a filtered list query on
    one collection, limited to a single record.
    """

    def __init__(
        self,
        base_url: str,
        api_token: str,
        cluster_id: str,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize NATS Tower client.

        Args:
            base_url: NATS Tower base URL
            api_token: Token sent in the X-Token header
            cluster_id: Cluster identifier used for access checks
            timeout: Timeout in seconds for every request
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.cluster_id = cluster_id
        self.http = httpx.Client(
            base_url=self.base_url,
            headers={API_TOKEN_HEADER: api_token},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "NATSTowerClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(
        self,
        operation: str,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        accept: tuple[int, ...] = (),
    ) -> Any:
        """Send a request and decode its JSON body.

        Statuses listed in ``accept`` are treated as success even when not 2xx.

        Raises:
            NATSTowerAPIError: On an unexpected status code
            NATSTowerTransportError: On network errors, timeouts or bad JSON
        """
        start_time = time.time()
        result = "error"
        try:
            try:
                response = self.http.request(method, path, params=params, json=json)
            except httpx.HTTPError as exc:
                raise NATSTowerTransportError(f"{method} {path} failed: {exc}") from exc

            if response.status_code > 299 and response.status_code not in accept:
                logger.info("%s resp: %s", response.request.url, response.text)
                raise NATSTowerAPIError(response.status_code, response.text)

            result = "success"
            if not response.content or response.status_code > 299:
                return None
            try:
                return response.json()
            except ValueError as exc:
                result = "error"
                raise NATSTowerTransportError(f"invalid JSON from {method} {path}: {exc}") from exc
        finally:
            metrics.api_call_total.labels(api_type=API_TYPE, operation=operation, result=result).inc()
            metrics.api_call_duration_seconds.labels(api_type=API_TYPE, operation=operation).observe(
                time.time() - start_time
            )

    def _first(self, operation: str, path: str, filter_: str, fields: str) -> dict[str, Any] | None:
        body = self._request(
            operation,
            "GET",
            path,
            params={"filter": filter_, "perPage": "1", "fields": fields},
        )
        items = (body or {}).get("items") or []
        return items[0] if items else None

    def get_operator(self, installation: str) -> Operator:
        """Look up the NATS operator by the installation public key."""
        item = self._first("get_operator", OPERATORS_PATH, f"public_key = {_quote(installation)}", "id,url")
        if item is None:
            raise OperatorNotFoundError(installation)
        return Operator.from_dict(item)

    def get_account(self, operator_id: str, account_name: str) -> Account:
        item = self._first(
            "get_account",
            ACCOUNTS_PATH,
            f"(operator={_quote(operator_id)} && name={_quote(account_name)})",
            "id,name,public_key",
        )
        if item is None:
            raise AccountNotFoundError(operator_id, account_name)
        return Account.from_dict(item)

    def access_allowed(self, cluster_id: str, namespace: str, account_id: str) -> bool:
        """Whether the cluster/namespace pair has been granted access to the account."""
        item = self._first(
            "access_allowed",
            K8S_ACCESS_PATH,
            f"(cluster={_quote(cluster_id)} && namespace={_quote(namespace)} && account={_quote(account_id)})",
            "id",
        )
        return item is not None

    def get_user(self, account_id: str, name: str) -> User:
        item = self._first(
            "get_user",
            USERS_PATH,
            f"(account={_quote(account_id)} && name={_quote(name)})",
            "creds,id",
        )
        if item is None:
            raise UserNotFoundError(account_id, name)
        return User.from_dict(item)

    def create_user(self, account_id: str, name: str, description: str) -> User:
        body = self._request(
            "create_user",
            "POST",
            USERS_PATH,
            params={"fields": "creds,id"},
            json={"account": account_id, "name": name, "description": description},
        )
        return User.from_dict(body or {})

    def _check_access(self, namespace: str, account: Account) -> None:
        if not self.access_allowed(self.cluster_id, namespace, account.id):
            raise K8sAccessNotAllowedError(self.cluster_id, namespace, account.name or account.id)

    def create_or_get_user_auth(
        self,
        namespace: str,
        installation: str,
        account_name: str,
        name: str,
        description: str,
    ) -> ConnectionInfo:
        """Return credentials for the user, creating the user when missing.

        Access of this cluster and namespace to the account is checked before
        any user is looked up or created.

        Raises:
            OperatorNotFoundError: No operator for the installation
            AccountNotFoundError: No such account under the operator
            K8sAccessNotAllowedError: Cluster/namespace not granted access
            NATSTowerTransportError: On transport or API failures
        """
        operator = self.get_operator(installation)
        account = self.get_account(operator.id, account_name)
        self._check_access(namespace, account)

        try:
            user = self.get_user(account.id, name)
        except UserNotFoundError:
            logger.info("Creating NATS user '%s' in account '%s'", name, account.name)
            user = self.create_user(account.id, name, description)

        return ConnectionInfo(creds=user.creds, urls=operator.url, account_name=account.name)

    def remove_user_auth(self, namespace: str, installation: str, account_name: str, name: str) -> None:
        """Delete the user; anything already gone counts as removed.

        Raises:
            K8sAccessNotAllowedError: Cluster/namespace not granted access
            NATSTowerTransportError: On transport or API failures
        """
        try:
            operator = self.get_operator(installation)
            account = self.get_account(operator.id, account_name)
        except (OperatorNotFoundError, AccountNotFoundError):
            return

        self._check_access(namespace, account)

        try:
            user = self.get_user(account.id, name)
        except UserNotFoundError:
            return

        self._request("remove_user", "DELETE", f"{USERS_PATH}/{user.id}", accept=(404,))
        logger.info("Removed NATS user '%s' from account '%s'", name, account.name)
