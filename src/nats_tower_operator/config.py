"""Process configuration loaded from environment variables and files."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from .constants import (
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_WORKERS,
    LABEL_ACCOUNT,
    LABEL_APP_NAME,
    LABEL_CREDENTIAL_TYPE,
    LABEL_INSTALLATION,
    LABEL_SECRET,
    RESOURCE_NACK_ACCOUNT,
    RESOURCE_POD,
    RESOURCE_SECRET,
)
from .exceptions import ConfigError

# Environment variable names
ENV_CLUSTER_ID = "NATS_TOWER_CLUSTER_ID"
ENV_DEFAULT_INSTALLATION = "NATS_TOWER_DEFAULT_INSTALLATION"
ENV_INSTALLATIONS_FILE_PATH = "NATS_TOWER_INSTALLATIONS_FILE_PATH"
ENV_TOWER_URL = "NATS_TOWER_URL"
ENV_TOWER_API_TOKEN_PATH = "NATS_TOWER_API_TOKEN_PATH"
ENV_TOWER_API_TOKEN = "NATS_TOWER_API_TOKEN"
ENV_RESYNC_INTERVAL = "NATS_TOWER_RESYNC_INTERVAL"
ENV_WORKERS = "NATS_TOWER_WORKERS"
ENV_REQUEST_TIMEOUT = "NATS_TOWER_REQUEST_TIMEOUT"
ENV_METRICS_PORT = "METRICS_PORT"

ENV_POD_CONFIG_KIND = "NATS_TOWER_POD_CONFIG_KIND"
ENV_POD_CONFIG_SELECTOR = "NATS_TOWER_POD_CONFIG_SELECTOR"
ENV_SECRET_CONFIG_KIND = "NATS_TOWER_SECRET_CONFIG_KIND"
ENV_SECRET_CONFIG_SELECTOR = "NATS_TOWER_SECRET_CONFIG_SELECTOR"
ENV_NACK_CONFIG_KIND = "NATS_TOWER_NACK_CONFIG_KIND"
ENV_NACK_CONFIG_SELECTOR = "NATS_TOWER_NACK_CONFIG_SELECTOR"

DEFAULT_INSTALLATIONS_FILE_PATH = "config/installations.yaml"
DEFAULT_METRICS_PORT = 8080


@dataclass(frozen=True)
class Selector:
    """jq boolean expression gating handler invocation."""

    query: str = ""


@dataclass(frozen=True)
class Resource:
    """A watched resource kind and its selector."""

    kind: str
    selector: Selector = field(default_factory=Selector)


@dataclass(frozen=True)
class LabelKeys:
    """Label keys that drive orchestration."""

    secret: str = LABEL_SECRET
    installation: str = LABEL_INSTALLATION
    account: str = LABEL_ACCOUNT
    credential_type: str = LABEL_CREDENTIAL_TYPE
    app_name: str = LABEL_APP_NAME


@dataclass(frozen=True)
class OperatorConfig:
    """Immutable operator configuration passed explicitly to every component."""

    cluster_id: str
    tower_api_token: str
    tower_url: str = ""
    default_installation: str = ""
    valid_installations: frozenset[str] = frozenset()
    resync_interval_minutes: int = 0
    pod_config: Resource = field(default_factory=lambda: Resource(kind=RESOURCE_POD))
    secret_config: Resource = field(default_factory=lambda: Resource(kind=RESOURCE_SECRET))
    nack_account_config: Resource = field(
        default_factory=lambda: Resource(kind=RESOURCE_NACK_ACCOUNT)
    )
    workers: int = DEFAULT_WORKERS
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    metrics_port: int = DEFAULT_METRICS_PORT
    labels: LabelKeys = field(default_factory=LabelKeys)

    @property
    def resync_period_seconds(self) -> float:
        return float(self.resync_interval_minutes * 60)

    def is_valid_installation(self, installation: str) -> bool:
        return installation in self.valid_installations


def _env_int(env: Mapping[str, str], name: str, default: int, *, minimum: int | None = None) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got: {raw!r}") from exc
    if minimum is not None and value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got: {value}")
    return value


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got: {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be > 0, got: {value}")
    return value


def read_file_content(path: str) -> str:
    """Read and strip a file, as used for mounted token files."""
    if not path:
        return ""
    return Path(path).read_text(encoding="utf-8").strip()


def load_valid_installations(path: str) -> frozenset[str]:
    """Load the allowed installations from a YAML mapping keyed by public key.

    Args:
        path: Path to the installations file

    Returns:
        The set of installation keys

    Raises:
        ConfigError: If the file cannot be read or is not a mapping
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"error loading valid installations: {exc}") from exc

    try:
        data: Any = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ConfigError(f"error parsing valid installations: {exc}") from exc

    if data is None:
        return frozenset()
    if not isinstance(data, dict):
        raise ConfigError(f"installations file {path} must contain a mapping")
    return frozenset(str(key) for key in data)


def _resource(env: Mapping[str, str], kind_var: str, selector_var: str, default_kind: str) -> Resource:
    return Resource(
        kind=env.get(kind_var) or default_kind,
        selector=Selector(query=env.get(selector_var, "")),
    )


def load_config(env: Mapping[str, str] | None = None) -> OperatorConfig:
    """Build the operator configuration from environment variables.

    Args:
        env: Environment mapping (defaults to ``os.environ``)

    Returns:
        Validated operator configuration

    Raises:
        ConfigError: If a required value is missing or malformed
    """
    if env is None:
        env = os.environ

    cluster_id = env.get(ENV_CLUSTER_ID, "")
    resync_interval = _env_int(env, ENV_RESYNC_INTERVAL, 0, minimum=0)

    token_path = env.get(ENV_TOWER_API_TOKEN_PATH, "")
    if token_path:
        try:
            tower_api_token = read_file_content(token_path)
        except OSError as exc:
            raise ConfigError(f"error reading API token from file: {exc}") from exc
    else:
        tower_api_token = env.get(ENV_TOWER_API_TOKEN, "")

    if not cluster_id:
        raise ConfigError(f"cluster ID is required: set {ENV_CLUSTER_ID} environment variable")

    if not tower_api_token:
        raise ConfigError(
            f"tower API token is required: set {ENV_TOWER_API_TOKEN} environment variable "
            f"or provide a token file path with {ENV_TOWER_API_TOKEN_PATH}"
        )

    installations_path = env.get(ENV_INSTALLATIONS_FILE_PATH) or DEFAULT_INSTALLATIONS_FILE_PATH

    return OperatorConfig(
        cluster_id=cluster_id,
        tower_api_token=tower_api_token,
        tower_url=env.get(ENV_TOWER_URL, "").rstrip("/"),
        default_installation=env.get(ENV_DEFAULT_INSTALLATION, ""),
        valid_installations=load_valid_installations(installations_path),
        resync_interval_minutes=resync_interval,
        pod_config=_resource(env, ENV_POD_CONFIG_KIND, ENV_POD_CONFIG_SELECTOR, RESOURCE_POD),
        secret_config=_resource(env, ENV_SECRET_CONFIG_KIND, ENV_SECRET_CONFIG_SELECTOR, RESOURCE_SECRET),
        nack_account_config=_resource(
            env, ENV_NACK_CONFIG_KIND, ENV_NACK_CONFIG_SELECTOR, RESOURCE_NACK_ACCOUNT
        ),
        workers=_env_int(env, ENV_WORKERS, DEFAULT_WORKERS, minimum=1),
        request_timeout=_env_float(env, ENV_REQUEST_TIMEOUT, DEFAULT_REQUEST_TIMEOUT_SECONDS),
        metrics_port=_env_int(env, ENV_METRICS_PORT, DEFAULT_METRICS_PORT, minimum=1),
    )
