"""Typed read-only views of the watched Kubernetes objects."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Union

_EMPTY: Mapping[str, str] = MappingProxyType({})


def _str_map(value: Any) -> Mapping[str, str]:
    if not value:
        return _EMPTY
    if not isinstance(value, dict):
        raise ValueError(f"expected a mapping, got {type(value).__name__}")
    return MappingProxyType({str(k): "" if v is None else str(v) for k, v in value.items()})


@dataclass(frozen=True)
class ObjectMeta:
    """Subset of metadata the handlers rely on."""

    name: str
    namespace: str = ""
    uid: str = ""
    resource_version: str = ""
    labels: Mapping[str, str] = field(default_factory=lambda: _EMPTY)
    annotations: Mapping[str, str] = field(default_factory=lambda: _EMPTY)

    @classmethod
    def from_dict(cls, metadata: dict[str, Any]) -> "ObjectMeta":
        name = metadata.get("name")
        if not name:
            raise ValueError("metadata.name is required")
        return cls(
            name=name,
            namespace=metadata.get("namespace") or "",
            uid=metadata.get("uid") or "",
            resource_version=metadata.get("resourceVersion") or "",
            labels=_str_map(metadata.get("labels")),
            annotations=_str_map(metadata.get("annotations")),
        )

    def lookup(self, key: str) -> str:
        """Return the value of a label, falling back to an annotation."""
        return self.labels.get(key) or self.annotations.get(key) or ""


@dataclass(frozen=True)
class KubeObject:
    """Common shape of every watched object."""

    api_version: str
    kind: str
    metadata: ObjectMeta

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def labels(self) -> Mapping[str, str]:
        return self.metadata.labels


@dataclass(frozen=True)
class Pod(KubeObject):
    """A core/v1 Pod."""

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "Pod":
        return cls(
            api_version=obj.get("apiVersion") or "v1",
            kind=obj.get("kind") or "Pod",
            metadata=ObjectMeta.from_dict(obj.get("metadata") or {}),
        )


@dataclass(frozen=True)
class Secret(KubeObject):
    """A core/v1 Secret; ``data`` values stay base64 encoded as in the API."""

    type: str = "Opaque"
    data: Mapping[str, str] = field(default_factory=lambda: _EMPTY)

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "Secret":
        return cls(
            api_version=obj.get("apiVersion") or "v1",
            kind=obj.get("kind") or "Secret",
            metadata=ObjectMeta.from_dict(obj.get("metadata") or {}),
            type=obj.get("type") or "Opaque",
            data=_str_map(obj.get("data")),
        )

    def decoded(self, key: str) -> str:
        """Return the decoded value of a data key, or "" when absent or malformed."""
        value = self.data.get(key)
        if not value:
            return ""
        try:
            return base64.b64decode(value).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return ""


@dataclass(frozen=True)
class Account(KubeObject):
    """A NACK ``jetstream.nats.io/v1beta2`` Account."""

    spec: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "Account":
        return cls(
            api_version=obj.get("apiVersion") or "jetstream.nats.io/v1beta2",
            kind=obj.get("kind") or "Account",
            metadata=ObjectMeta.from_dict(obj.get("metadata") or {}),
            spec=MappingProxyType(dict(obj.get("spec") or {})),
        )


WatchedObject = Union[Pod, Secret, Account]
