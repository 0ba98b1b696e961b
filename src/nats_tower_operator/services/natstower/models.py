"""Records exchanged with the NATS Tower API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ConnectionInfo:
    """Credentials and connection details written into the target secret."""

    creds: str
    urls: str
    account_name: str

    def __repr__(self) -> str:
        return f"ConnectionInfo(urls={self.urls!r}, account_name={self.account_name!r}, creds='***')"


@dataclass(frozen=True)
class Operator:
    id: str
    url: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Operator":
        return cls(id=str(data.get("id", "")), url=str(data.get("url") or ""))


@dataclass(frozen=True)
class Account:
    id: str
    name: str = ""
    public_key: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Account":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name") or ""),
            public_key=str(data.get("public_key") or ""),
        )


@dataclass(frozen=True)
class User:
    id: str
    creds: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        return cls(id=str(data.get("id", "")), creds=str(data.get("creds") or ""))

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, creds='***')"
