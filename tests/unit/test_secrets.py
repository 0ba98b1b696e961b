"""Tests for credential secret utilities."""

from __future__ import annotations

import base64
from unittest.mock import Mock

import pytest
from kubernetes import client
from kubernetes.client.exceptions import ApiException

from nats_tower_operator.config import LabelKeys
from nats_tower_operator.services.natstower import ConnectionInfo
from nats_tower_operator.utils.secrets import (
    create_credentials_secret,
    credentials_data,
    has_credentials,
    read_secret,
    update_credentials_secret,
)

CREDS = ConnectionInfo(creds="jwt-and-seed", urls="nats://a:4222,nats://b:4222", account_name="orders")


def decode(value: str) -> str:
    return base64.b64decode(value).decode("utf-8")


class TestReadSecret:
    """Test cases for read_secret function."""

    def test_found(self):
        """Test an existing secret is returned."""
        mock_api = Mock()
        secret = client.V1Secret(metadata=client.V1ObjectMeta(name="creds1"))
        mock_api.read_namespaced_secret.return_value = secret

        assert read_secret(mock_api, "shop", "creds1") is secret
        mock_api.read_namespaced_secret.assert_called_once_with(name="creds1", namespace="shop")

    def test_not_found(self):
        """Test a missing secret reads as None."""
        mock_api = Mock()
        mock_api.read_namespaced_secret.side_effect = ApiException(status=404)

        assert read_secret(mock_api, "shop", "creds1") is None

    def test_other_errors_raise(self):
        """Test errors other than not found propagate."""
        mock_api = Mock()
        mock_api.read_namespaced_secret.side_effect = ApiException(status=403)

        with pytest.raises(ApiException):
            read_secret(mock_api, "shop", "creds1")


class TestCredentialsData:
    """Test cases for secret payload helpers."""

    def test_credentials_data(self):
        """Test the payload carries the three connection keys, base64 encoded."""
        data = credentials_data(CREDS)

        assert {key: decode(value) for key, value in data.items()} == {
            "nats.creds": "jwt-and-seed",
            "URLS": "nats://a:4222,nats://b:4222",
            "ACCOUNT_NAME": "orders",
        }

    @pytest.mark.parametrize(
        "data,expected",
        [(None, False), ({}, False), ({"nats.creds": ""}, False), ({"URLS": "eA=="}, False), ({"nats.creds": "eA=="}, True)],
    )
    def test_has_credentials(self, data, expected):
        """Test only a non-empty credentials key counts."""
        assert has_credentials(client.V1Secret(data=data)) is expected


class TestWriteSecret:
    """Test cases for creating and updating credential secrets."""

    def test_create(self):
        """Test an Opaque secret with managed labels is created."""
        mock_api = Mock()

        create_credentials_secret(mock_api, "shop", "creds1", CREDS, "user", LabelKeys())

        kwargs = mock_api.create_namespaced_secret.call_args.kwargs
        body = kwargs["body"]
        assert kwargs["namespace"] == "shop"
        assert kwargs["field_manager"] == "nats-tower-operator"
        assert body.type == "Opaque"
        assert body.metadata.name == "creds1"
        assert body.metadata.namespace == "shop"
        assert body.metadata.labels == {
            "nats-tower.com/nats-tower-secret": "true",
            "nats-tower.com/nats-tower-credential-type": "user",
        }
        assert decode(body.data["URLS"]) == "nats://a:4222,nats://b:4222"

    def test_update_merges(self):
        """Test updates keep unrelated data and labels and replace the revision read."""
        mock_api = Mock()
        last_revision = client.V1Secret(
            metadata=client.V1ObjectMeta(
                name="creds1",
                namespace="shop",
                resource_version="12",
                labels={"team": "payments"},
            ),
            data={"other": "b3RoZXI=", "URLS": "b2xk"},
        )

        update_credentials_secret(mock_api, last_revision, CREDS, "user", LabelKeys())

        kwargs = mock_api.replace_namespaced_secret.call_args.kwargs
        body = kwargs["body"]
        assert kwargs["name"] == "creds1"
        assert kwargs["namespace"] == "shop"
        assert body.metadata.resource_version == "12"
        assert body.data["other"] == "b3RoZXI="
        assert decode(body.data["URLS"]) == "nats://a:4222,nats://b:4222"
        assert body.metadata.labels["team"] == "payments"
        assert body.metadata.labels["nats-tower.com/nats-tower-secret"] == "true"
