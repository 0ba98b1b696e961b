"""Tests for typed views of watched objects."""

from __future__ import annotations

import base64

import pytest

from nats_tower_operator.models import Account, ObjectMeta, Pod, Secret


class TestObjectMeta:
    """Test cases for ObjectMeta."""

    def test_from_dict(self):
        """Test metadata fields are read from the JSON dict."""
        meta = ObjectMeta.from_dict(
            {
                "name": "app",
                "namespace": "default",
                "uid": "123",
                "resourceVersion": "9",
                "labels": {"a": "1"},
            }
        )

        assert meta.name == "app"
        assert meta.namespace == "default"
        assert meta.resource_version == "9"
        assert meta.labels == {"a": "1"}
        assert meta.annotations == {}

    def test_name_required(self):
        """Test metadata without a name is rejected."""
        with pytest.raises(ValueError):
            ObjectMeta.from_dict({"namespace": "default"})

    def test_labels_are_read_only(self):
        """Test label mappings cannot be mutated."""
        meta = ObjectMeta.from_dict({"name": "app", "labels": {"a": "1"}})

        with pytest.raises(TypeError):
            meta.labels["a"] = "2"  # type: ignore[index]

    def test_lookup_prefers_labels(self):
        """Test lookup reads labels first, then annotations."""
        meta = ObjectMeta.from_dict(
            {"name": "app", "labels": {"k": "label"}, "annotations": {"k": "annotation", "only": "a"}}
        )

        assert meta.lookup("k") == "label"
        assert meta.lookup("only") == "a"
        assert meta.lookup("missing") == ""


class TestKinds:
    """Test cases for the watched kinds."""

    def test_pod(self):
        """Test pods decode with defaults for missing type info."""
        pod = Pod.from_dict({"metadata": {"name": "app", "namespace": "ns"}})

        assert pod.kind == "Pod"
        assert pod.api_version == "v1"
        assert pod.name == "app"
        assert pod.namespace == "ns"

    def test_secret_decoded(self):
        """Test secret data values are decoded on demand."""
        secret = Secret.from_dict(
            {
                "metadata": {"name": "creds"},
                "data": {"ACCOUNT_NAME": base64.b64encode(b"orders").decode()},
            }
        )

        assert secret.type == "Opaque"
        assert secret.decoded("ACCOUNT_NAME") == "orders"
        assert secret.decoded("missing") == ""

    def test_secret_malformed_data(self):
        """Test malformed base64 decodes to an empty string."""
        secret = Secret.from_dict({"metadata": {"name": "creds"}, "data": {"k": "%%%"}})

        assert secret.decoded("k") == ""

    def test_account(self):
        """Test NACK accounts keep their spec."""
        account = Account.from_dict(
            {
                "apiVersion": "jetstream.nats.io/v1beta2",
                "kind": "Account",
                "metadata": {"name": "orders", "namespace": "shop"},
                "spec": {"name": "orders"},
            }
        )

        assert account.kind == "Account"
        assert account.spec["name"] == "orders"
