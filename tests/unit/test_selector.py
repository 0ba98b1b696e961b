"""Tests for jq selector queries."""

from __future__ import annotations

import pytest

from nats_tower_operator.exceptions import SelectorError
from nats_tower_operator.selector import SelectorQuery

POD = {
    "apiVersion": "v1",
    "kind": "Pod",
    "metadata": {"name": "app", "namespace": "team-a", "labels": {"tier": "backend"}},
}


class TestSelectorQuery:
    """Test cases for SelectorQuery."""

    def test_empty_query_matches_everything(self):
        """Test an empty query is falsy and matches."""
        query = SelectorQuery("  ")

        assert not query
        assert query.matches(POD)

    def test_true_and_false(self):
        """Test boolean queries decide the match."""
        assert SelectorQuery('.metadata.namespace == "team-a"').matches(POD) is True
        assert SelectorQuery('.metadata.labels.tier == "frontend"').matches(POD) is False

    def test_query_is_reusable(self):
        """Test a compiled query evaluates several objects."""
        query = SelectorQuery(".metadata.labels.tier == \"backend\"")
        other = {**POD, "metadata": {**POD["metadata"], "labels": {}}}

        assert query.matches(POD) is True
        assert query.matches(other) is False

    def test_invalid_query(self):
        """Test a query that does not compile raises SelectorError."""
        with pytest.raises(SelectorError):
            SelectorQuery(".metadata.name ==")

    def test_non_boolean_result(self):
        """Test a query yielding a non-boolean raises SelectorError."""
        with pytest.raises(SelectorError, match="single boolean"):
            SelectorQuery(".metadata.name").matches(POD)

    def test_multiple_results(self):
        """Test a query yielding several values raises SelectorError."""
        with pytest.raises(SelectorError):
            SelectorQuery("true, false").matches(POD)

    def test_runtime_error(self):
        """Test jq runtime errors raise SelectorError."""
        with pytest.raises(SelectorError):
            SelectorQuery('error("nope")').matches(POD)
