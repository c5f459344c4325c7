# tests/models/test_prometheus_metrics.py
"""
Tests for the QueryResult model and the Prometheus payload parser.
"""

import math

import pytest

from clustercost.core.exceptions import QueryResultError
from clustercost.models.prometheus_metrics import QueryResult, Vector, parse_query_results

MOCK_RANGE_RESPONSE = {
    "status": "success",
    "data": {
        "resultType": "matrix",
        "result": [
            {
                "metric": {"cluster_id": "cluster1", "node": "node1", "provider_id": "prov1"},
                "values": [[1592279128, "0.5"], [1592279188, "not-a-number"], [1592279248, "0.6"]],
            },
            {
                "metric": {"cluster_id": "cluster1", "node": "node2"},
                "values": [[1592279128, "NaN"]],
            },
        ],
    },
}

MOCK_INSTANT_RESPONSE = {
    "status": "success",
    "data": {
        "resultType": "vector",
        "result": [
            {
                "metric": {"cluster_id": "cluster1", "node": "node1"},
                "value": [1592279128, "4"],
            },
        ],
    },
}


def test_parse_range_response_drops_malformed_samples():
    results = parse_query_results(MOCK_RANGE_RESPONSE)

    assert len(results) == 2
    assert [v.value for v in results[0].values] == [0.5, 0.6]
    assert results[0].values[1].timestamp == 1592279248
    assert results[0].last_value() == 0.6


def test_parse_instant_response():
    results = parse_query_results(MOCK_INSTANT_RESPONSE)

    assert len(results) == 1
    assert results[0].values == [Vector(timestamp=1592279128, value=4.0)]


def test_parse_bare_list():
    results = parse_query_results(MOCK_INSTANT_RESPONSE["data"]["result"])
    assert len(results) == 1
    assert results[0].metric["node"] == "node1"


def test_parse_error_response_raises():
    with pytest.raises(QueryResultError):
        parse_query_results({"status": "error", "error": "bad query"})


def test_parse_unexpected_payload_raises():
    with pytest.raises(QueryResultError):
        parse_query_results("not a payload")


def test_parse_series_with_non_mapping_metric_raises():
    with pytest.raises(QueryResultError):
        parse_query_results([{"metric": "node1", "value": [0, "1"]}])


def test_last_value_skips_non_finite_samples():
    result = QueryResult(
        values=[
            Vector(timestamp=0, value=1.5),
            Vector(timestamp=60, value=float("nan")),
            Vector(timestamp=120, value=float("inf")),
        ]
    )
    assert result.last_value() == 1.5
    assert len(result.usable_values()) == 1


def test_last_value_without_samples_is_none():
    assert QueryResult().last_value() is None
    assert math.isnan(parse_query_results(MOCK_RANGE_RESPONSE)[1].values[0].value)
    assert parse_query_results(MOCK_RANGE_RESPONSE)[1].last_value() is None


def test_get_string():
    result = QueryResult(metric={"node": "node1", "cluster_id": 3})

    assert result.get_string("node") == "node1"
    with pytest.raises(QueryResultError):
        result.get_string("cluster_id")
    with pytest.raises(QueryResultError):
        result.get_string("provider_id")


def test_get_labels_strips_prefix():
    result = QueryResult(
        metric={
            "cluster_id": "cluster1",
            "node": "node1",
            "label_node_kubernetes_io_instance_type": "e2-small",
            "label_pool": "default",
        }
    )
    assert result.get_labels() == {"node_kubernetes_io_instance_type": "e2-small", "pool": "default"}
