# tests/core/test_decoder.py
"""
Tests for ResultDecoder: key extraction, last-write-wins and silent
elision of malformed results.
"""

from datetime import datetime, timedelta, timezone

import pytest

from clustercost.core.decoder import NodeIndex, ResultDecoder, node_types_from_labels
from clustercost.models.node import ActiveWindow, ClusterCostsBreakdown, NodeIdentifier, NodeKey

NODE1_ID = NodeIdentifier(cluster="cluster1", name="node1", provider_id="prov1")
NODE1_KEY = NodeKey(cluster="cluster1", name="node1")


def test_decode_scalars_by_identifier(result_factory):
    results = [
        result_factory(0.048, cluster_id="cluster1", node="node1", provider_id="prov1"),
        result_factory(0.033, cluster_id="cluster1", node="node2"),
    ]

    decoded = ResultDecoder("cpu_cost").decode_scalars(results)

    assert decoded == {
        NODE1_ID: 0.048,
        NodeIdentifier(cluster="cluster1", name="node2", provider_id=""): 0.033,
    }


def test_decode_scalars_by_key(result_factory):
    results = [result_factory(4.0, cluster_id="cluster1", node="node1", provider_id="prov1")]

    decoded = ResultDecoder("cpu_cores").decode_scalars(results, NodeIndex.KEY)

    assert decoded == {NODE1_KEY: 4.0}
    assert NODE1_ID not in decoded


def test_decode_scalars_applies_provider_id_parser(result_factory):
    results = [result_factory(1.0, cluster_id="cluster1", node="node1", provider_id="PROV1")]

    decoded = ResultDecoder("cpu_cost", provider_id_parser=str.lower).decode_scalars(results)

    assert list(decoded) == [NODE1_ID]


def test_decode_scalars_last_write_wins(result_factory):
    results = [
        result_factory(1.0, cluster_id="cluster1", node="node1", provider_id="prov1"),
        result_factory(2.0, cluster_id="cluster1", node="node1", provider_id="prov1"),
    ]

    assert ResultDecoder("cpu_cost").decode_scalars(results) == {NODE1_ID: 2.0}


def test_decode_scalars_takes_last_finite_sample(result_factory):
    results = [
        result_factory(
            values=[(0, 1.0), (60, 3.0), (120, float("nan"))],
            cluster_id="cluster1",
            node="node1",
            provider_id="prov1",
        )
    ]

    assert ResultDecoder("cpu_cost").decode_scalars(results) == {NODE1_ID: 3.0}


@pytest.mark.parametrize(
    "labels, value",
    [
        ({"node": "node1"}, 1.0),
        ({"cluster_id": "cluster1"}, 1.0),
        ({"cluster_id": 42, "node": "node1"}, 1.0),
        ({"cluster_id": "cluster1", "node": "node1"}, None),
        ({}, None),
    ],
)
def test_decode_scalars_skips_malformed_results(result_factory, labels, value):
    decoder = ResultDecoder("cpu_cost")

    decoded = decoder.decode_scalars([result_factory(value, **labels)])

    assert decoded == {}
    assert len(decoder.warnings) == 1
    assert decoder.warnings[0].stream == "cpu_cost"


def test_decode_scalars_empty_input():
    decoder = ResultDecoder("cpu_cost")
    assert decoder.decode_scalars([]) == {}
    assert decoder.warnings == []


def test_decode_node_types(result_factory):
    results = [
        result_factory(1.0, cluster_id="cluster1", node="node1", instance_type="e2-small"),
        result_factory(1.0, cluster_id="cluster1", node="node2", instance_type=""),
        result_factory(1.0, cluster_id="cluster1", node="node3"),
    ]
    decoder = ResultDecoder("cpu_cost_types")

    types = decoder.decode_node_types(results)

    assert types == {
        NODE1_KEY: "e2-small",
        NodeKey(cluster="cluster1", name="node2"): "",
    }
    assert len(decoder.warnings) == 1


def test_decode_node_types_without_reporting(result_factory, caplog):
    results = [
        result_factory(1.0, cluster_id="cluster1", node="node1", instance_type="e2-small"),
        result_factory(1.0, cluster_id="cluster1", node="node2"),
        result_factory(1.0, node="node3", instance_type="n1"),
    ]
    decoder = ResultDecoder("instance_type")

    with caplog.at_level("WARNING"):
        types = decoder.decode_node_types(results, report=False)

    assert types == {NODE1_KEY: "e2-small"}
    assert decoder.warnings == []
    assert caplog.records == []


def test_decode_labels_does_not_need_samples(result_factory):
    results = [
        result_factory(
            cluster_id="cluster1",
            node="node1",
            label_node_kubernetes_io_instance_type="e2-medium",
            label_team="infra",
        )
    ]

    labels = ResultDecoder("labels").decode_labels(results)

    assert labels == {NODE1_KEY: {"node_kubernetes_io_instance_type": "e2-medium", "team": "infra"}}


def test_decode_cpu_breakdown(result_factory):
    results = [
        result_factory(60.0, cluster_id="cluster1", node="node1", mode="idle"),
        result_factory(20.0, cluster_id="cluster1", node="node1", mode="user"),
        result_factory(10.0, cluster_id="cluster1", node="node1", mode="system"),
        result_factory(6.0, cluster_id="cluster1", node="node1", mode="iowait"),
        result_factory(4.0, cluster_id="cluster1", node="node1", mode="steal"),
        result_factory(0.0, cluster_id="cluster1", node="node2", mode="idle"),
        result_factory(5.0, cluster_id="cluster1", node="node3"),
    ]
    decoder = ResultDecoder("cpu_mode_total")

    breakdowns = decoder.decode_cpu_breakdown(results)

    assert breakdowns[NODE1_KEY] == ClusterCostsBreakdown(idle=60.0, other=10.0, system=10.0, user=20.0)
    assert breakdowns[NodeKey(cluster="cluster1", name="node2")] == ClusterCostsBreakdown()
    assert NodeKey(cluster="cluster1", name="node3") not in breakdowns
    assert len(decoder.warnings) == 1


def test_decode_active_windows(result_factory):
    start = datetime(2020, 6, 16, 3, 45, 28, tzinfo=timezone.utc)
    end = datetime(2020, 6, 16, 9, 20, 28, tzinfo=timezone.utc)
    results = [
        result_factory(
            values=[(start.timestamp(), 1.0), (start.timestamp() + 60, 1.0), (end.timestamp(), 1.0)],
            cluster_id="cluster1",
            node="node1",
            provider_id="prov1",
        )
    ]

    windows = ResultDecoder("active_minutes").decode_active_windows(results, resolution=timedelta(minutes=1))

    window = windows[NODE1_ID]
    assert isinstance(window, ActiveWindow)
    assert window.start == start
    assert window.end == end + timedelta(minutes=1)
    assert window.minutes == pytest.approx(5 * 60 + 36)


def test_decode_active_windows_single_sample(result_factory):
    results = [result_factory(1.0, cluster_id="cluster1", node="node1", provider_id="prov1")]

    window = ResultDecoder("active_minutes").decode_active_windows(results)[NODE1_ID]

    assert window.start == window.end
    assert window.minutes == 0.0


def test_decode_active_windows_skips_results_without_samples(result_factory):
    decoder = ResultDecoder("active_minutes")
    results = [
        result_factory(values=[(0, float("nan"))], cluster_id="cluster1", node="node1", provider_id="prov1"),
    ]

    assert decoder.decode_active_windows(results) == {}
    assert len(decoder.warnings) == 1


def test_decode_active_windows_skips_out_of_order_samples(result_factory):
    decoder = ResultDecoder("active_minutes")
    results = [
        result_factory(values=[(120, 1.0), (0, 1.0)], cluster_id="cluster1", node="node1", provider_id="prov1"),
    ]

    assert decoder.decode_active_windows(results) == {}
    assert [w.reason for w in decoder.warnings] == ["samples are not in chronological order"]


def test_decode_preemptible(result_factory):
    results = [
        result_factory(1.0, cluster_id="cluster1", node="node1", provider_id="prov1"),
        result_factory(0.0, cluster_id="cluster1", node="node2", provider_id="prov2"),
    ]

    preemptible = ResultDecoder("preemptible").decode_preemptible(results)

    assert preemptible == {
        NODE1_ID: True,
        NodeIdentifier(cluster="cluster1", name="node2", provider_id="prov2"): False,
    }


def test_node_types_from_labels():
    labels_map = {
        NODE1_KEY: {"beta_kubernetes_io_instance_type": "old", "node_kubernetes_io_instance_type": "new"},
        NodeKey(cluster="cluster1", name="node2"): {"beta_kubernetes_io_instance_type": "beta-only"},
        NodeKey(cluster="cluster1", name="node3"): {"team": "infra"},
    }

    types = node_types_from_labels(
        labels_map, ["node_kubernetes_io_instance_type", "beta_kubernetes_io_instance_type"]
    )

    assert types == {
        NODE1_KEY: "new",
        NodeKey(cluster="cluster1", name="node2"): "beta-only",
    }
