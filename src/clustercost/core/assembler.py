# src/clustercost/core/assembler.py
"""
Outer join of the decoded node streams into one Node record per
NodeIdentifier.

Rate-bearing streams (costs, GPU count, activity, preemptibility) are
keyed by NodeIdentifier. Capacity and utilization streams predate
instance replacement and are keyed by NodeKey; their values are
broadcast to every provider-ID variant of the node.
"""

import logging
from typing import Dict, Optional

from ..data.partial_cpu import PARTIAL_CPU_MAP
from ..models.node import ActiveWindow, ClusterCostsBreakdown, Node, NodeIdentifier, NodeKey

logger = logging.getLogger(__name__)


def merge_type_maps(a: Dict[NodeKey, str], b: Dict[NodeKey, str]) -> Dict[NodeKey, str]:
    """
    Merge two instance-type maps into a new one.

    `a` takes precedence on every key it contains, even when its value is
    an empty string.
    """
    merged = dict(b)
    merged.update(a)
    return merged


def _ram_breakdown(key: NodeKey, user_pct: Dict[NodeKey, float], system_pct: Dict[NodeKey, float]):
    if key not in user_pct and key not in system_pct:
        return ClusterCostsBreakdown()

    user = user_pct.get(key, 0.0)
    system = system_pct.get(key, 0.0)
    return ClusterCostsBreakdown(user=user, system=system, other=0.0, idle=max(0.0, 100.0 - user - system))


def apply_partial_cpu_correction(node: Node, partial_cpu_map: Dict[str, float]) -> Node:
    """
    Rescale CPU cost and cores for shared-core instance types.

    The provider reports the same core count for every shared-core VM,
    while billing follows the fraction actually granted. Nodes with no
    reported cores are left untouched.
    """
    canonical = partial_cpu_map.get(node.node_type)
    if canonical is None or node.cpu_cores <= 0:
        return node

    factor = canonical / node.cpu_cores
    logger.debug(
        "Adjusting %s node %s from %s to %s cores (cost factor %s)",
        node.node_type,
        node.identifier,
        node.cpu_cores,
        canonical,
        factor,
    )
    node.cpu_cost = node.cpu_cost * factor
    node.cpu_cores = canonical
    return node


def build_node_map(
    cpu_cost: Optional[Dict[NodeIdentifier, float]] = None,
    ram_cost: Optional[Dict[NodeIdentifier, float]] = None,
    gpu_cost: Optional[Dict[NodeIdentifier, float]] = None,
    gpu_count: Optional[Dict[NodeIdentifier, float]] = None,
    cpu_cores: Optional[Dict[NodeKey, float]] = None,
    ram_bytes: Optional[Dict[NodeKey, float]] = None,
    ram_user_pct: Optional[Dict[NodeKey, float]] = None,
    ram_system_pct: Optional[Dict[NodeKey, float]] = None,
    cpu_breakdown: Optional[Dict[NodeKey, ClusterCostsBreakdown]] = None,
    active_data: Optional[Dict[NodeIdentifier, ActiveWindow]] = None,
    preemptible: Optional[Dict[NodeIdentifier, bool]] = None,
    labels: Optional[Dict[NodeKey, Dict[str, str]]] = None,
    node_types: Optional[Dict[NodeKey, str]] = None,
    partial_cpu_map: Optional[Dict[str, float]] = None,
) -> Dict[NodeIdentifier, Node]:
    """
    Join every decoded stream into a map of Node records.

    The output holds exactly one Node per NodeIdentifier found in the
    identifier-keyed inputs. Missing values are zero-filled and both
    breakdowns are always allocated. The partial-core correction runs
    last, once all fields are joined. `None` is treated as an empty map.
    """
    cpu_cost = cpu_cost or {}
    ram_cost = ram_cost or {}
    gpu_cost = gpu_cost or {}
    gpu_count = gpu_count or {}
    cpu_cores = cpu_cores or {}
    ram_bytes = ram_bytes or {}
    ram_user_pct = ram_user_pct or {}
    ram_system_pct = ram_system_pct or {}
    cpu_breakdown = cpu_breakdown or {}
    active_data = active_data or {}
    preemptible = preemptible or {}
    labels = labels or {}
    node_types = node_types or {}
    if partial_cpu_map is None:
        partial_cpu_map = PARTIAL_CPU_MAP

    identifiers = set()
    for stream in (cpu_cost, ram_cost, gpu_cost, gpu_count, active_data, preemptible):
        identifiers.update(stream.keys())

    node_map = {}
    for identifier in identifiers:
        key = identifier.key

        node = Node(
            cluster=identifier.cluster,
            name=identifier.name,
            provider_id=identifier.provider_id,
            node_type=node_types.get(key, ""),
            cpu_cost=cpu_cost.get(identifier, 0.0),
            ram_cost=ram_cost.get(identifier, 0.0),
            gpu_cost=gpu_cost.get(identifier, 0.0),
            cpu_cores=cpu_cores.get(key, 0.0),
            gpu_count=gpu_count.get(identifier, 0.0),
            ram_bytes=ram_bytes.get(key, 0.0),
            preemptible=preemptible.get(identifier, False),
            labels=dict(labels.get(key, {})),
        )

        # Copies keep nodes sharing a NodeKey independent of each other.
        if key in cpu_breakdown:
            node.cpu_breakdown = cpu_breakdown[key].model_copy()
        node.ram_breakdown = _ram_breakdown(key, ram_user_pct, ram_system_pct)

        window = active_data.get(identifier)
        if window is not None:
            node.start = window.start
            node.end = window.end
            node.minutes = window.minutes

        node_map[identifier] = apply_partial_cpu_correction(node, partial_cpu_map)

    logger.debug("Built %d node record(s)", len(node_map))
    return node_map
