# src/clustercost/core/decoder.py

"""
ResultDecoder turns raw query results into typed per-node maps.

Each metric stream gets its own decoder instance. Results missing a
required label or without usable samples are dropped, recorded as a
DecodeWarning and summarized in a single log line.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from ..models.node import ActiveWindow, ClusterCostsBreakdown, NodeIdentifier, NodeKey
from ..models.prometheus_metrics import DecodeWarning, QueryResult
from ..utils.provider_id import ProviderIDParser, identity
from .exceptions import QueryResultError

logger = logging.getLogger(__name__)

CLUSTER_LABEL = "cluster_id"
NODE_LABEL = "node"
PROVIDER_ID_LABEL = "provider_id"
INSTANCE_TYPE_LABEL = "instance_type"
MODE_LABEL = "mode"

MAX_WARNING_EXAMPLES = 3


class NodeIndex(str, Enum):
    """Which key a decoded map is indexed by."""

    IDENTIFIER = "identifier"
    KEY = "key"


def node_identifier(result: QueryResult, provider_id_parser: Optional[ProviderIDParser] = None) -> NodeIdentifier:
    """Build the full node key from a result's labels. Raises QueryResultError."""
    parser = provider_id_parser or identity
    cluster = result.get_string(CLUSTER_LABEL)
    name = result.get_string(NODE_LABEL)
    try:
        provider_id = parser(result.get_string(PROVIDER_ID_LABEL))
    except QueryResultError:
        provider_id = ""
    return NodeIdentifier(cluster=cluster, name=name, provider_id=provider_id)


def node_key(result: QueryResult) -> NodeKey:
    """Build the short node key from a result's labels. Raises QueryResultError."""
    return NodeKey(cluster=result.get_string(CLUSTER_LABEL), name=result.get_string(NODE_LABEL))


class ResultDecoder:
    """
    Decodes the query results of one metric stream.

    Args:
        stream: Name of the stream, used in warnings and log lines
        provider_id_parser: Normalizes cloud-specific provider IDs; identity when None
    """

    def __init__(self, stream: str, provider_id_parser: Optional[ProviderIDParser] = None):
        self.stream = stream
        self.provider_id_parser = provider_id_parser or identity
        self.warnings: List[DecodeWarning] = []

    def _drop(self, result: QueryResult, reason: str, dropped: List[DecodeWarning]):
        logger.debug("Dropping %s result %s: %s", self.stream, result.metric, reason)
        dropped.append(DecodeWarning(stream=self.stream, reason=reason, metric=dict(result.metric)))

    def _report(self, dropped: List[DecodeWarning], decoded: int):
        self.warnings.extend(dropped)
        if dropped:
            logger.warning(
                "Skipped %d malformed %s result(s). Examples: %s",
                len(dropped),
                self.stream,
                [w.reason for w in dropped[:MAX_WARNING_EXAMPLES]],
            )
        logger.debug("Decoded %d %s entries", decoded, self.stream)

    def _key_for(self, result: QueryResult, index: NodeIndex) -> Union[NodeIdentifier, NodeKey]:
        if index == NodeIndex.IDENTIFIER:
            return node_identifier(result, self.provider_id_parser)
        return node_key(result)

    def decode_scalars(
        self, results: Iterable[QueryResult], index: NodeIndex = NodeIndex.IDENTIFIER
    ) -> Dict[Union[NodeIdentifier, NodeKey], float]:
        """
        Map each node to the last finite sample of its series.

        When two results decode to the same key the later one wins.
        """
        decoded = {}
        dropped: List[DecodeWarning] = []
        for result in results:
            try:
                key = self._key_for(result, index)
            except QueryResultError as e:
                self._drop(result, str(e), dropped)
                continue

            value = result.last_value()
            if value is None:
                self._drop(result, "no usable samples", dropped)
                continue

            decoded[key] = value

        self._report(dropped, len(decoded))
        return decoded

    def decode_node_types(self, results: Iterable[QueryResult], report: bool = True) -> Dict[NodeKey, str]:
        """
        Map each node to the value of its 'instance_type' label, empty strings included.

        With `report=False` results lacking the label or a node key are
        skipped without a warning. Use it when the same results were
        already decoded, and their drops reported, by another decoder.
        """
        types = {}
        dropped: List[DecodeWarning] = []
        for result in results:
            try:
                key = node_key(result)
                types[key] = result.get_string(INSTANCE_TYPE_LABEL)
            except QueryResultError as e:
                if report:
                    self._drop(result, str(e), dropped)

        if report:
            self._report(dropped, len(types))
        return types

    def decode_labels(self, results: Iterable[QueryResult]) -> Dict[NodeKey, Dict[str, str]]:
        """
        Map each node to its 'label_*' labels with the prefix stripped.

        Label series carry no meaningful value, so samples are not required.
        """
        labels = {}
        dropped: List[DecodeWarning] = []
        for result in results:
            try:
                key = node_key(result)
            except QueryResultError as e:
                self._drop(result, str(e), dropped)
                continue
            labels[key] = result.get_labels()

        self._report(dropped, len(labels))
        return labels

    def decode_cpu_breakdown(self, results: Iterable[QueryResult]) -> Dict[NodeKey, ClusterCostsBreakdown]:
        """
        Build CPU breakdowns from per-mode CPU time totals.

        Totals are summed per node and mode, then converted to percentages
        of the node's total. Modes other than idle, system and user are
        counted as 'other'.
        """
        totals: Dict[NodeKey, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
        dropped: List[DecodeWarning] = []
        for result in results:
            try:
                key = node_key(result)
                mode = result.get_string(MODE_LABEL)
            except QueryResultError as e:
                self._drop(result, str(e), dropped)
                continue

            value = result.last_value()
            if value is None:
                self._drop(result, "no usable samples", dropped)
                continue

            if mode not in ("idle", "system", "user"):
                mode = "other"
            totals[key][mode] += value

        breakdowns = {}
        for key, modes in totals.items():
            total = sum(modes.values())
            if total <= 0:
                breakdowns[key] = ClusterCostsBreakdown()
                continue
            breakdowns[key] = ClusterCostsBreakdown(
                idle=100.0 * modes["idle"] / total,
                other=100.0 * modes["other"] / total,
                system=100.0 * modes["system"] / total,
                user=100.0 * modes["user"] / total,
            )

        self._report(dropped, len(breakdowns))
        return breakdowns

    def decode_active_windows(
        self, results: Iterable[QueryResult], resolution: timedelta = timedelta(0)
    ) -> Dict[NodeIdentifier, ActiveWindow]:
        """
        Derive each node's activity window from the timestamps of its samples.

        The window runs from the first usable sample to the last one plus
        `resolution`, the step of the query that produced the samples.
        """
        windows = {}
        dropped: List[DecodeWarning] = []
        for result in results:
            try:
                key = node_identifier(result, self.provider_id_parser)
            except QueryResultError as e:
                self._drop(result, str(e), dropped)
                continue

            samples = result.usable_values()
            if not samples:
                self._drop(result, "no usable samples", dropped)
                continue

            start = datetime.fromtimestamp(samples[0].timestamp, tz=timezone.utc)
            end = datetime.fromtimestamp(samples[-1].timestamp, tz=timezone.utc) + resolution
            if end < start:
                self._drop(result, "samples are not in chronological order", dropped)
                continue

            windows[key] = ActiveWindow(start=start, end=end, minutes=(end - start).total_seconds() / 60.0)

        self._report(dropped, len(windows))
        return windows

    def decode_preemptible(self, results: Iterable[QueryResult]) -> Dict[NodeIdentifier, bool]:
        """Flag nodes whose last usable value is positive as preemptible."""
        return {key: value > 0 for key, value in self.decode_scalars(results, NodeIndex.IDENTIFIER).items()}


def node_types_from_labels(labels_map: Dict[NodeKey, Dict[str, str]], label_names: List[str]) -> Dict[NodeKey, str]:
    """
    Derive instance types from decoded node labels.

    The first name in `label_names` present on a node wins.
    """
    types = {}
    for key, labels in labels_map.items():
        for label_name in label_names:
            if label_name in labels:
                types[key] = labels[label_name]
                break
    return types
