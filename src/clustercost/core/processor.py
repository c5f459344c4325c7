# src/clustercost/core/processor.py
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..models.node import Node, NodeIdentifier
from ..models.prometheus_metrics import DecodeWarning, QueryResult, parse_query_results
from ..utils.provider_id import ProviderIDParser, get_provider_id_parser
from .assembler import build_node_map, merge_type_maps
from .config import Config, config
from .decoder import NodeIndex, ResultDecoder, node_types_from_labels
from .exceptions import QueryResultError
from .gpu_cost import build_gpu_cost_map

logger = logging.getLogger(__name__)


class NodeQueryResults(BaseModel):
    """
    The raw query results of one refresh cycle, one list per stream.
    """

    cpu_cost: List[QueryResult] = Field(default_factory=list, description="Per-core CPU cost by node")
    ram_cost: List[QueryResult] = Field(default_factory=list, description="Per-byte RAM cost by node")
    gpu_cost: List[QueryResult] = Field(default_factory=list, description="Per-GPU cost by node")
    gpu_count: List[QueryResult] = Field(default_factory=list)
    cpu_cores: List[QueryResult] = Field(default_factory=list)
    ram_bytes: List[QueryResult] = Field(default_factory=list)
    ram_user_pct: List[QueryResult] = Field(default_factory=list)
    ram_system_pct: List[QueryResult] = Field(default_factory=list)
    cpu_mode_total: List[QueryResult] = Field(default_factory=list, description="CPU time totals by mode")
    active_minutes: List[QueryResult] = Field(default_factory=list)
    preemptible: List[QueryResult] = Field(default_factory=list)
    labels: List[QueryResult] = Field(default_factory=list, description="kube_node_labels series")

    @classmethod
    def from_payloads(cls, payloads: Dict[str, Any]) -> "NodeQueryResults":
        """
        Build the bundle from raw query responses keyed by stream name.

        Raises QueryResultError for unknown stream names or failed responses.
        """
        unknown = set(payloads) - set(cls.model_fields)
        if unknown:
            raise QueryResultError(f"Unknown stream name(s): {', '.join(sorted(unknown))}")

        return cls(**{stream: parse_query_results(payload) for stream, payload in payloads.items()})


class NodeCostProcessor:
    """Decodes every stream of a refresh cycle and assembles the node map."""

    def __init__(self, settings: Config = config, provider_id_parser: Optional[ProviderIDParser] = None):
        self.settings = settings
        self.provider_id_parser = provider_id_parser or get_provider_id_parser(settings.CLOUD_PROVIDER)
        self.warnings: List[DecodeWarning] = []

    def run(self, results: NodeQueryResults) -> Dict[NodeIdentifier, Node]:
        """Executes one assembly cycle and returns the node map."""
        logger.info("Starting node assembly cycle...")
        decoders: List[ResultDecoder] = []

        def decoder(stream: str) -> ResultDecoder:
            decoders.append(ResultDecoder(stream, self.provider_id_parser))
            return decoders[-1]

        cpu_cost = decoder("cpu_cost").decode_scalars(results.cpu_cost)
        ram_cost = decoder("ram_cost").decode_scalars(results.ram_cost)
        gpu_count = decoder("gpu_count").decode_scalars(results.gpu_count)

        gpu_warnings: List[DecodeWarning] = []
        gpu_cost = build_gpu_cost_map(results.gpu_cost, gpu_count, self.provider_id_parser, gpu_warnings)

        cpu_cores = decoder("cpu_cores").decode_scalars(results.cpu_cores, NodeIndex.KEY)
        ram_bytes = decoder("ram_bytes").decode_scalars(results.ram_bytes, NodeIndex.KEY)
        ram_user_pct = decoder("ram_user_pct").decode_scalars(results.ram_user_pct, NodeIndex.KEY)
        ram_system_pct = decoder("ram_system_pct").decode_scalars(results.ram_system_pct, NodeIndex.KEY)
        cpu_breakdown = decoder("cpu_mode_total").decode_cpu_breakdown(results.cpu_mode_total)
        active_data = decoder("active_minutes").decode_active_windows(
            results.active_minutes, self.settings.active_data_resolution
        )
        preemptible = decoder("preemptible").decode_preemptible(results.preemptible)
        labels = decoder("labels").decode_labels(results.labels)

        # Instance types reported with the cost series win over node labels.
        # Cost series were decoded above, so their drops are not reported again.
        types = ResultDecoder("instance_type", self.provider_id_parser)
        provider_types = merge_type_maps(
            merge_type_maps(
                types.decode_node_types(results.cpu_cost, report=False),
                types.decode_node_types(results.ram_cost, report=False),
            ),
            types.decode_node_types(results.gpu_cost, report=False),
        )
        label_types = node_types_from_labels(labels, self.settings.node_instance_type_labels)
        node_types = merge_type_maps(provider_types, label_types)

        node_map = build_node_map(
            cpu_cost,
            ram_cost,
            gpu_cost,
            gpu_count,
            cpu_cores,
            ram_bytes,
            ram_user_pct,
            ram_system_pct,
            cpu_breakdown,
            active_data,
            preemptible,
            labels,
            node_types,
            partial_cpu_map=self.settings.partial_cpu_map,
        )

        self.warnings = [w for d in decoders for w in d.warnings] + gpu_warnings
        logger.info(
            "Assembled %d node(s) with %d dropped query result(s).",
            len(node_map),
            len(self.warnings),
        )
        return node_map
