# src/clustercost/core/gpu_cost.py

import logging
from typing import Dict, Iterable, List, Optional

from ..models.node import NodeIdentifier
from ..models.prometheus_metrics import DecodeWarning, QueryResult
from ..utils.provider_id import ProviderIDParser
from .decoder import NodeIndex, ResultDecoder

logger = logging.getLogger(__name__)


def build_gpu_cost_map(
    results: Iterable[QueryResult],
    count_map: Dict[NodeIdentifier, float],
    provider_id_parser: Optional[ProviderIDParser] = None,
    warnings: Optional[List[DecodeWarning]] = None,
) -> Dict[NodeIdentifier, float]:
    """
    Join per-GPU cost results with per-node GPU counts into per-node GPU cost.

    A node absent from `count_map` is treated as having a single GPU. A
    node with a zero count keeps the raw per-GPU rate so that downstream
    consumers can still see what a GPU would cost there. Count entries
    without a matching cost result produce nothing.
    """
    decoder = ResultDecoder("gpu_cost", provider_id_parser)
    per_gpu_cost = decoder.decode_scalars(results, NodeIndex.IDENTIFIER)
    if warnings is not None:
        warnings.extend(decoder.warnings)

    gpu_costs = {}
    for identifier, cost in per_gpu_cost.items():
        count = count_map.get(identifier, 1.0)
        if count > 0:
            gpu_costs[identifier] = cost * count
        else:
            logger.debug("GPU count for %s is %s; keeping per-GPU rate %s", identifier, count, cost)
            gpu_costs[identifier] = cost

    return gpu_costs
