# src/clustercost/models/prometheus_metrics.py
"""
Pydantic models for raw time-series query results and for the warnings
emitted when a result cannot be decoded.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..core.exceptions import QueryResultError

logger = logging.getLogger(__name__)

LABEL_PREFIX = "label_"


class Vector(BaseModel):
    """A single (timestamp, value) sample."""

    timestamp: float = Field(..., description="Unix timestamp in seconds")
    value: float


class QueryResult(BaseModel):
    """
    One series returned by a metric query: a label bundle plus its samples.
    """

    metric: Dict[str, Any] = Field(default_factory=dict)
    values: List[Vector] = Field(default_factory=list)

    @classmethod
    def from_prometheus(cls, item: Dict[str, Any]) -> "QueryResult":
        """
        Build a QueryResult from a series of the Prometheus HTTP API.

        Range queries carry a "values" list of [ts, "value"] pairs, instant
        queries a single "value" pair. Samples that cannot be converted to
        floats are dropped one by one.
        """
        raw_values = item.get("values")
        if raw_values is None:
            single = item.get("value")
            raw_values = [single] if single is not None else []

        samples = []
        for raw in raw_values:
            try:
                samples.append(Vector(timestamp=float(raw[0]), value=float(raw[1])))
            except (TypeError, ValueError, IndexError, KeyError):
                logger.debug("Dropping malformed sample %r in series %s", raw, item.get("metric"))
                continue

        metric = item.get("metric") or {}
        if not isinstance(metric, dict):
            raise QueryResultError(f"Series 'metric' must be an object, got {type(metric).__name__}")

        return cls(metric=dict(metric), values=samples)

    def get_string(self, label: str) -> str:
        """Return a label value, raising QueryResultError when it is missing or not a string."""
        value = self.metric.get(label)
        if value is None:
            raise QueryResultError(f"'{label}' field does not exist in data result vector")
        if not isinstance(value, str):
            raise QueryResultError(f"'{label}' field is improperly formatted: {value!r}")
        return value

    def get_labels(self) -> Dict[str, str]:
        """Return every 'label_*' entry with the prefix stripped."""
        return {
            key[len(LABEL_PREFIX) :]: str(value)
            for key, value in self.metric.items()
            if key.startswith(LABEL_PREFIX)
        }

    def usable_values(self) -> List[Vector]:
        """Samples with a finite value, in input order."""
        return [v for v in self.values if math.isfinite(v.value)]

    def last_value(self) -> Optional[float]:
        """The last finite sample value, or None if there is none."""
        for sample in reversed(self.values):
            if math.isfinite(sample.value):
                return sample.value
        return None


class DecodeWarning(BaseModel):
    """Describes one query result that was dropped while decoding a stream."""

    stream: str
    reason: str
    metric: Dict[str, Any] = Field(default_factory=dict)


def parse_query_results(payload: Any) -> List[QueryResult]:
    """
    Convert a Prometheus API response into QueryResult objects.

    Accepts a full response ({"status": ..., "data": {"result": [...]}})
    or a bare list of series. Raises QueryResultError when the response
    reports a failure or has an unexpected shape.
    """
    if isinstance(payload, dict):
        status = payload.get("status")
        if status is not None and status != "success":
            raise QueryResultError(f"Query returned non-success status: {payload.get('error', 'Unknown')}")
        data = payload.get("data", payload)
        series = data.get("result", []) if isinstance(data, dict) else None
    else:
        series = payload

    if not isinstance(series, list):
        raise QueryResultError(f"Unexpected query result payload: {type(payload).__name__}")

    results = []
    for item in series:
        if isinstance(item, QueryResult):
            results.append(item)
        elif isinstance(item, dict):
            results.append(QueryResult.from_prometheus(item))
        else:
            logger.debug("Skipping non-series entry in query result: %r", item)
    return results
