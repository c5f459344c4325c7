# src/clustercost/models/node.py
"""
Pydantic models for node identity and the per-node cost record produced
by the assembler.
"""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class NodeKey(BaseModel):
    """
    Short node key: (cluster, name).

    Used by capacity and utilization streams, which do not carry a
    provider ID.
    """

    model_config = ConfigDict(frozen=True)

    cluster: str = Field(..., description="Cluster ID")
    name: str = Field(..., description="Node name")

    def __str__(self) -> str:
        return f"{self.cluster}/{self.name}"


class NodeIdentifier(BaseModel):
    """
    Full node key: (cluster, name, provider_id).

    Two nodes with the same cluster and name but different provider IDs
    are distinct; this happens when a node is replaced mid-window.
    """

    model_config = ConfigDict(frozen=True)

    cluster: str = Field(..., description="Cluster ID")
    name: str = Field(..., description="Node name")
    provider_id: str = Field("", description="Normalized cloud provider ID, may be empty")

    @property
    def key(self) -> NodeKey:
        return NodeKey(cluster=self.cluster, name=self.name)

    def __str__(self) -> str:
        return f"{self.cluster}/{self.name}/{self.provider_id}"


class ClusterCostsBreakdown(BaseModel):
    """Percentage decomposition of a resource's consumption."""

    idle: float = 0.0
    other: float = 0.0
    system: float = 0.0
    user: float = 0.0


class ActiveWindow(BaseModel):
    """Wall-clock interval during which a node was observed, with its duration in minutes."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
    minutes: float = Field(..., ge=0.0)

    @model_validator(mode="after")
    def check_chronological(self) -> "ActiveWindow":
        if self.end < self.start:
            raise ValueError(f"Window end {self.end} is before its start {self.start}")
        return self


class Node(BaseModel):
    """
    Canonical cost and utilization record for one node.

    Attributes:
        cluster, name, provider_id: Identity of the node
        node_type: Instance type (e.g. 'e2-medium', 'm5.large'), empty if unknown
        cpu_cost, ram_cost, gpu_cost: Cost rates
        cpu_cores, gpu_count, ram_bytes: Capacity
        cpu_breakdown, ram_breakdown: Utilization breakdowns, always allocated
        start, end, minutes: Activity window
        preemptible: Whether the node is a spot/preemptible instance
        labels: Node labels
    """

    model_config = ConfigDict(extra="forbid")

    cluster: str
    name: str
    provider_id: str = ""
    node_type: str = ""

    cpu_cost: float = 0.0
    ram_cost: float = 0.0
    gpu_cost: float = 0.0

    cpu_cores: float = 0.0
    gpu_count: float = 0.0
    ram_bytes: float = 0.0

    cpu_breakdown: ClusterCostsBreakdown = Field(default_factory=ClusterCostsBreakdown)
    ram_breakdown: ClusterCostsBreakdown = Field(default_factory=ClusterCostsBreakdown)

    start: Optional[datetime] = None
    end: Optional[datetime] = None
    minutes: float = 0.0

    preemptible: bool = False
    labels: Dict[str, str] = Field(default_factory=dict)

    @property
    def identifier(self) -> NodeIdentifier:
        return NodeIdentifier(cluster=self.cluster, name=self.name, provider_id=self.provider_id)

    @property
    def key(self) -> NodeKey:
        return NodeKey(cluster=self.cluster, name=self.name)

    @property
    def total_cost(self) -> float:
        return self.cpu_cost + self.ram_cost + self.gpu_cost
