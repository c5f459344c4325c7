# src/clustercost/reporters/console_reporter.py
"""
A reporter that displays the assembled nodes in a formatted table in the console.
"""

import logging
from typing import Dict

from rich.console import Console
from rich.table import Table

from ..models.node import Node, NodeIdentifier
from .base_reporter import BaseReporter

logger = logging.getLogger(__name__)

BYTES_PER_GIB = 1024**3


class ConsoleReporter(BaseReporter):
    """
    Renders node cost records to the console using the 'rich' library.
    """

    def __init__(self, console: Console = None):
        self.console = console or Console()

    def report(self, nodes: Dict[NodeIdentifier, Node]):
        """
        Displays one row per node, ordered by cluster, name and provider ID.
        """
        if not nodes:
            self.console.print("No nodes to report.", style="yellow")
            return

        table = Table(
            title="Cluster Node Costs",
            header_style="bold magenta",
            show_lines=True,
        )
        table.add_column("Cluster", style="cyan")
        table.add_column("Node", style="cyan")
        table.add_column("Provider ID", style="dim")
        table.add_column("Type", style="blue")
        table.add_column("CPU Cost", style="green", justify="right")
        table.add_column("RAM Cost", style="green", justify="right")
        table.add_column("GPU Cost", style="green", justify="right")
        table.add_column("Cores", style="blue", justify="right")
        table.add_column("RAM (GiB)", style="blue", justify="right")
        table.add_column("GPUs", style="blue", justify="right")
        table.add_column("CPU Idle %", style="yellow", justify="right")
        table.add_column("RAM Idle %", style="yellow", justify="right")
        table.add_column("Minutes", style="dim", justify="right")
        table.add_column("Spot", style="red")

        for identifier in sorted(nodes, key=lambda i: (i.cluster, i.name, i.provider_id)):
            node = nodes[identifier]
            table.add_row(
                node.cluster,
                node.name,
                node.provider_id,
                node.node_type,
                f"{node.cpu_cost:.4f}",
                f"{node.ram_cost:.4f}",
                f"{node.gpu_cost:.4f}",
                f"{node.cpu_cores:g}",
                f"{node.ram_bytes / BYTES_PER_GIB:.2f}",
                f"{node.gpu_count:g}",
                f"{node.cpu_breakdown.idle:.1f}",
                f"{node.ram_breakdown.idle:.1f}",
                f"{node.minutes:.1f}",
                "yes" if node.preemptible else "",
            )

        self.console.print(table)
