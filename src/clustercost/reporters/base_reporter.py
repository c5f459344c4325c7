# src/clustercost/reporters/base_reporter.py
"""
Defines the abstract base class for all reporters.
"""

from abc import ABC, abstractmethod
from typing import Dict

from ..models.node import Node, NodeIdentifier


class BaseReporter(ABC):
    """
    Abstract Base Class for all reporters.
    """

    @abstractmethod
    def report(self, nodes: Dict[NodeIdentifier, Node]):
        """
        Takes the assembled node map and presents it in a specific format.
        """
        pass
