"""
Graph ownership layer: the node/operator arena, node handles and graph merging.
"""

from ._graph import Graph, merge_graphs
from ._node import Node

__all__ = [
    Graph.__name__,
    Node.__name__,
    merge_graphs.__name__,
]
