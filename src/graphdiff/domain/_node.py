"""
Node interface definitions.

The domain layer types against this structural protocol so operator contracts
can be expressed without importing the concrete graph arena.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from ._ids import NodeID
from ._shape import Shape


@runtime_checkable
class INode(Protocol):
    """
    Node handle interface.

    An `INode` is a lightweight reference into graph-owned storage. Handles
    compare and hash by their `NodeID`; the graph that owns the node is the
    sole owner of its name, shape constraint and value.
    """

    @property
    def id(self) -> NodeID:
        """Return the node's identifier."""
        ...

    @property
    def graph(self) -> Any:
        """Return the graph currently owning this node."""
        ...

    @property
    def name(self) -> str:
        """Return the node's human-readable name."""
        ...

    @property
    def shape(self) -> Shape:
        """Return the node's current shape constraint."""
        ...
