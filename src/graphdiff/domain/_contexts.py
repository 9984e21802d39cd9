"""
Context interfaces handed to operator instances.

Every stage of the engine talks to an operator instance through a narrow
context object rather than through the graph itself:

- shape propagation: `IShapePropContext`
- backward-graph construction: `IGradientContext`
- forward execution: `IExecutionContext`

Operators only ever see the nodes they declared, which keeps instances free
of graph references and makes every stage independently testable.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from ._ids import NodeID
from ._node import INode
from ._shape import Shape, ShapeLike


@runtime_checkable
class IShapePropContext(Protocol):
    """Read input shapes and tighten output shapes of one operator."""

    def input_shape(self, node_id: NodeID) -> Shape:
        """
        Return the current constraint on one of the operator's inputs.

        Parameters
        ----------
        node_id : NodeID
            A declared input of the operator.

        Returns
        -------
        Shape
            The current (possibly partial) shape.
        """
        ...

    def merge_output_shape(self, node_id: NodeID, shape: ShapeLike) -> None:
        """
        Merge a proposed shape into one of the operator's outputs.

        Raises
        ------
        ShapePropError
            If the proposal contradicts the existing constraint.
        """
        ...


@runtime_checkable
class IGradientContext(Protocol):
    """Access forward nodes and gradient accumulators of one operator."""

    def node(self, node_id: NodeID) -> INode:
        """Return the forward node handle for a declared input or output."""
        ...

    def grad_of(self, node_id: NodeID) -> INode:
        """
        Return the gradient accumulator of a declared input or output.

        The accumulator is created on first request, shaped like the original
        node. Backward operators accumulate (`+=`) into it.
        """
        ...


@runtime_checkable
class IExecutionContext(Protocol):
    """Dense storage views for one operator execution."""

    def get_input_standard(self, node_id: NodeID) -> Any:
        """Return a read-only, C-contiguous view of an input's storage."""
        ...

    def get_output_standard(self, node_id: NodeID) -> Any:
        """Return the writable, C-contiguous storage of an output."""
        ...
