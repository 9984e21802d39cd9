"""
Node handles.

A `Node` is a lightweight `(graph, NodeID)` pair. Its name, shape constraint,
value and initializer live in the graph's store; the handle only forwards to
them. Handles compare and hash by `NodeID`, so a node can be used as a
dictionary key both before and after its graph is merged with another.

Setters are fluent and return the node so construction reads naturally:

    x = Node.new((13, 33)).set_name("x").set_init(Initializer("uniform"))
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Union

import numpy as np

from ...domain._errors import ShapePropError
from ...domain._ids import NodeID
from ...domain._shape import Shape, ShapeLike
from ..utils.initializer._base import Initializer
from ._graph import Graph

InitLike = Union[Initializer, str, Callable[[np.ndarray], np.ndarray]]


class Node:
    """
    Handle of one tensor-valued graph vertex.

    Parameters
    ----------
    graph : Graph
        Graph owning the node.
    node_id : NodeID
        Identifier of the node within `graph`.
    """

    __slots__ = ("_graph", "_id")

    def __init__(self, graph: Graph, node_id: NodeID) -> None:
        self._graph = graph
        self._id = node_id

    @classmethod
    def new(cls, shape: ShapeLike = None, name: Optional[str] = None) -> "Node":
        """Create a node in a fresh graph of its own."""
        return Graph().new_node(shape, name)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------
    @property
    def id(self) -> NodeID:
        return self._id

    @property
    def graph(self) -> Graph:
        return self._graph

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return self._id == other._id

    def __hash__(self) -> int:
        return hash(self._id)

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"Node({self.name!r}, shape={self.shape})"

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------
    @property
    def name(self) -> str:
        return self._graph._record(self._id).name

    def set_name(self, name: str) -> "Node":
        """Rename the node. Names need not be unique."""
        store = self._graph._store
        record = self._graph._record(self._id)
        store.drop_name(record.name)
        record.name = name
        store.add_name(name)
        return self

    def set_name_unique(self, name: str) -> "Node":
        """
        Rename the node, appending `_1`, `_2`, ... if `name` is already used
        by another node of the graph.
        """
        if self.name == name:
            return self
        candidate = name
        suffix = 0
        while candidate != self.name and not self._graph.is_unique_name(candidate):
            suffix += 1
            candidate = f"{name}_{suffix}"
        return self.set_name(candidate)

    @property
    def shape(self) -> Shape:
        return self._graph._record(self._id).shape

    def merge_shape(self, shape: ShapeLike) -> "Node":
        """
        Tighten the node's shape constraint.

        Raises
        ------
        ShapePropError
            If `shape` contradicts the existing constraint.
        """
        record = self._graph._record(self._id)
        merged = record.shape.merge(shape)
        if merged != record.shape:
            record.shape = merged
            self._graph._touch()
        return self

    @property
    def is_accumulator(self) -> bool:
        """True if this node is a gradient accumulator."""
        return self._graph._record(self._id).accumulator

    # ------------------------------------------------------------------
    # Values and initializers
    # ------------------------------------------------------------------
    @property
    def value(self) -> Optional[np.ndarray]:
        """Return a read-only view of the node's fixed value, if any."""
        value = self._graph._record(self._id).value
        if value is None:
            return None
        view = value.view()
        view.flags.writeable = False
        return view

    @property
    def has_value(self) -> bool:
        return self._graph._record(self._id).value is not None

    def set_value(self, value: Any) -> "Node":
        """
        Fix the node's value, making it a leaf during execution.

        If the node's shape is fully known, `value` is broadcast to it (so a
        scalar fills the whole node). Otherwise the node's shape constraint is
        tightened to the value's shape.

        Raises
        ------
        ShapePropError
            If `value` cannot be broadcast to, or merged with, the node's
            shape constraint.
        """
        arr = np.array(value, copy=True)
        if not np.issubdtype(arr.dtype, np.floating):
            arr = arr.astype(np.float64)

        record = self._graph._record(self._id)
        if record.shape.is_known:
            target = record.shape.to_tuple()
            if arr.shape != target:
                try:
                    arr = np.broadcast_to(arr, target).copy()
                except ValueError as e:
                    raise ShapePropError(
                        f"value of shape {arr.shape} cannot be broadcast to "
                        f"node {record.name!r} of shape {record.shape}",
                        existing=record.shape,
                        proposed=Shape(arr.shape),
                    ) from e
            record.value = arr
        else:
            merged = record.shape.merge(Shape(arr.shape))
            record.value = arr
            record.shape = merged
        self._graph._touch()
        return self

    def clear_value(self) -> "Node":
        """Remove the node's fixed value."""
        record = self._graph._record(self._id)
        if record.value is not None:
            record.value = None
            self._graph._touch()
        return self

    @property
    def init(self) -> Optional[Callable[[np.ndarray], np.ndarray]]:
        return self._graph._record(self._id).init

    def set_init(self, init: Optional[InitLike]) -> "Node":
        """
        Attach an initializer.

        Parameters
        ----------
        init : Initializer | str | Callable[[np.ndarray], np.ndarray] | None
            An `Initializer`, the name of a registered initializer, or any
            callable filling an array in place and returning it. `None`
            removes the initializer.
        """
        if isinstance(init, str):
            init = Initializer(init)
        elif init is not None and not callable(init):
            raise TypeError(f"initializer must be callable, got {type(init).__name__}")
        self._graph._record(self._id).init = init
        return self

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------
    def calc(
        self,
        inputs: Optional[Mapping["Node", Any]] = None,
        *,
        dtype: Optional[np.dtype] = None,
    ) -> np.ndarray:
        """
        Execute the graph and return this node's value.

        Parameters
        ----------
        inputs : Optional[Mapping[Node, ArrayLike]]
            Values for leaf nodes, overriding stored values.
        dtype : Optional[np.dtype]
            Execution dtype (default float32).
        """
        from .._execution import execute

        return execute(self._graph, [self], inputs, dtype=dtype)[self]
