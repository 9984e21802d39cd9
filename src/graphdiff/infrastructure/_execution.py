"""
Forward execution engine.

`execute` materialises storage for every node needed by the requested
outputs and runs the producing operators in dependency order. Operators never
overwrite their outputs: every output buffer is zero-initialised exactly once
and each producer accumulates into it (`+=`). This is what lets a node have
several producers, and what lets several backward operators sum their
contributions into one gradient accumulator.

Leaves
------
A node is a leaf when it is supplied in `inputs` or carries a value. Leaves
are never recomputed, even if operators produce them. Nodes with neither a
value nor a producer are filled by their initializer (the result is persisted
on the node), or with zeros for gradient accumulators; anything else is an
`ExecutionError`.

Notes
-----
- Operators run sequentially; each one parallelises over its own lanes.
- A failing operator aborts the pass. Storage of downstream nodes is left
  undefined and nothing is returned.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Union

import numpy as np

from ..domain._errors import ExecutionError, ShapePropError
from ..domain._ids import NodeID
from ..domain._operator import IOpInstance
from ..domain._shape import Shape
from ._ordering import ancestor_ops, dependency_order
from ._shape_prop import propagate_shapes
from .graph._graph import Graph
from .graph._node import Node

DEFAULT_DTYPE = np.float32


class ExecutionContext:
    """
    Storage access for a single operator execution.

    Parameters
    ----------
    instance : IOpInstance
        The operator being executed. Only its declared inputs and outputs are
        accessible.
    storage : Mapping[NodeID, np.ndarray]
        Dense, C-contiguous buffers keyed by node id.
    """

    def __init__(self, instance: IOpInstance, storage: Mapping[NodeID, np.ndarray]) -> None:
        self._instance = instance
        self._storage = storage
        self._inputs = frozenset(instance.inputs())
        self._outputs = frozenset(instance.outputs())

    def _buffer(self, node_id: NodeID) -> np.ndarray:
        try:
            return self._storage[node_id]
        except KeyError:
            raise ExecutionError(
                f"no storage was materialised for {node_id!r}",
                self._instance.type_name,
            ) from None

    def get_input_standard(self, node_id: NodeID) -> np.ndarray:
        """Return a read-only, C-contiguous view of a declared input."""
        if node_id not in self._inputs:
            raise ExecutionError(
                f"{node_id!r} is not an input of this operator",
                self._instance.type_name,
            )
        view = self._buffer(node_id).view()
        view.flags.writeable = False
        return view

    def get_output_standard(self, node_id: NodeID) -> np.ndarray:
        """Return the writable, C-contiguous storage of a declared output."""
        if node_id not in self._outputs:
            raise ExecutionError(
                f"{node_id!r} is not an output of this operator",
                self._instance.type_name,
            )
        return self._buffer(node_id)

    def shape(self, node_id: NodeID) -> tuple[int, ...]:
        """Return the concrete shape of an input or output."""
        if node_id not in self._inputs and node_id not in self._outputs:
            raise ExecutionError(
                f"{node_id!r} is not an input or output of this operator",
                self._instance.type_name,
            )
        return self._buffer(node_id).shape


def _to_array(value: Any, shape: Shape, dtype: np.dtype, name: str) -> np.ndarray:
    arr = np.asarray(value, dtype=dtype)
    if shape.is_known and arr.shape != shape.to_tuple():
        try:
            arr = np.broadcast_to(arr, shape.to_tuple())
        except ValueError as e:
            raise ShapePropError(
                f"value of shape {arr.shape} cannot be broadcast to node "
                f"{name!r} of shape {shape}",
                existing=shape,
                proposed=Shape(arr.shape),
            ) from e
    return np.array(arr, dtype=dtype, order="C", copy=True)


def execute(
    graph: Graph,
    outputs: Iterable[Union[Node, NodeID]],
    inputs: Optional[Mapping[Union[Node, NodeID], Any]] = None,
    *,
    dtype: Optional[np.dtype] = None,
) -> dict[Node, np.ndarray]:
    """
    Compute the values of `outputs`.

    Parameters
    ----------
    graph : Graph
        Graph owning every requested node.
    outputs : Iterable[Node | NodeID]
        Nodes whose values are requested.
    inputs : Optional[Mapping[Node | NodeID, ArrayLike]]
        Values for leaf nodes. These take precedence over stored values and
        make the node a leaf for this run.
    dtype : Optional[np.dtype]
        Execution dtype of every buffer (default float32).

    Returns
    -------
    dict[Node, np.ndarray]
        Value of every requested node.

    Raises
    ------
    ShapePropError
        If shapes cannot be resolved to concrete sizes.
    ExecutionError
        If a node has no way to obtain a value, or an operator detects a
        storage mismatch.
    """
    dtype = np.dtype(DEFAULT_DTYPE if dtype is None else dtype)
    graph._ensure_shapes()
    store = graph._store

    output_ids = [o if isinstance(o, NodeID) else o.id for o in outputs]
    supplied: dict[NodeID, Any] = {}
    for key, value in (inputs or {}).items():
        supplied[key if isinstance(key, NodeID) else key.id] = value
    for node_id in (*output_ids, *supplied):
        if node_id not in store.nodes:
            raise ExecutionError(f"{node_id!r} does not belong to this graph")

    leaves = set(supplied)
    leaves.update(nid for nid, rec in store.nodes.items() if rec.value is not None)

    def producers_of(nid: NodeID) -> Iterable[IOpInstance]:
        return store.producers.get(nid, ())

    position = {id(op): i for i, op in enumerate(store.ops)}
    required = dependency_order(
        sorted(
            ancestor_ops(producers_of, output_ids, stop=leaves),
            key=lambda op: position[id(op)],
        )
    )

    # Every node the run touches.
    touched: dict[NodeID, None] = dict.fromkeys(output_ids)
    for op in required:
        touched.update(dict.fromkeys(op.inputs()))
        touched.update(dict.fromkeys(op.outputs()))

    leaf_values: dict[NodeID, Any] = {}
    for node_id in touched:
        if node_id in supplied:
            leaf_values[node_id] = np.asarray(supplied[node_id])
        elif node_id in leaves:
            leaf_values[node_id] = store.nodes[node_id].value

    leaf_shapes = {
        nid: value.shape
        for nid, value in leaf_values.items()
        if not store.nodes[nid].shape.is_known
    }
    shapes = propagate_shapes(graph, required, leaf_shapes)

    computed = {nid for op in required for nid in op.outputs()}
    storage: dict[NodeID, np.ndarray] = {}
    for node_id in touched:
        record = store.nodes[node_id]
        shape = shapes[node_id]
        if node_id in leaf_values:
            storage[node_id] = _to_array(leaf_values[node_id], shape, dtype, record.name)
            continue
        if not shape.is_known:
            raise ShapePropError(
                f"shape of node {record.name!r} could not be inferred: {shape}",
                existing=shape,
            )
        buffer = np.zeros(shape.to_tuple(), dtype=dtype)
        if node_id in computed or record.accumulator:
            storage[node_id] = buffer
        elif record.init is not None:
            value = record.init(buffer)
            record.value = np.array(value, copy=True)
            storage[node_id] = np.ascontiguousarray(value, dtype=dtype)
        else:
            raise ExecutionError(
                f"node {record.name!r} has no value, initializer or producing operator"
            )

    for op in required:
        op.execute(ExecutionContext(op, storage))

    return {graph.node_from_id(nid): storage[nid] for nid in output_ids}
