"""
Graph arena and graph merging.

A `Graph` is a handle onto a `_GraphStore`, the sole owner of every node
record and operator instance. Everything outside the store refers to nodes by
`NodeID`, so there are no back-pointers and no ownership cycles between
graphs, nodes and operators.

Graphs built separately are combined with `merge_graphs`, which moves the
contents of every participating store into one and leaves a forwarding link
behind, so all existing handles (including those held by nodes) resolve to
the merged owner.

Notes
-----
- Nodes and operators are appended, never removed.
- The store keeps a mutation counter so shape propagation runs once per
  mutation rather than once per query.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable, Optional, Union

import numpy as np

from ...domain._errors import BuildError
from ...domain._ids import NodeID
from ...domain._operator import IOpInstance
from ...domain._shape import Shape, ShapeLike
from .._ordering import reaches

if TYPE_CHECKING:
    from ._node import Node

NodeRef = Union["Node", NodeID]


@dataclass
class _NodeRecord:
    """
    Graph-owned metadata of one node.

    Attributes
    ----------
    node_id : NodeID
        Identifier of the node.
    name : str
        Human-readable name (not necessarily unique).
    shape : Shape
        Current shape constraint. Only ever tightened.
    value : Optional[np.ndarray]
        Fixed value. A node with a value is a leaf during execution.
    init : Optional[Callable[[np.ndarray], np.ndarray]]
        Initializer applied on first execution when the node has neither a
        value nor a producer.
    accumulator : bool
        True for gradient accumulators, which evaluate to zeros when nothing
        produces them.
    """

    node_id: NodeID
    name: str
    shape: Shape
    value: Optional[np.ndarray] = None
    init: Optional[Callable[[np.ndarray], np.ndarray]] = None
    accumulator: bool = False


class _GraphStore:
    """Arena holding node records, operator instances and their indices."""

    def __init__(self) -> None:
        self.nodes: dict[NodeID, _NodeRecord] = {}
        self.ops: list[IOpInstance] = []
        self.producers: dict[NodeID, list[IOpInstance]] = {}
        self.consumers: dict[NodeID, list[IOpInstance]] = {}
        self.names: dict[str, int] = {}
        self.version = 0
        self.shapes_version = -1
        self.merged_into: Optional[_GraphStore] = None

    def add_name(self, name: str) -> None:
        self.names[name] = self.names.get(name, 0) + 1

    def drop_name(self, name: str) -> None:
        count = self.names.get(name, 0) - 1
        if count > 0:
            self.names[name] = count
        else:
            self.names.pop(name, None)


class Graph:
    """
    Shared, mutable container of nodes and operator instances.

    Two `Graph` handles compare equal when they resolve to the same store,
    which is how nodes from merged graphs report a common owner. Graph handles
    are intentionally unhashable because their identity changes on merge.
    """

    __slots__ = ("_root",)

    def __init__(self) -> None:
        self._root = _GraphStore()

    @property
    def _store(self) -> _GraphStore:
        store = self._root
        while store.merged_into is not None:
            store = store.merged_into
        self._root = store
        return store

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Graph):
            return NotImplemented
        return self._store is other._store

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        store = self._store
        return f"Graph(nodes={len(store.nodes)}, ops={len(store.ops)})"

    def __contains__(self, node: object) -> bool:
        node_id = getattr(node, "id", node)
        return node_id in self._store.nodes

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------
    def new_node(self, shape: ShapeLike = None, name: Optional[str] = None) -> "Node":
        """
        Create a node owned by this graph.

        Parameters
        ----------
        shape : ShapeLike
            Initial shape constraint. `None` means unknown rank.
        name : Optional[str]
            Optional name. Defaults to `node_<index>`.

        Returns
        -------
        Node
            Handle of the new node.
        """
        from ._node import Node

        node_id = NodeID.allocate()
        record = _NodeRecord(
            node_id=node_id,
            name=name if name is not None else f"node_{node_id.index}",
            shape=Shape.of(shape),
        )
        store = self._store
        store.nodes[node_id] = record
        store.add_name(record.name)
        store.version += 1
        return Node(self, node_id)

    def node_from_id(self, node_id: NodeID) -> "Node":
        """
        Return a handle for a node of this graph.

        Raises
        ------
        KeyError
            If the id does not belong to this graph.
        """
        from ._node import Node

        if node_id not in self._store.nodes:
            raise KeyError(f"{node_id!r} does not belong to this graph")
        return Node(self, node_id)

    def nodes(self) -> list["Node"]:
        """Return handles for every node, in creation/merge order."""
        from ._node import Node

        return [Node(self, node_id) for node_id in self._store.nodes]

    def ops(self) -> tuple[IOpInstance, ...]:
        """Return every registered operator instance in registration order."""
        return tuple(self._store.ops)

    def producers_of(self, node: NodeRef) -> tuple[IOpInstance, ...]:
        """Return the operators that write into `node`."""
        return tuple(self._store.producers.get(_as_id(node), ()))

    def consumers_of(self, node: NodeRef) -> tuple[IOpInstance, ...]:
        """Return the operators that read `node`."""
        return tuple(self._store.consumers.get(_as_id(node), ()))

    def is_unique_name(self, name: str) -> bool:
        return name not in self._store.names

    # ------------------------------------------------------------------
    # Shapes
    # ------------------------------------------------------------------
    def propagate_shapes(self) -> None:
        """
        Run shape propagation over every operator and commit the result.

        The table is only committed when the whole pass succeeds.

        Raises
        ------
        ShapePropError
            If any constraint cannot be reconciled.
        """
        from .._shape_prop import propagate_shapes

        table = propagate_shapes(self)
        store = self._store
        for node_id, shape in table.items():
            store.nodes[node_id].shape = shape
        store.shapes_version = store.version

    def _ensure_shapes(self) -> None:
        store = self._store
        if store.shapes_version != store.version:
            self.propagate_shapes()

    def _shape_table(self) -> dict[NodeID, Shape]:
        return {nid: rec.shape for nid, rec in self._store.nodes.items()}

    # ------------------------------------------------------------------
    # Internal record access
    # ------------------------------------------------------------------
    def _record(self, node_id: NodeID) -> _NodeRecord:
        try:
            return self._store.nodes[node_id]
        except KeyError:
            raise KeyError(f"{node_id!r} does not belong to this graph") from None

    def _describe(self, node_id: NodeID) -> str:
        record = self._store.nodes.get(node_id)
        return repr(node_id) if record is None else repr(record.name)

    def _touch(self) -> None:
        self._store.version += 1

    def _register_op(self, instance: IOpInstance) -> None:
        """
        Validate and append an operator instance.

        Raises
        ------
        BuildError
            If a node is unknown to this graph, a node is both an input and
            an output, or the operator would close a cycle. Nothing is
            registered in that case.
        """
        store = self._store
        inputs = instance.inputs()
        outputs = instance.outputs()

        if not outputs:
            raise BuildError("operator declares no outputs", instance.type_name)
        for node_id in (*inputs, *outputs):
            if node_id not in store.nodes:
                raise BuildError(
                    f"{node_id!r} does not belong to the operator's graph; "
                    "merge the graphs before building",
                    instance.type_name,
                )

        overlap = set(inputs) & set(outputs)
        if overlap:
            names = sorted(self._describe(n) for n in overlap)
            raise BuildError(
                f"nodes {names} are both inputs and outputs", instance.type_name
            )

        def consumers_of(nid: NodeID) -> Iterable[IOpInstance]:
            return store.consumers.get(nid, ())

        if reaches(consumers_of, outputs, inputs):
            raise BuildError(
                "operator would create a cycle in the graph", instance.type_name
            )

        store.ops.append(instance)
        for node_id in inputs:
            store.consumers.setdefault(node_id, []).append(instance)
        for node_id in outputs:
            store.producers.setdefault(node_id, []).append(instance)
        store.version += 1


def merge_graphs(graphs: Iterable[Graph]) -> None:
    """
    Unify the owners of several graphs.

    After the call every handle in `graphs` (and every node of those graphs)
    resolves to one store. Merging is idempotent and commutative over the set
    of graphs: merging graphs that already share a store is a no-op.

    Parameters
    ----------
    graphs : Iterable[Graph]
        Graphs to merge.
    """
    stores: list[_GraphStore] = []
    for graph in graphs:
        store = graph._store
        if not any(store is s for s in stores):
            stores.append(store)
    if len(stores) < 2:
        return

    target, *rest = stores
    for store in rest:
        target.nodes.update(store.nodes)
        target.ops.extend(store.ops)
        for node_id, ops in store.producers.items():
            target.producers.setdefault(node_id, []).extend(ops)
        for node_id, ops in store.consumers.items():
            target.consumers.setdefault(node_id, []).extend(ops)
        for name, count in store.names.items():
            target.names[name] = target.names.get(name, 0) + count

        store.nodes = {}
        store.ops = []
        store.producers = {}
        store.consumers = {}
        store.names = {}
        store.merged_into = target
    target.version += 1


def _as_id(node: NodeRef) -> NodeID:
    return node if isinstance(node, NodeID) else node.id
