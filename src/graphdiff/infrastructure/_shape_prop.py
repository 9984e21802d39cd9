"""
Forward shape propagation.

Each operator instance is given a `ShapePropContext` through which it reads
the current constraints on its inputs and merges proposals into its outputs.
The pass visits operators in dependency order and repeats until no constraint
tightens. Updates are monotonic (`Shape.merge` never loosens), so the loop
terminates and re-running the pass after new operators are added is safe.

The pass works on a private copy of the shapes; callers decide whether to
commit the result (see `Graph.propagate_shapes`).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Mapping, Optional, Sequence

from ..domain._errors import ShapePropError
from ..domain._ids import NodeID
from ..domain._operator import IOpInstance
from ..domain._shape import Shape, ShapeLike
from ._ordering import dependency_order

if TYPE_CHECKING:
    from .graph._graph import Graph


class ShapePropContext:
    """
    Shape access for a single operator instance.

    Parameters
    ----------
    shapes : dict[NodeID, Shape]
        The working shape table. Tightened in place by `merge_output_shape`.
    instance : IOpInstance
        The operator being propagated. Only its declared inputs may be read
        and only its declared outputs may be merged into.
    describe : Callable[[NodeID], str]
        Renders a node id for error messages (usually the node name).

    Attributes
    ----------
    changed : bool
        True once any output constraint has been tightened.
    """

    def __init__(
        self,
        shapes: dict[NodeID, Shape],
        instance: IOpInstance,
        describe: Callable[[NodeID], str] = repr,
    ) -> None:
        self._shapes = shapes
        self._instance = instance
        self._inputs = frozenset(instance.inputs())
        self._outputs = frozenset(instance.outputs())
        self._describe = describe
        self.changed = False

    def input_shape(self, node_id: NodeID) -> Shape:
        """Return the current constraint on a declared input."""
        if node_id not in self._inputs:
            raise ShapePropError(
                f"{self._instance.type_name}: {self._describe(node_id)} "
                "is not an input of this operator"
            )
        return self._shapes.get(node_id, Shape.unknown())

    def merge_output_shape(self, node_id: NodeID, shape: ShapeLike) -> None:
        """
        Merge `shape` into the constraint on a declared output.

        Raises
        ------
        ShapePropError
            If the node is not a declared output, or if `shape` is rank- or
            size-incompatible with the node's existing constraint. The error
            carries both shapes.
        """
        if node_id not in self._outputs:
            raise ShapePropError(
                f"{self._instance.type_name}: {self._describe(node_id)} "
                "is not an output of this operator"
            )
        existing = self._shapes.get(node_id, Shape.unknown())
        proposed = Shape.of(shape)
        if not existing.is_compatible(proposed):
            raise ShapePropError(
                f"{self._instance.type_name}: output {self._describe(node_id)} "
                f"has shape {existing}, which conflicts with proposed shape {proposed}",
                existing=existing,
                proposed=proposed,
            )
        merged = existing.merge(proposed)
        if merged != existing:
            self._shapes[node_id] = merged
            self.changed = True


def propagate_shapes(
    graph: "Graph",
    instances: Optional[Sequence[IOpInstance]] = None,
    shapes: Optional[Mapping[NodeID, ShapeLike]] = None,
) -> dict[NodeID, Shape]:
    """
    Run shape propagation to a fixed point.

    Parameters
    ----------
    graph : Graph
        Graph providing the starting constraints of every node.
    instances : Optional[Sequence[IOpInstance]]
        Operators to propagate through. Defaults to every operator of `graph`.
    shapes : Optional[Mapping[NodeID, ShapeLike]]
        Additional constraints merged into the starting table (e.g. the
        shapes of values supplied for one execution).

    Returns
    -------
    dict[NodeID, Shape]
        The tightened shape of every node in `graph`.

    Raises
    ------
    ShapePropError
        On any irreconcilable constraint. The graph is not modified.
    """
    table = graph._shape_table()
    describe = graph._describe

    for node_id, extra in (shapes or {}).items():
        current = table.get(node_id, Shape.unknown())
        proposed = Shape.of(extra)
        if not current.is_compatible(proposed):
            raise ShapePropError(
                f"value for {describe(node_id)} has shape {proposed}, "
                f"but the node is constrained to {current}",
                existing=current,
                proposed=proposed,
            )
        table[node_id] = current.merge(proposed)

    ordered = dependency_order(
        list(graph.ops() if instances is None else instances)
    )

    while True:
        changed = False
        for op in ordered:
            ctx = ShapePropContext(table, op, describe)
            op.propagate_shapes(ctx)
            changed = changed or ctx.changed
        if not changed:
            return table
