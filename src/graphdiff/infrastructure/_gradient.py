"""
Reverse-mode gradient graph construction.

`build_gradients` walks the operators between the requested nodes and a
target in reverse dependency order, and asks each one to emit its backward
operators through a `GradientContext`. Backward operators are ordinary
operators: they accumulate (`+=`) into gradient accumulator nodes, so a node
consumed by several operators receives the sum of all contributions without
any merge step in the builder.

Policy
------
Every call builds a fresh backward subgraph with fresh accumulators.
Repeating a request therefore adds operators but never mixes with (or
double-counts into) the accumulators of an earlier call.
"""

from __future__ import annotations

import warnings
from typing import Iterable, Optional

from ..domain._errors import BuildError, GradientError
from ..domain._ids import NodeID
from ..domain._operator import IOpInstance
from ._ordering import ancestor_ops, dependency_order, descendant_ops
from .graph._graph import Graph, merge_graphs
from .graph._node import Node


def _new_accumulator(graph: Graph, node_id: NodeID) -> Node:
    record = graph._record(node_id)
    grad = graph.new_node(record.shape).set_name_unique(f"{record.name}_grad")
    graph._record(grad.id).accumulator = True
    return grad


class GradientContext:
    """
    Backward-construction access for a single operator instance.

    Parameters
    ----------
    graph : Graph
        Graph owning the instance; backward operators are built into it.
    instance : IOpInstance
        The operator being differentiated. Only its declared inputs and
        outputs are accessible.
    grads : dict[NodeID, Node]
        Accumulators created so far in this pass, shared by every context of
        the pass.
    """

    def __init__(
        self,
        graph: Graph,
        instance: IOpInstance,
        grads: dict[NodeID, Node],
    ) -> None:
        self._graph = graph
        self._instance = instance
        self._grads = grads
        self._closure = frozenset((*instance.inputs(), *instance.outputs()))

    def _check(self, node_id: NodeID) -> None:
        if node_id not in self._closure:
            raise GradientError(
                f"{node_id!r} is not an input or output of this operator",
                self._instance.type_name,
            )

    def node(self, node_id: NodeID) -> Node:
        """Return the forward node handle of a declared input or output."""
        self._check(node_id)
        return self._graph.node_from_id(node_id)

    def grad_of(self, node_id: NodeID) -> Node:
        """
        Return the gradient accumulator of a declared input or output.

        The accumulator is created on first request, shaped like the original
        node and named ``<name>_grad``. If nothing ever produces it, it
        evaluates to zeros.
        """
        self._check(node_id)
        grad = self._grads.get(node_id)
        if grad is None:
            grad = _new_accumulator(self._graph, node_id)
            self._grads[node_id] = grad
        return grad


def build_gradients(
    target: Node,
    wrt: Iterable[Node],
    *,
    seed: Optional[Node] = None,
) -> dict[Node, Node]:
    """
    Build the backward subgraph of `target` with respect to `wrt`.

    Parameters
    ----------
    target : Node
        The node being differentiated.
    wrt : Iterable[Node]
        Nodes whose gradients are requested. They must share `target`'s graph.
        Nodes carrying a value are treated as constants, as in `execute`:
        the operators producing them are not differentiated through.
    seed : Optional[Node]
        Upstream gradient of `target` (same shape as `target`), for chained
        differentiation. Defaults to ones. Its graph is merged into
        `target`'s.

    Returns
    -------
    dict[Node, Node]
        Gradient accumulator node of each requested node.

    Raises
    ------
    GradientError
        If a requested node belongs to another graph, if an operator on the
        path has no adjoint (`UnimplementedGradientError`), or if building a
        backward operator fails.
    ShapePropError
        If the graph's shapes cannot be reconciled before the pass.
    """
    from .ops.elementwise._identity import Identity, OnesLike

    graph = target.graph
    wrt = list(wrt)
    for node in wrt:
        if node.graph != graph:
            raise GradientError(
                f"node {node.name!r} does not belong to the graph of "
                f"{target.name!r}; call merge_graphs first"
            )
    if seed is not None:
        merge_graphs([graph, seed.graph])

    # Accumulators copy the best known shapes.
    graph._ensure_shapes()
    store = graph._store

    # Valued nodes are leaves of the forward pass, so nothing flows past them.
    leaves = {nid for nid, rec in store.nodes.items() if rec.value is not None}
    upstream = ancestor_ops(
        lambda nid: store.producers.get(nid, ()), [target.id], stop=leaves
    )
    downstream = {
        id(op)
        for op in descendant_ops(
            lambda nid: store.consumers.get(nid, ()), [n.id for n in wrt]
        )
    }
    position = {id(op): i for i, op in enumerate(store.ops)}
    on_path = sorted(
        (op for op in upstream if id(op) in downstream),
        key=lambda op: position[id(op)],
    )
    forward = dependency_order(on_path)

    grads: dict[NodeID, Node] = {}
    target_grad = _new_accumulator(graph, target.id)
    grads[target.id] = target_grad

    try:
        if seed is None:
            OnesLike(target, target_grad).build()
        else:
            Identity(seed, target_grad).build()
    except BuildError as e:
        raise GradientError(f"could not seed the gradient of {target.name!r}: {e}") from e

    for instance in reversed(forward):
        ctx = GradientContext(graph, instance, grads)
        try:
            instance.gradient(ctx)
        except BuildError as e:
            raise GradientError(
                f"building backward operators failed: {e}", instance.type_name
            ) from e

    result: dict[Node, Node] = {}
    for node in wrt:
        grad = grads.get(node.id)
        if grad is None:
            warnings.warn(
                f"{node.name!r} does not influence {target.name!r}; "
                "its gradient is identically zero.",
                RuntimeWarning,
                stacklevel=2,
            )
            grad = _new_accumulator(graph, node.id)
            grads[node.id] = grad
        result[node] = grad
    return result
