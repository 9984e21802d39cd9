"""
Shared machinery for operator specifications and instances.

`OpSpecification.build` implements the lowering protocol once for every
operator:

1. every input and output node must belong to the same graph (callers merge
   graphs beforehand with `merge_graphs`);
2. `build_instance()` copies node ids and scalar configuration into an
   immutable instance;
3. the graph validates the instance (known nodes, no input/output overlap,
   no cycle) and appends it.

Any failure raises `BuildError` before the graph is modified.
"""

from __future__ import annotations

from typing import Iterable, Mapping, TypeVar

from ...domain._errors import BuildError
from ...domain._operator import IOpInstance, IOpSpecification
from ..graph._node import Node

T = TypeVar("T")


def unique(items: Iterable[T]) -> tuple[T, ...]:
    """De-duplicate while keeping first-seen order."""
    return tuple(dict.fromkeys(items))


def remap(mapping: Mapping[T, T], item: T) -> T:
    """Return `mapping[item]`, or `item` itself when it is not remapped."""
    return mapping.get(item, item)


class OpSpecification(IOpSpecification):
    """
    Base class for operator specifications.

    Subclasses implement `type_name`, `inputs`, `outputs`,
    `clone_with_nodes_changed` and `build_instance`.
    """

    def build(self) -> IOpInstance:
        """
        Validate, lower and register this specification with its graph.

        Returns
        -------
        IOpInstance
            The registered instance.

        Raises
        ------
        BuildError
            If the nodes span several graphs, or the graph rejects the
            instance. Nothing is registered in that case.
        """
        nodes: tuple[Node, ...] = (*self.inputs(), *self.outputs())
        if not nodes:
            raise BuildError("operator declares no nodes", self.type_name)

        first = nodes[0]
        for node in nodes[1:]:
            if node.graph != first.graph:
                raise BuildError(
                    f"node {node.name!r} belongs to a different graph than "
                    f"{first.name!r}; call merge_graphs before building",
                    self.type_name,
                )

        instance = self.build_instance()
        first.graph._register_op(instance)
        return instance

    def __repr__(self) -> str:
        ins = ", ".join(n.name for n in self.inputs())
        outs = ", ".join(n.name for n in self.outputs())
        return f"{self.type_name}([{ins}] -> [{outs}])"


class OpInstance(IOpInstance):
    """
    Base class for operator instances.

    Instances compare by identity: two instances over the same nodes are two
    separate producers that both accumulate into their outputs.
    """

    def __repr__(self) -> str:
        ins = ", ".join(str(n.index) for n in self.inputs())
        outs = ", ".join(str(n.index) for n in self.outputs())
        return f"{self.type_name}Instance([{ins}] -> [{outs}])"

