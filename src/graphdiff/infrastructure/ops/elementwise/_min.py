"""
Elementwise minimum.

Forward:

    out = min(input1, input2)

Backward, one `MinBack` operator per input:

    grad_input1 += grad_out where input1 < input2 else 0
    grad_input2 += grad_out where input2 < input1 else 0

Both comparisons are strict, so on exact ties neither input receives any
gradient (rather than splitting it). `MinBack` itself has no adjoint.
"""

from __future__ import annotations

import numpy as np

from ....domain._contexts import IGradientContext
from ....domain._errors import UnimplementedGradientError
from ....domain._ids import NodeID
from ...graph._graph import merge_graphs
from ...graph._node import Node
from ._base import BinaryElementwise, BinaryFunc, TernaryElementwise, TernaryFunc


class MinFunc(BinaryFunc):
    type_name = "Min"

    def calc(self, input1: np.ndarray, input2: np.ndarray) -> np.ndarray:
        # NaN loses against a number
        return np.fmin(input1, input2)

    def grad(
        self,
        ctx: IGradientContext,
        input1: NodeID,
        input2: NodeID,
        output: NodeID,
    ) -> None:
        # TODO: fuse into a single backward op writing both input gradients
        MinBack(
            ctx.node(input1),
            ctx.node(input2),
            ctx.grad_of(output),
            ctx.grad_of(input1),
        ).build()
        MinBack(
            ctx.node(input2),
            ctx.node(input1),
            ctx.grad_of(output),
            ctx.grad_of(input2),
        ).build()


class MinBackFunc(TernaryFunc):
    """
    Routes the output gradient to one input of `Min`.

    input1 : the input receiving the gradient
    input2 : the other input of `Min`
    input3 : gradient of `Min`'s output
    """

    type_name = "MinBack"

    def calc(
        self, input1: np.ndarray, input2: np.ndarray, input3: np.ndarray
    ) -> np.ndarray:
        return np.where(input1 < input2, input3, np.zeros_like(input3))

    def grad(
        self,
        ctx: IGradientContext,
        input1: NodeID,
        input2: NodeID,
        input3: NodeID,
        output: NodeID,
    ) -> None:
        raise UnimplementedGradientError(self.type_name)


class Min(BinaryElementwise):
    """Specification of ``output += min(input1, input2)``."""

    def __init__(self, input1: Node, input2: Node, output: Node) -> None:
        super().__init__(MinFunc(), input1, input2, output)


class MinBack(TernaryElementwise):
    """Specification of ``output += input3 if input1 < input2 else 0``."""

    def __init__(self, input1: Node, input2: Node, input3: Node, output: Node) -> None:
        super().__init__(MinBackFunc(), input1, input2, input3, output)


def minimum(input1: Node, input2: Node) -> Node:
    """
    Calculate the elementwise minimum of two nodes.

    The graphs of both inputs are merged, and the output node has the shape
    of the inputs.

    Parameters
    ----------
    input1, input2 : Node
        Operands. Their shapes must unify.

    Returns
    -------
    Node
        The new output node, named ``min(<input1>,<input2>)``.

    Raises
    ------
    BuildError
        If the operator cannot be built.
    """
    merge_graphs([input1.graph, input2.graph])
    output = input1.graph.new_node(input1.shape).set_name_unique(
        f"min({input1},{input2})"
    )
    Min(input1, input2, output).build()
    return output
