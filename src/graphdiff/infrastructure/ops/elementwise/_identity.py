"""
Identity-style elementwise operators.

- `Identity` accumulates its input into its output. Its adjoint is another
  `Identity` from the output gradient to the input gradient.
- `OnesLike` accumulates ones shaped like its input. It is constant with
  respect to its input, so it contributes no gradient.

The gradient builder uses both to seed the gradient of a target node.
"""

from __future__ import annotations

import numpy as np

from ....domain._contexts import IGradientContext
from ....domain._ids import NodeID
from ...graph._node import Node
from ._base import UnaryElementwise, UnaryFunc


class IdentityFunc(UnaryFunc):
    type_name = "Identity"

    def calc(self, input: np.ndarray) -> np.ndarray:
        return input

    def grad(self, ctx: IGradientContext, input: NodeID, output: NodeID) -> None:
        Identity(ctx.grad_of(output), ctx.grad_of(input)).build()


class OnesLikeFunc(UnaryFunc):
    type_name = "OnesLike"

    def calc(self, input: np.ndarray) -> np.ndarray:
        return np.ones_like(input)

    def grad(self, ctx: IGradientContext, input: NodeID, output: NodeID) -> None:
        # constant output: nothing flows back to the input
        return None


class Identity(UnaryElementwise):
    """Specification of ``output += input``."""

    def __init__(self, input: Node, output: Node) -> None:
        super().__init__(IdentityFunc(), input, output)


class OnesLike(UnaryElementwise):
    """Specification of ``output += ones_like(input)``."""

    def __init__(self, input: Node, output: Node) -> None:
        super().__init__(OnesLikeFunc(), input, output)


def identity(input: Node) -> Node:
    """
    Return a new node accumulating a copy of `input`.
    """
    output = input.graph.new_node(input.shape).set_name_unique(f"identity({input})")
    Identity(input, output).build()
    return output

