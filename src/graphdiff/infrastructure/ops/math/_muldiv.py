"""
Complex multiply/divide activation.

The innermost axis is split into groups of four scalars ``(a, b, c, d)``,
read as two complex numbers ``w = a + ib`` and ``x = c + id``. Each group
accumulates

    (w * x).re, (w * x).im, (w / x).re, (w / x).im

into the output, where the division uses the regularised denominator
``c^2 + d^2 + epsilon^2``. Scalars left over when the innermost length is not
a multiple of four are passed through unchanged, both forward and backward.
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np

from ....domain._contexts import IExecutionContext, IGradientContext, IShapePropContext
from ....domain._errors import (
    BuildError,
    ExecutionError,
    ShapePropError,
    UnimplementedGradientError,
)
from ....domain._ids import NodeID
from ..._parallel import for_each_lane
from ...graph._node import Node
from .._base import OpInstance, OpSpecification, remap

DEFAULT_EPSILON = 0.1


def _check_epsilon(epsilon: float, type_name: str) -> float:
    epsilon = float(epsilon)
    if not math.isfinite(epsilon):
        raise BuildError(f"epsilon must be finite, got {epsilon}", type_name)
    return epsilon


def muldiv(input: Node, *, epsilon: float = DEFAULT_EPSILON) -> Node:
    """
    Apply the complex multiply/divide activation to `input`.

    Parameters
    ----------
    input : Node
        Input node. Its innermost axis is grouped by four.
    epsilon : float
        Regulariser of the division denominator.

    Returns
    -------
    Node
        New output node with the shape of `input`.
    """
    output = input.graph.new_node(input.shape).set_name_unique(f"muldiv({input})")
    MulDiv(input, output).set_epsilon(epsilon).build()
    return output


class MulDiv(OpSpecification):
    """
    Specification of the complex multiply/divide activation.

    Parameters
    ----------
    input : Node
        Input node.
    output : Node
        Output node, accumulated into.

    Attributes
    ----------
    epsilon : float
        Regulariser preventing division by zero. Default: 0.1.
    """

    type_name = "MulDiv"

    def __init__(self, input: Node, output: Node) -> None:
        self.input = input
        self.output = output
        self.epsilon = DEFAULT_EPSILON

    def set_epsilon(self, epsilon: float) -> "MulDiv":
        self.epsilon = epsilon
        return self

    def inputs(self) -> tuple[Node, ...]:
        return (self.input,)

    def outputs(self) -> tuple[Node, ...]:
        return (self.output,)

    def clone_with_nodes_changed(self, mapping: Mapping[Node, Node]) -> "MulDiv":
        return MulDiv(remap(mapping, self.input), remap(mapping, self.output)).set_epsilon(
            self.epsilon
        )

    def build_instance(self) -> "MulDivInstance":
        return MulDivInstance(
            input=self.input.id,
            output=self.output.id,
            epsilon=_check_epsilon(self.epsilon, self.type_name),
        )


@dataclass(frozen=True, eq=False, repr=False)
class MulDivInstance(OpInstance):
    input: NodeID
    output: NodeID
    epsilon: float

    type_name = "MulDiv"

    def inputs(self) -> tuple[NodeID, ...]:
        return (self.input,)

    def outputs(self) -> tuple[NodeID, ...]:
        return (self.output,)

    def as_specification(self, graph: Any) -> MulDiv:
        return MulDiv(
            graph.node_from_id(self.input), graph.node_from_id(self.output)
        ).set_epsilon(self.epsilon)

    def with_nodes_changed(self, mapping: Mapping[NodeID, NodeID]) -> "MulDivInstance":
        return dataclasses.replace(
            self,
            input=remap(mapping, self.input),
            output=remap(mapping, self.output),
        )

    def propagate_shapes(self, ctx: IShapePropContext) -> None:
        ctx.merge_output_shape(self.output, ctx.input_shape(self.input))

    def gradient(self, ctx: IGradientContext) -> None:
        MulDivBack(
            ctx.node(self.input),
            ctx.grad_of(self.input),
            ctx.grad_of(self.output),
        ).set_epsilon(self.epsilon).build()

    def execute(self, ctx: IExecutionContext) -> None:
        input = ctx.get_input_standard(self.input)
        output = ctx.get_output_standard(self.output)
        if input.shape != output.shape:
            raise ExecutionError(
                f"input shape {input.shape} does not match output shape {output.shape}",
                self.type_name,
            )

        eps2 = self.epsilon * self.epsilon

        def kernel(out: np.ndarray, x: np.ndarray) -> None:
            end = (x.shape[1] // 4) * 4
            a = x[:, 0:end:4]
            b = x[:, 1:end:4]
            c = x[:, 2:end:4]
            d = x[:, 3:end:4]

            # complex multiplication
            out[:, 0:end:4] += a * c - b * d
            out[:, 1:end:4] += a * d + b * c

            # complex division
            denom = c * c + d * d + eps2
            out[:, 2:end:4] += (a * c + b * d) / denom
            out[:, 3:end:4] += (b * c - a * d) / denom

            out[:, end:] += x[:, end:]

        for_each_lane(kernel, output, input)


class MulDivBack(OpSpecification):
    """
    Backward operator of `MulDiv`.

    Parameters
    ----------
    input : Node
        Input of the forward `MulDiv`.
    input_grad : Node
        Gradient accumulator of `input` (output of this operator).
    output_grad : Node
        Gradient of the forward output.
    """

    type_name = "MulDivBack"

    def __init__(self, input: Node, input_grad: Node, output_grad: Node) -> None:
        self.input = input
        self.input_grad = input_grad
        self.output_grad = output_grad
        self.epsilon = DEFAULT_EPSILON

    def set_epsilon(self, epsilon: float) -> "MulDivBack":
        self.epsilon = epsilon
        return self

    def inputs(self) -> tuple[Node, ...]:
        return (self.input, self.output_grad)

    def outputs(self) -> tuple[Node, ...]:
        return (self.input_grad,)

    def clone_with_nodes_changed(self, mapping: Mapping[Node, Node]) -> "MulDivBack":
        return MulDivBack(
            remap(mapping, self.input),
            remap(mapping, self.input_grad),
            remap(mapping, self.output_grad),
        ).set_epsilon(self.epsilon)

    def build_instance(self) -> "MulDivBackInstance":
        return MulDivBackInstance(
            input=self.input.id,
            input_grad=self.input_grad.id,
            output_grad=self.output_grad.id,
            epsilon=_check_epsilon(self.epsilon, self.type_name),
        )


@dataclass(frozen=True, eq=False, repr=False)
class MulDivBackInstance(OpInstance):
    input: NodeID
    input_grad: NodeID
    output_grad: NodeID
    epsilon: float

    type_name = "MulDivBack"

    def inputs(self) -> tuple[NodeID, ...]:
        return (self.input, self.output_grad)

    def outputs(self) -> tuple[NodeID, ...]:
        return (self.input_grad,)

    def as_specification(self, graph: Any) -> MulDivBack:
        return MulDivBack(
            graph.node_from_id(self.input),
            graph.node_from_id(self.input_grad),
            graph.node_from_id(self.output_grad),
        ).set_epsilon(self.epsilon)

    def with_nodes_changed(
        self, mapping: Mapping[NodeID, NodeID]
    ) -> "MulDivBackInstance":
        return dataclasses.replace(
            self,
            input=remap(mapping, self.input),
            input_grad=remap(mapping, self.input_grad),
            output_grad=remap(mapping, self.output_grad),
        )

    def gradient(self, ctx: IGradientContext) -> None:
        raise UnimplementedGradientError(self.type_name)

    def propagate_shapes(self, ctx: IShapePropContext) -> None:
        input_shape = ctx.input_shape(self.input)
        output_grad_shape = ctx.input_shape(self.output_grad)
        if not input_shape.is_compatible(output_grad_shape):
            raise ShapePropError(
                f"{self.type_name} requires the output grad to have the shape of "
                f"the input: input:{input_shape} output_grad:{output_grad_shape}",
                existing=input_shape,
                proposed=output_grad_shape,
            )
        ctx.merge_output_shape(self.input_grad, input_shape.merge(output_grad_shape))

    def execute(self, ctx: IExecutionContext) -> None:
        input = ctx.get_input_standard(self.input)
        output_grad = ctx.get_input_standard(self.output_grad)
        input_grad = ctx.get_output_standard(self.input_grad)
        if input.shape != output_grad.shape or input.shape != input_grad.shape:
            raise ExecutionError(
                f"shape mismatch: input {input.shape}, output_grad "
                f"{output_grad.shape}, input_grad {input_grad.shape}",
                self.type_name,
            )

        eps2 = self.epsilon * self.epsilon

        def kernel(ig: np.ndarray, x: np.ndarray, g: np.ndarray) -> None:
            end = (x.shape[1] // 4) * 4
            a = x[:, 0:end:4]
            b = x[:, 1:end:4]
            c = x[:, 2:end:4]
            d = x[:, 3:end:4]

            wg = g[:, 0:end:4]
            xg = g[:, 1:end:4]
            yg = g[:, 2:end:4]
            zg = g[:, 3:end:4]

            c2d2e = c * c + d * d + eps2
            c2d2e_2 = c2d2e * c2d2e
            re = a * c + b * d
            im = b * c - a * d

            # multiplication and regularised division partials, combined
            ig[:, 0:end:4] += wg * c + xg * d + yg * (c / c2d2e) - zg * (d / c2d2e)
            ig[:, 1:end:4] += -wg * d + xg * c + yg * (d / c2d2e) + zg * (c / c2d2e)
            ig[:, 2:end:4] += (
                wg * a
                + xg * b
                + yg * (a / c2d2e - re * (c * 2.0 / c2d2e_2))
                + zg * (b / c2d2e - im * (c * 2.0 / c2d2e_2))
            )
            ig[:, 3:end:4] += (
                -wg * b
                + xg * a
                + yg * (b / c2d2e - re * (d * 2.0 / c2d2e_2))
                + zg * (-a / c2d2e - im * (d * 2.0 / c2d2e_2))
            )

            ig[:, end:] += g[:, end:]

        for_each_lane(kernel, input_grad, input, output_grad)
