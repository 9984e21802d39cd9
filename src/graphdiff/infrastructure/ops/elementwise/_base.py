"""
Generic N-ary elementwise operator template.

An elementwise operator is fully described by a small functional contract,
an `ElementwiseFunc`:

- `type_name`: name used in diagnostics,
- `calc(*inputs)`: a pure, vectorised function of same-shaped arrays,
- `grad(ctx, *input_ids, output_id)`: builds the backward operators.

`Elementwise` (and the fixed-arity `UnaryElementwise`, `BinaryElementwise`,
`TernaryElementwise`) supply everything else: input/output bookkeeping,
shape propagation (all inputs unify, the result is merged into the output)
and the lane-parallel execution loop, which accumulates
``output += calc(*inputs)``.

Example
-------
    class MinFunc(BinaryFunc):
        type_name = "Min"

        def calc(self, input1, input2):
            return np.minimum(input1, input2)

        def grad(self, ctx, input1, input2, output):
            ...

    BinaryElementwise(MinFunc(), a, b, out).build()
"""

from __future__ import annotations

import copy
import dataclasses
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Mapping, Sequence

import numpy as np

from ....domain._contexts import IExecutionContext, IGradientContext, IShapePropContext
from ....domain._errors import BuildError, ExecutionError, ShapePropError
from ....domain._ids import NodeID
from ....domain._shape import Shape
from ..._parallel import for_each_lane
from ...graph._node import Node
from .._base import OpInstance, OpSpecification, remap, unique


class ElementwiseFunc(ABC):
    """
    Per-operator contract of an elementwise operator.

    Attributes
    ----------
    arity : int
        Number of inputs `calc` takes.
    type_name : str
        Operator name used in diagnostics.
    """

    arity: ClassVar[int]
    type_name: ClassVar[str]

    @abstractmethod
    def calc(self, *inputs: np.ndarray) -> np.ndarray:
        """
        Compute the elementwise result.

        `inputs` are same-shaped 2-D lane blocks. Implementations must be
        pure: no state may be carried between calls.
        """
        ...

    @abstractmethod
    def grad(self, ctx: IGradientContext, *node_ids: NodeID) -> None:
        """
        Build backward operators. `node_ids` are the input ids followed by
        the output id.
        """
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class UnaryFunc(ElementwiseFunc):
    arity = 1

    @abstractmethod
    def calc(self, input: np.ndarray) -> np.ndarray: ...

    @abstractmethod
    def grad(self, ctx: IGradientContext, input: NodeID, output: NodeID) -> None: ...


class BinaryFunc(ElementwiseFunc):
    arity = 2

    @abstractmethod
    def calc(self, input1: np.ndarray, input2: np.ndarray) -> np.ndarray: ...

    @abstractmethod
    def grad(
        self,
        ctx: IGradientContext,
        input1: NodeID,
        input2: NodeID,
        output: NodeID,
    ) -> None: ...


class TernaryFunc(ElementwiseFunc):
    arity = 3

    @abstractmethod
    def calc(
        self, input1: np.ndarray, input2: np.ndarray, input3: np.ndarray
    ) -> np.ndarray: ...

    @abstractmethod
    def grad(
        self,
        ctx: IGradientContext,
        input1: NodeID,
        input2: NodeID,
        input3: NodeID,
        output: NodeID,
    ) -> None: ...


class Elementwise(OpSpecification):
    """
    Specification of an elementwise operator.

    Parameters
    ----------
    func : ElementwiseFunc
        The operator's functional contract.
    inputs : Sequence[Node]
        One node per `func.arity`. The same node may appear several times.
    output : Node
        Node accumulating the result.
    """

    def __init__(self, func: ElementwiseFunc, inputs: Sequence[Node], output: Node) -> None:
        self.func = func
        self.input_nodes = tuple(inputs)
        self.output = output

    @property
    def type_name(self) -> str:
        return self.func.type_name

    def inputs(self) -> tuple[Node, ...]:
        return unique(self.input_nodes)

    def outputs(self) -> tuple[Node, ...]:
        return (self.output,)

    def clone_with_nodes_changed(self, mapping: Mapping[Node, Node]) -> "Elementwise":
        clone = copy.copy(self)
        clone.input_nodes = tuple(remap(mapping, n) for n in self.input_nodes)
        clone.output = remap(mapping, self.output)
        return clone

    def build_instance(self) -> "ElementwiseInstance":
        if len(self.input_nodes) != self.func.arity:
            raise BuildError(
                f"expected {self.func.arity} inputs, got {len(self.input_nodes)}",
                self.type_name,
            )
        return ElementwiseInstance(
            func=self.func,
            input_ids=tuple(n.id for n in self.input_nodes),
            output=self.output.id,
        )


class UnaryElementwise(Elementwise):
    def __init__(self, func: UnaryFunc, input: Node, output: Node) -> None:
        super().__init__(func, (input,), output)


class BinaryElementwise(Elementwise):
    def __init__(self, func: BinaryFunc, input1: Node, input2: Node, output: Node) -> None:
        super().__init__(func, (input1, input2), output)


class TernaryElementwise(Elementwise):
    def __init__(
        self,
        func: TernaryFunc,
        input1: Node,
        input2: Node,
        input3: Node,
        output: Node,
    ) -> None:
        super().__init__(func, (input1, input2, input3), output)


@dataclass(frozen=True, eq=False, repr=False)
class ElementwiseInstance(OpInstance):
    """
    Built elementwise operator.

    Attributes
    ----------
    func : ElementwiseFunc
        The operator's functional contract.
    input_ids : tuple[NodeID, ...]
        Positional inputs of `func.calc` (may repeat a node).
    output : NodeID
        Accumulated output.
    """

    func: ElementwiseFunc
    input_ids: tuple[NodeID, ...]
    output: NodeID

    @property
    def type_name(self) -> str:
        return self.func.type_name

    def inputs(self) -> tuple[NodeID, ...]:
        return unique(self.input_ids)

    def outputs(self) -> tuple[NodeID, ...]:
        return (self.output,)

    def as_specification(self, graph: Any) -> Elementwise:
        return Elementwise(
            self.func,
            [graph.node_from_id(i) for i in self.input_ids],
            graph.node_from_id(self.output),
        )

    def with_nodes_changed(self, mapping: Mapping[NodeID, NodeID]) -> "ElementwiseInstance":
        return dataclasses.replace(
            self,
            input_ids=tuple(remap(mapping, i) for i in self.input_ids),
            output=remap(mapping, self.output),
        )

    def propagate_shapes(self, ctx: IShapePropContext) -> None:
        shape = Shape.unknown()
        for node_id in self.inputs():
            input_shape = ctx.input_shape(node_id)
            if not shape.is_compatible(input_shape):
                raise ShapePropError(
                    f"{self.type_name}: input shapes {shape} and {input_shape} "
                    "are incompatible",
                    existing=shape,
                    proposed=input_shape,
                )
            shape = shape.merge(input_shape)
        ctx.merge_output_shape(self.output, shape)

    def execute(self, ctx: IExecutionContext) -> None:
        output = ctx.get_output_standard(self.output)
        inputs = [ctx.get_input_standard(i) for i in self.input_ids]
        for node_id, array in zip(self.input_ids, inputs):
            if array.shape != output.shape:
                raise ExecutionError(
                    f"input {node_id!r} has shape {array.shape}, "
                    f"output has shape {output.shape}",
                    self.type_name,
                )

        calc = self.func.calc

        def kernel(out: np.ndarray, *ins: np.ndarray) -> None:
            out += calc(*ins)

        for_each_lane(kernel, output, *inputs)

    def gradient(self, ctx: IGradientContext) -> None:
        self.func.grad(ctx, *self.input_ids, self.output)
