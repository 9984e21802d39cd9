"""
Operator interface definitions.

Operators are split in two:

- An `IOpSpecification` is a mutable, cheaply cloneable, user-facing builder
  that names its input and output nodes and carries tunable parameters.
- An `IOpInstance` is the immutable, validated, executable lowering of a
  specification. It references nodes only by `NodeID` and implements the
  capability set every operator must provide: shape propagation, forward
  execution and differentiation.

`build()` is the only bridge between the two: it validates a specification,
lowers it and registers the instance with the owning graph, or raises a
`BuildError` and registers nothing.

New operator kinds implement these interfaces; the engine never needs to know
about concrete operator types.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

from ._contexts import IExecutionContext, IGradientContext, IShapePropContext
from ._ids import NodeID
from ._node import INode


class IOpInstance(ABC):
    """
    Abstract base class for built operator instances.

    Notes
    -----
    - Instances are immutable. Their node sets only change through
      `with_nodes_changed`, which returns a new instance.
    - All inputs and outputs are accumulated into (`+=`), never overwritten,
      so several instances may legally produce the same node.
    """

    @property
    @abstractmethod
    def type_name(self) -> str:
        """Return the operator's type name for diagnostics."""
        ...

    @abstractmethod
    def inputs(self) -> tuple[NodeID, ...]:
        """Return the de-duplicated, ordered input node ids."""
        ...

    @abstractmethod
    def outputs(self) -> tuple[NodeID, ...]:
        """Return the de-duplicated, ordered output node ids."""
        ...

    @abstractmethod
    def propagate_shapes(self, ctx: IShapePropContext) -> None:
        """
        Infer or constrain output shapes from input shapes.

        Raises
        ------
        ShapePropError
            If input shapes are mutually incompatible or contradict an
            existing output constraint.
        """
        ...

    @abstractmethod
    def execute(self, ctx: IExecutionContext) -> None:
        """
        Accumulate this operator's result into its output storage.

        Raises
        ------
        ExecutionError
            If storage disagrees with the declared structure.
        """
        ...

    @abstractmethod
    def gradient(self, ctx: IGradientContext) -> None:
        """
        Build the backward operators of this instance.

        Implementations build new operators that accumulate into
        `ctx.grad_of(input)` for each input that receives a gradient.

        Raises
        ------
        GradientError
            If the backward graph cannot be built. Operators without an adjoint
            raise `UnimplementedGradientError`.
        """
        ...

    @abstractmethod
    def as_specification(self, graph: Any) -> "IOpSpecification":
        """Reconstruct an equivalent specification against `graph`."""
        ...

    @abstractmethod
    def with_nodes_changed(self, mapping: Mapping[NodeID, NodeID]) -> "IOpInstance":
        """
        Return a copy of this instance with node ids substituted.

        Ids absent from `mapping` are kept.
        """
        ...


class IOpSpecification(ABC):
    """
    Abstract base class for operator specifications.

    Specifications are plain mutable configuration: they can be cloned,
    re-pointed at other nodes and adjusted through fluent setters before they
    are built.
    """

    @property
    @abstractmethod
    def type_name(self) -> str:
        """Return the operator's type name for diagnostics."""
        ...

    @abstractmethod
    def inputs(self) -> tuple[INode, ...]:
        """Return the de-duplicated, ordered input nodes."""
        ...

    @abstractmethod
    def outputs(self) -> tuple[INode, ...]:
        """Return the de-duplicated, ordered output nodes."""
        ...

    @abstractmethod
    def clone_with_nodes_changed(
        self, mapping: Mapping[INode, INode]
    ) -> "IOpSpecification":
        """
        Return a copy of this specification with nodes substituted.

        Nodes absent from `mapping` are kept.
        """
        ...

    @abstractmethod
    def build_instance(self) -> IOpInstance:
        """
        Lower this specification into an unregistered instance.

        Raises
        ------
        BuildError
            If the configuration is malformed.
        """
        ...

    @abstractmethod
    def build(self) -> IOpInstance:
        """
        Validate, lower and register this specification with its graph.

        Raises
        ------
        BuildError
            If validation fails. Nothing is registered in that case.
        """
        ...
