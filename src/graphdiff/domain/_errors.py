"""
Graph construction and evaluation exceptions for graphdiff.

This module defines the error taxonomy shared by every stage of the engine:

- `BuildError`: an operator specification could not be lowered into an
  instance and registered (inconsistent graphs, unknown nodes, cycles).
- `ShapePropError`: two shape constraints on the same node cannot be unified.
- `ExecutionError`: runtime storage disagrees with the declared structure.
- `GradientError`: the backward graph could not be constructed, including the
  explicit `UnimplementedGradientError` for operators without an adjoint.

All failures are deterministic functions of graph structure and configuration,
so none of these errors is ever retried by the engine. They are raised to the
caller and never swallowed.
"""

from __future__ import annotations

from typing import Any, Optional


class BuildError(RuntimeError):
    """
    Raised when an operator specification cannot be built.

    A failed build never registers anything: the owning graph is left exactly
    as it was before `build()` was called.

    Attributes
    ----------
    op_type : Optional[str]
        Type name of the operator being built, when known.
    """

    def __init__(self, message: str, op_type: Optional[str] = None) -> None:
        """
        Initialize the BuildError.

        Parameters
        ----------
        message : str
            Human-readable description of the failure.
        op_type : Optional[str]
            Type name of the operator being built.
        """
        if op_type is not None:
            message = f"{op_type}: {message}"
        super().__init__(message)
        self.op_type = op_type


class ShapePropError(RuntimeError):
    """
    Raised when shape constraints on a node cannot be reconciled.

    Attributes
    ----------
    existing : Any
        The shape already recorded for the node (if applicable).
    proposed : Any
        The shape that failed to merge into `existing` (if applicable).
    """

    def __init__(
        self,
        message: str,
        existing: Any = None,
        proposed: Any = None,
    ) -> None:
        """
        Initialize the ShapePropError.

        Parameters
        ----------
        message : str
            Human-readable description of the conflict.
        existing : Any
            The current constraint on the node.
        proposed : Any
            The incompatible constraint that was proposed.
        """
        super().__init__(message)
        self.existing = existing
        self.proposed = proposed


class ExecutionError(RuntimeError):
    """
    Raised when an operator's runtime storage violates its declared structure.

    Structural correctness is guaranteed by shape propagation, so this error
    signals an upstream invariant violation (a programming error), not a
    recoverable condition.
    """

    def __init__(self, message: str, op_type: Optional[str] = None) -> None:
        if op_type is not None:
            message = f"{op_type}: {message}"
        super().__init__(message)
        self.op_type = op_type


class GradientError(RuntimeError):
    """
    Raised when the backward graph for an operator cannot be constructed.
    """

    def __init__(self, message: str, op_type: Optional[str] = None) -> None:
        if op_type is not None:
            message = f"{op_type}: {message}"
        super().__init__(message)
        self.op_type = op_type


class UnimplementedGradientError(GradientError):
    """
    Raised by operators that declare no adjoint.

    Backward operators typically raise this from their own `gradient()`, which
    makes second-order differentiation through them an explicit failure rather
    than a silent zero.
    """

    def __init__(self, op_type: str) -> None:
        super().__init__("gradient is not implemented", op_type=op_type)
