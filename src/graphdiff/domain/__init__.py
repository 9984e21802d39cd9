from ._errors import (
    BuildError,
    ExecutionError,
    GradientError,
    ShapePropError,
    UnimplementedGradientError,
)
from ._ids import NodeID
from ._shape import Shape

__all__ = [
    BuildError.__name__,
    ExecutionError.__name__,
    GradientError.__name__,
    ShapePropError.__name__,
    UnimplementedGradientError.__name__,
    NodeID.__name__,
    Shape.__name__,
]
