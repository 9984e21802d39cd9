"""
graphdiff: a reverse-mode automatic differentiation engine over an explicit
computation graph.

Quick start
-----------
    import numpy as np
    from graphdiff import Node, build_gradients, minimum, muldiv

    x = Node.new((4, 8)).set_name("x")
    y = muldiv(x, epsilon=0.1)
    grads = build_gradients(y, [x])

    x_value = np.random.rand(4, 8)
    dx = grads[x].calc({x: x_value})
"""

from .domain import (
    BuildError,
    ExecutionError,
    GradientError,
    NodeID,
    Shape,
    ShapePropError,
    UnimplementedGradientError,
)
from .infrastructure import *
from .infrastructure import __all__ as _infrastructure_all
from .infrastructure.ops import *
from .infrastructure.ops import __all__ as _ops_all

__version__ = "0.1.0"

__all__ = [
    BuildError.__name__,
    ExecutionError.__name__,
    GradientError.__name__,
    ShapePropError.__name__,
    UnimplementedGradientError.__name__,
    NodeID.__name__,
    Shape.__name__,
    *_infrastructure_all,
    *_ops_all,
]
