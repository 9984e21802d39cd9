"""
Concrete engine: graph arena, shape propagation, execution, gradient
construction and the operator library.
"""

from ._execution import DEFAULT_DTYPE, ExecutionContext, execute
from ._gradient import GradientContext, build_gradients
from ._parallel import get_num_threads, set_num_threads, shutdown_pool
from ._shape_prop import ShapePropContext, propagate_shapes
from .graph import Graph, Node, merge_graphs
from .utils.initializer import Initializer

__all__ = [
    "DEFAULT_DTYPE",
    Graph.__name__,
    Node.__name__,
    merge_graphs.__name__,
    ShapePropContext.__name__,
    propagate_shapes.__name__,
    ExecutionContext.__name__,
    execute.__name__,
    GradientContext.__name__,
    build_gradients.__name__,
    Initializer.__name__,
    get_num_threads.__name__,
    set_num_threads.__name__,
    shutdown_pool.__name__,
]
