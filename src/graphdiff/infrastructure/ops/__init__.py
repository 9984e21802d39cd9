"""
Operator library.

Every operator is a specification/instance pair built on `OpSpecification`
and `OpInstance`. Importing this package makes all built-in operators
available.
"""

from ._base import OpInstance, OpSpecification
from .elementwise import *
from .math import *
from .elementwise import __all__ as _elementwise_all
from .math import __all__ as _math_all

__all__ = [
    OpSpecification.__name__,
    OpInstance.__name__,
    *_elementwise_all,
    *_math_all,
]
