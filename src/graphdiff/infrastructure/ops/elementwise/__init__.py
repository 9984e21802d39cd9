"""
Elementwise operators.

The template (`Elementwise` and its fixed-arity variants) lives in `_base`;
concrete operators only provide an `ElementwiseFunc`.

Public API
----------
- Template: ``ElementwiseFunc``, ``UnaryFunc``, ``BinaryFunc``,
  ``TernaryFunc``, ``Elementwise``, ``UnaryElementwise``,
  ``BinaryElementwise``, ``TernaryElementwise``, ``ElementwiseInstance``
- Operators: ``Identity``, ``OnesLike``, ``Min``, ``MinBack``
- Convenience builders: ``identity``, ``minimum``
"""

from ._base import (
    BinaryElementwise,
    BinaryFunc,
    Elementwise,
    ElementwiseFunc,
    ElementwiseInstance,
    TernaryElementwise,
    TernaryFunc,
    UnaryElementwise,
    UnaryFunc,
)
from ._identity import Identity, IdentityFunc, OnesLike, OnesLikeFunc, identity
from ._min import Min, MinBack, MinBackFunc, MinFunc, minimum

__all__ = [
    ElementwiseFunc.__name__,
    UnaryFunc.__name__,
    BinaryFunc.__name__,
    TernaryFunc.__name__,
    Elementwise.__name__,
    UnaryElementwise.__name__,
    BinaryElementwise.__name__,
    TernaryElementwise.__name__,
    ElementwiseInstance.__name__,
    IdentityFunc.__name__,
    OnesLikeFunc.__name__,
    Identity.__name__,
    OnesLike.__name__,
    identity.__name__,
    MinFunc.__name__,
    MinBackFunc.__name__,
    Min.__name__,
    MinBack.__name__,
    minimum.__name__,
]
