from ._muldiv import (
    DEFAULT_EPSILON,
    MulDiv,
    MulDivBack,
    MulDivBackInstance,
    MulDivInstance,
    muldiv,
)

__all__ = [
    "DEFAULT_EPSILON",
    MulDiv.__name__,
    MulDivInstance.__name__,
    MulDivBack.__name__,
    MulDivBackInstance.__name__,
    muldiv.__name__,
]
