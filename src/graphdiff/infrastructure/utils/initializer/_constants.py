"""
Constant initializers.

This module defines simple constant-valued initializers and registers them
with the global `Initializer` registry.

Provided initializers
---------------------
- ``zeros``:
    Fill an array with zeros.
- ``ones``:
    Fill an array with ones.
- ``constant``:
    Fill an array with a given scalar ``value``.
"""

import numpy as np

from ._base import Initializer


@Initializer.register_initializer("zeros")
def zeros(array: np.ndarray) -> np.ndarray:
    """Fill `array` with zeros in-place and return it."""
    array.fill(0.0)
    return array


@Initializer.register_initializer("ones")
def ones(array: np.ndarray) -> np.ndarray:
    """Fill `array` with ones in-place and return it."""
    array.fill(1.0)
    return array


@Initializer.register_initializer("constant")
def constant(array: np.ndarray, value: float = 0.0) -> np.ndarray:
    """
    Fill an array with a scalar value.

    Parameters
    ----------
    array : np.ndarray
        The array to fill in-place.
    value : float
        Fill value.

    Returns
    -------
    np.ndarray
        The filled array (same object).
    """
    array.fill(value)
    return array
