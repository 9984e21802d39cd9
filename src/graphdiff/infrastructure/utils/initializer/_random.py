"""
Random initializers.

This module provides the random-valued initializers used by tests and
examples, registered into the global `Initializer` registry.

Implemented variants
--------------------
- ``uniform``:
    ``U(low, high)``, default ``U(-1, 1)``.
- ``normal``:
    ``N(mean, std^2)``, default ``N(0, 1)``.

Notes
-----
- Values are drawn from NumPy's global random state, so `np.random.seed`
  makes initialization reproducible.
- Initializers mutate the provided array in-place and return it.
"""

import numpy as np

from ._base import Initializer


@Initializer.register_initializer("uniform")
def uniform(array: np.ndarray, low: float = -1.0, high: float = 1.0) -> np.ndarray:
    """
    Fill an array from a uniform distribution.

    Parameters
    ----------
    array:
        The array to fill in-place.
    low, high:
        Bounds of the half-open interval ``[low, high)``.

    Returns
    -------
    np.ndarray
        The filled array (same object).

    Raises
    ------
    ValueError
        If ``low > high``.
    """
    if low > high:
        raise ValueError(f"uniform initializer requires low <= high, got {low} > {high}")
    array[...] = np.random.uniform(low, high, size=array.shape)
    return array


@Initializer.register_initializer("normal")
def normal(array: np.ndarray, mean: float = 0.0, std: float = 1.0) -> np.ndarray:
    """
    Fill an array from a normal distribution.

    Raises
    ------
    ValueError
        If ``std`` is negative.
    """
    if std < 0:
        raise ValueError(f"normal initializer requires std >= 0, got {std}")
    array[...] = np.random.normal(mean, std, size=array.shape)
    return array
