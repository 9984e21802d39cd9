"""
Lane-parallel execution helpers.

Operators parallelise *within* their own execution: a tensor is viewed as a
2-D array of independent lanes (every axis except the innermost flattened
into rows, the innermost axis kept contiguous), and contiguous blocks of lanes
are handed to a shared thread pool. NumPy releases the GIL inside its
vectorised kernels, so blocks genuinely run concurrently.

No lane is ever touched by two blocks, so kernels need no locking, and
`for_each_lane` joins every block before returning.

Configuration
-------------
Read when the pool is first created:

- ``GRAPHDIFF_NUM_THREADS``: worker count (default: ``os.cpu_count()``).
- ``GRAPHDIFF_MIN_LANES_PER_TASK``: smallest block worth dispatching
  (default: 64). Smaller workloads run inline on the calling thread.
"""

from __future__ import annotations

import math
import os
import threading
import warnings
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

import numpy as np

from ..domain._errors import ExecutionError

DEFAULT_MIN_LANES_PER_TASK = 64

_POOL: Optional[ThreadPoolExecutor] = None
_NUM_THREADS: Optional[int] = None
_POOL_LOCK = threading.Lock()


def _env_positive_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value < 1:
        warnings.warn(
            f"Ignoring invalid {name}={raw!r}; expected a positive integer. "
            f"Using {default}.",
            RuntimeWarning,
            stacklevel=3,
        )
        return default
    return value


def get_num_threads() -> int:
    """Return the number of worker threads used for lane parallelism."""
    global _NUM_THREADS
    with _POOL_LOCK:
        if _NUM_THREADS is None:
            _NUM_THREADS = _env_positive_int(
                "GRAPHDIFF_NUM_THREADS", os.cpu_count() or 1
            )
        return _NUM_THREADS


def set_num_threads(num_threads: int) -> None:
    """
    Change the worker count. The current pool is shut down and a new one is
    created lazily on the next parallel call.

    Raises
    ------
    ValueError
        If `num_threads` is not a positive integer.
    """
    global _NUM_THREADS
    if not isinstance(num_threads, int) or num_threads < 1:
        raise ValueError(f"num_threads must be a positive int, got {num_threads!r}")
    shutdown_pool()
    with _POOL_LOCK:
        _NUM_THREADS = num_threads


def shutdown_pool() -> None:
    """Shut down the shared pool, waiting for running blocks."""
    global _POOL
    with _POOL_LOCK:
        pool, _POOL = _POOL, None
    if pool is not None:
        pool.shutdown(wait=True)


def _get_pool() -> ThreadPoolExecutor:
    global _POOL
    num_threads = get_num_threads()
    with _POOL_LOCK:
        if _POOL is None:
            _POOL = ThreadPoolExecutor(
                max_workers=num_threads, thread_name_prefix="graphdiff-lane"
            )
        return _POOL


def as_lanes(array: np.ndarray) -> np.ndarray:
    """
    View a C-contiguous array as ``(lanes, innermost)``.

    A 0-d array is a single lane of length one.

    Raises
    ------
    ExecutionError
        If the array is not C-contiguous (a reshape would silently copy).
    """
    if not array.flags.c_contiguous:
        raise ExecutionError("lane views require C-contiguous storage")
    inner = array.shape[-1] if array.ndim else 1
    if inner == 0:
        return array.reshape(0, 0)
    return array.reshape(-1, inner)


def for_each_lane(
    kernel: Callable[..., None],
    *arrays: np.ndarray,
    min_lanes_per_task: Optional[int] = None,
) -> None:
    """
    Apply `kernel` to matching blocks of lanes of same-shaped arrays.

    Parameters
    ----------
    kernel : Callable[..., None]
        Called as ``kernel(*blocks)`` where each block is a 2-D
        ``(lanes, innermost)`` view into the corresponding array. Writes into
        a block write through to the array.
    *arrays : np.ndarray
        Arrays of identical shape.
    min_lanes_per_task : Optional[int]
        Overrides ``GRAPHDIFF_MIN_LANES_PER_TASK``.

    Raises
    ------
    ExecutionError
        If the arrays disagree in shape or are not C-contiguous. Exceptions
        raised by `kernel` propagate after all blocks have been joined.
    """
    if not arrays:
        return
    shape = arrays[0].shape
    for array in arrays[1:]:
        if array.shape != shape:
            raise ExecutionError(
                f"lane arrays disagree in shape: {shape} vs {array.shape}"
            )

    lanes = [as_lanes(array) for array in arrays]
    n_lanes = lanes[0].shape[0]
    if n_lanes == 0 or lanes[0].shape[1] == 0:
        return

    if min_lanes_per_task is None:
        min_lanes_per_task = _env_positive_int(
            "GRAPHDIFF_MIN_LANES_PER_TASK", DEFAULT_MIN_LANES_PER_TASK
        )
    num_threads = get_num_threads()

    # Oversubscribe a little so idle workers pick up remaining blocks.
    block = max(min_lanes_per_task, math.ceil(n_lanes / (num_threads * 4)))
    if num_threads == 1 or block >= n_lanes:
        kernel(*lanes)
        return

    starts = range(0, n_lanes, block)
    pool = _get_pool()
    futures = [
        pool.submit(kernel, *(lane[s : s + block] for lane in lanes)) for s in starts
    ]
    errors = [f.exception() for f in futures]
    for err in errors:
        if err is not None:
            raise err
