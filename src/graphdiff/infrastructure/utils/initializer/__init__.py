"""
Initializer public API.

This module aggregates the built-in initializers and registers them into the
global `Initializer` registry via import side effects.

Exports
-------
- Initializer:
    The registry-backed dispatcher used to fill node values.

Notes
-----
- Individual initializer implementations are defined in submodules and
  registered at import time.
"""

from ._constants import *
from ._random import *
from ._base import Initializer

__all__ = [
    Initializer.__name__,
]
