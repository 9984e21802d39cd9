"""
Initializer registry and dispatch utilities.

This module defines the concrete `Initializer` used to fill the value of
nodes that carry neither a value nor a producing operator.

Design
------
- Initializers are registered by string name via a decorator-based registry.
- Each initializer is a callable that fills a numpy array *in-place* and
  returns it. Keyword parameters follow the array.
- The dispatcher resolves an initializer by name at construction time, binds
  its keyword parameters, and invokes it via `__call__`.

Usage example
-------------
Registering an initializer:

    @Initializer.register_initializer("uniform")
    def uniform(array: np.ndarray, low: float = -1.0, high: float = 1.0) -> np.ndarray:
        ...

Attaching one to a node:

    node.set_init(Initializer("uniform", low=-0.5, high=0.5))

Notes
-----
- Registration keys must be unique unless explicitly overwritten.
- Unknown parameter names are rejected at call time by the initializer itself.
"""

from __future__ import annotations

from typing import Any, Callable, ClassVar, Dict, TypeVar

import numpy as np

from ....domain.utils._initialization import _Initializer

T = TypeVar("T", bound=Callable[..., np.ndarray])


class Initializer(_Initializer):
    """
    Registry-backed initializer dispatcher.

    Usage
    -----
    Register:
        @Initializer.register_initializer("ones")
        def ones(array: np.ndarray) -> np.ndarray: ...

    Dispatch:
        init = Initializer("uniform", low=0.1, high=1.0)
        init(array)
    """

    INITIALIZERS: ClassVar[Dict[str, Callable[..., np.ndarray]]] = {}

    def __init__(self, initializer_name: str, **params: Any) -> None:
        try:
            self._initializer: Callable[..., np.ndarray] = self.INITIALIZERS[
                initializer_name
            ]
        except KeyError as e:
            available = ", ".join(sorted(self.INITIALIZERS)) or "<none>"
            raise ValueError(
                f"Unsupported initializer name: {initializer_name!r}. "
                f"Available: {available}"
            ) from e
        self.name = initializer_name
        self.params = dict(params)

    @classmethod
    def register_initializer(
        cls, name: str, *, overwrite: bool = False
    ) -> Callable[[T], T]:
        """
        Decorator to register an initializer under `name`.

        Parameters
        ----------
        name:
            Registry key used to retrieve the initializer later.
        overwrite:
            If False (default), raises if `name` is already registered.
        """
        if not isinstance(name, str) or not name:
            raise ValueError("Initializer name must be a non-empty string")

        def decorator(func: T) -> T:
            if not overwrite and name in cls.INITIALIZERS:
                raise ValueError(f"Initializer already registered: {name!r}")
            cls.INITIALIZERS[name] = func
            return func

        return decorator

    @classmethod
    def available(cls) -> tuple[str, ...]:
        """Return registered initializer names (sorted)."""
        return tuple(sorted(cls.INITIALIZERS))

    @classmethod
    def get(cls, name: str) -> Callable[..., np.ndarray]:
        """Get a registered initializer callable by name."""
        return cls.INITIALIZERS[name]

    def __call__(self, array: np.ndarray) -> np.ndarray:
        return self._initializer(array, **self.params)

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v!r}" for k, v in self.params.items())
        return f"Initializer({self.name!r}{', ' + params if params else ''})"
