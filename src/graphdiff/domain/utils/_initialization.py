"""
Abstract interfaces for node value initialization.

This module defines the abstract base class for node initializers. Nodes that
carry neither a value nor a producing operator may carry an initializer; the
execution engine applies it once to a zero-filled array of the node's resolved
shape and persists the result as the node's value.

The concrete registry and the built-in initializers live in the infrastructure
layer. This module only defines the contract.
"""

from typing import Any, Callable, Dict, TypeVar
from abc import ABC

T = TypeVar("T", bound=Callable[..., Any])


class _Initializer(ABC):
    """
    Abstract base class for initializer dispatchers.

    Design notes
    ------------
    - Initializers are identified by string names.
    - Each initializer is a callable that fills a numpy array in-place and
      returns it.
    - Keyword parameters (e.g. `low`, `high`) are bound when the dispatcher is
      constructed so a dispatcher can be attached to a node and invoked later
      with the array alone.
    """

    INITIALIZERS: Dict[str, Callable] = {}

    def __init__(self, initializer_name: str, **params: Any) -> None:
        """
        Construct an initializer dispatcher.

        Parameters
        ----------
        initializer_name:
            The string key identifying a registered initializer.
        **params:
            Keyword arguments bound to every invocation.
        """
        ...

    @classmethod
    def register_initializer(
        cls, name: str, *, overwrite: bool = False
    ) -> Callable[[T], T]:
        """
        Register an initializer under a given name.

        Parameters
        ----------
        name:
            Name used to identify the initializer.
        overwrite:
            Whether to allow overwriting an existing registration.

        Returns
        -------
        Callable
            A decorator that registers the initializer function.
        """
        ...

    @classmethod
    def available(cls) -> tuple[str, ...]:
        """
        Return the names of all registered initializers.

        Returns
        -------
        tuple[str, ...]
            A sorted tuple of registered initializer names.
        """
        ...

    @classmethod
    def get(cls, name: str) -> Callable[..., Any]:
        """
        Get a registered initializer callable by name.
        """
        ...

    def __call__(self, array: Any) -> Any:
        """
        Apply the initializer to an array in-place.

        Parameters
        ----------
        array:
            The array to be filled.

        Returns
        -------
        Any
            The filled array.
        """
        ...
