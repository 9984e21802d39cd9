"""
Dynamic-rank shape descriptors.

A `Shape` is the constraint recorded for every node in a graph. It either has
an unknown rank, or a fixed rank where every axis is a concrete size or
unknown (`None`). Shape propagation only ever tightens constraints through
`Shape.merge`, which unifies unknown entries permissively and rejects
known-vs-known disagreements.
"""

from __future__ import annotations

import numbers
import operator
from typing import Iterable, Optional, Sequence, Union

from ._errors import ShapePropError

ShapeLike = Union["Shape", int, Sequence[Optional[int]], None]


class Shape:
    """
    Immutable shape constraint.

    Parameters
    ----------
    dims : Optional[Iterable[Optional[int]]]
        Per-axis sizes, with `None` for an unknown size. Passing `None` for
        `dims` itself creates a shape of unknown rank.

    Raises
    ------
    ValueError
        If an axis size is negative or not an integer.

    Examples
    --------
    >>> Shape((None, 4)).merge(Shape((3, None)))
    Shape(3, 4)
    """

    __slots__ = ("_dims",)

    def __init__(self, dims: Optional[Iterable[Optional[int]]] = None) -> None:
        if dims is None:
            self._dims: Optional[tuple[Optional[int], ...]] = None
            return

        normalized: list[Optional[int]] = []
        for d in dims:
            if d is None:
                normalized.append(None)
                continue
            if isinstance(d, bool) or not hasattr(d, "__index__"):
                raise ValueError(f"shape entries must be int or None, got {d!r}")
            d = operator.index(d)
            if d < 0:
                raise ValueError(f"shape entries must be non-negative, got {d}")
            normalized.append(d)
        self._dims = tuple(normalized)

    @classmethod
    def unknown(cls) -> "Shape":
        """Return a shape whose rank is not yet known."""
        return cls(None)

    @classmethod
    def of(cls, shape: ShapeLike) -> "Shape":
        """
        Coerce a shape-like value into a `Shape`.

        Parameters
        ----------
        shape : ShapeLike
            A `Shape`, a single integer (rank 1), a sequence of sizes/`None`,
            or `None` for an unknown rank.

        Returns
        -------
        Shape
            The coerced shape.
        """
        if isinstance(shape, Shape):
            return shape
        if shape is None:
            return cls.unknown()
        if isinstance(shape, numbers.Integral):
            return cls((shape,))
        return cls(shape)

    @property
    def dims(self) -> Optional[tuple[Optional[int], ...]]:
        return self._dims

    @property
    def rank(self) -> Optional[int]:
        return None if self._dims is None else len(self._dims)

    @property
    def is_known(self) -> bool:
        """True when the rank and every axis size are concrete."""
        return self._dims is not None and all(d is not None for d in self._dims)

    def to_tuple(self) -> tuple[int, ...]:
        """
        Return the concrete shape as a tuple of ints.

        Raises
        ------
        ValueError
            If the rank or any axis is still unknown.
        """
        if not self.is_known:
            raise ValueError(f"shape {self} is not fully known")
        return tuple(int(d) for d in self._dims)  # type: ignore[union-attr]

    def is_compatible(self, other: "Shape") -> bool:
        """Return True if `self` and `other` can be merged without conflict."""
        if self._dims is None or other._dims is None:
            return True
        if len(self._dims) != len(other._dims):
            return False
        return all(
            a is None or b is None or a == b for a, b in zip(self._dims, other._dims)
        )

    def merge(self, other: ShapeLike) -> "Shape":
        """
        Unify two constraints into the tightest shape satisfying both.

        Parameters
        ----------
        other : ShapeLike
            The proposed constraint.

        Returns
        -------
        Shape
            The merged shape. Never looser than either operand.

        Raises
        ------
        ShapePropError
            If the ranks differ or a known axis disagrees.
        """
        other = Shape.of(other)
        if self._dims is None:
            return other
        if other._dims is None:
            return self
        if not self.is_compatible(other):
            raise ShapePropError(
                f"cannot merge shape {other} into {self}",
                existing=self,
                proposed=other,
            )
        return Shape(a if a is not None else b for a, b in zip(self._dims, other._dims))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Shape):
            return self._dims == other._dims
        if isinstance(other, tuple):
            return self._dims == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._dims)

    def __str__(self) -> str:
        if self._dims is None:
            return "(*)"
        inner = ", ".join("?" if d is None else str(d) for d in self._dims)
        if len(self._dims) == 1:
            inner += ","
        return f"({inner})"

    def __repr__(self) -> str:
        if self._dims is None:
            return "Shape(*)"
        return "Shape(" + ", ".join(repr(d) for d in self._dims) + ")"
