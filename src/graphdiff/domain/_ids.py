"""
Opaque identifiers for graph vertices.

Operator instances reference nodes only through `NodeID` values, never through
node handles, so a graph can own its operators without reference cycles.
Identifiers are drawn from a process-wide counter and are never reused; graph
merges therefore never have to renumber anything.
"""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass

_COUNTER = itertools.count()
_COUNTER_LOCK = threading.Lock()


@dataclass(frozen=True, order=True)
class NodeID:
    """
    Globally unique identifier of a node.

    Attributes
    ----------
    index : int
        Position in the process-wide allocation sequence.
    """

    index: int

    @classmethod
    def allocate(cls) -> "NodeID":
        """Allocate a fresh, never-before-used identifier."""
        with _COUNTER_LOCK:
            return cls(next(_COUNTER))

    def __repr__(self) -> str:
        return f"NodeID({self.index})"
