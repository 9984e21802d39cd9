"""
Dependency ordering over the bipartite node/operator graph.

Construction order is a natural forward order for sequentially built graphs,
but nothing guarantees it (graph merges concatenate operator lists, and
operators may be built before their inputs' producers). Every pass of the
engine therefore recomputes a true dependency order from the operators'
declared input and output node ids.

Functions
---------
- `dependency_order`: Kahn topological sort, ties broken by list position.
- `ancestor_ops` / `descendant_ops`: transitive producer / consumer closures.
- `reaches`: forward reachability, used to reject cycles at build time.
"""

from __future__ import annotations

import heapq
from typing import Callable, Collection, Iterable, Sequence

from ..domain._errors import BuildError
from ..domain._ids import NodeID
from ..domain._operator import IOpInstance

OpLookup = Callable[[NodeID], Iterable[IOpInstance]]


def dependency_order(instances: Sequence[IOpInstance]) -> list[IOpInstance]:
    """
    Sort operator instances so every producer of a node runs before every
    consumer of it.

    Parameters
    ----------
    instances : Sequence[IOpInstance]
        The operators to order. Dependencies through operators outside this
        sequence are ignored.

    Returns
    -------
    list[IOpInstance]
        The instances in dependency order. Among independent instances the
        original sequence order is kept, so the result is deterministic.

    Raises
    ------
    BuildError
        If the instances form a cycle.
    """
    producers: dict[NodeID, list[int]] = {}
    for i, op in enumerate(instances):
        for out in op.outputs():
            producers.setdefault(out, []).append(i)

    dependents: list[set[int]] = [set() for _ in instances]
    in_degree = [0] * len(instances)
    for i, op in enumerate(instances):
        upstream: set[int] = set()
        for inp in op.inputs():
            upstream.update(producers.get(inp, ()))
        upstream.discard(i)
        for j in upstream:
            dependents[j].add(i)
        in_degree[i] = len(upstream)

    ready = [i for i, d in enumerate(in_degree) if d == 0]
    heapq.heapify(ready)
    order: list[IOpInstance] = []
    while ready:
        i = heapq.heappop(ready)
        order.append(instances[i])
        for j in dependents[i]:
            in_degree[j] -= 1
            if in_degree[j] == 0:
                heapq.heappush(ready, j)

    if len(order) != len(instances):
        stuck = sorted(
            {instances[i].type_name for i, d in enumerate(in_degree) if d > 0}
        )
        raise BuildError(f"operator graph contains a cycle through {stuck}")
    return order


def ancestor_ops(
    producers_of: OpLookup,
    targets: Iterable[NodeID],
    stop: Collection[NodeID] = (),
) -> list[IOpInstance]:
    """
    Collect every operator that transitively produces any of `targets`.

    Parameters
    ----------
    producers_of : Callable[[NodeID], Iterable[IOpInstance]]
        Lookup returning the producers of a node.
    targets : Iterable[NodeID]
        Nodes whose producing closure is requested.
    stop : Collection[NodeID]
        Nodes treated as leaves: their producers are not visited.

    Returns
    -------
    list[IOpInstance]
        The operators in discovery order (not dependency order).
    """
    seen_nodes: set[NodeID] = set()
    seen_ops: set[int] = set()
    found: list[IOpInstance] = []
    stack = list(targets)
    while stack:
        nid = stack.pop()
        if nid in seen_nodes or nid in stop:
            continue
        seen_nodes.add(nid)
        for op in producers_of(nid):
            if id(op) in seen_ops:
                continue
            seen_ops.add(id(op))
            found.append(op)
            stack.extend(op.inputs())
    return found


def descendant_ops(consumers_of: OpLookup, sources: Iterable[NodeID]) -> list[IOpInstance]:
    """
    Collect every operator that transitively consumes any of `sources`.
    """
    seen_nodes: set[NodeID] = set()
    seen_ops: set[int] = set()
    found: list[IOpInstance] = []
    stack = list(sources)
    while stack:
        nid = stack.pop()
        if nid in seen_nodes:
            continue
        seen_nodes.add(nid)
        for op in consumers_of(nid):
            if id(op) in seen_ops:
                continue
            seen_ops.add(id(op))
            found.append(op)
            stack.extend(op.outputs())
    return found


def reaches(
    consumers_of: OpLookup,
    starts: Iterable[NodeID],
    targets: Iterable[NodeID],
) -> bool:
    """Return True if any of `targets` is downstream of (or among) `starts`."""
    goal = set(targets)
    seen: set[NodeID] = set()
    stack = list(starts)
    while stack:
        nid = stack.pop()
        if nid in goal:
            return True
        if nid in seen:
            continue
        seen.add(nid)
        for op in consumers_of(nid):
            stack.extend(op.outputs())
    return False
