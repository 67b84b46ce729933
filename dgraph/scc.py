# dgraph/scc.py
from __future__ import annotations
import sys
from typing import Callable, Dict, List, Set, Tuple

from .graph import Graph

Adjacency = Dict[int, List[int]]
Visit = Callable[[Adjacency, int, Set[int], Callable[[int], None]], None]


def _walk(adj: Adjacency, root: int, seen: Set[int], emit: Callable[[int], None]) -> None:
    # explicit stack; same order as _walk_recursive: mark on entry, emit on exit
    seen.add(root)
    stack = [(root, iter(adj[root]))]
    while stack:
        node, it = stack[-1]
        for nxt in it:
            if nxt not in seen:
                seen.add(nxt)
                stack.append((nxt, iter(adj[nxt])))
                break
        else:
            stack.pop()
            emit(node)


def _walk_recursive(adj: Adjacency, root: int, seen: Set[int], emit: Callable[[int], None]) -> None:
    def visit(node: int) -> None:
        for nxt in adj[node]:
            if nxt not in seen:
                seen.add(nxt)
                visit(nxt)
        emit(node)

    seen.add(root)
    visit(root)


def _kosaraju(out: Adjacency, inn: Adjacency, nodes: List[int], walk: Visit) -> List[List[int]]:
    order: List[int] = []
    seen: Set[int] = set()
    for node in nodes:
        if node not in seen:
            walk(out, node, seen, order.append)

    components: List[List[int]] = []
    assigned: Set[int] = set()
    for node in reversed(order):
        if node not in assigned:
            comp: List[int] = []
            walk(inn, node, assigned, comp.append)
            components.append(comp)
    return components


def strong_components(graph: Graph, recursive: bool = False) -> List[List[int]]:
    """SCC Kosaraju: post-order over out-edges, then the transpose in reverse finish order.

    Components come out in dependency order. ``recursive=True`` walks on the call
    stack and lifts the recursion limit for the duration of the call; the default
    explicit stack has no depth limit.
    """
    out, inn = graph.adjacency()
    nodes = graph.nodes()
    if not recursive:
        return _kosaraju(out, inn, nodes, _walk)

    limit = sys.getrecursionlimit()
    sys.setrecursionlimit(max(limit, 10_000, len(nodes) * 2 + 100))
    try:
        return _kosaraju(out, inn, nodes, _walk_recursive)
    finally:
        sys.setrecursionlimit(limit)


def condense(graph: Graph, components: List[List[int]]) -> Tuple[Dict[int, int], List[Tuple[int, int]]]:
    """Component index per node plus the edges of the condensed DAG (first-seen order)."""
    comp_of: Dict[int, int] = {}
    for i, comp in enumerate(components):
        for v in comp:
            comp_of[v] = i

    dag: Dict[Tuple[int, int], None] = {}
    for a, b in graph.edges():
        ca, cb = comp_of[a], comp_of[b]
        if ca != cb:
            dag[(ca, cb)] = None
    return comp_of, list(dag)


def cycle_sets(components: List[List[int]]) -> List[List[int]]:
    return [comp for comp in components if len(comp) > 1]
