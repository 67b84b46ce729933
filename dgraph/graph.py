# dgraph/graph.py
from __future__ import annotations
from typing import Dict, Iterator, List, Tuple


class Graph:
    """Directed graph over integer node ids, kept with its transpose.

    Nodes live in ``[0, capacity)``. Growing the graph creates every id up to the
    new capacity; ``remove`` leaves a hole that a later ``add``/``link`` on the
    same id fills again. Backing store is sparse (dicts keyed by id) so a removed
    node is absent, not merely edgeless.
    """

    def __init__(self, size: int = 0, dedupe: bool = False) -> None:
        if size < 0:
            raise ValueError(f"graph size must be non-negative, got {size}")
        self.dedupe = dedupe
        self._out: Dict[int, List[int]] = {}
        self._in: Dict[int, List[int]] = {}
        self._cap = 0
        if size:
            self.add(size - 1)

    # ---------- mutators ----------
    def add(self, node: int) -> None:
        """Make sure ``node`` exists, growing capacity to ``node + 1`` if needed."""
        if node >= self._cap:
            for n in range(self._cap, node + 1):
                self._out[n] = []
                self._in[n] = []
            self._cap = node + 1
        elif node not in self._out:
            self._out[node] = []
            self._in[node] = []

    def link(self, src: int, dst: int) -> None:
        """Add the edge src -> dst. Self-loops and repeats are allowed."""
        self.add(src)
        self.add(dst)
        if self.dedupe and dst in self._out[src]:
            return
        self._out[src].append(dst)
        self._in[dst].append(src)

    def unlink(self, src: int, dst: int) -> None:
        """Drop one src -> dst edge; no-op if there is none."""
        succ = self._out.get(src)
        if succ is None or dst not in succ:
            return
        succ.remove(dst)
        self._in[dst].remove(src)

    def remove(self, node: int) -> None:
        """Delete ``node`` and every edge touching it; no-op for absent nodes."""
        if node not in self._out:
            return
        for pred in set(self._in[node]):
            if pred != node:
                self._out[pred] = [n for n in self._out[pred] if n != node]
        for succ in set(self._out[node]):
            if succ != node:
                self._in[succ] = [n for n in self._in[succ] if n != node]
        del self._out[node]
        del self._in[node]

    # ---------- queries ----------
    @property
    def capacity(self) -> int:
        return self._cap

    def __len__(self) -> int:
        return len(self._out)

    def __contains__(self, node: object) -> bool:
        return node in self._out

    def __repr__(self) -> str:
        return f"Graph(nodes={len(self)}, edges={self.edge_count()}, capacity={self._cap})"

    def nodes(self) -> List[int]:
        """Existing node ids, ascending."""
        if len(self._out) == self._cap:
            return list(range(self._cap))
        return sorted(self._out)

    def successors(self, node: int) -> Tuple[int, ...]:
        return tuple(self._out.get(node, ()))

    def predecessors(self, node: int) -> Tuple[int, ...]:
        return tuple(self._in.get(node, ()))

    def edges(self) -> Iterator[Tuple[int, int]]:
        for src in self.nodes():
            for dst in self._out[src]:
                yield src, dst

    def adjacency(self) -> Tuple[Dict[int, List[int]], Dict[int, List[int]]]:
        """Live (out, in) maps. Callers must not mutate them."""
        return self._out, self._in

    def edge_count(self) -> int:
        return sum(len(v) for v in self._out.values())

    def strong_components(self, recursive: bool = False) -> List[List[int]]:
        """Strongly connected components in dependency order.

        Without cycles every node comes back as its own component and the order is
        a topological sort: for an edge u -> v, u's component is never after v's.
        """
        from .scc import strong_components
        return strong_components(self, recursive=recursive)
