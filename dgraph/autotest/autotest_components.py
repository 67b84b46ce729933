# autotest_components.py
# Purpose: Validate pipeline artifacts (edges.parquet, components.parquet, condensed.parquet).
# Outputs: human-readable console report (+ optional txt report); exit code 1 on any FAIL.

from __future__ import annotations
import argparse
import io
import time
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import polars as pl

from dgraph.config import Config
from dgraph.graph import Graph
from dgraph.scc import strong_components

# ---------------------- helpers ----------------------

@dataclass
class CheckResult:
    name: str
    status: str  # PASS | FAIL | WARN | SKIP
    details: List[str] = field(default_factory=list)
    duration_s: float = 0.0

    def fmt(self) -> str:
        s = f"[{self.status}] {self.name} ({self.duration_s:.2f}s)\n"
        for line in self.details:
            s += f"  - {line}\n"
        return s


class Suite:
    def __init__(self) -> None:
        self.results: List[CheckResult] = []

    def add(self, res: CheckResult) -> None:
        self.results.append(res)

    def summary(self) -> Tuple[int, int, int, int]:
        p = sum(1 for r in self.results if r.status == "PASS")
        f = sum(1 for r in self.results if r.status == "FAIL")
        w = sum(1 for r in self.results if r.status == "WARN")
        s = sum(1 for r in self.results if r.status == "SKIP")
        return p, f, w, s

    def render(self) -> str:
        out = io.StringIO()
        print("=" * 78, file=out)
        print("dgraph – Autotest for component artifacts", file=out)
        print("=" * 78, file=out)
        for r in self.results:
            print(r.fmt(), end="", file=out)
        p, f, w, s = self.summary()
        print("-" * 78, file=out)
        print(f"Summary: PASS={p}  FAIL={f}  WARN={w}  SKIP={s}", file=out)
        return out.getvalue()


@dataclass
class Env:
    root: Path
    size: int = 0
    _cache: Dict[str, Optional[pl.DataFrame]] = field(default_factory=dict)

    @property
    def cfg(self) -> Config:
        return Config.for_root(self.root, size=self.size)

    def frame(self, name: str) -> Optional[pl.DataFrame]:
        if name not in self._cache:
            p = getattr(self.cfg, name)
            self._cache[name] = pl.read_parquet(p) if p.exists() else None
        return self._cache[name]

    def comp_of(self) -> Dict[int, int]:
        comps = self.frame("components_parquet")
        return {int(n): int(c) for c, n in comps.select(["component", "node"]).iter_rows()}


def _missing(env: Env, *names: str) -> List[str]:
    return [str(getattr(env.cfg, n)) for n in names if env.frame(n) is None]

# ---------------------- checks ----------------------

def check_schema(env: Env) -> CheckResult:
    t0 = time.perf_counter()
    miss = _missing(env, "edges_parquet", "components_parquet", "condensed_parquet")
    if miss:
        return CheckResult("artifact schema", "FAIL", [f"Missing: {m}" for m in miss])

    expected = {
        "edges_parquet": {"src": pl.Int64, "dst": pl.Int64},
        "components_parquet": {"component": pl.Int32, "position": pl.Int32, "node": pl.Int64},
        "condensed_parquet": {"src_component": pl.Int32, "dst_component": pl.Int32},
    }
    problems: List[str] = []
    for name, cols in expected.items():
        schema = env.frame(name).schema
        for col, dtype in cols.items():
            if col not in schema:
                problems.append(f"{name}: missing column {col}")
            elif schema[col] != dtype:
                problems.append(f"{name}.{col}: {schema[col]} != {dtype}")
    status = "FAIL" if problems else "PASS"
    return CheckResult("artifact schema", status, problems or ["all columns present"], time.perf_counter() - t0)


def check_partition(env: Env) -> CheckResult:
    t0 = time.perf_counter()
    miss = _missing(env, "edges_parquet", "components_parquet")
    if miss:
        return CheckResult("node partition", "SKIP", [f"Missing: {m}" for m in miss])
    comps = env.frame("components_parquet")
    edges = env.frame("edges_parquet")
    problems: List[str] = []

    dup = comps.group_by("node").agg(pl.len().alias("n")).filter(pl.col("n") > 1)
    if dup.height:
        problems.append(f"{dup.height:,} nodes appear in more than one slot, e.g. {dup.get_column('node').head(5).to_list()}")

    ids = comps.get_column("component").unique().sort().to_list()
    if ids != list(range(len(ids))):
        problems.append("component ids are not contiguous from 0")
    bad_pos = (comps.group_by("component")
                    .agg([pl.len().alias("n"), pl.col("position").min().alias("lo"), pl.col("position").max().alias("hi")])
                    .filter((pl.col("lo") != 0) | (pl.col("hi") != pl.col("n") - 1)))
    if bad_pos.height:
        problems.append(f"{bad_pos.height:,} components with non-contiguous positions")

    nodes = set(comps.get_column("node").to_list())
    endpoints = set(edges.get_column("src").to_list()) | set(edges.get_column("dst").to_list())
    named = env.frame("nodes_parquet")
    if named is not None:
        endpoints |= set(named.get_column("node_id").to_list())
    # growth creates every id below the largest one
    top = max(endpoints) + 1 if endpoints else 0
    expected = set(range(max(top, env.size)))
    lost = expected - nodes
    if lost:
        problems.append(f"{len(lost):,} graph nodes missing from components, e.g. {sorted(lost)[:5]}")
    extra = nodes - expected
    if extra:
        problems.append(f"{len(extra):,} nodes beyond the graph (max id {len(expected) - 1}, --size {env.size}), "
                        f"e.g. {sorted(extra)[:5]}")

    details = problems or [f"{len(nodes):,} nodes in {len(ids):,} components"]
    return CheckResult("node partition", "FAIL" if problems else "PASS", details, time.perf_counter() - t0)


def check_dependency_order(env: Env) -> CheckResult:
    t0 = time.perf_counter()
    miss = _missing(env, "edges_parquet", "components_parquet")
    if miss:
        return CheckResult("dependency order", "SKIP", [f"Missing: {m}" for m in miss])
    comp_of = env.comp_of()
    backward: List[Tuple[int, int]] = []
    for a, b in env.frame("edges_parquet").iter_rows():
        if comp_of.get(a, -1) > comp_of.get(b, -1):
            backward.append((a, b))
    if backward:
        return CheckResult("dependency order", "FAIL",
                           [f"{len(backward):,} edges point to an earlier component, e.g. {backward[:5]}"],
                           time.perf_counter() - t0)
    return CheckResult("dependency order", "PASS", ["every edge goes forward or stays inside its component"],
                       time.perf_counter() - t0)


def check_condensed(env: Env) -> CheckResult:
    t0 = time.perf_counter()
    miss = _missing(env, "edges_parquet", "components_parquet", "condensed_parquet")
    if miss:
        return CheckResult("condensed DAG", "SKIP", [f"Missing: {m}" for m in miss])
    comp_of = env.comp_of()
    want: Set[Tuple[int, int]] = set()
    for a, b in env.frame("edges_parquet").iter_rows():
        ca, cb = comp_of.get(a), comp_of.get(b)
        if ca is not None and cb is not None and ca != cb:
            want.add((ca, cb))
    got = set(env.frame("condensed_parquet").iter_rows())
    problems: List[str] = []
    if got != want:
        problems.append(f"condensed edges differ from edge list: +{len(got - want):,} / -{len(want - got):,}")
    uphill = [e for e in got if e[0] >= e[1]]
    if uphill:
        problems.append(f"{len(uphill):,} condensed edges not strictly forward (cycle), e.g. {sorted(uphill)[:5]}")
    return CheckResult("condensed DAG", "FAIL" if problems else "PASS",
                       problems or [f"{len(got):,} edges, acyclic"], time.perf_counter() - t0)


def _reach(adj: Dict[int, List[int]], start: int, members: Set[int]) -> Set[int]:
    seen = {start}
    stack = [start]
    while stack:
        cur = stack.pop()
        for nxt in adj.get(cur, []):
            if nxt in members and nxt not in seen:
                seen.add(nxt)
                stack.append(nxt)
    return seen


def check_cycles_strongly_connected(env: Env) -> CheckResult:
    t0 = time.perf_counter()
    miss = _missing(env, "edges_parquet", "components_parquet")
    if miss:
        return CheckResult("cycle sets strongly connected", "SKIP", [f"Missing: {m}" for m in miss])
    fwd: Dict[int, List[int]] = defaultdict(list)
    rev: Dict[int, List[int]] = defaultdict(list)
    for a, b in env.frame("edges_parquet").iter_rows():
        fwd[a].append(b)
        rev[b].append(a)
    members: Dict[int, Set[int]] = defaultdict(set)
    for c, n in env.frame("components_parquet").select(["component", "node"]).iter_rows():
        members[c].add(n)

    broken: List[int] = []
    n_cycles = 0
    for c, nodes in members.items():
        if len(nodes) < 2:
            continue
        n_cycles += 1
        start = next(iter(nodes))
        if _reach(fwd, start, nodes) != nodes or _reach(rev, start, nodes) != nodes:
            broken.append(c)
    if broken:
        return CheckResult("cycle sets strongly connected", "FAIL",
                           [f"{len(broken):,} components not mutually reachable, e.g. {sorted(broken)[:5]}"],
                           time.perf_counter() - t0)
    return CheckResult("cycle sets strongly connected", "PASS", [f"{n_cycles:,} cycle sets verified"],
                       time.perf_counter() - t0)


def check_recompute(env: Env) -> CheckResult:
    t0 = time.perf_counter()
    miss = _missing(env, "edges_parquet", "components_parquet")
    if miss:
        return CheckResult("recompute matches", "SKIP", [f"Missing: {m}" for m in miss])
    g = Graph(env.size)
    for a, b in env.frame("edges_parquet").iter_rows():
        g.link(a, b)
    fresh = [set(c) for c in strong_components(g)]
    stored: Dict[int, Set[int]] = defaultdict(set)
    for c, n in env.frame("components_parquet").select(["component", "node"]).iter_rows():
        stored[c].add(n)
    stored_list = [stored[c] for c in sorted(stored)]
    if fresh != stored_list:
        first = next((i for i, (x, y) in enumerate(zip(fresh, stored_list)) if x != y), min(len(fresh), len(stored_list)))
        return CheckResult("recompute matches", "FAIL",
                           [f"recomputed {len(fresh):,} components vs stored {len(stored_list):,}; first difference at #{first}"],
                           time.perf_counter() - t0)
    return CheckResult("recompute matches", "PASS", ["stored components equal a fresh computation"],
                       time.perf_counter() - t0)


def run_suite(env: Env) -> Suite:
    suite = Suite()
    suite.add(check_schema(env))
    suite.add(check_partition(env))
    suite.add(check_dependency_order(env))
    suite.add(check_condensed(env))
    suite.add(check_cycles_strongly_connected(env))
    suite.add(check_recompute(env))
    return suite

# ---------------------- main --------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="dgraph – Autotest for component artifacts")
    ap.add_argument("--root", type=Path, required=True, help="Directory holding the pipeline outputs")
    ap.add_argument("--size", type=int, default=0, help="Graph pre-size used when building (isolated nodes)")
    ap.add_argument("--report", type=Path, default=None, help="Optional path to write a txt report")
    args = ap.parse_args(argv)

    suite = run_suite(Env(root=args.root.resolve(), size=args.size))

    report = suite.render()
    print(report)
    if args.report is not None:
        args.report.write_text(report, encoding="utf-8")

    # Exit code: 0 unless any FAIL
    p, f, w, s = suite.summary()
    return 1 if f > 0 else 0


if __name__ == "__main__":
    raise SystemExit(main())
