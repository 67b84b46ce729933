# dgraph/config.py
from __future__ import annotations
import dataclasses, json, os
from dataclasses import dataclass
from pathlib import Path

TRAVERSALS = ("iterative", "recursive")

@dataclass
class Config:
    # paths
    root: Path
    edges_csv: Path              # input edge list, .csv or .parquet
    edges_parquet: Path          # normalized src/dst int64
    nodes_parquet: Path          # node_id <-> name, only for named inputs
    components_parquet: Path
    condensed_parquet: Path
    components_meta_json: Path   # graph-shaping params the components were built with
    stats_json: Path
    # input columns
    src_col: str = "src"
    dst_col: str = "dst"
    # graph
    size: int = 0                # pre-size: nodes 0..size-1 exist even without edges
    traversal: str = "iterative" # 'iterative' | 'recursive'
    dedupe: bool = False

    # system
    workers: int = os.cpu_count() or 4
    force: bool = False

    @classmethod
    def for_root(cls, root: Path, edges_csv: Path | None = None, **kw) -> "Config":
        root = Path(root)
        return cls(
            root=root,
            edges_csv=edges_csv or (root / "edges.csv"),
            edges_parquet=root / "edges.parquet",
            nodes_parquet=root / "nodes.parquet",
            components_parquet=root / "components.parquet",
            condensed_parquet=root / "condensed.parquet",
            components_meta_json=root / "components_meta.json",
            stats_json=root / "component_stats.json",
            **kw,
        )

    @property
    def recursive(self) -> bool:
        if self.traversal not in TRAVERSALS:
            raise ValueError(f"unknown traversal {self.traversal!r}, expected one of {TRAVERSALS}")
        return self.traversal == "recursive"

    def to_json(self) -> str:
        return json.dumps(dataclasses.asdict(self), indent=2, default=str)
