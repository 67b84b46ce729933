# dgraph/components_stage.py
from __future__ import annotations
import json
from typing import Any, Dict, List
import polars as pl

from .config import Config
from .io_stage import load_graph, load_names
from .scc import strong_components, condense, cycle_sets
from .utils import ensure_dir, up_to_date, log

COMPONENT_SCHEMA = {"component": pl.Int32, "position": pl.Int32, "node": pl.Int64}
CONDENSED_SCHEMA = {"src_component": pl.Int32, "dst_component": pl.Int32}

def components_frame(components: List[List[int]]) -> pl.DataFrame:
    comp_col: List[int] = []
    pos_col: List[int] = []
    node_col: List[int] = []
    for i, comp in enumerate(components):
        for pos, node in enumerate(comp):
            comp_col.append(i)
            pos_col.append(pos)
            node_col.append(node)
    return pl.DataFrame({"component": comp_col, "position": pos_col, "node": node_col},
                        schema=COMPONENT_SCHEMA)

def _graph_params(cfg: Config) -> Dict[str, Any]:
    # settings that change which nodes/edges the graph holds
    return {"size": cfg.size, "dedupe": cfg.dedupe}

def _params_match(cfg: Config) -> bool:
    p = cfg.components_meta_json
    if not p.exists():
        return False
    try:
        return json.loads(p.read_text(encoding="utf-8")) == _graph_params(cfg)
    except json.JSONDecodeError:
        return False

def step_components(cfg: Config) -> None:
    out, dag_out = cfg.components_parquet, cfg.condensed_parquet
    if up_to_date([out, dag_out], [cfg.edges_parquet, cfg.nodes_parquet], cfg.force) and _params_match(cfg):
        log("[scc] already fresh - skip")
        return

    recursive = cfg.recursive
    g = load_graph(cfg)
    log(f"[scc] graph: {len(g):,} nodes, {g.edge_count():,} edges; traversal={cfg.traversal}")

    comps = strong_components(g, recursive=recursive)
    _, dag = condense(g, comps)

    df = components_frame(comps)
    names = load_names(cfg)
    if names is not None:
        df = df.with_columns(
            pl.col("node").replace_strict(names, default=None, return_dtype=pl.Utf8).alias("name")
        )
    ensure_dir(out.parent)
    df.write_parquet(out, compression="zstd")

    pl.DataFrame({"src_component": [a for a, _ in dag], "dst_component": [b for _, b in dag]},
                 schema=CONDENSED_SCHEMA)\
      .write_parquet(dag_out, compression="zstd")
    cfg.components_meta_json.write_text(json.dumps(_graph_params(cfg)), encoding="utf-8")

    log(f"[scc] components: {len(comps):,}; cycle sets: {len(cycle_sets(comps)):,}; condensed edges: {len(dag):,}")
    log("[scc] done")
