# dgraph/stats_stage.py
from __future__ import annotations
import json
from typing import Any, Dict
import numpy as np
import polars as pl

from .config import Config
from .utils import ensure_dir, up_to_date, log

MAX_LOGGED_CYCLES = 20

def summarize_sizes(sizes: np.ndarray) -> Dict[str, Any]:
    """Size summary for a component-size vector (one entry per component)."""
    sizes = np.asarray(sizes, dtype=np.int64)
    if sizes.size == 0:
        return {"components": 0, "nodes": 0, "largest": 0, "singletons": 0,
                "cycle_sets": 0, "mean_size": 0.0, "size_histogram": {}}
    vals, counts = np.unique(sizes, return_counts=True)
    return {
        "components": int(sizes.size),
        "nodes": int(sizes.sum()),
        "largest": int(sizes.max()),
        "singletons": int((sizes == 1).sum()),
        "cycle_sets": int((sizes > 1).sum()),
        "mean_size": float(sizes.mean()),
        "size_histogram": {str(int(v)): int(c) for v, c in zip(vals, counts)},
    }

def step_component_stats(cfg: Config) -> None:
    src = cfg.components_parquet
    out = cfg.stats_json
    if not src.exists():
        raise FileNotFoundError(f"components not found: {src} (run the 'components' step)")
    if up_to_date([out], [src], cfg.force):
        log("[stats] already fresh - skip")
        return

    comps = pl.read_parquet(src)
    label = "name" if "name" in comps.columns else "node"
    grouped = (comps.sort(["component", "position"])
                    .group_by("component", maintain_order=True)
                    .agg([pl.len().alias("size"), pl.col(label).alias("members")]))
    sizes = grouped.get_column("size").to_numpy()
    stats = summarize_sizes(sizes)

    ensure_dir(out.parent)
    out.write_text(json.dumps(stats, indent=2), encoding="utf-8")

    cycles = grouped.filter(pl.col("size") > 1)
    if cycles.height:
        log(f"[stats] WARNING: {cycles.height:,} circular dependency sets")
        for comp, size, members in cycles.head(MAX_LOGGED_CYCLES).iter_rows():
            shown = sorted(members, key=lambda m: (m is None, str(m)))
            log(f"[stats]   cycle #{comp} ({size}): {shown}")
        if cycles.height > MAX_LOGGED_CYCLES:
            log(f"[stats]   ... {cycles.height - MAX_LOGGED_CYCLES:,} more")
    log(f"[stats] components={stats['components']:,} nodes={stats['nodes']:,} largest={stats['largest']:,}")
    log("[stats] done")
