# dgraph/io_stage.py
from __future__ import annotations
import csv as pycsv
from pathlib import Path
from typing import Dict, Optional
import duckdb
import polars as pl
from tqdm import tqdm

from .config import Config
from .graph import Graph
from .utils import ensure_dir, up_to_date, log

EDGE_SCHEMA = {"src": pl.Int64, "dst": pl.Int64}

def _csv_header(path: Path) -> set[str]:
    with path.open('r', encoding='utf-8', newline='') as f:
        reader = pycsv.reader(f)
        row = next(reader, [])
        return {c.strip() for c in row}

def _read_raw_edges(cfg: Config) -> pl.DataFrame:
    """src/dst columns as read, renamed to 'src'/'dst'; nulls dropped, row order kept."""
    path = cfg.edges_csv
    if not path.exists():
        raise FileNotFoundError(f"edge list not found: {path}")

    if path.suffix.lower() == ".parquet":
        df = pl.read_parquet(path)
        missing = [c for c in (cfg.src_col, cfg.dst_col) if c not in df.columns]
        if missing:
            raise ValueError(f"{path}: missing columns {missing}")
        df = df.select([pl.col(cfg.src_col).alias("src"), pl.col(cfg.dst_col).alias("dst")])
        return df.drop_nulls()

    cols = _csv_header(path)
    missing = [c for c in (cfg.src_col, cfg.dst_col) if c not in cols]
    if missing:
        raise ValueError(f"{path}: missing columns {missing}")

    ensure_dir(cfg.root)
    raw = cfg.root / "_edges_raw.parquet"
    con = duckdb.connect()
    try:
        con.execute("PRAGMA threads=%d" % cfg.workers)
        con.execute(
            f"""
            COPY (
                SELECT trim("{cfg.src_col}") AS src, trim("{cfg.dst_col}") AS dst
                FROM read_csv_auto('{path.as_posix()}', HEADER=TRUE, SAMPLE_SIZE=-1, ALL_VARCHAR=1)
            ) TO '{raw.as_posix()}' (FORMAT PARQUET);
            """
        )
        df = pl.read_parquet(raw)
    finally:
        con.close()
        raw.unlink(missing_ok=True)
    return df.filter(pl.col("src").is_not_null() & (pl.col("src") != "") &
                     pl.col("dst").is_not_null() & (pl.col("dst") != ""))

def _as_int_ids(df: pl.DataFrame) -> Optional[pl.DataFrame]:
    ints = df.select([pl.col("src").cast(pl.Int64, strict=False),
                      pl.col("dst").cast(pl.Int64, strict=False)])
    if ints.get_column("src").null_count() or ints.get_column("dst").null_count():
        return None
    if ints.height:
        lo = min(ints.get_column("src").min(), ints.get_column("dst").min())
        if lo < 0:
            raise ValueError(f"node ids must be non-negative, got {lo}")
    return ints

def step_edges(cfg: Config) -> None:
    out = cfg.edges_parquet
    if up_to_date([out], [cfg.edges_csv], cfg.force):
        log("[edges] already fresh - skip")
        return

    log(f"[edges] read {cfg.edges_csv}")
    df = _read_raw_edges(cfg)
    edges = _as_int_ids(df)
    ensure_dir(out.parent)

    if edges is not None:
        if cfg.nodes_parquet.exists():
            cfg.nodes_parquet.unlink()
        log(f"[edges] integer ids: {edges.height:,} edges")
    else:
        # named nodes: dense ids in first-seen order
        name2id: Dict[str, int] = {}
        for a, b in df.select(["src", "dst"]).cast(pl.Utf8).iter_rows():
            for name in (a, b):
                if name not in name2id:
                    name2id[name] = len(name2id)
        edges = df.cast(pl.Utf8).select([
            pl.col("src").replace_strict(name2id, return_dtype=pl.Int64),
            pl.col("dst").replace_strict(name2id, return_dtype=pl.Int64),
        ])
        pl.DataFrame({"node_id": list(name2id.values()), "name": list(name2id.keys())},
                     schema={"node_id": pl.Int64, "name": pl.Utf8})\
          .write_parquet(cfg.nodes_parquet, compression="zstd")
        log(f"[edges] named nodes: {len(name2id):,} names, {edges.height:,} edges")

    edges.cast(EDGE_SCHEMA).write_parquet(out, compression="zstd")
    log("[edges] done")

def load_graph(cfg: Config) -> Graph:
    if not cfg.edges_parquet.exists():
        raise FileNotFoundError(f"normalized edges not found: {cfg.edges_parquet} (run the 'edges' step)")
    edges = pl.read_parquet(cfg.edges_parquet)
    g = Graph(cfg.size, dedupe=cfg.dedupe)
    for a, b in tqdm(edges.iter_rows(), total=edges.height, desc="link", disable=edges.height < 100_000):
        g.link(a, b)
    return g

def load_names(cfg: Config) -> Optional[Dict[int, str]]:
    if not cfg.nodes_parquet.exists():
        return None
    return {int(i): n for i, n in pl.read_parquet(cfg.nodes_parquet).iter_rows()}
