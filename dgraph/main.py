# dgraph/main.py
from __future__ import annotations
import argparse, os
from pathlib import Path
from .config import Config, TRAVERSALS
from .utils import log
from .io_stage import step_edges
from .components_stage import step_components
from .stats_stage import step_component_stats

STEPS = ['edges', 'components', 'stats']

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Strongly connected components of a dependency edge list")
    p.add_argument('--root', type=Path, required=True, help='Output directory for parquet/json artifacts')
    p.add_argument('--edges', type=Path, default=None, help='Edge list .csv/.parquet (default: root/edges.csv)')
    p.add_argument('--src-col', default='src', help='Column holding the edge source')
    p.add_argument('--dst-col', default='dst', help='Column holding the edge target')
    p.add_argument('--size', type=int, default=0, help='Pre-size the graph: nodes 0..size-1 exist')
    p.add_argument('--traversal', choices=list(TRAVERSALS), default='iterative')
    p.add_argument('--dedupe', action='store_true', help='Ignore repeated edges when linking')
    p.add_argument('--workers', type=int, default=os.cpu_count() or 4)
    p.add_argument('--force', action='store_true', help='Recompute even if outputs are fresh')
    p.add_argument('--do', nargs='+', choices=STEPS, default=STEPS, help='Which steps to run')
    return p.parse_args(argv)

def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    cfg = Config.for_root(
        args.root.resolve(),
        edges_csv=args.edges.resolve() if args.edges else None,
        src_col=args.src_col,
        dst_col=args.dst_col,
        size=args.size,
        traversal=args.traversal,
        dedupe=args.dedupe,
        workers=args.workers,
        force=args.force,
    )

    log("CONFIG:\n" + cfg.to_json())
    steps = set(args.do)

    if 'edges' in steps:
        step_edges(cfg)

    if 'components' in steps:
        step_components(cfg)

    if 'stats' in steps:
        step_component_stats(cfg)

    log("Done.")

if __name__ == '__main__':
    main()
