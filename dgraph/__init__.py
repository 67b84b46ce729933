"""
dgraph — directed graph over integer node ids with strongly connected
components in dependency order (Kosaraju), plus an offline pipeline:
edge list CSV/Parquet -> normalized edges -> components/condensed DAG -> stats.
"""
from .graph import Graph
from .scc import strong_components, condense, cycle_sets
from .config import Config
from .io_stage import step_edges, load_graph
from .components_stage import step_components
from .stats_stage import step_component_stats

__all__ = [
    "Graph",
    "strong_components",
    "condense",
    "cycle_sets",
    "Config",
    "step_edges",
    "load_graph",
    "step_components",
    "step_component_stats",
]
