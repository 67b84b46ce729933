import json
from pathlib import Path

import polars as pl
import pytest

from dgraph import Config, io_stage, load_graph, step_component_stats, step_components, step_edges
from dgraph.autotest.autotest_components import Env, run_suite
from dgraph.main import main

TEXTBOOK = [(0, 1), (0, 4), (1, 2), (1, 3), (2, 1), (3, 3), (4, 3),
            (4, 0), (5, 6), (5, 0), (5, 2), (6, 2), (6, 7), (7, 5)]


def write_csv(path: Path, rows, header=("src", "dst")) -> Path:
    lines = [",".join(header)] + [f"{a},{b}" for a, b in rows]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def run_all(cfg: Config) -> None:
    step_edges(cfg)
    step_components(cfg)
    step_component_stats(cfg)


def component_sets(cfg: Config, col: str = "node"):
    df = pl.read_parquet(cfg.components_parquet).sort(["component", "position"])
    grouped = df.group_by("component", maintain_order=True).agg(pl.col(col))
    return [sorted(v) for v in grouped.get_column(col).to_list()]


@pytest.fixture
def textbook_cfg(tmp_path):
    write_csv(tmp_path / "edges.csv", TEXTBOOK)
    return Config.for_root(tmp_path, workers=1)


def test_integer_pipeline(textbook_cfg):
    cfg = textbook_cfg
    run_all(cfg)

    assert not cfg.nodes_parquet.exists()
    edges = pl.read_parquet(cfg.edges_parquet)
    assert edges.schema == {"src": pl.Int64, "dst": pl.Int64}
    assert list(edges.iter_rows()) == TEXTBOOK

    assert component_sets(cfg) == [[5, 6, 7], [0, 4], [1, 2], [3]]
    dag = pl.read_parquet(cfg.condensed_parquet)
    assert sorted(dag.iter_rows()) == [(0, 1), (0, 2), (1, 2), (1, 3), (2, 3)]

    stats = json.loads(cfg.stats_json.read_text())
    assert stats["components"] == 4
    assert stats["nodes"] == 8
    assert stats["largest"] == 3
    assert stats["cycle_sets"] == 3
    assert stats["singletons"] == 1
    assert stats["size_histogram"] == {"1": 1, "2": 2, "3": 1}


def test_recursive_traversal_same_result(textbook_cfg):
    cfg = textbook_cfg
    cfg.traversal = "recursive"
    run_all(cfg)
    assert component_sets(cfg) == [[5, 6, 7], [0, 4], [1, 2], [3]]


def test_named_nodes(tmp_path):
    rows = [("foo", "baz"), ("baz", "bar"), ("bar", "these"), ("these", "are"),
            ("are", "my"), ("my", "nodes"), ("nodes", "are")]
    write_csv(tmp_path / "deps.csv", rows, header=("from", "to"))
    cfg = Config.for_root(tmp_path, edges_csv=tmp_path / "deps.csv", src_col="from", dst_col="to")
    run_all(cfg)

    nodes = pl.read_parquet(cfg.nodes_parquet)
    assert nodes.get_column("name").to_list() == ["foo", "baz", "bar", "these", "are", "my", "nodes"]
    assert component_sets(cfg, "name") == [["foo"], ["baz"], ["bar"], ["these"], ["are", "my", "nodes"]]


def test_presized_graph(tmp_path):
    write_csv(tmp_path / "edges.csv", [(0, 1), (1, 0)])
    cfg = Config.for_root(tmp_path, size=4)
    run_all(cfg)
    assert sorted(component_sets(cfg)) == [[0, 1], [2], [3]]
    assert len(load_graph(cfg)) == 4


def test_parquet_input(tmp_path):
    src = tmp_path / "in.parquet"
    pl.DataFrame({"a": [2, 1], "b": [1, 0]}).write_parquet(src)
    cfg = Config.for_root(tmp_path, edges_csv=src, src_col="a", dst_col="b")
    run_all(cfg)
    assert component_sets(cfg) == [[2], [1], [0]]


def test_empty_edge_list(tmp_path):
    write_csv(tmp_path / "edges.csv", [])
    cfg = Config.for_root(tmp_path)
    run_all(cfg)
    assert pl.read_parquet(cfg.components_parquet).height == 0
    assert json.loads(cfg.stats_json.read_text())["components"] == 0


def test_fresh_outputs_are_skipped(textbook_cfg, capsys):
    run_all(textbook_cfg)
    capsys.readouterr()
    run_all(textbook_cfg)
    out = capsys.readouterr().out
    assert "[edges] already fresh - skip" in out
    assert "[scc] already fresh - skip" in out
    assert "[stats] already fresh - skip" in out


def test_cycles_are_logged(textbook_cfg, capsys):
    run_all(textbook_cfg)
    out = capsys.readouterr().out
    assert "3 circular dependency sets" in out


def test_missing_input(tmp_path):
    with pytest.raises(FileNotFoundError):
        step_edges(Config.for_root(tmp_path))
    with pytest.raises(FileNotFoundError):
        load_graph(Config.for_root(tmp_path))


def test_missing_column(tmp_path):
    write_csv(tmp_path / "edges.csv", [(0, 1)], header=("a", "b"))
    with pytest.raises(ValueError):
        step_edges(Config.for_root(tmp_path))


def test_negative_ids_rejected(tmp_path):
    write_csv(tmp_path / "edges.csv", [(0, -1)])
    with pytest.raises(ValueError):
        step_edges(Config.for_root(tmp_path))


def test_unknown_traversal(textbook_cfg):
    step_edges(textbook_cfg)
    textbook_cfg.traversal = "bfs"
    with pytest.raises(ValueError):
        step_components(textbook_cfg)


def test_config_json(tmp_path):
    data = json.loads(Config.for_root(tmp_path, dedupe=True).to_json())
    assert data["dedupe"] is True
    assert data["traversal"] == "iterative"
    assert data["components_parquet"].endswith("components.parquet")


def test_cli(tmp_path):
    write_csv(tmp_path / "graph.csv", TEXTBOOK)
    out = tmp_path / "out"
    main(["--root", str(out), "--edges", str(tmp_path / "graph.csv"), "--workers", "1"])
    cfg = Config.for_root(out)
    assert component_sets(cfg) == [[5, 6, 7], [0, 4], [1, 2], [3]]
    assert cfg.stats_json.exists()


def test_autotest_passes_on_pipeline_output(textbook_cfg):
    run_all(textbook_cfg)
    suite = run_suite(Env(root=textbook_cfg.root))
    statuses = {r.name: r.status for r in suite.results}
    assert "FAIL" not in statuses.values(), suite.render()
    assert statuses["dependency order"] == "PASS"
    assert statuses["recompute matches"] == "PASS"


def test_autotest_flags_reordered_components(textbook_cfg):
    run_all(textbook_cfg)
    df = pl.read_parquet(textbook_cfg.components_parquet)
    df.with_columns((3 - pl.col("component")).cast(pl.Int32).alias("component"))\
      .write_parquet(textbook_cfg.components_parquet)
    suite = run_suite(Env(root=textbook_cfg.root))
    statuses = {r.name: r.status for r in suite.results}
    assert statuses["dependency order"] == "FAIL"
    assert statuses["recompute matches"] == "FAIL"


def test_autotest_missing_artifacts(tmp_path):
    suite = run_suite(Env(root=tmp_path))
    assert suite.results[0].status == "FAIL"
    assert all(r.status == "SKIP" for r in suite.results[1:])


@pytest.mark.parametrize("size", [0, 2, 8])
def test_autotest_accepts_gap_ids(tmp_path, size):
    write_csv(tmp_path / "edges.csv", [(0, 5)])
    cfg = Config.for_root(tmp_path, size=size)
    run_all(cfg)
    assert len(component_sets(cfg)) == max(6, size)
    suite = run_suite(Env(root=tmp_path, size=size))
    statuses = {r.name: r.status for r in suite.results}
    assert statuses["node partition"] == "PASS", suite.render()
    assert "FAIL" not in statuses.values()


def test_autotest_flags_dropped_gap_node(tmp_path):
    write_csv(tmp_path / "edges.csv", [(0, 5)])
    cfg = Config.for_root(tmp_path)
    run_all(cfg)
    pl.read_parquet(cfg.components_parquet).filter(pl.col("node") != 3)\
      .write_parquet(cfg.components_parquet)
    part = next(r for r in run_suite(Env(root=tmp_path)).results if r.name == "node partition")
    assert part.status == "FAIL"
    assert any("graph nodes missing" in d for d in part.details)


def test_autotest_accepts_named_nodes(tmp_path):
    write_csv(tmp_path / "edges.csv", [("a", "b"), ("b", "a"), ("b", "c")])
    run_all(Config.for_root(tmp_path))
    statuses = {r.name: r.status for r in run_suite(Env(root=tmp_path)).results}
    assert statuses["node partition"] == "PASS"


def test_components_rebuilt_when_size_changes(tmp_path, capsys):
    write_csv(tmp_path / "edges.csv", [(0, 1)])
    cfg = Config.for_root(tmp_path)
    step_edges(cfg)
    step_components(cfg)
    assert pl.read_parquet(cfg.components_parquet).height == 2

    cfg.size = 4
    capsys.readouterr()
    step_components(cfg)
    assert "[scc] already fresh - skip" not in capsys.readouterr().out
    assert pl.read_parquet(cfg.components_parquet).height == 4
    assert json.loads(cfg.components_meta_json.read_text()) == {"size": 4, "dedupe": False}

    step_components(cfg)
    assert "[scc] already fresh - skip" in capsys.readouterr().out


def test_components_rebuilt_when_dedupe_changes(tmp_path, capsys):
    write_csv(tmp_path / "edges.csv", [(0, 1)])
    cfg = Config.for_root(tmp_path)
    step_edges(cfg)
    step_components(cfg)
    cfg.dedupe = True
    capsys.readouterr()
    step_components(cfg)
    assert "[scc] already fresh - skip" not in capsys.readouterr().out


def test_raw_copy_removed(textbook_cfg):
    step_edges(textbook_cfg)
    assert not (textbook_cfg.root / "_edges_raw.parquet").exists()


def test_raw_copy_removed_when_read_fails(textbook_cfg, monkeypatch):
    def broken(*args, **kwargs):
        raise OSError("unreadable")

    monkeypatch.setattr(io_stage.pl, "read_parquet", broken)
    with pytest.raises(OSError):
        step_edges(textbook_cfg)
    assert not (textbook_cfg.root / "_edges_raw.parquet").exists()
