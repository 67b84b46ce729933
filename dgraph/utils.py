# dgraph/utils.py
from __future__ import annotations
from datetime import datetime
from pathlib import Path
from typing import Sequence

def log(msg: str) -> None:
    ts = datetime.now().strftime('%H:%M:%S')
    print(f"[{ts}] {msg}")

def ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)

def newer_than(out: Path, *ins: Path) -> bool:
    if not out.exists():
        return False
    out_m = out.stat().st_mtime
    return all(out_m >= i.stat().st_mtime for i in ins if i and i.exists())

def up_to_date(outs: Sequence[Path], ins: Sequence[Path], force: bool = False) -> bool:
    """True when every output exists and is at least as new as every input."""
    if force:
        return False
    return all(newer_than(o, *ins) for o in outs)
