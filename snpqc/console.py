# snpqc/console.py
from __future__ import annotations

import time
from typing import Any, Dict


# --------- Console color helpers ---------
class _C:
    RED = "\033[31m"
    YELLOW = "\033[33m"
    GREEN = "\033[32m"
    BOLD = "\033[1m"
    RESET = "\033[0m"


def _col(s: str, color: str) -> str:
    """Wrap string s with the provided ANSI color and reset."""
    return f"{color}{s}{_C.RESET}"


# --------- Pretty-print helpers ----------
def _fmt_seconds(s: float) -> str:
    """Format seconds as HH:MM:SS."""
    m, s = divmod(int(s), 60)
    h, m = divmod(m, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"


def banner(title: str, width: int = 80) -> None:
    print("=" * width)
    print(title)
    print("=" * width)


def stage(name: str) -> float:
    """Announce a pipeline stage; returns the start time for ``stage_done``."""
    print(f"\n{_col('>>', _C.BOLD)} {name}...")
    return time.time()


def stage_done(name: str, started: float) -> None:
    print(f"   {_col('done', _C.GREEN)} {name} ({_fmt_seconds(time.time() - started)})")


def info(msg: str) -> None:
    print(f"   {msg}")


def warn(msg: str) -> None:
    print(f"   {_col('Warning:', _C.YELLOW)} {msg}")


def fail(stage_name: str, exc: BaseException) -> None:
    print(_col(f"\nStage '{stage_name}' failed: {exc}", _C.RED))


def format_score(row: Dict[str, Any]) -> str:
    """
    Turn an anomaly-score record into a single readable console line.

    Flags p-values below 0.05 in red.
    """
    p = float(row["p_value"])
    p_txt = f"p={p:.4f}"
    if p < 0.05:
        p_txt = _col(p_txt, _C.RED)
    parts = [
        f"{row['platform']:<10}",
        p_txt,
        f"sd_distance={float(row['sd_distance']):.2f}",
        f"replicate_mean={float(row['replicate_mean']):,.0f}",
    ]
    return " | ".join(parts)
