#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# =============================================================================
#
#   Ratio Audit for the Harmonic Series Threshold Solver
#
#   Sweeps the threshold M over a range and tabulates, for each M, the
#   answer N, the observed ratio N/e^M, the ratio taken from the solver's
#   table and how far the initial guess overshot N. A negative overshoot
#   marks an M where the table ratio is too small and the solver had to
#   fall back to stepping upward.
#
#   Usage examples:
#   $ python ratio_audit.py
#   $ python ratio_audit.py --m-min 0 --m-max 14 --m-step 0.25 --plot ratios.png
#   $ python ratio_audit.py --m-min 8.5 --m-max 9.5 --m-step 0.01 --check-minimality
#
#   Outputs:
#   - CSV summary    : ratio_audit.csv (change via --csv)
#   - Optional PNG   : observed ratio against the table (via --plot)
#   - Console report : counts of undershoots and non-minimal answers
#
# =============================================================================

from __future__ import annotations
import argparse
import csv
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from tqdm import tqdm

from threshold_solver import (
    LD,
    RATIO_TABLE,
    harmonic_sum,
    ratio_for,
    solve_threshold,
)

# Limit of N/e^M as M grows
EXP_NEG_GAMMA = float(np.exp(-np.euler_gamma))


# ------------------------------- Config ------------------------------------

@dataclass
class AuditConfig:
    m_min: float = 0.0
    m_max: float = 12.0
    m_step: float = 0.5
    csv_path: str = "ratio_audit.csv"
    plot_path: Optional[str] = None
    check_minimality: bool = False   # re-sum H(N) and H(N-1) from scratch
    progress: bool = True


@dataclass
class AuditRow:
    m: float
    n: int
    achieved_sum: float
    initial_guess: int
    overshoot: int          # initial_guess - n
    observed_ratio: float   # n / e^M
    table_ratio: float
    iterations: int
    upward_steps: int
    minimal: Optional[bool] = None


# ------------------------------- Sweep -------------------------------------

def m_values(cfg: AuditConfig) -> List[float]:
    """Grid from m_min to m_max inclusive (with a small guard on the end)."""
    if cfg.m_step <= 0.0:
        raise ValueError("m_step must be positive.")
    if cfg.m_min < 0.0 or cfg.m_max < cfg.m_min:
        raise ValueError("Need 0 <= m_min <= m_max.")
    count = int(np.floor((cfg.m_max - cfg.m_min) / cfg.m_step + 1e-9)) + 1
    return [cfg.m_min + k * cfg.m_step for k in range(count)]


def is_minimal(m: float, n: int) -> bool:
    """H(n) > M and H(n-1) <= M, both summed from scratch."""
    m_ld = LD(m)
    return bool(harmonic_sum(n) > m_ld and (n == 0 or harmonic_sum(n - 1) <= m_ld))


def audit_range(cfg: AuditConfig) -> List[AuditRow]:
    rows: List[AuditRow] = []
    for m in tqdm(m_values(cfg), desc="      M sweep", disable=not cfg.progress):
        res = solve_threshold(m)
        e_m = np.exp(LD(m))
        rows.append(
            AuditRow(
                m=m,
                n=res.n,
                achieved_sum=float(res.achieved_sum),
                initial_guess=res.initial_guess,
                overshoot=res.initial_guess - res.n,
                observed_ratio=float(LD(res.n) / e_m),
                table_ratio=float(ratio_for(LD(m))),
                iterations=res.iterations,
                upward_steps=res.upward_steps,
                minimal=is_minimal(m, res.n) if cfg.check_minimality else None,
            )
        )
    return rows


# ------------------------------- Outputs -----------------------------------

CSV_COLUMNS = [
    "M", "N", "achieved_sum", "initial_guess", "overshoot",
    "observed_ratio", "table_ratio", "iterations", "upward_steps", "minimal",
]


def write_csv(rows: List[AuditRow], path: Path) -> None:
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(CSV_COLUMNS)
        for r in rows:
            w.writerow([
                r.m, r.n, r.achieved_sum, r.initial_guess, r.overshoot,
                r.observed_ratio, r.table_ratio, r.iterations, r.upward_steps,
                "" if r.minimal is None else r.minimal,
            ])


def plot_ratios(rows: List[AuditRow], path: Path, dpi: int = 150) -> None:
    """
    Observed N/e^M against M, with the table ratios as a step curve and
    the e^-gamma limit as a dashed line.
    """
    ms = np.array([r.m for r in rows])
    observed = np.array([r.observed_ratio for r in rows])
    table = np.array([r.table_ratio for r in rows])

    fig, ax = plt.subplots(figsize=(10, 6))
    ax.plot(ms, observed, color="blue", marker=".", markersize=6, label="Observed $N/e^M$")
    ax.step(ms, table, where="post", color="green", linewidth=1.5, label="Table ratio")
    ax.axhline(EXP_NEG_GAMMA, color="red", linestyle="--", linewidth=1.5, label=r"$e^{-\gamma}$")

    under = [r for r in rows if r.overshoot < 0]
    if under:
        ax.scatter([r.m for r in under], [r.observed_ratio for r in under],
                   color="black", marker="x", zorder=3, label="Guess below N")

    ax.set_xlabel("M")
    ax.set_ylabel("Ratio")
    ax.set_title("Harmonic threshold: N/e^M against the guess table")
    ax.legend()
    ax.grid(True, linestyle=":", alpha=0.6)
    fig.savefig(path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)


def console_summary(rows: List[AuditRow]) -> str:
    lines = []
    lines.append("=" * 72)
    lines.append(f" Ratio audit | {len(rows)} values of M | table entries: {len(RATIO_TABLE) + 1}")
    lines.append("=" * 72)
    under = sum(1 for r in rows if r.overshoot < 0)
    lines.append(f"Guesses below N      : {under}/{len(rows)}")
    checked = [r for r in rows if r.minimal is not None]
    if checked:
        bad = sum(1 for r in checked if not r.minimal)
        lines.append(f"Non-minimal answers  : {bad}/{len(checked)}")
    if rows:
        worst = max(rows, key=lambda r: r.overshoot)
        lines.append(f"Largest overshoot    : {worst.overshoot} at M={worst.m:g} (N={worst.n})")
        # Show first & last few for a quick glance
        preview = rows[:3] + [None] + rows[-3:] if len(rows) > 6 else rows
        for r in preview:
            if r is None:
                lines.append("  ...")
            else:
                lines.append(f"  M={r.m:<8g} N={r.n:<12d} N/e^M={r.observed_ratio:.8f}  table={r.table_ratio:.7g}")
    lines.append("-" * 72)
    return "\n".join(lines)


# ---------------------------------- CLI ------------------------------------

def parse_args(argv: Optional[List[str]] = None) -> AuditConfig:
    p = argparse.ArgumentParser(
        description="Audit the N/e^M ratio table of the harmonic threshold solver."
    )
    p.add_argument("--m-min", type=float, default=AuditConfig.m_min, dest="m_min", help="Lowest M (default: 0).")
    p.add_argument("--m-max", type=float, default=AuditConfig.m_max, dest="m_max", help="Highest M (default: 12).")
    p.add_argument("--m-step", type=float, default=AuditConfig.m_step, dest="m_step", help="Step in M (default: 0.5).")
    p.add_argument("--csv", type=str, default=AuditConfig.csv_path, help="Path to CSV summary.")
    p.add_argument("--plot", type=str, default=AuditConfig.plot_path, help="Optional path for a ratio plot.")
    p.add_argument("--check-minimality", action="store_true", dest="check_minimality",
                   help="Verify each N against sums computed from scratch.")
    p.add_argument("--no-progress", action="store_true", help="Disable console progress bar.")

    args = p.parse_args(argv)
    return AuditConfig(
        m_min=args.m_min,
        m_max=args.m_max,
        m_step=args.m_step,
        csv_path=args.csv,
        plot_path=args.plot,
        check_minimality=args.check_minimality,
        progress=(not args.no_progress),
    )


def main(argv: Optional[List[str]] = None) -> int:
    cfg = parse_args(argv)
    try:
        rows = audit_range(cfg)
    except ValueError as exc:
        print(f"Audit aborted: {exc}", file=sys.stderr)
        return 1

    write_csv(rows, Path(cfg.csv_path))
    if cfg.plot_path:
        plot_ratios(rows, Path(cfg.plot_path))

    print(console_summary(rows))
    return 0


if __name__ == "__main__":
    sys.exit(main())
