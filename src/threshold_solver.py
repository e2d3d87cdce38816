#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# =============================================================================
#
#   Harmonic Series Threshold Solver
#
#   Solves Sum(1/x, 1, N) > M for an arbitrary real M >= 0, i.e. finds the
#   smallest N whose harmonic partial sum H(N) exceeds M, and reports the sum
#   reached at that N.
#
#   The search starts from the analytic estimate N ~ r(M) * e^M, where the
#   ratio r(M) comes from a small empirical table chosen so that the estimate
#   lands slightly above the answer, and then walks downward one term at a
#   time. All arithmetic uses numpy's extended precision (np.longdouble).
#   Results are reliable up to about M = 22 (N beyond 2 billion); the time
#   spent grows like e^M because the initial partial sum is evaluated directly.
#
#   NUMBER is a decimal literal (optionally with an exponent), inf or nan.
#   C hex floats (0x1p3) and nan(...) payloads are rejected as invalid input.
#
#   Usage examples:
#   $ python threshold_solver.py 3
#   $ python threshold_solver.py 12.5 --verbose
#   $ python threshold_solver.py 18 --progress --json threshold_report.json
#
#   Outputs:
#   - Console report : threshold N and the approximate sum at N
#   - Optional JSON  : run summary (via --json)
#
# =============================================================================

from __future__ import annotations
import argparse
import dataclasses
import json
import os
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple
import numpy as np
from tqdm import tqdm

LD = np.longdouble
ZERO = LD(0)
ONE = LD(1)

# Arbitrarily small margin of error for the "exceeds" test during descent
DELTA = LD("1e-9")

# Terms per numpy block when summing directly
SUM_BLOCK = 1 << 20

# The counter is an unsigned 64-bit integer in spirit; refuse guesses beyond it
MAX_COUNTER = 2 ** 64 - 1


# ------------------------------- Errors ------------------------------------

class ThresholdInputError(ValueError):
    """Base class for inputs rejected before the search begins."""


class UsageError(ThresholdInputError):
    """Wrong number of command-line arguments."""


class ParseError(ThresholdInputError):
    """The argument is not a complete numeric literal."""


class DomainError(ThresholdInputError):
    """The number is outside the range the solver can handle."""


# ------------------------- Harmonic partial sums ---------------------------

def harmonic_sum_range(start: int, end: int, progress: bool = False) -> np.longdouble:
    """
    Sum of 1/i for i in [start, end], inclusive, accumulated in ascending order.

    Returns 0 when start or end is zero, or when start > end.

    Terms are produced in blocks of SUM_BLOCK and folded in with np.cumsum
    seeded by the running total. cumsum adds strictly left to right, so the
    rounding is the same as adding one term at a time.
    """
    total = ZERO
    if start == 0 or end == 0 or start > end:
        return total

    if progress:
        print("Processing harmonic series...")

    blocks = range(start, end + 1, SUM_BLOCK)
    for lo in tqdm(blocks, desc="      Summing", disable=not progress):
        hi = min(lo + SUM_BLOCK, end + 1)
        seq = np.empty(hi - lo + 1, dtype=LD)
        seq[0] = total
        seq[1:] = ONE / np.arange(lo, hi, dtype=LD)
        total = np.cumsum(seq)[-1]
    return total


def harmonic_sum(n: int, progress: bool = False) -> np.longdouble:
    """H(n) = Sum(1/i, 1, n)."""
    return harmonic_sum_range(1, n, progress=progress)


def drop_last_term(total: np.longdouble, n: int) -> np.longdouble:
    """H(n) -> H(n-1) without summing 1..n-1 again."""
    return total - ONE / LD(n)


def add_next_term(total: np.longdouble, n: int) -> np.longdouble:
    """H(n) -> H(n+1)."""
    return total + ONE / LD(n + 1)


# ---------------------------- Ratio table ----------------------------------

# N/e^M drifts from about 0.5741 for small M down toward e^-gamma ~ 0.56145948
# as M grows. Each entry sits slightly above that curve on its range, so the
# guess lands above the answer. Checked from the largest threshold down.
RATIO_TABLE: Tuple[Tuple[np.longdouble, np.longdouble], ...] = (
    (LD("20.0"), LD("0.5614595")),
    (LD("18.0"), LD("0.5614596")),
    (LD("16.0"), LD("0.56146")),
    (LD("12.0"), LD("0.56147")),
    (LD("9.0"), LD("0.5618")),
)
DEFAULT_RATIO = LD("0.564")


def ratio_for(m: np.longdouble, table: Sequence[Tuple[np.longdouble, np.longdouble]] = RATIO_TABLE) -> np.longdouble:
    for threshold, ratio in table:
        if m >= threshold:
            return ratio
    return DEFAULT_RATIO


def initial_guess(m: np.longdouble, table: Sequence[Tuple[np.longdouble, np.longdouble]] = RATIO_TABLE) -> int:
    """
    floor(r(M) * e^M), discarding the fractional part.
    Raises DomainError if the estimate does not fit the counter.
    """
    with np.errstate(over="ignore"):
        est = np.exp(LD(m)) * ratio_for(m, table)
    if not np.isfinite(est) or est > MAX_COUNTER:
        raise DomainError(f"Number is too large: the estimate for N exceeds {MAX_COUNTER}.")
    return int(np.floor(est))


# ---------------------------- Threshold search -----------------------------

@dataclass
class ThresholdResult:
    m: np.longdouble
    n: int                      # smallest N with H(N) > M
    achieved_sum: np.longdouble  # H(n), as tracked by the search
    initial_guess: int
    iterations: int             # downward correction steps taken
    upward_steps: int = 0       # steps needed after the descent (boundary or undershoot)


def _trace_line(n: int, total: np.longdouble, m: np.longdouble, signed: bool = False) -> str:
    # signed: M - sum, as printed for stopping states
    diff = m - total if signed else abs(m - total)
    r = LD(n) / np.exp(m)
    s = np.format_float_positional(total, precision=8, unique=False)
    return f" Guess {n}, sum = {s}, diff = {float(diff):.8g}, n/e^M = {float(r):.8g}"


def solve_threshold(m,
                    table: Sequence[Tuple[np.longdouble, np.longdouble]] = RATIO_TABLE,
                    delta: np.longdouble = DELTA,
                    verbose: bool = False,
                    emit: Callable[[str], None] = print,
                    progress: bool = False) -> ThresholdResult:
    """
    Smallest N >= 0 with Sum(1/i, 1, N) > M, for M >= 0.

    Phase 1 evaluates H at the table-based guess. Phase 2 walks down while
    the sum still exceeds M within delta, updating the sum term by term.
    Phase 3 confirms the candidate with a strict comparison and steps up
    until H(N) > M holds; this covers H(N) == M at the delta boundary and
    guesses that fall short of the answer.

    The returned N satisfies H(N) > M and H(N-1) <= M.
    """
    m = LD(m)
    if np.isnan(m) or m < 0:
        raise DomainError("Number must be greater than or equal to zero.")

    guess = initial_guess(m, table)
    n = guess
    total = harmonic_sum(n, progress=progress)

    iterations = 0
    best_n: Optional[int] = None
    best_sum = total

    while (total - m) > -delta and n > 0:
        iterations += 1
        if verbose:
            emit(_trace_line(n, total, m))
        best_n, best_sum = n, total
        total = drop_last_term(total, n)
        n -= 1

    if verbose:
        emit(_trace_line(n, total, m, signed=True))

    if best_n is None:
        # Nothing qualified: the guess was short of M (or zero)
        cand, cand_sum = n + 1, add_next_term(total, n)
    else:
        cand, cand_sum = best_n, best_sum

    upward = 0
    while not cand_sum > m:
        upward += 1
        if verbose:
            emit(_trace_line(cand, cand_sum, m, signed=True))
        cand_sum = add_next_term(cand_sum, cand)
        cand += 1

    if verbose:
        emit(f"    Total number of guesses: {iterations + upward + 1}\n")

    return ThresholdResult(
        m=m,
        n=cand,
        achieved_sum=cand_sum,
        initial_guess=guess,
        iterations=iterations,
        upward_steps=upward,
    )


# ------------------------------ Input parsing ------------------------------

# Whole-string literal, as strtold would consume it (leading blanks allowed)
NUMBER_RE = re.compile(r"[-+]?(?:(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?|inf(?:inity)?|nan)", re.IGNORECASE)


def parse_number(text: str) -> np.longdouble:
    """
    Parse an extended-precision literal; any unconsumed trailing characters
    make the whole input invalid.
    """
    body = text.lstrip()
    if not NUMBER_RE.fullmatch(body):
        raise ParseError(f"Invalid input: {text!r}")
    return LD(body)


def check_domain(m: np.longdouble) -> None:
    """Reject values the search cannot run on, before it starts."""
    if np.isnan(m):
        raise DomainError("Number must be a real value, not NaN.")
    if m < 0:
        raise DomainError("Number must be greater than or equal to zero.")
    initial_guess(m)


# ------------------------------- Reporting ---------------------------------

def format_result(result: ThresholdResult) -> str:
    m_txt = np.format_float_positional(result.m, precision=8, unique=False)
    s_txt = np.format_float_positional(result.achieved_sum, precision=8, unique=False)
    return (
        f"Sum(1/n, 1, N) > {m_txt}, when N >= {result.n}\n\n"
        f"Sum(1/n, 1, {result.n}) ~ {s_txt}"
    )


def make_json_safe(obj):
    """
    Recursively convert dataclasses, numpy scalars/arrays and Paths into
    plain JSON-serializable Python types.
    """
    if dataclasses.is_dataclass(obj):
        obj = dataclasses.asdict(obj)
    if isinstance(obj, dict):
        return {k: make_json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [make_json_safe(v) for v in obj]
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    # longdouble.item() may stay a numpy scalar, so go through float
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, Path):
        return str(obj)
    return obj


def write_json(result: ThresholdResult, path: Path) -> None:
    payload = make_json_safe(result)
    # Keep the full extended-precision digits alongside the float values
    payload["m_text"] = np.format_float_positional(result.m, unique=True)
    payload["achieved_sum_text"] = np.format_float_positional(result.achieved_sum, unique=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)


# ---------------------------------- CLI ------------------------------------

@dataclass
class Config:
    number: str = "0"                # raw <NUMBER> argument
    verbose: bool = False            # per-iteration diagnostics
    progress: bool = False           # progress bar for the direct summation
    json_path: Optional[str] = None  # optional JSON report


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting with status 2."""

    def error(self, message):
        raise UsageError(message)


def usage_line(prog: str) -> str:
    return f"Usage: {prog} <NUMBER>"


def protect_negative_numbers(tokens: Sequence[str]) -> List[str]:
    """
    Move numeric tokens that start with '-' (-1e3, -5., -inf) behind a '--'
    so argparse reads them as NUMBER rather than as unknown options.
    """
    tokens = list(tokens)
    if "--" in tokens:
        return tokens
    numeric = [t for t in tokens if t.lstrip().startswith("-") and NUMBER_RE.fullmatch(t.lstrip())]
    if not numeric:
        return tokens
    rest = [t for t in tokens if t not in numeric]
    return rest + ["--"] + numeric


def parse_args(argv: Optional[List[str]] = None, prog: Optional[str] = None) -> Config:
    """
    Build a Config from CLI arguments. Argument-count problems raise
    UsageError; the number itself is validated later by parse_number.
    """
    if argv is None:
        argv = sys.argv[1:]
    argv = protect_negative_numbers(argv)

    p = _Parser(
        prog=prog,
        description="Find the smallest N with Sum(1/n, 1, N) > NUMBER.",
    )
    p.add_argument("number", metavar="NUMBER", help="Threshold M >= 0.")
    p.add_argument("-v", "--verbose", action="store_true", help="Print every correction step.")
    p.add_argument("--progress", action="store_true", help="Show a progress bar while summing.")
    p.add_argument("--json", type=str, default=Config.json_path, help="Path to JSON report.")

    args = p.parse_args(argv)
    return Config(
        number=args.number,
        verbose=args.verbose,
        progress=args.progress,
        json_path=args.json,
    )


def main(argv: Optional[List[str]] = None, prog: Optional[str] = None) -> int:
    prog = prog or os.path.basename(sys.argv[0])
    try:
        cfg = parse_args(argv, prog=prog)
    except UsageError:
        print(f"{usage_line(prog)}\n", file=sys.stderr)
        return -1

    try:
        m = parse_number(cfg.number)
        check_domain(m)
    except ParseError:
        print(f"Invalid input.\n{usage_line(prog)}\n", file=sys.stderr)
        return -1
    except DomainError as exc:
        print(f"{exc}\n", file=sys.stderr)
        return -1

    result = solve_threshold(m, verbose=cfg.verbose, progress=cfg.progress)
    print(format_result(result))

    if cfg.json_path:
        write_json(result, Path(cfg.json_path))

    return 0


if __name__ == "__main__":
    sys.exit(main())
