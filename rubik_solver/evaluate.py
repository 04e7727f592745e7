"""Offline solver evaluation over scramble depths."""

from __future__ import annotations

import argparse
import csv
import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import matplotlib
import matplotlib.pyplot as plt
import numpy as np
from tqdm import tqdm

from rubik_core.cube import CubeState
from rubik_core.engine import random_move_sequence

from .config import SolverConfig, load_config
from .search import SolverTimeoutError, TwoPhaseSolver, solve_with_timeout

matplotlib.use("Agg")


@dataclass
class DepthMetrics:
    scramble_depth: int
    scrambles: int
    solved_count: int
    failed_count: int
    success_rate: float
    length_min: float | None
    length_mean: float | None
    length_max: float | None
    time_mean_sec: float
    time_max_sec: float
    eval_time_sec: float
    solves_per_sec: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "scramble_depth": self.scramble_depth,
            "scrambles": self.scrambles,
            "solved_count": self.solved_count,
            "failed_count": self.failed_count,
            "success_rate": self.success_rate,
            "length_min": self.length_min,
            "length_mean": self.length_mean,
            "length_max": self.length_max,
            "time_mean_sec": self.time_mean_sec,
            "time_max_sec": self.time_max_sec,
            "eval_time_sec": self.eval_time_sec,
            "solves_per_sec": self.solves_per_sec,
        }


def _aggregate_metrics(
    scramble_depth: int,
    solved: np.ndarray,
    lengths: np.ndarray,
    times: np.ndarray,
    eval_time_sec: float,
) -> DepthMetrics:
    solved = np.asarray(solved, dtype=bool)
    lengths = np.asarray(lengths, dtype=np.int64)
    times = np.asarray(times, dtype=np.float64)
    scrambles = int(solved.size)
    solved_count = int(solved.sum())
    success_rate = float(solved_count / scrambles) if scrambles > 0 else 0.0

    if solved_count > 0:
        solved_lengths = lengths[solved]
        length_min = float(np.min(solved_lengths))
        length_mean = float(np.mean(solved_lengths))
        length_max = float(np.max(solved_lengths))
    else:
        length_min = None
        length_mean = None
        length_max = None

    return DepthMetrics(
        scramble_depth=scramble_depth,
        scrambles=scrambles,
        solved_count=solved_count,
        failed_count=scrambles - solved_count,
        success_rate=success_rate,
        length_min=length_min,
        length_mean=length_mean,
        length_max=length_max,
        time_mean_sec=float(np.mean(times)) if scrambles > 0 else 0.0,
        time_max_sec=float(np.max(times)) if scrambles > 0 else 0.0,
        eval_time_sec=float(eval_time_sec),
        solves_per_sec=float(scrambles / max(eval_time_sec, 1e-9)),
    )


def _fmt_opt(v: float | None) -> str:
    return "N/A" if v is None else f"{v:.2f}"


def _print_header() -> None:
    print("scramble | success_rate | solved/total | length(min/mean/max) | time_mean_s | time_max_s", flush=True)


def _print_row(m: DepthMetrics) -> None:
    lengths = f"{_fmt_opt(m.length_min)}/{_fmt_opt(m.length_mean)}/{_fmt_opt(m.length_max)}"
    print(
        f"{m.scramble_depth:8d} | "
        f"{m.success_rate:11.4f} | "
        f"{m.solved_count:6d}/{m.scrambles:<6d} | "
        f"{lengths:20s} | "
        f"{m.time_mean_sec:11.4f} | "
        f"{m.time_max_sec:10.4f}",
        flush=True,
    )


def _plot_metrics(metrics: list[DepthMetrics], output_dir: Path, prefix: str) -> tuple[Path, Path]:
    depths = np.array([m.scramble_depth for m in metrics], dtype=np.int64)
    length_min = np.array([np.nan if m.length_min is None else m.length_min for m in metrics], dtype=np.float64)
    length_mean = np.array([np.nan if m.length_mean is None else m.length_mean for m in metrics], dtype=np.float64)
    length_max = np.array([np.nan if m.length_max is None else m.length_max for m in metrics], dtype=np.float64)
    time_mean = np.array([m.time_mean_sec for m in metrics], dtype=np.float64)
    time_max = np.array([m.time_max_sec for m in metrics], dtype=np.float64)

    fig1 = plt.figure(figsize=(11, 6))
    ax1 = fig1.add_subplot(111)
    ax1.plot(depths, length_min, marker="o", linewidth=1.8, label="Length min")
    ax1.plot(depths, length_mean, marker="o", linewidth=1.8, label="Length mean")
    ax1.plot(depths, length_max, marker="o", linewidth=1.8, label="Length max")
    ax1.plot(depths, depths, linestyle="--", alpha=0.6, linewidth=1.2, label="Scramble depth")
    ax1.set_title("Solver Evaluation: Solution Length vs Scramble Depth")
    ax1.set_xlabel("Scramble depth")
    ax1.set_ylabel("Moves")
    ax1.grid(True, alpha=0.3)
    ax1.legend(loc="best")
    lengths_path = output_dir / f"{prefix}_solution_length.png"
    fig1.tight_layout()
    fig1.savefig(lengths_path, dpi=160)
    plt.close(fig1)

    fig2 = plt.figure(figsize=(10, 5))
    ax2 = fig2.add_subplot(111)
    ax2.plot(depths, time_mean, marker="o", linewidth=2.0, label="Mean")
    ax2.plot(depths, time_max, marker="o", linestyle="--", linewidth=1.5, label="Max")
    ax2.set_title("Solver Evaluation: Solve Time vs Scramble Depth")
    ax2.set_xlabel("Scramble depth")
    ax2.set_ylabel("Seconds")
    ax2.grid(True, alpha=0.3)
    ax2.legend(loc="best")
    time_path = output_dir / f"{prefix}_solve_time.png"
    fig2.tight_layout()
    fig2.savefig(time_path, dpi=160)
    plt.close(fig2)

    return lengths_path, time_path


def _save_reports(
    metrics: list[DepthMetrics],
    output_dir: Path,
    prefix: str,
    args: argparse.Namespace,
    config: SolverConfig,
) -> tuple[Path, Path]:
    csv_path = output_dir / f"{prefix}_metrics.csv"
    json_path = output_dir / f"{prefix}_metrics.json"

    fieldnames = list(DepthMetrics.__dataclass_fields__)
    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for m in metrics:
            writer.writerow(m.to_dict())

    payload = {
        "config": {
            "solver": config.to_dict(),
            "scrambles_per_depth": int(args.scrambles_per_depth),
            "depth_min": int(args.depth_min),
            "depth_max": int(args.depth_max),
            "seed": args.seed,
            "progress": args.progress,
        },
        "metrics": [m.to_dict() for m in metrics],
    }
    with json_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    return csv_path, json_path


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Benchmark the two-phase solver over scramble depths")
    p.add_argument("--config", default=None, help="Optional YAML solver config")
    p.add_argument("--scrambles-per-depth", type=int, default=20)
    p.add_argument("--depth-min", type=int, default=1)
    p.add_argument("--depth-max", type=int, default=20)
    p.add_argument("--max-length", type=int, default=None, help="Overrides solver.max_length")
    p.add_argument("--timeout-sec", type=float, default=None, help="Overrides solver.timeout_sec")
    p.add_argument("--cache-dir", default=None, help="Overrides solver.cache_dir")
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--output-dir", default="eval_reports")
    p.add_argument("--output-prefix", default="solver_eval")
    p.add_argument("--progress", default="on", choices=["on", "off"])
    return p


def _resolve_config(args: argparse.Namespace) -> SolverConfig:
    config = load_config(args.config) if args.config else SolverConfig()
    return config.replace(
        max_length=args.max_length,
        timeout_sec=args.timeout_sec,
        cache_dir=args.cache_dir,
    )


def run_evaluation(args: argparse.Namespace) -> dict[str, Any]:
    if args.depth_min < 0 or args.depth_max < args.depth_min:
        raise ValueError("Require 0 <= depth_min <= depth_max")
    if args.scrambles_per_depth < 1:
        raise ValueError("--scrambles-per-depth must be >= 1")

    config = _resolve_config(args)
    solver = TwoPhaseSolver(config)
    rng = np.random.default_rng(args.seed)

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    print(
        "evaluation_init "
        f"scrambles_per_depth={args.scrambles_per_depth} "
        f"depth_range={args.depth_min}..{args.depth_max} max_length={config.max_length} "
        f"timeout_sec={config.timeout_sec} cache_dir={config.cache_dir}",
        flush=True,
    )
    t_tables = time.perf_counter()
    _ = solver.tables
    print(f"tables_ready elapsed_sec={time.perf_counter() - t_tables:.2f}", flush=True)
    _print_header()

    metrics: list[DepthMetrics] = []
    for depth in range(int(args.depth_min), int(args.depth_max) + 1):
        t0 = time.perf_counter()
        n = int(args.scrambles_per_depth)
        solved_out = np.zeros((n,), dtype=bool)
        lengths_out = np.zeros((n,), dtype=np.int64)
        times_out = np.zeros((n,), dtype=np.float64)

        scramble_iter = range(n)
        if args.progress == "on":
            scramble_iter = tqdm(scramble_iter, desc=f"scramble={depth}", unit="cube", mininterval=1.0, leave=False)

        for i in scramble_iter:
            state = CubeState.solved().apply_sequence(random_move_sequence(depth, rng))
            t_solve = time.perf_counter()
            try:
                if config.timeout_sec is not None:
                    solution = solve_with_timeout(solver, state, config.timeout_sec)
                else:
                    solution = solver.solve(state)
            except SolverTimeoutError:
                times_out[i] = time.perf_counter() - t_solve
                continue
            times_out[i] = time.perf_counter() - t_solve
            solved_out[i] = solution.verify(state)
            lengths_out[i] = len(solution)

        m = _aggregate_metrics(depth, solved_out, lengths_out, times_out, time.perf_counter() - t0)
        metrics.append(m)
        _print_row(m)

    lengths_plot, time_plot = _plot_metrics(metrics, output_dir, args.output_prefix)
    csv_path, json_path = _save_reports(metrics, output_dir, args.output_prefix, args, config)

    avg_sr = float(np.mean([m.success_rate for m in metrics]))
    print(
        "evaluation_summary "
        f"avg_success_rate={avg_sr:.4f} "
        f"length_plot={lengths_plot} time_plot={time_plot} csv={csv_path} json={json_path}",
        flush=True,
    )

    return {
        "metrics": metrics,
        "length_plot": lengths_plot,
        "time_plot": time_plot,
        "csv": csv_path,
        "json": json_path,
    }


def main() -> None:
    args = build_parser().parse_args()
    run_evaluation(args)


if __name__ == "__main__":
    main()
