from __future__ import annotations

import argparse
import json
import logging
import time
from pathlib import Path

from solver.analyzer import analyze_seed
from solver.engine import SearchLimits


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Batch seed mining for the dragon/lotus solver.")
    parser.add_argument("--start-seed", type=int, required=True, help="Start seed (inclusive).")
    parser.add_argument("--count", type=int, required=True, help="How many seeds to scan.")
    parser.add_argument("--max-seconds", type=float, default=10.0, help="Per-seed solver time limit.")
    parser.add_argument("--max-nodes", type=int, default=2_000_000, help="Per-seed expansion limit.")
    parser.add_argument("--target-solved", type=int, default=1, help="Stop early after this many solved seeds.")
    parser.add_argument("--jsonl", type=str, default="", help="Optional output jsonl path.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log search progress.")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    limits = SearchLimits(max_nodes=args.max_nodes or None, max_seconds=args.max_seconds or None)

    out_path = Path(args.jsonl).expanduser() if args.jsonl else None
    if out_path is not None:
        out_path.parent.mkdir(parents=True, exist_ok=True)

    solved = 0
    exhausted = 0
    unknown = 0
    started = time.perf_counter()

    for i in range(args.count):
        seed = args.start_seed + i
        t0 = time.perf_counter()
        result = analyze_seed(seed=seed, limits=limits)
        wall_ms = (time.perf_counter() - t0) * 1000.0

        payload = result.to_dict()
        payload["wall_ms"] = round(wall_ms, 3)

        if out_path is not None:
            with out_path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(payload, ensure_ascii=False) + "\n")

        if result.status == "solved":
            solved += 1
        elif result.status == "exhausted":
            exhausted += 1
        else:
            unknown += 1

        metrics = result.metrics
        print(
            f"seed={seed} status={result.status} wall_ms={wall_ms:.1f} solver_ms={metrics['elapsed_ms']} "
            f"expanded={metrics['expanded_nodes']} solution_len={metrics['solution_len']}"
        )

        if solved >= args.target_solved:
            break

    total_ms = (time.perf_counter() - started) * 1000.0
    print(
        f"summary scanned={solved + exhausted + unknown} solved={solved} "
        f"exhausted={exhausted} unknown={unknown} total_ms={total_ms:.1f}"
    )


if __name__ == "__main__":
    main()
