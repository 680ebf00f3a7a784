from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from board.deck import deal_seed
from board.layout import LayoutError, load_layout
from board.state import GameState
from solver import settings_store
from solver.engine import SearchEngine, SolveResult
from solver.heuristics import score

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AnalyzeResult:
    status: str
    solvable: Optional[bool]
    metrics: dict
    seed: Optional[int] = None
    source: Optional[str] = None
    solution: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "seed": self.seed,
            "source": self.source,
            "status": self.status,
            "solvable": self.solvable,
            "metrics": self.metrics,
            "solution": list(self.solution),
        }


def _metrics(result: SolveResult) -> dict:
    metrics = result.to_dict()
    metrics.pop("solution")
    metrics.pop("status")
    if result.local_best is not None:
        best = score(result.local_best)
        metrics["local_best"] = {
            "free_cells": best.free_cells,
            "free_cards": best.free_cards,
            "cards_in_play": best.cards_in_play,
            "folded_units": best.folded_units,
        }
    return metrics


def analyze_state(
    initial_state: GameState,
    seed: Optional[int] = None,
    source: Optional[str] = None,
    engine: Optional[SearchEngine] = None,
) -> AnalyzeResult:
    """Solve one layout and summarize the search."""
    if engine is None:
        engine = SearchEngine()
    result = engine.solve_from(initial_state)

    if result.solved:
        solvable = True
    elif result.status == "exhausted":
        solvable = False
    else:
        solvable = None
    return AnalyzeResult(
        status=result.status,
        solvable=solvable,
        metrics=_metrics(result),
        seed=seed,
        source=source,
        solution=tuple(move.to_notation() for move in result.solution),
    )


def analyze_seed(seed: int, **engine_kwargs) -> AnalyzeResult:
    state = deal_seed(seed)
    return analyze_state(initial_state=state, seed=seed, engine=SearchEngine(**engine_kwargs))


def analyze_seeds(seeds: Iterable[int], **engine_kwargs) -> list[AnalyzeResult]:
    # Each seed gets a fresh engine; bookkeeping carries over within one engine.
    return [analyze_seed(seed=seed, **engine_kwargs) for seed in seeds]


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Solve dragon/lotus solitaire layouts.")
    parser.add_argument("--seed", type=int, action="append", default=[], help="Deal seed to solve; can be repeated.")
    parser.add_argument("--layout", type=str, action="append", default=[], help="Layout file to solve; can be repeated.")
    parser.add_argument("--max-nodes", type=int, default=None, help="Expansion limit (0 = unlimited).")
    parser.add_argument("--max-seconds", type=float, default=None, help="Time limit in seconds (0 = unlimited).")
    parser.add_argument("--fully-explore", action="store_true", help="Keep searching after the first win.")
    parser.add_argument("--frames-dir", type=str, default="", help="Save progress snapshots as PNG files here.")
    parser.add_argument("--max-frames", type=int, default=200, help="Upper bound on saved snapshots.")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print json output.")
    parser.add_argument("--verbose", "-v", action="count", default=0, help="More logging; repeat for debug.")
    args = parser.parse_args(argv)
    if not args.seed and not args.layout:
        parser.error("give at least one --seed or --layout")
    return args


def _engine_kwargs(args: argparse.Namespace) -> dict:
    overrides = {}
    if args.max_nodes is not None:
        overrides["max_nodes"] = args.max_nodes
    if args.max_seconds is not None:
        overrides["max_seconds"] = args.max_seconds
    if args.fully_explore:
        overrides["fully_explore"] = "true"
    settings = settings_store.with_overrides(settings_store.load_settings(), overrides)
    kwargs = settings_store.engine_options(settings)
    if args.frames_dir:
        from viewer.snapshot import FrameRecorder

        kwargs["observer"] = FrameRecorder(args.frames_dir, max_frames=args.max_frames)
    return kwargs


def _log_level(verbose: int) -> int:
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return getattr(logging, settings_store.load_settings()["log_level"])


def main(argv=None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(level=_log_level(args.verbose), format="%(asctime)s %(name)s %(levelname)s %(message)s")
    kwargs = _engine_kwargs(args)

    results = []
    try:
        for seed in args.seed:
            results.append(analyze_seed(seed=seed, **kwargs))
        for path in args.layout:
            try:
                state = load_layout(path)
            except (LayoutError, OSError) as exc:
                raise SystemExit(f"cannot load layout {path}: {exc}")
            results.append(analyze_state(state, source=path, engine=SearchEngine(**kwargs)))
    except KeyboardInterrupt:
        logger.warning("interrupted after %d results", len(results))

    payload = [result.to_dict() for result in results]
    if len(payload) == 1:
        payload = payload[0]

    if args.pretty:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        print(json.dumps(payload, ensure_ascii=False))


if __name__ == "__main__":
    main()
