"""Depth-first reachability search over game states.

The engine keeps two tables keyed by canonical hash: the set of expanded
states and a parent-link table used to rebuild the path once the win hash is
popped. Both live on the instance and survive across ``solve_from`` calls;
``reset`` clears them.

Free moves (lotus and number collections) are applied in a cascade without
touching the exploration stack. Each cascade step raises a foundation counter
or locks the lotus, so a cascade is at most ``MAX_FREE_CASCADE`` steps long.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from board.cards import COLORS, MAX_RANK
from board.state import GameState
from solver.errors import EmptyStackUnderflow, SolverError, StructuralInvariantViolation
from solver.heuristics import compare
from solver.moves import INITIAL, Move, get_all_moves, initial_move, split_moves

logger = logging.getLogger(__name__)

MAX_FREE_CASCADE = len(COLORS) * MAX_RANK + 1

SOLVED = "solved"
EXHAUSTED = "exhausted"
CANCELLED = "cancelled"
LIMITS_REACHED = "limits_reached"

Observer = Callable[[GameState], None]


@dataclass(frozen=True, slots=True)
class SearchLimits:
    max_nodes: Optional[int] = None
    max_seconds: Optional[float] = None


@dataclass(frozen=True, slots=True)
class ParentLink:
    move: Move
    # Depth of ``move`` when the link was recorded.
    depth: int


@dataclass(slots=True)
class SolveResult:
    status: str
    solution: tuple[Move, ...]
    expanded_nodes: int
    generated_moves: int
    duplicate_skips: int
    free_moves_applied: int
    reports: int
    max_depth: int
    elapsed_ms: float
    local_best: Optional[GameState] = None

    @property
    def solved(self) -> bool:
        return self.status == SOLVED

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "solution_len": len(self.solution),
            "solution": [move.to_notation() for move in self.solution],
            "expanded_nodes": self.expanded_nodes,
            "generated_moves": self.generated_moves,
            "duplicate_skips": self.duplicate_skips,
            "free_moves_applied": self.free_moves_applied,
            "reports": self.reports,
            "max_depth": self.max_depth,
            "elapsed_ms": round(self.elapsed_ms, 3),
        }


@dataclass(slots=True)
class _SearchStats:
    started: float
    expanded_nodes: int = 0
    generated_moves: int = 0
    duplicate_skips: int = 0
    free_moves_applied: int = 0
    reports: int = 0
    max_depth: int = 0


class SearchEngine:
    def __init__(
        self,
        observer: Optional[Observer] = None,
        cancel_event: Optional[threading.Event] = None,
        limits: SearchLimits = SearchLimits(),
        yield_seconds: float = 0.0,
        report_pause_seconds: float = 0.0,
        fully_explore: bool = False,
        pause: Callable[[float], None] = time.sleep,
    ):
        self.observer = observer
        self.cancel_event = cancel_event
        self.limits = limits
        self.yield_seconds = yield_seconds
        self.report_pause_seconds = report_pause_seconds
        self.fully_explore = fully_explore
        self.pause = pause

        self.visited: set[str] = set()
        self.parent: dict[str, ParentLink] = {}
        self.local_best: Optional[GameState] = None
        self._origin_hash: Optional[str] = None

    def reset(self):
        self.visited.clear()
        self.parent.clear()
        self.local_best = None
        self._origin_hash = None

    def record_parent(self, move: Move, parent_move: Move, parent_depth: int) -> bool:
        """Point ``move`` at ``parent_move`` unless a path at least as short is known."""
        if move.hash == self._origin_hash:
            return False
        link = self.parent.get(move.hash)
        if link is None or link.depth > parent_depth:
            self.parent[move.hash] = ParentLink(parent_move, parent_depth)
            return True
        return False

    def construct_solution(self, node: Move) -> tuple[Move, ...]:
        path = [node]
        seen = {node.hash}
        while path[-1].hash != self._origin_hash:
            link = self.parent.get(path[-1].hash)
            if link is None:
                break
            if link.move.hash in seen:
                raise SolverError(f"parent links form a cycle at {link.move.hash}")
            seen.add(link.move.hash)
            if path[-1].move_type == INITIAL:
                # Origin of an earlier call, reached again from this one.
                path[-1] = self._retag(path[-1], link.move)
            path.append(link.move)
        path.reverse()
        return tuple(path)

    @staticmethod
    def _retag(stale: Move, parent_move: Move) -> Move:
        for move in get_all_moves(parent_move.state):
            if move.hash == stale.hash:
                return move
        return stale

    def solve_from(self, state: GameState) -> SolveResult:
        stats = _SearchStats(started=time.perf_counter())
        root = initial_move(state)
        self._origin_hash = root.hash
        logger.info("solving from %d visited states", len(self.visited))

        first_win: Optional[tuple[Move, ...]] = None
        stack: list[Move] = [root]
        while stack:
            stop = self._checkpoint(self.yield_seconds, stats)
            if stop is not None:
                return self._finish(stop, first_win, stats)

            node = self._pop(stack)
            if node.hash in self.visited:
                stats.duplicate_skips += 1
                continue
            self.visited.add(node.hash)
            stats.expanded_nodes += 1

            if node.is_win:
                solution = self.construct_solution(node)
                logger.info("got a win after %d expansions, path length %d", stats.expanded_nodes, len(solution))
                if not self.fully_explore:
                    return self._finish(SOLVED, solution, stats)
                if first_win is None:
                    first_win = solution
                continue

            depth = self._depth_of(node)
            stats.max_depth = max(stats.max_depth, depth)

            moves = get_all_moves(node.state)
            stats.generated_moves += len(moves)
            free_moves, costly_moves = split_moves(moves)

            last_free = self._cascade_free_moves(node, depth, free_moves, stats)
            if last_free is not None:
                if last_free.hash not in self.visited:
                    stack.append(last_free)
                continue

            to_push = []
            for move in costly_moves:
                self.record_parent(move, node, depth)
                if move.hash in self.visited:
                    continue
                comparison = compare(move.state, node.state)
                if comparison.strict > 0:
                    self._track_local_best(move.state)
                    self._report(move.state, stats)
                    stop = self._checkpoint(self.report_pause_seconds, stats)
                    if stop is not None:
                        return self._finish(stop, first_win, stats)
                elif comparison.loose > 0:
                    self._track_local_best(move.state)
                to_push.append(move)
            # Highest-priority category is popped first.
            stack.extend(reversed(to_push))

        return self._finish(EXHAUSTED, first_win, stats)

    def _cascade_free_moves(
        self,
        node: Move,
        depth: int,
        free_moves: list[Move],
        stats: _SearchStats,
    ) -> Optional[Move]:
        current, current_depth = node, depth
        last_free = None
        steps = 0
        while free_moves:
            steps += 1
            if steps > MAX_FREE_CASCADE:
                raise StructuralInvariantViolation(f"free-move cascade exceeded {MAX_FREE_CASCADE} steps")
            move = free_moves[0]
            self.record_parent(move, current, current_depth)
            logger.debug("free move at depth %d: %s", current_depth + 1, move.to_notation())
            last_free = move
            current, current_depth = move, current_depth + 1
            moves = get_all_moves(move.state)
            stats.generated_moves += len(moves)
            free_moves, _ = split_moves(moves)
        stats.free_moves_applied += steps
        return last_free

    def _depth_of(self, node: Move) -> int:
        if node.hash == self._origin_hash:
            return 0
        link = self.parent.get(node.hash)
        if link is None:
            return 0
        return link.depth + 1

    @staticmethod
    def _pop(stack: list[Move]) -> Move:
        if not stack:
            raise EmptyStackUnderflow("exploration stack popped while empty")
        return stack.pop()

    def _track_local_best(self, state: GameState):
        if self.local_best is None or compare(state, self.local_best).loose > 0:
            self.local_best = state

    def _report(self, state: GameState, stats: _SearchStats):
        stats.reports += 1
        if self.observer is not None:
            self.observer(state)

    def _checkpoint(self, seconds: float, stats: _SearchStats) -> Optional[str]:
        """Suspension point: yield, then check cancellation and limits."""
        self.pause(seconds)
        if self.cancel_event is not None and self.cancel_event.is_set():
            return CANCELLED
        limits = self.limits
        if limits.max_nodes is not None and stats.expanded_nodes >= limits.max_nodes:
            return LIMITS_REACHED
        if limits.max_seconds is not None and (time.perf_counter() - stats.started) >= limits.max_seconds:
            return LIMITS_REACHED
        return None

    def _finish(self, status: str, solution: Optional[tuple[Move, ...]], stats: _SearchStats) -> SolveResult:
        if solution is not None:
            status = SOLVED
        elif status == EXHAUSTED:
            logger.info("search exhausted after %d expansions", stats.expanded_nodes)
        else:
            logger.info("search stopped (%s) after %d expansions", status, stats.expanded_nodes)
        return SolveResult(
            status=status,
            solution=solution or (),
            expanded_nodes=stats.expanded_nodes,
            generated_moves=stats.generated_moves,
            duplicate_skips=stats.duplicate_skips,
            free_moves_applied=stats.free_moves_applied,
            reports=stats.reports,
            max_depth=stats.max_depth,
            elapsed_ms=(time.perf_counter() - stats.started) * 1000.0,
            local_best=self.local_best,
        )


def solve_state(
    initial_state: GameState,
    limits: SearchLimits = SearchLimits(),
    observer: Optional[Observer] = None,
    cancel_event: Optional[threading.Event] = None,
) -> SolveResult:
    """Run a fresh engine on one layout."""
    engine = SearchEngine(observer=observer, cancel_event=cancel_event, limits=limits)
    return engine.solve_from(initial_state)
