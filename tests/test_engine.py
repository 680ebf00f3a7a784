import threading
import unittest
from collections import Counter

from board.cards import COLORS, RED, Dragon, is_dragon, is_number
from board.deck import create_deck, deal, deal_seed
from board.layout import parse_layout
from board.state import WIN_STATE, make_state
from solver.engine import (
    CANCELLED,
    EXHAUSTED,
    LIMITS_REACHED,
    SOLVED,
    ParentLink,
    SearchEngine,
    SearchLimits,
    solve_state,
)
from solver.errors import EmptyStackUnderflow, SolverError, StructuralInvariantViolation
from solver.hashing import WIN_HASH, is_win
from solver.moves import (
    CELL_TO_CELL,
    DRAGON_COLLECTION,
    FREE_SLOT_TO_CELL,
    INITIAL,
    LOTUS_COLLECTION,
    NUMBER_COLLECTION,
    get_all_moves,
    initial_move,
    split_moves,
)

LOTUS_LEFT = """
9 9 9
-
GD*,RD*,BD*
L
empty
empty
empty
empty
empty
empty
empty
"""

BLACK_DRAGONS_LEFT = """
9 9 8
L*
GD*,RD*,-
BD
BD
BD
BD
B9
empty
empty
empty
"""

GREEN_NINE_ON_EIGHT = """
7 9 9
L*
GD*,RD*,BD*
G8,G9
empty
empty
empty
empty
empty
empty
empty
"""

LOTUS_AND_DRAGONS = """
9 9 9
-
GD*,RD*,-
L
BD
BD
BD
BD
empty
empty
empty
"""

# Partial deck: only the cards that matter for the dead end are laid out.
STUCK = """
0 0 0
L*
GD*,RD*,BD*
G1,B5,R4
G5
G9
R9
B9
G7
R7
B7
"""


def move_types(solution):
    return [move.move_type for move in solution]


def census(state):
    counts = Counter()
    for color, top in zip(COLORS, state.foundations):
        for rank in range(1, top + 1):
            counts[("N", color, rank)] += 1
    cards = [card for column in state.game_cells for card in column]
    cards += [card for card in state.free_cards if card is not None]
    if state.lotus_cell is not None:
        cards.append(state.lotus_cell)
    for card in cards:
        if is_number(card):
            counts[("N", card.color, card.rank)] += 1
        elif is_dragon(card):
            counts[("D", card.color)] += 4 if card.locked else 1
        else:
            counts[("L",)] += 1
    return counts


class SolveTestCase(unittest.TestCase):
    def assertValidPath(self, solution):
        self.assertEqual(INITIAL, solution[0].move_type)
        self.assertEqual(WIN_HASH, solution[-1].hash)
        expected = census(solution[0].state)
        for previous, current in zip(solution, solution[1:]):
            successors = [move.hash for move in get_all_moves(previous.state)]
            self.assertIn(current.hash, successors, current.to_notation())
            self.assertEqual(expected, census(current.state))

    def test_collects_last_lotus(self):
        result = solve_state(parse_layout(LOTUS_LEFT))
        self.assertEqual(SOLVED, result.status)
        self.assertTrue(result.solved)
        self.assertEqual([INITIAL, LOTUS_COLLECTION], move_types(result.solution))
        self.assertValidPath(result.solution)

    def test_lotus_is_collected_before_costly_moves(self):
        state = parse_layout(LOTUS_AND_DRAGONS)
        root_moves = get_all_moves(state)
        free, costly = split_moves(root_moves)
        self.assertEqual([LOTUS_COLLECTION], move_types(free))
        self.assertEqual(5, len(costly))

        engine = SearchEngine()
        result = engine.solve_from(state)
        self.assertEqual(SOLVED, result.status)
        self.assertEqual([INITIAL, LOTUS_COLLECTION, DRAGON_COLLECTION], move_types(result.solution))
        self.assertValidPath(result.solution)
        self.assertEqual(3, result.expanded_nodes)
        # The root's own costly moves were never recorded or pushed.
        for move in costly:
            self.assertNotIn(move.hash, engine.parent)
            self.assertNotIn(move.hash, engine.visited)

    def test_collects_nine_then_dragons(self):
        reported = []
        result = solve_state(parse_layout(BLACK_DRAGONS_LEFT), observer=reported.append)
        self.assertEqual(SOLVED, result.status)
        self.assertEqual([INITIAL, NUMBER_COLLECTION, DRAGON_COLLECTION], move_types(result.solution))
        self.assertValidPath(result.solution)
        self.assertEqual(1, result.reports)
        self.assertEqual(1, len(reported))
        self.assertTrue(is_win(reported[0]))
        self.assertTrue(is_win(result.local_best))

    def test_relocates_nine_before_folding(self):
        result = solve_state(parse_layout(GREEN_NINE_ON_EIGHT))
        self.assertEqual(SOLVED, result.status)
        self.assertEqual(
            [INITIAL, CELL_TO_CELL, NUMBER_COLLECTION, NUMBER_COLLECTION],
            move_types(result.solution),
        )
        self.assertValidPath(result.solution)
        self.assertEqual(1, result.max_depth)
        self.assertEqual(2, result.free_moves_applied)

    def test_initial_win_is_a_single_move_solution(self):
        result = solve_state(WIN_STATE)
        self.assertEqual(SOLVED, result.status)
        self.assertEqual([INITIAL], move_types(result.solution))
        self.assertEqual(1, result.expanded_nodes)

    def test_dead_end_is_exhausted(self):
        result = solve_state(parse_layout(STUCK))
        self.assertEqual(EXHAUSTED, result.status)
        self.assertFalse(result.solved)
        self.assertEqual((), result.solution)
        self.assertEqual(2, result.expanded_nodes)
        self.assertEqual(2, result.generated_moves)
        self.assertEqual(1, result.max_depth)

    def test_dealt_dead_end_is_exhausted(self):
        state = deal_seed(29)
        self.assertEqual(census(deal(create_deck())), census(state))
        result = solve_state(state)
        self.assertEqual(EXHAUSTED, result.status)
        self.assertEqual((), result.solution)
        self.assertGreater(result.expanded_nodes, 1000)

    def test_full_exploration_still_reports_first_win(self):
        engine = SearchEngine(fully_explore=True)
        result = engine.solve_from(parse_layout(BLACK_DRAGONS_LEFT))
        self.assertEqual(SOLVED, result.status)
        self.assertValidPath(result.solution)
        self.assertGreater(result.expanded_nodes, 3)

    def test_dealt_layout_respects_node_limit(self):
        result = solve_state(deal_seed(7), limits=SearchLimits(max_nodes=300))
        self.assertIn(result.status, (SOLVED, LIMITS_REACHED, EXHAUSTED))
        self.assertLessEqual(result.expanded_nodes, 300)
        if result.solved:
            self.assertValidPath(result.solution)

    def test_result_to_dict(self):
        payload = solve_state(parse_layout(LOTUS_LEFT)).to_dict()
        self.assertEqual("solved", payload["status"])
        self.assertEqual(2, payload["solution_len"])
        self.assertEqual("INITIAL(initial layout)", payload["solution"][0])
        self.assertEqual("LOTUS_COLLECTION(collect lotus from column 0)", payload["solution"][1])


class ControlTestCase(unittest.TestCase):
    def test_preset_cancel_stops_before_expanding(self):
        cancel = threading.Event()
        cancel.set()
        result = solve_state(parse_layout(GREEN_NINE_ON_EIGHT), cancel_event=cancel)
        self.assertEqual(CANCELLED, result.status)
        self.assertEqual(0, result.expanded_nodes)

    def test_cancel_from_observer(self):
        cancel = threading.Event()
        result = solve_state(
            parse_layout(BLACK_DRAGONS_LEFT),
            observer=lambda state: cancel.set(),
            cancel_event=cancel,
        )
        self.assertEqual(CANCELLED, result.status)
        self.assertEqual(1, result.reports)

    def test_node_limit(self):
        result = solve_state(parse_layout(GREEN_NINE_ON_EIGHT), limits=SearchLimits(max_nodes=1))
        self.assertEqual(LIMITS_REACHED, result.status)
        self.assertEqual(1, result.expanded_nodes)

    def test_time_limit(self):
        result = solve_state(parse_layout(GREEN_NINE_ON_EIGHT), limits=SearchLimits(max_seconds=0.0))
        self.assertEqual(LIMITS_REACHED, result.status)
        self.assertEqual(0, result.expanded_nodes)

    def test_pauses_at_suspension_points(self):
        pauses = []
        engine = SearchEngine(
            observer=lambda state: None,
            yield_seconds=0.25,
            report_pause_seconds=0.5,
            pause=pauses.append,
        )
        result = engine.solve_from(parse_layout(BLACK_DRAGONS_LEFT))
        self.assertEqual(SOLVED, result.status)
        self.assertIn(0.25, pauses)
        self.assertEqual(1, pauses.count(0.5))

    def test_observer_errors_propagate(self):
        def observer(state):
            raise RuntimeError("display closed")

        with self.assertRaises(RuntimeError):
            solve_state(parse_layout(BLACK_DRAGONS_LEFT), observer=observer)


class BookkeepingTestCase(unittest.TestCase):
    def test_tables_carry_over_until_reset(self):
        state = parse_layout(GREEN_NINE_ON_EIGHT)
        engine = SearchEngine()
        self.assertEqual(SOLVED, engine.solve_from(state).status)
        self.assertTrue(engine.visited)

        again = engine.solve_from(state)
        self.assertEqual(EXHAUSTED, again.status)
        self.assertEqual(0, again.expanded_nodes)
        self.assertEqual(1, again.duplicate_skips)

        engine.reset()
        self.assertFalse(engine.visited)
        self.assertFalse(engine.parent)
        self.assertEqual(SOLVED, engine.solve_from(state).status)

    def test_earlier_origin_inside_path_gets_its_move_type(self):
        first = parse_layout("9 9 9\nL*\nGD*,RD*,-\nBD\nBD\nBD\nBD\nempty\nempty\nempty\nempty\n")
        parked = parse_layout("9 9 9\nL*\nGD*,RD*,BD\nempty\nBD\nBD\nBD\nempty\nempty\nempty\nempty\n")
        engine = SearchEngine(limits=SearchLimits(max_nodes=1))
        self.assertEqual(LIMITS_REACHED, engine.solve_from(first).status)

        engine.limits = SearchLimits()
        result = engine.solve_from(parked)
        self.assertEqual(SOLVED, result.status)
        self.assertEqual([INITIAL, FREE_SLOT_TO_CELL, DRAGON_COLLECTION], move_types(result.solution))
        self.assertEqual(initial_move(first).hash, result.solution[1].hash)
        self.assertEqual("move BD from free cell 2 to column 0", result.solution[1].description)
        self.assertEqual(initial_move(parked).hash, result.solution[0].hash)

    def test_origin_never_gets_a_parent(self):
        state = parse_layout(GREEN_NINE_ON_EIGHT)
        engine = SearchEngine()
        result = engine.solve_from(state)
        root = initial_move(state)
        self.assertNotIn(root.hash, engine.parent)
        self.assertFalse(engine.record_parent(root, result.solution[-1], 0))

    def test_record_parent_keeps_shallowest(self):
        engine = SearchEngine()
        start = initial_move(parse_layout(STUCK))
        child, = get_all_moves(start.state)
        other = initial_move(make_state())

        self.assertTrue(engine.record_parent(child, start, 5))
        self.assertTrue(engine.record_parent(child, other, 3))
        self.assertFalse(engine.record_parent(child, start, 4))
        self.assertFalse(engine.record_parent(child, start, 3))
        self.assertEqual(ParentLink(other, 3), engine.parent[child.hash])

    def test_cyclic_parent_links_are_rejected(self):
        engine = SearchEngine()
        start = initial_move(parse_layout(STUCK))
        child, = get_all_moves(start.state)
        engine.parent[start.hash] = ParentLink(child, 0)
        engine.parent[child.hash] = ParentLink(start, 0)
        with self.assertRaises(SolverError):
            engine.construct_solution(child)

    def test_empty_stack_pop(self):
        with self.assertRaises(EmptyStackUnderflow):
            SearchEngine._pop([])

    def test_locked_dragon_in_column_aborts_search(self):
        state = make_state(columns=[[Dragon(RED, locked=True)]])
        with self.assertRaises(StructuralInvariantViolation):
            solve_state(state)


if __name__ == "__main__":
    unittest.main()
