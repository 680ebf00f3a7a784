"""Legal move enumeration, one function per rule category.

Every function is pure: the input state is never touched and each returned
``Move`` carries its own resulting state. Grab indices 0..7 are the tableau
columns, 8..10 the free cells.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from board.cards import (
    COLORS,
    DRAGONS_PER_COLOR,
    Card,
    Dragon,
    Lotus,
    can_stack,
    is_dragon,
    is_locked,
    is_lotus,
    is_number,
)
from board.state import COLUMN_COUNT, FREE_SLOT_COUNT, GameState
from solver.errors import StructuralInvariantViolation
from solver.hashing import WIN_HASH, state_hash

INITIAL = "INITIAL"
LOTUS_COLLECTION = "LOTUS_COLLECTION"
NUMBER_COLLECTION = "NUMBER_COLLECTION"
DRAGON_COLLECTION = "DRAGON_COLLECTION"
FREE_SLOT_TO_CELL = "FREE_SLOT_TO_CELL"
CELL_TO_CELL = "CELL_TO_CELL"
CELL_TO_FREE_SLOT = "CELL_TO_FREE_SLOT"

# Priority order; free categories come first.
MOVE_ORDER = (
    LOTUS_COLLECTION,
    NUMBER_COLLECTION,
    DRAGON_COLLECTION,
    FREE_SLOT_TO_CELL,
    CELL_TO_CELL,
    CELL_TO_FREE_SLOT,
)
FREE_MOVE_TYPES = frozenset({LOTUS_COLLECTION, NUMBER_COLLECTION})

FREE_SLOT_OFFSET = COLUMN_COUNT

Grab = tuple[Card, ...]


@dataclass(frozen=True, slots=True)
class Move:
    """The state reached by one transition, plus its identity."""

    state: GameState
    hash: str
    move_type: str
    description: str = ""
    is_win: bool = False

    def is_free(self) -> bool:
        return self.move_type in FREE_MOVE_TYPES

    def to_notation(self) -> str:
        if self.description:
            return f"{self.move_type}({self.description})"
        return self.move_type


def make_move(state: GameState, move_type: str, description: str = "") -> Move:
    digest = state_hash(state)
    return Move(state=state, hash=digest, move_type=move_type, description=description, is_win=digest == WIN_HASH)


def initial_move(state: GameState) -> Move:
    return make_move(state, INITIAL, "initial layout")


def _describe(cards: Grab) -> str:
    if len(cards) == 1:
        return cards[0].code()
    return f"{len(cards)} cards {cards[0].code()}..{cards[-1].code()}"


def _slot_name(idx: int) -> str:
    if idx < FREE_SLOT_OFFSET:
        return f"column {idx}"
    return f"free cell {idx - FREE_SLOT_OFFSET}"


def column_grab(column: tuple[Card, ...]) -> Grab:
    """The maximal movable run at the top of a column, bottom-to-top."""
    if not column:
        return ()
    top = column[-1]
    if not is_number(top):
        return (top,)
    start = len(column) - 1
    while start > 0 and can_stack(column[start - 1], column[start]):
        start -= 1
    return tuple(column[start:])


def get_all_grabs(state: GameState) -> list[Grab]:
    grabs = [column_grab(column) for column in state.game_cells]
    for card in state.free_cards:
        if card is not None and not is_locked(card):
            grabs.append((card,))
        else:
            grabs.append(())
    return grabs


def _pop_from(state: GameState, idx: int) -> tuple[GameState, Optional[Card]]:
    if idx < FREE_SLOT_OFFSET:
        column = state.game_cells[idx]
        if not column:
            return state, None
        return state.with_column(idx, column[:-1]), column[-1]
    slot = idx - FREE_SLOT_OFFSET
    return state.with_free_card(slot, None), state.free_cards[slot]


def get_lotus_collection(grabs: list[Grab], state: GameState) -> list[Move]:
    for idx in range(COLUMN_COUNT):
        grab = grabs[idx]
        if len(grab) != 1 or not is_lotus(grab[0]):
            continue
        next_state, lotus = _pop_from(state, idx)
        if not is_lotus(lotus) or lotus.locked:
            raise StructuralInvariantViolation(f"expected an unlocked lotus in column {idx}, found {lotus!r}")
        next_state = replace(next_state, lotus_cell=Lotus(locked=True))
        return [make_move(next_state, LOTUS_COLLECTION, f"collect lotus from column {idx}")]
    return []


def is_safe_to_collect(state: GameState, card: Card) -> bool:
    """A number is safe to fold once no other-colored card could still need it as a base."""
    child_rank = card.rank - 1
    return all(state.foundation(color) >= child_rank for color in COLORS if color != card.color)


def get_number_collection(grabs: list[Grab], state: GameState) -> list[Move]:
    moves = []
    for idx, grab in enumerate(grabs):
        if not grab:
            continue
        card = grab[-1]
        if not is_number(card):
            continue
        if card.rank != state.foundation(card.color) + 1:
            continue
        if not is_safe_to_collect(state, card):
            continue
        next_state, popped = _pop_from(state, idx)
        if popped != card:
            raise StructuralInvariantViolation(f"expected {card!r} at {_slot_name(idx)}, found {popped!r}")
        next_state = next_state.with_foundation(card.color, card.rank)
        moves.append(make_move(next_state, NUMBER_COLLECTION, f"collect {card.code()} from {_slot_name(idx)}"))
    return moves


def get_dragon_collection(grabs: list[Grab], state: GameState) -> list[Move]:
    moves = []
    empty_slots = [FREE_SLOT_OFFSET + slot for slot in state.empty_free_slots()]
    for color in COLORS:
        dragon_indices = [
            idx
            for idx, grab in enumerate(grabs)
            if len(grab) == 1 and is_dragon(grab[0]) and not grab[0].locked and grab[0].color == color
        ]
        if len(dragon_indices) != DRAGONS_PER_COLOR:
            continue

        # Highest candidate wins; it must be a free-cell slot.
        collect_at = max(empty_slots + dragon_indices)
        if collect_at < FREE_SLOT_OFFSET:
            continue

        next_state = state
        for idx in dragon_indices:
            next_state, popped = _pop_from(next_state, idx)
            if not is_dragon(popped) or popped.locked or popped.color != color:
                raise StructuralInvariantViolation(
                    f"expected an unlocked {color} dragon at {_slot_name(idx)}, found {popped!r}"
                )
        next_state = next_state.with_free_card(collect_at - FREE_SLOT_OFFSET, Dragon(color, locked=True))
        moves.append(make_move(next_state, DRAGON_COLLECTION, f"collect {color.lower()} dragons"))
    return moves


def get_free_slot_to_cell(grabs: list[Grab], state: GameState) -> list[Move]:
    moves = []
    for slot in range(FREE_SLOT_COUNT):
        grab = grabs[FREE_SLOT_OFFSET + slot]
        if not grab:
            continue
        card = grab[0]
        used_empty = False
        for idx, column in enumerate(state.game_cells):
            if not column:
                # Empty columns are interchangeable.
                if used_empty:
                    continue
                used_empty = True
            elif not can_stack(column[-1], card):
                continue
            next_state, popped = _pop_from(state, FREE_SLOT_OFFSET + slot)
            if popped != card:
                raise StructuralInvariantViolation(f"expected {card!r} in free cell {slot}, found {popped!r}")
            next_state = next_state.with_column(idx, column + (card,))
            moves.append(
                make_move(next_state, FREE_SLOT_TO_CELL, f"move {card.code()} from free cell {slot} to column {idx}")
            )
    return moves


def _stackable_length(grab: Grab, top: Card) -> int:
    """Length of the longest suffix of ``grab`` whose bottom card stacks on ``top``."""
    for count in range(len(grab), 0, -1):
        if can_stack(top, grab[-count]):
            return count
    return 0


def get_cell_to_cell(grabs: list[Grab], state: GameState) -> list[Move]:
    moves = []
    for src in range(COLUMN_COUNT):
        grab = grabs[src]
        if not grab:
            continue
        src_column = state.game_cells[src]
        used_empty = False
        for dest, dest_column in enumerate(state.game_cells):
            if dest == src:
                continue
            if not dest_column:
                if used_empty:
                    continue
                used_empty = True
                # Relocating a whole column onto an empty one only relabels columns.
                if len(grab) == len(src_column):
                    continue
                count = len(grab)
            else:
                count = _stackable_length(grab, dest_column[-1])
                if count == 0:
                    continue
            moving = src_column[-count:]
            if moving != grab[-count:]:
                raise StructuralInvariantViolation(f"column {src} run {moving!r} does not match grab {grab!r}")
            next_state = state.with_column(src, src_column[:-count]).with_column(dest, dest_column + moving)
            moves.append(
                make_move(next_state, CELL_TO_CELL, f"move {_describe(moving)} from column {src} to column {dest}")
            )
    return moves


def get_cell_to_free_slot(grabs: list[Grab], state: GameState) -> list[Move]:
    empty_slots = state.empty_free_slots()
    if not empty_slots:
        return []
    # Free slots are interchangeable; fill the leftmost.
    slot = empty_slots[0]
    moves = []
    for idx in range(COLUMN_COUNT):
        grab = grabs[idx]
        if not grab:
            continue
        card = grab[-1]
        if not (is_dragon(card) or is_number(card)):
            continue
        next_state, popped = _pop_from(state, idx)
        if popped != card or is_locked(popped):
            raise StructuralInvariantViolation(f"expected a movable {card!r} in column {idx}, found {popped!r}")
        next_state = next_state.with_free_card(slot, card)
        moves.append(
            make_move(next_state, CELL_TO_FREE_SLOT, f"move {card.code()} from column {idx} to free cell {slot}")
        )
    return moves


def get_all_moves(state: GameState) -> list[Move]:
    """All legal moves from ``state`` in category priority order."""
    grabs = get_all_grabs(state)

    # Free moves
    moves = get_lotus_collection(grabs, state)
    moves += get_number_collection(grabs, state)

    # Costly moves
    moves += get_dragon_collection(grabs, state)
    moves += get_free_slot_to_cell(grabs, state)
    moves += get_cell_to_cell(grabs, state)
    moves += get_cell_to_free_slot(grabs, state)
    return moves


def split_moves(moves: list[Move]) -> tuple[list[Move], list[Move]]:
    free = [move for move in moves if move.is_free()]
    costly = [move for move in moves if not move.is_free()]
    return free, costly
