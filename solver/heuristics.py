from __future__ import annotations

from dataclasses import dataclass

from board.cards import is_locked
from board.state import GameState

FREE_CARD_WEIGHT = 0.6
FREE_CELL_WEIGHT = 1.0


@dataclass(frozen=True, slots=True)
class ScoreCard:
    free_cells: int
    free_cards: int
    cards_in_play: int
    aggregate_free: float
    folded_units: int


@dataclass(frozen=True, slots=True)
class Comparison:
    """Positive values mean the first state is an improvement over the second."""

    strict: int
    loose: float


def score(state: GameState) -> ScoreCard:
    free_cells = sum(1 for column in state.game_cells if not column)
    free_cards = sum(1 for card in state.free_cards if card is None)
    cards_in_play = sum(len(column) for column in state.game_cells)
    cards_in_play += sum(1 for card in state.free_cards if card is not None and not is_locked(card))
    folded_units = sum(state.foundations) + state.locked_dragons() + (1 if state.lotus_cell is not None else 0)
    return ScoreCard(
        free_cells=free_cells,
        free_cards=free_cards,
        cards_in_play=cards_in_play,
        aggregate_free=free_cards * FREE_CARD_WEIGHT + free_cells * FREE_CELL_WEIGHT,
        folded_units=folded_units,
    )


def compare(state_a: GameState, state_b: GameState) -> Comparison:
    a = score(state_a)
    b = score(state_b)
    strict = (a.free_cells + a.free_cards) - (b.free_cells + b.free_cards)
    if strict != 0:
        return Comparison(strict=strict, loose=float(strict))
    loose = a.aggregate_free - b.aggregate_free
    if loose == 0:
        loose = float(b.cards_in_play - a.cards_in_play)
    return Comparison(strict=0, loose=loose)
