"""Canonical string identity of a game state.

Free-cell slots are interchangeable, so they are hashed as a sorted multiset.
Tableau columns keep their positions.
"""

from __future__ import annotations

import json

from board.cards import COLORS, Dragon, Lotus, NumberCard
from board.state import WIN_STATE, GameState
from solver.errors import UnhashableStateError


def _card_payload(card):
    if card is None:
        return None
    # bool is an int subclass; exclude it explicitly.
    if isinstance(card, NumberCard):
        if isinstance(card.rank, bool) or not isinstance(card.rank, int):
            raise UnhashableStateError(f"rank is not an integer: {card!r}")
        return {"color": card.color, "rank": card.rank}
    if isinstance(card, Dragon):
        return {"color": card.color, "dragon": True, "locked": bool(card.locked)}
    if isinstance(card, Lotus):
        return {"locked": bool(card.locked), "lotus": True}
    raise UnhashableStateError(f"cannot canonicalize card value: {card!r}")


def _slot_sort_key(payload) -> str:
    return json.dumps(payload, sort_keys=True)


def canonical_payload(state: GameState) -> dict:
    if not isinstance(state, GameState):
        raise UnhashableStateError(f"not a game state: {state!r}")
    if len(state.foundations) != len(COLORS):
        raise UnhashableStateError(f"expected {len(COLORS)} foundations, got {state.foundations!r}")
    for value in state.foundations:
        if isinstance(value, bool) or not isinstance(value, int):
            raise UnhashableStateError(f"foundation is not an integer: {value!r}")

    free = [_card_payload(card) for card in state.free_cards]
    return {
        "foundations": dict(zip(COLORS, state.foundations)),
        "freeCards": sorted(free, key=_slot_sort_key),
        "gameCells": [[_card_payload(card) for card in column] for column in state.game_cells],
        "lotusCell": _card_payload(state.lotus_cell),
    }


def state_hash(state: GameState) -> str:
    payload = canonical_payload(state)
    try:
        return json.dumps(payload, sort_keys=True, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise UnhashableStateError(f"cannot serialize game state: {exc}") from exc


WIN_HASH = state_hash(WIN_STATE)


def is_win(state: GameState) -> bool:
    return state_hash(state) == WIN_HASH
