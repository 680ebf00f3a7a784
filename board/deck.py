from __future__ import annotations

import random
from typing import Optional

from board.cards import COLORS, DRAGONS_PER_COLOR, RANKS, Card, Dragon, Lotus, NumberCard
from board.state import COLUMN_COUNT, GameState, make_state

DECK_SIZE = len(COLORS) * (len(RANKS) + DRAGONS_PER_COLOR) + 1


def create_deck() -> list[Card]:
    """The full 40-card deck in a fixed order."""
    deck: list[Card] = []
    for color in COLORS:
        for rank in RANKS:
            deck.append(NumberCard(color, rank))
        for _ in range(DRAGONS_PER_COLOR):
            deck.append(Dragon(color))
    deck.append(Lotus())
    return deck


def shuffled_deck(seed: Optional[int] = None) -> list[Card]:
    deck = create_deck()
    random.Random(seed).shuffle(deck)
    return deck


def deal(deck: list[Card]) -> GameState:
    """Deal round-robin onto the columns, taking cards from the end of the deck."""
    deck = list(deck)
    columns: list[list[Card]] = [[] for _ in range(COLUMN_COUNT)]
    dest = 0
    while deck:
        columns[dest].append(deck.pop())
        dest += 1
        if dest >= COLUMN_COUNT:
            dest = 0
    return make_state(columns=columns)


def deal_seed(seed: int) -> GameState:
    return deal(shuffled_deck(seed))
