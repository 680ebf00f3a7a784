from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

GREEN = "GREEN"
RED = "RED"
BLACK = "BLACK"

COLORS = (GREEN, RED, BLACK)
RANKS = tuple(range(1, 10))
MAX_RANK = 9
DRAGONS_PER_COLOR = 4

COLOR_CODES = {GREEN: "G", RED: "R", BLACK: "B"}
CODE_COLORS = {code: color for color, code in COLOR_CODES.items()}


@dataclass(frozen=True, slots=True)
class NumberCard:
    color: str
    rank: int

    def code(self) -> str:
        return f"{COLOR_CODES[self.color]}{self.rank}"


@dataclass(frozen=True, slots=True)
class Dragon:
    color: str
    locked: bool = False

    def code(self) -> str:
        return f"{COLOR_CODES[self.color]}D" + ("*" if self.locked else "")


@dataclass(frozen=True, slots=True)
class Lotus:
    locked: bool = False

    def code(self) -> str:
        return "L*" if self.locked else "L"


Card = Union[NumberCard, Dragon, Lotus]


def is_number(card: Optional[Card]) -> bool:
    return isinstance(card, NumberCard)


def is_dragon(card: Optional[Card]) -> bool:
    return isinstance(card, Dragon)


def is_lotus(card: Optional[Card]) -> bool:
    return isinstance(card, Lotus)


def is_locked(card: Optional[Card]) -> bool:
    return isinstance(card, (Dragon, Lotus)) and card.locked


def card_equals(card_a: Card, card_b: Card) -> bool:
    """Dragons match by color, numbers by color and rank; nothing else matches."""
    if is_dragon(card_a) and is_dragon(card_b):
        return card_a.color == card_b.color
    if is_number(card_a) and is_number(card_b):
        return card_a.color == card_b.color and card_a.rank == card_b.rank
    return False


def can_stack(lower: Card, upper: Card) -> bool:
    """True when ``upper`` may rest on ``lower`` in a tableau run."""
    if not (is_number(lower) and is_number(upper)):
        return False
    return lower.color != upper.color and lower.rank == upper.rank + 1


def card_code(card: Optional[Card]) -> str:
    if card is None:
        return "-"
    return card.code()
