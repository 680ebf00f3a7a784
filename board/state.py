from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from board.cards import BLACK, COLORS, GREEN, MAX_RANK, RED, Card, Dragon, Lotus, is_locked

FREE_SLOT_COUNT = 3
COLUMN_COUNT = 8

Column = tuple[Card, ...]

EMPTY_FREE_CARDS: tuple[Optional[Card], ...] = (None,) * FREE_SLOT_COUNT
EMPTY_COLUMNS: tuple[Column, ...] = ((),) * COLUMN_COUNT


@dataclass(frozen=True, slots=True)
class GameState:
    """Immutable snapshot of the board.

    Columns are stored bottom-to-top. Collected number cards only exist as the
    per-color counters in ``foundations`` (ordered like ``COLORS``).
    """

    free_cards: tuple[Optional[Card], ...] = EMPTY_FREE_CARDS
    lotus_cell: Optional[Lotus] = None
    foundations: tuple[int, ...] = (0, 0, 0)
    game_cells: tuple[Column, ...] = EMPTY_COLUMNS

    def foundation(self, color: str) -> int:
        return self.foundations[COLORS.index(color)]

    def with_foundation(self, color: str, rank: int) -> "GameState":
        counters = list(self.foundations)
        counters[COLORS.index(color)] = rank
        return replace(self, foundations=tuple(counters))

    def with_column(self, idx: int, column: Column) -> "GameState":
        cells = list(self.game_cells)
        cells[idx] = tuple(column)
        return replace(self, game_cells=tuple(cells))

    def with_free_card(self, slot: int, card: Optional[Card]) -> "GameState":
        free = list(self.free_cards)
        free[slot] = card
        return replace(self, free_cards=tuple(free))

    def top_card(self, idx: int) -> Optional[Card]:
        column = self.game_cells[idx]
        return column[-1] if column else None

    def empty_columns(self) -> list[int]:
        return [idx for idx, column in enumerate(self.game_cells) if not column]

    def empty_free_slots(self) -> list[int]:
        return [slot for slot, card in enumerate(self.free_cards) if card is None]

    def locked_dragons(self) -> int:
        return sum(1 for card in self.free_cards if is_locked(card))


def make_state(
    columns=(),
    free_cards=(),
    lotus_cell: Optional[Lotus] = None,
    green: int = 0,
    red: int = 0,
    black: int = 0,
) -> GameState:
    """Build a state from loose sequences, padding columns and free slots."""
    cells = [tuple(column) for column in columns]
    if len(cells) > COLUMN_COUNT:
        raise ValueError(f"at most {COLUMN_COUNT} columns, got {len(cells)}")
    cells.extend(() for _ in range(COLUMN_COUNT - len(cells)))

    free = list(free_cards)
    if len(free) > FREE_SLOT_COUNT:
        raise ValueError(f"at most {FREE_SLOT_COUNT} free cells, got {len(free)}")
    free.extend(None for _ in range(FREE_SLOT_COUNT - len(free)))

    return GameState(
        free_cards=tuple(free),
        lotus_cell=lotus_cell,
        foundations=(green, red, black),
        game_cells=tuple(cells),
    )


WIN_STATE = GameState(
    free_cards=(Dragon(GREEN, locked=True), Dragon(BLACK, locked=True), Dragon(RED, locked=True)),
    lotus_cell=Lotus(locked=True),
    foundations=(MAX_RANK, MAX_RANK, MAX_RANK),
    game_cells=EMPTY_COLUMNS,
)
