"""Line-based text format for game states.

A layout is 11 meaningful lines; blank lines and ``#`` comments are ignored::

    # foundations: GREEN RED BLACK
    0 0 0
    -              <- lotus cell, ``-`` or ``L*``
    GD*,-,R5       <- the three free cells
    R9,B8,G7       <- eight columns, bottom to top, ``empty`` when empty
    ...

Card codes: ``G1``..``B9`` number cards, ``GD``/``RD``/``BD`` dragons, ``L``
the lotus; a trailing ``*`` marks a locked card.
"""

from __future__ import annotations

import time
from typing import Iterable, Optional

from board.cards import CODE_COLORS, COLORS, MAX_RANK, Card, Dragon, Lotus, NumberCard, card_code
from board.state import COLUMN_COUNT, FREE_SLOT_COUNT, GameState


class LayoutError(ValueError):
    """Raised when layout text cannot be decoded."""


def decode_card(code: str) -> Card:
    code = code.strip()
    locked = code.endswith("*")
    body = code[:-1] if locked else code
    if body == "L":
        return Lotus(locked=locked)
    if len(body) == 2 and body[0] in CODE_COLORS and body[1] == "D":
        return Dragon(CODE_COLORS[body[0]], locked=locked)
    if len(body) == 2 and body[0] in CODE_COLORS and body[1].isdigit() and not locked:
        rank = int(body[1])
        if 1 <= rank <= MAX_RANK:
            return NumberCard(CODE_COLORS[body[0]], rank)
    raise LayoutError(f"unknown card code: {code!r}")


def decode_column(code: str) -> tuple[Card, ...]:
    code = code.strip()
    if code == "empty":
        return ()
    return tuple(decode_card(part) for part in code.split(","))


def encode_column(column: Iterable[Card]) -> str:
    column = tuple(column)
    if len(column) == 0:
        return "empty"
    return ",".join(card.code() for card in column)


def _decode_slot(code: str) -> Optional[Card]:
    code = code.strip()
    if code == "-":
        return None
    return decode_card(code)


def encode_lines(state: GameState) -> list[str]:
    lines = [" ".join(str(state.foundation(color)) for color in COLORS)]
    lines.append(card_code(state.lotus_cell))
    lines.append(",".join(card_code(card) for card in state.free_cards))
    for column in state.game_cells:
        lines.append(encode_column(column))
    return lines


def decode_lines(lines: Iterable[str]) -> GameState:
    def _keep_line(s: str):
        return s.strip() != "" and not s.lstrip().startswith("#")

    lines = [line.strip() for line in lines if _keep_line(line)]
    expected = 3 + COLUMN_COUNT
    if len(lines) != expected:
        raise LayoutError(f"expected {expected} layout lines, got {len(lines)}")

    try:
        foundations = tuple(int(x) for x in lines[0].split())
    except ValueError as exc:
        raise LayoutError(f"bad foundation line: {lines[0]!r}") from exc
    if len(foundations) != len(COLORS) or not all(0 <= f <= MAX_RANK for f in foundations):
        raise LayoutError(f"bad foundation line: {lines[0]!r}")

    lotus = _decode_slot(lines[1])
    if lotus is not None and not (isinstance(lotus, Lotus) and lotus.locked):
        raise LayoutError(f"lotus cell only holds a locked lotus, got {lines[1]!r}")

    free_cards = tuple(_decode_slot(part) for part in lines[2].split(","))
    if len(free_cards) != FREE_SLOT_COUNT:
        raise LayoutError(f"expected {FREE_SLOT_COUNT} free cells, got {len(free_cards)}")

    columns = tuple(decode_column(line) for line in lines[3:])
    return GameState(free_cards=free_cards, lotus_cell=lotus, foundations=foundations, game_cells=columns)


def parse_layout(text: str) -> GameState:
    return decode_lines(text.splitlines())


def format_layout(state: GameState) -> str:
    return "\n".join(encode_lines(state)) + "\n"


def save_layout(state: GameState, path) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write("# date: " + time.strftime("%Y-%m-%d %H:%M:%S", time.localtime()) + "\n")
        f.write(format_layout(state))


def load_layout(path) -> GameState:
    with open(path, "r", encoding="utf-8") as f:
        return decode_lines(f.readlines())
