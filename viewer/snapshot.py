from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

from board.cards import COLORS, NumberCard, is_dragon, is_lotus
from board.state import GameState

SIZE_W, SIZE_H = 16 * 70, 16 * 50

SIDE_MARGIN = SIZE_W * 0.1
CARD_W = SIZE_W * 0.08
CARD_MARGIN = SIZE_W * 0.01
TOP_MARGIN = SIZE_H * 0.1
CARD_H = SIZE_H * 0.2
ROW_GUTTER = SIZE_H * 0.1
TEXT_OFFSET = (SIZE_W * 0.004, SIZE_H * 0.01)
DEPTH_OFFSET = SIZE_H * 0.033

TABLE_FILL = (0, 100, 0)
CARD_FILL = (255, 255, 255)
CARD_OUTLINE = (0, 0, 0)
SLOT_OUTLINE = (200, 230, 200)
LOCKED_FILL = (200, 200, 200)
INK = {
    "GREEN": (22, 120, 40),
    "RED": (190, 40, 40),
    "BLACK": (20, 20, 20),
}
DRAGON_LABELS = {"GREEN": "GD", "RED": "RD", "BLACK": "BD"}


def get_font(size):
    for name in ("DejaVuSans-Bold.ttf", "Arial.ttf", "Helvetica.ttc"):
        try:
            return ImageFont.truetype(name, size=size)
        except OSError:
            continue
    return ImageFont.load_default()


def _label(card):
    if is_dragon(card):
        return DRAGON_LABELS[card.color], INK[card.color]
    if is_lotus(card):
        return "LO", (150, 60, 150)
    return str(card.rank), INK[card.color]


def _draw_card(draw, font, card, depth, x, y):
    y += depth * DEPTH_OFFSET
    locked = getattr(card, "locked", False)
    draw.rounded_rectangle(
        (x, y, x + CARD_W, y + CARD_H),
        radius=5,
        fill=LOCKED_FILL if locked else CARD_FILL,
        outline=CARD_OUTLINE,
    )
    text, color = _label(card)
    draw.text((x + TEXT_OFFSET[0], y + TEXT_OFFSET[1]), text, fill=color, font=font)
    # mirrored corner
    width = draw.textlength(text, font=font)
    draw.text((x + CARD_W - TEXT_OFFSET[0] - width, y + CARD_H - TEXT_OFFSET[1] - 16), text, fill=color, font=font)


def _draw_cell(draw, font, cards, col, row):
    x = SIDE_MARGIN + col * (CARD_W + CARD_MARGIN)
    y = TOP_MARGIN + row * CARD_H + row * ROW_GUTTER
    if not cards:
        draw.rectangle((x, y, x + CARD_W, y + CARD_H), outline=SLOT_OUTLINE)
        return
    for depth, card in enumerate(cards):
        _draw_card(draw, font, card, depth, x, y)


def render_state(state: GameState) -> Image.Image:
    """Draw the board: free cells, lotus cell and foundations on top, tableau below."""
    img = Image.new("RGB", (int(SIZE_W), int(SIZE_H)), TABLE_FILL)
    d = ImageDraw.Draw(img)
    font = get_font(16)

    for slot, card in enumerate(state.free_cards):
        _draw_cell(d, font, [card] if card is not None else [], slot, 0)

    _draw_cell(d, font, [state.lotus_cell] if state.lotus_cell is not None else [], 3.5, 0)

    for offset, color in enumerate(COLORS):
        rank = state.foundation(color)
        _draw_cell(d, font, [NumberCard(color, rank)] if rank > 0 else [], 5 + offset, 0)

    for col, column in enumerate(state.game_cells):
        _draw_cell(d, font, list(column), col, 1)
    return img


class FrameRecorder:
    """Search observer that saves every reported state as a numbered PNG."""

    def __init__(self, out_dir, max_frames=None, prefix="frame"):
        self.out_dir = Path(out_dir)
        self.max_frames = max_frames
        self.prefix = prefix
        self.frames: list[Path] = []

    def __call__(self, state: GameState):
        if self.max_frames is not None and len(self.frames) >= self.max_frames:
            return
        self.out_dir.mkdir(parents=True, exist_ok=True)
        path = self.out_dir / f"{self.prefix}_{len(self.frames):05d}.png"
        render_state(state).save(path)
        self.frames.append(path)
