"""Drawing the board as an image."""

from io import BytesIO
from math import ceil
from typing import Iterator

from pydantic import BaseModel
from PIL.Image import Image
from PIL.Image import new as img_new
from PIL.ImageDraw import Draw

from halma_tg_bot.board.board import HalmaBoard
from halma_tg_bot.board.types import Color
from .annots import CellLabel
from .hexes import HexCoord, XYCoord

RGB = str
"""Color as understood by Pillow, e.g. '#FF0000'."""

DEFAULT_PALETTE: dict[str, RGB] = {
    "red": "#FF0000",
    "green": "#00FF00",
    "blue": "#0000FF",
    "none": "#000000",
    "highlight": "#FFFF00",
    "background": "#FFFFFF",
    "line": "#000000",
}

Triangle = tuple[tuple[int, int], tuple[int, int], tuple[int, int]]

POINT_TRIANGLES: list[tuple[Color, Triangle]] = [
    (Color.RED, ((4, -8), (0, -4), (4, -4))),
    (Color.RED, ((-4, 4), (0, 4), (-4, 8))),
    (Color.GREEN, ((-4, -4), (0, -4), (-4, 0))),
    (Color.GREEN, ((4, 0), (4, 4), (0, 4))),
    (Color.BLUE, ((4, -4), (8, -4), (4, 0))),
    (Color.BLUE, ((-4, 0), (-8, 4), (-4, 4))),
]
"""Star points, colored by the camp that starts or finishes there."""


def grid_lines() -> Iterator[tuple[HexCoord, HexCoord]]:
    """Segments along the three line families of the star.

    For every row index z in [-7, 7] there is one line per family; the rows
    through the points are shorter than those through the center hexagon.
    """
    for z in range(-7, 8):
        tz = abs(z)
        count = 8 + tz
        start = -4 - z
        if tz > 4:
            count = 8 - tz
        if (tz > 4) != (z < 0):
            start = -4

        yield HexCoord(root=(start, z)), HexCoord(root=(start + count, z))  # type: ignore
        yield (
            HexCoord(root=(z, -z - start)),  # type: ignore
            HexCoord(root=(z, -z - start - count)),  # type: ignore
        )
        yield (
            HexCoord(root=(-z - start, start)),  # type: ignore
            HexCoord(root=(-z - start - count, start + count)),  # type: ignore
        )


class BoardImage(BaseModel):
    """Renders a board, with optional highlights and an in-flight peg."""

    board: HalmaBoard
    palette: dict[str, RGB] = DEFAULT_PALETTE
    canvas: tuple[int, int] | None = None
    highlights: list[HexCoord] = []
    floating: tuple[XYCoord, Color] | None = None
    labels: list[CellLabel] = []

    def color_of(self, color: Color) -> RGB:
        """Palette entry for a peg color."""
        return self.palette.get(color.label, DEFAULT_PALETTE[color.label])

    def _marker_box(self, center: XYCoord) -> tuple[float, float, float, float]:
        m = self.board.marker_radius
        return (center[0] - m, center[1] - m, center[0] + m, center[1] + m)

    def _size(self) -> tuple[int, int]:
        if self.canvas is not None:
            return self.canvas
        # Fall back to twice the origin, which centers the board
        ox, oy = self.board.origin
        return ceil(2 * ox), ceil(2 * oy)

    def to_image(self) -> Image:
        """Draw everything onto a fresh RGBA image."""
        board = self.board
        img = img_new(mode="RGBA", size=self._size(), color=self.palette["background"])
        d = Draw(img)

        for color, corners in POINT_TRIANGLES:
            pts = [board.cell_to_xy(HexCoord(root=c)) for c in corners]  # type: ignore
            d.polygon(pts, fill=self.color_of(color))

        for p1, p2 in grid_lines():
            d.line(
                [board.cell_to_xy(p1), board.cell_to_xy(p2)],
                fill=self.palette["line"],
                width=2,
            )

        for coord, cell in board.cells.items():
            d.ellipse(
                self._marker_box(board.cell_to_xy(coord)),
                fill=self.color_of(cell.occupant),
                outline=self.palette["line"],
                width=2,
            )

        for coord in self.highlights:
            d.ellipse(
                self._marker_box(board.cell_to_xy(coord)),
                fill=self.palette["highlight"],
                outline=self.palette["line"],
                width=2,
            )

        if self.floating is not None:
            xy, color = self.floating
            d.ellipse(
                self._marker_box(xy),
                fill=self.color_of(color),
                outline=self.palette["line"],
                width=2,
            )

        for label in self.labels:
            label.paste_onto(img, board.cell_to_xy(label.cell))

        return img

    def to_png(self) -> bytes:
        """Draw and encode as PNG."""
        buf = BytesIO()
        self.to_image().save(buf, format="PNG")
        return buf.getvalue()
