"""Pixel layout of the Halma board."""

from math import ceil, sqrt

from typing_extensions import Annotated
from pydantic import BaseModel, Field, field_validator

from .hexes import GRID_OFFSET, XYCoord

BOARD_HALF_WIDTH = 6
"""Largest value of `|x + y/2|` over the star, in hex widths."""


class BoardLayout(BaseModel):
    """Pixel geometry for drawing and hit-testing the board.

    The board is centered on the canvas, which defaults to the board's own
    extent plus a marker margin on every side, rounded up to whole pixels.
    """

    board_radius: Annotated[
        float, Field(gt=0, description="Hex size (circumradius) in pixels.")
    ] = 24
    marker_radius: Annotated[
        float, Field(gt=0, description="Peg marker radius in pixels.")
    ] = 6
    canvas_size: tuple[int, int] | None = None

    @field_validator("canvas_size", mode="after")
    @classmethod
    def _check_canvas(cls, v: tuple[int, int] | None) -> tuple[int, int] | None:
        """Ensure the canvas has a usable size."""
        if v is not None and (v[0] <= 0 or v[1] <= 0):
            raise ValueError(f"Canvas size must be positive, got: {v}")
        return v

    @property
    def margin(self) -> float:
        """Space kept free around the outermost marker centers."""
        return self.marker_radius + 1

    @property
    def board_extent(self) -> XYCoord:
        """Width and height spanned by the star, including margins."""
        w = self.board_radius * sqrt(3) * 2 * BOARD_HALF_WIDTH
        h = self.board_radius * 1.5 * 2 * GRID_OFFSET
        return w + 2 * self.margin, h + 2 * self.margin

    @property
    def canvas(self) -> tuple[int, int]:
        """Canvas size in whole pixels."""
        if self.canvas_size is not None:
            return self.canvas_size
        w, h = self.board_extent
        return ceil(w), ceil(h)

    @property
    def origin(self) -> XYCoord:
        """Pixel position of the board center, grid (0, 0)."""
        w, h = self.canvas
        return w / 2, h / 2
