"""Board model: which cells exist, who camps where, and who sits on them."""

import logging
from typing import Iterable

from halma_tg_bot.map.hexes import GRID_OFFSET, HexCoord, HexField
from halma_tg_bot.map.layout import BoardLayout
from .types import Cell, Color

logger = logging.getLogger(__name__)

CAMP_DEPTH = 4
"""Distance from the center at which the star points begin."""

BOARD_CELLS = 121
"""Number of cells on the star."""

CAMP_CORRECTIONS: dict[tuple[int, int], Color] = {
    (0, -4): Color.RED,
    (-4, 0): Color.BLUE,
    (-4, 4): Color.BLUE,
    (0, 4): Color.GREEN,
    (4, 0): Color.GREEN,
    (4, -4): Color.RED,
}
"""Corner cells where two points meet; the generic camp rule can't place them."""


def in_star(coord: HexCoord) -> bool:
    """Check whether a grid coordinate lies on the star-shaped board."""
    tu, tv, tw = abs(coord.q), abs(coord.r), abs(coord.s)
    big, small = GRID_OFFSET, CAMP_DEPTH
    return (
        (tu <= big and tv <= small and tw <= small)
        or (tu <= small and tv <= big and tw <= small)
        or (tu <= small and tv <= small and tw <= big)
    )


def starting_camp(coord: HexCoord) -> Color:
    """Get the starting camp of a cell by the generic point rule.

    Only three of the six points are camps: the `v < 0`, `w < 0` and `u < 0`
    points. The opposite points stay neutral. Corner cells where two points
    touch come out as NONE here; see `CAMP_CORRECTIONS`.
    """
    u, v, w = coord.q, coord.r, coord.s
    tu, tv, tw = abs(u), abs(v), abs(w)

    if (tu + tv + tw) / 2 < CAMP_DEPTH:
        return Color.NONE
    elif tv >= CAMP_DEPTH and tv > tu and tv > tw:
        return Color.RED if v < 0 else Color.NONE
    elif tw >= CAMP_DEPTH and tw > tv and tw > tu:
        return Color.GREEN if w < 0 else Color.NONE
    elif tu >= CAMP_DEPTH and tu > tv and tu > tw:
        return Color.BLUE if u < 0 else Color.NONE
    return Color.NONE


class HalmaBoard(HexField[Cell]):
    """The Stern-Halma board, with pixel geometry for a pointy-top layout."""

    marker_radius: float = 6

    @classmethod
    def generate(cls, layout: BoardLayout | None = None) -> "HalmaBoard":
        """Create the starting board: every camp full, everything else empty."""
        if layout is None:
            layout = BoardLayout()
        cells: dict[HexCoord, Cell] = {}
        for u in range(-GRID_OFFSET, GRID_OFFSET + 1):
            for v in range(-GRID_OFFSET, GRID_OFFSET + 1):
                coord = HexCoord(root=(u, v, -u - v))
                if not in_star(coord):
                    continue
                camp = starting_camp(coord)
                cells[coord] = Cell(camp=camp, occupant=camp)
        for (u, v), camp in CAMP_CORRECTIONS.items():
            cells[HexCoord(root=(u, v, -u - v))] = Cell(camp=camp, occupant=camp)
        return cls(
            cells=cells,
            top_style="pointy",
            scale=layout.board_radius,
            origin=layout.origin,
            marker_radius=layout.marker_radius,
        )

    # Lookups

    def exists(self, coord: HexCoord) -> bool:
        """Check whether the cell is on the board."""
        return coord in self.cells

    def get(self, coord: HexCoord) -> Cell | None:
        """Get a cell, or None if it's off the board."""
        return self.cells.get(coord)

    def occupant(self, coord: HexCoord) -> Color:
        """Get the peg color at a cell (NONE if empty or off the board)."""
        cell = self.cells.get(coord)
        if cell is None:
            return Color.NONE
        return cell.occupant

    def is_empty(self, coord: HexCoord) -> bool:
        """Check that the cell exists and has no peg."""
        cell = self.cells.get(coord)
        return cell is not None and cell.is_empty

    def camp_cells(self, color: Color) -> list[HexCoord]:
        """Cells belonging to a camp."""
        return [c for c, cell in self.cells.items() if cell.camp == color]

    def pegs(self, color: Color) -> list[HexCoord]:
        """Cells occupied by pegs of a color."""
        return [c for c, cell in self.cells.items() if cell.occupant == color]

    # Mutations

    def lift(self, coord: HexCoord) -> Color:
        """Take the peg off a cell and return its color."""
        cell = self.cells[coord]
        color = cell.occupant
        cell.occupant = Color.NONE
        return color

    def place(self, coord: HexCoord, color: Color) -> None:
        """Put a peg (or nothing) on a cell."""
        self.cells[coord].occupant = color

    def apply_field_sync(self, updates: Iterable[tuple[HexCoord, Color]]) -> int:
        """Apply occupant updates in order. Returns how many were applied."""
        n_applied = 0
        for coord, color in updates:
            if coord not in self.cells:
                logger.warning(f"Ignoring field update off the board: {coord!r}")
                continue
            self.cells[coord].occupant = Color(color)
            n_applied += 1
        return n_applied

    def apply_move(self, src: HexCoord, dst: HexCoord) -> None:
        """Move whatever sits on `src` to `dst`, without checking legality."""
        if src not in self.cells or dst not in self.cells:
            logger.warning(f"Ignoring move off the board: {src!r} -> {dst!r}")
            return
        self.cells[dst].occupant = self.cells[src].occupant
        self.cells[src].occupant = Color.NONE
