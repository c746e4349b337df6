"""Domain types for the Halma board."""

from enum import IntEnum

from pydantic import BaseModel


class Color(IntEnum):
    """Peg and camp color.

    Values are the ones used on the wire.
    """

    NONE = 0
    RED = 1
    GREEN = 2
    BLUE = 3

    @property
    def label(self) -> str:
        """Human-readable name."""
        return self.name.lower()


PLAYER_COLORS: tuple[Color, ...] = (Color.RED, Color.GREEN, Color.BLUE)
"""Colors with an active starting camp."""


class Cell(BaseModel):
    """A single board cell.

    `camp` is fixed once the board is generated; `occupant` follows the game.
    """

    camp: Color = Color.NONE
    occupant: Color = Color.NONE

    @property
    def is_empty(self) -> bool:
        return self.occupant == Color.NONE
