"""Hexagonal coordinates for the Halma star."""

from math import floor, sqrt
from typing import Any, Generic, Literal, TypeVar

from typing_extensions import Annotated
from pydantic import BaseModel, RootModel, model_validator, Field, computed_field


GRID_OFFSET = 8
"""Offset between grid space (centered at 0) and data space (array indices)."""


class HexCoord(RootModel[tuple[int, int, int]]):
    """Hex coordinate definition, using cube coordinates.

    The board's grid coordinate `(x, y)` is `(q, r)`; the implied third
    coordinate is `s = -x - y`.

    https://www.redblobgames.com/grids/hexagons/#coordinates
    """

    model_config = {"frozen": True}

    root: tuple[int, int, int]

    @property
    def q(self) -> int:
        """First 'q' coordinate."""
        return self.root[0]

    @property
    def r(self) -> int:
        """Second 'r' coordinate."""
        return self.root[1]

    @property
    def s(self) -> int:
        """Third 's' coordinate."""
        return self.root[2]

    @model_validator(mode="before")
    @classmethod
    def _set_third_coord(cls, data: Any) -> Any:
        """Set third coordinate if only given two."""
        if isinstance(data, (list, tuple)):
            if len(data) == 2:
                q, r = data
                return (q, r, -(q + r))
        return data

    @model_validator(mode="after")
    def _check_values(self) -> "HexCoord":
        """Check that coordinate values are okay."""
        q, r, s = self.q, self.r, self.s
        if q + r + s != 0:
            raise ValueError(f"Imbalanced hex coords: sum({q}, {r}, {s}) != 0")
        return self

    # Comparison operations

    def __eq__(self, rhs: object) -> bool:
        if isinstance(rhs, HexCoord):
            return self.root == rhs.root
        return NotImplemented

    def __ne__(self, rhs: object) -> bool:
        if isinstance(rhs, HexCoord):
            return self.root != rhs.root
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.root)

    def __repr__(self) -> str:
        return f"HexCoord({self.q}, {self.r})"

    # Vector operations

    def __add__(self, rhs: "HexCoord") -> "HexCoord":
        """Add this delta to a coordinate (or another delta)."""
        if isinstance(rhs, HexCoord):
            return HexCoord(root=(self.q + rhs.q, self.r + rhs.r, self.s + rhs.s))
        return NotImplemented

    def __sub__(self, rhs: "HexCoord") -> "HexCoord":
        """Subtract a delta from this coordinate."""
        if isinstance(rhs, HexCoord):
            return HexCoord(root=(self.q - rhs.q, self.r - rhs.r, self.s - rhs.s))
        return NotImplemented

    def __neg__(self) -> "HexCoord":
        """Coordinate negation."""
        return HexCoord(root=(-self.q, -self.r, -self.s))

    def __mul__(self, k: int) -> "HexCoord":
        """Scale a delta by an integer factor."""
        if isinstance(k, int):
            return HexCoord(root=(self.q * k, self.r * k, self.s * k))
        return NotImplemented

    # Neighbors

    @property
    def neighbors(self) -> list["HexCoord"]:
        """Get direct neighbors of this cell.

        https://www.redblobgames.com/grids/hexagons/#neighbors
        """
        return [self + vec for vec in HEX_UNIT_VECTORS]

    @property
    def vector_length(self) -> int:
        """Length of the coord as a vector (i.e. distance from center).

        https://www.redblobgames.com/grids/hexagons/#distances
        """
        return max(abs(self.q), abs(self.r), abs(self.s))

    @classmethod
    def nearest_hex(cls, qf: float, rf: float, sf: float) -> "HexCoord":
        """Nearest coordinates.

        The component with the largest rounding error is recomputed from the
        other two, so the result always sums to zero. Halves round up.

        https://www.redblobgames.com/grids/hexagons/#rounding
        """
        q = floor(qf + 0.5)
        r = floor(rf + 0.5)
        s = floor(sf + 0.5)

        qd = abs(q - qf)
        rd = abs(r - rf)
        sd = abs(s - sf)

        if (qd > rd) and (qd > sd):
            q = -(r + s)
        elif rd > sd:
            r = -(q + s)
        else:
            s = -(q + r)
        return cls(root=(q, r, s))


HEX_UNIT_VECTORS = tuple(
    HexCoord(root=_tup)
    for _tup in [(1, 0, -1), (1, -1, 0), (0, -1, 1), (-1, 0, 1), (-1, 1, 0), (0, 1, -1)]
)
"""Vector directions in 'cube' coordinates for hexes."""


DataIdx = tuple[int, int]
"""Index into the 17x17 data-space array."""


def data_to_grid(idx: DataIdx) -> HexCoord:
    """Convert a data-space index to a grid coordinate."""
    i, j = idx
    return HexCoord(root=(i - GRID_OFFSET, j - GRID_OFFSET))  # type: ignore


def grid_to_data(coord: HexCoord) -> DataIdx:
    """Convert a grid coordinate to a data-space index."""
    return coord.q + GRID_OFFSET, coord.r + GRID_OFFSET


ObjType = TypeVar("ObjType")

XYCoord = tuple[float, float]


class HexField(BaseModel, Generic[ObjType]):
    """Hexagonal field with objects that occupy some cells."""

    model_config = {"arbitrary_types_allowed": True}  # so that ObjType can be any

    cells: dict[HexCoord, ObjType] = {}

    # Styles for conversion to pixel coords
    top_style: Literal["flat", "pointy"] = "pointy"
    scale: Annotated[float, Field(description="Size of a hexagon side.")] = 1.0
    origin: Annotated[XYCoord, Field(description="Pixel position of (0, 0).")] = (
        0.0,
        0.0,
    )
    invert_y: bool = False

    @computed_field
    @property
    def basis_qr_to_xy(self) -> tuple[tuple[float, float], tuple[float, float]]:
        """Matrix converting QR to XY coords."""
        # Basis vectors of 'q' and 'r' to 'xy' coords.
        y_sign = -1 if self.invert_y else 1
        if self.top_style == "flat":
            (qx, qy) = (1.5, sqrt(3) / 2 * y_sign)
            (rx, ry) = (0, sqrt(3) * y_sign)
        else:  # pointy
            (qx, qy) = (sqrt(3), 0 * y_sign)
            (rx, ry) = (sqrt(3) / 2, 1.5 * y_sign)
        return ((qx, qy), (rx, ry))

    @property
    def basis_xy_to_qr(self) -> tuple[tuple[float, float], tuple[float, float]]:
        """Matrix converting XY to QR coords (inverse of `basis_qr_to_xy`)."""
        y_sign = -1 if self.invert_y else 1
        if self.top_style == "flat":
            (xq, yq) = (2.0 / 3, 0 * y_sign)
            (xr, yr) = (-1.0 / 3, sqrt(3) / 3 * y_sign)
        elif self.top_style == "pointy":
            (xq, yq) = (sqrt(3) / 3, -1.0 / 3 * y_sign)
            (xr, yr) = (0, 2.0 / 3 * y_sign)
        else:
            raise ValueError(f"Unknown top_style {self.top_style!r}")
        return ((xq, yq), (xr, yr))

    def cell_to_xy(self, hexcoord: HexCoord) -> XYCoord:
        """Convert a hex coord to XY coordinates of its center.

        https://www.redblobgames.com/grids/hexagons/#hex-to-pixel
        """
        ((qx, qy), (rx, ry)) = self.basis_qr_to_xy

        qi = hexcoord.q
        ri = hexcoord.r
        xi = (qi * qx + ri * rx) * self.scale + self.origin[0]
        yi = (qi * qy + ri * ry) * self.scale + self.origin[1]
        return xi, yi

    def xy_to_cell(self, xy: XYCoord) -> HexCoord:
        """Convert XY coordinates to the nearest cell.

        The result need not be on the field; check with `in self.cells`.

        https://www.redblobgames.com/grids/hexagons/#pixel-to-hex
        """
        ((xq, yq), (xr, yr)) = self.basis_xy_to_qr

        xi = xy[0] - self.origin[0]
        yi = xy[1] - self.origin[1]
        qi = (xi * xq + yi * yq) / self.scale
        ri = (xi * xr + yi * yr) / self.scale
        return HexCoord.nearest_hex(qi, ri, -(qi + ri))

    def to_xy(self) -> dict[XYCoord, ObjType]:
        """Convert cells to XY coordinates (of their centers)."""
        res: dict[XYCoord, ObjType] = {}
        for hexcoord, obj in self.cells.items():
            res[self.cell_to_xy(hexcoord)] = obj
        return res
