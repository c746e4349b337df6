"""Tests for hex coordinates and the grid <-> pixel projection."""

from math import sqrt

import pytest
from pydantic import ValidationError

from halma_tg_bot.board.board import HalmaBoard
from halma_tg_bot.map.hexes import (
    GRID_OFFSET,
    HEX_UNIT_VECTORS,
    HexCoord,
    HexField,
    data_to_grid,
    grid_to_data,
)


def hc(x: int, y: int) -> HexCoord:
    return HexCoord(root=(x, y))  # type: ignore


class TestHexCoord:
    """Basic coordinate behavior."""

    def test_two_tuple_fills_third(self) -> None:
        coord = hc(2, -5)
        assert (coord.q, coord.r, coord.s) == (2, -5, 3)

    def test_imbalanced_rejected(self) -> None:
        with pytest.raises(ValidationError):
            HexCoord(root=(1, 1, 1))

    def test_equality_and_hash(self) -> None:
        assert hc(1, 2) == HexCoord(root=(1, 2, -3))
        assert hc(1, 2) != hc(2, 1)
        assert len({hc(1, 2), hc(1, 2), hc(2, 1)}) == 2

    def test_arithmetic(self) -> None:
        assert hc(1, 2) + hc(-3, 1) == hc(-2, 3)
        assert hc(1, 2) - hc(1, 2) == hc(0, 0)
        assert hc(1, -1) * 2 == hc(2, -2)
        assert -hc(1, -1) == hc(-1, 1)

    def test_neighbors(self) -> None:
        center = hc(3, -1)
        nbrs = center.neighbors
        assert len(set(nbrs)) == 6
        assert all((n - center).vector_length == 1 for n in nbrs)

    def test_unit_vectors_come_in_opposite_pairs(self) -> None:
        assert set(HEX_UNIT_VECTORS) == {-v for v in HEX_UNIT_VECTORS}


class TestNearestHex:
    """Rounding fractional cube coordinates."""

    def test_exact(self) -> None:
        assert HexCoord.nearest_hex(2.0, -3.0, 1.0) == hc(2, -3)

    def test_near_center(self) -> None:
        assert HexCoord.nearest_hex(0.2, 0.1, -0.3) == hc(0, 0)

    def test_largest_error_recomputed(self) -> None:
        # q rounds the furthest, so it's derived from r and s
        assert HexCoord.nearest_hex(0.45, 0.3, -0.75) == hc(1, 0)

    def test_halves_round_up(self) -> None:
        assert HexCoord.nearest_hex(0.5, 0.0, -0.5) == hc(1, 0)
        assert HexCoord.nearest_hex(0.0, 0.5, -0.5) == hc(0, 1)
        assert HexCoord.nearest_hex(-0.5, 0.5, 0.0) == hc(0, 0)

    def test_dense_grid_always_balanced(self) -> None:
        steps = [i / 7 for i in range(-70, 71)]
        for qf in steps:
            for rf in steps[::5]:
                coord = HexCoord.nearest_hex(qf, rf, -qf - rf)
                assert coord.q + coord.r + coord.s == 0
                assert abs(coord.q - qf) <= 1
                assert abs(coord.r - rf) <= 1


class TestDataSpace:
    """Data-space (array index) <-> grid."""

    def test_center(self) -> None:
        assert data_to_grid((GRID_OFFSET, GRID_OFFSET)) == hc(0, 0)
        assert grid_to_data(hc(0, 0)) == (8, 8)

    def test_corners(self) -> None:
        assert data_to_grid((0, 16)) == hc(-8, 8)
        assert grid_to_data(hc(8, -8)) == (16, 0)

    def test_round_trip(self) -> None:
        for i in range(17):
            for j in range(17):
                assert grid_to_data(data_to_grid((i, j))) == (i, j)


class TestPixelProjection:
    """Grid <-> pixel on the board's pointy-top layout."""

    def test_center_at_origin(self, board: HalmaBoard) -> None:
        assert board.cell_to_xy(hc(0, 0)) == pytest.approx(board.origin)

    def test_basis(self, board: HalmaBoard) -> None:
        ox, oy = board.origin
        size = board.scale
        assert board.cell_to_xy(hc(1, 0)) == pytest.approx((ox + size * sqrt(3), oy))
        assert board.cell_to_xy(hc(0, 1)) == pytest.approx(
            (ox + size * sqrt(3) / 2, oy + size * 1.5)
        )

    def test_round_trip(self, board: HalmaBoard) -> None:
        for x in range(-8, 9):
            for y in range(-8, 9):
                coord = hc(x, y)
                assert board.xy_to_cell(board.cell_to_xy(coord)) == coord

    def test_near_center_snaps(self, board: HalmaBoard) -> None:
        wobble = board.scale * 0.4
        for coord in board.cells:
            cx, cy = board.cell_to_xy(coord)
            for dx, dy in [(wobble, 0), (0, -wobble), (-wobble, wobble / 2)]:
                assert board.xy_to_cell((cx + dx, cy + dy)) == coord

    def test_dense_pixels_balanced(self, board: HalmaBoard) -> None:
        x = -50.0
        while x < 700:
            y = -50.0
            while y < 700:
                coord = board.xy_to_cell((x, y))
                assert coord.q + coord.r + coord.s == 0
                y += 3.7
            x += 5.3

    def test_flat_round_trip(self) -> None:
        field = HexField[int](top_style="flat", scale=10, origin=(100, 100))
        for x in range(-5, 6):
            for y in range(-5, 6):
                coord = hc(x, y)
                assert field.xy_to_cell(field.cell_to_xy(coord)) == coord
