"""Move legality: where can a peg go in one turn?"""

from collections import deque

from halma_tg_bot.map.hexes import HEX_UNIT_VECTORS, HexCoord
from .board import HalmaBoard


def legal_destinations(board: HalmaBoard, origin: HexCoord) -> list[HexCoord]:
    """All cells a peg at `origin` can reach in one move.

    A move is either a single step into an empty neighbor of the origin, or a
    chain of jumps, each over an occupied neighbor into the empty cell right
    behind it. Jump chains may continue from every landing cell.

    The origin is expected to be emptied already if its peg was lifted; it is
    never returned. Results are in discovery order, without duplicates.
    """
    possible: list[HexCoord] = []
    visited: set[HexCoord] = {origin}
    todo: deque[HexCoord] = deque([origin])

    # Simple steps only from where the peg starts
    for vec in HEX_UNIT_VECTORS:
        step = origin + vec
        if board.is_empty(step) and step not in visited:
            visited.add(step)
            possible.append(step)

    while todo:
        pos = todo.popleft()
        for vec in HEX_UNIT_VECTORS:
            over = pos + vec
            land = pos + vec * 2
            if land in visited:
                continue
            if not board.exists(over) or board.is_empty(over):
                continue
            if not board.is_empty(land):
                continue
            visited.add(land)
            possible.append(land)
            todo.append(land)

    return possible


def is_legal_move(board: HalmaBoard, origin: HexCoord, target: HexCoord) -> bool:
    """Check whether `target` is reachable from `origin` in one move."""
    return target in legal_destinations(board, origin)
