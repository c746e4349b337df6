"""Session controller: owns the board and talks to the game server.

All methods are synchronous and meant to be called from a single event loop.
Moving a peg goes through three states:

    IDLE --lift--> DRAGGING --valid drop--> AWAITING_CONFIRMATION --> IDLE
                       \\--invalid drop / abort--> IDLE

While DRAGGING the peg is off the board (its origin is empty). Every path out
of DRAGGING either puts it back on its origin or on exactly one destination.
"""

import logging
from enum import Enum
from typing import Callable

from pydantic import BaseModel

from halma_tg_bot.board.board import HalmaBoard
from halma_tg_bot.board.moves import legal_destinations
from halma_tg_bot.board.types import Color
from halma_tg_bot.map.hexes import HexCoord, XYCoord
from halma_tg_bot.map.layout import BoardLayout
from .protocol import (
    GameInfo,
    HalmaMessage,
    MessageType,
    credentials,
    game_request,
    move_request,
    plain_request,
)

logger = logging.getLogger(__name__)

SendFunc = Callable[[HalmaMessage], None]


class DragState(str, Enum):
    """Where the local player is in making a move."""

    IDLE = "idle"
    DRAGGING = "dragging"
    AWAITING_CONFIRMATION = "awaiting_confirmation"


class DropOutcome(str, Enum):
    """Result of dropping a lifted peg."""

    MOVED = "moved"
    NOT_DRAGGING = "not_dragging"
    OFF_BOARD = "off_board"
    NOT_REACHABLE = "not_reachable"
    NOT_YOUR_TURN = "not_your_turn"
    WRONG_COLOR = "wrong_color"


class Drag(BaseModel):
    """A peg in flight."""

    origin: HexCoord
    peg: Color
    destinations: list[HexCoord]
    offset: XYCoord = (0.0, 0.0)


class PendingMove(BaseModel):
    """A move sent to the server and not yet confirmed."""

    src: HexCoord
    dst: HexCoord
    peg: Color


class SessionController(object):
    """Client-side game state and the rules for changing it."""

    def __init__(
        self,
        send: SendFunc,
        board: HalmaBoard | None = None,
        layout: BoardLayout | None = None,
    ) -> None:
        self.send = send
        self.layout = layout if layout is not None else BoardLayout()
        self.board = board if board is not None else HalmaBoard.generate(self.layout)
        # Player / game
        self.player_name: str | None = None
        self.logged_in = False
        self.game_id: int | None = None
        self.games: dict[int, GameInfo] = {}
        self.me = Color.NONE
        self.current = Color.NONE
        # Moves
        self.state = DragState.IDLE
        self.drag: Drag | None = None
        self.pending: PendingMove | None = None

    # Read access

    @property
    def destinations(self) -> list[HexCoord]:
        """Legal destinations of the peg in flight (empty when not dragging)."""
        if self.drag is None:
            return []
        return list(self.drag.destinations)

    @property
    def my_turn(self) -> bool:
        return self.me != Color.NONE and self.current == self.me

    def movable_pegs(self) -> list[HexCoord]:
        """Local player's pegs that have somewhere to go."""
        if self.me == Color.NONE:
            return []
        return [
            coord
            for coord in self.board.pegs(self.me)
            if legal_destinations(self.board, coord)
        ]

    def reset_board(self) -> None:
        """Replace the board with a fresh one, dropping any move in progress."""
        self.board = HalmaBoard.generate(self.layout)
        self.state = DragState.IDLE
        self.drag = None
        self.pending = None

    # Lifting and dropping

    def lift(self, coord: HexCoord, offset: XYCoord = (0.0, 0.0)) -> bool:
        """Pick up the peg at `coord`. Returns whether a drag started."""
        if self.state != DragState.IDLE:
            logger.info(f"Can't lift a peg while {self.state.value}")
            return False
        if not self.board.exists(coord) or self.board.is_empty(coord):
            return False
        peg = self.board.lift(coord)
        self.drag = Drag(
            origin=coord,
            peg=peg,
            destinations=legal_destinations(self.board, coord),
            offset=offset,
        )
        self.state = DragState.DRAGGING
        return True

    def lift_at_pixel(self, xy: XYCoord) -> bool:
        """Pick up the peg under the pointer, if the pointer is on its marker."""
        coord = self.board.xy_to_cell(xy)
        if not self.board.exists(coord) or self.board.is_empty(coord):
            return False
        cx, cy = self.board.cell_to_xy(coord)
        offset = (cx - xy[0], cy - xy[1])
        m = self.board.marker_radius
        if offset[0] * offset[0] + offset[1] * offset[1] > m * m:
            return False
        return self.lift(coord, offset=offset)

    def drop(self, coord: HexCoord) -> DropOutcome:
        """Drop the peg in flight on `coord`.

        Only a drop that sends a move leaves the peg off its origin.
        """
        drag = self.drag
        if self.state != DragState.DRAGGING or drag is None:
            return DropOutcome.NOT_DRAGGING

        if not self.board.exists(coord):
            outcome = DropOutcome.OFF_BOARD
        elif not self.my_turn:
            outcome = DropOutcome.NOT_YOUR_TURN
        elif drag.peg != self.me:
            outcome = DropOutcome.WRONG_COLOR
        elif coord not in drag.destinations:
            outcome = DropOutcome.NOT_REACHABLE
        else:
            outcome = DropOutcome.MOVED

        if outcome != DropOutcome.MOVED:
            logger.info(f"Drop on {coord!r} refused: {outcome.value}")
            self.abort()
            return outcome

        self.board.place(coord, drag.peg)
        self.pending = PendingMove(src=drag.origin, dst=coord, peg=drag.peg)
        self.drag = None
        self.state = DragState.AWAITING_CONFIRMATION
        self.send(move_request(drag.origin, coord))
        # The server ignores illegal moves; the turn reply then arrives unconfirmed
        self.request_turn()
        return outcome

    def drop_at_pixel(self, xy: XYCoord) -> DropOutcome:
        """Drop the peg in flight where the pointer is."""
        if self.drag is None:
            return DropOutcome.NOT_DRAGGING
        dx, dy = self.drag.offset
        return self.drop(self.board.xy_to_cell((xy[0] + dx, xy[1] + dy)))

    def abort(self) -> None:
        """Put the peg in flight back where it came from."""
        if self.drag is not None:
            self.board.place(self.drag.origin, self.drag.peg)
        self.drag = None
        if self.state == DragState.DRAGGING:
            self.state = DragState.IDLE

    def _rollback_pending(self) -> None:
        pending = self.pending
        if pending is None:
            return
        if self.board.occupant(pending.dst) == pending.peg:
            self.board.place(pending.dst, Color.NONE)
        self.board.place(pending.src, pending.peg)
        self.pending = None

    def resync(self) -> None:
        """Drop any local move in progress and ask for the authoritative board."""
        self.abort()
        self._rollback_pending()
        self.state = DragState.IDLE
        self.request_fields()

    # Inbound

    def handle_message(self, message: HalmaMessage) -> None:
        """Apply a message received from the server."""
        match message.type:
            case MessageType.LOGIN:
                self._on_login(message)
            case MessageType.GAME_INFO:
                self._on_game_info(message)
            case MessageType.CHANGE_GAME:
                self._on_change_game(message)
            case MessageType.FIELD_INFO:
                self._on_field_info(message)
            case MessageType.TURN_INFO:
                self._on_turn_info(message)
            case MessageType.MOVE:
                self._on_move(message)
            case _:
                logger.warning(f"Ignoring unexpected message type: {message.type!r}")

    def _abort_stale_drag(self) -> None:
        # Destinations were computed on the old board
        if self.state == DragState.DRAGGING:
            logger.info("Board changed during a drag, putting the peg back")
            self.abort()

    def _confirm_pending(self) -> None:
        if self.state == DragState.AWAITING_CONFIRMATION:
            self.pending = None
            self.state = DragState.IDLE

    def _on_login(self, message: HalmaMessage) -> None:
        if message.player is None:
            return
        self.logged_in = message.player.ok
        if self.logged_in:
            self.player_name = message.player.name
            logger.info(f"Logged in as {self.player_name!r}")
            self.refresh_games()
        else:
            logger.warning(f"Login failed for {message.player.name!r}")

    def _on_game_info(self, message: HalmaMessage) -> None:
        for game in message.games or []:
            self.games[game.id] = game

    def _on_change_game(self, message: HalmaMessage) -> None:
        if message.game is None:
            return
        self.reset_board()
        self.game_id = message.game.id
        self.me = message.game.player
        self.current = message.game.current_player
        logger.info(
            f"Now in game {self.game_id} as {self.me.label},"
            f" {self.current.label} to move"
        )
        self.request_fields()

    def _on_field_info(self, message: HalmaMessage) -> None:
        self._abort_stale_drag()
        updates = [(f.pos.to_coord(), f.pin) for f in message.fields or []]
        self.board.apply_field_sync(updates)
        self._confirm_pending()

    def _on_turn_info(self, message: HalmaMessage) -> None:
        if message.turn is None:
            return
        if self.state == DragState.AWAITING_CONFIRMATION:
            # Turn moved on without our move being applied
            logger.warning("Move was not confirmed by the server, rolling back")
            self.resync()
        self.current = message.turn.current_player

    def _on_move(self, message: HalmaMessage) -> None:
        if message.move is None:
            return
        src, dst = message.move.src.to_coord(), message.move.dst.to_coord()
        self._abort_stale_drag()
        pending = self.pending
        if pending is not None and (pending.src, pending.dst) == (src, dst):
            # Our own move, already on the board
            self._confirm_pending()
            return
        self.board.apply_move(src, dst)
        self._confirm_pending()

    # Outbound

    def register(self, name: str, password: str) -> None:
        self.send(credentials(MessageType.REGISTER, name, password))

    def login(self, name: str, password: str) -> None:
        self.send(credentials(MessageType.LOGIN, name, password))

    def new_game(self) -> None:
        self.send(plain_request(MessageType.NEW_GAME))

    def join_game(self, game_id: int) -> None:
        self.send(game_request(MessageType.JOIN_GAME, game_id))

    def change_game(self, game_id: int) -> None:
        self.send(game_request(MessageType.CHANGE_GAME, game_id))

    def refresh_games(self) -> None:
        self.send(plain_request(MessageType.GAME_INFO))

    def request_fields(self) -> None:
        self.send(plain_request(MessageType.FIELD_INFO))

    def request_turn(self) -> None:
        self.send(plain_request(MessageType.TURN_INFO))
