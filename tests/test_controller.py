"""Tests for the session controller and its drag state machine."""

import pytest

from halma_tg_bot.board.types import Color
from halma_tg_bot.map.hexes import HexCoord
from halma_tg_bot.session.controller import DragState, DropOutcome, SessionController
from halma_tg_bot.session.protocol import (
    FieldInfo,
    GameInfo,
    HalmaMessage,
    MessageType,
    MoveMessage,
    PlayerMessage,
    Position,
    TurnMessage,
)


def hc(x: int, y: int) -> HexCoord:
    return HexCoord(root=(x, y))  # type: ignore


def field_info(*updates: tuple[HexCoord, Color]) -> HalmaMessage:
    return HalmaMessage(
        type=MessageType.FIELD_INFO,
        fields=[FieldInfo(pos=Position.from_coord(c), pin=p) for c, p in updates],
    )


def turn_info(color: Color) -> HalmaMessage:
    return HalmaMessage(type=MessageType.TURN_INFO, turn=TurnMessage(current_player=color))


SRC = hc(2, -4)
DST = hc(2, -3)


class TestLift:
    def test_lift(self, controller: SessionController) -> None:
        assert controller.lift(SRC)
        assert controller.state == DragState.DRAGGING
        assert controller.board.is_empty(SRC)
        assert set(controller.destinations) == {hc(1, -3), hc(2, -3)}

    def test_lift_nothing(self, controller: SessionController) -> None:
        assert not controller.lift(hc(0, 0))
        assert not controller.lift(hc(0, -8))
        assert controller.state == DragState.IDLE
        assert controller.destinations == []

    def test_lift_twice(self, controller: SessionController) -> None:
        assert controller.lift(SRC)
        assert not controller.lift(hc(1, -4))
        assert controller.board.occupant(hc(1, -4)) == Color.RED

    def test_lift_other_color(self, controller: SessionController) -> None:
        assert controller.lift(hc(2, 2))
        assert controller.drag is not None
        assert controller.drag.peg == Color.GREEN


class TestAbort:
    def test_abort_restores_board(self, controller: SessionController) -> None:
        before = controller.board.model_copy(deep=True)
        controller.lift(SRC)
        controller.abort()
        assert controller.board == before
        assert controller.state == DragState.IDLE
        assert controller.drag is None

    def test_abort_when_idle(self, controller: SessionController) -> None:
        before = controller.board.model_copy(deep=True)
        controller.abort()
        assert controller.board == before
        assert controller.state == DragState.IDLE


class TestDrop:
    def test_valid(self, controller: SessionController, sent: list) -> None:
        controller.lift(SRC)
        assert controller.drop(DST) == DropOutcome.MOVED
        assert controller.state == DragState.AWAITING_CONFIRMATION
        assert controller.board.is_empty(SRC)
        assert controller.board.occupant(DST) == Color.RED
        assert controller.pending is not None
        assert [m.type for m in sent] == [MessageType.MOVE, MessageType.TURN_INFO]
        msg = sent[0]
        assert msg.move.src.to_coord() == SRC
        assert msg.move.dst.to_coord() == DST

    def test_not_dragging(self, controller: SessionController, sent: list) -> None:
        assert controller.drop(DST) == DropOutcome.NOT_DRAGGING
        assert sent == []

    def _refused(self, controller: SessionController, sent: list, dst: HexCoord):
        before = controller.board.model_copy(deep=True)
        controller.lift(SRC)
        outcome = controller.drop(dst)
        assert controller.board == before
        assert controller.state == DragState.IDLE
        assert sent == []
        return outcome

    def test_unreachable(self, controller: SessionController, sent: list) -> None:
        assert self._refused(controller, sent, hc(0, 0)) == DropOutcome.NOT_REACHABLE

    def test_occupied(self, controller: SessionController, sent: list) -> None:
        assert self._refused(controller, sent, hc(1, -4)) == DropOutcome.NOT_REACHABLE

    def test_on_origin(self, controller: SessionController, sent: list) -> None:
        assert self._refused(controller, sent, SRC) == DropOutcome.NOT_REACHABLE

    def test_off_board(self, controller: SessionController, sent: list) -> None:
        assert self._refused(controller, sent, hc(0, -8)) == DropOutcome.OFF_BOARD

    def test_not_your_turn(self, controller: SessionController, sent: list) -> None:
        controller.current = Color.GREEN
        assert self._refused(controller, sent, DST) == DropOutcome.NOT_YOUR_TURN

    def test_wrong_color(self, controller: SessionController, sent: list) -> None:
        before = controller.board.model_copy(deep=True)
        controller.lift(hc(2, 2))
        assert controller.drop(hc(1, 2)) == DropOutcome.WRONG_COLOR
        assert controller.board == before
        assert sent == []


class TestPixels:
    def test_lift_and_drop(self, controller: SessionController, sent: list) -> None:
        board = controller.board
        sx, sy = board.cell_to_xy(SRC)
        assert controller.lift_at_pixel((sx + 2, sy + 1))
        assert controller.drag is not None
        assert controller.drag.offset == pytest.approx((-2, -1))
        dx, dy = board.cell_to_xy(DST)
        assert controller.drop_at_pixel((dx + 2, dy + 1)) == DropOutcome.MOVED
        assert board.occupant(DST) == Color.RED

    def test_miss_marker(self, controller: SessionController) -> None:
        board = controller.board
        sx, sy = board.cell_to_xy(SRC)
        assert not controller.lift_at_pixel((sx + board.marker_radius + 1, sy))
        assert controller.state == DragState.IDLE

    def test_empty_cell(self, controller: SessionController) -> None:
        assert not controller.lift_at_pixel(controller.board.cell_to_xy(hc(0, 0)))

    def test_drop_without_drag(self, controller: SessionController) -> None:
        assert controller.drop_at_pixel((0, 0)) == DropOutcome.NOT_DRAGGING


class TestConfirmation:
    def test_field_info_confirms(self, controller: SessionController) -> None:
        controller.lift(SRC)
        controller.drop(DST)
        controller.handle_message(field_info((SRC, Color.NONE), (DST, Color.RED)))
        assert controller.state == DragState.IDLE
        assert controller.pending is None
        controller.handle_message(turn_info(Color.GREEN))
        assert controller.current == Color.GREEN
        assert controller.board.occupant(DST) == Color.RED

    def test_move_confirms(self, controller: SessionController) -> None:
        controller.lift(SRC)
        controller.drop(DST)
        controller.handle_message(
            HalmaMessage(
                type=MessageType.MOVE,
                move=MoveMessage(src=Position.from_coord(SRC), dst=Position.from_coord(DST)),
            )
        )
        assert controller.state == DragState.IDLE
        assert controller.board.occupant(DST) == Color.RED
        assert controller.board.is_empty(SRC)

    def test_other_players_move(self, controller: SessionController) -> None:
        controller.handle_message(
            HalmaMessage(
                type=MessageType.MOVE,
                move=MoveMessage(
                    src=Position.from_coord(hc(2, 2)), dst=Position.from_coord(hc(1, 2))
                ),
            )
        )
        assert controller.board.is_empty(hc(2, 2))
        assert controller.board.occupant(hc(1, 2)) == Color.GREEN

    def test_turn_without_confirmation_rolls_back(
        self, controller: SessionController, sent: list
    ) -> None:
        before = controller.board.model_copy(deep=True)
        controller.lift(SRC)
        controller.drop(DST)
        sent.clear()
        controller.handle_message(turn_info(Color.GREEN))
        assert controller.board == before
        assert controller.state == DragState.IDLE
        assert controller.current == Color.GREEN
        assert [m.type for m in sent] == [MessageType.FIELD_INFO]

    def test_ignored_move_rolls_back(
        self, controller: SessionController, sent: list
    ) -> None:
        # The server drops illegal moves silently and only answers the turn request
        before = controller.board.model_copy(deep=True)
        controller.lift(SRC)
        controller.drop(DST)
        assert sent[-1].type == MessageType.TURN_INFO
        sent.clear()
        controller.handle_message(turn_info(Color.RED))
        assert controller.board == before
        assert controller.state == DragState.IDLE
        assert controller.pending is None
        assert [m.type for m in sent] == [MessageType.FIELD_INFO]
        assert controller.lift(hc(1, -4))

    def test_accepted_move_survives_turn_reply(
        self, controller: SessionController
    ) -> None:
        controller.lift(SRC)
        controller.drop(DST)
        controller.handle_message(field_info((SRC, Color.NONE), (DST, Color.RED)))
        controller.handle_message(turn_info(Color.GREEN))
        controller.handle_message(turn_info(Color.GREEN))
        assert controller.state == DragState.IDLE
        assert controller.board.occupant(DST) == Color.RED
        assert controller.board.is_empty(SRC)

    def test_field_info_during_drag(self, controller: SessionController) -> None:
        controller.lift(SRC)
        controller.handle_message(field_info((hc(0, 0), Color.BLUE)))
        assert controller.state == DragState.IDLE
        assert controller.board.occupant(SRC) == Color.RED
        assert controller.board.occupant(hc(0, 0)) == Color.BLUE

    def test_resync(self, controller: SessionController, sent: list) -> None:
        controller.lift(SRC)
        controller.resync()
        assert controller.state == DragState.IDLE
        assert controller.board.occupant(SRC) == Color.RED
        assert sent[-1].type == MessageType.FIELD_INFO


class TestSession:
    """Login and game selection."""

    def test_login_ok(self, sent: list) -> None:
        ctrl = SessionController(send=sent.append)
        ctrl.login("alice", "pw")
        assert sent[-1].type == MessageType.LOGIN
        ctrl.handle_message(
            HalmaMessage(
                type=MessageType.LOGIN, player=PlayerMessage(name="alice", ok=True)
            )
        )
        assert ctrl.logged_in
        assert ctrl.player_name == "alice"
        assert sent[-1].type == MessageType.GAME_INFO

    def test_login_failed(self, sent: list) -> None:
        ctrl = SessionController(send=sent.append)
        ctrl.handle_message(
            HalmaMessage(
                type=MessageType.LOGIN, player=PlayerMessage(name="alice", ok=False)
            )
        )
        assert not ctrl.logged_in
        assert sent == []

    def test_game_list_merges(self, sent: list) -> None:
        ctrl = SessionController(send=sent.append)
        ctrl.handle_message(
            HalmaMessage(type=MessageType.GAME_INFO, games=[GameInfo(id=1), GameInfo(id=2)])
        )
        ctrl.handle_message(
            HalmaMessage(
                type=MessageType.GAME_INFO, games=[GameInfo(id=2, player=Color.BLUE)]
            )
        )
        assert sorted(ctrl.games) == [1, 2]
        assert ctrl.games[2].player == Color.BLUE

    def test_change_game(self, controller: SessionController, sent: list) -> None:
        controller.board.apply_move(SRC, DST)
        controller.handle_message(
            HalmaMessage(
                type=MessageType.CHANGE_GAME,
                game=GameInfo(id=5, player=Color.BLUE, current_player=Color.GREEN),
            )
        )
        assert controller.game_id == 5
        assert controller.me == Color.BLUE
        assert controller.current == Color.GREEN
        assert not controller.my_turn
        assert controller.board.occupant(SRC) == Color.RED
        assert sent[-1].type == MessageType.FIELD_INFO

    def test_outbound_requests(self, controller: SessionController, sent: list) -> None:
        controller.register("a", "b")
        controller.new_game()
        controller.join_game(3)
        controller.change_game(3)
        controller.refresh_games()
        controller.request_turn()
        assert [m.type for m in sent] == [
            MessageType.REGISTER,
            MessageType.NEW_GAME,
            MessageType.JOIN_GAME,
            MessageType.CHANGE_GAME,
            MessageType.GAME_INFO,
            MessageType.TURN_INFO,
        ]

    def test_movable_pegs(self, controller: SessionController) -> None:
        pegs = controller.movable_pegs()
        assert SRC in pegs
        assert hc(4, -8) not in pegs
        assert all(controller.board.occupant(p) == Color.RED for p in pegs)

    def test_movable_pegs_spectator(self, sent: list) -> None:
        assert SessionController(send=sent.append).movable_pegs() == []

    def test_unknown_message_ignored(self, controller: SessionController) -> None:
        before = controller.board.model_copy(deep=True)
        controller.handle_message(HalmaMessage(type=MessageType.NEW_GAME))
        assert controller.board == before
