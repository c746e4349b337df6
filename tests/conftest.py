import pytest

from halma_tg_bot.board.board import HalmaBoard
from halma_tg_bot.board.types import Color
from halma_tg_bot.map.layout import BoardLayout
from halma_tg_bot.session.controller import SessionController
from halma_tg_bot.session.protocol import GameInfo, HalmaMessage, MessageType


@pytest.fixture
def layout() -> BoardLayout:
    """Default pixel layout."""
    return BoardLayout()


@pytest.fixture
def board(layout: BoardLayout) -> HalmaBoard:
    """Starting board, camps full."""
    return HalmaBoard.generate(layout)


@pytest.fixture
def empty_board(board: HalmaBoard) -> HalmaBoard:
    """Board with every peg removed."""
    board.apply_field_sync((coord, Color.NONE) for coord in board.cells)
    return board


@pytest.fixture
def sent() -> list[HalmaMessage]:
    """Messages the controller sends, in order."""
    return []


@pytest.fixture
def controller(sent: list[HalmaMessage]) -> SessionController:
    """Controller that's in game 1, playing red on red's turn."""
    ctrl = SessionController(send=sent.append)
    ctrl.handle_message(
        HalmaMessage(
            type=MessageType.CHANGE_GAME,
            game=GameInfo(id=1, player=Color.RED, current_player=Color.RED),
        )
    )
    sent.clear()
    return ctrl
