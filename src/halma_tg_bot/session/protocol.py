"""Messages exchanged with the game server.

One JSON object per websocket text frame. Keys are PascalCase on the wire;
positions are grid coordinates.
"""

from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field

from halma_tg_bot.board.types import Color
from halma_tg_bot.map.hexes import HexCoord


class MessageType(IntEnum):
    """Message type tag."""

    REGISTER = 0
    LOGIN = 1
    NEW_GAME = 2
    JOIN_GAME = 3
    CHANGE_GAME = 4
    MOVE = 5
    GAME_INFO = 6
    TURN_INFO = 7
    FIELD_INFO = 8


class WireModel(BaseModel):
    """Base for wire models: python names, PascalCase aliases."""

    model_config = ConfigDict(populate_by_name=True)


class Position(WireModel):
    """Grid position as sent on the wire."""

    x: int = Field(alias="X")
    y: int = Field(alias="Y")

    @classmethod
    def from_coord(cls, coord: HexCoord) -> "Position":
        return cls(x=coord.q, y=coord.r)

    def to_coord(self) -> HexCoord:
        return HexCoord(root=(self.x, self.y))  # type: ignore


class PlayerMessage(WireModel):
    """Credentials (outbound) or login result (inbound)."""

    name: str = Field("", alias="Name")
    password: str = Field("", alias="Password")
    ok: bool = Field(False, alias="OK")


class TurnMessage(WireModel):
    """Whose turn it is."""

    current_player: Color = Field(Color.NONE, alias="CurrentPlayer")


class MoveMessage(WireModel):
    """A peg moving from one cell to another."""

    src: Position = Field(alias="From")
    dst: Position = Field(alias="To")


class FieldInfo(WireModel):
    """Occupant of a single cell."""

    pos: Position = Field(alias="Pos")
    pin: Color = Field(Color.NONE, alias="Pin")


class GameInfo(WireModel):
    """A game, as seen by the logged-in player."""

    id: int = Field(alias="ID")
    player: Color = Field(Color.NONE, alias="Player")
    current_player: Color = Field(Color.NONE, alias="CurrentPlayer")


class HalmaMessage(WireModel):
    """Envelope for every message; only the section matching `type` is set."""

    type: MessageType = Field(alias="Type")
    player: PlayerMessage | None = Field(None, alias="Player")
    fields: list[FieldInfo] | None = Field(None, alias="Fields")
    games: list[GameInfo] | None = Field(None, alias="Games")
    turn: TurnMessage | None = Field(None, alias="Turn")
    move: MoveMessage | None = Field(None, alias="Move")
    game: GameInfo | None = Field(None, alias="Game")

    def to_json(self) -> str:
        """Serialize for the wire."""
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "HalmaMessage":
        """Parse a wire frame. Raises `pydantic.ValidationError` if malformed."""
        return cls.model_validate_json(raw)


# Builders for outbound messages


def credentials(kind: MessageType, name: str, password: str) -> HalmaMessage:
    """REGISTER or LOGIN request."""
    if kind not in (MessageType.REGISTER, MessageType.LOGIN):
        raise ValueError(f"Not a credentials message: {kind!r}")
    return HalmaMessage(type=kind, player=PlayerMessage(name=name, password=password))


def move_request(src: HexCoord, dst: HexCoord) -> HalmaMessage:
    """MOVE request."""
    return HalmaMessage(
        type=MessageType.MOVE,
        move=MoveMessage(src=Position.from_coord(src), dst=Position.from_coord(dst)),
    )


def game_request(kind: MessageType, game_id: int) -> HalmaMessage:
    """JOIN_GAME or CHANGE_GAME request."""
    if kind not in (MessageType.JOIN_GAME, MessageType.CHANGE_GAME):
        raise ValueError(f"Not a game request: {kind!r}")
    return HalmaMessage(type=kind, game=GameInfo(id=game_id))


def plain_request(kind: MessageType) -> HalmaMessage:
    """Request without payload (NEW_GAME, GAME_INFO, TURN_INFO, FIELD_INFO)."""
    return HalmaMessage(type=kind)
