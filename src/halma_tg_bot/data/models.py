"""Client configuration models."""

from pydantic import BaseModel, field_validator

from halma_tg_bot.map.images import DEFAULT_PALETTE, RGB
from halma_tg_bot.map.layout import BoardLayout


class ClientConfig(BaseModel):
    """Client setup: where the server is and how to draw the board."""

    server_url: str = "ws://localhost:8000/websocket/ws"
    layout: BoardLayout = BoardLayout()
    palette: dict[str, RGB] = DEFAULT_PALETTE

    @field_validator("server_url", mode="after")
    @classmethod
    def _chk_server_url(cls, v: str) -> str:
        """Ensure the server is reached over a websocket."""
        if not v.startswith(("ws://", "wss://")):
            raise ValueError(f"Server URL must be a websocket URL, got: {v!r}")
        return v

    @field_validator("palette", mode="after")
    @classmethod
    def _fill_palette(cls, v: dict[str, RGB]) -> dict[str, RGB]:
        """Fill in colors missing from the configured palette."""
        return {**DEFAULT_PALETTE, **v}
