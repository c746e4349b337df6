"""Websocket connection to the game server."""

import asyncio
import logging
from contextlib import suppress
from typing import Awaitable, Callable

import aiohttp
from pydantic import ValidationError

from halma_tg_bot.map.layout import BoardLayout
from .controller import SessionController
from .protocol import HalmaMessage

logger = logging.getLogger(__name__)

MessageHook = Callable[[HalmaMessage], Awaitable[None]]


class WebsocketTransport(object):
    """Pumps JSON messages between the server and a session controller.

    Outgoing messages are queued, so `send` can be handed to the (synchronous)
    controller as its send function.
    """

    def __init__(
        self,
        url: str,
        layout: BoardLayout | None = None,
        on_message: MessageHook | None = None,
    ) -> None:
        self.url = url
        self.on_message = on_message
        self.outgoing: asyncio.Queue[HalmaMessage] = asyncio.Queue()
        self.connected = False
        self._closing = False
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self.controller = SessionController(send=self.send, layout=layout)

    def send(self, message: HalmaMessage) -> None:
        """Queue a message for the server."""
        if self._closing:
            logger.warning(f"Not sending {message.type.name}, connection closed")
            return
        self.outgoing.put_nowait(message)

    async def dispatch(self, raw: str) -> HalmaMessage | None:
        """Handle a single text frame from the server."""
        try:
            message = HalmaMessage.from_json(raw)
        except ValidationError:
            logger.warning(f"Skipping malformed message: {raw[:200]!r}")
            return None
        self.controller.handle_message(message)
        if self.on_message is not None:
            try:
                await self.on_message(message)
            except Exception:
                # The game state is already applied; keep the connection going
                logger.exception(f"Message hook failed for {message.type.name}")
        return message

    async def _pump_outgoing(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        while True:
            message = await self.outgoing.get()
            await ws.send_str(message.to_json())

    async def _pump_incoming(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        async for msg in ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                await self.dispatch(msg.data)
            elif msg.type == aiohttp.WSMsgType.ERROR:
                logger.error(f"Websocket error: {ws.exception()!r}")
                break

    async def serve(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Run both directions on an open socket until the server hangs up."""
        self._ws = ws
        self.connected = True
        sender = asyncio.create_task(self._pump_outgoing(ws))
        try:
            await self._pump_incoming(ws)
        finally:
            sender.cancel()
            self.connected = False
            self._ws = None
            with suppress(asyncio.CancelledError):
                await sender

    async def run(self) -> None:
        """Connect and serve until closed."""
        logger.info(f"Connecting to {self.url}")
        try:
            async with aiohttp.ClientSession() as session:
                async with session.ws_connect(self.url) as ws:
                    logger.info("Connected")
                    await self.serve(ws)
        except (aiohttp.ClientError, ConnectionError):
            logger.exception(f"Connection to {self.url} failed")
        finally:
            self._closing = True
            logger.info("Closed")

    async def close(self) -> None:
        """Disconnect."""
        logger.info("Disconnecting")
        self._closing = True
        if self._ws is not None:
            await self._ws.close()
