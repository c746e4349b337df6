"""Telegram front end: every user gets their own game server session."""

import asyncio
import logging

from aiogram import Bot, F, Router
from aiogram.enums import ChatType
from aiogram.exceptions import TelegramAPIError
from aiogram.filters import Command, CommandObject, CommandStart, Filter
from aiogram.filters.callback_data import CallbackData
from aiogram.types import (
    BotCommand,
    BufferedInputFile,
    CallbackQuery,
    InlineKeyboardMarkup,
    Message,
)
from aiogram.utils.keyboard import InlineKeyboardBuilder
from aiogram.utils.markdown import hbold

from halma_tg_bot.board.types import Color
from halma_tg_bot.data import client_config
from halma_tg_bot.data.models import ClientConfig
from halma_tg_bot.map.annots import CellLabel
from halma_tg_bot.map.hexes import HexCoord
from halma_tg_bot.map.images import BoardImage
from halma_tg_bot.session.controller import DropOutcome, SessionController
from halma_tg_bot.session.protocol import GameInfo, HalmaMessage, MessageType
from halma_tg_bot.session.transport import WebsocketTransport

logger = logging.getLogger(__name__)

UserID = int
ChatID = int

HELP_STR = """Hello! I let you play Stern-Halma on a game server.

/register <name> <password> creates an account, /login <name> <password> logs in.
/games lists the games; /newgame creates one. Join or open a game from the list.
When it's your turn, use /move to pick a peg and where it should go.
/board shows the board again, /refresh reloads it from the server.
"""

cmds: dict[str, BotCommand] = {
    "start": BotCommand(command="start", description="Connect to the game server."),
    "help": BotCommand(command="help", description="Get help for this bot."),
    "register": BotCommand(command="register", description="Create an account."),
    "login": BotCommand(command="login", description="Log in."),
    "games": BotCommand(command="games", description="List games."),
    "newgame": BotCommand(command="newgame", description="Create a new game."),
    "board": BotCommand(command="board", description="Show the board."),
    "move": BotCommand(command="move", description="Move a peg."),
    "refresh": BotCommand(command="refresh", description="Reload the board."),
}

OUTCOME_TEXT: dict[DropOutcome, str] = {
    DropOutcome.MOVED: "Move sent.",
    DropOutcome.NOT_DRAGGING: "No peg is picked up.",
    DropOutcome.OFF_BOARD: "That's not on the board.",
    DropOutcome.NOT_REACHABLE: "The peg can't go there.",
    DropOutcome.NOT_YOUR_TURN: "It's not your turn.",
    DropOutcome.WRONG_COLOR: "That's not your peg.",
}

r_halma = Router()


class PrivateOnly(Filter):
    """Only allow commands in private."""

    async def __call__(self, message: Message) -> bool:
        if not isinstance(message, Message):
            return False
        return message.chat.type in [ChatType.PRIVATE]


class GameCallback(CallbackData, prefix="game"):
    """Join or open a game from the list."""

    action: str
    game_id: int


class PegCallback(CallbackData, prefix="peg"):
    """Pick up a peg, drop it, or put it back."""

    action: str
    x: int = 0
    y: int = 0


def coord_label(coord: HexCoord) -> str:
    """Short label for a cell."""
    return f"({coord.q}, {coord.r})"


def game_label(game: GameInfo) -> str:
    """One-line description of a game."""
    me = game.player.label if game.player != Color.NONE else "not playing"
    return f"#{game.id}: {me}, {game.current_player.label} to move"


def make_games_kb(games: dict[int, GameInfo]) -> InlineKeyboardBuilder:
    """Make game list keyboard."""
    builder = InlineKeyboardBuilder()
    for game_id, game in sorted(games.items()):
        if game.player == Color.NONE:
            builder.button(
                text=f"Join #{game_id}",
                callback_data=GameCallback(action="join", game_id=game_id).pack(),
            )
        builder.button(
            text=f"Open #{game_id}",
            callback_data=GameCallback(action="open", game_id=game_id).pack(),
        )
    builder.adjust(2)
    return builder


def make_pegs_kb(
    coords: list[HexCoord],
    action: str,
    *,
    cancel: bool = False,
    max_width: int | None = 4,
) -> InlineKeyboardBuilder:
    """Make keyboard with one button per cell."""
    builder = InlineKeyboardBuilder()
    for coord in coords:
        builder.button(
            text=coord_label(coord),
            callback_data=PegCallback(action=action, x=coord.q, y=coord.r).pack(),
        )
    if cancel:
        builder.button(text="Cancel", callback_data=PegCallback(action="cancel").pack())
    if max_width is not None:
        builder.adjust(max_width)
    return builder


class PlayerSession(object):
    """A user's connection to the game server, plus their chat."""

    def __init__(self, bot: Bot, chat_id: ChatID, config: ClientConfig) -> None:
        self.bot = bot
        self.chat_id = chat_id
        self.config = config
        self.transport = WebsocketTransport(
            config.server_url, layout=config.layout, on_message=self.notify
        )
        self.task: asyncio.Task | None = None

    @property
    def controller(self) -> SessionController:
        return self.transport.controller

    @property
    def running(self) -> bool:
        return self.task is not None and not self.task.done()

    def start(self) -> None:
        """Start talking to the server in the background."""
        self.task = asyncio.create_task(self.transport.run())

    async def stop(self) -> None:
        """Disconnect from the server."""
        await self.transport.close()
        if self.task is not None:
            await self.task

    def render(self, coord_anns: bool = False) -> bytes:
        """Draw the board, highlighting where the peg in flight may go."""
        ctrl = self.controller
        labels: list[CellLabel] = []
        if coord_anns:
            labels = [
                CellLabel(cell=coord, text=coord_label(coord), offset=(0, -14))
                for coord in ctrl.destinations
            ]
        floating = None
        if ctrl.drag is not None:
            floating = (ctrl.board.cell_to_xy(ctrl.drag.origin), ctrl.drag.peg)
        img = BoardImage(
            board=ctrl.board,
            palette=self.config.palette,
            canvas=self.config.layout.canvas,
            highlights=ctrl.destinations,
            floating=floating,
            labels=labels,
        )
        return img.to_png()

    async def send_board(
        self,
        caption: str,
        reply_markup: InlineKeyboardMarkup | None = None,
        coord_anns: bool = False,
    ) -> None:
        """Send the board picture to the user."""
        photo = BufferedInputFile(self.render(coord_anns=coord_anns), "board.png")
        await self.bot.send_photo(
            self.chat_id, photo, caption=caption, reply_markup=reply_markup
        )

    def turn_caption(self) -> str:
        ctrl = self.controller
        lines = [f"{ctrl.current.label.capitalize()} to move."]
        if ctrl.me != Color.NONE:
            lines.append(f"You play {ctrl.me.label}.")
        if ctrl.my_turn:
            lines.append("Your turn! Use /move.")
        return "\n".join(lines)

    def start_move(self) -> list[HexCoord]:
        """Put back any peg left in flight and list the pegs that can move."""
        ctrl = self.controller
        ctrl.abort()
        return ctrl.movable_pegs()

    async def notify(self, message: HalmaMessage) -> None:
        """Tell the user about things the server sent."""
        try:
            await self._notify(message)
        except TelegramAPIError as e:
            logger.warning(f"Could not notify chat {self.chat_id}: {e}")

    async def _notify(self, message: HalmaMessage) -> None:
        ctrl = self.controller
        match message.type:
            case MessageType.LOGIN:
                if ctrl.logged_in:
                    name = hbold(ctrl.player_name or "")
                    await self.bot.send_message(self.chat_id, f"Logged in as {name}.")
                else:
                    await self.bot.send_message(self.chat_id, "Login failed.")
            case MessageType.GAME_INFO:
                if not ctrl.games:
                    await self.bot.send_message(
                        self.chat_id, "No games yet. /newgame to create one."
                    )
                    return
                text = "\n".join(
                    ["Games:"] + [game_label(g) for _, g in sorted(ctrl.games.items())]
                )
                await self.bot.send_message(
                    self.chat_id,
                    text,
                    reply_markup=make_games_kb(ctrl.games).as_markup(),
                )
            case MessageType.CHANGE_GAME:
                await self.bot.send_message(
                    self.chat_id, f"Opened game #{ctrl.game_id}. " + self.turn_caption()
                )
            case MessageType.FIELD_INFO:
                # Moves arrive as two-cell updates followed by a turn change
                if len(message.fields or []) > 2:
                    await self.send_board(self.turn_caption())
            case MessageType.TURN_INFO:
                await self.send_board(self.turn_caption())


class GlobalBackend(object):
    """Global backend."""

    def __init__(self, config: ClientConfig = client_config):
        self.config = config
        self.sessions: dict[UserID, PlayerSession] = {}

    def get(self, user_id: UserID) -> PlayerSession | None:
        """Get a running session for a user."""
        session = self.sessions.get(user_id)
        if session is None or not session.running:
            return None
        return session

    def connect(self, bot: Bot, user_id: UserID, chat_id: ChatID) -> PlayerSession:
        """Get a running session, connecting if necessary."""
        session = self.get(user_id)
        if session is not None:
            return session
        session = PlayerSession(bot=bot, chat_id=chat_id, config=self.config)
        session.start()
        self.sessions[user_id] = session
        logger.info(f"Started session for user {user_id}")
        return session

    async def disconnect(self, user_id: UserID) -> None:
        """Close a user's session."""
        session = self.sessions.pop(user_id, None)
        if session is not None:
            await session.stop()


gback = GlobalBackend()


async def require_session(message: Message) -> PlayerSession | None:
    """Get the user's session, or tell them to /start."""
    user = message.from_user
    if user is None:
        return None
    session = gback.get(user.id)
    if session is None:
        await message.answer("Not connected. Use /start first.")
    return session


def parse_credentials(command: CommandObject) -> tuple[str, str] | None:
    """Get name and password from command arguments."""
    if command.args is None:
        return None
    parts = command.args.split()
    if len(parts) != 2:
        return None
    return parts[0], parts[1]


@r_halma.message(CommandStart(), PrivateOnly())
async def cmd_start(message: Message, bot: Bot) -> None:
    """Connect to the game server."""
    user = message.from_user
    if user is None:
        return
    gback.connect(bot=bot, user_id=user.id, chat_id=message.chat.id)
    await message.answer(HELP_STR)


@r_halma.message(Command(cmds["help"]))
async def cmd_help(message: Message) -> None:
    """Send help."""
    await message.answer(HELP_STR)


@r_halma.message(Command(cmds["register"]), PrivateOnly())
async def cmd_register(message: Message, command: CommandObject) -> None:
    """Create an account (the server logs us in right away)."""
    session = await require_session(message)
    if session is None:
        return
    creds = parse_credentials(command)
    if creds is None:
        await message.answer("Usage: /register <name> <password>")
        return
    session.controller.register(*creds)


@r_halma.message(Command(cmds["login"]), PrivateOnly())
async def cmd_login(message: Message, command: CommandObject) -> None:
    """Log in."""
    session = await require_session(message)
    if session is None:
        return
    creds = parse_credentials(command)
    if creds is None:
        await message.answer("Usage: /login <name> <password>")
        return
    session.controller.login(*creds)


@r_halma.message(Command(cmds["games"]), PrivateOnly())
async def cmd_games(message: Message) -> None:
    """List games."""
    session = await require_session(message)
    if session is None:
        return
    session.controller.refresh_games()


@r_halma.message(Command(cmds["newgame"]), PrivateOnly())
async def cmd_new_game(message: Message) -> None:
    """Create a game."""
    session = await require_session(message)
    if session is None:
        return
    if not session.controller.logged_in:
        await message.answer("Please /login first.")
        return
    session.controller.new_game()


@r_halma.message(Command(cmds["board"]), PrivateOnly())
async def cmd_board(message: Message) -> None:
    """Show the board."""
    session = await require_session(message)
    if session is None:
        return
    if session.controller.game_id is None:
        await message.answer("No game opened. Open one from /games.")
        return
    await session.send_board(session.turn_caption())


@r_halma.message(Command(cmds["refresh"]), PrivateOnly())
async def cmd_refresh(message: Message) -> None:
    """Reload the board from the server."""
    session = await require_session(message)
    if session is None:
        return
    session.controller.resync()
    session.controller.request_turn()


@r_halma.message(Command(cmds["move"]), PrivateOnly())
async def cmd_move(message: Message) -> None:
    """Offer the pegs that can move."""
    session = await require_session(message)
    if session is None:
        return
    ctrl = session.controller
    if not ctrl.my_turn:
        await message.answer("It's not your turn.")
        return
    pegs = session.start_move()
    if not pegs:
        await message.answer("None of your pegs can move.")
        return
    await message.answer(
        "Which peg?", reply_markup=make_pegs_kb(pegs, action="lift").as_markup()
    )


@r_halma.callback_query(GameCallback.filter(F.action == "join"))
async def cb_join(query: CallbackQuery, callback_data: GameCallback):
    """Join callback."""
    session = gback.get(query.from_user.id)
    if session is None:
        await query.answer("Not connected.")
        return
    session.controller.join_game(callback_data.game_id)
    await query.answer(f"Joining game #{callback_data.game_id}")


@r_halma.callback_query(GameCallback.filter(F.action == "open"))
async def cb_open(query: CallbackQuery, callback_data: GameCallback):
    """Open (watch or play) callback."""
    session = gback.get(query.from_user.id)
    if session is None:
        await query.answer("Not connected.")
        return
    session.controller.change_game(callback_data.game_id)
    await query.answer(f"Opening game #{callback_data.game_id}")


@r_halma.callback_query(PegCallback.filter(F.action == "lift"))
async def cb_lift(query: CallbackQuery, callback_data: PegCallback):
    """User picked a peg."""
    session = gback.get(query.from_user.id)
    if session is None:
        await query.answer("Not connected.")
        return
    ctrl = session.controller
    coord = HexCoord(root=(callback_data.x, callback_data.y))  # type: ignore
    if not ctrl.lift(coord):
        await query.answer("Can't pick up that peg now.")
        return
    await query.answer()
    kb = make_pegs_kb(ctrl.destinations, action="drop", cancel=True)
    await session.send_board(
        f"Where should {coord_label(coord)} go?",
        reply_markup=kb.as_markup(),
        coord_anns=True,
    )


@r_halma.callback_query(PegCallback.filter(F.action == "drop"))
async def cb_drop(query: CallbackQuery, callback_data: PegCallback):
    """User picked a destination."""
    session = gback.get(query.from_user.id)
    if session is None:
        await query.answer("Not connected.")
        return
    coord = HexCoord(root=(callback_data.x, callback_data.y))  # type: ignore
    outcome = session.controller.drop(coord)
    await query.answer(OUTCOME_TEXT[outcome])


@r_halma.callback_query(PegCallback.filter(F.action == "cancel"))
async def cb_cancel(query: CallbackQuery, callback_data: PegCallback):
    """User put the peg back."""
    session = gback.get(query.from_user.id)
    if session is None:
        await query.answer("Not connected.")
        return
    session.controller.abort()
    await query.answer("Peg put back.")
