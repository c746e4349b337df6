"""Main loop."""

import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.memory import MemoryStorage

from halma_tg_bot.bot.halma_logic import cmds, gback, r_halma


def read_token() -> str:
    """Read the bot token from the docker secret, or a local file."""
    try:
        with open("/run/secrets/tg_token") as f:
            return f.read().strip()
    except OSError:
        with open("secret/tg_token") as f:
            return f.read().strip()


async def async_main() -> None:
    """Async main runner."""
    token = read_token()

    storage = MemoryStorage()

    # Dispatcher is a root router
    dp = Dispatcher(storage=storage)
    dp.include_router(r_halma)

    # Initialize Bot instance with a default parse mode which will be passed to all API
    bot = Bot(token, default=DefaultBotProperties(parse_mode=ParseMode.HTML))

    # Set commands
    await bot.set_my_commands([v for k, v in cmds.items()])

    # And the run events dispatching
    try:
        await dp.start_polling(bot)
    finally:
        for user_id in list(gback.sessions):
            await gback.disconnect(user_id)


def main():
    logging.basicConfig(level=logging.INFO)
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
