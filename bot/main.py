"""
PropaneHub Telegram bot — customer ordering and the driver work queue.

Run from the repository root: ``python -m bot.main``
"""

import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from bot.config import settings
from bot.handlers import driver, user

logger = logging.getLogger(__name__)


async def run() -> None:
    bot = Bot(
        token=settings.TELEGRAM_BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    dp = Dispatcher()
    dp.include_router(user.router)
    dp.include_router(driver.router)

    logger.info("🤖 PropaneHub bot starting (API: %s)", settings.API_BASE_URL)
    try:
        await dp.start_polling(bot)
    finally:
        await bot.session.close()


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)-7s %(name)s — %(message)s",
    )
    if not settings.TELEGRAM_BOT_TOKEN:
        raise RuntimeError("TELEGRAM_BOT_TOKEN is not set")
    asyncio.run(run())


if __name__ == "__main__":
    main()
