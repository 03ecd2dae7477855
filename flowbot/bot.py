import asyncio
import logging
from logging.handlers import RotatingFileHandler
import os
from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from flowbot.core.config import BOT_TOKEN, LOG_FILE, LOG_LEVEL
from flowbot.handlers import common, authoring, wizard, assessment, scheduler, video
from flowbot.middlewares.fsm_timeout import FSMTimeoutMiddleware
from flowbot.middlewares.logging import LoggingMiddleware, CustomFormatter
from flowbot.services.api_client import APIRequestError
from flowbot.services.catalog import flow_catalog, template_catalog

def setup_logging():
    log_level = LOG_LEVEL.upper()
    log_dir = os.path.dirname(LOG_FILE)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    logging.basicConfig(level=log_level, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    file_handler = RotatingFileHandler(LOG_FILE, maxBytes=5*1024*1024, backupCount=5)
    file_handler.setLevel(log_level)
    file_handler.setFormatter(CustomFormatter('%(asctime)s - %(name)s - %(levelname)s - %(user_id)s - %(flow)s - %(message)s'))

    logging.getLogger().addHandler(file_handler)

async def on_startup():
    """Загрузка каталогов флоу и шаблонов."""
    try:
        await template_catalog.refresh()
        await flow_catalog.refresh()
    except APIRequestError as e:
        logging.error(f"Could not load catalogs on startup: {e}")

async def main():
    setup_logging()

    bot = Bot(token=BOT_TOKEN, default=DefaultBotProperties(parse_mode=ParseMode.HTML))

    dp = Dispatcher()
    dp.startup.register(on_startup)

    dp.message.outer_middleware(LoggingMiddleware())
    dp.callback_query.outer_middleware(LoggingMiddleware())
    dp.message.middleware(FSMTimeoutMiddleware())
    dp.callback_query.middleware(FSMTimeoutMiddleware())

    # Команды раньше FSM-обработчиков ввода
    dp.include_router(common.router)
    dp.include_router(authoring.router)
    dp.include_router(wizard.router)
    dp.include_router(assessment.router)
    dp.include_router(scheduler.router)
    dp.include_router(video.router)

    try:
        await dp.start_polling(bot)
    except Exception as e:
        logging.critical(f"Critical error starting bot: {e}", exc_info=True)
    finally:
        await bot.session.close()

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logging.info("Bot stopped gracefully")
    except Exception as e:
        logging.critical(f"Unexpected error in main: {e}", exc_info=True)
