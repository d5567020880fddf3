# src/relay_bot/main.py
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from aiogram import Bot, Dispatcher
from aiogram.types import ErrorEvent, Message
from aiogram.utils.token import TokenValidationError
from dotenv import load_dotenv

# .env читаем до импорта shared.settings — там env разбирается при импорте
load_dotenv(override=False)

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from shared import settings
from shared.cleanup_tasks import TicketExpiryService
from shared.config import BotConfig, load_config
from shared.database import StoreError, TicketDatabase
from languages import get_texts
from relay_bot.router import TicketRouter

logger = logging.getLogger("relay_bot")


def setup_logging() -> None:
    log_path = Path(settings.LOG_FILE)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(log_path, encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )


class SupportRelayBot:
    """
    Бот-посредник: лички клиентов <-> топики группы поддержки.
    Работает через polling, тикеты хранит в Postgres.
    """

    def __init__(self, config: BotConfig, db: TicketDatabase, bot: Optional[Bot] = None):
        self.config = config
        self.db = db
        self.bot = bot or Bot(token=config.token)
        self.dp = Dispatcher()
        self.texts = get_texts(config.lang_code)
        self.router = TicketRouter(self.bot, db, config, self.texts)
        self.expiry = TicketExpiryService(db, config.expiry_day)

    @staticmethod
    async def global_error_handler(event: ErrorEvent) -> bool:
        update = event.update
        user_id = None
        if update.message and update.message.from_user:
            user_id = update.message.from_user.id

        logger.exception(
            "Unhandled error in relay bot update_id=%s user_id=%s exc=%r",
            update.update_id,
            user_id,
            event.exception,
        )
        return True

    async def handle_message(self, message: Message) -> None:
        outcome = await self.router.handle(message)
        logger.debug(
            "Message %s from chat %s routed: %s",
            message.message_id,
            message.chat.id,
            outcome.value,
        )

    def register_handlers(self) -> None:
        self.dp.message.register(self.handle_message)
        self.dp.errors.register(SupportRelayBot.global_error_handler)

    async def run(self) -> None:
        """
        Старт: хэндлеры, фоновая очистка тикетов, polling до SIGINT/SIGTERM.
        """
        self.register_handlers()
        self.expiry.start()
        logger.info(f"Relay bot started for staff chat {self.config.chat_id}")

        try:
            await self.bot.delete_webhook(drop_pending_updates=False)
        except Exception as e:
            logger.warning(f"Failed to delete webhook: {e}")

        try:
            await self.dp.start_polling(self.bot)
        finally:
            await self.expiry.stop()
            await self.bot.session.close()
            await self.db.close()


async def main() -> None:
    setup_logging()

    config = load_config(settings.CONFIG_FILE)

    db = TicketDatabase()
    try:
        await db.init()
    except StoreError as e:
        logger.critical(f"Ticket database init failed: {e}")
        raise SystemExit(1)

    try:
        app = SupportRelayBot(config=config, db=db)
    except TokenValidationError as e:
        logger.critical(f"Invalid bot token in {settings.CONFIG_FILE}: {e}")
        await db.close()
        raise SystemExit(1)

    try:
        await app.run()
    except asyncio.CancelledError:
        logger.info("Relay bot cancelled, shutting down...")


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
