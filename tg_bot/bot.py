"""
Cookie Clicker AFK Telegram Bot

Keeps one Cookie Clicker game running in a browser and lets chats control it:
/start <save code>, /resume, /screenshot, /details, /backup, /stop.

- Commands from many chats run concurrently but are serialized on the session
- Save codes are backed up on demand and every BACKUP_INTERVAL_SECONDS
- On shutdown a running game is backed up and the browser closed

Run with:
    python -m tg_bot.bot
"""

import html
import logging
import sys

from telegram import Message, Update
from telegram.constants import ParseMode
from telegram.ext import Application, ContextTypes, MessageHandler, filters

from cookie_afk.backup_store import open_backup_store
from cookie_afk.config import AfkConfig, get_config
from cookie_afk.coordinator import SessionCoordinator
from cookie_afk.driver import browser_factory
from cookie_afk.errors import BackupError, CookieAfkError, Unauthorized
from cookie_afk.logging_utils import setup_logging
from cookie_afk.scheduler import SnapshotScheduler
from cookie_afk.session import Session
from tg_bot.dispatcher import CommandDispatcher, Responder
from tg_bot.error_handler import format_error_message
from tg_bot.shutdown_handler import SessionShutdownHandler

logger = logging.getLogger(__name__)


class TelegramResponder(Responder):
    """Replies to the message that carried the command."""

    def __init__(self, message: Message):
        self.message = message

    async def send_text(self, text: str, preformatted: bool = False) -> None:
        if preformatted:
            await self.message.reply_text(f"<pre>{html.escape(text)}</pre>", parse_mode=ParseMode.HTML)
        else:
            await self.message.reply_text(text)

    async def send_document(self, data: bytes, filename: str) -> None:
        await self.message.reply_document(document=data, filename=filename)


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Run every text message as a command and report failures to the sender."""
    message = update.effective_message
    if message is None or not message.text:
        return

    config: AfkConfig = context.bot_data["config"]
    dispatcher: CommandDispatcher = context.bot_data["dispatcher"]
    chat_id = update.effective_chat.id if update.effective_chat else 0

    try:
        if not config.is_allowed(chat_id):
            raise Unauthorized(f"Chat {chat_id} is not allowed")
        await dispatcher.dispatch(message.text, TelegramResponder(message))
    except CookieAfkError as e:
        logger.warning(f"Got an error while handling a message from chat {chat_id}: {e.kind}: {e}")
        await message.reply_text(format_error_message(e), parse_mode=ParseMode.HTML)
    except Exception as e:
        logger.exception(f"Unexpected error while handling a message from chat {chat_id}")
        await message.reply_text(format_error_message(e), parse_mode=ParseMode.HTML)


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    """Log errors raised outside handle_message (network, Telegram API)."""
    logger.error("Update caused error", exc_info=context.error)


def build_application(config: AfkConfig) -> Application:
    """Wire the session core into a python-telegram-bot Application."""
    store = open_backup_store(config)
    coordinator = SessionCoordinator(Session(browser_factory(config)), store)
    scheduler = SnapshotScheduler(coordinator, interval=config.backup_interval_seconds)
    dispatcher = CommandDispatcher(coordinator)
    shutdown_handler = SessionShutdownHandler(coordinator, scheduler)

    async def post_init(app: Application) -> None:
        scheduler.start()

    app = (
        Application.builder()
        .token(config.telegram_token)
        .concurrent_updates(True)
        .post_init(post_init)
        .post_shutdown(shutdown_handler)
        .build()
    )

    app.bot_data["config"] = config
    app.bot_data["coordinator"] = coordinator
    app.bot_data["scheduler"] = scheduler
    app.bot_data["dispatcher"] = dispatcher

    app.add_handler(MessageHandler(filters.TEXT, handle_message))
    app.add_error_handler(error_handler)
    return app


def main():
    """Run the bot."""
    config = get_config()
    setup_logging(config.log_level, config.log_dir)

    missing = config.get_missing()
    if missing:
        print("\n" + "=" * 50)
        print(f"ERROR: {', '.join(missing)} not set!")
        print("=" * 50)
        print("\nSet it with:")
        print("  export TELEGRAM_BOT_TOKEN='your-bot-token'")
        sys.exit(1)

    problems = config.get_problems()
    if problems:
        for problem in problems:
            logger.critical(problem)
        sys.exit(1)

    try:
        app = build_application(config)
    except BackupError as e:
        logger.critical(f"Cannot load backups from {config.persistent_data_path}: {e}")
        sys.exit(1)

    logger.info(f"Bot token: {config.mask_key(config.telegram_token)}")
    logger.info(f"Backups: {config.backup_backend} at {config.persistent_data_path} (capacity {config.backup_capacity})")
    logger.info(f"Backup interval: {config.backup_interval_seconds}s")
    logger.info(f"Browser: {config.driver_url or 'local headless Chromium'}")
    logger.info(f"Allowed chats: {sorted(config.allowed_chat_ids) or 'all'}")

    app.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()
