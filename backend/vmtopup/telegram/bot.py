"""
Telegram bot lifecycle and outbound transport.

The bot shares the FastAPI event loop: started in the app lifespan, stopped on
shutdown. Two modes:
- polling (default): the Updater long-polls Telegram
- webhook (USE_WEBHOOK=true): Telegram posts to TELEGRAM_WEBHOOK_PATH and the
  FastAPI route feeds updates into the Application
"""
import asyncio
import logging
from typing import Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, error
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, MessageHandler, filters

from vmtopup.agent.transport import ButtonRows
from vmtopup.telegram.handlers import handle_callback, handle_error, handle_start, handle_text

logger = logging.getLogger(__name__)


def _chat_id(chat_id: str) -> int | str:
    # numeric ids for users/groups, "@name" for channels
    return int(chat_id) if chat_id.lstrip("-").isdigit() else chat_id


class TelegramTransport:
    """ChatTransport backed by a telegram.Bot."""

    def __init__(self, bot):
        self.bot = bot

    async def send(self, chat_id: str, text: str, buttons: Optional[ButtonRows] = None) -> None:
        reply_markup = None
        if buttons:
            reply_markup = InlineKeyboardMarkup(
                [[InlineKeyboardButton(label, callback_data=data) for label, data in row] for row in buttons]
            )
        await self.bot.send_message(chat_id=_chat_id(str(chat_id)), text=text, reply_markup=reply_markup)


def build_application(token: str, use_webhook: bool = False) -> Application:
    builder = Application.builder().token(token)
    if use_webhook:
        # updates arrive through the FastAPI route, no Updater needed
        builder = builder.updater(None)
    app = builder.build()

    app.add_handler(CommandHandler("start", handle_start))
    app.add_handler(CallbackQueryHandler(handle_callback))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text))
    app.add_error_handler(handle_error)
    return app


async def _start_polling_with_retry(app: Application, max_retries: int = 3, initial_backoff: int = 2) -> bool:
    for attempt in range(max_retries):
        try:
            logger.info(f"[TELEGRAM] Starting polling (attempt {attempt + 1}/{max_retries})...")
            await app.updater.start_polling(drop_pending_updates=True)
            logger.info("[TELEGRAM] ✓ Polling started successfully")
            return True
        except error.Conflict as e:
            if attempt < max_retries - 1:
                backoff = initial_backoff * (2 ** attempt)
                logger.warning(f"[TELEGRAM] ⚠ Conflict detected: {e}. Retrying in {backoff}s...")
                await asyncio.sleep(backoff)
            else:
                logger.error(f"[TELEGRAM] ✗ Failed after {max_retries} retries. Bot disabled. Error: {e}")
                return False
    return False


async def start_bot(app: Application, use_webhook: bool = False, webhook_url: str = "") -> None:
    await app.initialize()
    await app.start()

    if use_webhook:
        try:
            await app.bot.set_webhook(webhook_url)
            logger.info(f"[TELEGRAM] Bot webhook set to {webhook_url}")
        except error.TelegramError as e:
            logger.error(f"[TELEGRAM] Failed to set webhook: {e}")
        return

    await _start_polling_with_retry(app)


async def stop_bot(app: Application) -> None:
    """Called on FastAPI shutdown."""
    if app.updater and app.updater.running:
        await app.updater.stop()
    if app.running:
        await app.stop()
    await app.shutdown()
