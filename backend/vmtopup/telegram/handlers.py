"""
Telegram handlers - translate updates into OrderWorkflow calls.

No flow logic lives here. Each handler resolves the chat id, pulls the
workflow out of bot_data and forwards the event.
"""
import logging

from telegram import Update
from telegram.ext import ContextTypes

from vmtopup.agent import messages
from vmtopup.agent.workflow import OrderWorkflow

logger = logging.getLogger(__name__)

WORKFLOW_KEY = "workflow"


def _workflow(context: ContextTypes.DEFAULT_TYPE) -> OrderWorkflow:
    return context.application.bot_data[WORKFLOW_KEY]


async def handle_start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """/start - main menu."""
    if not update.effective_chat:
        return
    chat_id = str(update.effective_chat.id)
    logger.info(f"[TELEGRAM] /start from chat_id={chat_id}")
    await _workflow(context).show_menu(chat_id)


async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Inline button presses (menu, amount, confirm, cancel)."""
    query = update.callback_query
    if not query or not update.effective_chat:
        return
    # stop the button spinner before doing any slow work
    await query.answer()

    chat_id = str(update.effective_chat.id)
    logger.info(f"[TELEGRAM] callback chat_id={chat_id} data='{query.data}'")
    await _workflow(context).handle_callback(chat_id, query.data or "")


async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Free text: account id or ref id, depending on the pending step."""
    if not update.message or not update.message.text or not update.effective_chat:
        return
    await _workflow(context).handle_text(str(update.effective_chat.id), update.message.text)


async def handle_error(update: object, context: ContextTypes.DEFAULT_TYPE):
    """Last line of defence: log, tell the user to retry, keep the bot running."""
    logger.error("[TELEGRAM] Unhandled error while processing update", exc_info=context.error)

    if isinstance(update, Update) and update.effective_chat:
        try:
            await context.bot.send_message(chat_id=update.effective_chat.id, text=messages.GENERIC_ERROR)
        except Exception as e:
            logger.error(f"[TELEGRAM] Could not send error notice to chat_id={update.effective_chat.id}: {e}")
