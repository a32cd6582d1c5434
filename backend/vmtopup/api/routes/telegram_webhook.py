"""Telegram update intake for USE_WEBHOOK=true."""
import logging

from fastapi import APIRouter, Depends, Request
from telegram import Update

from vmtopup.api.deps import get_bot_application
from vmtopup.core.config import settings
from vmtopup.core.exceptions import HTTPErrors

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(settings.TELEGRAM_WEBHOOK_PATH)
async def telegram_update(request: Request, application=Depends(get_bot_application)):
    try:
        data = await request.json()
    except ValueError:
        raise HTTPErrors.bad_request("Invalid JSON")
    if not isinstance(data, dict):
        raise HTTPErrors.bad_request("Update must be a JSON object")

    update = Update.de_json(data, application.bot)
    # handler errors are caught by the application's error handler
    await application.process_update(update)
    return {"ok": True}
