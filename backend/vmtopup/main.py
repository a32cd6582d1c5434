"""
VMTopup backend - Higgs Domino top-ups through BOS StoreID, sold over Telegram.

ARCHITECTURE:
- Telegram Bot: conversation (menu -> user id -> amount -> confirm, status check)
- BOS StoreID: signed order placement, async status callbacks
- FastAPI: provider callback endpoint (+ Telegram webhook intake)
- SQL ledger: source of truth for every accepted order

One process, one event loop: the bot runs inside the FastAPI lifespan.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from vmtopup.agent.session_store import build_session_store
from vmtopup.agent.workflow import OrderWorkflow
from vmtopup.api.routes import telegram_webhook, webhook
from vmtopup.core.config import settings
from vmtopup.core.signatures import HmacSignatureVerifier
from vmtopup.db.init_db import init_db
from vmtopup.db.session import SessionLocal
from vmtopup.services.ledger_service import OrderLedger
from vmtopup.services.provider_client import ProviderClient
from vmtopup.services.webhook_reconciler import WebhookReconciler
from vmtopup.telegram.bot import TelegramTransport, build_application, start_bot, stop_bot
from vmtopup.telegram.handlers import WORKFLOW_KEY

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
    1. Create tables
    2. Wire ledger, session store, provider client
    3. Start the Telegram bot (if token provided)

    Shutdown:
    1. Stop the Telegram bot gracefully
    """
    logger.info("[*] Initializing database...")
    init_db()

    ledger = OrderLedger(SessionLocal)
    store = build_session_store(settings.SESSION_BACKEND, SessionLocal, settings.SESSION_TTL_SECONDS)
    provider = ProviderClient.from_settings()

    verifier = None
    if settings.WEBHOOK_SECRET:
        verifier = HmacSignatureVerifier(settings.WEBHOOK_SECRET, settings.WEBHOOK_SIGNATURE_HEADER)
    else:
        logger.warning("[WEBHOOK] WEBHOOK_SECRET not set - provider callbacks are NOT verified")

    bot_application = None
    transport = None
    webhook_mode = settings.USE_WEBHOOK and bool(settings.WEBHOOK_URL)
    if settings.USE_WEBHOOK and not settings.WEBHOOK_URL:
        logger.warning("[TELEGRAM] USE_WEBHOOK=true but WEBHOOK_URL is empty - falling back to polling")

    if settings.TELEGRAM_BOT_TOKEN:
        bot_application = build_application(settings.TELEGRAM_BOT_TOKEN, use_webhook=webhook_mode)
        transport = TelegramTransport(bot_application.bot)
        bot_application.bot_data[WORKFLOW_KEY] = OrderWorkflow(store, ledger, provider, transport)

        logger.info("[*] Starting Telegram bot...")
        try:
            await start_bot(
                bot_application,
                use_webhook=webhook_mode,
                webhook_url=settings.WEBHOOK_URL + settings.TELEGRAM_WEBHOOK_PATH,
            )
        except Exception as e:
            # provider callbacks keep working without the bot
            logger.error(f"[ERROR] Telegram bot failed to start, continuing without it: {e}", exc_info=True)
            bot_application = None
            transport = None
    else:
        logger.warning("[WARN] Telegram bot disabled (no TELEGRAM_BOT_TOKEN)")

    app.state.reconciler = WebhookReconciler(ledger, transport, verifier)
    app.state.bot_application = bot_application
    app.state.bot_webhook_mode = webhook_mode
    logger.info(f"[OK] Provider callbacks listening on {settings.WEBHOOK_PATH}")

    yield

    if bot_application is not None:
        try:
            await stop_bot(bot_application)
        except Exception as e:
            logger.error(f"[ERROR] Shutdown error: {e}")


app = FastAPI(
    title="VMTopup API",
    description="Provider callbacks and Telegram bridge for Higgs Domino top-ups.",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(webhook.router, tags=["provider"])
app.include_router(telegram_webhook.router, tags=["telegram"])


@app.get("/")
def root():
    return "VMTopup bot running"


@app.get("/health")
def health():
    return {"status": "ok"}
