"""Telegram adapter: outbound rendering and inbound routing into the workflow."""
import asyncio
from types import SimpleNamespace

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from telegram import InlineKeyboardMarkup

from vmtopup.api.routes import telegram_webhook
from vmtopup.core.config import settings
from vmtopup.telegram.bot import TelegramTransport, build_application
from vmtopup.telegram.handlers import WORKFLOW_KEY, handle_callback, handle_start, handle_text


class FakeBot:
    def __init__(self):
        self.calls = []

    async def send_message(self, **kwargs):
        self.calls.append(kwargs)


class RecordingWorkflow:
    def __init__(self):
        self.calls = []

    async def show_menu(self, chat_id):
        self.calls.append(("show_menu", chat_id))

    async def handle_callback(self, chat_id, data):
        self.calls.append(("handle_callback", chat_id, data))

    async def handle_text(self, chat_id, text):
        self.calls.append(("handle_text", chat_id, text))


class FakeQuery:
    def __init__(self, data):
        self.data = data
        self.answered = False

    async def answer(self):
        self.answered = True


def _context(workflow):
    return SimpleNamespace(application=SimpleNamespace(bot_data={WORKFLOW_KEY: workflow}))


def test_transport_renders_inline_keyboard():
    bot = FakeBot()
    transport = TelegramTransport(bot)

    asyncio.run(transport.send("42", "Pick one", buttons=[[("30M", "pick_30M")], [("60M", "pick_60M")]]))

    call = bot.calls[0]
    assert call["chat_id"] == 42
    assert call["text"] == "Pick one"
    markup = call["reply_markup"]
    assert isinstance(markup, InlineKeyboardMarkup)
    assert [[b.callback_data for b in row] for row in markup.inline_keyboard] == [["pick_30M"], ["pick_60M"]]


def test_transport_plain_message_and_group_ids():
    bot = FakeBot()
    transport = TelegramTransport(bot)

    asyncio.run(transport.send("-100123", "hello"))
    asyncio.run(transport.send("@channel", "hello"))

    assert bot.calls[0]["chat_id"] == -100123
    assert bot.calls[0]["reply_markup"] is None
    assert bot.calls[1]["chat_id"] == "@channel"


def test_handlers_forward_to_workflow():
    workflow = RecordingWorkflow()
    context = _context(workflow)
    chat = SimpleNamespace(id=42)

    asyncio.run(handle_start(SimpleNamespace(effective_chat=chat), context))

    query = FakeQuery("pick_30M")
    asyncio.run(handle_callback(SimpleNamespace(effective_chat=chat, callback_query=query), context))

    message = SimpleNamespace(text="123456789")
    asyncio.run(handle_text(SimpleNamespace(effective_chat=chat, message=message), context))

    assert query.answered
    assert workflow.calls == [
        ("show_menu", "42"),
        ("handle_callback", "42", "pick_30M"),
        ("handle_text", "42", "123456789"),
    ]


def test_non_text_messages_are_ignored():
    workflow = RecordingWorkflow()
    update = SimpleNamespace(effective_chat=SimpleNamespace(id=42), message=SimpleNamespace(text=None))

    asyncio.run(handle_text(update, _context(workflow)))

    assert workflow.calls == []


def test_build_application_registers_handlers():
    app = build_application("123456:TEST-token")
    assert len(app.handlers[0]) == 3
    assert app.updater is not None

    webhook_app = build_application("123456:TEST-token", use_webhook=True)
    assert webhook_app.updater is None


class FakeApplication:
    def __init__(self):
        self.bot = FakeBot()
        self.updates = []

    async def process_update(self, update):
        self.updates.append(update)


def _webhook_client(application, webhook_mode=True):
    app = FastAPI()
    app.include_router(telegram_webhook.router)
    app.state.bot_application = application
    app.state.bot_webhook_mode = webhook_mode
    return TestClient(app)


@pytest.mark.parametrize("body", [b"not json", b"", b"[1, 2]"])
def test_webhook_intake_rejects_unusable_bodies(body):
    application = FakeApplication()
    client = _webhook_client(application)

    resp = client.post(settings.TELEGRAM_WEBHOOK_PATH, content=body, headers={"Content-Type": "application/json"})

    assert resp.status_code == 400
    assert application.updates == []


def test_webhook_intake_disabled_in_polling_mode():
    client = _webhook_client(FakeApplication(), webhook_mode=False)
    resp = client.post(settings.TELEGRAM_WEBHOOK_PATH, json={"update_id": 1})
    assert resp.status_code == 404
