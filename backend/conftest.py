"""Shared test fixtures: throwaway SQLite ledger, fake chat transport, fake provider HTTP."""
import json

import pytest

from vmtopup.db.init_db import init_db
from vmtopup.db.session import build_engine, build_session_factory


class FakeTransport:
    """Records every outbound chat message instead of sending it."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send(self, chat_id, text, buttons=None):
        if self.fail:
            raise RuntimeError("telegram is down")
        self.sent.append((str(chat_id), text, buttons))

    def texts_for(self, chat_id):
        return [text for cid, text, _ in self.sent if cid == str(chat_id)]

    def last(self, chat_id):
        texts = self.texts_for(chat_id)
        return texts[-1] if texts else None


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else json.dumps(body)

    def json(self):
        if self._body is None:
            return json.loads(self.text)
        return self._body


class FakeHttp:
    """Stands in for requests.Session: records posts, replays a canned response or raises."""

    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse(body={"status": "pending"})
        self.error = error
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'orders.db'}"


@pytest.fixture
def session_factory(db_url):
    engine = build_engine(db_url)
    init_db(engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def transport():
    return FakeTransport()
