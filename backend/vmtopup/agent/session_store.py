"""
Conversation State Store - one pending flow per chat.

A session exists only while a multi-step flow is in progress. No session
means "nothing pending": input is ignored or answered with guidance.

FSM:
    (none)           --start_topup-------->  AWAIT_ACCOUNT_ID
    AWAIT_ACCOUNT_ID --text--------------->  AWAIT_AMOUNT
    AWAIT_AMOUNT     --amount selected---->  AWAIT_CONFIRM
    AWAIT_CONFIRM    --confirm / cancel--->  (deleted)
    (none)           --start_status_check->  AWAIT_REF_ID
    AWAIT_REF_ID     --text--------------->  (deleted, lookup done)

Stores hand out copies. A change is only visible after set().
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from vmtopup.models.conversation_state import ConversationState as DBConversationState

logger = logging.getLogger(__name__)


class ConversationStep:
    """Conversation steps (FSM states)"""
    AWAIT_ACCOUNT_ID = "await_account_id"
    AWAIT_AMOUNT = "await_amount"
    AWAIT_CONFIRM = "await_confirm"
    AWAIT_REF_ID = "await_ref_id"

    ALL = (AWAIT_ACCOUNT_ID, AWAIT_AMOUNT, AWAIT_CONFIRM, AWAIT_REF_ID)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ConversationSession:
    step: str
    target_account_id: Optional[str] = None
    amount_code: Optional[str] = None
    sku_code: Optional[str] = None
    updated_at: datetime = field(default_factory=_utcnow)

    def to_payload(self) -> dict:
        return {
            "target_account_id": self.target_account_id,
            "amount_code": self.amount_code,
            "sku_code": self.sku_code,
        }


class SessionStore(ABC):
    """
    get/set/delete keyed by session key (Telegram chat id).

    ttl_seconds > 0 makes idle sessions read as absent.
    """

    def __init__(self, ttl_seconds: int = 0):
        self.ttl_seconds = ttl_seconds

    def _expired(self, session: ConversationSession) -> bool:
        if self.ttl_seconds <= 0:
            return False
        updated_at = session.updated_at
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)
        return (_utcnow() - updated_at).total_seconds() > self.ttl_seconds

    @abstractmethod
    def get(self, key: str) -> Optional[ConversationSession]:
        ...

    @abstractmethod
    def set(self, key: str, session: ConversationSession) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class InMemorySessionStore(SessionStore):
    """Process-lifetime store. Fine for a single instance."""

    def __init__(self, ttl_seconds: int = 0):
        super().__init__(ttl_seconds)
        self._sessions: Dict[str, ConversationSession] = {}

    def get(self, key: str) -> Optional[ConversationSession]:
        session = self._sessions.get(str(key))
        if session is None:
            return None
        if self._expired(session):
            logger.info(f"[SESSION] chat_id={key} expired at step={session.step}")
            self.delete(key)
            return None
        return replace(session)

    def set(self, key: str, session: ConversationSession) -> None:
        self._sessions[str(key)] = replace(session, updated_at=_utcnow())

    def delete(self, key: str) -> None:
        self._sessions.pop(str(key), None)

    def __len__(self) -> int:
        return len(self._sessions)


class DatabaseSessionStore(SessionStore):
    """Survives restarts; shareable between instances pointing at one database."""

    def __init__(self, session_factory: Callable[[], Session], ttl_seconds: int = 0):
        super().__init__(ttl_seconds)
        self.session_factory = session_factory

    def _find(self, db: Session, key: str) -> Optional[DBConversationState]:
        return db.query(DBConversationState).filter(
            DBConversationState.chat_id == str(key)
        ).first()

    def get(self, key: str) -> Optional[ConversationSession]:
        db = self.session_factory()
        try:
            record = self._find(db, key)
            if not record:
                return None
            payload = record.payload or {}
            session = ConversationSession(
                step=record.state,
                target_account_id=payload.get("target_account_id"),
                amount_code=payload.get("amount_code"),
                sku_code=payload.get("sku_code"),
                updated_at=record.updated_at or _utcnow(),
            )
            if self._expired(session):
                logger.info(f"[SESSION] chat_id={key} expired at step={session.step}")
                db.delete(record)
                db.commit()
                return None
            return session
        finally:
            db.close()

    def set(self, key: str, session: ConversationSession) -> None:
        db = self.session_factory()
        try:
            record = self._find(db, key)
            if record:
                record.state = session.step
                record.payload = session.to_payload()
                record.updated_at = _utcnow()
            else:
                record = DBConversationState(
                    chat_id=str(key),
                    state=session.step,
                    payload=session.to_payload(),
                    updated_at=_utcnow(),
                )
                db.add(record)
            db.commit()
        finally:
            db.close()

    def delete(self, key: str) -> None:
        db = self.session_factory()
        try:
            db.query(DBConversationState).filter(
                DBConversationState.chat_id == str(key)
            ).delete()
            db.commit()
        finally:
            db.close()


def build_session_store(backend: str, session_factory: Callable[[], Session], ttl_seconds: int = 0) -> SessionStore:
    if backend == "database":
        return DatabaseSessionStore(session_factory, ttl_seconds=ttl_seconds)
    if backend != "memory":
        logger.warning(f"[SESSION] Unknown SESSION_BACKEND '{backend}', using memory")
    return InMemorySessionStore(ttl_seconds=ttl_seconds)
