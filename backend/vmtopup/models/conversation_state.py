"""
Conversation State Model - Persistent FSM storage.

Backs DatabaseSessionStore (SESSION_BACKEND=database). The in-memory store
loses pending flows on restart; this table keeps them.
"""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from vmtopup.db.base import Base


class ConversationState(Base):
    """
    Persists one pending top-up / status-check flow per Telegram chat.

    Schema:
        chat_id: Telegram chat identifier (unique)
        state: Current FSM step (e.g., "await_account_id", "await_confirm")
        payload: JSON blob with collected data (target_account_id, amount_code, sku_code)
        updated_at: Last activity timestamp (for idle expiry)

    Lifecycle:
        1. Created when the user starts a flow
        2. Updated on every step transition
        3. Deleted on completion, cancellation or terminal error
    """
    __tablename__ = "conversation_states"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(String(64), unique=True, nullable=False, index=True)
    state = Column(String(64), nullable=False)
    payload = Column(JSON, nullable=True, default=dict)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<ConversationState chat_id={self.chat_id} state={self.state}>"
