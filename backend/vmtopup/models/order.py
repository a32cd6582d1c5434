"""
Order: one row per placement attempt the provider accepted.

Written once by the workflow on placement, then overwritten (status +
raw_response only) by provider callbacks. Never deleted - kept for support.
"""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from vmtopup.db.base import Base


class Order(Base):
    __tablename__ = "orders"

    ref_id = Column(String(64), primary_key=True)
    session_owner_id = Column(String(64), nullable=False, index=True)  # Telegram chat to notify
    target_account_id = Column(String(255), nullable=False)  # game user id, stored verbatim
    amount_code = Column(String(64), nullable=False)  # catalog label, e.g. "30M"
    sku_code = Column(String(64), nullable=False)  # provider SKU, e.g. "HD30M"
    status = Column(String(64), nullable=False, default="unknown")  # pending | success | failed | unknown | provider-defined
    raw_response = Column(JSON, nullable=True)  # latest provider body or callback payload, verbatim
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Order ref_id={self.ref_id} status={self.status}>"
