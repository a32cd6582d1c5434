"""
Order ledger. System of record for placements and their latest status.

Two writers share it: the workflow (insert on placement) and the webhook
reconciler (update_status on callbacks). They touch rows by distinct ref_id
from independent triggers, so row-level atomicity is all that is needed.

STATUS RECONCILIATION:
- Last write wins. The provider sends no ordering token.
- update_status() must not assume insert() already ran: a callback can beat
  the placement write. It then raises OrderNotFound and changes nothing.
- If the provider ever supplies a sequence number or event timestamp, switch
  update_status() to compare-and-set: add a column, filter the UPDATE on it,
  and treat rowcount == 0 as "stale" rather than "missing".
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vmtopup.core.exceptions import DuplicateKey, OrderNotFound
from vmtopup.models.order import Order
from vmtopup.schemas.order import OrderCreate, OrderRecord

logger = logging.getLogger(__name__)


class OrderLedger:
    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def insert(self, order: OrderCreate) -> OrderRecord:
        """Create the placement row. Raises DuplicateKey, never overwrites."""
        db = self.session_factory()
        try:
            if db.get(Order, order.ref_id) is not None:
                raise DuplicateKey(order.ref_id)

            row = Order(
                ref_id=order.ref_id,
                session_owner_id=order.session_owner_id,
                target_account_id=order.target_account_id,
                amount_code=order.amount_code,
                sku_code=order.sku_code,
                status=order.status or "unknown",
                raw_response=order.raw_response,
                created_at=datetime.now(timezone.utc),
            )
            db.add(row)
            try:
                db.commit()
            except IntegrityError:
                # concurrent insert of the same key slipped past the check
                db.rollback()
                raise DuplicateKey(order.ref_id)
            db.refresh(row)
            logger.info(f"[LEDGER] Inserted ref_id={row.ref_id} status={row.status}")
            return OrderRecord.model_validate(row)
        finally:
            db.close()

    def update_status(self, ref_id: str, status: str, raw_response: Any) -> OrderRecord:
        """Overwrite status + raw_response. Raises OrderNotFound if ref_id is unknown."""
        db = self.session_factory()
        try:
            row = db.get(Order, ref_id)
            if row is None:
                raise OrderNotFound(ref_id)

            previous = row.status
            row.status = status
            row.raw_response = raw_response
            row.updated_at = datetime.now(timezone.utc)
            db.commit()
            db.refresh(row)
            logger.info(f"[LEDGER] ref_id={ref_id} status {previous} -> {status}")
            return OrderRecord.model_validate(row)
        finally:
            db.close()

    def get(self, ref_id: str) -> OrderRecord:
        db = self.session_factory()
        try:
            row = db.get(Order, ref_id)
            if row is None:
                raise OrderNotFound(ref_id)
            return OrderRecord.model_validate(row)
        finally:
            db.close()

    def get_owner(self, ref_id: str) -> Optional[str]:
        """Chat that placed the order, or None."""
        db = self.session_factory()
        try:
            owner = db.query(Order.session_owner_id).filter(Order.ref_id == ref_id).scalar()
            return owner or None
        finally:
            db.close()
