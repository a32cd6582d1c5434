"""
Audit logging for the order lifecycle.

The order ledger is the source of truth; this log is the trail support uses
to explain how a row got to its current state (who placed it, what the
provider said, which callbacks touched it, which callbacks were refused).

LOGGING SENSITIVE DATA: never log API keys or request signatures.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

# Separate logger for audit events (can be shipped to centralized logging)
audit_logger = logging.getLogger("audit")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class AuditLog:
    """Central audit logging for order events."""

    @staticmethod
    def log_order_placed(
        ref_id: str,
        chat_id: str,
        target_account_id: str,
        amount_code: str,
        sku_code: str,
        status: str,
    ):
        """
        Log a successful placement (provider accepted the request).

        Usage:
            AuditLog.log_order_placed("1718000000000A1B2", "42", "123456789", "30M", "HD30M", "pending")
        """
        log_entry = {
            "timestamp": _now(),
            "event_type": "order.placed",
            "ref_id": ref_id,
            "chat_id": chat_id,
            "target_account_id": target_account_id,
            "amount_code": amount_code,
            "sku_code": sku_code,
            "status": status,
        }

        audit_logger.info(json.dumps(log_entry))

    @staticmethod
    def log_placement_failed(
        chat_id: str,
        sku_code: str,
        reason: str,
        ref_id: Optional[str] = None,
    ):
        """
        Log a placement attempt that never made it into the ledger.

        The ref_id is included when it was generated, so a provider-side
        record can still be matched up by support.
        """
        log_entry = {
            "timestamp": _now(),
            "event_severity": "WARNING",
            "event_type": "order.placement_failed",
            "ref_id": ref_id,
            "chat_id": chat_id,
            "sku_code": sku_code,
            "reason": reason,
        }

        audit_logger.warning(json.dumps(log_entry))

    @staticmethod
    def log_status_reconciled(ref_id: str, status: str, payload: Any):
        """Log a provider callback applied to the ledger."""
        log_entry = {
            "timestamp": _now(),
            "event_type": "order.status_reconciled",
            "ref_id": ref_id,
            "status": status,
            "payload": payload,
        }

        audit_logger.info(json.dumps(log_entry, default=str))

    @staticmethod
    def log_unknown_order_callback(ref_id: str, status: str, payload: Any):
        """
        Log a callback for an order this system never placed (or lost).

        Acknowledged to the provider anyway, so this entry is the only trace.
        """
        log_entry = {
            "timestamp": _now(),
            "event_severity": "WARNING",
            "event_type": "callback.unknown_order",
            "ref_id": ref_id,
            "status": status,
            "payload": payload,
        }

        audit_logger.warning(json.dumps(log_entry, default=str))

    @staticmethod
    def log_callback_rejected(reason: str, client_ip: str = ""):
        """Log a callback refused before touching the ledger."""
        log_entry = {
            "timestamp": _now(),
            "event_severity": "WARNING",
            "event_type": "callback.rejected",
            "reason": reason,
            "ip_address": client_ip,
        }

        audit_logger.warning(json.dumps(log_entry))
