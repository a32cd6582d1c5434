"""
Webhook Reconciler - applies provider callbacks to the ledger.

Payloads are untrusted. Order of checks:
1. Verification hook (optional)              -> 401, ledger untouched
2. JSON object with non-empty ref_id         -> 400, ledger untouched
3. ledger.update_status(ref_id, status, body)
   - unknown ref_id                          -> logged + audited, still 200
4. Notify the chat that placed the order     -> failures logged, still 200

Once the ledger write succeeds the provider always gets 200: a failed chat
notification must not make it retry. The ledger stays the source of truth and
a status check recovers anything the user missed.
"""
import json
import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import ValidationError

from vmtopup.agent import messages
from vmtopup.agent.transport import ChatTransport
from vmtopup.core.audit import AuditLog
from vmtopup.core.exceptions import CallbackRejected, MalformedCallback, OrderNotFound
from vmtopup.core.signatures import CallbackVerifier
from vmtopup.schemas.callback import ProviderCallback
from vmtopup.services.ledger_service import OrderLedger

logger = logging.getLogger(__name__)

UPDATED = "updated"
UNKNOWN_ORDER = "unknown_order"


class WebhookReconciler:
    def __init__(
        self,
        ledger: OrderLedger,
        transport: Optional[ChatTransport],
        verifier: Optional[CallbackVerifier] = None,
    ):
        self.ledger = ledger
        self.transport = transport
        self.verifier = verifier

    def parse(self, body: bytes) -> Tuple[Dict[str, Any], ProviderCallback]:
        """Raw body -> (verbatim payload, validated callback). Raises MalformedCallback."""
        try:
            payload = json.loads(body or b"")
        except (ValueError, UnicodeDecodeError) as e:
            raise MalformedCallback("Invalid JSON") from e

        if not isinstance(payload, dict):
            raise MalformedCallback("Payload must be a JSON object")

        try:
            callback = ProviderCallback.model_validate(payload)
        except ValidationError as e:
            raise MalformedCallback("Missing ref_id") from e

        if callback.ref_id is None or str(callback.ref_id).strip() == "":
            raise MalformedCallback("Missing ref_id")
        return payload, callback

    def verify(self, body: bytes, headers: Mapping[str, str]):
        if self.verifier is not None and not self.verifier.verify(body, headers):
            raise CallbackRejected("signature verification failed")

    async def handle(self, body: bytes, headers: Mapping[str, str], client_ip: str = "") -> str:
        """
        Apply one callback. Returns UPDATED or UNKNOWN_ORDER.

        Raises CallbackRejected / MalformedCallback before any ledger access.
        Database errors propagate so the provider retries.
        """
        try:
            self.verify(body, headers)
            payload, callback = self.parse(body)
        except CallbackRejected as e:
            AuditLog.log_callback_rejected(str(e), client_ip)
            raise
        except MalformedCallback as e:
            logger.warning(f"[WEBHOOK] Rejected callback from {client_ip or 'unknown'}: {e}")
            AuditLog.log_callback_rejected(str(e), client_ip)
            raise

        ref_id = str(callback.ref_id).strip()
        status = callback.resolved_status()
        logger.info(f"[WEBHOOK] Incoming callback ref_id={ref_id} status={status}")

        try:
            self.ledger.update_status(ref_id, status, payload)
        except OrderNotFound:
            logger.warning(f"[WEBHOOK] Callback for unknown ref_id={ref_id}, acknowledging anyway")
            AuditLog.log_unknown_order_callback(ref_id, status, payload)
            return UNKNOWN_ORDER

        AuditLog.log_status_reconciled(ref_id, status, payload)
        await self._notify_owner(ref_id, status)
        return UPDATED

    async def _notify_owner(self, ref_id: str, status: str):
        if self.transport is None:
            logger.info(f"[WEBHOOK] No chat transport, skipping notification for ref_id={ref_id}")
            return
        try:
            chat_id = self.ledger.get_owner(ref_id)
            if not chat_id:
                return
            await self.transport.send(chat_id, messages.ORDER_UPDATE.format(ref_id=ref_id, status=status))
        except Exception:
            # best-effort delivery
            logger.exception(f"[WEBHOOK] Failed to notify owner of ref_id={ref_id}")
