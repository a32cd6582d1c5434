"""
Order Workflow Controller - drives the per-chat FSM.

Architecture:
1. Read the chat's session from the injected SessionStore
2. Check the input against the current step (InvalidSessionState -> guidance)
3. Advance the session, or finish the flow:
   - confirm: ProviderClient places the order, OrderLedger records it
   - ref id text: OrderLedger lookup
4. Answer through the ChatTransport

Guarantees:
- Input that doesn't fit the current step never advances or corrupts a session
- A failed provider call leaves no ledger row; the user re-initiates
- The session is gone after confirm / cancel / status lookup, whatever the outcome
- Nothing raised here is fatal to the caller except unexpected infrastructure errors
"""
import logging
from typing import Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError

from vmtopup.agent import messages
from vmtopup.agent.session_store import ConversationSession, ConversationStep, SessionStore
from vmtopup.agent.transport import CallbackData, ChatTransport, amount_buttons
from vmtopup.core.audit import AuditLog
from vmtopup.core.exceptions import DuplicateKey, InvalidSessionState, OrderNotFound, TransportFailure
from vmtopup.schemas.order import OrderCreate
from vmtopup.services.catalog import SKU_CODES, amount_labels, resolve_sku
from vmtopup.services.ledger_service import OrderLedger
from vmtopup.services.provider_client import UNKNOWN_STATUS, ProviderClient

logger = logging.getLogger(__name__)


def _require(session: Optional[ConversationSession], *steps: str) -> ConversationSession:
    if session is None or session.step not in steps:
        raise InvalidSessionState(expected="|".join(steps), actual=session.step if session else None)
    return session


class OrderWorkflow:
    def __init__(
        self,
        store: SessionStore,
        ledger: OrderLedger,
        provider: ProviderClient,
        transport: ChatTransport,
        catalog: Mapping[str, str] = SKU_CODES,
    ):
        self.store = store
        self.ledger = ledger
        self.provider = provider
        self.transport = transport
        self.catalog = catalog

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def show_menu(self, chat_id: str):
        await self.transport.send(
            chat_id,
            messages.WELCOME,
            buttons=[
                [(messages.MENU_TOPUP, CallbackData.MENU_TOPUP)],
                [(messages.MENU_STATUS, CallbackData.MENU_STATUS)],
            ],
        )

    async def start_topup(self, chat_id: str):
        self.store.set(chat_id, ConversationSession(step=ConversationStep.AWAIT_ACCOUNT_ID))
        logger.info(f"[WORKFLOW] chat_id={chat_id} started top-up")
        await self.transport.send(chat_id, messages.ASK_ACCOUNT_ID)

    async def start_status_check(self, chat_id: str):
        self.store.set(chat_id, ConversationSession(step=ConversationStep.AWAIT_REF_ID))
        logger.info(f"[WORKFLOW] chat_id={chat_id} started status check")
        await self.transport.send(chat_id, messages.ASK_REF_ID)

    # ------------------------------------------------------------------
    # Free text
    # ------------------------------------------------------------------

    async def handle_text(self, chat_id: str, text: str):
        session = self.store.get(chat_id)
        if session is None:
            # not part of any flow
            return

        text = (text or "").strip()
        logger.info(f"[WORKFLOW] chat_id={chat_id} step={session.step} text='{text}'")

        if session.step == ConversationStep.AWAIT_ACCOUNT_ID:
            await self._receive_account_id(chat_id, session, text)
        elif session.step == ConversationStep.AWAIT_REF_ID:
            await self._lookup_order(chat_id, text)
        elif session.step == ConversationStep.AWAIT_AMOUNT:
            await self.transport.send(chat_id, messages.CHOOSE_AMOUNT_WITH_BUTTONS)
        elif session.step == ConversationStep.AWAIT_CONFIRM:
            await self.transport.send(chat_id, messages.USE_CONFIRM_BUTTONS)

    async def _receive_account_id(self, chat_id: str, session: ConversationSession, text: str):
        if not text:
            await self.transport.send(chat_id, messages.EMPTY_ACCOUNT_ID)
            return

        # No format validation: the provider is the authority on valid ids
        session.target_account_id = text
        session.step = ConversationStep.AWAIT_AMOUNT
        self.store.set(chat_id, session)

        await self.transport.send(
            chat_id,
            messages.ACCOUNT_ID_SET.format(target_account_id=text),
            buttons=amount_buttons(amount_labels(self.catalog)),
        )

    async def _lookup_order(self, chat_id: str, ref_id: str):
        if not ref_id:
            await self.transport.send(chat_id, messages.EMPTY_REF_ID)
            return

        try:
            order = self.ledger.get(ref_id)
        except OrderNotFound:
            logger.info(f"[WORKFLOW] chat_id={chat_id} looked up unknown ref_id={ref_id}")
            reply = messages.REF_ID_NOT_FOUND
        except SQLAlchemyError:
            logger.exception(f"[WORKFLOW] Ledger lookup failed for ref_id={ref_id}")
            reply = messages.LOOKUP_FAILED
        else:
            reply = messages.ORDER_STATUS.format(
                ref_id=order.ref_id,
                status=order.status,
                amount_code=order.amount_code,
                target_account_id=order.target_account_id,
            )
        finally:
            self.store.delete(chat_id)

        await self.transport.send(chat_id, reply)

    # ------------------------------------------------------------------
    # Buttons
    # ------------------------------------------------------------------

    async def select_amount(self, chat_id: str, amount_code: str):
        session = self.store.get(chat_id)
        try:
            session = _require(session, ConversationStep.AWAIT_AMOUNT, ConversationStep.AWAIT_CONFIRM)
            if not session.target_account_id:
                raise InvalidSessionState(expected="target_account_id set", actual=session.step)
        except InvalidSessionState as e:
            logger.info(f"[WORKFLOW] chat_id={chat_id} ignored amount '{amount_code}': {e}")
            await self.transport.send(chat_id, messages.RESTART)
            return

        session.amount_code = amount_code
        session.sku_code = resolve_sku(amount_code, self.catalog)
        session.step = ConversationStep.AWAIT_CONFIRM
        self.store.set(chat_id, session)

        await self.transport.send(
            chat_id,
            messages.CONFIRM_ORDER.format(
                target_account_id=session.target_account_id,
                amount_code=session.amount_code,
            ),
            buttons=[
                [(messages.CONFIRM_BUTTON, CallbackData.CONFIRM)],
                [(messages.CANCEL_BUTTON, CallbackData.CANCEL)],
            ],
        )

    async def cancel(self, chat_id: str):
        try:
            _require(self.store.get(chat_id), ConversationStep.AWAIT_CONFIRM)
        except InvalidSessionState as e:
            logger.info(f"[WORKFLOW] chat_id={chat_id} ignored cancel: {e}")
            await self.transport.send(chat_id, messages.NOTHING_TO_CANCEL)
            return

        self.store.delete(chat_id)
        logger.info(f"[WORKFLOW] chat_id={chat_id} cancelled")
        await self.transport.send(chat_id, messages.CANCELLED)

    async def confirm(self, chat_id: str):
        session = self.store.get(chat_id)
        try:
            session = _require(session, ConversationStep.AWAIT_CONFIRM)
            if not (session.target_account_id and session.amount_code):
                raise InvalidSessionState(expected="target_account_id and amount_code set", actual=session.step)
        except InvalidSessionState as e:
            logger.info(f"[WORKFLOW] chat_id={chat_id} ignored confirm: {e}")
            await self.transport.send(chat_id, messages.NOTHING_TO_CONFIRM)
            return

        # Claim the session before the network call so a second press finds nothing
        self.store.delete(chat_id)
        sku_code = session.sku_code or resolve_sku(session.amount_code, self.catalog)

        await self.transport.send(chat_id, messages.PROCESSING)

        try:
            result = await self.provider.place_order(session.target_account_id, sku_code)
        except TransportFailure as e:
            logger.error(f"[WORKFLOW] Placement failed for chat_id={chat_id}: {e}")
            AuditLog.log_placement_failed(str(chat_id), sku_code, str(e), ref_id=e.ref_id)
            await self.transport.send(chat_id, messages.PROVIDER_FAILED)
            return

        status = result.status or UNKNOWN_STATUS
        try:
            self.ledger.insert(
                OrderCreate(
                    ref_id=result.ref_id,
                    session_owner_id=str(chat_id),
                    target_account_id=session.target_account_id,
                    amount_code=session.amount_code,
                    sku_code=sku_code,
                    status=status,
                    raw_response=result.raw_response,
                )
            )
        except DuplicateKey as e:
            logger.error(f"[WORKFLOW] {e} - refusing to overwrite, chat_id={chat_id}")
            AuditLog.log_placement_failed(str(chat_id), sku_code, str(e), ref_id=result.ref_id)
            await self.transport.send(chat_id, messages.ORDER_NOT_RECORDED.format(ref_id=result.ref_id))
            return
        except SQLAlchemyError as e:
            logger.error(f"[WORKFLOW] Ledger write failed for ref_id={result.ref_id}, chat_id={chat_id}: {e}")
            AuditLog.log_placement_failed(
                str(chat_id), sku_code, f"ledger write failed: {type(e).__name__}", ref_id=result.ref_id
            )
            await self.transport.send(chat_id, messages.ORDER_NOT_RECORDED.format(ref_id=result.ref_id))
            return

        AuditLog.log_order_placed(
            result.ref_id, str(chat_id), session.target_account_id, session.amount_code, sku_code, status
        )
        await self.transport.send(chat_id, messages.ORDER_CREATED.format(ref_id=result.ref_id, status=status))

    async def handle_callback(self, chat_id: str, data: str):
        """Route an inline button payload."""
        if data == CallbackData.MENU_TOPUP:
            await self.start_topup(chat_id)
        elif data == CallbackData.MENU_STATUS:
            await self.start_status_check(chat_id)
        elif data == CallbackData.CONFIRM:
            await self.confirm(chat_id)
        elif data == CallbackData.CANCEL:
            await self.cancel(chat_id)
        elif data.startswith(CallbackData.PICK_PREFIX):
            await self.select_amount(chat_id, data[len(CallbackData.PICK_PREFIX):])
        else:
            logger.warning(f"[WORKFLOW] chat_id={chat_id} unknown callback data '{data}'")
