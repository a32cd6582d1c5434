"""
Chat transport seam. The workflow and the reconciler only ever "send a message
to a chat"; rendering and delivery belong to the transport (Telegram).
"""
from typing import List, Optional, Protocol, Sequence, Tuple

# (label, callback_data)
Button = Tuple[str, str]
ButtonRows = Sequence[Sequence[Button]]


class ChatTransport(Protocol):
    async def send(self, chat_id: str, text: str, buttons: Optional[ButtonRows] = None) -> None:
        ...


class CallbackData:
    """Inline button payloads."""
    MENU_TOPUP = "menu_topup"
    MENU_STATUS = "menu_status"
    PICK_PREFIX = "pick_"
    CONFIRM = "confirm_order"
    CANCEL = "cancel_order"


def amount_buttons(labels: List[str]) -> List[List[Button]]:
    return [[(label, f"{CallbackData.PICK_PREFIX}{label}")] for label in labels]
