from vmtopup.models.order import Order
from vmtopup.models.conversation_state import ConversationState

__all__ = ["Order", "ConversationState"]
