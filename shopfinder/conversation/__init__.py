from shopfinder.conversation.state_machine import (
    AddFlowStateMachine,
    InvalidTransitionError,
    TransitionTrigger,
)
from shopfinder.conversation.field_manager import FieldManager
from shopfinder.conversation.add_flow import AddShopFlow
from shopfinder.conversation.search_flow import SearchFlow
from shopfinder.conversation.dispatcher import Dispatcher

__all__ = [
    "AddFlowStateMachine",
    "InvalidTransitionError",
    "TransitionTrigger",
    "FieldManager",
    "AddShopFlow",
    "SearchFlow",
    "Dispatcher",
]
