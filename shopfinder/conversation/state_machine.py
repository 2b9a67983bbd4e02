"""
Finite state machine for the add-shop wizard.

Defines the ordered wizard steps and explicit transitions with triggers.
The linear path is shop_name -> address -> city -> state -> phone ->
contact_person -> staff_type -> services -> notes -> confirm. From confirm
the participant can open the edit menu and re-enter a single field; while
that edit detour is active, completing the field returns to confirm
instead of continuing down the linear path.

Usage:
    sm = AddFlowStateMachine(AddStep.CONFIRM)
    sm.transition(TransitionTrigger.EDIT_REQUESTED)
    sm.transition(TransitionTrigger.EDIT_ADDRESS)
    sm.transition(TransitionTrigger.FIELD_ACCEPTED)
    assert sm.current_state == AddStep.CONFIRM
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from shopfinder.schemas.state_schema import AddStep

logger = logging.getLogger(__name__)


class TransitionTrigger(str, Enum):
    """Events that cause step transitions."""
    FIELD_ACCEPTED = "field_accepted"
    STAFF_SELECTED = "staff_selected"
    SERVICES_DONE = "services_done"
    EDIT_REQUESTED = "edit_requested"
    SAVE_INCOMPLETE = "save_incomplete"
    EDIT_BACK = "edit_back"
    EDIT_SHOP_NAME = "edit_shop_name"
    EDIT_ADDRESS = "edit_address"
    EDIT_CITY = "edit_city"
    EDIT_STATE = "edit_state"
    EDIT_PHONE = "edit_phone"
    EDIT_CONTACT_PERSON = "edit_contact_person"
    EDIT_STAFF_TYPE = "edit_staff_type"
    EDIT_SERVICES = "edit_services"
    EDIT_NOTES = "edit_notes"


EDIT_TRIGGERS: dict[str, TransitionTrigger] = {
    AddStep.SHOP_NAME.value: TransitionTrigger.EDIT_SHOP_NAME,
    AddStep.ADDRESS.value: TransitionTrigger.EDIT_ADDRESS,
    AddStep.CITY.value: TransitionTrigger.EDIT_CITY,
    AddStep.STATE.value: TransitionTrigger.EDIT_STATE,
    AddStep.PHONE.value: TransitionTrigger.EDIT_PHONE,
    AddStep.CONTACT_PERSON.value: TransitionTrigger.EDIT_CONTACT_PERSON,
    AddStep.STAFF_TYPE.value: TransitionTrigger.EDIT_STAFF_TYPE,
    AddStep.SERVICES.value: TransitionTrigger.EDIT_SERVICES,
    AddStep.NOTES.value: TransitionTrigger.EDIT_NOTES,
}

TEXT_STEPS: tuple[AddStep, ...] = (
    AddStep.SHOP_NAME,
    AddStep.ADDRESS,
    AddStep.CITY,
    AddStep.STATE,
    AddStep.PHONE,
    AddStep.CONTACT_PERSON,
    AddStep.NOTES,
)


@dataclass
class Transition:
    """A single valid step transition."""
    from_state: AddStep
    to_state: AddStep
    trigger: TransitionTrigger
    guard: Optional[Callable[["AddFlowStateMachine"], bool]] = None


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current step."""


def _editing(sm: "AddFlowStateMachine") -> bool:
    return sm.editing


def _completion(step: AddStep, trigger: TransitionTrigger, next_step: AddStep) -> list[Transition]:
    """Finishing a step: back to confirm during an edit, else onward."""
    return [
        Transition(step, AddStep.CONFIRM, trigger, guard=_editing),
        Transition(step, next_step, trigger),
    ]


class AddFlowStateMachine:
    """
    Deterministic step controller for one add-flow event.

    The machine is rebuilt from the persisted step and edit flag on every
    event; it holds no state beyond what is written back to the store.
    """

    TRANSITIONS: list[Transition] = [
        # --- Linear text collection ---
        *_completion(AddStep.SHOP_NAME, TransitionTrigger.FIELD_ACCEPTED, AddStep.ADDRESS),
        *_completion(AddStep.ADDRESS, TransitionTrigger.FIELD_ACCEPTED, AddStep.CITY),
        *_completion(AddStep.CITY, TransitionTrigger.FIELD_ACCEPTED, AddStep.STATE),
        *_completion(AddStep.STATE, TransitionTrigger.FIELD_ACCEPTED, AddStep.PHONE),
        *_completion(AddStep.PHONE, TransitionTrigger.FIELD_ACCEPTED, AddStep.CONTACT_PERSON),
        *_completion(
            AddStep.CONTACT_PERSON, TransitionTrigger.FIELD_ACCEPTED, AddStep.STAFF_TYPE
        ),

        # --- Button-driven steps ---
        *_completion(AddStep.STAFF_TYPE, TransitionTrigger.STAFF_SELECTED, AddStep.SERVICES),
        *_completion(AddStep.SERVICES, TransitionTrigger.SERVICES_DONE, AddStep.NOTES),
        Transition(AddStep.NOTES, AddStep.CONFIRM, TransitionTrigger.FIELD_ACCEPTED),

        # --- Confirmation gate ---
        Transition(AddStep.CONFIRM, AddStep.EDIT_FIELD, TransitionTrigger.EDIT_REQUESTED),
        Transition(AddStep.CONFIRM, AddStep.EDIT_FIELD, TransitionTrigger.SAVE_INCOMPLETE),

        # --- Edit menu ---
        Transition(AddStep.EDIT_FIELD, AddStep.CONFIRM, TransitionTrigger.EDIT_BACK),
        *[
            Transition(AddStep.EDIT_FIELD, AddStep(step), trigger)
            for step, trigger in EDIT_TRIGGERS.items()
        ],
    ]

    def __init__(self, step: AddStep = AddStep.SHOP_NAME, editing: bool = False) -> None:
        self._current_state = step
        self._editing = editing

    @property
    def current_state(self) -> AddStep:
        return self._current_state

    @property
    def editing(self) -> bool:
        return self._editing

    def transition(self, trigger: TransitionTrigger) -> AddStep:
        """
        Execute a step transition.

        Args:
            trigger: The event triggering the transition.

        Returns:
            The new wizard step.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger == trigger:
                if t.guard is not None and not t.guard(self):
                    continue

                old_state = self._current_state
                self._current_state = t.to_state

                if old_state == AddStep.EDIT_FIELD and t.to_state != AddStep.CONFIRM:
                    self._editing = True
                elif t.to_state == AddStep.CONFIRM:
                    self._editing = False

                logger.debug(
                    "Add step transition: %s -> %s (trigger: %s)",
                    old_state.value, self._current_state.value, trigger.value,
                )
                return self._current_state

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self) -> list[TransitionTrigger]:
        """Return all triggers valid from the current step."""
        seen: list[TransitionTrigger] = []
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger not in seen:
                seen.append(t.trigger)
        return seen

    def expects_text(self) -> bool:
        return self._current_state in TEXT_STEPS
