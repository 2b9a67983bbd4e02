"""
Add-shop wizard: collects a draft step by step, confirms, and saves.

Every handler persists the updated state before returning its replies,
so a participant can resume the wizard from any step on their next
message. Save geocodes the address, but a geocoding miss or provider
failure never blocks the save: the row is written without coordinates
and a warning is appended to the notes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Optional

from shopfinder.conversation import keyboards
from shopfinder.conversation.field_manager import FieldManager
from shopfinder.conversation.state_machine import (
    EDIT_TRIGGERS,
    AddFlowStateMachine,
    InvalidTransitionError,
    TransitionTrigger,
)
from shopfinder.conversation.state_store import FlowStateStore
from shopfinder.logging_context import get_conversation_logger
from shopfinder.prompts import messages
from shopfinder.prompts.prompt_templates import build_confirmation_summary
from shopfinder.schemas.messaging_schema import ConversationKey, Reply, ReplyKind
from shopfinder.schemas.shop_schema import Service, ShopRecord, StaffType
from shopfinder.schemas.state_schema import AddState, AddStep
from shopfinder.tools.geocoding import GeocodingError
from shopfinder.utils import GEOCODE_FAILED_WARNING, append_note

if TYPE_CHECKING:
    from shopfinder.tools.geocoding import GeocodingClient
    from shopfinder.tools.sheets import SheetsClient

logger = get_conversation_logger(__name__)

_STAFF_VALUES = {t.value for t in StaffType}
_SERVICE_VALUES = {s.value for s in Service}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AddShopFlow:
    """Stateful, resumable, cancelable shop-creation wizard."""

    def __init__(
        self,
        states: FlowStateStore,
        store: SheetsClient,
        geocoder: GeocodingClient,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._states = states
        self._store = store
        self._geocoder = geocoder
        self._clock = clock
        self._fields = FieldManager()

    # ------------------------------------------------------------------ #
    # Entry and prompts
    # ------------------------------------------------------------------ #

    async def start(self, key: ConversationKey) -> list[Reply]:
        """Begin a fresh draft, overwriting any flow already in progress."""
        state = AddState()
        await self._states.set(key, state)
        logger.info("Add flow started")
        return [
            Reply(text=messages.ADD_INTRO, buttons=keyboards.add_cancel()),
            self.prompt_for_step(state),
        ]

    def prompt_for_step(self, state: AddState) -> Reply:
        step = state.step
        if step == AddStep.STAFF_TYPE:
            return Reply(text=messages.STEP_PROMPTS[step.value], buttons=keyboards.staff_types())
        if step == AddStep.SERVICES:
            return Reply(
                text=messages.STEP_PROMPTS[step.value],
                buttons=keyboards.services(state.services_selected),
            )
        if step == AddStep.CONFIRM:
            return Reply(
                text=build_confirmation_summary(state.draft, state.services_selected),
                buttons=keyboards.confirm(),
            )
        if step == AddStep.EDIT_FIELD:
            return Reply(text=messages.STEP_PROMPTS[step.value], buttons=keyboards.edit_fields())
        return Reply(text=messages.STEP_PROMPTS[step.value], buttons=keyboards.add_cancel())

    # ------------------------------------------------------------------ #
    # Free-text input
    # ------------------------------------------------------------------ #

    async def handle_text(self, key: ConversationKey, state: AddState, text: str) -> list[Reply]:
        """Validate text for the current step; re-prompt without advancing on failure."""
        sm = AddFlowStateMachine(state.step, state.editing)
        if not sm.expects_text():
            return [Reply(text=messages.USE_BUTTONS), self.prompt_for_step(state)]

        ok, msg = self._fields.set_field(state.draft, state.step.value, text)
        if not ok:
            return [Reply(text=msg, buttons=keyboards.add_cancel())]
        return await self._advance(key, state, sm, TransitionTrigger.FIELD_ACCEPTED)

    # ------------------------------------------------------------------ #
    # Button input
    # ------------------------------------------------------------------ #

    async def handle_selection(
        self, key: ConversationKey, state: AddState, data: str
    ) -> Optional[list[Reply]]:
        """Handle an add-flow button. Returns None when the data is not ours."""
        if data in (keyboards.ADD_CANCEL, keyboards.ADD_CONFIRM_CANCEL):
            await self._states.clear(key)
            logger.info("Add flow cancelled at step %s", state.step.value)
            return [Reply(text=messages.CANCELLED, buttons=keyboards.main_menu())]

        sm = AddFlowStateMachine(state.step, state.editing)

        if data.startswith(keyboards.ADD_STAFF_PREFIX):
            staff = data[len(keyboards.ADD_STAFF_PREFIX):]
            if staff not in _STAFF_VALUES:
                return None
            sm.transition(TransitionTrigger.STAFF_SELECTED)
            state.draft.staff_type = staff
            return await self._commit(key, state, sm)

        if data.startswith(keyboards.ADD_TOGGLE_SERVICE_PREFIX):
            service = data[len(keyboards.ADD_TOGGLE_SERVICE_PREFIX):]
            if service not in _SERVICE_VALUES:
                return None
            return await self._toggle_service(key, state, service)

        if data == keyboards.ADD_SERVICES_DONE:
            if state.step == AddStep.SERVICES and not state.services_selected:
                return [Reply(text=messages.SELECT_AT_LEAST_ONE, kind=ReplyKind.NOTICE)]
            return await self._advance(key, state, sm, TransitionTrigger.SERVICES_DONE)

        if data == keyboards.ADD_CONFIRM_EDIT:
            return await self._advance(key, state, sm, TransitionTrigger.EDIT_REQUESTED)

        if data == keyboards.ADD_CONFIRM_SAVE:
            if state.step != AddStep.CONFIRM:
                raise InvalidTransitionError(f"Save is not available at step '{state.step.value}'")
            return await self.save(key, state)

        if data.startswith(keyboards.ADD_EDIT_FIELD_PREFIX):
            field = data[len(keyboards.ADD_EDIT_FIELD_PREFIX):]
            if field == keyboards.EDIT_BACK:
                return await self._advance(key, state, sm, TransitionTrigger.EDIT_BACK)
            trigger = EDIT_TRIGGERS.get(field)
            if trigger is None:
                return None
            return await self._advance(key, state, sm, trigger)

        return None

    async def _toggle_service(
        self, key: ConversationKey, state: AddState, service: str
    ) -> list[Reply]:
        if state.step != AddStep.SERVICES:
            raise InvalidTransitionError(
                f"Services can only be toggled at step 'services', not '{state.step.value}'"
            )
        if service in state.services_selected:
            state.services_selected.remove(service)
        else:
            state.services_selected.append(service)
        await self._states.set(key, state)
        return [
            Reply(
                text=messages.STEP_PROMPTS[AddStep.SERVICES.value],
                buttons=keyboards.services(state.services_selected),
                kind=ReplyKind.EDIT_MARKUP,
            )
        ]

    # ------------------------------------------------------------------ #
    # Transitions
    # ------------------------------------------------------------------ #

    async def _advance(
        self,
        key: ConversationKey,
        state: AddState,
        sm: AddFlowStateMachine,
        trigger: TransitionTrigger,
    ) -> list[Reply]:
        sm.transition(trigger)
        return await self._commit(key, state, sm)

    async def _commit(
        self, key: ConversationKey, state: AddState, sm: AddFlowStateMachine
    ) -> list[Reply]:
        state.step = sm.current_state
        state.editing = sm.editing
        state.services_warning_shown = False
        await self._states.set(key, state)
        return [self.prompt_for_step(state)]

    # ------------------------------------------------------------------ #
    # Save
    # ------------------------------------------------------------------ #

    async def save(self, key: ConversationKey, state: AddState) -> list[Reply]:
        """
        Finalize the draft into a stored row.

        Missing required fields route to the edit menu. An empty service
        selection warns once; repeating Save goes through.
        """
        missing = self._fields.missing_fields(state.draft)
        if missing:
            names = ", ".join(defn.display_name for defn in missing)
            sm = AddFlowStateMachine(state.step, state.editing)
            replies = await self._advance(key, state, sm, TransitionTrigger.SAVE_INCOMPLETE)
            return [Reply(text=messages.MISSING_FIELDS.format(fields=names)), *replies]

        if not state.services_selected and not state.services_warning_shown:
            state.services_warning_shown = True
            await self._states.set(key, state)
            return [Reply(text=messages.NO_SERVICES_WARNING)]

        record = await self._build_record(state)
        await self._store.append(record.to_row())
        await self._states.clear(key)
        logger.info(
            "Saved shop '%s' (%s)",
            record.shop_name, "geocoded" if record.has_coordinates else "no coordinates",
        )
        return [
            Reply(text=messages.SAVED),
            Reply(text=messages.MAIN_MENU, buttons=keyboards.main_menu()),
        ]

    async def _build_record(self, state: AddState) -> ShopRecord:
        draft = state.draft
        notes = draft.notes or ""
        lat = lng = None
        query = f"{draft.address}, {draft.city}, {draft.state}"
        try:
            geo = await self._geocoder.geocode(query)
        except GeocodingError as exc:
            logger.warning("Geocoding error for %r: %s", query, exc)
            notes = append_note(notes, messages.GEOCODE_ERROR_WARNING.format(error=exc))
        else:
            if geo is None:
                logger.warning("No geocoding result for %r", query)
                notes = append_note(notes, GEOCODE_FAILED_WARNING)
            else:
                lat, lng = geo.lat, geo.lng

        return ShopRecord(
            created_at=self._clock().isoformat(),
            shop_name=draft.shop_name,
            address=draft.address,
            city=draft.city,
            state=draft.state,
            phone=draft.phone,
            contact_person=draft.contact_person,
            staff_type=draft.staff_type,
            services=list(state.services_selected),
            notes=notes,
            lat=lat,
            lng=lng,
        )
