"""Persisted per-conversation flow state.

A conversation is either in the add wizard or waiting for a search
query. The two variants are a pydantic discriminated union on ``flow``
so every stored value round-trips to exactly one concrete model.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


class AddStep(str, Enum):
    """Ordered steps of the add wizard."""

    SHOP_NAME = "shop_name"
    ADDRESS = "address"
    CITY = "city"
    STATE = "state"
    PHONE = "phone"
    CONTACT_PERSON = "contact_person"
    STAFF_TYPE = "staff_type"
    SERVICES = "services"
    NOTES = "notes"
    CONFIRM = "confirm"
    EDIT_FIELD = "edit_field"


class ShopDraft(BaseModel):
    """Partially-filled shop record collected by the wizard."""

    shop_name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    phone: Optional[str] = None
    contact_person: Optional[str] = None
    staff_type: Optional[str] = None
    notes: Optional[str] = None


class AddState(BaseModel):
    flow: Literal["add"] = "add"
    step: AddStep = AddStep.SHOP_NAME
    draft: ShopDraft = Field(default_factory=ShopDraft)
    services_selected: list[str] = Field(default_factory=list)
    # Set while a single field is re-entered from the edit menu.
    editing: bool = False
    services_warning_shown: bool = False


class SearchState(BaseModel):
    flow: Literal["search"] = "search"
    step: Literal["await_query"] = "await_query"


FlowState = Annotated[Union[AddState, SearchState], Field(discriminator="flow")]

flow_state_adapter: TypeAdapter[Union[AddState, SearchState]] = TypeAdapter(FlowState)
