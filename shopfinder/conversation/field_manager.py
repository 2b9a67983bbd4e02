"""
Field definitions and validation for the shop draft.

Each free-text wizard step maps to one draft field with its own
normalization and validation rule. Failing input leaves the draft
untouched so the wizard can re-prompt for the same step.

Usage:
    fields = FieldManager()
    ok, msg = fields.set_field(draft, "state", "tx")
    assert ok and draft.state == "TX"
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

from shopfinder.schemas.state_schema import ShopDraft

logger = logging.getLogger(__name__)

STATE_CODE_RE = re.compile(r"^[A-Z]{2}$")
NOTES_NONE_SENTINEL = "-"


def _non_empty(value: str) -> bool:
    return bool(value)


def _valid_state(value: str) -> bool:
    return bool(STATE_CODE_RE.match(value))


def _normalize_state(value: str) -> str:
    return value.upper()


def _normalize_notes(value: str) -> str:
    return "" if value == NOTES_NONE_SENTINEL else value


@dataclass(frozen=True)
class FieldDefinition:
    """Schema for a single draft field."""

    name: str
    display_name: str
    required: bool = True
    validator: Optional[Callable[[str], bool]] = _non_empty
    normalizer: Optional[Callable[[str], str]] = None
    error: str = ""


class FieldManager:
    """Validates and stores text input into a ShopDraft."""

    FIELD_DEFINITIONS: list[FieldDefinition] = [
        FieldDefinition(
            name="shop_name",
            display_name="Shop name",
            error="Shop name cannot be empty. Try again:",
        ),
        FieldDefinition(
            name="address",
            display_name="Address",
            error="Address cannot be empty. Try again:",
        ),
        FieldDefinition(
            name="city",
            display_name="City",
            error="City cannot be empty. Try again:",
        ),
        FieldDefinition(
            name="state",
            display_name="State",
            validator=_valid_state,
            normalizer=_normalize_state,
            error="State must be 2 letters (example: TX). Try again:",
        ),
        FieldDefinition(
            name="phone",
            display_name="Phone",
            error="Phone cannot be empty. Try again:",
        ),
        FieldDefinition(
            name="contact_person",
            display_name="Contact person",
            error="Contact person cannot be empty. Try again:",
        ),
        FieldDefinition(
            name="staff_type",
            display_name="Staff type",
        ),
        FieldDefinition(
            name="notes",
            display_name="Notes",
            required=False,
            validator=None,
            normalizer=_normalize_notes,
        ),
    ]

    def _get_definition(self, name: str) -> FieldDefinition:
        for defn in self.FIELD_DEFINITIONS:
            if defn.name == name:
                return defn
        raise ValueError(f"Unknown field: {name}")

    def set_field(self, draft: ShopDraft, name: str, raw_value: str) -> tuple[bool, str]:
        """
        Trim, normalize, and validate a value, storing it on success.

        Returns:
            (success, message) where message is the re-prompt on failure.
        """
        defn = self._get_definition(name)
        value = raw_value.strip()
        if defn.normalizer:
            value = defn.normalizer(value)

        if defn.validator and not defn.validator(value):
            logger.debug("Field '%s' validation failed: %r", name, raw_value)
            return False, defn.error

        setattr(draft, name, value)
        return True, f"Got {defn.display_name.lower()}: {value}"

    def missing_fields(self, draft: ShopDraft) -> list[FieldDefinition]:
        """Required fields that are still empty."""
        return [
            defn
            for defn in self.FIELD_DEFINITIONS
            if defn.required and not getattr(draft, defn.name)
        ]
