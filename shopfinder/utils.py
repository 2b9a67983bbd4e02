"""Shared utilities used across the shop finder."""

import re

GEOCODE_FAILED_WARNING = "WARNING: Geocoding failed; lat/lng left empty."


def normalize_query(value: str) -> str:
    """Normalize free text for use as a cache key.

    Examples:
        >>> normalize_query("  100 Main St,   Dallas  ")
        '100 main st, dallas'
        >>> normalize_query("DALLAS,\\tTX")
        'dallas, tx'
    """
    return re.sub(r"\s+", " ", value.strip().lower())


def append_note(notes: str, warning: str) -> str:
    """Append a warning to free-text notes, joined with ' | '."""
    return f"{notes} | {warning}" if notes else warning
