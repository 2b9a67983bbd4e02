"""
Centralized participant-facing text for every flow.

Keeping the wording in one place means flows and tests reference the
same constants, and a copy change never touches flow logic.
"""

WELCOME = "Welcome! I can store and search good truck shops."
MAIN_MENU = "Main menu:"
CANCELLED = "Cancelled. Main menu:"
FALLBACK = 'Use the menu, or send "City, ST" to search.'
NO_ACTION = "No action for that button."
SESSION_EXPIRED = "This session expired. Start again:"
GENERIC_ERROR = "Something went wrong talking to an external service. Check logs. Main menu:"

HELP_COMMAND = "\n".join([
    "How to use:",
    "- Use the buttons to Add a shop or Search (100 miles).",
    '- You can also send "City, ST" directly (example: Dallas, TX).',
    "",
    "Data is stored in Google Sheets.",
])

HELP_MENU = "\n".join([
    "Help:",
    "- Add shop: guided wizard (buttons + prompts).",
    '- Search: send "City, ST" and I list shops within 100 miles.',
    "- Last added: shows the last 10 entries.",
])

# --- Add flow ---

ADD_INTRO = "Add a new shop (wizard). You can cancel anytime."

STEP_PROMPTS: dict[str, str] = {
    "shop_name": "Enter the shop name:",
    "address": "Enter the full address (street + number, etc.):",
    "city": "Enter the city:",
    "state": "Enter the state as 2-letter code (example: TX):",
    "phone": "Enter the phone number:",
    "contact_person": "Enter the contact person name:",
    "staff_type": "Choose staff type:",
    "services": "Select services (multi-select). Tap Done when finished:",
    "notes": "Any notes? (You can write anything. Send '-' for none.)",
    "edit_field": "What do you want to edit?",
}

USE_BUTTONS = "Please use the buttons below."
SELECT_AT_LEAST_ONE = "Select at least one service (or choose Other)."
MISSING_FIELDS = "Missing required field(s): {fields}. Please edit and try again."
NO_SERVICES_WARNING = (
    "No services selected. If that's correct, tap Save again. Or Edit to add services."
)
SAVED = "Saved to Google Sheets."
GEOCODE_ERROR_WARNING = "WARNING: Geocoding error; lat/lng left empty. ({error})"

# --- Search flow ---

SEARCH_PROMPT = 'Send city and state like: "Dallas, TX"\nOr send your location.'
SEARCH_FORMAT_ERROR = (
    'Format must be "City, ST" (example: Dallas, TX). Try again, send location, or Cancel.'
)
SEARCHING_NEAR = "Searching within {radius:g} miles of {label}..."
GEOCODE_NOT_FOUND = 'I couldn\'t geocode "{label}". Try a different city/state format.'
NO_SHOPS_FOUND = (
    "No shops found within {radius:g} miles of {label}.\n\n"
    "Suggestion: add more shops (with full addresses so geocoding works)."
)
RESULTS_EXPIRED = "Search results expired. Please search again."
YOUR_LOCATION = "your location"

# --- Last added ---

NO_SHOPS_YET = "No shops yet. Add one first!"
SHEET_READ_ERROR = "Error reading the sheet. Check logs."
