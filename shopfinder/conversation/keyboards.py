"""Button layouts and the callback data they carry."""

from shopfinder.schemas.messaging_schema import Button
from shopfinder.schemas.shop_schema import Service, StaffType

Keyboard = list[list[Button]]

MENU_ADD = "menu:add"
MENU_SEARCH = "menu:search"
MENU_LAST = "menu:last"
MENU_HELP = "menu:help"

ADD_PREFIX = "add:"
ADD_CANCEL = "add:cancel"
ADD_STAFF_PREFIX = "add:staff:"
ADD_TOGGLE_SERVICE_PREFIX = "add:toggle_service:"
ADD_SERVICES_DONE = "add:services_done"
ADD_CONFIRM_SAVE = "add:confirm_save"
ADD_CONFIRM_EDIT = "add:confirm_edit"
ADD_CONFIRM_CANCEL = "add:confirm_cancel"
ADD_EDIT_FIELD_PREFIX = "add:edit_field:"
EDIT_BACK = "back"

SEARCH_CANCEL = "search:cancel"
SEARCH_MENU = "search:menu"
SEARCH_PAGE_PREFIX = "search:page:"

CANCEL_LABEL = "✖ Cancel"
CHECK_MARK = "✅"

# (label, field) rows for the edit menu; "services" reopens the multi-select.
EDIT_FIELD_ROWS: list[list[tuple[str, str]]] = [
    [("Shop Name", "shop_name")],
    [("Address", "address")],
    [("City", "city"), ("State", "state")],
    [("Phone", "phone")],
    [("Contact Person", "contact_person")],
    [("Staff Type", "staff_type")],
    [("Services", "services")],
    [("Notes", "notes")],
]


def main_menu() -> Keyboard:
    return [
        [Button(label="➕ Add shop", data=MENU_ADD)],
        [Button(label="🔎 Search (100 miles)", data=MENU_SEARCH)],
        [Button(label="📄 Last added", data=MENU_LAST)],
        [Button(label="❓ Help", data=MENU_HELP)],
    ]


def add_cancel() -> Keyboard:
    return [[Button(label=CANCEL_LABEL, data=ADD_CANCEL)]]


def search_cancel() -> Keyboard:
    return [[Button(label=CANCEL_LABEL, data=SEARCH_CANCEL)]]


def staff_types() -> Keyboard:
    rows = [[Button(label=t.value, data=f"{ADD_STAFF_PREFIX}{t.value}")] for t in StaffType]
    rows.append([Button(label=CANCEL_LABEL, data=ADD_CANCEL)])
    return rows


def services(selected: list[str]) -> Keyboard:
    """Two services per row, selected ones ticked."""
    chosen = set(selected)
    rows: Keyboard = []
    for i, svc in enumerate(Service):
        label = f"{CHECK_MARK} {svc.value}" if svc.value in chosen else svc.value
        button = Button(label=label, data=f"{ADD_TOGGLE_SERVICE_PREFIX}{svc.value}")
        if i % 2 == 0:
            rows.append([button])
        else:
            rows[-1].append(button)
    rows.append([
        Button(label="Done", data=ADD_SERVICES_DONE),
        Button(label=CANCEL_LABEL, data=ADD_CANCEL),
    ])
    return rows


def confirm() -> Keyboard:
    return [
        [
            Button(label="Save ✅", data=ADD_CONFIRM_SAVE),
            Button(label="Edit ✏️", data=ADD_CONFIRM_EDIT),
        ],
        [Button(label=CANCEL_LABEL, data=ADD_CONFIRM_CANCEL)],
    ]


def edit_fields() -> Keyboard:
    rows = [
        [Button(label=label, data=f"{ADD_EDIT_FIELD_PREFIX}{name}") for label, name in row]
        for row in EDIT_FIELD_ROWS
    ]
    rows.append([
        Button(label="Back", data=f"{ADD_EDIT_FIELD_PREFIX}{EDIT_BACK}"),
        Button(label=CANCEL_LABEL, data=ADD_CANCEL),
    ])
    return rows


def pagination(page: int, total_pages: int) -> Keyboard:
    """Prev only past the first page, Next only before the last."""
    nav = []
    if page > 0:
        nav.append(Button(label="⬅ Prev", data=f"{SEARCH_PAGE_PREFIX}{page - 1}"))
    if page < total_pages - 1:
        nav.append(Button(label="Next ➡", data=f"{SEARCH_PAGE_PREFIX}{page + 1}"))
    rows = [nav] if nav else []
    rows.append([Button(label="Main menu", data=SEARCH_MENU)])
    return rows
