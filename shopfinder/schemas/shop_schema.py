"""Shop record data models and the tabular store row schema."""

import math
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class StaffType(str, Enum):
    RUSSIANS = "Russians"
    UZBEKS = "Uzbeks"
    AMERICANS = "Americans"
    MIXED = "Mixed/Other"


class Service(str, Enum):
    TIRES = "Tires"
    OIL = "Oil"
    ENGINE = "Engine"
    TRANSMISSION = "Transmission"
    ELECTRICAL = "Electrical"
    BODY = "Body"
    TOW = "Tow"
    OTHER = "Other"


HEADER: tuple[str, ...] = (
    "createdAtISO",
    "shopName",
    "address",
    "city",
    "state",
    "phone",
    "contactPerson",
    "staffType",
    "servicesCSV",
    "notes",
    "lat",
    "lng",
)

SERVICES_SEPARATOR = ", "


def _parse_coordinate(raw: str) -> Optional[float]:
    """Coerce a cell to a finite float, or None for blank/garbage cells."""
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _format_coordinate(value: Optional[float]) -> str:
    return "" if value is None else str(value)


class ShopRecord(BaseModel):
    """A single truck shop entry, as persisted in the tabular store."""

    created_at: str
    shop_name: str
    address: str
    city: str
    state: str
    phone: str
    contact_person: str
    # Free text: rows edited by hand in the sheet may hold other values.
    staff_type: str
    services: list[str] = Field(default_factory=list)
    notes: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None

    @property
    def services_csv(self) -> str:
        return SERVICES_SEPARATOR.join(self.services)

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None

    def to_row(self) -> list[str]:
        """Serialize to the 12 cells of the header, in order."""
        return [
            self.created_at,
            self.shop_name,
            self.address,
            self.city,
            self.state,
            self.phone,
            self.contact_person,
            self.staff_type,
            self.services_csv,
            self.notes,
            _format_coordinate(self.lat),
            _format_coordinate(self.lng),
        ]

    @classmethod
    def from_row(cls, row: list[str]) -> Optional["ShopRecord"]:
        """Parse a stored row. Blank rows and the header row yield None."""
        if not row or not any(str(cell).strip() for cell in row):
            return None
        if row[0] == HEADER[0]:
            return None

        cells = [str(cell) for cell in row] + [""] * (len(HEADER) - len(row))
        services = [s.strip() for s in cells[8].split(",") if s.strip()]
        return cls(
            created_at=cells[0],
            shop_name=cells[1],
            address=cells[2],
            city=cells[3],
            state=cells[4],
            phone=cells[5],
            contact_person=cells[6],
            staff_type=cells[7],
            services=services,
            notes=cells[9],
            lat=_parse_coordinate(cells[10]),
            lng=_parse_coordinate(cells[11]),
        )


class GeocodeResult(BaseModel):
    """A resolved coordinate pair."""

    lat: float
    lng: float
    display_name: Optional[str] = None


class SearchResult(BaseModel):
    record: ShopRecord
    distance_miles: float


class SearchResultSet(BaseModel):
    """Ranked results cached per conversation for page navigation."""

    query: str
    results: list[SearchResult] = Field(default_factory=list)
