"""Shared test fixtures and fakes."""

import json
from datetime import datetime, timezone
from typing import Any, Optional

import pytest

from shopfinder.conversation.add_flow import AddShopFlow
from shopfinder.conversation.dispatcher import Dispatcher
from shopfinder.conversation.menu import MenuFlow
from shopfinder.conversation.search_flow import SearchFlow
from shopfinder.conversation.state_store import FlowStateStore
from shopfinder.schemas.messaging_schema import ConversationKey, EventKind, InboundEvent, Reply
from shopfinder.schemas.shop_schema import GeocodeResult, ShopRecord
from shopfinder.storage.kv import MemoryKVStore

KEY = ConversationKey(100, 7)
DALLAS = GeocodeResult(lat=32.78, lng=-96.80, display_name="Dallas, Texas, USA")


class FakeClock:
    """Manually advanced clock for TTL and throttle tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeResponse:
    def __init__(self, status_code: int = 200, json_data: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self._json = json_data
        self.text = text if text is not None else json.dumps(json_data)
        self.content = self.text.encode("utf-8")
        self.headers: dict[str, str] = {"Content-Type": "application/json"}

    def json(self) -> Any:
        if self._json is None:
            return json.loads(self.text)
        return self._json


class FakeSession:
    """Stands in for requests.Session; replays queued responses or errors."""

    def __init__(self, *responses: Any) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    def _next(self, method: str, url: str, **kwargs: Any) -> Any:
        self.calls.append({"method": method, "url": url, **kwargs})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def get(self, url: str, **kwargs: Any) -> Any:
        return self._next("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> Any:
        return self._next("POST", url, **kwargs)

    def request(self, method: str, url: str, **kwargs: Any) -> Any:
        return self._next(method, url, **kwargs)


class FakeGeocoder:
    """Geocoder returning canned answers keyed by the query text."""

    def __init__(self, answers: Optional[dict[str, Optional[GeocodeResult]]] = None) -> None:
        self.answers = answers or {}
        self.error: Optional[Exception] = None
        self.queries: list[str] = []

    async def geocode(self, query: str, namespace: str = "address") -> Optional[GeocodeResult]:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.answers.get(query)

    async def geocode_city_state(self, city: str, state: str) -> Optional[GeocodeResult]:
        return await self.geocode(f"{city}, {state}, USA", namespace="citystate")


class FakeSheetStore:
    """In-memory stand-in for SheetsClient's read_all/append surface."""

    def __init__(self, records: Optional[list[ShopRecord]] = None) -> None:
        self.rows: list[list[str]] = [r.to_row() for r in records or []]
        self.fail_append: Optional[Exception] = None
        self.fail_read: Optional[Exception] = None

    async def read_all(self) -> list[ShopRecord]:
        if self.fail_read is not None:
            raise self.fail_read
        return [r for r in (ShopRecord.from_row(row) for row in self.rows) if r is not None]

    async def append(self, row: list[str]) -> None:
        if self.fail_append is not None:
            raise self.fail_append
        self.rows.append(row)


class RecordingTransport:
    def __init__(self) -> None:
        self.deliveries: list[tuple[InboundEvent, list[Reply]]] = []

    async def deliver(self, event: InboundEvent, replies: list[Reply]) -> None:
        self.deliveries.append((event, replies))


def make_record(
    name: str = "Joe's Diesel",
    lat: Optional[float] = 32.78,
    lng: Optional[float] = -96.80,
    **overrides: Any,
) -> ShopRecord:
    fields = dict(
        created_at="2025-03-15T10:00:00+00:00",
        shop_name=name,
        address="100 Main St",
        city="Dallas",
        state="TX",
        phone="214-555-0100",
        contact_person="Joe",
        staff_type="Americans",
        services=["Tires"],
        notes="",
        lat=lat,
        lng=lng,
    )
    fields.update(overrides)
    return ShopRecord(**fields)


def text_event(text: str, key: ConversationKey = KEY) -> InboundEvent:
    return InboundEvent(kind=EventKind.TEXT, chat_id=key.chat_id, user_id=key.user_id, text=text)


def tap_event(data: str, key: ConversationKey = KEY) -> InboundEvent:
    return InboundEvent(
        kind=EventKind.CALLBACK,
        chat_id=key.chat_id,
        user_id=key.user_id,
        data=data,
        message_id=55,
        callback_id="cb-1",
    )


def command_event(text: str, key: ConversationKey = KEY) -> InboundEvent:
    return InboundEvent(kind=EventKind.COMMAND, chat_id=key.chat_id, user_id=key.user_id, text=text)


def location_event(lat: float, lng: float, key: ConversationKey = KEY) -> InboundEvent:
    return InboundEvent(
        kind=EventKind.LOCATION, chat_id=key.chat_id, user_id=key.user_id, lat=lat, lng=lng
    )


def button_data(reply: Reply) -> list[str]:
    return [b.data for row in reply.buttons for b in row]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kv(clock):
    return MemoryKVStore(clock=clock)


@pytest.fixture
def states(kv):
    return FlowStateStore(kv)


@pytest.fixture
def sheet():
    return FakeSheetStore()


@pytest.fixture
def geocoder():
    return FakeGeocoder({
        "100 Main St, Dallas, TX": DALLAS,
        "Dallas, TX, USA": DALLAS,
    })


@pytest.fixture
def add_flow(states, sheet, geocoder):
    return AddShopFlow(
        states,
        sheet,
        geocoder,
        clock=lambda: datetime(2025, 3, 15, 10, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def search_flow(states, sheet, geocoder, kv):
    return SearchFlow(states, sheet, geocoder, kv)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def dispatcher(states, add_flow, search_flow, sheet, transport):
    return Dispatcher(states, add_flow, search_flow, MenuFlow(sheet), transport)
