"""
Proximity search: "City, ST" or a shared location -> ranked shops.

Results are cached per conversation for a short time so page buttons can
be answered without recomputing the search. Paging after that cache has
expired answers with an explicit "search again" message.
"""

from __future__ import annotations

import math
import re
from typing import TYPE_CHECKING, Optional

from shopfinder.conversation import keyboards
from shopfinder.conversation.state_store import FlowStateStore
from shopfinder.logging_context import get_conversation_logger
from shopfinder.prompts import messages
from shopfinder.prompts.prompt_templates import build_result_block, build_results_header
from shopfinder.schemas.messaging_schema import ConversationKey, Reply
from shopfinder.schemas.shop_schema import SearchResult, SearchResultSet
from shopfinder.schemas.state_schema import SearchState
from shopfinder.storage.kv import KVStore, search_key
from shopfinder.tools.distance import rank_by_distance

if TYPE_CHECKING:
    from shopfinder.tools.geocoding import GeocodingClient
    from shopfinder.tools.sheets import SheetsClient

logger = get_conversation_logger(__name__)

CITY_STATE_RE = re.compile(r"^(.+?),\s*([A-Za-z]{2})$")
PAGE_SIZE = 10
DEFAULT_RADIUS_MILES = 100.0
DEFAULT_RESULTS_TTL_SECONDS = 15 * 60


def parse_city_state(text: str) -> Optional[tuple[str, str]]:
    """Split "City, ST" into (city, STATE), or None when it does not match.

    Examples:
        >>> parse_city_state("  Dallas ,  tx ")
        ('Dallas', 'TX')
        >>> parse_city_state("Dallas Texas") is None
        True
    """
    match = CITY_STATE_RE.match(text.strip())
    if not match:
        return None
    return match.group(1).strip(), match.group(2).upper()


def total_pages(total: int, page_size: int = PAGE_SIZE) -> int:
    return max(1, math.ceil(total / page_size))


def clamp_page(page: int, pages: int) -> int:
    return min(max(page, 0), pages - 1)


class SearchFlow:
    """Search session controller keyed by conversation identity."""

    def __init__(
        self,
        states: FlowStateStore,
        store: SheetsClient,
        geocoder: GeocodingClient,
        kv: KVStore,
        radius_miles: float = DEFAULT_RADIUS_MILES,
        page_size: int = PAGE_SIZE,
        results_ttl: float = DEFAULT_RESULTS_TTL_SECONDS,
    ) -> None:
        self._states = states
        self._store = store
        self._geocoder = geocoder
        self._kv = kv
        self._radius = radius_miles
        self._page_size = page_size
        self._results_ttl = results_ttl

    async def start(self, key: ConversationKey) -> list[Reply]:
        await self._states.set(key, SearchState())
        return [Reply(text=messages.SEARCH_PROMPT, buttons=keyboards.search_cancel())]

    async def try_inline_search(self, key: ConversationKey, text: str) -> Optional[list[Reply]]:
        """Run a search straight from "City, ST" text; None if the text does not parse.

        Callers only try this when no flow is active, so it never preempts
        an add flow in progress.
        """
        parsed = parse_city_state(text)
        if parsed is None:
            return None
        return await self.run_search_by_city_state(key, *parsed)

    async def handle_text(self, key: ConversationKey, state: SearchState, text: str) -> list[Reply]:
        parsed = parse_city_state(text)
        if parsed is None:
            # State is kept so the participant can simply retry.
            return [Reply(text=messages.SEARCH_FORMAT_ERROR, buttons=keyboards.search_cancel())]
        return await self.run_search_by_city_state(key, *parsed)

    async def run_search_by_city_state(
        self, key: ConversationKey, city: str, state: str
    ) -> list[Reply]:
        label = f"{city}, {state}"
        replies = [Reply(text=messages.SEARCHING_NEAR.format(radius=self._radius, label=label))]

        geo = await self._geocoder.geocode_city_state(city, state)
        if geo is None:
            await self._states.clear(key)
            logger.info("Search center not found: %s", label)
            return replies + [
                Reply(
                    text=messages.GEOCODE_NOT_FOUND.format(label=label),
                    buttons=keyboards.main_menu(),
                )
            ]

        results = await self.compute_results(geo.lat, geo.lng)
        await self._states.clear(key)
        return replies + await self._publish(key, results, label)

    async def run_search_by_coords(
        self, key: ConversationKey, lat: float, lng: float
    ) -> list[Reply]:
        label = messages.YOUR_LOCATION
        replies = [Reply(text=messages.SEARCHING_NEAR.format(radius=self._radius, label=label))]
        results = await self.compute_results(lat, lng)
        await self._states.clear(key)
        return replies + await self._publish(key, results, label)

    async def compute_results(self, center_lat: float, center_lng: float) -> list[SearchResult]:
        records = await self._store.read_all()
        return rank_by_distance(records, center_lat, center_lng, self._radius)

    async def _publish(
        self, key: ConversationKey, results: list[SearchResult], label: str
    ) -> list[Reply]:
        logger.info("Search near %s matched %d shop(s)", label, len(results))
        if not results:
            return [
                Reply(
                    text=messages.NO_SHOPS_FOUND.format(radius=self._radius, label=label),
                    buttons=keyboards.main_menu(),
                )
            ]
        result_set = SearchResultSet(query=label, results=results)
        await self._kv.set(search_key(key), result_set.model_dump(mode="json"), self._results_ttl)
        return [self.render_page(result_set, 0)]

    def render_page(self, result_set: SearchResultSet, page: int) -> Reply:
        """Render one page; out-of-range pages are clamped, never an error."""
        total = len(result_set.results)
        pages = total_pages(total, self._page_size)
        page = clamp_page(page, pages)

        start = page * self._page_size
        end = min(total, start + self._page_size)
        blocks = [
            build_result_block(result, start + i + 1)
            for i, result in enumerate(result_set.results[start:end])
        ]
        header = build_results_header(result_set.query, self._radius, start, end, total)
        return Reply(
            text="\n\n".join([header, *blocks]),
            buttons=keyboards.pagination(page, pages),
        )

    async def show_page(self, key: ConversationKey, page: int) -> list[Reply]:
        cached = await self._kv.get(search_key(key))
        if cached is None:
            return [Reply(text=messages.RESULTS_EXPIRED, buttons=keyboards.main_menu())]
        return [self.render_page(SearchResultSet.model_validate(cached), page)]

    async def handle_selection(self, key: ConversationKey, data: str) -> Optional[list[Reply]]:
        """Handle a search button, with or without an active search flow."""
        if data == keyboards.SEARCH_CANCEL:
            await self._states.clear(key)
            return [Reply(text=messages.CANCELLED, buttons=keyboards.main_menu())]

        if data == keyboards.SEARCH_MENU:
            return [Reply(text=messages.MAIN_MENU, buttons=keyboards.main_menu())]

        if data.startswith(keyboards.SEARCH_PAGE_PREFIX):
            try:
                page = int(data[len(keyboards.SEARCH_PAGE_PREFIX):])
            except ValueError:
                return None
            return await self.show_page(key, page)

        return None
