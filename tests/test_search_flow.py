"""Tests for proximity search, pagination, and the results cache."""

import pytest

from shopfinder.conversation import keyboards
from shopfinder.conversation.search_flow import clamp_page, parse_city_state, total_pages
from shopfinder.prompts import messages
from shopfinder.schemas.state_schema import SearchState
from shopfinder.storage.kv import search_key
from tests.conftest import KEY, button_data, make_record


def seed(sheet, count):
    for i in range(count):
        sheet.rows.append(make_record(f"Shop {i + 1:02d}", lat=32.78 + i * 0.01).to_row())


class TestParseCityState:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Dallas, TX", ("Dallas", "TX")),
            ("  dallas,tx ", ("dallas", "TX")),
            ("Fort Worth,   tx", ("Fort Worth", "TX")),
            ("St. Louis, MO", ("St. Louis", "MO")),
        ],
    )
    def test_accepts(self, text, expected):
        assert parse_city_state(text) == expected

    @pytest.mark.parametrize("text", ["Dallas", "Dallas TX", "Dallas, Texas", ", TX", "Dallas, T1"])
    def test_rejects(self, text):
        assert parse_city_state(text) is None


class TestPaging:
    @pytest.mark.parametrize("total,pages", [(0, 1), (1, 1), (10, 1), (11, 2), (25, 3)])
    def test_total_pages(self, total, pages):
        assert total_pages(total) == pages

    @pytest.mark.parametrize("page,expected", [(-3, 0), (0, 0), (2, 2), (7, 2)])
    def test_clamp_page(self, page, expected):
        assert clamp_page(page, 3) == expected


class TestStart:
    @pytest.mark.asyncio
    async def test_start_sets_awaiting_query(self, search_flow, states):
        replies = await search_flow.start(KEY)
        assert isinstance(await states.get(KEY), SearchState)
        assert replies[0].text == messages.SEARCH_PROMPT
        assert button_data(replies[0]) == [keyboards.SEARCH_CANCEL]

    @pytest.mark.asyncio
    async def test_bad_format_keeps_state(self, search_flow, states):
        await search_flow.start(KEY)
        replies = await search_flow.handle_text(KEY, await states.get(KEY), "Dallas Texas")
        assert replies[0].text == messages.SEARCH_FORMAT_ERROR
        assert isinstance(await states.get(KEY), SearchState)

    @pytest.mark.asyncio
    async def test_inline_search_ignores_free_text(self, search_flow):
        assert await search_flow.try_inline_search(KEY, "hello there") is None


class TestSearch:
    @pytest.mark.asyncio
    async def test_end_to_end_joes_diesel(self, search_flow, states, sheet):
        sheet.rows.append(make_record("Joe's Diesel").to_row())
        await search_flow.start(KEY)

        replies = await search_flow.handle_text(KEY, await states.get(KEY), "Dallas, TX")

        assert replies[0].text == messages.SEARCHING_NEAR.format(radius=100, label="Dallas, TX")
        assert "1. 0.0 mi - Joe's Diesel" in replies[1].text
        assert "showing 1-1 of 1" in replies[1].text
        assert await states.get(KEY) is None

    @pytest.mark.asyncio
    async def test_result_block_lines(self, search_flow, sheet):
        sheet.rows.append(
            make_record("Joe's Diesel", services=["Tires", "Oil"], notes="Ask for Joe").to_row()
        )
        replies = await search_flow.run_search_by_city_state(KEY, "Dallas", "TX")
        page = replies[1].text
        assert "100 Main St, Dallas, TX" in page
        assert "Phone: 214-555-0100 | Contact: Joe" in page
        assert "Staff: Americans | Services: Tires, Oil" in page
        assert "Notes: Ask for Joe" in page

    @pytest.mark.asyncio
    async def test_unknown_city_clears_state(self, search_flow, states):
        await search_flow.start(KEY)
        replies = await search_flow.run_search_by_city_state(KEY, "Atlantis", "ZZ")
        assert replies[-1].text == messages.GEOCODE_NOT_FOUND.format(label="Atlantis, ZZ")
        assert keyboards.MENU_ADD in button_data(replies[-1])
        assert await states.get(KEY) is None

    @pytest.mark.asyncio
    async def test_no_matches_are_not_cached(self, search_flow, kv, sheet):
        sheet.rows.append(make_record("Houston Shop", lat=29.76, lng=-95.37).to_row())

        replies = await search_flow.run_search_by_city_state(KEY, "Dallas", "TX")

        assert replies[-1].text.startswith("No shops found within 100 miles of Dallas, TX")
        assert await kv.get(search_key(KEY)) is None

    @pytest.mark.asyncio
    async def test_records_without_coordinates_never_match(self, search_flow, sheet):
        sheet.rows.append(make_record("NoGeo", lat=None, lng=None).to_row())
        replies = await search_flow.run_search_by_city_state(KEY, "Dallas", "TX")
        assert "NoGeo" not in replies[-1].text

    @pytest.mark.asyncio
    async def test_search_by_location(self, search_flow, sheet, geocoder):
        sheet.rows.append(make_record("Joe's Diesel").to_row())
        replies = await search_flow.run_search_by_coords(KEY, 32.78, -96.80)

        assert "your location" in replies[0].text
        assert "Joe's Diesel" in replies[1].text
        assert geocoder.queries == []

    @pytest.mark.asyncio
    async def test_geocoder_called_with_city_state_query(self, search_flow, geocoder):
        await search_flow.run_search_by_city_state(KEY, "Dallas", "TX")
        assert geocoder.queries == ["Dallas, TX, USA"]


class TestPagination:
    @pytest.mark.asyncio
    async def test_first_page_has_next_only(self, search_flow, sheet):
        seed(sheet, 25)
        replies = await search_flow.run_search_by_city_state(KEY, "Dallas", "TX")
        page = replies[1]
        assert "showing 1-10 of 25" in page.text
        assert button_data(page) == [f"{keyboards.SEARCH_PAGE_PREFIX}1", keyboards.SEARCH_MENU]

    @pytest.mark.asyncio
    async def test_middle_page_has_both_directions(self, search_flow, sheet):
        seed(sheet, 25)
        await search_flow.run_search_by_city_state(KEY, "Dallas", "TX")

        replies = await search_flow.handle_selection(KEY, f"{keyboards.SEARCH_PAGE_PREFIX}1")
        page = replies[0]
        assert "showing 11-20 of 25" in page.text
        assert "11. " in page.text
        assert button_data(page) == [
            f"{keyboards.SEARCH_PAGE_PREFIX}0",
            f"{keyboards.SEARCH_PAGE_PREFIX}2",
            keyboards.SEARCH_MENU,
        ]

    @pytest.mark.asyncio
    async def test_last_page_has_prev_only(self, search_flow, sheet):
        seed(sheet, 25)
        await search_flow.run_search_by_city_state(KEY, "Dallas", "TX")

        replies = await search_flow.show_page(KEY, 2)
        assert "showing 21-25 of 25" in replies[0].text
        assert button_data(replies[0]) == [
            f"{keyboards.SEARCH_PAGE_PREFIX}1", keyboards.SEARCH_MENU,
        ]

    @pytest.mark.asyncio
    async def test_out_of_range_page_is_clamped(self, search_flow, sheet):
        seed(sheet, 25)
        await search_flow.run_search_by_city_state(KEY, "Dallas", "TX")

        replies = await search_flow.show_page(KEY, 99)
        assert "showing 21-25 of 25" in replies[0].text

    @pytest.mark.asyncio
    async def test_single_page_has_only_menu(self, search_flow, sheet):
        seed(sheet, 3)
        replies = await search_flow.run_search_by_city_state(KEY, "Dallas", "TX")
        assert button_data(replies[1]) == [keyboards.SEARCH_MENU]

    @pytest.mark.asyncio
    async def test_results_are_nearest_first(self, search_flow, sheet):
        seed(sheet, 3)
        replies = await search_flow.run_search_by_city_state(KEY, "Dallas", "TX")
        text = replies[1].text
        assert text.index("Shop 01") < text.index("Shop 02") < text.index("Shop 03")

    @pytest.mark.asyncio
    async def test_paging_after_expiry_asks_to_search_again(self, search_flow, sheet, clock):
        seed(sheet, 25)
        await search_flow.run_search_by_city_state(KEY, "Dallas", "TX")
        clock.advance(15 * 60 + 1)

        replies = await search_flow.handle_selection(KEY, f"{keyboards.SEARCH_PAGE_PREFIX}1")
        assert replies[0].text == messages.RESULTS_EXPIRED

    @pytest.mark.asyncio
    async def test_results_are_per_participant(self, search_flow, sheet):
        seed(sheet, 25)
        await search_flow.run_search_by_city_state(KEY, "Dallas", "TX")

        other = KEY._replace(user_id=KEY.user_id + 1)
        replies = await search_flow.show_page(other, 1)
        assert replies[0].text == messages.RESULTS_EXPIRED

    @pytest.mark.asyncio
    async def test_malformed_page_data_is_not_handled(self, search_flow):
        assert await search_flow.handle_selection(KEY, f"{keyboards.SEARCH_PAGE_PREFIX}x") is None


class TestSelections:
    @pytest.mark.asyncio
    async def test_cancel_clears_state(self, search_flow, states):
        await search_flow.start(KEY)
        replies = await search_flow.handle_selection(KEY, keyboards.SEARCH_CANCEL)
        assert await states.get(KEY) is None
        assert replies[0].text == messages.CANCELLED

    @pytest.mark.asyncio
    async def test_menu_button(self, search_flow):
        replies = await search_flow.handle_selection(KEY, keyboards.SEARCH_MENU)
        assert replies[0].text == messages.MAIN_MENU
