"""
Google Sheets client for the shop table.

Enforces the fixed 12-column header, caches parsed rows in the KV store,
and invalidates that cache on every append so the next read in this
process observes the new row.

Usage:
    sheets = SheetsClient(sheet_id, "Shops", tokens, kv)
    records = await sheets.read_all()
    await sheets.append(record.to_row())
"""

import asyncio
import logging
from typing import Any, Optional
from urllib.parse import quote

import requests

from shopfinder.schemas.shop_schema import HEADER, ShopRecord
from shopfinder.storage.kv import ROWS_KEY, KVStore
from shopfinder.tools.google_auth import ServiceAccountTokenProvider

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
LAST_COLUMN = "L"


class SheetsError(Exception):
    """A Sheets API call failed."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class HeaderMismatchError(SheetsError):
    """The sheet has a non-empty header that differs from HEADER."""


class SchemaError(ValueError):
    """A row does not have exactly one cell per header column."""


class SheetsClient:
    """Schema-enforcing read/append layer with a read cache."""

    def __init__(
        self,
        sheet_id: str,
        tab: str,
        tokens: ServiceAccountTokenProvider,
        kv: KVStore,
        cache_ttl: float = 600,
        api_base: str = DEFAULT_API_BASE,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ) -> None:
        self._sheet_id = sheet_id
        self._tab = tab
        self._tokens = tokens
        self._kv = kv
        self._cache_ttl = cache_ttl
        self._api_base = api_base.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout

    def _a1(self, cells: str) -> str:
        escaped = self._tab.replace("'", "''")
        return f"'{escaped}'!{cells}"

    async def _request(
        self,
        method: str,
        range_a1: str,
        suffix: str = "",
        params: Optional[dict[str, str]] = None,
        body: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        token = await self._tokens.get_token()
        url = f"{self._api_base}/{self._sheet_id}/values/{quote(range_a1, safe='')}{suffix}"
        try:
            response = await asyncio.to_thread(
                self._session.request,
                method,
                url,
                params=params,
                json=body,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise SheetsError(f"Sheets {method} {range_a1} failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise SheetsError(
                f"Sheets {method} {range_a1} error: {response.status_code} {response.text[:200]}",
                status=response.status_code,
                body=response.text,
            )
        try:
            return response.json()
        except ValueError:
            return {}

    async def _read_values(self, range_a1: str) -> list[list[str]]:
        data = await self._request("GET", range_a1, params={"majorDimension": "ROWS"})
        return data.get("values", [])

    async def ensure_header(self) -> None:
        """Write the header into an empty sheet; refuse to touch a divergent one."""
        range_a1 = self._a1(f"A1:{LAST_COLUMN}1")
        values = await self._read_values(range_a1)
        row = values[0] if values else []
        if not row:
            logger.info("Sheet tab '%s' is empty, writing header row", self._tab)
            await self._request(
                "PUT",
                range_a1,
                params={"valueInputOption": "RAW"},
                body={"values": [list(HEADER)]},
            )
        elif list(row) != list(HEADER):
            raise HeaderMismatchError(
                f"Sheet header mismatch on {range_a1}. "
                f"Expected: {', '.join(HEADER)}. Found: {', '.join(row)}"
            )

    async def read_all(self) -> list[ShopRecord]:
        cached = await self._kv.get(ROWS_KEY)
        if cached is not None:
            return [ShopRecord.model_validate(item) for item in cached]

        await self.ensure_header()
        values = await self._read_values(self._a1(f"A:{LAST_COLUMN}"))
        records = [r for r in (ShopRecord.from_row(row) for row in values) if r is not None]

        await self._kv.set(
            ROWS_KEY, [r.model_dump(mode="json") for r in records], self._cache_ttl
        )
        logger.debug("Loaded %d shop rows from sheet", len(records))
        return records

    async def append(self, row: list[str]) -> None:
        if len(row) != len(HEADER):
            raise SchemaError(f"append expects {len(HEADER)} columns, got {len(row)}")

        await self.ensure_header()
        await self._request(
            "POST",
            self._a1(f"A:{LAST_COLUMN}"),
            suffix=":append",
            params={"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"},
            body={"values": [row]},
        )
        await self.invalidate()
        logger.info("Appended shop row '%s'", row[1])

    async def invalidate(self) -> None:
        await self._kv.delete(ROWS_KEY)
