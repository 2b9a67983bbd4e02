"""
Service-account access tokens for the Sheets API.

google-auth signs the JWT-bearer assertion and exchanges it at the token
endpoint. The resulting bearer token is cached in the KV store until 60
seconds before it expires, so refreshes are invisible to callers.
"""

import asyncio
import base64
import binascii
import functools
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import requests
from google.auth import exceptions as google_exceptions
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from shopfinder.storage.kv import TOKEN_KEY, KVStore

logger = logging.getLogger(__name__)

SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_TOKEN_LIFETIME_SEC = 3600
SAFETY_MARGIN_SEC = 60


class TokenExchangeError(Exception):
    """The token endpoint rejected the assertion or could not be reached."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


def load_service_account(encoded: str) -> dict[str, Any]:
    """Decode a base64 service-account JSON bundle and check its keys."""
    try:
        info = json.loads(base64.b64decode(encoded))
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Service account bundle is not base64 JSON: {exc}") from None
    if not isinstance(info, dict) or not info.get("client_email") or not info.get("private_key"):
        raise ValueError("Service account JSON must include client_email and private_key")
    return info


def _seconds_until(expiry: Optional[datetime]) -> float:
    if expiry is None:
        return DEFAULT_TOKEN_LIFETIME_SEC
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return (expiry - datetime.now(timezone.utc)).total_seconds()


class ServiceAccountTokenProvider:
    """Refreshes service-account credentials and caches the bearer token."""

    def __init__(
        self,
        info: dict[str, Any],
        kv: KVStore,
        session: Optional[requests.Session] = None,
        credentials: Optional[service_account.Credentials] = None,
        timeout: float = 10.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._credentials = credentials or service_account.Credentials.from_service_account_info(
            {"token_uri": DEFAULT_TOKEN_URI, **info}, scopes=[SHEETS_SCOPE]
        )
        self._kv = kv
        self._request = functools.partial(Request(session or requests.Session()), timeout=timeout)
        self._clock = clock

    async def get_token(self) -> str:
        cached = await self._kv.get(TOKEN_KEY)
        if cached and cached["expires_at"] > self._clock() + SAFETY_MARGIN_SEC:
            return cached["token"]

        token, expires_in = await asyncio.to_thread(self._refresh)
        ttl = expires_in - SAFETY_MARGIN_SEC
        if ttl > 0:
            expires_at = self._clock() + expires_in
            await self._kv.set(TOKEN_KEY, {"token": token, "expires_at": expires_at}, ttl)
        logger.info("Obtained Sheets access token valid for %ds", expires_in)
        return token

    def _refresh(self) -> tuple[str, float]:
        try:
            self._credentials.refresh(self._request)
        except google_exceptions.TransportError as exc:
            raise TokenExchangeError(f"Token endpoint unreachable: {exc}") from exc
        except google_exceptions.RefreshError as exc:
            details = exc.args[1] if len(exc.args) > 1 else ""
            body = details if isinstance(details, str) else json.dumps(details)
            raise TokenExchangeError(f"OAuth token error: {exc.args[0]}", body=body) from exc
        return self._credentials.token, _seconds_until(self._credentials.expiry)
