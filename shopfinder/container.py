"""Wires configuration into the stores, providers, and flows."""

import logging
from typing import Optional

import requests

from shopfinder.config import AppConfig
from shopfinder.conversation.add_flow import AddShopFlow
from shopfinder.conversation.dispatcher import Dispatcher, Transport
from shopfinder.conversation.menu import MenuFlow
from shopfinder.conversation.search_flow import SearchFlow
from shopfinder.conversation.state_store import FlowStateStore
from shopfinder.storage.kv import KVStore, MemoryKVStore
from shopfinder.tools.geocoding import GeocodingClient
from shopfinder.tools.google_auth import ServiceAccountTokenProvider, load_service_account
from shopfinder.tools.rate_limiter import RateLimiter
from shopfinder.tools.sheets import SheetsClient

logger = logging.getLogger(__name__)


def build_dispatcher(
    config: AppConfig,
    transport: Transport,
    kv: Optional[KVStore] = None,
    session: Optional[requests.Session] = None,
) -> Dispatcher:
    """Assemble the full object graph for one process."""
    kv = kv or MemoryKVStore()
    session = session or requests.Session()
    timeout = config.http_timeout_sec

    geocoder = GeocodingClient(
        kv=kv,
        user_agent=config.geocoding.user_agent,
        limiter=RateLimiter(config.geocoding.min_interval_sec),
        url=config.geocoding.url,
        cache_ttl=config.cache.geocode_ttl,
        timeout=timeout,
        session=session,
    )
    tokens = ServiceAccountTokenProvider(
        load_service_account(config.sheets.service_account_b64),
        kv=kv,
        session=session,
        timeout=timeout,
    )
    sheets = SheetsClient(
        sheet_id=config.sheets.sheet_id,
        tab=config.sheets.tab,
        tokens=tokens,
        kv=kv,
        cache_ttl=config.cache.sheet_seconds,
        api_base=config.sheets.api_base,
        session=session,
        timeout=timeout,
    )

    states = FlowStateStore(kv, ttl=config.cache.flow_state_ttl)
    dispatcher = Dispatcher(
        states=states,
        add_flow=AddShopFlow(states, sheets, geocoder),
        search_flow=SearchFlow(
            states,
            sheets,
            geocoder,
            kv,
            radius_miles=config.search.radius_miles,
            page_size=config.search.page_size,
            results_ttl=config.cache.search_results_ttl,
        ),
        menu=MenuFlow(sheets),
        transport=transport,
    )
    logger.info("Dispatcher ready (radius %.0f mi)", config.search.radius_miles)
    return dispatcher
